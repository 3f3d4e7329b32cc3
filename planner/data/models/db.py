from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from dacite import Config, from_dict

from .attendance import Attendance
from .chord_chart import ChordChart
from .event import Event, SetListItem
from .role import Role, UserRole
from .song import Song
from .user import User


@dataclass
class Database:
    admin_ids: set[int] = field(default_factory=set)
    users: list[User] = field(default_factory=list)
    songs: list[Song] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    setlist_items: list[SetListItem] = field(default_factory=list)
    chord_charts: list[ChordChart] = field(default_factory=list)
    attendances: list[Attendance] = field(default_factory=list)
    roles: list[Role] = field(default_factory=list)
    user_roles: list[UserRole] = field(default_factory=list)

    version: int = 2


PARSE_CONFIG = Config(
    cast=[
        Enum,
        set,
    ],
    type_hooks={
        datetime: lambda s: datetime.fromtimestamp(s, tz=timezone.utc),
    },
)


def parse_from_dict(data: dict[str, Any]) -> Database:
    return from_dict(
        data_class=Database,
        data=data,
        config=PARSE_CONFIG,
    )


def serialize_to_dict(db: Database) -> dict[str, Any]:
    return asdict(db)
