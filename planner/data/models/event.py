from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

# events are entered and shown in the congregation's local time
EVENT_TZ = ZoneInfo("Europe/Bucharest")


class SetListItemType(Enum):
    SONG = 0
    SCRIPTURE = 1
    PRAYER = 2
    ANNOUNCEMENT = 3


@dataclass
class Event:
    id: int
    title: str
    date_time: datetime
    location: str
    description: Optional[str] = None
    created_by: Optional[int] = None
    is_cancelled: bool = False

    @property
    def local_time(self):
        return self.date_time.astimezone(EVENT_TZ)


@dataclass
class SetListItem:
    event_id: int
    order_index: int
    song_id: Optional[int] = None
    item_type: SetListItemType = SetListItemType.SONG
    notes: Optional[str] = None
