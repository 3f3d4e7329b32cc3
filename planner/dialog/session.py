from copy import deepcopy
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Optional

from planner.data.models.song import SongField


class DialogKind(StrEnum):
    EVENT_WIZARD = "event_wizard"
    SONG_EDIT = "song_edit"
    SONG_ADD = "song_add"
    CHORD_ENTRY = "chord_entry"
    ROLE_SELECT = "role_select"


class EventTemplate(StrEnum):
    SUNDAY = "sunday"
    REHEARSAL = "rehearsal"


@dataclass
class EventWizardPayload:
    template: Optional[EventTemplate] = None
    title: Optional[str] = None
    description: Optional[str] = None
    default_time: Optional[str] = None
    day: Optional[date] = None
    time: Optional[str] = None
    location: Optional[str] = None
    location_options: list[str] = field(default_factory=list)
    song_ids: list[int] = field(default_factory=list)


@dataclass
class SongEditPayload:
    song_id: int
    field: SongField


@dataclass
class SongAddPayload:
    pass


@dataclass
class ChordEntryPayload:
    song_id: int
    key: Optional[str] = None


@dataclass
class RoleSelectPayload:
    role_ids: list[int] = field(default_factory=list)


type Payload = (
    EventWizardPayload
    | SongEditPayload
    | SongAddPayload
    | ChordEntryPayload
    | RoleSelectPayload
)

PAYLOAD_TYPES: dict[DialogKind, type] = {
    DialogKind.EVENT_WIZARD: EventWizardPayload,
    DialogKind.SONG_EDIT: SongEditPayload,
    DialogKind.SONG_ADD: SongAddPayload,
    DialogKind.CHORD_ENTRY: ChordEntryPayload,
    DialogKind.ROLE_SELECT: RoleSelectPayload,
}


@dataclass
class Session:
    """Dialog state of one participant.

    The payload type is fixed by the dialog kind; history holds the steps
    that were active before the current one, most recent last."""

    owner_id: int
    kind: DialogKind
    step: StrEnum
    payload: Payload
    created_at: datetime
    history: list[StrEnum] = field(default_factory=list)

    def __post_init__(self):
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind} session expects {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )

    def copy(self) -> "Session":
        return deepcopy(self)
