import logging
from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from typing import Any, get_type_hints

from dacite import Config, DaciteError, from_dict

from planner.data.models.attendance import AttendanceStatus
from planner.data.models.song import SongField
from planner.dialog.session import DialogKind, EventTemplate

logger = logging.getLogger(__name__)

# telegram limit for callback_data
MAX_TOKEN_BYTES = 64
DELIMITER = "|"

actions: dict[str, type] = {}


class ActionEncodingError(ValueError):
    pass


# registers a frozen dataclass as a button action under a short name
def action(name: str, dialog: DialogKind | None = None):
    if DELIMITER in name:
        raise ActionEncodingError(f"Invalid action name {name}")

    def wrapper(cls: Any):
        if name in actions:
            raise ActionEncodingError(f"Action {name} is already registered")
        cls.__action_name__ = name
        cls.__action_dialog__ = dialog
        actions[name] = cls
        return cls

    return wrapper


def _encode_value(value: Any) -> str:
    if isinstance(value, Enum):
        return value.name.lower()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _parse_enum(enum_type: type[Enum]):
    return lambda s: enum_type[s.upper()]


def _decode_config(cls: type) -> Config:
    hooks: dict[Any, Any] = {int: int, date: date.fromisoformat}
    for hint in get_type_hints(cls).values():
        if isinstance(hint, type) and issubclass(hint, Enum):
            hooks[hint] = _parse_enum(hint)
    return Config(type_hooks=hooks, strict=True)


def encode_action(value: Any) -> str:
    name = getattr(type(value), "__action_name__", None)
    if name is None:
        raise ActionEncodingError(f"{type(value).__name__} is not an action")

    parts = [name]
    for f in fields(value):
        encoded = _encode_value(getattr(value, f.name))
        if DELIMITER in encoded:
            raise ActionEncodingError(f"Field {f.name} contains delimiter")
        parts.append(encoded)

    token = DELIMITER.join(parts)
    if len(token.encode("utf-8")) > MAX_TOKEN_BYTES:
        raise ActionEncodingError(f"Token is too long: {token}")
    return token


def decode_action(token: str | None) -> Any | None:
    """Returns the typed action for a callback token or None when the token
    is unknown or malformed"""
    if not token:
        return None

    name, *values = token.split(DELIMITER)
    cls = actions.get(name)
    if cls is None:
        return None

    names = [f.name for f in fields(cls)]
    if len(names) != len(values):
        return None

    try:
        return from_dict(
            data_class=cls,
            data=dict(zip(names, values)),
            config=_decode_config(cls),
        )
    except (DaciteError, ValueError, KeyError) as e:
        logger.debug(f"Malformed token {token}: {e}")
        return None


def dialog_of(value: Any) -> DialogKind | None:
    if isinstance(value, (Cancel, Back)):
        return value.dialog
    return getattr(type(value), "__action_dialog__", None)


# navigation


@action("cancel")
@dataclass(frozen=True)
class Cancel:
    dialog: DialogKind


@action("back")
@dataclass(frozen=True)
class Back:
    dialog: DialogKind


# event wizard


@action("wz_tpl", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class ChooseTemplate:
    template: EventTemplate


@action("wz_date", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class ChooseDate:
    day: date


@action("wz_date_custom", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class CustomDate:
    pass


@action("wz_time", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class ChooseTime:
    time: str


@action("wz_time_custom", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class CustomTime:
    pass


@action("wz_loc", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class ChooseLocation:
    index: int


@action("wz_loc_custom", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class CustomLocation:
    pass


@action("wz_song", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class ToggleSong:
    song_id: int


@action("wz_songs_done", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class SongsDone:
    pass


@action("wz_songs_skip", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class SongsSkip:
    pass


@action("wz_songs_new", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class AddNewSongs:
    pass


@action("wz_confirm", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class ConfirmEvent:
    pass


@action("wz_edit", DialogKind.EVENT_WIZARD)
@dataclass(frozen=True)
class EditEvent:
    pass


# chord entry


@action("ce_key", DialogKind.CHORD_ENTRY)
@dataclass(frozen=True)
class ChooseKey:
    key: str


@action("ce_key_chart", DialogKind.CHORD_ENTRY)
@dataclass(frozen=True)
class KeyFromChart:
    pass


# song library


@action("songs_page")
@dataclass(frozen=True)
class SongsPage:
    page: int


@action("song_view")
@dataclass(frozen=True)
class SongView:
    song_id: int


@action("song_edit")
@dataclass(frozen=True)
class SongEditMenu:
    song_id: int


@action("song_field")
@dataclass(frozen=True)
class SongEditField:
    song_id: int
    field: SongField


@action("song_delete")
@dataclass(frozen=True)
class SongDelete:
    song_id: int


@action("song_delete_yes")
@dataclass(frozen=True)
class SongDeleteConfirm:
    song_id: int


@action("song_add")
@dataclass(frozen=True)
class SongAddNew:
    pass


# chord charts


@action("chords_song")
@dataclass(frozen=True)
class ChordSongView:
    song_id: int


@action("chords_add")
@dataclass(frozen=True)
class ChordAdd:
    song_id: int


@action("chord_view")
@dataclass(frozen=True)
class ChordView:
    chart_id: int


# events


@action("attend")
@dataclass(frozen=True)
class Attend:
    event_id: int
    status: AttendanceStatus


@action("ev_del")
@dataclass(frozen=True)
class EventDelete:
    event_id: int


@action("ev_del_yes")
@dataclass(frozen=True)
class EventDeleteConfirm:
    event_id: int


@action("ev_del_no")
@dataclass(frozen=True)
class EventDeleteCancel:
    event_id: int


# registration


@action("role", DialogKind.ROLE_SELECT)
@dataclass(frozen=True)
class ToggleRole:
    role_id: int


@action("role_done", DialogKind.ROLE_SELECT)
@dataclass(frozen=True)
class RolesDone:
    pass


@action("lang")
@dataclass(frozen=True)
class SetLanguage:
    code: str
