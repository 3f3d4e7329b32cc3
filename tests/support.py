from datetime import datetime, timedelta, timezone

from planner.data.repository import RepositoryError, Storage
from planner.dialog.actions import encode_action
from planner.dialog.events import CallbackEvent, TextEvent
from planner.dialog.outbound import OutboundDirective, Renderer

OWNER = 42
OTHER_OWNER = 43


class InMemoryStorage(Storage):
    def __init__(self, data=None):
        self.data = data if data is not None else {}
        self.fail_writes = False
        self.writes = 0

    async def read_dict(self):
        return self.data

    async def write_dict(self, data):
        if self.fail_writes:
            raise RepositoryError("disk is full")
        self.writes += 1
        self.data = data


class RecordingRenderer(Renderer):
    def __init__(self):
        self.rendered: list[tuple[object, OutboundDirective]] = []

    async def render(self, event, directive):
        self.rendered.append((event, directive))

    @property
    def last(self) -> OutboundDirective:
        return self.rendered[-1][1]


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 1, 20, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def callback(action, owner_id: int = OWNER) -> CallbackEvent:
    return CallbackEvent(
        owner_id=owner_id,
        chat_id=owner_id,
        message_id=1,
        language="en",
        token=encode_action(action),
        callback_query_id="query",
    )


def raw_callback(token: str, owner_id: int = OWNER) -> CallbackEvent:
    return CallbackEvent(
        owner_id=owner_id,
        chat_id=owner_id,
        message_id=1,
        language="en",
        token=token,
        callback_query_id="query",
    )


def text(value: str, owner_id: int = OWNER) -> TextEvent:
    return TextEvent(
        owner_id=owner_id,
        chat_id=owner_id,
        message_id=2,
        language="en",
        text=value,
    )
