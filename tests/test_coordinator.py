import asyncio
from copy import deepcopy
from datetime import date, datetime
from enum import StrEnum

import pytest
from support import OTHER_OWNER, OWNER, RecordingRenderer, callback, raw_callback, text

from planner.data.models.event import EVENT_TZ
from planner.dialog.actions import (
    AddNewSongs,
    Back,
    Cancel,
    ChooseDate,
    ChooseLocation,
    ChooseTemplate,
    ChooseTime,
    ConfirmEvent,
    CustomDate,
    CustomLocation,
    CustomTime,
    EditEvent,
    SongsDone,
    SongsSkip,
    ToggleSong,
)
from planner.dialog.coordinator import DialogCoordinator, OwnerLocks
from planner.dialog.dialog import Dialog
from planner.dialog.dialogs.event_wizard import WizardStep
from planner.dialog.graph import Modality, StepGraph, StepSpec
from planner.dialog.outbound import OutboundDirective
from planner.dialog.session import (
    DialogKind,
    EventTemplate,
    EventWizardPayload,
    SongAddPayload,
)
from planner.dialog.step import advance


async def start_wizard(coordinator):
    await coordinator.start(text("/newevent"), DialogKind.EVENT_WIZARD)


async def go_to_location(coordinator):
    await start_wizard(coordinator)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))
    await coordinator.handle(callback(ChooseDate(date(2025, 1, 25))))
    await coordinator.handle(callback(ChooseTime("10:30")))


async def go_to_songs(coordinator):
    await go_to_location(coordinator)
    await coordinator.handle(callback(CustomLocation()))
    await coordinator.handle(text("Main Hall"))


async def go_to_confirm(coordinator):
    await go_to_songs(coordinator)
    await coordinator.handle(callback(ToggleSong(3)))
    await coordinator.handle(callback(ToggleSong(7)))
    await coordinator.handle(callback(SongsDone()))


@pytest.mark.asyncio
async def test_full_wizard_commits_once(coordinator, store, renderer, repository):
    await go_to_confirm(coordinator)

    session = store.get(OWNER)
    assert session.step == WizardStep.CONFIRM
    assert repository.db.events == []

    summary = renderer.last.text
    assert "Serviciu" in summary
    assert "25/01/2025" in summary
    assert "10:30" in summary
    assert "Main Hall" in summary
    assert summary.index("Song 3") < summary.index("Song 7")

    assert await coordinator.handle(callback(ConfirmEvent()))

    assert store.get(OWNER) is None
    assert len(repository.db.events) == 1
    event = repository.db.events[0]
    assert event.title == "Serviciu"
    assert event.location == "Main Hall"
    assert event.local_time == datetime(2025, 1, 25, 10, 30, tzinfo=EVENT_TZ)
    assert [(i.song_id, i.order_index) for i in repository.db.setlist_items] == [
        (3, 0),
        (7, 1),
    ]


@pytest.mark.asyncio
async def test_start_renders_first_step(coordinator, store, renderer):
    await start_wizard(coordinator)

    assert store.get(OWNER).step == WizardStep.SELECT_TEMPLATE
    assert coordinator.active_kind(OWNER) == DialogKind.EVENT_WIZARD
    buttons = [b.action for line in renderer.last.keyboard for b in line]
    assert ChooseTemplate(EventTemplate.SUNDAY) in buttons
    assert Back(DialogKind.EVENT_WIZARD) not in buttons
    assert Cancel(DialogKind.EVENT_WIZARD) in buttons


@pytest.mark.asyncio
async def test_template_prefills_defaults(coordinator, store):
    await start_wizard(coordinator)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.REHEARSAL)))

    payload = store.get(OWNER).payload
    assert payload.title == "Repetiție"
    assert payload.default_time == "19:00"
    assert payload.location == "Biserică - sala mică"


@pytest.mark.asyncio
async def test_cancel_then_stale_button(coordinator, store, renderer, texts):
    await start_wizard(coordinator)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))
    await coordinator.handle(callback(ChooseDate(date(2025, 1, 25))))
    assert store.get(OWNER).step == WizardStep.SELECT_TIME

    assert await coordinator.handle(text("/cancel"))

    assert store.get(OWNER) is None
    assert renderer.last.text == texts.get("cancelled", "en")

    assert not await coordinator.handle(callback(ChooseTime("10:30")))
    assert store.get(OWNER) is None


@pytest.mark.asyncio
async def test_cancel_button(coordinator, store):
    await go_to_songs(coordinator)

    assert await coordinator.handle(callback(Cancel(DialogKind.EVENT_WIZARD)))

    assert store.get(OWNER) is None


@pytest.mark.asyncio
async def test_cancel_without_session_is_left_to_handlers(coordinator, renderer):
    assert not await coordinator.handle(text("/cancel"))
    assert not await coordinator.handle(text("/stop"))

    assert renderer.rendered == []


@pytest.mark.asyncio
async def test_invalid_custom_date_keeps_step(coordinator, store, renderer, texts):
    await start_wizard(coordinator)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))
    await coordinator.handle(callback(CustomDate()))

    await coordinator.handle(text("31/02/2025"))

    session = store.get(OWNER)
    assert session.step == WizardStep.ENTER_DATE
    assert session.payload.day is None
    assert renderer.last.text.startswith(texts.get("error_date_format", "en"))

    await coordinator.handle(text("25/01/2025"))

    session = store.get(OWNER)
    assert session.step == WizardStep.SELECT_TIME
    assert session.payload.day == date(2025, 1, 25)


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["25:00", "9:05", "09:5", "09:05:00", "0905"])
async def test_custom_time_requires_two_digit_format(
    coordinator, store, renderer, texts, value
):
    await start_wizard(coordinator)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))
    await coordinator.handle(callback(ChooseDate(date(2025, 1, 25))))
    await coordinator.handle(callback(CustomTime()))

    await coordinator.handle(text(value))
    assert store.get(OWNER).step == WizardStep.ENTER_TIME
    assert store.get(OWNER).payload.time is None
    assert renderer.last.text.startswith(texts.get("error_time_format", "en"))

    await coordinator.handle(text(" 09:05 "))
    session = store.get(OWNER)
    assert session.step == WizardStep.SELECT_LOCATION
    assert session.payload.time == "09:05"


@pytest.mark.asyncio
async def test_back_then_same_input_reproduces_payload(coordinator, store):
    await go_to_location(coordinator)
    before = deepcopy(store.get(OWNER).payload)

    await coordinator.handle(callback(Back(DialogKind.EVENT_WIZARD)))

    session = store.get(OWNER)
    assert session.step == WizardStep.SELECT_TIME
    assert session.history == [WizardStep.SELECT_TEMPLATE, WizardStep.SELECT_DATE]

    await coordinator.handle(callback(ChooseTime("10:30")))

    session = store.get(OWNER)
    assert session.step == WizardStep.SELECT_LOCATION
    assert session.payload == before


# every step of the wizard, typed answers as strings
CUSTOM_PATH = [
    (ChooseTemplate(EventTemplate.SUNDAY), WizardStep.SELECT_DATE),
    (CustomDate(), WizardStep.ENTER_DATE),
    ("25/01/2025", WizardStep.SELECT_TIME),
    (CustomTime(), WizardStep.ENTER_TIME),
    ("10:30", WizardStep.SELECT_LOCATION),
    (CustomLocation(), WizardStep.ENTER_LOCATION),
    ("Main Hall", WizardStep.ADD_SONGS),
    (AddNewSongs(), WizardStep.ENTER_SONGS),
    ("Song 3\nSong 7", WizardStep.CONFIRM),
]


def as_event(move):
    return text(move) if isinstance(move, str) else callback(move)


async def walk(coordinator, moves):
    await start_wizard(coordinator)
    for move, _ in moves:
        await coordinator.handle(as_event(move))


@pytest.mark.asyncio
@pytest.mark.parametrize("length", range(1, len(CUSTOM_PATH) + 1))
async def test_back_and_replay_at_every_step(coordinator, store, length):
    moves = CUSTOM_PATH[:length]
    await walk(coordinator, moves)

    reached = store.get(OWNER)
    assert reached.step == moves[-1][1]
    before = deepcopy(reached.payload)
    history = list(reached.history)

    assert await coordinator.handle(callback(Back(DialogKind.EVENT_WIZARD)))

    previous = CUSTOM_PATH[length - 2][1] if length > 1 else WizardStep.SELECT_TEMPLATE
    session = store.get(OWNER)
    assert session.step == previous
    assert session.history == history[:-1]

    await coordinator.handle(as_event(moves[-1][0]))

    session = store.get(OWNER)
    assert session.step == moves[-1][1]
    assert session.history == history
    assert session.payload == before


@pytest.mark.asyncio
@pytest.mark.parametrize("length", range(len(CUSTOM_PATH) + 1))
@pytest.mark.parametrize("cancel", [Cancel(DialogKind.EVENT_WIZARD), "/cancel"])
async def test_cancel_at_every_step(
    coordinator, store, repository, renderer, texts, length, cancel
):
    await walk(coordinator, CUSTOM_PATH[:length])
    assert store.get(OWNER) is not None

    assert await coordinator.handle(as_event(cancel))

    assert store.get(OWNER) is None
    assert renderer.last.text == texts.get("cancelled", "en")
    assert repository.db.events == []


@pytest.mark.asyncio
async def test_template_choice_after_back_resets_template_fields(coordinator, store):
    await start_wizard(coordinator)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.REHEARSAL)))
    await coordinator.handle(callback(ChooseDate(date(2025, 1, 25))))
    await coordinator.handle(callback(ChooseTime("19:00")))
    await coordinator.handle(callback(CustomLocation()))
    await coordinator.handle(text("Main Hall"))
    assert store.get(OWNER).step == WizardStep.ADD_SONGS

    for _ in range(5):
        await coordinator.handle(callback(Back(DialogKind.EVENT_WIZARD)))
    assert store.get(OWNER).step == WizardStep.SELECT_TEMPLATE

    await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))

    payload = store.get(OWNER).payload
    assert payload.template == EventTemplate.SUNDAY
    assert payload.title == "Serviciu"
    assert payload.default_time == "08:30"
    assert payload.description == "Serviciu de închinare"
    assert payload.location == "Biserică - sala mică"
    assert payload.location_options == []
    # later answers survive until they are asked again
    assert payload.day == date(2025, 1, 25)
    assert payload.time == "19:00"


@pytest.mark.asyncio
async def test_back_at_first_step_is_a_miss(coordinator, store, renderer, texts):
    await start_wizard(coordinator)

    assert await coordinator.handle(callback(Back(DialogKind.EVENT_WIZARD)))

    assert store.get(OWNER).step == WizardStep.SELECT_TEMPLATE
    assert renderer.last.notice == texts.get("miss_stale_button", "en")


@pytest.mark.asyncio
async def test_location_button_uses_offered_options(coordinator, store):
    await go_to_location(coordinator)

    await coordinator.handle(callback(ChooseLocation(5)))
    assert store.get(OWNER).step == WizardStep.SELECT_LOCATION

    await coordinator.handle(callback(ChooseLocation(0)))
    session = store.get(OWNER)
    assert session.step == WizardStep.ADD_SONGS
    assert session.payload.location == "Biserică - sala mică"


@pytest.mark.asyncio
async def test_double_toggle_is_idempotent(coordinator, store):
    await go_to_songs(coordinator)

    await coordinator.handle(callback(ToggleSong(3)))
    await coordinator.handle(callback(ToggleSong(5)))
    await coordinator.handle(callback(ToggleSong(5)))

    assert store.get(OWNER).payload.song_ids == [3]


@pytest.mark.asyncio
async def test_toggle_of_missing_song(coordinator, store, renderer, texts):
    await go_to_songs(coordinator)

    await coordinator.handle(callback(ToggleSong(99)))

    assert store.get(OWNER).payload.song_ids == []
    assert renderer.last.notice == texts.get("song_not_found", "en")


@pytest.mark.asyncio
async def test_deleted_selected_song_can_be_untoggled(coordinator, store, repository):
    await go_to_songs(coordinator)
    await coordinator.handle(callback(ToggleSong(3)))
    await coordinator.handle(callback(ToggleSong(7)))
    await repository.delete_song(7)

    await coordinator.handle(callback(ToggleSong(7)))

    assert store.get(OWNER).payload.song_ids == [3]


@pytest.mark.asyncio
async def test_song_deleted_before_confirm_is_left_out(
    coordinator, store, repository, renderer, texts
):
    await go_to_confirm(coordinator)
    await repository.delete_song(7)

    assert await coordinator.handle(callback(ConfirmEvent()))

    assert store.get(OWNER) is None
    assert renderer.last.text.startswith(texts.get("event_created", "en"))
    [event] = repository.db.events
    assert [(i.song_id, i.order_index) for i, _ in repository.setlist(event.id)] == [
        (3, 0)
    ]


@pytest.mark.asyncio
async def test_all_selected_songs_deleted_before_confirm(coordinator, store, repository):
    await go_to_confirm(coordinator)
    await repository.delete_song(3)
    await repository.delete_song(7)

    await coordinator.handle(callback(ConfirmEvent()))

    assert store.get(OWNER) is None
    assert len(repository.db.events) == 1
    assert repository.db.setlist_items == []


@pytest.mark.asyncio
async def test_skip_clears_selection(coordinator, store):
    await go_to_songs(coordinator)
    await coordinator.handle(callback(ToggleSong(3)))

    await coordinator.handle(callback(SongsSkip()))

    session = store.get(OWNER)
    assert session.step == WizardStep.CONFIRM
    assert session.payload.song_ids == []


@pytest.mark.asyncio
async def test_typed_songs_are_created_and_selected(coordinator, store, repository):
    await go_to_songs(coordinator)
    await coordinator.handle(callback(AddNewSongs()))
    assert store.get(OWNER).step == WizardStep.ENTER_SONGS

    await coordinator.handle(text("Amazing Grace | G | 72\nsong 2 | D"))

    session = store.get(OWNER)
    assert session.step == WizardStep.CONFIRM
    created = repository.find_song_by_title("Amazing Grace")
    assert created.key == "G"
    assert created.tempo == 72
    assert repository.get_song(2).key == "D"
    assert session.payload.song_ids == [created.id, 2]


@pytest.mark.asyncio
async def test_song_toggles_are_honoured_while_typing(coordinator, store, renderer):
    await go_to_songs(coordinator)
    await coordinator.handle(callback(AddNewSongs()))

    await coordinator.handle(callback(ToggleSong(4)))

    session = store.get(OWNER)
    assert session.step == WizardStep.ENTER_SONGS
    assert session.payload.song_ids == [4]
    assert renderer.last.text is None


@pytest.mark.asyncio
async def test_commit_failure_keeps_session(coordinator, store, storage, repository, renderer, texts):
    await go_to_confirm(coordinator)
    storage.fail_writes = True

    await coordinator.handle(callback(ConfirmEvent()))

    assert store.get(OWNER).step == WizardStep.CONFIRM
    assert repository.db.events == []
    assert repository.db.setlist_items == []
    assert renderer.last.text.startswith(texts.get("error_event_save", "en"))

    storage.fail_writes = False
    await coordinator.handle(callback(ConfirmEvent()))

    assert store.get(OWNER) is None
    assert len(repository.db.events) == 1


@pytest.mark.asyncio
async def test_edit_restarts_from_template(coordinator, store):
    await go_to_confirm(coordinator)

    await coordinator.handle(callback(EditEvent()))

    session = store.get(OWNER)
    assert session.step == WizardStep.SELECT_TEMPLATE
    assert session.history == []
    assert session.payload == EventWizardPayload()


@pytest.mark.asyncio
async def test_text_at_button_step_is_a_miss(coordinator, store, renderer, texts):
    await start_wizard(coordinator)

    assert await coordinator.handle(text("sunday please"))

    assert store.get(OWNER).step == WizardStep.SELECT_TEMPLATE
    assert renderer.last.notice == texts.get("miss_use_buttons", "en")


@pytest.mark.asyncio
async def test_other_commands_are_not_consumed(coordinator, store):
    await go_to_songs(coordinator)

    assert not await coordinator.handle(text("/songs"))
    assert store.get(OWNER).step == WizardStep.ADD_SONGS


@pytest.mark.asyncio
async def test_expired_session(coordinator, store, clock):
    await go_to_location(coordinator)
    clock.advance(minutes=11)

    assert not await coordinator.handle(callback(ChooseLocation(0)))
    assert store.get(OWNER) is None


@pytest.mark.asyncio
async def test_expiry_measures_inactivity(coordinator, store, clock):
    await start_wizard(coordinator)
    clock.advance(minutes=6)
    await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))
    clock.advance(minutes=6)

    assert await coordinator.handle(callback(ChooseDate(date(2025, 1, 25))))
    assert store.get(OWNER).step == WizardStep.SELECT_TIME


@pytest.mark.asyncio
async def test_new_dialog_replaces_active_one(coordinator, store):
    await go_to_songs(coordinator)

    await coordinator.start(text("/songs"), DialogKind.SONG_ADD, SongAddPayload())

    assert coordinator.active_kind(OWNER) == DialogKind.SONG_ADD
    assert not await coordinator.handle(callback(ToggleSong(3)))


@pytest.mark.asyncio
async def test_unknown_token_with_session(coordinator, store, renderer, texts):
    await go_to_songs(coordinator)

    assert await coordinator.handle(raw_callback("wz_song|abc"))

    assert store.get(OWNER).step == WizardStep.ADD_SONGS
    assert renderer.last.notice == texts.get("miss_unknown_button", "en")


@pytest.mark.asyncio
async def test_executor_error_leaves_session_untouched(
    coordinator, store, repository, renderer, texts, monkeypatch
):
    await go_to_songs(coordinator)
    await coordinator.handle(callback(ToggleSong(3)))
    before = store.get(OWNER)

    def broken(song_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(repository, "get_song", broken)
    await coordinator.handle(callback(ToggleSong(5)))

    assert store.get(OWNER) is before
    assert before.payload.song_ids == [3]
    assert renderer.last.notice == texts.get("error_generic", "en")


@pytest.mark.asyncio
async def test_renderer_failure_does_not_lose_state(store, dialogs, texts):
    class BrokenRenderer(RecordingRenderer):
        async def render(self, event, directive):
            raise ConnectionError("telegram is down")

    coordinator = DialogCoordinator(store, dialogs, BrokenRenderer(), texts)
    await start_wizard(coordinator)

    assert await coordinator.handle(callback(ChooseTemplate(EventTemplate.SUNDAY)))
    assert store.get(OWNER).step == WizardStep.SELECT_DATE


class BrokenStep(StrEnum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"


class BrokenDialog(Dialog):
    kind = DialogKind.SONG_ADD
    entry_command = "songs"

    def build_graph(self):
        return StepGraph(
            kind=self.kind,
            start=BrokenStep.FIRST,
            terminal=BrokenStep.THIRD,
            steps={
                BrokenStep.FIRST: StepSpec(
                    Modality.TEXT,
                    self._jump,
                    targets=frozenset({BrokenStep.SECOND}),
                    allow_back=False,
                ),
                BrokenStep.SECOND: StepSpec(
                    Modality.TEXT,
                    self._jump,
                    targets=frozenset({BrokenStep.THIRD}),
                ),
                BrokenStep.THIRD: StepSpec(Modality.TEXT, self._jump),
            },
        )

    def new_payload(self):
        return SongAddPayload()

    async def _jump(self, ctx):
        return advance(BrokenStep.THIRD)

    def render(self, session, language):
        return OutboundDirective(text=str(session.step))


@pytest.mark.asyncio
async def test_undeclared_transition_is_rejected(store, repository, renderer, texts):
    coordinator = DialogCoordinator(
        store, [BrokenDialog(repository, texts)], renderer, texts
    )
    await coordinator.start(text("/songs"), DialogKind.SONG_ADD)

    await coordinator.handle(text("anything"))

    assert store.get(OWNER).step == BrokenStep.FIRST
    assert renderer.last.notice == texts.get("error_generic", "en")


class SlowRenderer(RecordingRenderer):
    def __init__(self):
        super().__init__()
        self.trace: list[str] = []

    async def render(self, event, directive):
        self.trace.append("start")
        await asyncio.sleep(0.01)
        self.trace.append("end")
        await super().render(event, directive)


@pytest.mark.asyncio
async def test_events_of_one_owner_are_serialized(store, dialogs, texts):
    renderer = SlowRenderer()
    coordinator = DialogCoordinator(store, dialogs, renderer, texts)
    await go_to_songs(coordinator)
    renderer.trace.clear()

    await asyncio.gather(
        coordinator.handle(callback(ToggleSong(3))),
        coordinator.handle(callback(ToggleSong(5))),
        coordinator.handle(callback(ToggleSong(3))),
    )

    assert renderer.trace == ["start", "end"] * 3
    assert store.get(OWNER).payload.song_ids == [5]


@pytest.mark.asyncio
async def test_owners_are_independent(coordinator, store):
    await go_to_songs(coordinator)
    await coordinator.start(text("/newevent", OTHER_OWNER), DialogKind.EVENT_WIZARD)

    await coordinator.handle(callback(Cancel(DialogKind.EVENT_WIZARD), OTHER_OWNER))

    assert store.get(OTHER_OWNER) is None
    assert store.get(OWNER).step == WizardStep.ADD_SONGS


@pytest.mark.asyncio
async def test_owner_locks_are_released():
    locks = OwnerLocks()

    async with locks.hold(OWNER):
        assert len(locks) == 1

    assert len(locks) == 0
