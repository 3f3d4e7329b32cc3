import pytest
from support import OTHER_OWNER, OWNER

from planner.dialog.dialogs.event_wizard import WizardStep
from planner.dialog.dialogs.song_add import SongAddStep
from planner.dialog.session import (
    DialogKind,
    EventWizardPayload,
    Session,
    SongAddPayload,
)


def test_set_creates_session(store, clock):
    session = store.set(
        OWNER, DialogKind.EVENT_WIZARD, EventWizardPayload(), WizardStep.SELECT_TEMPLATE
    )

    assert store.get(OWNER) is session
    assert session.created_at == clock.now
    assert session.history == []


def test_second_set_replaces_session_of_other_kind(store):
    store.set(OWNER, DialogKind.EVENT_WIZARD, EventWizardPayload(), WizardStep.SELECT_DATE)
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)

    session = store.get(OWNER)
    assert session.kind == DialogKind.SONG_ADD
    assert session.step == SongAddStep.ENTER_SONG
    assert len(store) == 1


def test_session_lives_for_ttl(store, clock):
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)

    clock.advance(minutes=10)

    assert store.get(OWNER) is not None


def test_expired_session_is_evicted_on_get(store, clock):
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)

    clock.advance(minutes=10, seconds=1)

    assert store.get(OWNER) is None
    assert len(store) == 0


def test_set_restarts_expiry_window(store, clock):
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)
    clock.advance(minutes=8)
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)
    clock.advance(minutes=8)

    assert store.get(OWNER) is not None


def test_clear(store):
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)

    store.clear(OWNER)
    store.clear(OWNER)

    assert store.get(OWNER) is None


def test_sweep_removes_only_expired(store, clock):
    store.set(OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)
    clock.advance(minutes=6)
    store.set(OTHER_OWNER, DialogKind.SONG_ADD, SongAddPayload(), SongAddStep.ENTER_SONG)
    clock.advance(minutes=6)

    assert store.sweep() == 1
    assert store.get(OWNER) is None
    assert store.get(OTHER_OWNER) is not None


def test_payload_must_match_kind(clock):
    with pytest.raises(TypeError):
        Session(
            owner_id=OWNER,
            kind=DialogKind.EVENT_WIZARD,
            step=WizardStep.SELECT_TEMPLATE,
            payload=SongAddPayload(),
            created_at=clock.now,
        )


def test_copy_does_not_share_payload(store):
    session = store.set(
        OWNER, DialogKind.EVENT_WIZARD, EventWizardPayload(), WizardStep.ADD_SONGS
    )

    copy = session.copy()
    copy.payload.song_ids.append(3)

    assert session.payload.song_ids == []
