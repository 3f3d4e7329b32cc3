from datetime import date

import pytest
from support import FakeClock, InMemoryStorage, RecordingRenderer

from planner.data.models.role import Role
from planner.data.models.song import Song
from planner.data.repository import DEFAULT_ROLES, Repository
from planner.dialog.coordinator import DialogCoordinator
from planner.dialog.dialogs.chord_entry import ChordEntryDialog
from planner.dialog.dialogs.event_wizard import EventWizardDialog
from planner.dialog.dialogs.role_select import RoleSelectDialog
from planner.dialog.dialogs.song_add import SongAddDialog
from planner.dialog.dialogs.song_edit import SongEditDialog
from planner.dialog.session_store import SessionStore
from planner.localization import Localization

TODAY = date(2025, 1, 20)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def repository(storage):
    repository = Repository(storage)
    for i in range(1, 9):
        repository.db.songs.append(Song(id=i, title=f"Song {i}"))
    repository.db.roles = [
        Role(i, name, icon, i, description)
        for i, (name, icon, description) in enumerate(DEFAULT_ROLES, 1)
    ]
    return repository


@pytest.fixture
def texts():
    return Localization()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def wizard(repository, texts):
    return EventWizardDialog(repository, texts, today=lambda: TODAY)


@pytest.fixture
def dialogs(wizard, repository, texts):
    return [
        wizard,
        SongEditDialog(repository, texts),
        SongAddDialog(repository, texts),
        ChordEntryDialog(repository, texts),
        RoleSelectDialog(repository, texts),
    ]


@pytest.fixture
def coordinator(store, dialogs, renderer, texts):
    return DialogCoordinator(store, dialogs, renderer, texts)
