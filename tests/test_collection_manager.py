"""Tests for collection lifecycle: initialization, add, rename, delete, activate."""
import threading

import pytest

from notewell.exceptions import CollectionError, ErrorCode
from notewell.models.schema import (
    UNFILED_NOTES_NOTEBOOK_ID,
    Category,
    LifecycleState,
    Operation,
)
from notewell.services.collection_manager import CollectionManager
from tests.fakes import SignalRecorder


class OpenRecorder:
    """open_collection/close_collection callbacks that record their calls."""

    def __init__(self):
        self.opened = []
        self.closed = 0

    def open(self, collection, directory):
        self.opened.append((collection, directory))

    def close(self):
        self.closed += 1


@pytest.fixture
def recorder():
    return OpenRecorder()


@pytest.fixture
def manager(settings, recorder):
    return CollectionManager(settings, recorder.open, recorder.close)


class TestInitialize:
    def test_creates_default_collection(self, manager, recorder, storage_root, test_config):
        assert manager.initialize() == test_config.default_collection
        assert (storage_root / test_config.default_collection).is_dir()
        assert manager.get_active_collection() == test_config.default_collection
        assert manager.state == LifecycleState.INITIALIZED
        assert recorder.opened == [(test_config.default_collection, storage_root / test_config.default_collection)]

    def test_falls_back_to_first_existing_collection(self, manager, settings, storage_root):
        (storage_root / "Beta").mkdir()
        (storage_root / "Alpha").mkdir()
        settings.active_collection = "Missing"
        assert manager.initialize() == "Alpha"
        assert settings.active_collection == "Alpha"

    def test_active_collection_outside_root_is_rejected(self, manager, settings, storage_root, tmp_path):
        (tmp_path / "Outside").mkdir()
        (storage_root / "Inside").mkdir()
        settings.active_collection = "../Outside"
        assert manager.initialize() == "Inside"

    def test_keeps_valid_active_collection(self, manager, settings, storage_root):
        (storage_root / "Alpha").mkdir()
        (storage_root / "Work").mkdir()
        settings.active_collection = "Work"
        assert manager.initialize() == "Work"

    def test_second_call_is_noop(self, manager, recorder):
        manager.initialize()
        manager.initialize()
        assert len(recorder.opened) == 1

    def test_missing_storage_directory(self, test_config, recorder):
        from notewell.storage.settings_store import SettingsStore

        manager = CollectionManager(SettingsStore(test_config.settings_path), recorder.open)
        with pytest.raises(CollectionError) as exc_info:
            manager.initialize()
        assert exc_info.value.code == ErrorCode.STORAGE_DIRECTORY_MISSING
        assert manager.state == LifecycleState.UNINITIALIZED

    def test_failed_open_allows_retry(self, settings):
        attempts = []

        def flaky_open(collection, directory):
            attempts.append(collection)
            if len(attempts) == 1:
                raise OSError("disk unavailable")

        manager = CollectionManager(settings, flaky_open)
        with pytest.raises(OSError):
            manager.initialize()
        assert manager.state == LifecycleState.UNINITIALIZED

        manager.initialize()
        assert manager.state == LifecycleState.INITIALIZED
        assert len(attempts) == 2

    def test_concurrent_callers_share_one_initialization(self, settings):
        entered = threading.Event()
        release = threading.Event()
        opened = []

        def slow_open(collection, directory):
            opened.append(collection)
            entered.set()
            release.wait(5)

        manager = CollectionManager(settings, slow_open)
        results = []
        first = threading.Thread(target=lambda: results.append(manager.initialize()))
        first.start()
        assert entered.wait(5)

        second = threading.Thread(target=lambda: results.append(manager.initialize()))
        second.start()
        release.set()
        first.join(5)
        second.join(5)

        assert len(opened) == 1
        assert len(results) == 2
        assert results[0] == results[1]

    def test_change_during_initialization_marks_it_stale(self, settings, storage_root):
        (storage_root / "Other").mkdir()
        manager = None

        def open_and_switch(collection, directory):
            manager.activate_collection("Other")

        manager = CollectionManager(settings, open_and_switch)
        manager.initialize()
        assert manager.state == LifecycleState.REINITIALIZING


class TestAddCollection:
    def test_add_activates_and_invalidates(self, manager, settings, storage_root):
        manager.initialize()
        changes = SignalRecorder(manager.collections_changed)

        assert manager.add_collection("Work") == Operation.SUCCESS
        assert (storage_root / "Work").is_dir()
        assert settings.active_collection == "Work"
        assert manager.state == LifecycleState.REINITIALIZING
        assert changes.count == 1

    def test_duplicate_ignores_case(self, manager):
        assert manager.add_collection("Work") == Operation.SUCCESS
        assert manager.add_collection("WORK") == Operation.DUPLICATE

    def test_name_is_sanitized(self, manager, storage_root):
        assert manager.add_collection('My: "Notes"?') == Operation.SUCCESS
        assert (storage_root / "My Notes").is_dir()

    @pytest.mark.parametrize("name", ["", "..", "///"])
    def test_unusable_names(self, manager, name):
        assert manager.add_collection(name) == Operation.ERROR

    def test_reinitializes_on_next_call(self, manager, recorder):
        manager.initialize()
        manager.add_collection("Work")
        assert manager.initialize() == "Work"
        assert [c for c, _ in recorder.opened][-1] == "Work"


class TestRenameCollection:
    def test_same_name_ignoring_case_is_aborted(self, manager):
        manager.add_collection("Work")
        assert manager.rename_collection("Work", "work") == Operation.ABORTED

    def test_existing_target_is_duplicate(self, manager):
        manager.add_collection("Work")
        manager.add_collection("Home")
        assert manager.rename_collection("Work", "home") == Operation.DUPLICATE

    def test_moves_directory_and_database(self, manager, recorder, settings, storage_root):
        manager.add_collection("Work")
        (storage_root / "Work" / "Work.db").write_bytes(b"db")
        (storage_root / "Work" / "Work.db-wal").write_bytes(b"wal")
        (storage_root / "Work" / "n1.content").write_text("", encoding="utf-8")

        assert manager.rename_collection("Work", "Office") == Operation.SUCCESS

        assert not (storage_root / "Work").exists()
        assert (storage_root / "Office" / "Office.db").read_bytes() == b"db"
        assert (storage_root / "Office" / "Office.db-wal").exists()
        assert (storage_root / "Office" / "n1.content").exists()
        assert settings.active_collection == "Office"
        assert recorder.closed == 1

    def test_failed_directory_move_restores_database(self, manager, recorder, settings, storage_root):
        manager.add_collection("Work")
        manager.initialize()
        (storage_root / "Work" / "Work.db").write_bytes(b"db")
        (storage_root / "Work" / "Work.db-wal").write_bytes(b"wal")
        # A plain file where the renamed directory should go
        (storage_root / "Target").write_text("", encoding="utf-8")

        assert manager.rename_collection("Work", "Target") == Operation.ERROR

        assert (storage_root / "Work" / "Work.db").read_bytes() == b"db"
        assert (storage_root / "Work" / "Work.db-wal").read_bytes() == b"wal"
        assert not (storage_root / "Work" / "Target.db").exists()
        assert settings.active_collection == "Work"
        assert recorder.closed == 1
        assert manager.state == LifecycleState.REINITIALIZING

        assert manager.initialize() == "Work"
        assert recorder.opened[-1] == ("Work", storage_root / "Work")

    def test_failed_rename_keeps_notes(self, collection_service, storage_root):
        note_id = collection_service.add_note("Kept", "").note_id
        collection_service.set_note_content(note_id, "rich")
        active = collection_service.get_active_collection()
        (storage_root / "Target").write_text("", encoding="utf-8")

        assert collection_service.rename_collection(active, "Target") == Operation.ERROR

        notes = collection_service.get_notes(UNFILED_NOTES_NOTEBOOK_ID, Category.ALL)
        assert [n.id for n in notes] == [note_id]
        assert collection_service.get_note_content(note_id) == "rich"

    def test_missing_source_is_error(self, manager):
        assert manager.rename_collection("Ghost", "Spirit") == Operation.ERROR


class TestDeleteCollection:
    def test_delete_reassigns_active_collection(self, manager, settings, storage_root):
        manager.add_collection("Alpha")
        manager.add_collection("Beta")
        changes = SignalRecorder(manager.collections_changed)

        assert manager.delete_collection("Beta") == Operation.SUCCESS
        assert not (storage_root / "Beta").exists()
        assert settings.active_collection == "Alpha"
        assert changes.count == 1

    def test_delete_last_collection_clears_active(self, manager, settings):
        manager.add_collection("Only")
        manager.delete_collection("Only")
        assert settings.active_collection == ""

    def test_failed_removal_still_signals(self, manager, settings):
        manager.add_collection("Alpha")
        changes = SignalRecorder(manager.collections_changed)

        assert manager.delete_collection("Missing") == Operation.ERROR
        assert settings.active_collection == "Alpha"
        assert changes.count == 1

    def test_refuses_paths_outside_root(self, manager, tmp_path):
        (tmp_path / "victim").mkdir()
        assert manager.delete_collection("../victim") == Operation.ERROR
        assert (tmp_path / "victim").is_dir()


class TestStorageDirectory:
    def test_set_storage_directory_creates_collections_folder(self, manager, settings, tmp_path, test_config):
        parent = tmp_path / "Documents"
        assert manager.set_storage_directory(parent) is True
        assert settings.storage_directory == str(parent / test_config.collections_directory)
        assert manager.has_storage_directory()

    def test_activate_does_not_touch_disk(self, manager, settings, storage_root):
        manager.initialize()
        manager.activate_collection("Elsewhere")
        assert settings.active_collection == "Elsewhere"
        assert not (storage_root / "Elsewhere").exists()
        assert manager.state == LifecycleState.REINITIALIZING

    def test_get_collections_sorted(self, manager, storage_root):
        for name in ["b", "a", "c"]:
            (storage_root / name).mkdir()
        (storage_root / "file.txt").write_text("", encoding="utf-8")
        assert manager.get_collections() == ["a", "b", "c"]
