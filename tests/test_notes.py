"""Tests for note operations of the collection service."""
from unittest.mock import patch

import pytest

from notewell.exceptions import StorageError
from notewell.models.schema import (
    ALL_NOTES_NOTEBOOK_ID,
    UNFILED_NOTES_NOTEBOOK_ID,
    Category,
    NoteOperationResult,
    Operation,
)
from notewell.services.relay import (
    DeleteNote,
    Event,
    GetNoteDetails,
    GetNotebooks,
    GetNoteText,
    GetNoteTitle,
    GetSearchText,
    SetNotebook,
    SetNoteMark,
    SetNoteOpen,
    SetNoteText,
    SetNoteTitle,
)
from tests.fakes import SignalRecorder


class TestAddNote:
    def test_title_is_made_unique_and_content_file_created(self, collection_service):
        first = collection_service.add_note("New note", ALL_NOTES_NOTEBOOK_ID)
        second = collection_service.add_note("New note", ALL_NOTES_NOTEBOOK_ID)

        assert first.operation == Operation.SUCCESS
        assert first.note_title == "New note 1"
        assert second.note_title == "New note 2"
        stored = collection_service.get_note(first.note_id)
        assert stored.title == "New note 1"
        assert stored.is_unfiled
        path = collection_service.content_store.content_path(first.note_id)
        assert path.exists()
        assert path.read_text(encoding="utf-8") == ""

    def test_counter_fills_first_gap(self, collection_service):
        for _ in range(3):
            collection_service.add_note("Idea", "")
        middle = collection_service.data_store.get_note_by_title("Idea 2")
        collection_service.delete_notes([middle.id])
        assert collection_service.add_note("Idea", "").note_title == "Idea 2"

    def test_default_notebook_ids_mean_unfiled(self, collection_service):
        note_id = collection_service.add_note("N", UNFILED_NOTES_NOTEBOOK_ID).note_id
        assert collection_service.get_note(note_id).notebook_id == ""

    def test_files_into_notebook(self, collection_service):
        collection_service.add_notebook("Work")
        notebook = collection_service.data_store.get_notebook_by_name("Work")
        note_id = collection_service.add_note("N", notebook.id).note_id
        assert collection_service.get_note(note_id).notebook_id == notebook.id

    def test_failed_content_write_rolls_back_row(self, collection_service):
        edited = SignalRecorder(collection_service.note_edited)
        with patch.object(
            collection_service.content_store,
            "create_empty",
            side_effect=StorageError("disk full"),
        ):
            result = collection_service.add_note("Doomed", "")

        assert result.operation == Operation.ERROR
        assert collection_service.data_store.get_notes() == []
        assert edited.count == 0


class TestDeleteNotes:
    def test_missing_id_does_not_block_others(self, collection_service):
        note_id = collection_service.add_note("Keep going", "").note_id
        content_path = collection_service.content_store.content_path(note_id)
        state_path = collection_service.content_store.state_path(note_id)
        state_path.write_text("{}", encoding="utf-8")

        result = collection_service.delete_notes([note_id, "20240101T000000000000000000"])

        assert result.operation == Operation.ERROR
        assert result.succeeded == 1
        assert collection_service.get_note(note_id) is None
        assert not content_path.exists()
        assert not state_path.exists()

    def test_metadata_deleted_before_content(self, collection_service):
        note_id = collection_service.add_note("Orphan to be", "").note_id
        with patch.object(
            collection_service.content_store, "delete", side_effect=StorageError("locked")
        ):
            result = collection_service.delete_notes([note_id])

        assert result.operation == Operation.ERROR
        assert collection_service.get_note(note_id) is None
        assert collection_service.content_store.exists(note_id)

    def test_open_note_window_is_closed(self, collection_service, window):
        note_id = collection_service.add_note("Open", "").note_id
        collection_service.set_note_open(note_id, True)

        collection_service.delete_notes([note_id])

        assert [m.note_id for m in window.of(Event.CLOSE_NOTE)] == [note_id]
        assert not collection_service.note_is_open(note_id)


class TestNoteTitle:
    def test_same_title_is_aborted_without_write(self, collection_service):
        result = collection_service.add_note("Title", "")
        with patch.object(collection_service.data_store, "update_note") as update:
            outcome = collection_service.rename_note(result.note_id, "Title 1", "Title 1")
        assert outcome.operation == Operation.ABORTED
        update.assert_not_called()

    def test_rename_to_taken_title_is_duplicate(self, collection_service):
        a = collection_service.add_note("Doc", "")
        collection_service.add_note("Doc", "")

        outcome = collection_service.rename_note(a.note_id, "Doc 1", "Doc 2")

        assert outcome.operation == Operation.DUPLICATE
        assert collection_service.get_note(a.note_id).title == "Doc 1"

    def test_rename_blank(self, collection_service):
        a = collection_service.add_note("Doc", "")
        assert collection_service.rename_note(a.note_id, "Doc 1", "  ").operation == Operation.BLANK

    def test_set_title_through_relay_uniquifies(self, collection_service, relay):
        a = collection_service.add_note("Doc", "")
        collection_service.add_note("Doc", "")
        edited = SignalRecorder(collection_service.note_edited)

        result = relay.request(SetNoteTitle(a.note_id, "Doc 1", "  Doc 2  "))

        assert isinstance(result, NoteOperationResult)
        assert result.operation == Operation.SUCCESS
        assert result.note_title == "Doc 2 (1)"
        assert collection_service.get_note(a.note_id).title == "Doc 2 (1)"
        assert edited.count == 1

    def test_set_title_to_own_title_after_trim_is_aborted(self, collection_service, relay):
        a = collection_service.add_note("Doc", "")
        result = relay.request(SetNoteTitle(a.note_id, "Doc 1", " Doc 1 "))
        assert result.operation == Operation.ABORTED

    def test_set_title_blank(self, collection_service, relay):
        a = collection_service.add_note("Doc", "")
        assert relay.request(SetNoteTitle(a.note_id, "Doc 1", "   ")).operation == Operation.BLANK

    def test_get_note_title(self, collection_service, relay):
        a = collection_service.add_note("Doc", "")
        assert relay.request(GetNoteTitle(a.note_id)) == "Doc 1"
        assert relay.request(GetNoteTitle("20240101T000000000000000000")) is None


class TestNoteText:
    def test_set_text_updates_row_only(self, collection_service, relay):
        note_id = collection_service.add_note("Doc", "").note_id
        assert relay.request(SetNoteText(note_id, "plain text")) == Operation.SUCCESS
        assert relay.request(GetNoteText(note_id)) == "plain text"
        assert collection_service.content_store.read(note_id) == ""

    def test_set_text_of_missing_note(self, collection_service, relay):
        assert relay.request(SetNoteText("20240101T000000000000000000", "x")) == Operation.ERROR


class TestMarkAndNotebook:
    def test_mark_broadcasts(self, collection_service, relay, window):
        note_id = collection_service.add_note("Doc", "").note_id
        marks = SignalRecorder(collection_service.note_mark_changed)

        relay.emit(SetNoteMark(note_id, True))

        assert collection_service.get_note(note_id).is_marked
        (mark_result,) = marks.last
        assert mark_result.marked_notes_count == 1
        (changed,) = window.of(Event.NOTE_MARK_CHANGED)
        assert (changed.note_id, changed.is_marked) == (note_id, True)

    def test_set_notebook_moves_and_skips(self, collection_service, relay, window):
        collection_service.add_notebook("Work")
        work = collection_service.data_store.get_notebook_by_name("Work")
        a = collection_service.add_note("A", "").note_id
        b = collection_service.add_note("B", work.id).note_id

        result = relay.request(SetNotebook(work.id, (a, b)))

        assert result.operation == Operation.SUCCESS
        assert (result.succeeded, result.skipped) == (1, 1)
        assert collection_service.get_note(a).notebook_id == work.id
        changed = window.of(Event.NOTEBOOK_CHANGED)
        assert [(m.note_id, m.notebook_name) for m in changed] == [(a, "Work")]

    def test_all_notes_target_is_skipped(self, collection_service):
        a = collection_service.add_note("A", "").note_id
        result = collection_service.set_notebook(ALL_NOTES_NOTEBOOK_ID, [a])
        assert result.skipped == 1
        assert result.succeeded == 0

    def test_unfiled_target_clears_notebook(self, collection_service, window):
        collection_service.add_notebook("Work")
        work = collection_service.data_store.get_notebook_by_name("Work")
        a = collection_service.add_note("A", work.id).note_id

        result = collection_service.set_notebook(UNFILED_NOTES_NOTEBOOK_ID, [a])

        assert result.succeeded == 1
        assert collection_service.get_note(a).is_unfiled
        (changed,) = window.of(Event.NOTEBOOK_CHANGED)
        assert changed.notebook_name == "Unfiled Notes"

    def test_failure_does_not_halt_loop(self, collection_service):
        collection_service.add_notebook("Work")
        work = collection_service.data_store.get_notebook_by_name("Work")
        a = collection_service.add_note("A", "").note_id

        result = collection_service.set_notebook(work.id, ["20240101T000000000000000000", a])

        assert result.operation == Operation.ERROR
        assert result.succeeded == 1


class TestRelayHandlers:
    def test_note_details(self, collection_service, relay):
        note_id = collection_service.add_note("Doc", "").note_id
        details = relay.request(GetNoteDetails(note_id))
        assert (details.note_title, details.notebook_name, details.is_marked) == (
            "Doc 1",
            "Unfiled Notes",
            False,
        )

    def test_notebooks_exclude_all_notes(self, collection_service, relay):
        collection_service.add_notebook("Work")
        notebooks = relay.request(GetNotebooks())
        assert [nb.name for nb in notebooks] == ["Unfiled Notes", "Work"]

    def test_delete_note_notification(self, collection_service, relay):
        note_id = collection_service.add_note("Doc", "").note_id
        relay.emit(DeleteNote(note_id))
        assert collection_service.get_note(note_id) is None

    def test_search_text(self, collection_service, relay):
        collection_service.search_service.search_text = "needle"
        assert relay.request(GetSearchText()) == "needle"

    def test_open_note_emits_window_request_once(self, collection_service, relay, window):
        note_id = collection_service.add_note("Doc", "").note_id
        relay.emit(SetNoteOpen(note_id, True))
        relay.emit(SetNoteOpen(note_id, True))

        (opened,) = window.of(Event.OPEN_NOTE_WINDOW)
        assert opened.note_id == note_id
        assert opened.note_path == str(collection_service.manager.collection_directory())
        assert collection_service.has_open_notes()

        relay.emit(SetNoteOpen(note_id, False))
        assert not collection_service.has_open_notes()

    def test_handlers_registered_once_after_reinitialize(self, collection_service, relay):
        collection_service.add_collection("Second")
        collection_service.initialize()
        assert relay.listener_count(Event.GET_NOTE_TITLE) == 1

    def test_switching_collection_isolates_notes(self, collection_service):
        collection_service.add_note("First collection note", "")
        collection_service.add_collection("Second")

        listed = collection_service.get_notes(ALL_NOTES_NOTEBOOK_ID, Category.ALL)
        assert listed == []
        assert collection_service.get_active_collection() == "Second"


@pytest.mark.parametrize("category", list(Category))
def test_get_notes_accepts_every_category(collection_service, category):
    collection_service.add_note("Doc", "")
    notes = collection_service.get_notes(ALL_NOTES_NOTEBOOK_ID, category)
    assert isinstance(notes, list)
