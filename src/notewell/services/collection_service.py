"""Note and notebook orchestration on top of the metadata and content stores."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from notewell.exceptions import NoteNotFoundError
from notewell.i18n import Translator
from notewell.models.schema import (
    ALL_NOTES_NOTEBOOK_ID,
    DEFAULT_NOTEBOOK_IDS,
    UNFILED_NOTES_NOTEBOOK_ID,
    BatchResult,
    Category,
    Note,
    Notebook,
    NoteDetailsResult,
    NoteExport,
    NoteMarkResult,
    NoteOperationResult,
    NotesCountResult,
    Operation,
)
from notewell.observability import traced
from notewell.services.categorization import format_exact_date, format_note_date
from notewell.services.collection_manager import CollectionManager
from notewell.services.legacy_importer import LegacyImporter
from notewell.services.relay import (
    CloseNote,
    DeleteNote,
    Event,
    EventRelay,
    GetNoteDetails,
    GetNotebooks,
    GetNoteText,
    GetNoteTitle,
    GetSearchText,
    NotebookChanged,
    NoteMarkChanged,
    OpenNoteWindow,
    SetNotebook,
    SetNoteMark,
    SetNoteOpen,
    SetNoteText,
    SetNoteTitle,
    Signal,
)
from notewell.services.search_service import SearchService
from notewell.services.titles import unique_new_note_title, unique_note_title
from notewell.storage.content_store import ContentFileStore
from notewell.storage.data_store import DataStore
from notewell.storage.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class CollectionService:
    """Keeps notebooks, note rows and note content files consistent.

    Every mutating call returns an Operation (or a result carrying one) and
    never raises: underlying failures are logged and reported as ERROR.

    Ordering between the two stores:
    - creating a note inserts the row first, then writes the content file;
      if the file write fails the row is removed again.
    - deleting a note removes the row first, then the content file and the
      window state file. A crash in between leaves an orphan content file,
      which reconcile() removes on the next initialization.

    The relay handlers are (re)registered each time a collection is opened,
    so only an initialized collection answers window requests.
    """

    def __init__(
        self,
        settings: SettingsStore,
        relay: EventRelay,
        translator: Optional[Translator] = None,
        search_service: Optional[SearchService] = None,
        data_store: Optional[DataStore] = None,
    ):
        self.settings = settings
        self.relay = relay
        self.translator = translator or Translator()
        self.search_service = search_service or SearchService()
        self.data_store = data_store or DataStore()
        self.content_store: Optional[ContentFileStore] = None
        self.manager = CollectionManager(
            settings,
            open_collection=self._open_collection,
            close_collection=self._close_collection,
        )
        self._open_note_ids: List[str] = []

        self.collections_changed = self.manager.collections_changed
        self.notebook_edited = Signal("notebook_edited")
        self.notebook_deleted = Signal("notebook_deleted")
        self.note_edited = Signal("note_edited")
        self.note_deleted = Signal("note_deleted")
        self.notes_count_changed = Signal("notes_count_changed")
        self.note_mark_changed = Signal("note_mark_changed")
        self.note_notebook_changed = Signal("note_notebook_changed")

        self._handlers = [
            (Event.GET_NOTE_TITLE, self._on_get_note_title),
            (Event.SET_NOTE_TITLE, self._on_set_note_title),
            (Event.GET_NOTE_TEXT, self._on_get_note_text),
            (Event.SET_NOTE_TEXT, self._on_set_note_text),
            (Event.GET_NOTE_DETAILS, self._on_get_note_details),
            (Event.GET_NOTEBOOKS, self._on_get_notebooks),
            (Event.SET_NOTE_OPEN, self._on_set_note_open),
            (Event.SET_NOTE_MARK, self._on_set_note_mark),
            (Event.SET_NOTEBOOK, self._on_set_notebook),
            (Event.DELETE_NOTE, self._on_delete_note),
            (Event.GET_SEARCH_TEXT, self._on_get_search_text),
        ]

    # =========================================================================
    # Collections
    # =========================================================================

    def initialize(self) -> str:
        """Open the active collection if needed. Returns its name."""
        return self.manager.initialize()

    @property
    def is_initialized(self) -> bool:
        return self.manager.is_initialized

    def has_storage_directory(self) -> bool:
        return self.manager.has_storage_directory()

    def set_storage_directory(self, parent_directory: Path) -> bool:
        return self.manager.set_storage_directory(parent_directory)

    def get_collections(self) -> List[str]:
        return self.manager.get_collections()

    def get_active_collection(self) -> str:
        return self.manager.get_active_collection()

    def add_collection(self, collection: str) -> Operation:
        return self.manager.add_collection(collection)

    def rename_collection(self, initial_collection: str, final_collection: str) -> Operation:
        return self.manager.rename_collection(initial_collection, final_collection)

    def delete_collection(self, collection: str) -> Operation:
        return self.manager.delete_collection(collection)

    def activate_collection(self, collection: str) -> None:
        self.manager.activate_collection(collection)

    def _open_collection(self, collection: str, directory: Path) -> None:
        self.data_store.initialize(directory / f"{collection}.db")
        self.content_store = ContentFileStore(directory)
        self._register_handlers()
        self.reconcile()

    def _close_collection(self) -> None:
        self._unregister_handlers()
        self.data_store.close()

    def _register_handlers(self) -> None:
        # Remove first so that reopening a collection never registers twice
        self._unregister_handlers()
        for event, handler in self._handlers:
            self.relay.on(event, handler)

    def _unregister_handlers(self) -> None:
        for event, handler in self._handlers:
            self.relay.remove_listener(event, handler)

    @traced("reconcile")
    def reconcile(self) -> Dict[str, int]:
        """Repair the pairing between note rows and content files.

        Content files without a row are deleted. Rows without a content file
        get an empty one. Nothing is deleted when the database was just
        created empty next to existing content files: the content is more
        likely to belong to a database that went missing than to be stale.
        """
        note_ids = set(self.data_store.get_note_ids())
        content_ids = set(self.content_store.content_ids())
        orphan_ids = content_ids - note_ids
        removed = 0
        created = 0

        if orphan_ids and not note_ids and self.data_store.created_new:
            logger.warning(
                f"Keeping {len(orphan_ids)} content files without notes: the collection "
                f"database {self.data_store.database_file} was just created"
            )
            orphan_ids = set()

        for orphan_id in sorted(orphan_ids):
            try:
                self.content_store.delete(orphan_id)
                removed += 1
            except Exception as e:
                logger.error(f"Could not delete orphaned content file of {orphan_id}. Cause: {e}")

        for note_id in sorted(note_ids - content_ids):
            try:
                self.content_store.create_empty(note_id)
                created += 1
            except Exception as e:
                logger.error(f"Could not recreate content file of {note_id}. Cause: {e}")

        if removed or created:
            logger.warning(
                f"Reconciled collection: removed {removed} orphaned content files, "
                f"recreated {created} missing ones"
            )
        return {"orphans_removed": removed, "contents_created": created}

    # =========================================================================
    # Notebooks
    # =========================================================================

    def get_notebooks(self, include_all_notes: bool) -> List[Notebook]:
        """Persisted notebooks, preceded by the synthetic default ones."""
        notebooks: List[Notebook] = []
        if include_all_notes:
            notebooks.append(self._all_notes_notebook())
        notebooks.append(self._unfiled_notes_notebook())

        try:
            self.initialize()
            notebooks.extend(self.data_store.get_notebooks())
        except Exception as e:
            logger.error(f"Could not get notebooks. Cause: {e}")
        return notebooks

    def get_notebook_name(self, notebook_id: str) -> str:
        if notebook_id == ALL_NOTES_NOTEBOOK_ID:
            return self.translator.get("MainPage.AllNotes")
        if not notebook_id or notebook_id == UNFILED_NOTES_NOTEBOOK_ID:
            return self.translator.get("MainPage.UnfiledNotes")
        notebook = self.data_store.get_notebook_by_id(notebook_id)
        return notebook.name if notebook else self.translator.get("MainPage.UnfiledNotes")

    @traced("add_notebook")
    def add_notebook(self, notebook_name: str) -> Operation:
        notebook_name = (notebook_name or "").strip()
        if not notebook_name:
            logger.error("Notebook name is empty")
            return Operation.ERROR

        try:
            self.initialize()
            if self._notebook_exists(notebook_name):
                logger.info(f"Not adding notebook '{notebook_name}' because it already exists")
                return Operation.DUPLICATE
            self.data_store.add_notebook(notebook_name)
            logger.info(f"Added notebook '{notebook_name}'")
        except Exception as e:
            logger.error(f"Could not add notebook '{notebook_name}'. Cause: {e}")
            return Operation.ERROR

        self.notebook_edited.emit()
        return Operation.SUCCESS

    @traced("rename_notebook")
    def rename_notebook(self, notebook_id: str, new_notebook_name: str) -> Operation:
        """Rename a notebook.

        Renaming to a name held by another notebook (ignoring case) is a
        DUPLICATE. Renaming to the exact current name is ABORTED; changing
        only the case of the current name is allowed.
        """
        new_notebook_name = (new_notebook_name or "").strip()
        if not new_notebook_name:
            logger.error("New notebook name is empty")
            return Operation.ERROR

        try:
            self.initialize()
            notebook = self.data_store.get_notebook_by_id(notebook_id)
            if notebook is None:
                raise ValueError(f"Notebook {notebook_id} not found")

            existing = self.data_store.get_notebook_by_name(new_notebook_name)
            if existing is not None and existing.id != notebook.id:
                return Operation.DUPLICATE

            if notebook.name == new_notebook_name:
                return Operation.ABORTED

            notebook.name = new_notebook_name
            self.data_store.update_notebook(notebook)
        except Exception as e:
            logger.error(
                f"Could not rename the notebook with id='{notebook_id}' to "
                f"'{new_notebook_name}'. Cause: {e}"
            )
            return Operation.ERROR

        self.notebook_edited.emit()
        return Operation.SUCCESS

    @traced("delete_notebooks")
    def delete_notebooks(self, notebook_ids: Iterable[str]) -> BatchResult:
        """Delete notebooks one by one. Their notes become unfiled."""
        result = BatchResult()
        for notebook_id in notebook_ids:
            try:
                self.initialize()
                self.data_store.delete_notebook(notebook_id)
                result.record_success()
            except Exception as e:
                logger.error(f"Could not delete the notebook with id='{notebook_id}'. Cause: {e}")
                result.record_failure(notebook_id, e)

        self.notebook_deleted.emit()
        return result

    # =========================================================================
    # Notes
    # =========================================================================

    @traced("get_notes")
    def get_notes(
        self,
        notebook_id: str,
        category: Union[Category, str],
        use_exact_dates: Optional[bool] = None,
    ) -> List[Note]:
        """List notes of a notebook in a category, filtered by the search text.

        Computes the counts of every category over the same filtered set in
        the same pass and publishes them on notes_count_changed.
        """
        if use_exact_dates is None:
            use_exact_dates = self.settings.use_exact_dates
        counts = NotesCountResult()
        notes: List[Note] = []

        try:
            self.initialize()
            category = Category(category)

            if notebook_id == ALL_NOTES_NOTEBOOK_ID:
                candidates = self.data_store.get_notes()
            elif notebook_id == UNFILED_NOTES_NOTEBOOK_ID:
                candidates = self.data_store.get_unfiled_notes()
            else:
                candidates = self.data_store.get_notebook_notes(notebook_id)

            candidates = self.search_service.filter_notes(candidates)
            counts.all_notes_count = len(candidates)

            for note in candidates:
                date_result = format_note_date(
                    note.modification_date,
                    use_exact_dates=use_exact_dates,
                    translator=self.translator,
                )
                note.display_modification_date = date_result.date_text
                note.display_exact_modification_date = format_exact_date(note.modification_date)

                if note.is_marked:
                    counts.marked_notes_count += 1
                if note.is_unfiled:
                    counts.unfiled_notes_count += 1
                if date_result.is_today_note:
                    counts.today_notes_count += 1
                if date_result.is_yesterday_note:
                    counts.yesterday_notes_count += 1
                if date_result.is_this_week_note:
                    counts.this_week_notes_count += 1

                if (
                    category == Category.ALL
                    or (category == Category.MARKED and note.is_marked)
                    or (category == Category.UNFILED and note.is_unfiled)
                    or (category == Category.TODAY and date_result.is_today_note)
                    or (category == Category.YESTERDAY and date_result.is_yesterday_note)
                    or (category == Category.THIS_WEEK and date_result.is_this_week_note)
                ):
                    notes.append(note)
        except Exception as e:
            logger.error(f"Could not get notes. Cause: {e}")
            notes = []

        self.notes_count_changed.emit(counts)
        return notes

    @traced("add_note")
    def add_note(self, base_title: str, notebook_id: str) -> NoteOperationResult:
        """Create a note with a unique "<base> <n>" title and empty content."""
        result = NoteOperationResult(Operation.SUCCESS)

        # A note added while a default notebook is selected is unfiled
        if notebook_id in DEFAULT_NOTEBOOK_IDS:
            notebook_id = ""

        unique_title = ""
        try:
            self.initialize()
            similar = self.data_store.get_notes_with_identical_base_title(base_title)
            unique_title = unique_new_note_title(base_title, (n.title for n in similar))
            result.note_id = self.data_store.add_note(unique_title, notebook_id)
            try:
                self.content_store.create_empty(result.note_id)
            except Exception:
                self.data_store.delete_note(result.note_id)
                raise
            result.note_title = unique_title
        except Exception as e:
            logger.error(f"Could not add note '{unique_title or base_title}'. Cause: {e}")
            return NoteOperationResult(Operation.ERROR)

        logger.info(f"Added note {result.note_id} ('{unique_title}')")
        self.note_edited.emit()
        return result

    @traced("delete_notes")
    def delete_notes(self, note_ids: Iterable[str]) -> BatchResult:
        """Delete notes: the row first, then the content and state files."""
        result = BatchResult()
        for note_id in note_ids:
            try:
                self.initialize()
                self.data_store.delete_note(note_id)
                self.content_store.delete(note_id)
                result.record_success()
            except Exception as e:
                logger.error(f"Could not delete the note with id='{note_id}'. Cause: {e}")
                result.record_failure(note_id, e)
                continue

            if note_id in self._open_note_ids:
                self._open_note_ids.remove(note_id)
                self.relay.emit(CloseNote(note_id))

        self.note_deleted.emit()
        return result

    def get_note(self, note_id: str) -> Optional[Note]:
        self.initialize()
        return self.data_store.get_note_by_id(note_id)

    def get_notebook_for_note(self, note_id: str) -> Notebook:
        """Notebook of a note, or the synthetic unfiled notebook."""
        self.initialize()
        note = self.data_store.get_note_by_id(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        notebook = self.data_store.get_notebook_by_id(note.notebook_id)
        return notebook or self._unfiled_notes_notebook()

    @traced("set_note_mark")
    def set_note_mark(self, note_id: str, is_marked: bool) -> Operation:
        try:
            self.initialize()
            note = self._require_note(note_id)
            note.is_marked = is_marked
            self.data_store.update_note(note)
            marked_count = len(self.data_store.get_marked_notes())
        except Exception as e:
            logger.error(f"Could not set the mark of the note with id='{note_id}'. Cause: {e}")
            return Operation.ERROR

        self.note_mark_changed.emit(NoteMarkResult(note_id, is_marked, marked_count))
        self.relay.emit(NoteMarkChanged(note_id, is_marked))
        return Operation.SUCCESS

    @traced("set_notebook")
    def set_notebook(self, notebook_id: str, note_ids: Iterable[str]) -> BatchResult:
        """Move notes to a notebook.

        Moving to "All Notes", or to the notebook a note is already in, is a
        skip. The unfiled pseudo-notebook maps to no notebook.
        """
        result = BatchResult()
        target_id = "" if notebook_id == UNFILED_NOTES_NOTEBOOK_ID else notebook_id

        for note_id in note_ids:
            try:
                self.initialize()
                note = self._require_note(note_id)
                if notebook_id == ALL_NOTES_NOTEBOOK_ID or target_id == note.notebook_id:
                    result.record_skip()
                    continue
                if target_id and self.data_store.get_notebook_by_id(target_id) is None:
                    raise ValueError(f"Notebook {target_id} not found")
                note.notebook_id = target_id
                self.data_store.update_note(note)
                result.record_success()
            except Exception as e:
                logger.error(
                    f"Could not set the notebook for the note with id='{note_id}' "
                    f"to notebook with id='{notebook_id}'. Cause: {e}"
                )
                result.record_failure(note_id, e)
                continue

            self.relay.emit(NotebookChanged(note_id, self.get_notebook_name(target_id)))

        self.note_notebook_changed.emit()
        return result

    def set_note_open(self, note_id: str, is_open: bool) -> None:
        """Track open note windows. Opening a closed note asks for its window."""
        if is_open:
            if note_id not in self._open_note_ids:
                self._open_note_ids.append(note_id)
                note_path = str(self.manager.collection_directory())
                logger.info(f"Opening note {note_id} in {note_path}")
                self.relay.emit(OpenNoteWindow(note_id, note_path))
        elif note_id in self._open_note_ids:
            self._open_note_ids.remove(note_id)

    def note_is_open(self, note_id: str) -> bool:
        return note_id in self._open_note_ids

    def has_open_notes(self) -> bool:
        return len(self._open_note_ids) > 0

    @traced("set_note_title")
    def set_note_title(
        self, note_id: str, initial_title: str, final_title: str
    ) -> NoteOperationResult:
        """Retitle a note from its window.

        A title taken by another note is made unique ("<title> (1)", ...)
        instead of being refused.
        """
        unique_title = (final_title or "").strip()
        if not unique_title:
            return NoteOperationResult(Operation.BLANK)

        if initial_title == unique_title:
            logger.info("Final title is the same as initial title. No rename required.")
            return NoteOperationResult(Operation.ABORTED)

        try:
            self.initialize()
            note = self._require_note(note_id)
            similar = self.data_store.get_notes_with_identical_base_title(unique_title)
            unique_title = unique_note_title(
                unique_title, (n.title for n in similar if n.id != note_id)
            )
            note.title = unique_title
            self.data_store.update_note(note)
            logger.info(f"Renamed note with id={note_id} from '{initial_title}' to '{unique_title}'")
        except Exception as e:
            logger.error(f"Could not rename the note with id='{note_id}' to '{unique_title}'. Cause: {e}")
            return NoteOperationResult(Operation.ERROR)

        self.note_edited.emit()
        return NoteOperationResult(Operation.SUCCESS, note_id, unique_title)

    @traced("rename_note")
    def rename_note(self, note_id: str, initial_title: str, final_title: str) -> NoteOperationResult:
        """Retitle a note, refusing titles held by another note."""
        final_title = (final_title or "").strip()
        if not final_title:
            return NoteOperationResult(Operation.BLANK)

        if initial_title == final_title:
            return NoteOperationResult(Operation.ABORTED)

        try:
            self.initialize()
            note = self._require_note(note_id)
            existing = self.data_store.get_note_by_title(final_title)
            if existing is not None and existing.id != note_id:
                return NoteOperationResult(Operation.DUPLICATE, note_id, note.title)
            note.title = final_title
            self.data_store.update_note(note)
        except Exception as e:
            logger.error(f"Could not rename the note with id='{note_id}' to '{final_title}'. Cause: {e}")
            return NoteOperationResult(Operation.ERROR)

        self.note_edited.emit()
        return NoteOperationResult(Operation.SUCCESS, note_id, final_title)

    @traced("set_note_text")
    def set_note_text(self, note_id: str, text: str) -> Operation:
        """Store the plain text of a note, used for search and previews.

        The rich content is written to the content file by the caller.
        """
        try:
            self.initialize()
            note = self._require_note(note_id)
            note.text = text
            self.data_store.update_note(note)
        except Exception as e:
            logger.error(f"Could not set text for the note with id='{note_id}'. Cause: {e}")
            return Operation.ERROR
        return Operation.SUCCESS

    def get_note_details(self, note_id: str) -> Optional[NoteDetailsResult]:
        self.initialize()
        note = self.data_store.get_note_by_id(note_id)
        if note is None:
            return None
        return NoteDetailsResult(note.title, self.get_notebook_name(note.notebook_id), note.is_marked)

    def get_note_content(self, note_id: str) -> str:
        self.initialize()
        return self.content_store.read(note_id)

    def set_note_content(self, note_id: str, content: str) -> Operation:
        """Write the rich content of a note (the window's half of a save)."""
        try:
            self.initialize()
            self._require_note(note_id)
            self.content_store.write(note_id, content)
        except Exception as e:
            logger.error(f"Could not write content of the note with id='{note_id}'. Cause: {e}")
            return Operation.ERROR
        return Operation.SUCCESS

    # =========================================================================
    # Import and export
    # =========================================================================

    @traced("export_note")
    def export_note(self, note_id: str, export_path: Path) -> Operation:
        """Write a note as a {title, text, content} JSON document."""
        try:
            self.initialize()
            note = self._require_note(note_id)
            export = NoteExport(
                title=note.title,
                text=note.text,
                content=self.content_store.read(note_id),
            )
            Path(export_path).write_text(export.model_dump_json(), encoding="utf-8")
        except Exception as e:
            logger.error(f"Could not export the note with id='{note_id}' to '{export_path}'. Cause: {e}")
            return Operation.ERROR

        logger.info(f"Exported note {note_id} to '{export_path}'")
        return Operation.SUCCESS

    @traced("import_note_files")
    def import_note_files(
        self, note_file_paths: Iterable[Path], notebook_id: Optional[str] = None
    ) -> BatchResult:
        """Create a note from each exported note file.

        Imported notes are titled "<title> (Imported)", made unique, and get
        the exported content written verbatim.
        """
        result = BatchResult()
        if notebook_id in DEFAULT_NOTEBOOK_IDS:
            notebook_id = ""
        imported_suffix = self.translator.get("Notes.Imported")

        for note_file_path in note_file_paths:
            note_id = None
            try:
                self.initialize()
                export = NoteExport.model_validate_json(
                    Path(note_file_path).read_text(encoding="utf-8")
                )
                proposed_title = f"{export.title} ({imported_suffix})"
                similar = self.data_store.get_notes_with_identical_base_title(proposed_title)
                unique_title = unique_note_title(proposed_title, (n.title for n in similar))

                note_id = self.data_store.add_note(unique_title, notebook_id or "")
                note = self._require_note(note_id)
                note.text = export.text
                self.data_store.update_note_without_date(note)
                self.content_store.write(note_id, export.content)
                result.record_success()
            except Exception as e:
                logger.error(f"Could not import note file '{note_file_path}'. Cause: {e}")
                result.record_failure(str(note_file_path), e)
                if note_id is not None:
                    self._discard_note_row(note_id)

        if result.succeeded > 0:
            self.note_edited.emit()
        return result

    @traced("import_from_old_version")
    def import_from_old_version(self, directory: Path) -> BatchResult:
        """Import Notebooks.json and Notes.json written by the legacy app."""
        try:
            self.initialize()
        except Exception as e:
            logger.error(f"Could not import from '{directory}'. Cause: {e}")
            result = BatchResult()
            result.record_failure(str(directory), e)
            return result

        result = LegacyImporter(self.data_store, self.content_store).import_directory(directory)
        self.notebook_edited.emit()
        self.note_edited.emit()
        return result

    # =========================================================================
    # Relay handlers
    # =========================================================================

    def _on_get_note_title(self, message: GetNoteTitle, callback) -> None:
        note = self._find_note(message.note_id)
        callback(note.title if note else None)

    def _on_set_note_title(self, message: SetNoteTitle, callback) -> None:
        callback(self.set_note_title(message.note_id, message.initial_title, message.final_title))

    def _on_get_note_text(self, message: GetNoteText, callback) -> None:
        note = self._find_note(message.note_id)
        callback(note.text if note else None)

    def _on_set_note_text(self, message: SetNoteText, callback) -> None:
        callback(self.set_note_text(message.note_id, message.text))

    def _on_get_note_details(self, message: GetNoteDetails, callback) -> None:
        try:
            details = self.get_note_details(message.note_id)
        except Exception as e:
            logger.error(f"Could not get details of the note with id='{message.note_id}'. Cause: {e}")
            details = None
        callback(details)

    def _on_get_notebooks(self, message: GetNotebooks, callback) -> None:
        callback(self.get_notebooks(include_all_notes=False))

    def _on_set_note_open(self, message: SetNoteOpen) -> None:
        self.set_note_open(message.note_id, message.is_open)

    def _on_set_note_mark(self, message: SetNoteMark) -> None:
        self.set_note_mark(message.note_id, message.is_marked)

    def _on_set_notebook(self, message: SetNotebook, callback) -> None:
        callback(self.set_notebook(message.notebook_id, message.note_ids))

    def _on_delete_note(self, message: DeleteNote) -> None:
        self.delete_notes([message.note_id])

    def _on_get_search_text(self, message: GetSearchText, callback) -> None:
        callback(self.search_service.search_text)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _all_notes_notebook(self) -> Notebook:
        return Notebook(
            id=ALL_NOTES_NOTEBOOK_ID,
            name=self.translator.get("MainPage.AllNotes"),
            is_default=True,
        )

    def _unfiled_notes_notebook(self) -> Notebook:
        return Notebook(
            id=UNFILED_NOTES_NOTEBOOK_ID,
            name=self.translator.get("MainPage.UnfiledNotes"),
            is_default=True,
        )

    def _notebook_exists(self, notebook_name: str) -> bool:
        return self.data_store.get_notebook_by_name(notebook_name) is not None

    def _require_note(self, note_id: str) -> Note:
        note = self.data_store.get_note_by_id(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    def _find_note(self, note_id: str) -> Optional[Note]:
        try:
            self.initialize()
            return self.data_store.get_note_by_id(note_id)
        except Exception as e:
            logger.error(f"Could not get the note with id='{note_id}'. Cause: {e}")
            return None

    def _discard_note_row(self, note_id: str) -> None:
        try:
            self.data_store.delete_note(note_id)
        except Exception as e:
            logger.error(f"Could not delete half-imported note {note_id}. Cause: {e}")
