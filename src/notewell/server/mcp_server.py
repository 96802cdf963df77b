"""MCP server exposing Notewell collections, notebooks and notes."""

import atexit
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from notewell.config import config
from notewell.exceptions import NotewellError
from notewell.i18n import Translator
from notewell.models.schema import (
    ALL_NOTES_NOTEBOOK_ID,
    BatchResult,
    Category,
    Operation,
)
from notewell.observability import metrics, timed_operation
from notewell.services.collection_service import CollectionService
from notewell.services.legacy_importer import plain_text_to_delta
from notewell.services.relay import (
    EventRelay,
    GetNoteDetails,
    GetNoteTitle,
    SetNotebook,
    SetNoteMark,
    SetNoteText,
    SetNoteTitle,
)
from notewell.services.search_service import SearchService
from notewell.storage.settings_store import SettingsStore

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 1_000_000  # 1 MB

_OPERATION_MESSAGES = {
    Operation.SUCCESS: "Done",
    Operation.DUPLICATE: "Already exists",
    Operation.BLANK: "A non-empty value is required",
    Operation.ABORTED: "Nothing to change",
    Operation.ERROR: "Failed, see the log for details",
}


def _validate_input_lengths(
    title: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if title and len(title) > MAX_TITLE_LENGTH:
        raise ValueError(
            f"Title exceeds maximum length of {MAX_TITLE_LENGTH} characters"
        )
    if content and len(content) > MAX_CONTENT_LENGTH:
        raise ValueError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters"
        )


def _split_ids(ids: str) -> List[str]:
    return [i.strip() for i in ids.split(",") if i.strip()]


def _format_operation(operation: Operation, subject: str) -> str:
    return f"{subject}: {_OPERATION_MESSAGES[operation]} ({operation.value})"


def _format_batch(result: BatchResult, subject: str) -> str:
    text = (
        f"{subject}: {result.succeeded} of {result.total} succeeded"
        f" ({result.operation.value})"
    )
    if result.skipped:
        text += f", {result.skipped} skipped"
    if result.failures:
        text += "\nFailed: " + ", ".join(result.failed_ids)
    return text


class NotewellMcpServer:
    """MCP server for Notewell.

    The server thread is the coordinator: it owns the collection service and
    talks to it through the event relay, the same way note windows do.
    """

    def __init__(
        self,
        settings: Optional[SettingsStore] = None,
        relay: Optional[EventRelay] = None,
        translator: Optional[Translator] = None,
    ):
        self.mcp = FastMCP(config.server_name, version=config.server_version)
        self.relay = relay or EventRelay()
        self.search_service = SearchService()
        self.collection_service = CollectionService(
            settings or SettingsStore(),
            self.relay,
            translator=translator,
            search_service=self.search_service,
        )
        self.initialize()
        atexit.register(self._shutdown)
        self._register_tools()

    def initialize(self) -> None:
        """Open the active collection when a storage directory is known.

        Called again after every collection change: closing a collection
        unregisters its relay handlers until it is reopened.
        """
        if self.collection_service.has_storage_directory():
            collection = self.collection_service.initialize()
            logger.info(f"Notewell MCP server initialized (collection: {collection})")
        else:
            logger.info("Notewell MCP server initialized without a storage directory")

    def _shutdown(self) -> None:
        """Clean up resources on server exit."""
        self.collection_service.data_store.close()

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotewellError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, (IOError, OSError)):
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""
        service = self.collection_service

        # Collections
        @self.mcp.tool(name="nw_list_collections")
        def nw_list_collections() -> str:
            """List the collections in the storage directory, marking the active one."""
            with timed_operation("nw_list_collections") as op:
                try:
                    if not service.has_storage_directory():
                        return "No storage directory is configured. Use nw_set_storage_directory first."
                    active = service.get_active_collection()
                    collections = service.get_collections()
                    op["result_count"] = len(collections)
                    if not collections:
                        return "No collections found."
                    lines = [
                        f"{'* ' if c == active else '  '}{c}" for c in collections
                    ]
                    return "Collections:\n" + "\n".join(lines)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_set_storage_directory")
        def nw_set_storage_directory(parent_directory: str) -> str:
            """Store collections in a Collections folder inside parent_directory.
            Args:
                parent_directory: Existing or new directory to hold the Collections folder
            """
            with timed_operation("nw_set_storage_directory"):
                try:
                    if not service.set_storage_directory(Path(parent_directory)):
                        return "Error: Could not create the storage directory"
                    collection = service.initialize()
                    return f"Storage directory set. Active collection: {collection}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_add_collection")
        def nw_add_collection(name: str) -> str:
            """Create a collection and make it the active one.
            Args:
                name: Collection name; characters illegal in file names are removed
            """
            with timed_operation("nw_add_collection", name=name[:30]) as op:
                try:
                    operation = service.add_collection(name)
                    self.initialize()
                    op["outcome"] = operation.value
                    return _format_operation(operation, f"Add collection '{name}'")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_rename_collection")
        def nw_rename_collection(initial_name: str, final_name: str) -> str:
            """Rename a collection (its directory and database file).
            Args:
                initial_name: Current collection name
                final_name: New collection name
            """
            with timed_operation("nw_rename_collection") as op:
                try:
                    operation = service.rename_collection(initial_name, final_name)
                    self.initialize()
                    op["outcome"] = operation.value
                    return _format_operation(operation, f"Rename collection '{initial_name}'")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_delete_collection")
        def nw_delete_collection(name: str) -> str:
            """Delete a collection with all of its notebooks and notes.
            Args:
                name: Collection name
            """
            with timed_operation("nw_delete_collection") as op:
                try:
                    operation = service.delete_collection(name)
                    self.initialize()
                    op["outcome"] = operation.value
                    return _format_operation(operation, f"Delete collection '{name}'")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_activate_collection")
        def nw_activate_collection(name: str) -> str:
            """Make another collection the active one.
            Args:
                name: Collection name
            """
            with timed_operation("nw_activate_collection"):
                try:
                    service.activate_collection(name)
                    collection = service.initialize()
                    return f"Active collection: {collection}"
                except Exception as e:
                    return self.format_error_response(e)

        # Notebooks
        @self.mcp.tool(name="nw_list_notebooks")
        def nw_list_notebooks() -> str:
            """List notebooks, starting with the built-in All Notes and Unfiled Notes."""
            with timed_operation("nw_list_notebooks") as op:
                try:
                    notebooks = service.get_notebooks(include_all_notes=True)
                    op["result_count"] = len(notebooks)
                    return "Notebooks:\n" + "\n".join(
                        f"- {nb.name} (ID: {nb.id})" for nb in notebooks
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_add_notebook")
        def nw_add_notebook(name: str) -> str:
            """Create a notebook. Names are unique regardless of case.
            Args:
                name: Notebook name
            """
            with timed_operation("nw_add_notebook") as op:
                try:
                    operation = service.add_notebook(name)
                    op["outcome"] = operation.value
                    return _format_operation(operation, f"Add notebook '{name}'")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_rename_notebook")
        def nw_rename_notebook(notebook_id: str, name: str) -> str:
            """Rename a notebook.
            Args:
                notebook_id: The ID of the notebook
                name: New notebook name
            """
            with timed_operation("nw_rename_notebook") as op:
                try:
                    operation = service.rename_notebook(notebook_id, name)
                    op["outcome"] = operation.value
                    return _format_operation(operation, "Rename notebook")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_delete_notebooks")
        def nw_delete_notebooks(notebook_ids: str) -> str:
            """Delete notebooks. Their notes become unfiled.
            Args:
                notebook_ids: Comma-separated notebook IDs
            """
            with timed_operation("nw_delete_notebooks") as op:
                try:
                    result = service.delete_notebooks(_split_ids(notebook_ids))
                    op["outcome"] = result.operation.value
                    return _format_batch(result, "Delete notebooks")
                except Exception as e:
                    return self.format_error_response(e)

        # Notes
        @self.mcp.tool(name="nw_list_notes")
        def nw_list_notes(
            notebook_id: str = ALL_NOTES_NOTEBOOK_ID,
            category: str = "all",
            search: Optional[str] = None,
            exact_dates: Optional[bool] = None,
        ) -> str:
            """List notes of a notebook in a category.
            Args:
                notebook_id: Notebook ID, or all-notes-notebook / unfiled-notes-notebook
                category: all, today, yesterday, this_week, marked or unfiled
                search: Words that must all appear in the title or text (optional).
                    Replaces the active search text.
                exact_dates: Show absolute dates instead of relative ones (default: setting)
            """
            with timed_operation("nw_list_notes", category=category) as op:
                try:
                    try:
                        category_enum = Category(category.lower())
                    except ValueError:
                        return f"Invalid category: {category}. Valid categories are: {', '.join(c.value for c in Category)}"

                    if search is not None:
                        self.search_service.search_text = search

                    counts = []
                    service.notes_count_changed.connect(counts.append)
                    try:
                        notes = service.get_notes(notebook_id, category_enum, exact_dates)
                    finally:
                        service.notes_count_changed.disconnect(counts.append)
                    op["result_count"] = len(notes)

                    result = f"# {len(notes)} note(s)\n"
                    if counts:
                        c = counts[-1]
                        result += (
                            f"All: {c.all_notes_count} | Today: {c.today_notes_count} | "
                            f"Yesterday: {c.yesterday_notes_count} | "
                            f"This week: {c.this_week_notes_count} | "
                            f"Marked: {c.marked_notes_count} | Unfiled: {c.unfiled_notes_count}\n"
                        )
                    result += "\n"
                    for note in notes:
                        mark = "* " if note.is_marked else ""
                        result += f"- {mark}{note.title} (ID: {note.id}) {note.display_modification_date}\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_create_note")
        def nw_create_note(
            title: str = "New note",
            notebook_id: str = ALL_NOTES_NOTEBOOK_ID,
            text: Optional[str] = None,
        ) -> str:
            """Create a note. The title gets a number to keep it unique ("New note 1").
            Args:
                title: Base title of the note
                notebook_id: Notebook to file the note in (default: unfiled)
                text: Initial plain text (optional)
            """
            with timed_operation("nw_create_note", title=title[:30]) as op:
                try:
                    _validate_input_lengths(title=title, content=text)
                    result = service.add_note(title, notebook_id)
                    op["outcome"] = result.operation.value
                    if result.operation != Operation.SUCCESS:
                        return _format_operation(result.operation, "Create note")
                    if text:
                        self.relay.request(SetNoteText(result.note_id, text))
                        service.set_note_content(result.note_id, plain_text_to_delta(text))
                    return f"Note created: '{result.note_title}' (ID: {result.note_id})"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_get_note")
        def nw_get_note(note_id: str) -> str:
            """Retrieve a note: title, notebook, mark and stored rich content.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nw_get_note", note_id=note_id) as op:
                try:
                    details = self.relay.request(GetNoteDetails(note_id))
                    if details is None:
                        op["found"] = False
                        return f"Note not found: {note_id}"
                    op["found"] = True
                    note = service.get_note(note_id)
                    result = f"# {details.note_title}\n"
                    result += f"ID: {note_id}\n"
                    result += f"Notebook: {details.notebook_name}\n"
                    result += f"Marked: {'yes' if details.is_marked else 'no'}\n"
                    result += f"Created: {note.creation_date.isoformat()}\n"
                    result += f"Modified: {note.modification_date.isoformat()}\n"
                    result += f"\n{note.text}\n"
                    result += f"\nContent:\n{service.get_note_content(note_id)}\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_set_note_title")
        def nw_set_note_title(note_id: str, title: str) -> str:
            """Retitle a note. A title taken by another note gets a "(n)" suffix.
            Args:
                note_id: The ID of the note
                title: New title
            """
            with timed_operation("nw_set_note_title", note_id=note_id) as op:
                try:
                    _validate_input_lengths(title=title)
                    initial_title = self.relay.request(GetNoteTitle(note_id))
                    if initial_title is None:
                        return f"Note not found: {note_id}"
                    result = self.relay.request(SetNoteTitle(note_id, initial_title, title))
                    op["outcome"] = result.operation.value
                    if result.operation != Operation.SUCCESS:
                        return _format_operation(result.operation, "Set note title")
                    return f"Note title set to '{result.note_title}'"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_set_note_text")
        def nw_set_note_text(note_id: str, text: str, content: Optional[str] = None) -> str:
            """Save a note: its plain text and its rich content.
            Args:
                note_id: The ID of the note
                text: Plain text, used for search and previews
                content: Rich text delta JSON (default: the plain text as a single insert)
            """
            with timed_operation("nw_set_note_text", note_id=note_id) as op:
                try:
                    _validate_input_lengths(content=content or text)
                    operation = self.relay.request(SetNoteText(note_id, text))
                    if operation is None:
                        operation = Operation.ERROR
                    if operation == Operation.SUCCESS:
                        operation = service.set_note_content(
                            note_id, content if content is not None else plain_text_to_delta(text)
                        )
                    op["outcome"] = operation.value
                    return _format_operation(operation, "Save note")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_mark_note")
        def nw_mark_note(note_id: str, marked: bool = True) -> str:
            """Mark or unmark a note.
            Args:
                note_id: The ID of the note
                marked: True to mark, False to unmark
            """
            with timed_operation("nw_mark_note", note_id=note_id):
                try:
                    if not self.relay.emit(SetNoteMark(note_id, marked)):
                        return "Error: No collection is open"
                    return f"Note {note_id} {'marked' if marked else 'unmarked'}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_move_notes")
        def nw_move_notes(note_ids: str, notebook_id: str) -> str:
            """Move notes to a notebook.
            Args:
                note_ids: Comma-separated note IDs
                notebook_id: Target notebook ID, or unfiled-notes-notebook
            """
            with timed_operation("nw_move_notes") as op:
                try:
                    result = self.relay.request(SetNotebook(notebook_id, tuple(_split_ids(note_ids))))
                    if result is None:
                        return "Error: No collection is open"
                    op["outcome"] = result.operation.value
                    return _format_batch(result, "Move notes")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_delete_notes")
        def nw_delete_notes(note_ids: str) -> str:
            """Delete notes with their content.
            Args:
                note_ids: Comma-separated note IDs
            """
            with timed_operation("nw_delete_notes") as op:
                try:
                    result = service.delete_notes(_split_ids(note_ids))
                    op["outcome"] = result.operation.value
                    return _format_batch(result, "Delete notes")
                except Exception as e:
                    return self.format_error_response(e)

        # Import and export
        @self.mcp.tool(name="nw_import_legacy")
        def nw_import_legacy(directory: str) -> str:
            """Import Notebooks.json and Notes.json exported by the previous app version.
            Args:
                directory: Directory holding the export files
            """
            with timed_operation("nw_import_legacy") as op:
                try:
                    result = service.import_from_old_version(Path(directory))
                    op["outcome"] = result.operation.value
                    return _format_batch(result, "Legacy import")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_export_note")
        def nw_export_note(note_id: str, path: str) -> str:
            """Export a note to a JSON file.
            Args:
                note_id: The ID of the note
                path: File to write
            """
            with timed_operation("nw_export_note", note_id=note_id) as op:
                try:
                    operation = service.export_note(note_id, Path(path))
                    op["outcome"] = operation.value
                    return _format_operation(operation, "Export note")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_import_note_files")
        def nw_import_note_files(paths: str, notebook_id: Optional[str] = None) -> str:
            """Import exported note files as new notes.
            Args:
                paths: Comma-separated file paths
                notebook_id: Notebook for the imported notes (optional)
            """
            with timed_operation("nw_import_note_files") as op:
                try:
                    result = service.import_note_files(
                        [Path(p) for p in _split_ids(paths)], notebook_id
                    )
                    op["outcome"] = result.operation.value
                    return _format_batch(result, "Import notes")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nw_status")
        def nw_status() -> str:
            """Show the active collection and operation metrics."""
            try:
                summary = metrics.get_summary()
                result = f"Active collection: {service.get_active_collection() or '(none)'}\n"
                result += f"Initialized: {'yes' if service.is_initialized else 'no'}\n"
                result += f"Operations: {summary['total_operations']} ({summary['total_errors']} errors)\n"
                for name, m in sorted(metrics.get_metrics().items()):
                    result += (
                        f"- {name}: {m['count']} calls, avg {m['avg_duration_ms']}ms, "
                        f"{m['error_count']} errors\n"
                    )
                return result
            except Exception as e:
                return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
