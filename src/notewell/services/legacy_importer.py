"""One-shot import of the export files written by the previous generation of the app.

The export directory holds up to two JSON documents:

- Notebooks.json: [{"Name": ...}, ...]
- Notes.json: [{"Title", "Text", "Notebook", "CreationDate",
  "ModificationDate", "IsMarked"}, ...] with dates as "YYYY-MM-DD HH:mm:ss"
  in local time.

Both are optional. Items are imported one by one: a failing item is logged,
counted and skipped, the rest of the batch still goes through.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from notewell.models.schema import BatchResult, parse_legacy_date
from notewell.services.titles import unique_note_title
from notewell.storage.content_store import ContentFileStore
from notewell.storage.data_store import DataStore

logger = logging.getLogger(__name__)

NOTEBOOKS_EXPORT_FILE = "Notebooks.json"
NOTES_EXPORT_FILE = "Notes.json"


def plain_text_to_delta(text: str) -> str:
    """Wrap plain text in a minimal single-insert rich text delta."""
    return json.dumps({"ops": [{"insert": text}]}, ensure_ascii=False)


def _read_export_file(path: Path) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8-sig") as f:
        items = json.load(f)
    if not isinstance(items, list):
        raise ValueError(f"{path.name} does not contain a list")
    return items


class LegacyImporter:
    """Imports legacy notebooks and notes into the open collection."""

    def __init__(self, data_store: DataStore, content_store: ContentFileStore):
        self.data_store = data_store
        self.content_store = content_store

    def import_directory(self, directory: Path) -> BatchResult:
        """Import Notebooks.json, then Notes.json, from directory.

        A missing or unreadable document counts as one failure of the batch;
        a missing one is only logged.
        """
        directory = Path(directory)
        result = BatchResult()

        notebooks_file = directory / NOTEBOOKS_EXPORT_FILE
        if notebooks_file.exists():
            logger.info(f"{notebooks_file} was found. Importing notebooks.")
            try:
                self._import_notebooks(_read_export_file(notebooks_file), result)
            except (OSError, ValueError) as e:
                logger.error(f"Could not read notebooks from {notebooks_file}. Cause: {e}")
                result.record_failure(NOTEBOOKS_EXPORT_FILE, e)
        else:
            logger.info(f"{notebooks_file} was not found. Not importing notebooks.")

        notes_file = directory / NOTES_EXPORT_FILE
        if notes_file.exists():
            logger.info(f"{notes_file} was found. Importing notes.")
            try:
                self._import_notes(_read_export_file(notes_file), result)
            except (OSError, ValueError) as e:
                logger.error(f"Could not read notes from {notes_file}. Cause: {e}")
                result.record_failure(NOTES_EXPORT_FILE, e)
        else:
            logger.info(f"{notes_file} was not found. Not importing notes.")

        logger.info(
            f"Legacy import finished: {result.succeeded} imported, "
            f"{result.skipped} skipped, {len(result.failures)} failed"
        )
        return result

    def _import_notebooks(self, items: List[Dict[str, Any]], result: BatchResult) -> None:
        for index, item in enumerate(items):
            name = item.get("Name") if isinstance(item, dict) else None
            try:
                if not name:
                    raise ValueError(f"Notebook #{index} has no name")
                if self.data_store.get_notebook_by_name(name) is not None:
                    logger.debug(f"Skipping existing notebook '{name}'")
                    result.record_skip()
                    continue
                self.data_store.add_notebook(name)
                result.record_success()
            except Exception as e:
                logger.error(f"Could not import notebook '{name}'. Cause: {e}")
                result.record_failure(name or f"notebook #{index}", e)

    def _import_notes(self, items: List[Dict[str, Any]], result: BatchResult) -> None:
        for index, item in enumerate(items):
            title = item.get("Title") if isinstance(item, dict) else None
            note_id = None
            try:
                if not title:
                    raise ValueError(f"Note #{index} has no title")

                notebook_id = self._find_notebook_id(item.get("Notebook"))
                similar = self.data_store.get_notes_with_identical_base_title(title)
                unique_title = unique_note_title(title, (n.title for n in similar))

                note_id = self.data_store.add_note(unique_title, notebook_id)
                note = self.data_store.get_note_by_id(note_id)
                note.text = item.get("Text") or ""
                note.creation_date = parse_legacy_date(item["CreationDate"])
                note.modification_date = parse_legacy_date(item["ModificationDate"])
                note.is_marked = bool(item.get("IsMarked", False))
                self.data_store.update_note_without_date(note)

                self.content_store.write(note_id, plain_text_to_delta(note.text))
                result.record_success()
            except Exception as e:
                logger.error(f"Could not import note '{title}'. Cause: {e}")
                result.record_failure(title or f"note #{index}", e)
                if note_id is not None:
                    self._discard(note_id)

    def _find_notebook_id(self, notebook_name: Any) -> str:
        if not notebook_name:
            return ""
        try:
            notebook = self.data_store.get_notebook_by_name(str(notebook_name))
        except Exception as e:
            logger.error(f"Could not look up notebook '{notebook_name}'. Cause: {e}")
            return ""
        return notebook.id if notebook else ""

    def _discard(self, note_id: str) -> None:
        """Remove a half-imported note so it doesn't linger without content."""
        try:
            self.data_store.delete_note(note_id)
        except Exception as e:
            logger.error(f"Could not delete half-imported note {note_id}. Cause: {e}")
        try:
            if self.content_store.exists(note_id):
                self.content_store.delete(note_id)
        except Exception as e:
            logger.error(f"Could not delete content of half-imported note {note_id}. Cause: {e}")
