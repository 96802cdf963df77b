"""Flat content files of a collection: one <id>.content per note."""
import logging
import os
import threading
from pathlib import Path
from typing import List, Optional

from notewell.config import config
from notewell.exceptions import ErrorCode, StorageError
from notewell.models.schema import validate_safe_path_component

logger = logging.getLogger(__name__)


class ContentFileStore:
    """Filesystem area holding the rich-content files of one collection.

    Content is opaque here: a serialized rich-text delta that is written and
    read back verbatim. Each note can also have a <id>.state sidecar with
    the geometry of its window, owned by the window layer.
    """

    def __init__(
        self,
        directory: Path,
        content_extension: Optional[str] = None,
        state_extension: Optional[str] = None,
    ):
        self.directory = Path(directory)
        self.content_extension = content_extension or config.content_extension
        self.state_extension = state_extension or config.state_extension
        self.file_lock = threading.RLock()

    def content_path(self, note_id: str) -> Path:
        validate_safe_path_component(note_id, "Note ID")
        return self.directory / f"{note_id}{self.content_extension}"

    def state_path(self, note_id: str) -> Path:
        validate_safe_path_component(note_id, "Note ID")
        return self.directory / f"{note_id}{self.state_extension}"

    def exists(self, note_id: str) -> bool:
        return self.content_path(note_id).exists()

    def create_empty(self, note_id: str) -> Path:
        """Create the empty content file of a new note."""
        return self.write(note_id, "")

    def write(self, note_id: str, content: str) -> Path:
        """Write content atomically (temp file, then rename over the target)."""
        file_path = self.content_path(note_id)
        temp_path = file_path.with_name(file_path.name + ".tmp")
        try:
            with self.file_lock:
                with open(temp_path, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(temp_path, file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(
                f"Failed to write content of note {note_id}",
                operation="write",
                path=str(file_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        return file_path

    def read(self, note_id: str) -> str:
        file_path = self.content_path(note_id)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise StorageError(
                f"Failed to read content of note {note_id}",
                operation="read",
                path=str(file_path),
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    def delete(self, note_id: str) -> None:
        """Delete the content file, then the state sidecar if present.

        Raises:
            StorageError: If the content file is missing or can't be removed.
        """
        file_path = self.content_path(note_id)
        try:
            with self.file_lock:
                os.remove(file_path)
        except OSError as e:
            raise StorageError(
                f"Failed to delete content of note {note_id}",
                operation="delete",
                path=str(file_path),
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e
        self.delete_state(note_id)

    def delete_state(self, note_id: str) -> bool:
        """Delete the window state sidecar. Returns False if there was none."""
        state_path = self.state_path(note_id)
        if not state_path.exists():
            return False
        try:
            with self.file_lock:
                os.remove(state_path)
        except OSError as e:
            raise StorageError(
                f"Failed to delete window state of note {note_id}",
                operation="delete",
                path=str(state_path),
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e
        return True

    def content_ids(self) -> List[str]:
        """Ids of every content file in the directory."""
        if not self.directory.is_dir():
            return []
        return sorted(
            p.name[: -len(self.content_extension)]
            for p in self.directory.iterdir()
            if p.is_file() and p.name.endswith(self.content_extension)
        )
