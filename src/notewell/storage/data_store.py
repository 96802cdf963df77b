"""Structured metadata store for notebooks and notes of one collection."""
import logging
from pathlib import Path
from typing import Any, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from notewell.exceptions import (
    CollectionError,
    ErrorCode,
    NotebookNotFoundError,
    NoteNotFoundError,
    StorageError,
)
from notewell.models.db_models import DBNote, DBNotebook, get_session_factory, init_db
from notewell.models.schema import (
    Note,
    Notebook,
    ensure_timezone_aware,
    generate_id,
    utc_now,
)
from notewell.utils import escape_like_pattern

logger = logging.getLogger(__name__)


class DataStore:
    """Per-collection metadata store backed by SQLite.

    Holds Notebook and Note rows. Rich content is not stored here: the
    collection service pairs every note row with a content file.

    The store is opened with initialize() once the active collection is
    known and closed with close() before the collection is renamed, deleted
    or switched.
    """

    def __init__(self):
        self.engine: Optional[Any] = None
        self.session_factory = None
        self.database_file: Optional[Path] = None
        # True when initialize() had to create the database file
        self.created_new = False

    def initialize(self, database_file: Path) -> None:
        """Open (or create) the database file of a collection."""
        self.close()
        created_new = not Path(database_file).exists()
        try:
            self.engine = init_db(Path(database_file))
        except SQLAlchemyError as e:
            raise StorageError(
                "Could not open the collection database",
                operation="initialize",
                path=str(database_file),
                code=ErrorCode.STORAGE_CONNECTION_FAILED,
                original_error=e,
            ) from e
        self.session_factory = get_session_factory(self.engine)
        self.database_file = Path(database_file)
        self.created_new = created_new
        logger.info(f"DataStore initialized: {self.database_file}")

    def close(self) -> None:
        """Dispose the engine so the database file can be moved or removed."""
        if self.engine is not None:
            self.engine.dispose()
            logger.debug(f"DataStore closed: {self.database_file}")
        self.engine = None
        self.session_factory = None

    @property
    def is_open(self) -> bool:
        return self.session_factory is not None

    def _session(self):
        if self.session_factory is None:
            raise CollectionError(
                "The metadata store is not initialized",
                code=ErrorCode.COLLECTION_NOT_INITIALIZED,
            )
        return self.session_factory()

    # =========================================================================
    # Notebooks
    # =========================================================================

    def get_notebooks(self) -> List[Notebook]:
        """Get all persisted notebooks, ordered by name."""
        with self._session() as session:
            rows = session.scalars(
                select(DBNotebook).order_by(func.lower(DBNotebook.name))
            ).all()
            return [self._db_notebook_to_model(row) for row in rows]

    def get_notebook_by_id(self, notebook_id: str) -> Optional[Notebook]:
        if not notebook_id:
            return None
        with self._session() as session:
            row = session.get(DBNotebook, notebook_id)
            return self._db_notebook_to_model(row) if row else None

    def get_notebook_by_name(self, name: str) -> Optional[Notebook]:
        """Get a notebook by name, ignoring case.

        Compared with casefold() in Python: SQLite's lower() only folds ASCII.
        """
        key = name.casefold()
        with self._session() as session:
            for row in session.scalars(select(DBNotebook)):
                if row.name.casefold() == key:
                    return self._db_notebook_to_model(row)
        return None

    def add_notebook(self, name: str) -> str:
        """Insert a notebook and return its id."""
        notebook_id = generate_id()
        with self._session() as session:
            session.add(DBNotebook(id=notebook_id, name=name))
            session.commit()
        logger.debug(f"Added notebook {notebook_id} ('{name}')")
        return notebook_id

    def update_notebook(self, notebook: Notebook) -> None:
        with self._session() as session:
            row = session.get(DBNotebook, notebook.id)
            if row is None:
                raise NotebookNotFoundError(notebook.id)
            row.name = notebook.name
            session.commit()

    def delete_notebook(self, notebook_id: str) -> None:
        """Delete a notebook. Its notes become unfiled."""
        with self._session() as session:
            row = session.get(DBNotebook, notebook_id)
            if row is None:
                raise NotebookNotFoundError(notebook_id)
            session.execute(
                update(DBNote)
                .where(DBNote.notebook_id == notebook_id)
                .values(notebook_id="")
            )
            session.delete(row)
            session.commit()

    # =========================================================================
    # Notes
    # =========================================================================

    def get_notes(self) -> List[Note]:
        """Get all notes, most recently modified first."""
        return self._query_notes()

    def get_unfiled_notes(self) -> List[Note]:
        return self._query_notes(DBNote.notebook_id == "")

    def get_notebook_notes(self, notebook_id: str) -> List[Note]:
        return self._query_notes(DBNote.notebook_id == notebook_id)

    def get_marked_notes(self) -> List[Note]:
        return self._query_notes(DBNote.is_marked.is_(True))

    def get_note_by_id(self, note_id: str) -> Optional[Note]:
        with self._session() as session:
            row = session.get(DBNote, note_id)
            return self._db_note_to_model(row) if row else None

    def get_note_by_title(self, title: str) -> Optional[Note]:
        """Get a note by exact title."""
        with self._session() as session:
            row = session.scalars(select(DBNote).where(DBNote.title == title)).first()
            return self._db_note_to_model(row) if row else None

    def get_notes_with_identical_base_title(self, base_title: str) -> List[Note]:
        """Get notes whose title starts with base_title.

        Narrows the candidates for title uniquification. LIKE is case
        insensitive for ASCII in SQLite, so callers still compare exactly.
        """
        pattern = f"{escape_like_pattern(base_title)}%"
        return self._query_notes(DBNote.title.like(pattern, escape="\\"))

    def get_note_ids(self) -> List[str]:
        with self._session() as session:
            return list(session.scalars(select(DBNote.id)).all())

    def add_note(self, title: str, notebook_id: str) -> str:
        """Insert a note row and return its id."""
        note_id = generate_id()
        now = utc_now()
        with self._session() as session:
            session.add(
                DBNote(
                    id=note_id,
                    title=title,
                    text="",
                    notebook_id=notebook_id or "",
                    is_marked=False,
                    creation_date=now,
                    modification_date=now,
                )
            )
            session.commit()
        logger.debug(f"Added note {note_id} ('{title}')")
        return note_id

    def update_note(self, note: Note) -> None:
        """Update a note and stamp its modification date."""
        note.modification_date = utc_now()
        self._write_note(note)

    def update_note_without_date(self, note: Note) -> None:
        """Update a note, keeping the dates it carries (used by imports)."""
        self._write_note(note)

    def delete_note(self, note_id: str) -> None:
        with self._session() as session:
            row = session.get(DBNote, note_id)
            if row is None:
                raise NoteNotFoundError(note_id)
            session.delete(row)
            session.commit()

    def _write_note(self, note: Note) -> None:
        with self._session() as session:
            row = session.get(DBNote, note.id)
            if row is None:
                raise NoteNotFoundError(note.id)
            row.title = note.title
            row.text = note.text
            row.notebook_id = note.notebook_id or ""
            row.is_marked = note.is_marked
            row.creation_date = note.creation_date
            row.modification_date = note.modification_date
            session.commit()

    def _query_notes(self, *criteria) -> List[Note]:
        with self._session() as session:
            query = select(DBNote)
            if criteria:
                query = query.where(*criteria)
            query = query.order_by(DBNote.modification_date.desc())
            return [self._db_note_to_model(row) for row in session.scalars(query).all()]

    @staticmethod
    def _db_notebook_to_model(row: DBNotebook) -> Notebook:
        return Notebook(id=row.id, name=row.name, is_default=False)

    @staticmethod
    def _db_note_to_model(row: DBNote) -> Note:
        return Note(
            id=row.id,
            title=row.title,
            text=row.text or "",
            notebook_id=row.notebook_id or "",
            is_marked=bool(row.is_marked),
            creation_date=ensure_timezone_aware(row.creation_date),
            modification_date=ensure_timezone_aware(row.modification_date),
        )
