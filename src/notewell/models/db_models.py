"""SQLAlchemy database models for the per-collection metadata store."""
import datetime
from pathlib import Path

from sqlalchemy import (Boolean, Column, DateTime, Index, String, Text,
                        create_engine, event)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from notewell.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNotebook(Base):
    """Database model for a notebook."""
    __tablename__ = "notebooks"
    id = Column(String(255), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)

    def __repr__(self) -> str:
        """Return string representation of notebook."""
        return f"<Notebook(id='{self.id}', name='{self.name}')>"


class DBNote(Base):
    """Database model for note metadata. Content lives in <id>.content."""
    __tablename__ = "notes"
    id = Column(String(255), primary_key=True, index=True)
    # Uniqueness is enforced by the collection service, not by the schema
    title = Column(String(255), nullable=False, index=True)
    text = Column(Text, nullable=False, default="")
    # Empty string means unfiled
    notebook_id = Column(String(255), nullable=False, default="", index=True)
    is_marked = Column(Boolean, nullable=False, default=False, index=True)
    creation_date = Column(DateTime(timezone=True), default=datetime.datetime.now, nullable=False)
    modification_date = Column(DateTime(timezone=True), default=datetime.datetime.now, nullable=False)

    __table_args__ = (
        Index("ix_notes_notebook_marked", "notebook_id", "is_marked"),
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id='{self.id}', title='{self.title}')>"


def init_db(database_file: Path):
    """Open (or create) a collection database with hardened configuration.

    Applies SQLite settings for crash resilience:
    - WAL (Write-Ahead Logging) mode for atomic writes
    - NORMAL synchronous mode
    - Small QueuePool with pre-ping (SQLite is single-writer)

    Args:
        database_file: Path of the <collection>.db file.

    Returns:
        The SQLAlchemy engine. Dispose it before moving the file.
    """
    engine = create_engine(
        config.get_db_url(database_file),
        poolclass=QueuePool,
        pool_size=2,
        max_overflow=4,
        pool_timeout=30,
        pool_pre_ping=True,
    )

    # Apply WAL mode and other PRAGMA settings on every connection
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)

    return engine


def get_session_factory(engine):
    """Get a session factory for the database."""
    return sessionmaker(bind=engine, expire_on_commit=False)
