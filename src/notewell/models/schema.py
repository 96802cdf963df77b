"""Data models for Notewell."""

import datetime
import os
import re
import threading
from dataclasses import dataclass, field
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

# Regex pattern for valid ids (alphanumeric, underscores, hyphens, T separator)
SAFE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-T]+$")

# Synthetic notebooks. Generated at read time, never persisted.
ALL_NOTES_NOTEBOOK_ID = "all-notes-notebook"
UNFILED_NOTES_NOTEBOOK_ID = "unfiled-notes-notebook"
DEFAULT_NOTEBOOK_IDS = (ALL_NOTES_NOTEBOOK_ID, UNFILED_NOTES_NOTEBOOK_ID)

# Legacy export date format ("YYYY-MM-DD HH:mm:ss")
LEGACY_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def validate_safe_path_component(value: str, field_name: str = "value") -> str:
    """Validate that a value is safe to use as a filesystem path component.

    Note ids name the content and state files, so they must not be able to
    escape the collection directory.

    Raises:
        ValueError: If the value contains unsafe characters
    """
    if not value:
        raise ValueError(f"{field_name} cannot be empty")

    if ".." in value:
        raise ValueError(f"{field_name} cannot contain '..' (path traversal)")

    if "/" in value or "\\" in value:
        raise ValueError(f"{field_name} cannot contain path separators")

    if not SAFE_ID_PATTERN.match(value):
        raise ValueError(
            f"{field_name} contains invalid characters. "
            "Only alphanumeric characters, underscores, hyphens, and 'T' are allowed."
        )

    return value


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite drops the offset on the way back out of the database, so every
    datetime read from the store passes through here.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def parse_legacy_date(value: str) -> datetime.datetime:
    """Parse a legacy export date, interpreted in local time, to UTC."""
    naive = datetime.datetime.strptime(value, LEGACY_DATE_FORMAT)
    return naive.astimezone().astimezone(timezone.utc)


# Thread-safe counter for uniqueness (seeded from PID for cross-process safety)
_id_lock = threading.Lock()
_last_timestamp = 0
_counter = (os.getpid() * 7) % 1_000_000


def generate_id() -> str:
    """Generate a timestamp-based ID with guaranteed uniqueness.

    Returns:
        A string in format "YYYYMMDDTHHMMSSsssssscccccc" where ssssss is the
        microsecond component and cccccc a counter for same-microsecond and
        cross-process uniqueness.
    """
    global _last_timestamp, _counter

    with _id_lock:
        now = utc_now()
        current_timestamp = int(now.timestamp() * 1_000_000)

        if current_timestamp == _last_timestamp:
            _counter += 1
        else:
            _last_timestamp = current_timestamp
            _counter = (os.getpid() * 7) % 1_000_000

        _counter %= 1_000_000

        date_time = now.strftime("%Y%m%dT%H%M%S")
        return f"{date_time}{now.microsecond:06d}{_counter:06d}"


class Operation(str, Enum):
    """Outcome of every mutating call."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"  # Name/title uniqueness violated
    BLANK = "blank"  # Required text empty after trimming
    ABORTED = "aborted"  # Requested change equals current state
    ERROR = "error"  # Underlying I/O or store failure (logged)


class Category(str, Enum):
    """Derived, non-persisted grouping of notes."""

    ALL = "all"
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    MARKED = "marked"
    UNFILED = "unfiled"


class LifecycleState(str, Enum):
    """Initialization state of the active collection."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    # Was initialized, but the active collection changed since
    REINITIALIZING = "reinitializing"


class Notebook(BaseModel):
    """A user-defined grouping of notes."""

    id: str = Field(default_factory=lambda: generate_id(), description="Notebook ID")
    name: str = Field(..., description="Notebook name, unique case-insensitively")
    is_default: bool = Field(
        default=False, description="True for the synthetic All/Unfiled notebooks"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}


class Note(BaseModel):
    """Metadata of a note. Its rich content lives in a separate file."""

    id: str = Field(default_factory=lambda: generate_id(), description="Unique ID of the note")
    title: str = Field(..., description="Title, unique within a collection")
    text: str = Field(default="", description="Plain text, used for search and preview")
    notebook_id: str = Field(default="", description="Notebook ID, empty when unfiled")
    is_marked: bool = Field(default=False)
    creation_date: datetime.datetime = Field(default_factory=utc_now)
    modification_date: datetime.datetime = Field(default_factory=utc_now)
    # Request-scoped, filled in by listings
    display_modification_date: str = Field(default="")
    display_exact_modification_date: str = Field(default="")

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate that the ID is safe for filesystem use."""
        return validate_safe_path_component(v, "Note ID")

    @field_validator("creation_date", "modification_date")
    @classmethod
    def validate_dates(cls, v: datetime.datetime) -> datetime.datetime:
        """Store every date as timezone-aware."""
        return ensure_timezone_aware(v)

    @property
    def is_unfiled(self) -> bool:
        return not self.notebook_id


class NoteExport(BaseModel):
    """Document written by a note export and read back by a note import."""

    title: str
    text: str = ""
    content: str = ""

    model_config = {"extra": "ignore"}


@dataclass
class NoteOperationResult:
    """Outcome of a note mutation, with the resulting identifiers."""

    operation: Operation
    note_id: Optional[str] = None
    note_title: Optional[str] = None


@dataclass
class NotesCountResult:
    """Aggregate counts computed by every listing."""

    all_notes_count: int = 0
    today_notes_count: int = 0
    yesterday_notes_count: int = 0
    this_week_notes_count: int = 0
    marked_notes_count: int = 0
    unfiled_notes_count: int = 0


@dataclass(frozen=True)
class NoteMarkResult:
    note_id: str
    is_marked: bool
    marked_notes_count: int


@dataclass(frozen=True)
class NoteDetailsResult:
    note_title: str
    notebook_name: str
    is_marked: bool


@dataclass
class NoteDateFormatResult:
    """Display text and bucket flags for a modification date."""

    date_text: str = ""
    is_today_note: bool = False
    is_yesterday_note: bool = False
    is_this_week_note: bool = False


@dataclass
class BatchResult:
    """Outcome of a batch operation with per-item failures.

    Processing continues past failures; items that succeeded are never
    rolled back. The overall operation is ERROR if any item failed.

    Attributes:
        total: Number of items attempted.
        succeeded: Number of items that went through.
        skipped: Number of items left alone because nothing had to change.
        failures: (id, cause) for every item that failed.
    """

    total: int = 0
    succeeded: int = 0
    skipped: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def operation(self) -> Operation:
        return Operation.ERROR if self.failures else Operation.SUCCESS

    @property
    def failed_ids(self) -> List[str]:
        return [item_id for item_id, _ in self.failures]

    def record_success(self) -> None:
        self.total += 1
        self.succeeded += 1

    def record_skip(self) -> None:
        self.total += 1
        self.skipped += 1

    def record_failure(self, item_id: str, error: Exception) -> None:
        self.total += 1
        self.failures.append((item_id, str(error)[:200]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation.value,
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed_ids": self.failed_ids,
        }
