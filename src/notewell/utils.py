"""Utility functions for Notewell."""
import re
from pathlib import Path
from typing import Iterable

# Characters that are illegal in file names on at least one supported platform
_ILLEGAL_FILENAME_CHARS = re.compile(r'[/\?<>\\:\*\|"]')
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x80-\x9f]")
_RESERVED_NAMES = re.compile(r"^\.+$")
_WINDOWS_RESERVED_NAMES = re.compile(
    r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE
)
_WINDOWS_TRAILING = re.compile(r"[\. ]+$")

MAX_FILENAME_BYTES = 255


def sanitize_filename(name: str) -> str:
    """Strip characters that cannot appear in a portable file name.

    Used for collection names, which become directory and database file
    names. Illegal and control characters are removed, names made of dots
    only and reserved device names are rejected (become empty), trailing
    dots and spaces are dropped and the result is capped at 255 bytes.

    Examples:
        "My: Notes?" -> "My Notes"
        "a/b\\\\c" -> "abc"
        ".." -> ""

    Args:
        name: The possibly dirty name.

    Returns:
        The sanitized name, or an empty string if nothing usable remains.
    """
    if not name:
        return ""

    result = _ILLEGAL_FILENAME_CHARS.sub("", name)
    result = _CONTROL_CHARS.sub("", result)
    if _RESERVED_NAMES.match(result) or _WINDOWS_RESERVED_NAMES.match(result):
        return ""
    result = _WINDOWS_TRAILING.sub("", result)

    # Truncate on a character boundary so the UTF-8 encoding fits
    encoded = result.encode("utf-8")
    if len(encoded) > MAX_FILENAME_BYTES:
        result = encoded[:MAX_FILENAME_BYTES].decode("utf-8", errors="ignore")

    return result


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\% complete'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def contains_all(text: str, pieces: Iterable[str]) -> bool:
    """Return True if every piece is a substring of text."""
    return all(piece in text for piece in pieces)


def collection_to_path(storage_directory: Path, collection: str) -> Path:
    """Directory of a collection inside the storage root."""
    return Path(storage_directory) / collection


def is_inside(child: Path, parent: Path) -> bool:
    """True if child is a strict descendant of parent (after resolving)."""
    try:
        resolved_child = Path(child).resolve()
        resolved_parent = Path(parent).resolve()
    except OSError:
        return False
    if resolved_child == resolved_parent:
        return False
    return resolved_parent in resolved_child.parents
