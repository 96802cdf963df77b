"""Unique note titles within a collection."""

from typing import Iterable


def unique_new_note_title(base_title: str, existing_titles: Iterable[str]) -> str:
    """Title for a brand new note: "<base> 1", "<base> 2", ... first free one."""
    taken = set(existing_titles)
    counter = 1
    title = f"{base_title} {counter}"
    while title in taken:
        counter += 1
        title = f"{base_title} {counter}"
    return title


def unique_note_title(base_title: str, existing_titles: Iterable[str]) -> str:
    """Title for a renamed or imported note.

    The base title itself if free, else "<base> (1)", "<base> (2)", ...
    """
    taken = set(existing_titles)
    counter = 0
    title = base_title
    while title in taken:
        counter += 1
        title = f"{base_title} ({counter})"
    return title
