"""Free-text filtering of note listings."""

import logging
import threading
from typing import List

from notewell.models.schema import Note
from notewell.services.relay import Signal
from notewell.utils import contains_all

logger = logging.getLogger(__name__)


class SearchService:
    """Holds the single, global search query and filters notes with it.

    The query is split on whitespace; a note matches when every token is a
    substring of its title followed by its text. Matching is case sensitive
    as typed.
    """

    def __init__(self):
        self._search_text = ""
        self._lock = threading.Lock()
        self.search_text_changed = Signal("search_text_changed")

    @property
    def search_text(self) -> str:
        with self._lock:
            return self._search_text

    @search_text.setter
    def search_text(self, value: str) -> None:
        with self._lock:
            changed = value != self._search_text
            self._search_text = value or ""
        if changed:
            logger.debug(f"Search text set to '{value}'")
            self.search_text_changed.emit(self._search_text)

    def filter_notes(self, notes: List[Note], search_text: str = None) -> List[Note]:
        """Filter notes by the given query, or the active one.

        No query (or whitespace only) returns the input list unchanged.
        """
        query = self.search_text if search_text is None else search_text
        if not query or not query.strip():
            return notes

        pieces = query.split()
        return [note for note in notes if contains_all(f"{note.title} {note.text}", pieces)]
