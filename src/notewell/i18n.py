"""String lookup for the few texts the collection service produces itself."""
import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STRINGS: Dict[str, str] = {
    "MainPage.AllNotes": "All Notes",
    "MainPage.UnfiledNotes": "Unfiled Notes",
    "NoteDates.LongAgo": "Long ago",
    "NoteDates.MonthsAgo": "{count} months ago",
    "NoteDates.WeeksAgo": "{count} weeks ago",
    "NoteDates.LastWeek": "Last week",
    "NoteDates.DaysAgo": "{count} days ago",
    "NoteDates.Yesterday": "Yesterday",
    "NoteDates.Today": "Today",
    "Notes.Imported": "Imported",
}


class Translator:
    """Looks up localized strings by key, substituting {placeholders}."""

    def __init__(self, strings: Optional[Dict[str, str]] = None):
        self._strings = dict(DEFAULT_STRINGS)
        if strings:
            self._strings.update(strings)

    @classmethod
    def from_yaml(cls, path: Path) -> "Translator":
        """Load overrides from a flat YAML mapping of key -> text."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load translations from {path}: {e}")
            data = {}
        return cls({str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else None)

    def get(self, key: str, **params) -> str:
        """Return the text for key. Unknown keys come back unchanged."""
        text = self._strings.get(key)
        if text is None:
            return key
        if params:
            try:
                return text.format(**params)
            except (KeyError, IndexError, ValueError):
                logger.warning(f"Bad placeholders in translation '{key}'")
        return text
