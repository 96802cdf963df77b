"""YAML-backed user settings shared by every window."""
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from notewell.config import config

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "storage_directory": "",
    "active_collection": "",
    "use_exact_dates": False,
    "font_size": 14,
    "close_notes_with_escape": False,
}


class SettingsStore:
    """Settings persisted in a YAML document.

    Every assignment is written through immediately so that other windows
    reading the same file observe it.
    """

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = Path(settings_path or config.settings_path)
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = self._load()

        if not self._values.get("storage_directory") and config.storage_directory:
            self._values["storage_directory"] = str(config.storage_directory)

    def _load(self) -> Dict[str, Any]:
        values = dict(DEFAULT_SETTINGS)
        if not self.settings_path.exists():
            return values
        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read settings from {self.settings_path}: {e}")
            return values
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed settings file {self.settings_path}")
            return values
        values.update({k: v for k, v in data.items() if k in DEFAULT_SETTINGS})
        return values

    def _save(self) -> None:
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.settings_path.with_suffix(".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._values, f, default_flow_style=False, allow_unicode=True)
        os.replace(temp_file, self.settings_path)

    def get(self, key: str) -> Any:
        with self._lock:
            return self._values.get(key, DEFAULT_SETTINGS.get(key))

    def set(self, key: str, value: Any) -> None:
        if key not in DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting '{key}'")
        with self._lock:
            self._values[key] = value
            self._save()

    @property
    def storage_directory(self) -> str:
        return self.get("storage_directory") or ""

    @storage_directory.setter
    def storage_directory(self, value: str) -> None:
        self.set("storage_directory", str(value) if value else "")

    @property
    def active_collection(self) -> str:
        return self.get("active_collection") or ""

    @active_collection.setter
    def active_collection(self, value: str) -> None:
        self.set("active_collection", value or "")

    @property
    def use_exact_dates(self) -> bool:
        return bool(self.get("use_exact_dates"))

    @use_exact_dates.setter
    def use_exact_dates(self, value: bool) -> None:
        self.set("use_exact_dates", bool(value))

    @property
    def font_size(self) -> int:
        return int(self.get("font_size"))

    @font_size.setter
    def font_size(self, value: int) -> None:
        self.set("font_size", int(value))

    @property
    def close_notes_with_escape(self) -> bool:
        return bool(self.get("close_notes_with_escape"))

    @close_notes_with_escape.setter
    def close_notes_with_escape(self, value: bool) -> None:
        self.set("close_notes_with_escape", bool(value))
