"""Storage layer for Notewell: metadata store, content files and settings."""

from notewell.storage.content_store import ContentFileStore
from notewell.storage.data_store import DataStore
from notewell.storage.settings_store import SettingsStore

__all__ = [
    "ContentFileStore",
    "DataStore",
    "SettingsStore",
]
