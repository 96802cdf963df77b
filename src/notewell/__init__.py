"""
Notewell - a multi-window note keeper.
This package implements the storage and synchronization core shared by every
note window: collections of notebooks and notes kept in a per-collection
SQLite metadata store, with one rich-content file per note next to it.

Windows never touch storage directly; they talk to the coordinator through
the event relay.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notewell")
except PackageNotFoundError:
    __version__ = "1.0.0"
