"""Lifecycle of named collections: storage directories and their databases."""

import logging
import shutil
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Callable, List, Optional

from notewell.config import config
from notewell.exceptions import CollectionError, ErrorCode
from notewell.models.schema import LifecycleState, Operation
from notewell.services.relay import Signal
from notewell.storage.settings_store import SettingsStore
from notewell.utils import collection_to_path, is_inside, sanitize_filename

logger = logging.getLogger(__name__)

# SQLite sidecar files that travel with a database file
_DATABASE_SUFFIXES = ("", "-wal", "-shm")


class CollectionManager:
    """Creates, activates, renames and deletes collections.

    A collection is a directory under the storage root holding a
    <collection>.db database and the note content files. Exactly one
    collection is active; its name and the storage root live in the
    settings.

    initialize() moves UNINITIALIZED -> INITIALIZING -> INITIALIZED. Any
    change of the active collection invalidates it (INITIALIZED ->
    REINITIALIZING) so the next caller initializes again. Concurrent
    callers share one Future: the first one does the work, the others wait
    for its outcome.
    """

    def __init__(
        self,
        settings: SettingsStore,
        open_collection: Optional[Callable[[str, Path], None]] = None,
        close_collection: Optional[Callable[[], None]] = None,
    ):
        """Initialize the manager.

        Args:
            settings: Holds the storage root and the active collection name.
            open_collection: Called with (name, directory) when a collection
                becomes initialized. Opens the stores and registers handlers.
            close_collection: Called before collection files are moved or
                removed. Must release open database handles.
        """
        self.settings = settings
        self._open_collection = open_collection
        self._close_collection = close_collection
        self._state = LifecycleState.UNINITIALIZED
        self._future: Optional[Future] = None
        self._generation = 0
        self._lock = threading.Lock()
        self.collections_changed = Signal("collections_changed")

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    @property
    def is_initialized(self) -> bool:
        return self.state == LifecycleState.INITIALIZED

    # =========================================================================
    # Storage root
    # =========================================================================

    @property
    def storage_directory(self) -> Path:
        return Path(self.settings.storage_directory)

    def has_storage_directory(self) -> bool:
        """True if a storage root is configured and exists on disk."""
        storage_directory = self.settings.storage_directory
        if not storage_directory:
            logger.info("Storage directory setting is empty")
            return False

        if not Path(storage_directory).is_dir():
            logger.info(f"Storage directory '{storage_directory}' is not found on disk")
            return False

        return True

    def set_storage_directory(self, parent_directory: Path) -> bool:
        """Create <parent>/Collections and make it the storage root."""
        storage_directory = Path(parent_directory) / config.collections_directory
        try:
            storage_directory.mkdir(parents=True, exist_ok=True)
            self.settings.storage_directory = str(storage_directory)
        except OSError as e:
            logger.error(f"Could not create storage directory '{storage_directory}'. Cause: {e}")
            return False

        logger.info(f"Saved storage directory '{storage_directory}' in settings")
        self._invalidate()
        return True

    def get_collections(self) -> List[str]:
        """Names of the collection directories under the storage root."""
        if not self.has_storage_directory():
            return []
        return sorted(p.name for p in self.storage_directory.iterdir() if p.is_dir())

    def collection_exists(self, collection: str) -> bool:
        """Case-insensitive existence check."""
        key = collection.casefold()
        return any(c.casefold() == key for c in self.get_collections())

    def get_active_collection(self) -> str:
        return self.settings.active_collection

    def collection_directory(self, collection: Optional[str] = None) -> Path:
        return collection_to_path(self.storage_directory, collection or self.get_active_collection())

    def database_file(self, collection: Optional[str] = None) -> Path:
        collection = collection or self.get_active_collection()
        return self.collection_directory(collection) / f"{collection}.db"

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self, timeout: Optional[float] = None) -> str:
        """Make sure the active collection is open.

        No-op when already initialized. When another caller is initializing,
        waits for that attempt and shares its outcome.

        Returns:
            The name of the active collection.

        Raises:
            CollectionError: If there is no storage root, or a concurrent
                initialization doesn't finish in time.
        """
        with self._lock:
            if self._state == LifecycleState.INITIALIZED:
                return self.settings.active_collection
            if self._state == LifecycleState.INITIALIZING:
                future = self._future
                owner = False
            else:
                if self._state == LifecycleState.REINITIALIZING:
                    logger.info("Active collection changed, re-initializing")
                self._state = LifecycleState.INITIALIZING
                future = Future()
                self._future = future
                generation = self._generation
                owner = True

        if not owner:
            try:
                return future.result(timeout=timeout or config.initialize_timeout)
            except FutureTimeoutError as e:
                raise CollectionError(
                    "Timed out waiting for collection initialization",
                    code=ErrorCode.COLLECTION_NOT_INITIALIZED,
                ) from e

        try:
            collection, directory = self._resolve_active_collection()
            if self._open_collection is not None:
                self._open_collection(collection, directory)
        except Exception as e:
            with self._lock:
                self._state = LifecycleState.UNINITIALIZED
                self._future = None
            future.set_exception(e)
            raise

        with self._lock:
            if self._generation == generation:
                self._state = LifecycleState.INITIALIZED
            else:
                # The active collection changed while we were opening it
                self._state = LifecycleState.REINITIALIZING
            self._future = None
        future.set_result(collection)
        logger.info(f"Initialized collection '{collection}'")
        return collection

    def _resolve_active_collection(self):
        """Pick the active collection, falling back to the first or a default one."""
        if not self.has_storage_directory():
            raise CollectionError(
                "No storage directory is configured",
                code=ErrorCode.STORAGE_DIRECTORY_MISSING,
            )

        storage_directory = self.storage_directory
        collection = self.settings.active_collection

        if collection:
            directory = collection_to_path(storage_directory, collection)
            if is_inside(directory, storage_directory) and directory.is_dir():
                return collection, directory
            logger.warning(f"Active collection '{collection}' is not usable, falling back")

        collections = self.get_collections()
        collection = collections[0] if collections else config.default_collection
        directory = collection_to_path(storage_directory, collection)
        self.settings.active_collection = collection

        if not directory.exists():
            directory.mkdir(parents=True)
            logger.info(f"Created collection directory '{directory}'")

        return collection, directory

    def _invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            if self._state == LifecycleState.INITIALIZED:
                self._state = LifecycleState.REINITIALIZING

    def _release(self) -> None:
        if self._close_collection is not None:
            self._close_collection()

    # =========================================================================
    # Collection operations
    # =========================================================================

    def add_collection(self, possibly_dirty_collection: str) -> Operation:
        """Create a collection directory and activate it."""
        if not possibly_dirty_collection:
            logger.error("Collection name is empty")
            return Operation.ERROR

        collection = sanitize_filename(possibly_dirty_collection)
        if not collection:
            logger.error(f"Collection name '{possibly_dirty_collection}' has no usable characters")
            return Operation.ERROR

        try:
            if self.collection_exists(collection):
                logger.info(f"Not adding collection '{collection}' because it already exists")
                return Operation.DUPLICATE

            self.collection_directory(collection).mkdir()
            logger.info(f"Added collection '{collection}'")
            self.settings.active_collection = collection
        except OSError as e:
            logger.error(f"Could not add collection '{collection}'. Cause: {e}")
            return Operation.ERROR

        self._invalidate()
        self.collections_changed.emit()
        return Operation.SUCCESS

    def rename_collection(self, initial_collection: str, final_collection: str) -> Operation:
        """Rename the directory and database file of a collection.

        The database file is moved first: its new path is computed inside the
        old directory, which is then moved as a whole.
        """
        if not final_collection:
            logger.error("Final collection name is empty")
            return Operation.ERROR

        final_collection = sanitize_filename(final_collection)
        if not final_collection:
            return Operation.ERROR

        if initial_collection.casefold() == final_collection.casefold():
            return Operation.ABORTED

        try:
            if self.collection_exists(final_collection):
                return Operation.DUPLICATE

            source_directory = self.collection_directory(initial_collection)
            if not is_inside(source_directory, self.storage_directory) or not source_directory.is_dir():
                raise CollectionError(
                    f"Collection '{initial_collection}' not found",
                    collection=initial_collection,
                )

            self._release()
            try:
                self._move_collection(source_directory, initial_collection, final_collection)
            finally:
                # The store is closed; the next initialize() reopens it
                self._invalidate()
        except (OSError, CollectionError) as e:
            logger.error(
                f"Could not rename the collection '{initial_collection}' to "
                f"'{final_collection}'. Cause: {e}"
            )
            return Operation.ERROR

        logger.info(f"Renamed collection '{initial_collection}' to '{final_collection}'")
        self.collections_changed.emit()
        return Operation.SUCCESS

    def _move_collection(self, source_directory: Path, initial_collection: str, final_collection: str) -> None:
        """Move the database files, then the directory.

        If the directory can't be moved, the database files are moved back
        so the collection stays usable under its old name.
        """
        moved = []
        try:
            for suffix in _DATABASE_SUFFIXES:
                database_file = source_directory / f"{initial_collection}.db{suffix}"
                if database_file.exists():
                    target = source_directory / f"{final_collection}.db{suffix}"
                    shutil.move(str(database_file), str(target))
                    moved.append((database_file, target))
            shutil.move(str(source_directory), str(self.collection_directory(final_collection)))
        except OSError:
            for original, target in reversed(moved):
                try:
                    shutil.move(str(target), str(original))
                except OSError as e:
                    logger.error(f"Could not restore database file '{original.name}'. Cause: {e}")
            raise
        self.settings.active_collection = final_collection

    def delete_collection(self, collection: str) -> Operation:
        """Remove a collection directory and pick another active collection.

        Best effort: a failed removal is logged, the active collection is
        still reassigned and the change is still signalled.
        """
        operation = Operation.SUCCESS
        directory = self.collection_directory(collection)

        if not collection or not is_inside(directory, self.storage_directory):
            logger.error(f"Refusing to delete collection '{collection}' outside the storage directory")
            return Operation.ERROR

        try:
            self._release()
            shutil.rmtree(directory)
            logger.info(f"Deleted collection '{collection}'")
        except OSError as e:
            logger.error(f"Could not delete the collection '{collection}'. Cause: {e}")
            operation = Operation.ERROR

        try:
            collections = self.get_collections()
            self.settings.active_collection = collections[0] if collections else ""
        except OSError as e:
            logger.error(f"Could not reassign the active collection. Cause: {e}")
            operation = Operation.ERROR

        self._invalidate()
        self.collections_changed.emit()
        return operation

    def activate_collection(self, collection: str) -> None:
        """Make another collection active. Doesn't touch the disk."""
        self.settings.active_collection = collection
        self._invalidate()
        self.collections_changed.emit()
