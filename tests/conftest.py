"""Common test fixtures for Notewell."""

from pathlib import Path

import pytest

from notewell.config import config
from notewell.observability import metrics
from notewell.services.collection_service import CollectionService
from notewell.services.relay import EventRelay
from notewell.services.search_service import SearchService
from notewell.storage.data_store import DataStore
from notewell.storage.settings_store import SettingsStore
from tests.fakes import RecordingWindow


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at temporary paths (auto-restored)."""
    monkeypatch.setattr(config, "settings_path", tmp_path / "settings.yaml")
    monkeypatch.setattr(config, "storage_directory", None)
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    monkeypatch.setattr(config, "initialize_timeout", 5.0)
    yield config


@pytest.fixture
def storage_root(tmp_path) -> Path:
    """An existing, empty storage root."""
    root = tmp_path / "Collections"
    root.mkdir()
    return root


@pytest.fixture
def settings(test_config, storage_root) -> SettingsStore:
    """Settings with the storage root already chosen."""
    store = SettingsStore(test_config.settings_path)
    store.storage_directory = str(storage_root)
    return store


@pytest.fixture
def relay() -> EventRelay:
    return EventRelay()


@pytest.fixture
def data_store(tmp_path):
    """An open metadata store on a temporary database."""
    store = DataStore()
    store.initialize(tmp_path / "test.db")
    yield store
    store.close()


@pytest.fixture
def collection_service(settings, relay):
    """A collection service with the default collection open."""
    service = CollectionService(settings, relay, search_service=SearchService())
    service.initialize()
    yield service
    service.data_store.close()


@pytest.fixture
def window(relay):
    """A note window listening on the relay."""
    recorder = RecordingWindow(relay)
    yield recorder
    recorder.close()


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
