"""Configuration module for Notewell."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notewell import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives reinstalls, lives alongside the settings file
_USER_ENV = Path.home() / ".notewell" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)


class NotewellConfig(BaseModel):
    """Configuration for Notewell."""

    # Base directory for relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEWELL_BASE_DIR", "."))
    )
    # YAML file holding the user settings (active collection, storage root, ...)
    settings_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv(
                "NOTEWELL_SETTINGS_PATH",
                str(Path.home() / ".notewell" / "settings.yaml"),
            )
        )
    )
    # Storage root used when the settings file doesn't name one yet
    storage_directory: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEWELL_STORAGE_DIR"))
            if os.getenv("NOTEWELL_STORAGE_DIR")
            else None
        )
    )
    # Collection layout
    default_collection: str = Field(
        default=os.getenv("NOTEWELL_DEFAULT_COLLECTION", "Default")
    )
    collections_directory: str = Field(default="Collections")
    content_extension: str = Field(default=".content")
    state_extension: str = Field(default=".state")
    # Event relay: bounded queue size of a window channel
    relay_channel_size: int = Field(
        default_factory=lambda: int(os.getenv("NOTEWELL_RELAY_CHANNEL_SIZE", "256"))
    )
    # Seconds a concurrent initializer (or a blocking relay call) waits
    initialize_timeout: float = Field(
        default_factory=lambda: float(os.getenv("NOTEWELL_INITIALIZE_TIMEOUT", "30"))
    )
    # Logging
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEWELL_LOG_DIR", str(Path.home() / ".notewell" / "logs"))
        )
    )
    log_level: str = Field(default=os.getenv("NOTEWELL_LOG_LEVEL", "INFO"))
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTEWELL_SERVER_NAME", "notewell"))
    server_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_layout(self) -> "NotewellConfig":
        """Validate relay sizing and file extensions."""
        if self.relay_channel_size < 1:
            raise ValueError("relay_channel_size must be >= 1")
        if self.initialize_timeout <= 0:
            raise ValueError("initialize_timeout must be > 0")
        for name in ("content_extension", "state_extension"):
            if not getattr(self, name).startswith("."):
                raise ValueError(f"{name} must start with '.'")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self, database_file: Path) -> str:
        """Get the SQLite URL for a collection database file."""
        db_path = self.get_absolute_path(database_file)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NotewellConfig()
