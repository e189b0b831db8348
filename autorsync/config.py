"""Process settings loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE = ".autorsync"
DEFAULT_RSYNC_PATH = "/usr/bin/rsync"


class Settings(BaseSettings):
    """autorsync process settings.

    Every field can be set through an ``AUTORSYNC_``-prefixed environment
    variable; command-line flags take precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTORSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_file: Path = Path(DEFAULT_CONFIG_FILE)
    rsync_path: str = DEFAULT_RSYNC_PATH
    debug: bool = False

    # Capacity of the queue between the watchdog thread and the event router.
    # A full queue blocks the observer thread until the router catches up.
    event_buffer_size: int = Field(default=1024, ge=1)
