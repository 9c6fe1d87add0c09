# config.py
#
# Description: Configuration for the Cohere chat client. Settings come from
#              environment variables or from the key=value config file that
#              onboarding writes. The settings object is loaded once at
#              startup and passed to whatever needs it.
#

# --------------------------------------------------------------------------- #
# imports
# --------------------------------------------------------------------------- #
from __future__ import annotations  # enable postponed evaluation of annotations
import logging                      # to report config writes
import os                           # for directory permissions
from pathlib import Path            # for handling filesystem paths
from typing import List, Optional, Union

from dotenv import set_key          # to rewrite single keys in the config file
from pydantic import Field          # to define configuration fields
from pydantic_settings import BaseSettings, SettingsConfigDict  # for loading settings from env

from errors import StorageError
from history_utils import DEFAULT_MODEL

logger = logging.getLogger(__name__)

ENV_PREFIX = "COHERE_"
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cohere-cli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.env"

# keys that onboarding asks about when they are unset
ONBOARDING_KEYS = ("api_key", "inject_location", "inject_time", "debug_mode")

# --------------------------------------------------------------------------- #
# settings
# --------------------------------------------------------------------------- #
class AppConfig(BaseSettings):
    """
    Load all client settings from environment variables or the config file.
    The boolean preferences are tri-state: None means the user has not been
    asked yet.

    Returns:
        AppConfig: A populated and validated settings instance.
    """

    # --- Credentials ---
    api_key: Optional[str] = Field(
        default=None,
        description="Cohere API key, sent as a bearer token."
    )

    # --- Preferences ---
    inject_location: Optional[bool] = Field(
        default=None,
        description="Add the current city to the preamble."
    )
    inject_time: Optional[bool] = Field(
        default=None,
        description="Add the local time/date to the preamble."
    )
    debug_mode: Optional[bool] = Field(
        default=None,
        description="Show raw diagnostics and write debug files."
    )
    default_model: str = Field(
        default=DEFAULT_MODEL,
        description="Model used at startup; updated on every successful switch."
    )

    # --- API Settings ---
    api_base_url: str = Field(
        default="https://api.cohere.ai",
        description="Base URL of the Cohere API."
    )
    request_timeout: int = Field(
        default=60,
        description="Request timeout for chat calls in seconds."
    )
    location_url: str = Field(
        default="https://ipinfo.io/city",
        description="Endpoint returning the current city as plain text."
    )
    location_timeout: float = Field(
        default=3.0,
        description="Timeout for the location lookup in seconds."
    )

    # --- Storage ---
    config_dir: Path = Field(
        default=DEFAULT_CONFIG_DIR,
        description="Directory holding the config file, transcript and debug files."
    )
    resume_transcript: bool = Field(
        default=True,
        description="Reload the previous transcript at startup instead of starting fresh."
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=DEFAULT_CONFIG_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def transcript_file(self) -> Path:
        return self.config_dir / "chat-memory.json"

    @property
    def debug_dir(self) -> Path:
        return self.config_dir / "debug"

    @property
    def debug(self) -> bool:
        return bool(self.debug_mode)


# --------------------------------------------------------------------------- #
# helpers
# --------------------------------------------------------------------------- #
def load_settings(config_file: Optional[Path] = None) -> AppConfig:
    """Read settings, using `config_file` instead of the default env file."""
    return AppConfig(_env_file=config_file or DEFAULT_CONFIG_FILE)  # type: ignore[call-arg]


def ensure_directories(settings: AppConfig) -> None:
    """Create the private config and debug directories, or raise StorageError."""
    try:
        for directory in (settings.config_dir, settings.debug_dir):
            directory.mkdir(parents=True, exist_ok=True)
            os.chmod(directory, 0o700)
    except OSError as e:
        raise StorageError(f"Cannot create config directory {settings.config_dir}: {e}") from e


def missing_preferences(settings: AppConfig) -> List[str]:
    return [key for key in ONBOARDING_KEYS if getattr(settings, key) is None]


def set_config_var(config_file: Path, key: str, value: Union[str, bool]) -> None:
    """Write or replace one setting in the key=value config file."""
    if isinstance(value, bool):
        value = "true" if value else "false"
    env_key = f"{ENV_PREFIX}{key.upper()}"
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        if not config_file.exists():
            config_file.write_text("# Stored by cohere-chat\n", encoding="utf-8")
        os.chmod(config_file, 0o600)
        set_key(str(config_file), env_key, value, quote_mode="always")
    except OSError as e:
        raise StorageError(f"Cannot write config file {config_file}: {e}") from e
    logger.info("Config value stored", extra={"key": env_key})
