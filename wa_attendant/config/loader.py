"""Configuration loading."""

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wa_attendant.config.schema import Config, StorageSettings
from wa_attendant.errors import ConfigError


def load_config(env_file: str | Path | None = ".env", **overrides: Any) -> Config:
    """
    Load configuration from the environment and an optional .env file.

    Args:
        env_file: Dotenv file to read; None disables it.
        **overrides: Explicit values that take precedence over the environment.

    Returns:
        Validated configuration.

    Raises:
        ConfigError: If the Gemini API key is missing or any value is invalid.
    """
    try:
        return Config(_env_file=env_file, **overrides)
    except ValidationError as e:
        missing_key = any(
            str(err.get("loc", ("",))[0]).lower().endswith("gemini_key")
            for err in e.errors()
        )
        if missing_key:
            raise ConfigError(
                "GEMINI_KEY is not set.",
                "Export GEMINI_KEY or add GEMINI_KEY=... to the .env file.",
            ) from e
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_storage_settings(env_file: str | Path | None = ".env", **overrides: Any) -> StorageSettings:
    """Load only the credential location; does not require GEMINI_KEY."""
    try:
        return StorageSettings(_env_file=env_file, **overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
