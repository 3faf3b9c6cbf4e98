"""Configuration module for wa-attendant."""

from wa_attendant.config.loader import load_config, load_storage_settings
from wa_attendant.config.schema import (
    BackendConfig,
    BridgeConfig,
    Config,
    PipelineConfig,
    StorageSettings,
)

__all__ = [
    "Config",
    "BackendConfig",
    "BridgeConfig",
    "PipelineConfig",
    "StorageSettings",
    "load_config",
    "load_storage_settings",
]
