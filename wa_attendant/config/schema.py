"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wa_attendant.prompts import SYSTEM_PROMPT


class BridgeConfig(BaseModel):
    """WhatsApp bridge connection configuration."""
    url: str = "ws://localhost:3001"
    token: str = ""  # Shared secret sent as the first frame (optional)
    reconnect_delay: float = 5.0  # Seconds to wait when the bridge itself is unreachable


class BackendConfig(BaseModel):
    """Gemini backend configuration."""
    model: str = "gemini-pro"
    api_base: str = "https://generativelanguage.googleapis.com/v1"
    timeout: float = 15.0
    system_prompt: str = SYSTEM_PROMPT


class PipelineConfig(BaseModel):
    """Inbound message handling policy."""
    cooldown: float = 15.0  # Seconds a sender stays gated after their reply
    min_delay: float = 3.0
    max_delay: float = 7.0
    segment_limit: int = Field(default=600, ge=1)
    history_prefix: str = "BAE5"  # Message ids replayed by the transport on reconnect


class StorageSettings(BaseSettings):
    """Credential location; readable without the Gemini key."""
    auth_dir: str = "./auth"

    @property
    def auth_path(self) -> Path:
        """Get expanded credential directory."""
        return Path(self.auth_dir).expanduser()

    @property
    def credentials_file(self) -> Path:
        return self.auth_path / "creds.json"

    model_config = SettingsConfigDict(
        env_prefix="WA_ATTENDANT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


class Config(StorageSettings):
    """Root configuration for wa-attendant."""
    gemini_key: str = Field(
        validation_alias=AliasChoices("GEMINI_KEY", "WA_ATTENDANT_GEMINI_KEY", "gemini_key"),
        min_length=1,
    )
    log_level: str = "INFO"
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
