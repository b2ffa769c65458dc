"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): single instance per process
    - max_json_size <= 0 means "use the default" (1 MiB); negatives are normalized to 0
    - The codec core never reads settings itself; Parser.from_settings bridges the two

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - PAYLOADKIT_ prefix: settings coexist with the host application's own environment
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Codec settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PAYLOADKIT_", env_file=".env", case_sensitive=False, extra="ignore",
    )

    # Decoder
    max_json_size: int = 0
    allow_unknown_fields: bool = False

    @field_validator("max_json_size")
    @classmethod
    def normalize_max_json_size(cls, v: int) -> int:
        """Negative sizes mean the same as unset."""
        return max(v, 0)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
