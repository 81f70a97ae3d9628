"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - The Atlas credential comes from the environment only (never hardcoded)
    - get_settings() is cached (lru_cache), one instance per process
    - Intervals, timeouts and capacities are strictly positive

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for everything except the Atlas key: absent key disables the feed
    - The roster default ships inside the package, so it resolves from any working directory
"""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Roster
    servers_file: Path = Path(__file__).resolve().parent / "data" / "servers.json"

    # Poller
    poll_interval_ms: int = 5000
    probe_timeout_ms: int = 4000
    history_capacity: int = 2000

    @field_validator(
        "poll_interval_ms", "probe_timeout_ms", "history_capacity",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    # RIPE Atlas (optional producer)
    ripe_atlas_key: str | None = None
    atlas_stream_url: str = (
        "wss://atlas-stream.ripe.net/stream/?client=latency-monitor"
    )
    atlas_api_url: str = "https://atlas.ripe.net/api/v2/"
    atlas_reconnect: bool = True
    atlas_backoff_base_ms: int = 1000
    atlas_backoff_max_ms: int = 60_000
    atlas_create_measurements: bool = False
    atlas_max_retries: int = 3

    @field_validator("ripe_atlas_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, v: str | None) -> str | None:
        """An empty RIPE_ATLAS_KEY disables the feed, same as an unset one."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # API
    cors_origins: list[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 8000

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def atlas_enabled(self) -> bool:
        return self.ripe_atlas_key is not None


@lru_cache
def get_settings() -> Settings:
    return Settings()
