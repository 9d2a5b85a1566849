"""Application settings loaded from environment variables.

Hey future me - every policy knob of the sync engine lives here! Batch size,
coalescing TTL and the cache-buster window used to be magic numbers sprinkled
over the fetch code. The right values depend on how much the relay can take,
so they are configuration now.

Environment variables use the ADDONSYNC_ prefix and "__" for nesting:

    ADDONSYNC_UPDATE_CHECK__BATCH_SIZE=20
    ADDONSYNC_MANIFEST__RELAY_URL=https://relay.example.com/api/meta-proxy
    ADDONSYNC_LOG_LEVEL=DEBUG
"""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ManifestSettings(BaseModel):
    """Manifest fetch policy (transport, cache-busting, retries)."""

    relay_url: str = Field(
        default="http://localhost:3000/api/meta-proxy",
        description="Relay endpoint that returns the body of ?url=<target> verbatim",
    )
    # Origins that send proper CORS headers (official services) skip the relay.
    direct_fetch_domains: list[str] = Field(
        default_factory=lambda: ["v3-cinemeta.strem.io", "cinemeta.strem.io", "strem.io"]
    )
    manifest_filename: str = "manifest.json"
    cache_bust_param: str = "cb"
    cache_bust_window_seconds: int = Field(default=1800, gt=0)
    retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    max_retry_after_seconds: float = Field(default=30.0, ge=0.0)
    timeout_seconds: float = Field(default=15.0, gt=0.0)
    context_header: str = "x-account-context"

    @field_validator("direct_fetch_domains")
    @classmethod
    def _lowercase_domains(cls, value: list[str]) -> list[str]:
        return [domain.strip().lower() for domain in value if domain.strip()]


class HealthSettings(BaseModel):
    """Origin reachability probe settings."""

    timeout_seconds: float = Field(default=10.0, gt=0.0)
    # Concurrency for bulk library health refreshes (not for update checks).
    concurrency_limit: int = Field(default=5, gt=0)


class CoalescingSettings(BaseModel):
    """In-flight request coalescing settings."""

    ttl_seconds: float = Field(default=5.0, gt=0.0)
    sweep_interval_seconds: float = Field(default=30.0, gt=0.0)


class UpdateCheckSettings(BaseModel):
    """Batch update-check settings."""

    batch_size: int = Field(default=10, gt=0)
    account_context: str = "Update-Check"
    library_context: str = "Library-Update-Check"


class StremioSettings(BaseModel):
    """Account provider (login + addon collection) settings."""

    api_base_url: str = "https://api.strem.io"
    proxy_base_url: str = "http://localhost:3000/api"
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class HttpPoolSettings(BaseModel):
    """Shared HTTP client limits."""

    # An update check keeps batch_size manifest fetches plus their health probes
    # in flight, so max_connections must stay well above update_check.batch_size.
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    max_keepalive_connections: int = Field(default=20, ge=0)
    max_connections: int = Field(default=50, gt=0)
    http2: bool = True
    user_agent: str = "addonsync"


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="ADDONSYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "addonsync"
    log_level: str = "INFO"
    log_json: bool = False

    manifest: ManifestSettings = Field(default_factory=ManifestSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    coalescing: CoalescingSettings = Field(default_factory=CoalescingSettings)
    update_check: UpdateCheckSettings = Field(default_factory=UpdateCheckSettings)
    stremio: StremioSettings = Field(default_factory=StremioSettings)
    http: HttpPoolSettings = Field(default_factory=HttpPoolSettings)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


# Hey future me, settings are read ONCE per process. Tests that need other values
# should build Settings(...) directly and inject it instead of poking os.environ
# (or call get_settings.cache_clear() afterwards).
@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
