"""
Application settings loaded from environment variables.

Uses pydantic-settings for type coercion and validation. Every field can
be overridden with an environment variable prefixed with ``RAWDAH_``
(e.g. ``RAWDAH_HTTP_TIMEOUT=20``) or through a local ``.env`` file.
Nested ``fetch_policies`` accept a JSON object.
"""

from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetchPolicy(BaseModel):
    """Cache TTL and retry budget for one source chain."""

    ttl_minutes: float = Field(..., gt=0, description="Cache TTL (minutes)")
    retries: int = Field(..., ge=1, description="Hard upper bound on tries")
    initial_delay: float = Field(
        1.0, ge=0, description="Wait before the 2nd try (seconds)"
    )
    backoff_factor: float = Field(
        2.0, ge=1, description="Multiplier applied to each further wait"
    )


# Values tuned per upstream: cheap/critical sources get more tries,
# yearly aggregates are cached for a full day.
DEFAULT_FETCH_POLICIES: dict[str, FetchPolicy] = {
    "weather": FetchPolicy(
        ttl_minutes=10, retries=10, initial_delay=2.0, backoff_factor=2
    ),
    "point_temperature": FetchPolicy(
        ttl_minutes=5, retries=2, initial_delay=1.0, backoff_factor=2
    ),
    "air_quality": FetchPolicy(
        ttl_minutes=15, retries=8, initial_delay=3.0, backoff_factor=2
    ),
    "climate_daily": FetchPolicy(
        ttl_minutes=60, retries=8, initial_delay=3.0, backoff_factor=2
    ),
    "climate_year": FetchPolicy(
        ttl_minutes=1440, retries=2, initial_delay=1.5, backoff_factor=2
    ),
    "vegetation_index": FetchPolicy(
        ttl_minutes=1440, retries=3, initial_delay=2.0, backoff_factor=2
    ),
}


class Settings(BaseSettings):
    """Environment-driven configuration for the RawdahScope core."""

    model_config = SettingsConfigDict(
        env_prefix="RAWDAH_", env_file=".env", extra="ignore"
    )

    # Study area (Riyadh city centre)
    location_lat: float = Field(24.7136, ge=-90, le=90)
    location_lng: float = Field(46.6753, ge=-180, le=180)
    timezone: str = "Asia/Riyadh"

    # Upstream access
    http_timeout: float = Field(10.0, gt=0)
    user_agent: str = "RawdahScope-Dashboard/1.0"
    # MET Norway terms ask for an identifying agent with contact details
    met_norway_user_agent: str | None = None
    waqi_token: str = "demo"
    owm_api_key: str = "demo"

    # Refresh behaviour
    background_refresh_minutes: float = Field(10.0, gt=0)
    background_domains: list[str] = Field(
        default_factory=lambda: [
            "heat_map",
            "surface_temperature",
            "air_quality",
        ]
    )
    heat_map_batch_size: int = Field(5, ge=1)
    heat_map_batch_pause: float = Field(0.5, ge=0)
    vegetation_years: int = Field(6, ge=1)
    retry_jitter: bool = False

    fetch_policies: dict[str, FetchPolicy] = Field(
        default_factory=lambda: dict(DEFAULT_FETCH_POLICIES)
    )

    # Logging
    log_level: str = "INFO"
    log_dir: str | None = "logs"
    json_logs: bool = False

    @field_validator("fetch_policies", mode="after")
    @classmethod
    def fill_missing_policies(
        cls, v: dict[str, FetchPolicy]
    ) -> dict[str, FetchPolicy]:
        """Overrides may name a subset of chains; keep defaults for the rest."""
        merged = dict(DEFAULT_FETCH_POLICIES)
        merged.update(v)
        return merged

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    def policy_for(self, chain: str) -> FetchPolicy:
        """Return the fetch policy for a source chain."""
        try:
            return self.fetch_policies[chain]
        except KeyError:
            msg = f"No fetch policy configured for chain '{chain}'"
            raise KeyError(msg) from None

    def local_today(self) -> date:
        """Calendar date in the dashboard timezone, not the host's."""
        return datetime.now(ZoneInfo(self.timezone)).date()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily build the process-wide settings."""
    return Settings()
