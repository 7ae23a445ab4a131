"""
Configuration settings for the moneyline arbitrage finder.
Uses pydantic-settings for validation and environment variable loading.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OddsAPISettings(BaseSettings):
    """The Odds API connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="ODDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str = Field(
        default="",
        description="The Odds API key (sent as the apiKey query param)",
    )
    base_url: str = "https://api.the-odds-api.com/v4"
    timeout_seconds: float = 15.0

    # Query defaults for /sports/{sport}/odds
    regions: str = "us"
    markets: str = "h2h"
    odds_format: str = "american"
    date_format: str = "iso"


class RedisSettings(BaseSettings):
    """Cache store settings (single node or cluster)."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # REDIS_URL, or REDIS_HOST + REDIS_PORT
    url: str = "redis://localhost:6379"
    host: str = ""
    port: int = 6379

    # Force cluster mode; also auto-enabled for ElastiCache "clustercfg" endpoints
    cluster: bool = False
    ssl: bool = False

    # Seconds; a stalled store then reads as a cache miss
    socket_connect_timeout: float = 2.0
    socket_timeout: float = 2.0

    # Cache entry lifetime
    ttl_seconds: int = 900  # 15 minutes
    key_prefix: str = "odds:"


class WorkerSettings(BaseSettings):
    """Cache warm-up worker settings."""

    model_config = SettingsConfigDict(env_prefix="WORKER_", extra="ignore")

    enabled: bool = True
    interval_seconds: float = 3600.0  # hourly, aligned to the wall clock
    inter_call_delay_seconds: float = 1.0  # be polite to the upstream quota

    # Highest-traffic markets kept warm in the cache
    priority_sports: list[str] = Field(default_factory=lambda: [
        "basketball_nba",
        "americanfootball_nfl",
        "soccer_epl",
        "baseball_mlb",
        "icehockey_nhl",
    ])

    # Query used for each warm-up fetch
    regions: str = "us"
    markets: str = "h2h"


class ArbSettings(BaseSettings):
    """Arbitrage computation defaults."""

    model_config = SettingsConfigDict(env_prefix="ARB_", extra="ignore")

    bankroll: float = 100.0
    rounding_unit: float = 1.0
    require_positive_rounded: bool = True

    # Sports scanned by the entry point (empty = warm-up only)
    scan_sports: list[str] = Field(default_factory=list)
    scan_interval_seconds: float = 300.0

    @field_validator("bankroll", "rounding_unit")
    @classmethod
    def at_least_one(cls, v: float) -> float:
        return max(1.0, v)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )

    # Debug settings
    debug: bool = False
    log_level: str = "INFO"

    # Sub-settings
    odds_api: OddsAPISettings = Field(default_factory=OddsAPISettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    arb: ArbSettings = Field(default_factory=ArbSettings)

    @property
    def has_api_key(self) -> bool:
        return bool(self.odds_api.api_key)


# Global settings instance
settings = Settings()

