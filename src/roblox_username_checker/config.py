"""Configuration settings for Roblox Username Checker."""

from functools import lru_cache
from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from roblox_username_checker.schemas.enums import SchedulingStrategy

DEFAULT_RATE_LIMIT_MARKERS: tuple[str, ...] = (
    "Too Many Requests",
    "Rate limit",
    "429",
    "fra1::",
    "sspf4-",
    "<html",
    "<!DOCTYPE",
)
"""Body substrings that mark an upstream throttling or edge error page."""


class ValidatorConfig(BaseModel):
    """Configuration for the upstream username validation endpoint."""

    base_url: str = Field(
        default="https://auth.roblox.com/v1/usernames/validate",
        description="Username validation endpoint",
    )
    birthday: str = Field(
        default="2001-09-11",
        description="Constant birthday parameter required by the endpoint",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=120.0,
        description="Per-check request timeout",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        description="User-Agent header sent with each check",
    )

    # Response classification
    rate_limit_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RATE_LIMIT_MARKERS),
        description="Body substrings treated as rate limiting even on HTTP 200",
    )

    # Optional client-side pre-filter (empty disables it)
    blocked_words: list[str] = Field(
        default_factory=list,
        description="Words that mark a username as filtered without a network call",
    )


class PacingConfig(BaseModel):
    """Configuration for bulk check pacing and scheduling.

    Controls concurrency bounds, dispatch timing, rate limit backoff
    and the fixed-batch fallback strategy.
    """

    strategy: SchedulingStrategy = Field(
        default=SchedulingStrategy.ADAPTIVE,
        description="Scheduling policy for bulk checks",
    )

    # Concurrency window (adaptive)
    initial_concurrency: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Concurrent checks at batch start",
    )
    min_concurrency: int = Field(
        default=2,
        ge=1,
        le=64,
        description="Concurrency floor, applied immediately on rate limiting",
    )
    max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Concurrency ceiling",
    )
    speedup_threshold: int = Field(
        default=30,
        ge=1,
        description="Consecutive successes required before raising concurrency",
    )

    # Dispatch timing
    dispatch_interval_ms: int = Field(
        default=150,
        ge=0,
        description="Minimum milliseconds between dispatches",
    )
    rate_limit_delay_step_ms: int = Field(
        default=50,
        ge=0,
        description="Extra dispatch delay per outstanding rate limit hit",
    )
    loop_tick_ms: int = Field(
        default=100,
        ge=1,
        description="Maximum wait for a completion before the loop re-evaluates",
    )

    # Rate limit backoff
    rate_limit_pause_ms: int = Field(
        default=2000,
        ge=0,
        description="Global cooldown after a rate limited check",
    )
    decay_step_ms: int = Field(
        default=300,
        ge=0,
        description="Decay wait per outstanding rate limit hit",
    )
    decay_max_ms: int = Field(
        default=3000,
        ge=0,
        description="Upper bound on the decay wait",
    )
    decay_probability: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Chance per tick that one rate limit hit is forgiven",
    )
    max_attempts: int = Field(
        default=0,
        ge=0,
        description="Dispatch attempts per username before giving up (0 = unlimited)",
    )

    # Fixed batch strategy
    batch_size: int = Field(
        default=5,
        ge=1,
        le=1000,
        description="Items per batch before the batch pause",
    )
    item_interval_ms: int = Field(
        default=200,
        ge=0,
        description="Milliseconds between sequential checks inside a batch",
    )
    batch_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Initial pause between batches",
    )
    max_batch_delay_ms: int = Field(
        default=5000,
        ge=0,
        description="Upper bound for the doubling batch pause",
    )

    @model_validator(mode="after")
    def _check_concurrency_bounds(self) -> Self:
        if not self.min_concurrency <= self.initial_concurrency <= self.max_concurrency:
            raise ValueError(
                "concurrency bounds must satisfy "
                "min_concurrency <= initial_concurrency <= max_concurrency"
            )
        return self


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Upstream Validator
    # --------------------------------------------------------------------------
    validator: ValidatorConfig = Field(
        default_factory=ValidatorConfig,
        description="Username validation endpoint configuration",
    )

    # --------------------------------------------------------------------------
    # Pacing
    # --------------------------------------------------------------------------
    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="Bulk check pacing configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
