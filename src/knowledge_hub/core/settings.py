"""Application settings and configuration.

This module defines all configuration options for the Knowledge Hub scoring
core. Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Knowledge Hub", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./knowledge_hub.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the vote rate limiter when configured; otherwise limits are per process.
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Vote rate limits per user
    vote_rate_per_minute: int = Field(default=5, alias="VOTE_RATE_PER_MINUTE")
    vote_rate_per_hour: int = Field(default=50, alias="VOTE_RATE_PER_HOUR")
    vote_rate_per_day: int = Field(default=200, alias="VOTE_RATE_PER_DAY")

    # Reputation
    vote_participation_daily_cap: int = Field(
        default=20,
        alias="VOTE_PARTICIPATION_DAILY_CAP",
    )
    # Start of the "Regular" tier; granted to contributors, moderators and admins.
    privileged_reputation_seed: int = Field(default=101, alias="PRIVILEGED_REPUTATION_SEED")
    helpful_answer_threshold: int = Field(default=5, alias="HELPFUL_ANSWER_THRESHOLD")

    # Trending
    trending_window_days: int = Field(default=7, alias="TRENDING_WINDOW_DAYS")
    trending_limit: int = Field(default=5, alias="TRENDING_LIMIT")

    # Follower notifications
    notify_webhook_url: str | None = Field(default=None, alias="NOTIFY_WEBHOOK_URL")
    notify_http_timeout_seconds: float = Field(
        default=5.0,
        alias="NOTIFY_HTTP_TIMEOUT_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def vote_rate_limits(self) -> dict[str, tuple[int, int]]:
        """Return vote rate limits keyed by window name as (limit, window seconds)."""
        return {
            "minute": (self.vote_rate_per_minute, 60),
            "hour": (self.vote_rate_per_hour, 3_600),
            "day": (self.vote_rate_per_day, 86_400),
        }


settings = Settings()  # type: ignore[call-arg]
