"""Environment-driven configuration for PlanKeeper Stage."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings.

    Every field reads the upper-case environment variable named in its alias,
    falling back to a `.env` file in the working directory.
    """

    app_name: str = Field(default="PlanKeeper Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Signing key for session JWTs; there is no default
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Storage
    database_url: str = Field(default="sqlite:///./plankeeper.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Only read when CHALLENGE_STORE_BACKEND=redis
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Login challenges
    challenge_store_backend: Literal["database", "redis", "memory"] = Field(
        default="database",
        alias="CHALLENGE_STORE_BACKEND",
    )
    challenge_ttl_seconds: int = Field(default=300, ge=1, alias="CHALLENGE_TTL_SECONDS")
    challenge_retention_seconds: int = Field(
        default=3600,
        ge=0,
        alias="CHALLENGE_RETENTION_SECONDS",
    )
    challenge_purge_enabled: bool = Field(default=True, alias="CHALLENGE_PURGE_ENABLED")
    challenge_purge_interval_seconds: float = Field(
        default=300.0,
        alias="CHALLENGE_PURGE_INTERVAL_SECONDS",
    )

    # Sessions
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Database URL with async drivers swapped for psycopg, for Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """``TEST_DATABASE_URL`` when ``USE_TEST_DATABASE`` is on, else ``DATABASE_URL``."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
