from pydantic_settings import SettingsConfigDict

from core.settings.base import StorefrontBaseSettings


class DatabaseSettings(StorefrontBaseSettings):
    """
    Database configuration settings.

    Loaded from environment variables (DB_ prefix) or .env file.
    """

    # SQLite for local development; production uses postgresql+asyncpg://...
    database_url: str = "sqlite+aiosqlite:///./storefront.db"

    # Connection pool settings (ignored by SQLite)
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600  # 1 hour

    echo_sql: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DB_",
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
