from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./crm_access.db"

    # Auth configuration
    JWT_SECRET: str | None = None

    # Permission resolution
    PERMISSIONS_API_URL: str | None = None
    PERMISSIONS_FETCH_TIMEOUT: float = 1.0  # seconds
    PERMISSIONS_STORAGE_DIR: str = ".permissions"
    DEFAULT_ORGANIZATION_ID: str = "org_001"
    AUDIT_LOG_LIMIT: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


settings = Settings()
