from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Secrets (SECRET_KEY, ENCRYPT_KEY) MUST be set in .env - no defaults provided.
    """

    # Database (SQLite for local development, PostgreSQL in production)
    database_url: str = "sqlite:///./docunest.db"

    # Security keys (REQUIRED - no defaults)
    secret_key: str
    encrypt_key: str

    # CORS configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # JWT configuration (7 days)
    access_token_expire_minutes: int = 60 * 24 * 7

    # Blob storage
    storage_backend: str = "local"
    storage_local_path: str = "uploads/encrypted"
    max_upload_size: int = 50 * 1024 * 1024

    rate_limit_enabled: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings():
    """Get cached settings instance."""
    try:
        return Settings()
    except Exception as e:
        print("\n" + "="*70)
        print("ERROR: Failed to load configuration!")
        print("="*70)
        print(f"\n{e}")
        print("\nMissing or invalid environment variables.")
        print("\nPlease create a .env file with the following required variables:")
        print("  - SECRET_KEY (for JWT signing)")
        print("  - ENCRYPT_KEY (master key: 64 hex chars or a passphrase)")
        print("  - DATABASE_URL (optional, defaults to local SQLite)")
        print("  - CORS_ORIGINS (optional, defaults to localhost)")
        print("\nRun `python generate_keys.py` to create fresh keys.")
        print("="*70)
        raise
