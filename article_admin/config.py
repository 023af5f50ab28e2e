"""Configuration management using pydantic-settings."""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings
    db_server: str
    db_name: str
    db_user: str
    db_password: str
    db_port: int = 5432
    db_pool_size: int = 20
    db_max_overflow: int = 40
    sql_echo: bool = False

    # Storage settings
    storage_backend: Literal["minio", "local"] = "minio"
    local_storage_path: str = "var/uploads"

    # MinIO settings (only required when storage_backend is "minio")
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_secure: bool = False
    minio_bucket: str = "article-references"

    # Reference download settings
    reference_download_strategy: Literal["redirect", "stream"] = "redirect"
    reference_url_expiry_minutes: int = 30
    reference_stream_chunk_size: int = 64 * 1024

    # JWT settings
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440
    bcrypt_rounds: int = 12

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @model_validator(mode="after")
    def check_download_strategy(self) -> "Settings":
        """Local storage has no signing service, so it can only stream."""
        if self.storage_backend == "local" and self.reference_download_strategy == "redirect":
            raise ValueError(
                "REFERENCE_DOWNLOAD_STRATEGY=redirect requires STORAGE_BACKEND=minio"
            )
        return self

    @property
    def database_url(self) -> str:
        """Build PostgreSQL async connection string."""
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def sync_database_url(self) -> str:
        """Build PostgreSQL sync connection string for Alembic."""
        from urllib.parse import quote_plus
        return (
            f"postgresql+psycopg2://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )


# Global settings instance
settings = Settings()
