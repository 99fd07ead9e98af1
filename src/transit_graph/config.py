"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Transit Graph Loader"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["auto", "console", "json"] = "auto"

    # Graph database (ArangoDB)
    arango_url: str = Field(
        default="http://localhost:8529",
        validation_alias=AliasChoices("ARANGO_URL", "ARANGO_HOSTS"),
    )
    arango_database: str = Field(
        default="GTFS",
        validation_alias=AliasChoices("ARANGO_DATABASE", "ARANGO_DB"),
    )
    arango_username: str = "root"
    arango_password: str = ""
    arango_request_timeout_sec: int = 600

    # Static GTFS feed (Ile-de-France Mobilites)
    gtfs_static_url: str = Field(
        default=(
            "https://data.iledefrance-mobilites.fr/explore/dataset/offre-horaires-tc-gtfs-idfm"
            "/files/a925e164271e4bca93433756d6a340d1/download/"
        ),
        validation_alias=AliasChoices("STATIC_GTFS_URL", "GTFS_STATIC_URL"),
    )
    gtfs_work_dir: str = "."
    gtfs_fetch_timeout_sec: int = 300
    gtfs_cleanup_after_import: bool = True

    # Ingestion / enrichment sizing
    import_batch_size: int = Field(
        default=50_000,
        ge=1,
        validation_alias=AliasChoices("IMPORT_BATCH_SIZE", "GTFS_IMPORT_BATCH_SIZE"),
    )
    intermediate_commit_count: int = Field(
        default=100_000,
        ge=1,
        validation_alias=AliasChoices("INTERMEDIATE_COMMIT_COUNT", "GTFS_INTERMEDIATE_COMMIT_COUNT"),
    )
    gtfs_import_strict: bool = Field(
        default=False,
        validation_alias=AliasChoices("GTFS_IMPORT_STRICT"),
    )

    def missing_required_env(self) -> list[str]:
        """Return required environment variables that are missing or empty."""
        missing: list[str] = []

        if not self.arango_url:
            missing.append("ARANGO_URL")
        if not self.arango_database:
            missing.append("ARANGO_DATABASE")

        return missing


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
