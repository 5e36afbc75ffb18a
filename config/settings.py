"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        default="http://localhost:54321",
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        default="",
        description="Supabase anon/public key"
    )
    db_page_size: int = Field(
        default=1000,
        ge=1,
        le=10000,
        description="Rows requested per page when reading whole tables"
    )
    db_in_filter_chunk: int = Field(
        default=200,
        ge=1,
        le=1000,
        description="Values per request in `in` filters"
    )

    # ===================
    # HEADER DETECTION
    # ===================
    header_scan_rows: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many leading rows are scanned for a header row"
    )
    header_min_cells: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Minimum non-empty cells for a header candidate"
    )
    header_uniqueness_ratio: float = Field(
        default=0.5,
        ge=0,
        lt=1,
        description="Distinct/non-empty ratio a header candidate must exceed"
    )

    # ===================
    # UPLOADS / EXPORTS
    # ===================
    max_upload_mb: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Largest accepted upload in megabytes"
    )
    csv_encodings: list[str] = Field(
        default=["utf-8-sig", "cp949", "euc-kr", "latin-1"],
        description="Encodings tried in order when decoding CSV uploads"
    )
    export_default_sheet_name: str = Field(
        default="변환결과",
        max_length=31,
        description="Sheet title used when a snapshot has no sheet name"
    )
    preview_row_count: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Rows returned as preview by template analysis"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
