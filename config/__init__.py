"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    get_supabase_client: Cached Supabase client
    check_connection: Health check function
    is_unique_violation: Detects unique-constraint failures from PostgREST
    fetch_all_rows: Reads a whole select page by page
    chunked: Splits value lists for `in` filters
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    check_connection,
    reset_connection,
    is_unique_violation,
    fetch_all_rows,
    chunked,
    DatabaseConnectionError,
    UNIQUE_VIOLATION,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "get_supabase_client",
    "check_connection",
    "reset_connection",
    "is_unique_violation",
    "fetch_all_rows",
    "chunked",
    "DatabaseConnectionError",
    "UNIQUE_VIOLATION",
]
