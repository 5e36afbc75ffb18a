"""
Database connection management.

Provides the Supabase client singleton used by every repository-style service.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Any, Callable, Iterator, Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class DatabaseConnectionError(Exception):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        DatabaseConnectionError: If the client cannot be created
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        logger.info("supabase_connected", status="success")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e


def fetch_all_rows(build_query: Callable[[], Any], page_size: Optional[int] = None) -> list[dict]:
    """
    Read every row of a select by walking `.range()` pages.

    PostgREST caps each response at its `max-rows` setting, which may be
    smaller than `page_size`, so paging stops on the first empty page.
    `build_query` must return a fresh, ordered select on each call.

    Returns:
        All matching rows in query order
    """
    size = page_size or settings.db_page_size
    rows: list[dict] = []
    offset = 0
    while True:
        page = build_query().range(offset, offset + size - 1).execute().data or []
        if not page:
            return rows
        rows.extend(page)
        offset += len(page)


def chunked(values: list, size: Optional[int] = None) -> Iterator[list]:
    """Split `values` for `.in_()` filters so request URLs stay short."""
    step = size or settings.db_in_filter_chunk
    for start in range(0, len(values), step):
        yield values[start:start + step]


def is_unique_violation(error: BaseException) -> bool:
    """True if a PostgREST error reports a unique constraint violation."""
    code = getattr(error, "code", None)
    if code == UNIQUE_VIOLATION:
        return True
    return "duplicate key" in str(error).lower()


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()

        manufacturers = client.table("manufacturers").select("id", count="exact").limit(1).execute()
        products = client.table("products").select("id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "manufacturers_count": manufacturers.count,
            "products_count": products.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """Reset the cached database connection."""
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
