"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.imports import router as imports_router
from routes.shopping_mall import router as shopping_mall_router

__all__ = [
    "imports_router",
    "shopping_mall_router",
]
