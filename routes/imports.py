"""
Manufacturer and product import routes.

Both accept a multipart `file` (.csv or .xlsx). Row problems come back in
`errors`; only structural problems fail the request.
"""

from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse
import structlog

from services.manufacturer_import_service import get_manufacturer_import_service
from services.product_import_service import get_product_import_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR"
        }
    )


# ===================
# ROUTES
# ===================

@router.post("/manufacturers/import")
async def import_manufacturers(file: UploadFile = File(...)):
    """
    Import a manufacturer roster.

    Keyed by manufacturer name; blank cells keep stored values.

    Returns:
        {success, totalRows, created, updated, skipped, unchanged, errors}
    """
    logger.info("manufacturer_import_upload", filename=file.filename)

    try:
        content = await file.read()
        result = get_manufacturer_import_service().import_file(content, file.filename)
        return result.to_dict()
    except Exception as e:
        return handle_error(e)


@router.post("/products/import")
async def import_products(file: UploadFile = File(...)):
    """
    Import a product catalog.

    Keyed by product code; the manufacturer column must name an existing
    manufacturer.
    """
    logger.info("product_import_upload", filename=file.filename)

    try:
        content = await file.read()
        result = get_product_import_service().import_file(content, file.filename)
        return result.to_dict()
    except Exception as e:
        return handle_error(e)
