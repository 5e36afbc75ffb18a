"""
Shopping mall routes: order upload, re-export and template management.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
import structlog

from exceptions import AppError
from models.shopping_mall import ShoppingMallTemplateCreate, ShoppingMallTemplateUpdate
from services.shopping_mall_export_service import get_export_service
from services.shopping_mall_import_service import get_shopping_mall_import_service
from services.shopping_mall_template_service import get_template_service
from services.template_analysis_service import analyze_template

logger = structlog.get_logger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ===================
# REQUEST MODELS
# ===================

class ExportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_id: int = Field(..., ge=1, alias="uploadId")


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
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR"
        }
    )


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the UTF-8 name."""
    return f"attachment; filename=\"export.xlsx\"; filename*=UTF-8''{quote(filename)}"


# ===================
# UPLOAD / EXPORT
# ===================

@router.post("/upload/shopping-mall")
async def upload_shopping_mall(
    file: UploadFile = File(...),
    mall_id: int = Form(..., alias="mallId"),
):
    """
    Upload a shopping mall order export.

    Returns:
        {success, uploadId, mallName, totalRows, processedOrders,
         duplicateOrders, errorOrders, errors}
    """
    logger.info("shopping_mall_upload", filename=file.filename, mall_id=mall_id)

    try:
        content = await file.read()
        result = get_shopping_mall_import_service().ingest(content, file.filename, mall_id)
        return result.to_dict()
    except Exception as e:
        return handle_error(e)


@router.post("/upload/shopping-mall-export")
async def export_shopping_mall(request: ExportRequest):
    """
    Re-download a shopping mall upload in its partner's layout.

    Returns the .xlsx bytes; failures come back as JSON errors.
    """
    try:
        export = get_export_service().export_upload(request.upload_id)
    except Exception as e:
        return handle_error(e)

    return Response(
        content=export.content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(export.filename)},
    )


# ===================
# TEMPLATES
# ===================

@router.post("/shopping-mall-templates/analyze")
async def analyze_shopping_mall_template(
    file: UploadFile = File(...),
    header_row: Optional[int] = Form(None, alias="headerRow", ge=1),
):
    """Detect header row and list columns of a sample file."""
    try:
        content = await file.read()
        analysis = analyze_template(content, file.filename, header_row)
        return {"success": True, **analysis.to_dict()}
    except Exception as e:
        return handle_error(e)


@router.get("/shopping-mall-templates")
async def list_templates():
    try:
        return {"success": True, "templates": get_template_service().get_all()}
    except Exception as e:
        return handle_error(e)


@router.get("/shopping-mall-templates/{mall_id}")
async def get_template(mall_id: int):
    try:
        template = get_template_service().get(mall_id)
        return {"success": True, "template": template.to_response()}
    except Exception as e:
        return handle_error(e)


@router.post("/shopping-mall-templates", status_code=201)
async def create_template(data: ShoppingMallTemplateCreate):
    """
    Create a template.

    Raises:
        409: mallName already exists
        422: Invalid mappings, fixed values or export config
    """
    try:
        template = get_template_service().create(data)
        return {"success": True, "template": template.to_response()}
    except Exception as e:
        return handle_error(e)


@router.put("/shopping-mall-templates/{mall_id}")
async def update_template(mall_id: int, data: ShoppingMallTemplateUpdate):
    try:
        template = get_template_service().update(mall_id, data)
        return {"success": True, "template": template.to_response()}
    except Exception as e:
        return handle_error(e)
