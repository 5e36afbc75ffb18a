"""
Shopping mall re-export.

Rebuilds an upload in a partner's layout from its stored snapshot and the
template's *current* export config. The original file is never needed and
the upload is never modified. Row order is the snapshot's order.
"""

import re
from datetime import date
from io import BytesIO
from typing import Optional, Sequence

import structlog
from openpyxl import Workbook
from openpyxl.styles import Font

from config import get_settings
from exceptions import (
    ExportConfigMissingError,
    NotShoppingMallUploadError,
    SnapshotMissingError,
    TemplateNotFoundError,
)
from models.shopping_mall import ConstSource, ExportConfig, ExportFile, SourceSnapshot
from services.shopping_mall_template_service import get_template_service
from services.snapshot_service import load_snapshot
from services.upload_service import get_upload_service

logger = structlog.get_logger(__name__)

_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')
MAX_SHEET_TITLE = 31


def _resolve(cells: Sequence[str], config: ExportConfig) -> list[str]:
    """Project one source row through the configured columns."""
    out = []
    for column in config.columns:
        source = column.source
        if isinstance(source, ConstSource):
            out.append(source.value)
        else:
            index = source.column_index - 1
            out.append(cells[index] if index < len(cells) else "")
    return out


def _header(snapshot: SourceSnapshot, config: ExportConfig) -> list[str]:
    out = []
    for column in config.columns:
        if column.header is not None:
            out.append(column.header)
        elif isinstance(column.source, ConstSource):
            out.append("")
        else:
            index = column.source.column_index - 1
            cells = snapshot.header_cells
            out.append(cells[index] if index < len(cells) else "")
    return out


def build_export_rows(snapshot: SourceSnapshot, config: ExportConfig) -> tuple[list[list[str]], int]:
    """
    Reconstruct the output grid.

    Returns:
        (rows, header_index): prefix rows (if copied), one header row, then
        one row per stored data row; header_index is the zero-based header row.
    """
    rows: list[list[str]] = []
    if config.should_copy_prefix_rows:
        rows.extend(_resolve(prefix, config) for prefix in snapshot.prefix_rows)

    header_index = len(rows)
    rows.append(_header(snapshot, config))
    rows.extend(_resolve(data_row.cells, config) for data_row in snapshot.data_rows)
    return rows, header_index


def sheet_title(name: Optional[str]) -> str:
    """Excel-safe sheet title (no []:*?/\\, at most 31 characters)."""
    title = _INVALID_SHEET_CHARS.sub("", name or "").strip()[:MAX_SHEET_TITLE]
    return title or get_settings().export_default_sheet_name


def export_filename(display_name: str, on: date) -> str:
    safe = _INVALID_FILENAME_CHARS.sub("_", display_name).strip() or "export"
    return f"{safe}_{on:%Y%m%d}.xlsx"


def write_workbook(rows: list[list[str]], header_index: int, title: str) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title

    for row in rows:
        sheet.append(row)

    bold = Font(bold=True)
    for cell in sheet[header_index + 1]:
        cell.font = bold

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class ShoppingMallExportService:
    def __init__(self):
        self.templates = get_template_service()

    def export_upload(self, upload_id: int, today: Optional[date] = None) -> ExportFile:
        """
        Rebuild a shopping mall upload as an .xlsx in its partner's layout.

        The filename carries the upload date; `today` is used only for
        uploads without a timestamp.

        Raises:
            UploadNotFoundError: Unknown upload
            NotShoppingMallUploadError: Upload is a manufacturer/product import
            SnapshotMissingError: Upload has no snapshot
            TemplateNotFoundError / TemplateDisabledError: Template unusable
            ExportConfigMissingError: Template has no export config
            MalformedSnapshotError / MalformedExportConfigError: Stored JSON invalid
        """
        logger.info("export_requested", upload_id=upload_id)

        upload = get_upload_service().get(upload_id)
        if not upload.is_shopping_mall:
            raise NotShoppingMallUploadError(upload_id, upload.file_type)
        if not upload.source_snapshot:
            raise SnapshotMissingError(upload_id)

        if upload.shopping_mall_id is None:
            raise TemplateNotFoundError(None)
        template = self.templates.get_enabled(upload.shopping_mall_id)
        if not template.export_config_json:
            raise ExportConfigMissingError(template.id)

        snapshot = load_snapshot(upload.source_snapshot)
        config = self.templates.get_export_config(template)

        rows, header_index = build_export_rows(snapshot, config)
        content = write_workbook(rows, header_index, sheet_title(snapshot.sheet_name))
        uploaded_on = upload.uploaded_at.date() if upload.uploaded_at else (today or date.today())
        filename = export_filename(template.display_name, uploaded_on)

        logger.info(
            "export_generated",
            upload_id=upload_id,
            mall_id=template.id,
            rows=len(rows),
            data_rows=len(snapshot.data_rows),
            filename=filename,
        )
        return ExportFile(filename=filename, content=content, row_count=len(snapshot.data_rows))


_service: Optional[ShoppingMallExportService] = None


def get_export_service() -> ShoppingMallExportService:
    global _service
    if _service is None:
        _service = ShoppingMallExportService()
    return _service
