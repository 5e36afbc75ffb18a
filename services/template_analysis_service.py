"""
Sample-file analysis for setting up shopping mall templates.

Operators upload one sample export; the response shows where the header was
found and which column index / letter each header sits in, so column
mappings and export configs can be written against it.
"""

from typing import Optional

import structlog

from config import get_settings
from models.shopping_mall import ColumnInfo, TemplateAnalysis
from parsers.grid_reader import read_grid
from parsers.header_detector import column_letter, detect_header_row
from utils.text_utils import is_blank_row

logger = structlog.get_logger(__name__)


def analyze_template(
    content: bytes,
    filename: str,
    header_row: Optional[int] = None,
) -> TemplateAnalysis:
    """
    Analyze a sample shopping mall file.

    Args:
        content: File bytes
        filename: Original filename
        header_row: Explicit 1-based header row; detected when omitted

    Raises:
        ImportStructureError: Unreadable file, empty grid or bad header row
    """
    settings = get_settings()
    grid = read_grid(content, filename)
    header_index = detect_header_row(grid.rows, header_row=header_row)
    width = grid.column_count

    padded = grid.padded_row(header_index, width)
    columns = [
        ColumnInfo(column_index=i + 1, column_letter=column_letter(i), header=header)
        for i, header in enumerate(padded)
    ]
    headers = [header for header in padded if header.strip()]

    preview_rows = []
    for index in range(header_index + 1, len(grid)):
        if len(preview_rows) >= settings.preview_row_count:
            break
        cells = grid.padded_row(index, width)
        if not is_blank_row(cells):
            preview_rows.append(cells)

    logger.info(
        "template_analyzed",
        filename=filename,
        header_row=header_index + 1,
        columns=width,
        total_rows=len(grid),
    )
    return TemplateAnalysis(
        detected_header_row=header_index + 1,
        headers=headers,
        columns=columns,
        preview_rows=preview_rows,
        total_rows=len(grid),
    )
