"""
Source snapshot capture.

A snapshot keeps exactly what a shopping mall upload looked like when it was
accepted, so it can be re-exported in another layout without the file:

- prefixRows: rows strictly before the header (title banners), verbatim
- headerCells: the header row
- dataRows: accepted data rows with their original 1-based row numbers

Rows rejected during ingestion are not captured and cannot be recovered.
"""

from typing import Iterable

import structlog
from pydantic import ValidationError as PydanticValidationError

from exceptions import MalformedSnapshotError
from models.shopping_mall import SnapshotDataRow, SourceSnapshot
from parsers.grid_reader import RawGrid

logger = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 1


def capture_snapshot(
    grid: RawGrid,
    header_index: int,
    data_start_index: int,
    accepted_rows: Iterable[int],
) -> SourceSnapshot:
    """
    Build the snapshot for one upload.

    Args:
        grid: The parsed upload
        header_index: Zero-based header row
        data_start_index: Zero-based first data row
        accepted_rows: 1-based row numbers that passed validation
    """
    accepted = set(accepted_rows)
    data_rows = [
        SnapshotDataRow(row_number=index + 1, cells=grid.row(index))
        for index in range(data_start_index, len(grid))
        if index + 1 in accepted
    ]

    snapshot = SourceSnapshot(
        version=SNAPSHOT_VERSION,
        sheet_name=grid.sheet_name,
        total_rows=len(grid),
        column_count=max(1, grid.column_count),
        header_row=header_index + 1,
        data_start_row=data_start_index + 1,
        prefix_rows=[grid.row(i) for i in range(header_index)],
        header_cells=grid.row(header_index),
        data_rows=data_rows,
    )

    logger.info(
        "snapshot_captured",
        sheet=snapshot.sheet_name,
        prefix_rows=len(snapshot.prefix_rows),
        data_rows=len(snapshot.data_rows),
        column_count=snapshot.column_count,
    )
    return snapshot


def load_snapshot(raw: str) -> SourceSnapshot:
    """
    Strictly validate stored snapshot JSON.

    Raises:
        MalformedSnapshotError: Not JSON, unknown version or shape mismatch
    """
    try:
        return SourceSnapshot.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error("snapshot_invalid", errors=e.error_count())
        raise MalformedSnapshotError(reason=str(e.errors(include_url=False)[:3]))
