"""
Header row detection.

Shopping mall exports often prepend title banners: a merged title repeats the
same value across many cells, so its distinct/non-empty ratio is low, while a
real header row has mostly distinct column names. Manufacturer and product
feeds are assumed well-formed and use the first non-empty row.

All row indexes returned here are zero-based.
"""

from typing import Optional, Sequence

import structlog

from config import get_settings
from exceptions import EmptyInputError, InvalidHeaderRowError, MissingHeaderError
from utils.columns import column_index, column_letter

logger = structlog.get_logger(__name__)

__all__ = [
    "detect_header_row",
    "find_first_non_empty_row",
    "uniqueness_ratio",
    "column_letter",
    "column_index",
]


def uniqueness_ratio(cells: Sequence[str]) -> tuple[int, float]:
    """Return (non-empty count, distinct / non-empty) for one row."""
    values = [c.strip() for c in cells if c and c.strip()]
    if not values:
        return 0, 0.0
    return len(values), len(set(values)) / len(values)


def detect_header_row(
    rows: Sequence[Sequence[str]],
    header_row: Optional[int] = None,
    scan_rows: Optional[int] = None,
    min_cells: Optional[int] = None,
    min_ratio: Optional[float] = None,
) -> int:
    """
    Locate the header row of a shopping mall grid.

    Args:
        rows: Grid rows
        header_row: Explicit 1-based header row; skips the heuristic
        scan_rows: How many leading rows to inspect (default from settings)
        min_cells: Non-empty cells a candidate needs (default from settings)
        min_ratio: Uniqueness ratio a candidate must exceed (default from settings)

    Returns:
        Zero-based header row index. Falls back to 0 when no row qualifies.

    Raises:
        EmptyInputError: The grid has no rows
        InvalidHeaderRowError: Explicit header row is out of bounds
    """
    if not rows:
        raise EmptyInputError()

    if header_row is not None:
        if header_row < 1 or header_row > len(rows):
            raise InvalidHeaderRowError(header_row=header_row, total_rows=len(rows))
        return header_row - 1

    settings = get_settings()
    scan_rows = settings.header_scan_rows if scan_rows is None else scan_rows
    min_cells = settings.header_min_cells if min_cells is None else min_cells
    min_ratio = settings.header_uniqueness_ratio if min_ratio is None else min_ratio

    for index, cells in enumerate(rows[:scan_rows]):
        count, ratio = uniqueness_ratio(cells)
        if count >= min_cells and ratio > min_ratio:
            logger.debug("header_row_detected", row=index + 1, cells=count, ratio=round(ratio, 2))
            return index

    logger.debug("header_row_fallback", scanned=min(scan_rows, len(rows)))
    return 0


def find_first_non_empty_row(rows: Sequence[Sequence[str]]) -> int:
    """
    Header row for manufacturer/product feeds: first row with any content.

    Raises:
        EmptyInputError: The grid has no rows
        MissingHeaderError: Every row is blank
    """
    if not rows:
        raise EmptyInputError()

    for index, cells in enumerate(rows):
        if any(c and c.strip() for c in cells):
            return index

    raise MissingHeaderError()
