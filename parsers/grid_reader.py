"""
Grid reader for uploaded spreadsheets.

Turns the bytes of an .xlsx or .csv upload into a RawGrid: the first
worksheet as rows of trimmed cell strings, with true 1-based row numbers
(leading blank rows are kept).
"""

import csv
from dataclasses import dataclass
from datetime import date, datetime, time
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import structlog
from openpyxl import load_workbook

from config import Settings, get_settings
from exceptions import (
    EmptyFileError,
    FileTooLargeError,
    UnreadableFileError,
    UnsupportedFileTypeError,
)
from utils.text_utils import NBSP

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = [".xlsx", ".csv"]


@dataclass(frozen=True)
class RawGrid:
    """Immutable rows of cell strings. Missing cells read as ""."""
    sheet_name: str
    rows: tuple[tuple[str, ...], ...]

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def row(self, index: int) -> list[str]:
        """Zero-based row as a list; out-of-range rows are empty."""
        if 0 <= index < len(self.rows):
            return list(self.rows[index])
        return []

    def padded_row(self, index: int, width: Optional[int] = None) -> list[str]:
        cells = self.row(index)
        width = self.column_count if width is None else width
        return cells + [""] * (width - len(cells))

    def cell(self, row: int, col: int) -> str:
        cells = self.row(row)
        return cells[col] if 0 <= col < len(cells) else ""


def cell_to_text(value: Any) -> str:
    """
    Convert a raw cell value to trimmed text.

    - None → ""
    - date(2024, 1, 5) / datetime at midnight → "2024-01-05"
    - datetime with a time part → "2024-01-05 13:30:00"
    - 3.0 → "3"
    - True → "TRUE"
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    return str(value).replace(NBSP, " ").strip()


def _tidy(rows: list[list[str]]) -> tuple[tuple[str, ...], ...]:
    """Drop trailing empty cells per row and trailing blank rows."""
    tidy = []
    for cells in rows:
        end = len(cells)
        while end > 0 and cells[end - 1] == "":
            end -= 1
        tidy.append(tuple(cells[:end]))

    while tidy and not tidy[-1]:
        tidy.pop()
    return tuple(tidy)


def _read_xlsx(content: bytes, filename: str) -> RawGrid:
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.error("xlsx_read_failed", filename=filename, error=str(e))
        raise UnreadableFileError(filename=filename, reason=str(e))

    try:
        if not workbook.worksheets:
            raise UnreadableFileError(filename=filename, reason="workbook has no worksheets")
        sheet = workbook.worksheets[0]
        rows = [
            [cell_to_text(v) for v in row]
            for row in sheet.iter_rows(min_row=1, values_only=True)
        ]
        return RawGrid(sheet_name=sheet.title, rows=_tidy(rows))
    finally:
        workbook.close()


def _decode(content: bytes, encodings: list[str], filename: str) -> str:
    for encoding in encodings:
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug("csv_decode_retry", filename=filename, encoding=encoding)
    raise UnreadableFileError(filename=filename, reason="unknown text encoding")


def _read_csv(content: bytes, filename: str, encodings: list[str]) -> RawGrid:
    text = _decode(content, encodings, filename)
    sheet_name = Path(filename).stem or "Sheet1"

    # Widest row decides the column count so ragged rows are padded, not rejected
    width = max((len(r) for r in csv.reader(StringIO(text))), default=0)
    if width == 0:
        return RawGrid(sheet_name=sheet_name, rows=())

    try:
        df = pd.read_csv(
            StringIO(text),
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        return RawGrid(sheet_name=sheet_name, rows=())
    except Exception as e:
        logger.error("csv_read_failed", filename=filename, error=str(e))
        raise UnreadableFileError(filename=filename, reason=str(e))

    df = df.fillna("")
    rows = [[cell_to_text(v) for v in record] for record in df.itertuples(index=False, name=None)]
    return RawGrid(sheet_name=sheet_name, rows=_tidy(rows))


def read_grid(
    content: bytes,
    filename: str,
    settings: Optional[Settings] = None,
) -> RawGrid:
    """
    Read an uploaded file into a RawGrid.

    Args:
        content: Raw file bytes
        filename: Original filename (the extension selects the reader)
        settings: Settings override (size limit, CSV encodings)

    Raises:
        EmptyFileError: Zero bytes
        FileTooLargeError: Over the configured size limit
        UnsupportedFileTypeError: Not .xlsx or .csv
        UnreadableFileError: The parser rejected the file
    """
    settings = settings or get_settings()
    filename = filename or ""

    if not content:
        raise EmptyFileError(filename)
    if len(content) > settings.max_upload_bytes:
        raise FileTooLargeError(size=len(content), limit=settings.max_upload_bytes)

    extension = Path(filename).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(filename, SUPPORTED_EXTENSIONS)

    if extension == ".xlsx":
        grid = _read_xlsx(content, filename)
    else:
        grid = _read_csv(content, filename, settings.csv_encodings)

    logger.info(
        "grid_read",
        filename=filename,
        sheet=grid.sheet_name,
        rows=len(grid),
        columns=grid.column_count,
    )
    return grid
