"""
Spreadsheet parsing: grid reading, header detection and field mapping.
"""

from parsers.grid_reader import (
    RawGrid,
    read_grid,
    cell_to_text,
    SUPPORTED_EXTENSIONS,
)
from parsers.header_detector import (
    detect_header_row,
    find_first_non_empty_row,
    uniqueness_ratio,
    column_letter,
    column_index,
)
from parsers.field_mapper import (
    SYNONYMS,
    REQUIRED_FIELD,
    lookup_field,
    build_header_mapping,
    require_field,
    mapping_from_letters,
    cell_for,
)

__all__ = [
    "RawGrid",
    "read_grid",
    "cell_to_text",
    "SUPPORTED_EXTENSIONS",
    "detect_header_row",
    "find_first_non_empty_row",
    "uniqueness_ratio",
    "column_letter",
    "column_index",
    "SYNONYMS",
    "REQUIRED_FIELD",
    "lookup_field",
    "build_header_mapping",
    "require_field",
    "mapping_from_letters",
    "cell_for",
]
