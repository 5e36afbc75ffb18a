"""
Spreadsheet column letter conversion.

Zero-based indexes: 0 → "A", 25 → "Z", 26 → "AA", 51 → "AZ".
"""

import re

_LETTERS = re.compile(r"^[A-Z]+$")


def column_letter(index: int) -> str:
    """Convert a zero-based column index to its spreadsheet letter."""
    if index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")

    letters = ""
    n = index + 1
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_index(letter: str) -> int:
    """Convert a spreadsheet column letter ("A", "az") to a zero-based index."""
    text = (letter or "").strip().upper()
    if not _LETTERS.match(text):
        raise ValueError(f"invalid column letter: {letter!r}")

    n = 0
    for ch in text:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def is_column_letter(value: str) -> bool:
    return bool(_LETTERS.match((value or "").strip().upper()))
