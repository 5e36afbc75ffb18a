"""
Text utilities for spreadsheet cells.

Header normalization, natural-key normalization and the typed-field parsers
(money, e-mail lists) shared by every importer.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

NBSP = "\u00a0"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_SEPARATORS = re.compile(r"[,;\n]+")

_WHITESPACE = re.compile(r"\s+")
_CURRENCY_SYMBOLS = re.compile(r"[₩$€¥£]")
# Trailing unit word such as "원", "KRW", "won"
_TRAILING_UNIT = re.compile(r"(?<=[0-9.])[A-Za-z가-힣]+$")


def normalize_header(value: Optional[str]) -> str:
    """
    Normalize a header cell for synonym lookup.

    - " 제조사 명 " → "제조사명"
    - "Contact_Name" → "contactname"
    - "shipping-fee" → "shippingfee"
    """
    if not value:
        return ""
    text = value.replace(NBSP, " ")
    text = _WHITESPACE.sub("", text)
    text = text.casefold()
    return text.replace("_", "").replace("-", "")


def clean_cell(value: Optional[str]) -> Optional[str]:
    """Trimmed cell value, or None when the cell is blank."""
    if value is None:
        return None
    trimmed = value.replace(NBSP, " ").strip()
    return trimmed or None


def is_blank_row(cells: list[str]) -> bool:
    return all(not (cell or "").strip() for cell in cells)


def normalize_name_key(value: Optional[str]) -> str:
    """
    Natural key for names (manufacturers).

    Trimmed, internal whitespace collapsed, case-folded.
    """
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value.replace(NBSP, " ").strip()).casefold()


def normalize_code_key(value: Optional[str]) -> str:
    """Natural key for product codes: trimmed and case-folded."""
    if not value:
        return ""
    return value.replace(NBSP, " ").strip().casefold()


@dataclass
class ParsedValue:
    """Outcome of parsing one optional typed cell."""
    ok: bool
    value: Optional[object] = None
    message: Optional[str] = None


def _number_text(raw: Optional[str]) -> str:
    """Cell text with separators, currency symbols and unit word removed."""
    text = clean_cell(raw)
    if text is None:
        return ""
    text = text.replace(",", "")
    text = _CURRENCY_SYMBOLS.sub("", text)
    text = _WHITESPACE.sub("", text)
    return _TRAILING_UNIT.sub("", text)


def _to_decimal(text: str) -> Optional[Decimal]:
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def parse_money(raw: Optional[str]) -> ParsedValue:
    """
    Parse a monetary cell into an integer amount.

    Thousands separators, currency symbols and a trailing unit word are
    stripped before the numeric parse:
    - "12,000원" → 12000
    - "₩ 3,500" → 3500
    - "1999.5" → 2000 (half-up)
    - "" → ok, value None (blank keeps the stored value)
    """
    text = _number_text(raw)
    if not text:
        return ParsedValue(ok=True)

    amount = _to_decimal(text)
    if amount is None:
        return ParsedValue(ok=False, message="not a valid number")

    return ParsedValue(
        ok=True,
        value=int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    )


def parse_quantity(raw: Optional[str], default: int = 1) -> ParsedValue:
    """Positive integer quantity; blank means `default`. "1.5" is rejected, "2.0" is 2."""
    text = _number_text(raw)
    if not text:
        return ParsedValue(ok=True, value=default)

    amount = _to_decimal(text)
    if amount is None or amount != amount.to_integral_value():
        return ParsedValue(ok=False, message="quantity must be a whole number")
    if amount < 1:
        return ParsedValue(ok=False, message="quantity must be at least 1")
    return ParsedValue(ok=True, value=int(amount))


def like_pattern(value: str) -> str:
    """
    Loose `ilike` pattern for a natural key: whitespace runs become `%`.

    Matches are a superset; callers compare normalized keys afterwards.
    """
    tokens = _WHITESPACE.split(value.replace(NBSP, " ").replace("\\", "_").strip())
    return "%".join(t for t in tokens if t)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def normalize_email_list(emails: Optional[list[str]]) -> list[str]:
    """Lower-cased, trimmed, de-duplicated, order preserved."""
    out: list[str] = []
    seen: set[str] = set()
    for raw in emails or []:
        email = (raw or "").strip().lower()
        if not email or email in seen:
            continue
        seen.add(email)
        out.append(email)
    return out


def parse_emails(raw: Optional[str]) -> ParsedValue:
    """
    Parse an e-mail cell that may hold several addresses.

    Addresses are split on commas, semicolons and newlines. Any invalid
    address rejects the whole cell.
    """
    text = clean_cell(raw)
    if text is None:
        return ParsedValue(ok=True)

    emails = normalize_email_list(EMAIL_SEPARATORS.split(text))
    if not emails:
        return ParsedValue(ok=True)

    if any(not is_valid_email(email) for email in emails):
        return ParsedValue(ok=False, message="invalid e-mail format")

    return ParsedValue(ok=True, value=emails)
