"""
Canonical field mapping.

Header cells are normalized (whitespace and NBSP removed, case-folded, "_"
and "-" dropped) and looked up in a per-kind synonym table. The tables are
plain data: adding a synonym never needs a code change.
"""

from typing import Optional, Sequence

import structlog

from exceptions import MalformedTemplateError, MissingRequiredHeaderError
from models.imports import CanonicalField, HeaderMapping, ImportKind
from utils.columns import column_index
from utils.text_utils import normalize_header

logger = structlog.get_logger(__name__)

F = CanonicalField


def _table(aliases: dict[CanonicalField, list[str]]) -> dict[str, CanonicalField]:
    """Flatten field -> aliases into normalized alias -> field."""
    table: dict[str, CanonicalField] = {}
    for canonical, names in aliases.items():
        for name in names:
            table.setdefault(normalize_header(name), canonical)
    return table


MANUFACTURER_ALIASES: dict[CanonicalField, list[str]] = {
    F.NAME: ["제조사명", "제조사", "name", "manufacturer_name"],
    F.CONTACT_NAME: ["담당자명", "담당자", "contact_name", "contact"],
    F.EMAILS: ["이메일", "email", "emails", "e-mail"],
    F.PHONE: ["휴대전화번호", "전화번호", "연락처", "phone", "mobile"],
}

PRODUCT_ALIASES: dict[CanonicalField, list[str]] = {
    F.PRODUCT_CODE: ["상품코드", "상품코드(필수)", "product_code", "code", "sku"],
    F.PRODUCT_NAME: ["상품명", "product_name"],
    F.OPTION_NAME: ["옵션명", "option_name", "option"],
    F.MANUFACTURER_NAME: ["제조사명", "제조사", "manufacturer_name", "manufacturer"],
    F.PRICE: ["판매가", "price"],
    F.COST: ["원가", "cost"],
    F.SHIPPING_FEE: ["배송비", "택배비", "shipping_fee", "shipping_cost", "delivery_fee"],
}

ORDER_ALIASES: dict[CanonicalField, list[str]] = {
    F.ORDER_NUMBER: ["주문번호", "사방넷주문번호", "order_number", "order_no"],
    F.MALL_ORDER_NUMBER: ["쇼핑몰주문번호", "mall_order_number"],
    F.SUB_ORDER_NUMBER: ["부주문번호", "sub_order_number"],
    F.MALL_PRODUCT_NUMBER: ["쇼핑몰상품번호", "상품번호", "mall_product_number"],
    F.PRODUCT_CODE: ["상품코드", "자체상품코드", "product_code"],
    F.PRODUCT_NAME: ["상품명", "product_name"],
    F.OPTION_NAME: ["옵션명", "옵션", "option_name"],
    F.QUANTITY: ["수량", "주문수량", "quantity", "qty"],
    F.ORDER_NAME: ["주문자명", "주문자", "order_name"],
    F.RECIPIENT_NAME: ["수취인명", "수취인", "받는분", "recipient_name"],
    F.ORDER_PHONE: ["주문자전화번호", "주문자연락처", "order_phone"],
    F.RECIPIENT_PHONE: ["수취인전화번호", "수취인연락처", "recipient_phone"],
    F.RECIPIENT_MOBILE: ["수취인휴대폰", "수취인핸드폰", "recipient_mobile"],
    F.POSTAL_CODE: ["우편번호", "postal_code", "zip"],
    F.ADDRESS: ["주소", "배송지", "수취인주소", "address"],
    F.MEMO: ["배송메세지", "배송메시지", "메모", "memo"],
    F.COURIER: ["택배사", "courier"],
    F.TRACKING_NUMBER: ["송장번호", "운송장번호", "tracking_number"],
    F.MANUFACTURER_NAME: ["제조사명", "제조사", "manufacturer_name"],
    F.PAYMENT_AMOUNT: ["결제금액", "판매가", "payment_amount"],
    F.COST: ["원가", "cost"],
    F.SHIPPING_COST: ["배송비", "택배비", "shipping_cost"],
}

SYNONYMS: dict[ImportKind, dict[str, CanonicalField]] = {
    ImportKind.MANUFACTURER: _table(MANUFACTURER_ALIASES),
    ImportKind.PRODUCT: _table(PRODUCT_ALIASES),
    ImportKind.SHOPPING_MALL: _table(ORDER_ALIASES),
}

REQUIRED_FIELD: dict[ImportKind, CanonicalField] = {
    ImportKind.MANUFACTURER: F.NAME,
    ImportKind.PRODUCT: F.PRODUCT_CODE,
    ImportKind.SHOPPING_MALL: F.ORDER_NUMBER,
}

_ALIASES_BY_KIND = {
    ImportKind.MANUFACTURER: MANUFACTURER_ALIASES,
    ImportKind.PRODUCT: PRODUCT_ALIASES,
    ImportKind.SHOPPING_MALL: ORDER_ALIASES,
}


def lookup_field(header: Optional[str], kind: ImportKind) -> Optional[CanonicalField]:
    """Canonical field for one header cell, or None when unknown."""
    return SYNONYMS[kind].get(normalize_header(header))


def build_header_mapping(header_cells: Sequence[str], kind: ImportKind) -> HeaderMapping:
    """
    Map header cells to canonical fields.

    The first column that maps to a field wins; later duplicates and
    unknown headers are dropped.
    """
    mapping: HeaderMapping = {}
    for index, header in enumerate(header_cells):
        canonical = lookup_field(header, kind)
        if canonical is None or canonical in mapping:
            continue
        mapping[canonical] = index

    logger.debug(
        "header_mapped",
        kind=kind.value,
        fields=[f.value for f in mapping],
    )
    return mapping


def require_field(mapping: HeaderMapping, kind: ImportKind) -> int:
    """
    Column index of the kind's mandatory field.

    Raises:
        MissingRequiredHeaderError: The field was not mapped
    """
    required = REQUIRED_FIELD[kind]
    if required not in mapping:
        examples = _ALIASES_BY_KIND[kind][required][:2]
        raise MissingRequiredHeaderError(field=required.value, examples=examples)
    return mapping[required]


def mapping_from_letters(column_mappings: dict[str, str], mall_id=None) -> HeaderMapping:
    """
    Build a HeaderMapping from a template's canonical field -> column letter map.

    Raises:
        MalformedTemplateError: Unknown field or bad column letter
    """
    mapping: HeaderMapping = {}
    for field_name, letter in column_mappings.items():
        try:
            mapping[CanonicalField(field_name)] = column_index(letter)
        except ValueError as e:
            raise MalformedTemplateError(mall_id=mall_id, field="column_mappings", reason=str(e))
    return mapping


def cell_for(row: Sequence[str], mapping: HeaderMapping, field: CanonicalField) -> str:
    """Trimmed cell for a mapped field; "" when unmapped or out of range."""
    index = mapping.get(field)
    if index is None or index >= len(row):
        return ""
    return (row[index] or "").strip()
