"""
Shopping mall order ingestion.

Reads a partner's order export with its template, validates rows, stores new
orders and attaches a source snapshot to the upload record:

    template -> grid -> header -> mapping -> fixed values -> row checks
             -> store duplicates -> snapshot + upload -> orders -> counters

Rows whose order number already exists in the store are not inserted but are
still accepted, so they remain part of the snapshot.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog

from exceptions import DatabaseError, InvalidDataStartRowError
from models.imports import CanonicalField, HeaderMapping, ImportKind
from models.shopping_mall import ShoppingMallTemplate
from models.upload import OrderRowError, ShoppingMallImportResult, UploadCreate, UploadType
from parsers.field_mapper import (
    build_header_mapping,
    cell_for,
    mapping_from_letters,
    require_field,
)
from parsers.grid_reader import RawGrid, read_grid
from parsers.header_detector import detect_header_row
from services.manufacturer_service import get_manufacturer_service
from services.order_service import PENDING, get_order_service
from services.product_service import get_product_service
from services.shopping_mall_template_service import get_template_service
from services.snapshot_service import capture_snapshot
from services.upload_service import get_upload_service
from utils.columns import column_index
from utils.text_utils import (
    clean_cell,
    is_blank_row,
    normalize_code_key,
    normalize_name_key,
    parse_money,
    parse_quantity,
)

logger = structlog.get_logger(__name__)

F = CanonicalField

_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

TEXT_FIELDS = (
    F.MALL_ORDER_NUMBER,
    F.SUB_ORDER_NUMBER,
    F.MALL_PRODUCT_NUMBER,
    F.PRODUCT_CODE,
    F.PRODUCT_NAME,
    F.OPTION_NAME,
    F.ORDER_NAME,
    F.RECIPIENT_NAME,
    F.ORDER_PHONE,
    F.RECIPIENT_PHONE,
    F.RECIPIENT_MOBILE,
    F.POSTAL_CODE,
    F.ADDRESS,
    F.MEMO,
    F.COURIER,
    F.TRACKING_NUMBER,
    F.MANUFACTURER_NAME,
)
MONEY_FIELDS = (F.PAYMENT_AMOUNT, F.COST, F.SHIPPING_COST)


def render_fixed_value(literal: str, context: dict[str, str]) -> str:
    """
    Resolve {{variable}} placeholders.

    "{{a || b}}" takes the first alternative with a non-empty value; unknown
    names resolve to "".
    - "{{displayName}}" with displayName="Mall A" → "Mall A"
    - "{{product_code || mall_product_number}}" → first non-empty of the two
    """
    def resolve(match: re.Match) -> str:
        for name in match.group(1).split("||"):
            value = context.get(name.strip(), "")
            if value:
                return value
        return ""

    return _PLACEHOLDER.sub(resolve, literal)


def apply_fixed_values(
    cells: list[str],
    fixed_values: dict[str, str],
    context: dict[str, str],
) -> list[str]:
    """Working copy of a row with fixed values written at their columns."""
    working = list(cells)
    for letter, literal in fixed_values.items():
        index = column_index(letter)
        if index >= len(working):
            working.extend([""] * (index + 1 - len(working)))
        working[index] = render_fixed_value(literal, context)
    return working


@dataclass
class AcceptedOrder:
    row_number: int
    order_number: str
    values: dict


class ShoppingMallImportService:
    def __init__(self):
        self.templates = get_template_service()
        self.orders = get_order_service()
        self.products = get_product_service()
        self.manufacturers = get_manufacturer_service()

    def ingest(
        self,
        content: bytes,
        filename: str,
        mall_id: int,
        today: Optional[date] = None,
    ) -> ShoppingMallImportResult:
        """
        Ingest one shopping mall order file.

        Raises:
            TemplateNotFoundError / TemplateDisabledError: Template unusable
            ImportStructureError: File unreadable, bad header/data rows,
                no order number column
        """
        today = today or date.today()
        template = self.templates.get_enabled(mall_id)
        logger.info(
            "shopping_mall_import_started",
            mall_id=mall_id,
            mall_name=template.mall_name,
            filename=filename,
        )

        grid = read_grid(content, filename)
        header_index = detect_header_row(grid.rows, header_row=template.header_row)
        if template.data_start_row <= template.header_row:
            raise InvalidDataStartRowError(template.header_row, template.data_start_row)
        data_start_index = template.data_start_row - 1

        if template.column_mappings:
            mapping = mapping_from_letters(template.column_mappings, mall_id)
        else:
            mapping = build_header_mapping(grid.row(header_index), ImportKind.SHOPPING_MALL)
        require_field(mapping, ImportKind.SHOPPING_MALL)

        accepted, errors, total_rows = self._validate_rows(grid, data_start_index, mapping, template, today)

        existing = self.orders.existing_order_numbers([a.order_number for a in accepted])
        new_orders = [a for a in accepted if a.order_number not in existing]

        snapshot = capture_snapshot(
            grid, header_index, data_start_index, [a.row_number for a in accepted]
        )
        upload = get_upload_service().create(UploadCreate(
            file_name=filename or "unknown",
            file_size=len(content),
            file_type=UploadType.SHOPPING_MALL,
            shopping_mall_id=template.id,
            total_orders=total_rows,
            source_snapshot=snapshot.to_json(),
        ))

        try:
            created = self.orders.create_many(self._build_orders(new_orders, upload.id, template))
            get_upload_service().complete(upload.id, processed_orders=len(created), error_orders=len(errors))
        except DatabaseError:
            get_upload_service().fail(upload.id)
            raise

        result = ShoppingMallImportResult(
            upload_id=upload.id,
            mall_name=template.display_name,
            total_rows=total_rows,
            processed_orders=len(created),
            duplicate_orders=len(accepted) - len(new_orders),
            errors=errors,
        )
        logger.info(
            "shopping_mall_import_finished",
            upload_id=upload.id,
            total_rows=total_rows,
            processed=result.processed_orders,
            duplicates=result.duplicate_orders,
            errors=result.error_orders,
        )
        return result

    def _validate_rows(
        self,
        grid: RawGrid,
        data_start_index: int,
        mapping: HeaderMapping,
        template: ShoppingMallTemplate,
        today: date,
    ) -> tuple[list[AcceptedOrder], list[OrderRowError], int]:
        accepted: list[AcceptedOrder] = []
        errors: list[OrderRowError] = []
        seen: set[str] = set()
        total_rows = 0

        base_context = {
            "mallName": template.mall_name,
            "displayName": template.display_name,
            "today": today.isoformat(),
        }

        for index in range(data_start_index, len(grid)):
            cells = grid.row(index)
            if is_blank_row(cells):
                continue
            total_rows += 1
            row_number = index + 1

            context = dict(base_context)
            context.update({f.value: cell_for(cells, mapping, f) for f in mapping})
            working = apply_fixed_values(cells, template.fixed_values, context)

            order_number = cell_for(working, mapping, F.ORDER_NUMBER)
            if not order_number:
                errors.append(OrderRowError(row_number, "order number is empty"))
                continue
            if order_number in seen:
                errors.append(OrderRowError(row_number, "duplicate in file", order_number))
                continue
            seen.add(order_number)

            values, message = self._parse_values(working, mapping)
            if message:
                errors.append(OrderRowError(row_number, message, order_number))
                continue

            accepted.append(AcceptedOrder(row_number, order_number, values))

        return accepted, errors, total_rows

    def _parse_values(self, working: list[str], mapping: HeaderMapping) -> tuple[dict, Optional[str]]:
        values: dict = {f.value: clean_cell(cell_for(working, mapping, f)) for f in TEXT_FIELDS}

        quantity = parse_quantity(cell_for(working, mapping, F.QUANTITY))
        if not quantity.ok:
            return values, quantity.message
        values[F.QUANTITY.value] = quantity.value

        for field in MONEY_FIELDS:
            parsed = parse_money(cell_for(working, mapping, field))
            if not parsed.ok:
                return values, f"{field.value}: {parsed.message}"
            values[field.value] = parsed.value or 0

        return values, None

    def _build_orders(
        self,
        accepted: list[AcceptedOrder],
        upload_id: int,
        template: ShoppingMallTemplate,
    ) -> list[dict]:
        if not accepted:
            return []

        manufacturers = self.manufacturers.get_all()
        by_id = {m["id"]: m for m in manufacturers}
        by_name = {normalize_name_key(m["name"]): m for m in manufacturers}
        product_manufacturer = {
            normalize_code_key(p.get("product_code")): p.get("manufacturer_id")
            for p in self.products.get_all()
        }

        orders = []
        for order in accepted:
            values = order.values
            manufacturer = None

            manufacturer_id = None
            if values.get("product_code"):
                manufacturer_id = product_manufacturer.get(normalize_code_key(values["product_code"]))
            if manufacturer_id:
                manufacturer = by_id.get(manufacturer_id)
            if manufacturer is None and values.get("manufacturer_name"):
                manufacturer = by_name.get(normalize_name_key(values["manufacturer_name"]))

            orders.append({
                **values,
                "upload_id": upload_id,
                "order_number": order.order_number,
                "shopping_mall": template.display_name,
                "manufacturer_id": manufacturer["id"] if manufacturer else None,
                "manufacturer_name": manufacturer["name"] if manufacturer else values.get("manufacturer_name"),
                "status": PENDING,
            })
        return orders


_service: Optional[ShoppingMallImportService] = None


def get_shopping_mall_import_service() -> ShoppingMallImportService:
    global _service
    if _service is None:
        _service = ShoppingMallImportService()
    return _service
