"""
Product catalog import.

Keyed by product code (trimmed, case-folded). The manufacturer column is a
cross-reference into existing manufacturers; an unknown name rejects the row.
When a product gains or changes manufacturer, open orders for that product
that have no manufacturer yet are stamped with it.
"""

from typing import Optional
import structlog

from models.imports import CanonicalField, HeaderMapping, ImportKind, ImportResult
from models.upload import UploadType
from parsers.field_mapper import cell_for
from parsers.grid_reader import read_grid
from services.manufacturer_service import ManufacturerService, get_manufacturer_service
from services.natural_key_index import NaturalKeyIndex
from services.order_service import OrderService, get_order_service
from services.product_service import ProductService, get_product_service
from services.reconciliation import ReconciliationEngine, ReconciliationTarget, RowRejected
from services.upload_service import get_upload_service
from utils.text_utils import clean_cell, normalize_code_key, normalize_name_key, parse_money

logger = structlog.get_logger(__name__)

F = CanonicalField

TEXT_FIELDS = ((F.PRODUCT_NAME, "product_name"), (F.OPTION_NAME, "option_name"))
MONEY_FIELDS = ((F.PRICE, "price"), (F.COST, "cost"), (F.SHIPPING_FEE, "shipping_fee"))
MONEY_COLUMNS = tuple(column for _, column in MONEY_FIELDS)
PATCH_COLUMNS = ("product_name", "option_name", "manufacturer_id", "price", "cost", "shipping_fee")


class ProductTarget(ReconciliationTarget):
    kind = ImportKind.PRODUCT
    key_field = F.PRODUCT_CODE

    def __init__(
        self,
        products: ProductService,
        manufacturers: ManufacturerService,
        orders: OrderService,
    ):
        self.products = products
        self.manufacturers = manufacturers
        self.orders = orders
        self.manufacturer_index: Optional[NaturalKeyIndex] = None
        self.manufacturer_names: dict[int, str] = {}

    def normalize_key(self, raw: Optional[str]) -> str:
        return normalize_code_key(raw)

    def empty_key_message(self) -> str:
        return "product code is empty"

    def load_index(self) -> NaturalKeyIndex:
        manufacturers = self.manufacturers.get_all()
        self.manufacturer_index = NaturalKeyIndex.build(manufacturers, "name", normalize_name_key)
        self.manufacturer_names = {m["id"]: m.get("name") for m in manufacturers}
        return NaturalKeyIndex.build(self.products.get_all(), "product_code", normalize_code_key)

    def parse_row(self, row: list[str], mapping: HeaderMapping) -> dict:
        values = {}

        for field, column in TEXT_FIELDS:
            text = clean_cell(cell_for(row, mapping, field))
            if text is not None:
                values[column] = text

        for field, column in MONEY_FIELDS:
            parsed = parse_money(cell_for(row, mapping, field))
            if not parsed.ok:
                raise RowRejected(f"{column}: {parsed.message}")
            if parsed.value is not None:
                values[column] = parsed.value

        manufacturer_name = clean_cell(cell_for(row, mapping, F.MANUFACTURER_NAME))
        if manufacturer_name is not None:
            manufacturer = self.manufacturer_index.get(manufacturer_name)
            if manufacturer is None:
                raise RowRejected(f"manufacturer '{manufacturer_name}' not found")
            values["manufacturer_id"] = manufacturer["id"]

        return values

    def build_insert(self, raw_key: str, values: dict) -> dict:
        return {
            "product_code": raw_key.strip(),
            "product_name": values.get("product_name", ""),
            "option_name": values.get("option_name"),
            "manufacturer_id": values.get("manufacturer_id"),
            "price": values.get("price", 0),
            "cost": values.get("cost", 0),
            "shipping_fee": values.get("shipping_fee", 0),
        }

    def compute_patch(self, existing: dict, values: dict) -> dict:
        current = {column: existing.get(column) for column in PATCH_COLUMNS}
        for column in MONEY_COLUMNS:
            if current[column] is None:
                current[column] = 0  # stored NULL amount reads as 0
        return {
            column: values[column]
            for column in PATCH_COLUMNS
            if column in values and values[column] != current[column]
        }

    def insert(self, payload: dict) -> dict:
        return self.products.create(payload)

    def update(self, record_id: int, patch: dict) -> dict:
        return self.products.update(record_id, patch)

    def find_by_key(self, raw_key: str) -> Optional[dict]:
        return self.products.find_by_code(raw_key)

    def after_write(self, record: dict, previous: Optional[dict]) -> None:
        manufacturer_id = record.get("manufacturer_id")
        if not manufacturer_id:
            return
        if previous is not None and previous.get("manufacturer_id") == manufacturer_id:
            return

        try:
            self.orders.backfill_manufacturer(
                record.get("product_code", ""),
                manufacturer_id,
                self.manufacturer_names.get(manufacturer_id),
            )
        except Exception as e:
            logger.warning(
                "order_backfill_failed",
                product_code=record.get("product_code"),
                manufacturer_id=manufacturer_id,
                error=str(e),
            )


class ProductImportService:
    def __init__(self):
        self.products = get_product_service()
        self.manufacturers = get_manufacturer_service()
        self.orders = get_order_service()
        self.engine = ReconciliationEngine()

    def import_file(self, content: bytes, filename: str) -> ImportResult:
        """
        Import a product catalog (.csv or .xlsx).

        Raises:
            ImportStructureError: File unreadable or no product code column
        """
        logger.info("product_import_requested", filename=filename, size=len(content or b""))

        grid = read_grid(content, filename)
        target = ProductTarget(self.products, self.manufacturers, self.orders)
        result = self.engine.run(grid, target)

        get_upload_service().record_import(UploadType.PRODUCT, filename, len(content), result)
        return result


_service: Optional[ProductImportService] = None


def get_product_import_service() -> ProductImportService:
    global _service
    if _service is None:
        _service = ProductImportService()
    return _service
