"""
Manufacturer roster import.

Keyed by manufacturer name (trimmed, whitespace collapsed, case-folded).
Blank cells never clear stored values.
"""

from typing import Optional
import structlog

from models.imports import CanonicalField, HeaderMapping, ImportKind, ImportResult
from models.upload import UploadType
from parsers.field_mapper import cell_for
from parsers.grid_reader import read_grid
from services.manufacturer_service import ManufacturerService, get_manufacturer_service
from services.natural_key_index import NaturalKeyIndex
from services.reconciliation import ReconciliationEngine, ReconciliationTarget, RowRejected
from services.upload_service import get_upload_service
from utils.text_utils import clean_cell, normalize_email_list, normalize_name_key, parse_emails

logger = structlog.get_logger(__name__)

F = CanonicalField


class ManufacturerTarget(ReconciliationTarget):
    kind = ImportKind.MANUFACTURER
    key_field = F.NAME

    def __init__(self, manufacturers: ManufacturerService):
        self.manufacturers = manufacturers

    def normalize_key(self, raw: Optional[str]) -> str:
        return normalize_name_key(raw)

    def empty_key_message(self) -> str:
        return "manufacturer name is empty"

    def load_index(self) -> NaturalKeyIndex:
        return NaturalKeyIndex.build(self.manufacturers.get_all(), "name", normalize_name_key)

    def parse_row(self, row: list[str], mapping: HeaderMapping) -> dict:
        values = {}

        emails = parse_emails(cell_for(row, mapping, F.EMAILS))
        if not emails.ok:
            raise RowRejected(emails.message)
        if emails.value:
            values["emails"] = emails.value

        for field, column in ((F.CONTACT_NAME, "contact_name"), (F.PHONE, "phone")):
            text = clean_cell(cell_for(row, mapping, field))
            if text is not None:
                values[column] = text

        return values

    def build_insert(self, raw_key: str, values: dict) -> dict:
        return {
            "name": " ".join(raw_key.split()),
            "contact_name": values.get("contact_name", ""),
            "emails": values.get("emails", []),
            "phone": values.get("phone", ""),
        }

    def compute_patch(self, existing: dict, values: dict) -> dict:
        patch = {}
        for column in ("contact_name", "phone"):
            if column in values and values[column] != (existing.get(column) or ""):
                patch[column] = values[column]
        if "emails" in values and values["emails"] != normalize_email_list(existing.get("emails")):
            patch["emails"] = values["emails"]
        return patch

    def insert(self, payload: dict) -> dict:
        return self.manufacturers.create(payload)

    def update(self, record_id: int, patch: dict) -> dict:
        return self.manufacturers.update(record_id, patch)

    def find_by_key(self, raw_key: str) -> Optional[dict]:
        return self.manufacturers.find_by_name(raw_key)


class ManufacturerImportService:
    def __init__(self):
        self.manufacturers = get_manufacturer_service()
        self.engine = ReconciliationEngine()

    def import_file(self, content: bytes, filename: str) -> ImportResult:
        """
        Import a manufacturer roster (.csv or .xlsx).

        Raises:
            ImportStructureError: File unreadable or no name column
        """
        logger.info("manufacturer_import_requested", filename=filename, size=len(content or b""))

        grid = read_grid(content, filename)
        result = self.engine.run(grid, ManufacturerTarget(self.manufacturers))

        get_upload_service().record_import(UploadType.MANUFACTURER, filename, len(content), result)
        return result


_service: Optional[ManufacturerImportService] = None


def get_manufacturer_import_service() -> ManufacturerImportService:
    global _service
    if _service is None:
        _service = ManufacturerImportService()
    return _service
