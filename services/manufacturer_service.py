"""
Manufacturer persistence.

Thin wrapper over the `manufacturers` table used by the importers.
"""

from typing import Optional
import structlog

from config import fetch_all_rows, get_supabase_client
from exceptions import DatabaseError
from utils.text_utils import like_pattern, normalize_name_key

logger = structlog.get_logger(__name__)

COLUMNS = "id, name, contact_name, emails, phone"


class ManufacturerService:
    def __init__(self):
        self.db = get_supabase_client()
        self.table = "manufacturers"

    def get_all(self) -> list[dict]:
        """Every manufacturer (id, name, contact fields), read page by page."""
        try:
            return fetch_all_rows(lambda: self.db.table(self.table).select(COLUMNS).order("id"))
        except Exception as e:
            logger.error("get_manufacturers_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def find_by_name(self, name: str) -> Optional[dict]:
        """Manufacturer whose normalized name equals the normalized `name`."""
        key = normalize_name_key(name)
        if not key:
            return None
        pattern = like_pattern(name)
        try:
            candidates = fetch_all_rows(
                lambda: self.db.table(self.table).select(COLUMNS).ilike("name", pattern).order("id")
            )
        except Exception as e:
            logger.error("find_manufacturer_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))
        for record in candidates:
            if normalize_name_key(record.get("name")) == key:
                return record
        return None

    def create(self, data: dict) -> dict:
        """Insert one manufacturer. Store errors propagate unwrapped."""
        result = self.db.table(self.table).insert(data).execute()
        record = result.data[0]
        logger.info("manufacturer_created", manufacturer_id=record["id"], name=record["name"])
        return record

    def update(self, manufacturer_id: int, patch: dict) -> dict:
        result = (
            self.db.table(self.table)
            .update(patch)
            .eq("id", manufacturer_id)
            .execute()
        )
        if not result.data:
            raise DatabaseError("update", f"manufacturer {manufacturer_id} not updated")
        logger.info(
            "manufacturer_updated",
            manufacturer_id=manufacturer_id,
            fields=sorted(patch.keys()),
        )
        return result.data[0]


_manufacturer_service: Optional[ManufacturerService] = None


def get_manufacturer_service() -> ManufacturerService:
    global _manufacturer_service
    if _manufacturer_service is None:
        _manufacturer_service = ManufacturerService()
    return _manufacturer_service
