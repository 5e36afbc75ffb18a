"""
Order persistence for shopping mall uploads and manufacturer backfill.
"""

from typing import Optional
import structlog

from config import chunked, fetch_all_rows, get_supabase_client
from exceptions import DatabaseError
from utils.text_utils import like_pattern, normalize_code_key

logger = structlog.get_logger(__name__)

# Orders past this status are never re-stamped
COMPLETED = "completed"
PENDING = "pending"


class OrderService:
    def __init__(self):
        self.db = get_supabase_client()
        self.table = "orders"

    def existing_order_numbers(self, order_numbers: list[str]) -> set[str]:
        """Subset of `order_numbers` already present in the store."""
        found: set[str] = set()
        try:
            for chunk in chunked(list(dict.fromkeys(order_numbers))):
                result = (
                    self.db.table(self.table)
                    .select("order_number")
                    .in_("order_number", chunk)
                    .execute()
                )
                found.update(row["order_number"] for row in result.data or [])
        except Exception as e:
            logger.error("existing_orders_lookup_failed", error=str(e))
            raise DatabaseError("select", str(e))
        return found

    def create_many(self, orders: list[dict]) -> list[dict]:
        if not orders:
            return []
        try:
            result = self.db.table(self.table).insert(orders).execute()
            created = result.data or []
            logger.info("orders_created", count=len(created))
            return created
        except Exception as e:
            logger.error("create_orders_failed", count=len(orders), error=str(e))
            raise DatabaseError("insert", str(e))

    def backfill_manufacturer(
        self,
        product_code: str,
        manufacturer_id: int,
        manufacturer_name: Optional[str],
    ) -> int:
        """
        Stamp a manufacturer on unassigned, not-completed orders for a product.

        Product codes match trimmed and case-insensitively.

        Returns:
            Number of orders updated
        """
        key = normalize_code_key(product_code)
        if not key:
            return 0

        pattern = like_pattern(product_code)
        candidates = fetch_all_rows(
            lambda: self.db.table(self.table)
            .select("id, product_code")
            .is_("manufacturer_id", "null")
            .neq("status", COMPLETED)
            .ilike("product_code", pattern)
            .order("id")
        )
        order_ids = [
            row["id"]
            for row in candidates
            if normalize_code_key(row.get("product_code")) == key
        ]
        if not order_ids:
            return 0

        for chunk in chunked(order_ids):
            self.db.table(self.table).update({
                "manufacturer_id": manufacturer_id,
                "manufacturer_name": manufacturer_name,
            }).in_("id", chunk).execute()

        logger.info(
            "orders_manufacturer_backfilled",
            product_code=product_code,
            manufacturer_id=manufacturer_id,
            count=len(order_ids),
        )
        return len(order_ids)


_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service
