"""
Product persistence.

Products are keyed by product code (trimmed, case-insensitive). Only the
operations the catalog importer and the order transform need live here.
"""

from typing import Optional
import structlog

from config import fetch_all_rows, get_supabase_client
from exceptions import DatabaseError
from utils.text_utils import like_pattern, normalize_code_key

logger = structlog.get_logger(__name__)

COLUMNS = "id, product_code, product_name, option_name, manufacturer_id, price, cost, shipping_fee"


class ProductService:
    """
    Product catalog access.

    Inserts and updates let store errors propagate so the importer can run
    its re-query fallback on unique-constraint races.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[dict]:
        """
        Every product in the catalog, read page by page.

        Returns:
            List of product dicts (id, code, names, manufacturer, prices)
        """
        try:
            products = fetch_all_rows(lambda: self.db.table(self.table).select(COLUMNS).order("id"))
            logger.debug("products_retrieved", count=len(products))
            return products
        except Exception as e:
            logger.error("get_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def find_by_code(self, product_code: str) -> Optional[dict]:
        key = normalize_code_key(product_code)
        if not key:
            return None
        pattern = like_pattern(product_code)
        try:
            candidates = fetch_all_rows(
                lambda: self.db.table(self.table).select(COLUMNS).ilike("product_code", pattern).order("id")
            )
        except Exception as e:
            logger.error("find_product_failed", product_code=product_code, error=str(e))
            raise DatabaseError("select", str(e))
        for record in candidates:
            if normalize_code_key(record.get("product_code")) == key:
                return record
        return None

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: dict) -> dict:
        result = self.db.table(self.table).insert(data).execute()
        product = result.data[0]
        logger.info(
            "product_created",
            product_id=product["id"],
            product_code=product["product_code"]
        )
        return product

    def update(self, product_id: int, patch: dict) -> dict:
        result = (
            self.db.table(self.table)
            .update(patch)
            .eq("id", product_id)
            .execute()
        )
        if not result.data:
            raise DatabaseError("update", f"product {product_id} not updated")
        logger.info(
            "product_updated",
            product_id=product_id,
            fields=sorted(patch.keys())
        )
        return result.data[0]


# ===================
# SINGLETON
# ===================

_product_service: Optional[ProductService] = None


def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
