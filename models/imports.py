"""
Import schemas: canonical fields, row outcomes and the aggregate result.

ImportResult is never persisted; it is returned synchronously to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ImportKind(str, Enum):
    """Which synonym table and mandatory field an upload uses."""
    MANUFACTURER = "manufacturer"
    PRODUCT = "product"
    SHOPPING_MALL = "shopping_mall"


class CanonicalField(str, Enum):
    """Closed set of internal field identifiers header synonyms map onto."""

    # Manufacturer
    NAME = "name"
    CONTACT_NAME = "contact_name"
    EMAILS = "emails"
    PHONE = "phone"

    # Product
    PRODUCT_CODE = "product_code"
    PRODUCT_NAME = "product_name"
    OPTION_NAME = "option_name"
    MANUFACTURER_NAME = "manufacturer_name"
    PRICE = "price"
    COST = "cost"
    SHIPPING_FEE = "shipping_fee"

    # Shopping mall orders
    ORDER_NUMBER = "order_number"
    MALL_ORDER_NUMBER = "mall_order_number"
    SUB_ORDER_NUMBER = "sub_order_number"
    MALL_PRODUCT_NUMBER = "mall_product_number"
    QUANTITY = "quantity"
    ORDER_NAME = "order_name"
    RECIPIENT_NAME = "recipient_name"
    ORDER_PHONE = "order_phone"
    RECIPIENT_PHONE = "recipient_phone"
    RECIPIENT_MOBILE = "recipient_mobile"
    POSTAL_CODE = "postal_code"
    ADDRESS = "address"
    MEMO = "memo"
    COURIER = "courier"
    TRACKING_NUMBER = "tracking_number"
    PAYMENT_AMOUNT = "payment_amount"
    SHIPPING_COST = "shipping_cost"


# Canonical field -> zero-based column index
HeaderMapping = dict[CanonicalField, int]


class RowStatus(str, Enum):
    """What happened to one data row."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"  # matched an existing record, nothing differed
    SKIPPED = "skipped"


@dataclass
class RowOutcome:
    """Outcome of one non-empty data row."""
    row: int  # 1-based source row number
    status: RowStatus
    key: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.status == RowStatus.SKIPPED

    def to_error_dict(self) -> dict:
        error = {"row": self.row, "message": self.message}
        if self.key:
            error["key"] = self.key
        return error


@dataclass
class ImportResult:
    """
    Aggregate result of one import run.

    `skipped` counts validation skips AND unchanged rows, so
    total_rows == created + updated + skipped always holds.
    """
    kind: ImportKind
    outcomes: list[RowOutcome] = field(default_factory=list)

    def record(self, outcome: RowOutcome) -> RowOutcome:
        self.outcomes.append(outcome)
        return outcome

    def _count(self, status: RowStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def total_rows(self) -> int:
        return len(self.outcomes)

    @property
    def created(self) -> int:
        return self._count(RowStatus.CREATED)

    @property
    def updated(self) -> int:
        return self._count(RowStatus.UPDATED)

    @property
    def unchanged(self) -> int:
        return self._count(RowStatus.UNCHANGED)

    @property
    def skipped(self) -> int:
        return self._count(RowStatus.SKIPPED) + self.unchanged

    @property
    def errors(self) -> list[RowOutcome]:
        return [o for o in self.outcomes if o.is_error]

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "success": True,
            "totalRows": self.total_rows,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "unchanged": self.unchanged,
            "errors": [o.to_error_dict() for o in self.errors],
        }
