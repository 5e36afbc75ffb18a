"""
Upload record schemas.

One row in `uploads` per accepted file. Shopping mall uploads carry the
serialized SourceSnapshot used for later re-export.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema


class UploadType(str, Enum):
    MANUFACTURER = "manufacturer"
    PRODUCT = "product"
    SHOPPING_MALL = "shopping_mall"


class UploadStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadRecord(BaseSchema):
    """Upload row as read from the store."""
    id: int
    file_name: str
    file_size: int = 0
    file_type: Optional[str] = None
    shopping_mall_id: Optional[int] = None
    total_orders: int = 0
    processed_orders: int = 0
    error_orders: int = 0
    status: str = UploadStatus.PROCESSING.value
    source_snapshot: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    @property
    def is_shopping_mall(self) -> bool:
        return self.file_type == UploadType.SHOPPING_MALL.value


class UploadCreate(BaseSchema):
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(0, ge=0)
    file_type: UploadType
    shopping_mall_id: Optional[int] = None
    total_orders: int = 0
    source_snapshot: Optional[str] = None


@dataclass
class OrderRowError:
    row: int
    message: str
    order_number: Optional[str] = None

    def to_dict(self) -> dict:
        error = {"row": self.row, "message": self.message}
        if self.order_number:
            error["key"] = self.order_number
        return error


@dataclass
class ShoppingMallImportResult:
    """Response of a shopping mall order upload."""
    upload_id: int
    mall_name: str
    total_rows: int = 0
    processed_orders: int = 0
    duplicate_orders: int = 0
    errors: list[OrderRowError] = field(default_factory=list)

    @property
    def error_orders(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "uploadId": self.upload_id,
            "mallName": self.mall_name,
            "totalRows": self.total_rows,
            "processedOrders": self.processed_orders,
            "duplicateOrders": self.duplicate_orders,
            "errorOrders": self.error_orders,
            "errors": [e.to_dict() for e in self.errors],
        }
