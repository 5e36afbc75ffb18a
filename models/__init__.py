"""
Pydantic models and result types for validation and serialization.
"""

from models.base import BaseSchema, StoredJsonSchema
from models.imports import (
    ImportKind,
    CanonicalField,
    HeaderMapping,
    RowStatus,
    RowOutcome,
    ImportResult,
)
from models.shopping_mall import (
    InputSource,
    ConstSource,
    ExportColumn,
    ExportConfig,
    SnapshotDataRow,
    SourceSnapshot,
    ShoppingMallTemplateCreate,
    ShoppingMallTemplateUpdate,
    ShoppingMallTemplate,
    ColumnInfo,
    TemplateAnalysis,
    ExportFile,
)
from models.upload import (
    UploadType,
    UploadStatus,
    UploadRecord,
    UploadCreate,
    OrderRowError,
    ShoppingMallImportResult,
)

__all__ = [
    # Base
    "BaseSchema",
    "StoredJsonSchema",
    # Imports
    "ImportKind",
    "CanonicalField",
    "HeaderMapping",
    "RowStatus",
    "RowOutcome",
    "ImportResult",
    # Shopping mall
    "InputSource",
    "ConstSource",
    "ExportColumn",
    "ExportConfig",
    "SnapshotDataRow",
    "SourceSnapshot",
    "ShoppingMallTemplateCreate",
    "ShoppingMallTemplateUpdate",
    "ShoppingMallTemplate",
    "ColumnInfo",
    "TemplateAnalysis",
    "ExportFile",
    # Uploads
    "UploadType",
    "UploadStatus",
    "UploadRecord",
    "UploadCreate",
    "OrderRowError",
    "ShoppingMallImportResult",
]
