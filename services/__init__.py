"""
Business logic services.

Each service handles one domain area.
"""

from services.natural_key_index import NaturalKeyIndex
from services.reconciliation import (
    ReconciliationEngine,
    ReconciliationTarget,
    RowRejected,
)
from services.manufacturer_service import ManufacturerService, get_manufacturer_service
from services.product_service import ProductService, get_product_service
from services.order_service import OrderService, get_order_service
from services.upload_service import UploadService, get_upload_service
from services.manufacturer_import_service import (
    ManufacturerImportService,
    ManufacturerTarget,
    get_manufacturer_import_service,
)
from services.product_import_service import (
    ProductImportService,
    ProductTarget,
    get_product_import_service,
)
from services.shopping_mall_template_service import (
    ShoppingMallTemplateService,
    get_template_service,
)
from services.snapshot_service import capture_snapshot, load_snapshot
from services.shopping_mall_import_service import (
    ShoppingMallImportService,
    get_shopping_mall_import_service,
)
from services.shopping_mall_export_service import (
    ShoppingMallExportService,
    build_export_rows,
    get_export_service,
)
from services.template_analysis_service import analyze_template

__all__ = [
    "NaturalKeyIndex",
    "ReconciliationEngine",
    "ReconciliationTarget",
    "RowRejected",
    "ManufacturerService",
    "get_manufacturer_service",
    "ProductService",
    "get_product_service",
    "OrderService",
    "get_order_service",
    "UploadService",
    "get_upload_service",
    "ManufacturerImportService",
    "ManufacturerTarget",
    "get_manufacturer_import_service",
    "ProductImportService",
    "ProductTarget",
    "get_product_import_service",
    "ShoppingMallTemplateService",
    "get_template_service",
    "capture_snapshot",
    "load_snapshot",
    "ShoppingMallImportService",
    "get_shopping_mall_import_service",
    "ShoppingMallExportService",
    "build_export_rows",
    "get_export_service",
    "analyze_template",
]
