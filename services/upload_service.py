"""
Upload records: one row per accepted file.

Shopping mall uploads carry the source snapshot; manufacturer and product
imports are recorded for history only.
"""
import structlog
from typing import Optional

from config import get_supabase_client
from exceptions import DatabaseError, UploadNotFoundError
from models.imports import ImportResult
from models.upload import UploadCreate, UploadRecord, UploadStatus, UploadType

logger = structlog.get_logger(__name__)


class UploadService:
    def __init__(self):
        self.db = get_supabase_client()
        self.table = "uploads"

    def create(self, data: UploadCreate) -> UploadRecord:
        """Insert an upload in `processing` state."""
        try:
            result = self.db.table(self.table).insert({
                "file_name": data.file_name,
                "file_size": data.file_size,
                "file_type": data.file_type.value,
                "shopping_mall_id": data.shopping_mall_id,
                "total_orders": data.total_orders,
                "processed_orders": 0,
                "error_orders": 0,
                "status": UploadStatus.PROCESSING.value,
                "source_snapshot": data.source_snapshot,
            }).execute()
        except Exception as e:
            logger.error("create_upload_failed", file_name=data.file_name, error=str(e))
            raise DatabaseError("insert", str(e))

        upload = UploadRecord(**result.data[0])
        logger.info(
            "upload_created",
            upload_id=upload.id,
            file_type=upload.file_type,
            file_name=upload.file_name,
        )
        return upload

    def get(self, upload_id: int) -> UploadRecord:
        """Raises UploadNotFoundError when the id is unknown."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", upload_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_upload_failed", upload_id=upload_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise UploadNotFoundError(upload_id)
        return UploadRecord(**result.data[0])

    def complete(
        self,
        upload_id: int,
        processed_orders: int,
        error_orders: int,
    ) -> None:
        try:
            self.db.table(self.table).update({
                "processed_orders": processed_orders,
                "error_orders": error_orders,
                "status": UploadStatus.COMPLETED.value,
            }).eq("id", upload_id).execute()
        except Exception as e:
            logger.error("complete_upload_failed", upload_id=upload_id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info(
            "upload_completed",
            upload_id=upload_id,
            processed_orders=processed_orders,
            error_orders=error_orders,
        )

    def fail(self, upload_id: int) -> None:
        """
        Mark an upload whose orders were not stored as failed.

        The snapshot is dropped so the upload can no longer be exported.
        Called while another error propagates, so store errors are only logged.
        """
        try:
            self.db.table(self.table).update({
                "status": UploadStatus.FAILED.value,
                "source_snapshot": None,
            }).eq("id", upload_id).execute()
        except Exception as e:
            logger.error("fail_upload_failed", upload_id=upload_id, error=str(e))
            return

        logger.warning("upload_failed", upload_id=upload_id)

    def record_import(
        self,
        upload_type: UploadType,
        file_name: str,
        file_size: int,
        result: ImportResult,
    ) -> None:
        """Record a finished manufacturer/product import for history."""
        try:
            self.db.table(self.table).insert({
                "file_name": file_name or "unknown",
                "file_size": file_size,
                "file_type": upload_type.value,
                "total_orders": result.total_rows,
                "processed_orders": result.created + result.updated,
                "error_orders": len(result.errors),
                "status": UploadStatus.COMPLETED.value,
            }).execute()
        except Exception as log_err:
            # History is informational; never fail the import response over it
            logger.warning(
                "failed_to_record_import",
                upload_type=upload_type.value,
                file_name=file_name,
                log_error=str(log_err),
            )


_service: Optional[UploadService] = None


def get_upload_service() -> UploadService:
    global _service
    if _service is None:
        _service = UploadService()
    return _service
