"""
Custom exception classes for the application.

Structural import failures, export failures and persistence failures all
derive from AppError so routes can turn them into JSON with one handler.
Row-level validation problems are NOT exceptions that escape a run; they are
recorded as row outcomes by the reconciliation engine.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        code: Error code (e.g., "TEMPLATE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format: {success: false, error, code}."""
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None,
        message: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=message or f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None,
        status_code: int = 422
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# STRUCTURAL IMPORT ERRORS
# ===================

class ImportStructureError(ValidationError):
    """
    The upload cannot be processed at all.

    Raised before any row is looked at; the caller gets a single error
    instead of an ImportResult.
    """

    def __init__(
        self,
        message: str,
        code: str = "IMPORT_STRUCTURE_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            message=message,
            code=code,
            details=details,
            status_code=400
        )


class EmptyFileError(ImportStructureError):
    """Uploaded file has no bytes."""

    def __init__(self, filename: str = ""):
        super().__init__(
            message="The uploaded file is empty",
            code="EMPTY_FILE",
            details={"filename": filename}
        )


class UnsupportedFileTypeError(ImportStructureError):
    """Extension is not one the reader understands."""

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            message=f"Only {', '.join(allowed)} files can be uploaded",
            code="UNSUPPORTED_FILE_TYPE",
            details={"filename": filename, "allowed": allowed}
        )


class FileTooLargeError(ImportStructureError):
    """Upload exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            message="The uploaded file is too large",
            code="FILE_TOO_LARGE",
            details={"size": size, "limit": limit}
        )


class UnreadableFileError(ImportStructureError):
    """Spreadsheet or CSV could not be parsed."""

    def __init__(self, filename: str, reason: str):
        super().__init__(
            message="The file could not be read. Please check its contents",
            code="UNREADABLE_FILE",
            details={"filename": filename, "original_error": reason}
        )


class EmptyInputError(ImportStructureError):
    """Grid has zero rows."""

    def __init__(self):
        super().__init__(
            message="The file contains no rows",
            code="EMPTY_INPUT"
        )


class InvalidHeaderRowError(ImportStructureError):
    """Explicit header row lies outside the grid."""

    def __init__(self, header_row: int, total_rows: int):
        super().__init__(
            message="Invalid header row number",
            code="INVALID_HEADER_ROW",
            details={"header_row": header_row, "total_rows": total_rows}
        )


class MissingHeaderError(ImportStructureError):
    """No row with any content was found."""

    def __init__(self):
        super().__init__(
            message="The file has no header row",
            code="MISSING_HEADER"
        )


class MissingRequiredHeaderError(ImportStructureError):
    """Mandatory canonical column absent after header mapping."""

    def __init__(self, field: str, examples: list[str]):
        super().__init__(
            message=f"A '{field}' column is required (e.g. {', '.join(examples)})",
            code="MISSING_REQUIRED_HEADER",
            details={"field": field, "examples": examples}
        )


class InvalidDataStartRowError(ImportStructureError):
    """Template data start row does not come after the header row."""

    def __init__(self, header_row: int, data_start_row: int):
        super().__init__(
            message="Data start row must come after the header row",
            code="INVALID_DATA_START_ROW",
            details={"header_row": header_row, "data_start_row": data_start_row}
        )


# ===================
# SHOPPING MALL TEMPLATES
# ===================

class TemplateNotFoundError(NotFoundError):
    """Shopping mall template not found."""

    def __init__(self, mall_id: Any):
        super().__init__(
            resource="ShoppingMallTemplate",
            identifier=str(mall_id),
            code="TEMPLATE_NOT_FOUND",
            message="Unknown shopping mall"
        )


class TemplateDisabledError(ValidationError):
    """Template exists but has been switched off by an operator."""

    def __init__(self, mall_id: Any):
        super().__init__(
            message="This shopping mall template is disabled",
            code="TEMPLATE_DISABLED",
            details={"mall_id": mall_id},
            status_code=400
        )


class MalformedTemplateError(ValidationError):
    """Stored template JSON (column mappings / fixed values) is invalid."""

    def __init__(self, mall_id: Any, field: str, reason: str):
        super().__init__(
            message="The upload template is malformed",
            code="MALFORMED_TEMPLATE",
            details={"mall_id": mall_id, "field": field, "reason": reason},
            status_code=500
        )


# ===================
# EXPORT ERRORS
# ===================

class UploadNotFoundError(NotFoundError):
    """Upload record not found."""

    def __init__(self, upload_id: Any):
        super().__init__(
            resource="Upload",
            identifier=str(upload_id),
            code="UPLOAD_NOT_FOUND",
            message="No upload record exists"
        )


class NotShoppingMallUploadError(ValidationError):
    """Only shopping mall uploads can be re-exported."""

    def __init__(self, upload_id: Any, file_type: Optional[str]):
        super().__init__(
            message="Only shopping mall uploads can be downloaded",
            code="NOT_SHOPPING_MALL_UPLOAD",
            details={"upload_id": upload_id, "file_type": file_type},
            status_code=400
        )


class SnapshotMissingError(ValidationError):
    """Upload has no stored snapshot to rebuild from."""

    def __init__(self, upload_id: Any):
        super().__init__(
            message="There is no stored data to re-download this upload",
            code="SNAPSHOT_MISSING",
            details={"upload_id": upload_id},
            status_code=400
        )


class ExportConfigMissingError(ValidationError):
    """Template has no export config registered."""

    def __init__(self, mall_id: Any):
        super().__init__(
            message="No download template is registered for this shopping mall",
            code="EXPORT_CONFIG_MISSING",
            details={"mall_id": mall_id},
            status_code=400
        )


class MalformedSnapshotError(ValidationError):
    """Stored snapshot JSON failed schema validation."""

    def __init__(self, reason: str):
        super().__init__(
            message="The stored upload data is malformed",
            code="MALFORMED_SNAPSHOT",
            details={"reason": reason},
            status_code=500
        )


class MalformedExportConfigError(ValidationError):
    """Stored export config JSON failed schema validation."""

    def __init__(self, reason: str):
        super().__init__(
            message="The download template is malformed",
            code="MALFORMED_EXPORT_CONFIG",
            details={"reason": reason},
            status_code=500
        )
