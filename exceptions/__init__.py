"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Structural import errors
    ImportStructureError,
    EmptyFileError,
    UnsupportedFileTypeError,
    FileTooLargeError,
    UnreadableFileError,
    EmptyInputError,
    InvalidHeaderRowError,
    MissingHeaderError,
    MissingRequiredHeaderError,
    InvalidDataStartRowError,

    # Shopping mall templates
    TemplateNotFoundError,
    TemplateDisabledError,
    MalformedTemplateError,

    # Export
    UploadNotFoundError,
    NotShoppingMallUploadError,
    SnapshotMissingError,
    ExportConfigMissingError,
    MalformedSnapshotError,
    MalformedExportConfigError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Structural import errors
    "ImportStructureError",
    "EmptyFileError",
    "UnsupportedFileTypeError",
    "FileTooLargeError",
    "UnreadableFileError",
    "EmptyInputError",
    "InvalidHeaderRowError",
    "MissingHeaderError",
    "MissingRequiredHeaderError",
    "InvalidDataStartRowError",

    # Shopping mall templates
    "TemplateNotFoundError",
    "TemplateDisabledError",
    "MalformedTemplateError",

    # Export
    "UploadNotFoundError",
    "NotShoppingMallUploadError",
    "SnapshotMissingError",
    "ExportConfigMissingError",
    "MalformedSnapshotError",
    "MalformedExportConfigError",
]
