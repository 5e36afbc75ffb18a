"""
Shopping mall schemas: templates, export configs and source snapshots.

ExportConfig and SourceSnapshot are versioned JSON blobs stored as text.
They are validated strictly on read; a mismatch is rejected, never coerced.
"""

import json
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from models.base import BaseSchema, StoredJsonSchema
from models.imports import CanonicalField
from utils.columns import is_column_letter


# ===================
# EXPORT CONFIG (version 1)
# ===================

class InputSource(StoredJsonSchema):
    """Copy the value of a snapshot column (1-based)."""
    type: Literal["input"]
    column_index: int = Field(..., ge=1)


class ConstSource(StoredJsonSchema):
    """Emit a literal value."""
    type: Literal["const"]
    value: str


ColumnSource = Annotated[Union[InputSource, ConstSource], Field(discriminator="type")]


class ExportColumn(StoredJsonSchema):
    header: Optional[str] = None
    source: ColumnSource


class ExportConfig(StoredJsonSchema):
    """
    Per-partner projection of snapshot columns into output columns.

    copy_prefix_rows defaults to True when absent.
    """
    version: Literal[1]
    copy_prefix_rows: Optional[bool] = None
    columns: list[ExportColumn] = Field(..., min_length=1)

    @property
    def should_copy_prefix_rows(self) -> bool:
        return True if self.copy_prefix_rows is None else self.copy_prefix_rows


# ===================
# SOURCE SNAPSHOT (version 1)
# ===================

class SnapshotDataRow(StoredJsonSchema):
    row_number: int = Field(..., ge=1)
    cells: list[str]


class SourceSnapshot(StoredJsonSchema):
    """Structural capture of a shopping mall upload taken at ingest time."""
    version: Literal[1]
    sheet_name: str
    total_rows: int
    column_count: int = Field(..., ge=1)
    header_row: int = Field(..., ge=1)
    data_start_row: int = Field(..., ge=1)
    prefix_rows: list[list[str]]
    header_cells: list[str]
    data_rows: list[SnapshotDataRow]


# ===================
# TEMPLATES
# ===================

def validate_column_mappings(value: dict[str, str]) -> dict[str, str]:
    known = {f.value for f in CanonicalField}
    cleaned: dict[str, str] = {}
    for field_name, letter in value.items():
        if field_name not in known:
            raise ValueError(f"unknown field: {field_name}")
        if not is_column_letter(letter):
            raise ValueError(f"invalid column letter for {field_name}: {letter!r}")
        cleaned[field_name] = letter.strip().upper()
    return cleaned


def validate_fixed_values(value: dict[str, str]) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    for letter, literal in value.items():
        if not is_column_letter(letter):
            raise ValueError(f"fixed value key must be a column letter: {letter!r}")
        if literal.strip():
            cleaned[letter.strip().upper()] = literal.strip()
    return cleaned


def coerce_export_config(value):
    """Request bodies arrive as dicts; validate them as stored JSON would be."""
    if value is None or isinstance(value, ExportConfig):
        return value
    try:
        return ExportConfig.model_validate_json(json.dumps(value))
    except (TypeError, PydanticValidationError) as e:
        raise ValueError(f"invalid export config: {e}")


class ShoppingMallTemplateCreate(BaseSchema):
    """
    Create a shopping mall template.

    column_mappings: canonical field -> column letter
    fixed_values: column letter -> literal ({{variable}} placeholders allowed)
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mall_name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    header_row: int = Field(1, ge=1)
    data_start_row: Optional[int] = Field(None, ge=1)
    column_mappings: dict[str, str] = Field(default_factory=dict)
    fixed_values: dict[str, str] = Field(default_factory=dict)
    export_config: Optional[ExportConfig] = None
    enabled: bool = True

    @field_validator("column_mappings")
    @classmethod
    def check_column_mappings(cls, v: dict[str, str]) -> dict[str, str]:
        return validate_column_mappings(v)

    @field_validator("fixed_values")
    @classmethod
    def check_fixed_values(cls, v: dict[str, str]) -> dict[str, str]:
        return validate_fixed_values(v)

    @field_validator("export_config", mode="before")
    @classmethod
    def check_export_config(cls, v):
        return coerce_export_config(v)

    @model_validator(mode="after")
    def check_rows(self):
        if self.data_start_row is not None and self.data_start_row <= self.header_row:
            raise ValueError("data_start_row must be greater than header_row")
        return self


class ShoppingMallTemplateUpdate(BaseSchema):
    """All fields optional - only provided fields are updated."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    header_row: Optional[int] = Field(None, ge=1)
    data_start_row: Optional[int] = Field(None, ge=1)
    column_mappings: Optional[dict[str, str]] = None
    fixed_values: Optional[dict[str, str]] = None
    export_config: Optional[ExportConfig] = None
    clear_export_config: bool = False
    enabled: Optional[bool] = None

    @field_validator("column_mappings")
    @classmethod
    def check_column_mappings(cls, v: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        return None if v is None else validate_column_mappings(v)

    @field_validator("fixed_values")
    @classmethod
    def check_fixed_values(cls, v: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        return None if v is None else validate_fixed_values(v)

    @field_validator("export_config", mode="before")
    @classmethod
    def check_export_config(cls, v):
        return coerce_export_config(v)


class ShoppingMallTemplate(BaseSchema):
    """
    Template as read from the store.

    export_config_json stays raw: a malformed export config must only fail
    exports, never ingestion.
    """
    id: int
    mall_name: str
    display_name: str
    header_row: int = 1
    data_start_row: int = 2
    column_mappings: dict[str, str] = Field(default_factory=dict)
    fixed_values: dict[str, str] = Field(default_factory=dict)
    export_config_json: Optional[str] = None
    enabled: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def export_config_response(self) -> tuple[Optional[dict], bool]:
        """(camelCase export config or None, whether the stored JSON is malformed)."""
        if not self.export_config_json:
            return None, False
        try:
            config = ExportConfig.model_validate_json(self.export_config_json)
        except PydanticValidationError:
            return None, True
        return config.model_dump(mode="json", by_alias=True, exclude_none=True), False

    def to_response(self) -> dict:
        export_config, export_config_malformed = self.export_config_response()
        return {
            "id": self.id,
            "mallName": self.mall_name,
            "displayName": self.display_name,
            "headerRow": self.header_row,
            "dataStartRow": self.data_start_row,
            "columnMappings": self.column_mappings,
            "fixedValues": self.fixed_values,
            "exportConfig": export_config,
            "hasExportConfig": bool(self.export_config_json),
            "exportConfigMalformed": export_config_malformed,
            "enabled": self.enabled,
        }


# ===================
# ANALYSIS / RESULTS
# ===================

class ColumnInfo(BaseModel):
    column_index: int  # 1-based, matches ExportConfig input columnIndex
    column_letter: str
    header: str


class TemplateAnalysis(BaseModel):
    detected_header_row: int  # 1-based
    headers: list[str]
    columns: list[ColumnInfo]
    preview_rows: list[list[str]]
    total_rows: int

    def to_dict(self) -> dict:
        return {
            "detectedHeaderRow": self.detected_header_row,
            "headers": self.headers,
            "columns": [
                {
                    "columnIndex": c.column_index,
                    "columnLetter": c.column_letter,
                    "header": c.header,
                }
                for c in self.columns
            ],
            "previewRows": self.preview_rows,
            "totalRows": self.total_rows,
        }


class ExportFile(BaseModel):
    """Generated workbook plus the name it is downloaded under."""
    filename: str
    content: bytes
    row_count: int
