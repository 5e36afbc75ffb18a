"""
Shopping mall template store.

Column mappings, fixed values and the export config are JSON text columns.
They are validated on save and again on read: a stored blob that no longer
validates is a structural failure for whatever reads it (imports for the
column config, exports for the export config).
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config import fetch_all_rows, get_supabase_client, is_unique_violation
from exceptions import (
    DatabaseError,
    DuplicateError,
    ExportConfigMissingError,
    InvalidDataStartRowError,
    MalformedExportConfigError,
    MalformedTemplateError,
    TemplateDisabledError,
    TemplateNotFoundError,
)
from models.shopping_mall import (
    ExportConfig,
    ShoppingMallTemplate,
    ShoppingMallTemplateCreate,
    ShoppingMallTemplateUpdate,
    validate_column_mappings,
    validate_fixed_values,
)

logger = structlog.get_logger(__name__)


def _load_json_map(raw: Optional[str], mall_id: Any, field: str, validate) -> dict[str, str]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedTemplateError(mall_id=mall_id, field=field, reason=str(e))
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise MalformedTemplateError(mall_id=mall_id, field=field, reason="expected an object of strings")
    try:
        return validate(value)
    except ValueError as e:
        raise MalformedTemplateError(mall_id=mall_id, field=field, reason=str(e))


def parse_export_config(raw: str) -> ExportConfig:
    """
    Strictly validate stored export config JSON.

    Raises:
        MalformedExportConfigError: Not JSON, wrong version, unknown keys, etc.
    """
    try:
        return ExportConfig.model_validate_json(raw)
    except PydanticValidationError as e:
        raise MalformedExportConfigError(reason=str(e.errors(include_url=False)[:3]))


class ShoppingMallTemplateService:
    def __init__(self):
        self.db = get_supabase_client()
        self.table = "shopping_mall_templates"

    # ===================
    # READ OPERATIONS
    # ===================

    def _to_template(self, row: dict) -> ShoppingMallTemplate:
        mall_id = row.get("id")
        header_row = max(1, row.get("header_row") or 1)
        data_start_row = row.get("data_start_row") or header_row + 1
        return ShoppingMallTemplate(
            id=mall_id,
            mall_name=row["mall_name"],
            display_name=row["display_name"],
            header_row=header_row,
            data_start_row=data_start_row,
            column_mappings=_load_json_map(
                row.get("column_mappings"), mall_id, "column_mappings", validate_column_mappings
            ),
            fixed_values=_load_json_map(
                row.get("fixed_values"), mall_id, "fixed_values", validate_fixed_values
            ),
            export_config_json=row.get("export_config") or None,
            enabled=row.get("enabled", True),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def _get_row(self, mall_id: int) -> dict:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", mall_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_template_failed", mall_id=mall_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise TemplateNotFoundError(mall_id)
        return result.data[0]

    def get_all(self) -> list[dict]:
        """Templates as API dicts. Malformed rows are listed, flagged."""
        try:
            rows = fetch_all_rows(
                lambda: self.db.table(self.table).select("*").order("display_name").order("id")
            )
        except Exception as e:
            logger.error("get_templates_failed", error=str(e))
            raise DatabaseError("select", str(e))

        templates = []
        for row in rows:
            try:
                templates.append(self._to_template(row).to_response())
            except MalformedTemplateError as e:
                logger.warning("template_malformed", mall_id=row.get("id"), details=e.details)
                templates.append({
                    "id": row.get("id"),
                    "mallName": row.get("mall_name"),
                    "displayName": row.get("display_name"),
                    "enabled": row.get("enabled", True),
                    "malformed": True,
                })
        return templates

    def get(self, mall_id: int) -> ShoppingMallTemplate:
        """
        Raises:
            TemplateNotFoundError: Unknown id
            MalformedTemplateError: Stored column config no longer validates
        """
        return self._to_template(self._get_row(mall_id))

    def get_enabled(self, mall_id: int) -> ShoppingMallTemplate:
        """Like get(), but a disabled template raises TemplateDisabledError."""
        template = self.get(mall_id)
        if not template.enabled:
            raise TemplateDisabledError(mall_id)
        return template

    def get_export_config(self, template: ShoppingMallTemplate) -> ExportConfig:
        """
        Raises:
            ExportConfigMissingError: Template has no export config
            MalformedExportConfigError: Stored config does not validate
        """
        if not template.export_config_json:
            raise ExportConfigMissingError(template.id)
        return parse_export_config(template.export_config_json)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ShoppingMallTemplateCreate) -> ShoppingMallTemplate:
        """
        Raises:
            DuplicateError: mall_name already used
        """
        logger.info("creating_template", mall_name=data.mall_name)

        existing = (
            self.db.table(self.table)
            .select("id")
            .eq("mall_name", data.mall_name)
            .execute()
        )
        if existing.data:
            raise DuplicateError("ShoppingMallTemplate", "mall_name", data.mall_name)

        insert_data = {
            "mall_name": data.mall_name,
            "display_name": data.display_name,
            "header_row": data.header_row,
            "data_start_row": data.data_start_row or data.header_row + 1,
            "column_mappings": json.dumps(data.column_mappings, ensure_ascii=False),
            "fixed_values": json.dumps(data.fixed_values, ensure_ascii=False),
            "export_config": data.export_config.to_json() if data.export_config else None,
            "enabled": data.enabled,
        }

        try:
            result = self.db.table(self.table).insert(insert_data).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise DuplicateError("ShoppingMallTemplate", "mall_name", data.mall_name)
            logger.error("create_template_failed", mall_name=data.mall_name, error=str(e))
            raise DatabaseError("insert", str(e))

        template = self._to_template(result.data[0])
        logger.info("template_created", mall_id=template.id, mall_name=template.mall_name)
        return template

    def update(self, mall_id: int, data: ShoppingMallTemplateUpdate) -> ShoppingMallTemplate:
        """
        Update only provided fields.

        Raises:
            TemplateNotFoundError: Unknown id
            ValidationError: Resulting data start row is not after the header row
        """
        current = self._get_row(mall_id)
        patch: dict = {}

        if data.display_name is not None:
            patch["display_name"] = data.display_name
        if data.header_row is not None:
            patch["header_row"] = data.header_row
        if data.data_start_row is not None:
            patch["data_start_row"] = data.data_start_row
        if data.column_mappings is not None:
            patch["column_mappings"] = json.dumps(data.column_mappings, ensure_ascii=False)
        if data.fixed_values is not None:
            patch["fixed_values"] = json.dumps(data.fixed_values, ensure_ascii=False)
        if data.export_config is not None:
            patch["export_config"] = data.export_config.to_json()
        elif data.clear_export_config:
            patch["export_config"] = None
        if data.enabled is not None:
            patch["enabled"] = data.enabled

        header_row = patch.get("header_row", current.get("header_row") or 1)
        data_start_row = patch.get("data_start_row", current.get("data_start_row") or header_row + 1)
        if data_start_row <= header_row:
            raise InvalidDataStartRowError(header_row=header_row, data_start_row=data_start_row)

        if not patch:
            return self._to_template(current)

        patch["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = (
                self.db.table(self.table)
                .update(patch)
                .eq("id", mall_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_template_failed", mall_id=mall_id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info("template_updated", mall_id=mall_id, fields=sorted(patch.keys()))
        return self._to_template(result.data[0])


_service: Optional[ShoppingMallTemplateService] = None


def get_template_service() -> ShoppingMallTemplateService:
    global _service
    if _service is None:
        _service = ShoppingMallTemplateService()
    return _service
