"""
Unit tests for shopping mall template CRUD and sample-file analysis.

Run: pytest tests/unit/test_shopping_mall_template_service.py -v
"""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from exceptions import (
    DuplicateError,
    ExportConfigMissingError,
    InvalidDataStartRowError,
    InvalidHeaderRowError,
    MalformedExportConfigError,
    TemplateNotFoundError,
)
from models.shopping_mall import (
    ConstSource,
    ShoppingMallTemplateCreate,
    ShoppingMallTemplateUpdate,
)
from services.shopping_mall_template_service import ShoppingMallTemplateService
from services.template_analysis_service import analyze_template
from tests.factories import (
    TemplateFactory,
    build_csv,
    build_xlsx,
    const_column,
    export_config,
    input_column,
)


def create_payload(**overrides) -> ShoppingMallTemplateCreate:
    data = {
        "mallName": "mall-a",
        "displayName": "Mall A",
        "headerRow": 2,
        "columnMappings": {"order_number": "a", "quantity": "C"},
        "fixedValues": {"d": " {{displayName}} ", "E": "  "},
        **overrides,
    }
    return ShoppingMallTemplateCreate.model_validate(data)


class TestTemplateSchemas:

    def test_create_normalizes_letters_and_drops_blank_fixed_values(self):
        # Act
        payload = create_payload()

        # Assert
        assert payload.column_mappings == {"order_number": "A", "quantity": "C"}
        assert payload.fixed_values == {"D": "{{displayName}}"}

    def test_create_accepts_export_config_dict(self):
        payload = create_payload(exportConfig=export_config(input_column(1), const_column("x")))

        assert isinstance(payload.export_config.columns[1].source, ConstSource)

    @pytest.mark.parametrize("overrides", [
        {"columnMappings": {"nope": "A"}},
        {"columnMappings": {"order_number": "A1"}},
        {"fixedValues": {"1": "x"}},
        {"headerRow": 3, "dataStartRow": 3},
        {"exportConfig": {"version": 1, "columns": []}},
        {"exportConfig": {"version": 1, "columns": [{"source": {"type": "input", "columnIndex": "1"}}]}},
    ])
    def test_create_rejects_invalid(self, overrides):
        with pytest.raises(PydanticValidationError):
            create_payload(**overrides)


class TestTemplateService:

    def test_create_and_get(self, fake_db):
        # Arrange
        service = ShoppingMallTemplateService()

        # Act
        created = service.create(create_payload(exportConfig=export_config(input_column(1))))
        loaded = service.get(created.id)

        # Assert
        assert loaded.mall_name == "mall-a"
        assert loaded.header_row == 2
        assert loaded.data_start_row == 3
        assert loaded.column_mappings == {"order_number": "A", "quantity": "C"}
        assert service.get_export_config(loaded).columns[0].source.column_index == 1

    def test_stored_export_config_is_camel_case_json(self, fake_db):
        service = ShoppingMallTemplateService()
        service.create(create_payload(exportConfig=export_config(input_column(2), copy_prefix_rows=False)))

        stored = json.loads(fake_db.rows("shopping_mall_templates")[0]["export_config"])

        assert stored == {
            "version": 1,
            "copyPrefixRows": False,
            "columns": [{"source": {"type": "input", "columnIndex": 2}}],
        }

    def test_duplicate_mall_name(self, fake_db):
        service = ShoppingMallTemplateService()
        service.create(create_payload())

        with pytest.raises(DuplicateError) as exc:
            service.create(create_payload(displayName="Other"))

        assert exc.value.status_code == 409

    def test_duplicate_detected_on_insert_race(self, fake_db):
        # Arrange: another writer takes the name between the check and the insert
        fake_db.before_insert["shopping_mall_templates"] = lambda row: fake_db.seed(
            "shopping_mall_templates", [TemplateFactory.create(mall_name=row["mall_name"])]
        )

        # Act / Assert
        with pytest.raises(DuplicateError):
            ShoppingMallTemplateService().create(create_payload())

    def test_get_unknown(self, fake_db):
        with pytest.raises(TemplateNotFoundError):
            ShoppingMallTemplateService().get(5)

    def test_update_partial(self, fake_db):
        # Arrange
        service = ShoppingMallTemplateService()
        created = service.create(create_payload())

        # Act
        updated = service.update(created.id, ShoppingMallTemplateUpdate.model_validate({
            "displayName": "Mall A (new)",
            "exportConfig": export_config(const_column("x")),
        }))

        # Assert
        assert updated.display_name == "Mall A (new)"
        assert updated.column_mappings == created.column_mappings
        assert updated.export_config_json is not None
        assert fake_db.rows("shopping_mall_templates")[0]["updated_at"]

    def test_update_clears_export_config(self, fake_db):
        service = ShoppingMallTemplateService()
        created = service.create(create_payload(exportConfig=export_config(input_column(1))))

        updated = service.update(created.id, ShoppingMallTemplateUpdate(clear_export_config=True))

        with pytest.raises(ExportConfigMissingError):
            service.get_export_config(updated)

    def test_update_rejects_header_past_data_start(self, fake_db):
        service = ShoppingMallTemplateService()
        created = service.create(create_payload())

        with pytest.raises(InvalidDataStartRowError):
            service.update(created.id, ShoppingMallTemplateUpdate(header_row=3))

    def test_update_unknown(self, fake_db):
        with pytest.raises(TemplateNotFoundError):
            ShoppingMallTemplateService().update(9, ShoppingMallTemplateUpdate(enabled=False))

    def test_list_flags_malformed_rows(self, fake_db):
        # Arrange
        fake_db.seed("shopping_mall_templates", [
            TemplateFactory.create(display_name="A good"),
            TemplateFactory.create(display_name="B broken", column_mappings={"order_number": "??"}),
        ])

        # Act
        templates = ShoppingMallTemplateService().get_all()

        # Assert
        assert [t["displayName"] for t in templates] == ["A good", "B broken"]
        assert "malformed" not in templates[0]
        assert templates[1]["malformed"] is True

    def test_malformed_export_config_only_fails_export(self, fake_db):
        row = fake_db.seed("shopping_mall_templates", [
            TemplateFactory.create(export_config={"version": 3, "columns": []})
        ])[0]
        service = ShoppingMallTemplateService()

        template = service.get(row["id"])

        with pytest.raises(MalformedExportConfigError):
            service.get_export_config(template)

    def test_response_carries_export_config(self, fake_db):
        service = ShoppingMallTemplateService()
        created = service.create(create_payload(exportConfig=export_config(const_column("x", header="Memo"))))

        body = service.get(created.id).to_response()

        assert body["exportConfig"] == export_config(const_column("x", header="Memo"))
        assert body["exportConfigMalformed"] is False

    def test_response_with_malformed_export_config(self, fake_db):
        row = fake_db.seed("shopping_mall_templates", [
            TemplateFactory.create(export_config={"version": 3, "columns": []})
        ])[0]

        body = ShoppingMallTemplateService().get(row["id"]).to_response()

        assert body["exportConfig"] is None
        assert body["hasExportConfig"] is True
        assert body["exportConfigMalformed"] is True


class TestAnalyzeTemplate:

    def test_detects_header_and_columns(self):
        # Arrange
        content = build_xlsx([
            ["주문 내역", "주문 내역", "주문 내역"],
            ["주문번호", "상품명", "수량"],
            ["O-1", "Chair", 1],
            [None, None, None],
            ["O-2", "Desk"],
        ])

        # Act
        analysis = analyze_template(content, "sample.xlsx")

        # Assert
        assert analysis.detected_header_row == 2
        assert analysis.headers == ["주문번호", "상품명", "수량"]
        assert [(c.column_index, c.column_letter) for c in analysis.columns] == [(1, "A"), (2, "B"), (3, "C")]
        assert analysis.preview_rows == [["O-1", "Chair", "1"], ["O-2", "Desk", ""]]
        assert analysis.total_rows == 5

    def test_blank_header_cells_dropped_from_headers(self):
        content = build_csv([["주문번호", "", "수량"], ["O-1", "x", "1"]])

        analysis = analyze_template(content, "s.csv", header_row=1)

        assert analysis.headers == ["주문번호", "수량"]
        assert [c.header for c in analysis.columns] == ["주문번호", "", "수량"]

    def test_explicit_header_row(self):
        content = build_csv([["a", "b"], ["x", "y"], ["1", "2"]])

        analysis = analyze_template(content, "s.csv", header_row=2)

        assert analysis.headers == ["x", "y"]
        assert analysis.preview_rows == [["1", "2"]]

    def test_preview_is_capped(self):
        rows = [["h1", "h2", "h3"]] + [[str(i), "x", "y"] for i in range(20)]

        analysis = analyze_template(build_csv(rows), "s.csv")

        assert len(analysis.preview_rows) == 5

    def test_header_row_out_of_range(self):
        with pytest.raises(InvalidHeaderRowError):
            analyze_template(build_csv([["a"]]), "s.csv", header_row=3)

    def test_response_is_camel_case(self):
        body = analyze_template(build_csv([["a", "b", "c"], ["1", "2", "3"]]), "s.csv").to_dict()

        assert body["detectedHeaderRow"] == 1
        assert body["columns"][2] == {"columnIndex": 3, "columnLetter": "C", "header": "c"}
