"""
Unit tests for the product catalog import.

Run: pytest tests/unit/test_product_import_service.py -v
"""

import pytest

from exceptions import MissingRequiredHeaderError
from services.product_import_service import ProductImportService
from tests.factories import ManufacturerFactory, ProductFactory, build_csv, build_xlsx


def run_import(rows, filename="products.xlsx"):
    content = build_xlsx(rows) if filename.endswith(".xlsx") else build_csv(rows)
    return ProductImportService().import_file(content, filename)


@pytest.fixture
def acme(fake_db):
    return fake_db.seed("manufacturers", [ManufacturerFactory.create(name="Acme Corp")])[0]


class TestCreate:

    def test_creates_with_money_and_manufacturer(self, fake_db, acme):
        # Arrange
        rows = [
            ["상품코드", "상품명", "제조사명", "판매가", "원가", "배송비"],
            ["P-1", "Chair", "acme  corp", "12,000원", "₩ 7,000", "3000"],
        ]

        # Act
        result = run_import(rows)

        # Assert
        assert result.created == 1
        product = fake_db.rows("products")[0]
        assert product["product_code"] == "P-1"
        assert product["manufacturer_id"] == acme["id"]
        assert (product["price"], product["cost"], product["shipping_fee"]) == (12000, 7000, 3000)

    def test_missing_money_defaults_to_zero(self, fake_db):
        run_import([["code", "product_name"], ["P-1", "Chair"]])

        product = fake_db.rows("products")[0]
        assert product["price"] == 0
        assert product["manufacturer_id"] is None

    def test_code_column_is_mandatory(self, fake_db):
        with pytest.raises(MissingRequiredHeaderError):
            run_import([["상품명", "판매가"], ["Chair", "100"]])


class TestRowSkips:

    def test_invalid_money_names_the_column(self, fake_db):
        # Act
        result = run_import([["상품코드", "판매가", "원가"], ["P-1", "100", "lots"]])

        # Assert
        assert result.skipped == 1
        assert result.errors[0].message == "cost: not a valid number"
        assert result.errors[0].key == "P-1"
        assert fake_db.rows("products") == []

    def test_unknown_manufacturer_rejects_row(self, fake_db, acme):
        result = run_import([["상품코드", "제조사"], ["P-1", "Nobody Inc"]])

        assert result.skipped == 1
        assert result.errors[0].message == "manufacturer 'Nobody Inc' not found"

    def test_empty_code(self, fake_db):
        result = run_import([["상품코드", "상품명"], [None, "Chair"]])

        assert result.errors[0].message == "product code is empty"

    def test_code_match_is_case_insensitive(self, fake_db):
        result = run_import([["상품코드"], ["ab-1"], ["AB-1 "]])

        assert result.created == 1
        assert result.errors[0].message == "duplicate in file"


class TestUpdate:

    def test_only_changed_fields_are_patched(self, fake_db):
        # Arrange
        fake_db.seed("products", [
            ProductFactory.create(product_code="P-1", product_name="Chair", price=100, cost=50)
        ])

        # Act
        result = run_import([["상품코드", "상품명", "판매가", "원가"], ["p-1", None, "150", "50"]])

        # Assert
        assert result.updated == 1
        product = fake_db.rows("products")[0]
        assert product["product_name"] == "Chair"
        assert product["price"] == 150
        assert product["product_code"] == "P-1"

    def test_zero_against_stored_null_is_unchanged(self, fake_db):
        fake_db.seed("products", [ProductFactory.create(product_code="P-1", price=None, cost=None)])

        result = run_import([["상품코드", "판매가", "원가"], ["P-1", "0", "0"]])

        assert result.unchanged == 1
        assert fake_db.rows("products")[0]["price"] is None

    def test_reimport_is_unchanged(self, fake_db, acme):
        rows = [["상품코드", "제조사명", "판매가"], ["P-1", "Acme Corp", "100"]]
        run_import(rows)

        result = run_import(rows)

        assert result.unchanged == 1
        assert result.total_rows == result.created + result.updated + result.skipped


class TestOrderBackfill:

    def seed_orders(self, fake_db):
        return fake_db.seed("orders", [
            {"order_number": "O-1", "product_code": "p-1", "manufacturer_id": None, "status": "pending"},
            {"order_number": "O-2", "product_code": "P-1", "manufacturer_id": None, "status": "completed"},
            {"order_number": "O-3", "product_code": "P-2", "manufacturer_id": None, "status": "pending"},
        ])

    def test_new_product_stamps_open_orders(self, fake_db, acme):
        # Arrange
        self.seed_orders(fake_db)

        # Act
        run_import([["상품코드", "제조사명"], ["P-1", "Acme Corp"]])

        # Assert
        orders = {o["order_number"]: o for o in fake_db.rows("orders")}
        assert orders["O-1"]["manufacturer_id"] == acme["id"]
        assert orders["O-1"]["manufacturer_name"] == "Acme Corp"
        assert orders["O-2"]["manufacturer_id"] is None
        assert orders["O-3"]["manufacturer_id"] is None

    def test_manufacturer_change_on_update_stamps_orders(self, fake_db, acme):
        fake_db.seed("products", [ProductFactory.create(product_code="P-1")])
        self.seed_orders(fake_db)

        run_import([["상품코드", "제조사명"], ["P-1", "Acme Corp"]])

        orders = {o["order_number"]: o for o in fake_db.rows("orders")}
        assert orders["O-1"]["manufacturer_id"] == acme["id"]

    def test_backfill_failure_does_not_fail_row(self, fake_db, acme):
        # Arrange
        self.seed_orders(fake_db)
        fake_db.failures[("orders", "update")] = Exception("timeout")

        # Act
        result = run_import([["상품코드", "제조사명"], ["P-1", "Acme Corp"]])

        # Assert
        assert result.created == 1
        assert fake_db.rows("orders")[0]["manufacturer_id"] is None


class TestStorePaging:

    def test_reimport_past_row_cap_is_unchanged(self, fake_db):
        # Arrange: the store answers at most two rows per request
        fake_db.seed("products", [
            ProductFactory.create(product_code=f"P-{n}", price=100) for n in range(1, 6)
        ])
        fake_db.max_rows = 2

        # Act
        result = run_import([["상품코드", "판매가"], ["p-5", "100"]])

        # Assert
        assert result.unchanged == 1
        assert result.skipped == 0
        assert len(fake_db.rows("products")) == 5

    def test_backfill_reaches_every_open_order(self, fake_db, acme):
        fake_db.seed("orders", [
            {"order_number": f"O-{n}", "product_code": "P-1", "manufacturer_id": None, "status": "pending"}
            for n in range(4)
        ])
        fake_db.max_rows = 1

        run_import([["상품코드", "제조사명"], ["P-1", "Acme Corp"]])

        assert {o["manufacturer_id"] for o in fake_db.rows("orders")} == {acme["id"]}
