"""
Test suite for the Order Ops back office.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_product_import_service.py -v
"""
