"""
Unit tests for header row detection and column letters.

Run: pytest tests/unit/test_header_detector.py -v
"""

import pytest

from exceptions import EmptyInputError, InvalidHeaderRowError, MissingHeaderError
from parsers.header_detector import (
    column_index,
    column_letter,
    detect_header_row,
    find_first_non_empty_row,
    uniqueness_ratio,
)


class TestColumnLetters:

    @pytest.mark.parametrize("index,letter", [
        (0, "A"),
        (25, "Z"),
        (26, "AA"),
        (51, "AZ"),
        (701, "ZZ"),
        (702, "AAA"),
    ])
    def test_known_values(self, index, letter):
        assert column_letter(index) == letter
        assert column_index(letter) == index

    def test_bijective_for_first_52_columns(self):
        letters = [column_letter(i) for i in range(52)]

        assert len(set(letters)) == 52
        assert [column_index(letter) for letter in letters] == list(range(52))

    def test_lowercase_letters_accepted(self):
        assert column_index(" ab ") == 27

    @pytest.mark.parametrize("bad", ["", "A1", "가", "-"])
    def test_invalid_letters_rejected(self, bad):
        with pytest.raises(ValueError):
            column_index(bad)

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            column_letter(-1)


class TestDetectHeaderRow:

    def test_skips_repeated_title_banner(self):
        # Arrange
        rows = [
            ["보고서", "보고서", "보고서"],
            ["상품코드", "상품명", "제조사명"],
            ["P-1", "Chair", "Acme"],
        ]

        # Act
        index = detect_header_row(rows)

        # Assert
        assert index == 1

    def test_skips_short_rows(self):
        rows = [
            ["2024 orders"],
            ["", "exported", ""],
            ["주문번호", "상품명", "수량", "주소"],
        ]
        assert detect_header_row(rows) == 2

    def test_falls_back_to_first_row(self):
        rows = [["a"], ["b", "b", "b"], ["c"]]
        assert detect_header_row(rows) == 0

    def test_only_scans_configured_depth(self):
        rows = [["x"]] * 3 + [["a", "b", "c"]]
        assert detect_header_row(rows, scan_rows=3) == 0

    def test_ratio_must_exceed_threshold(self):
        # 2 distinct of 4 non-empty = 0.5, not > 0.5
        rows = [["a", "a", "b", "b"], ["h1", "h2", "h3"]]
        assert detect_header_row(rows) == 1

    def test_explicit_header_row_is_one_based(self):
        rows = [["t"], ["a", "b"], ["1", "2"]]
        assert detect_header_row(rows, header_row=2) == 1

    @pytest.mark.parametrize("header_row", [0, 4])
    def test_explicit_header_row_out_of_bounds(self, header_row):
        rows = [["a"], ["b"], ["c"]]
        with pytest.raises(InvalidHeaderRowError):
            detect_header_row(rows, header_row=header_row)

    def test_empty_grid(self):
        with pytest.raises(EmptyInputError):
            detect_header_row([])


class TestFirstNonEmptyRow:

    def test_skips_blank_rows(self):
        assert find_first_non_empty_row([[], ["", " "], ["name"]]) == 2

    def test_all_blank(self):
        with pytest.raises(MissingHeaderError):
            find_first_non_empty_row([[""], [" "]])

    def test_empty_grid(self):
        with pytest.raises(EmptyInputError):
            find_first_non_empty_row([])


class TestUniquenessRatio:

    def test_ignores_empty_cells(self):
        count, ratio = uniqueness_ratio(["a", "", "a", "b"])
        assert count == 3
        assert ratio == pytest.approx(2 / 3)
