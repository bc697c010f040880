"""
Unit tests for value normalization and row validation.
"""
import pytest

from catalog_import.services.column_mapping import IGNORE
from catalog_import.services.normalization import (
    ERRORS_KEY,
    ROW_INDEX_KEY,
    apply_mappings,
    compute_stats,
    normalize_edit_value,
    normalize_value,
    validate_row,
    validate_rows,
)
from catalog_import.services.target_schema import get_field


def _norm(key, raw):
    return normalize_value(raw, get_field(key))


class TestNumbers:
    """Number normalization."""

    def test_currency_and_thousands(self):
        assert _norm("price", "$1,250.00") == 1250.0

    def test_plain_decimal(self):
        assert _norm("price", "19.99") == 19.99

    def test_leading_number_with_unit_suffix(self):
        assert _norm("price", "12.50 USD") == 12.5
        assert _norm("quantity", "3 copies") == 3
        assert _norm("weight", "1.2kg") == 1.2

    def test_only_the_leading_digits_are_read(self):
        assert _norm("price", "1_000") == 1.0
        assert _norm("price", ".5") == 0.5
        assert _norm("price", "-4") == -4.0
        assert _norm("weight", "2e3 g") == 2000.0

    def test_text_before_the_number_is_none(self):
        assert _norm("price", "USD 12.50") is None

    def test_garbage_is_none(self):
        assert _norm("price", "call for price") is None

    def test_infinity_is_rejected(self):
        assert _norm("weight", "inf") is None

    def test_year_embedded_in_text(self):
        assert _norm("publication_year", "C 1913") == 1913
        assert _norm("publication_year", "1840-05-01") == 1840

    def test_year_without_four_digit_run(self):
        assert _norm("publication_year", "19th century") is None

    def test_blank_quantity_gets_default(self):
        assert _norm("quantity", "   ") == 1


class TestBooleans:
    """Boolean normalization."""

    @pytest.mark.parametrize("raw", ["Y", "yes", "TRUE", "1", "Signed"])
    def test_truthy(self, raw):
        assert _norm("is_signed", raw) is True

    @pytest.mark.parametrize("raw", ["n", "no", "false", "0", "unsigned"])
    def test_falsy(self, raw):
        assert _norm("is_signed", raw) is False


class TestEnums:
    """Condition and status normalization."""

    def test_condition_spaces_become_hyphens(self):
        assert _norm("condition", "Very Good") == "very-good"
        assert _norm("condition", "like_new") == "like-new"

    def test_unknown_condition_has_no_default(self):
        assert _norm("condition", "mint") is None

    def test_status_synonyms(self):
        assert _norm("status", "For Sale") == "published"
        assert _norm("status", "ACTIVE") == "published"
        assert _norm("status", "sold") == "sold"

    def test_unknown_status_falls_back_to_draft(self):
        assert _norm("status", "on hold") == "draft"


class TestImages:
    """Image URL list normalization."""

    def test_pipe_and_comma_separated(self):
        raw = "http://a/1.jpg | https://b/2.png, /local/3.jpg"
        assert _norm("images", raw) == ["http://a/1.jpg", "https://b/2.png", "/local/3.jpg"]

    def test_non_urls_are_dropped(self):
        assert _norm("images", "cover.jpg|http://a/1.jpg") == ["http://a/1.jpg"]

    def test_blank_is_none(self):
        assert _norm("images", "") is None


class TestNormalizeEditValue:
    """Values sent as JSON in a row edit."""

    def test_image_list_is_filtered(self):
        value = ["not-a-url", "ftp://x", "http://a/1.jpg", None, "/img/2.jpg"]
        assert normalize_edit_value(value, get_field("images")) == ["http://a/1.jpg", "/img/2.jpg"]

    def test_image_list_without_urls(self):
        assert normalize_edit_value(["not-a-url", "ftp://x"], get_field("images")) == []

    def test_json_number_is_kept(self):
        assert normalize_edit_value(7, get_field("quantity")) == 7
        assert normalize_edit_value(-3.5, get_field("price")) == -3.5

    def test_json_boolean_is_kept(self):
        assert normalize_edit_value(False, get_field("is_signed")) is False

    def test_non_text_values_are_converted(self):
        assert normalize_edit_value(1999, get_field("edition")) == "1999"
        assert normalize_edit_value(True, get_field("price")) is None
        assert normalize_edit_value("  Very Good ", get_field("condition")) == "very-good"

    def test_null_resets_to_default(self):
        assert normalize_edit_value(None, get_field("quantity")) == 1
        assert normalize_edit_value(None, get_field("author")) is None


class TestApplyMappings:
    """Raw rows to typed rows."""

    def test_row_index_and_defaults(self):
        rows = apply_mappings(
            [{"Name": "Dune", "Cost": "9"}, {"Name": "Emma", "Cost": ""}],
            {"Name": "title", "Cost": "price"},
        )
        assert rows[0][ROW_INDEX_KEY] == 1
        assert rows[1][ROW_INDEX_KEY] == 2
        assert rows[0]["title"] == "Dune"
        assert rows[0]["price"] == 9.0
        assert rows[1]["price"] is None
        assert rows[0]["quantity"] == 1
        assert rows[0]["status"] == "draft"
        assert rows[0]["language"] == "English"
        assert "author" not in rows[0]

    def test_ignored_and_unmapped_columns(self):
        rows = apply_mappings(
            [{"Name": "Dune", "Notes": "x", "Other": "y"}],
            {"Name": "title", "Notes": IGNORE, "Other": None},
        )
        assert "Notes" not in rows[0]
        assert "Other" not in rows[0]
        assert set(rows[0]) == {ROW_INDEX_KEY, "title", "quantity", "status", "language"}


class TestValidateRow:
    """Validation rules."""

    def test_valid_row(self):
        assert validate_row({"title": "Dune", "price": 9.0}) == []

    def test_accumulates_all_errors(self):
        errors = validate_row({"title": "", "price": None, "quantity": -1})
        assert [e.field for e in errors] == ["title", "price", "quantity"]
        assert errors[0].message == "Title is required"
        assert errors[1].message == "Price must be a valid positive number"
        assert errors[2].message == "Quantity must be a non-negative number"

    def test_title_price_and_year_errors(self):
        errors = validate_row({"title": "", "price": -1, "publication_year": 50}, current_year=2024)
        assert [e.field for e in errors] == ["title", "price", "publication_year"]

    def test_error_order(self):
        row = {"title": "x" * 501, "price": 1000000.0, "quantity": -1, "publication_year": 50}
        errors = validate_row(row, current_year=2024)
        assert [(e.field, e.message) for e in errors] == [
            ("quantity", "Quantity must be a non-negative number"),
            ("publication_year", "Publication year must be between 1000 and 2025"),
            ("price", "Price exceeds maximum allowed value"),
            ("title", "Title exceeds 500 characters"),
        ]

    def test_zero_price_is_allowed(self):
        assert validate_row({"title": "Free", "price": 0.0}) == []

    def test_negative_price(self):
        errors = validate_row({"title": "Dune", "price": -1.0})
        assert errors[0].field == "price"

    def test_price_over_maximum(self):
        errors = validate_row({"title": "Dune", "price": 1000000.0})
        assert errors[0].message == "Price exceeds maximum allowed value"

    def test_long_title(self):
        errors = validate_row({"title": "x" * 501, "price": 1.0})
        assert errors[0].message == "Title exceeds 500 characters"

    def test_publication_year_bounds(self):
        assert validate_row({"title": "A", "price": 1.0, "publication_year": 2025}, current_year=2024) == []
        errors = validate_row({"title": "A", "price": 1.0, "publication_year": 2026}, current_year=2024)
        assert errors[0].message == "Publication year must be between 1000 and 2025"
        errors = validate_row({"title": "A", "price": 1.0, "publication_year": 999}, current_year=2024)
        assert errors[0].field == "publication_year"


class TestValidateRows:
    """Partition and stats."""

    def _rows(self):
        return apply_mappings(
            [
                {"t": "Dune", "p": "9"},
                {"t": "", "p": "abc"},
                {"t": "Emma", "p": "4"},
            ],
            {"t": "title", "p": "price"},
        )

    def test_partition_preserves_order(self):
        result = validate_rows(self._rows())
        assert [r[ROW_INDEX_KEY] for r in result.rows] == [1, 2, 3]
        assert [r[ROW_INDEX_KEY] for r in result.valid_rows] == [1, 3]
        assert [r[ROW_INDEX_KEY] for r in result.invalid_rows] == [2]
        assert len(result.valid_rows) + len(result.invalid_rows) == len(result.rows)

    def test_errors_summary(self):
        result = validate_rows(self._rows())
        assert result.errors == [{
            "row_index": 2,
            "errors": [
                {"field": "title", "message": "Title is required"},
                {"field": "price", "message": "Price must be a valid positive number"},
            ],
        }]
        assert ERRORS_KEY not in result.valid_rows[0]

    def test_revalidation_is_stable(self):
        first = validate_rows(self._rows())
        second = validate_rows(first.rows)
        assert second.rows == first.rows

    def test_compute_stats(self):
        result = validate_rows(self._rows())
        stats = compute_stats(result.rows, total_rows=3, total_parsed=3, truncated=False)
        assert stats == {
            "total_rows": 3,
            "total_parsed": 3,
            "valid_rows": 2,
            "invalid_rows": 1,
            "truncated": False,
        }
