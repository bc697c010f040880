"""
Unit tests for the invalid-rows CSV export.
"""
import csv
import io

from catalog_import.services.error_report import format_errors, generate_error_csv


def _read(report):
    return list(csv.reader(io.StringIO(report)))


class TestGenerateErrorCsv:

    def test_only_invalid_rows(self):
        rows = [
            {"_row_index": 1, "title": "Fine", "price": 3.0},
            {
                "_row_index": 2,
                "title": "Smith, J.",
                "price": None,
                "_errors": [{"field": "price", "message": "Price must be a valid positive number"}],
            },
        ]
        parsed = _read(generate_error_csv(rows))
        assert parsed == [
            ["title", "price", "errors"],
            ["Smith, J.", "", "price: Price must be a valid positive number"],
        ]

    def test_comma_in_value_is_quoted(self):
        rows = [{"title": "Smith, J.", "_errors": [{"field": "price", "message": "bad"}]}]
        report = generate_error_csv(rows)
        assert '"Smith, J."' in report

    def test_value_formatting(self):
        rows = [{
            "title": "A",
            "quantity": 2.0,
            "is_signed": True,
            "images": ["http://a/1.jpg", "http://a/2.jpg"],
            "_errors": [{"field": "price", "message": "bad"}],
        }]
        parsed = _read(generate_error_csv(rows))
        assert parsed[1][:4] == ["A", "2", "true", "http://a/1.jpg|http://a/2.jpg"]

    def test_all_valid_gives_empty_report(self):
        assert generate_error_csv([{"_row_index": 1, "title": "A", "price": 1.0}]) == ""


class TestFormatErrors:

    def test_joined_with_semicolons(self):
        errors = [
            {"field": "title", "message": "Title is required"},
            {"field": "price", "message": "Price must be a valid positive number"},
        ]
        assert format_errors(errors) == (
            "title: Title is required; price: Price must be a valid positive number"
        )
