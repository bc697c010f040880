"""
Downloadable CSV of the rows that failed validation.
"""
import csv
import io
from typing import Any, Dict, List

from .normalization import ERRORS_KEY, is_valid


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "|".join(str(v) for v in value)
    return str(value)


def format_errors(errors: List[Dict[str, str]]) -> str:
    return "; ".join(f"{e.get('field')}: {e.get('message')}" for e in errors)


def generate_error_csv(normalized_rows: List[Dict[str, Any]]) -> str:
    """
    CSV with one line per invalid row plus an `errors` column.

    Columns are the invalid rows' target fields (internal `_` keys excluded).
    Returns an empty string when every row is valid.
    """
    invalid_rows = [row for row in normalized_rows if not is_valid(row)]
    if not invalid_rows:
        return ""

    fields = [key for key in invalid_rows[0] if not key.startswith("_")]

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(fields + ["errors"])
    for row in invalid_rows:
        values = [_format_cell(row.get(f)) for f in fields]
        values.append(format_errors(row.get(ERRORS_KEY) or []))
        writer.writerow(values)

    return output.getvalue()
