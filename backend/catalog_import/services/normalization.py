"""
Normalization and validation of staged rows.

Two separate passes: apply_mappings turns raw {header: text} rows into typed
{field: value} rows, then validate_rows checks the typed rows. A remap re-runs
both passes over the stored raw rows without parsing the file again.
"""
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from .column_mapping import IGNORE
from .target_schema import FieldType, TargetFieldSpec, TARGET_FIELDS, get_field

ROW_INDEX_KEY = "_row_index"
ERRORS_KEY = "_errors"

MAX_TITLE_LENGTH = 500
MAX_PRICE = 999999.99
MIN_PUBLICATION_YEAR = 1000

TRUE_VALUES = {"y", "yes", "true", "1", "signed"}

# Free-text availability values used by vendors for the status field
STATUS_SYNONYMS: Dict[str, str] = {
    "for sale": "published",
    "active": "published",
    "published": "published",
    "draft": "draft",
    "sold": "sold",
    "archived": "archived",
    "pending": "pending",
}

_YEAR_PATTERN = re.compile(r"\b(\d{4})\b")
_CURRENCY_CHARS = re.compile(r"[,$]")
_LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_ENUM_SEPARATORS = re.compile(r"[\s_]+")
_IMAGE_SEPARATORS = re.compile(r"\s*\|\s*|\s*,\s*")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


# ---------------------------------------------------------------------------
# Normalizers, one per field type
# ---------------------------------------------------------------------------

def _normalize_number(value: str, spec: TargetFieldSpec) -> Optional[float]:
    if spec.key == "publication_year":
        # Dates like "C 1913" or "1840-05-01"
        match = _YEAR_PATTERN.search(value)
        return int(match.group(1)) if match else None
    # Leading number only: "12.50 USD" -> 12.5, "3 copies" -> 3, "1_000" -> 1
    match = _LEADING_NUMBER.match(_CURRENCY_CHARS.sub("", value))
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def _normalize_boolean(value: str, spec: TargetFieldSpec) -> bool:
    return value.lower() in TRUE_VALUES


def _normalize_enum(value: str, spec: TargetFieldSpec) -> Optional[str]:
    if spec.key == "status":
        return STATUS_SYNONYMS.get(value.lower()) or spec.default
    candidate = _ENUM_SEPARATORS.sub("-", value.lower())
    if spec.options and candidate in spec.options:
        return candidate
    return spec.default


def _normalize_images(value: str, spec: TargetFieldSpec) -> List[str]:
    urls = [u.strip() for u in _IMAGE_SEPARATORS.split(value)]
    return [u for u in urls if u and (u.startswith("http") or u.startswith("/"))]


def _normalize_string(value: str, spec: TargetFieldSpec) -> str:
    return value


NORMALIZERS: Dict[FieldType, Callable[[str, TargetFieldSpec], Any]] = {
    FieldType.NUMBER: _normalize_number,
    FieldType.BOOLEAN: _normalize_boolean,
    FieldType.ENUM: _normalize_enum,
    FieldType.IMAGES: _normalize_images,
    FieldType.STRING: _normalize_string,
    FieldType.TEXT: _normalize_string,
}

_missing = set(FieldType) - set(NORMALIZERS)
if _missing:
    raise RuntimeError(f"No normalizer for field types: {sorted(t.value for t in _missing)}")


def normalize_value(raw: Any, spec: TargetFieldSpec) -> Any:
    """Convert one raw cell into the typed value for a target field."""
    if raw is None:
        return spec.default
    text = str(raw).strip()
    if not text:
        return spec.default
    return NORMALIZERS[spec.type](text, spec)


def normalize_edit_value(value: Any, spec: TargetFieldSpec) -> Any:
    """
    Normalize a value sent in a row edit.

    JSON numbers are kept for number fields and JSON booleans for boolean
    fields. Lists are joined with "|" and everything else is converted to text,
    then both go through the field's normalizer like a file cell.
    """
    if spec.type == FieldType.NUMBER and _is_number(value):
        return value
    if spec.type == FieldType.BOOLEAN and isinstance(value, bool):
        return value
    if isinstance(value, (list, tuple)):
        value = "|".join(str(v) for v in value if v is not None)
    return normalize_value(value, spec)


def apply_mappings(
    raw_rows: List[Mapping[str, Any]],
    mapping: Mapping[str, Optional[str]],
) -> List[Dict[str, Any]]:
    """
    Map raw rows onto target fields and normalize every value.

    Ignored columns and unknown target keys are skipped. Fields left unset get
    their schema default. Each row carries its 1-based position in raw_rows.
    """
    targets = [
        (column, get_field(target))
        for column, target in mapping.items()
        if target and target != IGNORE and get_field(target) is not None
    ]

    normalized_rows = []
    for index, raw in enumerate(raw_rows):
        row: Dict[str, Any] = {ROW_INDEX_KEY: index + 1}
        for column, spec in targets:
            row[spec.key] = normalize_value(raw.get(column), spec)

        # Apply defaults for missing fields
        for spec in TARGET_FIELDS:
            if spec.key not in row and spec.default is not None:
                row[spec.key] = spec.default

        normalized_rows.append(row)
    return normalized_rows


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_row(row: Mapping[str, Any], current_year: Optional[int] = None) -> List[FieldError]:
    """
    Every rule violated by a row; an empty list means the row is valid.

    Rules run independently in a fixed order: title required, price, quantity,
    publication year, price maximum, title length. The order is what the error
    report's `errors` column shows.
    """
    errors: List[FieldError] = []
    max_year = (current_year or datetime.utcnow().year) + 1

    title = row.get("title")
    if title is None or not str(title).strip():
        errors.append(FieldError("title", "Title is required"))

    price = row.get("price")
    if not _is_number(price) or price < 0:
        errors.append(FieldError("price", "Price must be a valid positive number"))

    quantity = row.get("quantity")
    if quantity is not None and (not _is_number(quantity) or quantity < 0):
        errors.append(FieldError("quantity", "Quantity must be a non-negative number"))

    year = row.get("publication_year")
    if year is not None and (not _is_number(year) or not MIN_PUBLICATION_YEAR <= year <= max_year):
        errors.append(FieldError(
            "publication_year",
            f"Publication year must be between {MIN_PUBLICATION_YEAR} and {max_year}",
        ))

    if _is_number(price) and price > MAX_PRICE:
        errors.append(FieldError("price", "Price exceeds maximum allowed value"))

    if title is not None and len(str(title)) > MAX_TITLE_LENGTH:
        errors.append(FieldError("title", f"Title exceeds {MAX_TITLE_LENGTH} characters"))

    return errors


@dataclass
class ValidationResult:
    """Rows in input order, plus the valid/invalid partition and error summary."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    valid_rows: List[Dict[str, Any]] = field(default_factory=list)
    invalid_rows: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)


def with_errors(row: Mapping[str, Any], errors: List[FieldError]) -> Dict[str, Any]:
    """Copy of row with _errors set (or removed when there are none)."""
    checked = {k: v for k, v in row.items() if k != ERRORS_KEY}
    if errors:
        checked[ERRORS_KEY] = [e.to_dict() for e in errors]
    return checked


def validate_rows(rows: List[Mapping[str, Any]], current_year: Optional[int] = None) -> ValidationResult:
    """Validate all rows, accumulating every error per row."""
    result = ValidationResult()
    for row in rows:
        errors = validate_row(row, current_year)
        checked = with_errors(row, errors)
        result.rows.append(checked)
        if errors:
            result.invalid_rows.append(checked)
            result.errors.append({"row_index": checked.get(ROW_INDEX_KEY), "errors": checked[ERRORS_KEY]})
        else:
            result.valid_rows.append(checked)
    return result


def is_valid(row: Mapping[str, Any]) -> bool:
    return not row.get(ERRORS_KEY)


def collect_errors(rows: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Error summary for rows that currently carry errors."""
    return [
        {"row_index": row.get(ROW_INDEX_KEY), "errors": row[ERRORS_KEY]}
        for row in rows
        if not is_valid(row)
    ]


def compute_stats(rows: List[Mapping[str, Any]], total_rows: int, total_parsed: int, truncated: bool) -> Dict[str, Any]:
    valid = sum(1 for row in rows if is_valid(row))
    return {
        "total_rows": total_rows,
        "total_parsed": total_parsed,
        "valid_rows": valid,
        "invalid_rows": len(rows) - valid,
        "truncated": truncated,
    }
