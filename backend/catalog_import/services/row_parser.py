"""
Row parser for uploaded catalog files.

Turns CSV (or Excel) content into an ordered list of {header: value} records.
Parsing is lenient: short lines are padded, long lines are cut, blank lines are
skipped and every cell is trimmed.
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Union

from ..exceptions import ParseError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 5000
BOM = "\ufeff"

CSV_EXTENSIONS = (".csv", ".txt")
EXCEL_EXTENSIONS = (".xlsx",)
ALLOWED_EXTENSIONS = CSV_EXTENSIONS + EXCEL_EXTENSIONS

# Long HTML descriptions exceed the csv module's 128 KiB default cell limit.
# 2**31 - 1 is the largest value accepted on every platform (C long).
MAX_FIELD_SIZE = 2**31 - 1
csv.field_size_limit(MAX_FIELD_SIZE)


@dataclass
class ParsedFile:
    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)
    total_parsed: int = 0

    @property
    def truncated(self) -> bool:
        return self.total_parsed > len(self.rows)


def decode_content(content: Union[bytes, str]) -> str:
    """Decode upload bytes, dropping a leading byte-order mark."""
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.info("Upload is not UTF-8, decoding as Latin-1")
            text = content.decode("latin-1")
    else:
        text = content
    if text.startswith(BOM):
        text = text[len(BOM):]
    return text


def _collect_rows(
    headers: List[str],
    records: Iterable[List[str]],
    max_rows: int,
) -> ParsedFile:
    parsed = ParsedFile(headers=headers)
    width = len(headers)

    for record in records:
        cells = [str(c).strip() if c is not None else "" for c in record]
        # Skip completely empty rows
        if not any(cells):
            continue
        cells = (cells + [""] * width)[:width]
        if parsed.total_parsed < max_rows:
            parsed.rows.append(dict(zip(headers, cells)))
        parsed.total_parsed += 1

    if not parsed.rows:
        raise ParseError("CSV file has no data rows")
    return parsed


def parse_csv(content: Union[bytes, str], max_rows: int = DEFAULT_MAX_ROWS) -> ParsedFile:
    """
    Parse CSV content into headers and rows.

    Args:
        content: Raw upload bytes or already-decoded text
        max_rows: Maximum number of rows kept; the rest are only counted

    Returns:
        ParsedFile with headers from the first record, at most max_rows rows,
        and total_parsed holding the real row count

    Raises:
        ParseError: If the file has no headers, no data rows, or is malformed
    """
    text = decode_content(content)
    reader = csv.reader(io.StringIO(text, newline=""))

    try:
        headers: List[str] = []
        for record in reader:
            header_cells = [c.strip() for c in record]
            if any(header_cells):
                headers = header_cells
                break
        if not headers:
            raise ParseError("CSV file has no headers or is empty")
        parsed = _collect_rows(headers, reader, max_rows)
    except csv.Error as e:
        raise ParseError(f"Invalid CSV format: {e}")

    logger.info(
        f"Parsed CSV: {len(headers)} columns, {parsed.total_parsed} rows "
        f"({len(parsed.rows)} kept)"
    )
    return parsed


def parse_workbook(content: bytes, max_rows: int = DEFAULT_MAX_ROWS) -> ParsedFile:
    """Parse the active sheet of an .xlsx workbook with the same contract as parse_csv."""
    import openpyxl

    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ParseError(f"Could not open Excel file: {e}")

    try:
        ws = wb.active
        if ws is None:
            raise ParseError("Excel file has no active worksheet")
        all_rows = ws.iter_rows(values_only=True)

        first = next(all_rows, None)
        if first is None or not any(c not in (None, "") for c in first):
            raise ParseError("CSV file has no headers or is empty")

        # First row = headers
        headers = [
            str(c).strip() if c is not None else f"Column_{i}"
            for i, c in enumerate(first)
        ]
        parsed = _collect_rows(headers, (list(r) for r in all_rows), max_rows)
    finally:
        wb.close()

    logger.info(f"Parsed workbook: {len(headers)} columns, {parsed.total_parsed} rows")
    return parsed


def parse_upload(file_name: str, content: Union[bytes, str], max_rows: int = DEFAULT_MAX_ROWS) -> ParsedFile:
    """Parse an upload, choosing the reader from the file extension."""
    lower = (file_name or "").lower()
    if lower.endswith(EXCEL_EXTENSIONS):
        if isinstance(content, str):
            raise ParseError("Excel uploads must be sent as a file")
        return parse_workbook(content, max_rows)
    if not lower or lower.endswith(CSV_EXTENSIONS):
        return parse_csv(content, max_rows)
    raise ParseError(
        "Unsupported file format",
        details={"file_name": file_name, "allowed": list(ALLOWED_EXTENSIONS)},
    )
