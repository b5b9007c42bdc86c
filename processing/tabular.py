"""
Tabular Parser - Raw feed payload -> header list + row dicts.

Two ingestion shapes are supported:
- Delimited text with a header row (CSV export of the sheet)
- Structured JSON: an array of row objects keyed by field name

Both end up as a ParsedTable so the series builder never cares which one
the source served.
"""

import csv
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from errors import FormatError

logger = logging.getLogger(__name__)


@dataclass
class ParsedTable:
    """Header names plus rows keyed by header."""

    headers: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def first_row(self) -> Dict[str, Any]:
        return self.rows[0] if self.rows else {}


def split_lines(text: str) -> List[str]:
    """Normalize line endings and drop blank lines."""
    normalized = text.replace('\r\n', '\n').replace('\r', '\n')
    return [line for line in normalized.split('\n') if line.strip()]


def parse_delimited(text: str) -> ParsedTable:
    """
    Parse comma-delimited text with a header row.

    Quoted fields may contain commas; a doubled quote inside a quoted
    field is a literal quote. Short lines are padded with empty strings.

    Raises:
        FormatError: no comma anywhere in the payload, or no data rows
    """
    if ',' not in text:
        raise FormatError("Payload does not look like delimited text (no field separator found)")

    lines = split_lines(text)
    if len(lines) < 2:
        raise FormatError(f"Expected a header row and at least one data row, got {len(lines)} line(s)")

    reader = csv.reader(lines, delimiter=',', quotechar='"', doublequote=True)
    headers = [h.strip() for h in next(reader)]

    rows = []
    for values in reader:
        row = {}
        for i, header in enumerate(headers):
            row[header] = values[i] if i < len(values) else ''
        rows.append(row)

    return ParsedTable(headers=headers, rows=rows)


def parse_records(records: Any) -> ParsedTable:
    """
    Wrap pre-parsed records (JSON array of objects).

    Only non-emptiness is validated; rows that are not objects are skipped.
    """
    if not isinstance(records, list) or not records:
        raise FormatError("Structured payload must be a non-empty array of records")

    headers: List[str] = []
    seen = set()
    rows = []
    for record in records:
        if not isinstance(record, dict):
            continue
        for key in record:
            if key not in seen:
                seen.add(key)
                headers.append(key)
        rows.append(record)

    if not rows:
        raise FormatError("Structured payload contains no record objects")

    return ParsedTable(headers=headers, rows=rows)


def detect_format(text: str) -> str:
    """Guess 'json' or 'csv' from the first non-space character."""
    stripped = text.lstrip()
    return 'json' if stripped[:1] in ('[', '{') else 'csv'


def parse_payload(text: str, fmt: str = 'auto') -> ParsedTable:
    """Parse a raw payload in the given format ('json', 'csv' or 'auto')."""
    if fmt == 'auto':
        fmt = detect_format(text)

    if fmt == 'json':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON payload: {e}") from e
        table = parse_records(data)
    elif fmt == 'csv':
        table = parse_delimited(text)
    else:
        raise FormatError(f"Unknown payload format '{fmt}'")

    logger.debug(f"[Parser] {fmt}: {len(table.headers)} columns, {len(table.rows)} rows")
    return table
