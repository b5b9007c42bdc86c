"""Processing module - Coercion, parsing, range filters and statistics."""

from .coercion import parse_number, parse_date
from .tabular import ParsedTable, parse_delimited, parse_records, parse_payload
from .temporal import RangeWindow, range_start, filter_by_range
from .analytics import Change, latest, change_from_previous, change_over_window

__all__ = [
    'parse_number',
    'parse_date',
    'ParsedTable',
    'parse_delimited',
    'parse_records',
    'parse_payload',
    'RangeWindow',
    'range_start',
    'filter_by_range',
    'Change',
    'latest',
    'change_from_previous',
    'change_over_window',
]
