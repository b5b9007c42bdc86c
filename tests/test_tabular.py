import pytest

from errors import FormatError
from processing.tabular import detect_format, parse_delimited, parse_payload, parse_records


def test_quoted_field_keeps_comma():
    table = parse_delimited('x,y,z\na,"b,c",d\n')
    assert table.headers == ["x", "y", "z"]
    assert table.rows == [{"x": "a", "y": "b,c", "z": "d"}]


def test_doubled_quote_is_literal():
    table = parse_delimited('name,value\n"say ""hi""",1\n')
    assert table.rows[0]["name"] == 'say "hi"'


def test_line_endings_and_blank_lines():
    table = parse_delimited("date,v\r\n2024-01-01,1\r\n\r\n2024-01-02,2\r")
    assert [r["v"] for r in table.rows] == ["1", "2"]


def test_short_rows_are_padded():
    table = parse_delimited(" date , a , b \n2024-01-01,1\n")
    assert table.headers == ["date", "a", "b"]
    assert table.rows[0] == {"date": "2024-01-01", "a": "1", "b": ""}


def test_no_separator_is_format_error():
    with pytest.raises(FormatError):
        parse_delimited("date\n2024-01-01\n")


def test_header_only_is_format_error():
    with pytest.raises(FormatError):
        parse_delimited("date,value\n")


def test_records_union_headers_in_first_seen_order():
    table = parse_records([{"date": "2024-01-01", "a": 1}, "skip me", {"date": "2024-01-02", "b": 2}])
    assert table.headers == ["date", "a", "b"]
    assert len(table.rows) == 2


def test_records_must_be_non_empty_list():
    with pytest.raises(FormatError):
        parse_records([])
    with pytest.raises(FormatError):
        parse_records({"date": "2024-01-01"})
    with pytest.raises(FormatError):
        parse_records([1, 2, 3])


def test_detect_format():
    assert detect_format('  [{"a": 1}]') == "json"
    assert detect_format("date,a\n") == "csv"


def test_parse_payload_json_and_errors():
    table = parse_payload('[{"date": "2024-01-01", "a": "1"}]')
    assert table.headers == ["date", "a"]

    with pytest.raises(FormatError):
        parse_payload('[{"date": ', "json")
    with pytest.raises(FormatError):
        parse_payload("date,a\n2024-01-01,1", "xml")
