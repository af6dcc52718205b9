import pytest

from finboard.tokenizer import detect_delimiter, split_records, tokenize_line


@pytest.mark.parametrize("delimiter", [",", ";", "\t", "|"])
def test_delimiter_round_trip(delimiter: str) -> None:
    """
    Joining simple fields with any candidate delimiter must be detected and
    split back into the same fields.
    """
    fields = ["Date", "Revenue", "Cost", "Profit"]
    line = delimiter.join(fields)

    assert detect_delimiter(line) == delimiter
    assert tokenize_line(line, delimiter) == fields


def test_detect_delimiter_prefers_most_fields() -> None:
    # Two semicolons beat one comma.
    assert detect_delimiter("a,b;c;d") == ";"


def test_detect_delimiter_tie_keeps_earlier_candidate() -> None:
    assert detect_delimiter("a,b;c") == ","


def test_detect_delimiter_defaults_to_comma() -> None:
    assert detect_delimiter("") == ","
    assert detect_delimiter("single") == ","


def test_quoted_field_keeps_delimiter_and_escaped_quotes() -> None:
    line = 'Acme,"1,200","He said ""hi"""'
    assert tokenize_line(line, ",") == ["Acme", "1,200", 'He said "hi"']


def test_quoted_field_keeps_inner_whitespace() -> None:
    assert tokenize_line('"  padded  " , plain ', ",") == ["  padded  ", "plain"]


def test_unquoted_fields_are_trimmed_and_stray_quotes_stripped() -> None:
    assert tokenize_line("  a  ,'b', c", ",") == ["a", "b", "c"]


def test_empty_fields_are_preserved() -> None:
    assert tokenize_line("a,,c,", ",") == ["a", "", "c", ""]


def test_blank_line_yields_no_fields() -> None:
    assert tokenize_line("", ",") == []
    assert tokenize_line("   ", ",") == []


def test_split_records_handles_crlf_and_quoted_newlines() -> None:
    text = 'name,note\r\nA,"line one\nline two"\r\nB,plain\n'
    records = split_records(text)

    assert records == ["name,note", 'A,"line one\nline two"', "B,plain"]
    assert tokenize_line(records[1], ",") == ["A", "line one\nline two"]


def test_split_records_treats_mid_field_quote_as_literal() -> None:
    text = 'Item,Qty\nScreen 5",10\nCable,3\nMouse,4\n'

    assert split_records(text) == ["Item,Qty", 'Screen 5",10', "Cable,3", "Mouse,4"]


def test_split_records_opens_quotes_after_delimiter_and_whitespace() -> None:
    text = 'a;b\n1; "x\ny";2\n3;4'

    assert split_records(text, ";") == ["a;b", '1; "x\ny";2', "3;4"]
