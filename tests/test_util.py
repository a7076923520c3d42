import json

import pytest

from yaklog.sampling import Level
from yaklog.util import (
    TimeFormat,
    escape_char,
    format_timestamp,
    json_float,
    json_str,
    level_pad,
    level_short,
    level_string,
    source_json_field,
    strip_cr,
    text_value,
)


def _as_object(fragment: str) -> dict:
    return json.loads("{" + fragment[1:] + "}")


def test_source_windows_path_escaped():
    got = source_json_field("C:\\Users\\project\\main.go", 42)
    assert "C:\\\\Users\\\\project\\\\main.go" in got
    assert _as_object(got)["source"] == "C:\\Users\\project\\main.go:42"


def test_source_quote_in_path():
    got = source_json_field('/path/to/"quoted"/file.go', 10)
    assert '/"quoted"' not in got
    assert _as_object(got)["source"] == '/path/to/"quoted"/file.go:10'


def test_source_normal_path():
    got = source_json_field("/home/user/project/main.go", 123)
    assert got == ',"source":"/home/user/project/main.go:123"'
    assert _as_object(got)["source"] == "/home/user/project/main.go:123"


def test_timestamp_rfc3339_epoch():
    assert format_timestamp(0, TimeFormat.RFC3339_MILLI) == "1970-01-01T00:00:00.000Z"


def test_timestamp_rfc3339_truncates_to_millis():
    nsec = 1_767_225_600_123_456_789
    assert format_timestamp(nsec, TimeFormat.RFC3339_MILLI) == "2026-01-01T00:00:00.123Z"


@pytest.mark.parametrize(
    "fmt, expected",
    [
        (TimeFormat.UNIX_SEC, "1500"),
        (TimeFormat.UNIX_MILLI, "1500000"),
        (TimeFormat.UNIX_NANO, "1500000000123"),
        (TimeFormat.OFF, ""),
    ],
)
def test_timestamp_numeric_formats(fmt, expected):
    assert format_timestamp(1_500_000_000_123, fmt) == expected


def test_timestamp_negative_truncates_toward_zero():
    assert format_timestamp(-1_500_000_000, TimeFormat.UNIX_SEC) == "-1"


@pytest.mark.parametrize(
    "level, full, short, pad",
    [
        (Level.TRACE, "TRACE", "T", "TRACE"),
        (Level.DEBUG, "DEBUG", "D", "DEBUG"),
        (Level.INFO, "INFO", "I", "INFO "),
        (Level.WARN, "WARN", "W", "WARN "),
        (Level.ERROR, "ERROR", "E", "ERROR"),
        (Level.PANIC, "PANIC", "P", "PANIC"),
        (Level.FATAL, "FATAL", "F", "FATAL"),
    ],
)
def test_level_names(level, full, short, pad):
    assert level_string(level) == full
    assert level_short(level) == short
    assert level_pad(level) == pad


def test_unknown_level_reads_as_info():
    assert level_string(99) == "INFO"
    assert level_short(99) == "I"
    assert level_pad(99) == "INFO "


def test_json_str_plain():
    assert json_str("hello") == '"hello"'


def test_json_str_escapes():
    assert json_str('a"b\\c\nd\te\x01') == '"a\\"b\\\\c\\nd\\te\\u0001"'


def test_json_str_keeps_html_characters():
    assert json_str("<a>&") == '"<a>&"'


def test_json_str_long_round_trip():
    s = "x" * 40 + "\r\n" + '"quoted"' + "\x1f" + "y" * 30
    assert json.loads(json_str(s)) == s


@pytest.mark.parametrize(
    "c, expected",
    [
        ('"', '\\"'),
        ("\\", "\\\\"),
        ("\n", "\\n"),
        ("\r", "\\r"),
        ("\t", "\\t"),
        ("\b", "\\b"),
        ("\f", "\\f"),
        ("\x00", "\\u0000"),
        ("\x1f", "\\u001f"),
    ],
)
def test_escape_char(c, expected):
    assert escape_char(c) == expected


def test_strip_cr():
    assert strip_cr("a\r\nb\rc") == "a\nbc"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("abc", "abc"),
        ("", ""),
        ("a b", '"a b"'),
        ("k=v", '"k=v"'),
        ('q"', '"q\\""'),
        ("line\nbreak", '"line\\nbreak"'),
    ],
)
def test_text_value(value, expected):
    assert text_value(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.5, "1.5"),
        (3.14, "3.14"),
        (1.0, "1"),
        (200.0, "200"),
        (1e21, "1000000000000000000000"),
        (1e-7, "0.0000001"),
        (-2.25, "-2.25"),
        (float("nan"), '"NaN"'),
        (float("inf"), '"Inf"'),
        (float("-inf"), '"-Inf"'),
    ],
)
def test_json_float(value, expected):
    assert json_float(value) == expected