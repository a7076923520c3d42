"""Formatting helpers shared by the encoders: timestamps, level names, JSON and text escaping."""

from __future__ import annotations

import enum
import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from .sampling import Level

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NS_PER_SEC = 1_000_000_000
_NS_PER_MS = 1_000_000


class TimeFormat(enum.IntEnum):
    """How the record timestamp is written."""

    RFC3339_MILLI = 0
    UNIX_SEC = 1
    UNIX_MILLI = 2
    UNIX_NANO = 3
    OFF = 4


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // b
    return -q if a < 0 else q


def format_timestamp(nsec: int, fmt: TimeFormat) -> str:
    """Format a nanosecond Unix timestamp in the given format."""
    if fmt == TimeFormat.UNIX_SEC:
        return str(_trunc_div(nsec, _NS_PER_SEC))
    if fmt == TimeFormat.UNIX_MILLI:
        return str(_trunc_div(nsec, _NS_PER_MS))
    if fmt == TimeFormat.UNIX_NANO:
        return str(nsec)
    if fmt == TimeFormat.OFF:
        return ""
    secs, rem = divmod(nsec, _NS_PER_SEC)
    dt = _EPOCH + timedelta(seconds=secs)
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}T"
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{rem // _NS_PER_MS:03d}Z"
    )


_LEVEL_NAMES = {
    Level.TRACE: "TRACE",
    Level.DEBUG: "DEBUG",
    Level.WARN: "WARN",
    Level.ERROR: "ERROR",
    Level.PANIC: "PANIC",
    Level.FATAL: "FATAL",
}

_LEVEL_SHORT = {
    Level.TRACE: "T",
    Level.DEBUG: "D",
    Level.WARN: "W",
    Level.ERROR: "E",
    Level.PANIC: "P",
    Level.FATAL: "F",
}

_LEVEL_PAD = {
    Level.TRACE: "TRACE",
    Level.DEBUG: "DEBUG",
    Level.WARN: "WARN ",
    Level.ERROR: "ERROR",
    Level.PANIC: "PANIC",
    Level.FATAL: "FATAL",
}


def level_string(level: int) -> str:
    """Full upper-case level name; unknown levels read as INFO."""
    return _LEVEL_NAMES.get(level, "INFO")


def level_short(level: int) -> str:
    """One-letter level abbreviation; unknown levels read as I."""
    return _LEVEL_SHORT.get(level, "I")


def level_pad(level: int) -> str:
    """Level name padded to five characters; unknown levels read as INFO."""
    return _LEVEL_PAD.get(level, "INFO ")


_SIMPLE_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}


def escape_char(c: str) -> str:
    """JSON escape sequence for a single character that needs escaping."""
    simple = _SIMPLE_ESCAPES.get(c)
    if simple is not None:
        return simple
    return f"\\u{ord(c):04x}"


_ESCAPE_TABLE = {code: escape_char(chr(code)) for code in range(0x20)}
_ESCAPE_TABLE[ord('"')] = escape_char('"')
_ESCAPE_TABLE[ord("\\")] = escape_char("\\")


def json_str(s: str) -> str:
    """Quote ``s`` as a JSON string; control characters, quotes and backslashes are escaped."""
    return '"' + s.translate(_ESCAPE_TABLE) + '"'


def source_json_field(file: str, line: int) -> str:
    """The ``,"source":"file:line"`` JSON fragment with the path escaped."""
    return ',"source":"' + file.translate(_ESCAPE_TABLE) + ":" + str(line) + '"'


def strip_cr(s: str) -> str:
    """Remove every carriage return from ``s``."""
    return s.replace("\r", "")


def text_value(s: str) -> str:
    """Render ``s`` as a text-format value, quoting it when it holds spaces, '=' or escapes."""
    if any(c <= " " or c in '="\\' for c in s):
        return json_str(s)
    return s


def json_float(val: float) -> str:
    """Shortest plain-decimal JSON form of ``val``; NaN and infinities become strings."""
    if math.isnan(val):
        return '"NaN"'
    if math.isinf(val):
        return '"Inf"' if val > 0 else '"-Inf"'
    text = format(Decimal(repr(float(val))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text