"""Output targets: coloured console, rotating JSON files and a discarding sink."""

from __future__ import annotations

import io
import os
import stat
import sys
from dataclasses import dataclass
from typing import Any, Optional, Union

from .rotation.options import SymlinkDetectedError
from .rotation.writer import RotatingWriter

_BINARY_MAGICS = frozenset(
    {
        0x7F454C46,  # ELF
        0xFEEDFACE,  # Mach-O 32-bit BE
        0xCEFAEDFE,  # Mach-O 32-bit LE
        0xFEEDFACF,  # Mach-O 64-bit BE
        0xCFFAEDFE,  # Mach-O 64-bit LE
        0xCAFEBABE,  # Mach-O fat / Java class
    }
)


class InvalidPathError(ValueError):
    """The log file path is empty or cannot be resolved."""

    def __init__(self, message: str = "yaklog: invalid log file path") -> None:
        super().__init__(message)


class NotLogFileError(ValueError):
    """The existing target is not a plain, non-executable, non-binary file."""

    def __init__(self, message: str = "yaklog: target is not a log file") -> None:
        super().__init__(message)


class ConsoleSink:
    """Text output target; a logger writing here uses the coloured text encoder."""

    def __init__(self, stream: Any = None) -> None:
        self.stream = stream if stream is not None else sys.stderr

    def write(self, data: Union[bytes, str]) -> int:
        if isinstance(data, (bytes, bytearray)) and isinstance(self.stream, io.TextIOBase):
            self.stream.write(bytes(data).decode("utf-8", "replace"))
            return len(data)
        return self.stream.write(data)


@dataclass
class LazySave:
    """Placeholder for a file target; resolved to a rotating writer when a logger is built."""

    path: str = ""

    def write(self, data: bytes) -> int:
        raise ValueError("yaklog: invalid options: file target has not been opened")


class _Discard:
    def write(self, data: Union[bytes, str]) -> int:
        return len(data)


_DISCARD = _Discard()


def console(stream: Any = None) -> ConsoleSink:
    """Create a text sink writing to ``stream`` (default: standard error)."""
    return ConsoleSink(stream)


def save(path: Optional[str] = None) -> LazySave:
    """Create a rotating JSON file target; without a path the logger's file path is used."""
    return LazySave(path or "")


def _split_ext(base: str) -> tuple[str, str]:
    idx = base.rfind(".")
    if idx < 0:
        return base, ""
    return base[:idx], base[idx:]


def open_save(
    path: str,
    max_size_mb: int,
    max_backups: int,
    max_age: int,
    compress: bool,
    local_time: bool,
) -> RotatingWriter:
    """Open a rotating writer for ``path`` after checking an existing target is a log file.

    Relative paths are resolved against the current directory now, so later
    directory changes do not move the log.
    """
    if not path:
        raise InvalidPathError()
    try:
        clean = os.path.normpath(os.path.abspath(path))
    except (OSError, ValueError) as exc:
        raise InvalidPathError() from exc
    if not os.path.isabs(clean):
        raise InvalidPathError()

    try:
        info = os.lstat(clean)
    except OSError:
        info = None
    if info is not None:
        if stat.S_ISLNK(info.st_mode):
            raise SymlinkDetectedError()
        check_existing_file(clean, info)

    directory, base = os.path.split(clean)
    name, ext = _split_ext(base)
    if not ext:
        ext = ".log"
    return RotatingWriter(
        directory,
        name,
        ext=ext,
        max_size=max_size_mb * 1024 * 1024,
        max_backups=max_backups,
        max_age=max_age,
        compress=compress,
        local_time=local_time,
    )


def check_existing_file(path: str, info: os.stat_result) -> None:
    """Raise unless ``path`` (described by ``info``) is safe to append log lines to."""
    mode = info.st_mode
    if stat.S_ISLNK(mode):
        raise SymlinkDetectedError()
    if not stat.S_ISREG(mode):
        raise NotLogFileError()
    if stat.S_IMODE(mode) & 0o111:
        raise NotLogFileError()
    if is_binary_magic(path):
        raise NotLogFileError()


def is_binary_magic(path: str) -> bool:
    """Whether the file starts with a known executable magic number; unreadable files are not."""
    try:
        with open(path, "rb") as f:
            head = f.read(4)
    except OSError:
        return False
    if len(head) < 2:
        return False
    if head[:2] == b"MZ":
        return True
    if len(head) < 4:
        return False
    return int.from_bytes(head, "big") in _BINARY_MAGICS


def discard() -> _Discard:
    """A sink that throws away everything written to it."""
    return _DISCARD