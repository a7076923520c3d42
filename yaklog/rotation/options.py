"""Configuration, limits and errors for the size-based rotating file writer.

The writer renames the active log file with a timestamp suffix once it grows
past ``max_size`` and opens a fresh file. Old files can optionally be gzip
compressed and pruned by age, count or total size.

All paths are normalised and checked to stay inside the configured directory.
Symbolic links for the directory or the log file are refused. For production
use the log directory should be owned by the service user, have mode 0o750 and
not be a world-writable location such as ``/tmp``.

``min_free_bytes`` makes opening a log file fail with
:class:`InsufficientDiskSpaceError` when the filesystem is nearly full; on
platforms without a free-space query the check always passes.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Callable, Optional

DEFAULT_MAX_SIZE = 100 << 20
DEFAULT_EXT = ".log"
MAX_ALLOWED_BACKUPS = 1000
MIN_MAX_SIZE = 1 << 10
DEFAULT_MAX_AGE = 0
MAX_ALLOWED_MAX_AGE = 3650
MAX_COMPRESS_CONCURRENT = 2


class RotationError(Exception):
    """Base class of all rotation errors."""

    message = "rotation: error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)


class InvalidDirError(RotationError):
    message = "rotation: invalid directory path"


class InvalidFilenameError(RotationError):
    message = "rotation: invalid filename"


class InvalidMaxSizeError(RotationError):
    message = "rotation: maxSize must be > 0"


class DirNotAbsError(RotationError):
    message = "rotation: directory path must be absolute"


class PathTraversalError(RotationError):
    message = "rotation: path traversal detected"


class WriterClosedError(RotationError):
    message = "rotation: writer closed"


class SymlinkDetectedError(RotationError):
    message = "rotation: symlink detected"


class InsufficientDiskSpaceError(RotationError):
    message = "rotation: insufficient disk space"


@dataclass
class RotationOptions:
    """Settings of a rotating writer; zero values mean "use the default"."""

    dir: str = ""
    filename: str = ""
    ext: str = ""
    max_size: int = 0
    max_backups: int = 0
    max_age: int = 0
    compress: bool = False
    local_time: bool = False
    min_free_bytes: int = 0
    max_total_size: int = 0
    on_write_error: Optional[Callable[[BaseException, bytes], None]] = None


def apply_defaults(options: RotationOptions) -> RotationOptions:
    """Return a copy of ``options`` with defaults filled in and limits clamped."""
    ext = options.ext or DEFAULT_EXT
    max_size = options.max_size if options.max_size > 0 else DEFAULT_MAX_SIZE
    max_backups = min(max(options.max_backups, 0), MAX_ALLOWED_BACKUPS)
    max_age = options.max_age if options.max_age >= 0 else DEFAULT_MAX_AGE
    max_age = min(max_age, MAX_ALLOWED_MAX_AGE)
    return dataclasses.replace(
        options,
        ext=ext,
        max_size=max_size,
        max_backups=max_backups,
        max_age=max_age,
    )


def validate(options: RotationOptions) -> None:
    """Raise a :class:`RotationError` subclass if ``options`` are unusable."""
    if not options.dir:
        raise InvalidDirError()
    if not os.path.isabs(options.dir):
        raise DirNotAbsError()
    if not options.filename:
        raise InvalidFilenameError()
    if os.path.basename(options.filename) != options.filename:
        raise InvalidFilenameError()
    if options.filename in (".", ".."):
        raise InvalidFilenameError()
    if options.max_size < MIN_MAX_SIZE:
        raise InvalidMaxSizeError()