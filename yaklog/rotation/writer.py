"""Size-based rotating log file writer."""

from __future__ import annotations

import contextlib
import errno
import gzip
import os
import shutil
import stat
import sys
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from .options import (
    MAX_COMPRESS_CONCURRENT,
    InsufficientDiskSpaceError,
    PathTraversalError,
    RotationError,
    RotationOptions,
    SymlinkDetectedError,
    WriterClosedError,
    apply_defaults,
    validate,
)

_MAX_UINT64 = (1 << 64) - 1
_MAX_COLLISION_SUFFIX = 9999
_SECONDS_PER_DAY = 24 * 60 * 60


def available_bytes(path: str) -> int:
    """Return the bytes available to unprivileged users on the filesystem of ``path``.

    Where the platform offers no way to ask, an unlimited amount is reported.
    """
    statvfs = getattr(os, "statvfs", None)
    if statvfs is None:
        return _MAX_UINT64
    st = statvfs(path)
    return st.f_bavail * st.f_frsize


def _open_no_follow(path: str, flags: int, mode: int = 0o640) -> int:
    """Open ``path`` without following a symbolic link in its last component."""
    nofollow = getattr(os, "O_NOFOLLOW", 0)
    flags |= getattr(os, "O_BINARY", 0)
    if not nofollow:
        try:
            st = os.lstat(path)
        except FileNotFoundError:
            if not flags & os.O_CREAT:
                raise
        else:
            if stat.S_ISLNK(st.st_mode):
                raise SymlinkDetectedError()
    try:
        return os.open(path, flags | nofollow, mode)
    except OSError as exc:
        if exc.errno == errno.ELOOP:
            raise SymlinkDetectedError() from exc
        raise


def _gzip_file(src: str, dst: str) -> None:
    in_fd = _open_no_follow(src, os.O_RDONLY)
    with os.fdopen(in_fd, "rb") as fin:
        out_fd = _open_no_follow(dst, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o640)
        with os.fdopen(out_fd, "wb") as fout:
            with gzip.GzipFile(
                filename="", mode="wb", compresslevel=1, fileobj=fout, mtime=0
            ) as gz:
                shutil.copyfileobj(fin, gz)


def compress_file(src: str) -> None:
    """Gzip ``src`` to ``src + ".gz"`` and remove ``src``; on failure keep ``src``."""
    dst = src + ".gz"
    try:
        _gzip_file(src, dst)
    except (OSError, RotationError):
        with contextlib.suppress(OSError):
            os.remove(dst)
        return
    with contextlib.suppress(OSError):
        os.remove(src)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class RotatingWriter:
    """Writes to ``<dir>/<filename><ext>`` and rotates it once it reaches ``max_size``.

    Backups are named ``<filename>-YYYYMMDD-HHMMSS.mmm<ext>``. Writing, rotating
    and closing are serialised by one lock, so the writer is thread safe.

    ``now_fn``, ``available_bytes_fn`` and ``compress_fn`` are the clock, the
    free-space query and the compressor; they may be replaced on an instance.
    """

    def __init__(
        self,
        dir: str,
        filename: str,
        *,
        ext: str = "",
        max_size: int = 0,
        max_backups: int = 0,
        max_age: int = 0,
        compress: bool = False,
        local_time: bool = False,
        min_free_bytes: int = 0,
        max_total_size: int = 0,
        on_write_error: Optional[Callable[[BaseException, bytes], None]] = None,
    ) -> None:
        opts = apply_defaults(
            RotationOptions(
                dir=dir,
                filename=filename,
                ext=ext,
                max_size=max_size,
                max_backups=max_backups,
                max_age=max_age,
                compress=compress,
                local_time=local_time,
                min_free_bytes=min_free_bytes,
                max_total_size=max_total_size,
                on_write_error=on_write_error,
            )
        )
        validate(opts)
        self._opts = opts
        self._safe_dir = os.path.join(os.path.normpath(opts.dir), "")
        self._lock = threading.Lock()
        self._fd: Optional[int] = None
        self._written = 0
        self._closed = False
        self._write_ok = False
        self._cleanup_lock = threading.Lock()
        self._compress_sem = threading.BoundedSemaphore(MAX_COMPRESS_CONCURRENT)
        self.now_fn: Callable[[], datetime] = _local_now
        self.available_bytes_fn: Callable[[str], int] = available_bytes
        self.compress_fn: Callable[[str], None] = compress_file
        self._open_locked()
        self._write_ok = True

    # ── public API ──────────────────────────────────────────────────────────

    def write(self, data: bytes) -> int:
        """Append ``data`` to the current file, rotating when it grows too large."""
        data = bytes(data)
        with self._lock:
            if self._closed:
                raise WriterClosedError()
            if self._written > 0 and len(data) >= self._opts.max_size:
                with contextlib.suppress(OSError, RotationError):
                    self._rotate_locked()
            try:
                n = self._write_all(data)
            except OSError as exc:
                self._write_ok = False
                self._report_write_error(exc, data)
                raise
            self._write_ok = True
            if self._written >= self._opts.max_size:
                with contextlib.suppress(OSError, RotationError):
                    self._rotate_locked()
            return n

    def rotate(self) -> None:
        """Rotate now, whatever the size of the current file."""
        with self._lock:
            if self._closed:
                raise WriterClosedError()
            self._rotate_locked()

    def close(self) -> None:
        """Close the current file and apply the retention limits once more."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            close_err: Optional[OSError] = None
            if self._fd is not None:
                fd, self._fd = self._fd, None
                try:
                    os.close(fd)
                except OSError as exc:
                    close_err = exc
            if self._has_limits():
                self._cleanup()
            if close_err is not None:
                raise close_err

    def healthy(self) -> bool:
        """True while the writer is open and its last file write succeeded."""
        return not self._closed and self._write_ok

    def __enter__(self) -> "RotatingWriter":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ── internals ───────────────────────────────────────────────────────────

    def _has_limits(self) -> bool:
        o = self._opts
        return o.max_backups > 0 or o.max_age > 0 or o.max_total_size > 0

    def _write_all(self, data: bytes) -> int:
        if self._fd is None:
            raise OSError(errno.EBADF, "log file is not open")
        view = memoryview(data)
        total = 0
        while total < len(data):
            n = os.write(self._fd, view[total:])
            total += n
            self._written += n
        return total

    def _report_write_error(self, exc: BaseException, data: bytes) -> None:
        callback = self._opts.on_write_error
        if callback is not None:
            callback(exc, data)
            return
        with contextlib.suppress(Exception):
            sys.stderr.write(data.decode("utf-8", "replace"))
            sys.stderr.flush()

    def _current_path(self) -> str:
        return os.path.join(self._opts.dir, self._opts.filename + self._opts.ext)

    def _stamp(self, t: datetime) -> str:
        if not self._opts.local_time:
            t = t.astimezone(timezone.utc)
        return t.strftime("%Y%m%d-%H%M%S.") + f"{t.microsecond // 1000:03d}"

    def _backup_path(self, t: datetime) -> str:
        name = f"{self._opts.filename}-{self._stamp(t)}{self._opts.ext}"
        return os.path.join(self._opts.dir, name)

    def _unique_backup_path(self, t: datetime) -> str:
        bak = self._backup_path(t)
        self._check_path(bak)
        if not os.path.lexists(bak):
            return bak
        stamp = self._stamp(t)
        for i in range(2, _MAX_COLLISION_SUFFIX + 1):
            name = f"{self._opts.filename}-{stamp}-{i}{self._opts.ext}"
            candidate = os.path.join(self._opts.dir, name)
            self._check_path(candidate)
            if not os.path.lexists(candidate):
                return candidate
        return bak

    def _check_path(self, path: str) -> None:
        if not os.path.normpath(path).startswith(self._safe_dir):
            raise PathTraversalError()

    def _ensure_dir_not_symlink(self) -> None:
        st = os.lstat(os.path.normpath(self._opts.dir))
        if stat.S_ISLNK(st.st_mode):
            raise SymlinkDetectedError()

    def _open_locked(self) -> None:
        path = self._current_path()
        self._check_path(path)
        os.makedirs(self._opts.dir, 0o750, exist_ok=True)
        self._ensure_dir_not_symlink()
        if self._opts.min_free_bytes > 0:
            avail = self.available_bytes_fn(self._opts.dir)
            if avail < self._opts.min_free_bytes:
                raise InsufficientDiskSpaceError()
        fd = _open_no_follow(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o640)
        try:
            size = os.fstat(fd).st_size
        except OSError:
            os.close(fd)
            raise
        self._fd = fd
        self._written = size

    def _rotate_locked(self) -> None:
        if self._fd is not None:
            fd, self._fd = self._fd, None
            os.close(fd)

        cur = self._current_path()
        bak = self._unique_backup_path(self.now_fn())

        if os.path.exists(cur):
            os.replace(cur, bak)
            if self._opts.compress:
                fn = self.compress_fn
                if self._compress_sem.acquire(blocking=False):
                    threading.Thread(
                        target=self._compress_async, args=(fn, bak), daemon=True
                    ).start()
                else:
                    fn(bak)

        self._open_locked()

        if self._has_limits() and self._cleanup_lock.acquire(blocking=False):
            threading.Thread(target=self._cleanup_async, daemon=True).start()

    def _compress_async(self, fn: Callable[[str], None], path: str) -> None:
        try:
            with contextlib.suppress(Exception):
                fn(path)
        finally:
            self._compress_sem.release()

    def _cleanup_async(self) -> None:
        try:
            self._cleanup()
        finally:
            self._cleanup_lock.release()

    def _cleanup(self) -> None:
        """Remove backups beyond the age, count and total size limits."""
        o = self._opts
        prefix = o.filename + "-"
        backups: list[tuple[str, float]] = []
        try:
            with os.scandir(o.dir) as it:
                entries = list(it)
        except OSError:
            return
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            name = entry.name
            if not name.startswith(prefix):
                continue
            if not (name.endswith(o.ext) or name.endswith(o.ext + ".gz")):
                continue
            full = os.path.join(o.dir, name)
            if not os.path.normpath(full).startswith(self._safe_dir):
                continue
            try:
                mtime = entry.stat(follow_symlinks=False).st_mtime
            except OSError:
                continue
            backups.append((full, mtime))

        backups.sort(key=lambda b: b[0])

        if o.max_age > 0:
            cutoff = self.now_fn().timestamp() - o.max_age * _SECONDS_PER_DAY
            remaining = []
            for path, mtime in backups:
                if mtime < cutoff:
                    with contextlib.suppress(OSError):
                        os.remove(path)
                else:
                    remaining.append((path, mtime))
            backups = remaining

        if o.max_backups > 0 and len(backups) > o.max_backups:
            excess = len(backups) - o.max_backups
            for path, _ in backups[:excess]:
                with contextlib.suppress(OSError):
                    os.remove(path)
            backups = backups[excess:]

        if o.max_total_size > 0 and backups:
            total = 0
            for path, _ in backups:
                with contextlib.suppress(OSError):
                    total += os.stat(path).st_size
            while backups and total > o.max_total_size:
                oldest, _ = backups.pop(0)
                size = 0
                with contextlib.suppress(OSError):
                    size = os.stat(oldest).st_size
                try:
                    os.remove(oldest)
                except OSError:
                    continue
                total -= size