"""Replaceable fatal/panic actions and observer callbacks for dropped or failed writes."""

from __future__ import annotations

import contextlib
import sys
from dataclasses import dataclass
from typing import Any, Callable, NoReturn, Optional


class LogPanic(Exception):
    """Raised by the default panic action; carries the log message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _default_fatal(code: int) -> NoReturn:
    sys.exit(code)


def _default_panic(msg: str) -> NoReturn:
    raise LogPanic(msg)


@dataclass
class _HookState:
    fatal: Callable[[int], Any] = _default_fatal
    panic: Callable[[str], Any] = _default_panic
    fatal_custom: bool = False
    on_drop: Optional[Callable[[], Any]] = None
    on_write_error: Optional[Callable[[BaseException], Any]] = None


_state = _HookState()


def set_fatal_func(fn: Callable[[int], Any]) -> None:
    """Replace the action taken at Fatal level (default: exit with the code)."""
    _state.fatal = fn
    _state.fatal_custom = True


def get_fatal_func() -> Callable[[int], Any]:
    """Return the current fatal action, for saving and restoring."""
    return _state.fatal


def fatal_func_is_custom() -> bool:
    """Whether set_fatal_func has ever been called."""
    return _state.fatal_custom


def set_panic_func(fn: Callable[[str], Any]) -> None:
    """Replace the action taken at Panic level (default: raise LogPanic)."""
    _state.panic = fn


def get_panic_func() -> Callable[[str], Any]:
    """Return the current panic action, for saving and restoring."""
    return _state.panic


def set_on_drop(fn: Optional[Callable[[], Any]]) -> None:
    """Register a callback for records dropped from a full queue; None clears it."""
    _state.on_drop = fn


def set_on_write_error(fn: Optional[Callable[[BaseException], Any]]) -> None:
    """Register a callback for failed asynchronous writes; None clears it."""
    _state.on_write_error = fn


def fire_on_drop() -> None:
    """Invoke the drop callback, ignoring any exception it raises."""
    fn = _state.on_drop
    if fn is not None:
        with contextlib.suppress(Exception):
            fn()


def fire_on_write_error(err: BaseException) -> None:
    """Invoke the write-error callback, ignoring any exception it raises."""
    fn = _state.on_write_error
    if fn is not None:
        with contextlib.suppress(Exception):
            fn(err)


def safe_emit_event_sink(sink: Any, level: Any, msg: str, fields: bytes) -> None:
    """Call ``sink.emit`` so that a failing sink never disturbs logging."""
    with contextlib.suppress(Exception):
        sink.emit(level, msg, fields)