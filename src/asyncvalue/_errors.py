"""Listener error isolation.

One throwing listener must never stop the listeners after it. Every
listener call goes through invoke(); failures become ListenerError records
and are reported, never raised back into the dispatch loop.

Debug mode (set_debug, or ASYNCVALUE_DEBUG=1) also forwards each failure to
the running asyncio loop's exception handler, where loop debugging tools
pick it up.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger("asyncvalue.errors")


@dataclass(frozen=True)
class ListenerError:
    """A listener raised during dispatch."""

    notifier: Any
    listener: Callable[[], Any]
    exception: Exception


ErrorHandler = Callable[[ListenerError], None]

_handler: ErrorHandler | None = None
_debug: bool = os.environ.get("ASYNCVALUE_DEBUG", "").lower() in ("1", "true", "yes", "on")


def set_error_handler(handler: ErrorHandler | None) -> None:
    """Route listener failures to handler instead of the log. None restores logging."""
    global _handler
    _handler = handler


def set_debug(enabled: bool) -> None:
    global _debug
    _debug = enabled


def is_debug() -> bool:
    return _debug


def invoke(notifier: Any, listener: Callable[[], Any]) -> None:
    """Call listener, reporting (not raising) any Exception it throws."""
    try:
        listener()
    except Exception as exc:
        report(ListenerError(notifier, listener, exc))


def report(error: ListenerError) -> None:
    if _handler is not None:
        try:
            _handler(error)
        except Exception:
            logger.exception("Error handler failed while reporting %r", error)
    else:
        logger.error(
            "Listener %r of %r raised %s",
            error.listener, error.notifier, type(error.exception).__name__,
            exc_info=error.exception,
            extra={"listener": error.listener, "notifier": error.notifier},
        )

    if _debug:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.call_exception_handler({
            "message": f"Listener of {error.notifier!r} raised",
            "exception": error.exception,
            "listener": error.listener,
            "notifier": error.notifier,
        })
