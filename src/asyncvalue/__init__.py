"""asyncvalue: observable values that coalesce writes into one deferred notification."""

from importlib.metadata import version as _version

__version__ = _version("asyncvalue")

from asyncvalue._errors import ListenerError, is_debug, set_debug, set_error_handler
from asyncvalue._registry import ListenerRef
from asyncvalue._scheduling import (
    ManualScheduler,
    default_scheduler,
    flush,
    get_pending_count,
    get_scheduler,
    set_scheduler,
)
from asyncvalue.notifier import AsyncValueNotifier, ValueListenable, default_equality
# textual NOT auto-imported — opt-in only

__all__ = [
    "AsyncValueNotifier",
    "ValueListenable",
    "default_equality",
    "ListenerRef",
    "ListenerError",
    "set_error_handler",
    "set_debug",
    "is_debug",
    "ManualScheduler",
    "default_scheduler",
    "set_scheduler",
    "get_scheduler",
    "flush",
    "get_pending_count",
]
