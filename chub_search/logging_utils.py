"""Plugin logger hierarchy and routing of worker-thread crashes into it."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

LOGGER_NAME = "chub_search"
# Every worker the search controller starts is named with this prefix.
WORKER_THREAD_PREFIX = "chub-search-"

BASE_LOGGER = logging.getLogger(LOGGER_NAME)

ThreadHook = Callable[["threading.ExceptHookArgs"], None]

_installed_hook: Optional[ThreadHook] = None


def get_logger(suffix: Optional[str] = None) -> logging.Logger:
    """Return the plugin logger, or its ``suffix`` child (``chub_search.api``...)."""

    if suffix is None:
        return BASE_LOGGER
    return BASE_LOGGER.getChild(suffix)


def set_log_level(level: int) -> None:
    BASE_LOGGER.setLevel(level)


def coerce_log_level(value: object) -> Optional[int]:
    """Map a host setting (``"debug"``, ``"20"``, ``10``) to a logging level."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        if candidate.isdigit():
            return int(candidate)
        level = logging.getLevelName(candidate.upper())
        return level if isinstance(level, int) else None
    return None


def make_worker_excepthook(
    logger: logging.Logger,
    previous: Optional[ThreadHook],
) -> ThreadHook:
    """Build a ``threading.excepthook`` that logs crashes of plugin workers.

    Crashes on other threads are left to ``previous`` untouched.
    """

    def hook(args: "threading.ExceptHookArgs") -> None:
        name = args.thread.name if args.thread is not None else ""
        if name.startswith(WORKER_THREAD_PREFIX):
            logger.error(
                "Unhandled exception in worker %s",
                name,
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )
            return
        if previous is not None:
            previous(args)

    return hook


def install_exception_logging(logger: Optional[logging.Logger] = None) -> None:
    """Route unhandled exceptions of ``chub-search-*`` threads to the plugin log."""

    global _installed_hook
    if _installed_hook is not None and threading.excepthook is _installed_hook:
        return
    _installed_hook = make_worker_excepthook(logger or BASE_LOGGER, threading.excepthook)
    threading.excepthook = _installed_hook


__all__ = [
    "BASE_LOGGER",
    "WORKER_THREAD_PREFIX",
    "coerce_log_level",
    "get_logger",
    "install_exception_logging",
    "make_worker_excepthook",
    "set_log_level",
]
