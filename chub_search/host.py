"""Collaborators supplied by the host application."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, MutableMapping, Optional, Sequence

from .logging_utils import get_logger
from .state import CardFile

_log = get_logger("host")

DEFAULT_PROXY_ORIGIN = "http://localhost:8000"

Debounce = Callable[[Callable[..., None], int], Callable[..., None]]


def _run_now(callback: Callable[[], None]) -> None:
    callback()


def _discard_files(files: Sequence[CardFile]) -> None:
    _log.warning("No host importer registered; dropping %d downloaded file(s)", len(files))


@dataclass
class HostServices:
    """Bundle of host hooks the plugin calls into.

    ``settings`` is the host's persistent extension settings mapping. The
    plugin keeps its values under the ``"chub"`` key of that mapping.
    ``call_soon`` must run the callable on the UI loop; it is used for
    everything that touches host state from a worker thread.
    """

    settings: MutableMapping[str, Any] = field(default_factory=dict)
    import_files: Callable[[Sequence[CardFile]], None] = _discard_files
    notify_error: Optional[Callable[[str, str], None]] = None
    debounce: Optional[Debounce] = None
    call_soon: Callable[[Callable[[], None]], None] = _run_now
    proxy_origin: str = DEFAULT_PROXY_ORIGIN

    def notify(self, title: str, message: str) -> None:
        """Show a non-fatal error toast when the host provides one."""

        if self.notify_error is None:
            _log.debug("No notification surface; suppressed %s: %s", title, message)
            return
        try:
            self.notify_error(title, message)
        except Exception:
            _log.exception("Host notification failed for %s", title)


__all__ = ["DEFAULT_PROXY_ORIGIN", "HostServices"]
