"""Core orchestration for the CHub search plugin."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

try:
    import tkinter as tk
    from tkinter import ttk
except ImportError as exc:  # pragma: no cover - the host always provides tkinter
    raise RuntimeError("Tkinter must be available for host plugins") from exc

from .host import HostServices
from .integrations.chub_api import ChubClient
from .logging_utils import (
    coerce_log_level,
    get_logger,
    install_exception_logging,
    set_log_level,
)
from .preferences import PreferencesManager
from .search_controller import SearchController
from .search_ui import CardSearchWindow
from .version import PLUGIN_NAME, PLUGIN_VERSION, display_version

_log = get_logger()

LOG_LEVEL_KEYS = ("loglevel", "log_level", "logging_level")


def _resolve_host_log_level(host: HostServices) -> int:
    fallback = logging.getLogger().getEffectiveLevel()
    for key in LOG_LEVEL_KEYS:
        level = coerce_log_level(host.settings.get(key))
        if level is not None:
            return level
    return fallback


class ChubSearchPlugin:
    """Owns preferences, the CHub client and the search popup lifecycle."""

    def __init__(self, host: Optional[HostServices] = None) -> None:
        self.host = host or HostServices()
        self.preferences = PreferencesManager(self.host.settings)
        self.client = ChubClient(proxy_origin=self.host.proxy_origin)
        self.controller = SearchController(self.client, self.preferences, self.host)
        self.plugin_dir: Optional[Path] = None
        self._frame: Optional[tk.Widget] = None
        self._window: Optional[CardSearchWindow] = None

    # ------------------------------------------------------------------
    # Host lifecycle hooks
    # ------------------------------------------------------------------
    def plugin_start(self, plugin_dir: str) -> str:
        self.plugin_dir = Path(plugin_dir)
        self._sync_logger_level()
        install_exception_logging()
        _log.info("Starting %s %s", PLUGIN_NAME, display_version(PLUGIN_VERSION))
        self.preferences.ensure_defaults()
        return PLUGIN_NAME

    def plugin_app(self, parent: tk.Widget) -> tk.Widget:
        frame = ttk.Frame(parent)
        button = ttk.Button(frame, text="Search CHub", command=self.open_search)
        button.pack(side="left")
        self._frame = frame
        self._bind_ui_dispatch(frame)
        return frame

    def plugin_stop(self) -> None:
        _log.info("Plugin stop requested; shutting down %s", PLUGIN_NAME)
        self.close_search()
        self._frame = None

    def prefs_changed(self) -> None:
        self._sync_logger_level()
        self.preferences.ensure_defaults()

    # ------------------------------------------------------------------
    # Popup handling
    # ------------------------------------------------------------------
    def open_search(self) -> Optional[CardSearchWindow]:
        if self._window is not None and self._window.is_open:
            self._window.focus()
            return self._window
        parent = self._frame
        if parent is None or not parent.winfo_exists():
            _log.warning("Search popup requested before the plugin frame was created")
            return None
        try:
            self._window = CardSearchWindow(parent, self.controller, self.host, self._on_window_closed)
        except Exception:
            _log.exception("Failed to open CHub search window")
            self.controller.close_session()
            self._window = None
        return self._window

    def close_search(self) -> None:
        window = self._window
        if window is None:
            return
        try:
            window.close()
        except Exception:
            _log.exception("Failed to close CHub search window")
        self._window = None

    def _on_window_closed(self, window: CardSearchWindow) -> None:
        if self._window is window:
            self._window = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _bind_ui_dispatch(self, frame: tk.Widget) -> None:
        if self.host.call_soon is not HostServices.call_soon:
            return

        def call_soon(callback: Callable[[], None]) -> None:
            if frame.winfo_exists():
                try:
                    frame.after(0, callback)
                    return
                except Exception:
                    pass
            callback()

        self.host.call_soon = call_soon

    def _sync_logger_level(self) -> None:
        try:
            set_log_level(_resolve_host_log_level(self.host))
        except Exception:
            pass


__all__ = ["ChubSearchPlugin"]
