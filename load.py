"""CHub Search load shim.

Keeps the host-required functions in this module while delegating the
implementation to the `chub_search` package.
"""

from __future__ import annotations

from typing import Optional

try:
    import tkinter as tk
    from tkinter import ttk
except ImportError as exc:  # pragma: no cover - the host always provides tkinter
    raise RuntimeError("Tkinter must be available for host plugins") from exc

from chub_search.host import HostServices
from chub_search.plugin import ChubSearchPlugin

_plugin = ChubSearchPlugin()


def configure_host(host: HostServices) -> None:
    """Swap in the host's collaborators; call before ``plugin_start3``."""

    global _plugin
    _plugin = ChubSearchPlugin(host)


def plugin_start3(plugin_dir: str) -> str:
    return _plugin.plugin_start(plugin_dir)


def plugin_app(parent: tk.Widget) -> ttk.Frame:
    return _plugin.plugin_app(parent)


def plugin_stop() -> None:
    _plugin.plugin_stop()


def prefs_changed(cmdr: Optional[str] = None, is_beta: bool = False) -> None:
    _plugin.prefs_changed()


def open_search() -> None:
    _plugin.open_search()
