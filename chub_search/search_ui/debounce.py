"""Trailing-edge debounce built on Tk's ``after`` scheduler."""

from __future__ import annotations

from typing import Any, Callable, Optional

try:
    import tkinter as tk
except ImportError as exc:  # pragma: no cover - the host always provides tkinter
    raise RuntimeError("Tkinter must be available for host plugins") from exc


class AfterDebouncer:
    """Run ``callback`` once ``delay_ms`` have passed since the last trigger."""

    def __init__(self, widget: tk.Misc, callback: Callable[..., None], delay_ms: int) -> None:
        self._widget = widget
        self._callback = callback
        self._delay_ms = max(0, int(delay_ms))
        self._job: Optional[str] = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self.cancel()
        try:
            self._job = self._widget.after(self._delay_ms, lambda: self._fire(args, kwargs))
        except tk.TclError:
            self._job = None

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._job = None
        self._callback(*args, **kwargs)

    def cancel(self) -> None:
        if self._job is None:
            return
        try:
            self._widget.after_cancel(self._job)
        except Exception:
            pass
        self._job = None


def make_debounce(widget: tk.Misc) -> Callable[[Callable[..., None], int], AfterDebouncer]:
    """Return a ``debounce(fn, delay_ms)`` factory bound to ``widget``."""

    def debounce(callback: Callable[..., None], delay_ms: int) -> AfterDebouncer:
        return AfterDebouncer(widget, callback, delay_ms)

    return debounce


__all__ = ["AfterDebouncer", "make_debounce"]
