"""Floating description box shared by every card list."""

from __future__ import annotations

from typing import Optional, Tuple

try:
    import tkinter as tk
    from tkinter import ttk
except ImportError as exc:  # pragma: no cover
    raise RuntimeError("Tkinter must be available for host plugins") from exc

from ..card_list import HoverPreview


class HoverPreviewBox:
    """Single overrideredirect window that follows the pointer.

    Use :meth:`shared` to obtain the instance. It is created on first use,
    parented to the application root window and reused by every popup and
    every re-render of the card list.
    """

    _instance: Optional["HoverPreviewBox"] = None

    def __init__(self, root: tk.Misc) -> None:
        self._root = root
        self._state = HoverPreview()
        self._tip: Optional[tk.Toplevel] = None
        self._label: Optional[tk.Label] = None

    @classmethod
    def shared(cls, widget: tk.Misc) -> "HoverPreviewBox":
        instance = cls._instance
        if instance is None or not instance._root_alive():
            instance = cls(widget.nametowidget("."))
            cls._instance = instance
        return instance

    @property
    def state(self) -> HoverPreview:
        return self._state

    def show(self, text: str, pointer_x: int, pointer_y: int) -> None:
        if not self._state.enter(text, pointer_x, pointer_y):
            return
        if not self._ensure_window():
            return
        tip, label = self._tip, self._label
        if tip is None or label is None:
            return
        try:
            label.configure(text=self._state.text)
            tip.wm_geometry(f"+{self._state.x}+{self._state.y}")
            tip.deiconify()
            tip.lift()
        except tk.TclError:
            self._reset_window()

    def follow(self, pointer_x: int, pointer_y: int) -> None:
        if not self._state.visible or self._tip is None:
            return
        self._state.move(pointer_x, pointer_y)
        try:
            self._tip.wm_geometry(f"+{self._state.x}+{self._state.y}")
        except tk.TclError:
            self._reset_window()

    def hide(self, *_: object) -> None:
        self._state.leave()
        if self._tip is None:
            return
        try:
            self._tip.withdraw()
        except tk.TclError:
            self._reset_window()

    def _root_alive(self) -> bool:
        try:
            return bool(self._root.winfo_exists())
        except tk.TclError:
            return False

    def _ensure_window(self) -> bool:
        if self._tip is not None:
            return True
        try:
            tip = tk.Toplevel(self._root)
        except tk.TclError:
            return False
        tip.wm_overrideredirect(True)
        try:
            tip.wm_attributes("-topmost", True)
        except Exception:
            pass
        fg, bg = self._resolve_colors()
        label = tk.Label(
            tip,
            text="",
            justify="left",
            background=bg,
            foreground=fg,
            relief=tk.SOLID,
            borderwidth=1,
            padx=8,
            pady=8,
            wraplength=400,
        )
        label.pack()
        tip.withdraw()
        self._tip = tip
        self._label = label
        return True

    def _reset_window(self) -> None:
        if self._tip is not None:
            try:
                self._tip.destroy()
            except tk.TclError:
                pass
        self._tip = None
        self._label = None
        self._state.leave()

    def _resolve_colors(self) -> Tuple[str, str]:
        try:
            style = ttk.Style(self._root)
        except tk.TclError:
            return "#eeeeee", "#222222"
        bg = style.lookup("TLabel", "background") or "#222222"
        fg = style.lookup("TLabel", "foreground") or "#eeeeee"
        return fg, bg


__all__ = ["HoverPreviewBox"]
