"""Tk bindings that drive a :class:`TagAutocomplete` from an entry widget."""

from __future__ import annotations

from typing import Optional

try:
    import tkinter as tk
    from tkinter import ttk
except ImportError as exc:  # pragma: no cover
    raise RuntimeError("Tkinter must be available for host plugins") from exc

from ..autocomplete import FOCUS_LOSS_GRACE_MS, MAX_SUGGESTIONS, TagAutocomplete

_NAVIGATION_KEYS = {
    "Up",
    "Down",
    "Left",
    "Right",
    "Return",
    "KP_Enter",
    "Tab",
    "ISO_Left_Tab",
    "Escape",
    "Shift_L",
    "Shift_R",
    "Control_L",
    "Control_R",
    "Alt_L",
    "Alt_R",
}


class TagAutocompleteEntry:
    """Floating suggestion list attached below a tag entry."""

    def __init__(self, entry: ttk.Entry, autocomplete: TagAutocomplete) -> None:
        self._entry = entry
        self._autocomplete = autocomplete
        self._listbox: Optional[tk.Listbox] = None
        self._hide_job: Optional[str] = None

        autocomplete.add_commit_listener(self._write_value)

        entry.bind("<KeyRelease>", self._on_key_release, add="+")
        for sequence in ("<Down>", "<Up>", "<Return>", "<KP_Enter>", "<Tab>", "<Escape>"):
            entry.bind(sequence, self._on_navigation_key, add="+")
        entry.bind("<FocusOut>", self._on_focus_out, add="+")
        entry.bind("<FocusIn>", self._cancel_pending_hide, add="+")

    @property
    def autocomplete(self) -> TagAutocomplete:
        return self._autocomplete

    def refresh(self) -> None:
        """Recompute suggestions for the current entry text."""

        self._autocomplete.update(self._entry.get())
        self._sync_panel()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _on_key_release(self, event: tk.Event) -> None:
        if getattr(event, "keysym", "") in _NAVIGATION_KEYS:
            return
        self.refresh()

    def _on_navigation_key(self, event: tk.Event) -> Optional[str]:
        suppress = self._autocomplete.handle_key(event.keysym, self._entry.get())
        self._sync_panel()
        return "break" if suppress else None

    def _on_option_press(self, event: tk.Event) -> str:
        listbox = self._listbox
        if listbox is None:
            return "break"
        self._cancel_pending_hide()
        index = listbox.nearest(event.y)
        self._autocomplete.pick(index)
        self._sync_panel()
        self._entry.focus_set()
        return "break"

    def _on_focus_out(self, _event: tk.Event) -> None:
        self._cancel_pending_hide()
        try:
            self._hide_job = self._entry.after(FOCUS_LOSS_GRACE_MS, self._hide_after_focus_loss)
        except tk.TclError:
            self._hide_job = None

    def _hide_after_focus_loss(self) -> None:
        self._hide_job = None
        self._autocomplete.dismiss()
        self._sync_panel()

    def _cancel_pending_hide(self, *_: object) -> None:
        if self._hide_job is None:
            return
        try:
            self._entry.after_cancel(self._hide_job)
        except Exception:
            pass
        self._hide_job = None

    # ------------------------------------------------------------------
    # Panel management
    # ------------------------------------------------------------------
    def _write_value(self, value: str) -> None:
        try:
            self._entry.delete(0, "end")
            self._entry.insert(0, value)
            self._entry.icursor("end")
        except tk.TclError:
            pass

    def _sync_panel(self) -> None:
        if not self._autocomplete.is_suggesting:
            self._destroy_panel()
            return
        listbox = self._ensure_panel()
        if listbox is None:
            return
        suggestions = self._autocomplete.suggestions
        if tuple(listbox.get(0, "end")) != tuple(suggestions):
            listbox.delete(0, "end")
            for tag in suggestions:
                listbox.insert("end", tag)
            listbox.configure(height=min(MAX_SUGGESTIONS, len(suggestions)))
        listbox.selection_clear(0, "end")
        cursor = self._autocomplete.cursor
        if cursor >= 0:
            listbox.selection_set(cursor)
            listbox.activate(cursor)
            listbox.see(cursor)

    def _ensure_panel(self) -> Optional[tk.Listbox]:
        if self._listbox is not None:
            return self._listbox
        parent = self._entry.winfo_toplevel()
        try:
            listbox = tk.Listbox(parent, exportselection=False, activestyle="none", takefocus=0)
            listbox.place(in_=self._entry, relx=0, rely=1, relwidth=1, x=0, y=0)
            listbox.lift()
        except tk.TclError:
            return None
        listbox.bind("<ButtonPress-1>", self._on_option_press, add="+")
        self._listbox = listbox
        return listbox

    def _destroy_panel(self) -> None:
        if self._listbox is None:
            return
        try:
            self._listbox.destroy()
        except tk.TclError:
            pass
        self._listbox = None


__all__ = ["TagAutocompleteEntry"]
