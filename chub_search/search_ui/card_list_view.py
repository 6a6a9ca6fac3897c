"""Scrollable grid of character cards."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

try:
    import tkinter as tk
    from tkinter import ttk
    import tkinter.font as tkfont
except ImportError as exc:  # pragma: no cover
    raise RuntimeError("Tkinter must be available for host plugins") from exc

from PIL import Image, ImageTk

from ..card_list import EMPTY_MESSAGE, CardListModel, CardRow
from ..logging_utils import get_logger
from ..thumbnails import THUMBNAIL_SIZE
from .hover_box import HoverPreviewBox

_log = get_logger("ui")

CARD_COLUMNS = 2
CARD_WRAP = 320


class CardListView:
    """Render a :class:`CardListModel` as cards inside a scrollable canvas."""

    def __init__(
        self,
        parent: tk.Widget,
        model: CardListModel,
        *,
        on_download: Callable[[CardRow], None],
        on_open: Callable[[CardRow], None],
    ) -> None:
        self._model = model
        self._on_download = on_download
        self._on_open = on_open
        self._card_frames: List[tk.Frame] = []
        self._thumb_labels: Dict[int, tk.Label] = {}
        self._photos: Dict[int, ImageTk.PhotoImage] = {}

        outer = tk.Frame(parent, highlightthickness=0, bd=0)
        canvas = tk.Canvas(outer, highlightthickness=0, bd=0, height=420)
        scroll = ttk.Scrollbar(outer, orient="vertical", command=canvas.yview)
        canvas.configure(yscrollcommand=scroll.set)
        canvas.pack(side="left", fill="both", expand=True)
        scroll.pack(side="right", fill="y")

        inner = tk.Frame(canvas, highlightthickness=0, bd=0)
        window_id = canvas.create_window((0, 0), window=inner, anchor="nw")
        inner.bind(
            "<Configure>",
            lambda _e: canvas.configure(scrollregion=canvas.bbox("all")),
            add="+",
        )
        canvas.bind(
            "<Configure>",
            lambda e: canvas.itemconfigure(window_id, width=e.width),
            add="+",
        )
        for column in range(CARD_COLUMNS):
            inner.columnconfigure(column, weight=1, uniform="cards")

        self._outer = outer
        self._canvas = canvas
        self._inner = inner
        self._hover = HoverPreviewBox.shared(outer)

    @property
    def frame(self) -> tk.Frame:
        return self._outer

    def exists(self) -> bool:
        try:
            return bool(self._inner.winfo_exists())
        except tk.TclError:
            return False

    def set_busy(self, busy: bool) -> None:
        if not self.exists():
            return
        cursor = "watch" if busy else ""
        try:
            self._canvas.configure(cursor=cursor)
        except tk.TclError:
            pass

    def render(self) -> None:
        """Replace every card with rows from the model."""

        if not self.exists():
            return
        self._hover.hide()
        for child in self._inner.winfo_children():
            child.destroy()
        self._card_frames = []
        self._thumb_labels = {}
        self._photos = {}

        if self._model.is_empty:
            empty = tk.Label(self._inner, text=EMPTY_MESSAGE, anchor="center")
            empty.grid(row=0, column=0, columnspan=CARD_COLUMNS, sticky="ew", pady=24)
            self._canvas.yview_moveto(0)
            return

        for row in self._model.rows:
            card = self._build_card(row)
            card.grid(
                row=row.index // CARD_COLUMNS,
                column=row.index % CARD_COLUMNS,
                sticky="nsew",
                padx=6,
                pady=6,
            )
            self._card_frames.append(card)
        self._canvas.yview_moveto(0)

    def clear(self) -> None:
        self._model.clear()
        self.render()

    def set_thumbnail(self, index: int, image: Image.Image) -> bool:
        """Show ``image`` in the card at ``index``; False when that card is gone."""

        label = self._thumb_labels.get(index)
        if label is None:
            return False
        try:
            if not label.winfo_exists():
                return False
            photo = ImageTk.PhotoImage(image, master=label)
            label.configure(image=photo)
        except tk.TclError:
            _log.debug("Failed to draw thumbnail for card %d", index)
            return False
        self._photos[index] = photo
        return True

    def hide_preview(self) -> None:
        self._hover.hide()

    # ------------------------------------------------------------------
    # Card construction
    # ------------------------------------------------------------------
    def _build_card(self, row: CardRow) -> tk.Frame:
        card = tk.Frame(self._inner, relief="groove", bd=1, padx=8, pady=8)
        card.columnconfigure(1, weight=1)

        thumb_width, thumb_height = THUMBNAIL_SIZE
        thumb_frame = tk.Frame(card, width=thumb_width, height=thumb_height, highlightthickness=0, bd=0)
        thumb_frame.grid(row=0, column=0, rowspan=4, sticky="nw", padx=(0, 8))
        thumb_frame.grid_propagate(False)
        thumb_frame.pack_propagate(False)
        thumb_label = tk.Label(thumb_frame, bd=0)
        thumb_label.pack(fill="both", expand=True)
        self._thumb_labels[row.index] = thumb_label

        try:
            base_font = tkfont.nametofont("TkDefaultFont")
            name_font = base_font.copy()
            name_font.configure(weight="bold", underline=True)
        except tk.TclError:
            name_font = None

        name_label = tk.Label(card, text=row.name, anchor="w", cursor="hand2")
        if name_font is not None:
            name_label.configure(font=name_font)
        name_label.grid(row=0, column=1, sticky="w")
        name_label.bind("<Button-1>", lambda _e, r=row: self._on_open(r), add="+")

        author_label = tk.Label(card, text=row.author_label, anchor="w")
        author_label.grid(row=1, column=1, sticky="w")

        description_label = tk.Label(
            card,
            text=row.description,
            anchor="w",
            justify="left",
            wraplength=CARD_WRAP,
        )
        description_label.grid(row=2, column=1, sticky="w", pady=(6, 0))

        widgets: List[tk.Widget] = [card, thumb_frame, thumb_label, name_label, author_label, description_label]
        if row.tags:
            tags_label = tk.Label(
                card,
                text="  ".join(f"[{tag}]" for tag in row.tags),
                anchor="w",
                justify="left",
                wraplength=CARD_WRAP,
            )
            tags_label.grid(row=3, column=1, sticky="w", pady=(8, 0))
            widgets.append(tags_label)

        download_button = ttk.Button(
            card,
            text="Download",
            command=lambda r=row: self._on_download(r),
        )
        download_button.grid(row=0, column=2, rowspan=2, sticky="ne", padx=(8, 0))
        widgets.append(download_button)

        for widget in widgets:
            widget.bind("<Enter>", lambda e, i=row.index: self._on_card_enter(i, e), add="+")
            widget.bind("<Motion>", self._on_card_motion, add="+")
            widget.bind("<Leave>", lambda e, c=card: self._on_card_leave(c, e), add="+")
        return card

    # ------------------------------------------------------------------
    # Hover handling
    # ------------------------------------------------------------------
    def _on_card_enter(self, index: int, event: tk.Event) -> None:
        text = self._model.full_description(index)
        if not text:
            return
        self._hover.show(text, event.x_root, event.y_root)

    def _on_card_motion(self, event: tk.Event) -> None:
        self._hover.follow(event.x_root, event.y_root)

    def _on_card_leave(self, card: tk.Frame, event: tk.Event) -> None:
        if self._pointer_inside(card, event.x_root, event.y_root):
            return
        self._hover.hide()

    @staticmethod
    def _pointer_inside(card: tk.Frame, x_root: int, y_root: int) -> bool:
        try:
            target: Optional[tk.Misc] = card.winfo_containing(x_root, y_root)
        except (tk.TclError, KeyError):
            return False
        while target is not None:
            if target is card:
                return True
            target = target.master
        return False


__all__ = ["CardListView"]
