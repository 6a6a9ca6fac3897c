"""CHub search popup window (view layer over :class:`SearchController`)."""

from __future__ import annotations

import webbrowser
from typing import Callable, Dict, Optional

try:
    import tkinter as tk
    from tkinter import ttk
except ImportError as exc:  # pragma: no cover - the host always provides tkinter
    raise RuntimeError("Tkinter must be available for host plugins") from exc

from ..autocomplete import TagAutocomplete
from ..card_list import CardListModel, CardRow
from ..host import HostServices
from ..logging_utils import get_logger
from ..search_controller import SEARCH_DEBOUNCE_MS, SearchController
from ..preferences import clamp_find_count
from ..state import SORT_OPTIONS, SearchFormState, SearchQuery
from .card_list_view import CardListView
from .debounce import make_debounce
from .tag_entry import TagAutocompleteEntry

_log = get_logger("ui")

POLL_INTERVAL_MS = 100


class CardSearchWindow:
    """Toplevel popup that searches CHub and lists the results."""

    def __init__(
        self,
        parent: tk.Widget,
        controller: SearchController,
        host: HostServices,
        on_close: Callable[["CardSearchWindow"], None],
    ) -> None:
        self._controller = controller
        self._host = host
        self._on_close = on_close
        self._poll_job: Optional[str] = None
        controller.open_session()
        self._form: SearchFormState = controller.load_form()
        self._model = CardListModel()

        self._toplevel: Optional[tk.Toplevel] = tk.Toplevel(parent)
        self._toplevel.title("Search CHub")
        self._toplevel.transient(parent.winfo_toplevel())
        self._toplevel.protocol("WM_DELETE_WINDOW", self.close)
        self._toplevel.minsize(900, 640)

        self._search_var = tk.StringVar(master=self._toplevel, value=self._form.search_term)
        self._include_var = tk.StringVar(master=self._toplevel, value=self._form.include_text)
        self._exclude_var = tk.StringVar(master=self._toplevel, value=self._form.exclude_text)
        self._find_count_var = tk.StringVar(master=self._toplevel, value=str(self._form.results_per_page))
        self._page_var = tk.StringVar(master=self._toplevel, value=str(self._form.page))
        self._sort_label_var = tk.StringVar(
            master=self._toplevel,
            value=SORT_OPTIONS.get(self._form.sort, next(iter(SORT_OPTIONS.values()))),
        )
        self._nsfw_var = tk.BooleanVar(master=self._toplevel, value=self._form.nsfw)
        self._status_var = tk.StringVar(master=self._toplevel, value="")

        self._list_view: Optional[CardListView] = None
        self._tag_entries: Dict[str, TagAutocompleteEntry] = {}

        debounce = host.debounce or make_debounce(self._toplevel)
        self._debounced_search = debounce(self._execute_search, SEARCH_DEBOUNCE_MS)

        self._build_ui()
        self._controller.begin_tag_fetch()
        self._schedule_poll()
        self._handle_search("initial")

    # ------------------------------------------------------------------
    # Window lifecycle helpers
    # ------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return bool(self._toplevel and self._toplevel.winfo_exists())

    def focus(self) -> None:
        if not self.is_open:
            return
        try:
            self._toplevel.deiconify()
            self._toplevel.lift()
            self._toplevel.focus_force()
        except Exception:
            pass

    def close(self) -> None:
        cancel = getattr(self._debounced_search, "cancel", None)
        if callable(cancel):
            try:
                cancel()
            except Exception:
                pass
        self._controller.close_session()
        if self._list_view is not None:
            self._list_view.hide_preview()

        if self._toplevel and self._toplevel.winfo_exists():
            if self._poll_job:
                try:
                    self._toplevel.after_cancel(self._poll_job)
                except Exception:
                    pass
            try:
                self._toplevel.destroy()
            except Exception:
                pass
        self._poll_job = None
        self._toplevel = None
        self._list_view = None
        self._tag_entries = {}
        self._model.clear()

        if self._on_close:
            try:
                self._on_close(self)
            except Exception:
                _log.exception("Search window close callback failed")

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        toplevel = self._toplevel
        if toplevel is None:
            return
        container = tk.Frame(toplevel, highlightthickness=0, bd=0)
        container.pack(fill="both", expand=True, padx=12, pady=12)

        self._list_view = CardListView(
            container,
            self._model,
            on_download=self._handle_download,
            on_open=self._handle_open_character,
        )
        self._list_view.frame.pack(fill="both", expand=True)

        ttk.Separator(container, orient="horizontal").pack(fill="x", pady=8)

        search_frame = tk.Frame(container, highlightthickness=0, bd=0)
        search_frame.pack(fill="x")
        search_frame.columnconfigure(1, weight=1)

        tk.Label(search_frame, text="Search", anchor="w").grid(row=0, column=0, sticky="w", padx=(0, 8))
        search_entry = ttk.Entry(search_frame, textvariable=self._search_var)
        search_entry.grid(row=0, column=1, sticky="ew", pady=2)
        search_entry.bind("<Return>", lambda _e: self._handle_search("search_term"), add="+")

        tk.Label(search_frame, text="Include tags", anchor="w").grid(row=1, column=0, sticky="w", padx=(0, 8))
        include_entry = ttk.Entry(search_frame, textvariable=self._include_var)
        include_entry.grid(row=1, column=1, sticky="ew", pady=2)

        tk.Label(search_frame, text="Exclude tags", anchor="w").grid(row=2, column=0, sticky="w", padx=(0, 8))
        exclude_entry = ttk.Entry(search_frame, textvariable=self._exclude_var)
        exclude_entry.grid(row=2, column=1, sticky="ew", pady=2)

        for name, entry in (("include_text", include_entry), ("exclude_text", exclude_entry)):
            autocomplete = TagAutocomplete(self._controller.tag_catalog, name=name)
            binding = TagAutocompleteEntry(entry, autocomplete)
            autocomplete.add_commit_listener(lambda _value, n=name: self._handle_search(n))
            entry.bind("<KeyRelease>", lambda _e, n=name: self._handle_search(n), add="+")
            self._tag_entries[name] = binding

        tk.Label(search_frame, text="Results per page", anchor="w").grid(row=3, column=0, sticky="w", padx=(0, 8))
        find_count_spin = ttk.Spinbox(
            search_frame,
            from_=1,
            to=100,
            increment=1,
            textvariable=self._find_count_var,
            width=6,
            command=lambda: self._handle_search("results_per_page"),
        )
        find_count_spin.grid(row=3, column=1, sticky="w", pady=2)
        find_count_spin.bind("<Return>", lambda _e: self._handle_search("results_per_page"), add="+")

        controls = tk.Frame(container, highlightthickness=0, bd=0)
        controls.pack(fill="x", pady=(10, 0))

        pager = tk.Frame(controls, highlightthickness=0, bd=0)
        pager.pack(side="left")
        ttk.Button(pager, text="<", width=3, command=lambda: self._step_page(-1)).pack(side="left")
        tk.Label(pager, text="Page:").pack(side="left", padx=(6, 2))
        page_entry = ttk.Entry(pager, textvariable=self._page_var, width=5)
        page_entry.pack(side="left")
        page_entry.bind("<Return>", lambda _e: self._handle_search("page"), add="+")
        ttk.Button(pager, text=">", width=3, command=lambda: self._step_page(1)).pack(side="left", padx=(2, 0))

        sort_frame = tk.Frame(controls, highlightthickness=0, bd=0)
        sort_frame.pack(side="left", padx=(16, 0))
        tk.Label(sort_frame, text="Sort By:").pack(side="left", padx=(0, 4))
        sort_combo = ttk.Combobox(
            sort_frame,
            textvariable=self._sort_label_var,
            values=list(SORT_OPTIONS.values()),
            width=16,
            state="readonly",
        )
        sort_combo.pack(side="left")
        sort_combo.bind("<<ComboboxSelected>>", lambda _e: self._handle_search("sort"), add="+")

        nsfw_check = ttk.Checkbutton(
            controls,
            text="NSFW",
            variable=self._nsfw_var,
            command=lambda: self._handle_search("nsfw"),
        )
        nsfw_check.pack(side="left", padx=(16, 0))

        ttk.Button(controls, text="Search", command=lambda: self._handle_search("search_button")).pack(
            side="left", padx=(16, 0)
        )

        footer = tk.Frame(container, highlightthickness=0, bd=0)
        footer.pack(fill="x", pady=(10, 0))
        status_label = tk.Label(footer, textvariable=self._status_var, anchor="w", justify="left")
        status_label.pack(side="left", fill="x", expand=True)
        ttk.Button(footer, text="Close", command=self.close).pack(side="right")

    # ------------------------------------------------------------------
    # Form + search
    # ------------------------------------------------------------------
    def _sort_key_from_label(self) -> str:
        label = self._sort_label_var.get()
        for key, readable in SORT_OPTIONS.items():
            if readable == label:
                return key
        return self._form.sort

    def _sync_form(self, source: str) -> SearchFormState:
        form = self._form
        values = {
            "search_term": self._search_var.get(),
            "include_text": self._include_var.get(),
            "exclude_text": self._exclude_var.get(),
            "nsfw": bool(self._nsfw_var.get()),
            "sort": self._sort_key_from_label(),
            "results_per_page": clamp_find_count(self._find_count_var.get(), self._form.results_per_page),
            "page": self._page_var.get(),
        }
        form.apply(values, source)
        self._find_count_var.set(str(form.results_per_page))
        self._page_var.set(str(form.page))
        return form

    def _step_page(self, delta: int) -> None:
        self._sync_form("page")
        self._form.step_page(delta)
        self._page_var.set(str(self._form.page))
        self._handle_search("page_up" if delta > 0 else "page_down")

    def _handle_search(self, source: str) -> None:
        if not self.is_open:
            return
        form = self._sync_form(source)
        query = self._controller.build_query(form)
        self._debounced_search(query)

    def _execute_search(self, query: SearchQuery) -> None:
        if not self.is_open:
            return
        token = self._controller.begin_search(query)
        if token is None:
            return
        self._status_var.set("Searching CHub...")
        if self._list_view:
            self._list_view.set_busy(True)

    def _apply_results(self, session_id: int, token: int, records: list) -> None:
        accepted = self._controller.accept_search_outcome(session_id, token, records)
        if accepted is None:
            return
        view = self._list_view
        if not self.is_open or view is None or not view.exists():
            return
        view.set_busy(False)
        self._model.load(accepted)
        view.render()
        self._controller.begin_thumbnail_fetch(
            token,
            [(row.index, row.thumbnail_url) for row in self._model.rows],
        )
        if accepted:
            self._status_var.set(f"Showing {len(accepted)} character(s) on page {self._form.page}")
        else:
            self._status_var.set("")

    # ------------------------------------------------------------------
    # Card actions
    # ------------------------------------------------------------------
    def _handle_download(self, row: CardRow) -> None:
        if not row.full_path:
            return
        self._status_var.set(f"Downloading {row.name}...")
        self._controller.begin_download(
            row.full_path,
            row.card_image_url,
            lambda ok, name=row.name: self._finish_download(name, ok),
        )

    def _finish_download(self, name: str, succeeded: bool) -> None:
        if not self.is_open:
            return
        if succeeded:
            self._status_var.set(f"Downloaded {name}")
        else:
            self._status_var.set(f"Download failed for {name}")

    def _handle_open_character(self, row: CardRow) -> None:
        if not row.full_path:
            return
        url = self._controller.client.character_page_url(row.full_path)
        try:
            if not webbrowser.open(url, new=2):
                webbrowser.open(url)
        except Exception:
            _log.exception("Failed to open browser for character %s", row.full_path)

    # ------------------------------------------------------------------
    # Result polling
    # ------------------------------------------------------------------
    def _schedule_poll(self) -> None:
        if not self._toplevel or not self._toplevel.winfo_exists():
            return
        if self._poll_job:
            return
        self._poll_job = self._toplevel.after(POLL_INTERVAL_MS, self._poll)

    def _poll(self) -> None:
        self._poll_job = None
        if not self.is_open:
            return

        while True:
            item = self._controller.poll_search_results()
            if not item:
                break
            session_id, token, records = item
            self._apply_results(session_id, token, records)

        while True:
            tag_item = self._controller.poll_tag_results()
            if not tag_item:
                break
            session_id, tags = tag_item
            if self._controller.accept_tags(session_id, tags):
                _log.debug("Tag catalog ready with %d tag(s)", len(tags))

        while True:
            thumb_item = self._controller.poll_thumbnail_results()
            if not thumb_item:
                break
            session_id, token, index, image = thumb_item
            if self._controller.accept_thumbnail(session_id, token) and self._list_view:
                self._list_view.set_thumbnail(index, image)

        self._schedule_poll()


__all__ = ["CardSearchWindow"]
