"""Dataclasses that describe search results and the popup session state."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple


DEFAULT_FIND_COUNT = 10
DEFAULT_NSFW = False
DEFAULT_SORT = "download_count"
NO_DESCRIPTION = "No description"
UNKNOWN_AUTHOR = "Unknown"

SORT_OPTIONS: Dict[str, str] = {
    "download_count": "Download Count",
    "rating": "Rating",
    "rating_count": "Rating Count",
    "last_activity_at": "Last Activity",
    "created_at": "Creation Date",
    "name": "Name",
    "random": "Random",
}

# Form fields that drive pagination and therefore keep the current page.
PAGER_FIELDS = frozenset({"page"})
# Change sources that keep the page: typing a page number or the < and > buttons.
PAGER_SOURCES = frozenset({"page", "page_up", "page_down"})

_session_ids = itertools.count(1)


@dataclass(frozen=True)
class CatalogRecord:
    """A single character card as normalised from a CHub search node."""

    id: object
    name: str
    description: str
    full_path: str
    tags: Tuple[str, ...] = ()
    author: str = UNKNOWN_AUTHOR
    thumbnail_url: str = ""
    card_image_url: str = ""


@dataclass(frozen=True)
class SearchQuery:
    search_term: str = ""
    include_tags: Tuple[str, ...] = ()
    exclude_tags: Tuple[str, ...] = ()
    nsfw: bool = DEFAULT_NSFW
    sort: str = DEFAULT_SORT
    page: int = 1
    results_per_page: int = DEFAULT_FIND_COUNT


@dataclass(frozen=True)
class CardFile:
    """In-memory file handed to the host importer."""

    name: str
    data: bytes
    media_type: str


def split_tags(text: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated tag field, dropping blank entries."""

    cleaned = (text or "").strip()
    if not cleaned:
        return ()
    return tuple(part.strip() for part in cleaned.split(",") if part.strip())


def author_from_path(full_path: Optional[str]) -> str:
    return (full_path or "").split("/", 1)[0] or UNKNOWN_AUTHOR


def coerce_page(value: object, default: int = 1) -> int:
    try:
        page = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return max(1, page)


@dataclass
class SearchFormState:
    """Current values of the search popup form.

    Any change to a field other than the page number resets the page to 1.
    """

    search_term: str = ""
    include_text: str = ""
    exclude_text: str = ""
    nsfw: bool = DEFAULT_NSFW
    sort: str = DEFAULT_SORT
    page: int = 1
    results_per_page: int = DEFAULT_FIND_COUNT

    def set_field(self, name: str, value: object) -> None:
        if not hasattr(self, name):
            raise AttributeError(f"Unknown search form field: {name}")
        if name in PAGER_FIELDS:
            self.page = coerce_page(value)
            return
        setattr(self, name, value)
        self.page = 1

    def apply(self, values: Mapping[str, object], source: str) -> "SearchFormState":
        """Copy widget values into the form for a change coming from ``source``.

        Changed fields go through :meth:`set_field`. A ``"page"`` source takes
        the typed page number, the pager buttons keep the current page and any
        other source starts again from page 1.
        """

        for name, value in values.items():
            if name in PAGER_FIELDS:
                continue
            if getattr(self, name) != value:
                self.set_field(name, value)
        if source in PAGER_FIELDS:
            self.set_field("page", values.get("page", self.page))
        elif source not in PAGER_SOURCES:
            self.page = 1
        return self

    def step_page(self, delta: int) -> int:
        self.page = max(1, self.page + int(delta))
        return self.page

    def to_query(self) -> SearchQuery:
        sort = self.sort if self.sort in SORT_OPTIONS else ""
        return SearchQuery(
            search_term=self.search_term or "",
            include_tags=split_tags(self.include_text),
            exclude_tags=split_tags(self.exclude_text),
            nsfw=bool(self.nsfw),
            sort=sort,
            page=max(1, int(self.page or 1)),
            results_per_page=max(1, int(self.results_per_page or DEFAULT_FIND_COUNT)),
        )


@dataclass
class PopupSession:
    """State owned by one open search popup; discarded when it closes."""

    session_id: int = field(default_factory=lambda: next(_session_ids))
    records: List[CatalogRecord] = field(default_factory=list)
    tag_catalog: List[str] = field(default_factory=list)
    is_open: bool = True
    busy: bool = False
    latest_token: int = 0

    def next_token(self) -> int:
        self.latest_token += 1
        return self.latest_token

    def replace_records(self, records: Sequence[CatalogRecord]) -> None:
        self.records = list(records)

    def close(self) -> None:
        self.is_open = False
        self.busy = False
        self.records = []
        self.tag_catalog = []


__all__ = [
    "CatalogRecord",
    "CardFile",
    "DEFAULT_FIND_COUNT",
    "DEFAULT_NSFW",
    "DEFAULT_SORT",
    "NO_DESCRIPTION",
    "PAGER_SOURCES",
    "PopupSession",
    "SORT_OPTIONS",
    "SearchFormState",
    "SearchQuery",
    "UNKNOWN_AUTHOR",
    "author_from_path",
    "coerce_page",
    "split_tags",
]
