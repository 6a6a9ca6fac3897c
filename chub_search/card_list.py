"""Display model for the result cards and the hover preview."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .state import UNKNOWN_AUTHOR, CatalogRecord

DESCRIPTION_PREVIEW_CHARS = 180
ELLIPSIS = "…"
EMPTY_MESSAGE = "No characters found"
HOVER_OFFSET = 12


def truncate_description(text: Optional[str], limit: int = DESCRIPTION_PREVIEW_CHARS) -> str:
    value = text or ""
    if len(value) > limit:
        return value[:limit] + ELLIPSIS
    return value


@dataclass(frozen=True)
class CardRow:
    index: int
    name: str
    author_label: str
    description: str
    tags: Tuple[str, ...]
    full_path: str
    card_image_url: str
    thumbnail_url: str


class CardListModel:
    """Rows for the current result page plus the index -> description table."""

    def __init__(self) -> None:
        self._rows: List[CardRow] = []
        self._descriptions: Dict[int, str] = {}

    def load(self, records: Sequence[CatalogRecord]) -> None:
        rows: List[CardRow] = []
        descriptions: Dict[int, str] = {}
        for index, record in enumerate(records):
            full = record.description or ""
            descriptions[index] = full
            rows.append(
                CardRow(
                    index=index,
                    name=record.name or "Unnamed",
                    author_label=f"by {record.author or UNKNOWN_AUTHOR}",
                    description=truncate_description(full),
                    tags=tuple(record.tags or ()),
                    full_path=record.full_path,
                    card_image_url=record.card_image_url,
                    thumbnail_url=record.thumbnail_url,
                )
            )
        self._rows = rows
        self._descriptions = descriptions

    def clear(self) -> None:
        self._rows = []
        self._descriptions = {}

    @property
    def rows(self) -> List[CardRow]:
        return list(self._rows)

    @property
    def is_empty(self) -> bool:
        return not self._rows

    def full_description(self, index: int) -> str:
        return self._descriptions.get(index, "")


class HoverPreview:
    """Visibility, text and position of the floating description box."""

    def __init__(self, offset: int = HOVER_OFFSET) -> None:
        self._offset = offset
        self.visible = False
        self.text = ""
        self.x = 0
        self.y = 0

    def enter(self, text: str, pointer_x: int, pointer_y: int) -> bool:
        if not text:
            return False
        self.text = text
        self.visible = True
        self.move(pointer_x, pointer_y)
        return True

    def move(self, pointer_x: int, pointer_y: int) -> None:
        if not self.visible:
            return
        self.x = int(pointer_x) + self._offset
        self.y = int(pointer_y) + self._offset

    def leave(self) -> None:
        self.visible = False


__all__ = [
    "CardListModel",
    "CardRow",
    "DESCRIPTION_PREVIEW_CHARS",
    "EMPTY_MESSAGE",
    "HOVER_OFFSET",
    "HoverPreview",
    "truncate_description",
]
