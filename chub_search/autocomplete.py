"""Tag autocomplete state machine shared by the include/exclude tag inputs."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from .logging_utils import get_logger

_log = get_logger("autocomplete")

MAX_SUGGESTIONS = 10
FOCUS_LOSS_GRACE_MS = 100

IDLE = "idle"
SUGGESTING = "suggesting"

_KEY_ALIASES = {
    "Down": "ArrowDown",
    "Up": "ArrowUp",
    "Return": "Enter",
    "KP_Enter": "Enter",
    "ISO_Left_Tab": "Tab",
}


def current_fragment(text: Optional[str]) -> str:
    """Return the trailing comma segment, trimmed and lower-cased."""

    return (text or "").split(",")[-1].strip().lower()


def match_tags(catalog: Sequence[str], fragment: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    if not fragment:
        return []
    needle = fragment.lower()
    matches: List[str] = []
    for tag in catalog:
        if isinstance(tag, str) and tag.lower().startswith(needle):
            matches.append(tag)
            if len(matches) >= limit:
                break
    return matches


def apply_tag(text: Optional[str], tag: str) -> str:
    """Replace the trailing comma segment of ``text`` with ``tag``."""

    parts = (text or "").split(",")
    parts[-1] = f" {tag}"
    return ",".join(parts).strip()


class TagAutocomplete:
    """Suggestion list, cursor and commit logic for one text input.

    The instance is either ``IDLE`` (no panel) or ``SUGGESTING`` (panel shown,
    ``cursor`` is -1 or an index into ``suggestions``). Views observe the state
    after each call; commits are announced to listeners registered with
    :meth:`add_commit_listener`.
    """

    def __init__(self, catalog: Callable[[], Sequence[str]], name: str = "") -> None:
        self._catalog = catalog
        self._name = name
        self._text = ""
        self._suggestions: List[str] = []
        self._cursor = -1
        self._commit_listeners: List[Callable[[str], None]] = []

    @property
    def state(self) -> str:
        return SUGGESTING if self._suggestions else IDLE

    @property
    def is_suggesting(self) -> bool:
        return bool(self._suggestions)

    @property
    def suggestions(self) -> List[str]:
        return list(self._suggestions)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def text(self) -> str:
        return self._text

    def add_commit_listener(self, listener: Callable[[str], None]) -> None:
        self._commit_listeners.append(listener)

    def update(self, text: Optional[str]) -> List[str]:
        self._text = text or ""
        fragment = current_fragment(self._text)
        catalog = self._catalog() or ()
        if not fragment or not catalog:
            self.dismiss()
            return []
        matches = match_tags(catalog, fragment)
        if not matches:
            self.dismiss()
            return []
        self._suggestions = matches
        self._cursor = -1
        return list(matches)

    def dismiss(self) -> None:
        self._suggestions = []
        self._cursor = -1

    def move(self, delta: int) -> int:
        if not self._suggestions:
            return -1
        count = len(self._suggestions)
        if delta > 0:
            self._cursor = (self._cursor + 1) % count
        elif delta < 0:
            start = self._cursor if self._cursor >= 0 else count
            self._cursor = (start - 1) % count
        return self._cursor

    def handle_key(self, key: str, text: Optional[str] = None) -> bool:
        """Apply a navigation key; returns True when the default action must be suppressed."""

        if not self._suggestions:
            return False
        if text is not None:
            self._text = text
        key = _KEY_ALIASES.get(key, key)
        if key == "ArrowDown":
            self.move(1)
            return True
        if key == "ArrowUp":
            self.move(-1)
            return True
        if key in ("Enter", "Tab"):
            if 0 <= self._cursor < len(self._suggestions):
                self.commit(self._suggestions[self._cursor])
                return True
            self.dismiss()
            return False
        if key == "Escape":
            self.dismiss()
            return True
        return False

    def pick(self, index: int) -> Optional[str]:
        if not 0 <= index < len(self._suggestions):
            return None
        return self.commit(self._suggestions[index])

    def commit(self, tag: str) -> str:
        value = apply_tag(self._text, tag)
        self._text = value
        self.dismiss()
        for listener in list(self._commit_listeners):
            try:
                listener(value)
            except Exception:
                _log.exception("Autocomplete commit listener failed for %s", self._name or "input")
        return value


__all__ = [
    "FOCUS_LOSS_GRACE_MS",
    "IDLE",
    "MAX_SUGGESTIONS",
    "SUGGESTING",
    "TagAutocomplete",
    "apply_tag",
    "current_fragment",
    "match_tags",
]
