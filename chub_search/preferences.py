"""Preference loading and persistence for the CHub search plugin."""

from __future__ import annotations

from typing import Any, Dict, MutableMapping

from .logging_utils import get_logger
from .state import (
    DEFAULT_FIND_COUNT,
    DEFAULT_NSFW,
    DEFAULT_SORT,
    SORT_OPTIONS,
    SearchFormState,
)


_log = get_logger("preferences")

SETTINGS_NAMESPACE = "chub"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "findCount": DEFAULT_FIND_COUNT,
    "nsfw": DEFAULT_NSFW,
}


def clamp_find_count(value: object, default: int = DEFAULT_FIND_COUNT) -> int:
    """Return a page size of at least 1, using ``default`` for junk or zero."""

    try:
        result = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        result = default
    if result < 1:
        result = default
    return max(1, result)


def _coerce_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
    return default


class PreferencesManager:
    """Loads and persists search preferences in the host settings mapping."""

    def __init__(self, settings: MutableMapping[str, Any]) -> None:
        self._settings = settings

    @property
    def section(self) -> MutableMapping[str, Any]:
        section = self._settings.get(SETTINGS_NAMESPACE)
        if not isinstance(section, dict):
            section = {}
            self._settings[SETTINGS_NAMESPACE] = section
        return section

    def ensure_defaults(self) -> None:
        section = self.section
        for key, value in DEFAULT_SETTINGS.items():
            if key not in section:
                section[key] = value

    @property
    def find_count(self) -> int:
        return clamp_find_count(self.section.get("findCount", DEFAULT_FIND_COUNT))

    @property
    def nsfw(self) -> bool:
        return _coerce_bool(self.section.get("nsfw", DEFAULT_NSFW), DEFAULT_NSFW)

    @property
    def sort(self) -> str:
        raw = self.section.get("sort", DEFAULT_SORT)
        return raw if isinstance(raw, str) and raw in SORT_OPTIONS else DEFAULT_SORT

    def load_form(self) -> SearchFormState:
        self.ensure_defaults()
        return SearchFormState(
            nsfw=self.nsfw,
            sort=self.sort,
            results_per_page=self.find_count,
        )

    def save_form(self, form: SearchFormState) -> None:
        try:
            section = self.section
            section["findCount"] = clamp_find_count(form.results_per_page)
            section["nsfw"] = bool(form.nsfw)
            if form.sort in SORT_OPTIONS:
                section["sort"] = form.sort
        except Exception:
            _log.exception("Failed to persist search preferences")


__all__ = [
    "DEFAULT_SETTINGS",
    "PreferencesManager",
    "SETTINGS_NAMESPACE",
    "clamp_find_count",
]
