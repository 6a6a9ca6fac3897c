"""Normalisation of the two tag catalog response shapes CHub returns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Union


def _entry_name(entry: object) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("tag")
        if isinstance(value, str):
            return value
    return ""


def _clean_names(entries: Sequence[object]) -> List[str]:
    return [name for name in (_entry_name(entry) for entry in entries) if name.strip()]


@dataclass(frozen=True)
class BareTagList:
    """Payload that is the tag array itself."""

    entries: Sequence[object]

    def names(self) -> List[str]:
        return _clean_names(self.entries)


@dataclass(frozen=True)
class WrappedTagList:
    """Payload shaped as ``{"tags": [...]}``."""

    entries: Sequence[object]

    def names(self) -> List[str]:
        return _clean_names(self.entries)


@dataclass(frozen=True)
class EmptyTagList:
    raw_type: str = ""

    def names(self) -> List[str]:
        return []


TagPayload = Union[BareTagList, WrappedTagList, EmptyTagList]


def parse_tag_payload(payload: object) -> TagPayload:
    if isinstance(payload, list):
        return BareTagList(payload)
    if isinstance(payload, dict) and isinstance(payload.get("tags"), list):
        return WrappedTagList(payload["tags"])
    return EmptyTagList(type(payload).__name__)


__all__ = [
    "BareTagList",
    "EmptyTagList",
    "TagPayload",
    "WrappedTagList",
    "parse_tag_payload",
]
