"""Centralized plugin metadata and version helpers."""

from __future__ import annotations


PLUGIN_NAME = "CHub Search"
PLUGIN_VERSION = "1.2.0"


def display_version(value: str) -> str:
    """Return a version string prefixed with ``v`` if missing."""

    value = value.strip()
    return value if value.lower().startswith("v") else f"v{value}"


__all__ = ["PLUGIN_NAME", "PLUGIN_VERSION", "display_version"]
