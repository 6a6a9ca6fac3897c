"""CHub character search plugin package."""

from __future__ import annotations

from .version import PLUGIN_NAME, PLUGIN_VERSION

__all__ = ["PLUGIN_NAME", "PLUGIN_VERSION"]
