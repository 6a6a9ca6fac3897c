"""Tk views for the CHub search popup."""

from __future__ import annotations

from .search_window import CardSearchWindow

__all__ = ["CardSearchWindow"]
