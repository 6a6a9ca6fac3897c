"""Shared HTTP session used for every call routed through the host proxy."""

from __future__ import annotations

from typing import Optional

import requests

from .version import PLUGIN_VERSION

_SESSION: Optional[requests.Session] = None
_PLUGIN_AGENT = f"CHub-Search/{PLUGIN_VERSION}"


def _build_user_agent(existing: Optional[str]) -> str:
    candidate = (existing or "").strip()
    if candidate and _PLUGIN_AGENT in candidate:
        return candidate
    if candidate:
        return f"{candidate} {_PLUGIN_AGENT}"
    return _PLUGIN_AGENT


def get_shared_session() -> requests.Session:
    """Return the shared requests session tagged with the plugin User-Agent."""

    global _SESSION
    if _SESSION is None:
        session = requests.Session()
        session.headers["User-Agent"] = _build_user_agent(session.headers.get("User-Agent"))
        _SESSION = session
    return _SESSION


__all__ = ["get_shared_session"]
