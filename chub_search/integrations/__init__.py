"""Remote service integrations for the CHub search plugin."""

from __future__ import annotations

from .chub_api import ChubClient
from .tag_payload import parse_tag_payload

__all__ = ["ChubClient", "parse_tag_payload"]
