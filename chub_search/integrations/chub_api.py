"""Client for the CHub search, tag and avatar endpoints via the host proxy."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlencode

import requests

from ..host import DEFAULT_PROXY_ORIGIN
from ..http_client import get_shared_session
from ..logging_utils import get_logger
from ..state import (
    NO_DESCRIPTION,
    CardFile,
    CatalogRecord,
    SearchQuery,
    author_from_path,
)
from .tag_payload import parse_tag_payload

_log = get_logger("api")

API_ENDPOINT_SEARCH = "https://api.chub.ai/search"
API_ENDPOINT_TAGS = "https://api.chub.ai/tags"
AVATAR_BASE = "https://avatars.charhub.io/avatars"
CHARACTER_PAGE_BASE = "https://chub.ai/characters"
PROXY_PATH = "/api/plugins/st-proxy-plugin/fetch"
TAG_FALLBACK_LIMIT = 5000
DEFAULT_TIMEOUT = 20

_PNG_TYPE = re.compile(r"png", re.IGNORECASE)
_PATH_SEPARATORS = re.compile(r"/+")


def normalize_node(node: Dict[str, Any]) -> CatalogRecord:
    """Build a :class:`CatalogRecord` from one ``data.nodes`` entry."""

    full_path = str(node.get("fullPath") or "")
    topics = node.get("topics") or []
    if not isinstance(topics, (list, tuple)):
        topics = []
    return CatalogRecord(
        id=node.get("id"),
        name=str(node.get("name") or ""),
        description=str(node.get("tagline") or node.get("description") or NO_DESCRIPTION),
        full_path=full_path,
        tags=tuple(str(topic) for topic in topics if topic),
        author=author_from_path(full_path),
        thumbnail_url=str(node.get("avatar_url") or ""),
        card_image_url=str(node.get("max_res_url") or ""),
    )


def _tag_sort_key(tag: str) -> Tuple[str, str]:
    # Case-insensitive order; on ties the lower-case spelling comes first.
    return tag.casefold(), tag.swapcase()


def sort_tags(tags: Iterable[str]) -> List[str]:
    return sorted(tags, key=_tag_sort_key)


def card_file_name(full_path: str, extension: str) -> str:
    return _PATH_SEPARATORS.sub("_", f"{full_path}.{extension}")


class ChubClient:
    """Encapsulates CHub lookups routed through the same-origin proxy."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        proxy_origin: str = DEFAULT_PROXY_ORIGIN,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session or get_shared_session()
        self._proxy_origin = (proxy_origin or DEFAULT_PROXY_ORIGIN).rstrip("/")
        self._timeout = timeout

    # ------------------------------------------------------------------
    # URL helpers
    # ------------------------------------------------------------------
    def proxy_url(self, target: str) -> str:
        return f"{self._proxy_origin}{PROXY_PATH}?{urlencode({'url': target})}"

    @staticmethod
    def build_search_params(query: SearchQuery) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if query.search_term:
            params.append(("search", query.search_term))
        if query.include_tags:
            params.append(("tags", ",".join(query.include_tags)))
        if query.exclude_tags:
            params.append(("exclude_tags", ",".join(query.exclude_tags)))
        if query.sort:
            params.append(("sort", query.sort))
        params.append(("page", str(max(1, int(query.page)))))
        params.append(("first", str(max(1, int(query.results_per_page)))))
        params.append(("nsfw", "true" if query.nsfw else "false"))
        return params

    def build_search_url(self, query: SearchQuery) -> str:
        return f"{API_ENDPOINT_SEARCH}?{urlencode(self.build_search_params(query))}"

    @staticmethod
    def character_page_url(full_path: str) -> str:
        return f"{CHARACTER_PAGE_BASE}/{full_path}"

    @staticmethod
    def card_asset_urls(full_path: str, card_image_url: Optional[str]) -> Tuple[str, str]:
        primary = card_image_url or f"{AVATAR_BASE}/{full_path}/chara_card_v2.png"
        fallback = f"{AVATAR_BASE}/{full_path}/avatar.webp"
        return primary, fallback

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def search(self, query: SearchQuery) -> List[CatalogRecord]:
        """Return one page of results; any failure yields an empty list."""

        target = self.build_search_url(query)
        try:
            response = self._session.get(self.proxy_url(target), timeout=self._timeout)
        except Exception:
            _log.exception("CHub search request failed for %s", target)
            return []

        if not response.ok:
            _log.warning(
                "CHub search returned status %s %s",
                response.status_code,
                getattr(response, "reason", "") or "",
            )
            return []

        try:
            data = response.json()
        except Exception:
            _log.exception("Failed to decode CHub search response")
            return []

        nodes = self._extract_nodes(data)
        records = [normalize_node(node) for node in nodes if isinstance(node, dict)]
        if _log.isEnabledFor(logging.DEBUG):
            _log.debug(
                "CHub search page=%d first=%d returned %d record(s) for %s",
                query.page,
                query.results_per_page,
                len(records),
                target,
            )
        return records

    @staticmethod
    def _extract_nodes(data: object) -> List[object]:
        if not isinstance(data, dict):
            return []
        inner = data.get("data")
        if not isinstance(inner, dict):
            return []
        nodes = inner.get("nodes")
        return nodes if isinstance(nodes, list) else []

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------
    def fetch_tag_catalog(self) -> List[str]:
        """Return the sorted tag catalog, or an empty list on any failure."""

        try:
            response = self._session.post(
                self.proxy_url(API_ENDPOINT_TAGS),
                json={},
                timeout=self._timeout,
            )
            if not response.ok:
                _log.debug("Tag POST returned status %s; retrying with GET", response.status_code)
                fallback = f"{API_ENDPOINT_TAGS}?{urlencode({'limit': TAG_FALLBACK_LIMIT})}"
                response = self._session.get(self.proxy_url(fallback), timeout=self._timeout)
            if not response.ok:
                raise RuntimeError(f"Tag fetch failed: {response.status_code}")
            data = response.json()
        except Exception:
            _log.exception("CHub tags error")
            return []

        payload = parse_tag_payload(data)
        tags = sort_tags(payload.names())
        _log.debug("Loaded %d tag(s) from %s payload", len(tags), type(payload).__name__)
        return tags

    # ------------------------------------------------------------------
    # Card download
    # ------------------------------------------------------------------
    def fetch_card_file(self, full_path: str, card_image_url: Optional[str] = None) -> CardFile:
        """Fetch the card image, falling back to the webp avatar.

        Raises ``RuntimeError`` when neither asset could be fetched.
        """

        primary, fallback = self.card_asset_urls(full_path, card_image_url)
        response = self._get_asset(primary)
        if response is None:
            response = self._get_asset(fallback)
        if response is None:
            raise RuntimeError("Failed to fetch character image")

        media_type = str(response.headers.get("Content-Type") or "")
        extension = "png" if _PNG_TYPE.search(media_type) else "webp"
        return CardFile(
            name=card_file_name(full_path, extension),
            data=response.content,
            media_type=media_type or f"image/{extension}",
        )

    def fetch_thumbnail(self, url: str) -> Optional[bytes]:
        """Return the raw thumbnail bytes, or ``None`` when unavailable."""

        if not url:
            return None
        response = self._get_asset(url)
        if response is None:
            return None
        return response.content or None

    def _get_asset(self, url: str) -> Optional[requests.Response]:
        try:
            response = self._session.get(self.proxy_url(url), timeout=self._timeout)
        except Exception:
            _log.warning("Card asset request failed for %s", url, exc_info=True)
            return None
        if not response.ok:
            _log.debug("Card asset %s returned status %s", url, response.status_code)
            return None
        return response


__all__ = [
    "API_ENDPOINT_SEARCH",
    "API_ENDPOINT_TAGS",
    "ChubClient",
    "PROXY_PATH",
    "card_file_name",
    "normalize_node",
    "sort_tags",
]
