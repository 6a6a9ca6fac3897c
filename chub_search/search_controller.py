"""Search orchestration: form state to query, background fetches, stale-result guards."""

from __future__ import annotations

import queue
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from PIL import Image

from .host import HostServices
from .integrations.chub_api import ChubClient
from .logging_utils import get_logger
from .preferences import PreferencesManager
from .state import CatalogRecord, PopupSession, SearchFormState, SearchQuery
from .thumbnails import decode_thumbnail

_log = get_logger("search")

SEARCH_DEBOUNCE_MS = 500
DOWNLOAD_FAILED_TITLE = "Character download failed"

SearchOutcome = Tuple[int, int, List[CatalogRecord]]
TagOutcome = Tuple[int, List[str]]
ThumbnailOutcome = Tuple[int, int, int, Image.Image]
DownloadCallback = Callable[[bool], None]
Spawn = Callable[[Callable[[], None], str], None]


def _spawn_daemon(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, name=name, daemon=True).start()


class SearchController:
    """Coordinate CHub searches, tag loading and downloads for the popup."""

    def __init__(
        self,
        client: ChubClient,
        preferences: PreferencesManager,
        host: HostServices,
        *,
        spawn: Spawn = _spawn_daemon,
    ) -> None:
        self._client = client
        self._preferences = preferences
        self._host = host
        self._spawn = spawn
        self._session: Optional[PopupSession] = None
        self._search_result_queue: "queue.Queue[SearchOutcome]" = queue.Queue()
        self._tag_result_queue: "queue.Queue[TagOutcome]" = queue.Queue()
        self._thumbnail_queue: "queue.Queue[ThumbnailOutcome]" = queue.Queue()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    @property
    def session(self) -> Optional[PopupSession]:
        return self._session

    @property
    def client(self) -> ChubClient:
        return self._client

    def open_session(self) -> PopupSession:
        if self._session is not None:
            self._session.close()
        self._session = PopupSession()
        _log.debug("Opened search session %d", self._session.session_id)
        return self._session

    def close_session(self) -> None:
        session = self._session
        if session is None:
            return
        session.close()
        self._session = None
        _log.debug("Closed search session %d", session.session_id)

    def is_current(self, session_id: int) -> bool:
        session = self._session
        return session is not None and session.is_open and session.session_id == session_id

    # ------------------------------------------------------------------
    # Form handling
    # ------------------------------------------------------------------
    def load_form(self) -> SearchFormState:
        return self._preferences.load_form()

    def build_query(self, form: SearchFormState, *, persist: bool = True) -> SearchQuery:
        if persist:
            self._preferences.save_form(form)
        return form.to_query()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def begin_search(self, query: SearchQuery) -> Optional[int]:
        session = self._session
        if session is None or not session.is_open:
            _log.debug("Ignoring search request without an open popup")
            return None

        token = session.next_token()
        session.busy = True
        session_id = session.session_id

        def worker() -> None:
            try:
                records = self._client.search(query)
            except Exception:
                _log.exception("Unexpected error during CHub search")
                records = []
            self._search_result_queue.put((session_id, token, records))

        self._spawn(worker, "chub-search-query")
        return token

    def poll_search_results(self) -> Optional[SearchOutcome]:
        try:
            return self._search_result_queue.get_nowait()
        except queue.Empty:
            return None

    def accept_search_outcome(
        self,
        session_id: int,
        token: int,
        records: List[CatalogRecord],
    ) -> Optional[List[CatalogRecord]]:
        """Return the records to paint, or ``None`` when the outcome is stale."""

        if not self.is_current(session_id):
            _log.debug("Dropping search result for closed session %d", session_id)
            return None
        session = self._session
        if session is None:
            return None
        if token != session.latest_token:
            _log.debug("Dropping stale search result token=%d latest=%d", token, session.latest_token)
            return None
        session.busy = False
        session.replace_records(records)
        return list(records)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------
    def begin_tag_fetch(self) -> bool:
        session = self._session
        if session is None or not session.is_open:
            return False
        session_id = session.session_id

        def worker() -> None:
            try:
                tags = self._client.fetch_tag_catalog()
            except Exception:
                _log.exception("Unexpected error while loading the tag catalog")
                tags = []
            self._tag_result_queue.put((session_id, tags))

        self._spawn(worker, "chub-search-tags")
        return True

    def poll_tag_results(self) -> Optional[TagOutcome]:
        try:
            return self._tag_result_queue.get_nowait()
        except queue.Empty:
            return None

    def accept_tags(self, session_id: int, tags: List[str]) -> bool:
        session = self._session
        if session is None or not self.is_current(session_id):
            return False
        session.tag_catalog = list(tags)
        return True

    def tag_catalog(self) -> List[str]:
        session = self._session
        if session is None or not session.is_open:
            return []
        return session.tag_catalog

    # ------------------------------------------------------------------
    # Thumbnails
    # ------------------------------------------------------------------
    def begin_thumbnail_fetch(self, token: int, items: Sequence[Tuple[int, str]]) -> bool:
        """Fetch and decode thumbnails for the rows painted for ``token``.

        ``items`` holds ``(row_index, thumbnail_url)`` pairs. Each decoded
        image is queued as ``(session_id, token, row_index, image)``.
        """

        session = self._session
        pending = [(index, url) for index, url in items if url]
        if session is None or not session.is_open or not pending:
            return False
        session_id = session.session_id

        def worker() -> None:
            for index, url in pending:
                if not self._is_latest(session_id, token):
                    _log.debug("Stopping thumbnail fetch for stale token %d", token)
                    return
                try:
                    image = decode_thumbnail(self._client.fetch_thumbnail(url))
                except Exception:
                    _log.exception("Unexpected error while loading thumbnail %s", url)
                    image = None
                if image is not None:
                    self._thumbnail_queue.put((session_id, token, index, image))

        self._spawn(worker, "chub-search-thumbnails")
        return True

    def poll_thumbnail_results(self) -> Optional[ThumbnailOutcome]:
        try:
            return self._thumbnail_queue.get_nowait()
        except queue.Empty:
            return None

    def accept_thumbnail(self, session_id: int, token: int) -> bool:
        """True when a thumbnail belongs to the rows currently on screen."""

        return self._is_latest(session_id, token)

    def _is_latest(self, session_id: int, token: int) -> bool:
        session = self._session
        if session is None or not self.is_current(session_id):
            return False
        return token == session.latest_token

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------
    def begin_download(
        self,
        full_path: str,
        card_image_url: str = "",
        on_finished: Optional[DownloadCallback] = None,
    ) -> None:
        self._spawn(
            lambda: self.download_card(full_path, card_image_url, on_finished),
            "chub-search-download",
        )

    def download_card(
        self,
        full_path: str,
        card_image_url: str = "",
        on_finished: Optional[DownloadCallback] = None,
    ) -> bool:
        """Fetch a card and hand it to the host importer. Never raises.

        ``on_finished`` runs on the UI loop with ``True`` once the host has
        imported the file, or ``False`` after the failure was reported.
        """

        try:
            card = self._client.fetch_card_file(full_path, card_image_url)
        except Exception as exc:
            _log.error("Download error for %s: %s", full_path, exc)
            self._report_failure(str(exc) or exc.__class__.__name__, on_finished)
            return False

        def deliver() -> None:
            try:
                self._host.import_files([card])
            except Exception as exc:
                _log.exception("Host import failed for %s", card.name)
                self._host.notify(DOWNLOAD_FAILED_TITLE, str(exc) or exc.__class__.__name__)
                _finish(on_finished, False)
                return
            _finish(on_finished, True)

        try:
            self._host.call_soon(deliver)
        except Exception as exc:
            _log.exception("Failed to schedule import of %s", card.name)
            self._report_failure(str(exc) or exc.__class__.__name__, on_finished)
            return False
        _log.info("Downloaded %s (%d bytes)", card.name, len(card.data))
        return True

    def _report_failure(self, message: str, on_finished: Optional[DownloadCallback]) -> None:
        def report() -> None:
            self._host.notify(DOWNLOAD_FAILED_TITLE, message)
            _finish(on_finished, False)

        try:
            self._host.call_soon(report)
        except Exception:
            _log.exception("Failed to schedule download failure notification")


def _finish(callback: Optional[DownloadCallback], succeeded: bool) -> None:
    if callback is None:
        return
    try:
        callback(succeeded)
    except Exception:
        _log.exception("Download completion callback failed")


__all__ = ["DOWNLOAD_FAILED_TITLE", "SEARCH_DEBOUNCE_MS", "SearchController"]
