import unittest
from io import BytesIO
from typing import Callable, Dict, List, Optional

from PIL import Image

from chub_search.host import HostServices
from chub_search.preferences import PreferencesManager
from chub_search.search_controller import DOWNLOAD_FAILED_TITLE, SearchController
from chub_search.state import CardFile, CatalogRecord, SearchFormState, SearchQuery


def _record(name: str) -> CatalogRecord:
    return CatalogRecord(id=name, name=name, description="d", full_path=f"alice/{name}", author="alice")


def _png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8)).save(buffer, format="PNG")
    return buffer.getvalue()


class _FakeClient:
    def __init__(self) -> None:
        self.queries: List[SearchQuery] = []
        self.results: List[CatalogRecord] = []
        self.tags: List[str] = ["elf", "mage"]
        self.card_error: Exception = RuntimeError("Failed to fetch character image")
        self.card: CardFile = CardFile("alice_ayla.png", b"PNG", "image/png")
        self.fail_card = False
        self.thumbnails: Dict[str, bytes] = {}
        self.thumbnail_requests: List[str] = []

    def search(self, query: SearchQuery) -> List[CatalogRecord]:
        self.queries.append(query)
        return list(self.results)

    def fetch_tag_catalog(self) -> List[str]:
        return list(self.tags)

    def fetch_card_file(self, full_path: str, card_image_url: str = "") -> CardFile:
        if self.fail_card:
            raise self.card_error
        return self.card

    def fetch_thumbnail(self, url: str) -> Optional[bytes]:
        self.thumbnail_requests.append(url)
        return self.thumbnails.get(url)


class _DeferredSpawn:
    """Collects worker callables so tests decide when they run."""

    def __init__(self) -> None:
        self.pending: List[Callable[[], None]] = []
        self.names: List[str] = []

    def __call__(self, target: Callable[[], None], name: str) -> None:
        self.pending.append(target)
        self.names.append(name)

    def run_all(self) -> None:
        while self.pending:
            self.pending.pop(0)()


class SearchControllerTest(unittest.TestCase):
    def setUp(self) -> None:
        self.settings: dict = {}
        self.notifications: List[tuple] = []
        self.imported: List[list] = []
        self.host = HostServices(
            settings=self.settings,
            import_files=lambda files: self.imported.append(list(files)),
            notify_error=lambda title, message: self.notifications.append((title, message)),
        )
        self.client = _FakeClient()
        self.spawn = _DeferredSpawn()
        self.controller = SearchController(
            self.client,  # type: ignore[arg-type]
            PreferencesManager(self.settings),
            self.host,
            spawn=self.spawn,
        )

    def _drain_search(self) -> list:
        outcomes = []
        while True:
            item = self.controller.poll_search_results()
            if item is None:
                return outcomes
            outcomes.append(self.controller.accept_search_outcome(*item))

    def test_search_without_open_session_is_ignored(self) -> None:
        self.assertIsNone(self.controller.begin_search(SearchQuery()))
        self.assertEqual(self.spawn.pending, [])

    def test_results_are_accepted_for_latest_token(self) -> None:
        session = self.controller.open_session()
        self.client.results = [_record("ayla")]

        token = self.controller.begin_search(SearchQuery(search_term="ayla"))
        self.assertEqual(token, 1)
        self.assertTrue(session.busy)
        self.spawn.run_all()

        self.assertEqual(self._drain_search(), [[_record("ayla")]])
        self.assertFalse(session.busy)
        self.assertEqual(session.records, [_record("ayla")])
        self.assertEqual(self.client.queries[0].search_term, "ayla")

    def test_last_issued_search_wins(self) -> None:
        session = self.controller.open_session()
        self.controller.begin_search(SearchQuery(search_term="first"))
        self.controller.begin_search(SearchQuery(search_term="second"))
        self.spawn.run_all()

        outcomes = self._drain_search()
        self.assertIsNone(outcomes[0])
        self.assertIsNotNone(outcomes[1])
        self.assertEqual(session.latest_token, 2)

    def test_results_after_close_are_dropped(self) -> None:
        self.controller.open_session()
        self.client.results = [_record("ayla")]
        self.controller.begin_search(SearchQuery())
        self.controller.close_session()
        self.spawn.run_all()

        self.assertEqual(self._drain_search(), [None])
        self.assertIsNone(self.controller.session)

    def test_results_from_previous_popup_are_dropped(self) -> None:
        self.controller.open_session()
        self.controller.begin_search(SearchQuery())
        fresh = self.controller.open_session()
        self.spawn.run_all()

        self.assertEqual(self._drain_search(), [None])
        self.assertEqual(fresh.records, [])

    def test_empty_result_is_still_painted(self) -> None:
        self.controller.open_session()
        self.controller.begin_search(SearchQuery())
        self.spawn.run_all()

        self.assertEqual(self._drain_search(), [[]])

    def test_tag_catalog_is_scoped_to_session(self) -> None:
        self.assertEqual(self.controller.tag_catalog(), [])
        self.controller.open_session()
        self.assertTrue(self.controller.begin_tag_fetch())
        self.spawn.run_all()

        session_id, tags = self.controller.poll_tag_results()
        self.assertTrue(self.controller.accept_tags(session_id, tags))
        self.assertEqual(self.controller.tag_catalog(), ["elf", "mage"])

        self.controller.close_session()
        self.assertEqual(self.controller.tag_catalog(), [])
        self.assertFalse(self.controller.accept_tags(session_id, tags))

    def test_build_query_persists_preferences(self) -> None:
        form = SearchFormState(include_text="elf, mage", results_per_page=20, nsfw=True)
        query = self.controller.build_query(form)

        self.assertEqual(query.include_tags, ("elf", "mage"))
        self.assertEqual(self.settings["chub"]["findCount"], 20)
        self.assertTrue(self.settings["chub"]["nsfw"])

    def test_download_hands_file_to_host(self) -> None:
        self.assertTrue(self.controller.download_card("alice/ayla", ""))

        self.assertEqual(self.imported, [[self.client.card]])
        self.assertEqual(self.notifications, [])

    def test_failed_download_notifies_once(self) -> None:
        self.client.fail_card = True

        self.assertFalse(self.controller.download_card("alice/ayla", ""))
        self.assertEqual(
            self.notifications,
            [(DOWNLOAD_FAILED_TITLE, "Failed to fetch character image")],
        )
        self.assertEqual(self.imported, [])

    def test_import_failure_is_reported_not_raised(self) -> None:
        def broken_import(_files: list) -> None:
            raise OSError("disk full")

        self.host.import_files = broken_import
        self.assertTrue(self.controller.download_card("alice/ayla", ""))
        self.assertEqual(self.notifications, [(DOWNLOAD_FAILED_TITLE, "disk full")])

    def test_begin_download_runs_on_worker(self) -> None:
        self.controller.begin_download("alice/ayla", "")
        self.assertEqual(self.spawn.names, ["chub-search-download"])
        self.assertEqual(self.imported, [])

        self.spawn.run_all()
        self.assertEqual(len(self.imported), 1)

    def test_download_reports_completion_to_caller(self) -> None:
        finished: List[bool] = []
        self.assertTrue(self.controller.download_card("alice/ayla", "", finished.append))
        self.assertEqual(finished, [True])

        self.client.fail_card = True
        self.assertFalse(self.controller.download_card("alice/ayla", "", finished.append))
        self.assertEqual(finished, [True, False])
        self.assertEqual(len(self.notifications), 1)

    def test_import_failure_reports_unsuccessful_completion(self) -> None:
        def broken_import(_files: list) -> None:
            raise OSError("disk full")

        finished: List[bool] = []
        self.host.import_files = broken_import
        self.controller.download_card("alice/ayla", "", finished.append)

        self.assertEqual(finished, [False])

    def _search_once(self) -> int:
        token = self.controller.begin_search(SearchQuery())
        self.spawn.run_all()
        self._drain_search()
        return token

    def test_thumbnails_are_decoded_and_queued(self) -> None:
        self.controller.open_session()
        token = self._search_once()
        self.client.thumbnails = {"https://example.test/0.png": _png_bytes()}

        started = self.controller.begin_thumbnail_fetch(
            token,
            [(0, "https://example.test/0.png"), (1, ""), (2, "https://example.test/missing.png")],
        )
        self.assertTrue(started)
        self.assertEqual(self.spawn.names[-1], "chub-search-thumbnails")
        self.spawn.run_all()

        session_id, queued_token, index, image = self.controller.poll_thumbnail_results()
        self.assertEqual((queued_token, index), (token, 0))
        self.assertEqual(image.size, (8, 8))
        self.assertTrue(self.controller.accept_thumbnail(session_id, queued_token))
        self.assertIsNone(self.controller.poll_thumbnail_results())
        self.assertEqual(
            self.client.thumbnail_requests,
            ["https://example.test/0.png", "https://example.test/missing.png"],
        )

    def test_thumbnails_for_superseded_search_are_skipped(self) -> None:
        self.controller.open_session()
        token = self._search_once()
        self.client.thumbnails = {"https://example.test/0.png": _png_bytes()}
        self.controller.begin_thumbnail_fetch(token, [(0, "https://example.test/0.png")])
        self.controller.begin_search(SearchQuery(search_term="newer"))

        self.spawn.run_all()

        self.assertEqual(self.client.thumbnail_requests, [])
        self.assertIsNone(self.controller.poll_thumbnail_results())
        self.assertFalse(self.controller.accept_thumbnail(self.controller.session.session_id, token))

    def test_thumbnail_fetch_needs_open_session_and_urls(self) -> None:
        self.assertFalse(self.controller.begin_thumbnail_fetch(1, [(0, "https://example.test/0.png")]))
        self.controller.open_session()
        self.assertFalse(self.controller.begin_thumbnail_fetch(1, [(0, "")]))
