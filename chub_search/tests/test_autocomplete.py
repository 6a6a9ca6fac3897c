import unittest

from chub_search.autocomplete import (
    IDLE,
    MAX_SUGGESTIONS,
    SUGGESTING,
    TagAutocomplete,
    apply_tag,
    current_fragment,
    match_tags,
)

CATALOG = ["elf", "mage", "magic", "robot"]


def test_current_fragment_uses_last_segment() -> None:
    assert current_fragment("elf, MA") == "ma"
    assert current_fragment("elf,") == ""
    assert current_fragment(None) == ""


def test_match_tags_is_case_insensitive_prefix_and_capped() -> None:
    catalog = [f"tag{i:02d}" for i in range(25)] + ["Mage"]

    assert match_tags(catalog, "ma") == ["Mage"]
    assert len(match_tags(catalog, "tag")) == MAX_SUGGESTIONS
    assert match_tags(catalog, "") == []


def test_apply_tag_replaces_trailing_segment() -> None:
    assert apply_tag("elf, ma", "mage") == "elf, mage"
    assert apply_tag("ma", "mage") == "mage"
    assert apply_tag("", "elf") == "elf"


class TagAutocompleteTest(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = list(CATALOG)
        self.committed = []
        self.autocomplete = TagAutocomplete(lambda: self.catalog, name="include")
        self.autocomplete.add_commit_listener(self.committed.append)

    def test_suggestions_for_trailing_fragment(self) -> None:
        self.assertEqual(self.autocomplete.update("elf, ma"), ["mage", "magic"])
        self.assertEqual(self.autocomplete.state, SUGGESTING)
        self.assertEqual(self.autocomplete.cursor, -1)

    def test_no_fragment_or_no_match_goes_idle(self) -> None:
        self.autocomplete.update("elf, ma")
        self.assertEqual(self.autocomplete.update("elf, "), [])
        self.assertEqual(self.autocomplete.state, IDLE)
        self.autocomplete.update("zzz")
        self.assertFalse(self.autocomplete.is_suggesting)

    def test_empty_catalog_never_suggests(self) -> None:
        self.catalog = []
        self.assertEqual(self.autocomplete.update("ma"), [])
        self.assertEqual(self.autocomplete.state, IDLE)

    def test_cursor_wraps_in_both_directions(self) -> None:
        self.autocomplete.update("ma")
        self.assertEqual(self.autocomplete.move(1), 0)
        self.assertEqual(self.autocomplete.move(1), 1)
        self.assertEqual(self.autocomplete.move(1), 0)
        self.assertEqual(self.autocomplete.move(-1), 1)

    def test_arrow_up_from_no_selection_selects_last(self) -> None:
        self.autocomplete.update("ma")
        self.assertTrue(self.autocomplete.handle_key("Up"))
        self.assertEqual(self.autocomplete.cursor, 1)

    def test_enter_commits_highlighted_suggestion(self) -> None:
        self.autocomplete.update("elf, ma")
        self.assertTrue(self.autocomplete.handle_key("Down", "elf, ma"))
        self.assertTrue(self.autocomplete.handle_key("Return", "elf, ma"))

        self.assertEqual(self.committed, ["elf, mage"])
        self.assertEqual(self.autocomplete.text, "elf, mage")
        self.assertEqual(self.autocomplete.state, IDLE)

    def test_tab_without_highlight_dismisses_and_keeps_default(self) -> None:
        self.autocomplete.update("ma")
        self.assertFalse(self.autocomplete.handle_key("Tab"))
        self.assertEqual(self.autocomplete.state, IDLE)
        self.assertEqual(self.committed, [])

    def test_escape_dismisses(self) -> None:
        self.autocomplete.update("ma")
        self.assertTrue(self.autocomplete.handle_key("Escape"))
        self.assertEqual(self.autocomplete.state, IDLE)

    def test_keys_ignored_while_idle(self) -> None:
        self.assertFalse(self.autocomplete.handle_key("Down"))
        self.assertEqual(self.autocomplete.move(1), -1)

    def test_pick_commits_by_index(self) -> None:
        self.autocomplete.update("elf, ma")
        self.assertEqual(self.autocomplete.pick(1), "elf, magic")
        self.assertEqual(self.committed, ["elf, magic"])
        self.assertIsNone(self.autocomplete.pick(5))

    def test_failing_listener_does_not_block_others(self) -> None:
        seen = []

        def broken(_value: str) -> None:
            raise RuntimeError("listener failure")

        autocomplete = TagAutocomplete(lambda: CATALOG)
        autocomplete.add_commit_listener(broken)
        autocomplete.add_commit_listener(seen.append)
        autocomplete.update("rob")
        autocomplete.pick(0)

        self.assertEqual(seen, ["robot"])
