from chub_search.card_list import (
    DESCRIPTION_PREVIEW_CHARS,
    EMPTY_MESSAGE,
    HOVER_OFFSET,
    CardListModel,
    HoverPreview,
    truncate_description,
)
from chub_search.state import CatalogRecord


def _record(index: int, description: str, author: str = "alice") -> CatalogRecord:
    return CatalogRecord(
        id=index,
        name=f"Card {index}",
        description=description,
        full_path=f"{author}/card-{index}",
        tags=("elf",),
        author=author,
    )


def test_truncate_description() -> None:
    long_text = "x" * 200

    assert truncate_description(long_text) == "x" * DESCRIPTION_PREVIEW_CHARS + "…"
    assert truncate_description("x" * DESCRIPTION_PREVIEW_CHARS) == "x" * DESCRIPTION_PREVIEW_CHARS
    assert truncate_description(None) == ""


def test_model_rows_and_full_descriptions() -> None:
    model = CardListModel()
    long_text = "y" * 250
    model.load([_record(0, "first"), _record(1, "second"), _record(2, long_text, author="Unknown")])

    rows = model.rows
    assert [row.index for row in rows] == [0, 1, 2]
    assert rows[0].author_label == "by alice"
    assert rows[2].author_label == "by Unknown"
    assert rows[2].description.endswith("…")
    assert model.full_description(2) == long_text
    assert model.full_description(9) == ""


def test_model_reload_replaces_previous_rows() -> None:
    model = CardListModel()
    model.load([_record(0, "a"), _record(1, "b")])
    model.load([])

    assert model.is_empty
    assert model.full_description(0) == ""
    assert EMPTY_MESSAGE == "No characters found"


def test_unnamed_records_get_placeholder_name() -> None:
    model = CardListModel()
    model.load([CatalogRecord(id=1, name="", description="d", full_path="a/b", author="a")])

    assert model.rows[0].name == "Unnamed"


def test_hover_preview_follows_pointer_with_offset() -> None:
    hover = HoverPreview()

    assert hover.enter("full text", 100, 50) is True
    assert (hover.x, hover.y) == (100 + HOVER_OFFSET, 50 + HOVER_OFFSET)
    hover.move(110, 60)
    assert (hover.x, hover.y) == (122, 72)

    hover.leave()
    assert hover.visible is False
    hover.move(0, 0)
    assert (hover.x, hover.y) == (122, 72)


def test_hover_preview_ignores_empty_text() -> None:
    hover = HoverPreview()

    assert hover.enter("", 1, 1) is False
    assert hover.visible is False
