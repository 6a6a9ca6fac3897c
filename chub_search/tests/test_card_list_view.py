import pytest

tk = pytest.importorskip("tkinter")

from PIL import Image  # noqa: E402

from chub_search.card_list import EMPTY_MESSAGE, CardListModel  # noqa: E402
from chub_search.search_ui.card_list_view import CardListView  # noqa: E402
from chub_search.state import CatalogRecord  # noqa: E402


@pytest.fixture
def root():
    try:
        window = tk.Tk()
    except tk.TclError:
        pytest.skip("no display available")
    window.withdraw()
    yield window
    window.destroy()


def _labels(widget) -> list:
    found = []
    for child in widget.winfo_children():
        if isinstance(child, tk.Label):
            found.append(child.cget("text"))
        found.extend(_labels(child))
    return found


def _view(root, model: CardListModel) -> CardListView:
    return CardListView(root, model, on_download=lambda _row: None, on_open=lambda _row: None)


def test_empty_result_shows_message_instead_of_grid(root) -> None:
    model = CardListModel()
    view = _view(root, model)
    model.load([])
    view.render()

    assert _labels(view.frame) == [EMPTY_MESSAGE]


def test_render_replaces_cards_and_draws_thumbnails(root) -> None:
    model = CardListModel()
    view = _view(root, model)
    model.load(
        [
            CatalogRecord(id=1, name="Ayla", description="d", full_path="alice/ayla", author="alice"),
            CatalogRecord(id=2, name="Brin", description="d", full_path="bob/brin", author="bob"),
        ]
    )
    view.render()

    labels = _labels(view.frame)
    assert "Ayla" in labels and "by bob" in labels
    assert EMPTY_MESSAGE not in labels
    assert view.set_thumbnail(1, Image.new("RGBA", (10, 10))) is True
    assert view.set_thumbnail(5, Image.new("RGBA", (10, 10))) is False

    model.load([])
    view.render()
    assert _labels(view.frame) == [EMPTY_MESSAGE]
    assert view.set_thumbnail(1, Image.new("RGBA", (10, 10))) is False
