"""Tests for hue_dashboard.page."""

from hue_dashboard.page import Page, add_page_tile, add_page_ui_action
from hue_dashboard.session import Session


def test_page_starts_empty():
    """A new page has no tiles and no actions."""
    page = Page()
    assert len(page.tiles) == 0
    assert len(page.ui_actions) == 0
    assert page.render() == ""


def test_tiles_are_prepended():
    """Tiles accumulate newest first; tiles_in_order gives build order."""
    page = Page()
    page.add_tile("<div>a</div>")
    add_page_tile(page, "<div>b</div>")
    page.add_tile("<div>c</div>")
    assert list(page.tiles) == ["<div>c</div>", "<div>b</div>", "<div>a</div>"]
    assert page.tiles_in_order() == ["<div>a</div>", "<div>b</div>", "<div>c</div>"]


def test_render_uses_build_order():
    """render should substitute the tiles in build order into the template."""
    page = Page()
    page.add_tile("one")
    page.add_tile("two")
    html = page.render("<body>{tiles}</body><p>{footer}</p>", footer="x")
    assert html == "<body>one\ntwo</body><p>x</p>"


def test_render_keeps_braces_in_tiles():
    """Tile content is not treated as a format template."""
    page = Page()
    page.add_tile("<script>if (a) { b(); }</script>")
    assert "{ b(); }" in page.render()


def test_ui_actions_run_in_build_order():
    """register_ui_actions runs every action once, in the order added."""
    page = Page()
    calls = []
    page.add_ui_action(lambda session: calls.append(("first", session.session_id)))
    add_page_ui_action(page, lambda session: calls.append(("second", session.session_id)))
    session = Session("abc")

    assert page.register_ui_actions(session) == 2
    assert calls == [("first", "abc"), ("second", "abc")]

    # Actions are consumed by registration
    assert page.register_ui_actions(session) == 0
    assert len(calls) == 2
