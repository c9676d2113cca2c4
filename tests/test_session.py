"""Tests for hue_dashboard.session."""

import threading

import pytest

from hue_dashboard.page import Page
from hue_dashboard.session import (
    Element,
    Session,
    SessionRegistry,
    UnknownCallbackError,
    UnknownSessionError,
    collect_element_ids,
)


def test_collect_element_ids():
    """All id attributes in the markup should be found, nested or not."""
    html = '<div id="a"><span id="b"></span><p class="x">t</p></div><button id="c">go</button>'
    assert collect_element_ids(html) == {"a", "b", "c"}


def test_get_element_before_and_after_attach():
    """Elements are only known once the session is attached."""
    session = Session("s1")
    assert session.get_element_by_id("light-1-tile") is None
    assert not session.attached

    session.attach('<div id="light-1-tile"></div>')
    assert session.attached
    assert session.get_element_by_id("light-1-tile") == Element("s1", "light-1-tile")
    assert session.get_element_by_id("light-2-tile") is None


def test_export_and_invoke():
    """An exported callback is invoked with the client supplied arguments."""
    session = Session()
    received = []
    token = session.export(lambda x, y: received.append((x, y)))
    other = session.export(lambda: None)
    assert token != other
    assert session.callback_count == 2

    session.invoke(token, [3, 4])
    assert received == [(3, 4)]


def test_invoke_unknown_token():
    """Unknown tokens raise UnknownCallbackError."""
    session = Session()
    with pytest.raises(UnknownCallbackError):
        session.invoke("nope")


def test_scripts_are_buffered_and_flushed():
    """run_function buffers scripts until flushed."""
    session = Session()
    session.run_function("a();")
    session.run_function("b();")
    assert session.flush_scripts() == ["a();", "b();"]
    assert session.flush_scripts() == []


def test_callback_can_queue_scripts():
    """Scripts queued from inside a callback are returned by the next flush."""
    session = Session()
    token = session.export(lambda: session.run_function("window.location.reload(false);"))
    session.invoke(token)
    assert session.flush_scripts() == ["window.location.reload(false);"]


def test_registry():
    """Sessions are created with unique IDs and can be looked up and removed."""
    registry = SessionRegistry()
    s1 = registry.create()
    s2 = registry.create()
    assert s1.session_id != s2.session_id
    assert registry.get(s1.session_id) is s1
    assert len(registry) == 2

    registry.remove(s1.session_id)
    with pytest.raises(UnknownSessionError):
        registry.get(s1.session_id)
    assert len(registry) == 1


def test_failed_callback_discards_its_scripts():
    """Scripts queued before a callback raised are not sent with the next response."""
    session = Session()

    def broken():
        session.run_function("half();")
        raise RuntimeError("boom")

    session.run_function("earlier();")
    bad = session.export(broken)
    good = session.export(lambda: session.run_function("ok();"))

    with pytest.raises(RuntimeError):
        session.invoke(bad)
    session.invoke(good)
    assert session.flush_scripts() == ["earlier();", "ok();"]


def test_attach_page_runs_actions_once():
    """Concurrent attaches wire up the page only once."""
    session = Session("s1")
    session.html = '<div id="light-1-switch"></div>'
    page = Page()
    runs = []
    page.add_ui_action(lambda s: runs.append(s.get_element_by_id("light-1-switch")))
    session.page = page

    barrier = threading.Barrier(8)
    counts = []

    def attach():
        barrier.wait()
        counts.append(session.attach_page())

    threads = [threading.Thread(target=attach) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(counts) == [0] * 7 + [1]
    assert runs == [Element("s1", "light-1-switch")]
    assert session.attached
    assert session.page is None


def test_registry_caps_session_count():
    """Creating sessions past the limit drops the least recently used."""
    registry = SessionRegistry(max_sessions=3)
    s1 = registry.create()
    s2 = registry.create()
    s3 = registry.create()
    registry.get(s1.session_id)

    s4 = registry.create()
    assert len(registry) == 3
    with pytest.raises(UnknownSessionError):
        registry.get(s2.session_id)
    for session in (s1, s3, s4):
        assert registry.get(session.session_id) is session


def test_registry_drops_idle_sessions():
    """Sessions not seen within the idle timeout are dropped on the next create."""
    now = [0.0]
    registry = SessionRegistry(idle_timeout=60.0, clock=lambda: now[0])
    old = registry.create()
    now[0] = 50.0
    recent = registry.create()

    now[0] = 100.0
    registry.create()
    assert len(registry) == 2
    with pytest.raises(UnknownSessionError):
        registry.get(old.session_id)
    assert registry.get(recent.session_id) is recent
