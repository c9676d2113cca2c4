"""Remote DOM session: callback table and buffered client script calls.

The page is rendered server side and shipped in one response. Once the
browser has loaded it, the bootstrap script attaches the session and
evaluates the scripts produced by the page's UI actions. Each bound event
listener posts its callback token (plus event arguments) back to the server,
which invokes the matching callback and answers with any scripts that
callback queued.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hue_dashboard.page import Page

log = logging.getLogger(__name__)

# Sessions are dropped once idle this long, or oldest first when the registry is full
MAX_SESSIONS = 100
SESSION_IDLE_TIMEOUT = 30 * 60.0


class UnknownSessionError(KeyError):
    """No session with the given ID."""


class UnknownCallbackError(KeyError):
    """No callback exported under the given token."""


@dataclass(frozen=True)
class Element:
    """Handle of an element rendered in the client DOM."""

    session_id: str
    element_id: str


class _IDCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self.ids: set[str] = set()

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        for name, value in attrs:
            if name == "id" and value:
                self.ids.add(value)


def collect_element_ids(html: str) -> set[str]:
    """Return the set of ``id`` attribute values in an HTML document."""
    parser = _IDCollector()
    parser.feed(html)
    parser.close()
    return parser.ids


class Session:
    """One live browser page."""

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or secrets.token_urlsafe(16)
        self._callbacks: dict[str, Callable[..., Any]] = {}
        self._scripts: list[str] = []
        self._element_ids: set[str] = set()
        self._attached = False
        self._lock = threading.RLock()
        # Page waiting to be wired up once the client attaches
        self.page: Page | None = None
        self.html = ""

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self, html: str) -> None:
        """Mark the session live with the markup the client received."""
        with self._lock:
            self._element_ids = collect_element_ids(html)
            self._attached = True
        log.debug("Session %s attached (%d elements)", self.session_id, len(self._element_ids))

    def attach_page(self) -> int:
        """Attach with the pending page and run its UI actions.

        Only the first call wires anything up. Returns the number of UI
        actions run.
        """
        with self._lock:
            if self._attached:
                return 0
            self.attach(self.html)
            if self.page is None:
                return 0
            count = self.page.register_ui_actions(self)
            self.page = None
        return count

    def get_element_by_id(self, element_id: str) -> Element | None:
        with self._lock:
            if element_id in self._element_ids:
                return Element(self.session_id, element_id)
        return None

    def export(self, callback: Callable[..., Any]) -> str:
        """Register a server-side callback, return the token the client sends back."""
        token = secrets.token_urlsafe(12)
        with self._lock:
            self._callbacks[token] = callback
        return token

    def run_function(self, script: str) -> None:
        """Queue a script for evaluation on the client."""
        with self._lock:
            self._scripts.append(script)

    def flush_scripts(self) -> list[str]:
        with self._lock:
            scripts, self._scripts = self._scripts, []
        return scripts

    def invoke(self, token: str, args: list | tuple = ()) -> None:
        """Run the callback exported under ``token``. One at a time per session.

        Scripts queued by a callback that raises are discarded.
        """
        with self._lock:
            try:
                callback = self._callbacks[token]
            except KeyError:
                raise UnknownCallbackError(token) from None
            mark = len(self._scripts)
            try:
                callback(*args)
            except Exception:
                del self._scripts[mark:]
                raise

    @property
    def callback_count(self) -> int:
        return len(self._callbacks)


class SessionRegistry:
    """Sessions by ID for the running web server.

    Every page load creates a session, so the registry is bounded: sessions
    idle for longer than ``idle_timeout`` seconds are dropped when a new one
    is created, then the least recently used go until at most
    ``max_sessions`` remain.
    """

    def __init__(
        self,
        max_sessions: int = MAX_SESSIONS,
        idle_timeout: float = SESSION_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_sessions = max(1, max_sessions)
        self.idle_timeout = idle_timeout
        self._clock = clock
        # Least recently used first, values are (session, last seen)
        self._sessions: OrderedDict[str, tuple[Session, float]] = OrderedDict()
        self._lock = threading.Lock()

    def create(self) -> Session:
        session = Session()
        with self._lock:
            now = self._clock()
            self._evict(now)
            self._sessions[session.session_id] = (session, now)
        return session

    def get(self, session_id: str) -> Session:
        with self._lock:
            try:
                session, _ = self._sessions[session_id]
            except KeyError:
                raise UnknownSessionError(session_id) from None
            self._sessions[session_id] = (session, self._clock())
            self._sessions.move_to_end(session_id)
            return session

    def remove(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def _evict(self, now: float) -> None:
        """Drop idle sessions, then the oldest until one more fits. Lock held."""
        while self._sessions:
            session_id, (_, last_seen) = next(iter(self._sessions.items()))
            if now - last_seen <= self.idle_timeout and len(self._sessions) < self.max_sessions:
                break
            del self._sessions[session_id]
            log.debug("Session %s dropped", session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
