"""Page builder: HTML tiles plus the UI actions that wire them up.

A page is built in two phases. Builder functions add tiles (HTML fragments)
and UI actions (usually event handler registration). The tiles are rendered
into one document and sent to the client in a single response. Once the
client session is live, every UI action runs against it.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from hue_dashboard.session import Session

UIAction = Callable[["Session"], None]


class Page:
    """Accumulates tiles and UI actions for one page build.

    Both sequences are prepended to, so they hold the newest item first.
    Use ``tiles_in_order()`` / ``ui_actions_in_order()`` for build order.
    """

    def __init__(self) -> None:
        self.tiles: deque[str] = deque()
        self.ui_actions: deque[UIAction] = deque()

    def add_tile(self, tile: str) -> None:
        self.tiles.appendleft(tile)

    def add_ui_action(self, action: UIAction) -> None:
        self.ui_actions.appendleft(action)

    def tiles_in_order(self) -> list[str]:
        return list(reversed(self.tiles))

    def ui_actions_in_order(self) -> list[UIAction]:
        return list(reversed(self.ui_actions))

    def render(self, template: str = "{tiles}", **kwargs: str) -> str:
        """Join all tiles in build order and substitute them into ``template``."""
        return template.format(tiles="\n".join(self.tiles_in_order()), **kwargs)

    def register_ui_actions(self, session: Session) -> int:
        """Run every UI action against the live session. Returns the count."""
        actions = self.ui_actions_in_order()
        for action in actions:
            action(session)
        self.ui_actions.clear()
        return len(actions)


def add_page_tile(page: Page, tile: str) -> None:
    page.add_tile(tile)


def add_page_ui_action(page: Page, action: UIAction) -> None:
    page.add_ui_action(action)
