"""Utility functions shared by the web UI and tile building code."""

from __future__ import annotations

import json
import logging
import zlib
from collections.abc import Callable, Mapping, Set
from html import escape
from typing import TYPE_CHECKING, Any, TypeVar

from hue_dashboard.hue_json import Light
from hue_dashboard.state import ConfigCell, PersistConfig, UserData

if TYPE_CHECKING:
    from hue_dashboard.session import Element, Session

log = logging.getLogger(__name__)

T = TypeVar("T")

Lights = Mapping[str, Light]
LightGroups = Mapping[str, Set[str]]

# Opacities used for enabled and disabled elements
ENABLED_OPACITY = 1.0
DISABLED_OPACITY = 0.3

# Amount of brightness changed when any brightness widget is used (relative to 255)
BRIGHTNESS_CHANGE = 25

# Captions for the show / hide group button
GRP_SHOWN_CAPTION = "Hide ◄"
GRP_HIDDEN_CAPTION = "Show ►"

# Client side function defined by the page bootstrap script
CALLBACK_FN = "hueCallback"


class InvalidElementIDError(RuntimeError):
    """An element ID was referenced that was never rendered."""


# ---------------------------------------------------------------------------
# Element IDs
# ---------------------------------------------------------------------------


def group_name_hash(group_name: str) -> int:
    """Stable hash of a group name, identical across processes."""
    return zlib.crc32(group_name.encode("utf-8"))


def build_light_id(light_id: str, elem_name: str) -> str:
    """ID for a light specific DOM element, so we can locate it for updates."""
    return f"light-{light_id}-{elem_name}"


def build_group_id(group_name: str, elem_name: str) -> str:
    # Group names are user text and may contain characters not valid in IDs
    return f"light-{group_name_hash(group_name)}-{elem_name}"


def get_element_by_id_safe(session: Session, element_id: str) -> Element:
    """Look up a rendered element, raising if it does not exist.

    A missing element means code referenced an ID that was never rendered,
    so this is treated as a programming error.
    """
    element = session.get_element_by_id(element_id)
    if element is None:
        msg = f"get_element_by_id_safe: Invalid element ID: {element_id}"
        log.error(msg, stack_info=True)
        raise InvalidElementIDError(msg)
    return element


# ---------------------------------------------------------------------------
# Event handlers bound directly on element ID strings
# ---------------------------------------------------------------------------
#
# Resolving an ID to an element handle first would cost a client round trip
# per handler. Instead the handler is exported under a token and a single
# script binds a native listener on '#<id>' that posts the token back.


def _selector(element_id: str) -> str:
    return json.dumps("#" + element_id)


def on_element_id_click(session: Session, element_id: str, handler: Callable[[], Any]) -> str:
    """Run ``handler()`` whenever the element is clicked. Returns the token."""
    token = session.export(lambda: handler())
    session.run_function(
        f"document.querySelector({_selector(element_id)}).addEventListener('click', "
        f"function(e) {{ {CALLBACK_FN}({json.dumps(token)}, []); }});"
    )
    return token


def on_element_id_mouse_down(
    session: Session, element_id: str, handler: Callable[[int, int], Any]
) -> str:
    """Run ``handler(x, y)`` on mousedown, with the cursor relative to the element."""
    token = session.export(lambda mx, my: handler(int(mx), int(my)))
    session.run_function(
        f"document.querySelector({_selector(element_id)}).addEventListener('mousedown', "
        "function(e) { var r = this.getBoundingClientRect();"
        " var offs = { left: r.left + window.pageXOffset, top: r.top + window.pageYOffset };"
        f" {CALLBACK_FN}({json.dumps(token)},"
        " [Math.round(e.pageX - offs.left), Math.round(e.pageY - offs.top)]); });"
    )
    return token


def reload_page(session: Session) -> None:
    session.run_function("window.location.reload(false);")


# ---------------------------------------------------------------------------
# Light predicates
# ---------------------------------------------------------------------------


def any_lights_on(lights: Lights) -> bool:
    return any(light.state.on for light in lights.values())


def any_lights_in_group(
    group_name: str,
    groups: LightGroups,
    lights: Lights,
    condition: Callable[[Light], bool],
) -> bool:
    """True if ``condition`` holds for a light of the group.

    Unknown groups give False. Group members missing from ``lights`` are skipped.
    """
    group_lights = groups.get(group_name)
    if group_lights is None:
        return False
    return any(condition(lights[lid]) for lid in group_lights if lid in lights)


# ---------------------------------------------------------------------------
# User data
# ---------------------------------------------------------------------------


def get_user_data(cell: ConfigCell[PersistConfig], user_id: str) -> UserData:
    return cell.read().get_user_data(user_id)


def query_user_data(
    cell: ConfigCell[PersistConfig], user_id: str, getter: Callable[[UserData], T]
) -> T:
    """Apply ``getter`` to the user data of ``user_id``."""
    return getter(get_user_data(cell, user_id))


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------


def truncate_ellipsis(max_length: int, text: str) -> str:
    if len(text) > max_length:
        return text[:max_length] + "…"
    return text


def _show_hide_js(hide: str, show_id: str) -> str:
    return f"{hide}.style.display = 'none'; document.getElementById('{show_id}').style.display = 'block';"


def add_edit_and_delete_button(
    edit_delete_div_id: str,
    edit_btn_on_click: str,
    delete_confirm_div_id: str,
    delete_confirm_btn_id: str,
) -> str:
    """Edit / delete button group with a hidden delete confirmation.

    The confirmation container (back + Confirm) starts hidden; the Delete
    button swaps it in for the edit / delete container, and back swaps them
    again. The Confirm button has no handler, callers bind one on
    ``delete_confirm_btn_id``.
    """
    back_js = _show_hide_js("this.parentNode", edit_delete_div_id)
    delete_js = _show_hide_js("this.parentNode", delete_confirm_div_id)
    return (
        f'<div id="{escape(delete_confirm_div_id)}" class="btn-group btn-group-sm" style="display: none;">'
        f'<button type="button" class="btn btn-scene btn-sm" onclick="{escape(back_js)}">'
        '<span class="glyphicon glyphicon-chevron-left edit-back-btn"></span></button>'
        f'<button type="button" id="{escape(delete_confirm_btn_id)}" '
        'class="btn btn-danger btn-sm delete-confirm-btn">Confirm</button>'
        "</div>"
        f'<div id="{escape(edit_delete_div_id)}" class="btn-group btn-group-sm">'
        f'<button type="button" class="btn btn-scene btn-sm" onclick="{escape(edit_btn_on_click)}">'
        '<span class="glyphicon glyphicon-th-list edit-back-btn"></span></button>'
        f'<button type="button" class="btn btn-danger btn-sm delete-confirm-btn" '
        f'onclick="{escape(delete_js)}">Delete</button>'
        "</div>"
    )
