"""Dashboard tiles for groups and lights.

Each ``add_*_tile`` function adds the tile markup to the page and one UI
action that binds its event handlers once the client session is live.
"""

from __future__ import annotations

import json
import logging
from html import escape
from typing import TYPE_CHECKING

from hue_dashboard.hue_json import Light
from hue_dashboard.page import Page
from hue_dashboard.state import UserData
from hue_dashboard.web_helpers import (
    BRIGHTNESS_CHANGE,
    DISABLED_OPACITY,
    ENABLED_OPACITY,
    GRP_HIDDEN_CAPTION,
    GRP_SHOWN_CAPTION,
    add_edit_and_delete_button,
    any_lights_in_group,
    build_group_id,
    build_light_id,
    get_element_by_id_safe,
    on_element_id_click,
    on_element_id_mouse_down,
    query_user_data,
    reload_page,
    truncate_ellipsis,
)

if TYPE_CHECKING:
    from hue_dashboard.main import Server
    from hue_dashboard.session import Session

log = logging.getLogger(__name__)

# Width of the brightness bar in pixels
BRIGHTNESS_BAR_WIDTH = 200
MAX_CAPTION_LENGTH = 30


def _opacity(on: bool) -> float:
    return ENABLED_OPACITY if on else DISABLED_OPACITY


def _set_style(session: Session, element_id: str, prop: str, value: str) -> None:
    element = get_element_by_id_safe(session, element_id)
    session.run_function(
        f"document.getElementById({json.dumps(element.element_id)}).style.{prop} = {json.dumps(value)};"
    )


def _brightness_percent(brightness: int) -> int:
    return round(brightness * 100 / 255)


# ---------------------------------------------------------------------------
# Lights
# ---------------------------------------------------------------------------


def _toggle_light(server: Server, session: Session, light_id: str) -> None:
    light = server.get_light(light_id)
    if light is None:
        log.warning("Toggle for unknown light %s", light_id)
        return
    light = server.set_light_state(light_id, on=not light.state.on)
    _set_style(session, build_light_id(light_id, "tile"), "opacity", str(_opacity(light.state.on)))


def _set_brightness(server: Server, session: Session, light_id: str, brightness: int) -> None:
    brightness = max(0, min(255, brightness))
    light = server.set_light_state(light_id, brightness=brightness, on=True)
    _set_style(session, build_light_id(light_id, "brightness-fill"), "width", f"{_brightness_percent(brightness)}%")
    _set_style(session, build_light_id(light_id, "tile"), "opacity", str(_opacity(light.state.on)))


def _change_brightness(server: Server, session: Session, light_id: str, delta: int) -> None:
    light = server.get_light(light_id)
    if light is None or light.state.brightness is None:
        return
    _set_brightness(server, session, light_id, light.state.brightness + delta)


def add_light_tile(page: Page, server: Server, light_id: str, light: Light) -> None:
    tile_id = build_light_id(light_id, "tile")
    switch_id = build_light_id(light_id, "switch")
    bar_id = build_light_id(light_id, "brightness-bar")
    dimmable = light.state.brightness is not None

    parts = [
        f'<div class="tile light-tile" id="{escape(tile_id)}" style="opacity: {_opacity(light.state.on)};">',
        f'<button type="button" class="btn light-caption" id="{escape(switch_id)}" '
        f'title="{escape(light.type)}">{escape(truncate_ellipsis(MAX_CAPTION_LENGTH, light.name))}</button>',
    ]
    if not light.state.reachable:
        parts.append('<span class="badge unreachable">Unreachable</span>')
    if dimmable:
        pct = _brightness_percent(light.state.brightness)
        parts.append(
            f'<div class="brightness-bar" id="{escape(bar_id)}" style="width: {BRIGHTNESS_BAR_WIDTH}px;">'
            f'<div class="brightness-fill" id="{escape(build_light_id(light_id, "brightness-fill"))}" '
            f'style="width: {pct}%;"></div></div>'
            f'<button type="button" class="btn btn-sm" id="{escape(build_light_id(light_id, "brightness-down"))}">-</button>'
            f'<button type="button" class="btn btn-sm" id="{escape(build_light_id(light_id, "brightness-up"))}">+</button>'
        )
    parts.append("</div>")
    page.add_tile("".join(parts))

    def wire(session: Session) -> None:
        on_element_id_click(session, switch_id, lambda: _toggle_light(server, session, light_id))
        if dimmable:
            on_element_id_mouse_down(
                session,
                bar_id,
                lambda x, y: _set_brightness(server, session, light_id, x * 255 // BRIGHTNESS_BAR_WIDTH),
            )
            on_element_id_click(
                session,
                build_light_id(light_id, "brightness-up"),
                lambda: _change_brightness(server, session, light_id, BRIGHTNESS_CHANGE),
            )
            on_element_id_click(
                session,
                build_light_id(light_id, "brightness-down"),
                lambda: _change_brightness(server, session, light_id, -BRIGHTNESS_CHANGE),
            )

    page.add_ui_action(wire)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def _toggle_group_shown(server: Server, session: Session, user_id: str, group_name: str) -> None:
    def toggle(ud: UserData) -> UserData:
        return UserData(
            hidden_groups=ud.hidden_groups ^ {group_name},
            scenes=ud.scenes,
        )

    shown = group_name not in server.update_user_data(user_id, toggle).hidden_groups
    btn_id = build_group_id(group_name, "show-btn")
    get_element_by_id_safe(session, btn_id)
    session.run_function(
        f"document.getElementById({json.dumps(btn_id)}).textContent = "
        f"{json.dumps(GRP_SHOWN_CAPTION if shown else GRP_HIDDEN_CAPTION)};"
    )
    _set_style(session, build_group_id(group_name, "members"), "display", "block" if shown else "none")


def _switch_group(server: Server, session: Session, group_name: str) -> None:
    lights, groups = server.snapshot()
    any_on = any_lights_in_group(group_name, groups, lights, lambda light: light.state.on)
    for light_id in groups.get(group_name, ()):
        if light_id in lights:
            server.set_light_state(light_id, on=not any_on)
    reload_page(session)


def _delete_group(server: Server, session: Session, group_name: str) -> None:
    server.delete_group(group_name)
    reload_page(session)


def add_group_tile(page: Page, server: Server, user_id: str, group_name: str) -> None:
    lights, groups = server.snapshot()
    members = sorted(groups.get(group_name, ()))
    any_on = any_lights_in_group(group_name, groups, lights, lambda light: light.state.on)
    shown = query_user_data(server.persist, user_id, lambda ud: group_name not in ud.hidden_groups)

    switch_id = build_group_id(group_name, "switch")
    show_btn_id = build_group_id(group_name, "show-btn")
    members_id = build_group_id(group_name, "members")
    edit_delete_div_id = build_group_id(group_name, "edit-delete")
    delete_confirm_div_id = build_group_id(group_name, "delete-confirm")
    delete_confirm_btn_id = build_group_id(group_name, "delete-confirm-btn")
    edit_on_click = f"document.getElementById('{members_id}').style.display = 'block';"

    member_names = "".join(
        f"<li>{escape(truncate_ellipsis(MAX_CAPTION_LENGTH, lights[lid].name))}</li>"
        for lid in members
        if lid in lights
    )
    page.add_tile(
        f'<div class="tile group-tile" id="{escape(build_group_id(group_name, "tile"))}">'
        f'<button type="button" class="btn group-caption" id="{escape(switch_id)}" '
        f'style="opacity: {_opacity(any_on)};">{escape(truncate_ellipsis(MAX_CAPTION_LENGTH, group_name))}</button>'
        f'<button type="button" class="btn btn-sm" id="{escape(show_btn_id)}">'
        f"{GRP_SHOWN_CAPTION if shown else GRP_HIDDEN_CAPTION}</button>"
        + add_edit_and_delete_button(edit_delete_div_id, edit_on_click, delete_confirm_div_id, delete_confirm_btn_id)
        + f'<ul class="group-members" id="{escape(members_id)}" '
        f'style="display: {"block" if shown else "none"};">{member_names}</ul>'
        "</div>"
    )

    def wire(session: Session) -> None:
        on_element_id_click(session, switch_id, lambda: _switch_group(server, session, group_name))
        on_element_id_click(
            session, show_btn_id, lambda: _toggle_group_shown(server, session, user_id, group_name)
        )
        on_element_id_click(session, delete_confirm_btn_id, lambda: _delete_group(server, session, group_name))

    page.add_ui_action(wire)


def build_dashboard(server: Server, user_id: str) -> Page:
    """Build the full dashboard page: one tile per group, then one per light."""
    page = Page()
    lights, groups = server.snapshot()
    for group_name in sorted(groups):
        add_group_tile(page, server, user_id, group_name)
    for light_id in sorted(lights):
        add_light_tile(page, server, light_id, lights[light_id])
    return page
