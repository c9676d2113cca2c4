"""Tests for the Server state handling in hue_dashboard.main."""

from unittest.mock import patch

import pytest

from hue_dashboard.config import Config
from hue_dashboard.hue_json import BridgeConfig, Light, LightState
from hue_dashboard.main import Server
from hue_dashboard.state import UserData


def _bridge_config(name="Philips hue"):
    return BridgeConfig(
        name=name, zigbee_channel=15, bridge_id="001788FFFE23BFC2", mac="00:17:88:23:bf:c2",
        ip_address="192.168.1.2", netmask="255.255.255.0", gateway="192.168.1.1",
        model_id="BSB002", sw_version="01036659", api_version="1.16.0", sw_update=None,
        link_button=False, portal_services=True, portal_connection="connected",
        portal_state=None, factory_new=False,
    )


def _light(on=False, bri=100):
    return Light(
        state=LightState(on=on, reachable=True, brightness=bri),
        type="Dimmable light", name="Lamp", model_id="LWB010", sw_version="1.0",
    )


def _make_server():
    config = Config(bridge_host="192.168.1.2", bridge_user_id="abc")
    return Server(config, _bridge_config(), {"1": _light(), "2": _light(on=True)}, {"Hall": {"1", "2"}})


def test_server_initial_state():
    """The persisted config is seeded from the INI config."""
    server = _make_server()
    assert server.app_state is not None
    assert server.app_state.bc.name == "Philips hue"
    assert server.persist.read().bridge_ip == "192.168.1.2"
    assert server.persist.read().bridge_user_id == "abc"
    lights, groups = server.snapshot()
    assert set(lights) == {"1", "2"}
    assert groups == {"Hall": frozenset({"1", "2"})}


def test_server_without_bridge_config():
    """Without a bridge config there is no app state until one is set."""
    server = Server(Config())
    assert server.app_state is None
    server.set_bridge_state(_bridge_config("New"), {"3": _light()}, {})
    assert server.app_state.bc.name == "New"
    assert server.get_light("3") is not None


def test_set_light_state_queues_command():
    """Light changes are applied locally and queued for the bridge."""
    server = _make_server()
    light = server.set_light_state("1", on=True, brightness=200)
    assert light.state.on is True
    assert light.state.brightness == 200
    assert server.get_light("1") == light
    assert server.outbox.get_nowait() == ("lights/1/state", {"on": True, "bri": 200})


def test_set_light_state_unknown():
    """Unknown lights raise KeyError and queue nothing."""
    server = _make_server()
    with pytest.raises(KeyError):
        server.set_light_state("99", on=True)
    assert server.outbox.empty()


def test_delete_group():
    """Deleting a group removes it and queues a command; unknown groups are ignored."""
    server = _make_server()
    server.delete_group("Hall")
    assert server.snapshot()[1] == {}
    assert server.outbox.get_nowait() == ("groups/Hall", {"delete": True})

    server.delete_group("Hall")
    assert server.outbox.empty()


def test_update_user_data():
    """User data updates go through the cell and into the app state."""
    server = _make_server()
    ud = server.update_user_data("default", lambda u: UserData(hidden_groups=u.hidden_groups | {"Hall"}))
    assert ud.hidden_groups == frozenset({"Hall"})
    assert server.persist.read().get_user_data("default") == ud
    assert server.app_state.pc.get_user_data("default") == ud


@patch("hue_dashboard.main.start_web_server")
def test_start_and_stop(mock_start):
    """start should launch the web server and return once stopped."""
    server = _make_server()
    server.stop()
    server.start()
    mock_start.assert_called_once_with(server, 8001)
