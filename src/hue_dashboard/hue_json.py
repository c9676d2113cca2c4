"""Records and JSON decoding for communication with a Hue bridge.

Covers the configuration endpoint (``api/config``) with and without a
whitelisted user, plus the light records used by the dashboard helpers.
Only a selection of potentially interesting fields is parsed, see
http://www.developers.meethue.com/documentation/configuration-api#72_get_configuration

Decoding is strict: a missing required key or a value of the wrong type
raises :class:`DecodeError` naming the key. No ranges or formats are checked.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


class HueJSONError(Exception):
    """Base class for Hue JSON errors."""


class DecodeError(HueJSONError, ValueError):
    """A JSON value did not have the expected shape."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

_TYPE_NAMES = {str: "string", int: "integer", bool: "boolean"}


def _expect_object(obj: Any, what: str) -> dict:
    if not isinstance(obj, dict):
        raise DecodeError(f"Expected object for {what}, got {type(obj).__name__}")
    return obj


def _matches(value: Any, expected: type) -> bool:
    # bool is a subclass of int, never accept it where a number is expected
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


def _required(obj: dict, key: str, expected: type) -> Any:
    if key not in obj:
        raise DecodeError(f"Missing required key '{key}'", key=key)
    value = obj[key]
    if not _matches(value, expected):
        raise DecodeError(
            f"Key '{key}': expected {_TYPE_NAMES[expected]}, got {type(value).__name__}",
            key=key,
        )
    return value


def _optional(obj: dict, key: str, decoder):
    value = obj.get(key)
    if value is None:
        return None
    try:
        return decoder(value)
    except DecodeError as e:
        inner = f"{key}.{e.key}" if e.key else key
        raise DecodeError(f"In '{key}': {e}", key=inner) from e


# ---------------------------------------------------------------------------
# Bridge configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BridgeConfigNoWhitelist:
    """Bridge configuration from ``api/config`` without a whitelisted user."""

    sw_version: str
    api_version: str
    name: str
    mac: str

    @classmethod
    def from_json(cls, obj: Any) -> BridgeConfigNoWhitelist:
        o = _expect_object(obj, "BridgeConfigNoWhitelist")
        return cls(
            sw_version=_required(o, "swversion", str),
            api_version=_required(o, "apiversion", str),
            name=_required(o, "name", str),
            mac=_required(o, "mac", str),
        )

    def to_json(self) -> dict:
        return {
            "swversion": self.sw_version,
            "apiversion": self.api_version,
            "name": self.name,
            "mac": self.mac,
        }


@dataclass(frozen=True)
class SWUpdate:
    update_state: int
    check_for_update: bool
    url: str
    text: str
    notify: bool

    @classmethod
    def from_json(cls, obj: Any) -> SWUpdate:
        o = _expect_object(obj, "SWUpdate")
        return cls(
            update_state=_required(o, "updatestate", int),
            check_for_update=_required(o, "checkforupdate", bool),
            url=_required(o, "url", str),
            text=_required(o, "text", str),
            notify=_required(o, "notify", bool),
        )

    def to_json(self) -> dict:
        return {
            "updatestate": self.update_state,
            "checkforupdate": self.check_for_update,
            "url": self.url,
            "text": self.text,
            "notify": self.notify,
        }


@dataclass(frozen=True)
class PortalState:
    signed_on: bool
    incoming: bool
    outgoing: bool
    communication: str

    @classmethod
    def from_json(cls, obj: Any) -> PortalState:
        o = _expect_object(obj, "PortalState")
        return cls(
            signed_on=_required(o, "signedon", bool),
            incoming=_required(o, "incoming", bool),
            outgoing=_required(o, "outgoing", bool),
            communication=_required(o, "communication", str),
        )

    def to_json(self) -> dict:
        return {
            "signedon": self.signed_on,
            "incoming": self.incoming,
            "outgoing": self.outgoing,
            "communication": self.communication,
        }


@dataclass(frozen=True)
class BridgeConfig:
    """Bridge configuration obtainable by a whitelisted user."""

    name: str
    zigbee_channel: int
    bridge_id: str
    mac: str
    ip_address: str
    netmask: str
    gateway: str
    model_id: str
    sw_version: str
    api_version: str
    sw_update: SWUpdate | None
    link_button: bool
    portal_services: bool
    portal_connection: str
    portal_state: PortalState | None
    factory_new: bool

    @classmethod
    def from_json(cls, obj: Any) -> BridgeConfig:
        o = _expect_object(obj, "BridgeConfig")
        return cls(
            name=_required(o, "name", str),
            zigbee_channel=_required(o, "zigbeechannel", int),
            bridge_id=_required(o, "bridgeid", str),
            mac=_required(o, "mac", str),
            ip_address=_required(o, "ipaddress", str),
            netmask=_required(o, "netmask", str),
            gateway=_required(o, "gateway", str),
            model_id=_required(o, "modelid", str),
            sw_version=_required(o, "swversion", str),
            api_version=_required(o, "apiversion", str),
            sw_update=_optional(o, "swupdate", SWUpdate.from_json),
            link_button=_required(o, "linkbutton", bool),
            portal_services=_required(o, "portalservices", bool),
            portal_connection=_required(o, "portalconnection", str),
            portal_state=_optional(o, "portalstate", PortalState.from_json),
            factory_new=_required(o, "factorynew", bool),
        )

    def to_json(self) -> dict:
        """Encode back to the bridge wire format. Absent optionals are omitted."""
        data: dict[str, Any] = {
            "name": self.name,
            "zigbeechannel": self.zigbee_channel,
            "bridgeid": self.bridge_id,
            "mac": self.mac,
            "ipaddress": self.ip_address,
            "netmask": self.netmask,
            "gateway": self.gateway,
            "modelid": self.model_id,
            "swversion": self.sw_version,
            "apiversion": self.api_version,
            "linkbutton": self.link_button,
            "portalservices": self.portal_services,
            "portalconnection": self.portal_connection,
            "factorynew": self.factory_new,
        }
        if self.sw_update is not None:
            data["swupdate"] = self.sw_update.to_json()
        if self.portal_state is not None:
            data["portalstate"] = self.portal_state.to_json()
        return data


# ---------------------------------------------------------------------------
# Lights
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LightState:
    on: bool
    reachable: bool
    brightness: int | None = None
    color_mode: str | None = None

    @classmethod
    def from_json(cls, obj: Any) -> LightState:
        o = _expect_object(obj, "LightState")
        bri = None
        if o.get("bri") is not None:
            bri = _required(o, "bri", int)
        color_mode = None
        if o.get("colormode") is not None:
            color_mode = _required(o, "colormode", str)
        return cls(
            on=_required(o, "on", bool),
            reachable=_required(o, "reachable", bool),
            brightness=bri,
            color_mode=color_mode,
        )


@dataclass(frozen=True)
class Light:
    state: LightState
    type: str
    name: str
    model_id: str
    sw_version: str

    @classmethod
    def from_json(cls, obj: Any) -> Light:
        o = _expect_object(obj, "Light")
        if "state" not in o:
            raise DecodeError("Missing required key 'state'", key="state")
        try:
            state = LightState.from_json(o["state"])
        except DecodeError as e:
            raise DecodeError(f"In 'state': {e}", key=f"state.{e.key}" if e.key else "state") from e
        return cls(
            state=state,
            type=_required(o, "type", str),
            name=_required(o, "name", str),
            model_id=_required(o, "modelid", str),
            sw_version=_required(o, "swversion", str),
        )


def decode_lights(obj: Any) -> dict[str, Light]:
    """Decode the ``api/<user>/lights`` response into a light ID -> Light mapping."""
    o = _expect_object(obj, "lights")
    lights: dict[str, Light] = {}
    for light_id, value in o.items():
        try:
            lights[light_id] = Light.from_json(value)
        except DecodeError as e:
            raise DecodeError(f"Light '{light_id}': {e}", key=light_id) from e
    return lights


def decode_json(cls, text: str | bytes):
    """Parse a JSON document and decode it with ``cls.from_json``.

    Raises:
        DecodeError: if the text is not valid JSON or has the wrong shape.
    """
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    return cls.from_json(obj)
