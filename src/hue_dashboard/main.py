"""Hue dashboard: web UI for a Philips Hue lighting bridge.

Entry point and server orchestration. Holds the application state (persisted
user configuration plus the last fetched bridge configuration), the current
light and group mappings, and the web interface sessions.

Fetching bridge state and sending light commands to the bridge is done by an
external bridge client: it feeds ``Server.set_bridge_state()`` and consumes
``Server.outbox``.
"""

import queue
import signal
import sys
import threading
from collections.abc import Callable, Mapping, Set
from dataclasses import replace

from hue_dashboard.config import DEFAULT_CONFIG_PATH, Config, load_config
from hue_dashboard.hue_json import BridgeConfig, Light
from hue_dashboard.logging_config import get_logger, setup_logging
from hue_dashboard.session import SessionRegistry
from hue_dashboard.state import AppState, ConfigCell, PersistConfig, UserData
from hue_dashboard.web import start_web_server

log = get_logger(__name__)


class Server:
    """Dashboard server: application state plus the web interface."""

    def __init__(
        self,
        config: Config,
        bridge_config: BridgeConfig | None = None,
        lights: Mapping[str, Light] | None = None,
        groups: Mapping[str, Set[str]] | None = None,
    ) -> None:
        self.config = config
        self.persist: ConfigCell[PersistConfig] = ConfigCell(
            PersistConfig(bridge_ip=config.bridge_host, bridge_user_id=config.bridge_user_id)
        )
        self.app_state: AppState | None = None
        if bridge_config is not None:
            self.app_state = AppState(pc=self.persist.read(), bc=bridge_config)
        self.sessions = SessionRegistry()
        # Commands for the bridge client: (resource path, body) tuples
        self.outbox: queue.Queue[tuple[str, dict]] = queue.Queue()
        self._lights: dict[str, Light] = dict(lights or {})
        self._groups: dict[str, frozenset[str]] = {k: frozenset(v) for k, v in (groups or {}).items()}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def start(self) -> None:
        """Start the web interface and block until stopped."""
        log.info("Hue dashboard, bridge: %s", self.config.bridge_url or "<not configured>")
        start_web_server(self, self.config.web_port)
        self._stop_event.wait()

    def stop(self) -> None:
        """Gracefully shut down the server."""
        log.info("Shutting down...")
        self._stop_event.set()

    # ----- Bridge state -----

    def set_bridge_state(
        self,
        bridge_config: BridgeConfig,
        lights: Mapping[str, Light],
        groups: Mapping[str, Set[str]],
    ) -> None:
        """Replace the bridge state with a freshly fetched one."""
        with self._lock:
            if self.app_state is None:
                self.app_state = AppState(pc=self.persist.read(), bc=bridge_config)
            else:
                self.app_state = self.app_state.with_bridge_config(bridge_config)
            self._lights = dict(lights)
            self._groups = {k: frozenset(v) for k, v in groups.items()}
        log.debug("Bridge state updated: %d lights, %d groups", len(lights), len(groups))

    def snapshot(self) -> tuple[dict[str, Light], dict[str, frozenset[str]]]:
        """Return copies of the current light and group mappings."""
        with self._lock:
            return dict(self._lights), dict(self._groups)

    def get_light(self, light_id: str) -> Light | None:
        with self._lock:
            return self._lights.get(light_id)

    def set_light_state(self, light_id: str, **changes) -> Light:
        """Apply a state change locally and queue it for the bridge.

        Args:
            light_id: Bridge light ID.
            **changes: ``on`` and / or ``brightness``.

        Raises:
            KeyError: if the light is unknown.
        """
        with self._lock:
            light = self._lights[light_id]
            light = replace(light, state=replace(light.state, **changes))
            self._lights[light_id] = light
        body = {}
        if "on" in changes:
            body["on"] = changes["on"]
        if "brightness" in changes:
            body["bri"] = changes["brightness"]
        self.outbox.put((f"lights/{light_id}/state", body))
        log.info("Light %s: %s", light_id, body)
        return light

    def delete_group(self, group_name: str) -> None:
        with self._lock:
            removed = self._groups.pop(group_name, None)
        if removed is None:
            log.warning("Delete for unknown group '%s'", group_name)
            return
        self.outbox.put((f"groups/{group_name}", {"delete": True}))
        log.info("Group '%s' deleted", group_name)

    # ----- Persisted configuration -----

    def update_user_data(self, user_id: str, fn: Callable[[UserData], UserData]) -> UserData:
        """Atomically update one user's preferences and return the new value."""
        with self.persist.transaction() as cell:
            pc = cell.modify(lambda pc: pc.with_user_data(user_id, fn(pc.get_user_data(user_id))))
        with self._lock:
            if self.app_state is not None:
                self.app_state = self.app_state.with_persist_config(pc)
        return pc.get_user_data(user_id)


def main() -> None:
    """Entry point for the dashboard server."""
    setup_logging()
    config = load_config(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH)
    server = Server(config)

    # Handle SIGINT (Ctrl+C) and SIGTERM for graceful shutdown
    def _signal_handler(sig: int, frame: object) -> None:
        server.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
    except Exception as exc:
        log.critical("Fatal error: %s", exc)
        server.stop()
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
