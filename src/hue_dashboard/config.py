"""Configuration loading for the Hue dashboard."""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/hue_dashboard/config.ini"


@dataclass
class Config:
    """Server configuration loaded from INI file."""

    bridge_host: str = ""
    bridge_user_id: str = ""
    web_port: int = 8001
    page_title: str = "Hue Dashboard"

    def __post_init__(self) -> None:
        """Validate and normalise field values."""
        self.web_port = max(1, min(65535, self.web_port))
        self.bridge_host = self.bridge_host.strip().rstrip("/")
        self.bridge_user_id = self.bridge_user_id.strip()
        if not self.page_title.strip():
            self.page_title = "Hue Dashboard"

    @property
    def bridge_url(self) -> str:
        """Return the bridge API base URL, e.g. 'http://192.168.1.2/api'."""
        if not self.bridge_host:
            return ""
        return f"http://{self.bridge_host}/api"


def load_config(configpath: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from an INI file.

    Falls back to defaults if the file is missing or cannot be parsed.

    Config file format::

        [Bridge]
        Host = 192.168.1.2
        UserID = 1234abcd

        [Web]
        Port = 8001
        Title = Hue Dashboard
    """
    defaults = Config()
    path = Path(configpath).expanduser()

    if not path.is_file():
        log.info("Config file '%s' not found, using defaults (port %d)", configpath, defaults.web_port)
        return defaults

    parser = configparser.ConfigParser()
    try:
        parser.read(path, encoding="utf-8")

        bridge_host = defaults.bridge_host
        bridge_user_id = defaults.bridge_user_id
        web_port = defaults.web_port
        page_title = defaults.page_title

        if parser.has_section("Bridge"):
            bridge_host = parser.get("Bridge", "Host", fallback=bridge_host)
            bridge_user_id = parser.get("Bridge", "UserID", fallback=bridge_user_id)

        if parser.has_section("Web"):
            web_port = parser.getint("Web", "Port", fallback=web_port)
            page_title = parser.get("Web", "Title", fallback=page_title)

        config = Config(
            bridge_host=bridge_host,
            bridge_user_id=bridge_user_id,
            web_port=web_port,
            page_title=page_title,
        )
        log.info("Loaded config from '%s': bridge '%s'", configpath, config.bridge_host or "<none>")
        return config
    except (configparser.Error, ValueError) as e:
        log.error("Error reading config: %s", e)
        log.info("Using defaults (port %d)", defaults.web_port)
        return defaults
