"""Tests for hue_dashboard.config."""

from hue_dashboard.config import Config, load_config


def test_config_defaults():
    """Config should have sensible defaults."""
    cfg = Config()
    assert cfg.bridge_host == ""
    assert cfg.bridge_user_id == ""
    assert cfg.web_port == 8001
    assert cfg.page_title == "Hue Dashboard"


def test_config_bridge_url():
    """bridge_url should point at the bridge API, or be empty without a host."""
    assert Config(bridge_host="192.168.1.2").bridge_url == "http://192.168.1.2/api"
    assert Config().bridge_url == ""


def test_load_config_missing_file(tmp_path):
    """Missing config file should return defaults."""
    cfg = load_config(str(tmp_path / "nonexistent.ini"))
    assert cfg.web_port == 8001
    assert cfg.bridge_host == ""


def test_load_config_valid(tmp_path):
    """Valid config file should be parsed correctly."""
    config_file = tmp_path / "config.ini"
    config_file.write_text(
        "[Bridge]\nHost = 10.0.0.5\nUserID = 1234abcd\n"
        "[Web]\nPort = 9090\nTitle = Living Room\n"
    )
    cfg = load_config(str(config_file))
    assert cfg.bridge_host == "10.0.0.5"
    assert cfg.bridge_user_id == "1234abcd"
    assert cfg.web_port == 9090
    assert cfg.page_title == "Living Room"


def test_load_config_invalid_port(tmp_path):
    """A non-numeric port should fall back to defaults."""
    config_file = tmp_path / "config.ini"
    config_file.write_text("[Bridge]\nHost = 10.0.0.5\n[Web]\nPort = eighty\n")
    cfg = load_config(str(config_file))
    assert cfg.web_port == 8001
    assert cfg.bridge_host == ""


def test_load_config_garbage(tmp_path):
    """A file that is not INI should fall back to defaults."""
    config_file = tmp_path / "config.ini"
    config_file.write_text("this is not an ini file\n")
    cfg = load_config(str(config_file))
    assert cfg == Config()


def test_config_post_init_validation():
    """__post_init__ should clamp and normalise values."""
    cfg = Config(bridge_host=" 10.0.0.5/ ", bridge_user_id=" abc ", web_port=99999, page_title="  ")
    assert cfg.bridge_host == "10.0.0.5"
    assert cfg.bridge_user_id == "abc"
    assert cfg.web_port == 65535  # clamped to max
    assert cfg.page_title == "Hue Dashboard"  # fallback
    assert Config(web_port=0).web_port == 1
