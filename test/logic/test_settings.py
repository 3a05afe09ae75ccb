import configparser

import pytest

from digview.util import ClientSettings, DEFAULT_ROOT_URL
from digview.util.defaults import POINTS_PER_PX, UPDATE_INTERVAL, UPDATE_INTERVAL_MOBILE


@pytest.fixture
def settings(temp_config_dir):
    """ClientSettings backed by a temporary config directory"""
    return ClientSettings()


def test_default_file_created(settings, temp_config_dir):
    """First use writes the defaults to disk"""
    ini = temp_config_dir / "client.ini"
    assert ini.exists()

    config = configparser.ConfigParser()
    config.read(ini)
    assert config["client"]["root_url"] == DEFAULT_ROOT_URL
    assert config["client"]["app_id"] == "digdar"


def test_defaults(settings):
    assert settings.root_url == DEFAULT_ROOT_URL
    assert settings.timeout == 3
    assert settings.long_timeout == 20
    assert settings.update_interval == UPDATE_INTERVAL
    assert settings.points_per_px == POINTS_PER_PX
    assert not settings.touch


def test_save_and_reload(settings):
    settings.set("root_url", "http://10.0.0.5")
    settings.set("timeout", 1.5)
    settings.save()

    reloaded = ClientSettings()
    assert reloaded.root_url == "http://10.0.0.5"
    assert reloaded.timeout == 1.5


def test_touch_devices_poll_slower(settings):
    settings.set("touch", True)
    assert settings.update_interval == UPDATE_INTERVAL_MOBILE


def test_points_per_px_none_disables_decimation(settings):
    settings.set("points_per_px", None)
    assert settings.points_per_px is None


def test_invalid_points_per_px_falls_back(settings):
    settings.set("points_per_px", "lots")
    assert settings.points_per_px == POINTS_PER_PX


def test_missing_section_uses_defaults(temp_config_dir):
    temp_config_dir.mkdir(parents=True)
    (temp_config_dir / "client.ini").write_text("[other]\nkey = value\n")
    settings = ClientSettings()
    assert settings.root_url == DEFAULT_ROOT_URL
