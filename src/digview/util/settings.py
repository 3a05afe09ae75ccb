"""Client settings stored in an INI file.

The settings live in ``~/.digview/client.ini`` under a single ``[client]``
section. The file is created from the defaults on first use, after which it
can be edited by hand; command-line options override whatever it holds.

Example file:

    [client]
    root_url = http://192.168.1.100
    app_id = digdar
    timeout = 3
    long_timeout = 20
    update_interval = 0.05
    points_per_px = 5
    touch = false
"""

import configparser
from pathlib import Path
from typing import Optional

from loguru import logger

from .defaults import (
    DEFAULT_APP_ID,
    DEFAULT_ROOT_URL,
    DEFAULT_TIMEOUT,
    LONG_TIMEOUT,
    POINTS_PER_PX,
    UPDATE_INTERVAL,
    UPDATE_INTERVAL_MOBILE,
)

SECTION = "client"

DEFAULTS = {
    "root_url": DEFAULT_ROOT_URL,
    "app_id": DEFAULT_APP_ID,
    "timeout": str(DEFAULT_TIMEOUT),
    "long_timeout": str(LONG_TIMEOUT),
    "update_interval": str(UPDATE_INTERVAL),
    "points_per_px": str(POINTS_PER_PX),
    "touch": "false",
}


class ClientSettings:
    """Handles loading/saving of client settings using an INI file"""

    config_dir: Path = Path.home() / ".digview"

    def __init__(self, filename: str = "client.ini") -> None:
        self.ini_path = self.config_dir / filename
        self.config = configparser.ConfigParser()
        self.config[SECTION] = dict(DEFAULTS)

        self.config_dir.mkdir(parents=True, exist_ok=True)
        if self.ini_path.exists():
            self.config.read(self.ini_path)
            if not self.config.has_section(SECTION):
                logger.warning(
                    "No [{}] section in {}, using defaults", SECTION, self.ini_path
                )
                self.config[SECTION] = dict(DEFAULTS)
        else:
            logger.info("Creating default settings file {}", self.ini_path)
            self.save()

    def save(self) -> None:
        with open(self.ini_path, "w") as f:
            self.config.write(f)

    def set(self, key: str, value) -> None:
        self.config[SECTION][key] = "none" if value is None else str(value)

    @property
    def root_url(self) -> str:
        return self.config[SECTION].get("root_url", DEFAULT_ROOT_URL)

    @property
    def app_id(self) -> str:
        return self.config[SECTION].get("app_id", DEFAULT_APP_ID)

    @property
    def timeout(self) -> float:
        return self.config[SECTION].getfloat("timeout", DEFAULT_TIMEOUT)

    @property
    def long_timeout(self) -> float:
        return self.config[SECTION].getfloat("long_timeout", LONG_TIMEOUT)

    @property
    def touch(self) -> bool:
        return self.config[SECTION].getboolean("touch", False)

    @property
    def update_interval(self) -> float:
        # touch devices redraw slowly, so poll them less often
        if self.touch:
            return UPDATE_INTERVAL_MOBILE
        return self.config[SECTION].getfloat("update_interval", UPDATE_INTERVAL)

    @property
    def points_per_px(self) -> Optional[float]:
        raw = self.config[SECTION].get("points_per_px", str(POINTS_PER_PX))
        if raw.strip().lower() in ("none", "null", ""):
            return None
        try:
            return float(raw)
        except ValueError:
            logger.error("Invalid points_per_px '{}', using {}", raw, POINTS_PER_PX)
            return POINTS_PER_PX
