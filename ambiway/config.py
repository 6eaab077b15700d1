# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import json
import logging
import os
from pathlib import Path
from typing import Any, ClassVar

import tomllib
import yaml

from .exceptions import ConfigurationError


DEFAULT_CONFIG: dict[str, Any] = {
    # Per-monitor LED counts, one list entry per monitor
    "led": {"left": [], "up": [], "right": [], "down": []},
    # Per-monitor corner indents in pixels (edge_corner); missing lists mean 0
    "indent": {},
    "settings": {
        "size": 20,  # sampling strip thickness in pixels
        "brightness": 1.0,
        "smooth": True,
        "cams": [0],
        "device_id": 0,  # OpenRGB controller index
        "zone_id_list": [0],
        "interval_ms": 95,
    },
    "wiring": {
        "start": "left",  # left | up | right | down
        "direction": "clockwise",  # clockwise | counterclockwise
    },
    "capture": {
        "format": "v4l2",  # demuxer used for integer device ids
        "channel_order": "bgr",
        "on_open_failure": "abort",  # abort | skip
        "retry_ms": 10,
        "options": {},  # passed to av.open (video_size, framerate, input_format, ...)
    },
    "sink": {
        "type": "openrgb",  # openrgb | ddp
        "host": "127.0.0.1",
        "port": 0,  # 0 = protocol default
        "client_name": "ambiway",
        "leading_placeholder": False,
        "max_consecutive_failures": 5,
    },
    "display": {
        "monitors": [],  # optional override: [{"width": 1920, "height": 1080}]
    },
    "log": {
        "level": "info",
        "metrics": True,
        "rate_ms": 5000,
    },
}


def default_config_path() -> Path:
    """Location of the user config file when --config is not given."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "ambiway" / "config.toml"


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a file (YAML, TOML, or JSON)."""
    path_obj = Path(path)
    ext = path_obj.suffix.lower()

    if not path_obj.exists():
        raise ConfigurationError(f"config file not found: {path_obj}")

    try:
        if ext in (".yaml", ".yml"):
            with path_obj.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        elif ext == ".toml":
            with path_obj.open("rb") as f:
                data = tomllib.load(f) or {}

        elif ext == ".json":
            with path_obj.open(encoding="utf-8") as f:
                data = json.load(f) or {}

        else:
            raise ConfigurationError(f"unknown config extension: {ext}")

    except (OSError, yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"failed to load {path_obj}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"config root must be a table/mapping: {path_obj}")
    return data


def deep_update(dst: dict[str, Any], src: dict[str, Any]) -> dict[str, Any]:
    """Deep merge configuration dictionaries."""
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            deep_update(dst[k], v)
        else:
            dst[k] = v
    return dst


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration with defaults and optional file override.

    An explicit path must exist. Without one, the per-user default file is
    merged in only when present.
    """
    cfg = json.loads(json.dumps(DEFAULT_CONFIG))  # Deep copy

    if path:
        deep_update(cfg, load_config_file(path))
    else:
        user_path = default_config_path()
        if user_path.exists():
            logging.getLogger("config").info(f"using user config: {user_path}")
            deep_update(cfg, load_config_file(user_path))
        else:
            logging.getLogger("config").warning(f"no config file at {user_path}, using defaults")

    return cfg


class Config:
    """Configuration singleton, loaded once at process start."""

    _instance: ClassVar["Config | None"] = None
    _config: ClassVar[dict[str, Any]] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def load(cls, path: str | Path | None = None) -> None:
        """Load configuration from file."""
        cls._config = load_config(path)

    @classmethod
    def load_dict(cls, data: dict[str, Any]) -> None:
        """Load configuration from an already-parsed mapping merged over defaults."""
        cls._config = deep_update(json.loads(json.dumps(DEFAULT_CONFIG)), data)

    @classmethod
    def get(cls, key: str | None = None) -> Any:
        """Get configuration value by key path (e.g., 'settings.size')."""
        if key is None:
            return cls._config

        keys = key.split(".")
        value = cls._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                raise KeyError(f"Configuration key not found: {key}")

        return value

    @classmethod
    def get_or(cls, key: str, default: Any = None) -> Any:
        """Get configuration value, falling back to default when the key is absent."""
        try:
            return cls.get(key)
        except KeyError:
            return default
