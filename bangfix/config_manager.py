"""Configuration manager for bangfix using TOML files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import toml

logger = logging.getLogger(__name__)


def home_dir() -> Path:
    """Return the bangfix home directory ($BANGFIX_HOME or ~/.bangfix)."""
    return Path(os.environ.get("BANGFIX_HOME", str(Path.home() / ".bangfix"))).expanduser()


CONFIG_FILE = home_dir() / "config.toml"


DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "analyzer": {
        "tsc": "",
        "node": "node",
        "extra_args": [],
    },
    "fix": {
        "keyword": "undefined",
        "backup": True,
    },
}


def load_full_config(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    A missing file yields an empty dict. An unreadable one is logged and
    ignored so a broken user config never blocks a run.
    """
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_file, exc)
        return {}


def _load_section(section: str, config_file: Path) -> Dict[str, Any]:
    merged = DEFAULT_CONFIG[section].copy()
    merged.update(load_full_config(config_file).get(section, {}))
    return merged


def load_analyzer_config(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load the ``[analyzer]`` section merged over defaults.

    Returns:
        Dict with ``tsc``, ``node`` and ``extra_args`` keys.
    """
    return _load_section("analyzer", config_file)


def load_fix_config(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load the ``[fix]`` section merged over defaults.

    Returns:
        Dict with ``keyword`` and ``backup`` keys.
    """
    return _load_section("fix", config_file)


def save_config(section: str, values: Dict[str, Any], config_file: Path = CONFIG_FILE) -> bool:
    """Write one section to the TOML file, preserving the others.

    Args:
        section: ``"analyzer"`` or ``"fix"``
        values: Keys to store in that section

    Returns:
        True if saved successfully, False otherwise
    """
    if section not in DEFAULT_CONFIG:
        raise ValueError(f"Unknown config section: {section}")
    config = load_full_config(config_file)
    config[section] = {**config.get(section, {}), **values}
    config_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(config_file, "w") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", config_file, exc)
        return False
