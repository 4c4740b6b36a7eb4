"""Configuration for bangfix runs and local backup storage."""

from __future__ import annotations

import os

from .config_manager import home_dir, load_analyzer_config, load_fix_config

BASE_DIR = home_dir()
BACKUP_DIR = BASE_DIR / "backups"

DEFAULT_TSCONFIG = "./tsconfig.json"
# Relative path looked up in every parent of the tsconfig directory.
TYPESCRIPT_LIB_PATH = "node_modules/typescript/lib"

_analyzer_config = load_analyzer_config()
_fix_config = load_fix_config()

# Analyzer settings from ~/.bangfix/config.toml [analyzer], overridden by env
TSC_COMMAND = os.environ.get("BANGFIX_TSC", _analyzer_config.get("tsc", ""))
NODE_BINARY = _analyzer_config.get("node", "node")
TSC_EXTRA_ARGS = list(_analyzer_config.get("extra_args", []))

# Fix settings from [fix]
ABSENT_VALUE_KEYWORD = os.environ.get("BANGFIX_KEYWORD", _fix_config.get("keyword", "undefined"))
BACKUP_ENABLED = bool(_fix_config.get("backup", True))

