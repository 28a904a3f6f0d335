#!/usr/bin/env python3
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

_BASE_DIR = Path(__file__).resolve().parent
_DEFAULT_CONFIG_PATH = _BASE_DIR / "config" / "sim_config.json"


def _config_path() -> Path:
    """SIM_CONFIG_PATH points the simulation at another tunables file."""
    override = os.environ.get("SIM_CONFIG_PATH")
    return Path(override) if override else _DEFAULT_CONFIG_PATH


def _load_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


# Game tunables (grid, economy, combat, roster, server) from JSON
SIM_CONFIG: Dict[str, Any] = _load_config(_config_path())
