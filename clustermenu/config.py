"""Read-only JSON settings.

All access is defensive: a missing, unreadable or malformed config file
yields the defaults, and a key with the wrong type or an out-of-range value
is ignored on its own.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "clustermenu"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class Settings:
    tick_seconds: float = 1.0
    poll_interval_seconds: float = 1.0
    split_columns: int = 40
    privileged_bin_dir: str = "/usr/sbin"
    max_color_slots: int = 256
    log_level: str = "INFO"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load the JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = CONFIG_PATH if path is None else path
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def _positive_number(value: object) -> float | None:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return float(value)


def _positive_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def load_settings(path: Path | None = None) -> Settings:
    """Build ``Settings`` from the config file, keeping defaults for bad keys."""
    data = load_config(path)
    overrides: dict[str, object] = {}

    for key in ("tick_seconds", "poll_interval_seconds"):
        number = _positive_number(data.get(key))
        if number is not None:
            overrides[key] = number

    for key in ("split_columns", "max_color_slots"):
        integer = _positive_int(data.get(key))
        if integer is not None:
            overrides[key] = integer

    bin_dir = data.get("privileged_bin_dir")
    if isinstance(bin_dir, str) and bin_dir.strip():
        overrides["privileged_bin_dir"] = bin_dir.strip()

    level = data.get("log_level")
    if isinstance(level, str) and level.upper() in LOG_LEVELS:
        overrides["log_level"] = level.upper()

    return Settings(**overrides)
