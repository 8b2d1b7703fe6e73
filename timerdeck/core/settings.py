"""Settings - Timer Deck configuration.

Precedence (lowest to highest): built-in defaults, JSON config file
(~/.timerdeck/config.json), TIMERDECK_* environment variables, CLI flags.
"""

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from timerdeck.core.countdown import DEFAULT_TICK_INTERVAL
from timerdeck.core.store import DEFAULT_DATA_FILE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".timerdeck" / "config.json"

# Default web server port
DEFAULT_PORT = 8421

ENV_PREFIX = "TIMERDECK_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""

    data_file: Path = DEFAULT_DATA_FILE
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    tick_interval: float = DEFAULT_TICK_INTERVAL
    in_memory: bool = False
    debug: bool = False

    def merge(self, overrides: dict[str, Any]) -> "Settings":
        """Return a copy with known, non-None overrides applied.

        Values are coerced to each field's type; bad values are logged and
        skipped.
        """
        known = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning("Ignoring unknown setting: %s", key)
                continue
            if value is None:
                continue
            try:
                changes[key] = _coerce(key, value)
            except (TypeError, ValueError) as e:
                logger.warning("Ignoring invalid setting %s=%r: %s", key, value, e)
        return replace(self, **changes)


def _coerce(key: str, value: Any) -> Any:
    if key == "data_file":
        return Path(value).expanduser()
    if key == "port":
        port = int(value)
        if not 0 < port < 65536:
            raise ValueError("port out of range")
        return port
    if key == "tick_interval":
        interval = float(value)
        if interval <= 0:
            raise ValueError("tick_interval must be positive")
        return interval
    if key in ("in_memory", "debug"):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_VALUES
        return bool(value)
    return str(value)


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read the JSON config file. Missing or broken files yield {}."""
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                logger.debug("Loaded config from %s", path)
                return data
            logger.warning("Config %s is not a JSON object, ignoring", path)
    except Exception as e:
        logger.warning("Failed to load config %s: %s", path, e)
    return {}


def _read_env(environ: dict[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for f in fields(Settings):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is not None:
            values[f.name] = raw
    return values


def load_settings(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build settings from file, environment and explicit overrides.

    Args:
        config_path: JSON config file (default: ~/.timerdeck/config.json).
        overrides: Highest-priority values (e.g. from CLI flags); None
            values are skipped.
        environ: Environment mapping (default: os.environ).

    Returns:
        Resolved Settings.
    """
    settings = Settings()
    settings = settings.merge(_read_config_file(config_path or DEFAULT_CONFIG_FILE))
    settings = settings.merge(_read_env(dict(os.environ if environ is None else environ)))
    if overrides:
        settings = settings.merge(overrides)
    return settings
