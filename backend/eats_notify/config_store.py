"""Settings layering: pushed overrides over the config file over env and defaults."""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_PARSERS = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def load_file_layer(path: Optional[Path]) -> dict[str, Any]:
    """Settings values from a .yaml/.yml/.json file; {} when absent or unusable."""
    if path is None or not path.exists():
        return {}
    parse = _PARSERS.get(path.suffix.lower())
    if parse is None:
        logger.warning("Ignoring config file with unsupported suffix: %s", path)
        return {}
    try:
        data = parse(path.read_text())
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Ignoring config file %s: top level is %s, not a mapping", path, type(data).__name__)
        return {}
    return data


class ConfigStore:
    """Current Settings snapshot for one settings class and optional file."""

    def __init__(self, settings_cls: type, config_file_path: Optional[str] = None):
        self._settings_cls = settings_cls
        self._path = Path(config_file_path).expanduser() if config_file_path else None
        self._overrides: dict[str, Any] = {}
        self._current: Optional[Any] = None
        self._lock = threading.RLock()

    def _compose(self, overrides: dict[str, Any]) -> Any:
        base = self._settings_cls().model_dump()
        return self._settings_cls(**{**base, **load_file_layer(self._path), **overrides})

    def get_settings(self) -> Any:
        with self._lock:
            if self._current is None:
                self._current = self._compose(self._overrides)
            return self._current

    def update(self, overrides: dict[str, Any]) -> None:
        """Apply overrides; an invalid value leaves the current snapshot in place."""
        with self._lock:
            candidate = {**self._overrides, **overrides}
            try:
                self._current = self._compose(candidate)
            except ValueError as e:
                logger.warning("Rejected settings override %s: %s", overrides, e)
                return
            self._overrides = candidate

    def reload_from_file(self) -> None:
        with self._lock:
            try:
                self._current = self._compose(self._overrides)
            except ValueError as e:
                logger.warning("Config file reload rejected, keeping previous settings: %s", e)

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides = {}
            self._current = self._compose(self._overrides)
