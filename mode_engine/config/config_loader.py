"""Engine settings loading with file, environment and override support.

Precedence (highest to lowest):
1. Explicit overrides
2. Environment variables (MODE_ENGINE_*)
3. JSON config file (explicit path or MODE_ENGINE_CONFIG)
4. Defaults
"""

import json
import os
from pathlib import Path
from typing import Any

from ..engine_logging import get_logger
from .models import EngineSettings

logger = get_logger("config")

CONFIG_ENV_VAR = "MODE_ENGINE_CONFIG"

TRUE_VALUES = ("true", "1", "yes", "on")

# Environment variable -> dot-notation settings path
ENV_MAPPINGS = {
    "MODE_ENGINE_AUTO_SWITCH": "policy.enabled",
    "MODE_ENGINE_SWITCH_THRESHOLD": "policy.threshold",
    "MODE_ENGINE_LEARNING": "policy.learning_enabled",
    "MODE_ENGINE_CONFIDENCE_FLOOR": "dispatcher.confidence_floor",
    "MODE_ENGINE_HISTORY_LIMIT": "dispatcher.history_limit",
    "MODE_ENGINE_SCORING_TIMEOUT": "dispatcher.scoring_timeout_seconds",
}

BOOLEAN_PATHS = {"policy.enabled", "policy.learning_enabled"}

# Flat override keys accepted for convenience
OVERRIDE_MAPPINGS = {
    "auto_switch": "policy.enabled",
    "switch_threshold": "policy.threshold",
    "learning_enabled": "policy.learning_enabled",
    "confidence_floor": "dispatcher.confidence_floor",
    "history_limit": "dispatcher.history_limit",
    "scoring_timeout_seconds": "dispatcher.scoring_timeout_seconds",
    "pattern_limit": "dispatcher.pattern_limit",
}


class EngineConfigLoader:
    """Loads ``EngineSettings`` from all sources."""

    def __init__(self, config_path: Path | None = None):
        """Initialize the loader.

        Args:
            config_path: Optional JSON settings file. Falls back to the
                MODE_ENGINE_CONFIG environment variable.
        """
        if config_path is None and os.environ.get(CONFIG_ENV_VAR):
            config_path = Path(os.environ[CONFIG_ENV_VAR])
        self.config_path = Path(config_path) if config_path else None

    def load(self, **overrides: Any) -> EngineSettings:
        """Load settings from all sources.

        Raises:
            ValueError: If the config file holds invalid JSON
            pydantic.ValidationError: If a value is out of range
        """
        data: dict[str, Any] = {}

        file_data = self._load_file()
        _deep_merge(data, file_data)

        for dotted, value in self._load_environment().items():
            _set_dotted(data, dotted, value)

        for key, value in overrides.items():
            _set_dotted(data, OVERRIDE_MAPPINGS.get(key, key), value)

        settings = EngineSettings(**data)
        logger.debug(
            f"Loaded engine settings (auto_switch={settings.policy.enabled}, "
            f"threshold={settings.policy.threshold})"
        )
        return settings

    def _load_file(self) -> dict[str, Any]:
        if self.config_path is None:
            return {}
        if not self.config_path.exists():
            logger.debug(f"No engine config at {self.config_path}")
            return {}

        try:
            with open(self.config_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in engine config: {e}")
            raise ValueError(f"Invalid engine config: {e}") from None

        if not isinstance(data, dict):
            raise ValueError(f"Engine config must be a JSON object: {self.config_path}")

        logger.info(f"Loaded engine config from {self.config_path}")
        return data

    def _load_environment(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for env_name, dotted in ENV_MAPPINGS.items():
            raw = os.environ.get(env_name)
            if raw is None or raw == "":
                continue
            if dotted in BOOLEAN_PATHS:
                values[dotted] = raw.lower() in TRUE_VALUES
            else:
                values[dotted] = raw
        return values


def _set_dotted(data: dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> None:
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def load_engine_settings(
    config_path: Path | None = None, **overrides: Any
) -> EngineSettings:
    """Load engine settings with precedence overrides > env > file > defaults.

    Args:
        config_path: Optional JSON settings file
        **overrides: Flat (``switch_threshold=0.3``) or dotted
            (``"policy.threshold"``) overrides

    Returns:
        Validated EngineSettings
    """
    return EngineConfigLoader(config_path).load(**overrides)


__all__ = [
    "EngineConfigLoader",
    "load_engine_settings",
]
