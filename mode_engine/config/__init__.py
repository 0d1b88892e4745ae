"""Configuration for the mode dispatch engine."""

from .config_loader import EngineConfigLoader, load_engine_settings
from .models import AutoSwitchPolicy, DispatcherConfig, EngineSettings

__all__ = [
    "AutoSwitchPolicy",
    "DispatcherConfig",
    "EngineConfigLoader",
    "EngineSettings",
    "load_engine_settings",
]
