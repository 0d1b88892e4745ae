"""Mode Engine - Cognitive Mode Dispatch Engine

Routes each conversational input to the best-fitting cognitive mode,
keeps one active mode per session with hysteresis-guarded automatic
switching, and records bounded per-session mode history.
"""

__version__ = "1.0.0"
__author__ = "Mode Engine Project"
__description__ = "Confidence-scored cognitive mode dispatch for conversational sessions"

from mode_engine.config import AutoSwitchPolicy, EngineSettings, load_engine_settings

from .dispatch import DispatchResult, ModeDispatcher, create_dispatcher
from .errors import ErrorKind, ModeEngineError, describe_error
from .modes import ModePlugin, ModeRegistry, create_default_registry

__all__ = [
    "AutoSwitchPolicy",
    "DispatchResult",
    "EngineSettings",
    "ErrorKind",
    "ModeDispatcher",
    "ModeEngineError",
    "ModePlugin",
    "ModeRegistry",
    "create_default_registry",
    "create_dispatcher",
    "describe_error",
    "load_engine_settings",
]
