"""Mode plugin contract, registry and built-in modes."""

from .base import (
    FitnessResult,
    ModeCategory,
    ModeContext,
    ModeDefinition,
    ModePlugin,
    ModeResult,
    keyword_fitness,
)
from .registry import ModeRegistry, ModeView, SessionSlots, create_default_registry

__all__ = [
    "FitnessResult",
    "ModeCategory",
    "ModeContext",
    "ModeDefinition",
    "ModePlugin",
    "ModeRegistry",
    "ModeResult",
    "ModeView",
    "SessionSlots",
    "create_default_registry",
    "keyword_fitness",
]
