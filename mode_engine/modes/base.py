"""Base types and the plugin contract for cognitive modes.

A mode plugin scores its own fitness for an input, and when selected by
the dispatcher it is activated for a session, processes inputs for that
session, and is finally deactivated. Plugins publish lifecycle events on
an injected ``EventSink`` instead of inheriting an emitter.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from ..analytics.events import EventSink, ModeEventType, NullEventSink

DEFAULT_PRIORITY = 5
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_CONCURRENT_SESSIONS = 10

# Scoring weights shared by all keyword-driven plugins
KEYWORD_WEIGHT = 0.1
KEYWORD_CAP = 0.4
TRIGGER_WEIGHT = 0.1
TRIGGER_CAP = 0.3
PRIORITY_WEIGHT = 0.02

SENTENCE_SPLIT = re.compile(r"[.!?]+")


class ModeCategory(Enum):
    """Closed set of mode categories."""

    ANALYTICAL = "analytical"
    STRUCTURAL = "structural"
    CREATIVE = "creative"
    REASONING = "reasoning"
    VALIDATION = "validation"
    COLLABORATIVE = "collaborative"
    CONTEMPLATIVE = "contemplative"
    LEARNING = "learning"
    INTENSIVE = "intensive"


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value to [0, 1]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class ModeDefinition:
    """Static description of a mode, fixed at registration.

    Attributes:
        mode_id: Unique identifier (e.g. 'summarizing')
        name: Display name
        category: Mode category
        keywords: Words that hint at this mode
        triggers: Phrases that strongly suggest this mode
        priority: Tie-break priority, higher wins
        timeout_seconds: Bound on activate/process calls
        max_concurrent_sessions: Sessions allowed to hold this mode at once
        symbol: Display symbol
        description: One-line description
    """

    mode_id: str
    name: str
    category: ModeCategory
    keywords: tuple[str, ...] = ()
    triggers: tuple[str, ...] = ()
    priority: int = DEFAULT_PRIORITY
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_concurrent_sessions: int = DEFAULT_MAX_CONCURRENT_SESSIONS
    symbol: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not self.mode_id:
            raise ValueError("Mode identifier must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(f"Mode {self.mode_id}: timeout must be positive")
        if self.max_concurrent_sessions < 1:
            raise ValueError(
                f"Mode {self.mode_id}: max_concurrent_sessions must be >= 1"
            )
        # Accept lists from callers but store tuples
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "triggers", tuple(self.triggers))

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on id, name, description and keywords."""
        query = query.lower()
        fields = (self.mode_id, self.name, self.description, *self.keywords)
        return any(query in value.lower() for value in fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mode_id": self.mode_id,
            "name": self.name,
            "category": self.category.value,
            "keywords": list(self.keywords),
            "triggers": list(self.triggers),
            "priority": self.priority,
            "timeout_seconds": self.timeout_seconds,
            "max_concurrent_sessions": self.max_concurrent_sessions,
            "symbol": self.symbol,
            "description": self.description,
        }


@dataclass(frozen=True)
class ModeContext:
    """Per-dispatch context handed to plugins.

    A fresh instance is built for every dispatch call. ``confidence`` is
    ``None`` while plugins are being scored and is set on the copy passed
    to ``activate``/``process``.
    """

    session_id: str
    input_text: str
    timestamp: float = field(default_factory=time.time)
    previous_mode: str | None = None
    confidence: float | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(
                self, "metadata", MappingProxyType(dict(self.metadata))
            )

    def with_confidence(self, confidence: float) -> "ModeContext":
        """Return a copy carrying the selected mode's confidence."""
        return replace(
            self,
            confidence=clamp_confidence(confidence),
            metadata=dict(self.metadata),
        )


@dataclass(frozen=True)
class FitnessResult:
    """A plugin's self-assessed fitness for an input."""

    confidence: float = 0.0
    reasoning: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))
        object.__setattr__(self, "reasoning", tuple(self.reasoning))

    def can_handle(self, floor: float) -> bool:
        """Whether the confidence clears the given floor."""
        return self.confidence >= floor

    def to_dict(self) -> dict[str, Any]:
        return {
            "confidence": round(self.confidence, 3),
            "reasoning": list(self.reasoning),
        }


@dataclass(frozen=True)
class ModeResult:
    """Outcome of a plugin's ``process`` call."""

    success: bool
    output: str = ""
    suggestions: tuple[str, ...] = ()
    next_mode: str | None = None
    confidence: float = 0.0
    metadata: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    @classmethod
    def failure(cls, message: str, **metadata: Any) -> "ModeResult":
        """Build an unsuccessful result carrying an error message."""
        return cls(success=False, output="", error=message, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "output": self.output,
            "suggestions": list(self.suggestions),
            "next_mode": self.next_mode,
            "confidence": round(self.confidence, 3),
            "metadata": dict(self.metadata),
            "error": self.error,
        }


def keyword_fitness(definition: ModeDefinition, input_text: str) -> FitnessResult:
    """Score an input against a definition's keywords, triggers and priority.

    - +0.1 per keyword match (max 0.4)
    - +0.1 per trigger match (max 0.3)
    - +0.02 per priority point

    Args:
        definition: Mode definition to score against
        input_text: Raw user input

    Returns:
        FitnessResult with clamped confidence and reasoning
    """
    text = input_text.lower()
    reasoning: list[str] = []
    confidence = 0.0

    keyword_matches = [k for k in definition.keywords if k.lower() in text]
    if keyword_matches:
        confidence += min(KEYWORD_CAP, len(keyword_matches) * KEYWORD_WEIGHT)
        reasoning.append(f"Keywords matched: {', '.join(keyword_matches)}")

    trigger_matches = [t for t in definition.triggers if t.lower() in text]
    if trigger_matches:
        confidence += min(TRIGGER_CAP, len(trigger_matches) * TRIGGER_WEIGHT)
        reasoning.append(f"Triggers matched: {', '.join(trigger_matches)}")

    confidence += definition.priority * PRIORITY_WEIGHT
    reasoning.append(f"Priority bonus: {definition.priority}")

    return FitnessResult(confidence=confidence, reasoning=tuple(reasoning))


def word_count(text: str) -> int:
    return len(text.split())


def sentence_count(text: str) -> int:
    return len([s for s in SENTENCE_SPLIT.split(text) if s.strip()])


class ModePlugin(ABC):
    """Contract every cognitive mode implements.

    Implementations are independent of each other and are registered with
    a ``ModeRegistry`` at startup from a static table.

    ``can_handle`` must be pure and fast: it runs for every plugin on every
    dispatch call, possibly concurrently. ``process`` must report internal
    failures as ``ModeResult.failure(...)`` rather than raising.
    """

    def __init__(self, events: EventSink | None = None):
        self.events = events or NullEventSink()

    @property
    @abstractmethod
    def definition(self) -> ModeDefinition:
        """Static definition of this mode."""

    @property
    def mode_id(self) -> str:
        return self.definition.mode_id

    @abstractmethod
    def can_handle(self, input_text: str, context: ModeContext) -> FitnessResult:
        """Score this mode's fitness for an input.

        Args:
            input_text: Raw user input
            context: Dispatch context (``confidence`` is None)

        Returns:
            FitnessResult with confidence in [0, 1]
        """

    @abstractmethod
    def activate(self, context: ModeContext) -> None:
        """Called once when this mode becomes active for a session."""

    @abstractmethod
    def process(self, input_text: str, context: ModeContext) -> ModeResult:
        """Do the mode's work for one input while active."""

    @abstractmethod
    def deactivate(self, session_id: str) -> None:
        """Called once when a session moves off this mode."""

    def publish(
        self,
        event_type: ModeEventType,
        session_id: str | None = None,
        **payload: Any,
    ) -> None:
        """Publish an event tagged with this mode's id."""
        self.events.emit(event_type, self.mode_id, session_id, **payload)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.mode_id}>"


__all__ = [
    "DEFAULT_MAX_CONCURRENT_SESSIONS",
    "DEFAULT_PRIORITY",
    "DEFAULT_TIMEOUT_SECONDS",
    "FitnessResult",
    "ModeCategory",
    "ModeContext",
    "ModeDefinition",
    "ModePlugin",
    "ModeResult",
    "clamp_confidence",
    "keyword_fitness",
    "sentence_count",
    "word_count",
]
