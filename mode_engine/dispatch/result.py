"""Typed outcome of a dispatch or manual mode change."""

from dataclasses import dataclass, field
from typing import Any

from ..analytics.learning import Recommendation
from ..errors import ErrorKind, ModeEngineError, describe_error
from ..modes.base import ModeResult
from .session import TriggerKind


@dataclass
class DispatchResult:
    """What happened on one call into the dispatcher.

    Per-call errors never raise out of the dispatcher; they are carried in
    ``error``. A failed call leaves the previously active mode in place.

    Attributes:
        session_id: Session the call was for
        mode_id: Mode that handled the call (or remains active on failure)
        result: Plugin output, when ``process`` ran
        error: Engine error, if the call failed
        switched: Whether the active mode changed
        trigger: Trigger kind of the activation, when a switch happened
        confidence: Confidence of the handling mode for this input
        candidates: Confidence per mode from the scoring phase
        recommendations: Learned next-mode suggestions
    """

    session_id: str
    mode_id: str | None = None
    result: ModeResult | None = None
    error: ModeEngineError | None = None
    switched: bool = False
    trigger: TriggerKind | None = None
    confidence: float = 0.0
    candidates: dict[str, float] = field(default_factory=dict)
    recommendations: list[Recommendation] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error else None

    @property
    def message(self) -> str:
        """User-facing text: the mode output, or a classified error message."""
        if self.error is not None:
            return describe_error(self.error)
        if self.result is not None:
            return self.result.output
        return ""

    @property
    def suggestions(self) -> tuple[str, ...]:
        return self.result.suggestions if self.result else ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "mode_id": self.mode_id,
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error.to_dict() if self.error else None,
            "switched": self.switched,
            "trigger": self.trigger.value if self.trigger else None,
            "confidence": round(self.confidence, 3),
            "candidates": {k: round(v, 3) for k, v in self.candidates.items()},
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


__all__ = ["DispatchResult"]
