"""Shared scaffolding for the built-in keyword-driven modes.

Built-in modes score with ``keyword_fitness`` plus a mode-specific
heuristic, keep a small per-session turn counter, and render a templated
result. Lifecycle events go to the plugin's injected sink.
"""

from threading import Lock
from typing import Any

from ...analytics.events import EventSink, ModeEventType
from ...engine_logging import get_logger
from ..base import (
    FitnessResult,
    ModeContext,
    ModeDefinition,
    ModePlugin,
    ModeResult,
    keyword_fitness,
    sentence_count,
    word_count,
)

logger = get_logger("modes")

PREVIEW_LENGTH = 50


class KeywordMode(ModePlugin):
    """Base for built-in modes driven by keyword and trigger tables.

    Subclasses set ``DEFINITION`` and implement ``score_context`` and
    ``render``. ``predecessors`` maps a previous mode id to a bonus.
    """

    DEFINITION: ModeDefinition
    predecessors: dict[str, float] = {}
    result_confidence: float = 0.8

    def __init__(self, events: EventSink | None = None):
        super().__init__(events)
        self._turns: dict[str, int] = {}
        self._lock = Lock()

    @property
    def definition(self) -> ModeDefinition:
        return self.DEFINITION

    def can_handle(self, input_text: str, context: ModeContext) -> FitnessResult:
        base = keyword_fitness(self.definition, input_text)
        confidence = base.confidence
        reasoning = list(base.reasoning)

        extra, extra_reasons = self.score_context(input_text, context)
        confidence += extra
        reasoning.extend(extra_reasons)

        bonus = self.predecessors.get(context.previous_mode or "", 0.0)
        if bonus:
            confidence += bonus
            reasoning.append(f"Natural follow-up to {context.previous_mode}")

        return FitnessResult(confidence=confidence, reasoning=tuple(reasoning))

    def score_context(
        self, input_text: str, context: ModeContext
    ) -> tuple[float, list[str]]:
        """Mode-specific heuristic; returns (bonus, reasons)."""
        return 0.0, []

    def activate(self, context: ModeContext) -> None:
        with self._lock:
            self._turns[context.session_id] = 0
        logger.debug(f"[{self.mode_id}] Activating for session {context.session_id}")
        self.publish(
            ModeEventType.DISPLAY_UPDATE,
            context.session_id,
            symbol=self.definition.symbol,
            text=f"{self.definition.name}...",
        )

    def deactivate(self, session_id: str) -> None:
        with self._lock:
            turns = self._turns.pop(session_id, 0)
        logger.debug(f"[{self.mode_id}] Deactivating for session {session_id}")
        self.publish(
            ModeEventType.DISPLAY_UPDATE, session_id, text="", turns=turns
        )

    def process(self, input_text: str, context: ModeContext) -> ModeResult:
        with self._lock:
            turn = self._turns.get(context.session_id, 0) + 1
            self._turns[context.session_id] = turn

        preview = input_text[:PREVIEW_LENGTH]
        logger.debug(f"[{self.mode_id}] Processing: {preview!r}")

        try:
            output, suggestions, next_mode, metadata = self.render(input_text, context)
        except Exception as e:
            logger.warning(f"[{self.mode_id}] Processing failed: {e}")
            return ModeResult.failure(f"Error in {self.definition.name}: {e}")

        metadata = {
            "turn": turn,
            "word_count": word_count(input_text),
            "sentence_count": sentence_count(input_text),
            **metadata,
        }
        return ModeResult(
            success=True,
            output=output,
            suggestions=tuple(suggestions),
            next_mode=next_mode,
            confidence=self.result_confidence,
            metadata=metadata,
        )

    def render(
        self, input_text: str, context: ModeContext
    ) -> tuple[str, list[str], str | None, dict[str, Any]]:
        """Produce (output, suggestions, next_mode, metadata)."""
        raise NotImplementedError

    def turns(self, session_id: str) -> int:
        """Inputs processed in the current activation for a session."""
        with self._lock:
            return self._turns.get(session_id, 0)


def matches(text: str, phrases: tuple[str, ...]) -> list[str]:
    """Phrases from ``phrases`` that occur in ``text`` (case-insensitive)."""
    lowered = text.lower()
    return [p for p in phrases if p in lowered]
