"""Mode selection and auto-switch decisions.

Selection is deterministic: highest confidence wins, ties go to the
higher priority, then to the mode registered first.
"""

from dataclasses import dataclass

from ..config.models import AutoSwitchPolicy
from ..modes.base import FitnessResult, ModePlugin

# Absorbs float noise such as 0.95 - 0.75 == 0.19999999999999996
EPSILON = 1e-9


@dataclass(frozen=True)
class ScoredCandidate:
    """A plugin paired with its fitness for the current input."""

    plugin: ModePlugin
    fitness: FitnessResult
    order: int  # Registration order

    @property
    def mode_id(self) -> str:
        return self.plugin.mode_id

    @property
    def confidence(self) -> float:
        return self.fitness.confidence

    @property
    def priority(self) -> int:
        return self.plugin.definition.priority

    def sort_key(self) -> tuple[float, int, int]:
        return (-self.confidence, -self.priority, self.order)


def eligible(candidates: list[ScoredCandidate], floor: float) -> list[ScoredCandidate]:
    """Candidates that clear the floor, best first."""
    passing = [c for c in candidates if c.fitness.can_handle(floor)]
    return sorted(passing, key=ScoredCandidate.sort_key)


def select_winner(
    candidates: list[ScoredCandidate], floor: float
) -> ScoredCandidate | None:
    """Pick the winning candidate.

    Args:
        candidates: Scored plugins
        floor: Minimum confidence to be considered at all

    Returns:
        The winner, or None if nothing clears the floor
    """
    ranked = eligible(candidates, floor)
    return ranked[0] if ranked else None


def should_auto_switch(
    policy: AutoSwitchPolicy,
    winner_confidence: float,
    current_confidence: float,
) -> bool:
    """Whether an automatic switch away from the active mode is justified.

    Args:
        policy: Auto-switch policy snapshot
        winner_confidence: Confidence of the winning candidate
        current_confidence: Active mode's confidence at activation

    Returns:
        True if switching is enabled and the gain meets the threshold
    """
    if not policy.enabled:
        return False
    return winner_confidence - current_confidence + EPSILON >= policy.threshold


__all__ = [
    "ScoredCandidate",
    "eligible",
    "select_winner",
    "should_auto_switch",
]
