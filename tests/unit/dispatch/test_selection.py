"""Tests for winner selection and the auto-switch decision."""

import pytest

from mode_engine.config.models import AutoSwitchPolicy
from mode_engine.dispatch.selection import (
    ScoredCandidate,
    eligible,
    select_winner,
    should_auto_switch,
)
from mode_engine.modes.base import (
    FitnessResult,
    ModeCategory,
    ModeDefinition,
    ModePlugin,
    ModeResult,
)


class FixedMode(ModePlugin):
    """Plugin with a fixed id and priority."""

    def __init__(self, mode_id, priority=5):
        super().__init__()
        self._definition = ModeDefinition(
            mode_id, mode_id, ModeCategory.ANALYTICAL, priority=priority
        )

    @property
    def definition(self):
        return self._definition

    def can_handle(self, input_text, context):
        return FitnessResult(0.0)

    def activate(self, context):
        pass

    def process(self, input_text, context):
        return ModeResult(success=True)

    def deactivate(self, session_id):
        pass


def candidate(mode_id, confidence, priority=5, order=0) -> ScoredCandidate:
    return ScoredCandidate(
        plugin=FixedMode(mode_id, priority),
        fitness=FitnessResult(confidence),
        order=order,
    )


class TestSelectWinner:
    """Test deterministic winner selection."""

    def test_highest_confidence_wins(self):
        candidates = [candidate("a", 0.4, order=0), candidate("b", 0.9, order=1)]
        assert select_winner(candidates, 0.15).mode_id == "b"

    def test_tie_broken_by_priority(self):
        candidates = [
            candidate("low", 0.7, priority=3, order=0),
            candidate("high", 0.7, priority=8, order=1),
        ]
        assert select_winner(candidates, 0.15).mode_id == "high"

    def test_tie_broken_by_registration_order(self):
        candidates = [
            candidate("second", 0.7, priority=5, order=1),
            candidate("first", 0.7, priority=5, order=0),
        ]
        assert select_winner(candidates, 0.15).mode_id == "first"

    def test_nothing_clears_floor(self):
        candidates = [candidate("a", 0.1), candidate("b", 0.14, order=1)]
        assert select_winner(candidates, 0.15) is None

    def test_floor_is_inclusive(self):
        assert select_winner([candidate("a", 0.15)], 0.15).mode_id == "a"

    def test_empty(self):
        assert select_winner([], 0.15) is None

    def test_eligible_sorted_best_first(self):
        candidates = [
            candidate("a", 0.3, order=0),
            candidate("b", 0.1, order=1),
            candidate("c", 0.8, order=2),
        ]
        assert [c.mode_id for c in eligible(candidates, 0.15)] == ["c", "a"]


class TestShouldAutoSwitch:
    """Test the hysteresis threshold."""

    @pytest.mark.parametrize(
        "winner,current,threshold,expected",
        [
            (0.95, 0.80, 0.2, False),
            (0.95, 0.75, 0.2, True),
            (0.90, 0.50, 0.2, True),
            (0.60, 0.50, 0.0, True),
            (0.50, 0.60, 0.0, False),
            (1.00, 0.00, 1.0, True),
        ],
    )
    def test_threshold(self, winner, current, threshold, expected):
        policy = AutoSwitchPolicy(threshold=threshold)
        assert should_auto_switch(policy, winner, current) is expected

    def test_disabled_never_switches(self):
        policy = AutoSwitchPolicy(enabled=False, threshold=0.0)
        assert should_auto_switch(policy, 1.0, 0.0) is False
