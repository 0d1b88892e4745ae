"""Tests for the built-in keyword-driven modes."""

import pytest

from mode_engine.analytics.events import ModeEventType, RecordingEventSink
from mode_engine.modes.base import ModeCategory, ModeContext
from mode_engine.modes.builtin import BUILTIN_MODES
from mode_engine.modes.builtin.analytical import ResearchingMode, SummarizingMode
from mode_engine.modes.builtin.general import (
    BrainstormingMode,
    DebuggingMode,
    ThinkingMode,
)
from mode_engine.modes.builtin.structural import (
    ArchitectingMode,
    ImplementingMode,
    OrganizingMode,
)


def score_all(text: str, previous_mode=None) -> dict[str, float]:
    context = ModeContext("s1", text, previous_mode=previous_mode)
    return {
        mode_class.DEFINITION.mode_id: mode_class().can_handle(text, context).confidence
        for mode_class in BUILTIN_MODES
    }


def best_mode(text: str, previous_mode=None) -> str:
    scores = score_all(text, previous_mode)
    return max(scores, key=scores.get)


class TestBuiltinDefinitions:
    """Test the static definitions of the built-in modes."""

    @pytest.mark.parametrize("mode_class", BUILTIN_MODES)
    def test_definition_valid(self, mode_class):
        definition = mode_class.DEFINITION
        assert definition.mode_id
        assert 0 <= definition.priority <= 10
        assert definition.timeout_seconds > 0
        assert definition.max_concurrent_sessions >= 1
        assert isinstance(definition.category, ModeCategory)

    def test_thinking_registered_first(self):
        assert BUILTIN_MODES[0] is ThinkingMode


class TestBuiltinScoring:
    """Test scoring heuristics across the built-in modes."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Please summarize this report", "summarizing"),
            (
                "I get an error: Traceback (most recent call last) when I run it",
                "debugging",
            ),
            ("hello there", "thinking"),
            ("Let's brainstorm some creative ideas, what if we started over?", "brainstorming"),
            ("Design the architecture for a scalable distributed system", "architecting"),
        ],
    )
    def test_expected_winner(self, text, expected):
        assert best_mode(text) == expected

    @pytest.mark.parametrize("text", ["", "hello", "x" * 5000])
    def test_scores_within_bounds(self, text):
        for confidence in score_all(text).values():
            assert 0.0 <= confidence <= 1.0

    def test_plain_input_clears_default_floor(self):
        assert score_all("hello there")["thinking"] >= 0.15

    def test_predecessor_bonus(self):
        mode = SummarizingMode()
        text = "ok"
        plain = mode.can_handle(text, ModeContext("s1", text)).confidence
        after = mode.can_handle(
            text, ModeContext("s1", text, previous_mode="researching")
        )
        assert after.confidence == pytest.approx(plain + 0.2)
        assert any("researching" in r for r in after.reasoning)

    def test_organizing_detects_lists(self):
        text = "- apples\n- pears\n- plums\n- figs"
        mode = OrganizingMode()
        result = mode.can_handle(text, ModeContext("s1", text))
        assert any("list of 4 items" in r for r in result.reasoning)

    def test_implementing_penalizes_short_requests(self):
        mode = ImplementingMode()
        short = mode.can_handle("go", ModeContext("s1", "go")).confidence
        assert short < ImplementingMode.DEFINITION.priority * 0.02

    def test_scoring_is_deterministic(self):
        text = "Research the history of distributed databases and summarize"
        assert score_all(text) == score_all(text)


class TestBuiltinLifecycle:
    """Test activate/process/deactivate of the built-in modes."""

    @pytest.fixture
    def sink(self) -> RecordingEventSink:
        return RecordingEventSink()

    def test_activate_publishes_display_update_only(self, sink):
        mode = ResearchingMode(events=sink)
        mode.activate(ModeContext("s1", "", confidence=0.6))

        assert sink.count(ModeEventType.DISPLAY_UPDATE) == 1
        assert sink.count(ModeEventType.ACTIVATED) == 0
        event = sink.of_type(ModeEventType.DISPLAY_UPDATE)[0]
        assert event.payload["symbol"] == ResearchingMode.DEFINITION.symbol

    def test_process_counts_turns(self):
        mode = ThinkingMode()
        context = ModeContext("s1", "why is the sky blue?", confidence=0.5)
        mode.activate(context)

        first = mode.process(context.input_text, context)
        second = mode.process(context.input_text, context)

        assert first.success and second.success
        assert first.metadata["turn"] == 1
        assert second.metadata["turn"] == 2
        assert mode.turns("s1") == 2

    def test_deactivate_resets_turns(self):
        mode = ThinkingMode()
        context = ModeContext("s1", "hi")
        mode.activate(context)
        mode.process("hi", context)
        mode.deactivate("s1")
        assert mode.turns("s1") == 0

    def test_turns_isolated_per_session(self):
        mode = ThinkingMode()
        for session_id in ("s1", "s2"):
            mode.activate(ModeContext(session_id, ""))
        mode.process("hi", ModeContext("s1", "hi"))
        assert mode.turns("s1") == 1
        assert mode.turns("s2") == 0

    def test_summary_result(self):
        mode = SummarizingMode()
        text = "The build failed. Tests were flaky. The cache was cold. Nobody noticed."
        result = mode.process(text, ModeContext("s1", text))

        assert result.success
        assert result.output.startswith("Summary:")
        assert result.metadata["key_points"] == 3
        assert result.next_mode == "organizing"
        assert result.confidence == pytest.approx(0.88)

    def test_architecting_suggests_implementing(self):
        mode = ArchitectingMode()
        result = mode.process("design it", ModeContext("s1", "design it"))
        assert result.next_mode == "implementing"
        assert result.suggestions

    def test_render_failure_becomes_failed_result(self, monkeypatch):
        mode = BrainstormingMode()

        def broken_render(input_text, context):
            raise RuntimeError("template missing")

        monkeypatch.setattr(mode, "render", broken_render)
        result = mode.process("ideas", ModeContext("s1", "ideas"))

        assert result.success is False
        assert "template missing" in result.error

    def test_debugging_detects_trace(self):
        text = 'Traceback (most recent call last):\n  File "x.py", line 1'
        result = DebuggingMode().process(text, ModeContext("s1", text))
        assert result.metadata["has_trace"] is True
