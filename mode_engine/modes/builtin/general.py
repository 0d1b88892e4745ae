"""Reasoning, creative and validation modes."""

import re

from ..base import ModeCategory, ModeContext, ModeDefinition
from ._common import KeywordMode, matches

IDEATION_QUESTIONS = ("what if", "how might", "what are some", "how could")
TRACEBACK = re.compile(r"Traceback \(most recent call last\)|\bat .+:\d+\)?$|Error:", re.MULTILINE)


class ThinkingMode(KeywordMode):
    """General reasoning; the fallback for plain questions."""

    DEFINITION = ModeDefinition(
        mode_id="thinking",
        name="Thinking",
        category=ModeCategory.REASONING,
        keywords=("think", "consider", "reason", "understand", "explain"),
        triggers=("what is", "how does", "why", "explain", "help me understand"),
        priority=1,
        timeout_seconds=60.0,
        max_concurrent_sessions=20,
        symbol="✽",
        description="General reasoning process",
    )

    def score_context(self, input_text: str, context: ModeContext):
        # Baseline above the priority-only score of every other built-in mode
        return 0.2, ["Default reasoning mode"]

    def render(self, input_text: str, context: ModeContext):
        output = f"Thinking about: {input_text.strip()}"
        return output, ["Research the topic further"], None, {}


class BrainstormingMode(KeywordMode):
    """Generates many loosely constrained ideas."""

    DEFINITION = ModeDefinition(
        mode_id="brainstorming",
        name="Brainstorming",
        category=ModeCategory.CREATIVE,
        keywords=("idea", "brainstorm", "creative", "concept", "alternative", "imagine"),
        triggers=("brainstorm", "come up with", "think of", "what if", "alternatives"),
        priority=6,
        timeout_seconds=120.0,
        max_concurrent_sessions=12,
        symbol="💡",
        description="Generate diverse ideas with relaxed constraints",
    )

    def score_context(self, input_text: str, context: ModeContext):
        questions = matches(input_text, IDEATION_QUESTIONS)
        if questions:
            return 0.15, [f"Ideation questions: {', '.join(questions)}"]
        return 0.0, []

    def render(self, input_text: str, context: ModeContext):
        topic = input_text.strip().rstrip("?.!")
        angles = ("simplest version", "opposite approach", "combine with existing tools")
        output = "Ideas for " + topic + ":\n" + "\n".join(f"- Try the {a}" for a in angles)
        return output, ["Organize the ideas", "Pick one and design it"], "organizing", {
            "idea_count": len(angles)
        }


class DebuggingMode(KeywordMode):
    """Locates the cause of an error and proposes a fix."""

    DEFINITION = ModeDefinition(
        mode_id="debugging",
        name="Debugging",
        category=ModeCategory.VALIDATION,
        keywords=("error", "bug", "debug", "fix", "broken", "crash", "exception", "traceback"),
        triggers=("not working", "troubleshoot", "stack trace", "doesn't work", "fails"),
        priority=9,
        timeout_seconds=180.0,
        max_concurrent_sessions=6,
        symbol="🐛",
        description="Identify error causes and fixes",
    )
    predecessors = {"implementing": 0.1, "testing": 0.15}

    def score_context(self, input_text: str, context: ModeContext):
        if TRACEBACK.search(input_text):
            return 0.25, ["Input contains an error trace"]
        return 0.0, []

    def render(self, input_text: str, context: ModeContext):
        has_trace = bool(TRACEBACK.search(input_text))
        output = "\n".join(
            [
                "Debugging checklist:",
                "1. Reproduce the failure",
                "2. Read the innermost frame of the trace" if has_trace else "2. Capture the error output",
                "3. Form a hypothesis and test it",
                "4. Fix and add a regression test",
            ]
        )
        return output, ["Refactor the affected code after the fix"], None, {
            "has_trace": has_trace
        }
