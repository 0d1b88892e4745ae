"""Analytical modes: summarizing and researching."""

from typing import Any

from ..base import ModeCategory, ModeContext, ModeDefinition, sentence_count, word_count
from ._common import KeywordMode, matches

SUMMARY_PHRASES = (
    "give me the main",
    "what are the key",
    "in a nutshell",
    "bottom line",
    "to sum up",
    "in summary",
    "key findings",
)
DENSITY_INDICATORS = ("data", "results", "findings", "report", "document")

QUESTION_STARTS = ("what", "why", "how", "who", "when", "where", "which")


class SummarizingMode(KeywordMode):
    """Condenses long or dense input into its main points."""

    DEFINITION = ModeDefinition(
        mode_id="summarizing",
        name="Summarizing",
        category=ModeCategory.ANALYTICAL,
        keywords=(
            "summarize",
            "summary",
            "brief",
            "overview",
            "main points",
            "key findings",
            "digest",
            "synopsis",
        ),
        triggers=(
            "summarize",
            "give me a summary",
            "main points",
            "overview",
            "key takeaways",
            "in summary",
        ),
        priority=8,
        timeout_seconds=90.0,
        max_concurrent_sessions=12,
        symbol="📋",
        description="Condense complex information into a short structure",
    )
    predecessors = {"researching": 0.2, "analyzing": 0.15}
    result_confidence = 0.88

    def score_context(self, input_text: str, context: ModeContext):
        bonus = 0.0
        reasons: list[str] = []

        phrase_matches = matches(input_text, SUMMARY_PHRASES)
        if phrase_matches:
            bonus += 0.3
            reasons.append(f"Summarization phrases detected: {len(phrase_matches)}")

        if word_count(input_text) > 50:
            bonus += 0.2
            reasons.append("Long input suggests summarization need")

        if sentence_count(input_text) > 3:
            bonus += 0.15
            reasons.append("Multiple sentences suggest summary opportunity")

        density = matches(input_text, DENSITY_INDICATORS)
        if density:
            bonus += min(0.2, len(density) * 0.1)
            reasons.append(f"Information density indicators: {', '.join(density)}")

        return bonus, reasons

    def render(self, input_text: str, context: ModeContext):
        sentences = [s.strip() for s in input_text.replace("\n", " ").split(".") if s.strip()]
        key_points = sentences[:3] or [input_text.strip()]
        output = "Summary:\n" + "\n".join(f"- {point}" for point in key_points)

        total_words = max(1, word_count(input_text))
        metadata: dict[str, Any] = {
            "key_points": len(key_points),
            "compression_ratio": round(word_count(output) / total_words, 3),
        }
        suggestions = [
            "Ask for a shorter one-line summary",
            "Organize the key points into categories",
        ]
        return output, suggestions, "organizing", metadata


class ResearchingMode(KeywordMode):
    """Gathers and structures what is known about a topic."""

    DEFINITION = ModeDefinition(
        mode_id="researching",
        name="Researching",
        category=ModeCategory.ANALYTICAL,
        keywords=(
            "research",
            "investigate",
            "find",
            "search",
            "study",
            "gather",
            "explore",
            "examine",
            "discover",
        ),
        triggers=(
            "research",
            "find out",
            "investigate",
            "look into",
            "what is known about",
            "gather information",
        ),
        priority=7,
        timeout_seconds=120.0,
        max_concurrent_sessions=8,
        symbol="🔍",
        description="Explore and gather supporting information",
    )
    predecessors = {"thinking": 0.1}

    def score_context(self, input_text: str, context: ModeContext):
        bonus = 0.0
        reasons: list[str] = []

        stripped = input_text.strip().lower()
        if stripped.endswith("?") or stripped.startswith(QUESTION_STARTS):
            bonus += 0.1
            reasons.append("Question form suggests information seeking")

        if word_count(input_text) > 10:
            bonus += 0.1
            reasons.append("Complex query suggests research need")

        return bonus, reasons

    def render(self, input_text: str, context: ModeContext):
        topic = input_text.strip().rstrip("?.!")
        output = "\n".join(
            [
                f"Research plan for: {topic}",
                "1. Define the question and scope",
                "2. Collect primary sources and documentation",
                "3. Compare findings and note disagreements",
                "4. Record open questions",
            ]
        )
        suggestions = ["Summarize the findings", "Narrow the scope of the question"]
        return output, suggestions, "summarizing", {"topic_length": len(topic)}
