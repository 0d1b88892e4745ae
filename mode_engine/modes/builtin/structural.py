"""Structural modes: organizing, architecting, refactoring, implementing."""

import re

from ..base import ModeCategory, ModeContext, ModeDefinition, word_count
from ._common import KeywordMode, matches

ORGANIZATION_PHRASES = (
    "put in order",
    "make sense of",
    "break down",
    "divide into",
    "create structure",
    "establish hierarchy",
)
LIST_ITEM = re.compile(r"^\s*(?:[-*]|\d+[.)])\s+", re.MULTILINE)

SCALE_TERMS = ("scalable", "microservice", "distributed", "layer", "boundary")
CODE_MARKERS = re.compile(r"```|\bdef |\bclass |\bfunction\b|=>|\{\s*$", re.MULTILINE)
CONSTRUCTION_TERMS = (
    "development",
    "coding",
    "programming",
    "implementation",
    "deployment",
    "configuration",
)


class OrganizingMode(KeywordMode):
    """Arranges items into categories and hierarchies."""

    DEFINITION = ModeDefinition(
        mode_id="organizing",
        name="Organizing",
        category=ModeCategory.STRUCTURAL,
        keywords=(
            "organize",
            "arrange",
            "categorize",
            "classify",
            "sort",
            "group",
            "hierarchy",
        ),
        triggers=(
            "organize",
            "structure this",
            "sort by",
            "group together",
            "create hierarchy",
        ),
        priority=6,
        timeout_seconds=90.0,
        max_concurrent_sessions=10,
        symbol="🗂",
        description="Arrange information into a logical structure",
    )
    predecessors = {"researching": 0.15, "brainstorming": 0.15}

    def score_context(self, input_text: str, context: ModeContext):
        bonus = 0.0
        reasons: list[str] = []

        phrase_matches = matches(input_text, ORGANIZATION_PHRASES)
        if phrase_matches:
            bonus += 0.2
            reasons.append(f"Organization phrases: {', '.join(phrase_matches)}")

        items = LIST_ITEM.findall(input_text)
        if len(items) >= 3:
            bonus += 0.15
            reasons.append(f"Input contains a list of {len(items)} items")

        return bonus, reasons

    def render(self, input_text: str, context: ModeContext):
        lines = [
            LIST_ITEM.sub("", line).strip()
            for line in input_text.splitlines()
            if line.strip()
        ]
        groups: dict[str, list[str]] = {}
        for line in lines:
            key = line[0].upper() if line else "#"
            groups.setdefault(key, []).append(line)

        output_lines = ["Organized structure:"]
        for key in sorted(groups):
            output_lines.append(f"{key}:")
            output_lines.extend(f"  - {item}" for item in groups[key])

        suggestions = ["Group by priority instead", "Plan the next steps"]
        return "\n".join(output_lines), suggestions, None, {"groups": len(groups)}


class ArchitectingMode(KeywordMode):
    """Designs system structure, components and boundaries."""

    DEFINITION = ModeDefinition(
        mode_id="architecting",
        name="Architecting",
        category=ModeCategory.STRUCTURAL,
        keywords=(
            "architect",
            "architecture",
            "design",
            "system",
            "pattern",
            "component",
            "module",
        ),
        triggers=(
            "design architecture",
            "system design",
            "design pattern",
            "architect system",
        ),
        priority=8,
        timeout_seconds=80.0,
        max_concurrent_sessions=8,
        symbol="🏛",
        description="Design system structure and component boundaries",
    )
    predecessors = {"brainstorming": 0.1, "researching": 0.1}

    def score_context(self, input_text: str, context: ModeContext):
        scale = matches(input_text, SCALE_TERMS)
        if scale:
            return min(0.2, len(scale) * 0.1), [f"Scale concerns: {', '.join(scale)}"]
        return 0.0, []

    def render(self, input_text: str, context: ModeContext):
        output = "\n".join(
            [
                "Architecture outline:",
                "- Components and their responsibilities",
                "- Interfaces between components",
                "- Data flow and ownership",
                "- Failure modes and recovery",
            ]
        )
        suggestions = ["Implement the first component", "Review the design for risks"]
        return output, suggestions, "implementing", {}


class RefactoringMode(KeywordMode):
    """Restructures existing code without changing behaviour."""

    DEFINITION = ModeDefinition(
        mode_id="refactoring",
        name="Refactoring",
        category=ModeCategory.STRUCTURAL,
        keywords=(
            "refactor",
            "restructure",
            "clean",
            "reorganize",
            "simplify",
            "duplicate",
            "extract",
        ),
        triggers=("refactor this", "clean up", "improve structure", "simplify"),
        priority=7,
        timeout_seconds=90.0,
        max_concurrent_sessions=8,
        symbol="♻",
        description="Improve code structure while keeping behaviour",
    )
    predecessors = {"reviewing": 0.15, "debugging": 0.1}

    def score_context(self, input_text: str, context: ModeContext):
        if CODE_MARKERS.search(input_text):
            return 0.15, ["Input contains code"]
        return 0.0, []

    def render(self, input_text: str, context: ModeContext):
        output = "\n".join(
            [
                "Refactoring steps:",
                "1. Pin current behaviour with tests",
                "2. Extract duplicated logic",
                "3. Rename for intent",
                "4. Re-run tests after each step",
            ]
        )
        suggestions = ["Add tests before refactoring", "Review the result"]
        return output, suggestions, None, {"has_code": bool(CODE_MARKERS.search(input_text))}


class ImplementingMode(KeywordMode):
    """Builds concrete code and configuration from a design."""

    DEFINITION = ModeDefinition(
        mode_id="implementing",
        name="Implementing",
        category=ModeCategory.STRUCTURAL,
        keywords=("implement", "build", "develop", "code", "construct", "deploy", "setup"),
        triggers=("implement", "build", "create solution", "execute plan"),
        priority=9,
        timeout_seconds=150.0,
        max_concurrent_sessions=6,
        symbol="🔨",
        description="Turn a design into working code",
    )
    predecessors = {"planning": 0.2, "architecting": 0.15}

    def score_context(self, input_text: str, context: ModeContext):
        terms = matches(input_text, CONSTRUCTION_TERMS)
        bonus = 0.0
        reasons: list[str] = []
        if terms:
            bonus += min(0.2, len(terms) * 0.1)
            reasons.append(f"Construction terms: {', '.join(terms)}")
        if word_count(input_text) < 4:
            bonus -= 0.1
            reasons.append("Very short request")
        return bonus, reasons

    def render(self, input_text: str, context: ModeContext):
        output = "\n".join(
            [
                "Implementation plan:",
                "- Scaffold modules and interfaces",
                "- Implement core logic",
                "- Wire configuration",
                "- Add tests",
            ]
        )
        suggestions = ["Write tests for the new code", "Debug failures as they appear"]
        return output, suggestions, "debugging", {}
