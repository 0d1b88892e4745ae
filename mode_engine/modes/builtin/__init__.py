"""Built-in cognitive modes.

``BUILTIN_MODES`` is the static registration table used by
``create_default_registry``. Order matters: it is the final tie-breaker
during selection.
"""

from .analytical import ResearchingMode, SummarizingMode
from .general import BrainstormingMode, DebuggingMode, ThinkingMode
from .structural import ArchitectingMode, ImplementingMode, OrganizingMode, RefactoringMode

BUILTIN_MODES = (
    ThinkingMode,
    SummarizingMode,
    ResearchingMode,
    OrganizingMode,
    ArchitectingMode,
    RefactoringMode,
    ImplementingMode,
    BrainstormingMode,
    DebuggingMode,
)

__all__ = [
    "BUILTIN_MODES",
    "ArchitectingMode",
    "BrainstormingMode",
    "DebuggingMode",
    "ImplementingMode",
    "OrganizingMode",
    "RefactoringMode",
    "ResearchingMode",
    "SummarizingMode",
    "ThinkingMode",
]
