"""Event plumbing, statistics and usage learning for the mode engine."""

from .events import (
    CompositeEventSink,
    EventSink,
    LoggingEventSink,
    ModeEvent,
    ModeEventType,
    NullEventSink,
    RecordingEventSink,
)
from .learning import Recommendation, UsagePattern, UsagePatternLearner
from .statistics import ModeStatistics, build_statistics

__all__ = [
    "CompositeEventSink",
    "EventSink",
    "LoggingEventSink",
    "ModeEvent",
    "ModeEventType",
    "ModeStatistics",
    "NullEventSink",
    "Recommendation",
    "RecordingEventSink",
    "UsagePattern",
    "UsagePatternLearner",
    "build_statistics",
]
