"""Aggregate mode statistics computed on demand from session histories."""

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..dispatch.session import SessionState

MOST_USED_LIMIT = 5
SEQUENCE_LENGTH = 3
SEQUENCE_LIMIT = 5


@dataclass
class ModeStatistics:
    """Read-only summary across all known sessions.

    Attributes:
        total_modes: Registered mode count
        total_mode_changes: History entries across all sessions
        average_confidence: Mean activation confidence over those entries
        most_used_modes: (mode_id, count), most used first
        current_mode: Active mode of the default or most recent session
        current_session: Session that ``current_mode`` refers to
        active_sessions: Sessions with an active mode
        active_by_mode: Active session count per mode
        common_sequences: Frequent consecutive mode sequences
    """

    total_modes: int = 0
    total_mode_changes: int = 0
    average_confidence: float = 0.0
    most_used_modes: list[tuple[str, int]] = field(default_factory=list)
    current_mode: str | None = None
    current_session: str | None = None
    active_sessions: int = 0
    active_by_mode: dict[str, int] = field(default_factory=dict)
    common_sequences: list[tuple[tuple[str, ...], int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_modes": self.total_modes,
            "total_mode_changes": self.total_mode_changes,
            "average_confidence": round(self.average_confidence, 3),
            "most_used_modes": [
                {"mode": mode_id, "count": count}
                for mode_id, count in self.most_used_modes
            ],
            "current_mode": self.current_mode,
            "current_session": self.current_session,
            "active_sessions": self.active_sessions,
            "active_by_mode": dict(self.active_by_mode),
            "common_sequences": [
                {"sequence": list(seq), "frequency": freq}
                for seq, freq in self.common_sequences
            ],
        }


def rank_counts(counter: Counter, limit: int) -> list[tuple[Any, int]]:
    """Most common items, count descending then key ascending."""
    return sorted(counter.items(), key=lambda item: (-item[1], item[0]))[:limit]


def build_statistics(
    sessions: list["SessionState"],
    total_modes: int,
    active_by_mode: dict[str, int],
    default_session_id: str | None = None,
) -> ModeStatistics:
    """Compute statistics from session histories.

    Each session's lock is taken briefly while its history is copied.

    Args:
        sessions: Known sessions
        total_modes: Number of registered modes
        active_by_mode: Active session count per mode
        default_session_id: Session preferred for ``current_mode``

    Returns:
        ModeStatistics snapshot
    """
    usage: Counter = Counter()
    sequences: Counter = Counter()
    total_changes = 0
    total_confidence = 0.0
    active_sessions = 0
    default_state = None
    latest_state = None
    latest_touch = float("-inf")
    current_modes: dict[str, str | None] = {}

    for state in sessions:
        with state.lock:
            entries = state.history_snapshot()
            current_modes[state.session_id] = state.current_mode
            touched = state.last_touched

        if current_modes[state.session_id] is not None:
            active_sessions += 1

        total_changes += len(entries)
        total_confidence += sum(e.confidence for e in entries)
        mode_ids = [e.mode_id for e in entries]
        usage.update(mode_ids)
        for i in range(len(mode_ids) - SEQUENCE_LENGTH + 1):
            sequences[tuple(mode_ids[i : i + SEQUENCE_LENGTH])] += 1

        if state.session_id == default_session_id:
            default_state = state
        if touched > latest_touch:
            latest_touch = touched
            latest_state = state

    reported = default_state or latest_state
    return ModeStatistics(
        total_modes=total_modes,
        total_mode_changes=total_changes,
        average_confidence=total_confidence / total_changes if total_changes else 0.0,
        most_used_modes=rank_counts(usage, MOST_USED_LIMIT),
        current_mode=current_modes.get(reported.session_id) if reported else None,
        current_session=reported.session_id if reported else None,
        active_sessions=active_sessions,
        active_by_mode={k: v for k, v in active_by_mode.items() if v},
        common_sequences=rank_counts(sequences, SEQUENCE_LIMIT),
    )


__all__ = [
    "ModeStatistics",
    "build_statistics",
    "rank_counts",
]
