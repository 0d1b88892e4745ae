"""Per-session mode state and bounded transition history.

Each session has at most one active mode. Its history is an ordered,
size-bounded sequence of ``HistoryEntry`` records; only the newest entry
may be open (no end time), and it always belongs to the active mode.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock, RLock
from typing import Any

DEFAULT_HISTORY_LIMIT = 50


class TriggerKind(Enum):
    """What caused a mode to become active."""

    MANUAL = "manual"
    AUTOMATIC = "automatic"


@dataclass
class HistoryEntry:
    """One period during which a mode was active for a session.

    Attributes:
        mode_id: Mode that was active
        started_at: Activation time (epoch seconds)
        trigger: Manual or automatic activation
        confidence: Confidence at activation
        ended_at: Deactivation time, None while active
        duration: Seconds active, None while active
    """

    mode_id: str
    started_at: float
    trigger: TriggerKind
    confidence: float = 0.0
    ended_at: float | None = None
    duration: float | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def close(self, ended_at: float) -> None:
        """Record the end of this entry."""
        self.ended_at = ended_at
        self.duration = max(0.0, ended_at - self.started_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mode_id": self.mode_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration": self.duration,
            "trigger": self.trigger.value,
            "confidence": round(self.confidence, 3),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        """Create HistoryEntry from dictionary."""
        return cls(
            mode_id=data["mode_id"],
            started_at=data["started_at"],
            trigger=TriggerKind(data.get("trigger", "automatic")),
            confidence=data.get("confidence", 0.0),
            ended_at=data.get("ended_at"),
            duration=data.get("duration"),
        )


@dataclass
class SessionState:
    """Mode state for one conversation session.

    All mutation happens while holding ``lock``, which the dispatcher
    holds for the whole selection-switch-process sequence.
    """

    session_id: str
    history_limit: int = DEFAULT_HISTORY_LIMIT
    current_mode: str | None = None
    activated_at: float | None = None
    confidence_at_activation: float = 0.0
    last_touched: float = field(default_factory=time.time)
    history: deque = field(init=False, repr=False)
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.history = deque(maxlen=self.history_limit)

    @property
    def current_entry(self) -> HistoryEntry | None:
        """The open history entry, if a mode is active."""
        if self.history and self.history[-1].is_open:
            return self.history[-1]
        return None

    def open_entry(
        self,
        mode_id: str,
        started_at: float,
        trigger: TriggerKind,
        confidence: float,
    ) -> HistoryEntry:
        """Mark ``mode_id`` active and append its history entry.

        The caller must have closed the previous entry first.
        """
        if self.current_entry is not None:
            raise RuntimeError(
                f"Session {self.session_id} already has an active entry "
                f"for {self.current_entry.mode_id}"
            )

        entry = HistoryEntry(
            mode_id=mode_id,
            started_at=started_at,
            trigger=trigger,
            confidence=confidence,
        )
        # deque(maxlen) evicts the oldest entry when full
        self.history.append(entry)
        self.current_mode = mode_id
        self.activated_at = started_at
        self.confidence_at_activation = confidence
        return entry

    def close_current(self, ended_at: float) -> HistoryEntry | None:
        """Close the open entry and clear the active mode."""
        entry = self.current_entry
        if entry is not None:
            entry.close(ended_at)
        self.current_mode = None
        self.activated_at = None
        self.confidence_at_activation = 0.0
        return entry

    def history_snapshot(self) -> list[HistoryEntry]:
        """Copies of the history entries, oldest first."""
        return [
            HistoryEntry(
                mode_id=e.mode_id,
                started_at=e.started_at,
                trigger=e.trigger,
                confidence=e.confidence,
                ended_at=e.ended_at,
                duration=e.duration,
            )
            for e in self.history
        ]

    def recent_modes(self, limit: int = 5) -> list[str]:
        """Mode ids of the last ``limit`` entries, oldest first."""
        return [e.mode_id for e in list(self.history)[-limit:]]

    def touch(self, at: float) -> None:
        self.last_touched = at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "current_mode": self.current_mode,
            "activated_at": self.activated_at,
            "confidence_at_activation": self.confidence_at_activation,
            "last_touched": self.last_touched,
            "history": [e.to_dict() for e in self.history],
        }


class SessionStore:
    """Lazily created session states keyed by id.

    The store lock only guards the mapping; dispatch work for a session is
    serialized on that session's own lock.
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.history_limit = history_limit
        self._sessions: dict[str, SessionState] = {}
        self._lock = Lock()

    def get(self, session_id: str) -> SessionState | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> SessionState:
        with self._lock:
            state = self._sessions.get(session_id)
            if state is None:
                state = SessionState(
                    session_id=session_id, history_limit=self.history_limit
                )
                self._sessions[session_id] = state
            return state

    def evict(self, session_id: str) -> SessionState | None:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def sessions(self) -> list[SessionState]:
        """Snapshot of all known sessions."""
        with self._lock:
            return list(self._sessions.values())

    def most_recent(self) -> SessionState | None:
        """The most recently touched session."""
        sessions = self.sessions()
        if not sessions:
            return None
        return max(sessions, key=lambda s: s.last_touched)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "HistoryEntry",
    "SessionState",
    "SessionStore",
    "TriggerKind",
]
