"""Usage pattern learning for mode recommendations.

Records the sequences of modes sessions move through and recommends the
mode that usually follows the current one. Only used when the auto-switch
policy has ``learning_enabled`` set.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

MIN_SEQUENCE = 2
MAX_SEQUENCE = 4
RECENT_WINDOW = 10
MAX_RECOMMENDATIONS = 3
MAX_PATTERN_CONFIDENCE = 0.9
FEEDBACK_WINDOW = 100

# Feedback moves a pattern's success rate 10% toward 1.0 or 0.0
FEEDBACK_DECAY = 0.9
MIN_SUCCESS = 0.1
MAX_SUCCESS = 1.0


@dataclass
class UsagePattern:
    """A mode sequence, how often it has been seen and how well it served."""

    sequence: tuple[str, ...]
    frequency: int = 1
    last_used: float = field(default_factory=time.time)
    success: float = MAX_SUCCESS

    @property
    def confidence(self) -> float:
        return min(self.frequency / 10, MAX_PATTERN_CONFIDENCE) * self.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": list(self.sequence),
            "frequency": self.frequency,
            "last_used": self.last_used,
            "success": round(self.success, 3),
        }


@dataclass(frozen=True)
class Recommendation:
    """A suggested next mode."""

    mode_id: str
    confidence: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode_id": self.mode_id,
            "confidence": round(self.confidence, 3),
            "reason": self.reason,
        }


class UsagePatternLearner:
    """Learns mode sequences of length 2-4 from session transitions."""

    def __init__(self, max_patterns: int = 500):
        self.max_patterns = max_patterns
        self._patterns: dict[tuple[str, ...], UsagePattern] = {}
        self._recent: dict[str, list[str]] = {}
        self._feedback: deque[tuple[str, bool]] = deque(maxlen=FEEDBACK_WINDOW)
        self._lock = Lock()

    def record_transition(self, session_id: str, mode_id: str) -> None:
        """Record that ``session_id`` moved into ``mode_id``."""
        with self._lock:
            recent = self._recent.setdefault(session_id, [])
            recent.append(mode_id)
            del recent[:-RECENT_WINDOW]

            now = time.time()
            # Only sequences ending at the new mode are new observations
            for length in range(MIN_SEQUENCE, MAX_SEQUENCE + 1):
                if len(recent) < length:
                    break
                sequence = tuple(recent[-length:])
                pattern = self._patterns.get(sequence)
                if pattern is not None:
                    pattern.frequency += 1
                    pattern.last_used = now
                else:
                    self._patterns[sequence] = UsagePattern(sequence, last_used=now)

            self._prune()

    def forget_session(self, session_id: str) -> None:
        with self._lock:
            self._recent.pop(session_id, None)

    def recommend(self, recent_modes: list[str]) -> list[Recommendation]:
        """Recommend next modes for a session's recent mode sequence.

        Args:
            recent_modes: Recent mode ids, oldest first

        Returns:
            Up to three recommendations, most confident first
        """
        best: dict[str, Recommendation] = {}
        with self._lock:
            patterns = list(self._patterns.values())

        for pattern in patterns:
            prefix = pattern.sequence[:-1]
            if len(recent_modes) < len(prefix):
                continue
            if tuple(recent_modes[-len(prefix) :]) != prefix:
                continue

            next_mode = pattern.sequence[-1]
            confidence = pattern.confidence
            current = best.get(next_mode)
            if current is None or confidence > current.confidence:
                best[next_mode] = Recommendation(
                    mode_id=next_mode,
                    confidence=confidence,
                    reason=(
                        f"Pattern match: {' -> '.join(pattern.sequence)} "
                        f"(used {pattern.frequency} times)"
                    ),
                )

        ranked = sorted(best.values(), key=lambda r: (-r.confidence, r.mode_id))
        return ranked[:MAX_RECOMMENDATIONS]

    def record_feedback(self, mode_id: str, was_correct: bool) -> int:
        """Record whether choosing ``mode_id`` was right.

        Every learned sequence ending at ``mode_id`` has its success rate
        nudged toward 1.0 (correct) or 0.0 (wrong), within [0.1, 1.0].

        Returns:
            Number of patterns updated
        """
        updated = 0
        with self._lock:
            self._feedback.append((mode_id, was_correct))
            for pattern in self._patterns.values():
                if pattern.sequence[-1] != mode_id:
                    continue
                success = pattern.success * FEEDBACK_DECAY
                if was_correct:
                    success += 1 - FEEDBACK_DECAY
                pattern.success = max(MIN_SUCCESS, min(MAX_SUCCESS, success))
                updated += 1
        return updated

    def accuracy(self) -> float | None:
        """Share of recent feedback that was positive, None without feedback."""
        with self._lock:
            if not self._feedback:
                return None
            positive = sum(1 for _, correct in self._feedback if correct)
            return positive / len(self._feedback)

    def patterns(self) -> list[UsagePattern]:
        """Snapshot of learned patterns, most frequent first."""
        with self._lock:
            items = list(self._patterns.values())
        return sorted(items, key=lambda p: (-p.frequency, p.sequence))

    def restore(self, patterns: list[dict[str, Any]]) -> int:
        """Merge previously exported patterns; returns the number loaded."""
        loaded = 0
        with self._lock:
            for item in patterns:
                sequence = tuple(item.get("sequence", ()))
                if not MIN_SEQUENCE <= len(sequence) <= MAX_SEQUENCE:
                    continue
                pattern = self._patterns.get(sequence)
                if pattern is None:
                    pattern = UsagePattern(sequence, frequency=0, last_used=0.0)
                    self._patterns[sequence] = pattern
                pattern.frequency += int(item.get("frequency", 1))
                pattern.last_used = max(
                    pattern.last_used, float(item.get("last_used", 0.0))
                )
                if "success" in item:
                    pattern.success = max(
                        MIN_SUCCESS, min(MAX_SUCCESS, float(item["success"]))
                    )
                loaded += 1
            self._prune()
        return loaded

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()
            self._recent.clear()
            self._feedback.clear()

    def _prune(self) -> None:
        """Drop the least used patterns over the limit. Caller holds the lock."""
        overflow = len(self._patterns) - self.max_patterns
        if overflow <= 0:
            return
        victims = sorted(
            self._patterns.values(), key=lambda p: (p.frequency, p.last_used)
        )[:overflow]
        for pattern in victims:
            del self._patterns[pattern.sequence]


__all__ = [
    "Recommendation",
    "UsagePattern",
    "UsagePatternLearner",
]
