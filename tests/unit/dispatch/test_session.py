"""Tests for session state and bounded history."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from mode_engine.dispatch.session import (
    HistoryEntry,
    SessionState,
    SessionStore,
    TriggerKind,
)


class TestHistoryEntry:
    """Test HistoryEntry lifecycle and serialization."""

    def test_open_until_closed(self):
        entry = HistoryEntry("alpha", started_at=100.0, trigger=TriggerKind.MANUAL)
        assert entry.is_open
        entry.close(112.5)
        assert not entry.is_open
        assert entry.duration == 12.5

    def test_duration_never_negative(self):
        entry = HistoryEntry("alpha", started_at=100.0, trigger=TriggerKind.AUTOMATIC)
        entry.close(90.0)
        assert entry.duration == 0.0

    def test_dict_round_trip(self):
        entry = HistoryEntry(
            "alpha", started_at=1.0, trigger=TriggerKind.MANUAL, confidence=0.75
        )
        entry.close(3.0)
        restored = HistoryEntry.from_dict(entry.to_dict())
        assert restored == entry

    def test_from_dict_defaults(self):
        entry = HistoryEntry.from_dict({"mode_id": "alpha", "started_at": 5.0})
        assert entry.trigger == TriggerKind.AUTOMATIC
        assert entry.is_open


class TestSessionState:
    """Test active mode bookkeeping."""

    @pytest.fixture
    def state(self) -> SessionState:
        return SessionState("s1", history_limit=3)

    def test_new_session_has_no_mode(self, state):
        assert state.current_mode is None
        assert state.current_entry is None
        assert state.history_snapshot() == []

    def test_open_entry_sets_current(self, state):
        state.open_entry("alpha", 10.0, TriggerKind.AUTOMATIC, 0.6)
        assert state.current_mode == "alpha"
        assert state.activated_at == 10.0
        assert state.confidence_at_activation == 0.6
        assert state.current_entry.mode_id == "alpha"

    def test_open_entry_twice_rejected(self, state):
        state.open_entry("alpha", 10.0, TriggerKind.AUTOMATIC, 0.6)
        with pytest.raises(RuntimeError):
            state.open_entry("beta", 11.0, TriggerKind.AUTOMATIC, 0.7)

    def test_close_current(self, state):
        state.open_entry("alpha", 10.0, TriggerKind.AUTOMATIC, 0.6)
        entry = state.close_current(15.0)
        assert entry.duration == 5.0
        assert state.current_mode is None
        assert state.confidence_at_activation == 0.0

    def test_close_without_active_mode(self, state):
        assert state.close_current(1.0) is None

    def test_history_bounded_oldest_dropped(self, state):
        for i, mode_id in enumerate(["a", "b", "c", "d", "e"]):
            state.open_entry(mode_id, float(i), TriggerKind.AUTOMATIC, 0.5)
            if mode_id != "e":
                state.close_current(float(i) + 0.5)

        history = state.history_snapshot()
        assert [e.mode_id for e in history] == ["c", "d", "e"]
        assert history[-1].is_open
        assert all(not e.is_open for e in history[:-1])

    def test_snapshot_is_a_copy(self, state):
        state.open_entry("alpha", 10.0, TriggerKind.AUTOMATIC, 0.6)
        snapshot = state.history_snapshot()
        snapshot[0].close(20.0)
        assert state.current_entry.is_open

    def test_recent_modes(self, state):
        for i, mode_id in enumerate(["a", "b", "c"]):
            state.open_entry(mode_id, float(i), TriggerKind.AUTOMATIC, 0.5)
            state.close_current(float(i) + 0.5)
        assert state.recent_modes(limit=2) == ["b", "c"]

    def test_to_dict(self, state):
        state.open_entry("alpha", 10.0, TriggerKind.MANUAL, 1.0)
        data = state.to_dict()
        assert data["current_mode"] == "alpha"
        assert data["history"][0]["trigger"] == "manual"


class TestSessionStore:
    """Test lazy session creation and eviction."""

    def test_get_or_create_reuses_state(self):
        store = SessionStore(history_limit=7)
        first = store.get_or_create("s1")
        assert store.get_or_create("s1") is first
        assert first.history_limit == 7
        assert len(store) == 1
        assert "s1" in store

    def test_get_unknown(self):
        assert SessionStore().get("missing") is None

    def test_evict(self):
        store = SessionStore()
        state = store.get_or_create("s1")
        assert store.evict("s1") is state
        assert store.evict("s1") is None
        assert "s1" not in store

    def test_most_recent(self):
        store = SessionStore()
        store.get_or_create("s1").touch(5.0)
        store.get_or_create("s2").touch(9.0)
        assert store.most_recent().session_id == "s2"

    def test_most_recent_empty(self):
        assert SessionStore().most_recent() is None

    def test_concurrent_creation_single_state(self):
        store = SessionStore()
        with ThreadPoolExecutor(max_workers=8) as executor:
            states = list(executor.map(lambda _: store.get_or_create("s1"), range(50)))
        assert all(state is states[0] for state in states)
