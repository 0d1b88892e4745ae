"""Tests for the mode registry and per-mode session slots."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from mode_engine.analytics.events import ModeEventType, RecordingEventSink
from mode_engine.errors import DuplicateModeError, ErrorKind, ModeNotFoundError
from mode_engine.modes.base import (
    FitnessResult,
    ModeCategory,
    ModeDefinition,
    ModePlugin,
    ModeResult,
)
from mode_engine.modes.builtin import BUILTIN_MODES
from mode_engine.modes.registry import (
    ModeRegistry,
    ModeView,
    SessionSlots,
    create_default_registry,
)


class StubMode(ModePlugin):
    """Plugin with a caller-supplied definition."""

    def __init__(self, mode_id, category=ModeCategory.ANALYTICAL, capacity=10):
        super().__init__()
        self._definition = ModeDefinition(
            mode_id=mode_id,
            name=mode_id.title(),
            category=category,
            max_concurrent_sessions=capacity,
        )

    @property
    def definition(self):
        return self._definition

    def can_handle(self, input_text, context):
        return FitnessResult(0.5)

    def activate(self, context):
        pass

    def process(self, input_text, context):
        return ModeResult(success=True)

    def deactivate(self, session_id):
        pass


@pytest.fixture
def registry() -> ModeRegistry:
    registry = ModeRegistry()
    registry.register(StubMode("alpha", ModeCategory.ANALYTICAL))
    registry.register(StubMode("beta", ModeCategory.CREATIVE))
    registry.register(StubMode("gamma", ModeCategory.ANALYTICAL))
    return registry


class TestRegistration:
    """Test plugin registration."""

    def test_register_and_get(self, registry):
        assert len(registry) == 3
        assert "alpha" in registry
        assert registry.get("alpha").mode_id == "alpha"

    def test_duplicate_rejected(self, registry):
        with pytest.raises(DuplicateModeError) as exc_info:
            registry.register(StubMode("alpha"))
        assert exc_info.value.kind == ErrorKind.DUPLICATE_MODE
        assert exc_info.value.mode_id == "alpha"
        assert len(registry) == 3

    def test_register_all_counts(self):
        registry = ModeRegistry()
        count = registry.register_all([StubMode("a"), StubMode("b")])
        assert count == 2

    def test_registration_order(self, registry):
        assert registry.registration_order("alpha") == 0
        assert registry.registration_order("gamma") == 2

    def test_frozen_rejects_registration(self, registry):
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RuntimeError):
            registry.register(StubMode("delta"))

    def test_registered_event_published(self):
        sink = RecordingEventSink()
        registry = ModeRegistry(events=sink)
        registry.register(StubMode("alpha"))

        events = sink.of_type(ModeEventType.REGISTERED)
        assert [e.mode_id for e in events] == ["alpha"]
        assert events[0].payload["category"] == "analytical"


class TestLookup:
    """Test lookups and read-only views."""

    def test_get_unknown_returns_none(self, registry):
        assert registry.get("missing") is None

    def test_require_unknown_raises(self, registry):
        with pytest.raises(ModeNotFoundError) as exc_info:
            registry.require("missing")
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_all_in_registration_order(self, registry):
        assert registry.all().ids() == ["alpha", "beta", "gamma"]

    def test_view_is_restartable(self, registry):
        view = registry.all()
        assert [p.mode_id for p in view] == [p.mode_id for p in view]
        assert len(view) == 3

    @pytest.mark.parametrize(
        "category,expected",
        [
            (ModeCategory.ANALYTICAL, ["alpha", "gamma"]),
            ("creative", ["beta"]),
            (ModeCategory.LEARNING, []),
        ],
    )
    def test_by_category(self, registry, category, expected):
        view = registry.by_category(category)
        assert view.ids() == expected
        assert bool(view) == bool(expected)

    def test_unknown_category_string_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.by_category("nonsense")

    def test_definitions_are_tuple(self, registry):
        definitions = registry.definitions()
        assert isinstance(definitions, tuple)
        assert [d.mode_id for d in definitions] == ["alpha", "beta", "gamma"]

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("alp", ["alpha"]),
            ("  BETA ", ["beta"]),
            ("a", ["alpha", "beta", "gamma"]),
            ("missing", []),
        ],
    )
    def test_search(self, registry, query, expected):
        assert registry.search(query).ids() == expected

    def test_view_over_empty_tuple(self):
        view = ModeView(())
        assert list(view) == []
        assert not view
        assert view.definitions() == ()


class TestSessionSlots:
    """Test per-mode capacity accounting."""

    @pytest.fixture
    def slots(self) -> SessionSlots:
        slots = SessionSlots()
        slots.add_mode(StubMode("alpha", capacity=2).definition)
        return slots

    def test_acquire_until_capacity(self, slots):
        assert slots.try_acquire("alpha", "s1")
        assert slots.try_acquire("alpha", "s2")
        assert not slots.try_acquire("alpha", "s3")
        assert slots.active_count("alpha") == 2

    def test_acquire_idempotent_per_session(self, slots):
        assert slots.try_acquire("alpha", "s1")
        assert slots.try_acquire("alpha", "s1")
        assert slots.active_count("alpha") == 1

    def test_release(self, slots):
        slots.try_acquire("alpha", "s1")
        assert slots.release("alpha", "s1")
        assert not slots.release("alpha", "s1")
        assert not slots.holds("alpha", "s1")
        assert slots.snapshot() == {"alpha": 0}

    def test_concurrent_acquire_never_exceeds_capacity(self):
        slots = SessionSlots()
        slots.add_mode(StubMode("alpha", capacity=5).definition)

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(
                executor.map(
                    lambda i: slots.try_acquire("alpha", f"s{i}"), range(100)
                )
            )

        assert sum(results) == 5
        assert slots.active_count("alpha") == 5


class TestDefaultRegistry:
    """Test the built-in registry factory."""

    def test_contains_all_builtin_modes(self):
        registry = create_default_registry()
        assert len(registry) == len(BUILTIN_MODES)
        assert registry.frozen

    def test_builtin_ids_unique(self):
        ids = [mode_class.DEFINITION.mode_id for mode_class in BUILTIN_MODES]
        assert len(ids) == len(set(ids))

    def test_events_shared_with_plugins(self):
        sink = RecordingEventSink()
        registry = create_default_registry(events=sink)
        assert sink.count(ModeEventType.REGISTERED) == len(BUILTIN_MODES)
        assert all(plugin.events is sink for plugin in registry.all())
