"""Registry of installed mode plugins.

Plugins are registered once at startup from a static table. After
``freeze()`` the registry is read-only and safe for unsynchronized
concurrent reads. The only mutable state it carries is the per-plugin
active-session accounting in ``SessionSlots``, where each plugin has its
own lock.
"""

from collections.abc import Callable, Iterable, Iterator
from threading import Lock

from ..analytics.events import EventSink, ModeEventType, NullEventSink
from ..engine_logging import get_logger
from ..errors import DuplicateModeError, ModeNotFoundError
from .base import ModeCategory, ModeDefinition, ModePlugin

logger = get_logger("registry")


class ModeView:
    """Read-only, restartable view over registered plugins.

    Iterating creates a fresh pass each time; the underlying sequence is
    never exposed for mutation.
    """

    def __init__(
        self,
        plugins: tuple[ModePlugin, ...],
        predicate: Callable[[ModePlugin], bool] | None = None,
    ):
        self._plugins = plugins
        self._predicate = predicate

    def __iter__(self) -> Iterator[ModePlugin]:
        for plugin in self._plugins:
            if self._predicate is None or self._predicate(plugin):
                yield plugin

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return any(True for _ in self)

    def definitions(self) -> tuple[ModeDefinition, ...]:
        """Definitions of the viewed plugins."""
        return tuple(plugin.definition for plugin in self)

    def ids(self) -> list[str]:
        return [plugin.mode_id for plugin in self]


class SessionSlots:
    """Per-plugin active-session accounting.

    Each mode has its own lock; check-and-increment is atomic so the
    number of sessions holding a mode never exceeds its limit.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._holders: dict[str, set[str]] = {}
        self._limits: dict[str, int] = {}

    def add_mode(self, definition: ModeDefinition) -> None:
        """Prepare accounting for a newly registered mode."""
        self._locks[definition.mode_id] = Lock()
        self._holders[definition.mode_id] = set()
        self._limits[definition.mode_id] = definition.max_concurrent_sessions

    def try_acquire(self, mode_id: str, session_id: str) -> bool:
        """Reserve a slot on ``mode_id`` for ``session_id``.

        Returns:
            True if the session now holds a slot (or already held one),
            False if the mode is at capacity.
        """
        with self._locks[mode_id]:
            holders = self._holders[mode_id]
            if session_id in holders:
                return True
            if len(holders) >= self._limits[mode_id]:
                return False
            holders.add(session_id)
            return True

    def release(self, mode_id: str, session_id: str) -> bool:
        """Release the slot held by ``session_id``.

        Returns:
            True if a slot was released, False if none was held.
        """
        with self._locks[mode_id]:
            holders = self._holders[mode_id]
            if session_id not in holders:
                return False
            holders.discard(session_id)
            return True

    def active_count(self, mode_id: str) -> int:
        with self._locks[mode_id]:
            return len(self._holders[mode_id])

    def holds(self, mode_id: str, session_id: str) -> bool:
        with self._locks[mode_id]:
            return session_id in self._holders[mode_id]

    def snapshot(self) -> dict[str, int]:
        """Active-session count per mode."""
        return {mode_id: self.active_count(mode_id) for mode_id in self._holders}


class ModeRegistry:
    """Holds installed mode plugins keyed by identifier.

    Registration order is preserved and used as the final tie-breaker
    during selection.
    """

    def __init__(self, events: EventSink | None = None):
        self.events = events or NullEventSink()
        self._plugins: dict[str, ModePlugin] = {}
        self._order: dict[str, int] = {}
        self._frozen = False
        self.slots = SessionSlots()

    def register(self, plugin: ModePlugin) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin instance to register

        Raises:
            DuplicateModeError: If a plugin with the same id is registered
            RuntimeError: If the registry has been frozen
        """
        if self._frozen:
            raise RuntimeError("Mode registry is frozen; register modes at startup")

        definition = plugin.definition
        if definition.mode_id in self._plugins:
            raise DuplicateModeError(
                f"Mode {definition.mode_id} is already registered",
                mode_id=definition.mode_id,
            )

        self._order[definition.mode_id] = len(self._plugins)
        self._plugins[definition.mode_id] = plugin
        self.slots.add_mode(definition)

        self.events.emit(
            ModeEventType.REGISTERED,
            definition.mode_id,
            category=definition.category.value,
            priority=definition.priority,
        )
        logger.debug(f"Registered mode: {definition.mode_id}")

    def register_all(self, plugins: Iterable[ModePlugin]) -> int:
        """Register several plugins; returns the number registered."""
        count = 0
        for plugin in plugins:
            self.register(plugin)
            count += 1
        return count

    def freeze(self) -> None:
        """Make the registry read-only for the rest of the process."""
        self._frozen = True
        logger.info(f"Mode registry ready with {len(self._plugins)} modes")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, mode_id: str) -> ModePlugin | None:
        """Get a plugin by id, or None if not registered."""
        return self._plugins.get(mode_id)

    def require(self, mode_id: str) -> ModePlugin:
        """Get a plugin by id.

        Raises:
            ModeNotFoundError: If the id is not registered
        """
        plugin = self._plugins.get(mode_id)
        if plugin is None:
            raise ModeNotFoundError(f"Mode not found: {mode_id}", mode_id=mode_id)
        return plugin

    def registration_order(self, mode_id: str) -> int:
        return self._order[mode_id]

    def all(self) -> ModeView:
        """All plugins in registration order."""
        return ModeView(tuple(self._plugins.values()))

    def by_category(self, category: ModeCategory | str) -> ModeView:
        """Plugins in a single category, in registration order."""
        category = ModeCategory(category)
        return ModeView(
            tuple(self._plugins.values()),
            predicate=lambda p: p.definition.category == category,
        )

    def search(self, query: str) -> ModeView:
        """Plugins whose id, name, description or keywords contain ``query``."""
        query = query.strip()
        return ModeView(
            tuple(self._plugins.values()),
            predicate=lambda p: p.definition.matches(query),
        )

    def definitions(self) -> tuple[ModeDefinition, ...]:
        return self.all().definitions()

    def __contains__(self, mode_id: str) -> bool:
        return mode_id in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)


def create_default_registry(events: EventSink | None = None) -> ModeRegistry:
    """Build and freeze a registry holding the built-in modes.

    Args:
        events: Sink passed to the registry and to every plugin

    Returns:
        Frozen ModeRegistry
    """
    from .builtin import BUILTIN_MODES

    registry = ModeRegistry(events=events)
    registry.register_all(mode_class(events=events) for mode_class in BUILTIN_MODES)
    registry.freeze()
    return registry


__all__ = [
    "ModeRegistry",
    "ModeView",
    "SessionSlots",
    "create_default_registry",
]
