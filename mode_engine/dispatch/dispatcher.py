"""Mode dispatcher: selection, switching and lifecycle for sessions.

For every input the dispatcher scores all registered modes, picks a
winner, decides whether the session should switch to it, drives the
activate / process / deactivate lifecycle, and records history.

Calls for the same session are serialized on the session's lock; calls
for different sessions run in parallel. Plugin calls are bounded by the
mode's timeout and each runs on its own daemon thread, so a hung plugin
never blocks the caller beyond that bound or starves other sessions.
"""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from threading import Lock
from typing import Any

from ..analytics.events import EventSink, ModeEventType, NullEventSink
from ..analytics.learning import UsagePatternLearner
from ..analytics.statistics import ModeStatistics, build_statistics
from ..config.models import AutoSwitchPolicy, DispatcherConfig, EngineSettings
from ..engine_logging import get_logger
from ..errors import (
    CapacityExceededError,
    ModeEngineError,
    ModeTimeoutError,
    NoApplicableModeError,
    PluginFailureError,
)
from ..modes.base import (
    FitnessResult,
    ModeCategory,
    ModeContext,
    ModeDefinition,
    ModePlugin,
    ModeResult,
)
from ..modes.registry import ModeRegistry, create_default_registry
from .result import DispatchResult
from .selection import ScoredCandidate, eligible, should_auto_switch
from .session import HistoryEntry, SessionState, SessionStore, TriggerKind
from .worker import PluginCall

logger = get_logger("dispatcher")

# Confidence recorded for an explicitly requested mode
MANUAL_CONFIDENCE = 1.0


class ModeDispatcher:
    """Coordinates mode selection and lifecycle per session.

    Construct one instance and pass it to callers; there is no module
    level singleton.

    Example:
        registry = create_default_registry()
        dispatcher = ModeDispatcher(registry)
        outcome = dispatcher.process("session-1", "Summarize this report")
        print(outcome.mode_id, outcome.message)
    """

    def __init__(
        self,
        registry: ModeRegistry,
        policy: AutoSwitchPolicy | None = None,
        config: DispatcherConfig | None = None,
        events: EventSink | None = None,
        clock: Callable[[], float] = time.time,
        learner: UsagePatternLearner | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            registry: Registry of installed modes
            policy: Initial auto-switch policy
            config: Dispatcher limits and tuning
            events: Sink for lifecycle and usage events
            clock: Time source (epoch seconds)
            learner: Usage pattern learner
        """
        self.registry = registry
        self.config = config or DispatcherConfig()
        self.events = events or NullEventSink()
        self.sessions = SessionStore(history_limit=self.config.history_limit)
        self.learner = learner or UsagePatternLearner(self.config.pattern_limit)
        self._clock = clock
        self._policy = policy or AutoSwitchPolicy()
        self._policy_lock = Lock()
        self._closed = False

    # --- Policy -----------------------------------------------------------

    @property
    def policy(self) -> AutoSwitchPolicy:
        """Current auto-switch policy snapshot."""
        return self._policy

    def update_auto_switch_policy(
        self, new_policy: AutoSwitchPolicy | dict[str, Any]
    ) -> AutoSwitchPolicy:
        """Replace the auto-switch policy as a whole.

        In-flight dispatch calls keep the snapshot they started with.

        Args:
            new_policy: Complete policy, or a dict of fields to replace

        Returns:
            The policy now in effect
        """
        with self._policy_lock:
            if isinstance(new_policy, dict):
                new_policy = self._policy.with_updates(**new_policy)
            previous = self._policy
            self._policy = new_policy

        self.events.emit(
            ModeEventType.POLICY_UPDATED,
            previous=previous.model_dump(),
            current=new_policy.model_dump(),
        )
        logger.info(
            f"Auto-switch policy updated: enabled={new_policy.enabled}, "
            f"threshold={new_policy.threshold}"
        )
        return new_policy

    # --- Dispatch ---------------------------------------------------------

    def process(
        self,
        session_id: str,
        input_text: str,
        manual_mode_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """Select a mode for the input, switch if warranted, and run it.

        Args:
            session_id: Session identifier supplied by the caller
            input_text: Raw user input
            manual_mode_id: Explicitly requested mode; bypasses confidence
                comparison but not capacity checks
            metadata: Free-form caller metadata passed to plugins

        Returns:
            DispatchResult carrying the mode result or a typed error
        """
        policy = self.policy

        with self._session(session_id) as state:
            now = self._clock()
            state.touch(now)
            context = ModeContext(
                session_id=session_id,
                input_text=input_text,
                timestamp=now,
                previous_mode=self._previous_mode(state),
                metadata=metadata or {},
            )
            try:
                return self._dispatch(state, context, policy, manual_mode_id)
            except ModeEngineError as e:
                self._publish_error(e, session_id, phase="dispatch")
                return DispatchResult(
                    session_id=session_id,
                    mode_id=state.current_mode,
                    error=e,
                )

    def set_mode(
        self,
        session_id: str,
        mode_id: str,
        trigger: TriggerKind | str = TriggerKind.MANUAL,
    ) -> DispatchResult:
        """Explicitly activate a mode for a session without processing input.

        Confidence comparison is bypassed; capacity limits still apply.

        Args:
            session_id: Session identifier
            mode_id: Mode to activate
            trigger: Trigger kind recorded in history

        Returns:
            DispatchResult; on failure the previous mode stays active
        """
        trigger = TriggerKind(trigger)

        with self._session(session_id) as state:
            now = self._clock()
            state.touch(now)
            try:
                plugin = self.registry.require(mode_id)
                if state.current_mode == mode_id:
                    return DispatchResult(
                        session_id=session_id,
                        mode_id=mode_id,
                        confidence=state.confidence_at_activation,
                    )

                context = ModeContext(
                    session_id=session_id,
                    input_text="",
                    timestamp=now,
                    previous_mode=self._previous_mode(state),
                    confidence=MANUAL_CONFIDENCE,
                )
                self._switch(state, plugin, context, trigger, MANUAL_CONFIDENCE)
            except ModeEngineError as e:
                self._publish_error(e, session_id, phase="set_mode")
                return DispatchResult(
                    session_id=session_id, mode_id=state.current_mode, error=e
                )

            if self.policy.learning_enabled:
                self.learner.record_transition(session_id, mode_id)

            return DispatchResult(
                session_id=session_id,
                mode_id=mode_id,
                switched=True,
                trigger=trigger,
                confidence=MANUAL_CONFIDENCE,
                recommendations=self._recommendations(state),
            )

    def end_session(self, session_id: str) -> bool:
        """Deactivate the session's mode and forget the session.

        Returns:
            True if the session existed
        """
        state = self.sessions.get(session_id)
        if state is None:
            return False

        with state.lock:
            if state.current_mode is not None:
                self._retire(state, state.current_mode)
            self.sessions.evict(session_id)

        self.learner.forget_session(session_id)
        self.events.emit(ModeEventType.SESSION_ENDED, session_id=session_id)
        logger.debug(f"Session {session_id} ended")
        return True

    def shutdown(self) -> None:
        """End every session and refuse further calls."""
        if self._closed:
            return
        for state in self.sessions.sessions():
            self.end_session(state.session_id)
        self._closed = True
        logger.info("Mode dispatcher shut down")

    def reset(self) -> int:
        """End every session and forget learned patterns and feedback.

        Unlike ``shutdown`` the dispatcher keeps accepting calls.

        Returns:
            Number of sessions ended
        """
        ended = 0
        for state in self.sessions.sessions():
            if self.end_session(state.session_id):
                ended += 1
        self.learner.clear()
        logger.info(f"Mode dispatcher reset; {ended} sessions ended")
        return ended

    def provide_feedback(
        self, mode_id: str, was_correct: bool, input_text: str | None = None
    ) -> int:
        """Record whether selecting ``mode_id`` was the right call.

        Feedback adjusts the success rate of learned sequences ending at the
        mode, which scales their recommendation confidence. Ignored while
        learning is disabled.

        Args:
            mode_id: Mode the feedback is about
            was_correct: Whether the mode fit the input
            input_text: Input the mode was selected for, if known

        Returns:
            Number of learned patterns updated

        Raises:
            ModeNotFoundError: If the mode is not registered
        """
        self.registry.require(mode_id)
        if not self.policy.learning_enabled:
            return 0

        updated = self.learner.record_feedback(mode_id, was_correct)
        self.events.emit(
            ModeEventType.FEEDBACK,
            mode_id,
            was_correct=was_correct,
            input_text=input_text,
            patterns_updated=updated,
        )
        logger.debug(
            f"Feedback for {mode_id}: correct={was_correct}, {updated} patterns updated"
        )
        return updated

    def __enter__(self) -> "ModeDispatcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    # --- Queries ----------------------------------------------------------

    def get_current_mode(self, session_id: str) -> ModeDefinition | None:
        """Definition of the session's active mode, if any."""
        state = self.sessions.get(session_id)
        if state is None or state.current_mode is None:
            return None
        plugin = self.registry.get(state.current_mode)
        return plugin.definition if plugin else None

    def get_all_modes(self) -> tuple[ModeDefinition, ...]:
        """Definitions of all registered modes in registration order."""
        return self.registry.definitions()

    def get_modes_by_category(
        self, category: ModeCategory | str
    ) -> tuple[ModeDefinition, ...]:
        return self.registry.by_category(category).definitions()

    def search_modes(self, query: str) -> tuple[ModeDefinition, ...]:
        """Modes whose id, name, description or keywords contain ``query``."""
        return self.registry.search(query).definitions()

    def get_mode_history(self, session_id: str) -> list[HistoryEntry]:
        """The session's history, oldest first (empty if unknown)."""
        state = self.sessions.get(session_id)
        if state is None:
            return []
        with state.lock:
            return state.history_snapshot()

    def get_statistics(self) -> ModeStatistics:
        """Aggregate statistics across all known sessions."""
        return build_statistics(
            self.sessions.sessions(),
            total_modes=len(self.registry),
            active_by_mode=self.registry.slots.snapshot(),
            default_session_id=self.config.default_session_id,
        )

    def export_state(self) -> dict[str, Any]:
        """JSON-shaped snapshot of policy, histories and learned patterns."""
        sessions: dict[str, Any] = {}
        for state in self.sessions.sessions():
            with state.lock:
                sessions[state.session_id] = state.to_dict()

        return {
            "policy": self.policy.model_dump(),
            "sessions": sessions,
            "statistics": self.get_statistics().to_dict(),
            "patterns": [p.to_dict() for p in self.learner.patterns()],
        }

    def restore_state(self, data: dict[str, Any]) -> int:
        """Rebuild sessions from an ``export_state`` snapshot.

        Sessions already known to this dispatcher are left alone. A restored
        active mode is activated again and must fit its capacity; otherwise
        its history entry is closed at the restore time.

        Args:
            data: Snapshot produced by ``export_state``

        Returns:
            Number of sessions restored
        """
        restored = 0
        for session_id, payload in data.get("sessions", {}).items():
            with self._session(session_id) as state:
                if state.history or state.current_mode is not None:
                    continue
                self._restore_session(state, payload)
                restored += 1

        if self.policy.learning_enabled:
            self.learner.restore(data.get("patterns", []))

        logger.info(f"Restored {restored} sessions")
        return restored

    # --- Internals --------------------------------------------------------

    @contextmanager
    def _session(self, session_id: str) -> Iterator[SessionState]:
        """Hold the lock of the live state for ``session_id``.

        Retries if the state was evicted while waiting for its lock.
        """
        if self._closed:
            raise RuntimeError("Mode dispatcher has been shut down")
        while True:
            state = self.sessions.get_or_create(session_id)
            with state.lock:
                if self.sessions.get(session_id) is state:
                    yield state
                    return

    @staticmethod
    def _previous_mode(state: SessionState) -> str | None:
        if state.current_mode is not None:
            return state.current_mode
        if state.history:
            return state.history[-1].mode_id
        return None

    def _dispatch(
        self,
        state: SessionState,
        context: ModeContext,
        policy: AutoSwitchPolicy,
        manual_mode_id: str | None,
    ) -> DispatchResult:
        session_id = state.session_id
        current_id = state.current_mode

        if manual_mode_id is not None:
            plugin = self.registry.require(manual_mode_id)
            candidates = {manual_mode_id: MANUAL_CONFIDENCE}
            target: ModePlugin = plugin
            confidence = MANUAL_CONFIDENCE
            trigger = TriggerKind.MANUAL
            switch = manual_mode_id != current_id
        else:
            scored = self._score_all(context)
            candidates = {c.mode_id: c.confidence for c in scored}
            ranked = eligible(scored, self.config.confidence_floor)
            self.events.emit(
                ModeEventType.SCORED,
                ranked[0].mode_id if ranked else None,
                session_id,
                candidates=candidates,
            )
            if not ranked:
                raise NoApplicableModeError(
                    f"No mode reached confidence {self.config.confidence_floor}",
                    mode_id=current_id,
                )

            winner = ranked[0]
            trigger = TriggerKind.AUTOMATIC
            if current_id is None:
                switch = True
            elif winner.mode_id == current_id:
                switch = False
            else:
                switch = should_auto_switch(
                    policy, winner.confidence, state.confidence_at_activation
                )
                if not switch:
                    self.events.emit(
                        ModeEventType.SWITCH_SUPPRESSED,
                        current_id,
                        session_id,
                        candidate=winner.mode_id,
                        candidate_confidence=winner.confidence,
                        active_confidence=state.confidence_at_activation,
                        auto_switch=policy.enabled,
                    )
                    logger.debug(
                        f"Keeping {current_id} for {session_id}: {winner.mode_id} "
                        f"at {winner.confidence:.2f} does not justify a switch"
                    )

            if switch:
                target = winner.plugin
                confidence = winner.confidence
            else:
                target = self.registry.require(current_id)
                confidence = candidates.get(current_id, 0.0)

        if switch:
            self._switch(
                state,
                target,
                context.with_confidence(confidence),
                trigger,
                confidence,
            )
            if policy.learning_enabled:
                self.learner.record_transition(session_id, target.mode_id)

        outcome = DispatchResult(
            session_id=session_id,
            mode_id=target.mode_id,
            switched=switch,
            trigger=trigger if switch else None,
            confidence=confidence,
            candidates=candidates,
        )

        try:
            outcome.result = self._run_process(
                target, context.with_confidence(confidence)
            )
        except ModeEngineError as e:
            # The mode stays recorded as active so the caller can retry
            self._publish_error(e, session_id, phase="process")
            outcome.error = e
            outcome.result = getattr(e, "result", None)

        if policy.learning_enabled:
            outcome.recommendations = self._recommendations(state)
        return outcome

    def _score_all(self, context: ModeContext) -> list[ScoredCandidate]:
        """Score every registered mode concurrently within the aggregate bound."""
        timeout = self.config.scoring_timeout_seconds
        calls = [
            (
                order,
                plugin,
                PluginCall(
                    self._score_one, plugin, context, name=f"mode-score-{plugin.mode_id}"
                ).start(),
            )
            for order, plugin in enumerate(self.registry.all())
        ]

        deadline = time.monotonic() + timeout
        candidates = []
        for order, plugin, call in calls:
            if not call.wait(max(0.0, deadline - time.monotonic())):
                logger.warning(
                    f"Mode {plugin.mode_id} did not finish scoring within "
                    f"{timeout}s; treated as not applicable"
                )
                continue
            candidates.append(
                ScoredCandidate(plugin=plugin, fitness=call.result(), order=order)
            )
        return candidates

    @staticmethod
    def _score_one(plugin: ModePlugin, context: ModeContext) -> FitnessResult:
        try:
            fitness = plugin.can_handle(context.input_text, context)
        except Exception as e:
            logger.warning(f"Mode {plugin.mode_id} failed to score input: {e}")
            return FitnessResult(0.0, (f"Scoring failed: {e}",))

        if not isinstance(fitness, FitnessResult):
            logger.warning(f"Mode {plugin.mode_id} returned an invalid fitness result")
            return FitnessResult(0.0, ("Invalid fitness result",))
        return fitness

    def _switch(
        self,
        state: SessionState,
        plugin: ModePlugin,
        context: ModeContext,
        trigger: TriggerKind,
        confidence: float,
    ) -> None:
        """Make ``plugin`` the session's active mode.

        The incoming mode is activated before the outgoing one is retired,
        so any failure leaves the previous mode active and history intact.

        Raises:
            CapacityExceededError: If the mode holds its maximum sessions
            ModeTimeoutError: If activation timed out
            PluginFailureError: If activation raised
        """
        session_id = state.session_id
        mode_id = plugin.mode_id
        outgoing_id = state.current_mode
        slots = self.registry.slots

        if not slots.try_acquire(mode_id, session_id):
            raise CapacityExceededError(
                f"Mode {mode_id} already has "
                f"{plugin.definition.max_concurrent_sessions} active sessions",
                mode_id=mode_id,
            )

        try:
            self._call_bounded(plugin, "activate", plugin.activate, context)
        except ModeEngineError:
            slots.release(mode_id, session_id)
            raise

        if outgoing_id is not None:
            self._retire(state, outgoing_id)

        started_at = self._clock()
        state.open_entry(mode_id, started_at, trigger, confidence)
        self.events.emit(
            ModeEventType.ACTIVATED,
            mode_id,
            session_id,
            trigger=trigger.value,
            confidence=confidence,
            previous_mode=outgoing_id,
        )
        logger.info(
            f"Mode transition for {session_id}: {outgoing_id or '-'} -> {mode_id} "
            f"({trigger.value}, confidence={confidence:.2f})"
        )

    def _retire(self, state: SessionState, mode_id: str) -> None:
        """Deactivate the session's active mode and close its history entry."""
        session_id = state.session_id
        plugin = self.registry.get(mode_id)

        if plugin is not None:
            try:
                self._call_bounded(plugin, "deactivate", plugin.deactivate, session_id)
            except ModeEngineError as e:
                # Deactivation only flushes plugin state; the move proceeds
                logger.warning(f"Deactivating {mode_id} for {session_id} failed: {e}")
                self._publish_error(e, session_id, phase="deactivate")

        entry = state.close_current(self._clock())
        self.registry.slots.release(mode_id, session_id)
        self.events.emit(
            ModeEventType.DEACTIVATED,
            mode_id,
            session_id,
            duration=entry.duration if entry else None,
        )

    def _restore_session(self, state: SessionState, payload: dict[str, Any]) -> None:
        now = self._clock()
        for item in payload.get("history", []):
            entry = HistoryEntry.from_dict(item)
            if entry.mode_id not in self.registry:
                continue
            if state.current_entry is not None:
                # Only the newest entry may stay open
                state.current_entry.close(entry.started_at)
            state.history.append(entry)
        state.touch(payload.get("last_touched", now))

        entry = state.current_entry
        if entry is None:
            return

        plugin = self.registry.require(entry.mode_id)
        if not self.registry.slots.try_acquire(entry.mode_id, state.session_id):
            logger.warning(
                f"Mode {entry.mode_id} is at capacity; closing restored entry "
                f"for {state.session_id}"
            )
            entry.close(now)
            return

        context = ModeContext(
            session_id=state.session_id,
            input_text="",
            timestamp=now,
            previous_mode=entry.mode_id,
            confidence=entry.confidence,
        )
        try:
            self._call_bounded(plugin, "activate", plugin.activate, context)
        except ModeEngineError as e:
            self.registry.slots.release(entry.mode_id, state.session_id)
            self._publish_error(e, state.session_id, phase="restore")
            entry.close(now)
            return

        state.current_mode = entry.mode_id
        state.activated_at = entry.started_at
        state.confidence_at_activation = entry.confidence

    def _run_process(self, plugin: ModePlugin, context: ModeContext) -> ModeResult:
        result = self._call_bounded(
            plugin, "process", plugin.process, context.input_text, context
        )
        if not isinstance(result, ModeResult):
            raise PluginFailureError(
                f"Mode {plugin.mode_id} returned an invalid result",
                mode_id=plugin.mode_id,
            )
        if not result.success:
            raise PluginFailureError(
                result.error or f"Mode {plugin.mode_id} could not process the input",
                mode_id=plugin.mode_id,
                result=result,
            )

        self.events.emit(
            ModeEventType.PROCESSED,
            plugin.mode_id,
            context.session_id,
            confidence=result.confidence,
            next_mode=result.next_mode,
        )
        return result

    def _call_bounded(
        self,
        plugin: ModePlugin,
        phase: str,
        fn: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """Run a plugin call on its own thread, bounded by the mode timeout.

        The thread may keep running after a timeout; the caller does not
        wait for it.
        """
        timeout = plugin.definition.timeout_seconds
        call = PluginCall(fn, *args, name=f"mode-{phase}-{plugin.mode_id}").start()
        if not call.wait(timeout):
            raise ModeTimeoutError(
                f"Mode {plugin.mode_id} {phase} exceeded {timeout}s",
                mode_id=plugin.mode_id,
            )
        try:
            return call.result()
        except ModeEngineError:
            raise
        except Exception as e:
            raise PluginFailureError(
                f"Mode {plugin.mode_id} failed during {phase}: {e}",
                mode_id=plugin.mode_id,
            ) from e

    def _recommendations(self, state: SessionState):
        return self.learner.recommend(state.recent_modes())

    def _publish_error(
        self, error: ModeEngineError, session_id: str, phase: str
    ) -> None:
        self.events.emit(
            ModeEventType.ERROR,
            error.mode_id,
            session_id,
            kind=error.kind.value,
            message=error.message,
            phase=phase,
        )
        logger.debug(
            f"{phase} failed for {session_id}: [{error.kind.value}] {error.message}"
        )


def create_dispatcher(
    settings: EngineSettings | None = None,
    registry: ModeRegistry | None = None,
    events: EventSink | None = None,
    clock: Callable[[], float] = time.time,
) -> ModeDispatcher:
    """Create a dispatcher wired with the built-in modes.

    Args:
        settings: Engine settings, defaults if omitted
        registry: Registry to use, built-in modes if omitted
        events: Event sink shared by registry, plugins and dispatcher
        clock: Time source

    Returns:
        Configured ModeDispatcher
    """
    settings = settings or EngineSettings()
    if registry is None:
        registry = create_default_registry(events)

    return ModeDispatcher(
        registry,
        policy=settings.policy,
        config=settings.dispatcher,
        events=events,
        clock=clock,
    )


__all__ = [
    "MANUAL_CONFIDENCE",
    "ModeDispatcher",
    "create_dispatcher",
]
