"""Session state, mode selection and the dispatcher."""

from .dispatcher import MANUAL_CONFIDENCE, ModeDispatcher, create_dispatcher
from .result import DispatchResult
from .selection import ScoredCandidate, select_winner, should_auto_switch
from .session import HistoryEntry, SessionState, SessionStore, TriggerKind
from .worker import PluginCall

__all__ = [
    "MANUAL_CONFIDENCE",
    "DispatchResult",
    "HistoryEntry",
    "ModeDispatcher",
    "PluginCall",
    "ScoredCandidate",
    "SessionState",
    "SessionStore",
    "TriggerKind",
    "create_dispatcher",
    "select_winner",
    "should_auto_switch",
]
