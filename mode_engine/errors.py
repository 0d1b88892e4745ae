"""Error taxonomy for the mode dispatch engine.

Registration errors are raised and abort startup. Per-call errors are
caught by the dispatcher and returned to the caller inside a
``DispatchResult`` so that session state is never left half-updated.
"""

from enum import Enum


class ErrorKind(Enum):
    """Classification of engine errors."""

    DUPLICATE_MODE = "duplicate_mode"  # Registration time, fatal
    NOT_FOUND = "not_found"  # Unknown mode id
    NO_APPLICABLE_MODE = "no_applicable_mode"  # Nothing cleared the floor
    CAPACITY_EXCEEDED = "capacity_exceeded"  # Plugin session limit reached
    TIMEOUT = "timeout"  # Plugin call exceeded its bound
    PLUGIN_FAILURE = "plugin_failure"  # Plugin failed or raised


class ModeEngineError(Exception):
    """Base class for all mode engine errors."""

    kind: ErrorKind = ErrorKind.PLUGIN_FAILURE

    def __init__(self, message: str, mode_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.mode_id = mode_id

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "mode_id": self.mode_id,
        }


class DuplicateModeError(ModeEngineError):
    """A mode with the same identifier is already registered."""

    kind = ErrorKind.DUPLICATE_MODE


class ModeNotFoundError(ModeEngineError):
    """The requested mode identifier is not registered."""

    kind = ErrorKind.NOT_FOUND


class NoApplicableModeError(ModeEngineError):
    """No registered mode cleared the confidence floor."""

    kind = ErrorKind.NO_APPLICABLE_MODE


class CapacityExceededError(ModeEngineError):
    """The mode already holds its maximum number of active sessions."""

    kind = ErrorKind.CAPACITY_EXCEEDED


class ModeTimeoutError(ModeEngineError):
    """A plugin call did not finish within the mode's timeout."""

    kind = ErrorKind.TIMEOUT


class PluginFailureError(ModeEngineError):
    """A plugin returned an unsuccessful result or raised.

    When the plugin returned a result, it is kept in ``result``.
    """

    kind = ErrorKind.PLUGIN_FAILURE

    def __init__(self, message: str, mode_id: str | None = None, result=None):
        super().__init__(message, mode_id=mode_id)
        self.result = result


USER_MESSAGES = {
    ErrorKind.DUPLICATE_MODE: "A mode with this name is already installed.",
    ErrorKind.NOT_FOUND: "Unknown mode: {mode_id}.",
    ErrorKind.NO_APPLICABLE_MODE: "No mode could handle this input.",
    ErrorKind.CAPACITY_EXCEEDED: "Mode {mode_id} is busy, try again later.",
    ErrorKind.TIMEOUT: "Mode {mode_id} took too long to respond.",
    ErrorKind.PLUGIN_FAILURE: "Mode {mode_id} failed to process the input.",
}


def describe_error(error: ModeEngineError) -> str:
    """Short human-readable message for the command layer.

    Args:
        error: Engine error to describe

    Returns:
        One-line message classified by error kind
    """
    template = USER_MESSAGES.get(error.kind, "Mode engine error.")
    return template.format(mode_id=error.mode_id or "unknown")


__all__ = [
    "CapacityExceededError",
    "DuplicateModeError",
    "ErrorKind",
    "ModeEngineError",
    "ModeNotFoundError",
    "ModeTimeoutError",
    "NoApplicableModeError",
    "PluginFailureError",
    "describe_error",
]
