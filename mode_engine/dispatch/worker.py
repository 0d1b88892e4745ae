"""Plugin calls on dedicated daemon threads.

Each call gets its own thread, so a plugin that never returns only holds
its own thread. Nothing is queued behind it, and the caller's wait starts
when the call starts running.
"""

import threading
from collections.abc import Callable
from typing import Any


class PluginCall:
    """A single plugin call running on its own daemon thread.

    Example:
        call = PluginCall(plugin.process, text, context).start()
        if call.wait(timeout=5.0):
            result = call.result()
    """

    def __init__(self, fn: Callable[..., Any], *args: Any, name: str = "mode-call"):
        self._fn = fn
        self._args = args
        self._result: Any = None
        self._error: BaseException | None = None
        self._done = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> "PluginCall":
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            self._result = self._fn(*self._args)
        except Exception as e:
            self._error = e
        finally:
            self._done.set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the call to finish.

        Returns:
            True if the call finished within ``timeout``
        """
        return self._done.wait(timeout)

    def result(self) -> Any:
        """Return the call's value, re-raising its exception if it failed."""
        if not self.done:
            raise RuntimeError("Plugin call has not finished")
        if self._error is not None:
            raise self._error
        return self._result


__all__ = ["PluginCall"]
