"""JSON persistence for the auto-switch policy and dispatcher state.

Files live in a single storage directory:

- ``policy.json``: the ``AutoSwitchPolicy`` in effect
- ``state.json``: session histories and learned patterns, as produced by
  ``ModeDispatcher.export_state``
"""

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .config.models import AutoSwitchPolicy
from .engine_logging import get_logger

if TYPE_CHECKING:
    from .dispatch.dispatcher import ModeDispatcher

logger = get_logger("persistence")


class EnginePersistence:
    """Saves and loads engine policy and state as JSON files."""

    POLICY_FILE = "policy.json"
    STATE_FILE = "state.json"

    def __init__(self, storage_dir: Path | str):
        """Initialize persistence with storage directory.

        Args:
            storage_dir: Directory to store engine files.
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    @property
    def policy_path(self) -> Path:
        return self.storage_dir / self.POLICY_FILE

    @property
    def state_path(self) -> Path:
        return self.storage_dir / self.STATE_FILE

    def save_policy(self, policy: AutoSwitchPolicy) -> Path:
        """Save the auto-switch policy.

        Returns:
            Path where the policy was saved.
        """
        return self._write(self.policy_path, policy.model_dump())

    def load_policy(self) -> AutoSwitchPolicy | None:
        """Load the saved auto-switch policy.

        Returns:
            The policy, or None if none was saved or the file is unusable.
        """
        data = self._read(self.policy_path)
        if data is None:
            return None
        try:
            return AutoSwitchPolicy(**data)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid saved policy: {e}")
            return None

    def save_state(self, dispatcher: "ModeDispatcher") -> Path:
        """Save session histories and learned patterns.

        Returns:
            Path where the state was saved.
        """
        state = dispatcher.export_state()
        path = self._write(self.state_path, state)
        logger.debug(f"Saved state for {len(state['sessions'])} sessions to {path}")
        return path

    def load_state(self) -> dict[str, Any] | None:
        """Load a saved state snapshot.

        Returns:
            The snapshot dict, or None if none was saved or it is unusable.
        """
        return self._read(self.state_path)

    def clear(self) -> bool:
        """Delete saved policy and state.

        Returns:
            True if any file was deleted.
        """
        deleted = False
        for path in (self.policy_path, self.state_path):
            if path.exists():
                path.unlink()
                deleted = True
        return deleted

    def _write(self, path: Path, data: dict[str, Any]) -> Path:
        # Write then rename so readers never see a partial file
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(path)
        return path

    def _read(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: expected a JSON object")
            return None
        return data


__all__ = ["EnginePersistence"]
