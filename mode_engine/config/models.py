"""Configuration models for the mode dispatch engine.

This module provides the Pydantic models controlling automatic mode
switching and dispatcher limits.
"""

from typing import Any

from pydantic import BaseModel, Field


class AutoSwitchPolicy(BaseModel):
    """Controls whether the dispatcher may replace an active mode on its own.

    Instances are immutable; ``ModeDispatcher.update_auto_switch_policy``
    swaps in a whole new policy so readers always see a consistent snapshot.
    """

    enabled: bool = Field(
        default=True, description="Allow automatic replacement of the active mode"
    )
    threshold: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Confidence gain over the active mode required to switch",
    )
    learning_enabled: bool = Field(
        default=True, description="Learn mode sequences from usage"
    )

    class Config:
        frozen = True

    def with_updates(self, **updates: Any) -> "AutoSwitchPolicy":
        """Return a validated copy with some fields replaced."""
        data = self.model_dump()
        data.update(updates)
        return AutoSwitchPolicy(**data)


class DispatcherConfig(BaseModel):
    """Limits and tuning for the dispatcher."""

    confidence_floor: float = Field(
        default=0.15,
        ge=0.0,
        le=1.0,
        description="Minimum confidence for a mode to be considered",
    )
    history_limit: int = Field(
        default=50, ge=1, le=10000, description="History entries kept per session"
    )
    scoring_timeout_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Aggregate bound on scoring all modes for one input",
    )
    default_session_id: str = Field(
        default="default", description="Session reported by statistics when present"
    )
    pattern_limit: int = Field(
        default=500, ge=1, description="Maximum learned mode sequences"
    )

    class Config:
        extra = "allow"


class EngineSettings(BaseModel):
    """Top-level settings: policy plus dispatcher configuration."""

    policy: AutoSwitchPolicy = Field(default_factory=AutoSwitchPolicy)
    dispatcher: DispatcherConfig = Field(default_factory=DispatcherConfig)

    class Config:
        extra = "allow"


__all__ = [
    "AutoSwitchPolicy",
    "DispatcherConfig",
    "EngineSettings",
]
