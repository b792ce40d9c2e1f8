"""
Action System - Results and contexts for action execution.

All state changes flow through actions. An action either succeeds,
optionally with a message and data for the UI, or fails with an error
message and a machine-readable error code:

- INVALID_ACTION      condition or selection validation failed
- ACTION_UNAVAILABLE  action not offered by the current step
- UNKNOWN_ACTION      no action registered under that name
- EXECUTE_ERROR       the execute callback raised
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any


INVALID_ACTION = "INVALID_ACTION"
ACTION_UNAVAILABLE = "ACTION_UNAVAILABLE"
UNKNOWN_ACTION = "UNKNOWN_ACTION"
EXECUTE_ERROR = "EXECUTE_ERROR"


@dataclass
class ActionResult:
    """Result of performing an action."""
    success: bool
    error: str | None = None
    error_code: str | None = None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def succeeded(cls, message: str | None = None, data: dict[str, Any] | None = None) -> ActionResult:
        """Create a success result."""
        return cls(success=True, message=message, data=data or {})

    @classmethod
    def from_callback(cls, value: Any) -> ActionResult:
        """
        Normalize what an execute callback returned.

        None means success; a dict is read for success / message / data /
        error keys; an ActionResult is passed through.
        """
        if value is None:
            return cls.succeeded()
        if isinstance(value, ActionResult):
            return value
        if isinstance(value, dict):
            success = bool(value.get("success", True))
            return cls(
                success=success,
                error=value.get("error") if not success else None,
                error_code=value.get("error_code") if not success else None,
                message=value.get("message"),
                data=dict(value.get("data") or {}),
            )
        return cls.succeeded(data={"value": value})


@dataclass
class SelectionContext:
    """What choice callbacks, filters, and validators get to see."""
    game: Any
    player: Any
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class SelectionValidation:
    valid: bool
    error: str | None = None


@dataclass
class ActionValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
