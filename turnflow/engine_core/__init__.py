"""
Engine Core - Flow interpretation and action execution.

The engine is the runtime that:
1. Walks a FlowDefinition, pausing at action steps
2. Decides which actions a player can legally take
3. Validates and executes actions through the host
4. Captures and restores the flow position
"""

from .state import FlowFrame, FlowContext, FlowState, Position, AwaitingPlayer
from .action import ActionResult, SelectionContext, SelectionValidation, ActionValidation
from .executor import ActionExecutor
from .flow_engine import FlowEngine
from .errors import (
    FlowError,
    IterationLimitError,
    NoLegalActionsError,
    NotAwaitingInputError,
    MissingFlowDefinitionError,
    PositionMismatchError,
    ReentrantFlowError,
)

__all__ = [
    "FlowFrame",
    "FlowContext",
    "FlowState",
    "Position",
    "AwaitingPlayer",
    "ActionResult",
    "SelectionContext",
    "SelectionValidation",
    "ActionValidation",
    "ActionExecutor",
    "FlowEngine",
    "FlowError",
    "IterationLimitError",
    "NoLegalActionsError",
    "NotAwaitingInputError",
    "MissingFlowDefinitionError",
    "PositionMismatchError",
    "ReentrantFlowError",
]
