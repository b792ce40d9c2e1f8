"""
Fatal interpreter errors.

These signal a defect in the game definition or in the host driving the
engine. They are raised immediately and never converted into an
ActionResult; recoverable, player-level failures travel as
ActionResult.failure(...) instead.
"""


class FlowError(Exception):
    """Base class for fatal flow errors."""


class IterationLimitError(FlowError):
    """A Loop / EachPlayer / ForEach ran past its iteration cap."""

    def __init__(self, node_label: str, limit: int):
        self.node_label = node_label
        self.limit = limit
        super().__init__(f"'{node_label}' exceeded its iteration limit of {limit}")


class NoLegalActionsError(FlowError):
    """An action step still needs moves but no action is legal."""

    def __init__(self, node_label: str, moves: int, min_moves: int):
        self.node_label = node_label
        self.moves = moves
        self.min_moves = min_moves
        super().__init__(
            f"Action step '{node_label}' requires {min_moves} move(s), "
            f"{moves} made, and no actions are available"
        )


class NotAwaitingInputError(FlowError):
    """resume() was called while the flow was not waiting for a player."""


class MissingFlowDefinitionError(FlowError):
    """start() or restore() was called on an engine without a flow."""


class PositionMismatchError(FlowError):
    """A stored Position does not fit the flow tree it is restored against."""


class ReentrantFlowError(FlowError):
    """start() / resume() / restore() was called from inside an engine callback."""
