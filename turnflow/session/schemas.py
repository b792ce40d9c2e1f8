"""
Pydantic Schemas - Wire shapes for positions and flow snapshots.

A stored position is only meaningful together with the same flow tree and
the same player seating. Player objects inside the variable table are
written as {"$player": seat} and turned back into players on load.

Example position payload:

    {
        "path": [0, 1, 0],
        "iterations": {"0": 3, "2:moves": 1},
        "playerIndex": 1,
        "variables": {"round": 3, "player": {"$player": 1}}
    }
"""

from typing import Optional, Any, Sequence
from pydantic import BaseModel, Field, NonNegativeInt

from ..engine_core.state import Position, FlowState


PLAYER_REF = "$player"


# =============================================================================
# Position
# =============================================================================

class PositionModel(BaseModel):
    """Serialized flow position."""
    path: list[NonNegativeInt] = Field(default_factory=list, description="Child index per stack depth")
    iterations: dict[str, NonNegativeInt] = Field(default_factory=dict, description="Counters keyed by depth")
    player_index: int = Field(0, ge=0, alias="playerIndex")
    variables: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


# =============================================================================
# Flow state
# =============================================================================

class ActionResultModel(BaseModel):
    """Outcome of the last action."""
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class AwaitingPlayerModel(BaseModel):
    """One player's slot in a simultaneous step."""
    player_index: int = Field(alias="playerIndex")
    available_actions: list[str] = Field(default_factory=list, alias="availableActions")
    completed: bool = False

    model_config = {"populate_by_name": True}


class FlowStateModel(BaseModel):
    """Snapshot of a flow, ready for a client."""
    complete: bool
    awaiting_input: bool = Field(alias="awaitingInput")
    current_player: Optional[int] = Field(None, alias="currentPlayer")
    available_actions: list[str] = Field(default_factory=list, alias="availableActions")
    prompt: Optional[str] = None
    awaiting_players: list[AwaitingPlayerModel] = Field(default_factory=list, alias="awaitingPlayers")
    current_phase: Optional[str] = Field(None, alias="currentPhase")
    step_name: Optional[str] = Field(None, alias="stepName")
    last_action_result: Optional[ActionResultModel] = Field(None, alias="lastActionResult")

    model_config = {"populate_by_name": True}


# =============================================================================
# Conversion helpers
# =============================================================================

def encode_value(value: Any, players: Sequence[Any]) -> Any:
    """
    Replace player objects with {"$player": seat}, recursing into containers.

    Tuples are written as JSON arrays and come back from decode_value as lists.
    """
    for seat, player in enumerate(players):
        if value is player:
            return {PLAYER_REF: seat}
    if isinstance(value, dict):
        return {key: encode_value(item, players) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item, players) for item in value]
    return value


def decode_value(value: Any, players: Sequence[Any]) -> Any:
    """Inverse of encode_value. Unknown seats decode to None."""
    if isinstance(value, dict):
        if set(value) == {PLAYER_REF}:
            seat = value[PLAYER_REF]
            return players[seat] if isinstance(seat, int) and 0 <= seat < len(players) else None
        return {key: decode_value(item, players) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item, players) for item in value]
    return value


def position_to_payload(position: Position, players: Sequence[Any]) -> dict[str, Any]:
    """Position -> JSON-ready dict using the wire field names."""
    model = PositionModel(
        path=list(position.path),
        iterations=dict(position.iterations),
        player_index=position.player_index,
        variables=encode_value(position.variables, players),
    )
    return model.model_dump(by_alias=True)


def position_from_payload(data: dict[str, Any], players: Sequence[Any]) -> Position:
    """Validate a stored payload and turn it back into a Position."""
    model = PositionModel.model_validate(data)
    return Position(
        path=list(model.path),
        iterations=dict(model.iterations),
        player_index=model.player_index,
        variables=decode_value(model.variables, players),
    )


def flow_state_to_payload(state: FlowState, players: Sequence[Any]) -> dict[str, Any]:
    """FlowState -> JSON-ready dict; the current player is sent as a seat."""
    seat = None
    for index, player in enumerate(players):
        if state.current_player is player:
            seat = index
    model = FlowStateModel(
        complete=state.complete,
        awaiting_input=state.awaiting_input,
        current_player=seat,
        available_actions=list(state.available_actions),
        prompt=state.prompt,
        awaiting_players=[
            AwaitingPlayerModel(
                player_index=p.player_index,
                available_actions=list(p.available_actions),
                completed=p.completed,
            )
            for p in state.awaiting_players
        ],
        current_phase=state.current_phase,
        step_name=state.step_name,
        last_action_result=(
            ActionResultModel.model_validate(state.last_action_result)
            if state.last_action_result is not None
            else None
        ),
    )
    return model.model_dump(by_alias=True)
