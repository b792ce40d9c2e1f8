"""
Session Module - Reference host for running a flow.

A Game seats players, registers actions, binds a flow engine, and turns
positions and flow snapshots into JSON-ready payloads. Storing and sending
those payloads is left to the caller.
"""

from .game import Game, Player
from .schemas import (
    PositionModel,
    FlowStateModel,
    AwaitingPlayerModel,
    ActionResultModel,
    position_to_payload,
    position_from_payload,
    flow_state_to_payload,
)

__all__ = [
    "Game",
    "Player",
    "PositionModel",
    "FlowStateModel",
    "AwaitingPlayerModel",
    "ActionResultModel",
    "position_to_payload",
    "position_from_payload",
    "flow_state_to_payload",
]
