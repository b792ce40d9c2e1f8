"""
Flow State - Frames, context, and the snapshots handed to the host.

Design principles:
- Frames are private to the engine; the host only sees FlowState
- Position is the serializable continuation (indices, counters, variables)
- Variable bindings are one shared table, never deep-copied
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from ..flow_schema.nodes import FlowNode


@dataclass
class FlowFrame:
    """
    Activation record for one node on the engine stack.

    index is the child cursor whose meaning depends on the node kind
    (current child for a sequence, current item for each_player /
    for_each, chosen branch for if / switch). data holds per-kind
    scratch values such as iteration counters and move counts.
    """
    node: FlowNode
    index: int = 0
    completed: bool = False
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class FlowContext:
    """
    Passed to every guard, collection, and hook callback.

    Callbacks read bindings with get() and write with set().
    """
    game: Any
    player: Any = None
    variables: dict[str, Any] = field(default_factory=dict)
    last_action_result: Any = None

    def get(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.variables[name] = value


@dataclass
class Position:
    """
    Serializable continuation of a suspended flow.

    path holds one child index per stack depth; iterations maps
    synthetic per-depth keys ("2", "3:moves", "1:player:0") to counters.
    """
    path: list[int] = field(default_factory=list)
    iterations: dict[str, int] = field(default_factory=dict)
    player_index: int = 0
    variables: dict[str, Any] = field(default_factory=dict)


@dataclass
class AwaitingPlayer:
    """One player's slot in a simultaneous action step."""
    player_index: int
    available_actions: list[str] = field(default_factory=list)
    completed: bool = False


@dataclass
class FlowState:
    """Snapshot returned by start() / resume() / get_state()."""
    complete: bool = False
    awaiting_input: bool = False
    current_player: Any = None
    available_actions: list[str] = field(default_factory=list)
    prompt: str | None = None
    awaiting_players: list[AwaitingPlayer] = field(default_factory=list)
    current_phase: str | None = None
    step_name: str | None = None
    last_action_result: Any = None
