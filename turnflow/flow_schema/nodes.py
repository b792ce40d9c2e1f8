"""
Flow DSL - Node-Based Turn Structure

This module defines the DSL for describing the turn structure of a game.
A flow is a tree of nodes:
- Control nodes: sequence, loop, each_player, for_each, switch, if_then, phase
- Leaf nodes: execute (side effect) and the two action steps (player decisions)

Key design decisions:
- Nodes are immutable and built once by the game definition
- One dataclass with a kind tag; the engine dispatches on the tag
- Callbacks (guards, collections, hooks) receive a FlowContext
- Loops and per-item iterations have explicit bounds
- Only action steps ever pause for player input
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Sequence


class NodeKind(Enum):
    """Kinds of flow nodes."""
    # Structure
    SEQUENCE = "sequence"
    PHASE = "phase"

    # Iteration
    LOOP = "loop"
    EACH_PLAYER = "each_player"
    FOR_EACH = "for_each"

    # Branching
    SWITCH = "switch"
    IF = "if"

    # Effects
    EXECUTE = "execute"

    # Decision points
    ACTION_STEP = "action_step"
    SIMULTANEOUS_ACTION_STEP = "simultaneous_action_step"


# Kinds that suspend the interpreter waiting for a player
DECISION_KINDS = frozenset({NodeKind.ACTION_STEP, NodeKind.SIMULTANEOUS_ACTION_STEP})


@dataclass(frozen=True)
class FlowNode:
    """
    A single node in the flow tree.

    Which fields are meaningful depends on kind; the builder functions
    below are the supported way to create nodes.
    """
    kind: NodeKind
    name: str | None = None

    # Sequence
    steps: tuple[FlowNode, ...] = ()

    # Loop / EachPlayer / ForEach / Phase body
    body: FlowNode | None = None
    while_: Callable[[Any], bool] | None = None
    max_iterations: int | None = None  # Safety bound, engine default if None
    as_name: str | None = None  # Variable rebound on each pass

    # EachPlayer
    player_filter: Callable[[Any, Any], bool] | None = None
    direction: str = "forward"  # "forward" or "backward"
    starting_player: Callable[[Any], Any] | None = None

    # ForEach
    collection: Callable[[Any], Sequence[Any]] | None = None

    # ActionStep / SimultaneousActionStep
    actions: tuple[str, ...] = ()
    prompt: str | None = None
    player: Callable[[Any], Any] | None = None
    skip_if: Callable[[Any], bool] | None = None
    min_moves: int | None = None
    max_moves: int | None = None
    repeat_until: Callable[[Any], bool] | None = None
    players: Callable[[Any], Sequence[Any]] | None = None
    skip_player: Callable[[Any, Any], bool] | None = None
    player_done: Callable[[Any, Any], bool] | None = None
    all_done: Callable[[Any], bool] | None = None

    # Switch
    on: Callable[[Any], Any] | None = None
    cases: tuple[tuple[Any, FlowNode], ...] = ()
    default: FlowNode | None = None

    # If
    condition: Callable[[Any], bool] | None = None
    then: FlowNode | None = None
    otherwise: FlowNode | None = None

    # Execute
    fn: Callable[[Any], Any] | None = None

    # Phase
    on_enter: Callable[[Any], Any] | None = None
    on_exit: Callable[[Any], Any] | None = None

    @property
    def label(self) -> str:
        """Name for logs and error messages."""
        return self.name or self.kind.value


@dataclass(frozen=True)
class FlowDefinition:
    """
    A complete flow bound to a game.

    is_complete is checked before every node visit and ends the flow early;
    get_winners is what FlowEngine.get_winners() reports.
    """
    root: FlowNode
    is_complete: Callable[[Any], bool] | None = None
    get_winners: Callable[[Any], list[Any]] | None = None


# ============================================================================
# Builder functions
# ============================================================================

def sequence(*steps: FlowNode, name: str | None = None) -> FlowNode:
    """Run steps left to right."""
    return FlowNode(kind=NodeKind.SEQUENCE, name=name, steps=tuple(steps))


def loop(
    do: FlowNode,
    while_: Callable[[Any], bool] | None = None,
    max_iterations: int | None = None,
    name: str | None = None,
) -> FlowNode:
    """Repeat body while the guard holds (guard checked before each pass)."""
    return FlowNode(
        kind=NodeKind.LOOP,
        name=name,
        body=do,
        while_=while_,
        max_iterations=max_iterations,
    )


def each_player(
    do: FlowNode,
    filter: Callable[[Any, Any], bool] | None = None,
    direction: str = "forward",
    starting_player: Callable[[Any], Any] | None = None,
    as_name: str = "player",
    max_iterations: int | None = None,
    name: str | None = None,
) -> FlowNode:
    """Run body once per player; the player list is fixed when the node is entered."""
    return FlowNode(
        kind=NodeKind.EACH_PLAYER,
        name=name,
        body=do,
        player_filter=filter,
        direction=direction,
        starting_player=starting_player,
        as_name=as_name,
        max_iterations=max_iterations,
    )


def for_each(
    collection: Callable[[Any], Sequence[Any]],
    do: FlowNode,
    as_name: str = "item",
    max_iterations: int | None = None,
    name: str | None = None,
) -> FlowNode:
    """Run body once per item of a collection computed on entry."""
    return FlowNode(
        kind=NodeKind.FOR_EACH,
        name=name,
        body=do,
        collection=collection,
        as_name=as_name,
        max_iterations=max_iterations,
    )


def action_step(
    actions: Sequence[str],
    name: str | None = None,
    prompt: str | None = None,
    player: Callable[[Any], Any] | None = None,
    skip_if: Callable[[Any], bool] | None = None,
    min_moves: int | None = None,
    max_moves: int | None = None,
    repeat_until: Callable[[Any], bool] | None = None,
) -> FlowNode:
    """Pause until one player performs one (or more) of the listed actions."""
    return FlowNode(
        kind=NodeKind.ACTION_STEP,
        name=name,
        actions=tuple(actions),
        prompt=prompt,
        player=player,
        skip_if=skip_if,
        min_moves=min_moves,
        max_moves=max_moves,
        repeat_until=repeat_until,
    )


def simultaneous_action_step(
    actions: Sequence[str],
    name: str | None = None,
    prompt: str | None = None,
    players: Callable[[Any], Sequence[Any]] | None = None,
    skip_player: Callable[[Any, Any], bool] | None = None,
    player_done: Callable[[Any, Any], bool] | None = None,
    all_done: Callable[[Any], bool] | None = None,
) -> FlowNode:
    """Pause until every eligible player has acted (in any order)."""
    return FlowNode(
        kind=NodeKind.SIMULTANEOUS_ACTION_STEP,
        name=name,
        actions=tuple(actions),
        prompt=prompt,
        players=players,
        skip_player=skip_player,
        player_done=player_done,
        all_done=all_done,
    )


def switch(
    on: Callable[[Any], Any],
    cases: Mapping[Any, FlowNode],
    default: FlowNode | None = None,
    name: str | None = None,
) -> FlowNode:
    """Push the branch whose key equals on(ctx), else default, else nothing."""
    return FlowNode(
        kind=NodeKind.SWITCH,
        name=name,
        on=on,
        cases=tuple(cases.items()),
        default=default,
    )


def if_then(
    condition: Callable[[Any], bool],
    then: FlowNode,
    otherwise: FlowNode | None = None,
    name: str | None = None,
) -> FlowNode:
    """Push then or otherwise depending on condition(ctx)."""
    return FlowNode(
        kind=NodeKind.IF,
        name=name,
        condition=condition,
        then=then,
        otherwise=otherwise,
    )


def execute(fn: Callable[[Any], Any], name: str | None = None) -> FlowNode:
    """Run a side effect; variables set through ctx.set() are kept."""
    return FlowNode(kind=NodeKind.EXECUTE, name=name, fn=fn)


def phase(
    name: str,
    do: FlowNode,
    on_enter: Callable[[Any], Any] | None = None,
    on_exit: Callable[[Any], Any] | None = None,
) -> FlowNode:
    """Named section of the flow with enter/exit hooks."""
    return FlowNode(
        kind=NodeKind.PHASE,
        name=name,
        body=do,
        on_enter=on_enter,
        on_exit=on_exit,
    )
