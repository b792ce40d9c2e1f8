"""
Nim - a small sample game built only from the public API.

Players take turns removing 1 to 3 stones from a single pile. Whoever
takes the last stone wins. The flow:

    phase "play"
      loop while stones remain
        sequence
          execute: round += 1
          each_player
            action_step ["take"]
"""

from __future__ import annotations
from typing import Any, Iterable

from ..flow_schema import (
    ActionDefinition,
    FlowDefinition,
    action_step,
    choose_from,
    each_player,
    execute,
    loop,
    phase,
    sequence,
)
from ..session import Game, Player


class NimGame(Game):
    """Game host with a single pile of stones."""

    def __init__(self, player_names: Iterable[str], stones: int = 15, max_take: int = 3, **kwargs: Any):
        super().__init__(player_names, **kwargs)
        self.stones = stones
        self.max_take = max_take
        self.last_taker: Player | None = None


def _take_choices(ctx) -> list[int]:
    return list(range(1, min(ctx.game.max_take, ctx.game.stones) + 1))


def _take(args: dict[str, Any], ctx) -> dict[str, Any]:
    game = ctx.game
    count = args["count"]
    game.stones -= count
    game.last_taker = ctx.player
    game.message(f"{ctx.player.name} takes {count}, {game.stones} left")
    return {"success": True, "message": f"Took {count}", "data": {"remaining": game.stones}}


def _next_round(ctx) -> None:
    ctx.set("round", ctx.get("round", 0) + 1)


def nim_actions() -> list[ActionDefinition]:
    return [
        ActionDefinition(
            name="take",
            prompt="Take stones from the pile",
            condition=lambda ctx: ctx.game.stones > 0,
            selections=[
                choose_from("count", choices=_take_choices, prompt="How many stones?", skip_if_only_one=True),
            ],
            execute=_take,
        )
    ]


def nim_flow() -> FlowDefinition:
    turn = action_step(["take"], name="take-turn", prompt="Take 1-3 stones")
    round_ = sequence(execute(_next_round, name="next-round"), each_player(turn, name="turns"), name="round")
    return FlowDefinition(
        root=phase(
            "play",
            loop(round_, while_=lambda ctx: ctx.game.stones > 0, name="rounds"),
            on_enter=lambda ctx: ctx.game.message(f"Nim starts with {ctx.game.stones} stones"),
        ),
        is_complete=lambda ctx: ctx.game.stones <= 0,
        get_winners=lambda ctx: [ctx.game.last_taker] if ctx.game.last_taker is not None else [],
    )


def create_nim_game(
    player_names: Iterable[str] = ("Alice", "Bob"),
    stones: int = 15,
    max_take: int = 3,
    max_iterations: int | None = None,
) -> NimGame:
    """Build a Nim game with its actions and flow registered (not started)."""
    game = NimGame(player_names, stones=stones, max_take=max_take, max_iterations=max_iterations)
    game.register_actions(nim_actions())
    game.set_flow(nim_flow())
    return game
