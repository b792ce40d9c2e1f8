"""
Pytest fixtures for turnflow tests.
"""

import pytest

from ..flow_schema import ActionDefinition, choose_from
from ..session import Game
from ..games import create_nim_game


class RecordingGame(Game):
    """Game that records every perform_action call, successful or not."""

    def __init__(self, player_names, **kwargs):
        super().__init__(player_names, **kwargs)
        self.calls = []

    def perform_action(self, name, player, args=None):
        self.calls.append((name, player.position, dict(args or {})))
        return super().perform_action(name, player, args)


def make_pass_action(name: str = "pass") -> ActionDefinition:
    """Action without selections that always succeeds."""
    return ActionDefinition(name=name, execute=lambda args, ctx: None)


def make_pick_action(name: str = "pick", options=("a", "b", "c")) -> ActionDefinition:
    """Action with one choice selection; records picks on the game."""

    def _execute(args, ctx):
        ctx.game.picks.append((ctx.player.position, args["option"]))
        return {"success": True, "message": f"picked {args['option']}"}

    return ActionDefinition(
        name=name,
        selections=[choose_from("option", choices=list(options))],
        execute=_execute,
    )


@pytest.fixture
def three_players():
    return ["Alice", "Bob", "Carol"]


@pytest.fixture
def game(three_players) -> RecordingGame:
    """3-player recording game with 'pass' and 'pick' registered."""
    g = RecordingGame(three_players)
    g.picks = []
    g.register_actions([make_pass_action(), make_pick_action()])
    return g


@pytest.fixture
def two_player_game() -> RecordingGame:
    g = RecordingGame(["Alice", "Bob"])
    g.picks = []
    g.register_actions([make_pass_action(), make_pick_action()])
    return g


@pytest.fixture
def nim_game():
    """2-player Nim with 5 stones, flow set but not started."""
    return create_nim_game(["Alice", "Bob"], stones=5)
