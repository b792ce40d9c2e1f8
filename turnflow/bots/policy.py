"""
Bot Policy - Drives a flow by picking legal actions and values.

A BotPolicy looks at the current FlowState and returns a decision:
- Which action to take
- The argument values for its selections
- Which seat acts (needed for simultaneous steps)

Arguments are built one selection at a time through the executor, so
dependent choices and single-choice selections behave exactly as they
would for a human player.
"""

from __future__ import annotations
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from ..flow_schema.actions import Selection, SelectionKind, ENUMERABLE_KINDS

if TYPE_CHECKING:
    from ..engine_core.state import FlowState
    from ..session.game import Game

logger = logging.getLogger(__name__)

# Attempts at building a full argument set before giving up on an action
MAX_ARGUMENT_ATTEMPTS = 20


@dataclass
class BotDecision:
    """A decision made by a bot."""
    action_name: str
    args: dict[str, Any] = field(default_factory=dict)
    player_index: int | None = None
    explanation: str = ""


class BotPolicy(ABC):
    """
    Base class for bot policies.

    Subclasses pick among legal actions and legal selection values;
    decide() does the bookkeeping around them.
    """

    @abstractmethod
    def select_action(self, game: Game, player: Any, available: list[str]) -> str:
        """Pick one of the available action names."""

    @abstractmethod
    def select_value(self, game: Game, player: Any, selection: Selection, choices: list[Any]) -> Any:
        """Pick one of the legal values for an enumerable selection."""

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__

    def decide(self, game: Game, state: FlowState) -> BotDecision:
        """Build a full decision for the flow state's waiting player."""
        if not state.awaiting_input:
            raise ValueError("Flow is not awaiting input")

        player_index = None
        player = state.current_player
        available = list(state.available_actions)
        if state.awaiting_players:
            entry = next(e for e in state.awaiting_players if not e.completed)
            player_index = entry.player_index
            player = game.players[player_index]
            available = list(entry.available_actions)

        if not available:
            raise ValueError("No legal actions available")

        action_name = self.select_action(game, player, available)
        action = game.get_action(action_name)
        args = self.build_args(game, player, action)
        return BotDecision(
            action_name=action_name,
            args=args,
            player_index=player_index,
            explanation=f"{self.get_name()} chose {action_name}",
        )

    def build_args(self, game: Game, player: Any, action) -> dict[str, Any]:
        """Fill every selection with a legal value, retrying on dead ends."""
        executor = game.executor
        for _ in range(MAX_ARGUMENT_ATTEMPTS):
            args: dict[str, Any] = {}
            while True:
                selection, args = executor.next_selection(action, player, args)
                if selection is None:
                    return args
                if selection.kind in ENUMERABLE_KINDS:
                    choices = executor.get_choices(selection, player, args)
                    if not choices:
                        if selection.optional:
                            args[selection.name] = None
                            continue
                        break
                    args[selection.name] = self.select_value(game, player, selection, choices)
                else:
                    args[selection.name] = free_input_value(selection)
            logger.debug("Dead end building args for '%s', retrying", action.name)

        raise ValueError(f"Could not build arguments for action '{action.name}'")


def free_input_value(selection: Selection) -> Any:
    """A value that satisfies the structural bounds of a text or number selection."""
    if selection.optional:
        return None
    if selection.kind == SelectionKind.NUMBER:
        value = selection.min if selection.min is not None else 0
        return int(value) if selection.integer else value
    length = selection.min_length or 1
    return "x" * length


class RandomPolicy(BotPolicy):
    """Selects actions and values uniformly at random."""

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(self, game: Game, player: Any, available: list[str]) -> str:
        return self.rng.choice(available)

    def select_value(self, game: Game, player: Any, selection: Selection, choices: list[Any]) -> Any:
        return self.rng.choice(choices)


class FirstLegalPolicy(BotPolicy):
    """Always selects the first legal action and value. Deterministic."""

    def select_action(self, game: Game, player: Any, available: list[str]) -> str:
        return available[0]

    def select_value(self, game: Game, player: Any, selection: Selection, choices: list[Any]) -> Any:
        return choices[0]


def play_out(game: Game, policy: BotPolicy, max_decisions: int = 10000) -> FlowState:
    """
    Drive a started flow with one policy until it completes.

    Raises RuntimeError if the flow is still running after max_decisions.
    """
    state = game.get_flow_state()
    for _ in range(max_decisions):
        if state.complete:
            return state
        decision = policy.decide(game, state)
        state = game.continue_flow(decision.action_name, decision.args, decision.player_index)
        result = state.last_action_result
        if result is not None and not result.success:
            raise RuntimeError(f"{policy.get_name()} made an illegal move: {result.error}")
    if state.complete:
        return state
    raise RuntimeError(f"Flow did not complete within {max_decisions} decisions")
