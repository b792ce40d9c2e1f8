"""
Game - Reference host for the flow engine.

A Game owns:
- The seated players and the current-player pointer
- The registered action catalogue
- One FlowEngine (created by set_flow)
- A message log and the history of successful actions

Games built on turnflow subclass this or use it directly and keep their
own domain state alongside; the engine only reaches it through action
and flow callbacks.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from ..flow_schema.actions import ActionDefinition
from ..flow_schema.nodes import FlowDefinition
from ..flow_schema.validation import FlowValidationError, validate_actions, validate_flow
from ..engine_core.action import ActionResult, SelectionContext, UNKNOWN_ACTION
from ..engine_core.errors import MissingFlowDefinitionError
from ..engine_core.executor import ActionExecutor
from ..engine_core.flow_engine import FlowEngine
from ..engine_core.state import FlowState
from .schemas import position_from_payload, position_to_payload, flow_state_to_payload

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Player:
    """A seated player. Compared by identity."""
    position: int
    name: str

    def __repr__(self) -> str:
        return f"Player({self.position}, {self.name!r})"


class Game:
    """Players, actions and flow for one play-through."""

    def __init__(
        self,
        player_names: Iterable[str],
        max_iterations: int | None = None,
    ):
        self.players: list[Player] = [Player(i, name) for i, name in enumerate(player_names)]
        self.current_player: Player | None = self.players[0] if self.players else None
        self.actions: dict[str, ActionDefinition] = {}
        self.executor = ActionExecutor(self)
        self.flow_engine: FlowEngine | None = None
        self.max_iterations = max_iterations
        self.messages: list[str] = []
        self.action_history: list[tuple[str, int, dict[str, Any]]] = []

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def register_action(self, action: ActionDefinition) -> None:
        self.actions[action.name] = action

    def register_actions(self, actions: Iterable[ActionDefinition]) -> None:
        for action in actions:
            self.register_action(action)

    def get_action(self, name: str) -> ActionDefinition | None:
        return self.actions.get(name)

    def get_available_actions(self, player: Player) -> list[str]:
        """Names of registered actions whose condition passes for player."""
        ctx = SelectionContext(game=self, player=player, args={})
        return [
            name
            for name, action in self.actions.items()
            if action.condition is None or action.condition(ctx)
        ]

    def perform_action(self, name: str, player: Player, args: dict[str, Any] | None = None) -> ActionResult:
        """Validate and run one action for player."""
        action = self.get_action(name)
        if action is None:
            return ActionResult.failure(f"Unknown action '{name}'", error_code=UNKNOWN_ACTION)

        result = self.executor.execute_action(action, player, args or {})
        if result.success:
            self.action_history.append((name, player.position, dict(args or {})))
            logger.debug("%s performed '%s' with %s", player.name, name, args)
        return result

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------

    def set_flow(self, definition: FlowDefinition) -> None:
        """Validate the flow against the registered actions and bind an engine."""
        errors = []
        for result in (validate_actions(self.actions.values()), validate_flow(definition, self.actions)):
            errors.extend(result.errors)
            for warning in result.warnings:
                logger.debug("Flow warning: %s", warning)
        if errors:
            raise FlowValidationError(errors)

        self.flow_engine = FlowEngine(self, definition, max_iterations=self.max_iterations)

    def _engine(self) -> FlowEngine:
        if self.flow_engine is None:
            raise MissingFlowDefinitionError("No flow set; call set_flow() first")
        return self.flow_engine

    def start_flow(self) -> FlowState:
        return self._engine().start()

    def continue_flow(
        self,
        action_name: str,
        args: dict[str, Any] | None = None,
        player_index: int | None = None,
    ) -> FlowState:
        return self._engine().resume(action_name, args, player_index)

    def get_flow_state(self) -> FlowState:
        return self._engine().get_state()

    def flow_state_payload(self) -> dict[str, Any]:
        """Current FlowState in its JSON wire shape."""
        return flow_state_to_payload(self.get_flow_state(), self.players)

    def save_position(self) -> dict[str, Any]:
        """Current position as a JSON-ready dict."""
        return position_to_payload(self._engine().get_position(), self.players)

    def load_position(self, data: dict[str, Any]) -> FlowState:
        """Restore a position produced by save_position()."""
        return self._engine().restore(position_from_payload(data, self.players))

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def message(self, text: str) -> None:
        self.messages.append(text)
        logger.info(text)

    @property
    def winners(self) -> list[Player]:
        if self.flow_engine is None:
            return []
        return self.flow_engine.get_winners()

    def is_finished(self) -> bool:
        return self.flow_engine is not None and self.flow_engine.is_complete()
