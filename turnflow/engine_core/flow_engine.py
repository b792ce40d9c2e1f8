"""
Flow Engine - Stack-based interpreter for flow trees.

This module walks a static FlowNode tree, including:
- Sequencing, loops, per-player and per-item iteration
- Branching (if / switch) and named phases with hooks
- Action steps that pause for one player, or for several at once
- Capturing a Position and rebuilding the stack from it later

The engine keeps a stack of frames and processes the top frame one visit
at a time, pausing when an action step needs player input. All mutable
interpreter state lives on the engine instance; the tree is never mutated.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Callable

from ..config import TURNFLOW_MAX_ITERATIONS
from ..flow_schema.nodes import DECISION_KINDS, FlowDefinition, FlowNode, NodeKind
from .action import ActionResult, ACTION_UNAVAILABLE
from .errors import (
    IterationLimitError,
    MissingFlowDefinitionError,
    NoLegalActionsError,
    NotAwaitingInputError,
    PositionMismatchError,
    ReentrantFlowError,
)
from .executor import ActionExecutor
from .state import AwaitingPlayer, FlowContext, FlowFrame, FlowState, Position

logger = logging.getLogger(__name__)


class FlowEngine:
    """
    Interprets one flow for one game.

    The host (game) must provide:
    - players: list with stable zero-based seats
    - current_player: settable pointer into players
    - get_action(name) -> ActionDefinition | None
    - get_available_actions(player) -> list of action names
    - perform_action(name, player, args) -> ActionResult
    """

    def __init__(
        self,
        game: Any,
        definition: FlowDefinition | None = None,
        max_iterations: int | None = None,
    ):
        self.game = game
        self.definition = definition
        self.max_iterations = max_iterations or TURNFLOW_MAX_ITERATIONS
        self.executor = ActionExecutor(game)
        self._running = False

        self._visitors: dict[NodeKind, Callable[[FlowFrame], bool]] = {
            NodeKind.SEQUENCE: self._visit_sequence,
            NodeKind.PHASE: self._visit_phase,
            NodeKind.LOOP: self._visit_loop,
            NodeKind.EACH_PLAYER: self._visit_each_player,
            NodeKind.FOR_EACH: self._visit_for_each,
            NodeKind.SWITCH: self._visit_switch,
            NodeKind.IF: self._visit_if,
            NodeKind.EXECUTE: self._visit_execute,
            NodeKind.ACTION_STEP: self._visit_action_step,
            NodeKind.SIMULTANEOUS_ACTION_STEP: self._visit_simultaneous,
        }
        self._rehydrators: dict[NodeKind, Callable[[FlowFrame, int, int, dict[str, int]], FlowNode | None]] = {
            NodeKind.SEQUENCE: self._rehydrate_sequence,
            NodeKind.PHASE: self._rehydrate_phase,
            NodeKind.LOOP: self._rehydrate_loop,
            NodeKind.EACH_PLAYER: self._rehydrate_each_player,
            NodeKind.FOR_EACH: self._rehydrate_for_each,
            NodeKind.SWITCH: self._rehydrate_switch,
            NodeKind.IF: self._rehydrate_if,
            NodeKind.ACTION_STEP: self._rehydrate_action_step,
            NodeKind.SIMULTANEOUS_ACTION_STEP: self._rehydrate_simultaneous,
        }
        self._reset()

    def _reset(self) -> None:
        """Drop all interpreter state. Hooks are not run."""
        self.stack: list[FlowFrame] = []
        self.variables: dict[str, Any] = {}
        self.awaiting_input = False
        self.awaiting_players: list[AwaitingPlayer] = []
        self.current_phase: str | None = None
        self.complete = False
        self.last_action_result: ActionResult | None = None
        self._available: list[str] = []
        self._prompt: str | None = None
        self._step_player: Any = None

    @contextmanager
    def _exclusive(self):
        if self._running:
            raise ReentrantFlowError("Flow engine re-entered from inside one of its callbacks")
        self._running = True
        try:
            yield
        finally:
            self._running = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> FlowState:
        """Start the flow from the root and run until it pauses or ends."""
        if self.definition is None:
            raise MissingFlowDefinitionError("Cannot start: no flow definition")

        with self._exclusive():
            self._reset()
            logger.info("Starting flow at '%s'", self.definition.root.label)
            self._push(self.definition.root)
            self._run()
            return self.get_state()

    def resume(
        self,
        action_name: str,
        args: dict[str, Any] | None = None,
        player_index: int | None = None,
    ) -> FlowState:
        """
        Perform an action for the waiting player and continue the flow.

        A failed or unavailable action leaves the step waiting; the failure
        is reported in FlowState.last_action_result.
        """
        with self._exclusive():
            if not self.awaiting_input or not self.stack:
                raise NotAwaitingInputError("Flow is not awaiting input")

            frame = self.stack[-1]
            node = frame.node
            entry = None

            if node.kind == NodeKind.SIMULTANEOUS_ACTION_STEP:
                if player_index is None:
                    raise NotAwaitingInputError(
                        f"Step '{node.label}' is simultaneous; player_index is required"
                    )
                entry = next(
                    (e for e in frame.data["awaiting"] if e.player_index == player_index and not e.completed),
                    None,
                )
                if entry is None:
                    raise NotAwaitingInputError(f"Player {player_index} is not awaiting input")
                player = self.game.players[player_index]
                available = entry.available_actions
            else:
                player = self._step_player
                if player_index is not None and player_index != self._seat_of(player):
                    raise NotAwaitingInputError(
                        f"Player {player_index} is not awaiting input (waiting on {self._seat_of(player)})"
                    )
                available = self._available

            if action_name not in available:
                self.last_action_result = ActionResult.failure(
                    f"Action '{action_name}' is not available", error_code=ACTION_UNAVAILABLE
                )
                logger.warning("Rejected unavailable action '%s' in '%s'", action_name, node.label)
                return self.get_state()

            result = self.game.perform_action(action_name, player, args or {})
            self.last_action_result = result
            if not result.success:
                logger.warning("Action '%s' failed: %s", action_name, result.error)
                return self.get_state()

            if entry is not None:
                ctx = self._context(player)
                entry.completed = node.player_done(ctx, player) if node.player_done else True
            else:
                frame.data["moves"] = frame.data.get("moves", 0) + 1
                if self._step_finished(frame):
                    frame.completed = True

            self._clear_suspension()
            self._run()
            return self.get_state()

    def get_state(self) -> FlowState:
        """Snapshot of where the flow stands."""
        top = self.stack[-1].node if self.stack else None
        current_player = self.game.current_player
        if self.awaiting_input and top is not None and top.kind == NodeKind.ACTION_STEP:
            current_player = self._step_player

        return FlowState(
            complete=self.complete,
            awaiting_input=self.awaiting_input,
            current_player=current_player,
            available_actions=list(self._available),
            prompt=self._prompt,
            awaiting_players=[
                AwaitingPlayer(e.player_index, list(e.available_actions), e.completed)
                for e in self.awaiting_players
            ],
            current_phase=self.current_phase,
            step_name=top.name if (self.awaiting_input and top is not None) else None,
            last_action_result=self.last_action_result,
        )

    def is_complete(self) -> bool:
        return self.complete

    def get_winners(self) -> list[Any]:
        """Winners as reported by the definition's get_winners callback."""
        if self.definition is None or self.definition.get_winners is None:
            return []
        return list(self.definition.get_winners(self._context()) or [])

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def _run(self) -> None:
        """Visit frames until one suspends or the stack empties."""
        while self.stack:
            if self.definition.is_complete is not None and self.definition.is_complete(self._context()):
                logger.info("Flow ended early: completion predicate holds")
                self.stack.clear()
                break

            frame = self.stack[-1]
            if frame.completed:
                self._pop()
                continue

            if self._visitors[frame.node.kind](frame):
                self.awaiting_input = True
                return

        self.complete = True
        self._clear_suspension()
        logger.info("Flow complete")

    def _push(self, node: FlowNode) -> FlowFrame:
        frame = FlowFrame(node=node)
        self.stack.append(frame)
        logger.debug("push %s '%s' (depth %d)", node.kind.value, node.label, len(self.stack) - 1)
        return frame

    def _pop(self) -> None:
        frame = self.stack.pop()
        logger.debug("pop %s '%s'", frame.node.kind.value, frame.node.label)

    def _clear_suspension(self) -> None:
        self.awaiting_input = False
        self.awaiting_players = []
        self._available = []
        self._prompt = None
        self._step_player = None

    def _context(self, player: Any = None) -> FlowContext:
        return FlowContext(
            game=self.game,
            player=player if player is not None else self.game.current_player,
            variables=self.variables,
            last_action_result=self.last_action_result,
        )

    def _limit(self, node: FlowNode) -> int:
        return node.max_iterations or self.max_iterations

    def _seat_of(self, player: Any) -> int | None:
        try:
            return list(self.game.players).index(player)
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Node visitors. Each returns True when the flow must suspend.
    # ------------------------------------------------------------------

    def _visit_sequence(self, frame: FlowFrame) -> bool:
        if frame.data.get("child_pushed"):
            frame.index += 1
            frame.data["child_pushed"] = False

        steps = frame.node.steps
        if frame.index >= len(steps):
            frame.completed = True
            return False

        self._push(steps[frame.index])
        frame.data["child_pushed"] = True
        return False

    def _visit_phase(self, frame: FlowFrame) -> bool:
        node = frame.node
        if not frame.data.get("entered"):
            frame.data["entered"] = True
            frame.data["previous_phase"] = self.current_phase
            self.current_phase = node.name
            logger.info("Entering phase '%s'", node.name)
            if node.on_enter is not None:
                node.on_enter(self._context())
            self._push(node.body)
            return False

        if node.on_exit is not None:
            node.on_exit(self._context())
        logger.info("Leaving phase '%s'", node.name)
        self.current_phase = frame.data["previous_phase"]
        frame.completed = True
        return False

    def _visit_loop(self, frame: FlowFrame) -> bool:
        node = frame.node
        if node.while_ is not None and not node.while_(self._context()):
            frame.completed = True
            return False

        iterations = frame.data.get("iterations", 0)
        limit = self._limit(node)
        if iterations >= limit:
            raise IterationLimitError(node.label, limit)

        frame.data["iterations"] = iterations + 1
        self._push(node.body)
        return False

    def _visit_each_player(self, frame: FlowFrame) -> bool:
        node = frame.node
        if not frame.data.get("entered"):
            frame.data["entered"] = True
            frame.data["items"] = self._player_order(node)
        elif frame.data.get("child_pushed"):
            frame.index += 1
            frame.data["child_pushed"] = False

        seats = frame.data["items"]
        if frame.index >= len(seats):
            frame.completed = True
            return False
        self._check_limit(frame)

        player = self.game.players[seats[frame.index]]
        self.variables[node.as_name] = player
        self.game.current_player = player
        self._push(node.body)
        frame.data["child_pushed"] = True
        return False

    def _visit_for_each(self, frame: FlowFrame) -> bool:
        node = frame.node
        if not frame.data.get("entered"):
            frame.data["entered"] = True
            frame.data["items"] = list(node.collection(self._context()) or [])
        elif frame.data.get("child_pushed"):
            frame.index += 1
            frame.data["child_pushed"] = False

        items = frame.data["items"]
        if frame.index >= len(items):
            frame.completed = True
            return False
        self._check_limit(frame)

        self.variables[node.as_name] = items[frame.index]
        self._push(node.body)
        frame.data["child_pushed"] = True
        return False

    def _check_limit(self, frame: FlowFrame) -> None:
        limit = self._limit(frame.node)
        if frame.index >= limit:
            raise IterationLimitError(frame.node.label, limit)
        frame.data["iterations"] = frame.index + 1

    def _visit_switch(self, frame: FlowFrame) -> bool:
        node = frame.node
        if frame.data.get("branch_pushed"):
            frame.completed = True
            return False

        value = node.on(self._context())
        for index, (key, branch) in enumerate(node.cases):
            if key == value:
                return self._push_branch(frame, index, branch)

        if node.default is not None:
            return self._push_branch(frame, len(node.cases), node.default)

        logger.warning("Switch '%s' has no case for %r and no default", node.label, value)
        frame.completed = True
        return False

    def _visit_if(self, frame: FlowFrame) -> bool:
        node = frame.node
        if frame.data.get("branch_pushed"):
            frame.completed = True
            return False

        if node.condition(self._context()):
            return self._push_branch(frame, 0, node.then)
        if node.otherwise is not None:
            return self._push_branch(frame, 1, node.otherwise)

        frame.completed = True
        return False

    def _push_branch(self, frame: FlowFrame, index: int, branch: FlowNode) -> bool:
        frame.index = index
        frame.data["branch_pushed"] = True
        self._push(branch)
        return False

    def _visit_execute(self, frame: FlowFrame) -> bool:
        ctx = FlowContext(
            game=self.game,
            player=self.game.current_player,
            variables=dict(self.variables),
            last_action_result=self.last_action_result,
        )
        frame.node.fn(ctx)
        self.variables.update(ctx.variables)
        frame.completed = True
        return False

    def _visit_action_step(self, frame: FlowFrame) -> bool:
        node = frame.node
        if not frame.data.get("entered"):
            frame.data["entered"] = True
            frame.data["moves"] = 0
            if node.skip_if is not None and node.skip_if(self._context()):
                logger.debug("Skipping action step '%s'", node.label)
                frame.completed = True
                return False

        player = self.game.current_player
        if node.player is not None:
            player = node.player(self._context())
            self.game.current_player = player

        available = self._legal_actions(node, player)
        if not available:
            moves = frame.data["moves"]
            if node.min_moves is not None and moves < node.min_moves:
                raise NoLegalActionsError(node.label, moves, node.min_moves)
            frame.completed = True
            return False

        self._available = available
        self._prompt = node.prompt
        self._step_player = player
        return True

    def _visit_simultaneous(self, frame: FlowFrame) -> bool:
        node = frame.node
        if not frame.data.get("entered"):
            frame.data["entered"] = True
            frame.data["awaiting"] = [AwaitingPlayer(seat) for seat in self._simultaneous_seats(node)]

        if node.all_done is not None and node.all_done(self._context()):
            frame.completed = True
            return False

        awaiting: list[AwaitingPlayer] = frame.data["awaiting"]
        for entry in awaiting:
            if entry.completed:
                entry.available_actions = []
                continue
            entry.available_actions = self._legal_actions(node, self.game.players[entry.player_index])
            if not entry.available_actions:
                entry.completed = True

        if all(entry.completed for entry in awaiting):
            frame.completed = True
            return False

        offered = {name for entry in awaiting for name in entry.available_actions}
        self._available = [name for name in node.actions if name in offered]
        self._prompt = node.prompt
        self._step_player = None
        self.awaiting_players = awaiting
        return True

    def _legal_actions(self, node: FlowNode, player: Any) -> list[str]:
        """Declared actions the host allows and the availability search accepts."""
        host_allowed = set(self.game.get_available_actions(player))
        legal = []
        for name in node.actions:
            action = self.game.get_action(name)
            if action is None or name not in host_allowed:
                continue
            if self.executor.is_action_available(action, player):
                legal.append(name)
        return legal

    def _step_finished(self, frame: FlowFrame) -> bool:
        node = frame.node
        moves = frame.data["moves"]
        if node.max_moves is not None and moves >= node.max_moves:
            return True
        if node.repeat_until is not None:
            return bool(node.repeat_until(self._context())) and moves >= (node.min_moves or 0)
        if node.max_moves is None:
            return moves >= (node.min_moves or 1)
        return False

    def _player_order(self, node: FlowNode) -> list[int]:
        """Seats for an each_player pass: rotated, filtered, maybe reversed."""
        ctx = self._context()
        players = list(self.game.players)
        seats = list(range(len(players)))

        if node.starting_player is not None:
            start = node.starting_player(ctx)
            start_seat = start if isinstance(start, int) else self._seat_of(start)
            if start_seat is not None and 0 <= start_seat < len(seats):
                seats = seats[start_seat:] + seats[:start_seat]

        if node.player_filter is not None:
            seats = [s for s in seats if node.player_filter(players[s], ctx)]
        if node.direction == "backward":
            seats.reverse()
        return seats

    def _simultaneous_seats(self, node: FlowNode) -> list[int]:
        ctx = self._context()
        players = list(node.players(ctx)) if node.players is not None else list(self.game.players)
        if node.skip_player is not None:
            players = [p for p in players if not node.skip_player(ctx, p)]
        return [seat for seat in (self._seat_of(p) for p in players) if seat is not None]

    # ------------------------------------------------------------------
    # Position capture and restore
    # ------------------------------------------------------------------

    def get_position(self) -> Position:
        """Serializable continuation of the current stack."""
        path = []
        iterations: dict[str, int] = {}
        for depth, frame in enumerate(self.stack):
            path.append(frame.index)
            kind = frame.node.kind
            if kind in (NodeKind.LOOP, NodeKind.EACH_PLAYER, NodeKind.FOR_EACH):
                iterations[str(depth)] = frame.data.get("iterations", 0)
            if kind == NodeKind.EACH_PLAYER:
                for k, seat in enumerate(frame.data.get("items", [])):
                    iterations[f"{depth}:order:{k}"] = seat
            elif kind == NodeKind.FOR_EACH:
                iterations[f"{depth}:size"] = len(frame.data.get("items", []))
            elif kind == NodeKind.ACTION_STEP:
                iterations[f"{depth}:moves"] = frame.data.get("moves", 0)
            elif kind == NodeKind.SIMULTANEOUS_ACTION_STEP:
                for entry in frame.data.get("awaiting", []):
                    iterations[f"{depth}:player:{entry.player_index}"] = int(entry.completed)

        seat = self._seat_of(self.game.current_player)
        return Position(
            path=path,
            iterations=iterations,
            player_index=seat if seat is not None else 0,
            variables=_copy_containers(self.variables),
        )

    def restore(self, position: Position) -> FlowState:
        """
        Rebuild the stack from a Position and continue to the stored pause.

        Prior in-progress state is discarded without running any hooks.
        Phase on_enter hooks and execute callbacks already behind the
        stored position are not run again. each_player passes reuse the
        seat order stored at capture; for_each collections are recomputed
        and must still have the size they had when captured.
        """
        if self.definition is None:
            raise MissingFlowDefinitionError("Cannot restore: no flow definition")

        with self._exclusive():
            self._reset()
            self.variables = _copy_containers(position.variables)
            players = list(self.game.players)
            if 0 <= position.player_index < len(players):
                self.game.current_player = players[position.player_index]

            if not position.path:
                self.complete = True
                logger.info("Restored a completed flow")
                return self.get_state()

            node: FlowNode | None = self.definition.root
            last = len(position.path) - 1
            for depth, index in enumerate(position.path):
                rehydrate = self._rehydrators.get(node.kind)
                if rehydrate is None:
                    raise PositionMismatchError(
                        f"'{node.label}' ({node.kind.value}) cannot be on the stack at depth {depth}"
                    )
                frame = FlowFrame(node=node)
                self.stack.append(frame)
                child = rehydrate(frame, depth, index, position.iterations)

                if depth < last:
                    if child is None:
                        raise PositionMismatchError(f"Path continues below leaf '{node.label}' at depth {depth}")
                    node = child
                elif node.kind not in DECISION_KINDS:
                    raise PositionMismatchError(f"Path ends at '{node.label}', which is not an action step")

            logger.info("Restored flow at depth %d", len(self.stack))
            self._run()
            return self.get_state()

    def _expect_index(self, frame: FlowFrame, index: int, size: int) -> None:
        if not 0 <= index < size:
            raise PositionMismatchError(
                f"Index {index} out of range for '{frame.node.label}' ({size} option(s))"
            )
        frame.index = index

    def _rehydrate_sequence(self, frame, depth, index, iterations):
        self._expect_index(frame, index, len(frame.node.steps))
        frame.data["child_pushed"] = True
        return frame.node.steps[index]

    def _rehydrate_phase(self, frame, depth, index, iterations):
        self._expect_index(frame, index, 1)
        frame.data["entered"] = True
        frame.data["previous_phase"] = self.current_phase
        self.current_phase = frame.node.name
        return frame.node.body

    def _rehydrate_loop(self, frame, depth, index, iterations):
        self._expect_index(frame, index, 1)
        frame.data["iterations"] = iterations.get(str(depth), 1)
        return frame.node.body

    def _rehydrate_each_player(self, frame, depth, index, iterations):
        seats = []
        while f"{depth}:order:{len(seats)}" in iterations:
            seats.append(iterations[f"{depth}:order:{len(seats)}"])
        if not seats:
            seats = self._player_order(frame.node)
        elif any(seat >= len(self.game.players) for seat in seats):
            raise PositionMismatchError(f"Stored order for '{frame.node.label}' names an unknown seat")
        self._expect_index(frame, index, len(seats))
        frame.data.update(entered=True, child_pushed=True, items=seats, iterations=index + 1)
        return frame.node.body

    def _rehydrate_for_each(self, frame, depth, index, iterations):
        items = list(frame.node.collection(self._context()) or [])
        size = iterations.get(f"{depth}:size")
        if size is not None and size != len(items):
            raise PositionMismatchError(
                f"Collection for '{frame.node.label}' has {len(items)} item(s); "
                f"the position was captured with {size}"
            )
        self._expect_index(frame, index, len(items))
        frame.data.update(entered=True, child_pushed=True, items=items, iterations=index + 1)
        return frame.node.body

    def _rehydrate_switch(self, frame, depth, index, iterations):
        node = frame.node
        branches = [branch for _, branch in node.cases]
        if node.default is not None:
            branches.append(node.default)
        self._expect_index(frame, index, len(branches))
        frame.data["branch_pushed"] = True
        return branches[index]

    def _rehydrate_if(self, frame, depth, index, iterations):
        node = frame.node
        branches = [node.then] + ([node.otherwise] if node.otherwise is not None else [])
        self._expect_index(frame, index, len(branches))
        frame.data["branch_pushed"] = True
        return branches[index]

    def _rehydrate_action_step(self, frame, depth, index, iterations):
        self._expect_index(frame, index, 1)
        frame.data["entered"] = True
        frame.data["moves"] = iterations.get(f"{depth}:moves", 0)
        return None

    def _rehydrate_simultaneous(self, frame, depth, index, iterations):
        self._expect_index(frame, index, 1)
        frame.data["entered"] = True
        frame.data["awaiting"] = [
            AwaitingPlayer(seat, completed=bool(iterations.get(f"{depth}:player:{seat}", 0)))
            for seat in self._simultaneous_seats(frame.node)
        ]
        return None


def _copy_containers(value: Any) -> Any:
    """Copy dicts, lists, tuples and sets recursively; other values are shared."""
    if isinstance(value, dict):
        return {key: _copy_containers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_containers(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_copy_containers(item) for item in value)
    if isinstance(value, set):
        return {_copy_containers(item) for item in value}
    return value
