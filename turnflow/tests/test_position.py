"""
Tests for position capture and restore.

Tests:
- A restored engine continues exactly like the original
- Path length equals stack depth
- Hooks and execute nodes behind the position are not re-run
- Mismatched positions are rejected
- Entry lists stay fixed across capture and restore
"""

import pytest

from ..flow_schema import (
    ActionDefinition,
    FlowDefinition,
    action_step,
    each_player,
    for_each,
    execute,
    if_then,
    loop,
    phase,
    sequence,
    simultaneous_action_step,
    switch,
)
from ..engine_core import (
    FlowEngine,
    IterationLimitError,
    MissingFlowDefinitionError,
    Position,
    PositionMismatchError,
)
from .conftest import RecordingGame, make_pass_action, make_pick_action


def new_game(names=("Alice", "Bob", "Carol")):
    game = RecordingGame(list(names))
    game.picks = []
    game.register_actions([make_pass_action(), make_pick_action()])
    return game


def rounds_flow():
    """Rounds of picks until six picks were made."""
    return FlowDefinition(
        root=loop(
            sequence(
                execute(lambda ctx: ctx.set("round", ctx.get("round", 0) + 1)),
                each_player(action_step(["pick"], name="turn")),
            ),
            while_=lambda ctx: len(ctx.game.picks) < 6,
            name="rounds",
        )
    )


class TestRestoreEquivalence:
    """Restoring on a fresh engine continues like the original."""

    @pytest.mark.parametrize("moves_before_capture", [0, 1, 2, 3, 4])
    def test_same_perform_action_sequence(self, moves_before_capture):
        original = new_game()
        original.set_flow(rounds_flow())
        original.start_flow()
        options = ["a", "b", "c", "a", "b", "c"]

        for option in options[:moves_before_capture]:
            original.continue_flow("pick", {"option": option})

        payload = original.save_position()
        calls_at_capture = len(original.calls)

        restored = new_game()
        restored.picks = list(original.picks)
        restored.set_flow(rounds_flow())
        state = restored.load_position(payload)
        assert state.awaiting_input
        assert state.current_player.position == original.get_flow_state().current_player.position

        for option in options[moves_before_capture:]:
            original.continue_flow("pick", {"option": option})
            restored.continue_flow("pick", {"option": option})

        assert original.is_finished()
        assert restored.is_finished()
        assert restored.calls == original.calls[calls_at_capture:]
        assert restored.flow_engine.variables["round"] == original.flow_engine.variables["round"]

    def test_path_length_equals_stack_depth(self):
        game = new_game()
        game.set_flow(rounds_flow())
        game.start_flow()
        game.continue_flow("pick", {"option": "a"})

        position = game.flow_engine.get_position()
        assert len(position.path) == len(game.flow_engine.stack)
        assert position.path == [0, 1, 1, 0]
        assert position.player_index == 1
        assert position.iterations["0"] == 1

    def test_bound_player_variable_survives(self):
        game = new_game()
        game.set_flow(rounds_flow())
        game.start_flow()
        game.continue_flow("pick", {"option": "a"})
        payload = game.save_position()

        assert payload["variables"]["player"] == {"$player": 1}

        other = new_game()
        other.picks = list(game.picks)
        other.set_flow(rounds_flow())
        other.load_position(payload)
        assert other.flow_engine.variables["player"] is other.players[1]


class TestNoReplayOfSideEffects:
    """Restore walks the tree without running callbacks behind the position."""

    def build(self, game, log):
        return FlowDefinition(
            root=phase(
                "main",
                sequence(
                    execute(lambda ctx: log.append("execute")),
                    action_step(["pass"], name="first"),
                    action_step(["pass"], name="second"),
                ),
                on_enter=lambda ctx: log.append("enter"),
                on_exit=lambda ctx: log.append("exit"),
            )
        )

    def test_hooks_not_rerun(self):
        log = []
        game = new_game()
        engine = FlowEngine(game, self.build(game, log))
        engine.start()
        engine.resume("pass")
        position = engine.get_position()
        assert log == ["enter", "execute"]

        restored_log = []
        other = new_game()
        restored = FlowEngine(other, self.build(other, restored_log))
        state = restored.restore(position)

        assert restored_log == []
        assert state.step_name == "second"
        assert state.current_phase == "main"

        state = restored.resume("pass")
        assert state.complete
        assert restored_log == ["exit"]

    def test_restore_discards_in_progress_state(self):
        log = []
        game = new_game()
        engine = FlowEngine(game, self.build(game, log))
        engine.start()
        position = engine.get_position()
        engine.resume("pass")

        state = engine.restore(position)
        assert state.step_name == "first"
        assert log == ["enter", "execute"]


class TestRestoreCounters:
    """Move counts and simultaneous completion flags come back."""

    def test_moves_restored(self):
        definition = FlowDefinition(root=action_step(["pass"], max_moves=3))
        engine = FlowEngine(new_game(), definition)
        engine.start()
        engine.resume("pass")
        position = engine.get_position()
        assert position.iterations == {"0:moves": 1}

        restored = FlowEngine(new_game(), definition)
        restored.restore(position)
        assert restored.resume("pass").awaiting_input
        assert restored.resume("pass").complete

    def test_simultaneous_flags_restored(self):
        definition = FlowDefinition(root=simultaneous_action_step(["pass"]))
        engine = FlowEngine(new_game(), definition)
        engine.start()
        engine.resume("pass", player_index=1)
        position = engine.get_position()

        restored = FlowEngine(new_game(), definition)
        state = restored.restore(position)
        assert [p.completed for p in state.awaiting_players] == [False, True, False]

    def test_loop_counter_restored(self):
        definition = FlowDefinition(root=loop(action_step(["pass"]), max_iterations=3))
        engine = FlowEngine(new_game(), definition)
        engine.start()
        engine.resume("pass")
        position = engine.get_position()
        assert position.iterations["0"] == 2

        restored = FlowEngine(new_game(), definition)
        restored.restore(position)
        restored.resume("pass")
        with pytest.raises(IterationLimitError):
            restored.resume("pass")

    def test_branches_restored(self):
        definition = FlowDefinition(
            root=sequence(
                if_then(lambda ctx: False, action_step(["pick"]), action_step(["pass"], name="else")),
                switch(lambda ctx: 2, {1: action_step(["pick"]), 2: action_step(["pass"], name="two")}),
            )
        )
        engine = FlowEngine(new_game(), definition)
        engine.start()
        assert engine.get_position().path == [0, 1, 0]
        engine.resume("pass")
        position = engine.get_position()
        assert position.path == [1, 1, 0]

        restored = FlowEngine(new_game(), definition)
        assert restored.restore(position).step_name == "two"


class TestRestoreEdgeCases:
    """Empty paths, mismatches, and missing definitions."""

    def test_empty_path_is_complete(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=action_step(["pass"])))
        state = engine.restore(Position())
        assert state.complete
        assert engine.is_complete()

    def test_completed_flow_position_is_empty(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=action_step(["pass"])))
        engine.start()
        engine.resume("pass")
        assert engine.get_position().path == []

    def test_index_out_of_range(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=sequence(action_step(["pass"]), action_step(["pass"]))))
        with pytest.raises(PositionMismatchError):
            engine.restore(Position(path=[5, 0]))

    def test_path_ends_above_leaf(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=sequence(action_step(["pass"]))))
        with pytest.raises(PositionMismatchError):
            engine.restore(Position(path=[0]))

    def test_path_through_execute(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=sequence(execute(lambda ctx: None), action_step(["pass"]))))
        with pytest.raises(PositionMismatchError):
            engine.restore(Position(path=[0, 0]))

    def test_path_below_leaf(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=action_step(["pass"])))
        with pytest.raises(PositionMismatchError):
            engine.restore(Position(path=[0, 0]))

    def test_missing_definition(self):
        with pytest.raises(MissingFlowDefinitionError):
            FlowEngine(new_game()).restore(Position(path=[0]))


def eliminating_game(names=("Alice", "Bob", "Carol")):
    """Players drop out of later passes once they have acted."""
    game = new_game(names)
    game.out = set()
    game.register_action(
        ActionDefinition(name="act", execute=lambda args, ctx: ctx.game.out.add(ctx.player.position))
    )
    return game


def eliminating_flow():
    return FlowDefinition(
        root=each_player(
            action_step(["act"], name="turn"),
            filter=lambda p, ctx: p.position not in ctx.game.out,
        )
    )


class TestEntryListsStayFixed:
    """The player order and collection fixed on entry survive a restore."""

    def test_filter_excludes_player_who_already_acted(self):
        original = eliminating_game()
        original.set_flow(eliminating_flow())
        original.start_flow()
        original.continue_flow("act")

        payload = original.save_position()
        assert [payload["iterations"][f"0:order:{k}"] for k in range(3)] == [0, 1, 2]

        restored = eliminating_game()
        restored.out = set(original.out)
        restored.set_flow(eliminating_flow())
        state = restored.load_position(payload)
        assert state.current_player.name == "Bob"

        for g in (original, restored):
            g.continue_flow("act")
            g.continue_flow("act")

        assert [seat for _, seat, _ in original.calls] == [0, 1, 2]
        assert [seat for _, seat, _ in restored.calls] == [1, 2]
        assert restored.is_finished()

    def test_unknown_stored_seat(self):
        engine = FlowEngine(eliminating_game(), eliminating_flow())
        position = Position(path=[0, 0], iterations={"0:order:0": 7})
        with pytest.raises(PositionMismatchError):
            engine.restore(position)

    def test_for_each_restores_bound_item(self):
        definition = FlowDefinition(root=for_each(lambda ctx: ["x", "y", "z"], action_step(["pass"])))
        engine = FlowEngine(new_game(), definition)
        engine.start()
        engine.resume("pass")
        position = engine.get_position()
        assert position.iterations["0:size"] == 3

        restored = FlowEngine(new_game(), definition)
        restored.restore(position)
        assert restored.variables["item"] == "y"
        restored.resume("pass")
        assert restored.variables["item"] == "z"
        assert restored.resume("pass").complete

    def test_for_each_collection_changed_size(self):
        pending = ["x", "y", "z"]
        definition = FlowDefinition(root=for_each(lambda ctx: list(pending), action_step(["pass"])))
        engine = FlowEngine(new_game(), definition)
        engine.start()
        position = engine.get_position()

        pending.pop(0)
        with pytest.raises(PositionMismatchError):
            FlowEngine(new_game(), definition).restore(position)


class TestPositionIsolation:
    """A captured Position does not share containers with the live engine."""

    def test_capture_copies_nested_values(self):
        engine = FlowEngine(new_game(), FlowDefinition(root=action_step(["pass"])))
        engine.start()
        engine.variables["seen"] = ["a"]
        engine.variables["pair"] = (["a"], 1)

        position = engine.get_position()
        engine.variables["seen"].append("b")
        engine.variables["pair"][0].append("b")

        assert position.variables["seen"] == ["a"]
        assert position.variables["pair"] == (["a"], 1)

    def test_restore_copies_nested_values(self):
        definition = FlowDefinition(root=action_step(["pass"]))
        position = Position(path=[0], variables={"seen": ["a"]})
        engine = FlowEngine(new_game(), definition)
        engine.restore(position)

        engine.variables["seen"].append("b")
        assert position.variables["seen"] == ["a"]
