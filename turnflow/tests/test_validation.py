"""
Tests for flow and action catalogue validation.

Tests:
- Structural errors in flow trees
- Unknown action references
- Selection dependency ordering
- Host rejects invalid flows
"""

import pytest

from ..flow_schema import (
    ActionDefinition,
    FlowDefinition,
    FlowNode,
    FlowValidationError,
    NodeKind,
    action_step,
    choose_from,
    each_player,
    enter_number,
    enter_text,
    execute,
    loop,
    sequence,
    validate_actions,
    validate_flow,
)


def noop(args, ctx):
    return None


class TestValidateFlow:
    """Static checks on flow trees."""

    def test_valid_flow(self):
        definition = FlowDefinition(
            root=loop(each_player(action_step(["pass"])), while_=lambda ctx: True),
            get_winners=lambda ctx: [],
        )
        result = validate_flow(definition, ["pass"])
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_unknown_action(self):
        result = validate_flow(FlowDefinition(root=action_step(["fly"])), ["pass"])
        assert not result.valid
        assert any("unknown action 'fly'" in e for e in result.errors)

    def test_action_names_optional(self):
        assert validate_flow(FlowDefinition(root=action_step(["fly"]))).valid

    def test_empty_action_list(self):
        result = validate_flow(FlowDefinition(root=action_step([])))
        assert not result.valid

    def test_min_moves_above_max(self):
        result = validate_flow(FlowDefinition(root=action_step(["pass"], min_moves=3, max_moves=1)))
        assert any("min_moves > max_moves" in e for e in result.errors)

    def test_zero_max_iterations(self):
        result = validate_flow(FlowDefinition(root=loop(execute(lambda ctx: None), max_iterations=0)))
        assert not result.valid

    def test_loop_without_body(self):
        result = validate_flow(FlowDefinition(root=FlowNode(kind=NodeKind.LOOP, name="broken")))
        assert any("'broken' has no body" in e for e in result.errors)

    def test_for_each_without_collection(self):
        node = FlowNode(kind=NodeKind.FOR_EACH, body=execute(lambda ctx: None))
        assert not validate_flow(FlowDefinition(root=node)).valid

    def test_bad_direction(self):
        result = validate_flow(FlowDefinition(root=each_player(execute(lambda ctx: None), direction="sideways")))
        assert not result.valid

    def test_empty_sequence_is_error(self):
        assert not validate_flow(FlowDefinition(root=sequence())).valid

    def test_errors_found_in_nested_nodes(self):
        root = sequence(loop(sequence(action_step(["pass"], min_moves=2, max_moves=1))))
        assert not validate_flow(FlowDefinition(root=root)).valid

    def test_duplicate_names_warn(self):
        root = sequence(execute(lambda ctx: None, name="x"), execute(lambda ctx: None, name="x"))
        result = validate_flow(FlowDefinition(root=root, get_winners=lambda ctx: []))
        assert result.valid
        assert result.warnings == ["Duplicate node name 'x'"]


class TestValidateActions:
    """Static checks on action catalogues."""

    def test_valid_catalogue(self):
        actions = [
            ActionDefinition(
                name="paint",
                execute=noop,
                selections=[
                    choose_from("color", choices=["red"]),
                    choose_from("shade", depends_on="color", dependent_choices={"red": ["crimson"]}),
                ],
            )
        ]
        assert validate_actions(actions).valid

    def test_dependency_must_be_earlier(self):
        actions = [
            ActionDefinition(
                name="paint",
                execute=noop,
                selections=[
                    choose_from("shade", depends_on="color", dependent_choices={"red": ["crimson"]}),
                    choose_from("color", choices=["red"]),
                ],
            )
        ]
        result = validate_actions(actions)
        assert not result.valid
        assert "not an earlier selection" in result.errors[0]

    def test_duplicate_selection(self):
        actions = [ActionDefinition(name="a", execute=noop, selections=[enter_text("x"), enter_text("x")])]
        assert not validate_actions(actions).valid

    def test_duplicate_action(self):
        actions = [ActionDefinition(name="a", execute=noop), ActionDefinition(name="a", execute=noop)]
        assert not validate_actions(actions).valid

    def test_number_bounds(self):
        actions = [ActionDefinition(name="a", execute=noop, selections=[enter_number("n", min=5, max=1)])]
        assert not validate_actions(actions).valid

    def test_text_bounds(self):
        actions = [ActionDefinition(name="a", execute=noop, selections=[enter_text("t", min_length=5, max_length=1)])]
        assert not validate_actions(actions).valid

    def test_dependency_requires_choices(self):
        with pytest.raises(ValueError):
            choose_from("shade", depends_on="color")


class TestHostValidation:
    """Game.set_flow refuses invalid definitions."""

    def test_set_flow_raises(self, game):
        with pytest.raises(FlowValidationError) as exc:
            game.set_flow(FlowDefinition(root=action_step(["fly"])))
        assert any("fly" in e for e in exc.value.errors)
        assert game.flow_engine is None

    def test_set_flow_accepts_valid(self, game):
        game.set_flow(FlowDefinition(root=action_step(["pass", "pick"])))
        assert game.flow_engine is not None
