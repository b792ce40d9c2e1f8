"""
Tests for the pydantic wire schemas.
"""

import pytest
from pydantic import ValidationError

from ..engine_core import FlowState, Position, AwaitingPlayer, ActionResult
from ..session import (
    PositionModel,
    position_to_payload,
    position_from_payload,
    flow_state_to_payload,
)
from ..session.schemas import encode_value, decode_value


class TestPositionModel:
    """Validation of stored positions."""

    def test_accepts_wire_names(self):
        model = PositionModel.model_validate({"path": [0, 2], "iterations": {"0": 1}, "playerIndex": 1, "variables": {}})
        assert model.player_index == 1
        assert model.path == [0, 2]

    def test_accepts_field_names(self):
        assert PositionModel(player_index=2).player_index == 2

    def test_dumps_wire_names(self):
        data = PositionModel(path=[1], player_index=0).model_dump(by_alias=True)
        assert set(data) == {"path", "iterations", "playerIndex", "variables"}

    @pytest.mark.parametrize("data", [
        {"path": [-1]},
        {"path": ["x"]},
        {"iterations": {"0": -2}},
        {"playerIndex": -1},
    ])
    def test_rejects_bad_values(self, data):
        with pytest.raises(ValidationError):
            PositionModel.model_validate(data)


class TestPlayerEncoding:
    """Players inside variables are stored by seat."""

    def test_nested_values(self, game):
        alice, bob, _ = game.players
        variables = {"player": bob, "order": [alice, bob], "meta": {"leader": alice}, "round": 2}

        encoded = encode_value(variables, game.players)
        assert encoded == {
            "player": {"$player": 1},
            "order": [{"$player": 0}, {"$player": 1}],
            "meta": {"leader": {"$player": 0}},
            "round": 2,
        }
        assert decode_value(encoded, game.players) == variables

    def test_tuples_come_back_as_lists(self, game):
        alice = game.players[0]
        encoded = encode_value((alice, 1), game.players)
        assert encoded == [{"$player": 0}, 1]
        assert decode_value(encoded, game.players) == [alice, 1]

    def test_unknown_seat_decodes_to_none(self, game):
        assert decode_value({"$player": 7}, game.players) is None

    def test_position_payload(self, game):
        position = Position(path=[0, 1], iterations={"0": 1}, player_index=2, variables={"p": game.players[2]})
        payload = position_to_payload(position, game.players)

        assert payload["playerIndex"] == 2
        assert payload["variables"] == {"p": {"$player": 2}}

        restored = position_from_payload(payload, game.players)
        assert restored.path == [0, 1]
        assert restored.iterations == {"0": 1}
        assert restored.variables["p"] is game.players[2]


class TestFlowStatePayload:
    def test_awaiting_state(self, game):
        state = FlowState(
            awaiting_input=True,
            current_player=game.players[1],
            available_actions=["pass"],
            prompt="Go",
            awaiting_players=[AwaitingPlayer(0, ["pass"], False)],
            current_phase="main",
            step_name="turn",
            last_action_result=ActionResult.failure("bad", error_code="INVALID_ACTION"),
        )
        payload = flow_state_to_payload(state, game.players)

        assert payload["awaitingInput"] is True
        assert payload["currentPlayer"] == 1
        assert payload["availableActions"] == ["pass"]
        assert payload["awaitingPlayers"] == [{"playerIndex": 0, "availableActions": ["pass"], "completed": False}]
        assert payload["lastActionResult"]["error_code"] == "INVALID_ACTION"

    def test_game_payload_after_start(self, game):
        from ..flow_schema import FlowDefinition, action_step

        game.set_flow(FlowDefinition(root=action_step(["pass"], name="turn")))
        game.start_flow()
        payload = game.flow_state_payload()
        assert payload["complete"] is False
        assert payload["stepName"] == "turn"
        assert payload["currentPlayer"] == 0
