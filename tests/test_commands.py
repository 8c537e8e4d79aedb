"""
Tests for command parsing and dispatch.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.flow.commands import (
    CommandError,
    ConnectCommand,
    CreateNodeCommand,
    SetEdgeActionCommand,
    apply_command,
    apply_commands,
    parse_command,
)
from api.flow.etl_actions import EtlAction
from api.flow.models import NodeRole, Position


class TestParseCommand:
    def test_create_node(self):
        command = parse_command(
            {"type": "create_node", "role": "source", "position": {"x": 5, "y": 7}}
        )
        assert isinstance(command, CreateNodeCommand)
        assert command.role is NodeRole.SOURCE
        assert command.position == Position(5.0, 7.0)

    def test_action_is_normalized(self):
        command = parse_command({"type": "set_edge_action", "edge_id": "e1", "action": "merge_join"})
        assert isinstance(command, SetEdgeActionCommand)
        assert command.action is EtlAction.MERGE_JOIN

    def test_unknown_type(self):
        with pytest.raises(CommandError, match="Unknown command type"):
            parse_command({"type": "explode"})

    def test_unknown_field(self):
        with pytest.raises(CommandError, match="Unknown field"):
            parse_command({"type": "delete_edge", "edge_id": "e1", "force": True})

    def test_missing_field(self):
        with pytest.raises(CommandError, match="Invalid connect command"):
            parse_command({"type": "connect", "source_node_id": "a"})

    def test_bad_role(self):
        with pytest.raises(CommandError, match="Invalid role"):
            parse_command({"type": "create_node", "role": "sink"})

    def test_unknown_action(self):
        with pytest.raises(CommandError, match="Unknown action"):
            parse_command({"type": "set_edge_action", "edge_id": "e1", "action": "teleport"})

    @pytest.mark.parametrize("position", [{"x": "abc"}, {"x": None}, [1, 2], "origin"])
    def test_bad_position(self, position):
        with pytest.raises(CommandError, match="Invalid position"):
            parse_command({"type": "move_node", "node_id": "n1", "position": position})

    @pytest.mark.parametrize("action", [5, ["sort"], {"name": "sort"}])
    def test_non_string_action(self, action):
        with pytest.raises(CommandError, match="Unknown action"):
            parse_command({"type": "set_edge_action", "edge_id": "e1", "action": action})


class TestApplyCommand:
    def test_create_and_connect(self, store):
        a = apply_command(store, CreateNodeCommand(role=NodeRole.SOURCE))
        b = apply_command(store, CreateNodeCommand(role=NodeRole.DESTINATION))
        edge_id = apply_command(store, ConnectCommand(a, b))

        assert store.get_edge(edge_id).source_node_id == a
        assert store.get_edge(edge_id).target_node_id == b

    def test_batch_in_order(self, store):
        a = store.create_node(NodeRole.SOURCE)
        b = store.create_node(NodeRole.DESTINATION)
        commands = [
            parse_command({"type": "connect", "source_node_id": a, "target_node_id": b}),
            parse_command({"type": "move_node", "node_id": a, "position": {"x": 10, "y": 20}}),
            parse_command({"type": "configure_node", "node_id": b, "connection_id": "my-shop",
                           "schema": "shop", "table": "orders"}),
            parse_command({"type": "delete_node", "node_id": a}),
        ]
        results = apply_commands(store, commands)

        assert results[0] is not None
        assert results[1:] == [None, None, None]
        assert store.edges == []
        assert store.get_node(b).configured is True

    def test_stale_ids_are_noops(self, store):
        results = apply_commands(
            store,
            [
                parse_command({"type": "delete_edge", "edge_id": "ghost"}),
                parse_command({"type": "clear_edge_action", "edge_id": "ghost"}),
                parse_command({"type": "reconnect", "edge_id": "ghost", "new_target_node_id": "x"}),
            ],
        )
        assert results == [None, None, None]

    def test_unsupported_object_raises(self, store):
        with pytest.raises(TypeError):
            apply_command(store, object())
