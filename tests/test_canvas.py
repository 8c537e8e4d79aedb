"""
Tests for canvas gestures: drops, selection, reconnect drags and layout of
generated workspace nodes.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.flow.bridge import NodeSpec
from api.flow.canvas import CanvasController, split_schema_table
from api.flow.etl_actions import EtlAction
from api.flow.models import NodeRole, NodeTemplate, Position, WorkspaceNodeKind


@pytest.fixture
def canvas(store):
    return CanvasController(store)


@pytest.fixture
def chain(canvas):
    """Two edges: a(0,0) -> b(400,0) and b(400,0) -> c(400,800)."""
    store = canvas.store
    a = store.create_node(NodeRole.SOURCE, position=Position(0, 0))
    b = store.create_node(NodeRole.DESTINATION, position=Position(400, 0))
    c = store.create_node(NodeRole.DESTINATION, position=Position(400, 800))
    ab = canvas.connect(a, b)
    bc = canvas.connect(b, c)
    canvas.click_pane()
    return {"a": a, "b": b, "c": c, "ab": ab, "bc": bc}


class TestDrops:
    def test_drop_database_uses_section_role(self, canvas):
        node_id = canvas.drop_database("destination", Position(50, 60), connection_id="my-shop")
        node = canvas.store.get_node(node_id)

        assert node.role is NodeRole.DESTINATION
        assert node.db_type == "MySQL"
        assert node.position == Position(50, 60)

    def test_drop_template_prefills_node(self, canvas):
        template = NodeTemplate(id="t1", connection_id="pg-crm", schema="sales", table="orders")
        node = canvas.store.get_node(canvas.drop_template(template, NodeRole.SOURCE, Position()))

        assert (node.schema, node.table) == ("sales", "orders")
        assert node.configured is True


class TestSelection:
    def test_connect_selects_new_edge(self, canvas, chain):
        edge_id = canvas.connect(chain["a"], chain["c"])
        assert canvas.selected_edge_id == edge_id

    def test_click_pane_clears_selection(self, canvas, chain):
        canvas.click_edge(chain["ab"])
        canvas.click_pane()
        assert canvas.selected_edge_id is None

    def test_selection_forgotten_when_edge_removed(self, canvas, chain):
        canvas.click_edge(chain["ab"])
        canvas.delete_node(chain["a"])
        assert canvas.selected_edge_id is None


class TestActionDrops:
    def test_drop_on_explicit_edge(self, canvas, chain):
        target = canvas.drop_action("sort", edge_id=chain["ab"])
        assert target == chain["ab"]
        assert canvas.store.get_edge(chain["ab"]).action is EtlAction.SORT
        assert canvas.selected_edge_id == chain["ab"]

    def test_drop_snaps_to_nearest_midpoint(self, canvas, chain):
        # midpoint of ab is (200, 0), of bc is (400, 400)
        target = canvas.drop_action("merge", position=Position(220, 30))
        assert target == chain["ab"]

    def test_far_drop_falls_back_to_last_edge(self, canvas, chain):
        target = canvas.drop_action("lookup", position=Position(5000, 5000))
        assert target == chain["bc"]

    def test_click_prefers_selected_edge(self, canvas, chain):
        canvas.click_edge(chain["ab"])
        assert canvas.click_action("union") == chain["ab"]

    def test_non_palette_action_rejected(self, canvas, chain):
        assert canvas.drop_action("pivot", edge_id=chain["ab"]) is None
        assert canvas.store.get_edge(chain["ab"]).action is None

    def test_no_edges_no_target(self, canvas):
        assert canvas.click_action("sort") is None


class TestReconnect:
    def test_abandoned_reconnect_deletes_edge(self, canvas, chain):
        canvas.start_reconnect(chain["ab"])
        assert canvas.reconnect_in_progress

        assert canvas.end_reconnect() is False
        assert canvas.store.get_edge(chain["ab"]) is None
        assert canvas.reconnect_in_progress is False

    def test_landed_reconnect_keeps_edge(self, canvas, chain):
        canvas.store.set_edge_action(chain["ab"], EtlAction.SCRIPT)
        canvas.start_reconnect(chain["ab"])
        assert canvas.complete_reconnect(new_target_node_id=chain["c"]) is True
        assert canvas.end_reconnect() is True

        edge = canvas.store.get_edge(chain["ab"])
        assert edge.target_node_id == chain["c"]
        assert edge.action is EtlAction.SCRIPT

    def test_landing_on_missing_node_does_not_count(self, canvas, chain):
        canvas.start_reconnect(chain["ab"])
        assert canvas.complete_reconnect(new_target_node_id="ghost") is False
        canvas.end_reconnect()
        assert canvas.store.get_edge(chain["ab"]) is None


class TestGenerateLayout:
    def test_columns_and_rows_by_kind(self, canvas):
        specs = [
            NodeSpec(WorkspaceNodeKind.DATASET, "orders"),
            NodeSpec(WorkspaceNodeKind.FIELD, "id"),
            NodeSpec(WorkspaceNodeKind.FIELD, "total : number"),
        ]
        ids = canvas.generate(specs)
        nodes = [canvas.store.get_workspace_node(i) for i in ids]

        assert [n.label for n in nodes] == ["orders", "id", "total : number"]
        assert [n.position.x for n in nodes] == [120.0, 420.0, 420.0]
        assert [n.position.y for n in nodes] == [120.0, 120.0, 206.0]

    def test_label_uses_table_part(self, canvas):
        ids = canvas.generate([NodeSpec(WorkspaceNodeKind.SOURCE, "CRM.customers")])
        assert canvas.store.get_workspace_node(ids[0]).label == "customers"

    def test_existing_nodes_shift_base(self, canvas):
        canvas.store.create_node(NodeRole.SOURCE)
        ids = canvas.generate([NodeSpec(WorkspaceNodeKind.SQL_DRAFT, "SQL draft")])
        node = canvas.store.get_workspace_node(ids[0])
        assert (node.position.x, node.position.y) == (1020.0, 126.0)

    def test_split_schema_table(self):
        assert split_schema_table("public.orders") == {"schema": "public", "table": "orders"}
        assert split_schema_table("orders") == {"schema": "", "table": "orders"}
