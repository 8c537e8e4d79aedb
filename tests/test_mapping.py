"""
Tests for column mapping rules and the node configuration draft.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.flow.mapping import (
    MAX_INPUT_COLUMNS,
    NO_COLUMNS,
    NodeConfigDraft,
    NodeConfigError,
    build_destination_mapping,
    build_preview_rows,
    default_source_mapping,
    effective_input,
    effective_output,
    ignore_column,
    keep_column,
    mock_value_for,
    rename_column,
)
from api.flow.models import (
    DestinationMappingRow,
    DropColumn,
    MappingMode,
    NodeRole,
    RenameColumn,
    SourceMappingRow,
)


class TestSourceRules:
    """Rename, keep and ignore on source rows."""

    def test_default_mapping_keeps_every_column(self):
        rows = default_source_mapping()
        assert [row.out.key for row in rows] == ["c0", "c1", "c2", "c3", "c4"]
        assert all(row.mode is MappingMode.ORIGINAL for row in rows)
        assert effective_output(rows) == [
            "customer_id",
            "first_name",
            "last_name",
            "email",
            "created_at",
        ]

    def test_blank_rename_falls_back_to_declared_name(self):
        row = default_source_mapping()[0]
        renamed = rename_column(row, "   ")

        assert isinstance(renamed.rule, RenameColumn)
        assert renamed.edited_name == "customer_id"
        assert effective_output([renamed]) == ["customer_id"]

    def test_rename_is_trimmed(self):
        row = default_source_mapping()[1]
        assert effective_output([rename_column(row, "  given  ")]) == ["given"]

    def test_ignored_row_never_contributes(self):
        row = rename_column(default_source_mapping()[3], "mail")
        ignored = ignore_column(row)

        assert isinstance(ignored.rule, DropColumn)
        assert ignored.edited_name == "mail"
        assert effective_output([ignored]) == []

    def test_keep_restores_declared_name(self):
        row = rename_column(default_source_mapping()[2], "surname")
        assert effective_output([keep_column(row)]) == ["last_name"]

    def test_row_dict_roundtrip_preserves_rule(self):
        row = ignore_column(rename_column(default_source_mapping()[0], "id"))
        restored = SourceMappingRow.from_dict(row.to_dict())
        assert restored == row

    def test_effective_output_is_deterministic(self):
        rows = default_source_mapping()
        rows[1] = rename_column(rows[1], "given_name")
        rows[3] = ignore_column(rows[3])
        rows[4] = keep_column(rename_column(rows[4], "born"))

        first = effective_output(rows)
        assert first == ["customer_id", "given_name", "last_name", "created_at"]
        assert effective_output(rows) == first
        assert effective_output(list(rows)) == first

    @pytest.mark.parametrize("data", [{"out": 5}, {"out": "x"}, "row", None])
    def test_malformed_row_rejected(self, data):
        with pytest.raises(ValueError, match="must be an object"):
            SourceMappingRow.from_dict(data)

    def test_edited_name_is_coerced_to_text(self):
        row = SourceMappingRow.from_dict(
            {"out": {"key": "c0", "name": "customer_id"}, "mode": "edit", "edited_name": 7}
        )
        assert row.edited_name == "7"
        assert effective_output([row]) == ["7"]


class TestDestinationMapping:
    """Tests for destination rows built from upstream columns."""

    def test_no_upstream_uses_mock_fields(self):
        rows = build_destination_mapping(None)
        assert [r.in_name for r in rows] == [
            "customer_id",
            "first_name",
            "last_name",
            "email",
            "created_at",
        ]

    def test_empty_upstream_yields_no_rows(self):
        assert build_destination_mapping([]) == []

    def test_target_names_are_positional(self):
        rows = build_destination_mapping(["a", "b", "c", "d", "e"])
        assert [r.target_name for r in rows] == [
            "cust_id",
            "full_name",
            "email",
            "created_at",
            "cust_id",
        ]

    def test_input_is_capped(self):
        rows = build_destination_mapping([f"col{i}" for i in range(80)])
        assert len(rows) == MAX_INPUT_COLUMNS

    def test_edit_mode_rejected(self):
        with pytest.raises(ValueError, match="original"):
            DestinationMappingRow(in_name="a", target_name="b", mode=MappingMode.EDIT)

    def test_effective_input_skips_ignored(self):
        rows = [
            DestinationMappingRow("a", "x"),
            DestinationMappingRow("b", "y", MappingMode.IGNORE),
        ]
        assert effective_input(rows) == ["x"]


class TestPreview:
    def test_mock_values(self):
        assert mock_value_for("customer_id", 2) == 1002
        assert mock_value_for("email", 1) == "user1@example.com"
        assert mock_value_for("full_name", 1) == "Alice"
        assert mock_value_for("created_at", 0) == "2025-01-01"
        assert mock_value_for("amount", 3) == "val_3"

    def test_placeholder_column_has_no_values(self):
        rows = build_preview_rows([NO_COLUMNS])
        assert rows == [{}] * 5


class TestNodeConfigDraft:
    """Tests for the configuration dialog draft."""

    def test_save_requires_connection_schema_and_table(self, store, connections):
        node = store.get_node(store.create_node(NodeRole.SOURCE))
        draft = NodeConfigDraft(node, connections.list())
        draft.set_connection("pg-crm")
        draft.set_schema("public")
        draft.set_table("   ")

        assert draft.can_save is False
        with pytest.raises(NodeConfigError, match="required"):
            draft.save()

    def test_save_trims_and_names_connection(self, store, connections):
        node = store.get_node(store.create_node(NodeRole.SOURCE))
        draft = NodeConfigDraft(node, connections.list())
        draft.set_connection("pg-crm")
        draft.set_schema(" public ")
        draft.set_table(" customers ")

        value = draft.save()

        assert value.schema == "public"
        assert value.table == "customers"
        assert draft.connection_name == "CRM main"
        assert value.destination_mapping is None
        assert len(value.preview_rows) == 5
        assert draft.is_open is False

    def test_draft_does_not_touch_node(self, store, connections):
        node_id = store.create_node(NodeRole.SOURCE)
        draft = NodeConfigDraft(store.get_node(node_id), connections.list())
        draft.set_schema("public")
        draft.ignore_column(0)
        draft.cancel()

        node = store.get_node(node_id)
        assert node.schema is None
        assert node.source_mapping == []

    def test_destination_draft_uses_upstream_columns(self, store, connections):
        node = store.get_node(store.create_node(NodeRole.DESTINATION))
        draft = NodeConfigDraft(node, connections.list(), upstream_columns=["id", "total"])

        assert [r.in_name for r in draft.destination_mapping] == ["id", "total"]
        draft.set_destination_mode(1, MappingMode.IGNORE)
        assert draft.column_count == 1
        assert draft.preview_columns == ["cust_id"]

    def test_source_edits_rejected_on_destination(self, store, connections):
        node = store.get_node(store.create_node(NodeRole.DESTINATION))
        draft = NodeConfigDraft(node, connections.list())
        with pytest.raises(NodeConfigError):
            draft.rename_column(0, "x")

    def test_all_ignored_shows_placeholder(self, store, connections):
        node = store.get_node(store.create_node(NodeRole.SOURCE))
        draft = NodeConfigDraft(node, connections.list())
        for idx in range(len(draft.source_mapping)):
            draft.ignore_column(idx)

        assert draft.column_count == 0
        assert draft.preview_columns == [NO_COLUMNS]

    def test_apply_saved_value_to_store(self, store, connections):
        node_id = store.create_node(NodeRole.SOURCE)
        draft = NodeConfigDraft(store.get_node(node_id), connections.list())
        draft.set_connection("pg-crm")
        draft.set_schema("public")
        draft.set_table("customers")
        draft.rename_column(1, "given_name")

        store.apply_node_config(node_id, draft.save())
        node = store.get_node(node_id)

        assert node.configured is True
        assert node.db_type == "PostgreSQL"
        assert node.destination_mapping is None
        assert store.effective_output(node_id)[1] == "given_name"
