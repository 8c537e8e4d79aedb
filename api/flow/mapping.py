"""
Column mapping rules for source and destination nodes.

Source nodes rename or drop their declared columns; the resulting
"effective output" is what a downstream destination node is offered as its
input columns. Destination nodes keep exactly one row per input column,
either bound to a target field or ignored.

``NodeConfigDraft`` models the node configuration dialog: every edit
happens on the draft, and the graph only changes once a saved
``NodeConfigValue`` is applied to the store.
"""

from typing import Any, Dict, List, Optional, Sequence

from ..shared.logger import get_logger
from .connections import ConnectionDescriptor
from .models import (
    DestinationMappingRow,
    DropColumn,
    GraphNode,
    KeepColumn,
    MappingMode,
    NodeConfigValue,
    NodeRole,
    OutColumn,
    RenameColumn,
    SourceMappingRow,
)

logger = get_logger(__name__)

# Placeholder schemas until real schema introspection exists
MOCK_SOURCE_FIELDS = ["customer_id", "first_name", "last_name", "email", "created_at"]
MOCK_TARGET_FIELDS = ["cust_id", "full_name", "email", "created_at"]

MAX_INPUT_COLUMNS = 50
PREVIEW_ROW_COUNT = 5
NO_COLUMNS = "(no columns)"


class NodeConfigError(ValueError):
    """Raised when a node configuration cannot be saved."""


# ============= Source mapping =============


def resolve_output_name(row: SourceMappingRow) -> Optional[str]:
    """Name a source row contributes to the output, or None when ignored."""
    rule = row.rule
    if isinstance(rule, KeepColumn):
        return row.out.name
    if isinstance(rule, RenameColumn):
        return rule.edited_name.strip() or row.out.name
    if isinstance(rule, DropColumn):
        return None
    raise TypeError(f"Unsupported mapping rule: {rule!r}")


def effective_output(rows: Sequence[SourceMappingRow]) -> List[str]:
    """Ordered names of every non-ignored source row."""
    names = []
    for row in rows:
        name = resolve_output_name(row)
        if name is not None:
            names.append(name)
    return names


def default_columns(names: Sequence[str] = MOCK_SOURCE_FIELDS) -> List[OutColumn]:
    return [OutColumn(key=f"c{i}", name=name) for i, name in enumerate(names)]


def default_source_mapping(columns: Optional[Sequence[OutColumn]] = None) -> List[SourceMappingRow]:
    """One ``original`` row per declared column."""
    if columns is None:
        columns = default_columns()
    return [SourceMappingRow(out=column) for column in columns]


def keep_column(row: SourceMappingRow) -> SourceMappingRow:
    return SourceMappingRow(out=row.out, rule=KeepColumn())


def rename_column(row: SourceMappingRow, new_name: str) -> SourceMappingRow:
    """Confirm an edit; a blank name is stored as the declared name."""
    return SourceMappingRow(
        out=row.out,
        rule=RenameColumn(edited_name=(new_name or "").strip() or row.out.name),
    )


def ignore_column(row: SourceMappingRow) -> SourceMappingRow:
    return SourceMappingRow(out=row.out, rule=DropColumn(edited_name=row.edited_name))


# ============= Destination mapping =============


def default_target_name(index: int, destination_fields: Sequence[str]) -> str:
    """Positional pick from the destination fields, falling back to the first."""
    if index < len(destination_fields):
        return destination_fields[index]
    if destination_fields:
        return destination_fields[0]
    return ""


def build_destination_mapping(
    input_columns: Optional[Sequence[str]],
    destination_fields: Sequence[str] = MOCK_TARGET_FIELDS,
) -> List[DestinationMappingRow]:
    """One ``original`` row per input column.

    ``None`` means no upstream source is connected and the mock source fields
    are offered instead; an empty list means the upstream source exposes no
    columns and yields no rows.
    """
    if input_columns is None:
        input_columns = MOCK_SOURCE_FIELDS
    return [
        DestinationMappingRow(
            in_name=name,
            target_name=default_target_name(idx, destination_fields),
        )
        for idx, name in enumerate(list(input_columns)[:MAX_INPUT_COLUMNS])
    ]


def effective_destination_rows(rows: Sequence[DestinationMappingRow]) -> List[DestinationMappingRow]:
    return [row for row in rows if row.mode is not MappingMode.IGNORE]


def effective_input(rows: Sequence[DestinationMappingRow]) -> List[str]:
    """Target column names written by the destination."""
    return [row.target_name or row.in_name for row in effective_destination_rows(rows)]


# ============= Preview =============


def preview_columns(
    role: NodeRole,
    source_rows: Sequence[SourceMappingRow] = (),
    destination_rows: Sequence[DestinationMappingRow] = (),
) -> List[str]:
    if role is NodeRole.SOURCE:
        columns = effective_output(source_rows)
    else:
        columns = effective_input(destination_rows)
    return columns or [NO_COLUMNS]


def mock_value_for(column: str, index: int) -> Any:
    key = column.lower()
    if "id" in key:
        return 1000 + index
    if "email" in key:
        return f"user{index}@example.com"
    if "name" in key:
        return "Alice" if index % 2 else "Bob"
    if "date" in key or "created" in key:
        return f"2025-01-0{(index % 9) + 1}"
    return f"val_{index}"


def build_preview_rows(columns: Sequence[str], count: int = PREVIEW_ROW_COUNT) -> List[Dict[str, Any]]:
    columns = [c for c in columns if c != NO_COLUMNS]
    return [{c: mock_value_for(c, i) for c in columns} for i in range(count)]


# ============= Configuration dialog =============


class NodeConfigDraft:
    """Editable copy of a node's configuration.

    Nothing written here reaches the graph until ``save()`` returns a value
    and the caller applies it. Dropping the draft, or calling ``cancel()``,
    leaves the node untouched.
    """

    def __init__(
        self,
        node: GraphNode,
        connection_options: Sequence[ConnectionDescriptor] = (),
        upstream_columns: Optional[Sequence[str]] = None,
        destination_fields: Sequence[str] = MOCK_TARGET_FIELDS,
        source_columns: Optional[Sequence[OutColumn]] = None,
    ):
        self.node_id = node.id
        self.role = node.role
        self.db_type = node.db_type
        self.connection_options = list(connection_options)
        self.destination_fields = list(destination_fields)
        self.is_open = True

        self.connection_id = node.connection.id if node.connection else ""
        self.schema = node.schema or ""
        self.table = node.table or ""

        self.source_mapping: List[SourceMappingRow] = []
        self.destination_mapping: List[DestinationMappingRow] = []

        if self.role is NodeRole.SOURCE:
            if node.source_mapping:
                self.source_mapping = list(node.source_mapping)
            else:
                self.source_mapping = default_source_mapping(source_columns)
        else:
            if node.destination_mapping:
                self.destination_mapping = list(node.destination_mapping)
            else:
                self.destination_mapping = build_destination_mapping(
                    upstream_columns, self.destination_fields
                )

    # ----- detail tab -----

    @property
    def connection_name(self) -> str:
        for option in self.connection_options:
            if option.id == self.connection_id:
                return option.name
        return ""

    @property
    def can_save(self) -> bool:
        return bool(self.connection_id) and bool(self.schema.strip()) and bool(self.table.strip())

    def set_connection(self, connection_id: str) -> None:
        self.connection_id = connection_id or ""

    def set_schema(self, schema: str) -> None:
        self.schema = schema or ""

    def set_table(self, table: str) -> None:
        self.table = table or ""

    # ----- mapping tab -----

    def _require_role(self, role: NodeRole) -> None:
        if self.role is not role:
            raise NodeConfigError(f"{self.role.value} nodes have no {role.value} mapping")

    def _source_row(self, index: int) -> SourceMappingRow:
        self._require_role(NodeRole.SOURCE)
        try:
            return self.source_mapping[index]
        except IndexError:
            raise NodeConfigError(f"No source mapping row at index {index}") from None

    def rename_column(self, index: int, new_name: str) -> None:
        self.source_mapping[index] = rename_column(self._source_row(index), new_name)

    def keep_column(self, index: int) -> None:
        self.source_mapping[index] = keep_column(self._source_row(index))

    def ignore_column(self, index: int) -> None:
        self.source_mapping[index] = ignore_column(self._source_row(index))

    def set_destination_mode(self, index: int, mode: MappingMode) -> None:
        self._require_role(NodeRole.DESTINATION)
        try:
            row = self.destination_mapping[index]
        except IndexError:
            raise NodeConfigError(f"No destination mapping row at index {index}") from None
        self.destination_mapping[index] = DestinationMappingRow(
            in_name=row.in_name, target_name=row.target_name, mode=mode
        )

    @property
    def effective_output(self) -> List[str]:
        return effective_output(self.source_mapping)

    @property
    def effective_destination_rows(self) -> List[DestinationMappingRow]:
        return effective_destination_rows(self.destination_mapping)

    @property
    def column_count(self) -> int:
        """Footer count: out columns for sources, target columns for destinations."""
        if self.role is NodeRole.SOURCE:
            return len(self.effective_output)
        return len(self.effective_destination_rows)

    # ----- preview tab -----

    @property
    def preview_columns(self) -> List[str]:
        return preview_columns(self.role, self.source_mapping, self.destination_mapping)

    @property
    def preview_rows(self) -> List[Dict[str, Any]]:
        return build_preview_rows(self.preview_columns)

    # ----- footer -----

    def save(self) -> NodeConfigValue:
        """Validate and return the configuration to apply.

        Raises:
            NodeConfigError: If connection, schema or table is missing
        """
        if not self.can_save:
            raise NodeConfigError("Connection, schema and table are required")

        value = NodeConfigValue(
            connection_id=self.connection_id,
            schema=self.schema.strip(),
            table=self.table.strip(),
            source_mapping=list(self.source_mapping) if self.role is NodeRole.SOURCE else None,
            destination_mapping=(
                list(self.destination_mapping) if self.role is NodeRole.DESTINATION else None
            ),
            preview_rows=self.preview_rows,
        )
        self.is_open = False
        return value

    def cancel(self) -> None:
        logger.debug("Discarded configuration draft for node %s", self.node_id)
        self.is_open = False
