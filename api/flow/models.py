"""
Domain models for the flow-graph editor.

Nodes, edges and mapping rows are plain dataclasses with ``to_dict`` /
``from_dict`` helpers so a graph can be sent to the front end or written to
disk as a ``{nodes, edges}`` document.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from .etl_actions import EtlAction, normalize_action


def _mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be an object, got {type(data).__name__}")
    return data


class NodeRole(str, Enum):
    """Fixed classification of a database node."""

    SOURCE = "source"
    DESTINATION = "destination"


class MappingMode(str, Enum):
    """How a column is carried through a node."""

    ORIGINAL = "original"
    EDIT = "edit"
    IGNORE = "ignore"


class WorkspaceNodeKind(str, Enum):
    """Kinds of node produced from a workspace draft."""

    DATASET = "dataset"
    FIELD = "field"
    SOURCE = "source"
    SQL_DRAFT = "sql_draft"


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Position":
        data = _mapping(data or {}, "position")
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass(frozen=True)
class ConnectionRef:
    """Reference to a connection owned by the connections catalog."""

    id: str
    name: str
    database_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "database_type": self.database_type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionRef":
        data = _mapping(data, "connection")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            database_type=data.get("database_type"),
        )


@dataclass(frozen=True)
class OutColumn:
    key: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"key": self.key, "name": self.name}


# ============= Source mapping rules =============


@dataclass(frozen=True)
class KeepColumn:
    """Column kept under its declared name."""

    mode: ClassVar[MappingMode] = MappingMode.ORIGINAL


@dataclass(frozen=True)
class RenameColumn:
    """Column renamed; a blank name falls back to the declared one."""

    edited_name: str
    mode: ClassVar[MappingMode] = MappingMode.EDIT


@dataclass(frozen=True)
class DropColumn:
    """Column excluded from the output, whatever name it was given."""

    edited_name: Optional[str] = None
    mode: ClassVar[MappingMode] = MappingMode.IGNORE


SourceRule = Union[KeepColumn, RenameColumn, DropColumn]


def rule_for_mode(mode: Union[MappingMode, str], edited_name: Optional[str] = None) -> SourceRule:
    """Build the rule matching a serialized mode."""
    mode = MappingMode(mode)
    if mode is MappingMode.ORIGINAL:
        return KeepColumn()
    if mode is MappingMode.EDIT:
        return RenameColumn(edited_name=edited_name or "")
    return DropColumn(edited_name=edited_name)


@dataclass(frozen=True)
class SourceMappingRow:
    out: OutColumn
    rule: SourceRule = field(default_factory=KeepColumn)

    @property
    def mode(self) -> MappingMode:
        return self.rule.mode

    @property
    def edited_name(self) -> Optional[str]:
        if isinstance(self.rule, (RenameColumn, DropColumn)):
            return self.rule.edited_name
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "out": self.out.to_dict(),
            "mode": self.mode.value,
            "edited_name": self.edited_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceMappingRow":
        data = _mapping(data, "source mapping row")
        out = _mapping(data.get("out") or {}, "out column")
        edited_name = data.get("edited_name")
        return cls(
            out=OutColumn(key=str(out.get("key", "")), name=str(out.get("name", ""))),
            rule=rule_for_mode(
                data.get("mode", MappingMode.ORIGINAL),
                str(edited_name) if edited_name is not None else None,
            ),
        )


@dataclass(frozen=True)
class DestinationMappingRow:
    """Binding of one upstream column to a destination field."""

    in_name: str
    target_name: str
    mode: MappingMode = MappingMode.ORIGINAL

    def __post_init__(self):
        mode = MappingMode(self.mode)
        if mode is MappingMode.EDIT:
            raise ValueError("Destination rows can only be 'original' or 'ignore'")
        object.__setattr__(self, "mode", mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "in_name": self.in_name,
            "target_name": self.target_name,
            "mode": self.mode.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DestinationMappingRow":
        data = _mapping(data, "destination mapping row")
        return cls(
            in_name=str(data.get("in_name", "")),
            target_name=str(data.get("target_name", "")),
            mode=data.get("mode", MappingMode.ORIGINAL),
        )


# ============= Graph =============


def _filled(value: Optional[str]) -> bool:
    return bool(value and value.strip())


@dataclass
class GraphNode:
    """A database table placed on the canvas as a source or destination."""

    id: str
    role: NodeRole
    position: Position = field(default_factory=Position)
    connection: Optional[ConnectionRef] = None
    schema: Optional[str] = None
    table: Optional[str] = None
    db_type: Optional[str] = None
    db_icon: Optional[str] = None
    source_mapping: Optional[List[SourceMappingRow]] = None
    destination_mapping: Optional[List[DestinationMappingRow]] = None
    preview_rows: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.role = NodeRole(self.role)
        # Exactly one mapping list exists, chosen by role.
        if self.role is NodeRole.SOURCE:
            if self.source_mapping is None:
                self.source_mapping = []
            self.destination_mapping = None
        else:
            if self.destination_mapping is None:
                self.destination_mapping = []
            self.source_mapping = None

    @property
    def configured(self) -> bool:
        return (
            self.connection is not None
            and _filled(self.connection.id)
            and _filled(self.schema)
            and _filled(self.table)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "dbNode",
            "role": self.role.value,
            "position": self.position.to_dict(),
            "connection": self.connection.to_dict() if self.connection else None,
            "schema": self.schema,
            "table": self.table,
            "db_type": self.db_type,
            "db_icon": self.db_icon,
            "configured": self.configured,
            "source_mapping": (
                [row.to_dict() for row in self.source_mapping]
                if self.source_mapping is not None
                else None
            ),
            "destination_mapping": (
                [row.to_dict() for row in self.destination_mapping]
                if self.destination_mapping is not None
                else None
            ),
            "preview_rows": self.preview_rows,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphNode":
        data = _mapping(data, "node")
        connection = data.get("connection")
        source_mapping = data.get("source_mapping")
        destination_mapping = data.get("destination_mapping")
        return cls(
            id=data["id"],
            role=NodeRole(data.get("role", NodeRole.SOURCE)),
            position=Position.from_dict(data.get("position")),
            connection=ConnectionRef.from_dict(connection) if connection else None,
            schema=data.get("schema"),
            table=data.get("table"),
            db_type=data.get("db_type"),
            db_icon=data.get("db_icon"),
            source_mapping=(
                [SourceMappingRow.from_dict(r) for r in source_mapping]
                if source_mapping is not None
                else None
            ),
            destination_mapping=(
                [DestinationMappingRow.from_dict(r) for r in destination_mapping]
                if destination_mapping is not None
                else None
            ),
            preview_rows=list(data.get("preview_rows") or []),
        )


@dataclass
class GraphEdge:
    """Directed connection between two nodes, optionally tagged with one action."""

    id: str
    source_node_id: str
    target_node_id: str
    action: Optional[EtlAction] = None

    def touches(self, node_id: str) -> bool:
        return self.source_node_id == node_id or self.target_node_id == node_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "etlSmooth",
            "source": self.source_node_id,
            "target": self.target_node_id,
            "action": self.action.value if self.action else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphEdge":
        data = _mapping(data, "edge")
        return cls(
            id=data["id"],
            source_node_id=data["source"],
            target_node_id=data["target"],
            action=normalize_action(data.get("action")),
        )


@dataclass
class WorkspaceNode:
    """Node generated from a JSON or SQL workspace draft."""

    id: str
    kind: WorkspaceNodeKind
    label: str
    payload: Any = None
    position: Position = field(default_factory=Position)

    def __post_init__(self):
        self.kind = WorkspaceNodeKind(self.kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "workspaceNode",
            "kind": self.kind.value,
            "label": self.label,
            "payload": self.payload,
            "position": self.position.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkspaceNode":
        data = _mapping(data, "workspace node")
        return cls(
            id=data["id"],
            kind=data.get("kind", WorkspaceNodeKind.DATASET),
            label=data.get("label", ""),
            payload=data.get("payload"),
            position=Position.from_dict(data.get("position")),
        )


@dataclass
class NodeTemplate:
    """Palette entry describing a table that can be dropped as a node."""

    id: str
    connection_id: str
    schema: str
    table: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "connection_id": self.connection_id,
            "schema": self.schema,
            "table": self.table,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeTemplate":
        data = _mapping(data, "template")
        return cls(
            id=data["id"],
            connection_id=data.get("connection_id", ""),
            schema=data.get("schema", ""),
            table=data.get("table", ""),
        )


@dataclass
class NodeConfigValue:
    """Result of a saved node configuration dialog."""

    connection_id: str
    schema: str
    table: str
    source_mapping: Optional[List[SourceMappingRow]] = None
    destination_mapping: Optional[List[DestinationMappingRow]] = None
    preview_rows: List[Dict[str, Any]] = field(default_factory=list)
