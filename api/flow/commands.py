"""
Command objects for graph mutations.

Each gesture or API call that edits a graph can be expressed as one of the
commands below and applied with ``apply_command``, the single entry point
that turns commands into GraphStore calls. Commands arrive from the front
end as JSON objects discriminated by their ``type`` field.
"""

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

from .etl_actions import EtlAction, normalize_action
from .models import NodeRole, Position
from .store import GraphStore


class CommandError(ValueError):
    """Raised when a command payload cannot be parsed."""


@dataclass
class CreateNodeCommand:
    type: ClassVar[str] = "create_node"

    role: NodeRole
    connection_id: Optional[str] = None
    position: Position = field(default_factory=Position)
    schema: Optional[str] = None
    table: Optional[str] = None


@dataclass
class ConfigureNodeCommand:
    type: ClassVar[str] = "configure_node"

    node_id: str
    connection_id: Optional[str] = None
    schema: Optional[str] = None
    table: Optional[str] = None


@dataclass
class MoveNodeCommand:
    type: ClassVar[str] = "move_node"

    node_id: str
    position: Position = field(default_factory=Position)


@dataclass
class DeleteNodeCommand:
    type: ClassVar[str] = "delete_node"

    node_id: str


@dataclass
class ConnectCommand:
    type: ClassVar[str] = "connect"

    source_node_id: str
    target_node_id: str


@dataclass
class ReconnectCommand:
    type: ClassVar[str] = "reconnect"

    edge_id: str
    new_source_node_id: Optional[str] = None
    new_target_node_id: Optional[str] = None


@dataclass
class SetEdgeActionCommand:
    type: ClassVar[str] = "set_edge_action"

    edge_id: str
    action: EtlAction


@dataclass
class ClearEdgeActionCommand:
    type: ClassVar[str] = "clear_edge_action"

    edge_id: str


@dataclass
class DeleteEdgeCommand:
    type: ClassVar[str] = "delete_edge"

    edge_id: str


Command = Union[
    CreateNodeCommand,
    ConfigureNodeCommand,
    MoveNodeCommand,
    DeleteNodeCommand,
    ConnectCommand,
    ReconnectCommand,
    SetEdgeActionCommand,
    ClearEdgeActionCommand,
    DeleteEdgeCommand,
]

COMMAND_TYPES: Dict[str, Type] = {
    cls.type: cls
    for cls in (
        CreateNodeCommand,
        ConfigureNodeCommand,
        MoveNodeCommand,
        DeleteNodeCommand,
        ConnectCommand,
        ReconnectCommand,
        SetEdgeActionCommand,
        ClearEdgeActionCommand,
        DeleteEdgeCommand,
    )
}


def parse_command(data: Dict[str, Any]) -> Command:
    """Build a command from its JSON form.

    Raises:
        CommandError: On unknown types, unknown or missing fields, bad values
    """
    if not isinstance(data, dict):
        raise CommandError("Command must be an object")
    command_type = data.get("type")
    cls = COMMAND_TYPES.get(command_type)
    if cls is None:
        raise CommandError(f"Unknown command type: {command_type!r}")

    allowed = {f.name for f in fields(cls)}
    kwargs = {key: value for key, value in data.items() if key != "type"}
    unknown = set(kwargs) - allowed
    if unknown:
        raise CommandError(f"Unknown field(s) for {command_type}: {', '.join(sorted(unknown))}")

    if "position" in kwargs:
        try:
            kwargs["position"] = Position.from_dict(kwargs["position"])
        except (TypeError, ValueError) as e:
            raise CommandError(f"Invalid position: {e}") from None
    if "role" in kwargs:
        try:
            kwargs["role"] = NodeRole(kwargs["role"])
        except ValueError:
            raise CommandError(f"Invalid role: {kwargs['role']!r}") from None
    if "action" in kwargs:
        action = normalize_action(kwargs["action"])
        if action is None:
            raise CommandError(f"Unknown action: {kwargs['action']!r}")
        kwargs["action"] = action

    try:
        return cls(**kwargs)
    except TypeError as e:
        raise CommandError(f"Invalid {command_type} command: {e}") from None


def apply_command(store: GraphStore, command: Command) -> Optional[str]:
    """Apply one command. Returns the new id for create_node and connect."""
    if isinstance(command, CreateNodeCommand):
        return store.create_node(
            command.role,
            connection_id=command.connection_id,
            position=command.position,
            schema=command.schema,
            table=command.table,
        )
    elif isinstance(command, ConfigureNodeCommand):
        store.configure_node(command.node_id, command.connection_id, command.schema, command.table)
    elif isinstance(command, MoveNodeCommand):
        store.move_node(command.node_id, command.position)
    elif isinstance(command, DeleteNodeCommand):
        store.delete_node(command.node_id)
    elif isinstance(command, ConnectCommand):
        return store.connect(command.source_node_id, command.target_node_id)
    elif isinstance(command, ReconnectCommand):
        store.reconnect(command.edge_id, command.new_source_node_id, command.new_target_node_id)
    elif isinstance(command, SetEdgeActionCommand):
        store.set_edge_action(command.edge_id, command.action)
    elif isinstance(command, ClearEdgeActionCommand):
        store.clear_edge_action(command.edge_id)
    elif isinstance(command, DeleteEdgeCommand):
        store.delete_edge(command.edge_id)
    else:
        raise TypeError(f"Unsupported command: {command!r}")
    return None


def apply_commands(store: GraphStore, commands: List[Command]) -> List[Optional[str]]:
    """Apply commands in order, returning each command's result."""
    return [apply_command(store, command) for command in commands]
