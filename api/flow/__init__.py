"""
Flow-graph editing model for ingestion spaces.

- models: nodes, edges, mapping rows
- store: GraphStore, the single owner of a space's nodes and edges
- mapping: source/destination column mapping rules and the config dialog draft
- canvas: gesture handling (drops, selection, connect/reconnect)
- commands: command objects applied through apply_command
- bridge: JSON/SQL workspace drafts to node specs
- catalog / etl_actions: static database-type and action vocabularies
- connections: in-memory connections catalog
- session / repository: per-space sessions and their persistence
"""

from .bridge import BridgeResult, BridgeStatus, NodeSpec, WorkspaceMode
from .canvas import CanvasController
from .commands import CommandError, apply_command, parse_command
from .connections import ConnectionDescriptor, ConnectionsCatalog, connections_catalog
from .etl_actions import EtlAction
from .mapping import NodeConfigDraft, NodeConfigError
from .models import (
    GraphEdge,
    GraphNode,
    MappingMode,
    NodeRole,
    Position,
    WorkspaceNode,
    WorkspaceNodeKind,
)
from .session import SpaceSession, SpaceSessionManager, get_space_manager
from .store import GraphStore

__all__ = [
    "BridgeResult",
    "BridgeStatus",
    "CanvasController",
    "CommandError",
    "ConnectionDescriptor",
    "ConnectionsCatalog",
    "EtlAction",
    "GraphEdge",
    "GraphNode",
    "GraphStore",
    "MappingMode",
    "NodeConfigDraft",
    "NodeConfigError",
    "NodeRole",
    "NodeSpec",
    "Position",
    "SpaceSession",
    "SpaceSessionManager",
    "WorkspaceMode",
    "WorkspaceNode",
    "WorkspaceNodeKind",
    "apply_command",
    "connections_catalog",
    "get_space_manager",
    "parse_command",
]
