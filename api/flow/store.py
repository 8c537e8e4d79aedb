"""
Graph store for one space's flow canvas.

The store owns the node and edge collections and is the only place they are
mutated. Every mutation is a single atomic update; a call naming an id that
does not exist changes nothing and is logged as a warning instead of
raising.
"""

import uuid
from typing import Any, Dict, Iterable, List, Optional, Union

from ..shared.logger import get_logger
from .catalog import get_db_icon_for_type, is_known_db_type
from .connections import ConnectionDescriptor, ConnectionsCatalog
from .etl_actions import EtlAction, normalize_action
from .mapping import effective_output
from .models import (
    GraphEdge,
    GraphNode,
    NodeConfigValue,
    NodeRole,
    Position,
    WorkspaceNode,
)

logger = get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class GraphStore:
    """Authoritative node/edge collections with a never-failing mutation API."""

    def __init__(
        self,
        connections: Optional[ConnectionsCatalog] = None,
        base_path: str = "/dmp",
        space: str = "",
    ):
        self.connections = connections if connections is not None else ConnectionsCatalog()
        self.base_path = base_path
        self.space = space
        # dicts keep insertion order, which is creation order
        self._nodes: Dict[str, GraphNode] = {}
        self._workspace_nodes: Dict[str, WorkspaceNode] = {}
        self._edges: Dict[str, GraphEdge] = {}

    # ============= Read access =============

    @property
    def nodes(self) -> List[GraphNode]:
        return list(self._nodes.values())

    @property
    def workspace_nodes(self) -> List[WorkspaceNode]:
        return list(self._workspace_nodes.values())

    @property
    def edges(self) -> List[GraphEdge]:
        return list(self._edges.values())

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._nodes.get(node_id)

    def get_workspace_node(self, node_id: str) -> Optional[WorkspaceNode]:
        return self._workspace_nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        return self._edges.get(edge_id)

    def has_endpoint(self, node_id: Optional[str]) -> bool:
        """Whether an edge may attach to this id (database or workspace node)."""
        return bool(node_id) and (node_id in self._nodes or node_id in self._workspace_nodes)

    @property
    def last_edge_id(self) -> Optional[str]:
        """Most recently created edge still present."""
        if not self._edges:
            return None
        return next(reversed(self._edges))

    def edges_touching(self, node_id: str) -> List[GraphEdge]:
        return [edge for edge in self._edges.values() if edge.touches(node_id)]

    # ============= Nodes =============

    def _resolve_connection(self, connection_id: Optional[str]) -> Optional[ConnectionDescriptor]:
        if not connection_id:
            return None
        descriptor = self.connections.get(connection_id)
        if descriptor is None:
            logger.warning("Connection %s not found, node left unconfigured", connection_id)
            return None
        if not is_known_db_type(descriptor.database_type):
            logger.warning(
                "Connection %s has unknown database type %s, node left unconfigured",
                connection_id,
                descriptor.database_type,
            )
            return None
        return descriptor

    def create_node(
        self,
        role: Union[NodeRole, str],
        connection_id: Optional[str] = None,
        position: Optional[Position] = None,
        schema: Optional[str] = None,
        table: Optional[str] = None,
    ) -> str:
        """Create a node and return its id. Always succeeds."""
        descriptor = self._resolve_connection(connection_id)
        node = GraphNode(
            id=_new_id(),
            role=NodeRole(role),
            position=position or Position(),
            schema=schema,
            table=table,
        )
        if descriptor is not None:
            node.connection = descriptor.to_ref()
            node.db_type = descriptor.database_type
            node.db_icon = get_db_icon_for_type(descriptor.database_type, self.base_path)

        self._nodes[node.id] = node
        logger.debug("Created %s node %s in space %s", node.role.value, node.id, self.space)
        return node.id

    def configure_node(
        self,
        node_id: str,
        connection_id: Optional[str],
        schema: Optional[str],
        table: Optional[str],
    ) -> None:
        """Overwrite a node's connection, schema and table."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.warning("configure_node: node %s not found", node_id)
            return

        descriptor = self._resolve_connection(connection_id)
        if descriptor is not None and node.db_type and descriptor.database_type != node.db_type:
            logger.warning(
                "configure_node: connection %s is %s, node %s is %s; connection not set",
                connection_id,
                descriptor.database_type,
                node_id,
                node.db_type,
            )
            descriptor = None
        node.connection = descriptor.to_ref() if descriptor else None
        node.schema = schema
        node.table = table
        if descriptor is not None and not node.db_type:
            node.db_type = descriptor.database_type
            node.db_icon = get_db_icon_for_type(descriptor.database_type, self.base_path)

    def apply_node_config(self, node_id: str, value: NodeConfigValue) -> None:
        """Apply a saved configuration dialog in one step."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.warning("apply_node_config: node %s not found", node_id)
            return

        self.configure_node(node_id, value.connection_id, value.schema, value.table)
        if node.role is NodeRole.SOURCE and value.source_mapping is not None:
            node.source_mapping = list(value.source_mapping)
        if node.role is NodeRole.DESTINATION and value.destination_mapping is not None:
            node.destination_mapping = list(value.destination_mapping)
        node.preview_rows = list(value.preview_rows)
        logger.info(
            "Saved configuration for %s node %s (%s.%s)",
            node.role.value,
            node_id,
            value.schema,
            value.table,
        )

    def move_node(self, node_id: str, position: Position) -> None:
        node = self._nodes.get(node_id) or self._workspace_nodes.get(node_id)
        if node is None:
            logger.warning("move_node: node %s not found", node_id)
            return
        node.position = position

    def delete_node(self, node_id: str) -> None:
        """Remove a node and every edge attached to it."""
        if node_id in self._nodes:
            del self._nodes[node_id]
        elif node_id in self._workspace_nodes:
            del self._workspace_nodes[node_id]
        else:
            logger.warning("delete_node: node %s not found", node_id)
            return

        dangling = [edge.id for edge in self._edges.values() if edge.touches(node_id)]
        for edge_id in dangling:
            del self._edges[edge_id]
        if dangling:
            logger.debug("Removed %d edge(s) attached to node %s", len(dangling), node_id)

    def add_workspace_nodes(self, nodes: Iterable[WorkspaceNode]) -> List[str]:
        ids = []
        for node in nodes:
            self._workspace_nodes[node.id] = node
            ids.append(node.id)
        return ids

    # ============= Edges =============

    def connect(self, source_node_id: str, target_node_id: str) -> Optional[str]:
        """Create an edge. Parallel edges between the same pair are allowed.

        Returns None, without creating anything, when an endpoint is missing.
        """
        if not self.has_endpoint(source_node_id) or not self.has_endpoint(target_node_id):
            logger.warning(
                "connect: endpoint missing (%s -> %s), no edge created",
                source_node_id,
                target_node_id,
            )
            return None

        edge = GraphEdge(id=_new_id(), source_node_id=source_node_id, target_node_id=target_node_id)
        self._edges[edge.id] = edge
        return edge.id

    def reconnect(
        self,
        edge_id: str,
        new_source_node_id: Optional[str] = None,
        new_target_node_id: Optional[str] = None,
    ) -> None:
        """Rebind one or both endpoints of an edge, keeping its id and action."""
        edge = self._edges.get(edge_id)
        if edge is None:
            logger.warning("reconnect: edge %s not found", edge_id)
            return
        for endpoint in (new_source_node_id, new_target_node_id):
            if endpoint is not None and not self.has_endpoint(endpoint):
                logger.warning("reconnect: node %s not found, edge %s unchanged", endpoint, edge_id)
                return

        if new_source_node_id is not None:
            edge.source_node_id = new_source_node_id
        if new_target_node_id is not None:
            edge.target_node_id = new_target_node_id

    def set_edge_action(self, edge_id: str, action: Union[EtlAction, str]) -> None:
        """Attach an action, replacing any previous one."""
        edge = self._edges.get(edge_id)
        if edge is None:
            logger.warning("set_edge_action: edge %s not found", edge_id)
            return
        resolved = action if isinstance(action, EtlAction) else normalize_action(action)
        if resolved is None:
            logger.warning("set_edge_action: unknown action %r ignored", action)
            return
        edge.action = resolved

    def clear_edge_action(self, edge_id: str) -> None:
        edge = self._edges.get(edge_id)
        if edge is None:
            logger.warning("clear_edge_action: edge %s not found", edge_id)
            return
        edge.action = None

    def delete_edge(self, edge_id: str) -> None:
        if self._edges.pop(edge_id, None) is None:
            logger.warning("delete_edge: edge %s not found", edge_id)

    # ============= Derived data =============

    def effective_output(self, node_id: str) -> List[str]:
        """Columns a source node offers downstream; empty until configured."""
        node = self._nodes.get(node_id)
        if node is None or node.role is not NodeRole.SOURCE or not node.configured:
            return []
        return effective_output(node.source_mapping or [])

    def upstream_columns(self, node_id: str) -> Optional[List[str]]:
        """Input columns offered to a destination node by its incoming edges.

        None when no source node feeds it; otherwise the ordered, de-duplicated
        union of the upstream effective outputs (possibly empty).
        """
        sources = [
            self._nodes[edge.source_node_id]
            for edge in self._edges.values()
            if edge.target_node_id == node_id
            and edge.source_node_id in self._nodes
            and self._nodes[edge.source_node_id].role is NodeRole.SOURCE
        ]
        if not sources:
            return None

        columns: List[str] = []
        for source in sources:
            for name in self.effective_output(source.id):
                if name not in columns:
                    columns.append(name)
        return columns

    # ============= Snapshot =============

    def clear(self) -> None:
        self._nodes.clear()
        self._workspace_nodes.clear()
        self._edges.clear()

    def snapshot(self) -> Dict[str, Any]:
        """The ``{nodes, edges}`` document for this graph."""
        return {
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "workspace_nodes": [node.to_dict() for node in self._workspace_nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges.values()],
        }

    def restore(self, document: Dict[str, Any]) -> None:
        """Replace the graph with a snapshot, dropping edges whose endpoints are missing.

        The whole document is parsed before anything is replaced; a malformed
        entry leaves the current graph untouched.

        Raises:
            KeyError, TypeError, ValueError: If an entry cannot be parsed
        """
        nodes: Dict[str, GraphNode] = {}
        for data in document.get("nodes") or []:
            node = GraphNode.from_dict(data)
            nodes[node.id] = node
        workspace_nodes: Dict[str, WorkspaceNode] = {}
        for data in document.get("workspace_nodes") or []:
            node = WorkspaceNode.from_dict(data)
            workspace_nodes[node.id] = node

        edges: Dict[str, GraphEdge] = {}
        for data in document.get("edges") or []:
            edge = GraphEdge.from_dict(data)
            endpoints = (edge.source_node_id, edge.target_node_id)
            if all(e in nodes or e in workspace_nodes for e in endpoints):
                edges[edge.id] = edge
            else:
                logger.warning("Dropped dangling edge %s while restoring space %s", edge.id, self.space)

        self._nodes = nodes
        self._workspace_nodes = workspace_nodes
        self._edges = edges
