"""
Canvas interaction layer.

Translates pointer gestures (drops, clicks, connect and reconnect drags)
into GraphStore calls and keeps the transient state those gestures need:
the selected edge and whether a reconnect gesture has landed.
"""

import math
import uuid
from typing import Dict, Iterable, List, Optional, Union

from ..shared.logger import get_logger
from .bridge import NodeSpec
from .etl_actions import EtlAction, normalize_palette_action
from .models import NodeRole, NodeTemplate, Position, WorkspaceNode, WorkspaceNodeKind
from .store import GraphStore

logger = get_logger(__name__)

# A dropped action snaps to the edge whose midpoint is this close
ACTION_SNAP_DISTANCE = 260.0

# Layout of nodes generated from a workspace draft
KIND_COLUMN_X: Dict[WorkspaceNodeKind, float] = {
    WorkspaceNodeKind.DATASET: 120.0,
    WorkspaceNodeKind.FIELD: 420.0,
    WorkspaceNodeKind.SOURCE: 740.0,
    WorkspaceNodeKind.SQL_DRAFT: 1020.0,
}
GENERATE_BASE_Y = 120.0
GENERATE_Y_PER_NODE = 6.0
GENERATE_ROW_GAP = 86.0


def split_schema_table(label: str) -> Dict[str, str]:
    """Split ``schema.table``; a label without a dot is all table."""
    trimmed = (label or "").strip()
    dot = trimmed.find(".")
    if dot > 0:
        return {"schema": trimmed[:dot], "table": trimmed[dot + 1:]}
    return {"schema": "", "table": trimmed}


class CanvasController:
    """Gesture handlers for one space's canvas."""

    def __init__(self, store: GraphStore):
        self.store = store
        self._selected_edge_id: Optional[str] = None
        self._reconnect_edge_id: Optional[str] = None
        self._reconnect_successful = True

    # ============= Selection =============

    @property
    def selected_edge_id(self) -> Optional[str]:
        """Selected edge, forgotten once that edge no longer exists."""
        if self._selected_edge_id and self.store.get_edge(self._selected_edge_id) is None:
            self._selected_edge_id = None
        return self._selected_edge_id

    def click_edge(self, edge_id: str) -> None:
        if self.store.get_edge(edge_id) is None:
            logger.warning("click_edge: edge %s not found", edge_id)
            return
        self._selected_edge_id = edge_id

    def click_pane(self) -> None:
        self._selected_edge_id = None

    # ============= Node drops =============

    def drop_database(
        self,
        role: Union[NodeRole, str],
        position: Position,
        connection_id: Optional[str] = None,
    ) -> str:
        """Create a node where a palette tile was dropped.

        The role comes from the palette section the tile was dragged from.
        """
        return self.store.create_node(role, connection_id=connection_id, position=position)

    def drop_template(
        self,
        template: NodeTemplate,
        role: Union[NodeRole, str],
        position: Position,
    ) -> str:
        return self.store.create_node(
            role,
            connection_id=template.connection_id,
            position=position,
            schema=template.schema,
            table=template.table,
        )

    # ============= Edges =============

    def connect(self, source_node_id: str, target_node_id: str) -> Optional[str]:
        """Connect two handles; the new edge becomes the selection."""
        edge_id = self.store.connect(source_node_id, target_node_id)
        if edge_id is not None:
            self._selected_edge_id = edge_id
        return edge_id

    def delete_edge(self, edge_id: str) -> None:
        self.store.delete_edge(edge_id)
        if self._selected_edge_id == edge_id:
            self._selected_edge_id = None

    def delete_node(self, node_id: str) -> None:
        self.store.delete_node(node_id)
        # selection is re-validated lazily by selected_edge_id

    # ============= Reconnect gesture =============

    def start_reconnect(self, edge_id: str) -> None:
        if self.store.get_edge(edge_id) is None:
            logger.warning("start_reconnect: edge %s not found", edge_id)
            return
        self._reconnect_edge_id = edge_id
        self._reconnect_successful = False

    def complete_reconnect(
        self,
        new_source_node_id: Optional[str] = None,
        new_target_node_id: Optional[str] = None,
    ) -> bool:
        """The gesture landed on a handle; rebind the edge if the handle is valid."""
        edge_id = self._reconnect_edge_id
        if edge_id is None or self.store.get_edge(edge_id) is None:
            logger.warning("complete_reconnect: no reconnect in progress")
            return False
        if new_source_node_id is None and new_target_node_id is None:
            return False
        for endpoint in (new_source_node_id, new_target_node_id):
            if endpoint is not None and not self.store.has_endpoint(endpoint):
                return False

        self.store.reconnect(edge_id, new_source_node_id, new_target_node_id)
        self._reconnect_successful = True
        return True

    def end_reconnect(self) -> bool:
        """Finish the gesture; an edge that never landed is deleted.

        Returns True when the edge survived.
        """
        edge_id = self._reconnect_edge_id
        survived = True
        if edge_id is not None and not self._reconnect_successful:
            self.delete_edge(edge_id)
            logger.debug("Reconnect of edge %s abandoned, edge removed", edge_id)
            survived = False

        self._reconnect_edge_id = None
        self._reconnect_successful = True
        return survived

    @property
    def reconnect_in_progress(self) -> bool:
        return self._reconnect_edge_id is not None

    # ============= Action drops =============

    def nearest_edge(self, position: Position, max_distance: float = ACTION_SNAP_DISTANCE) -> Optional[str]:
        """Edge whose midpoint is closest to a canvas position, within range."""
        best_id = None
        best_distance = math.inf
        for edge in self.store.edges:
            source = self.store.get_node(edge.source_node_id) or self.store.get_workspace_node(edge.source_node_id)
            target = self.store.get_node(edge.target_node_id) or self.store.get_workspace_node(edge.target_node_id)
            if source is None or target is None:
                continue
            mid_x = (source.position.x + target.position.x) / 2
            mid_y = (source.position.y + target.position.y) / 2
            distance = math.hypot(position.x - mid_x, position.y - mid_y)
            if distance < best_distance:
                best_distance = distance
                best_id = edge.id
        return best_id if best_distance <= max_distance else None

    def action_target(self, edge_id: Optional[str] = None, position: Optional[Position] = None) -> Optional[str]:
        """Which edge receives a dropped action.

        An explicit edge wins, then the edge under the drop position; otherwise
        the selected edge, or the most recently created one when nothing is
        selected.
        """
        if edge_id is not None:
            return edge_id if self.store.get_edge(edge_id) is not None else None
        if position is not None:
            snapped = self.nearest_edge(position)
            if snapped is not None:
                return snapped
        return self.selected_edge_id or self.store.last_edge_id

    def drop_action(
        self,
        raw_action: Union[EtlAction, str],
        edge_id: Optional[str] = None,
        position: Optional[Position] = None,
    ) -> Optional[str]:
        """Attach a dropped action tile; returns the edge that received it."""
        action = normalize_palette_action(raw_action.value if isinstance(raw_action, EtlAction) else raw_action)
        if action is None:
            logger.warning("drop_action: %r is not a palette action", raw_action)
            return None

        target = self.action_target(edge_id, position)
        if target is None:
            logger.debug("drop_action: no edge to receive %s", action.value)
            return None

        self.store.set_edge_action(target, action)
        self._selected_edge_id = target
        return target

    def click_action(self, raw_action: Union[EtlAction, str]) -> Optional[str]:
        """Palette click: apply to the selected edge, else the newest edge."""
        return self.drop_action(raw_action)

    def clear_action(self, edge_id: str) -> None:
        self.store.clear_edge_action(edge_id)

    # ============= Workspace generate =============

    def generate(self, specs: Iterable[NodeSpec]) -> List[str]:
        """Lay out bridge specs as workspace nodes, one column per kind."""
        existing = self.store.workspace_nodes
        count_by_kind = {kind: 0 for kind in WorkspaceNodeKind}
        for node in existing:
            count_by_kind[node.kind] += 1

        node_count = len(self.store.nodes) + len(existing)
        base_y = GENERATE_BASE_Y + node_count * GENERATE_Y_PER_NODE

        created = []
        for spec in specs:
            index = count_by_kind[spec.kind]
            count_by_kind[spec.kind] += 1
            table = split_schema_table(spec.label)["table"]
            created.append(
                WorkspaceNode(
                    id=str(uuid.uuid4()),
                    kind=spec.kind,
                    label=table or spec.label,
                    payload=spec.payload,
                    position=Position(
                        x=KIND_COLUMN_X[spec.kind],
                        y=base_y + index * GENERATE_ROW_GAP,
                    ),
                )
            )
        return self.store.add_workspace_nodes(created)
