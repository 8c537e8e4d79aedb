"""
Space graph API routes for the dmp webapp.

This module exposes the flow-graph editor of an ingestion space:
- Graph snapshot, reset, export and import
- Node creation, configuration, moves and deletion
- Edge connection, reconnection and ETL action tagging
- Canvas gestures (drops, clicks, reconnect drags)
- Batched command dispatch
- Palette node templates
- Workspace draft generation into nodes

The graph mutation API underneath never raises on stale ids; request-level
problems (unknown node for a config dialog, invalid configuration, unknown
action) are reported here as HTTP errors.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from .flow.bridge import WorkspaceMode, generate
from .flow.commands import CommandError, apply_commands, parse_command
from .flow.etl_actions import normalize_action, normalize_palette_action
from .flow.mapping import NodeConfigDraft, NodeConfigError
from .flow.models import (
    DestinationMappingRow,
    NodeRole,
    Position,
    SourceMappingRow,
)
from .flow.repository import SUPPORTED_FORMATS, dump_document, load_document
from .flow.session import SpaceSession, get_space_manager
from .shared.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# ============= Request models =============


class PositionModel(BaseModel):
    x: float = 0.0
    y: float = 0.0

    def to_position(self) -> Position:
        return Position(x=self.x, y=self.y)


class NodeCreate(BaseModel):
    role: NodeRole
    connection_id: Optional[str] = None
    position: PositionModel = Field(default_factory=PositionModel)
    schema_name: Optional[str] = Field(default=None, alias="schema")
    table: Optional[str] = None

    model_config = {"populate_by_name": True}


class NodeConfigRequest(BaseModel):
    """Saved values of the node configuration dialog."""

    connection_id: str = ""
    schema_name: str = Field(default="", alias="schema")
    table: str = ""
    source_mapping: Optional[List[Dict[str, Any]]] = None
    destination_mapping: Optional[List[Dict[str, Any]]] = None

    model_config = {"populate_by_name": True}


class EdgeCreate(BaseModel):
    source: str
    target: str


class EdgeActionRequest(BaseModel):
    action: str


class ReconnectRequest(BaseModel):
    new_source: Optional[str] = None
    new_target: Optional[str] = None


class DropDatabaseRequest(BaseModel):
    role: NodeRole
    position: PositionModel = Field(default_factory=PositionModel)
    connection_id: Optional[str] = None


class DropTemplateRequest(BaseModel):
    template_id: str
    role: NodeRole = NodeRole.SOURCE
    position: PositionModel = Field(default_factory=PositionModel)


class DropActionRequest(BaseModel):
    action: str
    edge_id: Optional[str] = None
    position: Optional[PositionModel] = None


class EdgeRef(BaseModel):
    edge_id: str


class CommandBatch(BaseModel):
    commands: List[Dict[str, Any]]


class TemplateCreate(BaseModel):
    connection_id: str
    schema_name: str = Field(alias="schema")
    table: str

    model_config = {"populate_by_name": True}


class GenerateRequest(BaseModel):
    mode: WorkspaceMode
    text: str


class SpaceImportRequest(BaseModel):
    content: str
    format: str = "json"


# ============= Helpers =============


def _session(slug: str) -> SpaceSession:
    return get_space_manager().get(slug)


def _commit(slug: str) -> None:
    get_space_manager().save(slug)


def _graph_payload(session: SpaceSession) -> Dict[str, Any]:
    document = session.to_document()
    document["space"] = session.slug
    document["selected_edge_id"] = session.canvas.selected_edge_id
    return document


def _node_payload(session: SpaceSession, node_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if node_id is None:
        return None
    node = session.store.get_node(node_id)
    return node.to_dict() if node else None


def _edge_payload(session: SpaceSession, edge_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if edge_id is None:
        return None
    edge = session.store.get_edge(edge_id)
    return edge.to_dict() if edge else None


def _open_draft(session: SpaceSession, node_id: str) -> NodeConfigDraft:
    node = session.store.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return NodeConfigDraft(
        node,
        connection_options=session.store.connections.options_for(node.db_type),
        upstream_columns=(
            session.store.upstream_columns(node_id)
            if node.role is NodeRole.DESTINATION
            else None
        ),
    )


def _draft_payload(draft: NodeConfigDraft) -> Dict[str, Any]:
    return {
        "node_id": draft.node_id,
        "role": draft.role.value,
        "db_type": draft.db_type,
        "connection_id": draft.connection_id,
        "connection_name": draft.connection_name,
        "schema": draft.schema,
        "table": draft.table,
        "connection_options": [c.to_dict() for c in draft.connection_options],
        "destination_fields": draft.destination_fields,
        "source_mapping": [row.to_dict() for row in draft.source_mapping],
        "destination_mapping": [row.to_dict() for row in draft.destination_mapping],
        "effective_output": draft.effective_output,
        "effective_destination_rows": [
            row.to_dict() for row in draft.effective_destination_rows
        ],
        "column_count": draft.column_count,
        "preview_columns": draft.preview_columns,
        "preview_rows": draft.preview_rows,
        "can_save": draft.can_save,
    }


# ============= Graph =============


@router.get("/spaces")
async def list_spaces():
    """List spaces that have a graph in memory or on disk."""
    spaces = get_space_manager().list_spaces()
    return {"spaces": spaces, "total": len(spaces)}


@router.get("/spaces/{slug}/graph")
async def get_graph(slug: str):
    """Get the full graph of a space."""
    return _graph_payload(_session(slug))


@router.delete("/spaces/{slug}/graph")
async def reset_graph(slug: str):
    """Discard a space's graph and templates."""
    get_space_manager().reset(slug)
    return {"success": True, "space": slug}


@router.get("/spaces/{slug}/export")
async def export_space(slug: str, format: str = "json"):
    """Export a space graph as JSON or YAML."""
    if format not in SUPPORTED_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {format}")

    session = _session(slug)
    document = session.to_document()
    document["space"] = slug
    return {
        "success": True,
        "format": format,
        "filename": f"{slug}.{format}",
        "content": dump_document(document, format),
        "content_type": "text/yaml" if format == "yaml" else "application/json",
    }


@router.post("/spaces/{slug}/import")
async def import_space(slug: str, request: SpaceImportRequest):
    """Replace a space graph with an exported document."""
    if request.format not in SUPPORTED_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported import format: {request.format}")
    try:
        document = load_document(request.content, request.format)
        session = _session(slug)
        session.load_document(document)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid space document: {e!r}")

    _commit(slug)
    logger.info("Imported space %s (%d nodes, %d edges)", slug, len(session.store.nodes), len(session.store.edges))
    return _graph_payload(session)


# ============= Nodes =============


@router.post("/spaces/{slug}/nodes")
async def create_node(slug: str, request: NodeCreate):
    """Create a source or destination node."""
    session = _session(slug)
    node_id = session.store.create_node(
        request.role,
        connection_id=request.connection_id,
        position=request.position.to_position(),
        schema=request.schema_name,
        table=request.table,
    )
    _commit(slug)
    return {"success": True, "node": _node_payload(session, node_id)}


@router.get("/spaces/{slug}/nodes/{node_id}")
async def get_node(slug: str, node_id: str):
    session = _session(slug)
    node = _node_payload(session, node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"node": node}


@router.get("/spaces/{slug}/nodes/{node_id}/config")
async def open_node_config(slug: str, node_id: str):
    """Initial state of the configuration dialog for a node."""
    return _draft_payload(_open_draft(_session(slug), node_id))


@router.put("/spaces/{slug}/nodes/{node_id}/config")
async def save_node_config(slug: str, node_id: str, request: NodeConfigRequest):
    """Save a configuration dialog.

    Validation happens before anything is written: a rejected request leaves
    the node exactly as it was.
    """
    session = _session(slug)
    draft = _open_draft(session, node_id)
    try:
        draft.set_connection(request.connection_id)
        draft.set_schema(request.schema_name)
        draft.set_table(request.table)
        if request.source_mapping is not None and draft.role is NodeRole.SOURCE:
            draft.source_mapping = [SourceMappingRow.from_dict(r) for r in request.source_mapping]
        if request.destination_mapping is not None and draft.role is NodeRole.DESTINATION:
            draft.destination_mapping = [
                DestinationMappingRow.from_dict(r) for r in request.destination_mapping
            ]
        offered = {c.id for c in draft.connection_options}
        if draft.connection_id and draft.connection_id not in offered:
            raise NodeConfigError(
                f"Connection {draft.connection_id} is not available for this node"
            )
        value = draft.save()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session.store.apply_node_config(node_id, value)
    _commit(slug)
    return {"success": True, "node": _node_payload(session, node_id)}


@router.get("/spaces/{slug}/nodes/{node_id}/columns")
async def get_node_columns(slug: str, node_id: str):
    """Effective output of a source, or candidate inputs of a destination."""
    session = _session(slug)
    node = session.store.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")

    if node.role is NodeRole.SOURCE:
        columns = session.store.effective_output(node_id)
    else:
        columns = session.store.upstream_columns(node_id) or []
    return {
        "node_id": node_id,
        "role": node.role.value,
        "configured": node.configured,
        "columns": columns,
        "empty": not columns,
    }


@router.put("/spaces/{slug}/nodes/{node_id}/position")
async def move_node(slug: str, node_id: str, request: PositionModel):
    session = _session(slug)
    session.store.move_node(node_id, request.to_position())
    _commit(slug)
    return {"success": True, "node_id": node_id}


@router.delete("/spaces/{slug}/nodes/{node_id}")
async def delete_node(slug: str, node_id: str):
    """Delete a node and every edge attached to it."""
    session = _session(slug)
    existed = session.store.has_endpoint(node_id)
    session.canvas.delete_node(node_id)
    _commit(slug)
    return {"success": True, "deleted": existed, "node_id": node_id}


# ============= Edges =============


@router.post("/spaces/{slug}/edges")
async def create_edge(slug: str, request: EdgeCreate):
    """Connect two nodes; the new edge becomes the selection."""
    session = _session(slug)
    edge_id = session.canvas.connect(request.source, request.target)
    if edge_id is None:
        raise HTTPException(status_code=400, detail="Both endpoints must exist")
    _commit(slug)
    return {"success": True, "edge": _edge_payload(session, edge_id)}


@router.put("/spaces/{slug}/edges/{edge_id}/action")
async def set_edge_action(slug: str, edge_id: str, request: EdgeActionRequest):
    action = normalize_action(request.action)
    if action is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {request.action}")
    session = _session(slug)
    session.store.set_edge_action(edge_id, action)
    _commit(slug)
    return {"success": True, "edge": _edge_payload(session, edge_id)}


@router.delete("/spaces/{slug}/edges/{edge_id}/action")
async def clear_edge_action(slug: str, edge_id: str):
    session = _session(slug)
    session.canvas.clear_action(edge_id)
    _commit(slug)
    return {"success": True, "edge": _edge_payload(session, edge_id)}


@router.post("/spaces/{slug}/edges/{edge_id}/reconnect")
async def reconnect_edge(slug: str, edge_id: str, request: ReconnectRequest):
    session = _session(slug)
    session.store.reconnect(edge_id, request.new_source, request.new_target)
    _commit(slug)
    return {"success": True, "edge": _edge_payload(session, edge_id)}


@router.delete("/spaces/{slug}/edges/{edge_id}")
async def delete_edge(slug: str, edge_id: str):
    session = _session(slug)
    existed = session.store.get_edge(edge_id) is not None
    session.canvas.delete_edge(edge_id)
    _commit(slug)
    return {"success": True, "deleted": existed, "edge_id": edge_id}


# ============= Canvas gestures =============


@router.post("/spaces/{slug}/canvas/drop-database")
async def drop_database(slug: str, request: DropDatabaseRequest):
    """A database tile dropped from the Source or Destination palette section."""
    session = _session(slug)
    node_id = session.canvas.drop_database(
        request.role, request.position.to_position(), request.connection_id
    )
    _commit(slug)
    return {"success": True, "node": _node_payload(session, node_id)}


@router.post("/spaces/{slug}/canvas/drop-template")
async def drop_template(slug: str, request: DropTemplateRequest):
    session = _session(slug)
    template = session.get_template(request.template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    node_id = session.canvas.drop_template(template, request.role, request.position.to_position())
    _commit(slug)
    return {"success": True, "node": _node_payload(session, node_id)}


@router.post("/spaces/{slug}/canvas/drop-action")
async def drop_action(slug: str, request: DropActionRequest):
    """An ETL action tile dropped on the canvas or on an edge."""
    if normalize_palette_action(request.action) is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {request.action}")
    session = _session(slug)
    position = request.position.to_position() if request.position else None
    edge_id = session.canvas.drop_action(request.action, edge_id=request.edge_id, position=position)
    _commit(slug)
    return {"success": edge_id is not None, "edge": _edge_payload(session, edge_id)}


@router.post("/spaces/{slug}/canvas/click-action")
async def click_action(slug: str, request: EdgeActionRequest):
    """An ETL action clicked on the palette."""
    if normalize_palette_action(request.action) is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {request.action}")
    session = _session(slug)
    edge_id = session.canvas.click_action(request.action)
    _commit(slug)
    return {"success": edge_id is not None, "edge": _edge_payload(session, edge_id)}


@router.post("/spaces/{slug}/canvas/click-edge")
async def click_edge(slug: str, request: EdgeRef):
    session = _session(slug)
    session.canvas.click_edge(request.edge_id)
    return {"selected_edge_id": session.canvas.selected_edge_id}


@router.post("/spaces/{slug}/canvas/click-pane")
async def click_pane(slug: str):
    session = _session(slug)
    session.canvas.click_pane()
    return {"selected_edge_id": None}


@router.post("/spaces/{slug}/canvas/reconnect/start")
async def start_reconnect(slug: str, request: EdgeRef):
    session = _session(slug)
    session.canvas.start_reconnect(request.edge_id)
    return {"reconnecting": session.canvas.reconnect_in_progress}


@router.post("/spaces/{slug}/canvas/reconnect/complete")
async def complete_reconnect(slug: str, request: ReconnectRequest):
    session = _session(slug)
    landed = session.canvas.complete_reconnect(request.new_source, request.new_target)
    return {"landed": landed}


@router.post("/spaces/{slug}/canvas/reconnect/end")
async def end_reconnect(slug: str):
    """End a reconnect drag; an edge that never landed is deleted."""
    session = _session(slug)
    survived = session.canvas.end_reconnect()
    _commit(slug)
    return {"edge_kept": survived}


# ============= Commands =============


@router.post("/spaces/{slug}/commands")
async def run_commands(slug: str, request: CommandBatch):
    """Apply a batch of commands in order.

    The whole batch is parsed first; one malformed command rejects the batch
    before anything is applied.
    """
    try:
        commands = [parse_command(data) for data in request.commands]
    except CommandError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session = _session(slug)
    results = apply_commands(session.store, commands)
    _commit(slug)
    return {"success": True, "results": results, "graph": _graph_payload(session)}


# ============= Templates =============


@router.get("/spaces/{slug}/templates")
async def list_templates(slug: str):
    session = _session(slug)
    connections = session.store.connections
    templates = []
    for template in session.templates:
        entry = template.to_dict()
        entry["connection_name"] = connections.resolve_name(template.connection_id)
        templates.append(entry)
    return {"templates": templates, "total": len(templates)}


@router.post("/spaces/{slug}/templates")
async def create_template(slug: str, request: TemplateCreate):
    session = _session(slug)
    try:
        template = session.add_template(request.connection_id, request.schema_name, request.table)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _commit(slug)
    return {"success": True, "template": template.to_dict()}


# ============= Workspace generate =============


@router.post("/spaces/{slug}/generate")
async def generate_nodes(slug: str, request: GenerateRequest):
    """Parse a workspace draft and add the resulting nodes to the canvas.

    Parse failures and empty drafts are reported in the body and add nothing.
    """
    result = generate(request.mode, request.text)
    payload = result.to_dict()
    payload["nodes"] = []
    if not result.ok:
        return payload

    session = _session(slug)
    node_ids = session.canvas.generate(result.specs)
    _commit(slug)
    payload["nodes"] = [session.store.get_workspace_node(n).to_dict() for n in node_ids]
    logger.info("Generated %d workspace node(s) in space %s", len(node_ids), slug)
    return payload

