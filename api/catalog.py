"""
Catalog API routes for the dmp webapp.

Read-only vocabularies used by the flow editor palette (database types and
ETL actions) plus the connections catalog the node dialog picks from.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .app_config import get_settings
from .flow.catalog import all_db_types, get_db_icon_for_type, sections_payload
from .flow.etl_actions import EtlAction, get_action_label, palette_payload
from .flow.session import get_space_manager
from .shared.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ConnectionCreate(BaseModel):
    name: str
    database_type: str
    id: Optional[str] = None


@router.get("/catalog/databases")
async def list_database_sections():
    """Palette sections (Source, Destination, NoSQL, Files) with icon paths."""
    base_path = get_settings().base_path
    return {
        "sections": sections_payload(base_path),
        "types": all_db_types(),
    }


@router.get("/catalog/databases/{db_type}/icon")
async def get_database_icon(db_type: str):
    icon = get_db_icon_for_type(db_type, get_settings().base_path)
    if icon is None:
        raise HTTPException(status_code=404, detail=f"Unknown database type: {db_type}")
    return {"type": db_type, "icon": icon}


@router.get("/catalog/etl-actions")
async def list_etl_actions():
    """Palette action groups and the label of every known action."""
    return {
        "groups": palette_payload(),
        "actions": [
            {"action": action.value, "label": get_action_label(action)}
            for action in EtlAction
        ],
    }


@router.get("/connections")
async def list_connections(db_type: Optional[str] = None):
    """List connections, optionally only those of one database type."""
    connections = get_space_manager().connections.options_for(db_type)
    return {
        "connections": [c.to_dict() for c in connections],
        "total": len(connections),
    }


@router.post("/connections")
async def register_connection(request: ConnectionCreate):
    try:
        descriptor = get_space_manager().connections.register(
            request.name, request.database_type, connection_id=request.id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "connection": descriptor.to_dict()}


@router.get("/connections/{connection_id}")
async def get_connection(connection_id: str):
    descriptor = get_space_manager().connections.get(connection_id)
    if descriptor is None:
        raise HTTPException(status_code=404, detail="Connection not found")
    return {"connection": descriptor.to_dict()}
