"""
Workspace API routes for the dmp webapp.

The workspace panel beside the canvas holds a free-text draft, either a JSON
transform plan or an SQL query. This module serves the starter drafts and
validates a draft without touching any graph. Generating nodes from a draft
is a space operation (see spaces.py).
"""

from fastapi import APIRouter
from pydantic import BaseModel

from .flow.bridge import DRAFT_TEMPLATES, WorkspaceMode, validate_draft
from .shared.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class DraftRequest(BaseModel):
    mode: WorkspaceMode
    text: str


@router.get("/workspace/templates")
async def list_draft_templates():
    """Starter drafts for each workspace mode."""
    return {
        "templates": [
            {"mode": mode.value, "content": content}
            for mode, content in DRAFT_TEMPLATES.items()
        ]
    }


@router.get("/workspace/templates/{mode}")
async def get_draft_template(mode: WorkspaceMode):
    return {"mode": mode.value, "content": DRAFT_TEMPLATES[mode]}


@router.post("/workspace/validate")
async def validate_workspace_draft(request: DraftRequest):
    """Validate a draft (the workspace Validate / Save button).

    Invalid drafts are reported in the body with ``ok: false`` rather than as
    HTTP errors, so the panel can show the message inline.
    """
    result = validate_draft(request.mode, request.text)
    if not result.ok:
        logger.debug("Workspace draft (%s) rejected: %s", request.mode.value, result.message)
    return result.to_dict()
