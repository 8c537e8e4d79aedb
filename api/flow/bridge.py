"""
Workspace-to-graph bridge.

Turns a transform workspace draft (JSON describing a dataset, its fields and
example sources) or an SQL draft into a batch of node specs. Parsing is
all-or-nothing: a malformed or empty draft yields no specs and a message
explaining why.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..shared.logger import get_logger
from .models import WorkspaceNodeKind

logger = get_logger(__name__)


class WorkspaceMode(str, Enum):
    TRANSFORM = "transform"
    SQL = "sql"


class BridgeStatus(str, Enum):
    OK = "ok"
    PARSE_ERROR = "parse_error"
    NO_NODE_DATA = "no_node_data"
    EMPTY_SQL = "empty_sql"


@dataclass
class NodeSpec:
    kind: WorkspaceNodeKind
    label: str
    payload: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "label": self.label, "payload": self.payload}


@dataclass
class BridgeResult:
    status: BridgeStatus
    message: str
    specs: List[NodeSpec] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is BridgeStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "ok": self.ok,
            "message": self.message,
            "specs": [spec.to_dict() for spec in self.specs],
        }


TRANSFORM_TEMPLATE = json.dumps(
    {
        "notes": "Reference JSON/Schema for transform planning",
        "schema": {
            "dataset": "customer_360",
            "fields": [
                {"name": "customer_id", "type": "string"},
                {"name": "full_name", "type": "string"},
                {"name": "created_at", "type": "timestamp"},
            ],
        },
        "example_nodes": [
            {"connection": "CRM", "table": "customers"},
            {"connection": "POS", "table": "transactions"},
        ],
    },
    indent=2,
)

SQL_TEMPLATE = """-- SQL Workspace (Reference / Draft)
-- Paste a query or schema to use as reference or to prepare a dataset

SELECT
  customer_id,
  full_name,
  created_at
FROM public.customers
WHERE created_at >= NOW() - INTERVAL '30 days';"""

DRAFT_TEMPLATES = {
    WorkspaceMode.TRANSFORM: TRANSFORM_TEMPLATE,
    WorkspaceMode.SQL: SQL_TEMPLATE,
}


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, bool)):
        return ""
    return str(value).strip()


def _parse_json(text: str) -> Tuple[Any, Optional[str]]:
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        return None, f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})"


def _dataset_specs(schema: Dict[str, Any]) -> List[NodeSpec]:
    dataset = _text(schema.get("dataset"))
    if not dataset:
        return []
    return [NodeSpec(kind=WorkspaceNodeKind.DATASET, label=dataset, payload={"dataset": dataset})]


def _field_specs(schema: Dict[str, Any]) -> List[NodeSpec]:
    fields = schema.get("fields")
    if not isinstance(fields, list):
        return []

    specs = []
    for entry in fields:
        if isinstance(entry, dict):
            name = _text(entry.get("name"))
            field_type = _text(entry.get("type"))
            payload = entry
        else:
            name = _text(entry)
            field_type = ""
            payload = {"name": name}
        if not name:
            continue
        label = f"{name} : {field_type}" if field_type else name
        specs.append(NodeSpec(kind=WorkspaceNodeKind.FIELD, label=label, payload=payload))
    return specs


def _source_specs(document: Dict[str, Any]) -> List[NodeSpec]:
    examples = document.get("example_nodes")
    if not isinstance(examples, list):
        return []

    specs = []
    for entry in examples:
        if not isinstance(entry, dict):
            continue
        connection = _text(entry.get("connection"))
        table = _text(entry.get("table"))
        if connection and table:
            label = f"{connection}.{table}"
        elif table:
            label = table
        elif connection:
            label = connection
        else:
            continue
        specs.append(NodeSpec(kind=WorkspaceNodeKind.SOURCE, label=label, payload=entry))
    return specs


def generate_from_json(text: str) -> BridgeResult:
    """Extract dataset, field and source specs from a transform draft."""
    document, error = _parse_json(text)
    if error:
        logger.debug("Transform draft rejected: %s", error)
        return BridgeResult(status=BridgeStatus.PARSE_ERROR, message=error)

    specs: List[NodeSpec] = []
    if isinstance(document, dict):
        schema = document.get("schema")
        if isinstance(schema, dict):
            specs.extend(_dataset_specs(schema))
            specs.extend(_field_specs(schema))
        specs.extend(_source_specs(document))

    if not specs:
        return BridgeResult(status=BridgeStatus.NO_NODE_DATA, message="No node data found")
    return BridgeResult(
        status=BridgeStatus.OK,
        message=f"Generated {len(specs)} node(s)",
        specs=specs,
    )


def generate_from_sql(text: str) -> BridgeResult:
    """Wrap a non-empty SQL draft, verbatim, in a single node spec."""
    if not (text or "").strip():
        return BridgeResult(status=BridgeStatus.EMPTY_SQL, message="Empty SQL")
    spec = NodeSpec(kind=WorkspaceNodeKind.SQL_DRAFT, label="SQL draft", payload={"sql": text})
    return BridgeResult(status=BridgeStatus.OK, message="Generated 1 node(s)", specs=[spec])


def generate(mode: WorkspaceMode, text: str) -> BridgeResult:
    if WorkspaceMode(mode) is WorkspaceMode.TRANSFORM:
        return generate_from_json(text)
    return generate_from_sql(text)


def validate_draft(mode: WorkspaceMode, text: str) -> BridgeResult:
    """Check a draft without generating nodes (the workspace Validate/Save button)."""
    if WorkspaceMode(mode) is WorkspaceMode.TRANSFORM:
        _, error = _parse_json(text)
        if error:
            return BridgeResult(status=BridgeStatus.PARSE_ERROR, message=error)
        return BridgeResult(status=BridgeStatus.OK, message="Valid JSON")

    if not (text or "").strip():
        return BridgeResult(status=BridgeStatus.EMPTY_SQL, message="Empty SQL")
    return BridgeResult(status=BridgeStatus.OK, message="Saved as draft")
