import json
from datetime import datetime, timezone
from typing import Any, Mapping, Union

from pydantic import ValidationError

from .graph import next_counter
from .schemas import Workflow

WORKFLOW_VERSION = "1.0"


class WorkflowImportError(ValueError):
    pass


def export_workflow(workflow: Workflow) -> str:
    """Serialize a workflow to the JSON document the canvas downloads."""
    doc = workflow.model_copy()
    if doc.nodeIdCounter is None:
        doc.nodeIdCounter = next_counter(doc.nodes)
    doc.version = WORKFLOW_VERSION
    doc.exportedAt = datetime.now(timezone.utc).isoformat()
    return doc.model_dump_json(indent=2)


def import_workflow(content: Union[str, bytes, Mapping[str, Any]]) -> Workflow:
    """
    Parse an exported workflow document.

    Accepts JSON text or an already-decoded mapping. Nodes may use either the
    flat shape or the canvas shape with label/type/parameters under "data".
    """
    if isinstance(content, (str, bytes)):
        try:
            content = json.loads(content)
        except json.JSONDecodeError as e:
            raise WorkflowImportError(f"Invalid JSON: {e}") from e

    if not isinstance(content, Mapping) or "nodes" not in content or "edges" not in content:
        raise WorkflowImportError("Invalid workflow file format")

    try:
        workflow = Workflow.model_validate(dict(content))
    except ValidationError as e:
        raise WorkflowImportError(f"Invalid workflow file format: {e.error_count()} invalid field(s)") from e

    if workflow.nodeIdCounter is None:
        workflow.nodeIdCounter = next_counter(workflow.nodes)
    return workflow
