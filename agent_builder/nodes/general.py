import logging

from pocketflow import Node

from .base import BasePlatformNode
from ..schemas import NodeResult

logger = logging.getLogger(__name__)


class StartNode(BasePlatformNode, Node):
    """Entry point of the flow. The run-start entry already marks it, so it logs nothing."""

    NODE_TYPE = "Start"
    DESCRIPTION = "Entry point of flow"

    def post(self, shared, prep_res, exec_res):
        return None


class EndNode(BasePlatformNode, Node):
    NODE_TYPE = "End"
    DESCRIPTION = "Exit point of flow"

    def exec(self, prep_res):
        return NodeResult(success=True, output="Flow execution completed successfully")


class PassThroughNode(BasePlatformNode, Node):
    """Node type with no runtime behaviour yet; records that it was passed."""

    def exec(self, prep_res):
        return NodeResult(success=True, output=f"Skipped: {self.NODE_TYPE} nodes have no runtime action")


class InputNode(PassThroughNode):
    NODE_TYPE = "Input"
    DESCRIPTION = "Start the flow"
    PARAMS = {"input": {"name": "Input"}}


class ToolNode(PassThroughNode):
    NODE_TYPE = "Tool"
    DESCRIPTION = "External tool or API"
    PARAMS = {
        "endpoint": {"name": "Endpoint"},
        "input": {"name": "Input"},
    }


class MemoryNode(PassThroughNode):
    NODE_TYPE = "Memory"
    DESCRIPTION = "Store or recall a value"
    PARAMS = {
        "key": {"name": "Key"},
        "value": {"name": "Value"},
    }


class OutputNode(PassThroughNode):
    NODE_TYPE = "Output"
    DESCRIPTION = "Final output"
    PARAMS = {"message": {"name": "Message"}}


class TextNoteNode(PassThroughNode):
    NODE_TYPE = "Text Note"
    DESCRIPTION = "Simple text note"
    PARAMS = {"note": {"name": "Note", "type": "textarea"}}


class UnsupportedNode(PassThroughNode):
    """Fallback for node types the registry does not know."""
    NODE_TYPE = "unsupported"
    DESCRIPTION = "Unknown node type"

    def exec(self, prep_res):
        node_type = getattr(self, "declared_type", self.NODE_TYPE)
        logger.warning(f"No executor for node type '{node_type}' ({getattr(self, 'id', '?')}), skipping")
        return NodeResult(success=True, output=f"Skipped: no executor for node type '{node_type}'")
