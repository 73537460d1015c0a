import logging
from typing import Dict, List, Type

from .schemas import NodeMetadata, NodeType
from .nodes.base import BasePlatformNode
from .nodes.general import (
    StartNode, EndNode, InputNode, ToolNode, MemoryNode, OutputNode,
    TextNoteNode, UnsupportedNode,
)
from .nodes.llm import LLMNode
from .nodes.structured import StructuredOutputNode
from .nodes.web import WebScrapingNode
from .nodes.vector_memory import EmbeddingGeneratorNode, SimilaritySearchNode

logger = logging.getLogger(__name__)


class NodeRegistry:
    def __init__(self):
        self.node_classes: Dict[str, Type[BasePlatformNode]] = {}

        # Explicit registration, one class per NodeType
        self.register(StartNode)
        self.register(EndNode)
        self.register(InputNode)
        self.register(LLMNode)
        self.register(ToolNode)
        self.register(MemoryNode)
        self.register(OutputNode)
        self.register(WebScrapingNode)
        self.register(StructuredOutputNode)
        self.register(EmbeddingGeneratorNode)
        self.register(SimilaritySearchNode)
        self.register(TextNoteNode)

        missing = {t.value for t in NodeType} - set(self.node_classes)
        if missing:
            raise RuntimeError(f"No executor registered for node types: {sorted(missing)}")

    def register(self, cls):
        if hasattr(cls, "NODE_TYPE"):
            self.node_classes[cls.NODE_TYPE] = cls

    def get_node_class(self, node_type: str) -> Type[BasePlatformNode]:
        cls = self.node_classes.get(node_type)
        if cls is None:
            logger.warning(f"Node type {node_type} not registered, using no-op executor")
            return UnsupportedNode
        return cls

    def get_all_metadata(self) -> List[NodeMetadata]:
        return [cls.get_schema() for cls in self.node_classes.values()]


registry = NodeRegistry()
