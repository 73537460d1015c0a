import logging
import re
from typing import Any, Dict, List, Optional

from .schemas import Edge, NodeConfig, NodeType, Workflow

logger = logging.getLogger(__name__)

NODE_ID_PATTERN = re.compile(r"^node_(\d+)$")


def next_counter(nodes: List[NodeConfig]) -> int:
    """One past the highest numeric node_<n> id, so new ids never collide."""
    highest = -1
    for node in nodes:
        match = NODE_ID_PATTERN.match(node.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


class WorkflowGraph:
    """
    Editable node/edge collections.

    Every node has at most one outgoing edge: connecting a node that already
    has one replaces the old edge. Node ids are handed out from a counter that
    only grows, so ids are not reused after a delete.
    """

    def __init__(self):
        self.nodes: List[NodeConfig] = []
        self.edges: List[Edge] = []
        self.node_id_counter = 0

    def get_node(self, node_id: str) -> NodeConfig:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(f"Node {node_id} does not exist")

    def add_node(self, node_type, label: Optional[str] = None, parameters: Optional[Dict[str, Any]] = None,
                 position: Optional[Dict[str, float]] = None) -> NodeConfig:
        node_type = NodeType(node_type).value
        node_id = f"node_{self.node_id_counter}"
        self.node_id_counter += 1
        node = NodeConfig(
            id=node_id,
            type=node_type,
            label=label or f"Node {self.node_id_counter}",
            position=position or {"x": 0.0, "y": 0.0},
            parameters=dict(parameters or {}),
        )
        self.nodes.append(node)
        return node

    def connect(self, source: str, target: str, source_handle: Optional[str] = None,
                target_handle: Optional[str] = None) -> Edge:
        self.get_node(source)
        self.get_node(target)
        replaced = [e for e in self.edges if e.source == source]
        if replaced:
            logger.info(f"Replacing outgoing edge {source} -> {replaced[0].target} with {source} -> {target}")
        self.edges = [e for e in self.edges if e.source != source]
        edge = Edge(
            id=f"edge_{source}_{target}",
            source=source,
            target=target,
            sourceHandle=source_handle,
            targetHandle=target_handle,
        )
        self.edges.append(edge)
        return edge

    def disconnect(self, source: str):
        self.edges = [e for e in self.edges if e.source != source]

    def remove_node(self, node_id: str):
        self.get_node(node_id)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [e for e in self.edges if e.source != node_id and e.target != node_id]

    def rename_node(self, node_id: str, label: str):
        if label.strip():
            self.get_node(node_id).label = label

    def set_parameters(self, node_id: str, parameters: Dict[str, Any]):
        self.get_node(node_id).parameters = dict(parameters)

    def outgoing(self, node_id: str) -> Optional[Edge]:
        return next((e for e in self.edges if e.source == node_id), None)

    def to_workflow(self) -> Workflow:
        return Workflow(
            nodes=[n.model_copy(deep=True) for n in self.nodes],
            edges=[e.model_copy() for e in self.edges],
            nodeIdCounter=self.node_id_counter,
        )

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> "WorkflowGraph":
        graph = cls()
        graph.nodes = [n.model_copy(deep=True) for n in workflow.nodes]
        # Keep only the last outgoing edge per source
        last_by_source = {}
        for edge in workflow.edges:
            last_by_source[edge.source] = edge.model_copy()
        graph.edges = list(last_by_source.values())
        counter = next_counter(graph.nodes)
        if workflow.nodeIdCounter is not None:
            counter = max(counter, workflow.nodeIdCounter)
        graph.node_id_counter = counter
        return graph
