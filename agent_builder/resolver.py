import logging
from typing import Dict, List, Sequence

from .schemas import NodeConfig, Edge, NodeType

logger = logging.getLogger(__name__)


class NotExecutable(Exception):
    """The graph has no single Start -> End path to run."""

    MESSAGES = {
        "missing_start": "no Start node",
        "missing_end": "no End node",
        "ambiguous_start": "more than one Start node",
        "ambiguous_end": "more than one End node",
        "dead_end": "the path from Start does not reach End",
        "cycle": "the path from Start loops without reaching End",
    }

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.MESSAGES.get(reason, reason))


def _find_single(nodes: Sequence[NodeConfig], node_type: NodeType, missing: str, ambiguous: str) -> NodeConfig:
    found = [n for n in nodes if n.type == node_type.value]
    if not found:
        raise NotExecutable(missing)
    if len(found) > 1:
        raise NotExecutable(ambiguous)
    return found[0]


def build_adjacency(edges: Sequence[Edge]) -> Dict[str, str]:
    # Later edges win, matching the editor's replace-on-connect behaviour
    adjacency = {}
    for edge in edges:
        adjacency[edge.source] = edge.target
    return adjacency


def resolve_execution_order(nodes: Sequence[NodeConfig], edges: Sequence[Edge]) -> List[NodeConfig]:
    """
    Walk from the Start node along outgoing edges until End is reached.

    Nodes that are not on the Start -> End path are ignored. Raises
    NotExecutable when the graph has no unique Start/End, the walk dead-ends,
    or it takes more than len(nodes) hops (a cycle that never reaches End).
    """
    start = _find_single(nodes, NodeType.START, "missing_start", "ambiguous_start")
    _find_single(nodes, NodeType.END, "missing_end", "ambiguous_end")

    by_id = {n.id: n for n in nodes}
    adjacency = build_adjacency(edges)

    order = [start]
    current = start
    while current.type != NodeType.END.value:
        if len(order) > len(nodes):
            logger.warning(f"Traversal exceeded {len(nodes)} hops from {start.id}")
            raise NotExecutable("cycle")
        next_id = adjacency.get(current.id)
        current = by_id.get(next_id) if next_id is not None else None
        if current is None:
            raise NotExecutable("dead_end")
        order.append(current)

    return order
