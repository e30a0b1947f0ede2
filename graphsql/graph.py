"""Adjacency index over a pipeline graph."""

from collections import defaultdict, deque
from typing import Dict, Iterator, List, Set, Tuple

from graphsql.exceptions import CyclicGraphError, MissingSourceError
from graphsql.models import NodeType, PipelineGraph, PipelineNode
from graphsql.utils.logging import logger


class PipelineGraphIndex:
    """Id-keyed view of a pipeline graph with edge-ordered adjacency lists.

    Built once per compile call; the wrapped graph is never modified.
    """

    def __init__(self, graph: PipelineGraph):
        """Initialize the index.

        Args:
            graph: Pipeline graph to index
        """
        self.graph = graph
        self.nodes: Dict[str, PipelineNode] = {}
        self.adjacency_list: Dict[str, List[str]] = defaultdict(list)

        self._build_index()

    def _build_index(self) -> None:
        """Build the node map and adjacency lists in edge-list order."""
        for node in self.graph.nodes:
            # First node wins on duplicate ids
            self.nodes.setdefault(node.id, node)

        for edge in self.graph.edges:
            if edge.source not in self.nodes or edge.target not in self.nodes:
                logger.debug(
                    "Skipping edge with unknown endpoint",
                    edge=edge.id,
                    source=edge.source,
                    target=edge.target,
                )
                continue
            self.adjacency_list[edge.source].append(edge.target)

    def find_source(self) -> PipelineNode:
        """Return the source node.

        Raises:
            MissingSourceError: If the graph has no source node
        """
        sources = [node for node in self.graph.nodes if node.type == NodeType.SOURCE]
        if not sources:
            raise MissingSourceError()

        if len(sources) > 1:
            logger.warning(
                "Graph has more than one source node, using the first",
                sources=[node.id for node in sources],
            )
        return sources[0]

    def successors(self, node_id: str) -> List[PipelineNode]:
        """Direct downstream nodes in edge-list order."""
        return [self.nodes[target] for target in self.adjacency_list.get(node_id, [])]

    def check_cycles(self, start: str) -> None:
        """Check for cycles reachable from a start node.

        Walks depth-first with an explicit stack so long chains do not hit
        the interpreter's recursion limit.

        Raises:
            CyclicGraphError: If a cycle is detected
        """
        visited: Set[str] = {start}
        on_path: Set[str] = {start}
        path: List[str] = [start]
        stack: List[Tuple[str, Iterator[str]]] = [(start, iter(self.adjacency_list.get(start, [])))]

        while stack:
            node, pending = stack[-1]
            for successor in pending:
                if successor in on_path:
                    cycle = path[path.index(successor) :] + [successor]
                    raise CyclicGraphError("Pipeline graph contains a cycle", cycle=cycle)
                if successor not in visited:
                    visited.add(successor)
                    on_path.add(successor)
                    path.append(successor)
                    stack.append((successor, iter(self.adjacency_list.get(successor, []))))
                    break
            else:
                stack.pop()
                on_path.discard(node)
                path.pop()

    def reachable_from(self, node_id: str) -> Set[str]:
        """All node ids reachable downstream of a node (excluding itself)."""
        if node_id not in self.nodes:
            raise ValueError(f"Node '{node_id}' not found")

        reachable = set()
        queue = deque([node_id])

        while queue:
            current = queue.popleft()
            for successor in self.adjacency_list.get(current, []):
                if successor not in reachable:
                    reachable.add(successor)
                    queue.append(successor)

        reachable.discard(node_id)
        return reachable
