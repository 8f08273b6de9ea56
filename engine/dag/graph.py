"""
Resource Graph

Accumulates declared resource nodes and derives the dependency edges
implied by their input references. Performs cycle detection and answers
dependency queries used by the synthesizer.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set
import logging

from ..errors import DuplicateNameError, GraphFrozenError
from .node import ResourceNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    """
    Derived dependency edge: `dependent` consumes something from `dependency`.

    field is the dependent's input field carrying the reference, output the
    referenced output field. Both are None for explicit depends_on edges.
    """
    dependent: str
    dependency: str
    field: Optional[str] = None
    output: Optional[str] = None


class ResourceGraph:
    """
    Set of declared nodes plus the edges derived from their references.

    The graph is scoped to one synthesis session. Nodes register themselves
    on construction; synthesis freezes the graph, after which further
    declarations fail until reset() is called.

    Example usage:
        graph = ResourceGraph()
        vpc = ResourceNode(graph, "VPC", "network", outputs={"vpc_id": "vpc-0abc"})
        db = ResourceNode(graph, "Instance", "database", inputs={"vpc": vpc.ref("vpc_id")})

        print(graph.edges())             # [Edge("Instance", "VPC", "vpc", "vpc_id")]
        print(graph.get_dependencies("Instance"))  # ["VPC"]
        print(graph.detect_cycle())      # None
    """

    def __init__(self):
        """Initialize an empty, unfrozen graph"""
        self.nodes: Dict[str, ResourceNode] = {}
        self._frozen = False

        logger.debug("Initialized ResourceGraph")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_node(self, node: ResourceNode) -> None:
        """
        Register a node.

        Args:
            node: Node to add

        Raises:
            GraphFrozenError: If the graph was frozen by synthesis
            DuplicateNameError: If a node with the same name exists
        """
        if self._frozen:
            raise GraphFrozenError(node.name)
        if node.name in self.nodes:
            raise DuplicateNameError(node.name)

        self.nodes[node.name] = node
        logger.debug(f"Added node '{node.name}' ({len(self.nodes)} total)")

    def get(self, name: str) -> Optional[ResourceNode]:
        return self.nodes.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self.nodes.values())

    def freeze(self) -> None:
        """Reject further declarations"""
        if not self._frozen:
            self._frozen = True
            logger.debug(f"Froze graph with {len(self.nodes)} nodes")

    def reset(self) -> None:
        """Drop every node and unfreeze, for an unrelated synthesis run"""
        count = len(self.nodes)
        self.nodes = {}
        self._frozen = False
        logger.info(f"Reset graph ({count} nodes dropped)")

    def edges(self) -> List[Edge]:
        """
        Derive dependency edges from input references and depends_on.

        Edges are listed in node declaration order, then input field order,
        then depends_on order. References to nodes not (yet) in the graph
        are skipped here; the resolver reports them.

        Returns:
            List of Edge objects
        """
        edges = []
        for node in self.nodes.values():
            for field, ref in node.references():
                if ref.node in self.nodes:
                    edges.append(Edge(node.name, ref.node, field, ref.field))
            for dep in node.depends_on:
                if dep in self.nodes:
                    edges.append(Edge(node.name, dep))
        return edges

    def get_dependencies(self, name: str) -> List[str]:
        """
        Get direct dependencies of a node, without duplicates.

        Args:
            name: Node name

        Returns:
            Names of nodes this node depends on, in first-reference order
        """
        node = self.nodes.get(name)
        if node is None:
            return []

        deps: List[str] = []
        candidates = [ref.node for _, ref in node.references()] + list(node.depends_on)
        for dep in candidates:
            if dep in self.nodes and dep not in deps:
                deps.append(dep)
        return deps

    def get_dependents(self, name: str) -> Set[str]:
        """
        Get nodes that depend directly on this node.

        Args:
            name: Node name

        Returns:
            Set of dependent node names
        """
        return {
            other for other in self.nodes
            if name in self.get_dependencies(other)
        }

    def get_all_transitive_dependents(self, name: str) -> Set[str]:
        """
        Get all transitive dependents of a node (downstream nodes).

        Args:
            name: Node name

        Returns:
            Set of all node names that transitively depend on this node
        """
        transitive: Set[str] = set()

        def collect(nid: str):
            for dep in self.get_dependents(nid):
                if dep not in transitive:
                    transitive.add(dep)
                    collect(dep)

        collect(name)
        return transitive

    def detect_cycle(self) -> Optional[List[str]]:
        """
        Detect a cycle using depth-first search.

        Nodes are visited in declaration order and dependencies in
        reference order, so the reported path is deterministic. A back
        edge to a node on the active recursion stack closes the cycle.

        Returns:
            Cycle path starting and ending on the same node
            (e.g. ["A", "B", "C", "A"]), or None if the graph is acyclic
        """
        visited: Set[str] = set()
        rec_stack: Set[str] = set()

        def dfs(name: str, path: List[str]) -> Optional[List[str]]:
            visited.add(name)
            rec_stack.add(name)
            path.append(name)

            for dep in self.get_dependencies(name):
                if dep not in visited:
                    cycle = dfs(dep, path)
                    if cycle:
                        return cycle
                elif dep in rec_stack:
                    return path[path.index(dep):] + [dep]

            rec_stack.remove(name)
            path.pop()
            return None

        for name in self.nodes:
            if name not in visited:
                cycle = dfs(name, [])
                if cycle:
                    logger.debug(f"Cycle found: {' -> '.join(cycle)}")
                    return cycle

        logger.debug("No cycles detected in resource graph")
        return None
