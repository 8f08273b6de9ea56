"""
Plan Synthesizer

Converts a declared resource graph into an ordered, resolved plan.
Performs cycle detection, computes a deterministic topological order,
resolves every node's fields, and applies requested exports.
"""

from typing import Any, Dict, List, Mapping, Optional
import heapq
import logging

from schemas.plan import Plan, PlannedResource

from ..dag.graph import ResourceGraph
from ..dag.registry import LookupRegistry
from ..dag.resolver import ReferenceResolver
from ..errors import CycleError, UnknownNodeError
from .exporter import Exporter

logger = logging.getLogger(__name__)


class Synthesizer:
    """
    Synthesizes a plan from a resource graph.

    The synthesizer:
    1. Freezes the graph and validates no cycles exist (DFS)
    2. Computes topological order (Kahn's algorithm, declaration-order tie-break)
    3. Resolves every input and output of each node in that order
    4. Builds the plan and registers exports

    Nothing is returned until every step succeeds, so a failed synthesis
    never exposes a partial plan.

    Example usage:
        graph = ResourceGraph()
        ... declare nodes ...

        synthesizer = Synthesizer(graph, lookups)
        plan = synthesizer.synthesize(exports={"cluster-name": cluster.ref("cluster_name")})

        print(plan.order)  # ["VPC", "Instance", "AdminService"]
    """

    def __init__(
        self,
        graph: ResourceGraph,
        lookups: Optional[LookupRegistry] = None,
        stack: Optional[str] = None,
    ):
        """
        Args:
            graph: Declared resource graph
            lookups: Lookup providers for Lookup values
            stack: Optional stack name recorded on the plan
        """
        self.graph = graph
        self.lookups = lookups
        self.stack = stack

    def synthesize(
        self,
        exports: Optional[Mapping[str, Any]] = None,
        descriptions: Optional[Mapping[str, str]] = None,
    ) -> Plan:
        """
        Run synthesis.

        Args:
            exports: Optional mapping of export name -> value to register
            descriptions: Optional mapping of export name -> description

        Returns:
            Plan with resources in topological order

        Raises:
            CycleError: If the graph contains a cycle
            UnknownNodeError / UnknownFieldError: Dangling references
            ResourceLookupError: A lookup failed
            DuplicateExportError: Repeated export name
        """
        self.graph.freeze()
        logger.info(f"Synthesizing plan for {len(self.graph)} nodes...")

        cycle = self.graph.detect_cycle()
        if cycle:
            raise CycleError(cycle)

        self._validate_explicit_dependencies()
        order = self._compute_topo_order()

        # One resolver per run keeps lookup answers consistent within the plan
        resolver = ReferenceResolver(self.graph, self.lookups)
        resources = [self._plan_node(name, resolver) for name in order]

        plan = Plan(resources=tuple(resources), stack=self.stack)
        if exports:
            Exporter(plan).export_all(exports, descriptions)

        logger.info(
            f"Plan synthesized: {len(plan.resources)} resources, "
            f"{len(plan.exports)} exports, order: {plan.order}"
        )
        return plan

    def _validate_explicit_dependencies(self) -> None:
        for node in self.graph:
            for dep in node.depends_on:
                if dep not in self.graph:
                    raise UnknownNodeError(dep, node.name, "depends_on")

    def _compute_topo_order(self) -> List[str]:
        """
        Compute topological order using Kahn's algorithm.

        Ready nodes are selected by declaration position, so identical
        declarations always produce the same order.

        Returns:
            Node names, dependencies before dependents
        """
        position = {name: i for i, name in enumerate(self.graph.nodes)}
        dependencies = {name: self.graph.get_dependencies(name) for name in self.graph.nodes}

        in_degree = {name: len(deps) for name, deps in dependencies.items()}
        dependents: Dict[str, List[str]] = {name: [] for name in self.graph.nodes}
        for name, deps in dependencies.items():
            for dep in deps:
                dependents[dep].append(name)

        ready = [position[n] for n, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        names = list(self.graph.nodes)
        order: List[str] = []

        while ready:
            name = names[heapq.heappop(ready)]
            order.append(name)

            for dependent in dependents[name]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(order) != len(names):
            # detect_cycle() rejects cycles first
            missing = [n for n in names if n not in order]
            raise CycleError(missing + missing[:1])

        logger.debug(f"Computed topological order: {order}")
        return order

    def _plan_node(self, name: str, resolver: ReferenceResolver) -> PlannedResource:
        node = self.graph.nodes[name]

        inputs = {
            field: resolver.resolve(value, referenced_by=name, field=field)
            for field, value in node.inputs.items()
        }
        outputs = {
            field: resolver.resolve(value, referenced_by=name, field=field)
            for field, value in node.outputs.items()
        }

        resource = PlannedResource(
            name=name,
            kind=node.kind,
            inputs=inputs,
            outputs=outputs,
            depends_on=tuple(self.graph.get_dependencies(name)),
            metadata=dict(node.metadata),
        )

        if resource.pending_inputs:
            logger.debug(f"Node '{name}' has deferred inputs: {resource.pending_inputs}")
        return resource


def synthesize(
    graph: ResourceGraph,
    lookups: Optional[LookupRegistry] = None,
    exports: Optional[Mapping[str, Any]] = None,
    stack: Optional[str] = None,
    descriptions: Optional[Mapping[str, str]] = None,
) -> Plan:
    """Synthesize a plan from a graph in one call"""
    return Synthesizer(graph, lookups, stack=stack).synthesize(exports, descriptions)
