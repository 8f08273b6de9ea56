"""
Reference Resolver

Resolves declared values against a resource graph. Every value resolves
to either a LiteralValue or a Deferred placeholder; deferred values are
a legal "not yet known" state and propagate instead of failing.
"""

from typing import Any, Dict, Optional, Tuple
import json
import logging

from ..errors import ResourceLookupError, UnknownFieldError, UnknownNodeError
from .graph import ResourceGraph
from .registry import LookupRegistry
from .values import (
    Deferred,
    Join,
    LiteralValue,
    Lookup,
    Reference,
    ResolvedValue,
    Value,
    join_resolved,
)

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """
    Resolves values for one synthesis session.

    Lookup answers are cached per resolver, so each distinct lookup is
    queried at most once per session and repeated resolution of the same
    value yields the same result.

    Example usage:
        resolver = ReferenceResolver(graph, lookups)
        resolver.resolve(Reference("Instance", "endpoint"))
        # LiteralValue("db.internal:5432") or Deferred("Instance.endpoint")
    """

    def __init__(self, graph: ResourceGraph, lookups: Optional[LookupRegistry] = None):
        """
        Args:
            graph: Graph references are resolved against
            lookups: Registry answering Lookup values (None rejects lookups)
        """
        self.graph = graph
        self.lookups = lookups
        self._lookup_cache: Dict[Tuple[str, str], Any] = {}

    def resolve(
        self,
        value: Value,
        referenced_by: Optional[str] = None,
        field: Optional[str] = None,
    ) -> ResolvedValue:
        """
        Resolve a value.

        Args:
            value: Value to resolve
            referenced_by: Name of the node whose input is being resolved
                           (error context only)
            field: Input field being resolved (error context only)

        Returns:
            LiteralValue or Deferred

        Raises:
            UnknownNodeError: Reference to a node not in the graph
            UnknownFieldError: Reference to an undeclared output field
            ResourceLookupError: Lookup failed
        """
        if isinstance(value, (LiteralValue, Deferred)):
            return value
        if isinstance(value, Reference):
            return self._resolve_reference(value, referenced_by, field)
        if isinstance(value, Lookup):
            return self._resolve_lookup(value)
        if isinstance(value, Join):
            return self._resolve_join(value, referenced_by, field)
        raise TypeError(f"Not a resource value: {value!r}")

    def _resolve_reference(
        self, ref: Reference, referenced_by: Optional[str], field: Optional[str]
    ) -> ResolvedValue:
        node = self.graph.get(ref.node)
        if node is None:
            raise UnknownNodeError(ref.node, referenced_by, field)

        if ref.field not in node.outputs:
            raise UnknownFieldError(
                ref.node, ref.field, referenced_by, available=list(node.outputs)
            )

        # Outputs hold no References, so this recursion is bounded
        return self.resolve(node.outputs[ref.field], ref.node, ref.field)

    def _resolve_lookup(self, lookup: Lookup) -> LiteralValue:
        query = lookup.query_dict
        if self.lookups is None:
            raise ResourceLookupError(lookup.provider, query, "no lookup registry configured")

        key = (lookup.provider, json.dumps(query, sort_keys=True, default=str))
        if key not in self._lookup_cache:
            self._lookup_cache[key] = self.lookups.lookup(lookup.provider, query)
        record = self._lookup_cache[key]

        if lookup.field not in record:
            raise ResourceLookupError(
                lookup.provider, query,
                f"record has no field '{lookup.field}' (fields: {', '.join(record.keys())})"
            )
        return LiteralValue(record[lookup.field])

    def _resolve_join(
        self, join: Join, referenced_by: Optional[str], field: Optional[str]
    ) -> ResolvedValue:
        return join_resolved(
            [self.resolve(part, referenced_by, field) for part in join.parts],
            join.separator,
        )


def resolve(
    value: Value,
    graph: ResourceGraph,
    lookups: Optional[LookupRegistry] = None,
) -> ResolvedValue:
    """Resolve a single value against a graph with a throwaway resolver"""
    return ReferenceResolver(graph, lookups).resolve(value)
