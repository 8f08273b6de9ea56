"""
Resource Node Model

Defines the declared unit of infrastructure: a named, typed node with
input fields (what it consumes) and output fields (what it produces).

Nodes are created once against an explicit ResourceGraph and never
mutated afterwards. Inputs may reference other nodes' outputs; those
references are captured here and only resolved during synthesis.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, TYPE_CHECKING
import logging

from ..errors import UnknownFieldError
from .values import Deferred, Reference, Value, as_value, iter_references

if TYPE_CHECKING:
    from .graph import ResourceGraph

logger = logging.getLogger(__name__)


class ResourceNode:
    """
    Declared infrastructure resource.

    Attributes:
        name: Unique identifier within the graph (e.g., "Instance", "ecs-cluster")
        kind: Opaque type tag (e.g., "database", "load_balancer")
        inputs: Read-only mapping of input field -> Value
        outputs: Read-only mapping of output field -> Value (never holding a Reference)
        depends_on: Names of nodes that must be placed before this one
                    even though no input references them
        metadata: Free-form description attached to the plan entry

    Example usage:
        graph = ResourceGraph()

        database = ResourceNode(
            graph, "Instance", "database",
            inputs={"database_name": "sonarqube"},
            outputs={"endpoint": Deferred(), "password": Deferred()},
        )
        service = ResourceNode(
            graph, "AdminService", "container_service",
            inputs={"db_password": database.ref("password")},
        )
    """

    __slots__ = ("_name", "_kind", "_inputs", "_outputs", "_depends_on", "_metadata")

    def __init__(
        self,
        graph: "ResourceGraph",
        name: str,
        kind: str,
        inputs: Optional[Mapping[str, Any]] = None,
        outputs: Optional[Mapping[str, Any]] = None,
        depends_on: Optional[Sequence[str]] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        """
        Declare a node and register it into the graph.

        Args:
            graph: Graph this node belongs to
            name: Unique node name
            kind: Type tag
            inputs: Input field values (plain objects are wrapped as literals)
            outputs: Output field values; Deferred() without a placeholder
                     gets "<name>.<field>"
            depends_on: Explicit ordering dependencies by node name
            metadata: Optional descriptive data

        Raises:
            ValueError: If name or kind is empty
            TypeError: If an output is or contains a Reference
            DuplicateNameError: If the name is already used in the graph
            GraphFrozenError: If the graph has already been synthesized
        """
        if not name:
            raise ValueError("Node name must be a non-empty string")
        if not kind:
            raise ValueError(f"Node '{name}' must declare a kind")

        self._name = name
        self._kind = kind
        self._inputs = MappingProxyType(
            {field: as_value(value) for field, value in (inputs or {}).items()}
        )
        self._outputs = MappingProxyType(self._normalize_outputs(name, outputs or {}))
        self._depends_on = tuple(depends_on or ())
        self._metadata = MappingProxyType(dict(metadata or {}))

        graph.add_node(self)

        logger.debug(
            f"Declared node: name={name}, kind={kind}, "
            f"inputs={list(self._inputs.keys())}, outputs={list(self._outputs.keys())}"
        )

    @staticmethod
    def _normalize_outputs(name: str, outputs: Mapping[str, Any]) -> Dict[str, Value]:
        normalized = {}
        for field, raw in outputs.items():
            value = as_value(raw)
            if next(iter_references(value), None) is not None:
                raise TypeError(
                    f"Output '{field}' of node '{name}' cannot reference another node; "
                    f"wire nodes together through inputs"
                )
            if isinstance(value, Deferred) and not value.placeholder:
                value = Deferred(placeholder=f"{name}.{field}")
            normalized[field] = value
        return normalized

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def inputs(self) -> Mapping[str, Value]:
        return self._inputs

    @property
    def outputs(self) -> Mapping[str, Value]:
        return self._outputs

    @property
    def depends_on(self) -> tuple:
        return self._depends_on

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._metadata

    def ref(self, field: str) -> Reference:
        """
        Build a Reference to one of this node's outputs.

        Raises:
            UnknownFieldError: If the output is not declared
        """
        if field not in self._outputs:
            raise UnknownFieldError(self._name, field, available=list(self._outputs))
        return Reference(node=self._name, field=field)

    def is_deferred(self, field: str) -> bool:
        """True if the output is only known after deployment"""
        return isinstance(self._outputs.get(field), Deferred)

    def references(self) -> List[tuple]:
        """
        List (input_field, Reference) pairs in input declaration order.

        References nested in Join values are included.
        """
        return [
            (field, ref)
            for field, value in self._inputs.items()
            for ref in iter_references(value)
        ]

    def __repr__(self) -> str:
        return f"ResourceNode(name={self._name!r}, kind={self._kind!r})"
