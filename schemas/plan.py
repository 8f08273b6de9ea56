"""
Plan Schemas

Data types for synthesized plans. These are what the runner prints,
what gets published over NATS, and what the export store persists.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import json

from engine.dag.values import Deferred, ResolvedValue, value_from_dict, value_to_dict


@dataclass(frozen=True)
class PlannedResource:
    """Resource definition with every field resolved or pending"""
    name: str
    kind: str
    inputs: Dict[str, ResolvedValue]
    outputs: Dict[str, ResolvedValue]
    depends_on: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def pending_inputs(self) -> List[str]:
        """Input fields that are only known after deployment"""
        return [name for name, value in self.inputs.items() if isinstance(value, Deferred)]

    @property
    def deferred_outputs(self) -> List[str]:
        """Output fields produced by deploying this resource"""
        return [name for name, value in self.outputs.items() if isinstance(value, Deferred)]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "name": self.name,
            "kind": self.kind,
            "inputs": {k: value_to_dict(v) for k, v in self.inputs.items()},
            "outputs": {k: value_to_dict(v) for k, v in self.outputs.items()},
            "depends_on": list(self.depends_on),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlannedResource":
        """Create PlannedResource from dictionary"""
        return cls(
            name=data["name"],
            kind=data["kind"],
            inputs={k: value_from_dict(v) for k, v in data.get("inputs", {}).items()},
            outputs={k: value_from_dict(v) for k, v in data.get("outputs", {}).items()},
            depends_on=tuple(data.get("depends_on", ())),
            metadata=data.get("metadata", {}),
        )


@dataclass(frozen=True)
class ExportEntry:
    """Named value published from a plan"""
    name: str
    value: ResolvedValue
    description: Optional[str] = None

    @property
    def deferred(self) -> bool:
        return isinstance(self.value, Deferred)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "name": self.name,
            "value": value_to_dict(self.value),
            "deferred": self.deferred,
            "description": self.description,
        }

    def to_json(self) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "ExportEntry":
        """Create ExportEntry from dictionary"""
        return cls(
            name=data["name"],
            value=value_from_dict(data["value"]),
            description=data.get("description"),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "ExportEntry":
        """Deserialize from JSON string"""
        return cls.from_dict(json.loads(json_str))


@dataclass
class Plan:
    """
    Ordered, resolved result of synthesis.

    resources is fixed in topological order; exports is the export table,
    written only through an Exporter.
    """
    resources: Tuple[PlannedResource, ...]
    exports: Dict[str, ExportEntry] = field(default_factory=dict)
    stack: Optional[str] = None

    @property
    def order(self) -> List[str]:
        """Resource names in plan order"""
        return [r.name for r in self.resources]

    def get(self, name: str) -> Optional[PlannedResource]:
        for resource in self.resources:
            if resource.name == name:
                return resource
        return None

    def index(self, name: str) -> int:
        """Position of a resource in the plan"""
        return self.order.index(name)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "stack": self.stack,
            "resources": [r.to_dict() for r in self.resources],
            "exports": {name: e.to_dict() for name, e in self.exports.items()},
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        """Create Plan from dictionary"""
        return cls(
            resources=tuple(PlannedResource.from_dict(r) for r in data.get("resources", [])),
            exports={
                name: ExportEntry.from_dict(e)
                for name, e in data.get("exports", {}).items()
            },
            stack=data.get("stack"),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Plan":
        """Deserialize from JSON string"""
        return cls.from_dict(json.loads(json_str))
