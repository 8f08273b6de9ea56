"""
Plan Exporter

Publishes named values from a synthesized plan for consumption outside
the graph (other stacks, other deployments). Exported values that depend
on deferred outputs stay deferred in the export table; consumers poll or
subscribe until the provisioning engine reports them.
"""

from typing import Any, Dict, Mapping, Optional
import logging

from schemas.plan import ExportEntry, Plan

from ..dag.values import (
    Deferred,
    Join,
    LiteralValue,
    Lookup,
    Reference,
    ResolvedValue,
    as_value,
    join_resolved,
)
from ..errors import DuplicateExportError, UnknownFieldError, UnknownNodeError

logger = logging.getLogger(__name__)


class Exporter:
    """
    Registers named exports on a plan.

    References are resolved against the plan's already-resolved resource
    outputs, so an exporter can be used after synthesis without the graph.

    Example usage:
        plan = synthesize(graph)
        exporter = Exporter(plan)
        exporter.export("cluster-name", Reference("ecs-cluster", "cluster_name"))
        exporter.export("db-password", Reference("Instance", "password"))

        plan.exports["db-password"].deferred  # True
    """

    def __init__(self, plan: Plan):
        self.plan = plan

    def export(self, name: str, value: Any, description: Optional[str] = None) -> ExportEntry:
        """
        Register a named export.

        Args:
            name: Export name, unique across the plan
            value: Value to export (plain objects are exported as literals)
            description: Optional human-readable description

        Returns:
            The registered ExportEntry

        Raises:
            ValueError: If name is empty or value is a Lookup
            DuplicateExportError: If name is already exported
            UnknownNodeError / UnknownFieldError: If a reference does not
                match a planned resource output
        """
        if not name:
            raise ValueError("Export name must be a non-empty string")
        if name in self.plan.exports:
            raise DuplicateExportError(name)

        resolved = self._resolve(as_value(value), name)
        entry = ExportEntry(name=name, value=resolved, description=description)
        self.plan.exports[name] = entry

        logger.debug(f"Exported '{name}' (deferred={entry.deferred})")
        return entry

    def export_all(
        self,
        exports: Mapping[str, Any],
        descriptions: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Register several exports in mapping order"""
        descriptions = descriptions or {}
        for name, value in exports.items():
            self.export(name, value, descriptions.get(name))

    def table(self) -> Dict[str, Dict[str, Any]]:
        """Export table as plain dictionaries"""
        return {name: entry.to_dict() for name, entry in self.plan.exports.items()}

    def _resolve(self, value, export_name: str) -> ResolvedValue:
        if isinstance(value, (LiteralValue, Deferred)):
            return value
        if isinstance(value, Reference):
            resource = self.plan.get(value.node)
            if resource is None:
                raise UnknownNodeError(value.node, referenced_by=f"export:{export_name}")
            if value.field not in resource.outputs:
                raise UnknownFieldError(
                    value.node, value.field,
                    referenced_by=f"export:{export_name}",
                    available=list(resource.outputs),
                )
            return resource.outputs[value.field]
        if isinstance(value, Join):
            return join_resolved(
                [self._resolve(part, export_name) for part in value.parts],
                value.separator,
            )
        if isinstance(value, Lookup):
            raise ValueError(
                f"Export '{export_name}' cannot be a lookup; "
                f"export the output of the node that consumes it"
            )
        raise TypeError(f"Not a resource value: {value!r}")
