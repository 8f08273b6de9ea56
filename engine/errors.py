"""
Synthesis Errors

Error hierarchy raised while declaring, resolving and synthesizing a
resource graph. Every error aborts the whole synthesis and carries the
offending node/field/export names so the declaration can be fixed.
"""

from typing import Any, Dict, List, Optional


class SynthesisError(Exception):
    """Base class for all graph declaration and synthesis failures"""


class DuplicateNameError(SynthesisError):
    """Two nodes share a name within one graph"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate node name: '{name}' is already declared in this graph")


class UnknownNodeError(SynthesisError):
    """A reference targets a node that is not in the graph"""

    def __init__(self, node: str, referenced_by: Optional[str] = None, field: Optional[str] = None):
        self.node = node
        self.referenced_by = referenced_by
        self.field = field

        message = f"Unknown node: '{node}'"
        if referenced_by:
            message += f" (referenced by '{referenced_by}'"
            message += f" input '{field}')" if field else ")"
        super().__init__(message)


class UnknownFieldError(SynthesisError):
    """A reference targets an output field the node does not declare"""

    def __init__(
        self,
        node: str,
        field: str,
        referenced_by: Optional[str] = None,
        available: Optional[List[str]] = None,
    ):
        self.node = node
        self.field = field
        self.referenced_by = referenced_by
        self.available = available or []

        message = f"Node '{node}' has no output field '{field}'"
        if referenced_by:
            message += f" (referenced by '{referenced_by}')"
        if self.available:
            message += f". Available outputs: {', '.join(self.available)}"
        super().__init__(message)


class CycleError(SynthesisError):
    """The dependency relation contains a cycle"""

    def __init__(self, path: List[str]):
        self.path = list(path)
        super().__init__(f"Cycle detected in resource graph: {' -> '.join(self.path)}")


class DuplicateExportError(SynthesisError):
    """Two exports share a name within one plan"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate export name: '{name}'")


class ResourceLookupError(SynthesisError, LookupError):
    """An external inventory lookup failed or returned no usable value"""

    def __init__(self, provider: str, query: Dict[str, Any], reason: str):
        self.provider = provider
        self.query = dict(query)
        self.reason = reason
        super().__init__(f"Lookup '{provider}' {self.query} failed: {reason}")


class GraphFrozenError(SynthesisError):
    """A node was declared after synthesis froze the graph"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Cannot declare node '{name}': graph is frozen by synthesis. "
            f"Call reset() or create a new graph for an unrelated run"
        )


class ConfigError(SynthesisError, ValueError):
    """A topology file is missing or malformed"""
