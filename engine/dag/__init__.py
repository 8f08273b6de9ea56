"""
DAG Module

Resource graph declaration, reference resolution, and cycle detection.
"""

from .values import (
    Deferred,
    Join,
    LiteralValue,
    Lookup,
    Reference,
    ResolvedValue,
    Value,
    ValueKind,
)
from .node import ResourceNode
from .graph import Edge, ResourceGraph
from .registry import LookupRegistry, StaticInventory
from .resolver import ReferenceResolver, resolve

__all__ = [
    "Deferred",
    "Join",
    "LiteralValue",
    "Lookup",
    "Reference",
    "ResolvedValue",
    "Value",
    "ValueKind",
    "ResourceNode",
    "Edge",
    "ResourceGraph",
    "LookupRegistry",
    "StaticInventory",
    "ReferenceResolver",
    "resolve",
]
