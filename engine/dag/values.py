"""
Resource Values

Tagged value variants used for node inputs and outputs.

A value is exactly one of:
- LiteralValue: known at declaration/synthesis time
- Reference:    another node's output field, wired at synthesis time
- Deferred:     only known after the provisioning engine deploys a resource
- Lookup:       answered by an external inventory at synthesis time
- Join:         string built from other values (e.g. a JDBC URL from an endpoint)

Resolution always yields either a LiteralValue or a Deferred.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Sequence, Tuple, Union


class ValueKind(Enum):
    """Tag of a value variant"""
    LITERAL = "literal"
    REFERENCE = "reference"
    DEFERRED = "deferred"
    LOOKUP = "lookup"
    JOIN = "join"


@dataclass(frozen=True)
class LiteralValue:
    """
    Value known without provisioning anything.

    Examples:
        LiteralValue("sonarqube")
        LiteralValue(9000)
    """
    kind: ClassVar[ValueKind] = ValueKind.LITERAL

    value: Any

    def __post_init__(self):
        if contains_value(self.value):
            raise TypeError(
                f"Literal cannot hold resource values: {self.value!r}; "
                f"use a Join to combine references"
            )


@dataclass(frozen=True)
class Reference:
    """
    Reference to an output field of another node.

    Examples:
        Reference(node="Instance", field="endpoint")
    """
    kind: ClassVar[ValueKind] = ValueKind.REFERENCE

    node: str
    field: str

    def __str__(self) -> str:
        return f"{self.node}.{self.field}"


@dataclass(frozen=True)
class Deferred:
    """
    Placeholder for a value only known after deployment.

    placeholder identifies the pending value ("Instance.password").
    sources lists the placeholders this value is derived from; it is
    empty for a plain deferred output and populated for a Join that
    embeds deferred parts.
    """
    kind: ClassVar[ValueKind] = ValueKind.DEFERRED

    placeholder: str = ""
    sources: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "sources", tuple(self.sources))

    @property
    def token(self) -> str:
        """Token embedded into strings built from this value"""
        return "${" + self.placeholder + "}"


@dataclass(frozen=True)
class Lookup:
    """
    Value answered by an external inventory provider.

    Examples:
        Lookup(provider="network", query={"vpc_id": "vpc-0abc"}, field="vpc_id")
        Lookup(provider="dns_zone", query={"domain_name": "example.com"}, field="zone_id")
    """
    kind: ClassVar[ValueKind] = ValueKind.LOOKUP

    provider: str
    query: Tuple[Tuple[str, Any], ...] = ()
    field: str = "id"

    def __post_init__(self):
        query = self.query
        if isinstance(query, Mapping):
            query = query.items()
        query = tuple(query)
        if contains_value(query):
            raise TypeError(f"Lookup query must be literal: {query!r}")
        object.__setattr__(self, "query", tuple(sorted(query)))

    @property
    def query_dict(self) -> Dict[str, Any]:
        return dict(self.query)


@dataclass(frozen=True)
class Join:
    """
    String concatenation of values.

    Examples:
        Join(["jdbc:postgresql://", Reference("Instance", "endpoint"), "/sonarqube"])
        Join([Reference("Alb", "security_group_id")], separator=",")
    """
    kind: ClassVar[ValueKind] = ValueKind.JOIN

    parts: Tuple["Value", ...] = field(default_factory=tuple)
    separator: str = ""

    def __post_init__(self):
        object.__setattr__(self, "parts", tuple(as_value(p) for p in self.parts))


Value = Union[LiteralValue, Reference, Deferred, Lookup, Join]
ResolvedValue = Union[LiteralValue, Deferred]

VALUE_TYPES = (LiteralValue, Reference, Deferred, Lookup, Join)


def contains_value(obj: Any) -> bool:
    """True if obj is, or nests inside lists, tuples, sets or dicts, a resource value"""
    if isinstance(obj, VALUE_TYPES):
        return True
    if isinstance(obj, Mapping):
        return any(contains_value(k) or contains_value(v) for k, v in obj.items())
    if isinstance(obj, (list, tuple, set, frozenset)):
        return any(contains_value(item) for item in obj)
    return False


def as_value(obj: Any) -> Value:
    """Wrap a plain Python object as a LiteralValue; pass values through"""
    if isinstance(obj, VALUE_TYPES):
        return obj
    return LiteralValue(obj)


def join_resolved(parts: Sequence[ResolvedValue], separator: str = "") -> ResolvedValue:
    """
    Concatenate already-resolved parts.

    Returns a LiteralValue string when every part is literal, otherwise a
    Deferred whose placeholder embeds the deferred tokens and whose sources
    list the pending placeholders in order.
    """
    pieces = []
    sources: List[str] = []
    for part in parts:
        if isinstance(part, Deferred):
            # Composite placeholders already embed their tokens
            pieces.append(part.placeholder if part.sources else part.token)
            for source in part.sources or (part.placeholder,):
                if source not in sources:
                    sources.append(source)
        else:
            pieces.append(str(part.value))

    text = separator.join(pieces)
    if sources:
        return Deferred(placeholder=text, sources=tuple(sources))
    return LiteralValue(text)


def iter_references(value: Value) -> Iterator[Reference]:
    """Yield every Reference contained in a value, in part order"""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, Join):
        for part in value.parts:
            yield from iter_references(part)


def value_to_dict(value: Value) -> Dict[str, Any]:
    """Convert a value to a JSON-serializable dictionary"""
    if isinstance(value, LiteralValue):
        return {"type": value.kind.value, "value": value.value}
    if isinstance(value, Reference):
        return {"type": value.kind.value, "node": value.node, "field": value.field}
    if isinstance(value, Deferred):
        return {
            "type": value.kind.value,
            "placeholder": value.placeholder,
            "sources": list(value.sources),
        }
    if isinstance(value, Lookup):
        return {
            "type": value.kind.value,
            "provider": value.provider,
            "query": value.query_dict,
            "field": value.field,
        }
    if isinstance(value, Join):
        return {
            "type": value.kind.value,
            "parts": [value_to_dict(p) for p in value.parts],
            "separator": value.separator,
        }
    raise TypeError(f"Not a resource value: {value!r}")


def value_from_dict(data: Dict[str, Any]) -> Value:
    """Create a value from its dictionary form"""
    kind = ValueKind(data["type"])

    if kind == ValueKind.LITERAL:
        return LiteralValue(data["value"])
    if kind == ValueKind.REFERENCE:
        return Reference(node=data["node"], field=data["field"])
    if kind == ValueKind.DEFERRED:
        return Deferred(
            placeholder=data["placeholder"],
            sources=tuple(data.get("sources", ())),
        )
    if kind == ValueKind.LOOKUP:
        return Lookup(
            provider=data["provider"],
            query=data.get("query", {}),
            field=data.get("field", "id"),
        )
    return Join(
        parts=tuple(value_from_dict(p) for p in data["parts"]),
        separator=data.get("separator", ""),
    )
