"""
Config Loader

Loads and merges stack topologies from YAML files.
Converts YAML resource declarations into ResourceNode objects on a graph.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError
import logging

from ..dag.graph import ResourceGraph
from ..dag.node import ResourceNode
from ..dag.values import Deferred, Join, LiteralValue, Lookup, Reference, Value
from ..errors import ConfigError, DuplicateExportError, DuplicateNameError

logger = logging.getLogger(__name__)

VALUE_MARKERS = ("ref", "deferred", "lookup", "join", "literal")


class ResourceConfig(BaseModel):
    """Configuration for a resource node"""
    name: str
    kind: str
    inputs: Dict[str, Any] = Field(default_factory=dict)
    outputs: Dict[str, Any] = Field(default_factory=dict)
    depends_on: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class ExportConfig(BaseModel):
    """Configuration for a named plan export"""
    name: str
    value: Any
    description: Optional[str] = None


class StackConfig(BaseModel):
    """Complete topology for a stack"""
    stack: str
    description: Optional[str] = None
    resources: List[ResourceConfig] = Field(default_factory=list)
    exports: List[ExportConfig] = Field(default_factory=list)


def _reject_nested_markers(raw: Any, context: str) -> None:
    if isinstance(raw, dict):
        markers = [key for key in VALUE_MARKERS if key in raw]
        if markers:
            raise ConfigError(
                f"{context}: '{markers[0]}' is not allowed inside a literal "
                f"list or mapping; use a join or wrap the whole value in 'literal'"
            )
        items = [(f"{context}.{key}", value) for key, value in raw.items()]
    elif isinstance(raw, list):
        items = [(f"{context}[{i}]", value) for i, value in enumerate(raw)]
    else:
        return
    for path, value in items:
        _reject_nested_markers(value, path)


def parse_value(raw: Any, context: str = "") -> Value:
    """
    Convert a YAML value into a resource Value.

    Syntax:
        scalar / list                          -> literal
        {ref: "Node.field"}                    -> Reference
        {ref: {node: Node, field: field}}      -> Reference
        {deferred: true} / {deferred: "id"}    -> Deferred
        {lookup: {provider, query, field}}     -> Lookup
        {join: [parts...], separator: ","}     -> Join
        {literal: {...}}                       -> literal mapping

    Mappings without a marker key are kept as literals. Markers nested
    inside a literal list or mapping are rejected; combine references
    with a join instead.

    Args:
        raw: Parsed YAML value
        context: Location used in error messages (e.g. "Instance.inputs.vpc")

    Raises:
        ConfigError: If a marker mapping is malformed or nested in a literal
    """
    if not isinstance(raw, dict):
        _reject_nested_markers(raw, context)
        return LiteralValue(raw)

    markers = [key for key in VALUE_MARKERS if key in raw]
    if not markers:
        _reject_nested_markers(raw, context)
        return LiteralValue(raw)
    if len(markers) > 1:
        raise ConfigError(f"{context}: ambiguous value, found markers {markers}")

    marker = markers[0]
    body = raw[marker]

    if marker == "ref":
        if isinstance(body, str):
            node, sep, field = body.rpartition(".")
            if not sep or not node or not field:
                raise ConfigError(f"{context}: reference must look like 'Node.field', got '{body}'")
            return Reference(node=node, field=field)
        if isinstance(body, dict) and "node" in body and "field" in body:
            return Reference(node=body["node"], field=body["field"])
        raise ConfigError(f"{context}: invalid reference {body!r}")

    if marker == "deferred":
        if body is True:
            return Deferred()
        if isinstance(body, str) and body:
            return Deferred(placeholder=body)
        raise ConfigError(f"{context}: deferred must be true or a placeholder name")

    if marker == "lookup":
        if not isinstance(body, dict) or "provider" not in body:
            raise ConfigError(f"{context}: lookup requires a provider")
        _reject_nested_markers(body.get("query") or {}, f"{context}.lookup.query")
        return Lookup(
            provider=body["provider"],
            query=body.get("query") or {},
            field=body.get("field", "id"),
        )

    if marker == "join":
        if not isinstance(body, list):
            raise ConfigError(f"{context}: join expects a list of parts")
        return Join(
            parts=tuple(parse_value(part, f"{context}.join[{i}]") for i, part in enumerate(body)),
            separator=str(raw.get("separator", "")),
        )

    return LiteralValue(body)


class ConfigLoader:
    """
    Loads and merges stack topologies from YAML.

    The loader:
    1. Finds all YAML files in a stack's directory
    2. Loads and validates each file
    3. Merges resources and exports (validating uniqueness)
    4. Declares ResourceNode objects on a graph

    Example usage:
        loader = ConfigLoader(Path("config"))
        stack_config = loader.load_stack("sonarqube")

        graph = ResourceGraph()
        exports, descriptions = loader.declare(graph, stack_config)
    """

    def __init__(self, config_dir: Path):
        """
        Initialize loader with config directory.

        Args:
            config_dir: Root config directory (contains stacks/ subdirectory)
        """
        self.config_dir = config_dir
        logger.info(f"Initialized ConfigLoader with config_dir: {config_dir}")

    @property
    def inventory_path(self) -> Path:
        return self.config_dir / "inventory.yaml"

    def load_stack(self, stack: str) -> StackConfig:
        """
        Load all YAML files for a stack and merge into one StackConfig.

        Args:
            stack: Stack name (directory under stacks/)

        Returns:
            Merged stack configuration

        Raises:
            ConfigError: If no config found or validation fails
            DuplicateNameError: If two files declare the same resource
            DuplicateExportError: If two files declare the same export
        """
        stack_dir = self.config_dir / "stacks" / stack

        if not stack_dir.exists():
            raise ConfigError(
                f"No config directory for stack: {stack}. "
                f"Expected: {stack_dir}"
            )

        yaml_files = sorted(stack_dir.glob("*.yaml"))
        if not yaml_files:
            raise ConfigError(f"No YAML files found in {stack_dir}")

        logger.info(f"Loading {len(yaml_files)} YAML files for {stack}")

        configs = []
        for yaml_file in yaml_files:
            try:
                with open(yaml_file) as f:
                    raw = yaml.safe_load(f) or {}
                config = StackConfig(**raw)
            except (yaml.YAMLError, ValidationError, TypeError) as e:
                logger.error(f"Failed to load {yaml_file}: {e}")
                raise ConfigError(f"Failed to load {yaml_file}: {e}") from e

            if config.stack != stack:
                logger.warning(
                    f"Stack mismatch in {yaml_file.name}: "
                    f"expected {stack}, got {config.stack}"
                )

            configs.append(config)
            logger.debug(
                f"Loaded {yaml_file.name}: {len(config.resources)} resources, "
                f"{len(config.exports)} exports"
            )

        merged = self._merge_configs(stack, configs)
        logger.info(
            f"Loaded stack {stack}: {len(merged.resources)} resources, "
            f"{len(merged.exports)} exports"
        )
        return merged

    def _merge_configs(self, stack: str, configs: List[StackConfig]) -> StackConfig:
        """
        Merge multiple configs, validating uniqueness.

        Raises:
            DuplicateNameError: Duplicate resource names
            DuplicateExportError: Duplicate export names
        """
        resources: Dict[str, ResourceConfig] = {}
        exports: Dict[str, ExportConfig] = {}
        description = None

        for config in configs:
            description = description or config.description
            for res in config.resources:
                if res.name in resources:
                    raise DuplicateNameError(res.name)
                resources[res.name] = res
            for exp in config.exports:
                if exp.name in exports:
                    raise DuplicateExportError(exp.name)
                exports[exp.name] = exp

        return StackConfig(
            stack=stack,
            description=description,
            resources=list(resources.values()),
            exports=list(exports.values()),
        )

    def declare(self, graph: ResourceGraph, config: StackConfig):
        """
        Declare every configured resource on the graph.

        Args:
            graph: Graph to declare into
            config: Stack configuration

        Returns:
            Tuple of (export name -> Value, export name -> description)

        Raises:
            ConfigError: If a value is malformed
            DuplicateNameError: If a name is already declared on the graph
        """
        for res in config.resources:
            ResourceNode(
                graph,
                res.name,
                res.kind,
                inputs={
                    field: parse_value(raw, f"{res.name}.inputs.{field}")
                    for field, raw in res.inputs.items()
                },
                outputs={
                    field: parse_value(raw, f"{res.name}.outputs.{field}")
                    for field, raw in res.outputs.items()
                },
                depends_on=res.depends_on,
                metadata={"description": res.description} if res.description else None,
            )

        exports = {
            exp.name: parse_value(exp.value, f"exports.{exp.name}")
            for exp in config.exports
        }
        descriptions = {
            exp.name: exp.description for exp in config.exports if exp.description
        }

        logger.info(f"Declared {len(config.resources)} resources for stack {config.stack}")
        return exports, descriptions
