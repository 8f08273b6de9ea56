"""
Lookup Registry

Registry of external inventory providers used to answer Lookup values
at synthesis time ("find the network by id", "find the DNS zone by
domain"). Includes a YAML-backed static inventory provider.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping
import logging

import yaml

from ..errors import ConfigError, ResourceLookupError

logger = logging.getLogger(__name__)

LookupProvider = Callable[[Dict[str, Any]], Mapping[str, Any]]


class LookupRegistry:
    """
    Registry of lookup providers keyed by provider name.

    A provider takes the lookup query and returns the matching inventory
    record as a mapping of field -> value. Provider failures are wrapped
    in ResourceLookupError and propagated; they are never retried.

    Example usage:
        registry = LookupRegistry()

        def find_network(query):
            return {"vpc_id": query["vpc_id"], "cidr": "10.0.0.0/16"}

        registry.register("network", find_network)
        record = registry.lookup("network", {"vpc_id": "vpc-0abc"})
    """

    def __init__(self):
        """Initialize empty registry"""
        self._providers: Dict[str, LookupProvider] = {}
        logger.debug("Initialized LookupRegistry")

    def register(self, provider: str, func: LookupProvider) -> None:
        """
        Register a lookup provider.

        Args:
            provider: Provider name (e.g., "network", "dns_zone")
            func: Callable taking the query dict and returning a record
        """
        if provider in self._providers:
            logger.warning(f"Overwriting existing registration for lookup provider: {provider}")

        self._providers[provider] = func
        logger.info(f"Registered lookup provider: {provider}")

    def lookup(self, provider: str, query: Dict[str, Any]) -> Mapping[str, Any]:
        """
        Query a provider.

        Args:
            provider: Registered provider name
            query: Provider-specific query

        Returns:
            Inventory record

        Raises:
            ResourceLookupError: If the provider is unknown, fails, or
                                 returns no record
        """
        if provider not in self._providers:
            available = ", ".join(self._providers.keys())
            raise ResourceLookupError(
                provider, query,
                f"unknown provider. Available providers: {available if available else 'none'}"
            )

        try:
            record = self._providers[provider](dict(query))
        except ResourceLookupError:
            raise
        except Exception as e:
            raise ResourceLookupError(provider, query, str(e)) from e

        if record is None:
            raise ResourceLookupError(provider, query, "no matching record")

        logger.debug(f"Lookup {provider} {query} -> {list(record.keys())}")
        return record

    def list_providers(self) -> List[str]:
        return list(self._providers.keys())

    def is_registered(self, provider: str) -> bool:
        return provider in self._providers


class StaticInventory:
    """
    Lookup provider backed by an in-memory inventory.

    The inventory maps provider name -> list of records. A query matches
    the first record whose fields equal every query item.

    inventory.yaml example:
        network:
          - vpc_id: vpc-0abc
            cidr: 10.0.0.0/16
        dns_zone:
          - domain_name: example.com
            zone_id: Z123
    """

    def __init__(self, records: Mapping[str, List[Dict[str, Any]]]):
        self.records = {provider: list(items or []) for provider, items in records.items()}

    @classmethod
    def from_yaml(cls, path: Path) -> "StaticInventory":
        """
        Load an inventory file.

        Raises:
            ConfigError: If the file is missing or not a provider mapping
        """
        if not path.exists():
            raise ConfigError(f"Inventory file not found: {path}")

        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse inventory {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"Inventory {path} must map provider names to record lists")

        logger.info(f"Loaded inventory from {path}: providers={list(raw.keys())}")
        return cls(raw)

    def find(self, provider: str, query: Dict[str, Any]) -> Mapping[str, Any]:
        for record in self.records.get(provider, []):
            if all(record.get(key) == value for key, value in query.items()):
                return record
        raise ResourceLookupError(provider, query, "no matching record in inventory")

    def register_into(self, registry: LookupRegistry) -> None:
        """Register one provider per inventory section"""
        for provider in self.records:
            registry.register(provider, lambda query, p=provider: self.find(p, query))
