"""
Stack Coordinator

Coordinates synthesis for a single stack.
Loads the topology, builds the resource graph, synthesizes the plan,
and optionally publishes it over NATS.
"""

import logging
from typing import Any, Dict, Optional
from pathlib import Path

from schemas.plan import Plan

from ..config.loader import ConfigLoader
from ..dag.graph import ResourceGraph
from ..dag.registry import LookupRegistry, StaticInventory
from ..errors import SynthesisError
from ..synth.synthesizer import Synthesizer
from dataflow.adapters.nats_client import NatsClient

logger = logging.getLogger(__name__)


class StackCoordinator:
    """
    Coordinates synthesis for a single stack.

    The coordinator:
    1. Loads stack configuration from YAML
    2. Registers lookup providers (inventory.yaml when present)
    3. Declares resource nodes on a fresh graph
    4. Synthesizes the plan with the configured exports
    5. Publishes plan and exports to NATS

    Example usage:
        coordinator = StackCoordinator(stack="sonarqube", config_dir=Path("config"))
        plan = coordinator.synthesize()

        nats_client = NatsClient(nats_config)
        await nats_client.connect()
        await coordinator.publish(plan, nats_client)
    """

    def __init__(
        self,
        stack: str,
        config_dir: Path,
        lookups: Optional[LookupRegistry] = None,
    ):
        """
        Initialize coordinator for a stack.

        Args:
            stack: Stack name (directory under config_dir/stacks)
            config_dir: Root config directory
            lookups: Lookup providers; defaults to the static inventory
                     in config_dir/inventory.yaml when it exists
        """
        self.stack = stack
        self.config_dir = config_dir

        logger.info(f"Loading stack config for {stack}...")
        loader = ConfigLoader(config_dir)
        self.config = loader.load_stack(stack)

        if lookups is None:
            lookups = LookupRegistry()
            if loader.inventory_path.exists():
                StaticInventory.from_yaml(loader.inventory_path).register_into(lookups)
        self.lookups = lookups

        logger.info(f"Declaring resource graph for {stack}...")
        self.graph = ResourceGraph()
        self.exports, self.export_descriptions = loader.declare(self.graph, self.config)

        self.plan: Optional[Plan] = None

        logger.info(
            f"Coordinator initialized for {stack}: "
            f"{len(self.graph)} nodes, {len(self.exports)} exports"
        )

    def synthesize(self) -> Plan:
        """
        Synthesize the stack's plan.

        Returns:
            Synthesized plan (also kept on self.plan)

        Raises:
            SynthesisError: Any declaration or resolution failure
        """
        synthesizer = Synthesizer(self.graph, self.lookups, stack=self.stack)
        try:
            plan = synthesizer.synthesize(self.exports, self.export_descriptions)
        except SynthesisError as e:
            logger.error(f"Synthesis failed for {self.stack}: {e}", exc_info=True)
            raise

        self.plan = plan
        return plan

    async def publish(self, plan: Plan, nats_client: NatsClient) -> int:
        """
        Publish a plan and its exports.

        Returns:
            Number of messages published
        """
        return await nats_client.publish_plan(plan)

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get coordinator metrics.

        Returns:
            Dictionary with coordinator statistics
        """
        metrics: Dict[str, Any] = {
            "stack": self.stack,
            "nodes": len(self.graph),
            "edges": len(self.graph.edges()),
            "exports": len(self.exports),
            "lookup_providers": self.lookups.list_providers(),
        }
        if self.plan is not None:
            metrics["plan_order"] = self.plan.order
            metrics["deferred_exports"] = [
                name for name, entry in self.plan.exports.items() if entry.deferred
            ]
        return metrics
