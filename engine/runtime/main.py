"""
Resource Synthesizer - Main Entry Point

Synthesizes the plan for one stack and writes it as JSON.
Optionally publishes the plan and its exports to NATS.
"""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dataflow.adapters.nats_client import NatsClient, NatsConfig
from engine.errors import SynthesisError
from engine.runtime.coordinator import StackCoordinator

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """Runner configuration"""
    stack: str = "sonarqube"
    config_dir: Path = Path("config")
    output: Optional[Path] = None
    publish: bool = False

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Create config from environment variables.

        Environment Variables:
            STACK: Stack name (default: "sonarqube")
            CONFIG_DIR: Config directory path (default: "config")
            OUTPUT: File to write the plan JSON to (default: stdout)
            PUBLISH: "1"/"true" to publish plan and exports to NATS
        """
        output = os.getenv("OUTPUT")
        return cls(
            stack=os.getenv("STACK", "sonarqube"),
            config_dir=Path(os.getenv("CONFIG_DIR", "config")),
            output=Path(output) if output else None,
            publish=os.getenv("PUBLISH", "").lower() in ("1", "true", "yes"),
        )


async def main(config: Optional[RuntimeConfig] = None) -> int:
    """
    Main entry point for the synthesizer.

    Returns:
        Process exit code (0 on success, 1 on synthesis failure)
    """
    config = config or RuntimeConfig.from_env()

    logger.info("=" * 60)
    logger.info("Resource Synthesizer Starting")
    logger.info("=" * 60)
    logger.info(f"Stack: {config.stack}")
    logger.info(f"Config Directory: {config.config_dir}")

    try:
        coordinator = StackCoordinator(stack=config.stack, config_dir=config.config_dir)
        plan = coordinator.synthesize()
    except SynthesisError as e:
        logger.error(f"Synthesis failed: {e}")
        return 1

    payload = plan.to_json(indent=2)
    if config.output:
        config.output.write_text(payload + "\n")
        logger.info(f"Plan written to {config.output}")
    else:
        sys.stdout.write(payload + "\n")

    if config.publish:
        logger.info("Connecting to NATS...")
        nats_client = NatsClient(NatsConfig.from_env())
        await nats_client.connect()
        try:
            await coordinator.publish(plan, nats_client)
        finally:
            await nats_client.close()

    metrics = coordinator.get_metrics()
    logger.info(
        f"Metrics [{config.stack}]: "
        f"{metrics['nodes']} nodes, {metrics['edges']} edges, "
        f"deferred exports: {metrics['deferred_exports']}"
    )
    return 0


def run() -> None:
    """Console script entry point"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
