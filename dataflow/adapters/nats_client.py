"""
NATS Client Adapter

Provides async NATS client for publishing synthesized plans and their
exports, and for subscribing to them from the export store.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Awaitable, Any
import nats
from nats.aio.client import Client as NatsConnection
from nats.aio.msg import Msg

from schemas.plan import Plan

logger = logging.getLogger(__name__)


@dataclass
class NatsConfig:
    """NATS connection settings for the runner and the export store"""
    servers: list[str] = field(default_factory=lambda: ["nats://localhost:4222"])
    name: str = "resource-synth"
    reconnect_time_wait: float = 2.0
    max_reconnect_attempts: int = -1

    @classmethod
    def from_env(cls, prefix: str = "NATS") -> "NatsConfig":
        """
        Create config from environment variables.

        Environment Variables:
            NATS_SERVERS: Comma-separated server URLs
            NATS_CLIENT_NAME: Connection name (default: "resource-synth")
        """
        servers = os.getenv(f"{prefix}_SERVERS", "nats://localhost:4222")
        return cls(
            servers=[s.strip() for s in servers.split(",") if s.strip()],
            name=os.getenv(f"{prefix}_CLIENT_NAME", "resource-synth"),
        )


class NatsClient:
    """
    Publishes plans and exports, and subscribes to them for the export store.

    Topic Patterns:
    - plans.{stack}                - Full synthesized plan
    - exports.{stack}.{name}       - One exported value
    """

    def __init__(self, config: Optional[NatsConfig] = None):
        self.config = config or NatsConfig()
        self._nc: Optional[NatsConnection] = None
        self._subscriptions: dict[str, Any] = {}
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._nc is not None and self._nc.is_connected

    def _require_connection(self) -> NatsConnection:
        if not self.is_connected:
            raise RuntimeError("NATS client not connected")
        return self._nc

    async def _on_error(self, e: Exception) -> None:
        logger.error(f"NATS error: {e}")

    async def _on_disconnected(self) -> None:
        logger.warning("NATS disconnected; plan publishing paused")
        self._connected = False

    async def _on_reconnected(self) -> None:
        logger.info("NATS reconnected")
        self._connected = True

    async def connect(self) -> None:
        """Connect to the configured servers (no-op when already connected)"""
        if self._connected:
            return

        try:
            self._nc = await nats.connect(
                servers=self.config.servers,
                name=self.config.name,
                reconnect_time_wait=self.config.reconnect_time_wait,
                max_reconnect_attempts=self.config.max_reconnect_attempts,
                error_cb=self._on_error,
                disconnected_cb=self._on_disconnected,
                reconnected_cb=self._on_reconnected,
                closed_cb=self._on_disconnected,
            )
        except Exception as e:
            logger.error(f"Failed to connect to NATS {self.config.servers}: {e}")
            raise

        self._connected = True
        logger.info(f"Connected to NATS as {self.config.name}: {self.config.servers}")

    async def close(self) -> None:
        """Drain pending messages, then close"""
        if self._nc is None:
            return
        await self._nc.drain()
        await self._nc.close()
        self._connected = False
        self._subscriptions.clear()
        logger.info("NATS connection closed")

    async def publish(self, subject: str, data: bytes) -> None:
        """
        Publish raw bytes.

        Raises:
            RuntimeError: If the client is not connected
        """
        await self._require_connection().publish(subject, data)
        logger.debug(f"Published to {subject}: {len(data)} bytes")

    async def publish_json(self, subject: str, data: str) -> None:
        """Publish a JSON string to a NATS subject"""
        await self.publish(subject, data.encode("utf-8"))

    async def publish_plan(self, plan: Plan) -> int:
        """
        Publish a plan and each of its exports.

        Args:
            plan: Synthesized plan with a stack name

        Returns:
            Number of messages published
        """
        if not plan.stack:
            raise ValueError("Cannot publish a plan without a stack name")

        await self.publish_json(Topics.plan(plan.stack), plan.to_json())
        for name, entry in plan.exports.items():
            await self.publish_json(Topics.export(plan.stack, name), entry.to_json())

        logger.info(
            f"Published plan for {plan.stack} with {len(plan.exports)} exports"
        )
        return 1 + len(plan.exports)

    async def subscribe(
        self,
        subject: str,
        callback: Callable[[Msg], Awaitable[None]],
        queue: Optional[str] = None,
    ) -> None:
        """
        Subscribe to a subject pattern (wildcards * and >).

        Members of the same queue group share the messages, so several
        export store replicas write each export once.
        """
        nc = self._require_connection()
        self._subscriptions[subject] = await nc.subscribe(subject, queue=queue or "", cb=callback)
        logger.info(f"Subscribed to {subject}" + (f" (queue: {queue})" if queue else ""))

    async def unsubscribe(self, subject: str) -> None:
        """Stop delivery for a subject; unknown subjects are ignored"""
        sub = self._subscriptions.pop(subject, None)
        if sub is not None:
            await sub.unsubscribe()
            logger.info(f"Unsubscribed from {subject}")


class Topics:
    """NATS topic name builders"""

    @staticmethod
    def _sanitize(name: str) -> str:
        """
        Sanitize a name for use as a single NATS topic segment.

        Only alphanumerics, hyphens and underscores survive; dots would
        split the segment, so they are replaced as well.
        """
        return "".join(c if c.isalnum() or c in "-_" else "_" for c in name)

    @staticmethod
    def plan(stack: str) -> str:
        """Plan topic for a stack"""
        return f"plans.{Topics._sanitize(stack)}"

    @staticmethod
    def export(stack: str, name: str) -> str:
        """Topic for one export of a stack"""
        return f"exports.{Topics._sanitize(stack)}.{Topics._sanitize(name)}"

    @staticmethod
    def exports_all(stack: str) -> str:
        """All exports of a stack (wildcard)"""
        return f"exports.{Topics._sanitize(stack)}.*"

    @staticmethod
    def all_plans() -> str:
        """Subscribe to every stack's plan"""
        return "plans.*"

    @staticmethod
    def all_exports() -> str:
        """Subscribe to every export"""
        return "exports.>"
