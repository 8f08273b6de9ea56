"""
NATS Adapters

Provides NATS client wrappers for publishing and subscribing to plans and exports.
"""

from dataflow.adapters.nats_client import NatsClient, NatsConfig, Topics

__all__ = ["NatsClient", "NatsConfig", "Topics"]
