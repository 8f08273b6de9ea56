"""
Dataflow Layer

Plan distribution layer for the synthesizer. Contains:
- adapters: NATS client adapters
- persistence: PostgreSQL export store sink
- query: Export query API
"""
