"""
Schemas

Typed data exchanged between the synthesizer, NATS, and the export store.
"""
