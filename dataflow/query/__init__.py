"""
Query Layer

Read-side services over the export store.
"""
