"""
Resource Graph Engine

Declares infrastructure resources as a dependency graph and synthesizes
them into an ordered, resolved deployment plan.
"""
