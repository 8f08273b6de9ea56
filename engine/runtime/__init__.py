"""
Runtime Module

Stack coordinator and synthesizer entry point.
"""

from .coordinator import StackCoordinator

__all__ = [
    "StackCoordinator",
]
