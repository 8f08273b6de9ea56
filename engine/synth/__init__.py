"""
Synth Module

Plan synthesis from a declared resource graph, and plan exports.
"""

from .exporter import Exporter
from .synthesizer import Synthesizer, synthesize

__all__ = [
    "Exporter",
    "Synthesizer",
    "synthesize",
]
