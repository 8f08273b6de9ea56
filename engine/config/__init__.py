"""
Config Module

YAML stack topology loading and validation.
"""

from .loader import ConfigLoader, StackConfig, ResourceConfig, ExportConfig, parse_value

__all__ = [
    "ConfigLoader",
    "StackConfig",
    "ResourceConfig",
    "ExportConfig",
    "parse_value",
]
