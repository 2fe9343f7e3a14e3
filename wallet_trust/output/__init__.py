"""Output formatting module."""

from .formatters import OutputFormatter, JSONFormatter, TableFormatter, build_provider_table

__all__ = [
    "OutputFormatter",
    "JSONFormatter",
    "TableFormatter",
    "build_provider_table",
]
