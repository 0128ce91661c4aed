"""Exporters for converting module graphs to various output formats."""

from .mermaid_exporter import to_mermaid, to_markdown
from .ascii_exporter import to_ascii
from .json_exporter import to_json

__all__ = ["to_mermaid", "to_markdown", "to_ascii", "to_json"]
