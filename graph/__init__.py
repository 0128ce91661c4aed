"""Module graph data model."""

from .model import Edge, EdgeKind, Module, ModuleGraph, ModuleKind, ModulePath

__all__ = [
    "Edge",
    "EdgeKind",
    "Module",
    "ModuleGraph",
    "ModuleKind",
    "ModulePath",
]
