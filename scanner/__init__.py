"""Scanner module for crate discovery, parsing and module graph construction."""

from .discovery import CrateUnit, discover_units
from .parser import parse_file, extract_mod_declarations, extract_use_trees
from .resolver import resolve_module, find_crate_root
from .imports import flatten, classify_and_target
from .builder import build_graph, analyze_path

__all__ = [
    "CrateUnit",
    "discover_units",
    "parse_file",
    "extract_mod_declarations",
    "extract_use_trees",
    "resolve_module",
    "find_crate_root",
    "flatten",
    "classify_and_target",
    "build_graph",
    "analyze_path",
]
