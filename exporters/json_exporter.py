"""JSON exporter for module graphs (machine-friendly format)."""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from graph.model import ModuleGraph


def to_json(
    graphs: Iterable[ModuleGraph],
    base: Optional[Path] = None,
    indent: int = 2,
) -> str:
    """
    Convert module graphs to JSON format.

    Args:
        graphs: The graphs to export, one per crate.
        base: Optional base path for relative source file display.
        indent: JSON indentation level.

    Returns:
        JSON string with a ``units`` list. Each unit holds its modules
        (path, kind, source file), its edges (source, target, kind) and
        its diagnostics.
    """
    units: List[Dict[str, Any]] = []
    for graph in graphs:
        modules = [
            {
                "path": str(module.path),
                "kind": module.kind.value,
                "file": _get_path_str(module.source_file, base),
            }
            for module in graph.iter_modules()
        ]
        edges = [
            {
                "source": str(edge.source),
                "target": str(edge.target),
                "kind": edge.kind.value,
            }
            for edge in graph.iter_edges()
        ]
        units.append({
            "unit": graph.unit_name,
            "modules": modules,
            "edges": edges,
            "diagnostics": [str(diagnostic) for diagnostic in graph.diagnostics],
        })

    return json.dumps({"units": units}, indent=indent)


def _get_path_str(path: Optional[Path], base: Optional[Path]) -> Optional[str]:
    """Get the string representation of a path."""
    if path is None:
        return None
    if base is not None:
        try:
            return str(path.resolve().relative_to(base.resolve())).replace("\\", "/")
        except ValueError:
            pass
    return str(path).replace("\\", "/")
