"""Mermaid flowchart exporter for module graphs."""

from typing import Iterable, List

from graph.model import PATH_SEPARATOR, EdgeKind, ModuleGraph, ModulePath


SOLID_ARROW = "-->"
DASHED_ARROW = "-.->"


def to_mermaid(
    graph: ModuleGraph,
    orientation: str = "TD",
    dashed_imports: bool = False,
) -> str:
    """
    Convert a module graph to Mermaid flowchart syntax.

    Args:
        graph: The module graph to export.
        orientation: Flowchart orientation (TD, TB, LR, RL, BT).
        dashed_imports: If True, draw edges created by use statements as
            dashed arrows; otherwise every edge is a solid arrow.

    Returns:
        Mermaid flowchart string, one statement per line, ending with a
        newline.
    """
    lines = [f"flowchart {orientation}"]

    # Add node definitions with labels
    for module in graph.iter_modules():
        lines.append(f'    {sanitize_id(module.path)}["{module.path}"]')

    # Add edges
    lines.append("")
    for edge in graph.iter_edges():
        arrow = SOLID_ARROW
        if dashed_imports and edge.kind is EdgeKind.IMPORT:
            arrow = DASHED_ARROW
        lines.append(f"    {sanitize_id(edge.source)} {arrow} {sanitize_id(edge.target)}")

    return "\n".join(lines) + "\n"


def to_markdown(
    graphs: Iterable[ModuleGraph],
    orientation: str = "TD",
    dashed_imports: bool = False,
) -> str:
    """
    Render one Markdown section with a fenced Mermaid block per crate.

    Args:
        graphs: Graphs to render, in output order.
        orientation: Flowchart orientation.
        dashed_imports: See ``to_mermaid``.

    Returns:
        The concatenated sections, separated by blank lines.
    """
    sections: List[str] = []
    for graph in graphs:
        diagram = to_mermaid(graph, orientation=orientation, dashed_imports=dashed_imports)
        sections.append(f"## {graph.unit_name}\n\n```mermaid\n{diagram}```\n")
    return "\n".join(sections)


def sanitize_id(path: ModulePath) -> str:
    """
    Convert a module path to a Mermaid node ID.

    Mermaid IDs cannot contain ``::``, so each separator becomes ``_``.
    """
    return str(path).replace(PATH_SEPARATOR, "_")
