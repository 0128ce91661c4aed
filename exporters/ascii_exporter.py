"""ASCII tree-style exporter for module graphs."""

from typing import Iterable, List, Tuple

from graph.model import EdgeKind, ModuleGraph, ModulePath


# Unicode tree characters
UNICODE_BRANCH = "├── "
UNICODE_LAST = "└── "
UNICODE_VERTICAL = "│   "
UNICODE_SPACE = "    "

# ASCII fallback characters
ASCII_BRANCH = "|-- "
ASCII_LAST = "\\-- "
ASCII_VERTICAL = "|   "
ASCII_SPACE = "    "


def to_ascii(graphs: Iterable[ModuleGraph], style: str = "tree") -> str:
    """
    Convert module graphs to an ASCII tree of their module hierarchy.

    Each crate is rendered as its name followed by the tree of modules
    reachable through declarations. Modules that import from other modules
    list the targets after the module name.

    Args:
        graphs: The graphs to export, one per crate.
        style: Output style - "tree" (Unicode) or "ascii" (pure ASCII).

    Returns:
        ASCII tree string.
    """
    # Select character set based on style
    if style == "ascii":
        chars = (ASCII_BRANCH, ASCII_LAST, ASCII_VERTICAL, ASCII_SPACE)
    else:
        chars = (UNICODE_BRANCH, UNICODE_LAST, UNICODE_VERTICAL, UNICODE_SPACE)

    blocks: List[str] = []
    for graph in graphs:
        lines: List[str] = [graph.unit_name]
        _render_module(
            graph=graph,
            path=ModulePath.root(),
            prefix="",
            is_last=True,
            chars=chars,
            lines=lines,
        )
        blocks.append("\n".join(lines))

    # Blank line between crates
    return "\n\n".join(blocks)


def _render_module(
    graph: ModuleGraph,
    path: ModulePath,
    prefix: str,
    is_last: bool,
    chars: Tuple[str, str, str, str],
    lines: List[str],
) -> None:
    """
    Recursively render a module and the modules it declares.

    Args:
        graph: The module graph.
        path: Current module to render.
        prefix: Current line prefix for indentation.
        is_last: Whether this is the last child of its parent.
        chars: Character set (branch, last, vertical, space).
        lines: Output lines list (modified in place).
    """
    branch, last, vertical, space = chars

    label = path.name
    imports = sorted(
        target for target in graph.get_targets(path)
        if graph.get_edge(path, target).kind is EdgeKind.IMPORT
    )
    if imports:
        label += " -> " + ", ".join(str(target) for target in imports)

    connector = last if is_last else branch
    lines.append(f"{prefix}{connector}{label}")

    children = graph.get_children(path)
    child_prefix = prefix + (space if is_last else vertical)
    for index, child in enumerate(children):
        _render_module(
            graph=graph,
            path=child,
            prefix=child_prefix,
            is_last=index == len(children) - 1,
            chars=chars,
            lines=lines,
        )
