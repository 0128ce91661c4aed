"""Graph builder that orchestrates module discovery and graph construction."""

import fnmatch
import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from tree_sitter import Node

from graph.model import EdgeKind, Module, ModuleGraph, ModuleKind, ModulePath
from .discovery import discover_units
from .errors import (
    AnalysisError,
    CircularModule,
    ResolutionError,
    RustSyntaxError,
    SourceReadError,
)
from .imports import UseTree, resolve_imports
from .parser import extract_mod_declarations, extract_use_trees, parse_file
from .resolver import ResolvedModule, owned_directory, resolve_module


logger = logging.getLogger(__name__)


@dataclass
class _PendingModule:
    """A discovered module whose items have not been read yet."""

    path: ModulePath
    file: Path
    directory: Path
    inline: bool = False
    # item block of an inline module, taken from the parent's parse
    block: Optional[Node] = None
    # files loaded along the declaration chain from the crate root
    ancestors: FrozenSet[Path] = frozenset()


@dataclass
class Analysis:
    """Graphs for every analyzed crate plus all diagnostics of the run."""

    graphs: List[ModuleGraph] = field(default_factory=list)
    errors: List[AnalysisError] = field(default_factory=list)

    @property
    def diagnostics(self) -> List[Exception]:
        """Unit-level errors followed by each graph's diagnostics."""
        collected: List[Exception] = list(self.errors)
        for graph in self.graphs:
            collected.extend(graph.diagnostics)
        return collected

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.diagnostics)


def build_graph(unit_name: str, root_file: Path) -> ModuleGraph:
    """
    Discover all modules of a crate and build its dependency graph.

    Modules are discovered breadth-first from the crate root by following
    ``mod`` declarations. Use statements are resolved only after discovery
    has finished, so that every import can be checked against the complete
    set of modules.

    Args:
        unit_name: Name of the crate.
        root_file: The crate root (``lib.rs`` or ``main.rs``).

    Returns:
        A frozen ModuleGraph. Unparsable files and missing module files are
        recorded as diagnostics on the graph.

    Raises:
        SourceReadError: If the crate root itself cannot be read.
    """
    graph = ModuleGraph(unit_name)
    root_path = ModulePath.root()
    root_file = root_file.resolve()
    graph.add_module(Module(root_path, root_file, ModuleKind.ROOT))

    pending: Deque[_PendingModule] = deque([
        _PendingModule(
            root_path,
            root_file,
            owned_directory(root_file, is_mod_rs=True),
            ancestors=frozenset([root_file]),
        )
    ])
    use_trees: List[Tuple[ModulePath, List[UseTree]]] = []

    while pending:
        current = pending.popleft()
        block = current.block
        if block is None:
            try:
                block = parse_file(current.file).root
            except SourceReadError as exc:
                if current.path.is_root:
                    raise
                graph.add_diagnostic(exc)
                continue
            except RustSyntaxError as exc:
                logger.debug("Skipping items of %s: %s", current.path, exc)
                graph.add_diagnostic(exc)
                continue

        for declaration in extract_mod_declarations(block):
            try:
                resolved = resolve_module(
                    current.path,
                    current.file,
                    declaration.name,
                    declaration.is_inline,
                    declaration.path_override,
                    parent_dir=current.directory,
                    parent_is_inline=current.inline,
                )
                ancestors = current.ancestors
                if not resolved.is_inline:
                    loaded = resolved.file.resolve()
                    if loaded in ancestors:
                        raise CircularModule(str(resolved.path), loaded, declared_in=current.file)
                    ancestors = ancestors | {loaded}
            except ResolutionError as exc:
                logger.debug("Skipping declaration of %s: %s", declaration.name, exc)
                graph.add_diagnostic(exc)
                continue

            if _add_module(graph, resolved):
                pending.append(_PendingModule(
                    path=resolved.path,
                    file=resolved.file,
                    directory=resolved.directory,
                    inline=resolved.is_inline,
                    block=declaration.body,
                    ancestors=ancestors,
                ))
            graph.add_edge(current.path, resolved.path, EdgeKind.DECLARATION)

        use_trees.append((current.path, extract_use_trees(block)))

    known_modules = graph.module_paths()
    for module_path, trees in use_trees:
        for target in resolve_imports(trees, module_path, known_modules):
            graph.add_edge(module_path, target, EdgeKind.IMPORT)

    logger.debug("Built %r", graph)
    return graph.freeze()


def _add_module(graph: ModuleGraph, resolved: ResolvedModule) -> bool:
    source_file = None if resolved.is_inline else resolved.file.resolve()
    return graph.add_module(Module(resolved.path, source_file, resolved.kind))


def matches_any(path: ModulePath, patterns: Sequence[str]) -> bool:
    """Check if a module path matches one of the fnmatch patterns."""
    rendered = str(path)
    return any(fnmatch.fnmatchcase(rendered, pattern) for pattern in patterns)


def exclude_modules(
    graph: ModuleGraph,
    patterns: Sequence[str],
    exclude_tests: bool = False,
) -> ModuleGraph:
    """
    Drop the modules matching ``patterns`` (with their subtrees and edges).

    With ``exclude_tests`` every ``tests`` module is dropped as well.
    """
    if not patterns and not exclude_tests:
        return graph

    def is_excluded(path: ModulePath) -> bool:
        if exclude_tests and path.is_tests_module():
            return True
        return matches_any(path, patterns)

    return graph.without_modules(is_excluded)


def analyze_path(
    root: Path,
    exclude: Iterable[str] = (),
    exclude_tests: bool = False,
) -> Analysis:
    """
    Analyze every crate found at a crate or workspace directory.

    A crate that cannot be analyzed at all is reported and skipped; the
    remaining crates are still analyzed.

    Args:
        root: Crate or workspace directory.
        exclude: fnmatch patterns of module paths to leave out.
        exclude_tests: Also leave out every ``tests`` module.

    Returns:
        The graphs in enumeration order and all diagnostics.

    Raises:
        UnitEnumerationError: If no crate can be found at ``root``.
    """
    patterns = list(exclude)
    units, errors = discover_units(root)
    analysis = Analysis(errors=list(errors))

    for unit in units:
        logger.info("Analyzing crate %s (%s)", unit.name, unit.root_file)
        try:
            graph = build_graph(unit.name, unit.root_file)
        except SourceReadError as exc:
            analysis.errors.append(exc)
            continue
        analysis.graphs.append(exclude_modules(graph, patterns, exclude_tests))

    return analysis
