"""Graph data model for storing module dependency relationships."""

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple


ROOT_NAME = "crate"
PATH_SEPARATOR = "::"


@total_ordering
@dataclass(frozen=True)
class ModulePath:
    """
    Fully-qualified location of a module inside one crate.

    The empty segment tuple is the crate root and renders as ``crate``.
    Any other path renders its segments joined with ``::`` and never
    carries the root name as a prefix (``alpha::delta``, not
    ``crate::alpha::delta``). Ordering follows the rendered string.
    """

    segments: Tuple[str, ...] = ()

    @classmethod
    def root(cls) -> "ModulePath":
        """Return the crate root path."""
        return cls(())

    @classmethod
    def parse(cls, value: str) -> "ModulePath":
        """Build a path from its rendered form (``crate`` or ``a::b``)."""
        if value in ("", ROOT_NAME):
            return cls.root()
        segments = value.split(PATH_SEPARATOR)
        if segments[0] == ROOT_NAME:
            segments = segments[1:]
        return cls(tuple(segments))

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def name(self) -> str:
        """Last segment, or ``crate`` for the root."""
        return self.segments[-1] if self.segments else ROOT_NAME

    def child(self, name: str) -> "ModulePath":
        """Return the path of a module declared inside this one."""
        return ModulePath(self.segments + (name,))

    def parent(self) -> Optional["ModulePath"]:
        """Return the enclosing module path, or None for the root."""
        if self.is_root:
            return None
        return ModulePath(self.segments[:-1])

    def is_within(self, other: "ModulePath") -> bool:
        """Check if this path equals ``other`` or is nested below it."""
        return self.segments[:len(other.segments)] == other.segments

    def is_tests_module(self) -> bool:
        """Check if this is a ``tests`` module (``tests`` or ``*::tests``)."""
        return bool(self.segments) and self.segments[-1] == "tests"

    def __str__(self) -> str:
        if not self.segments:
            return ROOT_NAME
        return PATH_SEPARATOR.join(self.segments)

    def __lt__(self, other: "ModulePath") -> bool:
        if not isinstance(other, ModulePath):
            return NotImplemented
        return str(self) < str(other)


class ModuleKind(Enum):
    """How a module's contents are stored."""

    ROOT = "root"          # lib.rs / main.rs
    INLINE = "inline"      # mod foo { ... }
    EXTERNAL = "external"  # mod foo; -> foo.rs or foo/mod.rs


class EdgeKind(Enum):
    """How a dependency edge was established."""

    DECLARATION = "declaration"  # parent declares child
    IMPORT = "import"            # use statement resolves into another module


@dataclass(frozen=True)
class Module:
    """A module within a crate. Inline modules have no source file of their own."""

    path: ModulePath
    source_file: Optional[Path]
    kind: ModuleKind


@dataclass(frozen=True)
class Edge:
    """
    A directed dependency between two modules.

    Identity is the ordered ``(source, target)`` pair; ``kind`` only records
    which mechanism produced the edge first.
    """

    source: ModulePath
    target: ModulePath
    kind: EdgeKind = field(default=EdgeKind.IMPORT, compare=False, hash=False)

    @property
    def key(self) -> Tuple[ModulePath, ModulePath]:
        return (self.source, self.target)


class ModuleGraph:
    """
    A directed graph of the modules of one crate.

    Nodes are modules keyed by path, and edges represent 'declares' or
    'imports from' relationships. Non-fatal problems found while building
    the graph (unparsable files, missing module files) are tracked
    separately as diagnostics.
    """

    def __init__(self, unit_name: str):
        self.unit_name = unit_name
        self._modules: Dict[ModulePath, Module] = {}
        self._edges: Dict[Tuple[ModulePath, ModulePath], Edge] = {}
        self._diagnostics: List[Exception] = []
        self._frozen = False

    @property
    def modules(self) -> Dict[ModulePath, Module]:
        """Return all modules indexed by path."""
        return dict(self._modules)

    @property
    def edges(self) -> Set[Edge]:
        """Return all deduplicated edges."""
        return set(self._edges.values())

    @property
    def diagnostics(self) -> List[Exception]:
        """Return non-fatal errors recorded while the graph was built."""
        return list(self._diagnostics)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "ModuleGraph":
        """Mark discovery as complete; further additions raise RuntimeError."""
        self._frozen = True
        return self

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError(f"module graph for '{self.unit_name}' is frozen")

    def add_module(self, module: Module) -> bool:
        """
        Add a module to the graph.

        Returns:
            True if the module was added, False if its path already existed
            (the existing module is kept).
        """
        self._check_mutable()
        if module.path in self._modules:
            return False
        self._modules[module.path] = module
        return True

    def add_edge(self, source: ModulePath, target: ModulePath, kind: EdgeKind) -> bool:
        """
        Add a directed edge from source to target.

        Self-edges are dropped and only the first edge per ordered pair is
        kept. Both endpoints must already be modules of the graph.

        Returns:
            True if a new edge was stored.
        """
        self._check_mutable()
        for endpoint in (source, target):
            if endpoint not in self._modules:
                raise ValueError(f"unknown module '{endpoint}' in '{self.unit_name}'")
        if source == target:
            return False
        edge = Edge(source, target, kind)
        if edge.key in self._edges:
            return False
        self._edges[edge.key] = edge
        return True

    def add_diagnostic(self, error: Exception) -> None:
        """Record a non-fatal error found while building the graph."""
        self._check_mutable()
        self._diagnostics.append(error)

    def has_diagnostics(self) -> bool:
        """Check if there are any diagnostics."""
        return bool(self._diagnostics)

    def get_module(self, path: ModulePath) -> Optional[Module]:
        return self._modules.get(path)

    def get_edge(self, source: ModulePath, target: ModulePath) -> Optional[Edge]:
        return self._edges.get((source, target))

    def module_paths(self) -> Set[ModulePath]:
        """Return the set of known module paths."""
        return set(self._modules)

    def get_targets(self, source: ModulePath) -> Set[ModulePath]:
        """Get all modules that the source module depends on."""
        return {target for (src, target) in self._edges if src == source}

    def get_children(self, parent: ModulePath) -> List[ModulePath]:
        """Get the modules declared by ``parent``, sorted by path."""
        return sorted(
            edge.target
            for edge in self._edges.values()
            if edge.source == parent and edge.kind is EdgeKind.DECLARATION
        )

    def iter_modules(self) -> Iterator[Module]:
        """Iterate over modules sorted by path string."""
        for path in sorted(self._modules):
            yield self._modules[path]

    def iter_edges(self) -> Iterator[Edge]:
        """Iterate over edges sorted by (source, target) path strings."""
        for key in sorted(self._edges, key=lambda k: (str(k[0]), str(k[1]))):
            yield self._edges[key]

    def without_modules(self, predicate: Callable[[ModulePath], bool]) -> "ModuleGraph":
        """
        Return a frozen copy without the modules matching ``predicate``.

        A removed module takes its whole subtree and every edge touching
        it along. The root module is never removed.
        """
        removed = [
            path for path in self._modules
            if not path.is_root and predicate(path)
        ]

        def is_removed(path: ModulePath) -> bool:
            return any(path.is_within(gone) for gone in removed)

        filtered = ModuleGraph(self.unit_name)
        for path, module in self._modules.items():
            if not is_removed(path):
                filtered._modules[path] = module
        for edge in self._edges.values():
            if not is_removed(edge.source) and not is_removed(edge.target):
                filtered._edges[edge.key] = edge
        filtered._diagnostics = list(self._diagnostics)
        return filtered.freeze()

    def __len__(self) -> int:
        """Return the number of modules in the graph."""
        return len(self._modules)

    def __contains__(self, path: ModulePath) -> bool:
        """Check if a module path is in the graph."""
        return path in self._modules

    def __repr__(self) -> str:
        return (
            f"ModuleGraph(unit={self.unit_name!r}, modules={len(self._modules)}, "
            f"edges={len(self._edges)}, diagnostics={len(self._diagnostics)})"
        )
