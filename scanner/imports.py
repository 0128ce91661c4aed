"""Flattening of ``use`` trees into module dependency targets."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple, Union

from graph.model import ModulePath


CRATE_KEYWORD = "crate"
SELF_KEYWORD = "self"
SUPER_KEYWORD = "super"
# Segment standing for a leading ``::`` (an explicit extern crate path).
EXTERN_MARKER = "::"


@dataclass(frozen=True)
class UsePath:
    """``ident::<tree>``"""

    ident: str
    tree: "UseTree"


@dataclass(frozen=True)
class UseName:
    """``ident``"""

    ident: str


@dataclass(frozen=True)
class UseRename:
    """``ident as alias``"""

    ident: str
    alias: str


@dataclass(frozen=True)
class UseGlob:
    """``*``"""


@dataclass(frozen=True)
class UseGroup:
    """``{a, b::c, ...}``"""

    items: Tuple["UseTree", ...]


UseTree = Union[UsePath, UseName, UseRename, UseGlob, UseGroup]
RawImport = Tuple[str, ...]


def flatten(tree: UseTree, prefix: RawImport = ()) -> List[RawImport]:
    """
    Expand a use tree into the list of paths it imports.

    Names and renames contribute the full path including the imported
    identifier; a glob contributes the path of the module it expands.
    Groups are expanded per item, each starting from the same prefix.

    Args:
        tree: The use tree to expand.
        prefix: Segments accumulated by enclosing path nodes.

    Returns:
        One segment tuple per imported name, in source order.
    """
    if isinstance(tree, UsePath):
        return flatten(tree.tree, prefix + (tree.ident,))
    if isinstance(tree, (UseName, UseRename)):
        return [prefix + (tree.ident,)]
    if isinstance(tree, UseGlob):
        return [prefix]
    if isinstance(tree, UseGroup):
        results: List[RawImport] = []
        for item in tree.items:
            results.extend(flatten(item, prefix))
        return results
    raise TypeError(f"unsupported use tree node: {tree!r}")


def classify_and_target(
    raw_path: RawImport,
    current: ModulePath,
    known_modules: Set[ModulePath],
) -> Optional[ModulePath]:
    """
    Map an imported path to the module it depends on.

    Paths starting with ``crate``, ``self`` or ``super``, or whose first
    segment names a child of the current module or a top-level module of
    the crate, are internal. Everything else belongs to another crate and
    yields None.

    The target is the deepest known module along the path: importing a
    module targets that module, while importing an item targets the module
    that defines or re-exports it.

    Args:
        raw_path: Segments produced by ``flatten``.
        current: Module containing the use statement.
        known_modules: Every module discovered in the crate.

    Returns:
        The target module path, or None for external or unresolvable paths.
    """
    if not raw_path:
        return None

    head, rest = raw_path[0], raw_path[1:]
    base: Optional[ModulePath]
    if head == CRATE_KEYWORD:
        base = ModulePath.root()
    elif head == SELF_KEYWORD:
        base = current
    elif head == SUPER_KEYWORD:
        base = current.parent()
        while base is not None and rest and rest[0] == SUPER_KEYWORD:
            base = base.parent()
            rest = rest[1:]
    elif current.child(head) in known_modules:
        base, rest = current, raw_path
    elif ModulePath.root().child(head) in known_modules:
        base, rest = ModulePath.root(), raw_path
    else:
        return None

    if base is None or base not in known_modules:
        return None
    return _deepest_known(base, rest, known_modules)


def _deepest_known(
    base: ModulePath,
    segments: Iterable[str],
    known_modules: Set[ModulePath],
) -> ModulePath:
    """Walk down from ``base`` while each step is still a known module."""
    target = base
    for segment in segments:
        candidate = target.child(segment)
        if candidate not in known_modules:
            break
        target = candidate
    return target


def resolve_imports(
    trees: Iterable[UseTree],
    current: ModulePath,
    known_modules: Set[ModulePath],
) -> List[ModulePath]:
    """
    Resolve every use tree of a module to internal target modules.

    Returns:
        Targets in source order, without duplicates.
    """
    targets: List[ModulePath] = []
    for tree in trees:
        for raw_path in flatten(tree):
            target = classify_and_target(raw_path, current, known_modules)
            if target is not None and target not in targets:
                targets.append(target)
    return targets
