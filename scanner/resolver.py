"""Path resolution utilities for mapping module declarations to files."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from graph.model import ModuleKind, ModulePath
from .errors import ModuleFileNotFound


SOURCE_EXTENSION = ".rs"
MOD_FILENAME = "mod.rs"
CRATE_ROOT_CANDIDATES = ("lib.rs", "main.rs")


@dataclass(frozen=True)
class ResolvedModule:
    """
    Where a declared module lives.

    Attributes:
        path: Fully-qualified module path.
        file: File holding the module's items. Inline modules share their
            parent's file.
        kind: Inline or external.
        directory: Directory searched for the files of modules declared
            inside this one.
    """

    path: ModulePath
    file: Path
    kind: ModuleKind
    directory: Path

    @property
    def is_inline(self) -> bool:
        return self.kind is ModuleKind.INLINE


def find_crate_root(crate_dir: Path) -> Optional[Path]:
    """
    Find the crate root file (``src/lib.rs`` or ``src/main.rs``).

    Args:
        crate_dir: The crate's directory (the one holding Cargo.toml).

    Returns:
        The first candidate that exists, or None.
    """
    src_dir = crate_dir / "src"
    for filename in CRATE_ROOT_CANDIDATES:
        candidate = src_dir / filename
        if candidate.is_file():
            return candidate
    return None


def owned_directory(file_path: Path, is_mod_rs: bool) -> Path:
    """
    Get the directory in which a file's child modules are looked up.

    Crate roots, ``mod.rs`` files and files loaded through a path override
    own their containing directory; any other ``foo.rs`` owns ``foo/``.
    """
    if is_mod_rs or file_path.name == MOD_FILENAME:
        return file_path.parent
    return file_path.parent / file_path.stem


def resolve_module(
    parent_path: ModulePath,
    parent_file: Path,
    declared_name: str,
    is_inline: bool,
    override_path: Optional[str] = None,
    parent_dir: Optional[Path] = None,
    parent_is_inline: bool = False,
) -> ResolvedModule:
    """
    Resolve a ``mod`` declaration to its module path and backing file.

    External modules are looked up as ``{dir}/{name}.rs`` and then
    ``{dir}/{name}/mod.rs``; the first existing file wins. A path override
    is joined to the parent file's directory (or, inside an inline module,
    to that module's directory) and is not checked for existence.

    Args:
        parent_path: Path of the declaring module.
        parent_file: File containing the declaration.
        declared_name: Name of the declared module.
        is_inline: True for ``mod name { ... }``.
        override_path: Value of a ``#[path = "..."]`` attribute.
        parent_dir: Directory owned by the declaring module. Defaults to
            the directory of ``parent_file``.
        parent_is_inline: True when the declaration sits inside an inline
            module body.

    Returns:
        The resolved module.

    Raises:
        ModuleFileNotFound: If no candidate file exists.
    """
    child_path = parent_path.child(declared_name)
    search_dir = parent_dir if parent_dir is not None else parent_file.parent

    if is_inline:
        return ResolvedModule(
            path=child_path,
            file=parent_file,
            kind=ModuleKind.INLINE,
            directory=search_dir / declared_name,
        )

    if override_path is not None:
        base = search_dir if parent_is_inline else parent_file.parent
        target = base / override_path
        return ResolvedModule(
            path=child_path,
            file=target,
            kind=ModuleKind.EXTERNAL,
            directory=owned_directory(target, is_mod_rs=True),
        )

    direct = search_dir / f"{declared_name}{SOURCE_EXTENSION}"
    if direct.is_file():
        return ResolvedModule(
            path=child_path,
            file=direct,
            kind=ModuleKind.EXTERNAL,
            directory=owned_directory(direct, is_mod_rs=False),
        )

    nested = search_dir / declared_name / MOD_FILENAME
    if nested.is_file():
        return ResolvedModule(
            path=child_path,
            file=nested,
            kind=ModuleKind.EXTERNAL,
            directory=owned_directory(nested, is_mod_rs=True),
        )

    raise ModuleFileNotFound(str(child_path), [direct, nested], declared_in=parent_file)
