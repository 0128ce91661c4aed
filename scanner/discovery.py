"""Crate and workspace discovery for scanning Rust projects."""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .errors import UnitEnumerationError
from .resolver import find_crate_root


logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
DEFAULT_EXCLUDE_DIRS = {
    ".git", ".hg", ".svn",
    "target", "node_modules", ".cargo",
    ".idea", ".vscode",
}


@dataclass(frozen=True)
class CrateUnit:
    """One crate to analyze."""

    name: str
    directory: Path
    root_file: Path


def load_manifest(manifest_path: Path) -> Dict[str, Any]:
    """
    Load a Cargo manifest.

    Raises:
        UnitEnumerationError: If the manifest is unreadable or invalid TOML.
    """
    try:
        with manifest_path.open("rb") as handle:
            return tomllib.load(handle)
    except OSError as exc:
        raise UnitEnumerationError(manifest_path, f"cannot read manifest: {exc.strerror or exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise UnitEnumerationError(manifest_path, f"invalid manifest: {exc}") from exc


def discover_units(root: Path) -> Tuple[List[CrateUnit], List[UnitEnumerationError]]:
    """
    Enumerate the crates found at a path.

    A directory without a manifest is treated as a single crate named after
    the directory. A manifest with a ``[package]`` table yields that crate,
    and a ``[workspace]`` table adds one crate per member.

    Args:
        root: Crate or workspace directory.

    Returns:
        The crates found, plus errors for workspace members that could not
        be enumerated.

    Raises:
        UnitEnumerationError: If nothing at ``root`` can be analyzed.
    """
    root = root.resolve()
    manifest_path = root / MANIFEST_NAME

    if not manifest_path.is_file():
        crate_root = find_crate_root(root)
        if crate_root is None:
            raise UnitEnumerationError(
                root, "no Cargo.toml, src/lib.rs or src/main.rs found"
            )
        return [CrateUnit(root.name, root, crate_root)], []

    manifest = load_manifest(manifest_path)
    units: List[CrateUnit] = []
    errors: List[UnitEnumerationError] = []

    if isinstance(manifest.get("package"), dict):
        units.append(_package_unit(root, manifest_path, manifest))

    workspace = manifest.get("workspace")
    if isinstance(workspace, dict):
        seen: Set[Path] = {unit.directory for unit in units}
        for member_dir in iter_workspace_members(root, workspace):
            if member_dir in seen:
                continue
            seen.add(member_dir)
            try:
                units.append(unit_from_directory(member_dir))
            except UnitEnumerationError as exc:
                logger.debug("Skipping workspace member %s: %s", member_dir, exc.message)
                errors.append(exc)

    if not units and not errors:
        raise UnitEnumerationError(
            manifest_path, "manifest declares neither a package nor workspace members"
        )
    return units, errors


def unit_from_directory(crate_dir: Path) -> CrateUnit:
    """
    Build a crate unit from a directory holding a Cargo manifest.

    Raises:
        UnitEnumerationError: If the manifest is missing or invalid, or the
            crate has no root file.
    """
    manifest_path = crate_dir / MANIFEST_NAME
    if not manifest_path.is_file():
        raise UnitEnumerationError(crate_dir, f"no {MANIFEST_NAME} in workspace member")
    manifest = load_manifest(manifest_path)
    if not isinstance(manifest.get("package"), dict):
        raise UnitEnumerationError(manifest_path, "workspace member has no [package] table")
    return _package_unit(crate_dir, manifest_path, manifest)


def _package_unit(crate_dir: Path, manifest_path: Path, manifest: Dict[str, Any]) -> CrateUnit:
    package = manifest["package"]
    name = package.get("name")
    if not isinstance(name, str) or not name:
        name = crate_dir.name

    root_file = _crate_root_from_manifest(crate_dir, manifest)
    if root_file is None:
        raise UnitEnumerationError(
            manifest_path, f"crate '{name}' has no src/lib.rs or src/main.rs"
        )
    return CrateUnit(name, crate_dir, root_file)


def _crate_root_from_manifest(crate_dir: Path, manifest: Dict[str, Any]) -> Optional[Path]:
    """Pick the crate root: [lib] path, src/lib.rs, first [[bin]] path, src/main.rs."""
    lib = manifest.get("lib")
    if isinstance(lib, dict) and isinstance(lib.get("path"), str):
        candidate = crate_dir / lib["path"]
        if candidate.is_file():
            return candidate

    lib_rs = crate_dir / "src" / "lib.rs"
    if lib_rs.is_file():
        return lib_rs

    bins = manifest.get("bin")
    if isinstance(bins, list):
        for entry in bins:
            if isinstance(entry, dict) and isinstance(entry.get("path"), str):
                candidate = crate_dir / entry["path"]
                if candidate.is_file():
                    return candidate

    return find_crate_root(crate_dir)


def iter_workspace_members(root: Path, workspace: Dict[str, Any]) -> Iterator[Path]:
    """
    Iterate over workspace member directories.

    Glob patterns in ``members`` are expanded (sorted, skipping excluded and
    tool directories) and only directories holding a manifest are kept.
    Plain entries are yielded as-is so missing members can be reported.
    ``exclude`` entries are removed from the result.
    """
    members = workspace.get("members") or []
    excluded = {(root / entry).resolve() for entry in workspace.get("exclude") or []}

    for pattern in members:
        if not isinstance(pattern, str):
            continue
        if any(ch in pattern for ch in "*?["):
            matches = sorted(
                match.resolve() for match in root.glob(pattern)
                if match.is_dir()
                and match.name not in DEFAULT_EXCLUDE_DIRS
                and (match / MANIFEST_NAME).is_file()
            )
        else:
            matches = [(root / pattern).resolve()]
        for member_dir in matches:
            if member_dir in excluded:
                continue
            yield member_dir
