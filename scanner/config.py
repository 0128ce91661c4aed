"""
Configuration loading - YAML files or Cargo.toml metadata tables.
"""

import logging
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError


logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("dgmod.yaml", "dgmod.yml", ".dgmod.yaml", ".dgmod.yml")
FORMATS = ("mermaid", "json", "ascii")
ORIENTATIONS = ("TD", "TB", "LR", "RL", "BT")
ASCII_STYLES = ("tree", "ascii")


@dataclass(frozen=True)
class DgmodConfig:
    """Settings for one run."""

    format: str = "mermaid"
    orientation: str = "TD"
    dashed_imports: bool = False
    exclude_tests: bool = False
    # fnmatch patterns over rendered module paths
    exclude: List[str] = field(default_factory=list)
    ascii_style: str = "tree"

    def merged_with(self, **overrides: Any) -> "DgmodConfig":
        """Return a copy with every override that is not None applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        merged = replace(self, **changes)
        _validate(merged, Path("<command line>"))
        return merged


def load_config(root: Path, config_path: Optional[Path] = None) -> DgmodConfig:
    """
    Load the configuration for a crate or workspace.

    Args:
        root: The analyzed directory, searched for a config file.
        config_path: Explicit config file; skips the search when given.

    Returns:
        The loaded configuration, or defaults when none is found.

    Raises:
        ConfigError: If the file is unreadable or holds invalid settings.
    """
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(config_path, "file does not exist")
        return _load_config_file(config_path)

    found = find_config_file(root)
    if found is not None:
        logger.info("Using configuration from %s", found)
        return _load_config_file(found)

    return DgmodConfig()


def find_config_file(root: Path) -> Optional[Path]:
    """
    Find a configuration file in priority order.

    YAML files come first; a Cargo.toml only counts when it carries a
    ``[workspace.metadata.dgmod]`` or ``[package.metadata.dgmod]`` table.
    """
    for filename in CONFIG_FILENAMES:
        candidate = root / filename
        if candidate.is_file():
            return candidate

    manifest = root / "Cargo.toml"
    if manifest.is_file():
        try:
            if _manifest_table(_read_toml(manifest)) is not None:
                return manifest
        except ConfigError:
            # the unit enumerator reports broken manifests
            return None
    return None


def _load_config_file(config_path: Path) -> DgmodConfig:
    suffix = config_path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(config_path)
    elif suffix == ".toml":
        document = _read_toml(config_path)
        if config_path.name == "Cargo.toml":
            data = _manifest_table(document) or {}
        else:
            data = document.get("dgmod", document)
    else:
        raise ConfigError(config_path, f"unsupported file type '{suffix}'")
    return _config_from_dict(data, config_path)


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(config_path, f"cannot read file: {exc.strerror or exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(config_path, f"invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(config_path, "top level must be a mapping")
    return data


def _read_toml(config_path: Path) -> Dict[str, Any]:
    try:
        with config_path.open("rb") as handle:
            return tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(config_path, f"cannot read file: {exc.strerror or exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(config_path, f"invalid TOML: {exc}") from exc


def _manifest_table(manifest: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for section in ("workspace", "package"):
        table = manifest.get(section, {})
        metadata = table.get("metadata", {}) if isinstance(table, dict) else {}
        settings = metadata.get("dgmod") if isinstance(metadata, dict) else None
        if isinstance(settings, dict):
            return settings
    return None


def _config_from_dict(data: Dict[str, Any], source: Path) -> DgmodConfig:
    known = {f.name for f in fields(DgmodConfig)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in known:
            raise ConfigError(source, f"unknown key '{key}'")
        values[name] = value

    if isinstance(values.get("exclude"), str):
        values["exclude"] = [values["exclude"]]

    config = DgmodConfig(**values)
    _validate(config, source)
    return config


def _validate(config: DgmodConfig, source: Path) -> None:
    if config.format not in FORMATS:
        raise ConfigError(source, f"format must be one of {', '.join(FORMATS)}")
    if config.orientation not in ORIENTATIONS:
        raise ConfigError(source, f"orientation must be one of {', '.join(ORIENTATIONS)}")
    if config.ascii_style not in ASCII_STYLES:
        raise ConfigError(source, f"ascii_style must be one of {', '.join(ASCII_STYLES)}")
    for name in ("dashed_imports", "exclude_tests"):
        if not isinstance(getattr(config, name), bool):
            raise ConfigError(source, f"{name} must be true or false")
    if not isinstance(config.exclude, list) or not all(isinstance(p, str) for p in config.exclude):
        raise ConfigError(source, "exclude must be a list of module path patterns")
