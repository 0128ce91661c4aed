"""Errors raised while scanning a crate.

Every error renders as a single human-readable line so it can be printed
directly on the diagnostics stream.
"""

from pathlib import Path
from typing import Optional, Sequence


class AnalysisError(Exception):
    """Base class for all scanning errors."""


class SourceReadError(AnalysisError):
    """A source file could not be read or decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: failed to read source: {reason}")


class RustSyntaxError(AnalysisError):
    """A source file could not be parsed as Rust."""

    def __init__(self, path: Path, line: int, column: int, message: str):
        self.path = path
        self.line = line
        self.column = column
        self.message = message
        super().__init__(f"{path}:{line}:{column}: syntax error: {message}")


class ResolutionError(AnalysisError):
    """A module declaration could not be mapped to a file."""


class ModuleFileNotFound(ResolutionError):
    """No candidate file exists for an external module declaration."""

    def __init__(
        self,
        module: str,
        expected_paths: Sequence[Path],
        declared_in: Optional[Path] = None,
    ):
        self.module = module
        self.expected_paths = list(expected_paths)
        self.declared_in = declared_in
        tried = " or ".join(str(p) for p in self.expected_paths)
        prefix = f"{declared_in}: " if declared_in is not None else ""
        super().__init__(f"{prefix}module '{module}' not found, expected {tried}")


class CircularModule(ResolutionError):
    """A module declaration loads a file that is already one of its ancestors."""

    def __init__(self, module: str, path: Path, declared_in: Optional[Path] = None):
        self.module = module
        self.path = path
        self.declared_in = declared_in
        prefix = f"{declared_in}: " if declared_in is not None else ""
        super().__init__(f"{prefix}circular module '{module}', {path} is already loaded")


class UnitEnumerationError(AnalysisError):
    """A crate or workspace member could not be enumerated."""

    def __init__(self, location: Path, message: str):
        self.location = location
        self.message = message
        super().__init__(f"{location}: {message}")


class ConfigError(AnalysisError):
    """A configuration file is unreadable or holds invalid settings."""

    def __init__(self, source: Path, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{source}: invalid configuration: {message}")
