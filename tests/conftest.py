"""Shared fixtures for building throwaway crates on disk."""

from pathlib import Path
from typing import Callable, Dict

import pytest


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


def write_files(root: Path, files: Dict[str, str]) -> Path:
    """Write ``{relative path: content}`` below ``root`` and return ``root``."""
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_crate(tmp_path: Path) -> Callable[..., Path]:
    """Create a crate directory from source files; returns the crate dir."""

    def _make(files: Dict[str, str], name: str = "demo") -> Path:
        return write_files(tmp_path / name, files)

    return _make


@pytest.fixture
def sample_crate() -> Path:
    """The checked-in sample crate (5 modules, 7 edges)."""
    return FIXTURES_DIR / "sample"
