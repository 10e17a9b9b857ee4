"""Shared pytest fixtures."""

import logging
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory, monkeypatch):
    """Point ~ at a temp dir and drop DEPOCLEANER_* overrides."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for key in ("SCAN_PATH", "CACHE_PATH", "LOG_PATH", "WORKERS", "MAX_DEPTH", "IGNORE_PATHS"):
        monkeypatch.delenv(f"DEPOCLEANER_{key}", raising=False)
    yield home

    logger = logging.getLogger("depocleaner")
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def make_file():
    """Create a file of ``size`` bytes, making parent directories."""

    def _make(path: Path, size: int) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
        return path

    return _make


@pytest.fixture
def example_tree(tmp_path, make_file):
    """root/a/node_modules (10 + 20 bytes) and root/b/.venv (5 bytes)."""
    root = tmp_path / "root"
    make_file(root / "a" / "node_modules" / "left-pad" / "index.js", 10)
    make_file(root / "a" / "node_modules" / "package.json", 20)
    make_file(root / "b" / ".venv" / "pyvenv.cfg", 5)
    make_file(root / "b" / "main.py", 100)
    return root
