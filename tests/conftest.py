"""Test setup for bookgraph."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SCRIPTS = ROOT / "scripts"
if str(SCRIPTS) not in sys.path:
    sys.path.insert(0, str(SCRIPTS))

from bookgraph.config import BookConfig  # noqa: E402


@pytest.fixture
def make_book(tmp_path: Path):
    """Write {relative path: text or bytes} under tmp_path/<name> and return the dir."""

    def _make(files: dict, name: str = "handbook") -> Path:
        book_dir = tmp_path / name
        book_dir.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = book_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return book_dir

    return _make


@pytest.fixture
def load_config(make_book):
    """Write a book and load its BookConfig with optional overrides."""

    def _load(files: dict, **overrides) -> BookConfig:
        return BookConfig.load(str(make_book(files)), overrides=overrides)

    return _load


@pytest.fixture
def scenario_files() -> dict:
    """Intro resolves, Parameters uses a slash for the dot, Future is a stub."""
    return {
        "SUMMARY.md": (
            "# Summary\n"
            "\n"
            "* [Intro](intro.md)\n"
            "* [Parameters](params/md)\n"
            "* [Future]()\n"
        ),
        "intro.md": "# Intro\n\nStart with [parameters](params.md).\n",
        "params.md": "# Parameters\n\nBack to the [intro](intro.md#top).\n",
    }
