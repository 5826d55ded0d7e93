"""Shared fixtures for markerscan tests."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from markerscan.console import RichLogger
from markerscan.extractors import extract_markers

SAMPLE_SOURCE = "// TODO: fix this\nother line\n// FIXME bug here"


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=400, color_system=None, log_time=False, log_path=False)


@pytest.fixture
def logger(console: Console) -> RichLogger:
    return RichLogger(console=console, verbose=True)


@pytest.fixture
def sample_items():
    return extract_markers(SAMPLE_SOURCE, "src/main/a.kt")


@pytest.fixture
def source_tree(tmp_path):
    root = tmp_path / "project"
    (root / "app").mkdir(parents=True)
    (root / "app" / "Main.kt").write_text(
        "fun main() {\n    // TODO: wire config\n    run() // BUG: crashes on empty input\n}\n",
        encoding="utf-8",
    )
    (root / "app" / "build.gradle.kts").write_text("// hack: pin plugin version\n", encoding="utf-8")
    (root / "app" / "notes.txt").write_text("// TODO: not a source file\n", encoding="utf-8")
    (root / "app" / "Empty.kt").write_text("", encoding="utf-8")
    return root
