import logging
from pathlib import Path
from typing import Callable, List, Optional

import pytest


def pytest_configure(config):
    """Set up test environment before tests run."""
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def nexus_document(trees: List[str], translate: Optional[List[str]] = None) -> str:
    """Build a BEAST style NEXUS sample from Newick strings (without the ';')."""
    lines = ["#NEXUS", "", "Begin trees;"]
    if translate:
        lines.append("\tTranslate")
        entries = [f"\t\t{i + 1} {name}" for i, name in enumerate(translate)]
        lines.append(",\n".join(entries))
        lines.append("\t\t;")
    for i, tree in enumerate(trees):
        lines.append(f"tree STATE_{i * 1000} = [&R] {tree};")
    lines.append("End;")
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_trees(tmp_path: Path) -> Callable[..., Path]:
    """Write a tree sample to a temporary file and return its path."""

    def _write(text: str, name: str = "trees.nex") -> Path:
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


@pytest.fixture
def write_nexus_sample(write_trees) -> Callable[..., Path]:
    def _write(
        trees: List[str],
        translate: Optional[List[str]] = None,
        name: str = "trees.nex",
    ) -> Path:
        return write_trees(nexus_document(trees, translate), name)

    return _write
