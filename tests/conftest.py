import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    """Make `src/` importable in tests without requiring installation."""
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    sys.path.insert(0, str(src_dir))


@pytest.fixture
def graph():
    from noisegraph.ir import NodeGraph

    return NodeGraph(name="test")


@pytest.fixture
def scratch():
    from noisegraph.passes.scratch import ScratchBuffers

    return ScratchBuffers()
