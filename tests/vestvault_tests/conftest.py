"""
Shared fixtures for vestvault tests.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parents[2]
for path in (project_root / "src", Path(__file__).resolve().parent):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from vesting_fixtures import build_world  # noqa: E402


@pytest.fixture
def world():
    return build_world()


@pytest.fixture
def instance(world):
    """Continuous 1000-over-1000s revocable schedule starting 100s from now."""
    return world.create()
