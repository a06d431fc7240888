"""
Pytest configuration and shared fixtures for gblock tests.
"""

import gc
import sys
from pathlib import Path

import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

import gblock
from gblock import CtypesAllocator, Kind, use_allocator


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_config():
    """Restore default configuration after every test."""
    yield
    gblock.config.reset()


@pytest.fixture
def allocator():
    """Fresh instrumented allocator installed for the duration of a test."""
    alloc = CtypesAllocator()
    with use_allocator(alloc):
        yield alloc
    gc.collect()


@pytest.fixture
def real_block():
    """RealBlock holding [1.0, 2.0, 3.0, 4.0, 5.0]."""
    return gblock.from_values(Kind.FLOAT64, [1.0, 2.0, 3.0, 4.0, 5.0])


@pytest.fixture
def int_block():
    """IntBlock holding [0, 1, 2, 3, 4, 5, 6, 7]."""
    return gblock.from_values(Kind.INT32, list(range(8)))


@pytest.fixture(params=[Kind.FLOAT64, Kind.INT32, Kind.UINT8], ids=str)
def kind(request):
    """Every supported element kind."""
    return request.param
