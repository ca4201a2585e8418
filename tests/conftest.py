"""
Pytest configuration and shared fixtures for clusterables tests.

This file provides:
- Sample item sets (scenario data, duplicates, distinct grids)
- Fixed and unresolved viewports
"""

from typing import List

import pytest

from tests.helpers import LinearViewport, Pin, UnresolvedViewport, make_pins


# ==============================================================================
# Sample Items
# ==============================================================================

@pytest.fixture
def scenario_a_pins() -> List[Pin]:
    """Two close pins and one far away."""
    return make_pins([
        (42.0000, -83.0000),
        (42.0001, -83.0001),
        (50.0000, -90.0000),
    ])


@pytest.fixture
def duplicate_pins() -> List[Pin]:
    """Four pins sharing one coordinate."""
    return make_pins([(43.5, -84.25)] * 4)


@pytest.fixture
def distinct_pins() -> List[Pin]:
    """Pins with pairwise distinct coordinates on a 0.5 degree grid."""
    return make_pins([(42.0 + 0.5 * i, -85.0 + 0.5 * j) for i in range(4) for j in range(3)])


# ==============================================================================
# Viewports
# ==============================================================================

@pytest.fixture
def viewport_001() -> LinearViewport:
    """30 screen points correspond to 0.01 degrees of longitude."""
    return LinearViewport(degrees_per_point=0.01 / 30)


@pytest.fixture
def unresolved_viewport() -> UnresolvedViewport:
    return UnresolvedViewport()
