"""Test doubles shared across the test modules."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from clusterables.spatial import Coordinate


@dataclass(frozen=True)
class Pin:
    """Clusterable test item."""
    id: str
    lat: float
    lng: float


class LinearViewport:
    """Viewport where every screen point spans a fixed number of degrees."""

    def __init__(self, degrees_per_point: float, origin: Tuple[float, float] = (42.0, -83.0)):
        self.degrees_per_point = degrees_per_point
        self.origin = origin

    def convert(self, point: Tuple[float, float]) -> Optional[Coordinate]:
        x, y = point
        return Coordinate(
            lat=self.origin[0] - y * self.degrees_per_point,
            lng=self.origin[1] + x * self.degrees_per_point,
        )


class UnresolvedViewport:
    """Viewport that has not been laid out yet."""

    def convert(self, point: Tuple[float, float]) -> Optional[Coordinate]:
        return None


def make_pins(coords) -> List[Pin]:
    return [Pin(id=f"pin-{i}", lat=lat, lng=lng) for i, (lat, lng) in enumerate(coords)]


def random_pins(n: int, seed: int = 7) -> List[Pin]:
    """``n`` pins spread over the lower peninsula of Michigan."""
    rng = np.random.default_rng(seed)
    lats = rng.uniform(41.7, 45.8, size=n)
    lngs = rng.uniform(-86.5, -82.5, size=n)
    return make_pins(zip(lats.tolist(), lngs.tolist()))
