"""
Coordinate quantization.

Coordinates handed to a cluster engine come back as plain floats that may not
be bit-identical to the originals. Scaling by a fixed precision factor and
rounding gives an integer key that survives such a round-trip, so grouped
points can be mapped back to the items they came from.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np


DEFAULT_PRECISION = 1_000_000  # 1e-6 degrees, roughly 0.1 m

PointKey = Tuple[int, int]


@dataclass(frozen=True)
class QuantizedPoints:
    """
    Snapshot produced on the caller side and shared read-only with workers.

    Attributes:
        points: ``(N, 2)`` float64 array of (lat, lng), row i is item i
        index: Key to item positions, each list non-empty and ascending
        precision: Scale factor used to build the keys
    """

    points: np.ndarray
    index: Mapping[PointKey, Tuple[int, ...]]
    precision: int = DEFAULT_PRECISION

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @property
    def num_keys(self) -> int:
        return len(self.index)


def quantize_array(coords: np.ndarray, precision: int = DEFAULT_PRECISION) -> np.ndarray:
    """Return the ``(N, 2)`` int64 keys for an ``(N, 2)`` coordinate array."""
    coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    return np.rint(coords * precision).astype(np.int64)


def point_key(lat: float, lng: float, precision: int = DEFAULT_PRECISION) -> PointKey:
    """Scaled and rounded integer key for a single coordinate."""
    scaled = quantize_array(np.array([[lat, lng]]), precision)[0]
    return int(scaled[0]), int(scaled[1])


def quantize(items: Sequence, precision: int = DEFAULT_PRECISION) -> QuantizedPoints:
    """
    Build the point array and reverse lookup for ``items``.

    No item is dropped here, exact duplicates included: items sharing a key
    share a bucket.

    Args:
        items: Objects exposing ``lat`` and ``lng``
        precision: Scale factor applied before rounding

    Returns:
        QuantizedPoints whose row order matches ``items``
    """
    if precision <= 0:
        raise ValueError(f"precision must be positive, got {precision}")

    points = np.empty((len(items), 2), dtype=np.float64)
    for i, item in enumerate(items):
        points[i, 0] = item.lat
        points[i, 1] = item.lng
    points.setflags(write=False)

    buckets: Dict[PointKey, List[int]] = {}
    for i, (klat, klng) in enumerate(quantize_array(points, precision).tolist()):
        buckets.setdefault((klat, klng), []).append(i)

    index = MappingProxyType({key: tuple(pos) for key, pos in buckets.items()})
    return QuantizedPoints(points=points, index=index, precision=precision)
