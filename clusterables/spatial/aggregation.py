"""
Cluster entities and aggregation of resolved index groups.

A cluster is built from the original items at the positions produced by the
index resolver. Its centre is the arithmetic mean of member latitudes and
longitudes, which is acceptable because a group never spans more than a few
multiples of the clustering radius.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Generic,
    List,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
    runtime_checkable,
)

import numpy as np


@dataclass(frozen=True)
class Coordinate:
    """Geographic coordinate in decimal degrees."""

    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@runtime_checkable
class Clusterable(Protocol):
    """Anything exposing a latitude/longitude pair."""

    lat: float
    lng: float


T = TypeVar("T")


@dataclass(eq=False)
class Cluster(Generic[T]):
    """
    A group of nearby items displayed as a single annotation.

    Two clusters compare equal when they have the same centre and size; the
    random ``id`` is only meant for list diffing on the rendering side.

    Attributes:
        items: Member items in first-encountered order (never empty)
        center: Arithmetic mean of member coordinates
        id: Unique identifier generated at construction
    """

    items: Tuple[T, ...]
    center: Coordinate
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_items(cls, items: Sequence[T]) -> "Cluster[T]":
        """Build a cluster, computing its centre from ``items``."""
        if not items:
            raise ValueError("A cluster needs at least one item")
        return cls(items=tuple(items), center=centroid(items))

    @property
    def size(self) -> int:
        return len(self.items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self.center == other.center and self.size == other.size

    def __hash__(self) -> int:
        return hash((self.center, self.size))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (items excluded)."""
        return {
            "id": self.id,
            "center": self.center.to_dict(),
            "size": self.size,
        }


def centroid(items: Sequence[Any]) -> Coordinate:
    """Arithmetic mean of item latitudes and longitudes."""
    lats = np.fromiter((item.lat for item in items), dtype=np.float64, count=len(items))
    lngs = np.fromiter((item.lng for item in items), dtype=np.float64, count=len(items))
    return Coordinate(lat=float(lats.mean()), lng=float(lngs.mean()))


def build_clusters(
    items: Sequence[T],
    index_groups: Sequence[Sequence[int]],
) -> List[Cluster[T]]:
    """
    Turn resolved index groups into clusters.

    Index lists left empty by the resolver produce no cluster.

    Args:
        items: The item snapshot the indices refer to
        index_groups: Item positions per group, in first-encountered order

    Returns:
        One cluster per non-empty index group, in group order
    """
    clusters: List[Cluster[T]] = []
    for positions in index_groups:
        if not positions:
            continue
        clusters.append(Cluster.from_items([items[i] for i in positions]))
    return clusters
