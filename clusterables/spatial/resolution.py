"""
Mapping engine output back to item positions.

Every point an engine returns is re-quantized with the precision used at input
time and looked up in the reverse index. A point whose key is missing is
dropped from its group; there is no nearest-match fallback. If an engine ever
perturbs a coordinate across a rounding boundary, the affected items are lost
from every cluster for that update and show up in ``ResolvedGroups.dropped``.

A key is claimed by the first group that contains it, so items sharing a key
always land in one cluster even when an engine splits near-identical points.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Set

import numpy as np

from .quantization import PointKey, QuantizedPoints, quantize_array


@dataclass
class ResolvedGroups:
    """
    Index groups recovered from engine output.

    Attributes:
        groups: Item positions per engine group (may contain empty lists)
        dropped: Engine points whose key was not found in the index
        duplicates: Engine points whose key was already claimed
    """

    groups: List[List[int]] = field(default_factory=list)
    dropped: int = 0
    duplicates: int = 0

    @property
    def non_empty(self) -> List[List[int]]:
        return [g for g in self.groups if g]

    @property
    def num_resolved(self) -> int:
        return sum(len(g) for g in self.groups)


def resolve_groups(
    engine_groups: Sequence[np.ndarray],
    snapshot: QuantizedPoints,
) -> ResolvedGroups:
    """
    Resolve engine groups into item positions.

    Args:
        engine_groups: Coordinate arrays returned by a cluster engine
        snapshot: Quantization built from the same items before clustering

    Returns:
        ResolvedGroups with one index list per engine group
    """
    result = ResolvedGroups()
    claimed: Set[PointKey] = set()

    for group in engine_groups:
        positions: List[int] = []
        if len(group) == 0:
            result.groups.append(positions)
            continue

        for klat, klng in quantize_array(group, snapshot.precision).tolist():
            key = (klat, klng)
            matched = snapshot.index.get(key)
            if matched is None:
                result.dropped += 1
                continue
            if key in claimed:
                result.duplicates += 1
                continue
            claimed.add(key)
            positions.extend(matched)

        result.groups.append(positions)

    return result
