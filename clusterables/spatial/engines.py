"""
Cluster engines: spatial grouping primitives behind a common interface.

An engine partitions a point set into proximity groups given a radius and a
minimum neighbour count. With ``min_points=1`` every point ends up in exactly
one group; isolated points form singleton groups.

Available engines:
1. DBSCANEngine - scikit-learn DBSCAN with a selectable neighbour search
   (kd_tree, ball_tree, brute or auto)
2. GridBucketEngine - the same partition as DBSCAN with min_points=1, found
   through a hash grid of cells smaller than epsilon

Distances are Euclidean on (lat, lng) pairs, used as a local proximity metric,
not a geodesic one.
"""

from __future__ import annotations

import abc
import math
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np
from sklearn.cluster import DBSCAN


Metric = Union[str, Callable[[np.ndarray, np.ndarray], float]]

DBSCAN_ALGORITHMS = ("auto", "kd_tree", "ball_tree", "brute")


class ClusterEngineError(RuntimeError):
    """Raised when an engine fails on its input."""

    def __init__(self, engine: str, message: str):
        super().__init__(f"{engine} engine failed: {message}")
        self.engine = engine


class ClusterEngine(abc.ABC):
    """Contract shared by all spatial grouping primitives."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short identifier used in telemetry."""

    @abc.abstractmethod
    def group(
        self,
        points: np.ndarray,
        epsilon: float,
        min_points: int,
        metric: Metric = "euclidean",
    ) -> List[np.ndarray]:
        """Return disjoint ``(k, 2)`` coordinate arrays, one per group."""

    def __call__(
        self,
        points: np.ndarray,
        epsilon: float,
        min_points: int = 1,
        metric: Metric = "euclidean",
    ) -> List[np.ndarray]:
        """
        Group ``points`` and wrap any failure into :class:`ClusterEngineError`.

        Args:
            points: ``(N, 2)`` array of (lat, lng)
            epsilon: Neighbourhood radius in degrees (>= 0)
            min_points: Neighbours required for a core point (including itself)
            metric: scikit-learn metric name or a callable distance

        Returns:
            List of coordinate arrays; empty input gives an empty list
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if len(points) == 0:
            return []
        if epsilon < 0 or not math.isfinite(epsilon):
            raise ClusterEngineError(self.name, f"invalid epsilon {epsilon}")
        try:
            return self.group(points, epsilon, min_points, metric)
        except ClusterEngineError:
            raise
        except Exception as e:
            raise ClusterEngineError(self.name, str(e)) from e


class DBSCANEngine(ClusterEngine):
    """
    DBSCAN from scikit-learn.

    scikit-learn rejects a zero radius, so ``epsilon == 0`` is replaced with
    the smallest positive float: only identical coordinates are neighbours.
    Points labelled as noise (possible only with ``min_points > 1``) are not
    returned.
    """

    def __init__(self, algorithm: str = "auto", n_jobs: Optional[int] = None):
        if algorithm not in DBSCAN_ALGORITHMS:
            raise ValueError(
                f"Unknown DBSCAN algorithm '{algorithm}'. "
                f"Available: {', '.join(DBSCAN_ALGORITHMS)}"
            )
        self.algorithm = algorithm
        self.n_jobs = n_jobs

    @property
    def name(self) -> str:
        return f"dbscan[{self.algorithm}]"

    def group(
        self,
        points: np.ndarray,
        epsilon: float,
        min_points: int,
        metric: Metric = "euclidean",
    ) -> List[np.ndarray]:
        eps = epsilon if epsilon > 0 else np.finfo(np.float64).tiny
        clusterer = DBSCAN(
            eps=eps,
            min_samples=min_points,
            metric=metric,
            algorithm=self.algorithm,
            n_jobs=self.n_jobs,
        )
        labels = clusterer.fit_predict(points)

        # Labels are assigned in order of first discovery
        return [points[labels == label] for label in sorted(set(labels.tolist())) if label != -1]


class GridBucketEngine(ClusterEngine):
    """
    Connected components of the epsilon-neighbour graph, using a hash grid.

    Points are binned into square cells of side ``epsilon / sqrt(2)``, so every
    cell fits inside one radius and its points are mutually reachable. Two
    cells are merged when any pair of their points is within ``epsilon``; only
    cells at most two steps apart can hold such a pair. The result matches
    DBSCAN with ``min_points=1`` without building a tree.

    Only the Euclidean metric is supported and ``min_points`` is ignored:
    every point counts as a core point.
    """

    # Cells narrower than this fraction of the coordinate magnitude would exceed
    # float resolution; such radii only group identical coordinates.
    MIN_RELATIVE_CELL = 2.0 ** -40

    CHUNK_ROWS = 512

    # Forward half of the 5x5 block around a cell
    NEIGHBOUR_OFFSETS = tuple(
        (dx, dy) for dx in range(-2, 3) for dy in range(-2, 3) if (dx, dy) > (0, 0)
    )

    @property
    def name(self) -> str:
        return "grid"

    def group(
        self,
        points: np.ndarray,
        epsilon: float,
        min_points: int,
        metric: Metric = "euclidean",
    ) -> List[np.ndarray]:
        if metric != "euclidean":
            raise ValueError(f"grid engine only supports the euclidean metric, got {metric!r}")

        cell_size = epsilon / math.sqrt(2.0)
        scale = float(np.abs(points).max())
        if cell_size == 0 or cell_size < scale * self.MIN_RELATIVE_CELL:
            return self._exact_groups(points)

        cells: Dict[Tuple[int, int], List[int]] = {}
        keys = np.floor(points / cell_size).astype(np.int64).tolist()
        for i, (cx, cy) in enumerate(keys):
            cells.setdefault((cx, cy), []).append(i)

        parent = {cell: cell for cell in cells}

        def find(cell):
            while parent[cell] != cell:
                parent[cell] = parent[parent[cell]]
                cell = parent[cell]
            return cell

        for (cx, cy), rows in cells.items():
            for dx, dy in self.NEIGHBOUR_OFFSETS:
                other = (cx + dx, cy + dy)
                if other not in cells:
                    continue
                root, other_root = find((cx, cy)), find(other)
                if root == other_root:
                    continue
                if self._any_within(points[rows], points[cells[other]], epsilon):
                    parent[other_root] = root

        components: Dict[Tuple[int, int], List[int]] = {}
        for i, (cx, cy) in enumerate(keys):
            components.setdefault(find((cx, cy)), []).append(i)
        return [points[rows] for rows in components.values()]

    def _any_within(self, a: np.ndarray, b: np.ndarray, epsilon: float) -> bool:
        limit = epsilon * epsilon
        for start in range(0, len(a), self.CHUNK_ROWS):
            diff = a[start:start + self.CHUNK_ROWS, None, :] - b[None, :, :]
            if np.any((diff * diff).sum(axis=-1) <= limit):
                return True
        return False

    @staticmethod
    def _exact_groups(points: np.ndarray) -> List[np.ndarray]:
        buckets: Dict[Tuple[float, float], List[int]] = {}
        for i, (lat, lng) in enumerate(points.tolist()):
            buckets.setdefault((lat, lng), []).append(i)
        return [points[rows] for rows in buckets.values()]


ENGINES = ("dbscan", "grid")


def make_engine(
    name: str = "dbscan",
    algorithm: str = "auto",
    n_jobs: Optional[int] = None,
) -> ClusterEngine:
    """
    Create an engine by name.

    Args:
        name: ``dbscan`` or ``grid``
        algorithm: Neighbour search for DBSCAN (ignored by ``grid``)
        n_jobs: Parallel jobs for the DBSCAN neighbour search (ignored by ``grid``)

    Raises:
        ValueError: If the engine name is unknown
    """
    if name == "dbscan":
        return DBSCANEngine(algorithm=algorithm, n_jobs=n_jobs)
    if name == "grid":
        return GridBucketEngine()
    raise ValueError(f"Unknown engine '{name}'. Available engines: {', '.join(ENGINES)}")
