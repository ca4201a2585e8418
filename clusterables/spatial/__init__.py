"""
clusterables/spatial: Quantization, radius derivation, engines and aggregation.

The pieces of the clustering pipeline, usable on their own or through
:class:`clusterables.manager.ClusterManager`.
"""

from .aggregation import (
    Cluster,
    Clusterable,
    Coordinate,
    build_clusters,
    centroid,
)
from .engines import (
    DBSCAN_ALGORITHMS,
    ENGINES,
    ClusterEngine,
    ClusterEngineError,
    DBSCANEngine,
    GridBucketEngine,
    make_engine,
)
from .epsilon import Viewport, degrees_from_pixels
from .quantization import (
    DEFAULT_PRECISION,
    PointKey,
    QuantizedPoints,
    point_key,
    quantize,
)
from .resolution import ResolvedGroups, resolve_groups

__all__ = [
    # Data types
    "Cluster",
    "Clusterable",
    "Coordinate",
    "PointKey",
    "QuantizedPoints",
    "ResolvedGroups",
    "Viewport",

    # Pipeline steps
    "degrees_from_pixels",
    "quantize",
    "point_key",
    "resolve_groups",
    "build_clusters",
    "centroid",

    # Engines
    "ClusterEngine",
    "ClusterEngineError",
    "DBSCANEngine",
    "GridBucketEngine",
    "make_engine",

    # Constants
    "DEFAULT_PRECISION",
    "DBSCAN_ALGORITHMS",
    "ENGINES",
]
