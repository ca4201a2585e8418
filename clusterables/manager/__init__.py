"""Cluster manager: orchestrates the clustering pipeline and publishes results."""

from .config import ClusterManagerConfig
from .manager import (
    MIN_POINTS,
    ClusterManager,
    ClusteringPass,
    UpdateResult,
    UpdateStatus,
    run_clustering_pass,
)

__all__ = [
    "ClusterManager",
    "ClusterManagerConfig",
    "ClusteringPass",
    "UpdateResult",
    "UpdateStatus",
    "run_clustering_pass",
    "MIN_POINTS",
]
