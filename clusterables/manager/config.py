"""Cluster manager configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..spatial.engines import DBSCAN_ALGORITHMS, ENGINES
from ..spatial.quantization import DEFAULT_PRECISION
from ..tools.config_loader import ConfigLoader


@dataclass
class ClusterManagerConfig:
    """Configuration for the clustering pipeline."""

    precision: int = DEFAULT_PRECISION
    """Quantization factor used for coordinate keys."""

    pixel_spacing: float = 30
    """Screen distance between annotations used when none is passed to update()."""

    engine: str = "dbscan"
    """Cluster engine name (dbscan, grid)."""

    algorithm: str = "auto"
    """Neighbour search used by the DBSCAN engine."""

    metric: str = "euclidean"
    """Distance metric handed to the engine."""

    n_jobs: Optional[int] = None
    """Parallel jobs for the DBSCAN neighbour search. None = 1, -1 = all cores."""

    max_workers: Optional[int] = None
    """Worker pool size for the offloaded phase. None = executor default."""

    discard_stale: bool = False
    """Drop results issued before the last published one."""

    def validate(self) -> "ClusterManagerConfig":
        """Raise ValueError on inconsistent settings, return self otherwise."""
        if self.precision <= 0:
            raise ValueError(f"precision must be positive, got {self.precision}")
        if not self.pixel_spacing > 0:
            raise ValueError(f"pixel_spacing must be positive, got {self.pixel_spacing}")
        if self.engine not in ENGINES:
            raise ValueError(
                f"Unknown engine '{self.engine}'. Available engines: {', '.join(ENGINES)}"
            )
        if self.algorithm not in DBSCAN_ALGORITHMS:
            raise ValueError(
                f"Unknown algorithm '{self.algorithm}'. "
                f"Available: {', '.join(DBSCAN_ALGORITHMS)}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be a non-zero integer or None")
        return self

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "ClusterManagerConfig":
        """
        Build a config from a loaded profile dictionary.

        Missing keys keep their defaults; unknown ones are skipped by
        :meth:`ConfigLoader.flatten_profile`.
        """
        settings = ConfigLoader.flatten_profile(profile)
        if "precision" in settings:
            settings["precision"] = int(settings["precision"])
        if "discard_stale" in settings:
            settings["discard_stale"] = bool(settings["discard_stale"])
        return cls(**settings).validate()

    @classmethod
    def load(cls, profile_name: Optional[str] = None) -> "ClusterManagerConfig":
        """Load from a named profile, or from the environment/default profile."""
        if profile_name:
            return cls.from_profile(ConfigLoader.load_profile(profile_name))
        return cls.from_profile(ConfigLoader.load_default_or_env_profile())
