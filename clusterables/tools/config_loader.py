"""
Clustering profiles: YAML files in ``configs/`` selected by name or by the
``CLUSTERABLES_PROFILE`` environment variable.

A profile groups settings by concern:

    clustering:  precision, pixel_spacing, engine, algorithm, metric, n_jobs
    executor:    max_workers
    updates:     discard_stale

``ConfigLoader.flatten_profile`` turns that layout into the flat keyword
arguments of ``ClusterManagerConfig``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


logger = logging.getLogger(__name__)


class ConfigLoader:
    """Load and manage clustering profiles from YAML files and environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"
    ENV_VAR = "CLUSTERABLES_PROFILE"
    DEFAULT_PROFILE = "default"

    SECTIONS: Dict[str, tuple] = {
        "clustering": ("precision", "pixel_spacing", "engine", "algorithm", "metric", "n_jobs"),
        "executor": ("max_workers",),
        "updates": ("discard_stale",),
    }

    @classmethod
    def available_profiles(cls) -> List[str]:
        """Names of the profiles in ``CONFIG_DIR``."""
        return sorted(f.stem for f in cls.CONFIG_DIR.glob("*.yaml"))

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a clustering profile.

        Args:
            profile_name: Name of the profile (default, dense-urban, regional)

        Returns:
            Profile sections as loaded from YAML

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = cls.available_profiles()
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from the CLUSTERABLES_PROFILE environment variable."""
        return os.getenv(cls.ENV_VAR)

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """Load the profile named by the environment, or the default profile."""
        profile = cls.get_profile_from_env() or cls.DEFAULT_PROFILE
        return cls.load_profile(profile)

    @classmethod
    def flatten_profile(cls, profile: Dict[str, Any]) -> Dict[str, Any]:
        """
        Collect the known keys of every section into one flat dictionary.

        Empty sections are allowed. Unknown sections and keys are skipped with
        a warning so a typo does not silently fall back to a default.
        """
        settings: Dict[str, Any] = {}
        for section, values in (profile or {}).items():
            if section not in cls.SECTIONS:
                logger.warning(f"Ignoring unknown profile section '{section}'")
                continue
            for key, value in (values or {}).items():
                if key not in cls.SECTIONS[section]:
                    logger.warning(f"Ignoring unknown key '{section}.{key}'")
                    continue
                settings[key] = value
        return settings


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()
