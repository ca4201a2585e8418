"""
Tests for profile loading (clusterables/tools) and ClusterManagerConfig.
"""

import pytest

from clusterables.manager import ClusterManager, ClusterManagerConfig
from clusterables.tools import ConfigLoader, get_config


# ==============================================================================
# ConfigLoader Tests
# ==============================================================================

class TestConfigLoader:
    """Test YAML profile discovery and loading."""

    def test_available_profiles(self):
        profiles = ConfigLoader.available_profiles()

        assert {"default", "dense-urban", "regional"} <= set(profiles)
        assert profiles == sorted(profiles)

    def test_load_default_profile(self):
        profile = ConfigLoader.load_profile("default")

        assert profile["clustering"]["precision"] == 1_000_000
        assert profile["clustering"]["pixel_spacing"] == 30
        assert profile["updates"]["discard_stale"] is False

    def test_unknown_profile(self):
        with pytest.raises(FileNotFoundError, match="Available profiles"):
            ConfigLoader.load_profile("does-not-exist")

    def test_env_profile(self, monkeypatch):
        monkeypatch.setenv(ConfigLoader.ENV_VAR, "regional")

        assert ConfigLoader.get_profile_from_env() == "regional"
        assert get_config()["clustering"]["engine"] == "grid"

    def test_falls_back_to_default(self, monkeypatch):
        monkeypatch.delenv(ConfigLoader.ENV_VAR, raising=False)

        assert ConfigLoader.get_profile_from_env() is None
        assert get_config() == ConfigLoader.load_profile("default")

    def test_flatten_profile(self):
        settings = ConfigLoader.flatten_profile({
            "clustering": {"engine": "grid", "n_jobs": -1},
            "executor": {"max_workers": 3},
            "updates": None,
        })

        assert settings == {"engine": "grid", "n_jobs": -1, "max_workers": 3}

    def test_flatten_profile_skips_unknown_entries(self, caplog):
        settings = ConfigLoader.flatten_profile({
            "clustering": {"pixel_spacin": 12, "precision": 1000},
            "rendering": {"theme": "dark"},
        })

        assert settings == {"precision": 1000}
        assert "clustering.pixel_spacin" in caplog.text
        assert "rendering" in caplog.text

    def test_bundled_profiles_have_no_unknown_keys(self, caplog):
        for name in ConfigLoader.available_profiles():
            ConfigLoader.flatten_profile(ConfigLoader.load_profile(name))

        assert "Ignoring" not in caplog.text

    def test_custom_config_dir(self, tmp_path, monkeypatch):
        (tmp_path / "empty.yaml").write_text("")
        monkeypatch.setattr(ConfigLoader, "CONFIG_DIR", tmp_path)

        assert ConfigLoader.available_profiles() == ["empty"]
        assert ConfigLoader.load_profile("empty") == {}


# ==============================================================================
# ClusterManagerConfig Tests
# ==============================================================================

class TestClusterManagerConfig:
    """Test building and validating manager configuration."""

    def test_defaults(self):
        config = ClusterManagerConfig()

        assert config.precision == 1_000_000
        assert config.pixel_spacing == 30
        assert config.engine == "dbscan"
        assert config.discard_stale is False
        assert config.validate() is config

    @pytest.mark.parametrize("name", ["default", "dense-urban", "regional"])
    def test_bundled_profiles_are_valid(self, name):
        config = ClusterManagerConfig.load(name)

        assert config.precision > 0
        assert config.pixel_spacing > 0

    def test_regional_profile(self):
        config = ClusterManagerConfig.load("regional")

        assert config.engine == "grid"
        assert config.precision == 100_000
        assert config.pixel_spacing == 60
        assert config.max_workers == 4
        assert config.discard_stale is True

    def test_load_uses_env(self, monkeypatch):
        monkeypatch.setenv(ConfigLoader.ENV_VAR, "dense-urban")

        config = ClusterManagerConfig.load()

        assert config.algorithm == "ball_tree"
        assert config.pixel_spacing == 44
        assert config.n_jobs == 2

    def test_from_partial_profile(self):
        config = ClusterManagerConfig.from_profile({"clustering": {"pixel_spacing": 12}})

        assert config.pixel_spacing == 12
        assert config.engine == "dbscan"
        assert config.max_workers is None

    def test_from_empty_sections(self):
        config = ClusterManagerConfig.from_profile({"clustering": None, "executor": None})

        assert config == ClusterManagerConfig()

    @pytest.mark.parametrize("overrides, message", [
        ({"precision": 0}, "precision"),
        ({"pixel_spacing": 0}, "pixel_spacing"),
        ({"pixel_spacing": float("nan")}, "pixel_spacing"),
        ({"engine": "hdbscan"}, "Unknown engine"),
        ({"algorithm": "octree"}, "Unknown algorithm"),
        ({"max_workers": 0}, "max_workers"),
        ({"n_jobs": 0}, "n_jobs"),
    ])
    def test_validation(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            ClusterManagerConfig(**overrides).validate()

    def test_invalid_profile_values(self):
        with pytest.raises(ValueError, match="Unknown engine"):
            ClusterManagerConfig.from_profile({"clustering": {"engine": "kmeans"}})

    def test_n_jobs_reaches_engine(self):
        manager = ClusterManager(ClusterManagerConfig(algorithm="ball_tree", n_jobs=-1))

        assert manager.engine.n_jobs == -1
        assert manager.engine.name == "dbscan[ball_tree]"
