"""
Tests for typed configuration.

Run with: python -m pytest admin_zonal_stats/_tests/test_config_types.py -v
"""

from pathlib import Path

import pytest

from admin_zonal_stats.config import CONFIG, _env_bool, _env_or_default
from admin_zonal_stats.config_types import (
    AggregationConfig,
    AppConfig,
    BoundaryLayerSourceConfig,
    HierarchyConfig,
    OutputConfig,
    ParallelConfig,
    normalize_config,
)
from admin_zonal_stats.models.data_models import AggregationKind


class TestAppConfig:
    def test_from_master_config(self):
        app_config = AppConfig.from_dict(CONFIG)

        assert app_config.schema.columns == ("admin_name_0", "admin_name_1", "admin_name_2")
        assert [s.depth for s in app_config.boundary_layers] == [0, 1, 2]
        assert app_config.boundary_layers[2].name_columns == ("NAME_0", "NAME_1", "NAME_2")
        assert app_config.raster.band_names == ("cattle",)

    def test_empty_dict_uses_defaults(self):
        app_config = AppConfig.from_dict({})

        assert app_config.aggregation.aggregation_kind is AggregationKind.SUM
        assert app_config.output.shape == "long"
        assert app_config.output.parquet_compression == "zstd"
        assert app_config.boundary_layers == ()

    def test_normalize_config(self):
        app_config = AppConfig()

        assert normalize_config(app_config) is app_config
        assert normalize_config(None) == AppConfig()
        assert normalize_config({"output": {"shape": "wide"}}).output.shape == "wide"

    def test_paths_resolved_against_workspace(self):
        app_config = AppConfig.from_dict({"file_paths": {"output_dir": "out", "log_dir": "log"}})
        root = Path("/data/run")

        assert app_config.file_paths.output_dir_path(root) == root / "out"
        assert app_config.file_paths.log_dir_path(root) == root / "log"


class TestValidation:
    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="median"):
            AggregationConfig(kind="median")

    def test_unknown_duplicate_policy(self):
        with pytest.raises(ValueError):
            AggregationConfig(duplicate_identity_policy="drop")

    def test_unknown_shape(self):
        with pytest.raises(ValueError):
            OutputConfig(shape="tidy")

    def test_no_compression(self):
        assert OutputConfig(compression="none").parquet_compression is None

    @pytest.mark.parametrize("workers", [0, -2])
    def test_invalid_worker_count(self, workers):
        with pytest.raises(ValueError):
            ParallelConfig(max_workers=workers)

    def test_name_columns_must_match_depth(self):
        with pytest.raises(ValueError, match="name_columns"):
            BoundaryLayerSourceConfig(depth=1, file_path="a.gpkg", name_columns=("NAME_0",))

    def test_default_name_columns(self):
        source = BoundaryLayerSourceConfig.from_dict({"depth": 1, "file_path": "a.gpkg"})

        assert source.name_columns == ("NAME_0", "NAME_1")

    def test_invalid_hierarchy(self):
        with pytest.raises(ValueError):
            HierarchyConfig(depth_count=0)
        with pytest.raises(ValueError):
            HierarchyConfig(column_template="admin_name")


class TestEnvironment:
    def test_env_or_default(self, monkeypatch):
        monkeypatch.delenv("ZONAL_MAX_WORKERS", raising=False)
        assert _env_or_default("ZONAL_MAX_WORKERS", -1, int) == -1

        monkeypatch.setenv("ZONAL_MAX_WORKERS", "3")
        assert _env_or_default("ZONAL_MAX_WORKERS", -1, int) == 3

    @pytest.mark.parametrize("raw, expected", [("true", True), ("YES", True), ("0", False)])
    def test_env_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("ZONAL_PARALLEL_ENABLED", raw)

        assert _env_bool("ZONAL_PARALLEL_ENABLED", not expected) is expected

    def test_env_bool_unset(self, monkeypatch):
        monkeypatch.delenv("ZONAL_PARALLEL_ENABLED", raising=False)

        assert _env_bool("ZONAL_PARALLEL_ENABLED", True) is True
