"""
Tests for level-parallel aggregation.

Tests:
1. GeoDataFrame serialization round trip
2. Parallel decision logic and worker count
3. Parallel dispatch gives the same rows as sequential
4. Worker failures surface as LevelAggregationError

Run with: python -m pytest admin_zonal_stats/_tests/test_level_orchestrator.py -v
"""

import pytest
from shapely.geometry import box

from admin_zonal_stats.exceptions import LevelAggregationError
from admin_zonal_stats.models.data_models import AggregationKind
from admin_zonal_stats.parallel import (
    aggregate_all_levels,
    deserialize_geodataframe,
    get_effective_worker_count,
    serialize_geodataframe,
    should_use_parallel,
    worker_aggregate_level,
)
from admin_zonal_stats.parallel.level_orchestrator import _collect_results

from .conftest import make_layer

THREADING_CONFIG = {
    "parallel": {"enabled": True, "max_workers": 2, "backend": "threading"}
}
LOKY_CONFIG = {"parallel": {"enabled": True, "max_workers": 2, "backend": "loky"}}


class TestSerialization:
    def test_round_trip_keeps_geometry_names_and_crs(self, admin1):
        records, crs_str = serialize_geodataframe(admin1.frame)

        back = deserialize_geodataframe(records, crs_str)

        assert crs_str == "EPSG:32735"
        assert back.crs == admin1.frame.crs
        assert back["admin_name_1"].tolist() == ["Nairobi", "Lusaka"]
        assert back.geometry.geom_equals(admin1.frame.geometry).all()

    def test_empty_frame_keeps_columns(self, schema):
        layer = make_layer([], depth=1, schema=schema)
        records, crs_str = serialize_geodataframe(layer.frame)

        back = deserialize_geodataframe(records, crs_str, columns=["admin_name_0", "admin_name_1"])

        assert records == []
        assert len(back) == 0
        assert {"admin_name_0", "admin_name_1"} <= set(back.columns)


class TestParallelDecision:
    def test_disabled(self):
        use, reason = should_use_parallel(3, {"parallel": {"enabled": False}})

        assert not use
        assert "disabled" in reason

    def test_too_few_levels(self):
        use, _ = should_use_parallel(1, {"parallel": {"min_levels_for_parallel": 2}})

        assert not use

    def test_single_worker(self):
        use, reason = should_use_parallel(3, {"parallel": {"max_workers": 1}})

        assert not use
        assert "max_workers=1" in reason

    def test_enabled(self):
        use, _ = should_use_parallel(3, THREADING_CONFIG)

        assert use

    def test_worker_count_capped_by_levels(self):
        assert get_effective_worker_count(2, {"parallel": {"max_workers": 8}}) == 2
        assert 1 <= get_effective_worker_count(3, {"parallel": {"max_workers": -1}}) <= 3


class TestAggregateAllLevels:
    def test_sequential_results_in_layer_order(
        self, uniform_raster, africa_layers, schema, sequential_config
    ):
        levels = aggregate_all_levels(
            uniform_raster, africa_layers, AggregationKind.SUM, schema, sequential_config
        )

        assert [len(rows) for rows in levels] == [3, 2, 1]
        assert levels[1][1].identity == ("Zambia", "Lusaka")
        assert levels[2][0].values["cattle"] == pytest.approx(0.5625)

    def test_parallel_matches_sequential(
        self, gradient_raster, africa_layers, schema, sequential_config
    ):
        sequential = aggregate_all_levels(
            gradient_raster, africa_layers, "sum", schema, sequential_config
        )
        parallel = aggregate_all_levels(
            gradient_raster, africa_layers, "sum", schema, THREADING_CONFIG
        )

        assert parallel == sequential

    def test_process_workers_match_sequential(
        self, gradient_raster, africa_layers, schema, sequential_config
    ):
        """Raster pickling and WKT/CRS transport across loky processes."""
        sequential = aggregate_all_levels(
            gradient_raster, africa_layers, "sum", schema, sequential_config
        )
        parallel = aggregate_all_levels(
            gradient_raster, africa_layers, "sum", schema, LOKY_CONFIG
        )

        assert parallel == sequential

    def test_missing_geometry_reported_with_polygon(
        self, uniform_raster, admin0, schema, sequential_config
    ):
        broken = make_layer(
            [("Kenya", "Nairobi", box(5, 5, 7, 7)), ("Kenya", "Mombasa", None)],
            depth=1,
            schema=schema,
        )

        with pytest.raises(LevelAggregationError) as excinfo:
            aggregate_all_levels(
                uniform_raster, [admin0, broken], "sum", schema, sequential_config
            )

        message = excinfo.value.failures["level_1"]
        assert "MissingGeometryError" in message
        assert "polygon #1" in message
        assert "Mombasa" in message

    def test_no_layers(self, uniform_raster, schema):
        assert aggregate_all_levels(uniform_raster, [], "sum", schema) == []

    def test_failed_level_raises_with_key(
        self, uniform_raster, admin0, schema, sequential_config
    ):
        outside = make_layer(
            [("Kenya", "Atlantis", box(100, 100, 101, 101))], depth=1, schema=schema
        )

        with pytest.raises(LevelAggregationError) as excinfo:
            aggregate_all_levels(
                uniform_raster, [admin0, outside], "sum", schema, sequential_config
            )

        assert list(excinfo.value.failures) == ["level_1"]
        assert "NoOverlapError" in str(excinfo.value)


class TestWorker:
    def test_worker_reports_error_instead_of_raising(self, uniform_raster, schema):
        result = worker_aggregate_level(
            level_key="broken",
            depth=0,
            layer_records=[{"admin_name_0": "A", "geometry": box(0, 0, 1, 1).wkt}],
            layer_crs="EPSG:32735",
            identity_columns=["admin_name_0"],
            raster=uniform_raster,
            kind="median",
            depth_count=3,
            column_template="admin_name_{depth}",
        )

        assert result["success"] is False
        assert result["error_type"] == "ValueError"
        assert result["rows"] == []

    def test_unexpected_exception_is_reported(self, schema):
        result = worker_aggregate_level(
            level_key="level_0",
            depth=0,
            layer_records=[{"admin_name_0": "A", "geometry": box(0, 0, 1, 1).wkt}],
            layer_crs="EPSG:32735",
            identity_columns=["admin_name_0"],
            raster=None,
            kind="sum",
            depth_count=3,
            column_template="admin_name_{depth}",
        )

        assert result["success"] is False
        assert result["error_type"] == "AttributeError"
        assert result["key"] == "level_0"

    def test_worker_returns_row_dicts(self, uniform_raster, schema):
        result = worker_aggregate_level(
            level_key="level_0",
            depth=0,
            layer_records=[{"admin_name_0": "A", "geometry": box(0, 0, 2, 2).wkt}],
            layer_crs="EPSG:32735",
            identity_columns=["admin_name_0"],
            raster=uniform_raster,
            kind="sum",
            depth_count=3,
            column_template="admin_name_{depth}",
        )

        assert result["success"] is True
        assert result["row_count"] == 1
        assert result["rows"][0]["identity"] == ["A"]
        assert result["rows"][0]["values"]["cattle"] == pytest.approx(4.0)


class TestCollectResults:
    def test_missing_result_is_failure(self, admin0, admin1):
        ok = {"success": True, "rows": [], "row_count": 0, "duration_seconds": 0.0}

        with pytest.raises(LevelAggregationError, match="no result returned"):
            _collect_results([ok], [admin0, admin1])

    def test_all_failures_listed(self, admin0, admin1):
        failed = {"success": False, "error": "boom", "error_type": "RuntimeError"}

        with pytest.raises(LevelAggregationError) as excinfo:
            _collect_results([failed, failed], [admin0, admin1])

        assert set(excinfo.value.failures) == {"level_0", "level_1"}
        assert "RuntimeError: boom" in excinfo.value.failures["level_0"]
