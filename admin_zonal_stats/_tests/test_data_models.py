"""
Tests for core data models.

Run with: python -m pytest admin_zonal_stats/_tests/test_data_models.py -v
"""

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import box

from admin_zonal_stats.exceptions import InputShapeError
from admin_zonal_stats.models import (
    AggregateRow,
    AggregationKind,
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
)


class TestAggregationKind:
    @pytest.mark.parametrize("name", ["sum", "SUM", " Mean "])
    def test_from_string(self, name):
        assert AggregationKind.from_string(name).value == name.strip().lower()

    def test_passes_enum_through(self):
        assert AggregationKind.from_string(AggregationKind.MAX) is AggregationKind.MAX

    def test_unknown(self):
        with pytest.raises(ValueError):
            AggregationKind.from_string("median")


class TestIdentitySchema:
    def test_columns(self):
        schema = IdentitySchema(depth_count=2, column_template="adm{depth}_name")

        assert schema.columns == ("adm0_name", "adm1_name")
        assert schema.columns_for(0) == ("adm0_name",)
        assert schema.reserved_names == ("adm0_name", "adm1_name", "variable", "value")

    def test_depth_out_of_range(self, schema):
        with pytest.raises(InputShapeError):
            schema.columns_for(3)


class TestRasterGrid:
    def test_shape_and_resolution(self, uniform_raster):
        assert uniform_raster.shape == (10, 10)
        assert uniform_raster.resolution == (1.0, 1.0)
        assert uniform_raster.band("cattle").dtype == np.float64

    def test_band_count_mismatch(self):
        with pytest.raises(InputShapeError):
            RasterGrid(("a", "b"), (np.ones((2, 2)),), (0, 0, 2, 2))

    def test_band_shapes_differ(self):
        with pytest.raises(InputShapeError):
            RasterGrid(("a", "b"), (np.ones((2, 2)), np.ones((3, 2))), (0, 0, 2, 2))

    def test_degenerate_bounds(self):
        with pytest.raises(InputShapeError):
            RasterGrid(("a",), (np.ones((2, 2)),), (0, 0, 0, 2))

    def test_no_bands(self):
        with pytest.raises(InputShapeError):
            RasterGrid((), (), (0, 0, 2, 2))


class TestBoundaryLayer:
    def test_renames_source_columns(self, schema):
        gdf = gpd.GeoDataFrame(
            {"NAME_0": ["Kenya"], "NAME_1": ["Nairobi"], "POP": [4.4]},
            geometry=[box(0, 0, 1, 1)],
            crs="EPSG:32735",
        )

        layer = BoundaryLayer.from_geodataframe(gdf, 1, schema, name_columns=["NAME_0", "NAME_1"])

        assert list(layer.frame.columns) == ["admin_name_0", "admin_name_1", "geometry"]
        assert layer.identity_tuples() == [("Kenya", "Nairobi")]
        assert layer.key == "level_1"
        assert len(layer) == 1

    def test_missing_name_column(self, schema):
        gdf = gpd.GeoDataFrame({"NAME_0": ["Kenya"]}, geometry=[box(0, 0, 1, 1)])

        with pytest.raises(InputShapeError, match="NAME_1"):
            BoundaryLayer.from_geodataframe(gdf, 1, schema, name_columns=["NAME_0", "NAME_1"])

    def test_missing_names_become_none(self, schema):
        gdf = gpd.GeoDataFrame({"admin_name_0": [None, np.nan, "Kenya"]}, geometry=[box(0, 0, 1, 1)] * 3)

        layer = BoundaryLayer.from_geodataframe(gdf, 0, schema)

        assert layer.identity_tuples() == [(None,), (None,), ("Kenya",)]


class TestAggregateRow:
    def test_padded_identity(self):
        row = AggregateRow(identity=("Kenya",), depth=0, values={"cattle": 1.0})

        assert row.padded_identity(3) == ("Kenya", None, None)

    def test_identity_length_must_match_depth(self):
        with pytest.raises(InputShapeError):
            AggregateRow(identity=("Kenya",), depth=1, values={})

    def test_too_deep_for_hierarchy(self):
        row = AggregateRow(identity=("a", "b", "c"), depth=2, values={})

        with pytest.raises(InputShapeError):
            row.padded_identity(2)

    def test_dict_transport_keeps_band_order(self):
        row = AggregateRow(identity=("Kenya",), depth=0, values={"goats": None, "cattle": 2.0})

        back = AggregateRow.from_dict(row.as_dict())

        assert back == row
        assert back.band_names == ("goats", "cattle")
