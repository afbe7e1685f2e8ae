"""
Unit tests for input validation.

Run with: python -m pytest admin_zonal_stats/_tests/test_validation.py -v
"""

import logging

import numpy as np
import pytest
from shapely.geometry import Polygon, box

from admin_zonal_stats.exceptions import (
    BandNameCollisionError,
    DuplicateIdentityError,
    IdentityCompletenessError,
    MissingGeometryError,
    InputShapeError,
    LayerDepthError,
    SpatialReferenceMismatchError,
)
from admin_zonal_stats.models.data_models import RasterGrid
from admin_zonal_stats.validation import (
    check_duplicate_identities,
    crs_matches,
    validate_band_names,
    validate_geometries,
    validate_identity_completeness,
    validate_layer_depths,
    validate_pipeline_inputs,
)

from .conftest import BOUNDS, make_layer


class TestBandNames:
    @pytest.mark.parametrize("name", ["admin_name_0", "variable", "value"])
    def test_reserved_names_rejected(self, schema, name):
        with pytest.raises(BandNameCollisionError, match=name):
            validate_band_names(["cattle", name], schema)

    def test_duplicates_rejected(self, schema):
        with pytest.raises(BandNameCollisionError, match="cattle"):
            validate_band_names(["cattle", "cattle"], schema)

    def test_empty_rejected(self, schema):
        with pytest.raises(BandNameCollisionError):
            validate_band_names(["cattle", " "], schema)

    def test_valid_names_pass(self, schema):
        validate_band_names(["cattle", "goats", "admin_name_9"], schema)


class TestLayerDepths:
    def test_increasing_with_gaps_passes(self, schema):
        validate_layer_depths([0, 2], schema)

    @pytest.mark.parametrize("depths", [[1, 0], [0, 0], [0, 3], [-1]])
    def test_invalid_depths_raise(self, schema, depths):
        with pytest.raises(LayerDepthError):
            validate_layer_depths(depths, schema)


class TestSpatialReference:
    def test_equal_crs_in_different_spelling(self):
        assert crs_matches("EPSG:4326", "epsg:4326")

    def test_different_crs(self):
        assert not crs_matches("EPSG:4326", "EPSG:32735")

    def test_one_undefined_is_mismatch(self):
        assert not crs_matches(None, "EPSG:4326")
        assert crs_matches(None, None)

    def test_mismatch_error_names_layer(self, schema, uniform_raster):
        layer = make_layer([("A", box(0, 0, 1, 1))], depth=0, schema=schema, crs="EPSG:4326")

        with pytest.raises(SpatialReferenceMismatchError, match="level_0"):
            validate_pipeline_inputs(uniform_raster, [layer], schema)

    def test_both_undefined_warns(self, schema, caplog):
        raster = RasterGrid(("cattle",), (np.ones((10, 10)),), BOUNDS)
        layer = make_layer([("A", box(0, 0, 1, 1))], depth=0, schema=schema, crs=None)

        with caplog.at_level(logging.WARNING, logger="AdminZonal.Validation"):
            validate_pipeline_inputs(raster, [layer], schema)

        assert "no CRS" in caplog.text


class TestIdentity:
    def test_missing_parent_name_raises(self, schema):
        layer = make_layer(
            [("Kenya", "Nairobi", box(0, 0, 1, 1)), (None, "Lusaka", box(1, 1, 2, 2))],
            depth=1,
            schema=schema,
        )

        with pytest.raises(IdentityCompletenessError, match="#1"):
            validate_identity_completeness(layer)

    def test_duplicates_error_policy(self, schema):
        layer = make_layer(
            [("Kenya", box(0, 0, 1, 1)), ("Kenya", box(1, 1, 2, 2))], depth=0, schema=schema
        )

        with pytest.raises(DuplicateIdentityError, match="Kenya"):
            check_duplicate_identities([layer], "error")

    def test_duplicates_warn_policy(self, schema, caplog):
        layer = make_layer(
            [("Kenya", box(0, 0, 1, 1)), ("Kenya", box(1, 1, 2, 2))], depth=0, schema=schema
        )

        with caplog.at_level(logging.WARNING, logger="AdminZonal.Validation"):
            found = check_duplicate_identities([layer], "warn")

        assert found == [("Kenya",)]
        assert "duplicate" in caplog.text

    def test_duplicates_allow_policy(self, schema):
        layer = make_layer(
            [("Kenya", box(0, 0, 1, 1)), ("Kenya", box(1, 1, 2, 2))], depth=0, schema=schema
        )

        assert check_duplicate_identities([layer], "allow") == []

    def test_same_name_across_layers_is_not_duplicate(self, schema, admin0, admin1):
        assert check_duplicate_identities([admin0, admin1], "error") == []


class TestGeometries:
    def test_null_geometry_names_polygon(self, schema):
        layer = make_layer(
            [("A", box(0, 0, 2, 2)), ("B", None)], depth=0, schema=schema
        )

        with pytest.raises(MissingGeometryError, match=r"level_0.*polygon #1 \('B',\)"):
            validate_geometries(layer)

    def test_empty_geometry_rejected(self, schema):
        layer = make_layer(
            [("A", box(0, 0, 2, 2)), ("B", Polygon())], depth=0, schema=schema
        )

        with pytest.raises(MissingGeometryError, match="#1"):
            validate_geometries(layer)

    def test_valid_geometries_pass(self, admin0):
        validate_geometries(admin0)


class TestPipelineInputs:
    def test_valid_inputs_pass(self, schema, uniform_raster, africa_layers):
        validate_pipeline_inputs(uniform_raster, africa_layers, schema)

    def test_layers_out_of_order_raise(self, schema, uniform_raster, admin0, admin1):
        with pytest.raises(LayerDepthError):
            validate_pipeline_inputs(uniform_raster, [admin1, admin0], schema)

    def test_input_errors_are_value_errors(self):
        assert issubclass(InputShapeError, ValueError)
