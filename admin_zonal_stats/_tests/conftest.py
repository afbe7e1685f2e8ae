"""
Shared fixtures: synthetic rasters and nested admin layers.

Grid layout used throughout (1 x 1 pixels, 10 x 10 grid, bounds 0..10):

    y=10 ┌───────────┬───────────┐
         │  Angola   │   Kenya   │   Nairobi = (5,5)-(7,7)
    y=5  ├───────────┴───────────┤
         │        Zambia         │   Lusaka  = (0,0)-(4,4)
    y=0  └───────────────────────┘   Kafue   = (0.5,0.5)-(1.25,1.25)
        x=0         x=5        x=10
"""

import numpy as np
import geopandas as gpd
import pytest
from shapely.geometry import box

from admin_zonal_stats.models.data_models import (
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
)

CRS = "EPSG:32735"
BOUNDS = (0.0, 0.0, 10.0, 10.0)


def make_layer(records, depth, schema, crs=CRS, name=None):
    """Build a BoundaryLayer from (names..., geometry) tuples."""
    columns = list(schema.columns_for(depth))
    data = {c: [r[i] for r in records] for i, c in enumerate(columns)}
    gdf = gpd.GeoDataFrame(data, geometry=[r[-1] for r in records], crs=crs)
    return BoundaryLayer.from_geodataframe(gdf, depth, schema, name=name)


@pytest.fixture
def schema():
    return IdentitySchema(depth_count=3)


@pytest.fixture
def uniform_raster():
    """One band of ones: sums equal covered area."""
    return RasterGrid(
        band_names=("cattle",),
        bands=(np.ones((10, 10)),),
        bounds=BOUNDS,
        crs=CRS,
    )


@pytest.fixture
def gradient_raster():
    """Two bands varying with x only: cattle = column index, goats = 2x."""
    cattle = np.tile(np.arange(10, dtype="float64"), (10, 1))
    return RasterGrid(
        band_names=("cattle", "goats"),
        bands=(cattle, cattle * 2),
        bounds=BOUNDS,
        crs=CRS,
    )


@pytest.fixture
def admin0(schema):
    return make_layer(
        [
            ("Angola", box(0, 5, 5, 10)),
            ("Kenya", box(5, 5, 10, 10)),
            ("Zambia", box(0, 0, 10, 5)),
        ],
        depth=0,
        schema=schema,
    )


@pytest.fixture
def admin1(schema):
    return make_layer(
        [
            ("Kenya", "Nairobi", box(5, 5, 7, 7)),
            ("Zambia", "Lusaka", box(0, 0, 4, 4)),
        ],
        depth=1,
        schema=schema,
    )


@pytest.fixture
def admin2(schema):
    return make_layer(
        [("Zambia", "Lusaka", "Kafue", box(0.5, 0.5, 1.25, 1.25))],
        depth=2,
        schema=schema,
    )


@pytest.fixture
def africa_layers(admin0, admin1, admin2):
    return [admin0, admin1, admin2]


@pytest.fixture
def sequential_config():
    """Config dict forcing n_jobs=1."""
    return {"parallel": {"enabled": False}}
