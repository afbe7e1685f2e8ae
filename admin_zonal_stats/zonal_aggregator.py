"""
Zonal Aggregator - per-polygon, per-band coverage-weighted statistics.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: For ONE boundary layer and the shared raster, compute one
aggregate per polygon per band. Pure function of its inputs.

Weighting:
- Every pixel intersecting a polygon contributes with weight equal to the
  fraction of its area inside the polygon (1.0 for interior pixels).
- Coverage fractions are computed by exactextract; this module never
  rasterizes or intersects geometries itself.
- Polygons smaller than a pixel still receive their exact partial share.

Null semantics:
- A polygon whose covered valid-pixel weight is zero (outside the grid,
  or only nodata underneath) gets None for that band. This is a coverage
  gap, not an error.

Key Functions:
- aggregate(): Main entry point (layer, raster, kind) -> List[AggregateRow]
- extract_band_statistics(): One exactextract pass for one band

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import geopandas as gpd
import numpy as np
from exactextract import exact_extract
from exactextract.raster import NumPyRasterSource
from pyproj import CRS
from shapely.geometry import box

from admin_zonal_stats.exceptions import NoOverlapError
from admin_zonal_stats.models.data_models import (
    AggregateRow,
    AggregationKind,
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
)
from admin_zonal_stats.validation import (
    validate_band_names,
    validate_geometries,
    validate_spatial_reference,
)

logger = logging.getLogger("AdminZonal.Aggregator")

# Always requested alongside the reducer: total covered weight of valid pixels
COVERAGE_OP = "count"


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════


def _stat_from_value(feature: Any, key: str) -> float:
    """
    Extract a statistic from one exact_extract output feature.

    The feature may be either {'sum': ...} or a GeoJSON-like
    {'type': 'Feature', 'properties': {'sum': ...}}. Keys prefixed with a
    raster name ("<name>_sum") are accepted as well.
    """
    if not isinstance(feature, dict):
        return np.nan
    props = feature.get("properties", feature)
    if not isinstance(props, dict):
        return np.nan
    if key in props:
        value = props[key]
    else:
        suffixed = [k for k in props if k.endswith(f"_{key}")]
        if not suffixed:
            return np.nan
        value = props[suffixed[0]]
    if value is None:
        return np.nan
    return float(value)


def _clean_value(coverage: float, value: float) -> Optional[float]:
    """Map zero coverage or a NaN statistic to None."""
    if math.isnan(coverage) or coverage <= 0:
        return None
    if math.isnan(value):
        return None
    return value


def _raster_source(raster: RasterGrid, band: np.ndarray) -> NumPyRasterSource:
    xmin, ymin, xmax, ymax = raster.bounds
    kwargs: Dict[str, Any] = {}
    if raster.nodata is not None:
        kwargs["nodata"] = raster.nodata
    if raster.crs is not None:
        kwargs["srs_wkt"] = CRS.from_user_input(raster.crs).to_wkt()
    return NumPyRasterSource(
        band, xmin=xmin, ymin=ymin, xmax=xmax, ymax=ymax, **kwargs
    )


def check_overlap(layer: BoundaryLayer, raster: RasterGrid) -> None:
    """
    Raise NoOverlapError when no polygon of a non-empty layer touches the grid.

    An empty layer is NOT an overlap error; it simply aggregates to [].
    """
    if len(layer) == 0:
        return
    extent = box(*raster.bounds)
    if not layer.frame.geometry.intersects(extent).any():
        layer_bounds = tuple(round(v, 6) for v in layer.frame.total_bounds)
        raise NoOverlapError(
            f"Layer '{layer.key}' (depth {layer.depth}) bounds {layer_bounds} "
            f"do not intersect raster extent {raster.bounds}"
        )


# ═══════════════════════════════════════════════════════════════════════════
# 📊 BAND EXTRACTION
# ═══════════════════════════════════════════════════════════════════════════


def extract_band_statistics(
    geometries: gpd.GeoDataFrame,
    raster: RasterGrid,
    band_name: str,
    kind: AggregationKind = AggregationKind.SUM,
) -> List[Tuple[float, float]]:
    """
    Run exactextract for one band over every polygon.

    Args:
        geometries: Geometry-only frame, in output order.
        raster: Grid holding the band.
        band_name: Band to aggregate.
        kind: Reducer.

    Returns:
        One (covered_weight, statistic) tuple per polygon; NaN where
        exactextract reported nothing.
    """
    source = _raster_source(raster, raster.band(band_name))
    ops = [COVERAGE_OP] if kind.operation == COVERAGE_OP else [COVERAGE_OP, kind.operation]
    features = exact_extract(source, geometries, ops)
    return [
        (_stat_from_value(f, COVERAGE_OP), _stat_from_value(f, kind.operation))
        for f in features
    ]


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 MAIN ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════


def aggregate(
    layer: BoundaryLayer,
    raster: RasterGrid,
    kind: AggregationKind = AggregationKind.SUM,
    schema: Optional[IdentitySchema] = None,
) -> List[AggregateRow]:
    """
    Aggregate every raster band over every polygon of one layer.

    Args:
        layer: Polygons of one nesting depth, in the raster's CRS.
        raster: Shared measurement surface.
        kind: Reducer (default: area-weighted sum).
        schema: Identity schema used for reserved-name checks; defaults to
            one just deep enough for this layer.

    Returns:
        One AggregateRow per polygon, in input order, values keyed by band
        name in raster band order.

    Raises:
        SpatialReferenceMismatchError: Layer and raster CRS differ.
        BandNameCollisionError: A band name is reserved or duplicated.
        NoOverlapError: Non-empty layer entirely outside the raster extent.
    """
    kind = AggregationKind.from_string(kind)
    if schema is None:
        schema = IdentitySchema(depth_count=layer.depth + 1)
    validate_band_names(raster.band_names, schema)
    validate_spatial_reference(raster, layer)
    validate_geometries(layer)

    if len(layer) == 0:
        logger.info(f"   Layer '{layer.key}' is empty - nothing to aggregate")
        return []
    check_overlap(layer, raster)

    geometries = layer.geometry_frame()
    per_band: Dict[str, List[Tuple[float, float]]] = {}
    for band_name in raster.band_names:
        per_band[band_name] = extract_band_statistics(
            geometries, raster, band_name, kind
        )

    rows = []
    gap_count = 0
    for i, identity in enumerate(layer.identity_tuples()):
        values: Dict[str, Optional[float]] = {}
        for band_name in raster.band_names:
            coverage, value = per_band[band_name][i]
            values[band_name] = _clean_value(coverage, value)
            if values[band_name] is None:
                gap_count += 1
                logger.debug(
                    f"   No covered pixels: layer '{layer.key}' polygon #{i} "
                    f"{identity} band '{band_name}'"
                )
        rows.append(AggregateRow(identity=identity, depth=layer.depth, values=values))

    logger.info(
        f"   📊 Layer '{layer.key}': {len(rows)} polygon(s) × "
        f"{len(raster.band_names)} band(s) [{kind.value}], {gap_count} null value(s)"
    )
    return rows
