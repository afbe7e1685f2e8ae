"""
Provider - load the raster surface and boundary layers from disk.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Turn configured files into a RasterGrid and BoundaryLayers.
Only used by the command-line entry point; the pipeline itself accepts
in-memory objects from any provider.

- Raster: rasterio, every band read as float64, nodata and CRS preserved
- Boundaries: geopandas, declared name columns renamed to identity columns
- Boundary vectors MAY be reprojected to the raster CRS here. Rasters are
  never reprojected.

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import geopandas as gpd
import numpy as np
import rasterio

from admin_zonal_stats.config_types import AppConfig, BoundaryLayerSourceConfig
from admin_zonal_stats.models.data_models import (
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
)

logger = logging.getLogger("AdminZonal.Loaders")


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ RASTER
# ═══════════════════════════════════════════════════════════════════════════


def _band_names(
    descriptions: Sequence[Optional[str]], explicit: Optional[Sequence[str]]
) -> Tuple[str, ...]:
    if explicit:
        if len(explicit) != len(descriptions):
            raise ValueError(
                f"{len(explicit)} band names configured for a "
                f"{len(descriptions)}-band raster"
            )
        return tuple(explicit)
    return tuple(
        desc if desc else f"band_{i + 1}" for i, desc in enumerate(descriptions)
    )


def load_raster(
    path: Union[str, Path], band_names: Optional[Sequence[str]] = None
) -> RasterGrid:
    """
    Read every band of a raster file into a RasterGrid.

    Args:
        path: Raster file (GeoTIFF or any GDAL-readable format).
        band_names: Explicit band names; defaults to band descriptions,
            then "band_1", "band_2", ...
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster not found: {path}")

    logger.info(f"📂 Loading raster: {path}")
    with rasterio.open(path) as src:
        data = src.read().astype(np.float64)
        names = _band_names(src.descriptions, band_names)
        bounds = (src.bounds.left, src.bounds.bottom, src.bounds.right, src.bounds.top)
        crs = src.crs.to_wkt() if src.crs is not None else None
        nodata = src.nodata

    logger.info(
        f"   ✅ {len(names)} band(s) {list(names)}, {data.shape[1]}×{data.shape[2]} px"
    )
    return RasterGrid(
        band_names=names,
        bands=tuple(data[i] for i in range(data.shape[0])),
        bounds=bounds,
        crs=crs,
        nodata=nodata,
    )


# ═══════════════════════════════════════════════════════════════════════════
# 🧱 BOUNDARIES
# ═══════════════════════════════════════════════════════════════════════════


def load_boundary_layer(
    path: Union[str, Path],
    depth: int,
    name_columns: Sequence[str],
    schema: IdentitySchema,
    target_crs: Optional[str] = None,
    layer: Optional[str] = None,
) -> BoundaryLayer:
    """
    Read one admin boundary file as a BoundaryLayer.

    Args:
        path: Vector file (GeoPackage, Shapefile, GeoJSON, ...).
        depth: Admin depth of this file.
        name_columns: Source attribute per depth 0..depth, in order.
        schema: Run-wide identity schema.
        target_crs: Reproject vectors to this CRS when it differs.
        layer: Layer name inside multi-layer containers.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")

    logger.info(f"📂 Loading boundaries (depth {depth}): {path}")
    gdf = gpd.read_file(path, layer=layer) if layer else gpd.read_file(path)

    if target_crs is not None:
        if gdf.crs is None:
            logger.warning(f"   ⚠️ {path.name} has no CRS; assigning raster CRS")
            gdf = gdf.set_crs(target_crs)
        elif not gdf.crs.equals(target_crs):
            logger.info(f"   🔄 Reprojecting {path.name} to raster CRS")
            gdf = gdf.to_crs(target_crs)

    boundary = BoundaryLayer.from_geodataframe(
        gdf, depth, schema, name_columns=name_columns, name=f"admin{depth}"
    )
    logger.info(f"   ✅ Loaded {len(boundary)} polygon(s)")
    return boundary


def load_inputs(
    app_config: AppConfig, workspace_root: Path
) -> Tuple[RasterGrid, List[BoundaryLayer]]:
    """
    Load the configured raster and every configured boundary layer.

    Paths in the config are resolved against workspace_root.
    """
    raster = load_raster(
        workspace_root / app_config.raster.file_path, app_config.raster.band_names
    )
    target_crs = raster.crs if app_config.reproject_boundaries_to_raster else None

    sources: List[BoundaryLayerSourceConfig] = sorted(
        app_config.boundary_layers, key=lambda s: s.depth
    )
    layers = [
        load_boundary_layer(
            workspace_root / source.file_path,
            source.depth,
            source.name_columns,
            app_config.schema,
            target_crs=target_crs,
            layer=source.layer,
        )
        for source in sources
    ]
    if not layers:
        raise ValueError("No boundary layers configured - check CONFIG['boundary_layers']")
    return raster, layers
