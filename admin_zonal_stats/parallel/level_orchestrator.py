"""
Orchestrator for level-parallel zonal aggregation.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Dispatch every boundary level to a worker, wait for all of
them (barrier), and return their AggregateRow lists in depth order.

Each level reads only the shared, read-only raster and its own polygons,
so levels are independent and need no locking.

Patterns:
- should_use_parallel() check for environment validation
- Serialize layers ONCE before dispatch (avoid per-worker overhead)
- joblib Parallel with delayed for process-based parallelism
- Always uses the parallel infrastructure (n_jobs=1 for sequential)
- Result collection; any failed level is fatal for the run

Key Functions:
- aggregate_all_levels(): Main entry point
- _dispatch_levels(): Parallel job dispatch (also handles n_jobs=1)
- serialize_geodataframe(): GeoDataFrame -> (records, crs_string)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import os
import time
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union

import geopandas as gpd
import pandas as pd
from shapely import wkt

from admin_zonal_stats.config_types import AppConfig, normalize_config
from admin_zonal_stats.exceptions import LevelAggregationError
from admin_zonal_stats.models.data_models import (
    AggregateRow,
    AggregationKind,
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
    aggregate_rows_from_dicts,
)

logger = logging.getLogger("AdminZonal.Parallel.Orchestrator")


# ═══════════════════════════════════════════════════════════════════════════
# 📦 GEODATAFRAME SERIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def serialize_geodataframe(gdf: gpd.GeoDataFrame) -> Tuple[List[Dict], str]:
    """
    Serialize GeoDataFrame to list of records with WKT geometry.

    Converts a GeoDataFrame to a picklable format for transport
    between worker processes.

    Returns:
        Tuple of (records_list, crs_string)
        - records_list: List of dicts, one per row, geometry as WKT string
        - crs_string: CRS as string (e.g., "EPSG:32737") or empty string
    """
    crs_str = str(gdf.crs) if gdf is not None and gdf.crs else ""
    if gdf is None or gdf.empty:
        return [], crs_str

    geometry_column = gdf.geometry.name
    records = []
    for record in gdf.to_dict(orient="records"):
        geom = record.pop(geometry_column, None)
        record["geometry"] = geom.wkt if geom is not None else None
        records.append(record)
    return records, crs_str


def deserialize_geodataframe(
    records: List[Dict],
    crs_str: str,
    columns: Optional[Sequence[str]] = None,
) -> gpd.GeoDataFrame:
    """
    Reconstruct GeoDataFrame from serialized records.

    Args:
        records: List of dicts with WKT geometry strings
        crs_str: CRS string (e.g., "EPSG:32737"), "" for none
        columns: Attribute columns to create when records is empty

    Returns:
        Reconstructed GeoDataFrame with proper geometry and CRS
    """
    crs = crs_str or None
    if not records:
        data = {c: pd.Series([], dtype="object") for c in (columns or [])}
        return gpd.GeoDataFrame(data, geometry=gpd.GeoSeries([], crs=crs), crs=crs)

    rows = []
    for record in records:
        record = dict(record)
        geom = record.get("geometry")
        record["geometry"] = wkt.loads(geom) if isinstance(geom, str) else None
        rows.append(record)

    return gpd.GeoDataFrame(pd.DataFrame(rows), geometry="geometry", crs=crs)


# ═══════════════════════════════════════════════════════════════════════════
# 🔍 PARALLEL DECISION LOGIC
# ═══════════════════════════════════════════════════════════════════════════


def should_use_parallel(
    n_levels: int,
    config: Union[Dict[str, Any], AppConfig, None],
) -> Tuple[bool, str]:
    """
    Determine if parallel processing should be used.

    Args:
        n_levels: Number of boundary levels to aggregate.
        config: Main CONFIG dictionary or AppConfig object.

    Returns:
        Tuple of (should_use: bool, reason: str).
    """
    parallel = normalize_config(config).parallel

    if not parallel.enabled:
        return False, "Parallel disabled in config"

    if n_levels < parallel.min_levels_for_parallel:
        return False, (
            f"Only {n_levels} level(s) (< {parallel.min_levels_for_parallel} threshold)"
        )

    if parallel.max_workers == 1:
        return False, "max_workers=1"

    return True, f"OK ({n_levels} levels)"


def get_effective_worker_count(
    n_levels: int,
    config: Union[Dict[str, Any], AppConfig, None],
) -> int:
    """
    Calculate worker count from level count and config.

    Never more workers than levels; at least one.
    """
    parallel = normalize_config(config).parallel
    max_workers = parallel.max_workers

    if max_workers == -1:
        cpu_count = os.cpu_count() or 4
        max_workers = min(cpu_count, parallel.optimal_workers_default)

    return max(1, min(max_workers, n_levels))


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 MAIN ORCHESTRATOR FUNCTION
# ═══════════════════════════════════════════════════════════════════════════


def aggregate_all_levels(
    raster: RasterGrid,
    layers: Sequence[BoundaryLayer],
    kind: Union[AggregationKind, str],
    schema: IdentitySchema,
    config: Union[Dict[str, Any], AppConfig, None] = None,
) -> List[List[AggregateRow]]:
    """
    Aggregate every boundary level against the raster.

    Args:
        raster: Shared measurement surface.
        layers: Boundary layers, coarsest first.
        kind: Reducer.
        schema: Run-wide identity schema.
        config: CONFIG dict or AppConfig (parallel section is used).

    Returns:
        One AggregateRow list per layer, in the order of `layers`.

    Raises:
        LevelAggregationError: One or more levels failed.
    """
    start_time = time.time()
    app_config = normalize_config(config)
    kind = AggregationKind.from_string(kind)
    n_levels = len(layers)

    logger.info(f"🧮 Aggregating {n_levels} level(s) [{kind.value}]")
    if n_levels == 0:
        return []

    use_parallel, reason = should_use_parallel(n_levels, app_config)
    n_workers = get_effective_worker_count(n_levels, app_config) if use_parallel else 1
    if not use_parallel:
        reason = f"{reason} -> using n_jobs=1"
    logger.info(f"   ⚡ Using parallel processing: {reason}")

    results = _dispatch_levels(raster, layers, kind, schema, app_config, n_workers)
    levels = _collect_results(results, layers)

    elapsed = time.time() - start_time
    logger.info(
        f"✅ Aggregated {sum(len(rows) for rows in levels)} polygon(s) "
        f"in {elapsed:.1f}s"
    )
    return levels


# ═══════════════════════════════════════════════════════════════════════════
# ⚡ PARALLEL DISPATCH
# ═══════════════════════════════════════════════════════════════════════════


def _dispatch_levels(
    raster: RasterGrid,
    layers: Sequence[BoundaryLayer],
    kind: AggregationKind,
    schema: IdentitySchema,
    app_config: AppConfig,
    n_workers: int,
) -> List[Dict[str, Any]]:
    """
    Dispatch one job per level and wait for all of them.

    Uses joblib Parallel (loky backend by default). If the dispatch machinery
    itself fails and fallback_on_error is set, levels run inline instead.
    """
    from joblib import Parallel, delayed
    from admin_zonal_stats.parallel.level_worker import worker_aggregate_level

    parallel_config = app_config.parallel

    # Serialize inputs ONCE (expensive operation done before parallel)
    jobs = []
    for layer in layers:
        records, crs_str = serialize_geodataframe(layer.frame)
        jobs.append(
            dict(
                level_key=layer.key,
                depth=layer.depth,
                layer_records=records,
                layer_crs=crs_str,
                identity_columns=list(layer.identity_columns),
                raster=raster,
                kind=kind.value,
                depth_count=schema.depth_count,
                column_template=schema.column_template,
            )
        )
        logger.info(f"   📦 {layer.key}: {len(records)} polygon(s) serialized")

    logger.info(f"🚀 Dispatching {len(jobs)} level(s) to {n_workers} worker(s)...")

    try:
        dispatch_start = time.time()
        results = list(
            Parallel(
                n_jobs=n_workers,
                backend=parallel_config.backend,
                verbose=parallel_config.verbose,
            )(delayed(worker_aggregate_level)(**job) for job in jobs)
        )
        logger.info(
            f"   ⏱️ Parallel dispatch completed in {time.time() - dispatch_start:.1f}s"
        )
    except (ImportError, RuntimeError, OSError) as e:
        logger.warning(f"⚠️ Parallel dispatch failed: {e}")
        if not parallel_config.fallback_on_error:
            raise
        logger.info("📋 Falling back to inline sequential processing...")
        results = []
        for i, job in enumerate(jobs):
            logger.info(f"📋 Processing {i + 1}/{len(jobs)}: {job['level_key']}")
            results.append(worker_aggregate_level(**job))

    return results


# ═══════════════════════════════════════════════════════════════════════════
# 📦 RESULT COLLECTION
# ═══════════════════════════════════════════════════════════════════════════


def _collect_results(
    results_list: List[Optional[Dict[str, Any]]],
    layers: Sequence[BoundaryLayer],
) -> List[List[AggregateRow]]:
    """
    Rebuild AggregateRow lists in layer order, failing on any worker error.

    joblib returns results in submission order, so results_list is parallel
    to layers.

    Raises:
        LevelAggregationError: Listing every failed (or missing) level.
    """
    failures: Dict[str, str] = {}
    levels: List[List[AggregateRow]] = []
    padded = list(results_list) + [None] * (len(layers) - len(results_list))
    for layer, result in zip(layers, padded):
        if result is None:
            failures[layer.key] = "no result returned"
            continue
        if not result.get("success"):
            failures[layer.key] = (
                f"{result.get('error_type') or 'Error'}: "
                f"{result.get('error', 'Unknown error')}"
            )
            continue
        levels.append(aggregate_rows_from_dicts(result.get("rows", [])))
        logger.info(
            f"   ✅ {layer.key} (depth {layer.depth}): {result.get('row_count', 0)} "
            f"row(s) in {result.get('duration_seconds', 0):.2f}s"
        )

    if failures:
        for key, message in failures.items():
            logger.error(f"❌ {key}: {message}")
        raise LevelAggregationError(failures)

    return levels


# ═══════════════════════════════════════════════════════════════════════════
# 📦 MODULE EXPORTS
# ═══════════════════════════════════════════════════════════════════════════

__all__ = [
    # Main entry point
    "aggregate_all_levels",
    # Parallel decision functions
    "should_use_parallel",
    "get_effective_worker_count",
    # Serialization functions
    "serialize_geodataframe",
    "deserialize_geodataframe",
]
