"""
Worker function for aggregating a single boundary level.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Aggregate one layer against the shared raster.
THIN WRAPPER pattern - calls zonal_aggregator.aggregate() and converts the
result to a picklable dict.

Follows the orchestrator/worker contract:
- Accept only primitive/serializable parameters (plus the read-only raster)
- Return dict with success/error status; never raise across the boundary
- No business logic duplication
- Quiet logging (no progress output to avoid interleaving)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import time
from typing import Any, Dict, List, Sequence

from admin_zonal_stats.models.data_models import (
    AggregationKind,
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
    aggregate_rows_to_dicts,
)
from admin_zonal_stats.parallel.level_orchestrator import deserialize_geodataframe
from admin_zonal_stats.zonal_aggregator import aggregate


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 WORKER LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════


def _setup_worker_logging(level_key: str) -> logging.Logger:
    """
    Configure logging for this worker process.

    Creates a named logger per level so messages from parallel workers can
    be told apart.
    """
    logger = logging.getLogger(f"AdminZonal.Worker.{level_key}")
    logger.setLevel(logging.INFO)
    return logger


# ═══════════════════════════════════════════════════════════════════════════
# 📊 WORKER RESULT HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _create_empty_result(level_key: str, depth: int) -> Dict[str, Any]:
    """Initial result structure with default values."""
    return {
        "key": level_key,
        "depth": depth,
        "success": False,
        "rows": [],
        "row_count": 0,
        "duration_seconds": 0,
        "error": None,
        "error_type": None,
    }


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 MAIN WORKER FUNCTION
# ═══════════════════════════════════════════════════════════════════════════


def worker_aggregate_level(
    level_key: str,
    depth: int,
    layer_records: List[Dict[str, Any]],
    layer_crs: str,
    identity_columns: Sequence[str],
    raster: RasterGrid,
    kind: str,
    depth_count: int,
    column_template: str,
) -> Dict[str, Any]:
    """
    Aggregate one serialized boundary layer.

    Args:
        level_key: Label of the layer (logger name, result key).
        depth: Nesting depth of the layer.
        layer_records: Serialized polygons (WKT geometry + identity columns).
        layer_crs: CRS string of the layer ("" when undefined).
        identity_columns: Identity columns the layer carries (0..depth).
        raster: Shared read-only raster.
        kind: AggregationKind value ("sum", "mean", ...).
        depth_count: Hierarchy depth D.
        column_template: Identity column name template.

    Returns:
        Dict with keys: key, depth, success, rows (AggregateRow dicts),
        row_count, duration_seconds, error, error_type.
    """
    logger = _setup_worker_logging(level_key)
    start_time = time.time()
    result = _create_empty_result(level_key, depth)

    try:
        schema = IdentitySchema(depth_count=depth_count, column_template=column_template)
        gdf = deserialize_geodataframe(
            layer_records, layer_crs, columns=list(identity_columns)
        )
        layer = BoundaryLayer.from_geodataframe(gdf, depth, schema, name=level_key)

        rows = aggregate(layer, raster, AggregationKind.from_string(kind), schema)

        result["rows"] = aggregate_rows_to_dicts(rows)
        result["row_count"] = len(rows)
        result["success"] = True
    except Exception as e:
        logger.error(f"❌ Level {level_key} failed: {e}")
        result["error"] = str(e)
        result["error_type"] = type(e).__name__

    result["duration_seconds"] = time.time() - start_time
    return result
