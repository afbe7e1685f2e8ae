#!/usr/bin/env python3
"""
Admin Zonal Stats - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for the zonal statistics pipeline.
Single source of truth for the admin hierarchy, input files, reducer,
output shape and parallel settings.

Configuration Sections (ordered by how often they change):
1. hierarchy: Static admin depth count and identity column naming
2. aggregation: Reducer and duplicate-identity policy
3. raster: Measurement surface file and band names
4. boundary_layers: One entry per admin depth (0 = coarsest)
5. output: Long/wide shape, file name, compression
6. parallel: Level-parallel dispatch settings
7. file_paths: Input/output/log directories (bottom - rarely changed)

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
from typing import Dict, Any, TypeVar, Callable, Optional

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "ZONAL_AGGREGATION_KIND")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("ZONAL_MAX_WORKERS", -1, int)
        -1  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value returns False; unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# ZONAL_AGGREGATION_KIND   - "sum" | "mean" | "count" | "min" | "max" (default: "sum")
# ZONAL_OUTPUT_SHAPE       - "long" or "wide" (default: "long")
# ZONAL_PARALLEL_ENABLED   - "true" or "false" (default: "true")
# ZONAL_MAX_WORKERS        - int, -1 = auto (default: -1)
#
# Example usage:
#   export ZONAL_AGGREGATION_KIND=mean
#   export ZONAL_OUTPUT_SHAPE=wide
#   python -m admin_zonal_stats.main
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 🧭 ADMIN HIERARCHY (fixed per pipeline configuration)
    # ═══════════════════════════════════════════════════════════════════════
    "hierarchy": {
        # Number of admin depths D; output carries admin_name_0..admin_name_{D-1}
        "depth_count": 3,
        # Identity column naming; must contain "{depth}"
        "column_template": "admin_name_{depth}",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🧮 AGGREGATION
    # ═══════════════════════════════════════════════════════════════════════
    "aggregation": {
        # Area-weighted sum: sum(pixel value * covered fraction)
        "kind": _env_or_default("ZONAL_AGGREGATION_KIND", "sum"),
        # Duplicate identity tuples are preserved in the output; this only
        # controls whether they are reported ("allow" | "warn" | "error")
        "duplicate_identity_policy": "warn",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🗺️ RASTER SURFACE
    # ═══════════════════════════════════════════════════════════════════════
    "raster": {
        "file_path": "Input/GLW4_livestock_2020.tif",
        # Explicit band names (None = use band descriptions, then band_{i})
        "band_names": ["cattle"],
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🧱 BOUNDARY LAYERS (one per depth, coarsest first)
    # ═══════════════════════════════════════════════════════════════════════
    # name_columns: source attribute per depth 0..depth, in order
    "boundary_layers": [
        {
            "depth": 0,
            "file_path": "Input/boundaries_admin0.gpkg",
            "layer": None,
            "name_columns": ["NAME_0"],
        },
        {
            "depth": 1,
            "file_path": "Input/boundaries_admin1.gpkg",
            "layer": None,
            "name_columns": ["NAME_0", "NAME_1"],
        },
        {
            "depth": 2,
            "file_path": "Input/boundaries_admin2.gpkg",
            "layer": None,
            "name_columns": ["NAME_0", "NAME_1", "NAME_2"],
        },
    ],
    # Reproject boundary vectors to the raster CRS while loading.
    # The pipeline itself never reprojects; mismatches are fatal.
    "reproject_boundaries_to_raster": True,
    # ═══════════════════════════════════════════════════════════════════════
    # 📤 OUTPUT
    # ═══════════════════════════════════════════════════════════════════════
    "output": {
        # "long" = one row per (polygon, band); "wide" = one row per polygon
        "shape": _env_or_default("ZONAL_OUTPUT_SHAPE", "long"),
        "file_name": "admin_zonal_stats.parquet",
        # Parquet codec ("zstd", "snappy", "gzip", "brotli", "none")
        "compression": "zstd",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # ⚡ PARALLEL PROCESSING
    # ═══════════════════════════════════════════════════════════════════════
    "parallel": {
        # Master toggle - set False to use n_jobs=1 (sequential execution)
        "enabled": _env_bool("ZONAL_PARALLEL_ENABLED", True),
        # Number of worker processes (-1 = auto, based on CPU cores)
        "max_workers": _env_or_default("ZONAL_MAX_WORKERS", -1, int),
        # Upper bound when auto-detecting; one worker per level is enough
        "optimal_workers_default": 4,
        # Minimum number of levels needed to justify process start-up
        "min_levels_for_parallel": 2,
        # Fall back to inline sequential processing if dispatch itself fails
        "fallback_on_error": True,
        # Joblib backend ("loky" = process-based, safe for CPU-bound)
        "backend": "loky",
        # Verbosity level for joblib progress output (0-10)
        "verbose": 0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📁 FILE PATHS (Rarely changed - at bottom)
    # ═══════════════════════════════════════════════════════════════════════
    "file_paths": {
        "output_dir": "Output",
        "log_dir": "logs",
    },
}
