"""
Zonal statistics pipeline - composition of all stages.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Run validate -> aggregate (per level, parallel) -> merge ->
reshape -> persist on in-memory inputs. A run either completes fully or
raises; nothing is written unless every earlier stage succeeded.

Phases:
1. Validation: every input-shape check, before any work
2. Aggregation: one job per level (parallel/level_orchestrator.py)
3. Merge: per-level rows -> wide table with padded identity
4. Reshape: wide -> long (or keep wide, per output.shape)
5. Sink: atomic Parquet write (only when a destination is given)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import pandas as pd

from admin_zonal_stats.config_types import AppConfig, normalize_config
from admin_zonal_stats.level_merger import merge
from admin_zonal_stats.models.data_models import BoundaryLayer, RasterGrid
from admin_zonal_stats.parallel.level_orchestrator import aggregate_all_levels
from admin_zonal_stats.reshaper import reshape
from admin_zonal_stats.sink import write_table
from admin_zonal_stats.validation import validate_pipeline_inputs

logger = logging.getLogger("AdminZonal.Pipeline")


@dataclass
class PipelineResult:
    """Everything one pipeline run produced.

    Attributes:
        wide: Merged wide table (one row per polygon).
        table: Output table in the configured shape.
        shape: "long" or "wide".
        output_path: Persisted file, or None when no destination was given.
        timings: Seconds per phase.
        level_row_counts: Polygons aggregated per layer key.
    """

    wide: pd.DataFrame
    table: pd.DataFrame
    shape: str
    output_path: Optional[Path] = None
    timings: Dict[str, float] = field(default_factory=dict)
    level_row_counts: Dict[str, int] = field(default_factory=dict)

    def summary(self) -> str:
        """One-line description of the run."""
        return (
            f"{len(self.wide)} polygon(s) -> {len(self.table)} {self.shape} row(s)"
            + (f" -> {self.output_path}" if self.output_path else "")
        )


def run_zonal_pipeline(
    raster: RasterGrid,
    layers: Sequence[BoundaryLayer],
    config: Union[Dict[str, Any], AppConfig, None] = None,
    destination: Optional[Union[str, Path]] = None,
) -> PipelineResult:
    """
    Run the full pipeline on in-memory inputs.

    Args:
        raster: Measurement surface.
        layers: Boundary layers ordered by increasing depth (0 first).
        config: CONFIG dict or AppConfig; None uses defaults.
        destination: Parquet file to write; None skips persistence.

    Returns:
        PipelineResult with wide and output tables.

    Raises:
        InputShapeError: Any input-shape violation (before any work).
        LevelAggregationError: A level failed during aggregation.
        SinkError: The output could not be written.
    """
    app_config = normalize_config(config)
    schema = app_config.schema
    kind = app_config.aggregation.aggregation_kind
    timings: Dict[str, float] = {}

    # Phase 1: Validation
    t0 = time.perf_counter()
    validate_pipeline_inputs(
        raster, layers, schema, app_config.aggregation.duplicate_identity_policy
    )
    timings["validate"] = time.perf_counter() - t0

    # Phase 2: Aggregation (barrier: every level finishes before merge)
    t0 = time.perf_counter()
    levels = aggregate_all_levels(raster, layers, kind, schema, app_config)
    timings["aggregate"] = time.perf_counter() - t0

    # Phase 3: Merge
    t0 = time.perf_counter()
    wide = merge(
        levels,
        [layer.depth for layer in layers],
        schema,
        band_names=raster.band_names,
    )
    timings["merge"] = time.perf_counter() - t0

    # Phase 4: Reshape
    t0 = time.perf_counter()
    table = reshape(wide, schema, app_config.output.shape)
    timings["reshape"] = time.perf_counter() - t0

    # Phase 5: Sink
    output_path = None
    if destination is not None:
        t0 = time.perf_counter()
        output_path = write_table(
            table, destination, compression=app_config.output.parquet_compression
        )
        timings["write"] = time.perf_counter() - t0

    result = PipelineResult(
        wide=wide,
        table=table,
        shape=app_config.output.shape,
        output_path=output_path,
        timings=timings,
        level_row_counts={layer.key: len(rows) for layer, rows in zip(layers, levels)},
    )
    logger.info(f"✅ {result.summary()}")
    return result
