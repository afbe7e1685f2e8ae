#!/usr/bin/env python3
"""
Admin Zonal Stats - Main Entry Point

Aggregates every band of a raster surface over nested admin boundary
layers and writes one long-format Parquet table.

Usage:
    python -m admin_zonal_stats.main

Paths in CONFIG are resolved against ZONAL_WORKSPACE_ROOT (default: the
current working directory).
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Tuple

from admin_zonal_stats.config import CONFIG, _env_or_default
from admin_zonal_stats.config_types import AppConfig
from admin_zonal_stats.loaders import load_inputs
from admin_zonal_stats.pipeline import PipelineResult, run_zonal_pipeline

# ═══════════════════════════════════════════════════════════════════════════
# 🎯 MODULE-LEVEL CONFIG (Single Source of Truth)
# ═══════════════════════════════════════════════════════════════════════════
APP_CONFIG = AppConfig.from_dict(CONFIG)

WORKSPACE_ROOT = Path(_env_or_default("ZONAL_WORKSPACE_ROOT", str(Path.cwd())))


# ═══════════════════════════════════════════════════════════════════════════
# 📋 LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════


def setup_logging(
    app_config: AppConfig = APP_CONFIG, workspace_root: Path = WORKSPACE_ROOT
) -> Tuple[logging.Logger, Path]:
    """Configure logging with file and console handlers.

    Returns:
        Tuple of (logger, run_log_folder) where run_log_folder holds the
        main.log of this run, named run_{MMDD}_{HHMM}.
    """
    log_dir = app_config.file_paths.log_dir_path(workspace_root)
    timestamp = datetime.now().strftime("%m%d_%H%M")
    run_log_folder = log_dir / f"run_{timestamp}"
    run_log_folder.mkdir(parents=True, exist_ok=True)

    # Parent of every module logger ("AdminZonal.Aggregator", ...)
    logger = logging.getLogger("AdminZonal")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    fh = logging.FileHandler(run_log_folder / "main.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.INFO)
    ch.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(fh)
    logger.addHandler(ch)

    return logger, run_log_folder


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 RUN
# ═══════════════════════════════════════════════════════════════════════════


def _log_summary(result: PipelineResult, logger: logging.Logger) -> None:
    logger.info("=" * 60)
    logger.info("📊 RUN SUMMARY")
    logger.info("=" * 60)
    for key, count in result.level_row_counts.items():
        logger.info(f"   {key}: {count} polygon(s)")
    for phase, seconds in result.timings.items():
        logger.info(f"   ⏱️ {phase}: {seconds:.2f}s")
    logger.info(f"   {result.summary()}")


def run_from_config(
    app_config: AppConfig = APP_CONFIG, workspace_root: Path = WORKSPACE_ROOT
) -> PipelineResult:
    """Run the configured pipeline end to end: load, aggregate, write."""
    logger, run_log_folder = setup_logging(app_config, workspace_root)
    logger.info("=" * 60)
    logger.info("🎯 Admin Zonal Stats")
    logger.info("=" * 60)
    logger.info(f"   Log folder: {run_log_folder}")
    logger.info(f"   Hierarchy depth: {app_config.hierarchy.depth_count}")
    logger.info(f"   Reducer: {app_config.aggregation.kind}")
    logger.info(f"   Output shape: {app_config.output.shape}")

    output_path = (
        app_config.file_paths.output_dir_path(workspace_root)
        / app_config.output.file_name
    )
    total_start = time.perf_counter()

    try:
        load_start = time.perf_counter()
        raster, layers = load_inputs(app_config, workspace_root)
        load_time = time.perf_counter() - load_start

        result = run_zonal_pipeline(raster, layers, app_config, destination=output_path)
        result.timings = {"load": load_time, **result.timings}
        result.timings["total"] = time.perf_counter() - total_start

        _log_summary(result, logger)
        return result

    except Exception as e:
        logger.error(f"❌ Run failed: {e}")
        logger.exception("Traceback")
        raise


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════


if __name__ == "__main__":
    run_from_config()
