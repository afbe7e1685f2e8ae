"""
Admin Zonal Stats

Area-weighted zonal statistics of raster bands over nested admin boundary
layers, unified into one long-format table.
"""

from admin_zonal_stats.config import CONFIG
from admin_zonal_stats.pipeline import PipelineResult, run_zonal_pipeline

__all__ = ["run_zonal_pipeline", "PipelineResult", "CONFIG"]
