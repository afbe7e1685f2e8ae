"""
Level-Parallel Aggregation Module

Runs the zonal aggregator once per boundary level, in parallel.
- Thin worker calling zonal_aggregator.aggregate()
- Always uses parallel infrastructure (n_jobs=1 for sequential)
- Serialization layer for GeoDataFrame transport

Module Structure:
- level_orchestrator.py: Orchestrator + decision logic + serialization
- level_worker.py: Thin worker for a single level
"""

from admin_zonal_stats.parallel.level_orchestrator import (
    # Orchestrator functions
    aggregate_all_levels,
    should_use_parallel,
    get_effective_worker_count,
    # Serialization functions
    serialize_geodataframe,
    deserialize_geodataframe,
)
from admin_zonal_stats.parallel.level_worker import worker_aggregate_level

__all__ = [
    # Orchestrator
    "aggregate_all_levels",
    "should_use_parallel",
    "get_effective_worker_count",
    # Serialization
    "serialize_geodataframe",
    "deserialize_geodataframe",
    # Worker
    "worker_aggregate_level",
]
