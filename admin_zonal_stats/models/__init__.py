"""Data models package for typed raster, boundary and aggregate structures."""

from .data_models import (
    AggregationKind,
    EXACTEXTRACT_OPS,
    VARIABLE_COLUMN,
    VALUE_COLUMN,
    IdentitySchema,
    RasterGrid,
    BoundaryLayer,
    AggregateRow,
    # Batch conversion utilities
    aggregate_rows_from_dicts,
    aggregate_rows_to_dicts,
)

__all__ = [
    # Enums and constants
    "AggregationKind",
    "EXACTEXTRACT_OPS",
    "VARIABLE_COLUMN",
    "VALUE_COLUMN",
    # Models
    "IdentitySchema",
    "RasterGrid",
    "BoundaryLayer",
    "AggregateRow",
    # Batch conversion utilities
    "aggregate_rows_from_dicts",
    "aggregate_rows_to_dicts",
]
