"""
Exception hierarchy for the zonal statistics pipeline.

Distinguishes between:
1. Input-shape errors (fatal, raised before any output is written)
2. Aggregation failures reported by parallel workers (fatal)
3. Sink failures (fatal, no partial file is ever visible)

Coverage gaps (a polygon with no covered pixels) are NOT exceptions: they
surface as null values in the output table.
"""


class ZonalPipelineError(Exception):
    """Base class for every fatal pipeline error."""


# ═══════════════════════════════════════════════════════════════════════════
# 📐 INPUT-SHAPE ERRORS
# ═══════════════════════════════════════════════════════════════════════════


class InputShapeError(ZonalPipelineError, ValueError):
    """
    Inputs do not satisfy the pipeline contract.

    Subclasses ValueError so callers validating arguments can catch it
    without importing this module.
    """


class SpatialReferenceMismatchError(InputShapeError):
    """Raster and a boundary layer do not share one CRS."""


class BandNameCollisionError(InputShapeError):
    """A raster band name is duplicated or collides with a reserved column."""


class LayerDepthError(InputShapeError):
    """Layer depths are out of range or not strictly increasing."""


class IdentityCompletenessError(InputShapeError):
    """A polygon is missing an admin name at or above its own depth."""


class DuplicateIdentityError(InputShapeError):
    """Two polygons share one identity tuple (only with policy='error')."""


class MissingGeometryError(InputShapeError):
    """A polygon has a null or empty geometry."""


class NoOverlapError(InputShapeError):
    """No polygon of a non-empty layer intersects the raster extent."""


class LevelSchemaError(InputShapeError):
    """Rows of the merged table disagree on their band column set."""


# ═══════════════════════════════════════════════════════════════════════════
# ⚡ RUNTIME ERRORS
# ═══════════════════════════════════════════════════════════════════════════


class LevelAggregationError(ZonalPipelineError):
    """
    One or more per-level aggregation workers failed.

    Attributes:
        failures: Mapping of level key -> error message.
    """

    def __init__(self, failures):
        self.failures = dict(failures)
        details = "; ".join(f"{key}: {msg}" for key, msg in self.failures.items())
        super().__init__(f"Aggregation failed for {len(self.failures)} level(s): {details}")


class SinkError(ZonalPipelineError, OSError):
    """Persisting the output table failed; no output file was left behind."""


__all__ = [
    "ZonalPipelineError",
    "InputShapeError",
    "SpatialReferenceMismatchError",
    "BandNameCollisionError",
    "LayerDepthError",
    "IdentityCompletenessError",
    "DuplicateIdentityError",
    "NoOverlapError",
    "LevelSchemaError",
    "LevelAggregationError",
    "SinkError",
]
