"""
Input validation for the zonal statistics pipeline.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Reject malformed inputs BEFORE any aggregation or output.
Every check raises an InputShapeError subclass whose message names the
offending layer, polygon row or band.

Checks (in order):
1. Band names: unique, non-empty, no collision with reserved columns
2. Layer depths: inside [0, D) and strictly increasing
3. Spatial reference: each layer shares the raster CRS
4. Identity completeness: names present for depths 0..k on every polygon
5. Geometries: present and non-empty on every polygon
6. Duplicate identity tuples: reported per policy (never removed)

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from collections import Counter
from typing import Any, List, Optional, Sequence

from pyproj import CRS
from pyproj.exceptions import CRSError

from admin_zonal_stats.exceptions import (
    BandNameCollisionError,
    DuplicateIdentityError,
    IdentityCompletenessError,
    LayerDepthError,
    MissingGeometryError,
    SpatialReferenceMismatchError,
)
from admin_zonal_stats.models.data_models import (
    BoundaryLayer,
    IdentitySchema,
    RasterGrid,
)

logger = logging.getLogger("AdminZonal.Validation")


# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ BAND NAMES
# ═══════════════════════════════════════════════════════════════════════════


def validate_band_names(band_names: Sequence[str], schema: IdentitySchema) -> None:
    """Reject empty, duplicated or reserved band names."""
    empty = [i for i, name in enumerate(band_names) if not str(name).strip()]
    if empty:
        raise BandNameCollisionError(f"Band(s) at position {empty} have empty names")

    duplicates = sorted(n for n, c in Counter(band_names).items() if c > 1)
    if duplicates:
        raise BandNameCollisionError(f"Duplicate band names: {duplicates}")

    reserved = set(schema.reserved_names)
    collisions = [name for name in band_names if name in reserved]
    if collisions:
        raise BandNameCollisionError(
            f"Band name(s) {collisions} collide with reserved columns "
            f"{list(schema.reserved_names)}"
        )


# ═══════════════════════════════════════════════════════════════════════════
# 🧭 LAYER DEPTHS
# ═══════════════════════════════════════════════════════════════════════════


def validate_layer_depths(depths: Sequence[int], schema: IdentitySchema) -> None:
    """Depths must lie in [0, D) and be strictly increasing."""
    for depth in depths:
        if not 0 <= depth < schema.depth_count:
            raise LayerDepthError(
                f"Layer depth {depth} outside configured hierarchy "
                f"[0, {schema.depth_count})"
            )
    for previous, current in zip(depths, depths[1:]):
        if current <= previous:
            raise LayerDepthError(
                f"Layers must be ordered by strictly increasing depth, "
                f"got {list(depths)}"
            )


# ═══════════════════════════════════════════════════════════════════════════
# 🌐 SPATIAL REFERENCE
# ═══════════════════════════════════════════════════════════════════════════


def _to_crs(value: Any) -> Optional[CRS]:
    if value is None:
        return None
    try:
        return CRS.from_user_input(value)
    except CRSError as e:
        raise SpatialReferenceMismatchError(f"Unreadable CRS {value!r}: {e}") from e


def crs_matches(raster_crs: Any, layer_crs: Any) -> bool:
    """True when both CRS are equal, or both are undefined."""
    left, right = _to_crs(raster_crs), _to_crs(layer_crs)
    if left is None or right is None:
        return left is None and right is None
    return left.equals(right, ignore_axis_order=True)


def validate_spatial_reference(raster: RasterGrid, layer: BoundaryLayer) -> None:
    """Raster and layer must share one CRS; reprojection is the loader's job."""
    if not crs_matches(raster.crs, layer.crs):
        raster_name = _to_crs(raster.crs).name if raster.crs is not None else None
        layer_name = layer.crs.name if layer.crs is not None else None
        raise SpatialReferenceMismatchError(
            f"Layer '{layer.key}' (depth {layer.depth}) CRS {layer_name!r} "
            f"does not match raster CRS {raster_name!r}"
        )
    if raster.crs is None:
        logger.warning(
            f"⚠️ Raster and layer '{layer.key}' have no CRS; assuming one frame"
        )


# ═══════════════════════════════════════════════════════════════════════════
# 🪪 IDENTITY COMPLETENESS & DUPLICATES
# ═══════════════════════════════════════════════════════════════════════════


def validate_identity_completeness(layer: BoundaryLayer) -> None:
    """Every polygon needs a name at each depth 0..layer.depth."""
    for row_index, identity in enumerate(layer.identity_tuples()):
        missing = [d for d, name in enumerate(identity) if name is None]
        if missing:
            raise IdentityCompletenessError(
                f"Layer '{layer.key}' (depth {layer.depth}) polygon #{row_index} "
                f"{identity} has no name at depth(s) {missing}"
            )


def validate_geometries(layer: BoundaryLayer) -> None:
    """Every polygon needs a non-empty geometry."""
    geometries = layer.frame.geometry
    missing = geometries.isna() | geometries.is_empty
    if missing.any():
        row_index = int(missing.to_numpy().nonzero()[0][0])
        identity = layer.identity_tuples()[row_index]
        raise MissingGeometryError(
            f"Layer '{layer.key}' (depth {layer.depth}) polygon #{row_index} "
            f"{identity} has no geometry ({int(missing.sum())} polygon(s) affected)"
        )


def find_duplicate_identities(layers: Sequence[BoundaryLayer]) -> List[tuple]:
    """Identity tuples occurring more than once within any single layer."""
    duplicates = []
    for layer in layers:
        counts = Counter(layer.identity_tuples())
        duplicates.extend(identity for identity, c in counts.items() if c > 1)
    return duplicates


def check_duplicate_identities(
    layers: Sequence[BoundaryLayer], policy: str = "warn"
) -> List[tuple]:
    """
    Report duplicate identity tuples according to policy.

    Duplicates are always preserved in the output; the policy only decides
    whether they are ignored ("allow"), logged ("warn") or fatal ("error").

    Returns:
        The duplicate identity tuples found.
    """
    if policy == "allow":
        return []
    duplicates = find_duplicate_identities(layers)
    if not duplicates:
        return duplicates
    if policy == "error":
        raise DuplicateIdentityError(
            f"{len(duplicates)} duplicate identity tuple(s): {duplicates[:10]}"
        )
    logger.warning(
        f"⚠️ {len(duplicates)} duplicate identity tuple(s) kept as separate rows: "
        f"{duplicates[:10]}"
    )
    return duplicates


# ═══════════════════════════════════════════════════════════════════════════
# 🚦 ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════


def validate_pipeline_inputs(
    raster: RasterGrid,
    layers: Sequence[BoundaryLayer],
    schema: IdentitySchema,
    duplicate_policy: str = "warn",
) -> None:
    """
    Run every input-shape check; raises on the first violation.

    Args:
        raster: Measurement surface.
        layers: Boundary layers, coarsest first.
        schema: Run-wide identity schema.
        duplicate_policy: "allow", "warn" or "error".
    """
    validate_band_names(raster.band_names, schema)
    validate_layer_depths([layer.depth for layer in layers], schema)
    for layer in layers:
        expected = schema.columns_for(layer.depth)
        if tuple(layer.identity_columns) != expected:
            raise LayerDepthError(
                f"Layer '{layer.key}' carries identity columns "
                f"{list(layer.identity_columns)}, expected {list(expected)} "
                f"for depth {layer.depth}"
            )
        validate_spatial_reference(raster, layer)
        validate_identity_completeness(layer)
        validate_geometries(layer)
    check_duplicate_identities(layers, duplicate_policy)
    logger.info(
        f"✅ Inputs valid: {len(raster.band_names)} band(s), "
        f"{len(layers)} layer(s), {sum(len(layer) for layer in layers)} polygon(s)"
    )
