"""
Level Merger - stack per-level aggregates into one wide table.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Unify the AggregateRow lists of every nesting level into a
single DataFrame with one identical column set:

    admin_name_0 .. admin_name_{D-1} | band_1 .. band_n

Rules:
- Identity columns deeper than a row's own depth hold pd.NA (never "" or 0),
  so consumers can select "exactly depth k" with an is-null filter.
- Levels are stacked in increasing depth order; polygon order within a
  level is preserved.
- Band columns must agree across all rows. A mismatch is a configuration
  error and is raised, never coerced.
- Duplicate identity tuples are kept as separate rows.

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from admin_zonal_stats.exceptions import LayerDepthError, LevelSchemaError
from admin_zonal_stats.models.data_models import AggregateRow, IdentitySchema
from admin_zonal_stats.validation import validate_layer_depths

logger = logging.getLogger("AdminZonal.Merger")

IDENTITY_DTYPE = pd.StringDtype()
VALUE_DTYPE = pd.Float64Dtype()


def _reference_bands(
    levels: Sequence[Sequence[AggregateRow]], band_names: Optional[Sequence[str]]
) -> Tuple[str, ...]:
    if band_names is not None:
        return tuple(band_names)
    for rows in levels:
        if rows:
            return rows[0].band_names
    return ()


def empty_wide_table(
    schema: IdentitySchema, band_names: Sequence[str] = ()
) -> pd.DataFrame:
    """Zero-row wide table with the full typed column set."""
    columns = {c: pd.Series([], dtype=IDENTITY_DTYPE) for c in schema.columns}
    columns.update({b: pd.Series([], dtype=VALUE_DTYPE) for b in band_names})
    return pd.DataFrame(columns)


def merge(
    levels: Sequence[Sequence[AggregateRow]],
    layer_depths: Sequence[int],
    schema: IdentitySchema,
    band_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Row-stack per-level aggregates into one wide table.

    Args:
        levels: AggregateRow list per level, parallel to layer_depths.
        layer_depths: Declared depth of each level, strictly increasing.
        schema: Run-wide identity schema (fixes D).
        band_names: Expected band columns in raster order. Inferred from the
            first row when omitted; required to type an all-empty result.

    Returns:
        Wide DataFrame: identity columns (string, pd.NA padded) then band
        columns (Float64), RangeIndex.

    Raises:
        LayerDepthError: Depth list malformed or a row at the wrong depth.
        LevelSchemaError: A row's band set differs from the reference.
    """
    if len(levels) != len(layer_depths):
        raise LayerDepthError(
            f"{len(levels)} level result(s) given for {len(layer_depths)} depth(s)"
        )
    validate_layer_depths(list(layer_depths), schema)

    bands = _reference_bands(levels, band_names)
    identity_records: List[Tuple] = []
    value_records: List[Tuple] = []

    for depth, rows in zip(layer_depths, levels):
        for i, row in enumerate(rows):
            if row.depth != depth:
                raise LayerDepthError(
                    f"Row #{i} {row.identity} reports depth {row.depth} "
                    f"inside level declared as depth {depth}"
                )
            if row.band_names != bands:
                raise LevelSchemaError(
                    f"Level depth {depth} row #{i} {row.identity} has bands "
                    f"{list(row.band_names)}, expected {list(bands)}"
                )
            identity_records.append(row.padded_identity(schema.depth_count))
            value_records.append(tuple(row.values[b] for b in bands))
        logger.debug(f"   Level depth {depth}: {len(rows)} row(s) stacked")

    if not identity_records:
        return empty_wide_table(schema, bands)

    identity = pd.DataFrame(identity_records, columns=list(schema.columns)).astype(
        IDENTITY_DTYPE
    )
    values = pd.DataFrame(value_records, columns=list(bands), dtype="object")
    values = values.astype(VALUE_DTYPE)
    wide = pd.concat([identity, values], axis=1)

    logger.info(
        f"   🧩 Merged {len(levels)} level(s) into {len(wide)} row(s) × "
        f"{len(bands)} band column(s)"
    )
    return wide
