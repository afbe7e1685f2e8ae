"""
Reshaper - wide (one column per band) to long (one row per polygon-band).

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Produce the pipeline's output table shape. Long format is
the default contract; wide format may be chosen when it suits the consumer
better. Both are registered in RESHAPERS and selected by configuration.

Long-format guarantees:
- Row order: wide row order, bands in wide column (= raster band) order
- Identity columns copied unchanged (nulls included)
- Purely row-expanding: no aggregation, no deduplication, no new nulls
- len(long) == len(wide) * n_bands

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import Callable, Dict, List

import pandas as pd

from admin_zonal_stats.models.data_models import (
    IdentitySchema,
    VALUE_COLUMN,
    VARIABLE_COLUMN,
)

logger = logging.getLogger("AdminZonal.Reshaper")


def band_columns(wide: pd.DataFrame, schema: IdentitySchema) -> List[str]:
    """Non-identity columns of a wide table, in column order."""
    identity = set(schema.columns)
    return [c for c in wide.columns if c not in identity]


def pivot_long(wide: pd.DataFrame, schema: IdentitySchema) -> pd.DataFrame:
    """
    Pivot a wide table into the long output contract.

    Args:
        wide: Output of level_merger.merge().
        schema: Run-wide identity schema.

    Returns:
        DataFrame with columns admin_name_0..admin_name_{D-1}, variable, value.
    """
    identity_columns = list(schema.columns)
    bands = band_columns(wide, schema)

    # melt() emits band-major order; the stable sort on the original row
    # position restores polygon-major order with bands in column order
    long = (
        wide.reset_index(drop=True)
        .melt(
            id_vars=identity_columns,
            value_vars=bands,
            var_name=VARIABLE_COLUMN,
            value_name=VALUE_COLUMN,
            ignore_index=False,
        )
        .sort_index(kind="mergesort")
        .reset_index(drop=True)
    )
    long = long.astype(
        {
            **{c: wide[c].dtype for c in identity_columns},
            VARIABLE_COLUMN: pd.StringDtype(),
            VALUE_COLUMN: pd.Float64Dtype(),
        }
    )

    logger.info(
        f"   🔁 Pivoted {len(wide)} wide row(s) × {len(bands)} band(s) "
        f"-> {len(long)} long row(s)"
    )
    return long[identity_columns + [VARIABLE_COLUMN, VALUE_COLUMN]]


def keep_wide(wide: pd.DataFrame, schema: IdentitySchema) -> pd.DataFrame:
    """Wide output strategy: the merged table as-is."""
    return wide.reset_index(drop=True).copy()


RESHAPERS: Dict[str, Callable[[pd.DataFrame, IdentitySchema], pd.DataFrame]] = {
    "long": pivot_long,
    "wide": keep_wide,
}


def reshape(wide: pd.DataFrame, schema: IdentitySchema, shape: str = "long") -> pd.DataFrame:
    """Dispatch to the configured output shape ("long" or "wide")."""
    try:
        strategy = RESHAPERS[shape]
    except KeyError:
        raise ValueError(
            f"Unknown output shape '{shape}', expected one of {list(RESHAPERS)}"
        ) from None
    return strategy(wide, schema)
