"""
Typed data models for the zonal statistics pipeline.

Architectural Overview:
=======================
This module contains the immutable value objects that flow between pipeline
stages. Tables (wide and long) stay pandas DataFrames; everything that has an
invariant worth enforcing gets a frozen dataclass here.

Key Interactions:
-----------------
- Input: loaders.py (or tests) build RasterGrid and BoundaryLayer instances
- Processing: zonal_aggregator.py emits AggregateRow lists, one per layer
- Output: level_merger.py pads AggregateRow identities using IdentitySchema
- Navigation: Use VS Code outline (Ctrl+Shift+O) for quick navigation

Data Flow:
----------
1. Provider builds one RasterGrid and N BoundaryLayers (depth 0..N-1)
2. Aggregator produces AggregateRow(identity[0..k], depth=k, values)
3. Merger pads identity to IdentitySchema.depth_count with explicit nulls
4. as_dict()/from_dict() carry rows across joblib worker boundaries

MODIFICATION POINT: Add new reducers to AggregationKind (and EXACTEXTRACT_OPS)
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Any, List, Tuple, Mapping, Sequence

import numpy as np
import pandas as pd
import geopandas as gpd

from admin_zonal_stats.exceptions import InputShapeError


# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ ENUMS SECTION
# ═══════════════════════════════════════════════════════════════════════════


class AggregationKind(Enum):
    """Reducer applied to the coverage-weighted pixels of each polygon.

    SUM is the pipeline default: sum(value * covered_fraction).
    """

    SUM = "sum"
    MEAN = "mean"
    COUNT = "count"
    MIN = "min"
    MAX = "max"

    @classmethod
    def from_string(cls, s: str) -> "AggregationKind":
        """Convert a config string to AggregationKind.

        Args:
            s: Case-insensitive reducer name ("sum", "mean", ...)

        Returns:
            Matching AggregationKind member

        Raises:
            ValueError: If the name is not one of the supported reducers
        """
        if isinstance(s, AggregationKind):
            return s
        for member in cls:
            if member.value == str(s).strip().lower():
                return member
        valid = [m.value for m in cls]
        raise ValueError(f"aggregation kind must be one of {valid}, got '{s}'")

    @property
    def operation(self) -> str:
        """exactextract operation name for this reducer."""
        return EXACTEXTRACT_OPS[self]


EXACTEXTRACT_OPS: Dict[AggregationKind, str] = {
    AggregationKind.SUM: "sum",
    AggregationKind.MEAN: "mean",
    AggregationKind.COUNT: "count",
    AggregationKind.MIN: "min",
    AggregationKind.MAX: "max",
}

# Long-format value columns; identity columns may never use these names
VARIABLE_COLUMN = "variable"
VALUE_COLUMN = "value"


# ═══════════════════════════════════════════════════════════════════════════
# 🧭 IDENTITY SCHEMA SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class IdentitySchema:
    """Static admin hierarchy layout shared by every table in a run.

    depth_count is fixed by configuration; the identity columns are never
    inferred from whatever attribute names a boundary file happens to carry.

    Usage Examples:
    ---------------
    ```python
    schema = IdentitySchema(depth_count=3)
    schema.columns          # ("admin_name_0", "admin_name_1", "admin_name_2")
    schema.columns_for(1)   # ("admin_name_0", "admin_name_1")
    ```
    """

    depth_count: int = 3
    column_template: str = "admin_name_{depth}"

    def __post_init__(self) -> None:
        if self.depth_count < 1:
            raise ValueError(f"depth_count must be >= 1, got {self.depth_count}")
        if "{depth}" not in self.column_template:
            raise ValueError(
                f"column_template must contain '{{depth}}', got '{self.column_template}'"
            )

    @property
    def columns(self) -> Tuple[str, ...]:
        """Identity column names for depths 0..D-1."""
        return tuple(
            self.column_template.format(depth=d) for d in range(self.depth_count)
        )

    def columns_for(self, depth: int) -> Tuple[str, ...]:
        """Identity columns a layer of the given depth carries (0..depth)."""
        self.check_depth(depth)
        return self.columns[: depth + 1]

    def check_depth(self, depth: int) -> None:
        if not 0 <= depth < self.depth_count:
            raise InputShapeError(
                f"depth {depth} outside configured hierarchy [0, {self.depth_count})"
            )

    @property
    def reserved_names(self) -> Tuple[str, ...]:
        """Column names a raster band may not use."""
        return self.columns + (VARIABLE_COLUMN, VALUE_COLUMN)


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ RASTER GRID SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """Named bands on one georeferenced pixel grid.

    Row 0 of every band array is the northern edge (GDAL convention).

    Attributes:
        band_names: Ordered band names; become `variable` values downstream
        bands: One 2D float array per band, all of identical shape
        bounds: (xmin, ymin, xmax, ymax) of the grid in `crs` units
        crs: Any pyproj-compatible CRS string (WKT, "EPSG:xxxx"), or None
        nodata: Pixel value excluded from every aggregate, or None
    """

    band_names: Tuple[str, ...]
    bands: Tuple[np.ndarray, ...]
    bounds: Tuple[float, float, float, float]
    crs: Optional[str] = None
    nodata: Optional[float] = None

    def __post_init__(self) -> None:
        names = tuple(str(n) for n in self.band_names)
        arrays = tuple(np.asarray(b, dtype="float64") for b in self.bands)
        object.__setattr__(self, "band_names", names)
        object.__setattr__(self, "bands", arrays)
        object.__setattr__(self, "bounds", tuple(float(v) for v in self.bounds))

        if not names:
            raise InputShapeError("RasterGrid requires at least one band")
        if len(names) != len(arrays):
            raise InputShapeError(
                f"{len(names)} band names given for {len(arrays)} band arrays"
            )
        shapes = {a.shape for a in arrays}
        if len(shapes) != 1:
            raise InputShapeError(f"All bands must share one pixel grid, got {shapes}")
        if arrays[0].ndim != 2 or 0 in arrays[0].shape:
            raise InputShapeError(
                f"Bands must be non-empty 2D arrays, got shape {arrays[0].shape}"
            )
        xmin, ymin, xmax, ymax = self.bounds
        if not (xmax > xmin and ymax > ymin):
            raise InputShapeError(f"Degenerate raster bounds: {self.bounds}")

    @property
    def shape(self) -> Tuple[int, int]:
        """(rows, cols) of the pixel grid."""
        return self.bands[0].shape

    @property
    def resolution(self) -> Tuple[float, float]:
        """(pixel width, pixel height) in CRS units."""
        xmin, ymin, xmax, ymax = self.bounds
        rows, cols = self.shape
        return ((xmax - xmin) / cols, (ymax - ymin) / rows)

    def band(self, name: str) -> np.ndarray:
        """Return the array for a named band."""
        return self.bands[self.band_names.index(name)]


# ═══════════════════════════════════════════════════════════════════════════
# 🧱 BOUNDARY LAYER SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class BoundaryLayer:
    """Polygons of one admin nesting depth.

    The frame carries identity columns for depths 0..depth plus geometry.
    A layer never knows its own children, so deeper columns are absent.
    """

    frame: gpd.GeoDataFrame
    depth: int
    identity_columns: Tuple[str, ...]
    name: Optional[str] = None

    @classmethod
    def from_geodataframe(
        cls,
        gdf: gpd.GeoDataFrame,
        depth: int,
        schema: IdentitySchema,
        name_columns: Optional[Sequence[str]] = None,
        name: Optional[str] = None,
    ) -> "BoundaryLayer":
        """Build a layer, renaming source name columns to identity columns.

        Args:
            gdf: Polygons with one name attribute per depth 0..depth
            depth: Nesting depth of this layer (0 = coarsest)
            schema: Run-wide identity schema
            name_columns: Source columns holding names for depths 0..depth.
                Defaults to the schema's identity column names.
            name: Optional label used in log and error messages

        Raises:
            InputShapeError: If depth is out of range or a column is missing
        """
        identity_columns = schema.columns_for(depth)
        source_columns = (
            list(name_columns) if name_columns is not None else list(identity_columns)
        )
        if len(source_columns) != len(identity_columns):
            raise InputShapeError(
                f"Layer depth {depth} needs {len(identity_columns)} name columns, "
                f"got {len(source_columns)}: {source_columns}"
            )
        missing = [c for c in source_columns if c not in gdf.columns]
        if missing:
            raise InputShapeError(f"Layer depth {depth} is missing columns {missing}")

        frame = gdf[source_columns + [gdf.geometry.name]].copy()
        frame = frame.rename(columns=dict(zip(source_columns, identity_columns)))
        if frame.geometry.name != "geometry":
            frame = frame.rename_geometry("geometry")
        frame = frame.reset_index(drop=True)
        return cls(frame=frame, depth=depth, identity_columns=identity_columns, name=name)

    @property
    def key(self) -> str:
        """Stable label for logs, worker names and error messages."""
        return self.name or f"level_{self.depth}"

    @property
    def crs(self) -> Optional[Any]:
        return self.frame.crs

    def __len__(self) -> int:
        return len(self.frame)

    def identity_tuples(self) -> List[Tuple[Optional[str], ...]]:
        """Identity names for depths 0..depth, one tuple per polygon."""
        records = self.frame[list(self.identity_columns)].itertuples(
            index=False, name=None
        )
        return [tuple(_as_name(v) for v in record) for record in records]

    def geometry_frame(self) -> gpd.GeoDataFrame:
        """Geometry-only frame in polygon order (input for exactextract)."""
        return gpd.GeoDataFrame(
            geometry=list(self.frame.geometry.values), crs=self.frame.crs
        )


def _as_name(value: Any) -> Optional[str]:
    """Normalize an identity cell to str, mapping any missing marker to None."""
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return None
    return str(value)


# ═══════════════════════════════════════════════════════════════════════════
# 📊 AGGREGATE ROW SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AggregateRow:
    """One polygon's per-band aggregates.

    identity holds names for depths 0..depth only; padded_identity() adds
    the explicit nulls for deeper levels. values preserves raster band order
    and maps to None where the polygon covered no valid pixel.
    """

    identity: Tuple[Optional[str], ...]
    depth: int
    values: Mapping[str, Optional[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity", tuple(self.identity))
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        if len(self.identity) != self.depth + 1:
            raise InputShapeError(
                f"Row at depth {self.depth} needs {self.depth + 1} identity names, "
                f"got {self.identity}"
            )

    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(self.values.keys())

    def padded_identity(self, depth_count: int) -> Tuple[Optional[str], ...]:
        """Identity tuple of length depth_count with None beyond own depth."""
        if len(self.identity) > depth_count:
            raise InputShapeError(
                f"Row {self.identity} is deeper than the configured "
                f"{depth_count}-level hierarchy"
            )
        return self.identity + (None,) * (depth_count - len(self.identity))

    def as_dict(self) -> Dict[str, Any]:
        """Convert to a picklable dict for worker transport."""
        return {
            "identity": list(self.identity),
            "depth": self.depth,
            "values": dict(self.values),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AggregateRow":
        """Rebuild from as_dict() output.

        Raises:
            KeyError: If identity, depth or values are missing
        """
        return cls(
            identity=tuple(d["identity"]),
            depth=int(d["depth"]),
            values=dict(d["values"]),
        )


# ═══════════════════════════════════════════════════════════════════════════
# 🔄 BATCH CONVERSION UTILITIES SECTION
# ═══════════════════════════════════════════════════════════════════════════


def aggregate_rows_from_dicts(dicts: List[Dict[str, Any]]) -> List[AggregateRow]:
    """Convert worker output dicts back to AggregateRow instances."""
    return [AggregateRow.from_dict(d) for d in dicts]


def aggregate_rows_to_dicts(rows: List[AggregateRow]) -> List[Dict[str, Any]]:
    """Convert AggregateRow instances to picklable dicts."""
    return [row.as_dict() for row in rows]
