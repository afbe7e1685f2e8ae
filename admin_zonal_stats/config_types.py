"""
═══════════════════════════════════════════════════════════════════════════════
📋 UNIFIED CONFIGURATION TYPES
═══════════════════════════════════════════════════════════════════════════════

ARCHITECTURAL OVERVIEW
----------------------
Responsibility: Define all configuration dataclasses for the zonal pipeline.
Wraps the CONFIG dictionary in typed, validated, immutable objects.

Usage:
    from admin_zonal_stats.config import CONFIG
    from admin_zonal_stats.config_types import AppConfig

    # Create once at application startup
    app_config = AppConfig.from_dict(CONFIG)

    # Use throughout the application
    schema = app_config.hierarchy.schema()

For Navigation: Use VS Code outline (Ctrl+Shift+O)

NAVIGATION GUIDE
----------------
# ═════ 1. FILE PATHS CONFIGURATION
# ═════ 2. HIERARCHY CONFIGURATION
# ═════ 3. AGGREGATION CONFIGURATION
# ═════ 4. INPUT SOURCES CONFIGURATION
# ═════ 5. OUTPUT CONFIGURATION
# ═════ 6. PARALLEL PROCESSING CONFIGURATION
# ═════ 7. APP CONFIG (MASTER FACADE)

═══════════════════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union

from admin_zonal_stats.models.data_models import AggregationKind, IdentitySchema


# ═══════════════════════════════════════════════════════════════════════════════
# 📁 1. FILE PATHS CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FilePathsConfig:
    """
    File path configuration for outputs and logs.

    Attributes:
        output_dir: Directory for the persisted table.
        log_dir: Directory for run log folders.
    """

    output_dir: str = "Output"
    log_dir: str = "logs"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FilePathsConfig":
        """Create FilePathsConfig from CONFIG['file_paths'] dictionary."""
        return cls(
            output_dir=d.get("output_dir", "Output"),
            log_dir=d.get("log_dir", "logs"),
        )

    def output_dir_path(self, workspace_root: Path) -> Path:
        """Get output directory resolved against workspace root."""
        return workspace_root / self.output_dir

    def log_dir_path(self, workspace_root: Path) -> Path:
        """Get log directory resolved against workspace root."""
        return workspace_root / self.log_dir


# ═══════════════════════════════════════════════════════════════════════════════
# 🧭 2. HIERARCHY CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class HierarchyConfig:
    """
    Static admin hierarchy layout.

    Attributes:
        depth_count: Number of admin depths D (identity columns 0..D-1).
        column_template: Identity column name pattern containing "{depth}".
    """

    depth_count: int = 3
    column_template: str = "admin_name_{depth}"

    def __post_init__(self) -> None:
        """Validate hierarchy configuration."""
        # IdentitySchema carries the actual checks
        self.schema()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HierarchyConfig":
        """Create HierarchyConfig from CONFIG['hierarchy'] dictionary."""
        return cls(
            depth_count=d.get("depth_count", 3),
            column_template=d.get("column_template", "admin_name_{depth}"),
        )

    def schema(self) -> IdentitySchema:
        """Build the run-wide IdentitySchema."""
        return IdentitySchema(
            depth_count=self.depth_count, column_template=self.column_template
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🧮 3. AGGREGATION CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

DUPLICATE_POLICIES = ("allow", "warn", "error")


@dataclass(frozen=True)
class AggregationConfig:
    """
    Reducer settings.

    Attributes:
        kind: Reducer name ("sum", "mean", "count", "min", "max").
        duplicate_identity_policy: "allow", "warn" or "error".
    """

    kind: str = "sum"
    duplicate_identity_policy: str = "warn"

    def __post_init__(self) -> None:
        """Validate aggregation configuration."""
        AggregationKind.from_string(self.kind)
        if self.duplicate_identity_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"duplicate_identity_policy must be one of {DUPLICATE_POLICIES}, "
                f"got '{self.duplicate_identity_policy}'"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AggregationConfig":
        """Create AggregationConfig from CONFIG['aggregation'] dictionary."""
        return cls(
            kind=d.get("kind", "sum"),
            duplicate_identity_policy=d.get("duplicate_identity_policy", "warn"),
        )

    @property
    def aggregation_kind(self) -> AggregationKind:
        return AggregationKind.from_string(self.kind)


# ═══════════════════════════════════════════════════════════════════════════════
# 🗺️ 4. INPUT SOURCES CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RasterSourceConfig:
    """
    Raster file settings.

    Attributes:
        file_path: Path relative to workspace root.
        band_names: Explicit band names, or None to read band descriptions.
    """

    file_path: str = ""
    band_names: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RasterSourceConfig":
        """Create RasterSourceConfig from CONFIG['raster'] dictionary."""
        band_names = d.get("band_names")
        return cls(
            file_path=d.get("file_path", ""),
            band_names=tuple(band_names) if band_names else None,
        )


@dataclass(frozen=True)
class BoundaryLayerSourceConfig:
    """
    One boundary layer file.

    Attributes:
        depth: Admin nesting depth (0 = coarsest).
        file_path: Path relative to workspace root.
        layer: Layer name inside a multi-layer container (GeoPackage).
        name_columns: Source attribute per depth 0..depth, in order.
    """

    depth: int = 0
    file_path: str = ""
    layer: Optional[str] = None
    name_columns: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate that one name column is declared per depth."""
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")
        if len(self.name_columns) != self.depth + 1:
            raise ValueError(
                f"Layer depth {self.depth} needs {self.depth + 1} name_columns, "
                f"got {list(self.name_columns)}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BoundaryLayerSourceConfig":
        """Create BoundaryLayerSourceConfig from one CONFIG['boundary_layers'] entry."""
        depth = d.get("depth", 0)
        return cls(
            depth=depth,
            file_path=d.get("file_path", ""),
            layer=d.get("layer"),
            name_columns=tuple(
                d.get("name_columns", [f"NAME_{i}" for i in range(depth + 1)])
            ),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 📤 5. OUTPUT CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

OUTPUT_SHAPES = ("long", "wide")


@dataclass(frozen=True)
class OutputConfig:
    """
    Output table settings.

    Attributes:
        shape: "long" (one row per polygon-band) or "wide" (one per polygon).
        file_name: Parquet file name inside output_dir.
        compression: Parquet codec, or "none".
    """

    shape: str = "long"
    file_name: str = "admin_zonal_stats.parquet"
    compression: str = "zstd"

    def __post_init__(self) -> None:
        """Validate output configuration."""
        if self.shape not in OUTPUT_SHAPES:
            raise ValueError(f"shape must be one of {OUTPUT_SHAPES}, got '{self.shape}'")
        if not self.file_name:
            raise ValueError("file_name must not be empty")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OutputConfig":
        """Create OutputConfig from CONFIG['output'] dictionary."""
        return cls(
            shape=d.get("shape", "long"),
            file_name=d.get("file_name", "admin_zonal_stats.parquet"),
            compression=d.get("compression", "zstd"),
        )

    @property
    def parquet_compression(self) -> Optional[str]:
        """Codec as pandas expects it (None disables compression)."""
        return None if self.compression in ("none", "", None) else self.compression


# ═══════════════════════════════════════════════════════════════════════════════
# ⚡ 6. PARALLEL PROCESSING CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ParallelConfig:
    """
    Configuration for level-parallel aggregation.

    Attributes:
        enabled: Master toggle for parallel processing.
        max_workers: Number of worker processes (-1 = auto).
        optimal_workers_default: Upper bound when auto-detecting.
        min_levels_for_parallel: Minimum levels to justify parallel dispatch.
        fallback_on_error: Fall back to sequential if dispatch fails.
        backend: Joblib backend ("loky" = process-based).
        verbose: Verbosity level (0-10).
    """

    enabled: bool = True
    max_workers: int = -1
    optimal_workers_default: int = 4
    min_levels_for_parallel: int = 2
    fallback_on_error: bool = True
    backend: str = "loky"
    verbose: int = 0

    def __post_init__(self) -> None:
        """Validate worker settings."""
        if self.max_workers == 0 or self.max_workers < -1:
            raise ValueError(f"max_workers must be -1 or >= 1, got {self.max_workers}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ParallelConfig":
        """Create ParallelConfig from CONFIG['parallel'] dictionary."""
        return cls(
            enabled=d.get("enabled", True),
            max_workers=d.get("max_workers", -1),
            optimal_workers_default=d.get("optimal_workers_default", 4),
            min_levels_for_parallel=d.get("min_levels_for_parallel", 2),
            fallback_on_error=d.get("fallback_on_error", True),
            backend=d.get("backend", "loky"),
            verbose=d.get("verbose", 0),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🎯 7. APP CONFIG (MASTER FACADE)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AppConfig:
    """
    Master configuration object for the zonal statistics pipeline.

    This is the single source of truth for all typed configuration. Create it
    once at application startup using AppConfig.from_dict(CONFIG) and pass it
    to all functions that need settings.

    Attributes:
        hierarchy: Admin hierarchy layout.
        aggregation: Reducer settings.
        raster: Raster source.
        boundary_layers: Boundary layer sources, coarsest first.
        reproject_boundaries_to_raster: Loader-side vector reprojection toggle.
        output: Output table settings.
        parallel: Parallel processing configuration.
        file_paths: File path configuration.

    Example:
        from admin_zonal_stats.config import CONFIG
        from admin_zonal_stats.config_types import AppConfig

        app_config = AppConfig.from_dict(CONFIG)
        schema = app_config.schema
    """

    hierarchy: HierarchyConfig = field(default_factory=HierarchyConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    raster: RasterSourceConfig = field(default_factory=RasterSourceConfig)
    boundary_layers: Tuple[BoundaryLayerSourceConfig, ...] = ()
    reproject_boundaries_to_raster: bool = True
    output: OutputConfig = field(default_factory=OutputConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    file_paths: FilePathsConfig = field(default_factory=FilePathsConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AppConfig":
        """
        Create AppConfig from the CONFIG dictionary.

        Args:
            config_dict: The CONFIG dictionary from config.py (or any subset;
                missing sections take their defaults).

        Returns:
            AppConfig instance with all settings populated.
        """
        return cls(
            hierarchy=HierarchyConfig.from_dict(config_dict.get("hierarchy", {})),
            aggregation=AggregationConfig.from_dict(
                config_dict.get("aggregation", {})
            ),
            raster=RasterSourceConfig.from_dict(config_dict.get("raster", {})),
            boundary_layers=tuple(
                BoundaryLayerSourceConfig.from_dict(d)
                for d in config_dict.get("boundary_layers", [])
            ),
            reproject_boundaries_to_raster=config_dict.get(
                "reproject_boundaries_to_raster", True
            ),
            output=OutputConfig.from_dict(config_dict.get("output", {})),
            parallel=ParallelConfig.from_dict(config_dict.get("parallel", {})),
            file_paths=FilePathsConfig.from_dict(config_dict.get("file_paths", {})),
        )

    @property
    def schema(self) -> IdentitySchema:
        """Run-wide identity schema."""
        return self.hierarchy.schema()


def normalize_config(config: Union[Dict[str, Any], AppConfig, None]) -> AppConfig:
    """
    Normalize config to AppConfig for internal use.

    Accepts a raw CONFIG dictionary, an AppConfig, or None (all defaults).
    """
    if config is None:
        return AppConfig()
    if isinstance(config, AppConfig):
        return config
    return AppConfig.from_dict(config)
