"""
Sink - atomic, compressed columnar persistence of the output table.

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Persist the final table as a single Parquet file that
readers only ever see complete.

Write protocol:
1. Acquire a per-destination file lock (serializes concurrent writers)
2. Write to a temporary file in the destination directory, then give it
   the mode a plain file would get (umask) or the overwritten file's mode
3. os.replace() the temporary file onto the destination (atomic rename)
4. On any failure, delete the temporary file and raise SinkError

The lock file lives in the system temp directory, keyed by a hash of the
destination path, so the output directory only ever receives the table.

Round trip: pandas nullable dtypes (string, Float64) and their null markers
survive write_table() -> read_table() unchanged via the pyarrow engine.

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import hashlib
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Optional, Union

import filelock
import pandas as pd

from admin_zonal_stats.exceptions import SinkError

logger = logging.getLogger("AdminZonal.Sink")

DEFAULT_LOCK_TIMEOUT_S = 300


def _lock_path(destination: Path) -> Path:
    """Lock file path for a destination, outside the output directory."""
    digest = hashlib.sha256(str(destination.resolve()).encode("utf-8")).hexdigest()
    return Path(tempfile.gettempdir()) / f"admin_zonal_stats_{digest[:16]}.lock"


def _output_mode(destination: Path) -> int:
    """Mode for the persisted file: the existing file's, else 0o666 minus umask."""
    if destination.exists():
        return stat.S_IMODE(destination.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_table(
    table: pd.DataFrame,
    destination: Union[str, Path],
    compression: Optional[str] = "zstd",
    lock_timeout_s: float = DEFAULT_LOCK_TIMEOUT_S,
) -> Path:
    """
    Atomically write a table to a Parquet file.

    Args:
        table: Long or wide output table.
        destination: Target file path; parent directories are created.
        compression: Parquet codec, or None for uncompressed.
        lock_timeout_s: Seconds to wait for a concurrent writer.

    Returns:
        The destination path.

    Raises:
        SinkError: Writing, renaming or locking failed. No partial file is
            left at the destination.
    """
    destination = Path(destination)
    tmp_path: Optional[Path] = None

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        lock = filelock.FileLock(str(_lock_path(destination)), timeout=lock_timeout_s)
        with lock:
            fd, tmp_name = tempfile.mkstemp(
                dir=str(destination.parent),
                prefix=f".{destination.name}.",
                suffix=".tmp",
            )
            os.close(fd)
            tmp_path = Path(tmp_name)

            table.to_parquet(
                tmp_path, engine="pyarrow", compression=compression, index=False
            )
            # mkstemp creates 0600 files; readers need the usual mode
            os.chmod(tmp_path, _output_mode(destination))
            os.replace(tmp_path, destination)
            tmp_path = None
    except filelock.Timeout as e:
        raise SinkError(
            f"Timed out after {lock_timeout_s}s waiting to write {destination}"
        ) from e
    except Exception as e:
        raise SinkError(f"Failed to write {destination}: {e}") from e
    finally:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)

    size_kb = destination.stat().st_size / 1024
    logger.info(
        f"   💾 Wrote {len(table)} row(s) to {destination} "
        f"({size_kb:.1f} KB, {compression or 'uncompressed'})"
    )
    return destination


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a table written by write_table()."""
    return pd.read_parquet(path, engine="pyarrow")
