"""
Caching utilities
"""

import hashlib
import logging
from pathlib import Path
from typing import Any, Callable

import joblib
import pandas as pd

logger = logging.getLogger(__name__)


def compute_data_hash(data) -> str:
    """Compute hash of dataset for cache invalidation"""
    if isinstance(data, pd.DataFrame):
        row_hashes = pd.util.hash_pandas_object(data, index=False).values
        hash_input = f"{data.shape}_{data.columns.tolist()}_".encode() + row_hashes.tobytes()
        return hashlib.md5(hash_input).hexdigest()[:16]
    return hashlib.md5(str(data).encode()).hexdigest()[:16]


def atomic_joblib_dump(obj: Any, path: Path, compress: int = 3):
    """
    Atomically write joblib file to prevent corruption

    Writes to temporary file first, then replaces target
    """
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        joblib.dump(obj, tmp, compress=compress)
        tmp.replace(path)  # Atomic on POSIX systems
    except Exception:
        if tmp.exists():
            tmp.unlink()
        raise


def load_or_recompute(
    cache_path: Path, compute_fn: Callable, reuse: bool = True, *args, **kwargs
) -> Any:
    """
    Load from cache or compute and save with atomic writes

    Args:
        cache_path: Path to cache file
        compute_fn: Function to call if cache miss
        reuse: If True, attempt to load from cache
        *args, **kwargs: Arguments to pass to compute_fn

    Returns:
        Computed or cached result
    """
    if reuse and cache_path.exists():
        try:
            logger.info(f"Loading from cache: {cache_path.name}")
            return joblib.load(cache_path)
        except (OSError, EOFError, ValueError) as e:
            logger.warning(f"Cache load failed ({e}), recomputing...")
            cache_path.unlink(missing_ok=True)

    logger.info(f"Computing (not cached): {cache_path.name}")
    result = compute_fn(*args, **kwargs)

    cache_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        atomic_joblib_dump(result, cache_path)
        logger.info(f"Saved to cache: {cache_path.name}")
    except OSError as e:
        logger.warning(f"Could not write cache {cache_path}: {e}")

    return result
