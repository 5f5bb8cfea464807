"""
Discovery and loading of raw psycholinguistic norm tables
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from norm_utils.column_mappings import NORM_SOURCES

logger = logging.getLogger(__name__)

DELIMITED_SUFFIXES = {".csv": ",", ".tsv": "\t", ".txt": "\t"}
EXCEL_SUFFIXES = {".xls", ".xlsx"}


def load_norm_source(path: Path) -> pd.DataFrame:
    """
    Load one raw norm table, keeping every cell as text

    Values stay as strings until the canonicalizer casts the merged columns,
    so that non-numeric residue is detected there instead of being coerced
    on read. Only empty cells count as missing: words such as "null" or "NA"
    are real entries.

    Args:
        path: Path to a .csv, .tsv, .txt (tab separated), .xls or .xlsx file

    Returns:
        DataFrame with the raw columns of the file
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in DELIMITED_SUFFIXES:
        df = pd.read_csv(
            path,
            sep=DELIMITED_SUFFIXES[suffix],
            dtype=str,
            encoding="utf-8",
            keep_default_na=False,
            na_values=[""],
        )
    elif suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(path, dtype=str, keep_default_na=False, na_values=[""])
    else:
        raise ValueError(f"Unsupported norm file format: {path.name}")

    logger.info(f"Loaded {len(df):,} rows x {len(df.columns)} columns from {path.name}")
    return df


def discover_norm_files(
    norms_dir: Path, sources: Optional[Dict[str, dict]] = None
) -> Dict[str, Path]:
    """
    Find the file of each norm source in a directory

    Args:
        norms_dir: Directory holding the raw norm tables
        sources: Source definitions (defaults to NORM_SOURCES)

    Returns:
        Dictionary source name -> file path, for sources with a matching file
    """
    norms_dir = Path(norms_dir)
    sources = NORM_SOURCES if sources is None else sources

    if not norms_dir.exists():
        raise FileNotFoundError(f"Norms directory not found: {norms_dir}")

    found = {}
    for name, source in sources.items():
        candidates = sorted(
            p
            for p in norms_dir.glob(source["file_pattern"])
            if p.suffix.lower() in DELIMITED_SUFFIXES or p.suffix.lower() in EXCEL_SUFFIXES
        )
        if not candidates:
            logger.warning(
                f"No file for norm source '{name}' (pattern {source['file_pattern']})"
            )
            continue
        if len(candidates) > 1:
            logger.warning(
                f"Several files match norm source '{name}': "
                f"{[p.name for p in candidates]} - using {candidates[0].name}"
            )
        found[name] = candidates[0]

    if not found:
        raise FileNotFoundError(f"No norm tables found in {norms_dir}")

    logger.info(f"Discovered {len(found)}/{len(sources)} norm sources in {norms_dir}")
    return found


def load_norm_tables(
    norms_dir: Path, sources: Optional[Dict[str, dict]] = None
) -> Dict[str, pd.DataFrame]:
    """
    Discover and load every available norm table

    Returns:
        Dictionary source name -> raw DataFrame
    """
    files = discover_norm_files(norms_dir, sources)
    return {name: load_norm_source(path) for name, path in files.items()}
