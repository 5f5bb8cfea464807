"""
Norm table reconciliation
Merges independently sourced rating tables into one canonical
word -> ratings table with a unique lowercase word key
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from norm_utils.column_mappings import NORM_SOURCES, WORD_COL, build_column_mapping
from pipeline_utils.errors import DataIntegrityError, SchemaError

logger = logging.getLogger(__name__)

SOURCE_COL = "_source"
FLAG_COL = "_duplicate_flag"
FALSE_FLAG_VALUES = {"", "0", "0.0", "false", "f", "no", "n", "nan"}


def normalize_words(words: pd.Series) -> pd.Series:
    """
    Normalize word keys for lookup: strip whitespace and lowercase

    Missing and empty entries become NaN.
    """
    normalized = words.map(lambda w: np.nan if pd.isna(w) else str(w).strip().lower())
    return normalized.where(normalized != "", np.nan)


def _as_text(values: pd.Series) -> pd.Series:
    """Cell values as stripped strings, with empty strings treated as missing"""
    text = values.map(lambda v: np.nan if pd.isna(v) else str(v).strip())
    return text.where(text != "", np.nan)


def _is_flag_set(values: pd.Series) -> pd.Series:
    """Presence flag: any non-missing value other than an explicit false"""
    text = _as_text(values)
    return text.notna() & ~text.astype(str).str.lower().isin(FALSE_FLAG_VALUES)


def _union_word_columns(df: pd.DataFrame, word_columns: List[str], name: str) -> pd.Series:
    """
    Combine the primary and secondary word columns of a source

    Both columns are never populated for the same row; when they are, the
    row is ambiguous and an error is raised rather than picking one.
    """
    words = normalize_words(df[word_columns[0]])

    for column in word_columns[1:]:
        secondary = normalize_words(df[column])
        both = words.notna() & secondary.notna()
        if both.any():
            first = both[both].index[0]
            raise DataIntegrityError(
                f"Source '{name}': {both.sum()} rows populate both '{word_columns[0]}' "
                f"and '{column}' (first: {words[first]!r} / {secondary[first]!r})",
                column=column,
                word=words[first],
            )
        words = words.fillna(secondary)

    return words


def prepare_norm_source(df: pd.DataFrame, name: str, source: dict) -> pd.DataFrame:
    """
    Bring one raw norm table into the canonical column namespace

    Args:
        df: Raw table as loaded from disk
        name: Source name, kept per row for duplicate handling
        source: Source definition (an entry of NORM_SOURCES)

    Returns:
        DataFrame with the word key, the source's canonical metric columns as
        text, and the source/duplicate-flag bookkeeping columns

    Raises:
        SchemaError: If a word column is missing
    """
    df = df.rename(columns=lambda c: str(c).strip().lower())

    word_columns = source["word_columns"]
    missing = [c for c in word_columns if c not in df.columns]
    if missing:
        raise SchemaError(
            f"Norm source '{name}' is missing word column(s) {missing}. "
            f"Available: {list(df.columns)}"
        )

    mapping = build_column_mapping(source)
    absent = [raw for raw in mapping if raw not in df.columns]
    if absent:
        logger.warning(f"Norm source '{name}': columns not present {absent}")

    existing_mapping = {raw: canon for raw, canon in mapping.items() if raw in df.columns}
    ignored = [
        c
        for c in df.columns
        if c not in existing_mapping
        and c not in word_columns
        and c != source.get("duplicate_flag")
    ]
    if ignored:
        logger.debug(f"Norm source '{name}': ignoring unmapped columns {ignored}")

    prepared = pd.DataFrame(index=df.index)
    prepared[WORD_COL] = _union_word_columns(df, word_columns, name)
    for raw, canon in existing_mapping.items():
        prepared[canon] = _as_text(df[raw])

    flag = source.get("duplicate_flag")
    if flag is not None:
        if flag not in df.columns:
            raise SchemaError(f"Norm source '{name}' is missing flag column '{flag}'")
        prepared[FLAG_COL] = _is_flag_set(df[flag])
    else:
        prepared[FLAG_COL] = False
    prepared[SOURCE_COL] = name

    no_word = prepared[WORD_COL].isna()
    if no_word.any():
        logger.warning(f"Norm source '{name}': dropping {no_word.sum():,} rows without a word")
        prepared = prepared[~no_word]

    logger.info(
        f"Prepared '{name}': {len(prepared):,} rows, "
        f"{prepared[WORD_COL].nunique():,} words, {len(existing_mapping)} metrics"
    )
    return prepared.reset_index(drop=True)


def null_flagged_duplicates(
    stacked: pd.DataFrame, sources: Dict[str, dict]
) -> pd.DataFrame:
    """
    Null the flagged columns of flagged duplicate rows

    A column is nulled on a flagged row when an unflagged row for the same
    word already holds a value in that column. Must run before grouping:
    otherwise both values would be concatenated into the same cell.
    """
    stacked = stacked.copy()

    for name, source in sources.items():
        flagged_columns = [c for c in source.get("flagged_columns", []) if c in stacked.columns]
        if not flagged_columns:
            continue

        flagged_rows = (stacked[SOURCE_COL] == name) & stacked[FLAG_COL]
        if not flagged_rows.any():
            continue

        n_nulled = 0
        for column in flagged_columns:
            provided = stacked[column].notna() & ~stacked[FLAG_COL]
            mask = (
                flagged_rows
                & stacked[column].notna()
                & stacked[WORD_COL].isin(stacked.loc[provided, WORD_COL])
            )
            stacked.loc[mask, column] = np.nan
            n_nulled += int(mask.sum())

        logger.info(
            f"Source '{name}': {flagged_rows.sum():,} flagged rows, "
            f"{n_nulled:,} duplicate values nulled in {flagged_columns}"
        )

    return stacked


def _consolidate(stacked: pd.DataFrame, value_columns: List[str]) -> pd.DataFrame:
    """One row per word, holding the single non-missing value of each column"""
    long = stacked.melt(
        id_vars=WORD_COL, value_vars=value_columns, var_name="column", value_name="value"
    ).dropna(subset=["value"])

    # The same value reported twice is not a conflict
    long = long.drop_duplicates(subset=[WORD_COL, "column", "value"])

    conflicts = long[long.duplicated(subset=[WORD_COL, "column"], keep=False)]
    if not conflicts.empty:
        first = conflicts.iloc[0]
        values = conflicts[
            (conflicts[WORD_COL] == first[WORD_COL]) & (conflicts["column"] == first["column"])
        ]["value"].tolist()
        n_pairs = conflicts[[WORD_COL, "column"]].drop_duplicates().shape[0]
        raise DataIntegrityError(
            f"Column '{first['column']}' has conflicting values {values} for word "
            f"{first[WORD_COL]!r} after deduplication ({n_pairs:,} word/column pairs affected)",
            column=first["column"],
            word=first[WORD_COL],
        )

    words = pd.Index(stacked[WORD_COL].unique(), name=WORD_COL)
    merged = long.pivot(index=WORD_COL, columns="column", values="value")
    return merged.reindex(index=words, columns=value_columns)


def _cast_numeric(merged: pd.DataFrame) -> pd.DataFrame:
    """Cast every merged column to float, raising on residue that is not a number"""
    numeric = pd.DataFrame(index=merged.index)

    for column in merged.columns:
        values = merged[column]
        cast = pd.to_numeric(values, errors="coerce").astype(float)
        failed = values.notna() & cast.isna()
        if failed.any():
            word = failed[failed].index[0]
            raise DataIntegrityError(
                f"Column '{column}' has {failed.sum():,} non-numeric values after merge "
                f"(first: {values[word]!r} for word {word!r})",
                column=column,
                word=word,
            )
        numeric[column] = cast

    return numeric


def canonicalize_norms(
    frames: Dict[str, pd.DataFrame], sources: Optional[Dict[str, dict]] = None
) -> pd.DataFrame:
    """
    Reconcile raw norm tables into one canonical table

    Args:
        frames: Source name -> raw DataFrame
        sources: Source definitions (defaults to NORM_SOURCES)

    Returns:
        DataFrame with a unique lowercase 'word' column followed by one
        float column per canonical metric, sorted by word

    Raises:
        SchemaError: If a source is unknown or lacks its word column
        DataIntegrityError: If merged values conflict or are not numeric
    """
    sources = NORM_SOURCES if sources is None else sources
    if not frames:
        raise ValueError("No norm tables to canonicalize")

    logger.info("=" * 60)
    logger.info("CANONICALIZING NORM TABLES")
    logger.info("=" * 60)

    prepared = []
    for name, df in frames.items():
        if name not in sources:
            raise SchemaError(f"No column mapping defined for norm source '{name}'")
        prepared.append(prepare_norm_source(df, name, sources[name]))

    stacked = pd.concat(prepared, ignore_index=True, sort=False)
    value_columns = [c for c in stacked.columns if c not in (WORD_COL, SOURCE_COL, FLAG_COL)]

    stacked = null_flagged_duplicates(stacked, sources)
    stacked = stacked.drop(columns=[SOURCE_COL, FLAG_COL])

    merged = _consolidate(stacked, value_columns)
    canonical = _cast_numeric(merged)

    canonical = canonical.sort_index().reset_index()
    canonical.columns.name = None

    logger.info(
        f"Canonical norm table: {len(canonical):,} words x {len(value_columns)} metrics "
        f"(from {len(stacked):,} source rows)"
    )
    for column in value_columns:
        logger.debug(f"  {column}: {canonical[column].notna().sum():,} words rated")

    return canonical
