"""
Lexical join of corpus tokens against the canonical norm table
"""

import logging
from typing import List, Sequence

import pandas as pd

from norm_utils.canonicalizer import normalize_words
from norm_utils.column_mappings import WORD_COL
from pipeline_utils.errors import DataIntegrityError, SchemaError

logger = logging.getLogger(__name__)

LOOKUP_COL = "word_lower"


def select_norm_metrics(norms: pd.DataFrame, metrics: Sequence[str]) -> pd.DataFrame:
    """
    Restrict the canonical norm table to the caller's metrics

    Args:
        norms: Canonical norm table with a unique 'word' column
        metrics: Explicit, non-empty list of canonical metric names

    Returns:
        DataFrame with 'word' and the requested metric columns only

    Raises:
        ValueError: If no metrics are requested
        SchemaError: If a metric or the word column is not in the table
        DataIntegrityError: If the word column is not unique
    """
    metrics = list(metrics)
    if not metrics:
        raise ValueError("At least one norm metric must be selected")
    if len(set(metrics)) != len(metrics):
        raise ValueError(f"Duplicate metric names in selection: {metrics}")

    if WORD_COL not in norms.columns:
        raise SchemaError(f"Norm table has no '{WORD_COL}' column")

    unknown = [m for m in metrics if m not in norms.columns]
    if unknown:
        raise SchemaError(
            f"Unknown norm metrics {unknown}. Available: "
            f"{[c for c in norms.columns if c != WORD_COL]}"
        )

    if norms[WORD_COL].isna().any():
        raise DataIntegrityError(
            f"Norm table has {norms[WORD_COL].isna().sum():,} rows without a word",
            column=WORD_COL,
        )

    duplicated = norms[WORD_COL].duplicated()
    if duplicated.any():
        word = norms.loc[duplicated, WORD_COL].iloc[0]
        raise DataIntegrityError(
            f"Norm table has {duplicated.sum():,} duplicate words (first: {word!r})",
            column=WORD_COL,
            word=word,
        )

    return norms[[WORD_COL] + metrics]


def join_norms(
    tokens: pd.DataFrame,
    norms: pd.DataFrame,
    metrics: List[str],
    token_col: str = "token",
) -> pd.DataFrame:
    """
    Annotate every token with the selected norm metrics

    Left join on the case-normalized surface form. Tokens without a canonical
    entry keep NaN for every metric.

    Args:
        tokens: Token store table
        norms: Canonical norm table
        metrics: Metric columns to carry forward
        token_col: Column holding the token surface form

    Returns:
        One row per input token, in input order, with the metric columns added
    """
    if token_col not in tokens.columns:
        raise SchemaError(f"Token table has no '{token_col}' column")

    clashing = [m for m in metrics if m in tokens.columns]
    if clashing:
        raise SchemaError(f"Token table already has metric columns {clashing}")

    lookup = select_norm_metrics(norms, metrics).rename(columns={WORD_COL: LOOKUP_COL})

    joined = tokens.copy()
    joined[LOOKUP_COL] = normalize_words(joined[token_col])
    joined = joined.merge(lookup, on=LOOKUP_COL, how="left", validate="many_to_one")

    if len(joined) != len(tokens):
        raise DataIntegrityError(
            f"Join changed the token count ({len(tokens):,} -> {len(joined):,})"
        )
    joined.index = tokens.index

    matched = joined[metrics].notna().any(axis=1)
    n_tokens = len(joined)
    if n_tokens:
        logger.info(
            f"Joined {n_tokens:,} tokens: {matched.sum():,} "
            f"({matched.mean() * 100:.1f}%) matched at least one metric"
        )
        for metric in metrics:
            logger.info(
                f"  {metric}: {joined[metric].notna().mean() * 100:.1f}% of tokens rated"
            )
    else:
        logger.warning("Joined an empty token table")

    return joined
