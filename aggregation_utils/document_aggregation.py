"""
Per-document aggregation of joined norm metrics

Produces one summary row per document with coverage-aware metric means,
word and sentence counts, and (full-token variant only) sentiment.
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from pipeline_utils.errors import SchemaError

logger = logging.getLogger(__name__)

DERIVED_COLUMNS = {"token_length": "word_length_mean", "syllables": "syllables_mean"}


def eligible_mask(joined: pd.DataFrame, exclude_stopwords: bool = False) -> pd.Series:
    """
    Tokens that enter the aggregation

    Punctuation and numerals are never eligible; stopwords are dropped only
    when exclude_stopwords is set.
    """
    mask = ~joined["is_excluded"].astype(bool)
    if exclude_stopwords:
        mask &= ~joined["is_stopword"].astype(bool)
    return mask


def _document_frame(
    joined: pd.DataFrame,
    documents: Optional[pd.DataFrame],
    doc_id_col: str,
    group_cols: List[str],
) -> pd.DataFrame:
    """One row per document with its grouping columns, in document order"""
    keys = [doc_id_col] + group_cols
    base = joined if documents is None else documents

    missing = [c for c in keys if c not in base.columns]
    if missing:
        raise SchemaError(f"Grouping columns {missing} not found")

    frame = base[keys].drop_duplicates(subset=doc_id_col).reset_index(drop=True)

    if documents is not None:
        unknown = ~joined[doc_id_col].isin(frame[doc_id_col])
        if unknown.any():
            raise SchemaError(
                f"Joined tokens reference {joined.loc[unknown, doc_id_col].nunique()} "
                f"documents missing from the document table"
            )
    return frame


def aggregate_documents(
    joined: pd.DataFrame,
    metrics: Sequence[str],
    group_cols: Sequence[str] = (),
    exclude_stopwords: bool = False,
    sentiment: Optional[pd.DataFrame] = None,
    documents: Optional[pd.DataFrame] = None,
    doc_id_col: str = "doc_id",
) -> pd.DataFrame:
    """
    Summarize joined tokens per document

    Args:
        joined: Joined token table (token store + metric columns)
        metrics: Metric columns to aggregate
        group_cols: Document-level grouping columns carried into the summary
            (e.g. author)
        exclude_stopwords: Drop stopwords from the eligible tokens
        sentiment: Per-document sentiment (doc id, sentiment_* columns);
            only accepted for the full-token variant
        documents: Document table; when given, documents without any token
            still get a row
        doc_id_col: Document id column

    Returns:
        DataFrame with doc id, grouping columns, word_count, sentence_count,
        sentence_word_count, word_length_mean, syllables_mean, and
        <metric>_mean / <metric>_coverage per metric (+ sentiment columns)

    Raises:
        ValueError: If sentiment is passed together with exclude_stopwords
        SchemaError: If a required column is missing
    """
    metrics = list(metrics)
    group_cols = list(group_cols)

    if not metrics:
        raise ValueError("At least one metric must be aggregated")
    if exclude_stopwords and sentiment is not None:
        raise ValueError(
            "Sentiment is only merged into the full-token summary; sentence "
            "sentiment is not valid once stopwords are removed"
        )

    required = [doc_id_col, "sentence_id", "is_excluded"] + metrics
    if exclude_stopwords:
        required.append("is_stopword")
    missing = [c for c in required if c not in joined.columns]
    if missing:
        raise SchemaError(f"Joined token table is missing columns {missing}")

    variant = "without stopwords" if exclude_stopwords else "with stopwords"
    logger.info(f"Aggregating {len(metrics)} metrics per document ({variant})...")

    summary = _document_frame(joined, documents, doc_id_col, group_cols)
    eligible = joined[eligible_mask(joined, exclude_stopwords)]
    by_doc = eligible.groupby(doc_id_col, sort=False)

    counts = pd.DataFrame({"word_count": by_doc.size()})

    # Sentences without any eligible token do not enter the mean
    per_sentence = eligible.groupby([doc_id_col, "sentence_id"], sort=False).size()
    sentence_stats = per_sentence.groupby(level=0, sort=False).agg(["count", "mean"])
    counts["sentence_count"] = sentence_stats["count"]
    counts["sentence_word_count"] = sentence_stats["mean"]

    for source_col, target_col in DERIVED_COLUMNS.items():
        if source_col in eligible.columns:
            counts[target_col] = by_doc[source_col].mean()

    means = by_doc[metrics].mean().add_suffix("_mean")
    coverage = by_doc[metrics].count().div(counts["word_count"], axis=0).add_suffix("_coverage")

    # Interleave mean/coverage per metric
    metric_stats = pd.concat([means, coverage], axis=1)
    metric_stats = metric_stats[[f"{m}{s}" for m in metrics for s in ("_mean", "_coverage")]]

    stats = pd.concat([counts, metric_stats], axis=1)
    stats.index.name = doc_id_col
    summary = summary.merge(stats.reset_index(), on=doc_id_col, how="left")

    # Documents without eligible tokens: zero words, undefined means and coverage
    summary["word_count"] = summary["word_count"].fillna(0).astype(int)
    summary["sentence_count"] = summary["sentence_count"].fillna(0).astype(int)

    if sentiment is not None:
        summary = merge_sentiment(summary, sentiment, doc_id_col=doc_id_col)

    n_empty = (summary["word_count"] == 0).sum()
    if n_empty:
        logger.warning(f"{n_empty:,} documents have no eligible tokens ({variant})")
    logger.info(f"Document summary ({variant}): {len(summary):,} documents")

    return summary


def merge_sentiment(
    summary: pd.DataFrame, sentiment: pd.DataFrame, doc_id_col: str = "doc_id"
) -> pd.DataFrame:
    """
    Left-join per-document sentiment onto a full-token summary

    Documents the sentiment scorer dropped keep missing sentiment.
    """
    if doc_id_col not in sentiment.columns:
        raise SchemaError(f"Sentiment table has no '{doc_id_col}' column")

    clashing = [c for c in sentiment.columns if c != doc_id_col and c in summary.columns]
    if clashing:
        raise SchemaError(f"Sentiment columns clash with summary columns: {clashing}")

    merged = summary.merge(sentiment, on=doc_id_col, how="left", validate="one_to_one")

    n_missing = merged[[c for c in sentiment.columns if c != doc_id_col]].isna().all(axis=1).sum()
    if n_missing:
        logger.info(f"{n_missing:,} documents have no sentiment score")
    return merged


def metric_columns(metrics: Sequence[str]) -> List[str]:
    """Summary columns produced for the given metrics"""
    return [f"{m}{s}" for m in metrics for s in ("_mean", "_coverage")]
