"""
Descriptive statistics and advisory checks on document summaries
"""

import logging
import warnings
from typing import Any, Dict, Sequence

import numpy as np
import pandas as pd

from pipeline_utils.errors import CoverageWarning

logger = logging.getLogger(__name__)


def find_low_coverage(
    summary: pd.DataFrame,
    metrics: Sequence[str],
    threshold: float = 0.1,
    doc_id_col: str = "doc_id",
) -> pd.DataFrame:
    """
    Report (document, metric) pairs whose coverage is at or below a threshold

    Documents with no eligible tokens have undefined coverage and are
    reported too. A CoverageWarning is issued whenever the report is not
    empty; the report itself is returned for inspection.

    Args:
        summary: Document summary table
        metrics: Metrics to check
        threshold: Coverage at or below which a pair is reported
        doc_id_col: Document id column

    Returns:
        DataFrame with doc id, metric, coverage, word_count
    """
    rows = []
    for metric in metrics:
        coverage = summary[f"{metric}_coverage"]
        low = coverage.isna() | (coverage <= threshold)
        for _, row in summary.loc[low].iterrows():
            rows.append(
                {
                    doc_id_col: row[doc_id_col],
                    "metric": metric,
                    "coverage": row[f"{metric}_coverage"],
                    "word_count": row["word_count"],
                }
            )

    report = pd.DataFrame(rows, columns=[doc_id_col, "metric", "coverage", "word_count"])

    if len(report):
        message = (
            f"{len(report):,} document/metric pairs have coverage <= {threshold:.0%} "
            f"or no eligible tokens ({report[doc_id_col].nunique():,} documents)"
        )
        logger.warning(message)
        warnings.warn(message, CoverageWarning, stacklevel=2)

    return report


def describe_coverage(summary: pd.DataFrame, metrics: Sequence[str]) -> Dict[str, Any]:
    """Distribution of per-document coverage for each metric"""
    results = {}
    for metric in metrics:
        coverage = summary[f"{metric}_coverage"].dropna()
        results[metric] = {
            "mean": float(coverage.mean()) if len(coverage) else np.nan,
            "min": float(coverage.min()) if len(coverage) else np.nan,
            "median": float(coverage.median()) if len(coverage) else np.nan,
            "n_documents": int(len(coverage)),
        }
    return results


def summarize_by_group(
    summary: pd.DataFrame, group_col: str, columns: Sequence[str]
) -> Dict[str, Dict[str, Any]]:
    """
    Mean, standard deviation and count of document-level columns per group

    Args:
        summary: Document summary table
        group_col: Grouping variable (e.g. author)
        columns: Numeric summary columns to describe

    Returns:
        Nested dictionary group -> column -> {mean, std, count}
    """
    if group_col not in summary.columns:
        logger.warning(f"No '{group_col}' column - cannot summarize by group")
        return {}

    columns = [c for c in columns if c in summary.columns]
    grouped = summary.groupby(group_col)[columns].agg(["mean", "std", "count"])

    results = {}
    for group, row in grouped.iterrows():
        results[str(group)] = {
            column: {
                "mean": float(row[(column, "mean")]),
                "std": float(row[(column, "std")]),
                "count": int(row[(column, "count")]),
            }
            for column in columns
        }

    logger.info(f"Summarized {len(columns)} columns across {len(results)} {group_col} groups")
    return results
