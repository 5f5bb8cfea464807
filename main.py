#!/usr/bin/env python3
"""
Main Orchestrator for Psycholinguistic Norm Aggregation
Reconciles norm tables, joins them onto the annotated corpus and writes
per-document summaries with and without stopwords
"""

import argparse
import logging
import sys
import types
from pathlib import Path
from typing import Callable, Optional

import pandas as pd

# Import configuration
import config
from aggregation_utils.document_aggregation import aggregate_documents, metric_columns
from aggregation_utils.stats_utils import (
    describe_coverage,
    find_low_coverage,
    summarize_by_group,
)
from corpus_utils.annotation import annotate_documents
from corpus_utils.data_utils import document_metadata, load_documents, validate_encoding
from corpus_utils.sentiment import score_sentiment
from corpus_utils.stopwords import get_stopwords
from corpus_utils.token_store import EXCLUDED_POS_TAGS, build_token_store
from norm_utils.canonicalizer import canonicalize_norms
from norm_utils.column_mappings import canonical_metrics
from norm_utils.lexical_join import join_norms
from norm_utils.norm_loading import load_norm_tables
from pipeline_utils.caching_utils import compute_data_hash, load_or_recompute
from pipeline_utils.misc_utils import (
    create_output_directories,
    save_json_results,
    save_table,
    setup_logging,
    validate_config,
)

logger = logging.getLogger(__name__)


class NormAggregationPipeline:
    """
    Batch pipeline: norm tables + documents -> per-document summaries

    The annotator and sentiment scorer are collaborators: by default spaCy and
    NLTK VADER, replaceable by any callable taking the document table and
    returning the same table contract.
    """

    def __init__(
        self,
        config_obj=None,
        annotator: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None,
        sentiment_scorer: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None,
    ):
        self.config = config_obj or config

        # Validate configuration
        validate_config(self.config)

        self.metrics = list(self.config.SELECTED_METRICS)
        self.text_col = self._get("TEXT_COL", "text")
        self.doc_id_col = self._get("DOC_ID_COL", "doc_id")
        self.group_col = self._get("GROUP_COL", None)
        self.use_cache = self._get("USE_CACHE", True)

        # Create output directories
        self.results_dir = Path(self._get("RESULTS_DIR", "results"))
        self.directories = create_output_directories(self.results_dir)

        self.annotator = annotator
        self.sentiment_scorer = sentiment_scorer

        logger.info("Norm Aggregation Pipeline initialized")

    def _get(self, key, default=None):
        return getattr(self.config, key, default)

    def load_documents(self) -> tuple:
        """
        Load the document table and drop documents failing UTF-8 validation

        Returns:
            (documents, skipped) tuple
        """
        logger.info("Loading documents...")
        documents = load_documents(
            Path(self.config.DOCUMENTS_PATH),
            text_col=self.text_col,
            doc_id_col=self.doc_id_col,
        )
        return validate_encoding(
            documents, text_col=self.text_col, doc_id_col=self.doc_id_col
        )

    def build_norm_table(self, sources: Optional[dict] = None) -> pd.DataFrame:
        """Discover, load and reconcile the raw norm tables"""
        frames = load_norm_tables(Path(self.config.NORMS_DIR), sources)
        norms = canonicalize_norms(frames, sources)
        save_table(norms, self.results_dir / "norm_table.csv")
        return norms

    def annotate(self, documents: pd.DataFrame) -> pd.DataFrame:
        """Annotate documents, reusing cached annotations of identical input"""
        annotator_name = (
            "spacy_" + self._get("SPACY_MODEL", "en_core_web_sm")
            if self.annotator is None
            else getattr(self.annotator, "__name__", type(self.annotator).__name__)
        )
        data_hash = compute_data_hash(documents[[self.doc_id_col, self.text_col]])
        cache_path = self.directories["cache"] / f"tokens_{annotator_name}_{data_hash}.joblib"

        return load_or_recompute(cache_path, self._annotate, self.use_cache, documents)

    def _annotate(self, documents: pd.DataFrame) -> pd.DataFrame:
        if self.annotator is not None:
            return self.annotator(documents)
        return annotate_documents(
            documents,
            model_name=self._get("SPACY_MODEL", "en_core_web_sm"),
            text_col=self.text_col,
            doc_id_col=self.doc_id_col,
        )

    def score_sentiment(self, documents: pd.DataFrame) -> pd.DataFrame:
        if self.sentiment_scorer is not None:
            return self.sentiment_scorer(documents)
        return score_sentiment(
            documents, text_col=self.text_col, doc_id_col=self.doc_id_col
        )

    def process(self, documents: pd.DataFrame, norms: pd.DataFrame) -> dict:
        """
        Run the token and aggregation stages on in-memory tables

        Args:
            documents: Validated document table
            norms: Canonical norm table

        Returns:
            Dictionary with the joined tokens, both document summaries and
            the low-coverage reports
        """
        logger.info("=" * 60)
        logger.info("BUILDING TOKEN STORE")
        logger.info("=" * 60)

        stopwords = get_stopwords(self._get("STOPWORD_LIST", "nltk_english"))
        tokens = self.annotate(documents)
        store = build_token_store(
            tokens,
            documents,
            stopwords,
            doc_id_col=self.doc_id_col,
            text_col=self.text_col,
            excluded_tags=self._get("EXCLUDED_POS_TAGS", EXCLUDED_POS_TAGS),
        )

        logger.info("=" * 60)
        logger.info("JOINING NORMS")
        logger.info("=" * 60)

        joined = join_norms(store, norms, self.metrics)

        logger.info("=" * 60)
        logger.info("AGGREGATING DOCUMENTS")
        logger.info("=" * 60)

        metadata = document_metadata(documents, self.text_col, self.doc_id_col)
        group_cols = []
        if self.group_col and self.group_col in metadata.columns:
            group_cols = [self.group_col]
        elif self.group_col:
            logger.warning(f"Grouping column '{self.group_col}' not in document table")

        sentiment = self.score_sentiment(documents)

        with_stopwords = aggregate_documents(
            joined,
            self.metrics,
            group_cols=group_cols,
            exclude_stopwords=False,
            sentiment=sentiment,
            documents=metadata,
            doc_id_col=self.doc_id_col,
        )
        without_stopwords = aggregate_documents(
            joined,
            self.metrics,
            group_cols=group_cols,
            exclude_stopwords=True,
            documents=metadata,
            doc_id_col=self.doc_id_col,
        )

        threshold = self._get("COVERAGE_WARNING_THRESHOLD", 0.1)
        low_coverage = {
            "with_stopwords": find_low_coverage(
                with_stopwords, self.metrics, threshold, self.doc_id_col
            ),
            "without_stopwords": find_low_coverage(
                without_stopwords, self.metrics, threshold, self.doc_id_col
            ),
        }

        return {
            "tokens": joined,
            "with_stopwords": with_stopwords,
            "without_stopwords": without_stopwords,
            "low_coverage": low_coverage,
            "group_cols": group_cols,
        }

    def run(self) -> dict:
        """Full batch run from the configured files to the result exports"""
        documents, skipped = self.load_documents()
        if documents.empty:
            raise ValueError("No documents left after UTF-8 validation")

        norms = self.build_norm_table()
        results = self.process(documents, norms)
        results["skipped_documents"] = skipped

        self.save_results(results, norms)
        return results

    def save_results(self, results: dict, norms: pd.DataFrame) -> None:
        """Write the token and document exports plus the run summary"""
        tokens_path = save_table(results["tokens"], self.results_dir / "tokens_joined.csv")
        self._save_data_dictionary(results["tokens"], tokens_path.with_suffix(".txt"))

        save_table(
            results["with_stopwords"],
            self.results_dir / "document_summary_with_stopwords.csv",
        )
        save_table(
            results["without_stopwords"],
            self.results_dir / "document_summary_without_stopwords.csv",
        )

        summary_columns = [
            "word_count",
            "sentence_word_count",
            "word_length_mean",
            "syllables_mean",
        ] + metric_columns(self.metrics)

        run_summary = {
            "n_documents": len(results["with_stopwords"]),
            "n_tokens": len(results["tokens"]),
            "n_norm_words": len(norms),
            "metrics": self.metrics,
            "skipped_documents": results.get("skipped_documents", pd.DataFrame()),
            "coverage": {
                "with_stopwords": describe_coverage(results["with_stopwords"], self.metrics),
                "without_stopwords": describe_coverage(
                    results["without_stopwords"], self.metrics
                ),
            },
            "low_coverage": results["low_coverage"],
        }

        for group_col in results["group_cols"]:
            run_summary[f"by_{group_col}"] = {
                "with_stopwords": summarize_by_group(
                    results["with_stopwords"],
                    group_col,
                    summary_columns + ["sentiment_mean", "sentiment_sd"],
                ),
                "without_stopwords": summarize_by_group(
                    results["without_stopwords"], group_col, summary_columns
                ),
            }

        save_json_results(run_summary, self.results_dir / "run_summary.json")
        logger.info(f"Run complete. Results saved to {self.results_dir}")

    def _save_data_dictionary(self, data: pd.DataFrame, filepath: Path) -> None:
        """Save a data dictionary describing all token export columns"""

        column_info = {
            self.doc_id_col: "Document identifier",
            "sentence_id": "Sentence number within document (1-based)",
            "token_id": "Token number within sentence (1-based)",
            "token": "Token surface form",
            "pos": "Universal part-of-speech tag",
            "tag": "Fine-grained part-of-speech tag",
            "lemma": "Token lemma",
            "is_stopword": "Boolean: token is in the stopword list (case-insensitive)",
            "is_excluded": "Boolean: punctuation or numeral, never aggregated",
            "token_length": "Characters in token (missing for punctuation/numerals)",
            "syllables": "Estimated syllables (missing for punctuation/numerals)",
            "word_lower": "Case-normalized lookup key",
        }

        with open(filepath, "w", encoding="utf-8") as f:
            f.write("=" * 80 + "\n")
            f.write("DATA DICTIONARY - Joined Token Export\n")
            f.write("=" * 80 + "\n\n")

            f.write(f"Dataset Shape: {data.shape[0]:,} rows × {data.shape[1]} columns\n")
            f.write(
                f"Date Generated: {pd.Timestamp.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n"
            )

            for col in data.columns:
                n_missing = data[col].isna().sum()
                pct_missing = (n_missing / len(data)) * 100 if len(data) else 0.0

                description = column_info.get(col, "")
                if col in self.metrics:
                    description = "Norm rating matched on word_lower"

                f.write(f"{col}\n")
                f.write(f"  Type: {data[col].dtype}\n")
                if description:
                    f.write(f"  Description: {description}\n")
                f.write(f"  Missing: {n_missing:,} ({pct_missing:.2f}%)\n")

                if data[col].dtype == "float64" and data[col].notna().any():
                    f.write(f"  Range: [{data[col].min():.2f}, {data[col].max():.2f}]\n")

                f.write("\n")

        logger.info(f"Data dictionary saved to {filepath}")


def build_config(args: argparse.Namespace):
    """Module configuration with command-line overrides applied"""
    values = {k: v for k, v in vars(config).items() if k.isupper()}
    overrides = {
        "DOCUMENTS_PATH": args.documents,
        "NORMS_DIR": args.norms_dir,
        "RESULTS_DIR": args.results_dir,
        "SELECTED_METRICS": args.metrics,
        "STOPWORD_LIST": args.stopwords,
        "GROUP_COL": args.group_col,
        "COVERAGE_WARNING_THRESHOLD": args.coverage_threshold,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    if args.no_cache:
        values["USE_CACHE"] = False
    return types.SimpleNamespace(**values)


def main():
    parser = argparse.ArgumentParser(
        description="Psycholinguistic norm lookup and per-document aggregation",
        epilog=f"Known metrics: {', '.join(canonical_metrics())}",
    )
    parser.add_argument("--documents", type=str, help="Document table (needs a 'text' column)")
    parser.add_argument("--norms-dir", type=str, help="Directory with raw norm tables")
    parser.add_argument("--results-dir", type=str, help="Directory for all output")
    parser.add_argument(
        "--metrics", nargs="+", help="Canonical norm metrics to join and aggregate"
    )
    parser.add_argument(
        "--stopwords", type=str, help="Stopword list name or word-per-line file"
    )
    parser.add_argument("--group-col", type=str, help="Document grouping column")
    parser.add_argument(
        "--coverage-threshold",
        type=float,
        help="Report document/metric coverage at or below this fraction",
    )
    parser.add_argument(
        "--no-cache", action="store_true", help="Force re-annotation of documents"
    )
    parser.add_argument(
        "--log-file", type=str, default="norm_pipeline.log", help="Log file path"
    )

    args = parser.parse_args()
    setup_logging(args.log_file)

    try:
        pipeline = NormAggregationPipeline(build_config(args))
        pipeline.run()
        sys.exit(0)

    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        sys.exit(2)


if __name__ == "__main__":
    main()
