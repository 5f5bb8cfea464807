import json
import types

import pandas as pd
import pytest

import config
from main import NormAggregationPipeline, build_config

METRICS = ["conc_mean", "glas_imag"]


@pytest.fixture
def project(tmp_path):
    norms_dir = tmp_path / "norms"
    norms_dir.mkdir()
    (norms_dir / "Concreteness_ratings.csv").write_text(
        "Word,Conc.M,Conc.SD\ncat,4.9,0.3\ndog,4.8,0.4\nidea,1.6,1.0\n", encoding="utf-8"
    )
    (norms_dir / "Glasgow_norms.csv").write_text(
        "Words,IMAG,AROU\nCat,6.5,4.0\nidea,3.1,3.5\n", encoding="utf-8"
    )

    documents_path = tmp_path / "documents.csv"
    documents_path.write_bytes(
        b"doc_id,author,text\n"
        b"d1,x,The cat !\n"
        b"d2,y,A dog had an idea . The idea is good .\n"
        b"d3,y,The \xff dog\n"
    )

    return types.SimpleNamespace(
        DOCUMENTS_PATH=str(documents_path),
        NORMS_DIR=str(norms_dir),
        RESULTS_DIR=str(tmp_path / "results"),
        SELECTED_METRICS=METRICS,
        TEXT_COL="text",
        DOC_ID_COL="doc_id",
        GROUP_COL="author",
        STOPWORD_LIST=["the", "a", "an", "is"],
        EXCLUDED_POS_TAGS=["PUNCT", "NUM"],
        COVERAGE_WARNING_THRESHOLD=0.1,
        USE_CACHE=True,
    )


@pytest.fixture
def pipeline(project, annotator, sentiment_fn):
    return NormAggregationPipeline(project, annotator=annotator, sentiment_scorer=sentiment_fn)


def test_run_writes_all_exports(pipeline):
    results = pipeline.run()

    results_dir = pipeline.results_dir
    for name in [
        "norm_table.csv",
        "tokens_joined.csv",
        "tokens_joined.txt",
        "document_summary_with_stopwords.csv",
        "document_summary_without_stopwords.csv",
        "run_summary.json",
    ]:
        assert (results_dir / name).exists(), name

    assert results["skipped_documents"]["doc_id"].tolist() == ["d3"]

    with open(results_dir / "run_summary.json", encoding="utf-8") as f:
        run_summary = json.load(f)
    assert run_summary["n_documents"] == 2
    assert run_summary["skipped_documents"][0]["doc_id"] == "d3"
    assert set(run_summary["by_author"]["with_stopwords"]) == {"x", "y"}


def test_summaries_per_variant(pipeline):
    results = pipeline.run()

    with_sw = results["with_stopwords"].set_index("doc_id")
    without_sw = results["without_stopwords"].set_index("doc_id")

    assert with_sw.loc["d1", "conc_mean_coverage"] == 0.5
    assert without_sw.loc["d1", "conc_mean_coverage"] == 1.0
    assert without_sw.loc["d1", "conc_mean_mean"] == 4.9
    assert with_sw.loc["d2", "author"] == "y"
    assert "sentiment_mean" in with_sw.columns
    assert "sentiment_mean" not in without_sw.columns


def test_process_reuses_cached_annotations(pipeline):
    calls = []
    annotate = pipeline.annotator

    def counting_annotator(documents):
        calls.append(len(documents))
        return annotate(documents)

    documents = pd.DataFrame({"doc_id": ["d1"], "author": ["x"], "text": ["The cat !"]})
    norms = pd.DataFrame({"word": ["cat"], "conc_mean": [4.9], "glas_imag": [6.5]})

    pipeline.annotator = counting_annotator
    first = pipeline.process(documents, norms)
    second = pipeline.process(documents, norms)

    assert calls == [1]
    pd.testing.assert_frame_equal(first["with_stopwords"], second["with_stopwords"])


def test_command_line_overrides_config():
    parser_args = types.SimpleNamespace(
        documents="essays.csv",
        norms_dir=None,
        results_dir="out",
        metrics=["aoa_mean"],
        stopwords=None,
        group_col=None,
        coverage_threshold=0.2,
        no_cache=True,
    )

    overridden = build_config(parser_args)

    assert overridden.DOCUMENTS_PATH == "essays.csv"
    assert overridden.RESULTS_DIR == "out"
    assert overridden.SELECTED_METRICS == ["aoa_mean"]
    assert overridden.COVERAGE_WARNING_THRESHOLD == 0.2
    assert overridden.USE_CACHE is False
    assert overridden.NORMS_DIR == config.NORMS_DIR
    assert overridden.STOPWORD_LIST == config.STOPWORD_LIST
