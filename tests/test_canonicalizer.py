import numpy as np
import pandas as pd
import pytest

from norm_utils.canonicalizer import (
    canonicalize_norms,
    normalize_words,
    prepare_norm_source,
)
from norm_utils.column_mappings import (
    CLARK_PAIVIO_SOURCE,
    GLASGOW_SOURCE,
    build_column_mapping,
    canonical_metrics,
)
from pipeline_utils.errors import DataIntegrityError, SchemaError


def test_flagged_duplicate_is_nulled_before_merge(cat_frames, test_sources):
    canonical = canonicalize_norms(cat_frames, test_sources)

    cat = canonical.set_index("word").loc["cat"]
    assert cat["conc"] == 4.0
    assert cat["aoa"] == 5.0


def test_canonical_words_are_unique_and_lowercase(cat_frames, test_sources):
    canonical = canonicalize_norms(cat_frames, test_sources)

    assert list(canonical.columns) == ["word", "conc", "aoa"]
    assert canonical["word"].tolist() == ["cat", "dog"]
    assert canonical["word"].is_unique
    assert canonical["conc"].dtype == float
    assert np.isnan(canonical.set_index("word").loc["dog", "aoa"])


def test_canonicalizing_a_canonical_table_is_idempotent(cat_frames, test_sources):
    canonical = canonicalize_norms(cat_frames, test_sources)

    passthrough = {
        "word_columns": ["word"],
        "columns": {c: c for c in canonical.columns if c != "word"},
    }
    again = canonicalize_norms({"canonical": canonical}, {"canonical": passthrough})

    pd.testing.assert_frame_equal(again, canonical)


def test_flagged_row_keeps_values_nobody_else_provides(test_sources):
    frames = {
        "b": pd.DataFrame({"word": ["bird", "cat"], "aoa": ["2.0", "3.0"], "pym": ["1", "1"]}),
        "c": pd.DataFrame({"word": ["cat"], "aoa": ["5.0"]}),
    }

    canonical = canonicalize_norms(frames, test_sources).set_index("word")

    assert canonical.loc["bird", "aoa"] == 2.0
    assert canonical.loc["cat", "aoa"] == 5.0


def test_exact_duplicate_values_collapse(test_sources):
    frames = {
        "b": pd.DataFrame({"word": ["cat"], "aoa": ["5.0"], "pym": ["0"]}),
        "c": pd.DataFrame({"word": ["cat"], "aoa": ["5.0"]}),
    }

    canonical = canonicalize_norms(frames, test_sources)

    assert len(canonical) == 1
    assert canonical.loc[0, "aoa"] == 5.0


def test_conflicting_unflagged_values_raise(test_sources):
    frames = {
        "b": pd.DataFrame({"word": ["cat"], "aoa": ["3.0"], "pym": ["no"]}),
        "c": pd.DataFrame({"word": ["cat"], "aoa": ["5.0"]}),
    }

    with pytest.raises(DataIntegrityError) as excinfo:
        canonicalize_norms(frames, test_sources)

    assert excinfo.value.column == "aoa"
    assert excinfo.value.word == "cat"


def test_non_numeric_residue_is_surfaced(test_sources):
    frames = {"a": pd.DataFrame({"word": ["cat", "dog"], "conc": ["4.0", "high"]})}

    with pytest.raises(DataIntegrityError) as excinfo:
        canonicalize_norms(frames, test_sources)

    assert excinfo.value.column == "conc"
    assert excinfo.value.word == "dog"


def test_missing_word_column_raises_schema_error(test_sources):
    frames = {"a": pd.DataFrame({"term": ["cat"], "conc": ["4.0"]})}

    with pytest.raises(SchemaError):
        canonicalize_norms(frames, test_sources)


def test_missing_flag_column_raises_schema_error(test_sources):
    frames = {"b": pd.DataFrame({"word": ["cat"], "aoa": ["3.0"]})}

    with pytest.raises(SchemaError):
        canonicalize_norms(frames, test_sources)


def test_unknown_source_raises_schema_error(test_sources):
    with pytest.raises(SchemaError):
        canonicalize_norms({"mystery": pd.DataFrame({"word": ["cat"]})}, test_sources)


def test_no_frames_raises():
    with pytest.raises(ValueError):
        canonicalize_norms({})


def test_secondary_word_column_fills_missing_primary():
    raw = pd.DataFrame(
        {
            "Word": ["abbey", np.nan],
            "WORD2": [np.nan, "Zebra"],
            "IMAG": ["5.1", "6.2"],
            "PYM": [np.nan, np.nan],
        }
    )

    prepared = prepare_norm_source(raw, "clark_paivio", CLARK_PAIVIO_SOURCE)

    assert prepared["word"].tolist() == ["abbey", "zebra"]
    assert prepared["cp_imag"].tolist() == ["5.1", "6.2"]


def test_both_word_columns_populated_raises():
    raw = pd.DataFrame(
        {"word": ["abbey"], "word2": ["abbot"], "imag": ["5.1"], "pym": [np.nan]}
    )

    with pytest.raises(DataIntegrityError) as excinfo:
        prepare_norm_source(raw, "clark_paivio", CLARK_PAIVIO_SOURCE)

    assert excinfo.value.word == "abbey"


def test_rows_without_word_are_dropped(test_sources):
    raw = pd.DataFrame({"word": ["cat", "  ", np.nan], "conc": ["4.0", "1.0", "2.0"]})

    prepared = prepare_norm_source(raw, "a", test_sources["a"])

    assert prepared["word"].tolist() == ["cat"]


def test_glasgow_columns_get_prefix():
    raw = pd.DataFrame({"Words": ["Cat"], "AROU": ["4.2"], "IMAG": ["6.1"]})

    canonical = canonicalize_norms({"glasgow": raw})

    assert list(canonical.columns) == ["word", "glas_arou", "glas_imag"]
    assert canonical.loc[0, "glas_imag"] == pytest.approx(6.1)


def test_column_mapping_helpers():
    mapping = build_column_mapping(GLASGOW_SOURCE)

    assert mapping["imag"] == "glas_imag"
    assert len(mapping) == len(GLASGOW_SOURCE["prefix_columns"])
    assert "conc_mean" in canonical_metrics()
    assert len(canonical_metrics()) == len(set(canonical_metrics()))


def test_normalize_words():
    words = pd.Series([" Cat", "DOG", "", None])

    normalized = normalize_words(words)

    assert normalized.iloc[0] == "cat"
    assert normalized.iloc[1] == "dog"
    assert normalized.iloc[2:].isna().all()
