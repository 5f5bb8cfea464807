import pandas as pd
import pytest

from norm_utils.canonicalizer import canonicalize_norms
from norm_utils.norm_loading import discover_norm_files, load_norm_source, load_norm_tables


def _write_norms(norms_dir):
    norms_dir.mkdir()
    (norms_dir / "a_norms.csv").write_text("Word,conc\ncat,4.0\ndog,004.50\n", encoding="utf-8")
    (norms_dir / "b_norms.tsv").write_text("word\taoa\tpym\nCat\t3.0\t1\n", encoding="utf-8")
    (norms_dir / "c_norms.txt").write_text("word\taoa\ncat\t5.0\n", encoding="utf-8")
    (norms_dir / "notes.md").write_text("not a table", encoding="utf-8")


def test_discover_finds_one_file_per_source(tmp_path, test_sources):
    _write_norms(tmp_path / "norms")

    found = discover_norm_files(tmp_path / "norms", test_sources)

    assert {name: path.name for name, path in found.items()} == {
        "a": "a_norms.csv",
        "b": "b_norms.tsv",
        "c": "c_norms.txt",
    }


def test_values_are_loaded_as_text(tmp_path):
    path = tmp_path / "a_norms.csv"
    path.write_text("word,conc\ndog,004.50\n", encoding="utf-8")

    df = load_norm_source(path)

    assert df.loc[0, "conc"] == "004.50"


def test_loaded_tables_canonicalize(tmp_path, test_sources):
    _write_norms(tmp_path / "norms")

    frames = load_norm_tables(tmp_path / "norms", test_sources)
    canonical = canonicalize_norms(frames, test_sources).set_index("word")

    assert canonical.loc["cat", "aoa"] == 5.0
    assert canonical.loc["dog", "conc"] == 4.5


def test_missing_source_file_is_skipped(tmp_path, test_sources):
    norms_dir = tmp_path / "norms"
    norms_dir.mkdir()
    (norms_dir / "a_norms.csv").write_text("word,conc\ncat,4.0\n", encoding="utf-8")

    found = discover_norm_files(norms_dir, test_sources)

    assert list(found) == ["a"]


def test_no_norm_files_raises(tmp_path, test_sources):
    with pytest.raises(FileNotFoundError):
        discover_norm_files(tmp_path / "missing", test_sources)

    (tmp_path / "empty").mkdir()
    with pytest.raises(FileNotFoundError):
        discover_norm_files(tmp_path / "empty", test_sources)


def test_unsupported_format_raises(tmp_path):
    path = tmp_path / "norms.json"
    path.write_text("{}", encoding="utf-8")

    with pytest.raises(ValueError):
        load_norm_source(path)


def test_excel_tables_are_read(tmp_path):
    path = tmp_path / "a_norms.xlsx"
    pd.DataFrame({"word": ["cat"], "conc": [4.0]}).to_excel(path, index=False)

    df = load_norm_source(path)

    assert df.loc[0, "word"] == "cat"
    assert float(df.loc[0, "conc"]) == 4.0


def test_words_that_look_missing_are_kept(tmp_path, test_sources):
    norms_dir = tmp_path / "norms"
    norms_dir.mkdir()
    (norms_dir / "a_norms.csv").write_text(
        "word,conc\ncat,4.0\nnull,1.5\nnan,1.2\nNA,2.0\nnone,1.1\nidea,\n", encoding="utf-8"
    )

    frames = load_norm_tables(norms_dir, test_sources)
    canonical = canonicalize_norms(frames, test_sources).set_index("word")

    assert set(canonical.index) == {"cat", "null", "nan", "na", "none", "idea"}
    assert canonical.loc["null", "conc"] == 1.5
    assert canonical.loc["na", "conc"] == 2.0
    assert pd.isna(canonical.loc["idea", "conc"])
