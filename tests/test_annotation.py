import pandas as pd
import pytest
import spacy

from corpus_utils.annotation import TOKEN_COLUMNS, annotate_documents, load_spacy_model


@pytest.fixture
def nlp():
    nlp = spacy.blank("en")
    nlp.add_pipe("sentencizer")
    return nlp


def test_token_records_follow_sentence_positions(nlp):
    documents = pd.DataFrame({"doc_id": ["d1", "d2"], "text": ["The cat sat.  It slept.", "Hi"]})

    tokens = annotate_documents(documents, nlp=nlp)

    assert list(tokens.columns) == TOKEN_COLUMNS
    d1 = tokens[tokens["doc_id"] == "d1"]
    assert d1["token"].tolist() == ["The", "cat", "sat", ".", "It", "slept", "."]
    assert d1["sentence_id"].tolist() == [1, 1, 1, 1, 2, 2, 2]
    assert d1["token_id"].tolist() == [1, 2, 3, 4, 1, 2, 3]
    assert tokens[tokens["doc_id"] == "d2"]["token"].tolist() == ["Hi"]


def test_custom_document_id_column(nlp):
    documents = pd.DataFrame({"essay": ["e1"], "text": ["Hello world."]})

    tokens = annotate_documents(documents, nlp=nlp, doc_id_col="essay")

    assert "essay" in tokens.columns
    assert tokens["essay"].unique().tolist() == ["e1"]


def test_missing_model_has_install_hint():
    with pytest.raises(OSError, match="spacy download"):
        load_spacy_model("xx_no_such_model_sm")
