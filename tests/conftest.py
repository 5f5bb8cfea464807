import re
import string

import pandas as pd
import pytest

STOPWORDS = frozenset({"the", "a", "is", "and", "of"})

TEST_SOURCES = {
    "a": {"file_pattern": "*a_norms*", "word_columns": ["word"], "columns": {"conc": "conc"}},
    "b": {
        "file_pattern": "*b_norms*",
        "word_columns": ["word"],
        "columns": {"aoa": "aoa"},
        "duplicate_flag": "pym",
        "flagged_columns": ["aoa"],
    },
    "c": {"file_pattern": "*c_norms*", "word_columns": ["word"], "columns": {"aoa": "aoa"}},
}


def _pos(token):
    if all(ch in string.punctuation for ch in token):
        return "PUNCT"
    if token.isdigit():
        return "NUM"
    return "NOUN"


def whitespace_annotator(documents, text_col="text", doc_id_col="doc_id"):
    """Whitespace tokenizer; a punctuation token closes the sentence"""
    records = []
    for doc_id, text in zip(documents[doc_id_col], documents[text_col]):
        sentence_id, token_id = 1, 0
        for token in text.split():
            token_id += 1
            records.append(
                {
                    doc_id_col: doc_id,
                    "sentence_id": sentence_id,
                    "token_id": token_id,
                    "token": token,
                    "pos": _pos(token),
                }
            )
            if token in {".", "!", "?"}:
                sentence_id += 1
                token_id = 0
    return pd.DataFrame(
        records, columns=[doc_id_col, "sentence_id", "token_id", "token", "pos"]
    )


def keyword_scorer(sentence):
    words = sentence.lower().split()
    return float(words.count("good") - words.count("bad"))


def period_splitter(text):
    return [s for s in re.split(r"[.!?]", text) if s.strip()]


def keyword_sentiment(documents):
    from corpus_utils.sentiment import score_sentiment

    return score_sentiment(
        documents, sentence_scorer=keyword_scorer, sentence_splitter=period_splitter
    )


@pytest.fixture
def stopwords():
    return STOPWORDS


@pytest.fixture
def test_sources():
    return TEST_SOURCES


@pytest.fixture
def cat_frames():
    return {
        "a": pd.DataFrame({"Word": ["cat", "dog"], "conc": ["4.0", "4.5"]}),
        "b": pd.DataFrame({"word": ["Cat"], "aoa": ["3.0"], "pym": ["1"]}),
        "c": pd.DataFrame({"word": ["cat "], "aoa": ["5.0"]}),
    }


@pytest.fixture
def norm_table():
    return pd.DataFrame(
        {
            "word": ["cat", "dog", "sat"],
            "conc": [4.0, 4.5, 2.0],
            "aoa": [3.0, float("nan"), 6.0],
        }
    )


@pytest.fixture
def documents():
    return pd.DataFrame(
        {
            "doc_id": ["d1", "d2"],
            "author": ["x", "y"],
            "text": ["The cat !", "A dog sat . The dog is good ."],
        }
    )


@pytest.fixture
def annotator():
    return whitespace_annotator


@pytest.fixture
def sentiment_fn():
    return keyword_sentiment
