"""
Corpus token store
Wraps annotator output with document metadata, stopword flags and
per-token derived attributes
"""

import logging
import re
from typing import FrozenSet, Sequence

import numpy as np
import pandas as pd

from pipeline_utils.errors import SchemaError

logger = logging.getLogger(__name__)

EXCLUDED_POS_TAGS = ("PUNCT", "NUM")
REQUIRED_TOKEN_COLUMNS = ["sentence_id", "token", "pos"]

_VOWELS = set("aeiouy")
_NON_LETTERS = re.compile(r"[^a-z]")


def count_syllables(word: str) -> int:
    """
    Estimate the number of syllables by counting vowel groups

    A final silent 'e' is dropped ("make"), except in consonant + "le"
    endings ("table"). Words with no letters have zero syllables.
    """
    word = _NON_LETTERS.sub("", str(word).lower())
    if not word:
        return 0

    count = 0
    prev_vowel = False
    for ch in word:
        is_vowel = ch in _VOWELS
        if is_vowel and not prev_vowel:
            count += 1
        prev_vowel = is_vowel

    if word.endswith("e") and count > 1:
        consonant_le = word.endswith("le") and len(word) > 2 and word[-3] not in _VOWELS
        if not consonant_le:
            count -= 1

    return max(1, count)


def build_token_store(
    tokens: pd.DataFrame,
    documents: pd.DataFrame,
    stopwords: FrozenSet[str],
    doc_id_col: str = "doc_id",
    text_col: str = "text",
    excluded_tags: Sequence[str] = EXCLUDED_POS_TAGS,
) -> pd.DataFrame:
    """
    Build the token table used by the join and aggregation stages

    Args:
        tokens: Annotator output (doc id, sentence_id, token, pos; token_id optional)
        documents: Document table; every column but the text is attached to tokens
        stopwords: Lowercase stopword set
        doc_id_col: Document id column in both tables
        text_col: Text column, dropped from the attached metadata
        excluded_tags: POS tags of punctuation/numeral tokens

    Returns:
        Token table with document metadata and the columns is_stopword,
        is_excluded, token_length, syllables

    Raises:
        SchemaError: If a required column is missing or a token references
            a document that is not in the document table
    """
    missing = [c for c in [doc_id_col] + REQUIRED_TOKEN_COLUMNS if c not in tokens.columns]
    if missing:
        raise SchemaError(f"Token table is missing columns {missing}")
    if doc_id_col not in documents.columns:
        raise SchemaError(f"Document table has no '{doc_id_col}' column")

    orphans = ~tokens[doc_id_col].isin(documents[doc_id_col])
    if orphans.any():
        orphan_ids = tokens.loc[orphans, doc_id_col].unique()
        raise SchemaError(
            f"{orphans.sum():,} tokens reference {len(orphan_ids)} unknown documents "
            f"(annotator/document id misalignment): {orphan_ids[:10].tolist()}"
        )

    store = tokens.copy()
    if "token_id" not in store.columns:
        store["token_id"] = store.groupby([doc_id_col, "sentence_id"]).cumcount() + 1

    metadata = documents.drop(columns=[text_col], errors="ignore").drop_duplicates(
        subset=doc_id_col
    )
    clashing = [c for c in metadata.columns if c != doc_id_col and c in store.columns]
    if clashing:
        raise SchemaError(f"Document metadata columns clash with token columns: {clashing}")

    store = store.merge(metadata, on=doc_id_col, how="left", validate="many_to_one")

    surface = store["token"].astype(str)
    store["is_stopword"] = surface.str.lower().isin(stopwords)
    store["is_excluded"] = store["pos"].isin(list(excluded_tags))

    # Null rather than zero, so excluded tokens never enter a mean
    content = ~store["is_excluded"]
    store["token_length"] = surface.str.len().astype(float).where(content, np.nan)
    store["syllables"] = surface.map(count_syllables).astype(float).where(content, np.nan)

    logger.info(
        f"Token store: {len(store):,} tokens in {store[doc_id_col].nunique():,} documents, "
        f"{store['is_excluded'].sum():,} punctuation/numeral, "
        f"{(store['is_stopword'] & content).sum():,} stopwords"
    )
    return store
