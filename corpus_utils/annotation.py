"""
Sentence and part-of-speech annotation of documents with spaCy

Produces the token record contract consumed by the token store:
doc_id, sentence_id, token_id, token, pos (plus tag and lemma)
"""

import logging
from typing import Optional

import pandas as pd
import spacy
from tqdm import tqdm

logger = logging.getLogger(__name__)

TOKEN_COLUMNS = ["doc_id", "sentence_id", "token_id", "token", "pos", "tag", "lemma"]


def load_spacy_model(model_name: str = "en_core_web_sm"):
    """
    Load a spaCy pipeline with a parser or sentence segmenter

    Raises:
        OSError: If the model is not installed
    """
    try:
        nlp = spacy.load(model_name)
    except OSError as e:
        raise OSError(
            f"spaCy model '{model_name}' is not installed.\n"
            f"Install with: python -m spacy download {model_name}"
        ) from e

    logger.info(f"spaCy model loaded: {model_name} (pipes: {nlp.pipe_names})")
    return nlp


def annotate_documents(
    documents: pd.DataFrame,
    nlp=None,
    model_name: str = "en_core_web_sm",
    text_col: str = "text",
    doc_id_col: str = "doc_id",
    batch_size: int = 64,
    n_process: int = 1,
) -> pd.DataFrame:
    """
    Tokenize, sentence-split and POS-tag every document

    Sentence and token ids are 1-based; token ids restart in every sentence.
    Whitespace tokens are dropped.

    Args:
        documents: Document table
        nlp: Loaded spaCy pipeline (loaded from model_name when None)
        model_name: spaCy model to load when nlp is None
        text_col: Column holding the text
        doc_id_col: Column holding the document id
        batch_size: Documents per spaCy batch
        n_process: spaCy worker processes

    Returns:
        DataFrame with one row per token
    """
    if nlp is None:
        nlp = load_spacy_model(model_name)

    texts = documents[text_col].tolist()
    doc_ids = documents[doc_id_col].tolist()

    records = []
    docs = nlp.pipe(texts, batch_size=batch_size, n_process=n_process)
    for doc_id, doc in tqdm(zip(doc_ids, docs), total=len(texts), desc="Annotating"):
        for sentence_id, sent in enumerate(doc.sents, start=1):
            token_id = 0
            for token in sent:
                if token.is_space:
                    continue
                token_id += 1
                records.append(
                    {
                        "doc_id": doc_id,
                        "sentence_id": sentence_id,
                        "token_id": token_id,
                        "token": token.text,
                        "pos": token.pos_,
                        "tag": token.tag_,
                        "lemma": token.lemma_,
                    }
                )

    tokens = pd.DataFrame(records, columns=TOKEN_COLUMNS)
    if doc_id_col != "doc_id":
        tokens = tokens.rename(columns={"doc_id": doc_id_col})

    logger.info(
        f"Annotated {len(texts):,} documents: {len(tokens):,} tokens, "
        f"{tokens.groupby(doc_id_col)['sentence_id'].nunique().sum():,} sentences"
    )
    return tokens
