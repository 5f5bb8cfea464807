"""
Document loading and validation utilities
"""

import logging
from pathlib import Path
from typing import Tuple

import pandas as pd

from pipeline_utils.errors import EncodingError, SchemaError

logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"


def load_documents(
    path: Path, text_col: str = "text", doc_id_col: str = "doc_id"
) -> pd.DataFrame:
    """
    Load the document table

    Delimited files are decoded with 'surrogateescape' so that invalid UTF-8
    bytes survive loading and are reported per document by validate_encoding
    instead of failing the whole file.

    Args:
        path: .csv, .tsv, .txt (tab separated), .xlsx or .pkl file
        text_col: Column holding the raw text
        doc_id_col: Column holding the document id (created when absent)

    Returns:
        DataFrame with one row per document
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document table not found at {path}")

    suffix = path.suffix.lower()
    if suffix in (".csv", ".tsv", ".txt"):
        documents = pd.read_csv(
            path,
            sep="," if suffix == ".csv" else "\t",
            encoding="utf-8",
            encoding_errors="surrogateescape",
            keep_default_na=False,
            na_values=[""],
        )
    elif suffix in (".xls", ".xlsx"):
        documents = pd.read_excel(path, keep_default_na=False, na_values=[""])
    elif suffix == ".pkl":
        documents = pd.read_pickle(path)
    else:
        raise ValueError(f"Unsupported document table format: {path.name}")

    logger.info(f"Loaded {len(documents):,} documents from {path.name}")
    return prepare_documents(documents, text_col=text_col, doc_id_col=doc_id_col)


def prepare_documents(
    documents: pd.DataFrame, text_col: str = "text", doc_id_col: str = "doc_id"
) -> pd.DataFrame:
    """
    Check the document table and give every row a document id

    Rows without an explicit id are numbered text1, text2, ... in table order.

    Raises:
        SchemaError: If the text column is missing or ids are not unique
    """
    if text_col not in documents.columns:
        raise SchemaError(
            f"Document table has no '{text_col}' column. Available: {list(documents.columns)}"
        )

    documents = documents.copy()
    implicit_ids = pd.Series(
        [f"text{i}" for i in range(1, len(documents) + 1)], index=documents.index
    )

    if doc_id_col not in documents.columns:
        documents.insert(0, doc_id_col, implicit_ids)
    elif documents[doc_id_col].isna().any():
        n_missing = documents[doc_id_col].isna().sum()
        logger.warning(f"{n_missing:,} documents without '{doc_id_col}' get implicit ids")
        documents[doc_id_col] = documents[doc_id_col].astype(object).fillna(implicit_ids)

    duplicated = documents[doc_id_col].duplicated()
    if duplicated.any():
        raise SchemaError(
            f"Document ids are not unique: {documents.loc[duplicated, doc_id_col].unique()[:10].tolist()}"
        )

    documents[text_col] = documents[text_col].astype(object).where(
        documents[text_col].notna(), ""
    )
    return documents.reset_index(drop=True)


def check_text_encoding(doc_id, text) -> str:
    """
    Validate one document's text as UTF-8

    Args:
        doc_id: Document id, used in the error
        text: str or bytes

    Returns:
        The text as str

    Raises:
        EncodingError: If the text is undecodable bytes, contains lone
            surrogates (undecodable bytes escaped on load) or U+FFFD
            replacement characters (bytes replaced on an earlier decode)
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(doc_id, f"undecodable byte at position {e.start}") from e
    elif not isinstance(text, str):
        text = "" if pd.isna(text) else str(text)

    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(doc_id, f"undecodable byte at position {e.start}") from e

    if REPLACEMENT_CHAR in text:
        raise EncodingError(
            doc_id, f"{text.count(REPLACEMENT_CHAR)} replacement characters (U+FFFD)"
        )

    return text


def validate_encoding(
    documents: pd.DataFrame, text_col: str = "text", doc_id_col: str = "doc_id"
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split documents into valid UTF-8 documents and skipped ones

    Returns:
        (valid_documents, skipped) where skipped has one row per rejected
        document with its id and the reason
    """
    valid_texts = {}
    skipped = []

    for idx, row in documents.iterrows():
        doc_id = row[doc_id_col]
        try:
            valid_texts[idx] = check_text_encoding(doc_id, row[text_col])
        except EncodingError as e:
            logger.warning(f"Skipping document: {e}")
            skipped.append({doc_id_col: doc_id, "reason": e.reason})

    valid = documents.loc[list(valid_texts)].copy()
    valid[text_col] = pd.Series(valid_texts, dtype=object)
    skipped = pd.DataFrame(skipped, columns=[doc_id_col, "reason"])

    if len(skipped):
        logger.warning(
            f"{len(skipped):,} of {len(documents):,} documents failed UTF-8 validation "
            f"and were skipped"
        )
    else:
        logger.info(f"All {len(documents):,} documents passed UTF-8 validation")

    return valid.reset_index(drop=True), skipped


def document_metadata(
    documents: pd.DataFrame, text_col: str = "text", doc_id_col: str = "doc_id"
) -> pd.DataFrame:
    """Document table without the text column, for joining onto tokens"""
    return documents.drop(columns=[text_col]).drop_duplicates(subset=doc_id_col)
