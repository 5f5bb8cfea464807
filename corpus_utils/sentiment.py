"""
Sentence-level sentiment scoring aggregated per document
Default scorer: NLTK VADER compound score on NLTK sentence splits
"""

import logging
import re
from typing import Callable, List, Optional

import numpy as np
import pandas as pd
from tqdm import tqdm

from corpus_utils.stopwords import ensure_nltk_resource

logger = logging.getLogger(__name__)

SENTIMENT_COLUMNS = ["sentiment_word_count", "sentiment_mean", "sentiment_sd"]

_WORD_RE = re.compile(r"[^\W\d_]+(?:['’][^\W\d_]+)*")


def count_words(text: str) -> int:
    """Number of alphabetic words in a text"""
    return len(_WORD_RE.findall(text))


def vader_sentence_scorer() -> Callable[[str], float]:
    """VADER compound score in [-1, 1] for one sentence"""
    ensure_nltk_resource("vader_lexicon", "sentiment/vader_lexicon.zip")
    from nltk.sentiment.vader import SentimentIntensityAnalyzer

    analyzer = SentimentIntensityAnalyzer()
    return lambda sentence: analyzer.polarity_scores(sentence)["compound"]


def nltk_sentence_splitter() -> Callable[[str], List[str]]:
    """Punkt sentence splitter"""
    ensure_nltk_resource("punkt_tab", "tokenizers/punkt_tab")
    from nltk.tokenize import sent_tokenize

    return sent_tokenize


def score_sentiment(
    documents: pd.DataFrame,
    sentence_scorer: Optional[Callable[[str], float]] = None,
    sentence_splitter: Optional[Callable[[str], List[str]]] = None,
    text_col: str = "text",
    doc_id_col: str = "doc_id",
) -> pd.DataFrame:
    """
    Score every sentence and summarize the scores per document

    Documents with no words are dropped, so they appear with missing
    sentiment once merged into the document summary.

    Args:
        documents: Document table
        sentence_scorer: Sentence -> score (VADER compound when None)
        sentence_splitter: Text -> sentences (NLTK punkt when None)
        text_col: Column holding the text
        doc_id_col: Column holding the document id

    Returns:
        DataFrame with doc id, sentiment_word_count, sentiment_mean and
        sentiment_sd (sample SD across sentences; NaN for one sentence)
    """
    if sentence_scorer is None:
        sentence_scorer = vader_sentence_scorer()
    if sentence_splitter is None:
        sentence_splitter = nltk_sentence_splitter()

    rows = []
    n_dropped = 0
    for doc_id, text in tqdm(
        zip(documents[doc_id_col], documents[text_col]),
        total=len(documents),
        desc="Scoring sentiment",
    ):
        sentences = [s for s in sentence_splitter(text) if count_words(s) > 0]
        n_words = sum(count_words(s) for s in sentences)
        if n_words == 0:
            n_dropped += 1
            continue

        scores = np.array([sentence_scorer(s) for s in sentences], dtype=float)
        rows.append(
            {
                doc_id_col: doc_id,
                "sentiment_word_count": n_words,
                "sentiment_mean": scores.mean(),
                "sentiment_sd": scores.std(ddof=1) if len(scores) > 1 else np.nan,
            }
        )

    if n_dropped:
        logger.info(f"Sentiment: {n_dropped:,} documents without words were dropped")
    logger.info(f"Sentiment scored for {len(rows):,} documents")

    return pd.DataFrame(rows, columns=[doc_id_col] + SENTIMENT_COLUMNS)
