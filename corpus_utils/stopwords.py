"""
Named, swappable stopword lists
"""

import logging
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, Union

import nltk

logger = logging.getLogger(__name__)


def ensure_nltk_resource(name: str, path: str) -> None:
    """Download an NLTK data package if it is not installed yet"""
    try:
        nltk.data.find(path)
    except LookupError:
        logger.info(f"Downloading NLTK resource '{name}'...")
        nltk.download(name, quiet=True)


def _nltk_english() -> Iterable[str]:
    ensure_nltk_resource("stopwords", "corpora/stopwords")
    from nltk.corpus import stopwords

    return stopwords.words("english")


def _spacy_english() -> Iterable[str]:
    from spacy.lang.en.stop_words import STOP_WORDS

    return STOP_WORDS


STOPWORD_LISTS: Dict[str, Callable[[], Iterable[str]]] = {
    "nltk_english": _nltk_english,
    "spacy_english": _spacy_english,
}


def _read_stopword_file(path: Path) -> Iterable[str]:
    """One word per line; blank lines and '#' comments ignored"""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            word = line.split("#", 1)[0].strip()
            if word:
                yield word


def get_stopwords(selection: Union[str, Path, Iterable[str]]) -> FrozenSet[str]:
    """
    Resolve a stopword list

    Args:
        selection: A registered list name (see STOPWORD_LISTS), a path to a
            one-word-per-line file, or any iterable of words

    Returns:
        Frozen set of lowercase stopwords
    """
    if isinstance(selection, (str, Path)):
        if str(selection) in STOPWORD_LISTS:
            words = STOPWORD_LISTS[str(selection)]()
            source = f"list '{selection}'"
        elif Path(selection).is_file():
            words = _read_stopword_file(Path(selection))
            source = f"file {selection}"
        else:
            raise KeyError(
                f"Unknown stopword list: {selection}. "
                f"Known lists: {sorted(STOPWORD_LISTS)} (or pass a file path)"
            )
    else:
        words = selection
        source = "caller-supplied collection"

    stopwords = frozenset(str(w).strip().lower() for w in words if str(w).strip())
    logger.info(f"Using {len(stopwords):,} stopwords from {source}")
    return stopwords
