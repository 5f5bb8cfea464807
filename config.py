# Data paths
DATA_ROOT = "data"
DOCUMENTS_PATH = f"{DATA_ROOT}/documents.csv"  # One row per document, 'text' column
NORMS_DIR = f"{DATA_ROOT}/norms"  # One rating table per study
RESULTS_DIR = "results"

# Document table columns
TEXT_COL = "text"
DOC_ID_COL = "doc_id"  # Implicit ids text1..textN when absent
GROUP_COL = "author"

# Norm metrics carried through join and aggregation
SELECTED_METRICS = [
    "conc_mean",
    "prev_prevalence",
    "subtlex_lg10wf",
    "aoa_mean",
    "glas_imag",
    "soc_mean",
]

# Token handling
STOPWORD_LIST = "nltk_english"  # Registered list name or path to a word-per-line file
EXCLUDED_POS_TAGS = ["PUNCT", "NUM"]
SPACY_MODEL = "en_core_web_sm"

# Reporting
COVERAGE_WARNING_THRESHOLD = 0.1  # Flag document/metric coverage at or below this
USE_CACHE = True
