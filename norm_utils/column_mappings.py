"""
Column mapping definitions for the psycholinguistic norm sources
Standardizes column names across the rating tables of different studies

Raw column names are matched after lowercasing and stripping. Each source maps
its raw columns to canonical names carrying the source prefix, so that generic
names such as "mean" never collide across studies.
"""

from typing import Dict

WORD_COL = "word"
PREFIX_SEPARATOR = "_"

# Brysbaert, Warriner & Kuperman (2014) concreteness ratings
CONCRETENESS_SOURCE = {
    "file_pattern": "*oncreteness*",
    "word_columns": ["word"],
    "columns": {
        "conc.m": "conc_mean",
        "conc.sd": "conc_sd",
        "percent_known": "conc_percent_known",
    },
}

# Brysbaert, Mandera, McCormick & Keuleers (2019) word prevalence
PREVALENCE_SOURCE = {
    "file_pattern": "*revalence*",
    "word_columns": ["word"],
    "columns": {
        "prevalence": "prev_prevalence",
        "pknown": "prev_pknown",
    },
}

# Brysbaert & New (2009) SUBTLEX-US frequencies
FREQUENCY_SOURCE = {
    "file_pattern": "*SUBTLEX*",
    "word_columns": ["word"],
    "columns": {
        "subtlwf": "subtlex_wf",
        "lg10wf": "subtlex_lg10wf",
        "subtlcd": "subtlex_cd",
        "lg10cd": "subtlex_lg10cd",
    },
}

# Kuperman, Stadthagen-Gonzalez & Brysbaert (2012) age of acquisition
AOA_SOURCE = {
    "file_pattern": "*AoA*",
    "word_columns": ["word"],
    "columns": {
        "rating.mean": "aoa_mean",
        "rating.sd": "aoa_sd",
    },
}

# Diveica, Pexman & Binney (2023) socialness
SOCIALNESS_SOURCE = {
    "file_pattern": "*ocialness*",
    "word_columns": ["word"],
    "columns": {
        "mean": "soc_mean",
        "sd": "soc_sd",
    },
}

# Clark & Paivio (2004) extended PYM norms. Words that also occur in the
# original Paivio, Yuille & Madigan set are listed a second time with the
# "pym" flag set; those rows lose their rating columns when the word has
# another row to take them from.
CLARK_PAIVIO_SOURCE = {
    "file_pattern": "*lark*aivio*",
    "word_columns": ["word", "word2"],
    "columns": {
        "imag": "cp_imag",
        "conc": "cp_conc",
        "fam": "cp_fam",
        "aoa": "cp_aoa",
    },
    "duplicate_flag": "pym",
    "flagged_columns": ["cp_imag", "cp_conc", "cp_fam", "cp_aoa"],
}

# Scott, Keitel, Becirspahic, Yao & Sereno (2019) Glasgow norms. The broadest
# table, whose bare column names all get the fallback prefix.
GLASGOW_SOURCE = {
    "file_pattern": "*lasgow*",
    "word_columns": ["words"],
    "prefix": "glas",
    "prefix_columns": [
        "length",
        "arou",
        "val",
        "dom",
        "cnc",
        "imag",
        "fam",
        "aoa",
        "size",
        "gend",
    ],
}

NORM_SOURCES = {
    "concreteness": CONCRETENESS_SOURCE,
    "prevalence": PREVALENCE_SOURCE,
    "frequency": FREQUENCY_SOURCE,
    "aoa": AOA_SOURCE,
    "socialness": SOCIALNESS_SOURCE,
    "clark_paivio": CLARK_PAIVIO_SOURCE,
    "glasgow": GLASGOW_SOURCE,
}


def build_column_mapping(source: dict) -> Dict[str, str]:
    """
    Get the raw -> canonical column mapping for a norm source

    Args:
        source: Source definition (an entry of NORM_SOURCES)

    Returns:
        Dictionary mapping lowercase raw columns to canonical names
    """
    mapping = dict(source.get("columns", {}))

    prefix = source.get("prefix")
    for raw in source.get("prefix_columns", []):
        mapping[raw] = f"{prefix}{PREFIX_SEPARATOR}{raw.replace('.', PREFIX_SEPARATOR)}"

    return mapping


def canonical_metrics(sources: Dict[str, dict] = None) -> list:
    """All canonical metric names the given sources can produce, in definition order"""
    sources = NORM_SOURCES if sources is None else sources
    metrics = []
    for source in sources.values():
        for canonical in build_column_mapping(source).values():
            if canonical not in metrics:
                metrics.append(canonical)
    return metrics
