"""
General utilities for the norm aggregation pipeline
"""

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def make_serializable(obj: Any) -> Any:
    """
    Convert non-serializable objects to serializable format for JSON output

    Args:
        obj: Object to make serializable

    Returns:
        Serializable version of the object
    """
    if isinstance(obj, dict):
        return {str(k): make_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple, set, frozenset)):
        return [make_serializable(v) for v in obj]
    elif isinstance(obj, pd.DataFrame):
        return make_serializable(obj.to_dict("records"))
    elif isinstance(obj, pd.Series):
        return make_serializable(obj.to_dict())
    elif isinstance(obj, np.ndarray):
        return make_serializable(obj.tolist())
    elif isinstance(obj, (np.integer, np.floating, np.bool_)):
        obj = obj.item()
    if obj is pd.NA or (isinstance(obj, float) and np.isnan(obj)):
        return None
    elif isinstance(obj, Path):
        return str(obj)
    elif hasattr(obj, "__dict__"):
        return str(obj)
    return obj


def save_json_results(results: dict, filepath: Path) -> None:
    """
    Save run results to JSON file

    Args:
        results: Dictionary with run results
        filepath: Path to save JSON file
    """
    serializable_results = make_serializable(results)
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(serializable_results, f, indent=2)
    logger.info(f"Results saved to {filepath}")


def save_table(data: pd.DataFrame, filepath: Path) -> Path:
    """
    Save a table, choosing the serialization from the file suffix

    Supported: .csv, .tsv/.txt (tab separated), .pkl
    """
    filepath = Path(filepath)
    suffix = filepath.suffix.lower()

    if suffix == ".csv":
        data.to_csv(filepath, index=False, encoding="utf-8")
    elif suffix in (".tsv", ".txt"):
        data.to_csv(filepath, sep="\t", index=False, encoding="utf-8")
    elif suffix == ".pkl":
        data.to_pickle(filepath)
    else:
        raise ValueError(f"Unsupported table format: {filepath.name}")

    logger.info(f"Saved {len(data):,} rows to {filepath}")
    return filepath


def create_output_directories(base_dir: Path) -> dict:
    """
    Create necessary output directories

    Args:
        base_dir: Base directory for outputs

    Returns:
        Dictionary with created directory paths
    """
    directories = {
        "results": base_dir,
        "cache": base_dir / "cache",
    }

    for name, dir_path in directories.items():
        dir_path.mkdir(exist_ok=True, parents=True)
        logger.debug(f"Created directory: {dir_path}")

    return directories


def setup_logging(log_file: str = "norm_pipeline.log", level: int = logging.INFO) -> None:
    """
    Setup logging configuration with UTF-8 encoding
    """
    import sys

    # Create file handler with UTF-8 encoding
    file_handler = logging.FileHandler(log_file, encoding="utf-8")

    # Create console handler
    console_handler = logging.StreamHandler(sys.stdout)

    # Set formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    # Configure root logger
    logging.basicConfig(level=level, handlers=[file_handler, console_handler])


def validate_config(config) -> None:
    """
    Validate configuration object has required attributes

    Args:
        config: Configuration object to validate

    Raises:
        AttributeError: If required configuration is missing
        ValueError: If no metrics are selected
    """
    required_attrs = ["DOCUMENTS_PATH", "NORMS_DIR", "SELECTED_METRICS"]

    for attr in required_attrs:
        if not hasattr(config, attr):
            raise AttributeError(f"Configuration missing required attribute: {attr}")

    if not list(config.SELECTED_METRICS):
        raise ValueError("SELECTED_METRICS must name at least one norm metric")

    # Input paths are only checked when a run starts
    for attr in ["DOCUMENTS_PATH", "NORMS_DIR"]:
        path = Path(getattr(config, attr))
        if not path.exists():
            logger.warning(f"{attr} does not exist: {path}")
