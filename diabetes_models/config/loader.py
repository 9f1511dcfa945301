"""Configuration loading for the comparison run."""

import copy
import logging
from pathlib import Path

import yaml

from diabetes_models.config.constants import MODEL_NAMES

DEFAULT_CONFIG = {
    "data": {
        "raw_path": "data/raw/diabetes_prediction_dataset.csv",
        "test_size": 0.25,
        "random_seed": 42,
        "sample_fraction": 1.0,
    },
    "cross_validation": {
        "n_splits": 10,
        "shuffle": True,
    },
    "preprocessing": {
        "missing_sentinel": "No Info",
        "oversample_ratio": 1.0,
    },
    "tuning": {
        "metric": "roc_auc",
        "cache_dir": "models/tuning_cache",
        "use_cache": True,
        "n_jobs": None,
    },
    "models": {},
    "mlflow": {
        "enabled": False,
        "tracking_uri": "file:./mlruns",
        "experiment_name": "diabetes-model-comparison",
    },
    "output": {
        "model_dir": "models/experiments",
        "report_dir": "reports/eda",
    },
    "logging": {
        "log_level": "INFO",
    },
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: dict) -> None:
    """Check the values that would otherwise fail deep inside sklearn.

    Raises:
        ValueError: If a setting is out of range
    """
    test_size = config["data"]["test_size"]
    if not 0 < test_size < 1:
        raise ValueError(f"data.test_size must be in (0, 1), got {test_size}")

    fraction = config["data"]["sample_fraction"]
    if not 0 < fraction <= 1:
        raise ValueError(f"data.sample_fraction must be in (0, 1], got {fraction}")

    n_splits = config["cross_validation"]["n_splits"]
    if n_splits < 2:
        raise ValueError(f"cross_validation.n_splits must be >= 2, got {n_splits}")

    ratio = config["preprocessing"]["oversample_ratio"]
    if not 0 < ratio <= 1:
        raise ValueError(f"preprocessing.oversample_ratio must be in (0, 1], got {ratio}")

    unknown = sorted(set(config["models"] or {}) - set(MODEL_NAMES))
    if unknown:
        raise ValueError(f"Unknown model(s) in models: {unknown}; expected one of {MODEL_NAMES}")


def load_config(config_path: Path = None) -> dict:
    """Load run configuration, filling unset keys from the defaults.

    Args:
        config_path: Path to a YAML file, or None for the defaults only

    Returns:
        Configuration dictionary
    """
    overrides = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path, "r") as f:
            overrides = yaml.safe_load(f) or {}

    config = _deep_merge(DEFAULT_CONFIG, overrides)
    validate_config(config)
    return config


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
