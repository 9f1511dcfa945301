"""Loading and cleaning of the raw patient table."""

import logging
from pathlib import Path

import pandas as pd
from sklearn.model_selection import train_test_split

from diabetes_models.config.constants import (
    BINARY_COLUMNS,
    MISSING_SMOKING_SENTINEL,
    REQUIRED_COLUMNS,
    TARGET_COLUMN,
)
from diabetes_models.data.validate_input import DataValidationError, DiabetesDataValidator

logger = logging.getLogger(__name__)


def load_raw(data_path: Path) -> pd.DataFrame:
    """Read the raw CSV.

    Args:
        data_path: Path to dataset

    Returns:
        Raw dataframe with the required columns
    """
    data_path = Path(data_path)
    if not data_path.exists():
        raise FileNotFoundError(f"Dataset not found: {data_path}")

    df = pd.read_csv(data_path)
    logger.info(f"Loaded {len(df)} rows x {df.shape[1]} columns from {data_path}")
    return df


def clean(df: pd.DataFrame, sentinel: str = MISSING_SMOKING_SENTINEL) -> pd.DataFrame:
    """Drop rows with an unknown smoking history or a flag outside {0, 1}.

    Args:
        df: Raw dataframe
        sentinel: smoking_history level meaning "unknown"

    Returns:
        New dataframe with a fresh index
    """
    keep = df["smoking_history"] != sentinel
    n_sentinel = int((~keep).sum())

    for col in BINARY_COLUMNS:
        keep &= df[col].isin([0, 1])
    n_bad_flags = int((~keep).sum()) - n_sentinel

    cleaned = df.loc[keep, REQUIRED_COLUMNS].reset_index(drop=True)
    for col in BINARY_COLUMNS:
        cleaned[col] = cleaned[col].astype(int)

    logger.info(
        f"Cleaning dropped {n_sentinel} rows with smoking_history == {sentinel!r} "
        f"and {n_bad_flags} rows with invalid flags; {len(cleaned)} rows remain"
    )
    return cleaned


def subsample(df: pd.DataFrame, fraction: float, seed: int = 42) -> pd.DataFrame:
    """Take a label-stratified sample of the rows.

    Args:
        df: Cleaned dataframe
        fraction: Share of rows to keep, 1.0 keeps everything
        seed: Random seed

    Returns:
        Sampled dataframe with a fresh index
    """
    if fraction >= 1.0:
        return df

    sample, _ = train_test_split(
        df, train_size=fraction, random_state=seed, stratify=df[TARGET_COLUMN]
    )
    logger.info(f"Sampled {len(sample)} of {len(df)} rows ({fraction:.1%})")
    return sample.reset_index(drop=True)


def load_dataset(data_path: Path, config: dict, validate: bool = True) -> pd.DataFrame:
    """Load, validate, clean and optionally subsample the dataset.

    Args:
        data_path: Path to dataset
        config: Run configuration
        validate: Run the schema check before cleaning

    Returns:
        Cleaned dataframe
    """
    df = load_raw(data_path)

    if validate:
        is_valid, errors = DiabetesDataValidator().validate_schema(df)
        if not is_valid:
            raise DataValidationError(errors)

    df = clean(df, sentinel=config["preprocessing"]["missing_sentinel"])
    return subsample(df, config["data"]["sample_fraction"], config["data"]["random_seed"])
