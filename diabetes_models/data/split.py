"""Train/test split and cross-validation folds."""

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from diabetes_models.config.constants import FEATURE_COLUMNS, TARGET_COLUMN

logger = logging.getLogger(__name__)

Fold = Tuple[np.ndarray, np.ndarray]


def split_data(df: pd.DataFrame, test_size: float = 0.25, random_seed: int = 42) -> tuple:
    """Split the cleaned table into stratified training and testing sets.

    Args:
        df: Cleaned dataframe
        test_size: Share of rows held out for testing
        random_seed: Random seed

    Returns:
        Tuple of (X_train, X_test, y_train, y_test)
    """
    X = df[FEATURE_COLUMNS]
    y = df[TARGET_COLUMN]

    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=test_size, random_state=random_seed, stratify=y
    )

    logger.info(f"Train size: {len(X_train)}, Test size: {len(X_test)}")
    logger.info(f"Train positive rate: {y_train.mean():.3f}")
    logger.info(f"Test positive rate: {y_test.mean():.3f}")

    return X_train, X_test, y_train, y_test


def make_folds(
    X: pd.DataFrame,
    y: pd.Series,
    n_splits: int = 10,
    random_seed: int = 42,
    shuffle: bool = True,
) -> List[Fold]:
    """Define stratified k-fold partitions of the training set.

    The folds are materialised once so that every model is scored on exactly
    the same rows.

    Args:
        X: Training features
        y: Training labels
        n_splits: Number of folds
        random_seed: Random seed (ignored when shuffle is False)
        shuffle: Shuffle rows before assigning folds

    Returns:
        List of (train_indices, validation_indices) positional index pairs
    """
    splitter = StratifiedKFold(
        n_splits=n_splits,
        shuffle=shuffle,
        random_state=random_seed if shuffle else None,
    )
    folds = [(train_idx, valid_idx) for train_idx, valid_idx in splitter.split(X, y)]
    logger.info(f"Defined {len(folds)} stratified folds over {len(X)} training rows")
    return folds


def describe_split(y_train: pd.Series, y_test: pd.Series, folds: List[Fold] = None) -> pd.DataFrame:
    """Summarize partition sizes and positive rates.

    Args:
        y_train: Training labels
        y_test: Testing labels
        folds: Optional fold definition over y_train

    Returns:
        DataFrame with one row per partition
    """
    rows = [
        {"partition": "train", "n": len(y_train), "positives": int(y_train.sum()), "positive_rate": float(y_train.mean())},
        {"partition": "test", "n": len(y_test), "positives": int(y_test.sum()), "positive_rate": float(y_test.mean())},
    ]

    for i, (_, valid_idx) in enumerate(folds or [], start=1):
        y_fold = y_train.iloc[valid_idx]
        rows.append(
            {
                "partition": f"fold_{i:02d}",
                "n": len(y_fold),
                "positives": int(y_fold.sum()),
                "positive_rate": float(y_fold.mean()),
            }
        )

    return pd.DataFrame(rows)
