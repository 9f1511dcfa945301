"""Test configuration and fixtures."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from diabetes_models.config.constants import SMOKING_LEVELS
from diabetes_models.config.loader import load_config
from diabetes_models.data.load import clean


@pytest.fixture
def sample_patient_data():
    """Raw patient table with a learnable outcome and some unknown smoking rows."""
    rng = np.random.default_rng(42)
    n = 400

    age = rng.uniform(20, 80, n).round(0)
    bmi = rng.normal(27, 5, n).clip(15, 50).round(2)
    hba1c = rng.normal(5.5, 0.8, n).clip(3.5, 9.0).round(1)
    glucose = rng.normal(130, 35, n).clip(80, 300).round(0)

    logit = -2.5 + 1.5 * (hba1c - 5.5) + 0.02 * (glucose - 130) + 0.03 * (age - 50)
    diabetes = rng.binomial(1, 1 / (1 + np.exp(-logit)))

    return pd.DataFrame(
        {
            "gender": rng.choice(["Female", "Male", "Other"], n, p=[0.55, 0.43, 0.02]),
            "age": age,
            "hypertension": rng.binomial(1, 0.1, n),
            "heart_disease": rng.binomial(1, 0.05, n),
            "smoking_history": rng.choice(SMOKING_LEVELS, n),
            "bmi": bmi,
            "HbA1c_level": hba1c,
            "blood_glucose_level": glucose,
            "diabetes": diabetes,
        }
    )


@pytest.fixture
def cleaned_data(sample_patient_data):
    return clean(sample_patient_data)


@pytest.fixture
def sample_csv(sample_patient_data, tmp_path):
    path = tmp_path / "diabetes_prediction_dataset.csv"
    sample_patient_data.to_csv(path, index=False)
    return path


@pytest.fixture
def small_config(sample_csv, tmp_path):
    """Defaults shrunk to run in seconds on the sample table."""
    config = load_config()
    config["data"]["raw_path"] = str(sample_csv)
    config["cross_validation"]["n_splits"] = 3
    config["tuning"]["cache_dir"] = str(tmp_path / "tuning_cache")
    config["mlflow"]["enabled"] = False
    config["models"] = {
        "knn": {"grid": {"n_neighbors": [5, 15]}},
    }
    return config
