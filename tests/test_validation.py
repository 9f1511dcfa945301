"""Tests for data validation."""

import json

import pandas as pd

from diabetes_models.data.validate_input import DiabetesDataValidator


def make_patients(**overrides):
    data = {
        "gender": ["Female", "Male"],
        "age": [54.0, 36.0],
        "hypertension": [0, 1],
        "heart_disease": [0, 0],
        "smoking_history": ["never", "No Info"],
        "bmi": [27.32, 23.45],
        "HbA1c_level": [6.6, 5.0],
        "blood_glucose_level": [140, 80],
        "diabetes": [1, 0],
    }
    data.update(overrides)
    return pd.DataFrame(data)


class TestDiabetesDataValidator:
    """Test data validation."""

    def test_valid_data_passes(self):
        """Test that valid data passes validation."""
        validator = DiabetesDataValidator()
        is_valid, errors = validator.validate_schema(make_patients())

        assert is_valid, f"Validation failed with errors: {errors}"
        assert len(errors) == 0

    def test_missing_columns_rejected(self):
        """Test that missing required columns are rejected."""
        df = make_patients().drop(columns=["HbA1c_level", "diabetes"])

        validator = DiabetesDataValidator()
        is_valid, errors = validator.validate_schema(df)

        assert not is_valid
        assert "Missing required columns" in errors[0]
        assert "HbA1c_level" in errors[0]

    def test_non_binary_flag_rejected(self):
        """Test that flags outside {0, 1} are rejected."""
        validator = DiabetesDataValidator()
        is_valid, errors = validator.validate_schema(make_patients(hypertension=[0, 2]))

        assert not is_valid
        assert any("hypertension" in e for e in errors)

    def test_unknown_category_rejected(self):
        """Test that unseen category levels are rejected."""
        validator = DiabetesDataValidator()
        is_valid, _ = validator.validate_schema(make_patients(gender=["Female", "F"]))

        assert not is_valid

    def test_age_validation(self):
        """Test age validation (must be <= 120)."""
        validator = DiabetesDataValidator()
        is_valid, _ = validator.validate_schema(make_patients(age=[54.0, 150.0]))

        assert not is_valid

    def test_non_positive_measurement_rejected(self):
        """Test that a zero BMI is rejected."""
        validator = DiabetesDataValidator()
        is_valid, _ = validator.validate_schema(make_patients(bmi=[0.0, 23.45]))

        assert not is_valid

    def test_outlier_detection(self, sample_patient_data):
        """Test outlier detection flags an extreme glucose value."""
        df = sample_patient_data.copy()
        df.loc[0, "blood_glucose_level"] = 5000

        validator = DiabetesDataValidator()
        outliers = validator.detect_outliers(df)

        assert isinstance(outliers, dict)
        assert 0 in outliers["blood_glucose_level"]

    def test_validate_file_writes_error_report(self, tmp_path):
        """Test that a rejected file leaves a JSON error report."""
        path = tmp_path / "bad.csv"
        make_patients(diabetes=[1, 3]).to_csv(path, index=False)

        validator = DiabetesDataValidator()
        df, report = validator.validate_file(path, tmp_path / "rejected")

        assert df is None
        assert report["status"] == "rejected"
        with open(tmp_path / "rejected" / "errors_bad.json") as f:
            assert json.load(f)["errors"]

    def test_validate_file_accepts_valid_file(self, sample_csv, tmp_path):
        """Test that the sample file validates."""
        validator = DiabetesDataValidator()
        df, report = validator.validate_file(sample_csv, tmp_path / "rejected")

        assert report["status"] == "valid"
        assert report["valid_records"] == len(df) == 400
