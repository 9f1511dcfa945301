"""Data validation for the diabetes prediction dataset."""

import json
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd
import pandera as pa
from pandera import Column, DataFrameSchema

from diabetes_models.config.constants import (
    GENDER_LEVELS,
    NUMERIC_COLUMNS,
    REQUIRED_COLUMNS,
    SMOKING_LEVELS,
)


class DataValidationError(ValueError):
    """Raised when a dataset does not match the expected schema."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Dataset failed validation with {len(errors)} error(s): {errors[:5]}")


class DiabetesDataValidator:
    """Validates the raw patient table."""

    REQUIRED_COLUMNS = REQUIRED_COLUMNS

    def __init__(self):
        """Initialize validator with schema."""
        binary = [pa.Check.isin([0, 1])]
        self.schema = DataFrameSchema(
            {
                "gender": Column(str, checks=[pa.Check.isin(GENDER_LEVELS)], nullable=False),
                "age": Column(float, checks=[pa.Check.ge(0), pa.Check.le(120)], nullable=False),
                "hypertension": Column(int, checks=binary, nullable=False),
                "heart_disease": Column(int, checks=binary, nullable=False),
                "smoking_history": Column(
                    str, checks=[pa.Check.isin(SMOKING_LEVELS)], nullable=False
                ),
                "bmi": Column(float, checks=[pa.Check.gt(0)], nullable=False),
                "HbA1c_level": Column(float, checks=[pa.Check.gt(0)], nullable=False),
                "blood_glucose_level": Column(float, checks=[pa.Check.gt(0)], nullable=False),
                "diabetes": Column(int, checks=binary, nullable=False),
            },
            strict=False,
            coerce=True,
        )

    def validate_schema(self, df: pd.DataFrame) -> Tuple[bool, List[str]]:
        """Validate dataframe against required columns, types and value domains.

        Checks for:
        - Missing required columns
        - Data type mismatches
        - Category levels, {0, 1} flags and positive measurements

        Args:
            df: Input dataframe

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        missing_cols = sorted(set(self.REQUIRED_COLUMNS) - set(df.columns))
        if missing_cols:
            errors.append(f"Missing required columns: {missing_cols}")
            return False, errors

        try:
            self.schema.validate(df[self.REQUIRED_COLUMNS], lazy=True)
            return True, []
        except pa.errors.SchemaErrors as e:
            for _, row in e.failure_cases.iterrows():
                errors.append(
                    f"Column '{row['column']}' failed check '{row['check']}' "
                    f"at index {row['index']}"
                )
            return False, errors

    def detect_outliers(self, df: pd.DataFrame, z_threshold: float = 3.0) -> Dict[str, List[int]]:
        """Detect outliers in the numeric measurements using z-scores.

        Args:
            df: Input dataframe
            z_threshold: Absolute z-score above which a value is an outlier

        Returns:
            Dictionary mapping column names to list of outlier indices
        """
        outliers = {}

        for col in NUMERIC_COLUMNS:
            if col in df.columns and len(df) > 3:
                mean = df[col].mean()
                std = df[col].std()
                if std > 0:
                    z_scores = ((df[col] - mean) / std).abs()
                    outlier_indices = df[z_scores > z_threshold].index.tolist()
                    if outlier_indices:
                        outliers[col] = outlier_indices

        return outliers

    def validate_file(self, file_path: Path, rejected_dir: Path) -> Tuple[pd.DataFrame, Dict]:
        """Validate an input CSV and write an error report if it is rejected.

        Args:
            file_path: Path to input CSV file
            rejected_dir: Directory for the error report of rejected files

        Returns:
            Tuple of (valid_dataframe or None, validation_report)
        """
        try:
            df = pd.read_csv(file_path)
        except (OSError, pd.errors.ParserError) as e:
            return None, {"status": "error", "message": f"Failed to read file: {e}"}

        report = {
            "file": file_path.name,
            "total_records": len(df),
            "valid_records": 0,
            "errors": [],
            "warnings": [],
        }

        is_valid, errors = self.validate_schema(df)
        if not is_valid:
            report["status"] = "rejected"
            report["errors"] = errors
            rejected_dir.mkdir(parents=True, exist_ok=True)
            error_report_path = rejected_dir / f"errors_{file_path.stem}.json"
            with open(error_report_path, "w") as f:
                json.dump(report, f, indent=2)

            return None, report

        outliers = self.detect_outliers(df)
        if outliers:
            counts = {col: len(idx) for col, idx in outliers.items()}
            report["warnings"].append(f"Outliers detected (|z| > 3): {counts}")

        report["status"] = "valid"
        report["valid_records"] = len(df)

        return df, report


def main():
    """CLI entry point for data validation."""
    import argparse

    parser = argparse.ArgumentParser(description="Validate the diabetes prediction dataset")
    parser.add_argument("input_file", type=Path, help="Path to input CSV file")
    parser.add_argument("--rejected-dir", type=Path, default=Path("data/rejected"))
    args = parser.parse_args()

    validator = DiabetesDataValidator()
    valid_df, report = validator.validate_file(args.input_file, args.rejected_dir)

    print(f"Validation Report: {json.dumps(report, indent=2)}")

    if valid_df is None:
        print("Validation failed. Check rejected directory for details.")
        return 1
    return 0


if __name__ == "__main__":
    exit(main())
