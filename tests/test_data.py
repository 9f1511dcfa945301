"""Tests for loading, cleaning, splitting and fold definition."""

import numpy as np
import pandas as pd
import pytest

from diabetes_models.config.constants import FEATURE_COLUMNS, MISSING_SMOKING_SENTINEL
from diabetes_models.data.load import clean, load_dataset, load_raw, subsample
from diabetes_models.data.split import describe_split, make_folds, split_data
from diabetes_models.data.validate_input import DataValidationError


class TestClean:
    """Test the cleaning rule."""

    def test_sentinel_rows_dropped(self, sample_patient_data):
        """Test that no unknown smoking history survives cleaning."""
        cleaned = clean(sample_patient_data)

        n_sentinel = (sample_patient_data["smoking_history"] == MISSING_SMOKING_SENTINEL).sum()
        assert n_sentinel > 0
        assert len(cleaned) == len(sample_patient_data) - n_sentinel
        assert (cleaned["smoking_history"] != MISSING_SMOKING_SENTINEL).all()

    def test_invalid_flags_dropped(self, sample_patient_data):
        """Test that rows with a flag outside {0, 1} are dropped."""
        df = sample_patient_data.copy()
        df.loc[df["smoking_history"] != MISSING_SMOKING_SENTINEL, "heart_disease"] = 0
        first_kept = df.index[df["smoking_history"] != MISSING_SMOKING_SENTINEL][0]
        df.loc[first_kept, "heart_disease"] = 7

        cleaned = clean(df)

        assert set(cleaned["heart_disease"].unique()) == {0}
        assert len(cleaned) == (df["smoking_history"] != MISSING_SMOKING_SENTINEL).sum() - 1

    def test_does_not_modify_input(self, sample_patient_data):
        """Test that cleaning returns a new frame."""
        before = sample_patient_data.copy()
        clean(sample_patient_data)

        pd.testing.assert_frame_equal(before, sample_patient_data)

    def test_custom_sentinel(self, sample_patient_data):
        """Test that a different sentinel level can be dropped."""
        cleaned = clean(sample_patient_data, sentinel="ever")

        assert "ever" not in cleaned["smoking_history"].values
        assert MISSING_SMOKING_SENTINEL in cleaned["smoking_history"].values


class TestLoading:
    """Test dataset loading."""

    def test_missing_file_raises(self, tmp_path):
        """Test that a missing CSV raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_raw(tmp_path / "nope.csv")

    def test_load_dataset_cleans(self, sample_csv, small_config):
        """Test that load_dataset validates and cleans."""
        df = load_dataset(sample_csv, small_config)

        assert (df["smoking_history"] != MISSING_SMOKING_SENTINEL).all()
        assert list(df.index) == list(range(len(df)))

    def test_load_dataset_rejects_invalid(self, sample_patient_data, small_config, tmp_path):
        """Test that a schema violation raises DataValidationError."""
        path = tmp_path / "invalid.csv"
        sample_patient_data.assign(diabetes=2).to_csv(path, index=False)

        with pytest.raises(DataValidationError) as exc_info:
            load_dataset(path, small_config)

        assert exc_info.value.errors

    def test_subsample_is_stratified(self, cleaned_data):
        """Test that subsampling keeps the positive rate."""
        sample = subsample(cleaned_data, 0.5, seed=1)

        assert len(sample) == pytest.approx(len(cleaned_data) / 2, abs=1)
        assert sample["diabetes"].mean() == pytest.approx(cleaned_data["diabetes"].mean(), abs=0.02)

    def test_subsample_full_fraction_is_identity(self, cleaned_data):
        """Test that a fraction of 1.0 keeps every row."""
        assert subsample(cleaned_data, 1.0) is cleaned_data


class TestSplit:
    """Test train/test split and folds."""

    def test_split_is_disjoint_and_complete(self, cleaned_data):
        """Test that train and test partition the cleaned rows."""
        X_train, X_test, y_train, y_test = split_data(cleaned_data, test_size=0.25)

        assert set(X_train.index).isdisjoint(X_test.index)
        assert len(X_train) + len(X_test) == len(cleaned_data)
        assert list(X_train.columns) == FEATURE_COLUMNS
        assert y_train.index.equals(X_train.index)

    def test_split_is_stratified(self, cleaned_data):
        """Test that both partitions keep the positive rate."""
        _, _, y_train, y_test = split_data(cleaned_data, test_size=0.25)

        overall = cleaned_data["diabetes"].mean()
        assert y_train.mean() == pytest.approx(overall, abs=0.02)
        assert y_test.mean() == pytest.approx(overall, abs=0.03)

    def test_split_is_reproducible(self, cleaned_data):
        """Test that the same seed gives the same partition."""
        first = split_data(cleaned_data, random_seed=7)[1]
        second = split_data(cleaned_data, random_seed=7)[1]

        assert first.index.equals(second.index)

    def test_folds_cover_each_row_once(self, cleaned_data):
        """Test that every training row is validated exactly once."""
        X_train, _, y_train, _ = split_data(cleaned_data)
        folds = make_folds(X_train, y_train, n_splits=5)

        assert len(folds) == 5
        validated = np.concatenate([valid for _, valid in folds])
        assert sorted(validated) == list(range(len(X_train)))
        for train_idx, valid_idx in folds:
            assert set(train_idx).isdisjoint(valid_idx)

    def test_folds_are_stratified(self, cleaned_data):
        """Test that each fold keeps the training positive rate."""
        X_train, _, y_train, _ = split_data(cleaned_data)
        folds = make_folds(X_train, y_train, n_splits=3)

        for _, valid_idx in folds:
            assert y_train.iloc[valid_idx].mean() == pytest.approx(y_train.mean(), abs=0.03)

    def test_describe_split(self, cleaned_data):
        """Test the partition summary table."""
        X_train, _, y_train, y_test = split_data(cleaned_data)
        folds = make_folds(X_train, y_train, n_splits=3)

        table = describe_split(y_train, y_test, folds)

        assert list(table["partition"]) == ["train", "test", "fold_01", "fold_02", "fold_03"]
        assert table.loc[2:, "n"].sum() == len(y_train)
        assert table["positive_rate"].between(0, 1).all()
