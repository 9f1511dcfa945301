"""Tests for holdout evaluation and plots."""

import pandas as pd
import pytest

from diabetes_models.config.loader import load_config
from diabetes_models.data.split import make_folds, split_data
from diabetes_models.models.evaluate import (
    compute_feature_importance,
    evaluate_model,
    generate_confusion_matrix_plot,
    generate_evaluation_report,
    generate_feature_importance_plot,
    generate_model_comparison_plot,
    generate_roc_curve,
    generate_tuning_plot,
    grid_value_order,
    positive_scores,
)
from diabetes_models.models.specs import get_model_specs
from diabetes_models.models.train import fit_final_model
from diabetes_models.models.tune import TuningResult, collect_metrics, tune_model

RATE_METRICS = ["accuracy", "roc_auc", "sensitivity", "specificity", "precision", "f1_score"]


@pytest.fixture
def specs():
    config = load_config()
    config["models"] = {"knn": {"grid": {"n_neighbors": [5, 15]}}}
    return {spec.name: spec for spec in get_model_specs(config)}


@pytest.fixture
def fitted(cleaned_data, specs):
    X_train, X_test, y_train, y_test = split_data(cleaned_data)
    model = fit_final_model(specs["logistic"], {}, X_train, y_train, load_config())
    return model, X_test, y_test


class TestEvaluateModel:
    """Test holdout metrics."""

    def test_metrics_within_unit_interval(self, fitted):
        """Test that every rate metric lies in [0, 1]."""
        model, X_test, y_test = fitted

        metrics = evaluate_model(model, X_test, y_test)

        for name in RATE_METRICS:
            assert 0.0 <= metrics[name] <= 1.0, name
        assert metrics["roc_auc"] > 0.5

    def test_error_counts_match_confusion(self, fitted):
        """Test false negative and false positive counts."""
        model, X_test, y_test = fitted

        metrics = evaluate_model(model, X_test, y_test, prefix="test_")
        y_pred = model.predict(X_test)

        assert metrics["test_false_negatives"] == int(((y_test == 1) & (y_pred == 0)).sum())
        assert metrics["test_false_positives"] == int(((y_test == 0) & (y_pred == 1)).sum())

    def test_decision_function_models(self, cleaned_data, specs):
        """Test that a linear SVM is scored from its decision values."""
        X_train, X_test, y_train, y_test = split_data(cleaned_data)
        model = fit_final_model(specs["svm_linear"], {"C": 0.1}, X_train, y_train, load_config())

        scores = positive_scores(model, X_test)
        metrics = evaluate_model(model, X_test, y_test)

        assert not hasattr(model, "predict_proba")
        assert scores.shape == (len(X_test),)
        assert 0.0 <= metrics["roc_auc"] <= 1.0


class TestPlots:
    """Test report plots are written."""

    def test_confusion_and_roc(self, fitted, tmp_path):
        """Test confusion matrix and ROC curve files."""
        model, X_test, y_test = fitted

        generate_confusion_matrix_plot(y_test, model.predict(X_test), tmp_path / "cm.png")
        generate_roc_curve(y_test, positive_scores(model, X_test), tmp_path / "roc.png")

        assert (tmp_path / "cm.png").stat().st_size > 0
        assert (tmp_path / "roc.png").stat().st_size > 0

    def test_model_comparison_with_failed_model(self, tmp_path):
        """Test that the comparison plot tolerates excluded models."""
        comparison = collect_metrics(
            [
                TuningResult(name="a", label="A", status="ok", mean_score=0.91, std_err=0.01),
                TuningResult(name="b", label="B", status="failed", error="boom"),
            ]
        )

        generate_model_comparison_plot(comparison, tmp_path / "comparison.png")

        assert (tmp_path / "comparison.png").exists()

    def test_tuning_plot(self, cleaned_data, specs, tmp_path):
        """Test the tuning plot of a tuned model and the skip for untuned ones."""
        X_train, _, y_train, _ = split_data(cleaned_data)
        folds = make_folds(X_train, y_train, n_splits=3)

        knn = tune_model(specs["knn"], X_train, y_train, folds)
        lda = tune_model(specs["lda"], X_train, y_train, folds)

        assert generate_tuning_plot(knn, tmp_path / "knn.png")
        assert (tmp_path / "knn.png").exists()
        assert not generate_tuning_plot(lda, tmp_path / "lda.png")

    def test_feature_importance(self, fitted, tmp_path):
        """Test permutation importance over the raw predictors."""
        model, X_test, y_test = fitted

        importance = compute_feature_importance(model, X_test, y_test, n_repeats=2)
        generate_feature_importance_plot(importance, tmp_path / "importance.png")

        assert set(importance["feature"]) == set(X_test.columns)
        assert importance["importance_mean"].is_monotonic_decreasing
        assert importance.loc[0, "feature"] in {"HbA1c_level", "blood_glucose_level", "age"}
        assert (tmp_path / "importance.png").exists()


class TestTuningPlotAxis:
    """Test the order of hyperparameter values on the tuning plot axis."""

    def test_numeric_values_sort_by_magnitude(self):
        """Test that grid values sort numerically rather than by label or trial order."""
        assert grid_value_order([10.0, 0.01, 1.0, 0.1, 1.0]) == [0.01, 0.1, 1.0, 10.0]
        assert grid_value_order(pd.Series([6, -1, 3])) == [-1, 3, 6]

    def test_text_values_follow_numbers(self):
        """Test that non-numeric values sort by name after the numbers."""
        assert grid_value_order(["uniform", "distance", "distance"]) == ["distance", "uniform"]
        assert grid_value_order([5, "auto", 2]) == [2, 5, "auto"]

    def test_plot_with_unsorted_trials(self, tmp_path):
        """Test plotting trials recorded out of grid order."""
        trials = pd.DataFrame(
            {
                "C": [10.0, 0.01, 1.0, 0.1],
                "mean_score": [0.90, 0.80, 0.92, 0.85],
                "state": ["COMPLETE"] * 4,
            }
        )
        result = TuningResult(
            name="svm_linear",
            label="Linear SVM",
            status="ok",
            best_params={"C": 1.0},
            mean_score=0.92,
            trials=trials,
        )

        assert generate_tuning_plot(result, tmp_path / "svm.png")
        assert (tmp_path / "svm.png").exists()


class TestEvaluationReport:
    """Test re-evaluating saved artifacts."""

    def test_report_from_artifacts(self, fitted, tmp_path):
        """Test the evaluation CLI path on saved artifacts."""
        import joblib

        model, X_test, y_test = fitted
        joblib.dump({"model": model, "model_name": "logistic"}, tmp_path / "model_artifacts.pkl")
        pd.concat([X_test, y_test], axis=1).to_csv(tmp_path / "test_split.csv", index=False)

        metrics = generate_evaluation_report(
            tmp_path / "model_artifacts.pkl", tmp_path / "test_split.csv", tmp_path / "report"
        )

        assert 0.0 <= metrics["test_roc_auc"] <= 1.0
        assert (tmp_path / "report" / "evaluation_summary.json").exists()
        assert (tmp_path / "report" / "roc_curve.png").exists()
