"""Holdout evaluation and comparison plots."""

import argparse
import json
import logging
from pathlib import Path

import joblib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.inspection import permutation_importance
from sklearn.metrics import (
    accuracy_score,
    auc,
    classification_report,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
    roc_auc_score,
    roc_curve,
)

from diabetes_models.config.constants import FEATURE_COLUMNS, TARGET_COLUMN
from diabetes_models.config.loader import setup_logging

logger = logging.getLogger(__name__)


def load_model_artifacts(model_path: Path):
    """Load trained model artifacts.

    Args:
        model_path: Path to model artifacts file

    Returns:
        Dictionary containing model, model name, best params, metrics, etc.
    """
    model_path = Path(model_path)
    if not model_path.exists():
        raise FileNotFoundError(f"Model artifacts not found: {model_path}")
    return joblib.load(model_path)


def positive_scores(model, X) -> np.ndarray:
    """Ranking scores for the positive class.

    Probabilities where the estimator has them, decision values otherwise
    (linear SVM). Either is valid input for ROC-AUC.
    """
    if hasattr(model, "predict_proba"):
        return model.predict_proba(X)[:, 1]
    return model.decision_function(X)


def evaluate_model(model, X, y, prefix=""):
    """Evaluate a fitted classifier on labelled data.

    Args:
        model: Fitted pipeline
        X: Features
        y: True labels
        prefix: Metric prefix for logging

    Returns:
        Dictionary of metrics
    """
    y = np.asarray(y)
    y_score = positive_scores(model, X)
    y_pred = np.asarray(model.predict(X)).astype(int)

    tn, fp, fn, tp = confusion_matrix(y, y_pred, labels=[0, 1]).ravel()

    metrics = {
        f"{prefix}accuracy": accuracy_score(y, y_pred),
        f"{prefix}roc_auc": roc_auc_score(y, y_score),
        f"{prefix}sensitivity": recall_score(y, y_pred, zero_division=0),
        f"{prefix}specificity": tn / (tn + fp) if (tn + fp) else 0.0,
        f"{prefix}precision": precision_score(y, y_pred, zero_division=0),
        f"{prefix}f1_score": f1_score(y, y_pred, zero_division=0),
        f"{prefix}false_negatives": int(fn),
        f"{prefix}false_positives": int(fp),
    }

    return metrics


def generate_confusion_matrix_plot(y_true, y_pred, output_path, title="Confusion Matrix"):
    """Generate confusion matrix visualization.

    Args:
        y_true: True labels
        y_pred: Predicted labels
        output_path: Path to save plot
        title: Plot title
    """
    cm = confusion_matrix(y_true, y_pred, labels=[0, 1])

    fig, ax = plt.subplots(figsize=(8, 6))
    sns.heatmap(cm, annot=True, fmt="d", cmap="Blues", ax=ax)

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel("Predicted", fontsize=12)
    ax.set_ylabel("Actual", fontsize=12)
    ax.set_xticklabels(["No diabetes", "Diabetes"])
    ax.set_yticklabels(["No diabetes", "Diabetes"])

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Confusion matrix saved to: {output_path}")


def generate_roc_curve(y_true, y_score, output_path, label="Final model"):
    """Generate ROC curve.

    Args:
        y_true: True labels
        y_score: Positive-class scores
        output_path: Path to save plot
        label: Legend label of the curve
    """
    fpr, tpr, _ = roc_curve(y_true, y_score)
    roc_auc = auc(fpr, tpr)

    fig, ax = plt.subplots(figsize=(8, 7))
    ax.plot(fpr, tpr, linewidth=2, label=f"{label} (AUC = {roc_auc:.3f})")
    ax.plot([0, 1], [0, 1], "k--", linewidth=1, label="Random Classifier")

    ax.set_xlabel("1 - Specificity", fontsize=12)
    ax.set_ylabel("Sensitivity", fontsize=12)
    ax.set_title("ROC Curve (test set)", fontsize=14, fontweight="bold")
    ax.legend(loc="lower right", fontsize=10)
    ax.grid(alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"ROC curve saved to: {output_path}")


def generate_model_comparison_plot(comparison: pd.DataFrame, output_path):
    """Plot mean cross-validated ROC-AUC per model with standard error bars.

    Args:
        comparison: Table from collect_metrics
        output_path: Path to save plot
    """
    ok = comparison[comparison["status"] == "ok"].sort_values("mean_roc_auc")

    fig, ax = plt.subplots(figsize=(10, max(3, 0.6 * len(ok) + 1)))
    ax.barh(ok["label"], ok["mean_roc_auc"], xerr=ok["std_err"].fillna(0), color="steelblue", capsize=4)
    for y_pos, value in enumerate(ok["mean_roc_auc"]):
        ax.text(value, y_pos, f" {value:.4f}", va="center", fontsize=9)

    lower = max(0.0, float(ok["mean_roc_auc"].min()) - 0.05) if len(ok) else 0.0
    ax.set_xlim(lower, 1.0)
    ax.set_xlabel("Mean ROC-AUC (cross-validation)", fontsize=12)
    ax.set_title("Model Comparison", fontsize=14, fontweight="bold")
    ax.grid(axis="x", alpha=0.3)

    failed = comparison.loc[comparison["status"] != "ok", "label"].tolist()
    if failed:
        ax.text(
            0.01,
            -0.12,
            f"Excluded (failed to fit): {', '.join(failed)}",
            transform=ax.transAxes,
            fontsize=9,
            color="red",
        )

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Model comparison plot saved to: {output_path}")


def grid_value_order(values):
    """Distinct grid values in axis order: numbers ascending, then other values by name."""

    def key(value):
        if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
            return (0, float(value), "")
        return (1, 0.0, str(value))

    return sorted(pd.unique(pd.Series(list(values))), key=key)


def generate_tuning_plot(result, output_path):
    """Plot mean ROC-AUC against each tuned hyperparameter.

    One panel per hyperparameter; other hyperparameters are shown as the
    spread of points at each value.

    Args:
        result: TuningResult of one model
        output_path: Path to save plot

    Returns:
        True if a plot was written, False if the model had nothing to tune
    """
    trials = result.trials
    params = list(result.best_params)
    if trials.empty or not params:
        return False

    trials = trials[trials["state"] == "COMPLETE"]

    fig, axes = plt.subplots(1, len(params), figsize=(5 * len(params), 4), squeeze=False)
    for ax, param in zip(axes[0], params):
        order = grid_value_order(trials[param])
        best = trials.groupby(param, sort=False)["mean_score"].max().reindex(order)
        # the first call on a categorical axis fixes the order of its ticks
        ax.plot([str(v) for v in order], best.values, color="red", linewidth=1, label="best at value")
        ax.scatter(trials[param].astype(str), trials["mean_score"], alpha=0.7)
        ax.set_xlabel(param)
        ax.set_ylabel("Mean ROC-AUC")
        ax.grid(alpha=0.3)
    axes[0][0].legend(fontsize=9)

    fig.suptitle(f"{result.label}: tuning results", fontsize=13, fontweight="bold")
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Tuning plot saved to: {output_path}")
    return True


def compute_feature_importance(model, X, y, n_repeats=5, random_state=42):
    """Permutation importance of each raw predictor on labelled data.

    Args:
        model: Fitted pipeline
        X: Features (raw columns)
        y: True labels
        n_repeats: Permutations per feature
        random_state: Random seed

    Returns:
        DataFrame sorted by mean ROC-AUC drop
    """
    result = permutation_importance(
        model, X, y, scoring="roc_auc", n_repeats=n_repeats, random_state=random_state
    )
    importance = pd.DataFrame(
        {
            "feature": list(X.columns),
            "importance_mean": result.importances_mean,
            "importance_std": result.importances_std,
        }
    )
    return importance.sort_values("importance_mean", ascending=False).reset_index(drop=True)


def generate_feature_importance_plot(importance: pd.DataFrame, output_path, top_n=10):
    """Bar chart of the most important predictors.

    Args:
        importance: Table from compute_feature_importance
        output_path: Path to save plot
        top_n: Number of features to show
    """
    top = importance.head(top_n).iloc[::-1]

    fig, ax = plt.subplots(figsize=(8, 0.5 * len(top) + 1.5))
    ax.barh(top["feature"], top["importance_mean"], xerr=top["importance_std"], color="seagreen")
    ax.set_xlabel("Drop in ROC-AUC when permuted", fontsize=12)
    ax.set_title("Feature Importance (test set)", fontsize=14, fontweight="bold")
    ax.grid(axis="x", alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Feature importance plot saved to: {output_path}")


def generate_evaluation_report(model_path: Path, test_data_path: Path, output_dir: Path):
    """Re-run the holdout evaluation of a saved final model.

    Args:
        model_path: Path to model artifacts
        test_data_path: Path to the held-out test rows
        output_dir: Directory to save evaluation outputs

    Returns:
        Dictionary of test metrics
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    artifacts = load_model_artifacts(model_path)
    model = artifacts["model"]

    df_test = pd.read_csv(test_data_path)
    X_test = df_test[FEATURE_COLUMNS]
    y_test = df_test[TARGET_COLUMN]

    y_pred = model.predict(X_test)

    print("\n" + "=" * 60)
    print(f"CLASSIFICATION REPORT: {artifacts.get('model_label', artifacts.get('model_name'))}")
    print("=" * 60)
    print(classification_report(y_test, y_pred, target_names=["No diabetes", "Diabetes"]))

    metrics = evaluate_model(model, X_test, y_test, prefix="test_")

    generate_confusion_matrix_plot(y_test, y_pred, output_dir / "confusion_matrix.png")
    generate_roc_curve(
        y_test,
        positive_scores(model, X_test),
        output_dir / "roc_curve.png",
        label=artifacts.get("model_label", "Final model"),
    )

    summary = {
        "model_path": str(model_path),
        "test_data_path": str(test_data_path),
        "model_name": artifacts.get("model_name"),
        "test_samples": len(y_test),
        "positive_rate": float(y_test.mean()),
        "metrics": {k: float(v) for k, v in metrics.items()},
        "evaluation_date": pd.Timestamp.now().isoformat(),
    }

    with open(output_dir / "evaluation_summary.json", "w") as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Evaluation complete. Results saved to: {output_dir}")
    return metrics


def main():
    """CLI entry point for model evaluation."""
    parser = argparse.ArgumentParser(description="Evaluate the selected diabetes classifier")
    parser.add_argument(
        "--model-path",
        type=Path,
        required=True,
        help="Path to model artifacts file (model_artifacts.pkl)",
    )
    parser.add_argument(
        "--test-data",
        type=Path,
        required=True,
        help="Path to held-out rows (test_split.csv written by training)",
    )
    parser.add_argument(
        "--output-dir", type=Path, default=Path("reports/model_evaluation"), help="Output directory"
    )
    args = parser.parse_args()

    setup_logging()
    generate_evaluation_report(args.model_path, args.test_data, args.output_dir)


if __name__ == "__main__":
    main()
