"""Train, compare and select diabetes classifiers."""

import argparse
import contextlib
import json
import logging
from datetime import datetime
from pathlib import Path

import joblib
import mlflow
import numpy as np
import pandas as pd

from diabetes_models.config.loader import load_config, setup_logging
from diabetes_models.data.load import load_dataset
from diabetes_models.data.split import describe_split, make_folds, split_data
from diabetes_models.models.evaluate import (
    compute_feature_importance,
    evaluate_model,
    generate_confusion_matrix_plot,
    generate_feature_importance_plot,
    generate_model_comparison_plot,
    generate_roc_curve,
    generate_tuning_plot,
    positive_scores,
)
from diabetes_models.models.specs import get_model_specs
from diabetes_models.models.tune import collect_metrics, select_best, tune_all

logger = logging.getLogger(__name__)


def fit_final_model(spec, best_params, X_train, y_train, config: dict):
    """Refit the selected model once on the full training set.

    Args:
        spec: ModelSpec of the selected model
        best_params: Hyperparameters chosen by tuning
        X_train, y_train: Training data
        config: Run configuration

    Returns:
        Fitted pipeline
    """
    model = spec.build(
        oversample_ratio=config["preprocessing"]["oversample_ratio"],
        random_state=config["data"]["random_seed"],
        **best_params,
    )
    model.fit(X_train, y_train)
    return model


def _mlflow_run(config: dict, **kwargs):
    if not config["mlflow"]["enabled"]:
        return contextlib.nullcontext()
    return mlflow.start_run(**kwargs)


def _to_builtin(value):
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def run_comparison(config: dict, output_dir: Path, only=None, use_cache=None) -> dict:
    """Run the full comparison and write its report artifacts.

    Args:
        config: Run configuration
        output_dir: Directory for this run's artifacts and plots
        only: Optional subset of model names
        use_cache: Override for ``tuning.use_cache``

    Returns:
        Summary dictionary (selected model, CV comparison, test metrics, paths)
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    plot_dir = output_dir / "plots"
    plot_dir.mkdir(exist_ok=True)

    seed = config["data"]["random_seed"]
    if use_cache is None:
        use_cache = config["tuning"]["use_cache"]

    data_path = Path(config["data"]["raw_path"])
    df = load_dataset(data_path, config)

    X_train, X_test, y_train, y_test = split_data(df, config["data"]["test_size"], seed)
    folds = make_folds(
        X_train,
        y_train,
        n_splits=config["cross_validation"]["n_splits"],
        random_seed=seed,
        shuffle=config["cross_validation"]["shuffle"],
    )
    partitions = describe_split(y_train, y_test, folds)
    partitions.to_csv(output_dir / "partitions.csv", index=False)

    specs = get_model_specs(config, only=only)
    specs_by_name = {spec.name: spec for spec in specs}
    logger.info(f"Comparing {len(specs)} models: {list(specs_by_name)}")

    if config["mlflow"]["enabled"]:
        mlflow.set_tracking_uri(config["mlflow"]["tracking_uri"])
        mlflow.set_experiment(config["mlflow"]["experiment_name"])

    with _mlflow_run(config, run_name=f"comparison_{datetime.now():%Y%m%d_%H%M%S}"):
        if config["mlflow"]["enabled"]:
            mlflow.log_params({f"data.{k}": v for k, v in config["data"].items()})
            mlflow.log_params({f"cv.{k}": v for k, v in config["cross_validation"].items()})
            mlflow.log_params({f"preprocessing.{k}": v for k, v in config["preprocessing"].items()})

        results = tune_all(
            specs,
            X_train,
            y_train,
            folds,
            cache_dir=config["tuning"]["cache_dir"],
            use_cache=use_cache,
            scoring=config["tuning"]["metric"],
            oversample_ratio=config["preprocessing"]["oversample_ratio"],
            random_state=seed,
            n_jobs=config["tuning"].get("n_jobs"),
        )

        if config["mlflow"]["enabled"]:
            for result in results:
                with mlflow.start_run(run_name=result.name, nested=True):
                    mlflow.set_tag("status", result.status)
                    mlflow.log_params({k: str(v) for k, v in result.best_params.items()})
                    if result.ok:
                        mlflow.log_metric("cv_roc_auc", result.mean_score)
                        mlflow.log_metric("cv_roc_auc_std_err", result.std_err)
                    else:
                        mlflow.set_tag("error", result.error[:250])

        comparison = collect_metrics(results)
        comparison.to_csv(output_dir / "model_comparison.csv", index=False)
        generate_model_comparison_plot(comparison, plot_dir / "model_comparison.png")
        for result in results:
            if result.ok:
                generate_tuning_plot(result, plot_dir / f"tuning_{result.name}.png")

        print("\nCross-validated comparison:")
        print(comparison[["label", "status", "mean_roc_auc", "std_err", "best_params"]].to_string(index=False))

        best = select_best(results)
        spec = specs_by_name[best.name]
        logger.info(f"Selected {best.label} (mean AUC {best.mean_score:.4f}) with {best.best_params}")

        model = fit_final_model(spec, best.best_params, X_train, y_train, config)

        test_metrics = evaluate_model(model, X_test, y_test, prefix="test_")
        y_pred = model.predict(X_test)
        generate_confusion_matrix_plot(
            y_test, y_pred, plot_dir / "confusion_matrix.png", title=f"Confusion Matrix: {best.label}"
        )
        generate_roc_curve(y_test, positive_scores(model, X_test), plot_dir / "roc_curve.png", label=best.label)

        importance = compute_feature_importance(model, X_test, y_test, random_state=seed)
        importance.to_csv(output_dir / "feature_importance.csv", index=False)
        generate_feature_importance_plot(importance, plot_dir / "feature_importance.png")

        print("\nTest Set Performance:")
        for metric, value in test_metrics.items():
            print(f"  {metric}: {value:.4f}" if isinstance(value, float) else f"  {metric}: {value}")

        test_split = X_test.assign(**{y_test.name: y_test})
        test_split.to_csv(output_dir / "test_split.csv", index=False)

        model_artifacts = {
            "model": model,
            "model_name": best.name,
            "model_label": best.label,
            "best_params": best.best_params,
            "cv_roc_auc": best.mean_score,
            "metrics": test_metrics,
            "config": config,
        }
        joblib.dump(model_artifacts, output_dir / "model_artifacts.pkl")

        metadata = {
            "version": output_dir.name,
            "selected_model": best.name,
            "selection_metric": config["tuning"]["metric"],
            "cv_roc_auc": best.mean_score,
            "cv_roc_auc_std_err": best.std_err,
            "best_params": {k: _to_builtin(v) for k, v in best.best_params.items()},
            "failed_models": [r.name for r in results if not r.ok],
            "test_metrics": {k: _to_builtin(v) for k, v in test_metrics.items()},
            "partitions": partitions.to_dict(orient="records"),
            "training_date": datetime.now().isoformat(),
            "data_path": str(data_path),
        }
        with open(output_dir / "metadata.json", "w") as f:
            json.dump(metadata, f, indent=2, default=_to_builtin)

        if config["mlflow"]["enabled"]:
            mlflow.set_tag("selected_model", best.name)
            mlflow.log_metric("selected_cv_roc_auc", best.mean_score)
            mlflow.log_metrics({k: float(v) for k, v in test_metrics.items()})
            mlflow.log_artifacts(str(output_dir))

    logger.info(f"Run artifacts saved to: {output_dir}")

    return {
        "selected_model": best.name,
        "comparison": comparison,
        "test_metrics": test_metrics,
        "output_dir": output_dir,
    }


def main():
    """Main comparison pipeline."""
    parser = argparse.ArgumentParser(description="Compare diabetes classifiers")
    parser.add_argument(
        "--config", type=Path, default=Path("configs/train_config.yaml"), help="Config file path"
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Overrides output.model_dir")
    parser.add_argument("--models", nargs="+", default=None, help="Subset of model names to compare")
    parser.add_argument("--no-cache", action="store_true", help="Ignore cached tuning results")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(config["logging"]["log_level"])

    base_dir = args.output_dir or Path(config["output"]["model_dir"])
    run_dir = base_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}"

    summary = run_comparison(
        config, run_dir, only=args.models, use_cache=False if args.no_cache else None
    )
    print(f"\nSelected model: {summary['selected_model']}")
    print(f"Artifacts saved to: {summary['output_dir']}")
    return 0


if __name__ == "__main__":
    exit(main())
