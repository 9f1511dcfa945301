"""Model comparison report for the diabetes classifiers.

Reads the artifacts of the latest training run and presents the
cross-validated comparison, the tuning results and the holdout evaluation.
"""

import marimo

__generated_with = "0.17.7"
app = marimo.App()


@app.cell
def _():
    import json

    import marimo as mo
    import pandas as pd
    from pathlib import Path

    from diabetes_models.models.evaluate import load_model_artifacts

    mo.md(
        """
        # Model Comparison: Predicting Diabetes

        Nine off-the-shelf classifiers share one preprocessing recipe and one
        set of stratified cross-validation folds. The model with the highest
        mean ROC-AUC across folds is refit on the full training set and
        evaluated once on the held-out test set.
        """
    )
    return Path, json, load_model_artifacts, mo, pd


@app.cell
def _(Path):
    notebook_dir = Path(__file__).parent
    runs = sorted((notebook_dir.parent / "models" / "experiments").glob("run_*"))
    run_dir = runs[-1]
    plot_dir = run_dir / "plots"
    return plot_dir, run_dir


@app.cell
def _(json, pd, run_dir):
    comparison = pd.read_csv(run_dir / "model_comparison.csv")
    partitions = pd.read_csv(run_dir / "partitions.csv")
    with open(run_dir / "metadata.json") as _f:
        metadata = json.load(_f)
    return comparison, metadata, partitions


@app.cell
def _(mo, partitions):
    mo.md(f"""
    ## 1. Partitions

    Stratified on the outcome; every fold keeps the training prevalence.

    {partitions.to_markdown(index=False)}
    """)
    return


@app.cell
def _(comparison, metadata, mo, plot_dir):
    _failed = metadata["failed_models"]
    _note = (
        f"**Excluded**: {', '.join(_failed)} failed to fit and is left out of the comparison."
        if _failed
        else "All models fitted successfully."
    )
    mo.vstack(
        [
            mo.md(f"""
    ## 2. Cross-validated Comparison

    {comparison[["label", "status", "mean_roc_auc", "std_err", "best_params"]].to_markdown(index=False)}

    {_note}
    """),
            mo.image(src=str(plot_dir / "model_comparison.png")),
        ]
    )
    return


@app.cell
def _(comparison, mo, plot_dir):
    _images = [
        mo.image(src=str(plot_dir / f"tuning_{name}.png"))
        for name in comparison.loc[comparison["status"] == "ok", "model"]
        if (plot_dir / f"tuning_{name}.png").exists()
    ]
    mo.vstack([mo.md("## 3. Tuning Results")] + _images)
    return


@app.cell
def _(load_model_artifacts, metadata, mo, pd, plot_dir, run_dir):
    artifacts = load_model_artifacts(run_dir / "model_artifacts.pkl")
    _metrics = (
        pd.Series(metadata["test_metrics"], name="Value")
        .rename(lambda k: k.removeprefix("test_"))
        .rename_axis("Test metric")
        .round(4)
    )
    mo.vstack(
        [
            mo.md(f"""
    ## 4. Final Model: {artifacts['model_label']}

    **Hyperparameters**: {artifacts['best_params']}
    **CV ROC-AUC**: {metadata['cv_roc_auc']:.4f}

    {_metrics.to_markdown()}
    """),
            mo.hstack(
                [
                    mo.image(src=str(plot_dir / "roc_curve.png")),
                    mo.image(src=str(plot_dir / "confusion_matrix.png")),
                ]
            ),
            mo.image(src=str(plot_dir / "feature_importance.png")),
        ]
    )
    return


if __name__ == "__main__":
    app.run()
