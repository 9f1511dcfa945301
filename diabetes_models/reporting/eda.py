"""Exploratory tables and plots for the diabetes prediction dataset."""

import argparse
import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from diabetes_models.config.constants import (
    CATEGORICAL_COLUMNS,
    FEATURE_COLUMNS,
    TARGET_COLUMN,
)
from diabetes_models.config.loader import load_config, setup_logging
from diabetes_models.data.load import clean, load_raw

logger = logging.getLogger(__name__)

# Continuous measurements (the 0/1 flags are summarised as rates instead)
CONTINUOUS_COLUMNS = ["age", "bmi", "HbA1c_level", "blood_glucose_level"]

FLAG_COLUMNS = ["hypertension", "heart_disease"]


def summarize_dataset(df: pd.DataFrame) -> dict:
    """Basic shape, label and missing-value facts.

    Args:
        df: Patient table

    Returns:
        Dictionary of summary values
    """
    return {
        "n_rows": len(df),
        "n_features": len([c for c in df.columns if c != TARGET_COLUMN]),
        "n_positive": int(df[TARGET_COLUMN].sum()),
        "positive_rate": float(df[TARGET_COLUMN].mean()),
        "null_counts": df.isnull().sum().to_dict(),
    }


def class_balance(y: pd.Series) -> pd.DataFrame:
    counts = y.value_counts().sort_index()
    return pd.DataFrame({"count": counts, "share": counts / counts.sum()}).rename_axis(y.name)


def numeric_summary_by_outcome(df: pd.DataFrame, columns=None) -> pd.DataFrame:
    """Mean of each measurement for patients with and without diabetes.

    Args:
        df: Patient table
        columns: Numeric columns to compare

    Returns:
        DataFrame indexed by feature, sorted by relative difference
    """
    columns = columns or CONTINUOUS_COLUMNS + FLAG_COLUMNS
    means = df.groupby(TARGET_COLUMN)[columns].mean().T
    comparison = pd.DataFrame(
        {
            "No Diabetes (Mean)": means.get(0),
            "Diabetes (Mean)": means.get(1),
        }
    )
    comparison["Difference"] = comparison["Diabetes (Mean)"] - comparison["No Diabetes (Mean)"]
    comparison["Difference %"] = comparison["Difference"] / comparison["No Diabetes (Mean)"] * 100
    return comparison.sort_values("Difference %", ascending=False)


def categorical_rates(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Diabetes rate and sample size per level of a categorical column."""
    rates = df.groupby(column)[TARGET_COLUMN].agg(["mean", "count"])
    rates.columns = ["Diabetes Rate", "Sample Size"]
    return rates.sort_values("Diabetes Rate", ascending=False)


def plot_class_balance(df: pd.DataFrame, output_path):
    fig, ax = plt.subplots(figsize=(6, 4))
    sns.countplot(x=TARGET_COLUMN, data=df, ax=ax, color="steelblue")
    ax.set_xticks([0, 1])
    ax.set_xticklabels(["No diabetes", "Diabetes"])
    ax.set_title("Outcome Balance", fontsize=14, fontweight="bold")
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def plot_numeric_distributions(df: pd.DataFrame, output_path, columns=None):
    """Histograms of each continuous measurement split by outcome."""
    columns = columns or CONTINUOUS_COLUMNS
    n_rows = (len(columns) + 1) // 2

    fig, axes = plt.subplots(n_rows, 2, figsize=(14, 4 * n_rows))
    axes = axes.flatten()

    for ax, feature in zip(axes, columns):
        sns.histplot(
            data=df,
            x=feature,
            hue=TARGET_COLUMN,
            bins=30,
            stat="density",
            common_norm=False,
            element="step",
            ax=ax,
        )
        ax.set_title(f"{feature} by Diabetes Status")

    for ax in axes[len(columns):]:
        ax.axis("off")

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def plot_categorical_rates(df: pd.DataFrame, output_path, columns=None):
    """Diabetes rate per level of each categorical and flag column."""
    columns = columns or CATEGORICAL_COLUMNS + FLAG_COLUMNS
    overall = df[TARGET_COLUMN].mean() * 100

    fig, axes = plt.subplots(1, len(columns), figsize=(5 * len(columns), 4), squeeze=False)
    for ax, column in zip(axes[0], columns):
        rates = categorical_rates(df, column)["Diabetes Rate"] * 100
        ax.bar(rates.index.astype(str), rates.values, color="coral", edgecolor="black")
        ax.axhline(y=overall, color="red", linestyle="--", label="Overall Rate")
        ax.set_ylabel("Diabetes Rate (%)")
        ax.set_title(f"Diabetes Rate by {column}")
        ax.tick_params(axis="x", rotation=30)
    axes[0][0].legend()

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def plot_correlation_heatmap(df: pd.DataFrame, output_path):
    corr_matrix = df[CONTINUOUS_COLUMNS + FLAG_COLUMNS + [TARGET_COLUMN]].corr()

    fig, ax = plt.subplots(figsize=(9, 7))
    sns.heatmap(
        corr_matrix,
        annot=True,
        fmt=".2f",
        cmap="coolwarm",
        center=0,
        square=True,
        linewidths=1,
        ax=ax,
        vmin=-1,
        vmax=1,
    )
    ax.set_title("Feature Correlation Matrix", fontsize=14, fontweight="bold")
    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def generate_eda_report(df: pd.DataFrame, output_dir: Path) -> dict:
    """Write the exploratory tables and plots of a cleaned table.

    Args:
        df: Cleaned patient table
        output_dir: Directory for CSV tables and PNG plots

    Returns:
        Dataset summary
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    summary = summarize_dataset(df)

    class_balance(df[TARGET_COLUMN]).to_csv(output_dir / "class_balance.csv")
    df[FEATURE_COLUMNS].describe().T.to_csv(output_dir / "feature_summary.csv")
    numeric_summary_by_outcome(df).to_csv(output_dir / "means_by_outcome.csv")
    for column in CATEGORICAL_COLUMNS:
        categorical_rates(df, column).to_csv(output_dir / f"rates_by_{column}.csv")

    plot_class_balance(df, output_dir / "class_balance.png")
    plot_numeric_distributions(df, output_dir / "numeric_distributions.png")
    plot_categorical_rates(df, output_dir / "categorical_rates.png")
    plot_correlation_heatmap(df, output_dir / "correlation_heatmap.png")

    logger.info(
        f"EDA report for {summary['n_rows']} rows "
        f"(positive rate {summary['positive_rate']:.1%}) saved to: {output_dir}"
    )
    return summary


def main():
    """CLI entry point for the exploratory report."""
    parser = argparse.ArgumentParser(description="Exploratory report of the diabetes dataset")
    parser.add_argument(
        "--config", type=Path, default=Path("configs/train_config.yaml"), help="Config file path"
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Overrides output.report_dir")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(config["logging"]["log_level"])

    df = clean(
        load_raw(config["data"]["raw_path"]),
        sentinel=config["preprocessing"]["missing_sentinel"],
    )
    generate_eda_report(df, args.output_dir or Path(config["output"]["report_dir"]))
    return 0


if __name__ == "__main__":
    exit(main())
