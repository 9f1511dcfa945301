"""Exploratory Data Analysis for the Diabetes Prediction Dataset.

This marimo notebook covers:
- Dataset overview and the unknown smoking-history category
- Outcome balance and the case for oversampling
- Feature distributions and diabetes rates by subgroup
- Correlations between measurements
"""

import marimo

__generated_with = "0.17.7"
app = marimo.App()


@app.cell
def _():
    import marimo as mo
    import pandas as pd
    import matplotlib.pyplot as plt
    import seaborn as sns
    from pathlib import Path

    from diabetes_models.config.constants import MISSING_SMOKING_SENTINEL, TARGET_COLUMN
    from diabetes_models.data.load import clean, load_raw
    from diabetes_models.reporting import eda

    plt.style.use('seaborn-v0_8-darkgrid')
    sns.set_palette("husl")

    mo.md(
        """
        # Exploratory Data Analysis: Diabetes Prediction Dataset

        **Objective**: Understand the patient table before comparing classifiers
        that predict a diabetes diagnosis.

        **Dataset**: one row per patient, 8 predictors, 1 binary outcome
        """
    )
    return MISSING_SMOKING_SENTINEL, Path, TARGET_COLUMN, clean, eda, load_raw, mo, pd, plt, sns


@app.cell
def _(Path, load_raw):
    notebook_dir = Path(__file__).parent
    data_path = notebook_dir.parent / "data" / "raw" / "diabetes_prediction_dataset.csv"
    raw = load_raw(data_path)
    return (raw,)


@app.cell
def _(eda, mo, raw):
    raw_summary = eda.summarize_dataset(raw)
    mo.md(f"""
    ## 1. Dataset Overview

    **Patients**: {raw_summary['n_rows']}
    **Predictors**: {raw_summary['n_features']}
    **Positive Rate**: {raw_summary['positive_rate']:.1%} ({raw_summary['n_positive']} diabetic patients)
    **Explicit nulls**: {sum(raw_summary['null_counts'].values())}

    | Feature | Description |
    |---------|-------------|
    | gender | Female / Male / Other |
    | age | Age in years |
    | hypertension | 1 = hypertensive |
    | heart_disease | 1 = heart disease |
    | smoking_history | never, former, current, not current, ever, No Info |
    | bmi | Body Mass Index (kg/m²) |
    | HbA1c_level | Glycated haemoglobin (%) |
    | blood_glucose_level | Blood glucose (mg/dL) |
    """)
    return


@app.cell
def _(MISSING_SMOKING_SENTINEL, eda, mo, raw):
    smoking_raw = eda.categorical_rates(raw, "smoking_history")
    n_unknown = int((raw["smoking_history"] == MISSING_SMOKING_SENTINEL).sum())
    mo.md(f"""
    ## 2. The Unknown Smoking Category

    `smoking_history` has no nulls, but **{n_unknown}** rows
    ({n_unknown / len(raw):.1%}) carry the level `{MISSING_SMOKING_SENTINEL}`,
    which records that the history is unknown.

    {smoking_raw.to_markdown()}

    **Decision**: drop these rows rather than treat "unknown" as a smoking level.
    """)
    return


@app.cell
def _(MISSING_SMOKING_SENTINEL, clean, raw):
    df = clean(raw, sentinel=MISSING_SMOKING_SENTINEL)
    return (df,)


@app.cell
def _(TARGET_COLUMN, df, eda, mo):
    balance = eda.class_balance(df[TARGET_COLUMN])
    mo.md(f"""
    ## 3. Outcome Balance (after cleaning)

    {balance.to_markdown()}

    The diabetic class is a small minority. The modelling recipe oversamples it
    to parity inside each training fold; validation folds and the test set keep
    the real prevalence.
    """)
    return


@app.cell
def _(df, eda, plt):
    _fig, _axes = plt.subplots(2, 2, figsize=(14, 9))
    for _ax, _feature in zip(_axes.flatten(), eda.CONTINUOUS_COLUMNS):
        df.boxplot(column=_feature, by="diabetes", ax=_ax)
        _ax.set_xticklabels(["No Diabetes", "Diabetes"])
        _ax.set_title(f"{_feature} by Diabetes Status")
    plt.suptitle("")
    plt.tight_layout()
    _fig
    return


@app.cell
def _(df, eda, mo):
    comparison = eda.numeric_summary_by_outcome(df)
    mo.md(f"""
    ## 4. Measurements by Diabetes Status

    {comparison.round(2).to_markdown()}

    **Key discriminators**: {comparison.index[0]}, {comparison.index[1]} and
    {comparison.index[2]} differ most between the groups.
    """)
    return


@app.cell
def _(df, eda, mo):
    gender_rates = eda.categorical_rates(df, "gender")
    smoking_rates = eda.categorical_rates(df, "smoking_history")
    mo.md(f"""
    ## 5. Diabetes Rate by Subgroup

    {gender_rates.to_markdown()}

    {smoking_rates.to_markdown()}

    The `Other` gender level is very rare; after dummy coding this column is
    nearly constant, which is what makes the per-class covariance of QDA
    close to singular.
    """)
    return


@app.cell
def _(df, plt, sns):
    _corr = df[["age", "hypertension", "heart_disease", "bmi", "HbA1c_level", "blood_glucose_level", "diabetes"]].corr()
    _fig, _ax = plt.subplots(figsize=(9, 7))
    sns.heatmap(_corr, annot=True, fmt=".2f", cmap="coolwarm", center=0, square=True, ax=_ax, vmin=-1, vmax=1)
    _ax.set_title("Feature Correlation Matrix", fontsize=14, fontweight="bold")
    plt.tight_layout()
    _fig
    return


@app.cell
def _(mo):
    mo.md("""
    ## 6. Summary

    1. **Unknown smoking history**: rows dropped ✓ (`clean`)
    2. **Class imbalance**: minority oversampled inside training folds only ✓
    3. **Categoricals**: gender and smoking_history dummy coded ✓
    4. **Scale**: all predictors standardized before fitting ✓

    Next: `python -m diabetes_models.models.train` tunes every model on the
    same 10 stratified folds and selects the best mean ROC-AUC.
    """)
    return


if __name__ == "__main__":
    app.run()
