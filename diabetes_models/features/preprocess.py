"""Preprocessing recipe shared by every model in the comparison."""

from imblearn.over_sampling import RandomOverSampler
from imblearn.pipeline import Pipeline
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from diabetes_models.config.constants import CATEGORICAL_COLUMNS, NUMERIC_COLUMNS


def create_encoder(categorical_columns=None, numeric_columns=None):
    """Create the categorical encoding step.

    Categorical columns are dummy coded against their first level, numeric
    columns pass through untouched.

    Args:
        categorical_columns: Columns to one-hot encode
        numeric_columns: Columns to pass through

    Returns:
        sklearn ColumnTransformer
    """
    if categorical_columns is None:
        categorical_columns = CATEGORICAL_COLUMNS
    if numeric_columns is None:
        numeric_columns = NUMERIC_COLUMNS

    return ColumnTransformer(
        [
            (
                "dummy",
                OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False),
                categorical_columns,
            ),
            ("numeric", "passthrough", numeric_columns),
        ],
        verbose_feature_names_out=False,
    )


def create_preprocessing_pipeline(oversample_ratio=1.0, random_state=42):
    """Create preprocessing pipeline.

    The oversampling step only runs while fitting, so predictions and
    validation folds always see the original rows.

    Args:
        oversample_ratio: Target minority/majority ratio after oversampling
        random_state: Seed for the oversampler

    Returns:
        imblearn Pipeline
    """
    pipeline = Pipeline(
        [
            ("encode", create_encoder()),
            (
                "upsample",
                RandomOverSampler(sampling_strategy=oversample_ratio, random_state=random_state),
            ),
            ("normalize", StandardScaler()),
        ]
    )

    return pipeline


def build_model_pipeline(estimator, oversample_ratio=1.0, random_state=42):
    """Append an estimator to the preprocessing recipe.

    Hyperparameters of the estimator are addressed as ``model__<name>``.

    Args:
        estimator: Unfitted sklearn classifier
        oversample_ratio: Target minority/majority ratio after oversampling
        random_state: Seed for the oversampler

    Returns:
        imblearn Pipeline ending in the estimator
    """
    steps = create_preprocessing_pipeline(oversample_ratio, random_state).steps
    return Pipeline(steps + [("model", estimator)])


def get_feature_names(pipeline):
    """Extract post-encoding feature names from a fitted pipeline.

    Args:
        pipeline: Fitted preprocessing or model pipeline

    Returns:
        List of feature names
    """
    return list(pipeline.named_steps["encode"].get_feature_names_out())
