"""Shared constants for the diabetes classifier comparison."""

# Predictor columns, in the order they appear in the raw CSV
FEATURE_COLUMNS = [
    "gender",
    "age",
    "hypertension",
    "heart_disease",
    "smoking_history",
    "bmi",
    "HbA1c_level",
    "blood_glucose_level",
]

# Target column name
TARGET_COLUMN = "diabetes"

REQUIRED_COLUMNS = FEATURE_COLUMNS + [TARGET_COLUMN]

CATEGORICAL_COLUMNS = ["gender", "smoking_history"]

NUMERIC_COLUMNS = [
    "age",
    "hypertension",
    "heart_disease",
    "bmi",
    "HbA1c_level",
    "blood_glucose_level",
]

# Columns restricted to {0, 1}
BINARY_COLUMNS = ["hypertension", "heart_disease", TARGET_COLUMN]

GENDER_LEVELS = ["Female", "Male", "Other"]

SMOKING_LEVELS = [
    "No Info",
    "current",
    "ever",
    "former",
    "never",
    "not current",
]

# smoking_history level that stands for "unknown"
MISSING_SMOKING_SENTINEL = "No Info"

# Scoring metric used for tuning and model selection
SELECTION_METRIC = "roc_auc"

# Models of the comparison, in report order
MODEL_NAMES = [
    "logistic",
    "knn",
    "lda",
    "qda",
    "elastic_net",
    "random_forest",
    "boosted_trees",
    "svm_linear",
    "svm_rbf",
]
