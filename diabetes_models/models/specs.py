"""Declarative model specifications and tuning grids."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

from lightgbm import LGBMClassifier
from sklearn.discriminant_analysis import (
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
)
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier
from sklearn.svm import SVC, LinearSVC

from diabetes_models.features.preprocess import build_model_pipeline


@dataclass
class ModelSpec:
    """One classifier of the comparison: estimator, fixed params and grid."""

    name: str
    label: str
    estimator_class: type
    params: Dict[str, Any] = field(default_factory=dict)
    grid: Dict[str, List[Any]] = field(default_factory=dict)

    @property
    def grid_size(self) -> int:
        size = 1
        for values in self.grid.values():
            size *= len(values)
        return size

    def make_estimator(self, random_state=None, **overrides):
        params = {**self.params, **overrides}
        if random_state is not None and "random_state" in self.estimator_class().get_params():
            params.setdefault("random_state", random_state)
        return self.estimator_class(**params)

    def build(self, oversample_ratio=1.0, random_state=42, **overrides):
        """Full pipeline (recipe + estimator) with the given hyperparameters."""
        estimator = self.make_estimator(random_state=random_state, **overrides)
        return build_model_pipeline(estimator, oversample_ratio, random_state)


DEFAULT_SPECS = [
    ModelSpec(
        name="logistic",
        label="Logistic regression",
        estimator_class=LogisticRegression,
        params={"penalty": None, "max_iter": 1000},
    ),
    ModelSpec(
        name="knn",
        label="K-nearest neighbors",
        estimator_class=KNeighborsClassifier,
        params={"weights": "distance"},
        grid={"n_neighbors": [5, 15, 25, 45]},
    ),
    ModelSpec(
        name="lda",
        label="Linear discriminant analysis",
        estimator_class=LinearDiscriminantAnalysis,
    ),
    ModelSpec(
        name="qda",
        label="Quadratic discriminant analysis",
        estimator_class=QuadraticDiscriminantAnalysis,
        grid={"reg_param": [0.0, 0.01, 0.1]},
    ),
    ModelSpec(
        name="elastic_net",
        label="Elastic-net logistic regression",
        estimator_class=LogisticRegression,
        params={"penalty": "elasticnet", "solver": "saga", "max_iter": 2000},
        grid={"C": [0.01, 0.1, 1.0, 10.0], "l1_ratio": [0.0, 0.25, 0.5, 0.75, 1.0]},
    ),
    ModelSpec(
        name="random_forest",
        label="Random forest",
        estimator_class=RandomForestClassifier,
        params={"n_estimators": 300, "n_jobs": -1},
        grid={"max_features": [2, 4, 6], "min_samples_leaf": [1, 5, 20]},
    ),
    ModelSpec(
        name="boosted_trees",
        label="Boosted trees",
        estimator_class=LGBMClassifier,
        params={"verbose": -1},
        grid={
            "n_estimators": [200, 500],
            "learning_rate": [0.01, 0.05, 0.1],
            "max_depth": [3, 6, -1],
        },
    ),
    ModelSpec(
        name="svm_linear",
        label="Linear support vector machine",
        estimator_class=LinearSVC,
        params={"dual": "auto", "max_iter": 5000},
        grid={"C": [0.01, 0.1, 1.0]},
    ),
    ModelSpec(
        name="svm_rbf",
        label="RBF support vector machine",
        estimator_class=SVC,
        params={"kernel": "rbf", "cache_size": 1000},
        grid={"C": [0.1, 1.0, 10.0], "gamma": [0.01, 0.1, 1.0]},
    ),
]


def default_specs() -> Dict[str, ModelSpec]:
    return {spec.name: copy.deepcopy(spec) for spec in DEFAULT_SPECS}


def get_model_specs(config: dict, only: List[str] = None) -> List[ModelSpec]:
    """Resolve the model specifications for a run.

    Entries under the ``models`` config key override the defaults: ``params``
    are merged, ``grid`` replaces the default grid, ``enabled: false`` drops
    the model.

    Args:
        config: Run configuration
        only: Optional subset of model names to keep

    Returns:
        List of ModelSpec in declaration order
    """
    specs = default_specs()
    overrides = config.get("models") or {}

    unknown = sorted((set(overrides) | set(only or [])) - set(specs))
    if unknown:
        raise ValueError(f"Unknown model name(s): {unknown}. Known: {sorted(specs)}")

    resolved = []
    for name, spec in specs.items():
        entry = overrides.get(name) or {}
        if not entry.get("enabled", True):
            continue
        if only is not None and name not in only:
            continue

        if "params" in entry:
            spec.params = {**spec.params, **(entry["params"] or {})}
        if "grid" in entry:
            spec.grid = dict(entry["grid"] or {})

        for param, values in spec.grid.items():
            if not isinstance(values, list) or not values:
                raise ValueError(f"Grid for {name}.{param} must be a non-empty list")

        resolved.append(spec)

    return resolved
