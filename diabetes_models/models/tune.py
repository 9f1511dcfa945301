"""Grid search of every model over the shared cross-validation folds."""

import logging
import time
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import joblib
import numpy as np
import optuna
import pandas as pd
from optuna.samplers import GridSampler
from optuna.trial import TrialState
from sklearn.model_selection import cross_validate

from diabetes_models.config.constants import SELECTION_METRIC
from diabetes_models.models.specs import ModelSpec

logger = logging.getLogger(__name__)

optuna.logging.set_verbosity(optuna.logging.WARNING)

# Per-grid-point errors that mark one trial failed without stopping the search
TRIAL_ERRORS = (ValueError, FloatingPointError, np.linalg.LinAlgError)


@dataclass
class TuningResult:
    """Outcome of tuning one model."""

    name: str
    label: str
    status: str
    best_params: Dict[str, Any] = field(default_factory=dict)
    mean_score: float = float("nan")
    std_err: float = float("nan")
    fold_scores: List[float] = field(default_factory=list)
    trials: pd.DataFrame = field(default_factory=pd.DataFrame)
    error: Optional[str] = None
    n_warnings: int = 0
    elapsed_seconds: float = 0.0
    fingerprint: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def standard_error(scores) -> float:
    scores = np.asarray(scores, dtype=float)
    if len(scores) < 2:
        return float("nan")
    return float(scores.std(ddof=1) / np.sqrt(len(scores)))


class CrossValidatedObjective:
    """Optuna objective scoring one grid point by its mean fold ROC-AUC."""

    def __init__(
        self,
        spec: ModelSpec,
        X,
        y,
        folds,
        scoring=SELECTION_METRIC,
        oversample_ratio=1.0,
        random_state=42,
        n_jobs=None,
    ):
        """Initialize objective.

        Args:
            spec: Model specification with the grid to search
            X, y: Training data
            folds: List of (train_idx, valid_idx) pairs shared by all models
            scoring: sklearn scorer name
            oversample_ratio: Minority/majority ratio of the recipe
            random_state: Seed for the recipe and the estimator
            n_jobs: Parallel fold fits, passed to cross_validate
        """
        self.spec = spec
        self.X = X
        self.y = y
        self.folds = folds
        self.scoring = scoring
        self.oversample_ratio = oversample_ratio
        self.random_state = random_state
        self.n_jobs = n_jobs

    def score(self, params: dict) -> np.ndarray:
        """Cross-validated scores of the pipeline built with ``params``."""
        pipeline = self.spec.build(self.oversample_ratio, self.random_state, **params)
        # threads keep fold warnings visible to the caller's catch_warnings
        with joblib.parallel_config(backend="threading"):
            scores = cross_validate(
                pipeline,
                self.X,
                self.y,
                cv=self.folds,
                scoring=self.scoring,
                error_score="raise",
                n_jobs=self.n_jobs,
            )
        fold_scores = np.asarray(scores["test_score"], dtype=float)
        if not np.isfinite(fold_scores).all():
            raise ValueError(f"Non-finite {self.scoring} in folds: {fold_scores.tolist()}")
        return fold_scores

    def __call__(self, trial):
        params = {
            name: trial.suggest_categorical(name, values) for name, values in self.spec.grid.items()
        }
        try:
            fold_scores = self.score(params)
        except TRIAL_ERRORS as e:
            trial.set_user_attr("error", str(e))
            raise
        trial.set_user_attr("fold_scores", fold_scores.tolist())
        return float(fold_scores.mean())


def _trials_table(study) -> pd.DataFrame:
    rows = []
    for trial in study.trials:
        scores = trial.user_attrs.get("fold_scores", [])
        rows.append(
            {
                **trial.params,
                "mean_score": float(np.mean(scores)) if scores else float("nan"),
                "std_err": standard_error(scores),
                "state": trial.state.name,
                "error": trial.user_attrs.get("error"),
            }
        )
    return pd.DataFrame(rows)


def tune_model(spec: ModelSpec, X, y, folds, **objective_kwargs) -> TuningResult:
    """Exhaustively search a model's grid over the shared folds.

    Grid points that fail to fit are recorded as failed trials. The model as
    a whole fails only when no grid point completes.

    Args:
        spec: Model specification
        X, y: Training data
        folds: List of (train_idx, valid_idx) pairs
        **objective_kwargs: Forwarded to CrossValidatedObjective

    Returns:
        TuningResult with status "ok"
    """
    objective = CrossValidatedObjective(spec, X, y, folds, **objective_kwargs)

    if not spec.grid:
        fold_scores = objective.score({})
        trials = pd.DataFrame(
            [
                {
                    "mean_score": float(fold_scores.mean()),
                    "std_err": standard_error(fold_scores),
                    "state": TrialState.COMPLETE.name,
                    "error": None,
                }
            ]
        )
        return TuningResult(
            name=spec.name,
            label=spec.label,
            status="ok",
            best_params={},
            mean_score=float(fold_scores.mean()),
            std_err=standard_error(fold_scores),
            fold_scores=fold_scores.tolist(),
            trials=trials,
        )

    study = optuna.create_study(
        study_name=f"{spec.name}_grid",
        direction="maximize",
        sampler=GridSampler(spec.grid, seed=objective.random_state),
    )
    study.optimize(objective, n_trials=spec.grid_size, catch=TRIAL_ERRORS)

    trials = _trials_table(study)
    completed = [t for t in study.trials if t.state == TrialState.COMPLETE]
    if not completed:
        errors = sorted({str(e) for e in trials["error"].dropna()})
        raise RuntimeError(f"All {len(study.trials)} grid points failed: {errors}")

    best = study.best_trial
    fold_scores = best.user_attrs["fold_scores"]

    return TuningResult(
        name=spec.name,
        label=spec.label,
        status="ok",
        best_params=dict(best.params),
        mean_score=float(best.value),
        std_err=standard_error(fold_scores),
        fold_scores=list(fold_scores),
        trials=trials,
    )


def tuning_fingerprint(spec: ModelSpec, X, y, folds, **objective_kwargs) -> str:
    """Hash of everything a cached tuning result depends on."""
    objective_kwargs.pop("n_jobs", None)
    return joblib.hash(
        (
            spec.name,
            spec.estimator_class.__name__,
            spec.params,
            spec.grid,
            list(X.columns),
            pd.util.hash_pandas_object(X, index=True).values,
            np.asarray(y),
            [(np.asarray(tr), np.asarray(va)) for tr, va in folds],
            sorted(objective_kwargs.items()),
        )
    )


def cache_path(cache_dir: Path, name: str) -> Path:
    return Path(cache_dir) / f"{name}_tuning.joblib"


def load_cached_result(path: Path, fingerprint: str) -> Optional[TuningResult]:
    """Read a cached result, ignoring it when its inputs have changed."""
    if not path.exists():
        return None

    result = joblib.load(path)
    if getattr(result, "fingerprint", None) != fingerprint:
        logger.info(f"Ignoring stale tuning cache {path}")
        return None
    return result


def tune_all(
    specs: List[ModelSpec],
    X,
    y,
    folds,
    cache_dir: Path = None,
    use_cache: bool = True,
    **objective_kwargs,
) -> List[TuningResult]:
    """Tune every model independently.

    A model that raises while tuning is logged and returned with status
    "failed" so the remaining models are still compared. Successful results
    are written to ``cache_dir`` and reused on the next run when their inputs
    are unchanged.

    Args:
        specs: Model specifications
        X, y: Training data
        folds: List of (train_idx, valid_idx) pairs
        cache_dir: Directory for per-model joblib caches, or None
        use_cache: Read existing caches
        **objective_kwargs: Forwarded to CrossValidatedObjective

    Returns:
        List of TuningResult in the order of ``specs``
    """
    results = []

    for spec in specs:
        fingerprint = tuning_fingerprint(spec, X, y, folds, **objective_kwargs)
        path = cache_path(cache_dir, spec.name) if cache_dir is not None else None

        if path is not None and use_cache:
            cached = load_cached_result(path, fingerprint)
            if cached is not None:
                logger.info(f"{spec.label}: loaded cached tuning result (mean AUC {cached.mean_score:.4f})")
                results.append(cached)
                continue

        logger.info(f"{spec.label}: tuning {spec.grid_size} grid point(s) over {len(folds)} folds")
        start = time.perf_counter()

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                result = tune_model(spec, X, y, folds, **objective_kwargs)
            except Exception as e:
                logger.warning(f"{spec.label}: tuning failed, excluded from comparison: {e}")
                result = TuningResult(
                    name=spec.name,
                    label=spec.label,
                    status="failed",
                    error=f"{type(e).__name__}: {e}",
                )

        result.n_warnings = len(caught)
        result.elapsed_seconds = time.perf_counter() - start
        result.fingerprint = fingerprint

        if caught:
            messages = sorted({str(w.message).splitlines()[0] for w in caught})
            logger.warning(f"{spec.label}: {len(caught)} warning(s) while tuning, e.g. {messages[:3]}")

        if result.ok:
            logger.info(
                f"{spec.label}: best mean AUC {result.mean_score:.4f} "
                f"(se {result.std_err:.4f}) with {result.best_params}"
            )
            if path is not None:
                path.parent.mkdir(parents=True, exist_ok=True)
                joblib.dump(result, path)

        results.append(result)

    return results


def collect_metrics(results: List[TuningResult]) -> pd.DataFrame:
    """Comparison table of all tuned models, best first.

    Args:
        results: Tuning results

    Returns:
        DataFrame with one row per model; failed models sort last with NaN scores
    """
    rows = [
        {
            "model": r.name,
            "label": r.label,
            "status": r.status,
            "mean_roc_auc": r.mean_score,
            "std_err": r.std_err,
            "n_folds": len(r.fold_scores),
            "n_grid_points": len(r.trials),
            "best_params": r.best_params,
            "n_warnings": r.n_warnings,
            "elapsed_seconds": r.elapsed_seconds,
            "error": r.error,
        }
        for r in results
    ]
    table = pd.DataFrame(rows)
    if table.empty:
        return table
    return table.sort_values("mean_roc_auc", ascending=False, na_position="last").reset_index(drop=True)


def select_best(results: List[TuningResult]) -> TuningResult:
    """Pick the successful model with the highest mean cross-validated ROC-AUC.

    Raises:
        RuntimeError: If no model tuned successfully
    """
    candidates = [r for r in results if r.ok]
    if not candidates:
        raise RuntimeError("No model completed tuning; nothing to select")
    return max(candidates, key=lambda r: r.mean_score)
