"""Exhaustive Random Forest grid search: enumerate, evaluate, rank, report."""

from __future__ import annotations

import itertools
import json
import numbers
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import mlflow
import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from titanic_rf.models.random_forest_model.config import GRID_CONFIG, TRAINING_CONFIG
from titanic_rf.pipelines.data_setup import DEFAULT_FEATURE_CONFIG, FeatureConfig
from titanic_rf.pipelines.evaluation import classification_metrics
from titanic_rf.pipelines.experiment_pipelines import build_rf_pipeline
from titanic_rf.reporting.plots import plot_accuracy_by_ntree, plot_top_configurations
from titanic_rf.reporting.report import render_report
from titanic_rf.reporting.results_table import rank_results, results_to_frame
from titanic_rf.utils.env import experiment_name


class Criterion(str, Enum):
    """Split rules swept by the grid, with their scikit-learn settings."""

    GINI = "Gini"
    DIST_AUC = "DistAUC"
    INF_GAIN = "InfGain"

    @property
    def rf_params(self) -> Dict[str, object]:
        return {
            Criterion.GINI: {"criterion": "gini"},
            Criterion.DIST_AUC: {"criterion": "gini", "class_weight": "balanced"},
            Criterion.INF_GAIN: {"criterion": "entropy"},
        }[self]

    @classmethod
    def parse(cls, value) -> "Criterion":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "gini": cls.GINI,
            "distauc": cls.DIST_AUC,
            "auc": cls.DIST_AUC,
            "infgain": cls.INF_GAIN,
            "entropy": cls.INF_GAIN,
            "log_loss": cls.INF_GAIN,
        }
        if key not in aliases:
            raise ValueError(
                f"Unknown split criterion '{value}'. Use one of: {[c.value for c in cls]}"
            )
        return aliases[key]


@dataclass(frozen=True)
class GridConfiguration:
    node_size: int
    n_trees: int
    criterion: Criterion

    @property
    def label(self) -> str:
        return f"{self.criterion.value}_{self.node_size}_{self.n_trees}"

    def to_params(self) -> Dict[str, object]:
        return {
            "node_size": self.node_size,
            "n_trees": self.n_trees,
            "criterion": self.criterion.value,
        }


@dataclass(frozen=True)
class EvaluationResult:
    config: GridConfiguration
    metrics: Dict[str, float] = field(default_factory=dict)

    def to_record(self) -> Dict[str, object]:
        return {"config": self.config.label, **self.config.to_params(), **self.metrics}


class GridSearchError(RuntimeError):
    """Raised when a single grid configuration cannot be trained or scored."""

    def __init__(self, config: GridConfiguration, reason: str):
        super().__init__(f"Grid configuration {config.label} failed: {reason}")
        self.config = config
        self.reason = reason

    def __reduce__(self):
        # keeps the exception intact across joblib worker boundaries
        return (self.__class__, (self.config, self.reason))


def _positive_int(value, name: str) -> int:
    if (
        isinstance(value, bool)
        or not isinstance(value, numbers.Real)
        or not float(value).is_integer()
        or int(value) <= 0
    ):
        raise ValueError(f"{name} values must be positive integers, got {value!r}")
    return int(value)


def _unique(values: Iterable) -> list:
    return list(dict.fromkeys(values))


def enumerate_grid(
    node_sizes: Iterable[int],
    n_trees: Iterable[int],
    criteria: Iterable,
) -> List[GridConfiguration]:
    """
    Cartesian product of the three value sets.

    Ordering is leaf size, then criterion, then ensemble size, each in
    input order. Repeated input values are collapsed so every
    configuration appears once.
    """
    sizes = _unique(_positive_int(v, "node_size") for v in node_sizes)
    trees = _unique(_positive_int(v, "n_trees") for v in n_trees)
    rules = _unique(Criterion.parse(v) for v in criteria)
    for name, values in (("node_size", sizes), ("n_trees", trees), ("criterion", rules)):
        if not values:
            raise ValueError(f"Grid dimension '{name}' is empty.")

    return [
        GridConfiguration(node_size=size, n_trees=ntree, criterion=rule)
        for size, rule, ntree in itertools.product(sizes, rules, trees)
    ]


def evaluate_configuration(
    config: GridConfiguration,
    X_train: pd.DataFrame,
    X_test: pd.DataFrame,
    y_train: pd.Series,
    y_test: pd.Series,
    *,
    feature_config: FeatureConfig = DEFAULT_FEATURE_CONFIG,
    random_state: Optional[int] = 42,
    positive_label=1,
    conf_level: float = 0.95,
    n_jobs: Optional[int] = 1,
) -> EvaluationResult:
    """Fit one forest for ``config`` and score it on the test partition."""
    try:
        pipeline = build_rf_pipeline(
            feature_config,
            n_estimators=config.n_trees,
            min_samples_leaf=config.node_size,
            random_state=random_state,
            n_jobs=n_jobs,
            **config.criterion.rf_params,
        )
        pipeline.fit(X_train, y_train)
        y_pred = pipeline.predict(X_test)
        metrics = classification_metrics(
            y_test, y_pred, positive_label=positive_label, conf_level=conf_level
        )
    except GridSearchError:
        raise
    except Exception as exc:
        raise GridSearchError(config, f"{type(exc).__name__}: {exc}") from exc
    return EvaluationResult(config=config, metrics=metrics)


def run_grid_search(
    grid: List[GridConfiguration],
    X_train: pd.DataFrame,
    X_test: pd.DataFrame,
    y_train: pd.Series,
    y_test: pd.Series,
    *,
    feature_config: FeatureConfig = DEFAULT_FEATURE_CONFIG,
    random_state: Optional[int] = 42,
    positive_label=1,
    conf_level: float = 0.95,
    n_jobs: Optional[int] = 1,
) -> List[EvaluationResult]:
    """
    Evaluate every configuration, in grid order.

    With ``n_jobs != 1`` configurations are spread over joblib workers and
    each forest runs single-threaded. The first failure aborts the search.
    """
    kwargs = dict(
        feature_config=feature_config,
        random_state=random_state,
        positive_label=positive_label,
        conf_level=conf_level,
    )
    if n_jobs == 1:
        results = []
        for i, config in enumerate(grid, start=1):
            print(f"[INFO] ({i}/{len(grid)}) Training {config.label}...")
            results.append(
                evaluate_configuration(config, X_train, X_test, y_train, y_test, n_jobs=1, **kwargs)
            )
        return results

    print(f"[INFO] Training {len(grid)} configurations with n_jobs={n_jobs}...")
    return list(
        Parallel(n_jobs=n_jobs)(
            delayed(evaluate_configuration)(config, X_train, X_test, y_train, y_test, n_jobs=1, **kwargs)
            for config in grid
        )
    )


def _finite(metrics: Dict[str, float]) -> Dict[str, float]:
    return {k: float(v) for k, v in metrics.items() if np.isfinite(v)}


class GridSearchRunner:
    """
    Runs the full grid search: train/score every configuration, rank the
    results, write the report files and track everything in MLflow.
    """

    def __init__(
        self,
        grid_params: dict | None = None,
        training_params: dict | None = None,
        *,
        feature_config: FeatureConfig | None = None,
        n_jobs: int = 1,
        top_n: int = 10,
        reports_dir: str = "reports",
        use_mlflow: bool = True,
        mlflow_experiment: str | None = None,
        mlflow_tracking_uri: str | None = None,
    ):
        self.grid_params = grid_params or GRID_CONFIG
        self.training_params = {**TRAINING_CONFIG, **(training_params or {})}
        self.feature_config = feature_config or DEFAULT_FEATURE_CONFIG
        self.n_jobs = n_jobs
        self.top_n = top_n
        self.reports_dir = Path(reports_dir)
        self.grid = enumerate_grid(
            self.grid_params["node_size"],
            self.grid_params["n_trees"],
            self.grid_params["criterion"],
        )

        self.use_mlflow = bool(use_mlflow)
        self.mlflow_experiment = experiment_name(mlflow_experiment)
        self.mlflow_tracking_uri = mlflow_tracking_uri or os.getenv("MLFLOW_TRACKING_URI")
        if self.use_mlflow and self.mlflow_tracking_uri:
            mlflow.set_tracking_uri(self.mlflow_tracking_uri)

    @property
    def figures_dir(self) -> Path:
        return self.reports_dir / "figures"

    def search(self, X_train, X_test, y_train, y_test) -> List[EvaluationResult]:
        return run_grid_search(
            self.grid,
            X_train,
            X_test,
            y_train,
            y_test,
            feature_config=self.feature_config,
            random_state=self.training_params.get("seed", 42),
            positive_label=self.training_params.get("positive_label", 1),
            conf_level=self.training_params.get("conf_level", 0.95),
            n_jobs=self.n_jobs,
        )

    def write_reports(self, ranked: pd.DataFrame, n_train: int, n_test: int) -> Dict[str, Path]:
        self.figures_dir.mkdir(parents=True, exist_ok=True)
        paths = {
            "results": self.reports_dir / "grid_results.csv",
            "best": self.reports_dir / "metrics_rf_grid.json",
            "accuracy_plot": self.figures_dir / "accuracy_by_ntree.png",
            "top_plot": self.figures_dir / "top_configurations.png",
            "report": self.reports_dir / "grid_search_report.md",
        }

        ranked.to_csv(paths["results"], index=False)

        best = ranked.iloc[0].to_dict()
        best = {
            k: (None if isinstance(v, float) and not np.isfinite(v) else v)
            for k, v in best.items()
        }
        with open(paths["best"], "w") as f:
            json.dump(best, f, indent=2, default=lambda v: v.item() if hasattr(v, "item") else str(v))

        plot_accuracy_by_ntree(ranked, paths["accuracy_plot"])
        plot_top_configurations(
            ranked, paths["top_plot"], top_n=5,
            conf_level=self.training_params.get("conf_level", 0.95),
        )
        render_report(
            ranked,
            paths["report"],
            grid_params={
                "node_size": _unique(g.node_size for g in self.grid),
                "n_trees": _unique(g.n_trees for g in self.grid),
                "criterion": [c.value for c in _unique(g.criterion for g in self.grid)],
            },
            split_params={
                "train_fraction": self.training_params.get("train_fraction"),
                "seed": self.training_params.get("seed"),
                "conf_level": self.training_params.get("conf_level", 0.95),
                "n_train": n_train,
                "n_test": n_test,
            },
            figures={
                "Accuracy by number of trees": paths["accuracy_plot"],
                "Top configurations": paths["top_plot"],
            },
            top_n=self.top_n,
        )
        print(f"[INFO] Grid search reports written to: {self.reports_dir}")
        return paths

    def _mlflow_log_results(self, results: List[EvaluationResult]):
        for result in results:
            with mlflow.start_run(run_name=result.config.label, nested=True):
                mlflow.log_params(result.config.to_params())
                mlflow.log_metrics(_finite(result.metrics))

    def run(self, X_train, X_test, y_train, y_test) -> pd.DataFrame:
        """Search, rank and report. Returns the ranked results table."""
        print(f"[INFO] Starting grid search over {len(self.grid)} configurations...")
        n_train, n_test = len(X_train), len(X_test)

        if not self.use_mlflow:
            results = self.search(X_train, X_test, y_train, y_test)
            ranked = rank_results(results_to_frame(results))
            self.write_reports(ranked, n_train, n_test)
            return ranked

        mlflow.set_experiment(self.mlflow_experiment)
        with mlflow.start_run(run_name="rf_grid_search"):
            mlflow.set_tags({
                "model_family": "random_forest",
                "stage": os.getenv("RUN_STAGE", "dev"),
            })
            mlflow.log_params({f"grid__{k}": str(v) for k, v in self.grid_params.items()})
            mlflow.log_params({f"train__{k}": v for k, v in self.training_params.items()})
            mlflow.log_params({"n_train": n_train, "n_test": n_test, "n_configurations": len(self.grid)})

            results = self.search(X_train, X_test, y_train, y_test)
            self._mlflow_log_results(results)

            ranked = rank_results(results_to_frame(results))
            best = ranked.iloc[0]
            mlflow.set_tags({"best_config": best["config"]})
            mlflow.log_metrics(_finite({
                f"best_{k}": best[k] for k in ("accuracy", "accuracy_lower", "accuracy_upper", "kappa")
            }))

            for path in self.write_reports(ranked, n_train, n_test).values():
                mlflow.log_artifact(str(path))

        print("[INFO] Grid search complete.\n")
        return ranked
