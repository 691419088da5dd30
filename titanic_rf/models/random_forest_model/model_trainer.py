import datetime
import json
import os
from contextlib import nullcontext
from pathlib import Path
from tempfile import TemporaryDirectory

import joblib
import matplotlib.pyplot as plt
import mlflow
import mlflow.sklearn
import numpy as np
from sklearn.metrics import accuracy_score

from .config import MODEL_CONFIG, TRAINING_CONFIG
from titanic_rf.pipelines.data_setup import FeatureConfig, DEFAULT_FEATURE_CONFIG
from titanic_rf.pipelines.evaluation import classification_metrics, confusion_frame
from titanic_rf.pipelines.experiment_pipelines import build_rf_pipeline, cross_validate_pipeline
from titanic_rf.utils.env import experiment_name, load_env

os.environ["MLFLOW_ENABLE_LOGGED_MODELS"] = "false"


class ModelTrainer:
    """
    Trains, evaluates, and persists a Random Forest survival classifier.
    """

    def __init__(self, model_params=None, training_params=None,
                 *,
                 feature_config: FeatureConfig | None = None,
                 use_mlflow: bool = True,
                 mlflow_experiment: str | None = None,
                 mlflow_tracking_uri: str | None = None,
                 tags: dict | None = None):
        self.model_params = model_params or MODEL_CONFIG
        self.training_params = {**TRAINING_CONFIG, **(training_params or {})}
        self.feature_config = feature_config or DEFAULT_FEATURE_CONFIG
        self.model = build_rf_pipeline(self.feature_config, **self.model_params)

        self.use_mlflow = bool(use_mlflow)
        self.mlflow_experiment = experiment_name(mlflow_experiment)
        self.mlflow_tracking_uri = mlflow_tracking_uri or os.getenv("MLFLOW_TRACKING_URI")
        self.tags = tags or {"model_type": "random_forest"}

        if self.use_mlflow and self.mlflow_tracking_uri:
            mlflow.set_tracking_uri(self.mlflow_tracking_uri)

    @classmethod
    def from_configuration(cls, config, training_params=None, **kwargs):
        """Build a trainer for one grid configuration (see ``GridConfiguration``)."""
        training_params = {**TRAINING_CONFIG, **(training_params or {})}
        model_params = {
            "n_estimators": config.n_trees,
            "min_samples_leaf": config.node_size,
            "random_state": training_params.get("seed", 42),
            "n_jobs": -1,
            **config.criterion.rf_params,
        }
        tags = {"model_type": "random_forest", "grid_config": config.label}
        return cls(model_params=model_params, training_params=training_params, tags=tags, **kwargs)

    def train(self, X_train, y_train):
        print("[INFO] Training Random Forest model...")
        self.model.fit(X_train, y_train)
        print("[INFO] Training complete.")
        return self.model

    def evaluate(self, X_train, X_test, y_train, y_test):
        print("[INFO] Evaluating model performance...")
        y_pred = self.model.predict(X_test)
        metrics = classification_metrics(
            y_test,
            y_pred,
            positive_label=self.training_params.get("positive_label", 1),
            conf_level=self.training_params.get("conf_level", 0.95),
        )
        metrics["accuracy_train"] = float(accuracy_score(y_train, self.model.predict(X_train)))
        print("[INFO] Model Evaluation:")
        for k in ("accuracy", "accuracy_lower", "accuracy_upper", "kappa",
                  "sensitivity", "specificity", "accuracy_train"):
            print(f"   {k}: {metrics[k]:.4f}")
        return metrics

    def cross_validate(self, X, y):
        """Stratified k-fold scores of the configured forest; returns the summary frame."""
        print("[INFO] Running cross-validation...")
        _, summary = cross_validate_pipeline(
            self.model,
            X,
            y,
            cv=self.training_params.get("cv_folds", 5),
            random_state=self.training_params.get("seed", 42),
        )
        for row in summary.itertuples(index=False):
            print(f"[INFO] CV {row.metric}: {row.test_mean:.4f} ± {row.test_std:.4f}")
        return summary

    def save_model(self, model_type="random_forest", timestamp=None):
        """
        Save model artifact under a unique versioned filename only.
        """
        if timestamp is None:
            timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")

        versioned_dir = os.path.join("models", model_type, "artifacts")
        os.makedirs(versioned_dir, exist_ok=True)
        versioned_model_path = os.path.join(versioned_dir, f"model_{timestamp}.pkl")

        joblib.dump(self.model, versioned_model_path)

        print(f"[INFO] Saved versioned model to: {versioned_model_path}")
        return versioned_model_path

    @staticmethod
    def _ensure_output_dirs():
        Path("reports/figures").mkdir(parents=True, exist_ok=True)
        Path("models").mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _plot_confusion_matrix(y_true, y_pred, out_path: str, positive_label=1):
        table = confusion_frame(y_true, y_pred, positive_label=positive_label)
        fig, ax = plt.subplots(figsize=(4, 4))
        ax.imshow(table.values, cmap="Blues")
        for (i, j), value in np.ndenumerate(table.values):
            ax.text(j, i, str(value), ha="center", va="center")
        ax.set_xticks(range(table.shape[1]))
        ax.set_xticklabels(table.columns)
        ax.set_yticks(range(table.shape[0]))
        ax.set_yticklabels(table.index)
        ax.set_xlabel("Reference")
        ax.set_ylabel("Prediction")
        ax.set_title("Random Forest - Confusion matrix")
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        plt.close(fig)

    # ---------------------- MLflow helpers ----------------------
    def _mlflow_start(self, run_name: str | None = None):
        if not self.use_mlflow:
            return nullcontext()
        env_vars = load_env()
        if env_vars.get("MLFLOW_TRACKING_URI"):
            mlflow.set_tracking_uri(env_vars["MLFLOW_TRACKING_URI"])
        mlflow.set_experiment(self.mlflow_experiment)
        return mlflow.start_run(run_name=run_name)

    def _mlflow_log_params(self, extra: dict | None = None):
        if not self.use_mlflow:
            return
        mlflow.log_params({f"model__{k}": v for k, v in self.model_params.items()})
        mlflow.log_params({f"train__{k}": v for k, v in self.training_params.items()})
        if extra:
            mlflow.log_params(extra)

    def _mlflow_log_metrics(self, metrics: dict):
        if not self.use_mlflow:
            return
        mlflow.log_metrics({k: float(v) for k, v in metrics.items() if np.isfinite(v)})

    def _mlflow_log_artifact(self, path: str):
        if self.use_mlflow:
            mlflow.log_artifact(path)

    def run(self, X_train, X_test, y_train, y_test, model_type="random_forest", timestamp=None):
        """
        Full training + evaluation pipeline for the selected forest.
        Saves model with timestamped filename and logs metrics.
        """
        self._ensure_output_dirs()
        print("[INFO] Starting Random Forest training pipeline...")

        with self._mlflow_start(run_name="random_forest_run"):
            if self.use_mlflow:
                mlflow.set_tags({
                    "model_family": "random_forest",
                    "stage": os.getenv("RUN_STAGE", "dev"),
                    **self.tags,
                })
            self._mlflow_log_params({
                "n_train": int(getattr(X_train, "shape", [len(X_train)])[0]),
                "n_test": int(getattr(X_test, "shape", [len(X_test)])[0]),
            })

            self.train(X_train, y_train)

            metrics = self.evaluate(X_train, X_test, y_train, y_test)
            metrics = {k: float(v) for k, v in metrics.items()}
            self._mlflow_log_metrics(metrics)

            y_pred = self.model.predict(X_test)
            cm_fig = "reports/figures/confusion_matrix_rf.png"
            self._plot_confusion_matrix(
                y_test, y_pred, cm_fig, positive_label=self.training_params.get("positive_label", 1)
            )
            self._mlflow_log_artifact(cm_fig)

            metrics_path = "reports/metrics_rf.json"
            with open(metrics_path, "w") as f:
                json.dump({k: (v if np.isfinite(v) else None) for k, v in metrics.items()}, f, indent=2)
            self._mlflow_log_artifact(metrics_path)

            saved_path = self.save_model(model_type=model_type, timestamp=timestamp)
            self._mlflow_log_artifact(saved_path)

            if self.use_mlflow:
                # MLflow-format copy without the logged-models API
                with TemporaryDirectory() as tmp:
                    local_dir = Path(tmp) / "rf_mlflow_model"
                    mlflow.sklearn.save_model(self.model, path=str(local_dir))
                    mlflow.log_artifacts(str(local_dir), artifact_path="model")

            print(f"[INFO] Random Forest model saved at: {saved_path}")
            print("[INFO] Random Forest training pipeline complete.\n")

        return metrics
