import sys
import types
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

# Ensure project root is on sys.path for imports like `titanic_rf.*`
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def make_passengers(n=120, seed=0):
    """Small titanic-like frame where sex and class drive survival."""
    rng = np.random.default_rng(seed)
    sex = rng.choice(["male", "female"], size=n)
    pclass = rng.choice([1, 2, 3], size=n)
    age = rng.normal(30, 12, size=n).clip(1, 80).round()
    age[rng.random(n) < 0.15] = np.nan
    sibsp = rng.integers(0, 4, size=n)
    parch = rng.integers(0, 3, size=n)
    survived = ((sex == "female") & (pclass < 3)) | (rng.random(n) < 0.15)
    return pd.DataFrame(
        {
            "pclass": pclass,
            "survived": survived.astype(int),
            "sex": sex,
            "age": age,
            "sibsp": sibsp,
            "parch": parch,
        }
    )


@pytest.fixture
def passengers():
    return make_passengers()


@pytest.fixture
def passenger_split(passengers):
    from titanic_rf.pipelines.data_setup import build_feature_frame, split_train_test

    X, y = build_feature_frame(passengers)
    return split_train_test(X, y, train_fraction=0.7, random_state=0)


@pytest.fixture
def stub_mlflow(monkeypatch, tmp_path):
    import mlflow

    state = {"uri": f"file://{tmp_path}", "experiment": None, "runs": [], "params": {}, "metrics": {}, "artifacts": []}

    class DummyRun:
        def __init__(self, run_name=None, nested=False):
            self.info = types.SimpleNamespace(run_id=f"run-{len(state['runs'])}")
            self.run_name = run_name
            self.nested = nested

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    def start_run(run_name=None, nested=False, **kwargs):
        run = DummyRun(run_name=run_name, nested=nested)
        state["runs"].append(run)
        return run

    def set_tracking_uri(uri):
        state["uri"] = uri

    def set_experiment(name):
        state["experiment"] = name

    def set_tags(tags):
        state.setdefault("tags", {}).update(tags)

    def log_params(params):
        state["params"].update(params)

    def log_metrics(metrics):
        state["metrics"].update(metrics)

    def log_artifact(path, artifact_path=None):
        state["artifacts"].append(Path(path))

    def log_artifacts(path, artifact_path=None):
        state["artifacts"].append(Path(path))

    sklearn_ns = types.SimpleNamespace(
        save_model=lambda sk_model, path: Path(path).mkdir(parents=True, exist_ok=True),
    )

    monkeypatch.setattr(mlflow, "start_run", start_run)
    monkeypatch.setattr(mlflow, "set_tracking_uri", set_tracking_uri)
    monkeypatch.setattr(mlflow, "set_experiment", set_experiment)
    monkeypatch.setattr(mlflow, "set_tags", set_tags)
    monkeypatch.setattr(mlflow, "log_params", log_params)
    monkeypatch.setattr(mlflow, "log_metrics", log_metrics)
    monkeypatch.setattr(mlflow, "log_artifact", log_artifact)
    monkeypatch.setattr(mlflow, "log_artifacts", log_artifacts)
    monkeypatch.setattr(mlflow, "sklearn", sklearn_ns, raising=False)

    return state
