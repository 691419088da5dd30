# titanic_rf/utils/env.py
import os
from pathlib import Path

from dotenv import load_dotenv

ENV_DEFAULTS = {
    "ENV": "local",
    "EXPERIMENT_NAME": "titanic-rf",
    "RF_EXPERIMENT_NAME": None,
    "MLFLOW_TRACKING_URI": None,
    "ARTIFACTS_URI": None,
}


def load_env(dotenv_path=".env"):
    """Read ``dotenv_path`` into the process environment and return the tracked keys."""
    path = Path(dotenv_path)
    if path.exists():
        load_dotenv(path)
        print(f"[INFO] Environment loaded from {path}")
    else:
        print(f"[WARN] {path} not found, reading settings from the process environment.")
    return {key: os.getenv(key, default) for key, default in ENV_DEFAULTS.items()}


def experiment_name(explicit=None):
    """MLflow experiment for forest runs: argument, then RF_EXPERIMENT_NAME, then EXPERIMENT_NAME."""
    return (
        explicit
        or os.getenv("RF_EXPERIMENT_NAME")
        or os.getenv("EXPERIMENT_NAME")
        or ENV_DEFAULTS["EXPERIMENT_NAME"]
    )
