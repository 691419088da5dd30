import random

import numpy as np

from titanic_rf.utils import env as env_mod
from titanic_rf.utils import seeds

ENV_KEYS = ["ENV", "EXPERIMENT_NAME", "RF_EXPERIMENT_NAME", "MLFLOW_TRACKING_URI", "ARTIFACTS_URI"]


def test_load_env_defaults_and_env_file(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    # With .env present
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(
        "ENV=prod\nEXPERIMENT_NAME=my-exp\nRF_EXPERIMENT_NAME=my-rf\nMLFLOW_TRACKING_URI=http://mlflow\nARTIFACTS_URI=s3://bucket\n"
    )
    values = env_mod.load_env()
    assert values["ENV"] == "prod"
    assert values["EXPERIMENT_NAME"] == "my-exp"
    assert values["RF_EXPERIMENT_NAME"] == "my-rf"
    assert values["MLFLOW_TRACKING_URI"] == "http://mlflow"
    assert values["ARTIFACTS_URI"] == "s3://bucket"

    # Without .env, falls back to environment variables
    (tmp_path / ".env").unlink()
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("EXPERIMENT_NAME", "fallback-exp")
    values = env_mod.load_env()
    assert values["EXPERIMENT_NAME"] == "fallback-exp"
    assert values["ENV"] == "local"
    assert values["MLFLOW_TRACKING_URI"] is None


def test_load_env_reads_custom_path(monkeypatch, tmp_path):
    monkeypatch.setenv("ENV", "local")
    monkeypatch.delenv("ENV")
    custom = tmp_path / "staging.env"
    custom.write_text("ENV=staging\n")
    assert env_mod.load_env(custom)["ENV"] == "staging"


def test_experiment_name_precedence(monkeypatch):
    monkeypatch.delenv("RF_EXPERIMENT_NAME", raising=False)
    monkeypatch.delenv("EXPERIMENT_NAME", raising=False)
    assert env_mod.experiment_name() == "titanic-rf"

    monkeypatch.setenv("EXPERIMENT_NAME", "shared")
    assert env_mod.experiment_name() == "shared"

    monkeypatch.setenv("RF_EXPERIMENT_NAME", "forests")
    assert env_mod.experiment_name() == "forests"
    assert env_mod.experiment_name("explicit") == "explicit"


def test_resolve_seed_uses_env_only_as_fallback(monkeypatch):
    monkeypatch.delenv("SEED", raising=False)
    assert seeds.resolve_seed() == 42
    monkeypatch.setenv("SEED", "11")
    assert seeds.resolve_seed() == 11
    assert seeds.resolve_seed("5") == 5


def test_set_global_seed_is_reproducible():
    assert seeds.set_global_seed(123) == 123
    a = (random.random(), np.random.rand())
    seeds.set_global_seed(123)
    b = (random.random(), np.random.rand())
    assert a == b
