# titanic_rf/main.py
import argparse
import json
import os
from pathlib import Path

import yaml

from titanic_rf.data.data_loader import DataLoader
from titanic_rf.models.random_forest_model import ModelTrainer
from titanic_rf.models.random_forest_model.config import GRID_CONFIG, TRAINING_CONFIG
from titanic_rf.pipelines.data_setup import (
    DEFAULT_FEATURE_CONFIG,
    build_feature_frame,
    load_clean_dataframe,
    split_train_test,
)
from titanic_rf.pipelines.grid_search import Criterion, GridConfiguration, GridSearchRunner
from titanic_rf.utils.env import load_env
from titanic_rf.utils.seeds import resolve_seed, set_global_seed

STAGES = ["all", "data_loader", "grid_search", "train"]
BEST_METRICS_PATH = "reports/metrics_rf_grid.json"


def load_cfg(path="params.yaml"):
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def training_params_from_cfg(cfg):
    split = cfg.get("split") or {}
    train = cfg.get("train") or {}
    return {
        **TRAINING_CONFIG,
        "train_fraction": split.get("train_fraction", TRAINING_CONFIG["train_fraction"]),
        "seed": resolve_seed(split.get("seed")),
        "cv_folds": train.get("cv_folds", TRAINING_CONFIG["cv_folds"]),
        "positive_label": train.get("positive_label", TRAINING_CONFIG["positive_label"]),
        "conf_level": train.get("conf_level", TRAINING_CONFIG["conf_level"]),
    }


def banner(title):
    print("=" * 70); print(f"[INFO] {title}"); print("=" * 70)


def run_data_loader(cfg):
    data = cfg.get("data") or {}
    banner("STEP 1: Running DataLoader")
    loader = DataLoader(
        data.get("raw_path"),
        data.get("processed_path"),
        source=data.get("source", "csv"),
    )
    loader.run()
    print(f"[INFO] Processed file at: {loader.output_path}")
    return loader.output_path


def load_split(cfg, processed_path=None):
    params = training_params_from_cfg(cfg)
    # without a configured path, look for data/processed under the project root
    df = load_clean_dataframe(Path(processed_path) if processed_path else None)
    X, y = build_feature_frame(df, DEFAULT_FEATURE_CONFIG)
    X_train, X_test, y_train, y_test = split_train_test(
        X, y, train_fraction=params["train_fraction"], random_state=params["seed"]
    )
    print(f"[INFO] X_train {X_train.shape} | X_test {X_test.shape}")
    return X_train, X_test, y_train, y_test


def run_grid_search(cfg, X_train, X_test, y_train, y_test):
    banner("STEP 2: Random Forest grid search")
    train = cfg.get("train") or {}
    runner = GridSearchRunner(
        grid_params={**GRID_CONFIG, **(cfg.get("grid") or {})},
        training_params=training_params_from_cfg(cfg),
        n_jobs=train.get("n_jobs", 1),
        top_n=train.get("top_n", 10),
        use_mlflow=train.get("use_mlflow", True),
    )
    ranked = runner.run(X_train, X_test, y_train, y_test)
    best = ranked.iloc[0]
    print(f"[INFO] Best configuration: {best['config']} (accuracy {best['accuracy']:.4f})")
    return ranked


def load_best_configuration(path=BEST_METRICS_PATH):
    if not os.path.exists(path):
        raise FileNotFoundError(f"No grid search results at {path}. Run the grid_search stage first.")
    with open(path, "r") as f:
        best = json.load(f)
    return GridConfiguration(
        node_size=int(best["node_size"]),
        n_trees=int(best["n_trees"]),
        criterion=Criterion.parse(best["criterion"]),
    )


def run_training(cfg, X_train, X_test, y_train, y_test):
    banner("STEP 3: Training best configuration")
    config = load_best_configuration()
    params = training_params_from_cfg(cfg)
    trainer = ModelTrainer.from_configuration(
        config,
        training_params=params,
        use_mlflow=(cfg.get("train") or {}).get("use_mlflow", True),
    )
    metrics = trainer.run(X_train, X_test, y_train, y_test)

    if params.get("cv_folds"):
        banner("STEP 4: Cross-Validation")
        trainer.cross_validate(X_train, y_train)

    banner("STEP 5: Pipeline Summary")
    print(f"Configuration: {config.label}")
    print(f"Metrics: {metrics}")
    print("\n[INFO] Full pipeline executed successfully!")
    return metrics


def main(argv=None):
    parser = argparse.ArgumentParser(description="Random Forest grid search on the Titanic passengers.")
    parser.add_argument("--stage", type=str, default="all", choices=STAGES)
    parser.add_argument("--params", type=str, default="params.yaml")
    args = parser.parse_args(argv)

    load_env()
    cfg = load_cfg(args.params)
    set_global_seed(training_params_from_cfg(cfg)["seed"])

    if args.stage in ("all", "data_loader"):
        processed = run_data_loader(cfg)
        if args.stage == "data_loader":
            return
    else:
        processed = (cfg.get("data") or {}).get("processed_path")

    X_train, X_test, y_train, y_test = load_split(cfg, processed)

    if args.stage in ("all", "grid_search"):
        run_grid_search(cfg, X_train, X_test, y_train, y_test)
    if args.stage in ("all", "train"):
        run_training(cfg, X_train, X_test, y_train, y_test)


if __name__ == "__main__":
    main()
