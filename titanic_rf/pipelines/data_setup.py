"""Utilities to load the processed dataset and prepare feature matrices."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd
from sklearn.model_selection import train_test_split

from titanic_rf.data.data_loader import DataLoader

DEFAULT_DATA_REL_PATH = Path("data/processed/titanic_processed.csv")


@dataclass(frozen=True)
class FeatureConfig:
    """Captures the column selections used across experiments."""

    categorical_features: list[str]
    numeric_features: list[str]
    target: str = "survived"

    @property
    def feature_columns(self) -> list[str]:
        return self.categorical_features + self.numeric_features


DEFAULT_FEATURE_CONFIG = FeatureConfig(
    categorical_features=["sex"],
    numeric_features=["pclass", "age", "sibsp", "parch"],
)


def infer_project_root(start: Optional[Path] = None) -> Path:
    """Walk upwards until we find the repository root."""
    search_path = start or Path.cwd()
    for candidate in [search_path, *search_path.parents]:
        if (candidate / "data").exists() and (candidate / "titanic_rf").exists():
            return candidate
    raise FileNotFoundError("Could not infer project root (missing data/ or titanic_rf/).")


def resolve_data_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or infer_project_root()
    path = root / DEFAULT_DATA_REL_PATH
    if not path.exists():
        raise FileNotFoundError(f"Processed dataset not found at {path}")
    return path


def load_clean_dataframe(data_path: Optional[Path] = None) -> pd.DataFrame:
    """Load and validate the processed CSV."""
    path = data_path or resolve_data_path()
    loader = DataLoader(str(path))
    return loader.load_data()


def build_feature_frame(
    df: pd.DataFrame, config: FeatureConfig = DEFAULT_FEATURE_CONFIG
) -> Tuple[pd.DataFrame, pd.Series]:
    """Return feature matrix and target series based on the configuration."""
    required_columns = config.feature_columns + [config.target]

    missing = sorted(set(required_columns) - set(df.columns))
    if missing:
        raise ValueError(f"Missing columns in dataframe: {missing}")

    feature_df = df[config.feature_columns].copy()
    target = df[config.target].copy()
    return feature_df, target


def split_train_test(
    feature_df: pd.DataFrame,
    target: pd.Series,
    *,
    train_fraction: float = 0.7,
    random_state: int = 42,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
    """
    Stratified wrapper around train_test_split.

    The label proportions of ``target`` are preserved in both partitions and
    the split is reproducible for a fixed ``random_state``. The train side
    gets ``floor(train_fraction * n)`` rows, the test side the rest. Each
    side must hold at least one row per label class.
    """
    if len(feature_df) == 0:
        raise ValueError("Cannot split an empty dataset.")
    if len(feature_df) != len(target):
        raise ValueError(
            f"Feature/label length mismatch: {len(feature_df)} != {len(target)}"
        )
    if not 0 < train_fraction < 1:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    n = len(feature_df)
    n_train = math.floor(train_fraction * n)
    n_classes = max(int(target.nunique()), 1)
    if min(n_train, n - n_train) < n_classes:
        raise ValueError(
            f"train_fraction={train_fraction} on n={n} rows gives a {n_train}/{n - n_train} split; "
            f"both partitions need at least {n_classes} rows (one per class)."
        )

    return train_test_split(
        feature_df,
        target,
        train_size=train_fraction,
        random_state=random_state,
        stratify=target,
    )
