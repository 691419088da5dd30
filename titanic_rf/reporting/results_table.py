"""Result table helpers: flatten, rank and slice the grid search output."""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

CONFIG_COLUMNS = ["config", "node_size", "n_trees", "criterion"]

DISPLAY_COLUMNS = [
    "rank",
    "config",
    "criterion",
    "node_size",
    "n_trees",
    "accuracy",
    "accuracy_lower",
    "accuracy_upper",
    "kappa",
    "sensitivity",
    "specificity",
]


def results_to_frame(results: Iterable) -> pd.DataFrame:
    """One row per EvaluationResult, configuration columns first."""
    records = [result.to_record() for result in results]
    if not records:
        raise ValueError("No grid search results to tabulate.")
    df = pd.DataFrame.from_records(records)
    metric_columns = [c for c in df.columns if c not in CONFIG_COLUMNS]
    return df[CONFIG_COLUMNS + metric_columns]


def rank_results(df: pd.DataFrame, metric: str = "accuracy") -> pd.DataFrame:
    """
    Sort by ``metric`` descending, then fewer trees, then smaller leaves.

    Mergesort keeps the order stable, so ranking the same table twice gives
    the same row order. A 1-based ``rank`` column is (re)written.
    """
    if metric not in df.columns:
        raise KeyError(f"Ranking metric '{metric}' not in results: {list(df.columns)}")
    ranked = df.drop(columns=["rank"], errors="ignore").sort_values(
        by=[metric, "n_trees", "node_size"],
        ascending=[False, True, True],
        kind="mergesort",
        na_position="last",
    ).reset_index(drop=True)
    ranked.insert(0, "rank", range(1, len(ranked) + 1))
    return ranked


def top_table(ranked: pd.DataFrame, top_n: int = 10, columns: List[str] | None = None) -> pd.DataFrame:
    columns = [c for c in (columns or DISPLAY_COLUMNS) if c in ranked.columns]
    return ranked.head(top_n)[columns].reset_index(drop=True)
