"""Markdown report for a finished grid search."""

import os
from pathlib import Path
from typing import Dict, Mapping

import pandas as pd
from tabulate import tabulate

from titanic_rf.reporting.results_table import top_table


def _parameter_table(grid_params: Mapping[str, list]) -> str:
    rows = [(name, ", ".join(str(v) for v in values), len(values)) for name, values in grid_params.items()]
    return tabulate(rows, headers=["Parameter", "Values", "Count"], tablefmt="github")


def render_report(
    ranked: pd.DataFrame,
    output_path: Path,
    *,
    grid_params: Mapping[str, list],
    split_params: Mapping[str, object],
    figures: Dict[str, Path],
    top_n: int = 10,
) -> Path:
    output_path = Path(output_path)
    best = ranked.iloc[0]
    n_configs = len(ranked)

    lines = [
        "# Random Forest grid search",
        "",
        (
            f"The passenger data was split {split_params.get('n_train')}/{split_params.get('n_test')} "
            f"(train fraction {split_params.get('train_fraction')}, stratified on the label, "
            f"seed {split_params.get('seed')}). One forest was trained for each of the "
            f"{n_configs} combinations below and scored on the held-out partition."
        ),
        "",
        "## Parameters",
        "",
        _parameter_table(grid_params),
        "",
        "## Results",
        "",
        (
            f"Best configuration: **{best['config']}** with accuracy {best['accuracy']:.4f} "
            f"({split_params.get('conf_level', 0.95):.0%} CI {best['accuracy_lower']:.4f}-{best['accuracy_upper']:.4f}). "
            "Ties are broken by fewer trees, then smaller leaves."
        ),
        "",
        tabulate(top_table(ranked, top_n), headers="keys", tablefmt="github", showindex=False, floatfmt=".4f"),
        "",
    ]

    for title, path in figures.items():
        rel = os.path.relpath(path, output_path.parent)
        lines += [f"## {title}", "", f"![{title}]({Path(rel).as_posix()})", ""]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(lines))
    print(f"[INFO] Report written to: {output_path}")
    return output_path
