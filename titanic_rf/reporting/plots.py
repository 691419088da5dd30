"""
Grid search figures.

- Accuracy vs. number of trees, one panel per leaf size, one line per criterion
- Accuracy with confidence bounds for the best configurations
"""
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd


def plot_accuracy_by_ntree(ranked: pd.DataFrame, output_path: Path, metric: str = "accuracy"):
    """
    Facet by ``node_size``; the dashed line marks the best accuracy
    reached anywhere in the grid.
    """
    node_sizes = sorted(ranked["node_size"].unique())
    criteria = list(dict.fromkeys(ranked["criterion"]))
    best = ranked[metric].max()

    fig, axes = plt.subplots(
        1, len(node_sizes), figsize=(5 * len(node_sizes), 4), sharey=True, squeeze=False
    )

    for ax, size in zip(axes[0], node_sizes):
        panel = ranked[ranked["node_size"] == size]
        for criterion in criteria:
            subset = panel[panel["criterion"] == criterion].sort_values("n_trees")
            if subset.empty:
                continue
            ax.plot(subset["n_trees"], subset[metric], marker="o", label=criterion)

        ax.axhline(best, linestyle="--", color="grey", linewidth=1)
        ax.set_title(f"nodesize = {size}")
        ax.set_xlabel("Number of trees")
        ax.grid(True, alpha=0.3)

    axes[0, 0].set_ylabel(metric.replace("_", " ").capitalize())
    axes[0, -1].legend(title="Split rule", loc="best", fontsize=8)
    fig.suptitle("Random Forest grid search")
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def plot_top_configurations(
    ranked: pd.DataFrame, output_path: Path, top_n: int = 5, conf_level: float = 0.95
):
    top = ranked.head(top_n).iloc[::-1]
    acc = top["accuracy"]
    xerr = [acc - top["accuracy_lower"], top["accuracy_upper"] - acc]

    fig, ax = plt.subplots(figsize=(7, 0.6 * len(top) + 1.5))
    ax.errorbar(acc, range(len(top)), xerr=xerr, fmt="o", capsize=4, capthick=1)
    ax.set_yticks(range(len(top)))
    ax.set_yticklabels(top["config"])
    ax.set_xlabel(f"Accuracy ({conf_level:.0%} CI)")
    ax.set_title(f"Top {len(top)} configurations")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
