"""Confusion-matrix based metrics for the binary survival classifier."""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import cohen_kappa_score, confusion_matrix


def _ratio(num: float, den: float) -> float:
    return float(num) / float(den) if den else float("nan")


def _resolve_labels(y_true: np.ndarray, y_pred: np.ndarray, positive_label) -> list:
    observed = pd.unique(np.concatenate([y_true, y_pred]))
    if len(observed) > 2:
        raise ValueError(f"Expected a binary problem, found labels {sorted(observed.tolist())}")
    negatives = [label for label in observed if label != positive_label]
    negative_label = negatives[0] if negatives else None
    if negative_label is None:
        # only the positive class appears; pick any other value so the 2x2 table exists
        negative_label = 0 if positive_label != 0 else 1
    return [negative_label, positive_label]


def clopper_pearson_interval(successes: int, trials: int, conf_level: float = 0.95) -> tuple[float, float]:
    """Exact binomial confidence interval for ``successes / trials``."""
    if trials <= 0:
        raise ValueError("trials must be positive")
    alpha = 1.0 - conf_level
    lower = 0.0 if successes == 0 else stats.beta.ppf(alpha / 2, successes, trials - successes + 1)
    upper = 1.0 if successes == trials else stats.beta.ppf(1 - alpha / 2, successes + 1, trials - successes)
    return float(lower), float(upper)


def confusion_frame(y_true: Sequence, y_pred: Sequence, positive_label=1) -> pd.DataFrame:
    """2x2 table with predictions on the rows and references on the columns."""
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    labels = _resolve_labels(y_true, y_pred, positive_label)
    cm = confusion_matrix(y_true, y_pred, labels=labels)
    return pd.DataFrame(
        cm.T,
        index=pd.Index(labels, name="prediction"),
        columns=pd.Index(labels, name="reference"),
    )


def classification_metrics(
    y_true: Sequence,
    y_pred: Sequence,
    *,
    positive_label=1,
    conf_level: float = 0.95,
) -> Dict[str, float]:
    """
    Summarise a set of binary predictions.

    Returns overall statistics (accuracy with its exact confidence interval,
    no-information rate, one-sided binomial p-value of accuracy > NIR,
    Cohen's kappa, McNemar p-value) together with the per-class ones
    (sensitivity, specificity, predictive values, F1, prevalence, detection
    rate/prevalence, balanced accuracy) for ``positive_label``.
    Ratios with a zero denominator are reported as NaN.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if y_true.size == 0:
        raise ValueError("Cannot compute metrics on empty predictions.")
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: {y_true.shape} != {y_pred.shape}")

    labels = _resolve_labels(y_true, y_pred, positive_label)
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=labels).ravel()
    n = int(tn + fp + fn + tp)
    correct = int(tp + tn)

    accuracy = correct / n
    lower, upper = clopper_pearson_interval(correct, n, conf_level)

    # no-information rate: share of the largest reference class
    nir = max(tp + fn, tn + fp) / n
    acc_p_value = float(stats.binom.sf(correct - 1, n, nir))

    discordant = fp + fn
    if discordant:
        mcnemar_stat = (abs(int(fp) - int(fn)) - 1) ** 2 / discordant
        mcnemar_p = float(stats.chi2.sf(mcnemar_stat, df=1))
    else:
        mcnemar_p = float("nan")

    if len(np.unique(np.concatenate([y_true, y_pred]))) < 2:
        kappa = float("nan")
    else:
        kappa = float(cohen_kappa_score(y_true, y_pred, labels=labels))

    sensitivity = _ratio(tp, tp + fn)
    specificity = _ratio(tn, tn + fp)
    ppv = _ratio(tp, tp + fp)
    npv = _ratio(tn, tn + fn)

    return {
        "accuracy": float(accuracy),
        "accuracy_lower": lower,
        "accuracy_upper": upper,
        "accuracy_null": float(nir),
        "accuracy_p_value": acc_p_value,
        "kappa": kappa,
        "mcnemar_p_value": mcnemar_p,
        "sensitivity": sensitivity,
        "specificity": specificity,
        "pos_pred_value": ppv,
        "neg_pred_value": npv,
        "precision": ppv,
        "recall": sensitivity,
        "f1": _ratio(2 * tp, 2 * tp + fp + fn),
        "prevalence": _ratio(tp + fn, n),
        "detection_rate": _ratio(tp, n),
        "detection_prevalence": _ratio(tp + fp, n),
        "balanced_accuracy": (sensitivity + specificity) / 2,
    }
