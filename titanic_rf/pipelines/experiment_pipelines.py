"""Helper functions to instantiate the Random Forest experiment pipelines."""

from __future__ import annotations

from typing import Dict, Optional, Tuple
from inspect import signature

import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestClassifier
from sklearn.impute import SimpleImputer
from sklearn.model_selection import StratifiedKFold, cross_validate
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from titanic_rf.pipelines.data_setup import FeatureConfig, DEFAULT_FEATURE_CONFIG


DEFAULT_SCORING = {
    "accuracy": "accuracy",
    "balanced_accuracy": "balanced_accuracy",
    "roc_auc": "roc_auc",
}


def build_preprocessor(config: FeatureConfig = DEFAULT_FEATURE_CONFIG) -> ColumnTransformer:
    encoder_kwargs = {"handle_unknown": "ignore"}
    if "sparse_output" in signature(OneHotEncoder).parameters:
        encoder_kwargs["sparse_output"] = False
    else:
        encoder_kwargs["sparse"] = False

    categorical_pipeline = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="most_frequent")),
            ("encoder", OneHotEncoder(**encoder_kwargs)),
        ]
    )

    # trees need no scaling; age is the only column with gaps in titanic3
    numeric_pipeline = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="median")),
        ]
    )

    return ColumnTransformer(
        transformers=[
            (
                "categorical",
                categorical_pipeline,
                config.categorical_features,
            ),
            (
                "numeric",
                numeric_pipeline,
                config.numeric_features,
            ),
        ],
        remainder="drop",
    )


def build_rf_pipeline(
    config: FeatureConfig = DEFAULT_FEATURE_CONFIG,
    *,
    n_estimators: int = 500,
    min_samples_leaf: int = 1,
    criterion: str = "gini",
    random_state: Optional[int] = 42,
    n_jobs: Optional[int] = 1,
    **rf_params,
) -> Pipeline:
    return Pipeline(
        steps=[
            ("preprocessor", build_preprocessor(config)),
            (
                "classifier",
                RandomForestClassifier(
                    n_estimators=n_estimators,
                    min_samples_leaf=min_samples_leaf,
                    criterion=criterion,
                    random_state=random_state,
                    n_jobs=n_jobs,
                    **rf_params,
                ),
            ),
        ]
    )


def cross_validate_pipeline(
    pipeline: Pipeline,
    feature_df: pd.DataFrame,
    target: pd.Series,
    *,
    cv: int = 5,
    scoring: Optional[Dict[str, str]] = None,
    random_state: int = 42,
) -> Tuple[Dict[str, list], pd.DataFrame]:
    scoring_dict = scoring or DEFAULT_SCORING
    folds = StratifiedKFold(n_splits=cv, shuffle=True, random_state=random_state)
    results = cross_validate(
        pipeline,
        feature_df,
        target,
        cv=folds,
        scoring=scoring_dict,
        return_train_score=True,
    )

    metrics = list(scoring_dict.keys())
    summary = pd.DataFrame(
        {
            "metric": metrics,
            "train_mean": [results[f"train_{m}"].mean() for m in metrics],
            "test_mean": [results[f"test_{m}"].mean() for m in metrics],
            "test_std": [results[f"test_{m}"].std() for m in metrics],
        }
    )
    return results, summary
