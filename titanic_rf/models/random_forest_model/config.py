MODEL_CONFIG = {
    "n_estimators": 500,
    "min_samples_leaf": 1,
    "criterion": "gini",
    "max_features": "sqrt",
    "random_state": 42,
    "n_jobs": -1
}

TRAINING_CONFIG = {
    "cv_folds": 5,
    "train_fraction": 0.7,
    "seed": 42,
    "positive_label": 1,
    "conf_level": 0.95,
}

# leaf sizes x ensemble sizes x split rules -> 45 forests
GRID_CONFIG = {
    "node_size": [1, 3, 5],
    "n_trees": [10, 35, 60, 85, 110],
    "criterion": ["Gini", "DistAUC", "InfGain"],
}
