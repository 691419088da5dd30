import numpy as np
import pandas as pd
import pytest
from sklearn.pipeline import Pipeline

from titanic_rf.pipelines import data_setup as ds
from titanic_rf.pipelines import experiment_pipelines as ep


def test_feature_config_properties():
    cfg = ds.DEFAULT_FEATURE_CONFIG
    assert cfg.feature_columns == ["sex", "pclass", "age", "sibsp", "parch"]
    assert cfg.target == "survived"


def test_infer_and_resolve_data_path(tmp_path):
    (tmp_path / "data" / "processed").mkdir(parents=True)
    (tmp_path / "titanic_rf").mkdir()
    csv_path = tmp_path / ds.DEFAULT_DATA_REL_PATH
    csv_path.write_text("pclass,survived\n1,1\n")

    root = ds.infer_project_root(start=tmp_path / "titanic_rf")
    assert root == tmp_path
    assert ds.resolve_data_path(project_root=root) == csv_path


def test_resolve_data_path_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ds.resolve_data_path(project_root=tmp_path)


def test_load_clean_dataframe_uses_dataloader(monkeypatch, tmp_path, passengers):
    class DummyLoader:
        def __init__(self, path):
            self.input_path = path

        def load_data(self):
            return passengers.copy()

    monkeypatch.setattr(ds, "DataLoader", DummyLoader)
    df = ds.load_clean_dataframe(data_path=tmp_path / "any.csv")
    assert len(df) == len(passengers)


def test_build_feature_frame_success(passengers):
    X, y = ds.build_feature_frame(passengers)
    assert list(X.columns) == ds.DEFAULT_FEATURE_CONFIG.feature_columns
    assert y.tolist() == passengers["survived"].tolist()


def test_build_feature_frame_missing_columns_raises(passengers):
    with pytest.raises(ValueError):
        ds.build_feature_frame(passengers.drop(columns=["parch"]))


@pytest.mark.parametrize("fraction", [0.1, 0.3, 0.5, 0.7, 0.9])
def test_split_is_disjoint_and_exhaustive(passengers, fraction):
    X, y = ds.build_feature_frame(passengers)
    X_train, X_test, y_train, y_test = ds.split_train_test(X, y, train_fraction=fraction, random_state=1)

    assert set(X_train.index).isdisjoint(X_test.index)
    assert len(X_train) + len(X_test) == len(X)
    assert list(X_train.index) == list(y_train.index)


def test_split_of_1309_records_is_reproducible():
    rng = np.random.default_rng(3)
    n = 1309
    X = pd.DataFrame({"sex": rng.choice(["male", "female"], n), "pclass": rng.integers(1, 4, n),
                      "age": rng.normal(30, 10, n), "sibsp": rng.integers(0, 3, n), "parch": rng.integers(0, 3, n)})
    y = pd.Series((rng.random(n) < 0.382).astype(int))

    first = ds.split_train_test(X, y, train_fraction=0.7, random_state=42)
    second = ds.split_train_test(X, y, train_fraction=0.7, random_state=42)

    assert len(first[0]) == 916
    assert len(first[1]) == 393
    assert list(first[0].index) == list(second[0].index)


def _balanced_frame(n):
    X = pd.DataFrame({"sex": ["male", "female"] * (n // 2) + ["male"] * (n % 2),
                      "pclass": 1, "age": 30.0, "sibsp": 0, "parch": 0})
    y = pd.Series(([0, 1] * n)[:n])
    return X, y


@pytest.mark.parametrize("fraction", [0.0005, 0.001, 0.9995])
def test_split_rejects_fraction_leaving_a_partition_without_both_classes(fraction):
    X, y = _balanced_frame(1309)
    with pytest.raises(ValueError, match="train_fraction"):
        ds.split_train_test(X, y, train_fraction=fraction)


def test_split_near_one_keeps_one_row_per_class_in_test():
    X, y = _balanced_frame(1309)
    X_train, X_test, _, y_test = ds.split_train_test(X, y, train_fraction=0.999, random_state=0)
    assert (len(X_train), len(X_test)) == (1307, 2)
    assert sorted(y_test.tolist()) == [0, 1]


def test_split_preserves_label_proportions(passengers):
    X, y = ds.build_feature_frame(passengers)
    _, _, y_train, y_test = ds.split_train_test(X, y, train_fraction=0.7, random_state=0)
    assert y_train.mean() == pytest.approx(y.mean(), abs=0.03)
    assert y_test.mean() == pytest.approx(y.mean(), abs=0.05)


@pytest.mark.parametrize("fraction", [0, 1, -0.2, 1.5])
def test_split_rejects_invalid_fraction(passengers, fraction):
    X, y = ds.build_feature_frame(passengers)
    with pytest.raises(ValueError):
        ds.split_train_test(X, y, train_fraction=fraction)


def test_split_rejects_empty_dataset():
    with pytest.raises(ValueError, match="empty"):
        ds.split_train_test(pd.DataFrame(columns=["sex"]), pd.Series([], dtype=int))


def test_build_preprocessor_output_shape(passengers):
    X, _ = ds.build_feature_frame(passengers)
    transformed = ep.build_preprocessor().fit_transform(X)
    # two sex dummies + four numeric columns, age gaps imputed
    assert transformed.shape == (len(X), 6)
    assert not np.isnan(transformed).any()


def test_build_rf_pipeline_fits_and_predicts(passenger_split):
    X_train, X_test, y_train, _ = passenger_split
    pipeline = ep.build_rf_pipeline(n_estimators=5, min_samples_leaf=3, criterion="entropy", random_state=0)
    pipeline.fit(X_train, y_train)

    forest = pipeline.named_steps["classifier"]
    assert forest.n_estimators == 5
    assert forest.min_samples_leaf == 3
    assert forest.criterion == "entropy"
    assert len(pipeline.predict(X_test)) == len(X_test)


def test_cross_validate_pipeline_produces_summary(passengers):
    X, y = ds.build_feature_frame(passengers)
    pipeline = ep.build_rf_pipeline(n_estimators=5, random_state=0)
    results, summary = ep.cross_validate_pipeline(pipeline, X, y, cv=3)
    assert "test_accuracy" in results
    assert list(summary.columns) == ["metric", "train_mean", "test_mean", "test_std"]
    assert summary["metric"].tolist() == list(ep.DEFAULT_SCORING)
    assert isinstance(pipeline, Pipeline)
