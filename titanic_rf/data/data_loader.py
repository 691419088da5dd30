import os
import pandas as pd
from sklearn.datasets import fetch_openml

REQUIRED_COLUMNS = ["pclass", "survived", "sex", "age", "sibsp", "parch"]


def _to_numeric(series: pd.Series) -> pd.Series:
    # OpenML ships some columns as categoricals of strings
    if not pd.api.types.is_numeric_dtype(series):
        series = series.astype(str)
    return pd.to_numeric(series, errors="coerce")


def fetch_titanic_openml() -> pd.DataFrame:
    """Download the 1309-row titanic3 table from OpenML (needs network)."""
    bunch = fetch_openml(name="titanic", version=1, as_frame=True)
    df = bunch.frame
    print(f"[INFO] Fetched titanic from OpenML — Rows: {df.shape[0]}, Columns: {df.shape[1]}")
    return df


class DataLoader:
    """
    Handles loading, validation, and cleaning of the Titanic passenger dataset.
    """

    def __init__(self, input_path: str = None, output_path: str = None, source: str = "csv"):
        """
        Initialize DataLoader with input and optional output paths.

        ``source`` is either ``"csv"`` (read ``input_path``) or ``"openml"``.
        """
        if source not in ("csv", "openml"):
            raise ValueError(f"Unsupported data source '{source}'. Use 'csv' or 'openml'.")
        if source == "csv" and not input_path:
            raise ValueError("input_path is required when source='csv'.")

        self.source = source
        self.input_path = input_path
        base_dir = os.path.dirname(input_path) if input_path else os.path.join("data", "raw")
        self.output_path = output_path or os.path.join(
            base_dir, "..", "processed", "titanic_processed.csv"
        )

    def load_data(self) -> pd.DataFrame:
        """
        Load the dataset and check the required columns are present.
        Column names are normalised to lower case first, so both the
        titanic3 spelling (``pclass``) and the Kaggle one (``Pclass``) work.
        """
        if self.source == "openml":
            df = fetch_titanic_openml()
        else:
            if not os.path.exists(self.input_path):
                raise FileNotFoundError(f"File not found: {self.input_path}")
            df = pd.read_csv(self.input_path)
            print(f"[INFO] Loaded dataset — Rows: {df.shape[0]}, Columns: {df.shape[1]}")

        df = df.rename(columns=lambda c: str(c).strip().lower())

        missing_cols = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing_cols:
            raise ValueError(f"Missing expected columns: {missing_cols}")

        print("[INFO] Column validation passed.")
        return df

    def preprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Clean the dataset:
        - Keep the feature and label columns only
        - Drop rows without a label
        - Coerce numeric columns and normalise ``sex``
        """
        print("[INFO] Starting preprocessing...")
        df = df[REQUIRED_COLUMNS].copy()

        df["survived"] = _to_numeric(df["survived"])
        initial_rows = df.shape[0]
        df = df.dropna(subset=["survived"])
        print(f"[INFO] Dropped {initial_rows - df.shape[0]} rows without label.")
        df["survived"] = df["survived"].astype(int)

        for col in ["pclass", "age", "sibsp", "parch"]:
            df[col] = _to_numeric(df[col])

        # age is imputed inside the model pipeline, the rest must be complete
        initial_rows = df.shape[0]
        df = df.dropna(subset=["pclass", "sibsp", "parch", "sex"])
        if initial_rows != df.shape[0]:
            print(f"[WARN] Dropped {initial_rows - df.shape[0]} rows with missing features.")

        df["pclass"] = df["pclass"].astype(int)
        df["sibsp"] = df["sibsp"].astype(int)
        df["parch"] = df["parch"].astype(int)
        df["sex"] = df["sex"].astype(str).str.strip().str.lower()

        df = df.reset_index(drop=True)
        print("[INFO] Preprocessing complete.")
        print(f"[INFO] Final dataset shape: {df.shape}")
        return df

    def save_processed(self, df: pd.DataFrame):
        """
        Save processed dataset to disk.
        """
        os.makedirs(os.path.dirname(self.output_path), exist_ok=True)
        df.to_csv(self.output_path, index=False)
        print(f"[INFO] Processed dataset saved to: {self.output_path}")

    def run(self) -> pd.DataFrame:
        """
        Execute the full load → preprocess → save pipeline.
        """
        df = self.load_data()
        df = self.preprocess(df)
        self.save_processed(df)
        return df
