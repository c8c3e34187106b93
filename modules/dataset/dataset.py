import pandas as pd
import numpy as np
from typing import Iterable, List, Optional

from utils.exceptions import DataValidationError
from utils import constants


class Dataset:
    """
    Tabular training data: ordered feature columns, a target column and an
    optional reserved constant column.

    The constant column (``constants.CONSTANT_COLUMN``) is never counted as a
    feature and can never be dropped.
    """

    def __init__(self, data: pd.DataFrame, target_column: Optional[str] = None):
        if data is None:
            raise DataValidationError("Dataset requires a DataFrame, got None.")
        if target_column is not None and target_column not in data.columns:
            raise DataValidationError(f"Target column '{target_column}' not found in data.")
        if data.columns.duplicated().any():
            dupes = sorted(set(data.columns[data.columns.duplicated()]), key=str)
            raise DataValidationError(f"Duplicate column names: {dupes}")

        self._data: Optional[pd.DataFrame] = data
        self.target_column = target_column

    @classmethod
    def from_dataframe(cls,
                       df: pd.DataFrame,
                       target_column: str,
                       feature_columns: Optional[List[str]] = None,
                       drop_columns: Optional[List[str]] = None,
                       add_constant: bool = False) -> "Dataset":
        """
        Build a Dataset from a raw DataFrame.

        Args:
            df: Source DataFrame (not modified).
            target_column: Name of the response column.
            feature_columns: Explicit feature list; defaults to every numeric
                column except the target and ``drop_columns``.
            drop_columns: Columns to exclude when inferring features.
            add_constant: Prepend an intercept column of ones.
        """
        if target_column not in df.columns:
            raise DataValidationError(f"Target column '{target_column}' not found in data.")

        drop_columns = set(drop_columns or [])
        if feature_columns is None:
            numeric = df.select_dtypes(include=[np.number]).columns
            feature_columns = [c for c in numeric if c != target_column and c not in drop_columns]
        else:
            missing = [c for c in feature_columns if c not in df.columns]
            if missing:
                raise DataValidationError(f"Feature columns not found in data: {missing}")

        frame = df[list(feature_columns) + [target_column]].copy()
        if add_constant and constants.CONSTANT_COLUMN not in frame.columns:
            frame.insert(0, constants.CONSTANT_COLUMN, 1.0)

        return cls(frame, target_column)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def data(self) -> pd.DataFrame:
        self._check_alive()
        return self._data

    @property
    def is_disposed(self) -> bool:
        return self._data is None

    @property
    def feature_columns(self) -> List[str]:
        """Feature columns in column order, excluding target and constant."""
        self._check_alive()
        excluded = {self.target_column, constants.CONSTANT_COLUMN}
        return [c for c in self._data.columns if c not in excluded]

    @property
    def has_constant(self) -> bool:
        self._check_alive()
        return constants.CONSTANT_COLUMN in self._data.columns

    def feature_column_count(self) -> int:
        return len(self.feature_columns)

    def features(self) -> pd.DataFrame:
        """Design matrix: feature columns plus the constant column if present."""
        self._check_alive()
        return self._data.drop(columns=[self.target_column]) if self.target_column else self._data

    def target(self) -> pd.Series:
        self._check_alive()
        if self.target_column is None:
            raise DataValidationError("Dataset has no target column.")
        return self._data[self.target_column]

    def __len__(self) -> int:
        self._check_alive()
        return len(self._data)

    # ------------------------------------------------------------------
    # Mutation & lifecycle
    # ------------------------------------------------------------------

    def copy(self) -> "Dataset":
        """Deep copy; the copy shares no state with this dataset."""
        self._check_alive()
        return Dataset(self._data.copy(deep=True), self.target_column)

    def drop_columns(self, names: Iterable[str]) -> None:
        """
        Remove the named feature columns in place.

        Raises:
            DataValidationError: If a name is the constant column, the target,
                or not present.
        """
        self._check_alive()
        names = set(names)
        protected = names & {constants.CONSTANT_COLUMN, self.target_column}
        if protected:
            raise DataValidationError(f"Cannot drop reserved columns: {sorted(protected, key=str)}")
        missing = names - set(self._data.columns)
        if missing:
            raise DataValidationError(f"Cannot drop unknown columns: {sorted(missing, key=str)}")

        self._data = self._data.drop(columns=[c for c in self._data.columns if c in names])

    def dispose(self) -> None:
        """Release the backing frame. Safe to call more than once."""
        self._data = None

    def _check_alive(self):
        if self._data is None:
            raise DataValidationError("Dataset has been disposed.")

    def __repr__(self) -> str:
        if self._data is None:
            return "Dataset(<disposed>)"
        return (f"Dataset(rows={len(self._data)}, features={self.feature_column_count()}, "
                f"target={self.target_column!r}, constant={self.has_constant})")
