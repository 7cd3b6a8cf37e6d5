# glmagg/data/labeled_point.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import scipy.sparse as sp

from glmagg.utils.errors import DimensionMismatchError


@dataclass(frozen=True, eq=False)
class LabeledPoint:
    """
    LabeledPoint（FROZEN）

    - features: 1-D dense ndarray，或 scipy sparse 单行（1 × d）
    - margin = coef · features + offset
    - sparse 行只触达存储的非零元素
    """

    label: float
    features: Any
    offset: float = 0.0
    weight: float = 1.0

    def __post_init__(self):
        features = self.features
        if sp.issparse(features):
            if features.ndim == 1:
                features = features.reshape(1, -1)
            row = sp.csr_array(features, dtype=np.float64, copy=True)
            if row.shape[0] != 1:
                raise DimensionMismatchError(
                    f"Sparse features must be a single row, got shape={row.shape}"
                )
            row.sum_duplicates()
            object.__setattr__(self, "features", row)
        else:
            dense = np.asarray(features, dtype=np.float64)
            if dense.ndim != 1:
                raise DimensionMismatchError(
                    f"Dense features must be 1-D, got shape={dense.shape}"
                )
            object.__setattr__(self, "features", dense)

    @property
    def is_sparse(self) -> bool:
        return sp.issparse(self.features)

    @property
    def size(self) -> int:
        if self.is_sparse:
            return self.features.shape[1]
        return self.features.shape[0]

    def dot(self, vector: np.ndarray) -> float:
        if self.is_sparse:
            return float(np.dot(vector[self.features.indices], self.features.data))
        return float(np.dot(vector, self.features))

    def compute_margin(self, coef: np.ndarray) -> float:
        return self.dot(coef) + self.offset

    def axpy_into(self, alpha: float, target: np.ndarray) -> None:
        """target += alpha * features (in place)."""
        if self.is_sparse:
            target[self.features.indices] += alpha * self.features.data
        else:
            target += alpha * self.features

    def to_dense(self) -> np.ndarray:
        if self.is_sparse:
            return self.features.toarray().ravel()
        return self.features.copy()
