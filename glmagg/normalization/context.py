# glmagg/normalization/context.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from glmagg.data.labeled_point import LabeledPoint
from glmagg.utils.errors import ConfigurationError, DimensionMismatchError


class NormalizationType(str, Enum):
    NONE = "none"
    SCALE_WITH_STANDARD_DEVIATION = "scale_with_standard_deviation"
    SCALE_WITH_MAX_MAGNITUDE = "scale_with_max_magnitude"
    STANDARDIZATION = "standardization"


def _frozen(vector) -> Optional[np.ndarray]:
    if vector is None:
        return None
    arr = np.array(vector, dtype=np.float64)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class FeatureSummary:
    """
    Per-feature statistics used to derive normalization parameters.
    """

    mean: np.ndarray
    std: np.ndarray
    max_magnitude: np.ndarray
    count: int

    @classmethod
    def from_points(cls, points: Sequence[LabeledPoint]) -> "FeatureSummary":
        if not points:
            raise ConfigurationError("Cannot summarize an empty dataset")

        dim = points[0].size
        total = np.zeros(dim)
        total_sq = np.zeros(dim)
        max_magnitude = np.zeros(dim)

        # 只累加存储的元素：sparse 行的隐式 0 不影响 sum / sum² / max|x|
        for p in points:
            if p.size != dim:
                raise DimensionMismatchError(
                    f"Size mismatch. Expected {dim} features, got {p.size}"
                )
            if p.is_sparse:
                idx, values = p.features.indices, p.features.data
            else:
                idx, values = slice(None), p.features
            total[idx] += values
            total_sq[idx] += values * values
            max_magnitude[idx] = np.maximum(max_magnitude[idx], np.abs(values))

        n = len(points)
        mean = total / n
        if n > 1:
            variance = np.maximum(total_sq - n * mean * mean, 0.0) / (n - 1)
            std = np.sqrt(variance)
        else:
            std = np.zeros(dim)

        return cls(mean=mean, std=std, max_magnitude=max_magnitude, count=n)


@dataclass(frozen=True, eq=False)
class NormalizationContext:
    """
    NormalizationContext（FROZEN）

    x'_j = (x_j - shifts_j) * factors_j

    - factors / shifts 均可缺省
    - intercept 不允许被变换（factor == 1, shift == 0）
    - 向量在构造后只读，可被任意多个 Aggregator 共享
    """

    factors: Optional[np.ndarray] = None
    shifts: Optional[np.ndarray] = None
    intercept_id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "factors", _frozen(self.factors))
        object.__setattr__(self, "shifts", _frozen(self.shifts))

    @classmethod
    def none(cls) -> "NormalizationContext":
        return cls()

    @property
    def is_identity(self) -> bool:
        return self.factors is None and self.shifts is None

    def validate(self, dim: int) -> None:
        """
        Fail fast on malformed parameters; nothing is processed before this passes.
        """
        for name, vector in (("factors", self.factors), ("shifts", self.shifts)):
            if vector is None:
                continue
            if vector.ndim != 1 or vector.shape[0] != dim:
                raise ConfigurationError(
                    f"Size mismatch. {name} vector size: {vector.shape} != {dim}"
                )

        if self.intercept_id is None:
            return

        if not 0 <= self.intercept_id < dim:
            raise ConfigurationError(
                f"Intercept index {self.intercept_id} out of range for dim={dim}"
            )
        if self.factors is not None and self.factors[self.intercept_id] != 1.0:
            raise ConfigurationError(
                "The intercept should not be transformed. "
                f"Intercept scaling factor: {self.factors[self.intercept_id]}"
            )
        if self.shifts is not None and self.shifts[self.intercept_id] != 0.0:
            raise ConfigurationError(
                "The intercept should not be transformed. "
                f"Intercept shift: {self.shifts[self.intercept_id]}"
            )

    def transform(self, features: np.ndarray) -> np.ndarray:
        """Explicit (x - shifts) * factors on a dense vector."""
        out = np.asarray(features, dtype=np.float64)
        if self.shifts is not None:
            out = out - self.shifts
        if self.factors is not None:
            out = out * self.factors
        return out

    @classmethod
    def build(
            cls,
            kind: NormalizationType,
            summary: Optional[FeatureSummary],
            intercept_id: Optional[int] = None,
    ) -> "NormalizationContext":
        kind = NormalizationType(kind)
        if kind == NormalizationType.NONE:
            return cls(intercept_id=intercept_id)

        if summary is None:
            raise ConfigurationError(f"{kind.value} requires a feature summary")

        if kind == NormalizationType.SCALE_WITH_MAX_MAGNITUDE:
            factors = _inverse_or_one(summary.max_magnitude)
            shifts = None
        elif kind == NormalizationType.SCALE_WITH_STANDARD_DEVIATION:
            factors = _inverse_or_one(summary.std)
            shifts = None
        else:
            # 平移后截距列会变成全 0，必须显式保留截距
            if intercept_id is None:
                raise ConfigurationError(
                    "STANDARDIZATION requires an intercept to absorb the shifts"
                )
            factors = _inverse_or_one(summary.std)
            shifts = summary.mean.astype(np.float64)

        if intercept_id is not None:
            if not 0 <= intercept_id < factors.shape[0]:
                raise ConfigurationError(
                    f"Intercept index {intercept_id} out of range for dim={factors.shape[0]}"
                )
            factors[intercept_id] = 1.0
            if shifts is not None:
                shifts[intercept_id] = 0.0

        return cls(factors=factors, shifts=shifts, intercept_id=intercept_id)


def _inverse_or_one(values: np.ndarray) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64)
    out = np.ones_like(values)
    nonzero = values != 0.0
    out[nonzero] = 1.0 / values[nonzero]
    return out
