# glmagg/function/aggregator.py
from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

import numpy as np

from glmagg.data.labeled_point import LabeledPoint
from glmagg.function.loss import PointwiseLossFunction
from glmagg.normalization.context import NormalizationContext
from glmagg.utils.errors import (
    ConfigurationError,
    DimensionMismatchError,
    VariantMismatchError,
)
from glmagg.utils.logger import logs


class AggregatorKind(str, Enum):
    GRADIENT = "gradient"
    HESSIAN_VECTOR = "hessian_vector"


class Aggregator:
    """
    Aggregator（FINAL）

    Streaming fold of (objective value, gradient) or a Hessian-vector product
    of a GLM loss over one shard, with normalization folded in algebraically.

    Normalized feature: x'_j = (x_j - shift_j) * factor_j

    Margin:
        Σ_j coef_j (x_j - shift_j) factor_j
      = effective_coef · x - effective_coef · shift
      = effective_coef · x + margin_shift

    Gradient (GRADIENT):
        g_j = Σ_i l'_i (x_ij - shift_j) factor_j
            = factor_j [Σ_i l'_i x_ij - shift_j Σ_i l'_i]
            = factor_j [vector_sum_j - shift_j * vector_shift_prefactor_sum]

    Hessian-vector product (HESSIAN_VECTOR), with u_i = x'_i · v:
        hv_j = Σ_i l''_i u_i (x_ij - shift_j) factor_j
             = factor_j [vector_sum_j - shift_j * vector_shift_prefactor_sum]
      where u_i = effective_v · x_i + vector_shift, both precomputed.

    So x' is never formed; sparse x stays sparse.

    Ownership:
    - coef / loss / normalization 只读共享
    - 累加状态由单个 shard 独占，不加锁，不允许并发 add
    """

    def __init__(
            self,
            coef: np.ndarray,
            loss: PointwiseLossFunction,
            normalization: Optional[NormalizationContext] = None,
            *,
            kind: AggregatorKind = AggregatorKind.GRADIENT,
            multiply_vector: Optional[np.ndarray] = None,
    ):
        self.coef = np.asarray(coef, dtype=np.float64)
        if self.coef.ndim != 1:
            raise ConfigurationError(f"Coefficients must be 1-D, got shape={self.coef.shape}")

        self.loss = loss
        self.normalization = normalization if normalization is not None else NormalizationContext.none()
        self.kind = AggregatorKind(kind)
        self.dim = self.coef.shape[0]

        # fail fast: before any point is seen
        self.normalization.validate(self.dim)

        self.factors = self.normalization.factors
        self.shifts = self.normalization.shifts

        self.effective_coef = self._effective(self.coef)
        self.margin_shift = self._shift_of(self.effective_coef)

        if self.kind == AggregatorKind.HESSIAN_VECTOR:
            if multiply_vector is None:
                raise ConfigurationError("HESSIAN_VECTOR aggregator needs a multiply vector")
            multiply_vector = np.asarray(multiply_vector, dtype=np.float64)
            if multiply_vector.shape != (self.dim,):
                raise ConfigurationError(
                    f"Size mismatch. multiply vector shape: {multiply_vector.shape} != ({self.dim},)"
                )
            self.effective_multiply_vector = self._effective(multiply_vector)
            self.vector_shift = self._shift_of(self.effective_multiply_vector)
        elif multiply_vector is not None:
            raise ConfigurationError("GRADIENT aggregator does not take a multiply vector")

        self.total_count = 0
        self.value_sum = 0.0
        self.vector_sum = np.zeros(self.dim, dtype=np.float64)
        self.vector_shift_prefactor_sum = 0.0

    # --------------------------------------------------
    # factories
    # --------------------------------------------------
    @classmethod
    def for_gradient(
            cls,
            coef: np.ndarray,
            loss: PointwiseLossFunction,
            normalization: Optional[NormalizationContext] = None,
    ) -> "Aggregator":
        return cls(coef, loss, normalization, kind=AggregatorKind.GRADIENT)

    @classmethod
    def for_hessian_vector(
            cls,
            coef: np.ndarray,
            multiply_vector: np.ndarray,
            loss: PointwiseLossFunction,
            normalization: Optional[NormalizationContext] = None,
    ) -> "Aggregator":
        return cls(
            coef,
            loss,
            normalization,
            kind=AggregatorKind.HESSIAN_VECTOR,
            multiply_vector=multiply_vector,
        )

    # --------------------------------------------------
    # precomputation
    # --------------------------------------------------
    def _effective(self, vector: np.ndarray) -> np.ndarray:
        effective = vector * self.factors if self.factors is not None else vector.copy()
        effective.setflags(write=False)
        return effective

    def _shift_of(self, effective: np.ndarray) -> float:
        if self.shifts is None:
            return 0.0
        return -float(np.dot(effective, self.shifts))

    # --------------------------------------------------
    # fold
    # --------------------------------------------------
    def add(self, point: LabeledPoint) -> "Aggregator":
        if point.size != self.dim:
            raise DimensionMismatchError(
                f"Size mismatch. Coefficient size: {self.dim}, features size: {point.size}"
            )

        margin = point.compute_margin(self.effective_coef) + self.margin_shift

        if self.kind == AggregatorKind.GRADIENT:
            value, dz_loss = self.loss.loss_and_dz_loss(margin, point.label)
            self.value_sum += point.weight * value
            effective_weight = point.weight * dz_loss
        else:
            dzz_loss = self.loss.dzz_loss(margin, point.label)
            projection = point.dot(self.effective_multiply_vector) + self.vector_shift
            effective_weight = point.weight * dzz_loss * projection

        if self.shifts is not None:
            self.vector_shift_prefactor_sum += effective_weight
        point.axpy_into(effective_weight, self.vector_sum)
        self.total_count += 1
        return self

    def add_all(self, points: Iterable[LabeledPoint]) -> "Aggregator":
        for point in points:
            self.add(point)
        return self

    def merge(self, that: "Aggregator") -> "Aggregator":
        if self.dim != that.dim:
            msg = f"Dimension mismatch. this.dim={self.dim}, that.dim={that.dim}"
            logs.error(f"[Aggregator] {msg}")
            raise DimensionMismatchError(msg)
        if self.kind != that.kind:
            msg = f"Variant mismatch. this.kind={self.kind.value}, that.kind={that.kind.value}"
            logs.error(f"[Aggregator] {msg}")
            raise VariantMismatchError(msg)

        if that.total_count != 0:
            self.total_count += that.total_count
            self.value_sum += that.value_sum
            self.vector_shift_prefactor_sum += that.vector_shift_prefactor_sum
            self.vector_sum += that.vector_sum
        return self

    # --------------------------------------------------
    # results
    # --------------------------------------------------
    @property
    def count(self) -> int:
        return self.total_count

    @property
    def value(self) -> float:
        """Objective value; not maintained by the HESSIAN_VECTOR kind."""
        return self.value_sum

    def vector(self) -> np.ndarray:
        """
        Gradient (GRADIENT) or Hessian-vector product (HESSIAN_VECTOR)
        in the normalized space.
        """
        result = self.vector_sum.copy()
        if self.shifts is not None:
            result -= self.shifts * self.vector_shift_prefactor_sum
        if self.factors is not None:
            result *= self.factors
        return result

    def __repr__(self) -> str:
        return (
            f"Aggregator(kind={self.kind.value}, dim={self.dim}, "
            f"count={self.total_count}, value={self.value_sum:.6g})"
        )
