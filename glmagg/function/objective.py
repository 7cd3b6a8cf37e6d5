# glmagg/function/objective.py
from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from glmagg.config.reduction_config import ReductionConfig
from glmagg.function.aggregator import Aggregator, AggregatorKind
from glmagg.function.loss import PointwiseLossFunction
from glmagg.normalization.context import NormalizationContext
from glmagg.observability.instrumentation import Instrumentation
from glmagg.reduction.driver import Broadcast, Shard, reduce_shards
from glmagg.utils.errors import ConfigurationError


class GLMObjective:
    """
    GLMObjective（FINAL）

    Objective of a generalized linear model over a sharded dataset:

        f(coef) = Σ_i w_i l(z_i, y_i) + λ/2 ‖coef‖²

    value / gradient / Hessian-vector product are evaluated in the
    normalized space, one reduction round per call.
    """

    def __init__(
            self,
            shards: Sequence[Shard],
            loss: PointwiseLossFunction,
            normalization: Optional[NormalizationContext] = None,
            *,
            l2_weight: float = 0.0,
            reduction: Optional[ReductionConfig] = None,
            inst: Optional[Instrumentation] = None,
    ):
        if l2_weight < 0:
            raise ConfigurationError(f"l2_weight must be >= 0, got {l2_weight}")

        self.shards = list(shards)
        self.loss = loss
        self.normalization = normalization
        self.l2_weight = l2_weight
        self.reduction = reduction if reduction is not None else ReductionConfig()
        self.inst = inst

    def _reduce(self, broadcast: Broadcast) -> Aggregator:
        cfg = self.reduction
        return reduce_shards(
            self.shards,
            broadcast,
            max_workers=cfg.max_workers,
            depth=cfg.tree_depth,
            retry_attempts=cfg.retry_attempts,
            retry_delay=cfg.retry_delay,
            inst=self.inst,
        )

    def value_and_gradient(self, coef: np.ndarray) -> Tuple[float, np.ndarray]:
        coef = np.asarray(coef, dtype=np.float64)
        agg = self._reduce(
            Broadcast(coef=coef, loss=self.loss, normalization=self.normalization)
        )

        value = agg.value
        gradient = agg.vector()
        if self.l2_weight > 0:
            value += 0.5 * self.l2_weight * float(np.dot(coef, coef))
            gradient += self.l2_weight * coef
        return value, gradient

    def hessian_vector(self, coef: np.ndarray, multiply_vector: np.ndarray) -> np.ndarray:
        coef = np.asarray(coef, dtype=np.float64)
        multiply_vector = np.asarray(multiply_vector, dtype=np.float64)
        agg = self._reduce(
            Broadcast(
                coef=coef,
                loss=self.loss,
                normalization=self.normalization,
                kind=AggregatorKind.HESSIAN_VECTOR,
                multiply_vector=multiply_vector,
            )
        )

        hv = agg.vector()
        if self.l2_weight > 0:
            hv += self.l2_weight * multiply_vector
        return hv
