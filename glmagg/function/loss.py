# glmagg/function/loss.py
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Callable, Dict, Tuple

from glmagg.utils.errors import ConfigurationError


class PointwiseLossFunction(ABC):
    """
    Pure per-point loss l(z, y) of a generalized linear model, z = margin.

    Contract:
    - no side effects, called once per point
    - loss_and_dz_loss → (l, dl/dz)
    - dzz_loss → d²l/dz²（Hessian-vector 聚合使用）
    """

    name: str = ""

    @abstractmethod
    def loss_and_dz_loss(self, margin: float, label: float) -> Tuple[float, float]:
        raise NotImplementedError

    @abstractmethod
    def dzz_loss(self, margin: float, label: float) -> float:
        raise NotImplementedError


def _log1p_exp(x: float) -> float:
    # log(1 + e^x) without overflow
    if x > 0:
        return x + math.log1p(math.exp(-x))
    return math.log1p(math.exp(x))


def _exp(x: float) -> float:
    # e^x, +inf past the float range instead of OverflowError
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    e = math.exp(x)
    return e / (1.0 + e)


class LogisticLossFunction(PointwiseLossFunction):
    """
    l(z, y) = log(1 + e^z) - y z,  y ∈ {0, 1}
    """

    name = "logistic"

    def loss_and_dz_loss(self, margin: float, label: float) -> Tuple[float, float]:
        if label > 0:
            return _log1p_exp(-margin), -_sigmoid(-margin)
        return _log1p_exp(margin), _sigmoid(margin)

    def dzz_loss(self, margin: float, label: float) -> float:
        s = _sigmoid(margin)
        return s * (1.0 - s)


class PoissonLossFunction(PointwiseLossFunction):
    """
    l(z, y) = e^z - y z
    """

    name = "poisson"

    def loss_and_dz_loss(self, margin: float, label: float) -> Tuple[float, float]:
        prediction = _exp(margin)
        return prediction - label * margin, prediction - label

    def dzz_loss(self, margin: float, label: float) -> float:
        return _exp(margin)


class SquaredLossFunction(PointwiseLossFunction):
    """
    l(z, y) = (z - y)² / 2
    """

    name = "squared"

    def loss_and_dz_loss(self, margin: float, label: float) -> Tuple[float, float]:
        delta = margin - label
        return 0.5 * delta * delta, delta

    def dzz_loss(self, margin: float, label: float) -> float:
        return 1.0


class SmoothedHingeLossFunction(PointwiseLossFunction):
    """
    Rennie's smoothed hinge, labels {0, 1} mapped to {-1, +1}, t = y' z:

        t <= 0      : 0.5 - t
        0 < t < 1   : (1 - t)² / 2
        t >= 1      : 0

    The loss is only once differentiable; dzz_loss returns the second
    derivative of the quadratic piece and 0 elsewhere.
    """

    name = "smoothed_hinge"

    @staticmethod
    def _signed(label: float) -> float:
        return 1.0 if label > 0.5 else -1.0

    def loss_and_dz_loss(self, margin: float, label: float) -> Tuple[float, float]:
        y = self._signed(label)
        t = y * margin

        if t <= 0.0:
            return 0.5 - t, -y
        if t < 1.0:
            return 0.5 * (1.0 - t) ** 2, (t - 1.0) * y
        return 0.0, 0.0

    def dzz_loss(self, margin: float, label: float) -> float:
        t = self._signed(label) * margin
        return 1.0 if 0.0 < t < 1.0 else 0.0


_LOSS_REGISTRY: Dict[str, Callable[[], PointwiseLossFunction]] = {
    LogisticLossFunction.name: LogisticLossFunction,
    PoissonLossFunction.name: PoissonLossFunction,
    SquaredLossFunction.name: SquaredLossFunction,
    SmoothedHingeLossFunction.name: SmoothedHingeLossFunction,
}


def resolve_loss_function(name: str) -> PointwiseLossFunction:
    key = name.strip().lower()
    if key not in _LOSS_REGISTRY:
        available = ", ".join(sorted(_LOSS_REGISTRY))
        raise ConfigurationError(
            f"No loss function named {name!r}. Available: {available}"
        )
    return _LOSS_REGISTRY[key]()
