# tests/conftest.py
from __future__ import annotations

from typing import List, Tuple

import numpy as np
import pytest
import scipy.sparse as sp
from loguru import logger

from glmagg.data.labeled_point import LabeledPoint
from glmagg.function.loss import PointwiseLossFunction
from glmagg.normalization.context import NormalizationContext


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


class FullSquaredErrorLoss(PointwiseLossFunction):
    """l = (z - y)², no 1/2 factor."""

    name = "full_squared"

    def loss_and_dz_loss(self, margin: float, label: float) -> Tuple[float, float]:
        delta = margin - label
        return delta * delta, 2.0 * delta

    def dzz_loss(self, margin: float, label: float) -> float:
        return 2.0


@pytest.fixture
def squared_error_loss() -> PointwiseLossFunction:
    return FullSquaredErrorLoss()


# ---------------------------------------------------------
# random data (intercept = last column)
# ---------------------------------------------------------
DIM = 5
INTERCEPT = DIM - 1


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(20240611)


def _random_dense(rng, n: int, binary_labels: bool = True) -> List[LabeledPoint]:
    points = []
    for _ in range(n):
        x = rng.normal(size=DIM)
        x[rng.random(DIM) < 0.4] = 0.0
        x[INTERCEPT] = 1.0
        label = float(rng.integers(0, 2)) if binary_labels else float(rng.normal())
        points.append(
            LabeledPoint(
                label=label,
                features=x,
                offset=float(rng.normal(scale=0.1)),
                weight=float(rng.uniform(0.5, 2.0)),
            )
        )
    return points


@pytest.fixture
def dense_points(rng) -> List[LabeledPoint]:
    return _random_dense(rng, 40)


@pytest.fixture
def sparse_points(dense_points) -> List[LabeledPoint]:
    return [
        LabeledPoint(
            label=p.label,
            features=sp.csr_array(p.features.reshape(1, -1)),
            offset=p.offset,
            weight=p.weight,
        )
        for p in dense_points
    ]


@pytest.fixture
def coef(rng) -> np.ndarray:
    return rng.normal(scale=0.5, size=DIM)


@pytest.fixture
def multiply_vector(rng) -> np.ndarray:
    return rng.normal(size=DIM)


@pytest.fixture
def factors(rng) -> np.ndarray:
    f = rng.uniform(0.5, 2.0, size=DIM)
    f[INTERCEPT] = 1.0
    return f


@pytest.fixture
def shifts(rng) -> np.ndarray:
    s = rng.normal(size=DIM)
    s[INTERCEPT] = 0.0
    return s


@pytest.fixture(params=["none", "factors", "shifts", "both"])
def normalization(request, factors, shifts) -> NormalizationContext:
    if request.param == "none":
        return NormalizationContext.none()
    if request.param == "factors":
        return NormalizationContext(factors=factors, intercept_id=INTERCEPT)
    if request.param == "shifts":
        return NormalizationContext(shifts=shifts, intercept_id=INTERCEPT)
    return NormalizationContext(factors=factors, shifts=shifts, intercept_id=INTERCEPT)


# ---------------------------------------------------------
# naive reference: transform every x explicitly
# ---------------------------------------------------------
def reference_value_and_gradient(points, coef, loss, norm):
    value = 0.0
    gradient = np.zeros_like(coef)
    for p in points:
        x = norm.transform(p.to_dense())
        l, dl = loss.loss_and_dz_loss(float(coef @ x) + p.offset, p.label)
        value += p.weight * l
        gradient += p.weight * dl * x
    return value, gradient


def reference_hessian_vector(points, coef, v, loss, norm):
    hv = np.zeros_like(coef)
    for p in points:
        x = norm.transform(p.to_dense())
        d2 = loss.dzz_loss(float(coef @ x) + p.offset, p.label)
        hv += p.weight * d2 * float(x @ v) * x
    return hv


@pytest.fixture
def reference():
    return reference_value_and_gradient


@pytest.fixture
def hv_reference():
    return reference_hessian_vector
