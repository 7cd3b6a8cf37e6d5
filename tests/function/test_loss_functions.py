# tests/function/test_loss_functions.py
import math

import pytest

from glmagg.function.loss import (
    LogisticLossFunction,
    PoissonLossFunction,
    SmoothedHingeLossFunction,
    SquaredLossFunction,
    resolve_loss_function,
)
from glmagg.utils.errors import ConfigurationError

H = 1e-6


def _numeric_derivative(f, x):
    return (f(x + H) - f(x - H)) / (2 * H)


TWICE_DIFFERENTIABLE = [
    (LogisticLossFunction(), [0.0, 1.0]),
    (PoissonLossFunction(), [0.0, 3.0]),
    (SquaredLossFunction(), [-1.5, 2.0]),
]


@pytest.mark.parametrize("loss,labels", TWICE_DIFFERENTIABLE)
@pytest.mark.parametrize("margin", [-2.5, -0.3, 0.4, 1.7])
def test_first_and_second_derivative(loss, labels, margin):
    for y in labels:
        _, d = loss.loss_and_dz_loss(margin, y)
        d2 = loss.dzz_loss(margin, y)

        assert d == pytest.approx(
            _numeric_derivative(lambda z: loss.loss_and_dz_loss(z, y)[0], margin), rel=1e-5, abs=1e-7
        )
        assert d2 == pytest.approx(
            _numeric_derivative(lambda z: loss.loss_and_dz_loss(z, y)[1], margin), rel=1e-5, abs=1e-7
        )


def test_logistic_known_values():
    loss = LogisticLossFunction()

    value, d = loss.loss_and_dz_loss(0.0, 1.0)
    assert value == pytest.approx(math.log(2.0))
    assert d == pytest.approx(-0.5)
    assert loss.dzz_loss(0.0, 1.0) == pytest.approx(0.25)


def test_logistic_is_stable_for_large_margins():
    loss = LogisticLossFunction()

    value, d = loss.loss_and_dz_loss(800.0, 0.0)
    assert value == pytest.approx(800.0)
    assert d == pytest.approx(1.0)

    value, d = loss.loss_and_dz_loss(-800.0, 1.0)
    assert value == pytest.approx(800.0)
    assert d == pytest.approx(-1.0)

    assert loss.dzz_loss(800.0, 0.0) == pytest.approx(0.0)


def test_poisson_large_margin_overflows_to_inf():
    loss = PoissonLossFunction()

    value, d = loss.loss_and_dz_loss(800.0, 1.0)

    assert value == math.inf
    assert d == math.inf
    assert loss.dzz_loss(800.0, 1.0) == math.inf


def test_poisson_known_values():
    value, d = PoissonLossFunction().loss_and_dz_loss(0.0, 2.0)
    assert value == pytest.approx(1.0)
    assert d == pytest.approx(-1.0)


def test_squared_known_values():
    value, d = SquaredLossFunction().loss_and_dz_loss(3.0, 1.0)
    assert value == pytest.approx(2.0)
    assert d == pytest.approx(2.0)


@pytest.mark.parametrize(
    "margin,label,value,d",
    [
        (-1.0, 1.0, 1.5, -1.0),   # t = -1, linear region
        (0.5, 1.0, 0.125, -0.5),  # t = 0.5, quadratic region
        (2.0, 1.0, 0.0, 0.0),     # t = 2, flat
        (0.5, 0.0, 1.0, 1.0),     # y' = -1, t = -0.5
    ],
)
def test_smoothed_hinge_pieces(margin, label, value, d):
    loss = SmoothedHingeLossFunction()

    got_value, got_d = loss.loss_and_dz_loss(margin, label)

    assert got_value == pytest.approx(value)
    assert got_d == pytest.approx(d)


def test_smoothed_hinge_second_derivative():
    loss = SmoothedHingeLossFunction()

    assert loss.dzz_loss(0.5, 1.0) == 1.0
    assert loss.dzz_loss(-0.5, 1.0) == 0.0
    assert loss.dzz_loss(-0.5, 0.0) == 1.0


def test_resolve_loss_function():
    assert isinstance(resolve_loss_function("logistic"), LogisticLossFunction)
    assert isinstance(resolve_loss_function(" Poisson "), PoissonLossFunction)
    assert isinstance(resolve_loss_function("smoothed_hinge"), SmoothedHingeLossFunction)

    with pytest.raises(ConfigurationError, match="Available"):
        resolve_loss_function("hinge")
