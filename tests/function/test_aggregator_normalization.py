# tests/function/test_aggregator_normalization.py
import numpy as np
import pytest

from glmagg.function.aggregator import Aggregator
from glmagg.function.loss import LogisticLossFunction, PoissonLossFunction
from glmagg.normalization.context import NormalizationContext


@pytest.mark.parametrize("loss", [LogisticLossFunction(), PoissonLossFunction()])
def test_gradient_matches_explicit_transform(dense_points, coef, normalization, loss, reference):
    agg = Aggregator.for_gradient(coef, loss, normalization).add_all(dense_points)

    value, gradient = reference(dense_points, coef, loss, normalization)

    assert agg.count == len(dense_points)
    assert agg.value == pytest.approx(value, rel=1e-10)
    np.testing.assert_allclose(agg.vector(), gradient, rtol=1e-9, atol=1e-10)


def test_sparse_and_dense_agree(dense_points, sparse_points, coef, normalization):
    loss = LogisticLossFunction()

    dense = Aggregator.for_gradient(coef, loss, normalization).add_all(dense_points)
    sparse = Aggregator.for_gradient(coef, loss, normalization).add_all(sparse_points)

    assert sparse.value == pytest.approx(dense.value, rel=1e-12)
    np.testing.assert_allclose(sparse.vector(), dense.vector(), rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize("loss", [LogisticLossFunction(), PoissonLossFunction()])
def test_hessian_vector_matches_explicit_transform(
        sparse_points, coef, multiply_vector, normalization, loss, hv_reference
):
    agg = Aggregator.for_hessian_vector(coef, multiply_vector, loss, normalization)
    agg.add_all(sparse_points)

    expected = hv_reference(sparse_points, coef, multiply_vector, loss, normalization)

    np.testing.assert_allclose(agg.vector(), expected, rtol=1e-9, atol=1e-10)


def test_effective_coefficients_and_margin_shift(coef, factors, shifts):
    norm = NormalizationContext(factors=factors, shifts=shifts, intercept_id=4)
    agg = Aggregator.for_gradient(coef, LogisticLossFunction(), norm)

    np.testing.assert_allclose(agg.effective_coef, coef * factors)
    assert agg.margin_shift == pytest.approx(-float((coef * factors) @ shifts))
