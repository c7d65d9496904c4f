"""
Matrix toolkit and ridge regression
"""

import numpy as np
import pytest
from sklearn.linear_model import Ridge

from gaze_system.geometry.linalg import (
    DimensionMismatch,
    add,
    dot,
    identity,
    invert,
    multiply,
    multiply_vector,
    ridge_regression,
    scalar_multiply,
    transpose,
)


def test_invert_well_conditioned():
    m = np.array([[4.0, 7.0, 2.0], [3.0, 6.0, 1.0], [2.0, 5.0, 3.0]])
    inv = invert(m)
    assert inv is not None
    np.testing.assert_allclose(multiply(m, inv), identity(3), atol=1e-9)


def test_invert_needs_pivoting():
    # Zero on the leading diagonal
    m = np.array([[0.0, 1.0], [1.0, 0.0]])
    np.testing.assert_allclose(invert(m), m)


def test_invert_singular_returns_none():
    assert invert(np.zeros((3, 3))) is None
    assert invert([[1.0, 2.0], [2.0, 4.0]]) is None


def test_invert_empty_or_non_square_returns_none():
    assert invert(np.zeros((0, 0))) is None
    assert invert(np.ones((2, 3))) is None


def test_shape_checks_raise():
    with pytest.raises(DimensionMismatch):
        multiply(np.ones((2, 3)), np.ones((2, 3)))
    with pytest.raises(DimensionMismatch):
        add(np.ones((2, 2)), np.ones((3, 3)))
    with pytest.raises(DimensionMismatch):
        multiply_vector(np.ones((2, 3)), [1.0, 2.0])
    with pytest.raises(DimensionMismatch):
        dot([1.0, 2.0], [1.0, 2.0, 3.0])


def test_basic_operations():
    a = np.array([[1.0, 2.0], [3.0, 4.0]])
    np.testing.assert_array_equal(transpose(a), [[1.0, 3.0], [2.0, 4.0]])
    np.testing.assert_array_equal(scalar_multiply(a, 2), [[2.0, 4.0], [6.0, 8.0]])
    np.testing.assert_array_equal(multiply_vector(a, [1.0, 1.0]), [3.0, 7.0])
    assert dot([1.0, 2.0, 3.0], [4.0, 5.0, 6.0]) == 32.0


def test_ridge_zero_lambda_recovers_exact_fit():
    rng = np.random.default_rng(0)
    x = np.column_stack([np.ones(9), rng.normal(size=9), rng.normal(size=9)])
    true = np.array([0.5, 0.02, -0.03])
    y = x @ true

    coeffs = ridge_regression(x, y, 0.0)
    np.testing.assert_allclose(coeffs, true, atol=1e-9)


def test_ridge_matches_sklearn():
    rng = np.random.default_rng(42)
    x = np.column_stack([np.ones(12), rng.normal(scale=5, size=12), rng.normal(scale=5, size=12)])
    y = rng.uniform(size=12)

    ours = ridge_regression(x, y, 0.01)
    reference = Ridge(alpha=0.01, fit_intercept=False).fit(x, y).coef_
    np.testing.assert_allclose(ours, reference, rtol=1e-6, atol=1e-9)


def test_ridge_dimension_mismatch_returns_none():
    assert ridge_regression(np.ones((4, 3)), np.ones(5), 0.01) is None


def test_ridge_singular_returns_none():
    # All-zero features with no penalty
    assert ridge_regression(np.zeros((5, 3)), np.ones(5), 0.0) is None
