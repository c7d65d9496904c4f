"""
Linear Algebra
Small matrix toolkit with explicit shape checks and a ridge regression solver

Matrices are 2D float64 numpy arrays, vectors are 1D. Inversion is a
Gauss-Jordan elimination with partial pivoting so the singularity tolerance
is under our control rather than LAPACK's.
"""

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

SINGULAR_TOLERANCE = 1e-10


class DimensionMismatch(ValueError):
    """Operand shapes are incompatible for the requested operation"""


def _as_matrix(a) -> np.ndarray:
    m = np.asarray(a, dtype=float)
    if m.ndim != 2:
        raise DimensionMismatch(f"Expected a 2D matrix, got {m.ndim}D")
    return m


def _as_vector(v) -> np.ndarray:
    vec = np.asarray(v, dtype=float)
    if vec.ndim != 1:
        raise DimensionMismatch(f"Expected a 1D vector, got {vec.ndim}D")
    return vec


def transpose(a) -> np.ndarray:
    return _as_matrix(a).T.copy()


def multiply(a, b) -> np.ndarray:
    """
    Matrix product A @ B

    Raises:
        DimensionMismatch: if A's column count differs from B's row count
    """
    a, b = _as_matrix(a), _as_matrix(b)
    if a.shape[1] != b.shape[0]:
        raise DimensionMismatch(
            f"Cannot multiply {a.shape[0]}x{a.shape[1]} by {b.shape[0]}x{b.shape[1]}"
        )
    return a @ b


def multiply_vector(a, v) -> np.ndarray:
    a, v = _as_matrix(a), _as_vector(v)
    if a.shape[1] != v.shape[0]:
        raise DimensionMismatch(
            f"Cannot multiply {a.shape[0]}x{a.shape[1]} matrix by vector of length {v.shape[0]}"
        )
    return a @ v


def add(a, b) -> np.ndarray:
    a, b = _as_matrix(a), _as_matrix(b)
    if a.shape != b.shape:
        raise DimensionMismatch(f"Cannot add {a.shape} and {b.shape}")
    return a + b


def scalar_multiply(a, scalar: float) -> np.ndarray:
    return _as_matrix(a) * float(scalar)


def identity(n: int) -> np.ndarray:
    return np.eye(n, dtype=float)


def dot(a, b) -> float:
    a, b = _as_vector(a), _as_vector(b)
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatch(f"Cannot dot vectors of length {a.shape[0]} and {b.shape[0]}")
    return float(np.sum(a * b))


def invert(m, tolerance: float = SINGULAR_TOLERANCE) -> Optional[np.ndarray]:
    """
    Invert a square matrix by Gauss-Jordan elimination with partial pivoting

    Args:
        m: Square matrix
        tolerance: Pivot magnitude below which the matrix counts as singular

    Returns:
        The inverse, or None for an empty, non-square or near-singular matrix
    """
    m = np.asarray(m, dtype=float)
    if m.ndim != 2 or m.shape[0] == 0 or m.shape[0] != m.shape[1]:
        return None

    n = m.shape[0]
    augmented = np.hstack([m, np.eye(n)])

    for i in range(n):
        # Pick the row with the largest magnitude in this column
        max_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if max_row != i:
            augmented[[i, max_row]] = augmented[[max_row, i]]

        pivot = augmented[i, i]
        if abs(pivot) < tolerance:
            return None

        augmented[i, i:] /= pivot
        for k in range(n):
            if k != i:
                factor = augmented[k, i]
                if factor != 0.0:
                    augmented[k, i:] -= factor * augmented[i, i:]

    return augmented[:, n:].copy()


def ridge_regression(x, y, lam: float,
                     tolerance: float = SINGULAR_TOLERANCE) -> Optional[np.ndarray]:
    """
    Solve (X^T X + lambda I)^-1 X^T y

    Args:
        x: N x F feature matrix
        y: Length-N target vector
        lam: L2 penalty added to the normal-equations diagonal
        tolerance: Singularity tolerance forwarded to invert()

    Returns:
        Length-F coefficient vector, or None if the system cannot be solved
    """
    try:
        xt = transpose(x)
        xtx = multiply(xt, x)
        regularised = add(xtx, scalar_multiply(identity(xtx.shape[0]), lam))

        inverse = invert(regularised, tolerance=tolerance)
        if inverse is None:
            logger.warning("Normal-equations matrix is singular, cannot perform regression")
            return None

        return multiply_vector(multiply(inverse, xt), y)

    except DimensionMismatch as e:
        logger.error(f"Error during ridge regression: {e}")
        return None
