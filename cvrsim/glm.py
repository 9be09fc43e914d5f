"""
glm

Ordinary least squares through the normal equations,
beta = (X'X)^-1 X'y, with an explicit Gauss-Jordan inverse so that a
(near-)singular design is detected rather than silently regularized.
"""

import logging
import numpy as np
from .config import SINGULAR_PIVOT_TOLERANCE


class SingularMatrixError(np.linalg.LinAlgError):
    pass


def _as_matrix(A):
    A = np.ascontiguousarray(A, dtype=float)
    if A.ndim != 2:
        raise ValueError(f'Expected a 2D matrix, got shape {A.shape}')
    return A


def transpose(A):
    return np.ascontiguousarray(_as_matrix(A).T)


def matrix_multiply(A, B):
    A, B = _as_matrix(A), _as_matrix(B)
    if A.shape[1] != B.shape[0]:
        raise ValueError(f'Cannot multiply matrices of shape {A.shape} and {B.shape}')
    return A @ B


def matrix_vector_multiply(A, b):
    A = _as_matrix(A)
    b = np.asarray(b, dtype=float)
    if b.ndim != 1 or A.shape[1] != b.shape[0]:
        raise ValueError(f'Cannot multiply matrix of shape {A.shape} '
                         f'with vector of shape {b.shape}')
    return A @ b


def invert_matrix(A, tolerance=SINGULAR_PIVOT_TOLERANCE):
    """
    Invert a square matrix by Gauss-Jordan elimination with partial
    pivoting.

    Parameters
    ----------
    A : np.array (n, n)

    tolerance : float, optional
        Pivots smaller than this (in absolute value) mark the matrix as
        singular.

    Returns
    -------
    A_inv : np.array (n, n)

    Raises
    ------
    SingularMatrixError
        If a pivot falls below `tolerance`.
    """
    tmp = _as_matrix(A).copy()
    n = tmp.shape[0]

    if tmp.shape[1] != n:
        raise ValueError(f'Only square matrices can be inverted (got {tmp.shape})')

    result = np.eye(n)

    for i in range(n):
        pivot_row = i + np.argmax(np.abs(tmp[i:, i]))

        if np.abs(tmp[pivot_row, i]) < tolerance:
            raise SingularMatrixError(
                f'Pivot {tmp[pivot_row, i]:.3g} in column {i} is below {tolerance}')

        if pivot_row != i:
            tmp[[i, pivot_row]] = tmp[[pivot_row, i]]
            result[[i, pivot_row]] = result[[pivot_row, i]]

        pivot = tmp[i, i]
        tmp[i] /= pivot
        result[i] /= pivot

        for j in range(n):
            if j != i:
                factor = tmp[j, i]
                if factor != 0.0:
                    tmp[j] -= factor * tmp[i]
                    result[j] -= factor * result[i]

    return result


def solve_glm(X, y):
    """
    Regress `y` on the design matrix `X` (n_timepoints, n_regressors).

    Returns the beta weights, or an empty array if X'X is singular.
    """
    Xt = transpose(X)
    XtX = matrix_multiply(Xt, X)

    try:
        XtX_inv = invert_matrix(XtX)
    except SingularMatrixError as e:
        logging.warning('Design matrix is singular ({}). Consider using less '
                        'regressors or drift terms.'.format(e))
        return np.zeros(0)

    Xty = matrix_vector_multiply(Xt, y)
    return matrix_vector_multiply(XtX_inv, Xty)
