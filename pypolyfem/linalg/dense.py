"""pypolyfem.linalg.dense
Small dense helpers used by the local operator builders.

All routines work on plain ``numpy`` arrays. Inversion reports singular
input through an error code (``ierr``) instead of returning NaNs:

* ``ierr == 0``  the inverse is valid,
* ``ierr == k``  (k >= 1) pivot ``k`` of the LU factorization vanished
  relative to the largest pivot.
"""
from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
import scipy.linalg as sla

from pypolyfem.exceptions import SingularMatrixError

logger = logging.getLogger(__name__)

__all__ = ["invert", "checked_inverse", "transpose", "trace", "frobenius_norm", "format_matrix"]

# relative pivot threshold below which a matrix is treated as singular
PIVOT_RTOL = 1e-13


def _as_square(A) -> np.ndarray:
    A = np.asarray(A, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {A.shape}")
    return A


def invert(A, *, rtol: float = PIVOT_RTOL) -> Tuple[np.ndarray, int]:
    """Return ``(A^-1, ierr)``. On failure the inverse is filled with zeros."""
    A = _as_square(A)
    n = A.shape[0]
    if n == 0:
        return np.zeros((0, 0)), 0
    if not np.all(np.isfinite(A)):
        return np.zeros_like(A), n
    lu, piv = sla.lu_factor(A, check_finite=False)
    pivots = np.abs(np.diag(lu))
    scale = pivots.max()
    bad = np.flatnonzero(pivots <= rtol * scale) if scale > 0.0 else np.arange(n)
    if bad.size:
        return np.zeros_like(A), int(bad[0]) + 1
    return sla.lu_solve((lu, piv), np.eye(n), check_finite=False), 0


def checked_inverse(A, what: str = "matrix", **dump) -> np.ndarray:
    """
    Invert *A* or raise :class:`SingularMatrixError`.

    Extra keyword arrays are written to the log next to *A* so the failing
    element can be diagnosed.
    """
    inv, ierr = invert(A)
    if ierr:
        logger.error("Inversion of %s failed: ierr = %d", what, ierr)
        for name, M in dump.items():
            logger.error("%s =\n%s", name, format_matrix(M))
        logger.error("%s =\n%s", what, format_matrix(A))
        raise SingularMatrixError(f"{what} is singular (ierr = {ierr})", ierr=ierr)
    return inv


def transpose(A) -> np.ndarray:
    return np.asarray(A, dtype=float).T


def trace(A) -> float:
    return float(np.trace(_as_square(A)))


def frobenius_norm(A) -> float:
    return float(np.sqrt(np.sum(np.asarray(A, dtype=float) ** 2)))


def format_matrix(A) -> str:
    return np.array2string(np.atleast_2d(np.asarray(A, dtype=float)), precision=6, suppress_small=True)
