"""pypolyfem.problems.exact
Manufactured solutions: source term and flux derived with sympy.
"""
from __future__ import annotations

from typing import Optional

import numpy as np
import sympy as sp

from pypolyfem.config import DiffusionTensor

x, y, z = sp.symbols("x y z")
COORDS = (x, y, z)


def _broadcast(values, n: int) -> np.ndarray:
    return np.broadcast_to(np.asarray(values, dtype=float), (n,)).copy()


class ManufacturedSolution:
    """
    Analytic solution ``u`` of ``div(-D grad u) = f`` for a constant tensor.

    ``f = -sum_ij D_ij d_i d_j u`` unless given explicitly; the flux is
    ``-D grad u``. All evaluators take points as an ``(n, dim)`` array.
    """

    def __init__(self, u, tensor: DiffusionTensor, rhs: Optional[object] = None):
        self.tensor = tensor
        self.dim = tensor.dim
        syms = COORDS[:self.dim]
        self.expr = sp.sympify(u)
        Dm = sp.Matrix(tensor.matrix().tolist())
        grad = sp.Matrix([sp.diff(self.expr, s) for s in syms])
        self.flux_expr = list(-Dm * grad)
        if rhs is None:
            rhs = -sum(Dm[i, j] * sp.diff(self.expr, syms[i], syms[j])
                       for i in range(self.dim) for j in range(self.dim))
        self.rhs_expr = sp.simplify(sp.sympify(rhs))

        self._u = sp.lambdify(syms, self.expr, "numpy")
        self._f = sp.lambdify(syms, self.rhs_expr, "numpy")
        self._q = [sp.lambdify(syms, q, "numpy") for q in self.flux_expr]

    def _args(self, X):
        X = np.atleast_2d(np.asarray(X, dtype=float))[:, :self.dim]
        return X, [X[:, k] for k in range(self.dim)]

    def u(self, X) -> np.ndarray:
        X, args = self._args(X)
        return _broadcast(self._u(*args), len(X))

    def rhs(self, X) -> np.ndarray:
        X, args = self._args(X)
        return _broadcast(self._f(*args), len(X))

    def flux(self, X) -> np.ndarray:
        """``-D grad u`` at the points, shape ``(n, dim)``."""
        X, args = self._args(X)
        return np.column_stack([_broadcast(q(*args), len(X)) for q in self._q])

    def normal_flux(self, X, normals) -> np.ndarray:
        return np.einsum("ij,ij->i", self.flux(X), np.atleast_2d(normals))

    def __call__(self, X) -> np.ndarray:
        return self.u(X)

    def __repr__(self):
        return f"ManufacturedSolution(u={self.expr}, f={self.rhs_expr})"
