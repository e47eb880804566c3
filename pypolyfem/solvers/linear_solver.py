"""pypolyfem.solvers.linear_solver
Sparse linear solves with scipy: SuperLU or ILU-preconditioned Krylov.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

logger = logging.getLogger(__name__)

_KRYLOV = {"gmres": spla.gmres, "bicgstab": spla.bicgstab, "cg": spla.cg}
BACKENDS = ("direct",) + tuple(_KRYLOV)


@dataclass(frozen=True)
class LinearSolverParameters:
    """Sparse linear solver settings."""

    backend: str = "direct"             # direct | gmres | bicgstab | cg
    rtol: float = 1e-10
    atol: float = 1e-13
    maxiter: int = 10_000
    restart: int = 50                   # gmres only
    drop_tol: float = 1e-4              # ILU
    fill_factor: float = 10.0           # ILU

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown linear solver backend '{self.backend}'. Choose from {BACKENDS}.")


class LinearSolver:
    """
    Solve ``A x = b`` for one matrix and any number of right-hand sides.

    :meth:`set_matrix` factorizes (direct) or builds the ILU preconditioner
    (Krylov); :meth:`solve` never raises on numerical failure, it returns
    False and leaves the cause in :attr:`reason`.
    """

    def __init__(self, params: LinearSolverParameters | None = None):
        self.params = params or LinearSolverParameters()
        self.A = None
        self._lu = None
        self._M = None
        self.reason = ""
        self.residual_norm = float("nan")
        self.iterations = 0

    def set_matrix(self, A) -> None:
        A = sp.csc_matrix(A, dtype=float)
        if A.shape[0] != A.shape[1]:
            raise ValueError(f"Matrix must be square, got {A.shape}")
        self.A = A
        self._lu = self._M = None
        self.reason = ""
        if A.shape[0] == 0:
            return
        p = self.params
        try:
            if p.backend == "direct":
                self._lu = spla.splu(A)
            else:
                ilu = spla.spilu(A, drop_tol=p.drop_tol, fill_factor=p.fill_factor)
                self._M = spla.LinearOperator(A.shape, ilu.solve)
        except RuntimeError as exc:
            self.reason = f"factorization failed: {exc}"
            logger.error("Linear solver setup (%s): %s", p.backend, exc)

    def solve(self, rhs: np.ndarray, x: np.ndarray) -> bool:
        """Solve into *x* (updated in place). Returns True on convergence."""
        if self.A is None:
            raise RuntimeError("set_matrix() must be called before solve()")
        rhs = np.asarray(rhs, dtype=float)
        if rhs.shape != (self.A.shape[0],) or x.shape != rhs.shape:
            raise ValueError("rhs and x must match the matrix size")
        self.iterations = 0
        if self.A.shape[0] == 0:
            self.residual_norm = 0.0
            return True
        if self.reason:
            return False

        p = self.params
        if p.backend == "direct":
            sol = self._lu.solve(rhs)
            self.iterations = 1
            info = 0
        else:
            count = [0]

            def _count(_):
                count[0] += 1

            kwargs = dict(x0=x.copy(), rtol=p.rtol, atol=p.atol, maxiter=p.maxiter, M=self._M, callback=_count)
            if p.backend == "gmres":
                kwargs.update(restart=p.restart, callback_type="pr_norm")
            sol, info = _KRYLOV[p.backend](self.A, rhs, **kwargs)
            self.iterations = count[0]

        self.residual_norm = float(np.linalg.norm(rhs - self.A @ sol))
        if not np.all(np.isfinite(sol)):
            self.reason = "non-finite solution"
        elif info > 0:
            self.reason = f"no convergence after {info} iterations"
        elif info < 0:
            self.reason = f"breakdown (info = {info})"
        if self.reason:
            logger.error("Linear solve (%s) failed: %s", p.backend, self.reason)
            return False

        x[:] = sol
        logger.info("Linear solve (%s): %d iteration(s), |r| = %.3e", p.backend, self.iterations, self.residual_norm)
        return True
