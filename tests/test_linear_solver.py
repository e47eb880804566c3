import numpy as np
import pytest
import scipy.sparse as sp

from pypolyfem.solvers import LinearSolver, LinearSolverParameters


def _laplacian_1d(n=30):
    return sp.diags([-np.ones(n - 1), 2.0 * np.ones(n), -np.ones(n - 1)], [-1, 0, 1], format="csr")


@pytest.mark.parametrize("backend", ["direct", "gmres", "bicgstab", "cg"])
def test_backends_agree(backend):
    A = _laplacian_1d()
    b = np.linspace(0.0, 1.0, A.shape[0])
    ref = np.linalg.solve(A.toarray(), b)
    solver = LinearSolver(LinearSolverParameters(backend=backend))
    solver.set_matrix(A)
    x = np.zeros_like(b)
    assert solver.solve(b, x)
    assert np.allclose(x, ref, atol=1e-8)
    assert solver.residual_norm < 1e-8


def test_direct_counts_one_iteration():
    solver = LinearSolver()
    solver.set_matrix(_laplacian_1d(5))
    x = np.zeros(5)
    assert solver.solve(np.ones(5), x)
    assert solver.iterations == 1


def test_singular_matrix_reports_failure():
    A = _laplacian_1d(4).tolil()
    A[2, :] = 0.0
    solver = LinearSolver()
    solver.set_matrix(A.tocsr())
    x = np.zeros(4)
    assert not solver.solve(np.ones(4), x)
    assert "factorization" in solver.reason
    assert np.all(x == 0.0)


def test_unknown_backend():
    with pytest.raises(ValueError):
        LinearSolverParameters(backend="amg")


def test_solve_requires_matrix():
    with pytest.raises(RuntimeError):
        LinearSolver().solve(np.ones(2), np.zeros(2))


def test_empty_system():
    solver = LinearSolver()
    solver.set_matrix(sp.csr_matrix((0, 0)))
    assert solver.solve(np.zeros(0), np.zeros(0))
