import numpy as np
import pytest

from pypolyfem.config import DiffusionTensor, tensor_from_components
from pypolyfem.problems import ManufacturedSolution
from pypolyfem.problems.exact import x, y, z


def test_rhs_broadcasts_constants():
    sol = ManufacturedSolution(x ** 2, DiffusionTensor((100.0, 1.0, 0.0)))
    X = np.random.default_rng(0).random((7, 2))
    assert np.allclose(sol.rhs(X), -200.0)
    assert np.allclose(sol(X), X[:, 0] ** 2)


def test_flux_and_normal_flux():
    sol = ManufacturedSolution(x + 3 * y, DiffusionTensor((2.0, 1.0, 0.5)))
    X = np.zeros((2, 2))
    assert np.allclose(sol.flux(X), [[-3.5, -3.5], [-3.5, -3.5]])
    assert np.allclose(sol.normal_flux(X, [[1.0, 0.0], [0.0, -1.0]]), [-3.5, 3.5])


def test_3d_cross_terms():
    sol = ManufacturedSolution(x * y + z, DiffusionTensor((1.0, 1.0, 1.0, 0.25, 0.0, 0.0)))
    # f = -2 * Dxy * d2u/dxdy
    assert np.allclose(sol.rhs(np.ones((3, 3))), -0.5)


def test_explicit_rhs():
    sol = ManufacturedSolution(x, DiffusionTensor.isotropic(1.0), rhs=4.0)
    assert np.allclose(sol.rhs(np.zeros((3, 2))), 4.0)


def test_tensor_helpers():
    assert np.allclose(DiffusionTensor.diagonal(1.0, 10.0).matrix(), [[1.0, 0.0], [0.0, 10.0]])
    full = tensor_from_components((1.0, 2.0, 3.0, 0.1, 0.2, 0.3))
    assert np.allclose(full, full.T) and full[1, 2] == 0.3
    assert DiffusionTensor.isotropic(2.0, dim=3).dim == 3
    with pytest.raises(ValueError):
        DiffusionTensor((1.0, 2.0))
