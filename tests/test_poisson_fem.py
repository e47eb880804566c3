import numpy as np
import pytest
import sympy as sp

from pypolyfem.config import DiffusionTensor
from pypolyfem.core import Mesh
from pypolyfem.exceptions import ElementShapeError
from pypolyfem.problems import PoissonFEM, ManufacturedSolution
from pypolyfem.problems.exact import x, y
from pypolyfem.utils.meshgen import structured_triangles, structured_quads, delaunay_rectangle


def test_default_problem_x_squared():
    mesh = Mesh(*structured_triangles(1.0, 1.0, nx=16, ny=16))
    problem = PoissonFEM(mesh)
    assert np.allclose(problem.exact.rhs(mesh.points), -200.0)
    report = problem.run()
    assert report.solved
    assert report.iterations == 1
    assert report.error < 1e-2


def test_affine_solution_is_exact():
    mesh = Mesh(*delaunay_rectangle(1.0, 1.0, 7, 7, jitter=0.25))
    exact = ManufacturedSolution(x, DiffusionTensor((100.0, 1.0, 0.0)))
    report = PoissonFEM(mesh, exact).run()
    assert report.error < 1e-9


def test_error_decreases_under_refinement():
    exact = ManufacturedSolution(sp.sin(sp.pi * x) * sp.sin(sp.pi * y), DiffusionTensor((2.0, 1.0, 0.5)))
    errors = []
    for n in (8, 16):
        mesh = Mesh(*structured_triangles(1.0, 1.0, nx=n, ny=n, alternate=True))
        errors.append(PoissonFEM(mesh, exact).run().error)
    assert errors[1] < 0.5 * errors[0]


def test_dirichlet_values_kept():
    mesh = Mesh(*structured_triangles(1.0, 1.0, nx=4, ny=4))
    problem = PoissonFEM(mesh)
    problem.run()
    sol = mesh.fields["SOLUTION"].values
    bnd = mesh.boundary_nodes()
    assert np.allclose(sol[bnd], mesh.points[bnd, 0] ** 2)


def test_quads_are_rejected():
    mesh = Mesh(*structured_quads(1.0, 1.0, nx=2, ny=2))
    with pytest.raises(ElementShapeError):
        PoissonFEM(mesh).run()


def test_timings_recorded():
    mesh = Mesh(*structured_triangles(1.0, 1.0, nx=4, ny=4))
    problem = PoissonFEM(mesh)
    problem.run()
    t = problem.timings
    assert t["assemble"] > 0.0 and t["init"] > 0.0
    assert "precond" in t.table() and "total" in t.table()
