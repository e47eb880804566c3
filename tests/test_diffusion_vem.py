import numpy as np
import pytest

from pypolyfem.config import DiffusionTensor
from pypolyfem.core import Mesh, EntityKind
from pypolyfem.problems import DiffusionVEM, PartitionedVEMRun, ManufacturedSolution
from pypolyfem.problems.exact import x, y, z
from pypolyfem.utils.meshgen import (structured_quads, hexagonal_polygons, delaunay_rectangle,
                                     structured_hexahedra, kuhn_tetrahedra)

LINEAR_3D = ManufacturedSolution(x + 2 * y - z, DiffusionTensor((10.0, 2.0, 1.0, 0.0, 0.0, 0.0)))


@pytest.mark.parametrize("make", [
    lambda: Mesh(*structured_quads(1.0, 1.0, nx=5, ny=5, jitter=0.2)),
    lambda: Mesh(*hexagonal_polygons(1.0, 1.0, nx=5, ny=5, jitter=0.15)),
    lambda: Mesh(*delaunay_rectangle(1.0, 1.0, 6, 6, jitter=0.2)),
])
def test_linear_solution_is_exact_2d(make):
    report = DiffusionVEM(make()).run()
    assert report.solved
    assert report.error < 1e-9


def test_anisotropic_linear_2d():
    mesh = Mesh(*hexagonal_polygons(1.0, 1.0, nx=4, ny=4, jitter=0.1))
    exact = ManufacturedSolution(2 * x - y, DiffusionTensor((3.0, 1.0, 0.5)))
    assert DiffusionVEM(mesh, exact).run().error < 1e-9


@pytest.mark.parametrize("make", [
    lambda: Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=3, ny=3, nz=3)),
    lambda: Mesh(*kuhn_tetrahedra(1.0, 1.0, 1.0, nx=2, ny=2, nz=2, jitter=0.1)),
])
def test_linear_solution_is_exact_3d(make):
    assert DiffusionVEM(make(), LINEAR_3D).run().error < 1e-9


def test_default_3d_problem_converges():
    errors = []
    for n in (3, 6):
        mesh = Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=n, ny=n, nz=n))
        problem = DiffusionVEM(mesh)
        assert problem.exact.tensor.components == (10.0, 2.0, 1.0, 0.0, 0.0, 0.0)
        errors.append(problem.run().error)
    assert errors[1] < errors[0]


def test_partitioned_matches_serial_3d():
    serial_mesh = Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=4, ny=4, nz=4))
    DiffusionVEM(serial_mesh).run()

    mesh = Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=4, ny=4, nz=4))
    run = PartitionedVEMRun(mesh, n_parts=3)
    report = run.run()
    assert report.solved
    assert run.distribution.n_parts == 3
    assert np.allclose(mesh.fields["SOLUTION"].values, serial_mesh.fields["SOLUTION"].values, atol=1e-10)


def test_partitioned_matches_serial_2d():
    pts, cells = hexagonal_polygons(1.0, 1.0, nx=6, ny=6, jitter=0.1)
    serial = DiffusionVEM(Mesh(pts, cells))
    serial.run()

    mesh = Mesh(pts, cells)
    run = PartitionedVEMRun(mesh, n_parts=4)
    run.run()
    assert np.allclose(mesh.fields["SOLUTION"].values, serial.mesh.fields["SOLUTION"].values, atol=1e-10)
    assert run.report.error == pytest.approx(serial.report.error, abs=1e-10)
    # ghost copies agree with their owners
    for view in run.views:
        gids = view.global_ids(EntityKind.NODE)
        assert np.allclose(view.fields["SOLUTION"].values, mesh.fields["SOLUTION"].values[gids])
