import numpy as np
import pytest

from pypolyfem.core import Mesh
from pypolyfem.fem.vem import vem_local_matrix, vem_load, monomial_values, boundary_moments_2d
from pypolyfem.exceptions import SingularMatrixError, ElementShapeError
from pypolyfem.utils.meshgen import (structured_quads, hexagonal_polygons, delaunay_rectangle,
                                     structured_hexahedra, kuhn_tetrahedra)

K2 = np.array([[2.0, 0.3], [0.3, 1.0]])
K3 = np.diag([10.0, 2.0, 1.0])


def _check_null_space(W):
    assert np.allclose(W, W.T)
    ev = np.linalg.eigvalsh(W)
    scale = ev.max()
    assert ev.min() > -1e-10 * scale
    assert np.sum(np.abs(ev) < 1e-10 * scale) == 1
    assert np.allclose(W @ np.ones(len(W)), 0.0)


@pytest.mark.parametrize("mesh", [
    Mesh(*structured_quads(1.0, 1.0, nx=3, ny=3, jitter=0.2)),
    Mesh(*hexagonal_polygons(1.0, 1.0, nx=3, ny=3, jitter=0.15)),
    Mesh(*delaunay_rectangle(1.0, 1.0, 4, 4)),
])
def test_vem_2d_symmetric_psd_constants_kernel(mesh):
    for cell in mesh.cells_list:
        _check_null_space(vem_local_matrix(mesh, cell.id, K2))


@pytest.mark.parametrize("mesh", [
    Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=2, ny=2, nz=2)),
    Mesh(*kuhn_tetrahedra(1.0, 1.0, 1.0, nx=1, ny=1, nz=1, jitter=0.0)),
    Mesh(np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0], [0.5, 0.5, 1.0]]), [[0, 1, 2, 3, 4]]),
    Mesh(np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 0, 1], [0, 1, 1]]), [[0, 1, 2, 3, 4, 5]]),
])
def test_vem_3d_symmetric_psd_constants_kernel(mesh):
    for cell in mesh.cells_list:
        _check_null_space(vem_local_matrix(mesh, cell.id, K3))


def test_projection_matrix_on_square():
    coords = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    h = np.sqrt(2.0)
    D = monomial_values(coords, coords.mean(axis=0), h)
    B = boundary_moments_2d(coords, np.eye(2), h)
    G = B @ D
    # consistency: B D = diag(1, |E| K / h^2)
    assert np.allclose(G, np.diag([1.0, 0.5, 0.5]))


def test_collapsed_element():
    mesh = Mesh(np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]]), [[0, 1, 2]])
    with pytest.raises(SingularMatrixError):
        vem_local_matrix(mesh, 0, np.eye(2))


def test_face_node_mismatch(tri_mesh):
    cell = tri_mesh.cell(0)
    cell.faces = cell.faces[:-1]
    with pytest.raises(ElementShapeError):
        vem_local_matrix(tri_mesh, 0, np.eye(2))


def test_vem_load():
    assert np.allclose(vem_load(3.0, 2.0, 4), 1.5)
