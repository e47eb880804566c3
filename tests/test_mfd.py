import numpy as np
import pytest

from pypolyfem.core import Mesh
from pypolyfem.fem.mfd import MimeticFrame, mfd_inner_product, check_consistency
from pypolyfem.exceptions import ConsistencyError
from pypolyfem.utils.meshgen import (structured_quads, hexagonal_polygons, delaunay_rectangle,
                                     structured_hexahedra, kuhn_tetrahedra)

D2 = np.array([[1.0, 0.2], [0.2, 10.0]])
D3 = np.array([[10.0, 0.5, 0.0], [0.5, 2.0, 0.1], [0.0, 0.1, 1.0]])

MESHES = {
    "quads": lambda: Mesh(*structured_quads(1.0, 1.0, nx=4, ny=4, jitter=0.2)),
    "hexagons": lambda: Mesh(*hexagonal_polygons(1.0, 1.0, nx=4, ny=4, jitter=0.15)),
    "delaunay": lambda: Mesh(*delaunay_rectangle(1.0, 1.0, 5, 5, jitter=0.2)),
    "hexahedra": lambda: Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=2, ny=2, nz=2)),
    "tetrahedra": lambda: Mesh(*kuhn_tetrahedra(1.0, 1.0, 1.0, nx=2, ny=2, nz=2, jitter=0.1)),
}


@pytest.mark.parametrize("name", sorted(MESHES))
def test_mimetic_operator_properties(name):
    mesh = MESHES[name]()
    D = D2 if mesh.dim == 2 else D3
    for cell in mesh.cells_list:
        frame = MimeticFrame.from_mesh(mesh, cell.id)
        assert check_consistency(frame, D) < 1e-10
        M = mfd_inner_product(frame, D)
        assert np.allclose(M, M.T)
        assert np.linalg.eigvalsh(0.5 * (M + M.T)).min() > 0.0
        assert np.allclose(M @ frame.N(D), frame.R())


def test_corrupted_frame_is_rejected(hex_polygon_mesh):
    frame = MimeticFrame.from_mesh(hex_polygon_mesh, 0)
    frame.signs[0] *= -1.0
    with pytest.raises(ConsistencyError) as info:
        mfd_inner_product(frame, D2)
    assert info.value.diff.shape == (2, 2)


def test_frame_orientation_signs(tri_mesh):
    for cell in tri_mesh.cells_list:
        frame = MimeticFrame.from_mesh(tri_mesh, cell.id)
        outward = frame.signs[:, None] * frame.normals
        # outward normals point away from the barycenter
        assert np.all(np.einsum("ij,ij->i", outward, frame.face_centers - frame.cell_center) > 0)
