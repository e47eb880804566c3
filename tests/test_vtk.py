import meshio
import numpy as np
import pytest

from pypolyfem.core import Mesh, EntityKind
from pypolyfem.io import load_mesh, save_mesh
from pypolyfem.problems import PoissonFEM, DiffusionMFD
from pypolyfem.utils.meshgen import structured_triangles, structured_quads, structured_hexahedra


def _block(m, cell_type, name):
    for block, data in zip(m.cells, m.cell_data[name]):
        if block.type == cell_type:
            return np.asarray(data)
    raise AssertionError(f"no {cell_type} block")


def test_fem_results_round_trip(tmp_path):
    mesh = Mesh(*structured_triangles(1.0, 1.0, nx=4, ny=4))
    PoissonFEM(mesh).run()
    out = tmp_path / "res.vtk"
    save_mesh(mesh, str(out))

    m = meshio.read(str(out))
    assert m.points.shape == (mesh.n_nodes, 3)
    assert np.allclose(m.point_data["SOLUTION"], mesh.fields["SOLUTION"].values)
    assert np.allclose(m.point_data["SOLUTION_EXACT"], mesh.points[:, 0] ** 2)
    assert "DIFFUSION_TENSOR" in m.cell_data


def test_face_fields_get_their_own_block(tmp_path):
    mesh = Mesh(*structured_quads(1.0, 1.0, nx=3, ny=3))
    DiffusionMFD(mesh).run()
    out = tmp_path / "mfd.vtk"
    save_mesh(mesh, str(out))

    m = meshio.read(str(out))
    flux_on_faces = _block(m, "line", "FLUX").ravel()
    assert flux_on_faces.shape == (mesh.n_faces,)
    assert np.all(np.isnan(_block(m, "quad", "FLUX")))
    assert np.all(np.isnan(_block(m, "line", "SOLUTION")))
    assert np.allclose(_block(m, "quad", "SOLUTION").ravel(), mesh.fields["SOLUTION"].values)


def test_save_selected_fields(tmp_path):
    mesh = Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=2, ny=2, nz=2))
    mesh.fields.create_field("SOLUTION", EntityKind.NODE, fill=2.0)
    out = tmp_path / "hexa.vtk"
    save_mesh(mesh, str(out), names=["SOLUTION"])
    m = meshio.read(str(out))
    assert m.cells[0].type == "hexahedron"
    assert np.all(m.point_data["SOLUTION"] == 2.0)


def test_load_ignores_lines_and_unused_points(tmp_path):
    pts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0], [5.0, 5.0, 0.0]])
    cells = [("triangle", np.array([[0, 1, 2], [0, 2, 3]])), ("line", np.array([[0, 1], [1, 2]]))]
    path = tmp_path / "square.vtk"
    meshio.write(str(path), meshio.Mesh(pts, cells))

    mesh = load_mesh(str(path))
    assert mesh.dim == 2
    assert mesh.n_nodes == 4 and mesh.n_cells == 2
    assert mesh.points.shape == (4, 2)


def test_load_rejects_line_only_mesh(tmp_path):
    path = tmp_path / "lines.vtk"
    meshio.write(str(path), meshio.Mesh(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]), [("line", np.array([[0, 1]]))]))
    with pytest.raises(ValueError):
        load_mesh(str(path))
