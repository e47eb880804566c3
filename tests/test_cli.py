import meshio
import numpy as np
import pytest

from pypolyfem import cli
from pypolyfem.utils.meshgen import structured_triangles, structured_quads, structured_hexahedra


def _write(path, pts, cells, cell_type):
    if pts.shape[1] == 2:
        pts = np.column_stack([pts, np.zeros(len(pts))])
    meshio.write(str(path), meshio.Mesh(pts, [(cell_type, np.asarray(cells))]))
    return str(path)


@pytest.fixture
def tri_file(tmp_path):
    return _write(tmp_path / "tri.vtk", *structured_triangles(1.0, 1.0, nx=4, ny=4), "triangle")


@pytest.fixture
def quad_file(tmp_path):
    return _write(tmp_path / "quad.vtk", *structured_quads(1.0, 1.0, nx=3, ny=3), "quad")


@pytest.fixture
def hexa_file(tmp_path):
    return _write(tmp_path / "hexa.vtk", *structured_hexahedra(1.0, 1.0, 1.0, nx=3, ny=3, nz=3), "hexahedron")


def test_usage(capsys):
    assert cli.poisson_fem([]) == 1
    assert "Usage: pypolyfem-poisson-fem <mesh_file>" in capsys.readouterr().out
    assert cli.diffusion_vem(["a", "b"]) == 1


@pytest.mark.parametrize("command", [cli.poisson_fem, cli.diffusion_mfd, cli.diffusion_vem])
def test_writes_result(command, tri_file, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert command([tri_file]) == 0
    assert (tmp_path / cli.OUTPUT).exists()


def test_fem_rejects_quads(quad_file, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert cli.poisson_fem([quad_file]) == 1
    assert not (tmp_path / cli.OUTPUT).exists()
    assert cli.diffusion_mfd([quad_file]) == 0


def test_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert cli.diffusion_mfd([str(tmp_path / "missing.vtk")]) == 1


def test_vem3d_partitions(hexa_file, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(cli.PARTITIONS_ENV, "2")
    assert cli.diffusion_vem3d([hexa_file]) == 0
    m = meshio.read(str(tmp_path / cli.OUTPUT))
    assert "OWNER" in m.cell_data
    assert set(np.concatenate(m.cell_data["OWNER"]).astype(int).tolist()) == {0, 1}


def test_vem3d_bad_partition_count(hexa_file, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(cli.PARTITIONS_ENV, "two")
    assert cli.diffusion_vem3d([hexa_file]) == 1
    monkeypatch.setenv(cli.PARTITIONS_ENV, "0")
    assert cli.diffusion_vem3d([hexa_file]) == 1
