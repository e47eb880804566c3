# conftest.py
import matplotlib
import pytest

from pypolyfem.core.mesh import Mesh
from pypolyfem.utils.meshgen import structured_triangles, hexagonal_polygons, structured_hexahedra


@pytest.fixture(autouse=True)
def mpl_test_backend():
    """Switch to a non-interactive backend for all tests."""
    matplotlib.use('Agg')


@pytest.fixture
def tri_mesh():
    return Mesh(*structured_triangles(1.0, 1.0, nx=6, ny=6))


@pytest.fixture
def hex_polygon_mesh():
    return Mesh(*hexagonal_polygons(1.0, 1.0, nx=5, ny=5, jitter=0.15))


@pytest.fixture
def hexa_mesh():
    return Mesh(*structured_hexahedra(1.0, 1.0, 1.0, nx=3, ny=3, nz=3))
