import numpy as np
import pytest

from pypolyfem.autodiff import (Constant, Variable, LinearCombination, UnknownRegistry, Residual)
from pypolyfem.core import EntityKind, Mesh
from pypolyfem.utils.meshgen import structured_quads


def test_product_rule():
    a, b = Variable(0, 2.0), Variable(1, 3.0)
    v, g = (a * b).evaluate()
    assert v == 6.0 and g == {0: 3.0, 1: 2.0}
    v, g = (a * a).evaluate()
    assert v == 4.0 and g == {0: 4.0}
    v, g = (a / b).evaluate()
    assert v == pytest.approx(2.0 / 3.0)
    assert g[0] == pytest.approx(1.0 / 3.0) and g[1] == pytest.approx(-2.0 / 9.0)


def test_arithmetic_with_numbers():
    a = Variable(3, 1.5)
    v, g = (2.0 - a * 4 + 1).evaluate()
    assert v == pytest.approx(-3.0)
    assert g == {3: -4.0}
    v, g = (-a).evaluate()
    assert v == -1.5 and g == {3: -1.0}
    assert float(Constant(2.5)) == 2.5


def test_linear_combination():
    terms = [Variable(0, 1.0), Variable(1, 2.0), Variable(0, 1.0)]
    v, g = LinearCombination([1.0, -1.0, 2.0], terms).evaluate()
    assert v == pytest.approx(1.0)
    assert g == {0: 3.0, 1: -1.0}


def test_residual_accumulates():
    R = Residual("test", 0, 2)
    x0, x1 = Variable(0, 1.0), Variable(1, 2.0)
    R[0] += 2.0 * x0 - x1
    R[0] += x0
    R[1] -= x1 - 5.0
    assert np.allclose(R.residual(), [1.0, 3.0])
    assert np.allclose(R.jacobian().toarray(), [[3.0, -1.0], [0.0, -1.0]])
    assert R.norm() == 3.0
    R.clear()
    assert R.jacobian().nnz == 0 and np.all(R.residual() == 0.0)


def test_residual_rejects_assignment():
    R = Residual("test", 0, 1)
    with pytest.raises(TypeError):
        R[0] = Variable(0, 1.0)
    with pytest.raises(IndexError):
        R[1] += 1.0


def test_registry_numbering():
    mesh = Mesh(*structured_quads(1.0, 1.0, nx=2, ny=2))
    p = mesh.fields.create_field("SOLUTION", EntityKind.CELL)
    u = mesh.fields.create_field("FLUX", EntityKind.FACE)
    p.values[:] = np.arange(mesh.n_cells)
    free = np.ones(mesh.n_faces, dtype=bool)
    free[0] = False

    reg = UnknownRegistry()
    bp = reg.register_unknown(p)
    bu = reg.register_unknown(u, mask=free)
    assert reg.enumerate() == (0, mesh.n_cells + mesh.n_faces - 1)
    with pytest.raises(RuntimeError):
        reg.register_unknown(p)

    assert bp.index(2) == 2
    assert bu.index(0) == -1 and 0 not in bu
    assert bu.index(1) == mesh.n_cells
    var = bp(3)
    assert var.index == 3 and var.value == 3.0
    with pytest.raises(KeyError):
        bu(0)

    x = reg.values()
    assert np.allclose(x[:mesh.n_cells], np.arange(mesh.n_cells))
    reg.update(x + 1.0)
    assert np.allclose(p.values, np.arange(mesh.n_cells) + 1.0)
    assert u.values[0] == 0.0 and np.all(u.values[1:] == 1.0)


def test_bind_to_submesh_field():
    mesh = Mesh(*structured_quads(1.0, 1.0, nx=3, ny=1))
    glob = mesh.fields.create_field("SOLUTION", EntityKind.NODE)
    reg = UnknownRegistry()
    block = reg.register_unknown(glob)
    reg.enumerate()

    sub = mesh.submesh([2])
    local = sub.fields.create_field("SOLUTION", EntityKind.NODE)
    bound = block.bind(local)
    for node in sub.nodes_list:
        assert bound.index(node.id) == block.index(node.gid)
