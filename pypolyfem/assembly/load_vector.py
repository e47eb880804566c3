"""pypolyfem.assembly.load_vector"""
import numpy as np

from pypolyfem.fem.stiffness import p1_load
from pypolyfem.fem.vem import vem_load

__all__ = ["p1_element_load", "vem_element_load", "assemble_load"]


def p1_element_load(mesh, elem_id, f_nodal):
    """Load of triangle *elem_id* from nodal source values."""
    nodes = list(mesh.cell(elem_id).nodes)
    return p1_load(mesh.points[nodes], np.asarray(f_nodal)[nodes])


def vem_element_load(mesh, elem_id, f_cell):
    """Load of a virtual element from the source value at its centroid."""
    cell = mesh.cell(elem_id)
    return vem_load(float(f_cell[elem_id]), cell.volume, len(cell.nodes))


def assemble_load(mesh, element_load, values):
    """Global nodal load vector (no boundary treatment)."""
    F = np.zeros(mesh.n_nodes)
    for cell in mesh.cells_list:
        np.add.at(F, list(cell.nodes), element_load(mesh, cell.id, values))
    return F
