"""pypolyfem.assembly.global_matrix
Direct sparse assembly of a nodal system with Dirichlet elimination.
"""
import logging

import numpy as np
import scipy.sparse as sp

logger = logging.getLogger(__name__)


def node_dof_map(mesh):
    """Dof index of every node, -1 for Dirichlet nodes."""
    dof = np.full(mesh.n_nodes, -1, dtype=int)
    free = [n.id for n in mesh.nodes_list if not n.is_dirichlet]
    dof[free] = np.arange(len(free))
    return dof


def assemble(mesh, local_cb, bc_values=None, cell_order=None):
    """
    Assemble ``A x = b`` over the free nodes.

    Parameters
    ----------
    local_cb : callable
        ``local_cb(cell_id) -> (Ke, Fe)``.
    bc_values : array, optional
        Nodal Dirichlet values (read on Dirichlet nodes only).
    cell_order : iterable, optional
        Visitation order of the cells; the result does not depend on it.

    Returns
    -------
    A : csr_matrix, b : ndarray, dof : ndarray
        ``dof[node]`` is the row of a free node, -1 for Dirichlet nodes.
    """
    dof = node_dof_map(mesh)
    n_dofs = int((dof >= 0).sum())
    g = np.zeros(mesh.n_nodes) if bc_values is None else np.asarray(bc_values, dtype=float)

    rows, cols, data = [], [], []
    b_rows, b_data = [], []
    order = range(mesh.n_cells) if cell_order is None else cell_order
    for eid in order:
        cell = mesh.cell(eid)
        if cell.is_ghost:
            continue
        Ke, Fe = local_cb(eid)
        ldof = dof[list(cell.nodes)]
        free = ldof >= 0
        for a, A in enumerate(ldof):
            if A < 0:
                # move the known column to the right-hand side
                b_rows.extend(ldof[free])
                b_data.extend(-g[cell.nodes[a]] * Ke[free, a])
                continue
            rows.extend([A] * int(free.sum())); cols.extend(ldof[free]); data.extend(Ke[a, free])
            b_rows.append(A); b_data.append(Fe[a])

    A = sp.coo_matrix((data, (rows, cols)), shape=(n_dofs, n_dofs)).tocsr()
    b = np.bincount(np.asarray(b_rows, dtype=int), weights=np.asarray(b_data, dtype=float), minlength=n_dofs)
    logger.info("Assembled %d x %d system (%d non-zeros)", n_dofs, n_dofs, A.nnz)
    return A, b, dof
