"""pypolyfem.assembly.residual_assembly
Residual-equation assembly for the mimetic and virtual element methods.

Both routines only *add* to the residual they are given, so several
partition views may feed one residual, each writing the rows it owns.
"""
from __future__ import annotations

import logging

import numpy as np

from pypolyfem.autodiff.expressions import LinearCombination
from pypolyfem.autodiff.residual import Residual, UnknownBlock
from pypolyfem.config import tensor_from_components
from pypolyfem.fem.mfd import MimeticFrame, mfd_inner_product
from pypolyfem.fem.vem import vem_local_matrix
from pypolyfem.assembly.load_vector import vem_element_load

logger = logging.getLogger(__name__)


def assemble_mfd_residual(mesh, R: Residual, p: UnknownBlock, u: UnknownBlock,
                          tensor, rhs, bc) -> None:
    """
    Mixed mimetic equations, cell pressure *p* and face flux density *u*.

    For each owned cell ``c``::

        R[p_c] += sum_f a_f |f| / |E| u_f - f_c
        R[u_i] += (M u)_i - a_i |f_i| (p_c - lambda_i)

    ``lambda_i`` is the boundary value on boundary faces and 0 inside,
    where the contributions of the two cells cancel.

    Parameters
    ----------
    tensor : (n_cells, 3 or 6) array of tensor components
    rhs : (n_cells,) source at cell barycenters
    bc : (n_faces,) boundary values at face barycenters
    """
    for cell in mesh.cells_list:
        if cell.is_ghost:
            continue
        c = cell.id
        frame = MimeticFrame.from_mesh(mesh, c)
        M = mfd_inner_product(frame, tensor_from_components(tensor[c]))
        flux = [u(fid) for fid in frame.faces]
        coef = frame.signs * frame.areas

        R[p.index(c)] += LinearCombination(coef / frame.volume, flux) - float(rhs[c])

        pc = p(c)
        for i, fid in enumerate(frame.faces):
            face = mesh.face(fid)
            if face.is_ghost:
                continue
            lam = float(bc[fid]) if face.is_boundary else 0.0
            R[u.index(fid)] += LinearCombination(M[i], flux) - coef[i] * (pc - lam)


def assemble_vem_residual(mesh, R: Residual, u: UnknownBlock, tensor, rhs, bc) -> None:
    """
    Nodal virtual element equations with Dirichlet elimination.

    Every cell of the mesh is visited, ghosts included, so that owned nodes
    on a partition border see all their cells::

        Dirichlet i:      R[j] += g_i W[j,i]                 (owned free j)
        owned free i:     R[i] += sum_{free j} W[j,i] u_j - b_i

    Parameters
    ----------
    tensor : (n_cells, 3 or 6) array of tensor components
    rhs : (n_cells,) source at cell centroids
    bc : (n_nodes,) Dirichlet values
    """
    nodes_list = mesh.nodes_list
    for cell in mesh.cells_list:
        c = cell.id
        W = vem_local_matrix(mesh, c, tensor_from_components(tensor[c]))
        b = vem_element_load(mesh, c, rhs)

        idx = np.array([u.index(n) for n in cell.nodes])
        free = idx >= 0
        owned = np.array([free[k] and not nodes_list[n].is_ghost for k, n in enumerate(cell.nodes)])
        free_vars = [u(n) for k, n in enumerate(cell.nodes) if free[k]]

        for i, ni in enumerate(cell.nodes):
            node = nodes_list[ni]
            if node.is_dirichlet:
                gi = float(bc[ni])
                for j in np.flatnonzero(owned):
                    R[idx[j]] += gi * W[j, i]
            elif owned[i]:
                R[idx[i]] += LinearCombination(W[free, i], free_vars) - b[i]
    logger.debug("VEM residual assembled on %d cells", mesh.n_cells)
