"""pypolyfem.fem.vem
Lowest-order virtual element stiffness on polygons and polyhedra.

Scaled monomials ``m_0 = 1`` and ``m_k = (x - x_c)_k / h`` span the affine
functions, ``x_c`` being the node average and ``h`` the element diameter.
Degrees of freedom are the nodal values.
"""
from __future__ import annotations

import logging

import numpy as np

from pypolyfem.linalg.dense import checked_inverse
from pypolyfem.exceptions import ElementShapeError

logger = logging.getLogger(__name__)


def monomial_values(coords, centroid, diameter) -> np.ndarray:
    """Matrix ``D`` (nn x (d+1)) of the monomials evaluated at the nodes."""
    coords = np.asarray(coords, dtype=float)
    D = np.ones((len(coords), coords.shape[1] + 1))
    D[:, 1:] = (coords - centroid) / diameter
    return D


def boundary_moments_2d(coords, K, diameter) -> np.ndarray:
    """
    Matrix ``B`` (3 x nn) for a counter-clockwise polygon.

    Row 0 is ``1/nn``; row ``k`` holds ``int_dE phi_i (K grad m_k) . n``,
    which for piecewise-linear traces reduces to half the scaled normal
    spanned by the two neighbours of node ``i``.
    """
    coords = np.asarray(coords, dtype=float)
    K = np.asarray(K, dtype=float)
    nn = len(coords)
    nxt = np.roll(coords, -1, axis=0)
    prv = np.roll(coords, 1, axis=0)
    nor = np.column_stack((nxt[:, 1] - prv[:, 1], prv[:, 0] - nxt[:, 0]))
    B = np.empty((3, nn))
    B[0] = 1.0 / nn
    B[1:] = 0.5 * (K @ nor.T) / diameter
    return B


def boundary_moments_3d(mesh, cell_id: int, K) -> np.ndarray:
    """Matrix ``B`` (4 x nn); each face spreads ``|f| K n_f / h`` evenly over its nodes."""
    cell = mesh.cell(cell_id)
    K = np.asarray(K, dtype=float)
    local = {nid: i for i, nid in enumerate(cell.nodes)}
    nn = len(cell.nodes)
    B = np.zeros((4, nn))
    B[0] = 1.0 / nn
    for fid in cell.faces:
        face = mesh.face(fid)
        flux = face.area / (len(face.nodes) * cell.diameter) * (K @ mesh.oriented_normal(fid, cell_id))
        for nid in face.nodes:
            B[1:, local[nid]] += flux
    return B


def vem_stiffness(D, B) -> np.ndarray:
    """``W = Pi^T G Pi + (I - D Pi)^T (I - D Pi)`` with ``Pi = (B D)^-1 B``."""
    G = B @ D
    Pi = checked_inverse(G, "B D", B=B, D=D) @ B
    I_DPi = np.eye(D.shape[0]) - D @ Pi
    G[0, :] = 0.0
    return Pi.T @ G @ Pi + I_DPi.T @ I_DPi


def vem_local_matrix(mesh, cell_id: int, K) -> np.ndarray:
    """Stiffness of cell *cell_id*; rows/columns follow ``cell.nodes``."""
    cell = mesh.cell(cell_id)
    coords = mesh.node_coords(cell_id)
    D = monomial_values(coords, cell.centroid, cell.diameter)
    if mesh.dim == 2:
        if len(cell.faces) != len(cell.nodes):
            raise ElementShapeError(f"Cell {cell_id}: {len(cell.faces)} faces but {len(cell.nodes)} nodes.")
        B = boundary_moments_2d(coords, K, cell.diameter)
    else:
        B = boundary_moments_3d(mesh, cell_id, K)
    return vem_stiffness(D, B)


def vem_load(f_value: float, volume: float, n_nodes: int) -> np.ndarray:
    """Load ``f(x_c) |E| / nn`` on each node."""
    return np.full(n_nodes, f_value * volume / n_nodes)
