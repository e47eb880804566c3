"""pypolyfem.fem.stiffness
Linear (P1) triangle stiffness for an anisotropic tensor.
"""
import numpy as np

from pypolyfem.linalg.dense import checked_inverse
from pypolyfem.exceptions import ElementShapeError

# Reference-triangle integrals of products of shape-function derivatives,
# e = d/dxi, n = d/deta.
KEE = 0.5 * np.array([[1.0, -1.0, 0.0],
                      [-1.0, 1.0, 0.0],
                      [0.0, 0.0, 0.0]])
KNN = 0.5 * np.array([[1.0, 0.0, -1.0],
                      [0.0, 0.0, 0.0],
                      [-1.0, 0.0, 1.0]])
KEN = 0.5 * np.array([[1.0, 0.0, -1.0],
                      [-1.0, 0.0, 1.0],
                      [0.0, 0.0, 0.0]])


def _jacobian(coords) -> np.ndarray:
    coords = np.asarray(coords, dtype=float)
    if coords.shape != (3, 2):
        raise ElementShapeError(f"P1 stiffness needs a 2D triangle, got node array of shape {coords.shape}")
    return np.column_stack((coords[1] - coords[0], coords[2] - coords[0]))


def p1_stiffness(coords, D) -> np.ndarray:
    """
    Element stiffness ``K_ij = int D grad phi_j . grad phi_i`` of a triangle.

    Parameters
    ----------
    coords : (3, 2) array
        Node coordinates.
    D : (2, 2) array
        Diffusion tensor, constant on the element.
    """
    B = _jacobian(coords)
    Binv = checked_inverse(B, "triangle Jacobian", nodes=coords)
    C = Binv @ np.asarray(D, dtype=float) @ Binv.T
    return abs(np.linalg.det(B)) * (C[0, 0] * KEE + C[1, 1] * KNN + C[0, 1] * (KEN + KEN.T))


def p1_load(coords, f_nodal) -> np.ndarray:
    """Lumped load: every node receives ``|det B| / 18 * (f0 + f1 + f2)``."""
    B = _jacobian(coords)
    f_nodal = np.asarray(f_nodal, dtype=float)
    return np.full(3, abs(np.linalg.det(B)) / 18.0 * f_nodal.sum())


def element_matrices(coords, D, f_nodal):
    """(Ke, Fe) for one triangle."""
    return p1_stiffness(coords, D), p1_load(coords, f_nodal)
