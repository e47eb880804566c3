"""pypolyfem.fem.mfd
Mixed mimetic finite-difference flux inner product.

For a cell with ``nf`` faces the operator ``M`` (nf x nf) acts on face flux
densities. It is built from two frames:

* ``N`` (nf x d): rows are the global face unit normals, then ``N := N D``;
* ``R`` (nf x d): rows are ``a_f |f| (x_f - x_c)`` with ``a_f = +1`` when
  the face normal points out of the cell.

Consistency requires ``R^T N = |E| D``; ``M = M0 + M1`` with the
consistency part ``M0 = R (R^T N)^-1 R^T`` and the stability part
``M1 = gamma (I - N (N^T N)^-1 N^T)``, ``gamma = tr(M0) / nf``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from pypolyfem.linalg.dense import checked_inverse, frobenius_norm, trace, format_matrix
from pypolyfem.exceptions import ConsistencyError

logger = logging.getLogger(__name__)

CONSISTENCY_TOL = 1e-3


@dataclass
class MimeticFrame:
    """Geometry of one cell as seen by the mimetic operator."""
    normals: np.ndarray         # (nf, d) global face normals
    areas: np.ndarray           # (nf,)
    signs: np.ndarray           # (nf,) +1 if the normal points out of the cell
    face_centers: np.ndarray    # (nf, d)
    cell_center: np.ndarray     # (d,)
    volume: float
    faces: tuple = ()           # local face ids, in row order

    @classmethod
    def from_mesh(cls, mesh, cell_id: int) -> "MimeticFrame":
        cell = mesh.cell(cell_id)
        faces = [mesh.face(fid) for fid in cell.faces]
        return cls(normals=np.array([f.normal for f in faces]),
                   areas=np.array([f.area for f in faces]),
                   signs=np.array([mesh.orientation(f.id, cell_id) for f in faces]),
                   face_centers=np.array([f.barycenter for f in faces]),
                   cell_center=np.asarray(cell.barycenter, dtype=float),
                   volume=float(cell.volume),
                   faces=tuple(cell.faces))

    def N(self, D) -> np.ndarray:
        return self.normals @ np.asarray(D, dtype=float)

    def R(self) -> np.ndarray:
        return (self.signs * self.areas)[:, None] * (self.face_centers - self.cell_center)


def check_consistency(frame: MimeticFrame, D, tol: float = CONSISTENCY_TOL) -> float:
    """Return ``||R^T N - |E| D||_F``; raise :class:`ConsistencyError` above *tol*."""
    D = np.asarray(D, dtype=float)
    diff = frame.R().T @ frame.N(D) - frame.volume * D
    err = frobenius_norm(diff)
    if err > tol:
        logger.error("Mimetic consistency violated: ||R^T N - |E| D|| = %.3e\n%s", err, format_matrix(diff))
        raise ConsistencyError(f"R^T N != |E| D (difference {err:.3e})", diff=diff)
    return err


def mfd_inner_product(frame: MimeticFrame, D, tol: float = CONSISTENCY_TOL) -> np.ndarray:
    """Symmetric positive definite flux matrix ``M`` with ``M N = R``."""
    D = np.asarray(D, dtype=float)
    N = frame.N(D)
    R = frame.R()
    check_consistency(frame, D, tol)

    RtN_inv = checked_inverse(R.T @ N, "R^T N", R=R, N=N)
    M0 = R @ RtN_inv @ R.T

    nf = len(frame.areas)
    NtN_inv = checked_inverse(N.T @ N, "N^T N", N=N)
    gamma = trace(M0) / nf
    M1 = gamma * (np.eye(nf) - N @ NtN_inv @ N.T)
    return M0 + M1
