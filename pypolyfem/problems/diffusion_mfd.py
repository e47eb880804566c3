"""pypolyfem.problems.diffusion_mfd
Mixed mimetic finite differences: cell pressures and face flux densities.

Every boundary face carries the Dirichlet value of the exact solution at
its barycenter; no dof is eliminated.
"""
from __future__ import annotations

import logging

import numpy as np

from pypolyfem.assembly.boundary_conditions import set_boundary_values
from pypolyfem.assembly.residual_assembly import assemble_mfd_residual
from pypolyfem.autodiff.residual import Residual, UnknownRegistry
from pypolyfem.config import DiffusionTensor
from pypolyfem.core.topology import EntityKind
from pypolyfem.problems.base import DiffusionProblem, init_tensor_field
from pypolyfem.problems.exact import ManufacturedSolution, x
from pypolyfem.reporting import max_norm_error

logger = logging.getLogger(__name__)

TENSOR_2D = DiffusionTensor((1.0, 10.0, 0.0))
TENSOR_3D = DiffusionTensor((1.0, 10.0, 1.0, 0.0, 0.0, 0.0))
EXACT = x


def _owned(mesh, kind) -> np.ndarray:
    ents = mesh.entities(kind)
    return np.fromiter((not e.is_ghost for e in ents), dtype=bool, count=len(ents))


class DiffusionMFD(DiffusionProblem):
    name = "diffusion-mfd"

    @classmethod
    def default_exact(cls, dim: int) -> ManufacturedSolution:
        return ManufacturedSolution(EXACT, TENSOR_2D if dim == 2 else TENSOR_3D)

    def init_fields(self):
        mesh, ex = self.mesh, self.exact
        init_tensor_field(mesh, ex)
        set_boundary_values(mesh, ex.u, EntityKind.FACE, only_dirichlet=False)

        fields = mesh.fields
        xc = mesh.cell_barycenters()
        xf = mesh.face_barycenters()
        normals = np.array([f.normal for f in mesh.faces_list])
        fields.create_field("RHS", EntityKind.CELL).values[:] = ex.rhs(xc)
        fields.create_field("SOLUTION", EntityKind.CELL)
        fields.create_field("SOLUTION_EXACT", EntityKind.CELL).values[:] = ex.u(xc)
        fields.create_field("FLUX", EntityKind.FACE)
        fields.create_field("FLUX_EXACT", EntityKind.FACE).values[:] = ex.normal_flux(xf, normals)

    def assemble_global_system(self):
        mesh = self.mesh
        fields = mesh.fields
        self.registry = UnknownRegistry()
        p = self.registry.register_unknown(fields["SOLUTION"])
        u = self.registry.register_unknown(fields["FLUX"])
        first, last = self.registry.enumerate()

        R = Residual("mfd", first, last)
        assemble_mfd_residual(mesh, R, p, u,
                              fields["DIFFUSION_TENSOR"].values,
                              fields["RHS"].values,
                              fields["BOUNDARY_CONDITION"].values)
        return R.jacobian(), R.residual()

    def update_solution(self, dx: np.ndarray):
        self.registry.update(self.registry.values() - dx)

    def compute_errors(self) -> dict:
        f, mesh = self.mesh.fields, self.mesh
        return {
            "solution": max_norm_error(f["SOLUTION"].values, f["SOLUTION_EXACT"].values,
                                       _owned(mesh, EntityKind.CELL)),
            "flux": max_norm_error(f["FLUX"].values, f["FLUX_EXACT"].values,
                                   _owned(mesh, EntityKind.FACE)),
        }
