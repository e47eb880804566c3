"""pypolyfem.problems.poisson_fem
P1 finite elements on triangles, Dirichlet data on the whole boundary.
"""
from __future__ import annotations

import logging

import numpy as np

from pypolyfem.assembly.boundary_conditions import mark_dirichlet, set_boundary_values, free_mask
from pypolyfem.assembly.global_matrix import assemble
from pypolyfem.config import DiffusionTensor, tensor_from_components
from pypolyfem.core.topology import EntityKind
from pypolyfem.fem.stiffness import element_matrices
from pypolyfem.problems.base import DiffusionProblem, init_tensor_field
from pypolyfem.problems.exact import ManufacturedSolution, x
from pypolyfem.reporting import max_norm_error

logger = logging.getLogger(__name__)

TENSOR = DiffusionTensor((100.0, 1.0, 0.0))
EXACT = x**2


class PoissonFEM(DiffusionProblem):
    name = "poisson-fem"

    @classmethod
    def default_exact(cls, dim: int) -> ManufacturedSolution:
        if dim != 2:
            raise ValueError("P1 triangles are two-dimensional")
        return ManufacturedSolution(EXACT, TENSOR)

    def init_fields(self):
        mesh, ex = self.mesh, self.exact
        init_tensor_field(mesh, ex)
        mark_dirichlet(mesh, EntityKind.NODE)
        bc = set_boundary_values(mesh, ex.u, EntityKind.NODE)

        fields = mesh.fields
        fields.create_field("RHS", EntityKind.NODE).values[:] = ex.rhs(mesh.points)
        fields.create_field("SOLUTION_EXACT", EntityKind.NODE).values[:] = ex.u(mesh.points)
        sol = fields.create_field("SOLUTION", EntityKind.NODE)
        dirichlet = ~free_mask(mesh, EntityKind.NODE)
        sol.values[dirichlet] = bc.values[dirichlet]

    def assemble_global_system(self):
        mesh = self.mesh
        tensor = mesh.fields["DIFFUSION_TENSOR"].values
        f = mesh.fields["RHS"].values

        def local_cb(eid):
            return element_matrices(mesh.node_coords(eid), tensor_from_components(tensor[eid]),
                                    f[list(mesh.cell(eid).nodes)])

        A, b, self._dof = assemble(mesh, local_cb, mesh.fields["BOUNDARY_CONDITION"].values)
        return A, b

    def update_solution(self, x: np.ndarray):
        free = self._dof >= 0
        self.mesh.fields["SOLUTION"].values[free] = x[self._dof[free]]

    def compute_errors(self) -> dict:
        f = self.mesh.fields
        return {"solution": max_norm_error(f["SOLUTION"].values, f["SOLUTION_EXACT"].values,
                                           free_mask(self.mesh, EntityKind.NODE))}
