"""pypolyfem.problems.diffusion_vem
Lowest-order virtual elements on polygons (2D) and polyhedra (3D), serial
or over a simulated partition.
"""
from __future__ import annotations

import logging
from typing import List

import numpy as np
import sympy as sp

from pypolyfem.assembly.boundary_conditions import mark_dirichlet, set_boundary_values, free_mask
from pypolyfem.assembly.residual_assembly import assemble_vem_residual
from pypolyfem.autodiff.residual import Residual, UnknownBlock, UnknownRegistry
from pypolyfem.config import DiffusionTensor
from pypolyfem.core.partition import Distribution, kmeans_partition
from pypolyfem.core.topology import EntityKind
from pypolyfem.problems.base import DiffusionProblem, init_tensor_field
from pypolyfem.problems.exact import ManufacturedSolution, x, y, z
from pypolyfem.reporting import max_norm_error

logger = logging.getLogger(__name__)

TENSOR_2D = DiffusionTensor.isotropic(1.0, dim=2)
EXACT_2D = x
TENSOR_3D = DiffusionTensor((10.0, 2.0, 1.0, 0.0, 0.0, 0.0))
EXACT_3D = sp.sin(sp.pi * x) * sp.sin(sp.pi * y) * sp.sin(sp.pi * z)


def init_vem_fields(mesh, exact: ManufacturedSolution) -> None:
    """Tensor, Dirichlet data, source at centroids and exact nodal values."""
    init_tensor_field(mesh, exact)
    mark_dirichlet(mesh, EntityKind.NODE)
    bc = set_boundary_values(mesh, exact.u, EntityKind.NODE)

    fields = mesh.fields
    centroids = np.array([c.centroid for c in mesh.cells_list]).reshape(-1, mesh.dim)
    fields.create_field("RHS", EntityKind.CELL).values[:] = exact.rhs(centroids)
    fields.create_field("SOLUTION_EXACT", EntityKind.NODE).values[:] = exact.u(mesh.points)
    sol = fields.create_field("SOLUTION", EntityKind.NODE)
    dirichlet = ~free_mask(mesh, EntityKind.NODE)
    sol.values[dirichlet] = bc.values[dirichlet]


def _vem_error(mesh) -> float:
    owned = np.fromiter((not n.is_ghost for n in mesh.nodes_list), dtype=bool, count=mesh.n_nodes)
    f = mesh.fields
    return max_norm_error(f["SOLUTION"].values, f["SOLUTION_EXACT"].values,
                          owned & free_mask(mesh, EntityKind.NODE))


def _assemble_on(mesh, R: Residual, block: UnknownBlock) -> None:
    f = mesh.fields
    assemble_vem_residual(mesh, R, block, f["DIFFUSION_TENSOR"].values,
                          f["RHS"].values, f["BOUNDARY_CONDITION"].values)


class DiffusionVEM(DiffusionProblem):
    name = "diffusion-vem"

    @classmethod
    def default_exact(cls, dim: int) -> ManufacturedSolution:
        if dim == 2:
            return ManufacturedSolution(EXACT_2D, TENSOR_2D)
        return ManufacturedSolution(EXACT_3D, TENSOR_3D)

    def init_fields(self):
        init_vem_fields(self.mesh, self.exact)

    def assemble_global_system(self):
        mesh = self.mesh
        self.registry = UnknownRegistry()
        u = self.registry.register_unknown(mesh.fields["SOLUTION"], free_mask(mesh, EntityKind.NODE))
        first, last = self.registry.enumerate()
        R = Residual("vem", first, last)
        _assemble_on(mesh, R, u)
        return R.jacobian(), R.residual()

    def update_solution(self, dx: np.ndarray):
        self.registry.update(self.registry.values() - dx)

    def compute_errors(self) -> dict:
        return {"solution": _vem_error(self.mesh)}


class PartitionedVEMRun(DiffusionVEM):
    """
    The VEM problem on ``n_parts`` k-means partitions of the mesh.

    Each rank view assembles the rows of the nodes it owns into one shared
    residual; dofs are numbered on the global mesh and bound to every view.
    The solution is gathered back to the global mesh before saving.
    """
    name = "diffusion-vem-partitioned"

    def __init__(self, mesh, n_parts: int = 1, **kwargs):
        super().__init__(mesh, **kwargs)
        self.n_parts = n_parts
        self.distribution = None
        self._bound: List[UnknownBlock] = []

    @property
    def views(self):
        return self.distribution.views

    def init_fields(self):
        mark_dirichlet(self.mesh, EntityKind.NODE)
        self.distribution = Distribution(self.mesh, kmeans_partition(self.mesh, self.n_parts))
        for view in self.views:
            init_vem_fields(view, self.exact)
        owner = self.mesh.fields.create_field("OWNER", EntityKind.CELL)
        owner.values[:] = self.distribution.owner

    def exchange(self, name: str) -> None:
        self.distribution.exchange(name)

    def assemble_global_system(self):
        glob = self.mesh.fields.create_field("SOLUTION", EntityKind.NODE)
        self.registry = UnknownRegistry()
        block = self.registry.register_unknown(glob, free_mask(self.mesh, EntityKind.NODE))
        first, last = self.registry.enumerate()
        R = Residual("vem", first, last)
        self._bound = []
        for rank, view in enumerate(self.views):
            bound = block.bind(view.fields["SOLUTION"])
            self._bound.append(bound)
            _assemble_on(view, R, bound)
            logger.debug("rank %d assembled %d cells", rank, view.n_cells)
        return R.jacobian(), R.residual()

    def update_solution(self, dx: np.ndarray):
        x_new = self.registry.values() - dx
        self.registry.update(x_new)
        for bound in self._bound:
            bound.scatter(x_new)

    def compute_errors(self) -> dict:
        return {"solution": Distribution.allreduce_max(_vem_error(v) for v in self.views)}

    def save_solution(self, path: str) -> None:
        for name in ("DIFFUSION_TENSOR", "BOUNDARY_CONDITION", "RHS", "SOLUTION", "SOLUTION_EXACT"):
            self.distribution.gather(name)
        super().save_solution(path)
