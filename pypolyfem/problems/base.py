"""pypolyfem.problems.base
Common driver pipeline: init -> assemble -> solve -> update -> errors -> save.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from pypolyfem.core.topology import EntityKind
from pypolyfem.exceptions import LinearSolverError
from pypolyfem.io.vtk import save_mesh
from pypolyfem.problems.exact import ManufacturedSolution
from pypolyfem.reporting import SolveReport, Timings
from pypolyfem.solvers.linear_solver import LinearSolver, LinearSolverParameters

logger = logging.getLogger(__name__)


def init_tensor_field(mesh, exact: ManufacturedSolution):
    """DIFFUSION_TENSOR on every cell."""
    comps = exact.tensor.components
    fld = mesh.fields.create_field("DIFFUSION_TENSOR", EntityKind.CELL, ncomp=len(comps))
    fld.values[:] = comps
    return fld


class DiffusionProblem:
    """
    Base class of the drivers.

    Subclasses provide :meth:`default_exact`, :meth:`init_fields`,
    :meth:`assemble_global_system`, :meth:`update_solution` and
    :meth:`compute_errors`. The solver always starts from a zero vector;
    :meth:`update_solution` decides how the result is applied (a solution
    of ``A x = b``, or a correction ``dx`` of ``J dx = R(x0)`` giving
    ``x = x0 - dx``).
    """
    name = "diffusion"

    def __init__(self, mesh, exact: Optional[ManufacturedSolution] = None,
                 solver_params: Optional[LinearSolverParameters] = None,
                 timings: Optional[Timings] = None):
        self.mesh = mesh
        self.exact = exact if exact is not None else self.default_exact(mesh.dim)
        if self.exact.dim != mesh.dim:
            raise ValueError(f"{self.exact.dim}D solution on a {mesh.dim}D mesh")
        self.solver = LinearSolver(solver_params)
        self.timings = timings or Timings()
        self.report = SolveReport()
        self._initialized = False

    # -- hooks ---------------------------------------------------------------
    @classmethod
    def default_exact(cls, dim: int) -> ManufacturedSolution:
        raise NotImplementedError

    def init_fields(self) -> None:
        raise NotImplementedError

    def assemble_global_system(self) -> Tuple[object, np.ndarray]:
        raise NotImplementedError

    def update_solution(self, x: np.ndarray) -> None:
        raise NotImplementedError

    def compute_errors(self) -> dict:
        raise NotImplementedError

    def exchange(self, name: str) -> None:
        """Refresh ghost copies of field *name* (no-op on a serial mesh)."""
        self.mesh.fields.exchange(name)

    # -- pipeline ------------------------------------------------------------
    def init_problem(self) -> None:
        with self.timings.measure("init"):
            self.init_fields()
        self.exchange("DIFFUSION_TENSOR")
        self._initialized = True
        logger.info("%s: initialized on %r", self.name, self.mesh)

    def solve_system(self) -> SolveReport:
        if not self._initialized:
            self.init_problem()
        with self.timings.measure("assemble"):
            A, rhs = self.assemble_global_system()
        with self.timings.measure("precond"):
            self.solver.set_matrix(A)
        x = np.zeros(len(rhs))
        with self.timings.measure("solve"):
            ok = self.solver.solve(rhs, x)

        rep = self.report
        rep.solved = ok
        rep.iterations = self.solver.iterations
        rep.residual_norm = self.solver.residual_norm
        if not ok:
            raise LinearSolverError(self.solver.reason, self.solver.residual_norm)

        with self.timings.measure("update"):
            self.update_solution(x)
            self.exchange("SOLUTION")
        rep.errors = self.compute_errors()
        rep.log(logger)
        return rep

    def save_solution(self, path: str) -> None:
        with self.timings.measure("io"):
            save_mesh(self.mesh, path)

    def run(self, path: Optional[str] = None) -> SolveReport:
        """Full pipeline; *path* (if given) is only written after a successful solve."""
        self.init_problem()
        report = self.solve_system()
        if path is not None:
            self.save_solution(path)
        self.timings.log(logger)
        return report
