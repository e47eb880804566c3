"""pypolyfem.cli
Console entry points: one command per discretization family.

Each command takes exactly one argument, the mesh file, and writes
``res.vtk`` into the working directory after a successful solve.
"""
import logging
import os
import sys
from typing import Callable, Optional, Sequence

import meshio

from pypolyfem.exceptions import LinearSolverError, PreconditionError
from pypolyfem.io.vtk import load_mesh
from pypolyfem.problems.diffusion_mfd import DiffusionMFD
from pypolyfem.problems.diffusion_vem import DiffusionVEM, PartitionedVEMRun
from pypolyfem.problems.poisson_fem import PoissonFEM

logger = logging.getLogger("pypolyfem")

OUTPUT = "res.vtk"
PARTITIONS_ENV = "PYPOLYFEM_PARTITIONS"


def _partitions() -> int:
    raw = os.getenv(PARTITIONS_ENV, "1")
    try:
        n = int(raw)
    except ValueError:
        raise ValueError(f"{PARTITIONS_ENV} must be an integer, got '{raw}'") from None
    if n < 1:
        raise ValueError(f"{PARTITIONS_ENV} must be positive, got {n}")
    return n


def _run(prog: str, argv: Optional[Sequence[str]], make_problem: Callable) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print(f"Usage: {prog} <mesh_file>")
        return 1
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        mesh = load_mesh(args[0])
        problem = make_problem(mesh)
        problem.run(OUTPUT)
    except (PreconditionError, LinearSolverError, meshio.ReadError, ValueError, OSError) as exc:
        logger.error("%s: %s", prog, exc)
        return 1
    return 0


def poisson_fem(argv=None) -> int:
    return _run("pypolyfem-poisson-fem", argv, PoissonFEM)


def diffusion_mfd(argv=None) -> int:
    return _run("pypolyfem-diffusion-mfd", argv, DiffusionMFD)


def diffusion_vem(argv=None) -> int:
    return _run("pypolyfem-diffusion-vem", argv, DiffusionVEM)


def diffusion_vem3d(argv=None) -> int:
    return _run("pypolyfem-diffusion-vem3d", argv,
                lambda mesh: PartitionedVEMRun(mesh, n_parts=_partitions()))

