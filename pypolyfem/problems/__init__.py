from pypolyfem.problems.exact import ManufacturedSolution
from pypolyfem.problems.base import DiffusionProblem
from pypolyfem.problems.poisson_fem import PoissonFEM
from pypolyfem.problems.diffusion_mfd import DiffusionMFD
from pypolyfem.problems.diffusion_vem import DiffusionVEM, PartitionedVEMRun

__all__ = ["ManufacturedSolution", "DiffusionProblem", "PoissonFEM", "DiffusionMFD",
           "DiffusionVEM", "PartitionedVEMRun"]
