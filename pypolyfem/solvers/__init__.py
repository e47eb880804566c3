from pypolyfem.solvers.linear_solver import LinearSolver, LinearSolverParameters, BACKENDS

__all__ = ["LinearSolver", "LinearSolverParameters", "BACKENDS"]
