"""
pypolyfem: diffusion on unstructured polytopal meshes.

Subpackages
-----------
- core:      mesh topology, geometry, field storage, partitioning
- linalg:    small dense linear-algebra helpers
- fem:       local operators (P1 stiffness, mimetic FD, virtual elements)
- autodiff:  expression trees, unknown registry and residual accumulation
- assembly:  global assembly with Dirichlet elimination
- solvers:   sparse linear solvers
- problems:  drivers per discretization family
- io:        VTK input/output and plotting
"""

__all__ = ["core", "linalg", "fem", "autodiff", "assembly", "solvers", "problems", "io", "utils"]
__version__ = "0.1.0"
