"""Example: mixed mimetic finite differences on perturbed hexagons"""
import logging

import sympy as sp
import matplotlib.pyplot as plt

from pypolyfem.config import DiffusionTensor
from pypolyfem.core import Mesh
from pypolyfem.problems import DiffusionMFD, ManufacturedSolution
from pypolyfem.problems.exact import x, y
from pypolyfem.utils.meshgen import hexagonal_polygons
from pypolyfem.io import plot_field, save_mesh

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

exact = ManufacturedSolution(sp.cos(sp.pi * x) * sp.cos(2 * sp.pi * y), DiffusionTensor((1.0, 10.0, 0.0)))
for n in (8, 16, 32):
    mesh = Mesh(*hexagonal_polygons(1.0, 1.0, nx=n, ny=n, jitter=0.2))
    errors = DiffusionMFD(mesh, exact).run().errors
    print(f"n = {n:3d}   pressure {errors['solution']:.3e}   flux {errors['flux']:.3e}")

save_mesh(mesh, "mfd_hexagons.vtk")
plot_field(mesh, "SOLUTION", show=False)
plt.show()
