"""Example: anisotropic Poisson with P1 elements on a jittered Delaunay mesh"""
import logging

import numpy as np
import sympy as sp
import matplotlib.pyplot as plt

from pypolyfem.config import DiffusionTensor
from pypolyfem.core import Mesh
from pypolyfem.problems import PoissonFEM, ManufacturedSolution
from pypolyfem.problems.exact import x, y
from pypolyfem.utils.meshgen import delaunay_rectangle
from pypolyfem.io import plot_field

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

exact = ManufacturedSolution(sp.sin(sp.pi * x) * sp.exp(y), DiffusionTensor((100.0, 1.0, 0.0)))
for n in (10, 20, 40):
    mesh = Mesh(*delaunay_rectangle(1.0, 1.0, n, n, jitter=0.2))
    report = PoissonFEM(mesh, exact).run()
    print(f"n = {n:3d}   |err|_C = {report.error:.3e}")

fig, ax = plt.subplots(1, 2, figsize=(10, 4))
plot_field(mesh, "SOLUTION", ax=ax[0])
mesh.fields.create_field("ERROR", mesh.fields["SOLUTION"].kind).values[:] = np.abs(
    mesh.fields["SOLUTION"].values - mesh.fields["SOLUTION_EXACT"].values)
plot_field(mesh, "ERROR", ax=ax[1], edges=False)
plt.show()
