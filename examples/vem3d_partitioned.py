"""Example: 3D virtual elements split over k-means partitions"""
import logging
import sys

from pypolyfem.core import Mesh
from pypolyfem.problems import DiffusionVEM, PartitionedVEMRun
from pypolyfem.utils.meshgen import structured_hexahedra, kuhn_tetrahedra

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

n_parts = int(sys.argv[1]) if len(sys.argv) > 1 else 4

for make in (structured_hexahedra, kuhn_tetrahedra):
    mesh = Mesh(*make(1.0, 1.0, 1.0, nx=8, ny=8, nz=8))
    serial = DiffusionVEM(mesh).run()
    run = PartitionedVEMRun(Mesh(*make(1.0, 1.0, 1.0, nx=8, ny=8, nz=8)), n_parts=n_parts)
    part = run.run(f"vem3d_{make.__name__}.vtk")
    print(f"{make.__name__:22s} serial {serial.error:.3e}   {n_parts} parts {part.error:.3e}")
    print(run.timings.table())
