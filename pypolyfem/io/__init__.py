from pypolyfem.io.vtk import load_mesh, save_mesh
from pypolyfem.io.visualization import plot_mesh, plot_field

__all__ = ["load_mesh", "save_mesh", "plot_mesh", "plot_field"]
