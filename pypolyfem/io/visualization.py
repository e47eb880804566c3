"""pypolyfem.io.visualization"""
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection, PolyCollection

from pypolyfem.core.topology import EntityKind

_EDGE_COLOR = {
    "boundary": "black",
    "ghost": "blue",
    "default": "0.6",
}


def _edge_tag(mesh, face):
    if face.is_ghost:
        return "ghost"
    if face.is_boundary:
        return "boundary"
    return "default"


def plot_mesh(mesh, *, ax=None, show=False, plot_nodes=False):
    """Draw the edges of a 2D mesh, boundary in black and ghost edges in blue."""
    if mesh.dim != 2:
        raise ValueError("plot_mesh only draws 2D meshes")
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))
    by_tag = {}
    for face in mesh.faces_list:
        by_tag.setdefault(_edge_tag(mesh, face), []).append(mesh.points[list(face.nodes)])
    for tag, segs in by_tag.items():
        ax.add_collection(LineCollection(segs, colors=_EDGE_COLOR[tag],
                                         linewidths=1.5 if tag == "boundary" else 0.8))
    if plot_nodes:
        ax.plot(mesh.points[:, 0], mesh.points[:, 1], "k.", markersize=3)
    ax.set_aspect("equal")
    ax.autoscale_view()
    if show:
        plt.show()
    return ax


def plot_field(mesh, name, *, ax=None, show=False, cmap="viridis", edges=True):
    """
    Colour plot of a scalar node or cell field of a 2D mesh.

    Node fields are drawn with Gouraud shading on a fan triangulation of
    the cells, cell fields as flat polygons.
    """
    if mesh.dim != 2:
        raise ValueError("plot_field only draws 2D meshes")
    fld = mesh.fields[name]
    if fld.ncomp != 1:
        raise ValueError(f"Field '{name}' is not scalar")
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    if fld.kind == EntityKind.NODE:
        tris = [(c.nodes[0], c.nodes[k], c.nodes[k + 1])
                for c in mesh.cells_list for k in range(1, len(c.nodes) - 1)]
        art = ax.tripcolor(mesh.points[:, 0], mesh.points[:, 1], np.array(tris), fld.values,
                           shading="gouraud", cmap=cmap)
    elif fld.kind == EntityKind.CELL:
        polys = [mesh.node_coords(c.id) for c in mesh.cells_list]
        art = PolyCollection(polys, array=fld.values, cmap=cmap,
                             edgecolors="k" if edges else "face", linewidths=0.3)
        ax.add_collection(art)
        ax.autoscale_view()
    else:
        raise ValueError("plot_field draws node or cell fields")

    plt.colorbar(art, ax=ax, label=name)
    ax.set_aspect("equal")
    ax.set_title(name)
    if show:
        plt.show()
    return ax
