import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import meshio

from pypolyfem.core.mesh import Mesh
from pypolyfem.core.topology import EntityKind

logger = logging.getLogger(__name__)

_VOLUME_TYPES = ("tetra", "hexahedron", "wedge", "pyramid")
_SURFACE_TYPES = ("triangle", "quad")


def _is_surface(cell_type: str) -> bool:
    return cell_type in _SURFACE_TYPES or cell_type.startswith("polygon")


def load_mesh(filename: str) -> Mesh:
    """
    Reads any mesh meshio understands.

    The mesh is 3D when it holds volumetric cells, otherwise 2D (z dropped).
    Lower-dimensional blocks (boundary lines, surface patches of a 3D
    mesh, vertices) are ignored and points no cell refers to are removed.
    """
    m = meshio.read(filename)
    blocks = [b for b in m.cells if b.type in _VOLUME_TYPES]
    dim = 3
    if not blocks:
        blocks = [b for b in m.cells if _is_surface(b.type)]
        dim = 2
    if not blocks:
        raise ValueError(f"{filename}: no triangle, quad, polygon or volumetric cells found")

    cells: List[List[int]] = []
    types: List[str] = []
    for block in blocks:
        for conn in block.data:
            cells.append([int(n) for n in conn])
            types.append(block.type)

    used = np.unique(np.concatenate([np.asarray(c) for c in cells]))
    remap = np.full(len(m.points), -1, dtype=int)
    remap[used] = np.arange(len(used))
    cells = [remap[c].tolist() for c in cells]
    points = np.asarray(m.points, dtype=float)[used, :dim]

    mesh = Mesh(points, cells, types if dim == 3 else None)
    logger.info("Loaded %s: %r", filename, mesh)
    return mesh


def _meshio_type(n_nodes: int, dim: int, cell_type: Optional[str] = None) -> str:
    if dim == 3 and cell_type is not None:
        return cell_type
    if dim == 1:
        return "line"
    return {3: "triangle", 4: "quad"}.get(n_nodes, "polygon")


def _blocks(conns: Sequence[Tuple[int, ...]], types: Sequence[str]):
    """Groups connectivities into homogeneous blocks; returns blocks and the entity order."""
    groups: Dict[Tuple[str, int], List[int]] = {}
    for i, (conn, t) in enumerate(zip(conns, types)):
        groups.setdefault((t, len(conn)), []).append(i)
    blocks, order = [], []
    for (t, _), ids in groups.items():
        blocks.append(meshio.CellBlock(t, np.array([conns[i] for i in ids], dtype=int)))
        order.append(np.asarray(ids, dtype=int))
    return blocks, order


def _pad_vector(arr: np.ndarray) -> np.ndarray:
    if arr.ndim == 2 and arr.shape[1] == 2:
        out = np.zeros((arr.shape[0], 3))
        out[:, :2] = arr
        return out
    return arr


def save_mesh(mesh: Mesh, filename: str, names: Optional[Sequence[str]] = None) -> None:
    """
    Exports the mesh and its fields to a VTK file.

    Node fields become point data, cell fields cell data. Face fields are
    written as cell data of an extra block of face cells; every other block
    is padded with NaN for them (and vice versa).
    """
    points_3d = np.pad(mesh.points, ((0, 0), (0, 3 - mesh.dim)), constant_values=0)

    fields = mesh.fields
    names = list(fields) if names is None else list(names)
    node_f = [n for n in names if fields[n].kind == EntityKind.NODE]
    cell_f = [n for n in names if fields[n].kind == EntityKind.CELL]
    face_f = [n for n in names if fields[n].kind == EntityKind.FACE]

    cblocks, corder = _blocks([c.nodes for c in mesh.cells_list],
                              [_meshio_type(len(c.nodes), mesh.dim, c.cell_type) for c in mesh.cells_list])
    fblocks, forder = [], []
    if face_f:
        fblocks, forder = _blocks([f.nodes for f in mesh.faces_list],
                                  [_meshio_type(len(f.nodes), mesh.dim - 1) for f in mesh.faces_list])

    def _per_block(values: Optional[np.ndarray], order, ncomp):
        data = []
        for ids in order:
            if values is None:
                shape = (len(ids),) if ncomp == 1 else (len(ids), ncomp)
                data.append(np.full(shape, np.nan))
            else:
                data.append(values[ids])
        return data

    cell_data = {}
    for name in cell_f + face_f:
        fld = fields[name]
        vals = _pad_vector(fld.values) if fld.ncomp == 2 else fld.values
        ncomp = 1 if vals.ndim == 1 else vals.shape[1]
        on_cells = fld.kind == EntityKind.CELL
        cell_data[name] = (_per_block(vals if on_cells else None, corder, ncomp)
                           + _per_block(None if on_cells else vals, forder, ncomp))

    point_data = {name: _pad_vector(fields[name].values) for name in node_f}

    out = meshio.Mesh(points_3d, cblocks + fblocks, point_data=point_data, cell_data=cell_data)
    out.write(filename, file_format="vtk")
    logger.info("Solution exported to %s", filename)
