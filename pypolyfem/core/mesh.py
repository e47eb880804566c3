import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple
from scipy.spatial.distance import pdist

from pypolyfem.core.topology import Node, Face, Cell, EntityKind, EntityClass
from pypolyfem.core.fields import FieldStorage
from pypolyfem.exceptions import ElementShapeError


def _signed_area(P: np.ndarray) -> float:
    x, y = P[:, 0], P[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def _newell(P: np.ndarray) -> np.ndarray:
    """Twice the area vector of a (possibly non-planar) 3D polygon."""
    return np.cross(P, np.roll(P, -1, axis=0)).sum(axis=0)


def _polygon_barycenter(P: np.ndarray, normal: np.ndarray) -> np.ndarray:
    c0 = P.mean(axis=0)
    if len(P) == 3:
        return c0
    acc, total = np.zeros(3), 0.0
    for a, b in zip(P, np.roll(P, -1, axis=0)):
        w = 0.5 * float(np.dot(np.cross(a - c0, b - c0), normal))
        acc += w * (c0 + a + b) / 3.0
        total += w
    return acc / total


class Mesh:
    """
    Unstructured polygonal (2D) or polyhedral (3D) mesh.

    Builds the full connectivity from node coordinates and cell
    connectivity: unique faces (edges in 2D) with their back/front cells,
    outward unit normals, areas and barycenters, plus cell volumes,
    barycenters, centroids and diameters.

    Conventions
    -----------
    * 2D cells are stored counter-clockwise; face ``k`` of a polygon joins
      its nodes ``k`` and ``k+1``.
    * 3D cells use the VTK node ordering of their ``cell_type``.
    * Each face's ``normal`` points out of its ``back`` cell; use
      :meth:`orientation` / :meth:`oriented_normal` for the other side.
    """
    # Local-node tuples forming the faces of each 3D cell type.
    _FACE_TABLE = {
        'tetra':      ((0, 1, 2), (0, 1, 3), (1, 2, 3), (0, 2, 3)),
        'pyramid':    ((0, 1, 2, 3), (0, 1, 4), (1, 2, 4), (2, 3, 4), (3, 0, 4)),
        'wedge':      ((0, 1, 2), (3, 4, 5), (0, 1, 4, 3), (1, 2, 5, 4), (2, 0, 3, 5)),
        'hexahedron': ((0, 1, 2, 3), (4, 5, 6, 7), (0, 1, 5, 4),
                       (1, 2, 6, 5), (2, 3, 7, 6), (3, 0, 4, 7)),
    }
    _NODES_PER_TYPE = {'tetra': 4, 'pyramid': 5, 'wedge': 6, 'hexahedron': 8}
    _TYPE_BY_COUNT_3D = {n: t for t, n in _NODES_PER_TYPE.items()}

    def __init__(self,
                 points: np.ndarray,
                 cells: Sequence[Sequence[int]],
                 cell_types: Optional[Sequence[str]] = None,
                 *,
                 global_node_ids: Optional[np.ndarray] = None,
                 global_cell_ids: Optional[np.ndarray] = None):
        points = np.asarray(points, dtype=float)
        if points.ndim != 2 or points.shape[1] not in (2, 3):
            raise ValueError(f"points must have shape (n, 2) or (n, 3), got {points.shape}")
        self.points = points
        self.dim = points.shape[1]

        n_nodes = len(points)
        node_gids = np.arange(n_nodes) if global_node_ids is None else np.asarray(global_node_ids, dtype=int)
        self.nodes_list: List[Node] = [Node(id=i, coords=points[i], gid=int(node_gids[i])) for i in range(n_nodes)]
        self.cells_list: List[Cell] = []
        self.faces_list: List[Face] = []
        self._face_index: Dict[Tuple[int, ...], int] = {}
        self._node_cells: Optional[List[List[int]]] = None

        self._build_topology(cells, cell_types)
        cell_gids = np.arange(self.n_cells) if global_cell_ids is None else np.asarray(global_cell_ids, dtype=int)
        for cell in self.cells_list:
            cell.gid = int(cell_gids[cell.id])
        self._compute_geometry()
        self._mark_boundary()
        self.fields = FieldStorage(self)

    # ------------------------------------------------------------------
    #  Construction
    # ------------------------------------------------------------------
    def _cell_type(self, conn, cell_types, cid) -> str:
        if cell_types is not None:
            return str(cell_types[cid])
        if self.dim == 2:
            return {3: 'triangle', 4: 'quad'}.get(len(conn), 'polygon')
        if len(conn) not in self._TYPE_BY_COUNT_3D:
            raise ElementShapeError(f"Cannot infer 3D cell type of cell {cid} with {len(conn)} nodes.")
        return self._TYPE_BY_COUNT_3D[len(conn)]

    def _local_faces(self, cid: int, conn: Tuple[int, ...], ctype: str) -> Tuple[Tuple[int, ...], List[Tuple[int, ...]]]:
        if self.dim == 2:
            if len(conn) < 3:
                raise ElementShapeError(f"Cell {cid} has only {len(conn)} nodes.")
            if _signed_area(self.points[list(conn)]) < 0.0:
                conn = conn[::-1]
            n = len(conn)
            return conn, [(conn[i], conn[(i + 1) % n]) for i in range(n)]

        table = self._FACE_TABLE.get(ctype)
        if table is None:
            raise ElementShapeError(f"Unsupported 3D cell type '{ctype}' (cell {cid}).")
        if len(conn) != self._NODES_PER_TYPE[ctype]:
            raise ElementShapeError(f"Cell {cid} of type '{ctype}' has {len(conn)} nodes.")
        centre = self.points[list(conn)].mean(axis=0)
        faces = []
        for loc in table:
            fn = tuple(conn[i] for i in loc)
            P = self.points[list(fn)]
            if np.dot(_newell(P), P.mean(axis=0) - centre) < 0.0:
                fn = fn[::-1]
            faces.append(fn)
        return conn, faces

    def _build_topology(self, cells, cell_types):
        """Creates Cell objects and the unique faces shared between them."""
        for cid, raw in enumerate(cells):
            conn = tuple(int(n) for n in raw)
            ctype = self._cell_type(conn, cell_types, cid)
            conn, local_faces = self._local_faces(cid, conn, ctype)

            face_ids = []
            for fn in local_faces:
                key = tuple(sorted(fn))
                fid = self._face_index.get(key)
                if fid is None:
                    fid = len(self.faces_list)
                    self._face_index[key] = fid
                    self.faces_list.append(Face(id=fid, nodes=fn, back=cid, front=None,
                                                normal=None, area=0.0, barycenter=None, gid=fid))
                else:
                    face = self.faces_list[fid]
                    if face.front is not None or face.back == cid:
                        raise ValueError(f"Face {key} is shared by more than two cells.")
                    face.front = cid
                face_ids.append(fid)
            self.cells_list.append(Cell(id=cid, nodes=conn, cell_type=ctype, faces=tuple(face_ids)))

    def _compute_geometry(self):
        for face in self.faces_list:
            P = self.points[list(face.nodes)]
            if self.dim == 2:
                d = P[1] - P[0]
                length = float(np.linalg.norm(d))
                face.area = length
                face.barycenter = P.mean(axis=0)
                face.normal = np.array([d[1], -d[0]]) / length if length > 1e-14 else np.zeros(2)
            else:
                nvec = _newell(P)
                twice_area = float(np.linalg.norm(nvec))
                face.area = 0.5 * twice_area
                face.normal = nvec / twice_area if twice_area > 1e-14 else np.zeros(3)
                face.barycenter = _polygon_barycenter(P, face.normal)

        for cell in self.cells_list:
            P = self.points[list(cell.nodes)]
            cell.centroid = P.mean(axis=0)
            cell.diameter = float(pdist(P).max())
            if self.dim == 2:
                x, y = P[:, 0], P[:, 1]
                xn, yn = np.roll(x, -1), np.roll(y, -1)
                cross = x * yn - xn * y
                area = 0.5 * cross.sum()
                cell.volume = float(area)
                cell.barycenter = np.array([((x + xn) * cross).sum(), ((y + yn) * cross).sum()]) / (6.0 * area)
            else:
                self._polyhedron_volume(cell)

    def _polyhedron_volume(self, cell: Cell):
        """Volume and barycenter by fanning every face into tetrahedra."""
        c0 = cell.centroid
        vol, acc = 0.0, np.zeros(3)
        for fid in cell.faces:
            face = self.faces_list[fid]
            Q = self.points[list(face.nodes)]
            if face.back != cell.id:
                Q = Q[::-1]
            fc = Q.mean(axis=0)
            for a, b in zip(Q, np.roll(Q, -1, axis=0)):
                v = float(np.dot(fc - c0, np.cross(a - c0, b - c0))) / 6.0
                vol += v
                acc += v * (c0 + fc + a + b) / 4.0
        cell.volume = vol
        cell.barycenter = acc / vol

    def _mark_boundary(self):
        for face in self.faces_list:
            face.is_boundary = face.front is None
            if face.is_boundary:
                for nid in face.nodes:
                    self.nodes_list[nid].is_boundary = True

    # ------------------------------------------------------------------
    #  Public API
    # ------------------------------------------------------------------
    @property
    def n_nodes(self) -> int: return len(self.nodes_list)
    @property
    def n_faces(self) -> int: return len(self.faces_list)
    @property
    def n_cells(self) -> int: return len(self.cells_list)

    def node(self, node_id: int) -> Node:
        return self.nodes_list[node_id]

    def face(self, face_id: int) -> Face:
        """Return the Face object corresponding to a local `face_id`."""
        if not 0 <= face_id < len(self.faces_list):
            raise IndexError(f"Face ID {face_id} out of range.")
        return self.faces_list[face_id]

    def cell(self, cell_id: int) -> Cell:
        return self.cells_list[cell_id]

    def entities(self, kind: EntityKind) -> list:
        return {EntityKind.NODE: self.nodes_list,
                EntityKind.FACE: self.faces_list,
                EntityKind.CELL: self.cells_list}[kind]

    def global_ids(self, kind: EntityKind) -> np.ndarray:
        return np.fromiter((e.gid for e in self.entities(kind)), dtype=int)

    def find_face(self, node_ids: Sequence[int]) -> Optional[int]:
        return self._face_index.get(tuple(sorted(int(n) for n in node_ids)))

    def orientation(self, face_id: int, cell_id: int) -> float:
        """+1 if the face normal points out of *cell_id*, -1 if it points in."""
        face = self.faces_list[face_id]
        if face.back == cell_id:
            return 1.0
        if face.front == cell_id:
            return -1.0
        raise ValueError(f"Face {face_id} does not bound cell {cell_id}.")

    def oriented_normal(self, face_id: int, cell_id: int) -> np.ndarray:
        return self.orientation(face_id, cell_id) * self.faces_list[face_id].normal

    def node_coords(self, cell_id: int) -> np.ndarray:
        return self.points[list(self.cells_list[cell_id].nodes)]

    def node_cells(self) -> List[List[int]]:
        """Cells incident to every node (computed once)."""
        if self._node_cells is None:
            self._node_cells = [[] for _ in range(self.n_nodes)]
            for cell in self.cells_list:
                for nid in cell.nodes:
                    self._node_cells[nid].append(cell.id)
        return self._node_cells

    def neighbors(self) -> List[List[int]]:
        nbrs: List[List[int]] = [[] for _ in range(self.n_cells)]
        for face in self.faces_list:
            if face.front is not None:
                nbrs[face.back].append(face.front)
                nbrs[face.front].append(face.back)
        return nbrs

    def boundary_nodes(self) -> np.ndarray:
        return np.fromiter((n.id for n in self.nodes_list if n.is_boundary), dtype=int)

    def boundary_faces(self) -> np.ndarray:
        return np.fromiter((f.id for f in self.faces_list if f.is_boundary), dtype=int)

    def volumes(self) -> np.ndarray:
        return np.array([c.volume for c in self.cells_list])

    def cell_barycenters(self) -> np.ndarray:
        return np.array([c.barycenter for c in self.cells_list]).reshape(-1, self.dim)

    def face_barycenters(self) -> np.ndarray:
        return np.array([f.barycenter for f in self.faces_list]).reshape(-1, self.dim)

    def is_ghost(self, kind: EntityKind, local_id: int) -> bool:
        return bool(self.entities(kind)[local_id].status & EntityClass.GHOST)

    def submesh(self, cell_ids: Sequence[int]) -> "Mesh":
        """
        Mesh made of the given cells, keeping global ids and the boundary
        flags of this mesh (faces cut by the selection are not boundary).
        """
        cell_ids = np.unique(np.asarray(cell_ids, dtype=int))
        used = sorted({nid for cid in cell_ids for nid in self.cells_list[cid].nodes})
        local = {nid: i for i, nid in enumerate(used)}
        sub = Mesh(self.points[used],
                   [[local[n] for n in self.cells_list[cid].nodes] for cid in cell_ids],
                   [self.cells_list[cid].cell_type for cid in cell_ids],
                   global_node_ids=[self.nodes_list[n].gid for n in used],
                   global_cell_ids=[self.cells_list[cid].gid for cid in cell_ids])
        for face in sub.faces_list:
            parent = self.faces_list[self._face_index[tuple(sorted(used[n] for n in face.nodes))]]
            face.gid = parent.gid
            face.is_boundary = parent.is_boundary
        for node in sub.nodes_list:
            node.is_boundary = self.nodes_list[used[node.id]].is_boundary
        return sub

    def __repr__(self):
        return (f"<Mesh dim={self.dim}, n_nodes={self.n_nodes}, "
                f"n_faces={self.n_faces}, n_cells={self.n_cells}>")
