"""pypolyfem.utils.meshgen
Mesh generators for quick tests and examples.

Every generator returns ``(points, cells)`` ready for
:class:`pypolyfem.core.mesh.Mesh`.
"""
import numpy as np
from scipy.spatial import Delaunay
from typing import List, Optional, Tuple
import numba

__all__ = ["delaunay_rectangle", "structured_triangles", "structured_quads", "hexagonal_polygons",
           "structured_hexahedra", "kuhn_tetrahedra", "jitter_interior"]


@numba.njit(cache=True)
def _grid_points(Lx, Ly, nx, ny):
    pts = np.empty(((nx + 1) * (ny + 1), 2))
    for j in range(ny + 1):
        for i in range(nx + 1):
            pts[j * (nx + 1) + i, 0] = Lx * i / nx
            pts[j * (nx + 1) + i, 1] = Ly * j / ny
    return pts


@numba.njit(cache=True)
def _grid_quads(nx, ny):
    quads = np.empty((nx * ny, 4), dtype=np.int64)
    for j in range(ny):
        for i in range(nx):
            bl = j * (nx + 1) + i
            quads[j * nx + i, 0] = bl
            quads[j * nx + i, 1] = bl + 1
            quads[j * nx + i, 2] = bl + nx + 2
            quads[j * nx + i, 3] = bl + nx + 1
    return quads


@numba.njit(cache=True)
def _split_quads(quads, alternate):
    """Two CCW triangles per quad; *alternate* flips the diagonal in a checkerboard."""
    tris = np.empty((2 * quads.shape[0], 3), dtype=np.int64)
    for e in range(quads.shape[0]):
        flip = alternate and e % 2 == 1
        # local quad corners of the two triangles
        s0, s1, s2 = (0, 1, 3) if flip else (0, 1, 2)
        t0, t1, t2 = (1, 2, 3) if flip else (0, 2, 3)
        tris[2 * e, 0] = quads[e, s0]
        tris[2 * e, 1] = quads[e, s1]
        tris[2 * e, 2] = quads[e, s2]
        tris[2 * e + 1, 0] = quads[e, t0]
        tris[2 * e + 1, 1] = quads[e, t1]
        tris[2 * e + 1, 2] = quads[e, t2]
    return tris


@numba.njit(cache=True)
def _grid_points_3d(Lx, Ly, Lz, nx, ny, nz):
    pts = np.empty(((nx + 1) * (ny + 1) * (nz + 1), 3))
    for k in range(nz + 1):
        for j in range(ny + 1):
            for i in range(nx + 1):
                p = (k * (ny + 1) + j) * (nx + 1) + i
                pts[p, 0] = Lx * i / nx
                pts[p, 1] = Ly * j / ny
                pts[p, 2] = Lz * k / nz
    return pts


@numba.njit(cache=True)
def _cube_corners(nx, ny, nz):
    """Node of corner ``i + 2j + 4k`` of every cube."""
    corners = np.empty((nx * ny * nz, 8), dtype=np.int64)
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                e = (k * ny + j) * nx + i
                for c in range(8):
                    di, dj, dk = c % 2, (c // 2) % 2, c // 4
                    corners[e, c] = ((k + dk) * (ny + 1) + (j + dj)) * (nx + 1) + (i + di)
    return corners


# VTK hexahedron ordering in terms of cube corners i + 2j + 4k
_HEX_FROM_CORNERS = np.array([0, 1, 3, 2, 4, 5, 7, 6])
# Kuhn subdivision of the unit cube along the main diagonal 0-7
_KUHN = np.array([[0, 1, 3, 7], [0, 1, 5, 7], [0, 2, 3, 7],
                  [0, 2, 6, 7], [0, 4, 5, 7], [0, 4, 6, 7]])


def jitter_interior(points: np.ndarray, amount: float, h: float, seed: Optional[int] = 0) -> np.ndarray:
    """Moves points off the bounding box by up to ``amount * h`` per coordinate."""
    pts = np.array(points, dtype=float)
    if amount <= 0.0:
        return pts
    lo, hi = pts.min(axis=0), pts.max(axis=0)
    tol = 1e-12 * max(1.0, float(np.max(hi - lo)))
    interior = np.all((pts > lo + tol) & (pts < hi - tol), axis=1)
    rng = np.random.default_rng(seed)
    pts[interior] += amount * h * rng.uniform(-1.0, 1.0, size=(int(interior.sum()), pts.shape[1]))
    return pts


def delaunay_rectangle(length: float, height: float, nx: int = 10, ny: int = 10,
                       jitter: float = 0.0, seed: Optional[int] = 0):
    x = np.linspace(0.0, length, nx)
    y = np.linspace(0.0, height, ny)
    X, Y = np.meshgrid(x, y)
    pts = np.column_stack([X.ravel(), Y.ravel()])
    h = min(length / max(nx - 1, 1), height / max(ny - 1, 1))
    pts = jitter_interior(pts, jitter, h, seed)
    elems = Delaunay(pts).simplices.copy()

    # make triangles CCW
    a, b, c = pts[elems[:, 0]], pts[elems[:, 1]], pts[elems[:, 2]]
    cw = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0]) < 0
    elems[cw, 1], elems[cw, 2] = elems[cw, 2], elems[cw, 1].copy()
    return pts, elems


def structured_quads(Lx: float, Ly: float, *, nx: int, ny: int, jitter: float = 0.0, seed: Optional[int] = 0):
    pts = jitter_interior(_grid_points(float(Lx), float(Ly), nx, ny), jitter, min(Lx / nx, Ly / ny), seed)
    return pts, _grid_quads(nx, ny)


def structured_triangles(Lx: float, Ly: float, *, nx: int, ny: int, alternate: bool = False,
                         jitter: float = 0.0, seed: Optional[int] = 0):
    pts, quads = structured_quads(Lx, Ly, nx=nx, ny=ny, jitter=jitter, seed=seed)
    return pts, _split_quads(quads, alternate)


def hexagonal_polygons(Lx: float, Ly: float, *, nx: int, ny: int, jitter: float = 0.0,
                       seed: Optional[int] = 0) -> Tuple[np.ndarray, List[List[int]]]:
    """
    Six-node polygons: every grid quad gets an extra node at the midpoint
    of its left and right edges.
    """
    grid = _grid_points(float(Lx), float(Ly), nx, ny)
    quads = _grid_quads(nx, ny)
    n_grid = len(grid)
    # midpoint of the vertical edge (i, j)-(i, j+1)
    mids = np.array([[Lx * i / nx, Ly * (j + 0.5) / ny] for j in range(ny) for i in range(nx + 1)])
    pts = np.vstack([grid, mids.reshape(-1, 2)])
    pts = jitter_interior(pts, jitter, min(Lx / nx, Ly / ny), seed)

    cells = []
    for j in range(ny):
        for i in range(nx):
            bl, br, tr, tl = quads[j * nx + i]
            left = n_grid + j * (nx + 1) + i
            cells.append([int(bl), int(br), left + 1, int(tr), int(tl), left])
    return pts, cells


def structured_hexahedra(Lx: float, Ly: float, Lz: float, *, nx: int, ny: int, nz: int,
                         jitter: float = 0.0, seed: Optional[int] = 0):
    pts = _grid_points_3d(float(Lx), float(Ly), float(Lz), nx, ny, nz)
    pts = jitter_interior(pts, jitter, min(Lx / nx, Ly / ny, Lz / nz), seed)
    return pts, _cube_corners(nx, ny, nz)[:, _HEX_FROM_CORNERS]


def kuhn_tetrahedra(Lx: float, Ly: float, Lz: float, *, nx: int, ny: int, nz: int,
                    jitter: float = 0.0, seed: Optional[int] = 0):
    """Six tetrahedra per cube sharing the cube diagonal (conforming)."""
    pts = _grid_points_3d(float(Lx), float(Ly), float(Lz), nx, ny, nz)
    pts = jitter_interior(pts, jitter, min(Lx / nx, Ly / ny, Lz / nz), seed)
    corners = _cube_corners(nx, ny, nz)
    return pts, corners[:, _KUHN].reshape(-1, 4)
