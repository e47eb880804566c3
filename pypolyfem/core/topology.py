import enum
from dataclasses import dataclass, field
from typing import Tuple, Optional

import numpy as np


class EntityKind(enum.Enum):
    NODE = "node"
    FACE = "face"
    CELL = "cell"


class EntityClass(enum.Flag):
    """Per-entity classification. DIRICHLET and GHOST may be combined."""
    INTERIOR = 0
    DIRICHLET = enum.auto()
    GHOST = enum.auto()


@dataclass(slots=True)
class Node:
    id: int                                 # Local node index
    coords: np.ndarray                      # (dim,)
    gid: int = -1                           # Global id (differs from id on partition views)
    is_boundary: bool = False
    status: EntityClass = EntityClass.INTERIOR

    @property
    def is_ghost(self) -> bool:
        return bool(self.status & EntityClass.GHOST)

    @property
    def is_dirichlet(self) -> bool:
        return bool(self.status & EntityClass.DIRICHLET)

    def __repr__(self):
        return f"Node {self.id}({', '.join(f'{c:.3f}' for c in self.coords)}, status={self.status.name})"


@dataclass(slots=True)
class Face:
    id: int
    nodes: Tuple[int, ...]      # Ordered so that `normal` points out of the back cell
    back: int                   # Cell the normal points out of
    front: Optional[int]        # Cell on the other side, None on the mesh boundary
    normal: np.ndarray          # Unit normal
    area: float                 # Length in 2D
    barycenter: np.ndarray
    gid: int = -1
    is_boundary: bool = False
    status: EntityClass = EntityClass.INTERIOR

    @property
    def is_ghost(self) -> bool:
        return bool(self.status & EntityClass.GHOST)

    @property
    def is_dirichlet(self) -> bool:
        return bool(self.status & EntityClass.DIRICHLET)

    def cells(self) -> Tuple[int, ...]:
        return (self.back,) if self.front is None else (self.back, self.front)

    def other(self, cell_id: int) -> Optional[int]:
        """Neighbour across the face as seen from *cell_id*."""
        return self.front if cell_id == self.back else self.back


@dataclass(slots=True)
class Cell:
    id: int
    nodes: Tuple[int, ...]      # Counter-clockwise in 2D, VTK ordering in 3D
    cell_type: str = "polygon"
    faces: Tuple[int, ...] = field(default_factory=tuple)
    volume: float = 0.0         # Area in 2D
    barycenter: np.ndarray = None   # Centre of mass
    centroid: np.ndarray = None     # Average of the nodes
    diameter: float = 0.0           # Largest node-to-node distance
    gid: int = -1
    status: EntityClass = EntityClass.INTERIOR

    @property
    def is_ghost(self) -> bool:
        return bool(self.status & EntityClass.GHOST)
