"""pypolyfem.core.partition
In-process simulation of a distributed mesh.

Every cell gets an owner rank; nodes and faces belong to the lowest rank
among their cells. A rank's *view* is a submesh made of its owned cells
plus every cell sharing a node with them; entities of the view owned by
another rank are flagged ``GHOST``.
"""
from __future__ import annotations

import logging
from typing import List

import numpy as np
from scipy.cluster.vq import kmeans2

from pypolyfem.core.mesh import Mesh
from pypolyfem.core.topology import EntityKind, EntityClass

logger = logging.getLogger(__name__)


def kmeans_partition(mesh: Mesh, n_parts: int, iters: int = 20) -> np.ndarray:
    """Owner rank of every cell from k-means clustering of the barycenters."""
    if n_parts < 1:
        raise ValueError("n_parts must be positive")
    if n_parts > mesh.n_cells:
        raise ValueError(f"Cannot split {mesh.n_cells} cells into {n_parts} parts.")
    if n_parts == 1:
        return np.zeros(mesh.n_cells, dtype=int)
    X = mesh.cell_barycenters()
    # deterministic seeds: evenly spaced cells in lexicographic order
    order = np.lexsort(X.T[::-1])
    seeds = X[order[np.linspace(0, len(X) - 1, n_parts).astype(int)]]
    _, labels = kmeans2(X, seeds, iter=iters, minit='matrix', missing='warn')
    # drop empty clusters
    _, labels = np.unique(labels, return_inverse=True)
    return labels.astype(int)


class Distribution:
    """Owner maps and per-rank views of a global mesh."""

    def __init__(self, mesh: Mesh, owner: np.ndarray):
        owner = np.asarray(owner, dtype=int)
        if owner.shape != (mesh.n_cells,):
            raise ValueError("owner must hold one rank per cell")
        self.mesh = mesh
        self.owner = owner
        self.n_parts = int(owner.max()) + 1

        node_cells = mesh.node_cells()
        self.node_owner = np.array([min((owner[c] for c in cells), default=0) for cells in node_cells], dtype=int)
        self.face_owner = np.array([min(owner[c] for c in f.cells()) for f in mesh.faces_list], dtype=int)

        self.views: List[Mesh] = [self._build_view(r) for r in range(self.n_parts)]
        for r, view in enumerate(self.views):
            view.fields.distribution = self
            view.fields.rank = r
        logger.info("Distributed %d cells over %d ranks", mesh.n_cells, self.n_parts)

    def _owner_of(self, kind: EntityKind) -> np.ndarray:
        return {EntityKind.NODE: self.node_owner,
                EntityKind.FACE: self.face_owner,
                EntityKind.CELL: self.owner}[kind]

    def _build_view(self, rank: int) -> Mesh:
        node_cells = self.mesh.node_cells()
        cells = set(np.flatnonzero(self.owner == rank).tolist())
        for nid in np.flatnonzero(self.node_owner == rank):
            cells.update(node_cells[nid])
        view = self.mesh.submesh(sorted(cells))
        for kind in EntityKind:
            owner = self._owner_of(kind)
            parents = self.mesh.entities(kind)
            for ent in view.entities(kind):
                ent.status = parents[ent.gid].status & ~EntityClass.GHOST
                if owner[ent.gid] != rank:
                    ent.status |= EntityClass.GHOST
        n_ghost = sum(c.is_ghost for c in view.cells_list)
        logger.debug("rank %d: %d cells (%d ghost)", rank, view.n_cells, n_ghost)
        return view

    @staticmethod
    def _masks(view: Mesh, kind: EntityKind):
        ents = view.entities(kind)
        gids = np.fromiter((e.gid for e in ents), dtype=int, count=len(ents))
        ghost = np.fromiter((e.is_ghost for e in ents), dtype=bool, count=len(ents))
        return gids, ghost

    def gather(self, name: str) -> np.ndarray:
        """Owner values of *name* assembled into a global array (also stored on the global mesh)."""
        first = self.views[0].fields[name]
        glob = self.mesh.fields.create_field(name, first.kind, first.ncomp)
        for view in self.views:
            gids, ghost = self._masks(view, first.kind)
            glob.values[gids[~ghost]] = view.fields[name].values[~ghost]
        return glob.values

    def exchange(self, name: str) -> None:
        """Copy owner values of *name* into the ghost copies on every view."""
        kind = self.views[0].fields[name].kind
        glob = self.gather(name)
        for view in self.views:
            gids, ghost = self._masks(view, kind)
            view.fields[name].values[ghost] = glob[gids[ghost]]

    @staticmethod
    def allreduce_max(values) -> float:
        return float(max(values))
