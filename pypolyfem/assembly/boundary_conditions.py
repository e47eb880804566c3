"""pypolyfem.assembly.boundary_conditions
Dirichlet classification and boundary values.
"""
from typing import Callable, Optional

import numpy as np

from pypolyfem.core.topology import EntityKind, EntityClass


def _position(mesh, kind, ent) -> np.ndarray:
    if kind == EntityKind.NODE:
        return ent.coords
    return ent.barycenter


def mark_dirichlet(mesh, kind: EntityKind = EntityKind.NODE,
                   predicate: Optional[Callable[[np.ndarray], bool]] = None) -> int:
    """
    Flag boundary nodes (or faces) as DIRICHLET.

    *predicate* receives the entity position and selects a part of the
    boundary; all boundary entities are taken when it is None. Returns the
    number of entities marked.
    """
    if kind == EntityKind.CELL:
        raise ValueError("Dirichlet conditions live on nodes or faces")
    count = 0
    for ent in mesh.entities(kind):
        if not ent.is_boundary:
            continue
        if predicate is not None and not predicate(_position(mesh, kind, ent)):
            continue
        ent.status |= EntityClass.DIRICHLET
        count += 1
    return count


def dirichlet_mask(mesh, kind: EntityKind = EntityKind.NODE) -> np.ndarray:
    ents = mesh.entities(kind)
    return np.fromiter((e.is_dirichlet for e in ents), dtype=bool, count=len(ents))


def free_mask(mesh, kind: EntityKind = EntityKind.NODE) -> np.ndarray:
    """Entities carrying a dof: everything not Dirichlet."""
    return ~dirichlet_mask(mesh, kind)


def set_boundary_values(mesh, g: Callable, kind: EntityKind = EntityKind.NODE,
                        name: str = "BOUNDARY_CONDITION", only_dirichlet: bool = True):
    """Evaluate ``g(x)`` on the (Dirichlet) boundary entities into field *name*."""
    fld = mesh.fields.create_field(name, kind)
    ents = mesh.entities(kind)
    sel = [e.id for e in ents
           if e.is_boundary and (e.is_dirichlet or not only_dirichlet)]
    if sel:
        X = np.array([_position(mesh, kind, ents[i]) for i in sel])
        fld.values[sel] = g(X)
    return fld
