"""pypolyfem.core.fields
Named per-entity attributes attached to a mesh.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

import numpy as np

from pypolyfem.core.topology import EntityKind

logger = logging.getLogger(__name__)


@dataclass
class Field:
    name: str
    kind: EntityKind
    values: np.ndarray          # (n_entities,) or (n_entities, ncomp)
    ncomp: int = 1
    global_ids: Optional[np.ndarray] = None     # gid of every entity

    def __len__(self):
        return len(self.values)


class FieldStorage:
    """
    Dictionary of :class:`Field` objects keyed by name.

    A storage belonging to a partition view holds a reference to the
    :class:`~pypolyfem.core.partition.Distribution` that created it; on a
    serial mesh :meth:`exchange` does nothing.
    """

    def __init__(self, mesh):
        self._mesh = mesh
        self._fields: Dict[str, Field] = {}
        self.distribution = None
        self.rank: Optional[int] = None

    def _size(self, kind: EntityKind) -> int:
        return len(self._mesh.entities(kind))

    def create_field(self, name: str, kind: EntityKind, ncomp: int = 1, fill: float = 0.0) -> Field:
        """Create *name* or return the existing field of the same layout."""
        if name in self._fields:
            fld = self._fields[name]
            if fld.kind != kind or fld.ncomp != ncomp:
                raise ValueError(f"Field '{name}' already exists as {fld.kind.value} x {fld.ncomp}.")
            return fld
        shape = (self._size(kind),) if ncomp == 1 else (self._size(kind), ncomp)
        fld = Field(name, kind, np.full(shape, fill, dtype=float), ncomp,
                    global_ids=self._mesh.global_ids(kind))
        self._fields[name] = fld
        logger.debug("Created %s field '%s' (%d comp.)", kind.value, name, ncomp)
        return fld

    def __getitem__(self, name: str) -> Field:
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f"No field named '{name}'. Available: {sorted(self._fields)}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self):
        return len(self._fields)

    def by_kind(self, kind: EntityKind) -> Dict[str, Field]:
        return {n: f for n, f in self._fields.items() if f.kind == kind}

    def exchange(self, name: str) -> None:
        """Refresh ghost copies of *name* from their owners."""
        if name not in self._fields:
            raise KeyError(f"No field named '{name}'.")
        if self.distribution is not None:
            self.distribution.exchange(name)
