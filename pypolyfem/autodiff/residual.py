"""pypolyfem.autodiff.residual
Unknown registry and accumulating residual.

Typical use::

    registry = UnknownRegistry()
    p = registry.register_unknown(mesh.fields["SOLUTION"], mask=free)
    first, last = registry.enumerate()
    R = Residual("diffusion", first, last)
    R[p.index(i)] += 2.0 * p(i) - p(j)
    A, r = R.jacobian(), R.residual()
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from pypolyfem.autodiff.expressions import Expression, Variable, _as_expr
from pypolyfem.core.fields import Field

logger = logging.getLogger(__name__)


class UnknownBlock:
    """
    Dofs carried by one field.

    The block maps entity *global* ids to dof indices, so a partition view
    can :meth:`bind` its own copy of the field and address the same dofs
    (ghost entities included).
    """

    def __init__(self, field: Field, mask: Optional[np.ndarray] = None):
        n = len(field.values)
        mask = np.ones(n, dtype=bool) if mask is None else np.asarray(mask, dtype=bool)
        if mask.shape != (n,):
            raise ValueError(f"mask for '{field.name}' must have shape ({n},)")
        if field.ncomp != 1:
            raise ValueError("Unknowns must be scalar fields")
        self.name = field.name
        self.kind = field.kind
        self.field = field
        self.gids = field.global_ids if field.global_ids is not None else np.arange(n)
        self.mask = mask
        self.first = -1
        self._by_gid: Optional[np.ndarray] = None
        self._local: Optional[np.ndarray] = None

    def __len__(self):
        return int(self.mask.sum())

    def _assign(self, first: int) -> int:
        self.first = first
        self._by_gid = np.full(int(self.gids.max()) + 1 if len(self.gids) else 0, -1, dtype=int)
        self._by_gid[self.gids[self.mask]] = first + np.arange(len(self))
        self._local = self._by_gid[self.gids]
        return len(self)

    def _check(self):
        if self._local is None:
            raise RuntimeError(f"Unknowns of '{self.name}' are not enumerated yet")

    def bind(self, field: Field) -> "UnknownBlock":
        """Same dofs, addressed through another copy of the field (partition view)."""
        self._check()
        if field.global_ids is None or field.kind != self.kind:
            raise ValueError(f"Cannot bind '{self.name}' to field '{field.name}'")
        bound = object.__new__(UnknownBlock)
        bound.name, bound.kind, bound.field = self.name, self.kind, field
        bound.first, bound._by_gid = self.first, self._by_gid
        bound.gids = field.global_ids
        inside = bound.gids < len(self._by_gid)
        bound._local = np.full(len(bound.gids), -1, dtype=int)
        bound._local[inside] = self._by_gid[bound.gids[inside]]
        bound.mask = bound._local >= 0
        return bound

    def index(self, local_id: int) -> int:
        """Dof of entity *local_id*, -1 if it carries none."""
        self._check()
        return int(self._local[local_id])

    def dofs(self) -> np.ndarray:
        self._check()
        return self._local

    def __contains__(self, local_id: int) -> bool:
        return self.index(local_id) >= 0

    def __call__(self, local_id: int) -> Variable:
        idx = self.index(local_id)
        if idx < 0:
            raise KeyError(f"Entity {local_id} of '{self.name}' has no dof")
        return Variable(idx, self.field.values[local_id])

    def gather(self, x: np.ndarray) -> None:
        """Write the current field values into the global vector *x*."""
        m = self.mask
        x[self._local[m]] = self.field.values[m]

    def scatter(self, x: np.ndarray) -> None:
        """Copy dof values from *x* back into the field."""
        m = self.mask
        self.field.values[m] = x[self._local[m]]


class UnknownRegistry:
    """Collects unknown blocks and numbers their dofs contiguously."""

    def __init__(self):
        self.blocks: List[UnknownBlock] = []
        self._range: Optional[Tuple[int, int]] = None

    def register_unknown(self, field: Field, mask: Optional[np.ndarray] = None) -> UnknownBlock:
        if self._range is not None:
            raise RuntimeError("Cannot register unknowns after enumerate()")
        block = UnknownBlock(field, mask)
        self.blocks.append(block)
        return block

    def enumerate(self) -> Tuple[int, int]:
        """Assign dof indices once; returns ``(first, last)``."""
        if self._range is None:
            first = nxt = 0
            for block in self.blocks:
                nxt += block._assign(nxt)
            self._range = (first, nxt)
            logger.info("Enumerated %d unknowns in %d block(s)", nxt, len(self.blocks))
        return self._range

    @property
    def n_dofs(self) -> int:
        first, last = self.enumerate()
        return last - first

    def values(self) -> np.ndarray:
        x = np.zeros(self.n_dofs)
        for block in self.blocks:
            block.gather(x)
        return x

    def update(self, x: np.ndarray) -> None:
        for block in self.blocks:
            block.scatter(x)


class _Entry:
    """Proxy returned by ``Residual[i]``; only ``+=`` and ``-=`` are defined."""
    __slots__ = ("owner", "index")

    def __init__(self, owner: "Residual", index: int):
        self.owner, self.index = owner, index

    def __iadd__(self, expr):
        self.owner._accumulate(self.index, expr, 1.0)
        return self

    def __isub__(self, expr):
        self.owner._accumulate(self.index, expr, -1.0)
        return self

    def __float__(self):
        return float(self.owner._values[self.index - self.owner.first])


class Residual:
    """
    Residual vector ``R(x)`` and its Jacobian, built by accumulation.

    ``R[i] += expr`` adds the value of *expr* to row ``i`` and its
    derivatives to row ``i`` of the Jacobian. Plain assignment is refused.
    """

    def __init__(self, name: str, first: int, last: int):
        if last < first:
            raise ValueError("last must not precede first")
        self.name = name
        self.first, self.last = first, last
        self._values = np.zeros(last - first)
        self._rows: List[int] = []
        self._cols: List[int] = []
        self._vals: List[float] = []

    def __len__(self):
        return self.last - self.first

    def _row(self, i: int) -> int:
        if not self.first <= i < self.last:
            raise IndexError(f"Row {i} outside [{self.first}, {self.last})")
        return i - self.first

    def __getitem__(self, i: int) -> _Entry:
        self._row(i)
        return _Entry(self, int(i))

    def __setitem__(self, i, value):
        # ``R[i] += e`` ends with ``R[i] = <the same entry>``
        if isinstance(value, _Entry) and value.owner is self and value.index == i:
            return
        raise TypeError(f"Residual '{self.name}' entries can only be accumulated with +=")

    def _accumulate(self, i: int, expr, sign: float) -> None:
        r = self._row(i)
        value, grad = _as_expr(expr).evaluate()
        self._values[r] += sign * value
        for j, d in grad.items():
            self._rows.append(r)
            self._cols.append(j - self.first)
            self._vals.append(sign * d)

    def residual(self) -> np.ndarray:
        return self._values.copy()

    def jacobian(self) -> sp.csr_matrix:
        n = len(self)
        return sp.coo_matrix((self._vals, (self._rows, self._cols)), shape=(n, n)).tocsr()

    def norm(self) -> float:
        return float(np.linalg.norm(self._values, ord=np.inf)) if len(self) else 0.0

    def clear(self) -> None:
        self._values[:] = 0.0
        self._rows.clear()
        self._cols.clear()
        self._vals.clear()
