"""pypolyfem.config
Parameter dataclasses shared by the drivers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class DiffusionTensor:
    """
    Symmetric diffusion tensor stored by its independent components.

    2D: ``(Dxx, Dyy, Dxy)``
    3D: ``(Dxx, Dyy, Dzz, Dxy, Dxz, Dyz)``

    The tensor is expected to be SPD; this is not verified.
    """

    components: tuple

    def __post_init__(self):
        comps = tuple(float(c) for c in self.components)
        if len(comps) not in (3, 6):
            raise ValueError(f"DiffusionTensor needs 3 or 6 components, got {len(comps)}")
        object.__setattr__(self, "components", comps)

    @classmethod
    def isotropic(cls, value: float = 1.0, dim: int = 2) -> "DiffusionTensor":
        if dim == 2:
            return cls((value, value, 0.0))
        return cls((value, value, value, 0.0, 0.0, 0.0))

    @classmethod
    def diagonal(cls, *diag: float) -> "DiffusionTensor":
        if len(diag) == 2:
            return cls((diag[0], diag[1], 0.0))
        if len(diag) == 3:
            return cls((diag[0], diag[1], diag[2], 0.0, 0.0, 0.0))
        raise ValueError("diagonal() expects 2 or 3 entries")

    @property
    def dim(self) -> int:
        return 2 if len(self.components) == 3 else 3

    def matrix(self) -> np.ndarray:
        return tensor_from_components(self.components)


def tensor_from_components(comps: Sequence[float]) -> np.ndarray:
    """Expand 3 or 6 stored components into the full symmetric matrix."""
    c = np.asarray(comps, dtype=float)
    if c.size == 3:
        return np.array([[c[0], c[2]],
                         [c[2], c[1]]])
    if c.size == 6:
        return np.array([[c[0], c[3], c[4]],
                         [c[3], c[1], c[5]],
                         [c[4], c[5], c[2]]])
    raise ValueError(f"Expected 3 or 6 tensor components, got {c.size}")
