"""pypolyfem.reporting
Error norms, solve reports and phase timings.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)

PHASES = ("init", "assemble", "precond", "solve", "update", "io")


def max_norm_error(computed, exact, mask: Optional[np.ndarray] = None) -> float:
    """``max |computed - exact|`` over the entries selected by *mask*."""
    diff = np.abs(np.asarray(computed, dtype=float) - np.asarray(exact, dtype=float))
    if mask is not None:
        diff = diff[np.asarray(mask, dtype=bool)]
    return float(diff.max()) if diff.size else 0.0


@dataclass
class SolveReport:
    solved: bool = False
    iterations: int = 0
    residual_norm: float = float("nan")
    errors: Dict[str, float] = field(default_factory=dict)

    @property
    def error(self) -> float:
        """Error of the primary variable."""
        return self.errors.get("solution", float("nan"))

    def log(self, log: logging.Logger = logger) -> None:
        for name, err in self.errors.items():
            label = "C" if name == "solution" else name
            log.info("|err|_%s = %.6e", label, err)


class Timings:
    """Accumulated wall-clock time per phase."""

    def __init__(self):
        self._acc: Dict[str, float] = {p: 0.0 for p in PHASES}
        self._t0 = time.perf_counter()

    @contextmanager
    def measure(self, phase: str):
        t = time.perf_counter()
        try:
            yield
        finally:
            self._acc[phase] = self._acc.get(phase, 0.0) + time.perf_counter() - t

    def __getitem__(self, phase: str) -> float:
        return self._acc[phase]

    @property
    def total(self) -> float:
        return time.perf_counter() - self._t0

    def table(self) -> str:
        total = self.total
        lines = [f"{'phase':<10}{'time [s]':>12}{'share':>9}"]
        for phase, t in self._acc.items():
            share = 100.0 * t / total if total > 0 else 0.0
            lines.append(f"{phase:<10}{t:>12.4f}{share:>8.1f}%")
        lines.append(f"{'total':<10}{total:>12.4f}")
        return "\n".join(lines)

    def log(self, log: logging.Logger = logger) -> None:
        log.info("Timings:\n%s", self.table())
