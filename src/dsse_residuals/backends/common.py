from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

import numpy as np


@dataclass(frozen=True)
class BackendResult:
    """Normalized result returned by any backend."""

    values: Dict[str, float]  # every variable, fixed ones included
    objective: float = float("nan")
    success: bool = True
    message: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> float:
        return self.values[name]


class Backend(Protocol):
    """Backend protocol: solve one formulation."""

    name: str

    def solve(
        self,
        formulation: Any,
        *,
        fixed: Optional[Mapping[str, float]] = None,
        bounds: Optional[Mapping[str, Tuple[Optional[float], Optional[float]]]] = None,
        x0: Optional[Mapping[str, float]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> BackendResult: ...


class VariableIndex:
    """Maps the free variables of a formulation to positions in a vector.

    ``fixed`` variables keep their value; every other variable named by the
    formulation (its own variables plus those referenced by constraints,
    typically the state) is free. Bounds come from ``bounds`` first, then the
    variable's own ``lower``/``upper``; infinite bounds become None.
    """

    def __init__(
        self,
        formulation: Any,
        fixed: Optional[Mapping[str, float]] = None,
        bounds: Optional[Mapping[str, Tuple[Optional[float], Optional[float]]]] = None,
    ) -> None:
        self.fixed = {k: float(v) for k, v in dict(fixed or {}).items()}
        seen: Dict[str, None] = {}
        for v in formulation.variables:
            seen.setdefault(v.name, None)
        for c in formulation.constraints:
            for n in c.names():
                seen.setdefault(n, None)
        self.free: List[str] = [n for n in seen if n not in self.fixed]
        self.index = {n: j for j, n in enumerate(self.free)}

        own = {v.name: (v.lower, v.upper) for v in formulation.variables}
        user = dict(bounds or {})
        self.bounds: List[Tuple[Optional[float], Optional[float]]] = []
        for n in self.free:
            lo, hi = user.get(n, own.get(n, (None, None)))
            lo_b = None if (lo is None or not math.isfinite(float(lo))) else float(lo)
            hi_b = None if (hi is None or not math.isfinite(float(hi))) else float(hi)
            self.bounds.append((lo_b, hi_b))

    def __len__(self) -> int:
        return len(self.free)

    def point(self, theta: np.ndarray) -> Dict[str, float]:
        p = dict(self.fixed)
        for j, n in enumerate(self.free):
            p[n] = float(theta[j])
        return p

    def start(self, x0: Optional[Mapping[str, float]] = None) -> np.ndarray:
        """Starting vector from ``x0`` (default 0), clipped into the bounds."""
        x0 = dict(x0 or {})
        theta = np.array([float(x0.get(n, 0.0)) for n in self.free], dtype=float)
        for j, (lo, hi) in enumerate(self.bounds):
            if lo is not None and theta[j] < lo:
                theta[j] = lo
            if hi is not None and theta[j] > hi:
                theta[j] = hi
        return theta

    def vector(self, grad: Mapping[str, float]) -> np.ndarray:
        out = np.zeros(len(self.free), dtype=float)
        for n, g in grad.items():
            j = self.index.get(n)
            if j is not None:
                out[j] += g
        return out

    def matrix(self, hes: Mapping[Tuple[str, str], float]) -> np.ndarray:
        out = np.zeros((len(self.free), len(self.free)), dtype=float)
        for (ni, nj), h in hes.items():
            i = self.index.get(ni)
            j = self.index.get(nj)
            if i is not None and j is not None:
                out[i, j] += h
        return out
