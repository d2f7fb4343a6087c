from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from scipy import stats

from ..util import check_positive
from .common import on_interior, scipy_call


@dataclass(frozen=True)
class Gamma:
    """Gamma(shape alpha, scale theta), x > 0."""

    shape: float = 1.0
    scale: float = 1.0

    family = "Gamma"

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", check_positive("shape", self.shape))
        object.__setattr__(self, "scale", check_positive("scale", self.scale))

    def frozen(self) -> Any:
        return stats.gamma(a=self.shape, scale=self.scale)

    def support(self) -> Tuple[float, float]:
        return (0.0, np.inf)

    def mode(self) -> float:
        return float(max(self.shape - 1.0, 0.0) * self.scale)

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        a, th = self.shape, self.scale
        return on_interior(x, 0.0, np.inf, lambda xa: (a - 1.0) / xa - 1.0 / th)

    def heslogpdf(self, x: Any) -> Any:
        a = self.shape
        return on_interior(x, 0.0, np.inf, lambda xa: -(a - 1.0) / xa**2)
