from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from scipy import stats

from ..util import check_positive
from .common import on_interior, scipy_call


@dataclass(frozen=True)
class Exponential:
    """Exponential with scale theta (mean theta), x >= 0."""

    theta: float = 1.0

    family = "Exponential"

    def __post_init__(self) -> None:
        object.__setattr__(self, "theta", check_positive("theta", self.theta))

    def frozen(self) -> Any:
        return stats.expon(scale=self.theta)

    def support(self) -> Tuple[float, float]:
        return (0.0, np.inf)

    def mode(self) -> float:
        return 0.0

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        return on_interior(
            x, 0.0, np.inf, lambda xa: np.full(xa.shape, -1.0 / self.theta), closed_lower=True
        )

    def heslogpdf(self, x: Any) -> Any:
        return on_interior(x, 0.0, np.inf, lambda xa: np.zeros(xa.shape), closed_lower=True)
