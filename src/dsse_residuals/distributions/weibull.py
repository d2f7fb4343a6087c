from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from scipy import stats

from ..util import check_positive
from .common import on_interior, scipy_call


@dataclass(frozen=True)
class Weibull:
    """Weibull(shape k, scale lam), x >= 0.

    logpdf(x)     = log(k/lam) + (k-1) log(x/lam) - (x/lam)^k
    gradlogpdf(x) = (k-1)/x - (k/lam) (x/lam)^(k-1)
    heslogpdf(x)  = -(k-1)/x^2 - (k(k-1)/lam^2) (x/lam)^(k-2)
    """

    shape: float = 1.0
    scale: float = 1.0

    family = "Weibull"

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", check_positive("shape", self.shape))
        object.__setattr__(self, "scale", check_positive("scale", self.scale))

    def frozen(self) -> Any:
        return stats.weibull_min(c=self.shape, scale=self.scale)

    def support(self) -> Tuple[float, float]:
        return (0.0, np.inf)

    def mode(self) -> float:
        k = self.shape
        if k <= 1.0:
            return 0.0
        return float(self.scale * ((k - 1.0) / k) ** (1.0 / k))

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        k, lam = self.shape, self.scale

        def fn(xa):
            return (k - 1.0) / xa - (k / lam) * (xa / lam) ** (k - 1.0)

        return on_interior(x, 0.0, np.inf, fn)

    def heslogpdf(self, x: Any) -> Any:
        k, lam = self.shape, self.scale

        def fn(xa):
            return -(k - 1.0) / xa**2 - (k * (k - 1.0) / lam**2) * (xa / lam) ** (k - 2.0)

        return on_interior(x, 0.0, np.inf, fn)
