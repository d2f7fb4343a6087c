from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from scipy import stats

from ..util import check_finite, check_positive
from .common import on_interior, scipy_call


@dataclass(frozen=True)
class LogNormal:
    """LogNormal(mu, sigma): log(x) ~ Normal(mu, sigma), x > 0.

    With z = (log x - mu) / sigma^2:
    gradlogpdf(x) = -(1 + z) / x
    heslogpdf(x)  = (1 + z - 1/sigma^2) / x^2
    """

    mu: float = 0.0
    sigma: float = 1.0

    family = "LogNormal"

    def __post_init__(self) -> None:
        object.__setattr__(self, "mu", check_finite("mu", self.mu))
        object.__setattr__(self, "sigma", check_positive("sigma", self.sigma))

    def frozen(self) -> Any:
        return stats.lognorm(s=self.sigma, scale=np.exp(self.mu))

    def support(self) -> Tuple[float, float]:
        return (0.0, np.inf)

    def mode(self) -> float:
        return float(np.exp(self.mu - self.sigma**2))

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        s2 = self.sigma**2

        def fn(xa):
            return -(1.0 + (np.log(xa) - self.mu) / s2) / xa

        return on_interior(x, 0.0, np.inf, fn)

    def heslogpdf(self, x: Any) -> Any:
        s2 = self.sigma**2

        def fn(xa):
            return (1.0 + (np.log(xa) - self.mu) / s2 - 1.0 / s2) / xa**2

        return on_interior(x, 0.0, np.inf, fn)
