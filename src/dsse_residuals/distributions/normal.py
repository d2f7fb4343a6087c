from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from scipy import stats

from ..util import check_finite, check_positive, like_input
from .common import scipy_call


@dataclass(frozen=True)
class Normal:
    """Normal(mu, sigma).

    logpdf(x)     = -log(sigma) - log(2*pi)/2 - (x - mu)^2 / (2 sigma^2)
    gradlogpdf(x) = -(x - mu) / sigma^2
    heslogpdf(x)  = -1 / sigma^2
    """

    mu: float = 0.0
    sigma: float = 1.0

    family = "Normal"

    def __post_init__(self) -> None:
        object.__setattr__(self, "mu", check_finite("mu", self.mu))
        object.__setattr__(self, "sigma", check_positive("sigma", self.sigma))

    def frozen(self) -> Any:
        return stats.norm(loc=self.mu, scale=self.sigma)

    def support(self) -> Tuple[float, float]:
        return (-np.inf, np.inf)

    def mode(self) -> float:
        return self.mu

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        xa = np.asarray(x, dtype=float)
        return like_input(-(xa - self.mu) / self.sigma**2, x)

    def heslogpdf(self, x: Any) -> Any:
        xa = np.asarray(x, dtype=float)
        return like_input(np.full(xa.shape, -1.0 / self.sigma**2), x)
