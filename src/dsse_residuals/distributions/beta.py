from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from scipy import stats

from ..errors import InvalidParameterError
from ..util import check_finite, check_positive
from .common import on_interior, scipy_call


def _beta_mode(a: float, b: float) -> float:
    """Mode of Beta(a, b) on [0, 1]; a boundary point when the density peaks there."""
    if a > 1.0 and b > 1.0:
        return (a - 1.0) / (a + b - 2.0)
    if a == 1.0 and b == 1.0:
        return 0.5
    if a <= 1.0 and b > 1.0:
        return 0.0
    if a > 1.0 and b <= 1.0:
        return 1.0
    # a <= 1 and b <= 1 (not both 1): U-shaped, take the higher end.
    return 0.0 if a <= b else 1.0


def _beta_grad(a: float, b: float, y: np.ndarray) -> np.ndarray:
    return (a - 1.0) / y - (b - 1.0) / (1.0 - y)


def _beta_hes(a: float, b: float, y: np.ndarray) -> np.ndarray:
    return -(a - 1.0) / y**2 - (b - 1.0) / (1.0 - y) ** 2


@dataclass(frozen=True)
class Beta:
    """Beta(alpha, beta) on (0, 1).

    gradlogpdf(x) = (alpha-1)/x - (beta-1)/(1-x)
    heslogpdf(x)  = -(alpha-1)/x^2 - (beta-1)/(1-x)^2
    """

    alpha: float = 1.0
    beta: float = 1.0

    family = "Beta"

    def __post_init__(self) -> None:
        object.__setattr__(self, "alpha", check_positive("alpha", self.alpha))
        object.__setattr__(self, "beta", check_positive("beta", self.beta))

    def frozen(self) -> Any:
        return stats.beta(a=self.alpha, b=self.beta)

    def support(self) -> Tuple[float, float]:
        return (0.0, 1.0)

    def mode(self) -> float:
        return float(_beta_mode(self.alpha, self.beta))

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        return on_interior(x, 0.0, 1.0, lambda y: _beta_grad(self.alpha, self.beta, y))

    def heslogpdf(self, x: Any) -> Any:
        return on_interior(x, 0.0, 1.0, lambda y: _beta_hes(self.alpha, self.beta, y))


@dataclass(frozen=True)
class ExtendedBeta:
    """Beta(alpha, beta) stretched onto (lower, upper).

    With y = (x - lower) / (upper - lower) and w = upper - lower, the
    derivatives are the Beta ones at y divided by w and w^2 respectively.
    """

    alpha: float = 1.0
    beta: float = 1.0
    lower: float = 0.0
    upper: float = 1.0

    family = "ExtendedBeta"

    def __post_init__(self) -> None:
        object.__setattr__(self, "alpha", check_positive("alpha", self.alpha))
        object.__setattr__(self, "beta", check_positive("beta", self.beta))
        lo = check_finite("lower", self.lower)
        hi = check_finite("upper", self.upper)
        if hi <= lo:
            raise InvalidParameterError(
                f"ExtendedBeta requires lower < upper, got ({lo}, {hi})."
            )
        object.__setattr__(self, "lower", lo)
        object.__setattr__(self, "upper", hi)

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def frozen(self) -> Any:
        return stats.beta(a=self.alpha, b=self.beta, loc=self.lower, scale=self.width)

    def support(self) -> Tuple[float, float]:
        return (self.lower, self.upper)

    def mode(self) -> float:
        return float(self.lower + self.width * _beta_mode(self.alpha, self.beta))

    def pdf(self, x: Any) -> Any:
        return scipy_call(self, "pdf", x)

    def logpdf(self, x: Any) -> Any:
        return scipy_call(self, "logpdf", x)

    def ppf(self, q: Any) -> Any:
        return scipy_call(self, "ppf", q)

    def gradlogpdf(self, x: Any) -> Any:
        w = self.width

        def fn(xa):
            return _beta_grad(self.alpha, self.beta, (xa - self.lower) / w) / w

        return on_interior(x, self.lower, self.upper, fn)

    def heslogpdf(self, x: Any) -> Any:
        w = self.width

        def fn(xa):
            return _beta_hes(self.alpha, self.beta, (xa - self.lower) / w) / w**2

        return on_interior(x, self.lower, self.upper, fn)
