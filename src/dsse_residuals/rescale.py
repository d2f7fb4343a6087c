"""Rescaler policy shared by every residual formulation.

Every formula divides the raw deviation by ``rsc * w * scale`` (or
``rsc * w * scale**2`` for the squared criteria), where ``w`` is the
measurement weight. The mle residual is multiplied by ``rsc / w`` instead.
"""

from __future__ import annotations

from typing import Any

from .expressions import Expression, as_expression
from .util import check_positive

__all__ = ["rescale", "effective_rescaler", "standardized", "denominator"]


def effective_rescaler(measurement: Any, settings: Any) -> float:
    """Per-measurement rescaler if set, else the global settings value."""
    rsc = getattr(measurement, "rescaler", None)
    if rsc is None:
        rsc = settings.rescaler
    return check_positive("rescaler", rsc)


def denominator(rescaler: float, scale: float, power: int = 1, weight: float = 1.0) -> float:
    """``rescaler * weight * scale**power`` after validating every factor."""
    rsc = check_positive("rescaler", rescaler)
    sc = check_positive("scale", scale)
    w = check_positive("weight", weight)
    return rsc * w * sc**power


def rescale(value: Any, rescaler: float) -> Any:
    """Divide a number or expression by the rescaler."""
    return value / check_positive("rescaler", rescaler)


def standardized(
    x: Any, mu: float, scale: float, rescaler: float, weight: float = 1.0
) -> Expression:
    """The rescaled deviation ``(x - mu) / (rescaler * weight * scale)``."""
    return (as_expression(x) - float(mu)) / denominator(rescaler, scale, weight=weight)
