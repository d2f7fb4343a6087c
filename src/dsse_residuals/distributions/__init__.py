"""Distribution families + registry."""

from __future__ import annotations

from typing import Any, Dict

from ..errors import UnsupportedDistributionError
from .beta import Beta, ExtendedBeta
from .common import Distribution, gradlogpdf, heslogpdf, logpdf
from .exponential import Exponential
from .gamma import Gamma
from .lognormal import LogNormal
from .normal import Normal
from .weibull import Weibull

_FAMILIES: Dict[str, Any] = {
    "normal": Normal,
    "lognormal": LogNormal,
    "exponential": Exponential,
    "weibull": Weibull,
    "gamma": Gamma,
    "beta": Beta,
    "extendedbeta": ExtendedBeta,
}


def _family_key(name: str) -> str:
    return str(name).lower().replace("-", "").replace("_", "").replace(" ", "")


def get_distribution(family: str, **params: Any) -> Distribution:
    """Build a distribution from a family name and its parameters."""
    try:
        cls = _FAMILIES[_family_key(family)]
    except KeyError as e:
        raise UnsupportedDistributionError(
            f"Unknown distribution family {family!r}. Available: {AVAILABLE_FAMILIES}"
        ) from e
    return cls(**params)


def is_gaussian(dst: Any) -> bool:
    """True for the Normal family (the only family the (r)wlav/(r)wls criteria accept)."""
    return isinstance(dst, Normal)


AVAILABLE_FAMILIES = tuple(cls.family for cls in _FAMILIES.values())

__all__ = [
    "Distribution",
    "Normal",
    "LogNormal",
    "Exponential",
    "Weibull",
    "Gamma",
    "Beta",
    "ExtendedBeta",
    "get_distribution",
    "is_gaussian",
    "logpdf",
    "gradlogpdf",
    "heslogpdf",
    "AVAILABLE_FAMILIES",
]
