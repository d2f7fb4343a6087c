from __future__ import annotations

from typing import Any, Callable, Protocol, Tuple, runtime_checkable

import numpy as np

from ..errors import UnsupportedDistributionError
from ..util import like_input

CAPABILITIES = ("logpdf", "gradlogpdf", "heslogpdf")


@runtime_checkable
class Distribution(Protocol):
    """Query surface shared by every supported distribution family.

    ``pdf``/``logpdf``/``ppf`` come from the scipy frozen distribution;
    ``gradlogpdf``/``heslogpdf`` are closed-form per family and evaluate to 0
    outside the open interior of the support.
    """

    family: str

    def frozen(self) -> Any: ...

    def support(self) -> Tuple[float, float]: ...

    def mode(self) -> float: ...

    def pdf(self, x: Any) -> Any: ...

    def logpdf(self, x: Any) -> Any: ...

    def ppf(self, q: Any) -> Any: ...

    def gradlogpdf(self, x: Any) -> Any: ...

    def heslogpdf(self, x: Any) -> Any: ...


def on_interior(
    x: Any,
    lower: float,
    upper: float,
    fn: Callable[[np.ndarray], np.ndarray],
    *,
    closed_lower: bool = False,
) -> Any:
    """Evaluate ``fn`` where ``lower < x < upper`` and return 0 elsewhere."""
    xa = np.asarray(x, dtype=float)
    inside = (xa >= lower) if closed_lower else (xa > lower)
    inside = inside & (xa < upper)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        vals = np.asarray(fn(xa), dtype=float)
    vals = np.broadcast_to(vals, xa.shape)
    return like_input(np.where(inside, vals, 0.0), x)


def scipy_call(dst: Any, method: str, x: Any) -> Any:
    """Delegate ``pdf``/``logpdf``/``ppf`` to the scipy frozen distribution."""
    return like_input(getattr(dst.frozen(), method)(x), x)


def _require(dst: Any, capability: str) -> Callable[[Any], Any]:
    fn = getattr(dst, capability, None)
    if fn is None or not callable(fn):
        name = getattr(dst, "family", type(dst).__name__)
        raise UnsupportedDistributionError(
            f"Distribution {name!r} does not provide {capability!r}; "
            f"supported capabilities are {CAPABILITIES}."
        )
    return fn


def logpdf(dst: Any, x: Any) -> Any:
    """Natural log of the density of ``dst`` at ``x``."""
    return _require(dst, "logpdf")(x)


def gradlogpdf(dst: Any, x: Any) -> Any:
    """First derivative of ``logpdf`` with respect to ``x``."""
    return _require(dst, "gradlogpdf")(x)


def heslogpdf(dst: Any, x: Any) -> Any:
    """Second derivative of ``logpdf`` with respect to ``x``."""
    return _require(dst, "heslogpdf")(x)
