from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Tuple

from .distributions import Distribution, Normal, get_distribution
from .errors import InvalidParameterError, UnsupportedDistributionError
from .settings import check_criterion
from .util import check_positive

__all__ = ["Measurement", "check_unique_ids"]


@dataclass(frozen=True)
class Measurement:
    """One observed quantity tied to a state-model variable.

    The measurement only stores ``variable_ref``, a key into the caller's
    variable mapping; the variable itself belongs to the model builder.
    """

    id: str
    variable_ref: str
    distribution: Distribution
    # Per-measurement override from input data (required in mixed mode).
    crit: Optional[str] = None
    # Resolved criterion, cached by assign_criteria.
    criterion: Optional[str] = None
    weight: float = 1.0
    # None falls back to SESettings.rescaler.
    rescaler: Optional[float] = None

    def __post_init__(self) -> None:
        for cap in ("logpdf", "gradlogpdf", "heslogpdf"):
            if not callable(getattr(self.distribution, cap, None)):
                raise UnsupportedDistributionError(
                    f"Measurement {self.id!r}: distribution {self.distribution!r} "
                    f"does not provide {cap!r}."
                )
        object.__setattr__(self, "weight", check_positive("weight", self.weight))
        if self.rescaler is not None:
            object.__setattr__(self, "rescaler", check_positive("rescaler", self.rescaler))
        if self.crit is not None:
            object.__setattr__(self, "crit", check_criterion(self.crit))
        if self.criterion is not None:
            object.__setattr__(self, "criterion", check_criterion(self.criterion))

    @property
    def family(self) -> str:
        return getattr(self.distribution, "family", type(self.distribution).__name__)

    # ---- constructors ----
    @staticmethod
    def normal(
        id: str,
        variable_ref: str,
        *,
        mu: float,
        sigma: float,
        crit: Optional[str] = None,
        weight: float = 1.0,
        rescaler: Optional[float] = None,
    ) -> "Measurement":
        """Create a Normal(mu, sigma) measurement."""
        return Measurement(
            id=id,
            variable_ref=variable_ref,
            distribution=Normal(mu=mu, sigma=sigma),
            crit=crit,
            weight=weight,
            rescaler=rescaler,
        )

    @staticmethod
    def from_distribution(
        id: str,
        variable_ref: str,
        family: str,
        *,
        crit: Optional[str] = None,
        weight: float = 1.0,
        rescaler: Optional[float] = None,
        **params: Any,
    ) -> "Measurement":
        """Create a measurement from a family name and its parameters.

        >>> Measurement.from_distribution("pd_1", "pd_1", "Weibull", shape=2.0, scale=0.5)
        """
        return Measurement(
            id=id,
            variable_ref=variable_ref,
            distribution=get_distribution(family, **params),
            crit=crit,
            weight=weight,
            rescaler=rescaler,
        )

    def with_criterion(self, criterion: str) -> "Measurement":
        """Return a copy with the resolved criterion cached."""
        return replace(self, criterion=check_criterion(criterion))


def check_unique_ids(measurements: Iterable[Measurement]) -> Tuple[Measurement, ...]:
    """Return the measurements as a tuple, rejecting duplicate ids."""
    out = tuple(measurements)
    seen = set()
    dupes = []
    for m in out:
        if not isinstance(m, Measurement):
            raise TypeError(f"Expected Measurement, got {type(m).__name__}.")
        if m.id in seen:
            dupes.append(m.id)
        seen.add(m.id)
    if dupes:
        raise InvalidParameterError(f"Duplicate measurement ids: {sorted(set(dupes))}")
    return out
