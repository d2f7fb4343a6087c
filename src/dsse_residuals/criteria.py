from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple
from warnings import warn

from .distributions import is_gaussian
from .errors import CriterionFamilyMismatchError, MissingCriterionError
from .measurements import Measurement, check_unique_ids
from .settings import SESettings, check_criterion

__all__ = [
    "CriterionAssignment",
    "GAUSSIAN_ONLY",
    "default_criterion",
    "check_compatible",
    "resolve_criteria",
    "assign_criteria",
]

CriterionAssignment = Mapping[str, str]

# Criteria whose formulas read (mu, sigma) straight from a Normal distribution.
GAUSSIAN_ONLY = ("wlav", "rwlav", "wls", "rwls")


def default_criterion(measurement: Measurement) -> str:
    """rwlav for Normal measurements, mle for every other family."""
    return "rwlav" if is_gaussian(measurement.distribution) else "mle"


def check_compatible(measurement: Measurement, criterion: str) -> str:
    """Validate the criterion against the measurement's distribution family."""
    crit = check_criterion(criterion)
    gaussian = is_gaussian(measurement.distribution)
    if crit in GAUSSIAN_ONLY and not gaussian:
        raise CriterionFamilyMismatchError(
            f"Measurement {measurement.id!r}: criterion {crit!r} requires a Normal "
            f"distribution, got {measurement.family!r}. Use 'mle' or 'gmm' instead."
        )
    if crit == "gmm" and gaussian:
        warn(
            f"Measurement {measurement.id!r}: 'gmm' on a Normal distribution; "
            "'rwlav' gives the same information without the mixture variables.",
            UserWarning,
            stacklevel=3,
        )
    return crit


def resolve_criteria(
    measurements: Iterable[Measurement], settings: SESettings
) -> CriterionAssignment:
    """Decide the criterion of every measurement.

    - ``settings.criterion`` set and not ``mixed``: applied to all measurements.
    - unset: each measurement's ``crit`` when given, else ``rwlav`` for
      Normal and ``mle`` otherwise.
    - ``mixed``: each measurement's ``crit`` is copied verbatim; a missing one
      raises MissingCriterionError (no default is ever substituted).

    Returns a read-only mapping ``id -> criterion``.
    """
    ms = check_unique_ids(measurements)

    if settings.is_mixed:
        missing = [m.id for m in ms if m.crit is None]
        if missing:
            raise MissingCriterionError(missing)
        chosen = [(m, m.crit) for m in ms]
    elif settings.criterion is not None:
        ignored = [m.id for m in ms if m.crit is not None and m.crit != settings.criterion]
        if ignored:
            warn(
                f"Ignoring per-measurement 'crit' for {ignored}: global criterion "
                f"{settings.criterion!r} applies (use criterion='mixed' for "
                "per-measurement control).",
                UserWarning,
                stacklevel=2,
            )
        chosen = [(m, settings.criterion) for m in ms]
    else:
        chosen = [(m, m.crit or default_criterion(m)) for m in ms]

    out = {m.id: check_compatible(m, crit) for m, crit in chosen}
    return MappingProxyType(out)


def assign_criteria(
    measurements: Iterable[Measurement], settings: SESettings
) -> Tuple[Measurement, ...]:
    """Return copies of the measurements with their resolved criterion cached."""
    ms = tuple(measurements)
    assignment = resolve_criteria(ms, settings)
    return tuple(m.with_criterion(assignment[m.id]) for m in ms)
