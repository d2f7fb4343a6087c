from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional
from warnings import warn

import numpy as np

from .errors import InvalidComponentCountError, UnknownCriterionError
from .util import check_positive

__all__ = ["SESettings", "CRITERIA", "MIXED", "FORMS", "DEFAULT_NUMBER_OF_GAUSSIAN"]

CRITERIA = ("wlav", "rwlav", "wls", "rwls", "gmm", "mle")
MIXED = "mixed"

# Solver formulations the emitted residuals are shared across.
FORMS = ("acp", "acr", "ivr", "linear", "conic")

DEFAULT_NUMBER_OF_GAUSSIAN = 10

# Keys accepted by SESettings.from_mapping, including the legacy se_settings names.
_KEY_ALIASES = {
    "criterion": "criterion",
    "estimation_criterion": "criterion",
    "rescaler": "rescaler",
    "weight_rescaler": "rescaler",
    "number_of_gaussian": "number_of_gaussian",
}


def check_criterion(name: Any, *, allow_mixed: bool = False) -> str:
    """Normalize a criterion name, raising UnknownCriterionError if unsupported."""
    crit = str(name).strip().lower()
    valid = CRITERIA + ((MIXED,) if allow_mixed else ())
    if crit not in valid:
        raise UnknownCriterionError(f"Unknown criterion {name!r}. Available: {valid}")
    return crit


def check_component_count(n: Any) -> int:
    """Validate a Gaussian mixture component count (integer >= 1)."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        if isinstance(n, (float, np.floating)) and float(n).is_integer():
            n = int(n)
        else:
            raise InvalidComponentCountError(
                f"number_of_gaussian must be an integer >= 1, got {n!r}."
            )
    if int(n) < 1:
        raise InvalidComponentCountError(
            f"number_of_gaussian must be an integer >= 1, got {n!r}."
        )
    return int(n)


@dataclass(frozen=True)
class SESettings:
    """Immutable estimation settings passed explicitly through every build.

    criterion:
        One of ``wlav|rwlav|wls|rwls|gmm|mle|mixed``. ``None`` picks a default
        per measurement: ``rwlav`` for Normal, ``mle`` for everything else.
    rescaler:
        Positive divisor applied inside every residual formula.
    number_of_gaussian:
        Component count for the ``gmm`` criterion.
    """

    criterion: Optional[str] = None
    rescaler: float = 1.0
    number_of_gaussian: int = DEFAULT_NUMBER_OF_GAUSSIAN

    def __post_init__(self) -> None:
        if self.criterion is not None:
            object.__setattr__(
                self, "criterion", check_criterion(self.criterion, allow_mixed=True)
            )
        object.__setattr__(self, "rescaler", check_positive("rescaler", self.rescaler))
        object.__setattr__(
            self, "number_of_gaussian", check_component_count(self.number_of_gaussian)
        )

    @property
    def is_mixed(self) -> bool:
        return self.criterion == MIXED

    @staticmethod
    def from_mapping(options: Optional[Mapping[str, Any]] = None) -> "SESettings":
        """Build settings from a plain dict (e.g. ``data["se_settings"]``).

        Unrecognized keys are ignored with a warning.
        """
        kw = {}
        for key, value in dict(options or {}).items():
            field_name = _KEY_ALIASES.get(str(key))
            if field_name is None:
                warn(f"Ignoring unrecognized se_settings key {key!r}.", UserWarning, stacklevel=2)
                continue
            kw[field_name] = value
        return SESettings(**kw)

    def with_options(self, **options: Any) -> "SESettings":
        """Return a copy with some options replaced."""
        return replace(self, **options)
