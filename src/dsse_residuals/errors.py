"""Error taxonomy raised while building residual formulations."""

from __future__ import annotations

__all__ = [
    "ResidualFormulationError",
    "UnsupportedDistributionError",
    "MissingCriterionError",
    "CriterionFamilyMismatchError",
    "UnknownCriterionError",
    "InvalidParameterError",
    "InvalidComponentCountError",
    "UnboundVariableError",
]


class ResidualFormulationError(Exception):
    """Base class for every error raised by dsse_residuals."""


class UnsupportedDistributionError(ResidualFormulationError, NotImplementedError):
    """Distribution family has no log-density/derivative support."""


class MissingCriterionError(ResidualFormulationError):
    """Mixed criterion mode without a per-measurement ``crit`` entry."""

    def __init__(self, ids):
        self.ids = tuple(ids)
        super().__init__(
            "criterion='mixed' requires an explicit 'crit' on every measurement; "
            f"missing for: {list(self.ids)}"
        )


class CriterionFamilyMismatchError(ResidualFormulationError, ValueError):
    """Criterion cannot be used with the measurement's distribution family."""


class UnknownCriterionError(ResidualFormulationError, ValueError):
    """Criterion name is not one of the supported criteria."""


class InvalidParameterError(ResidualFormulationError, ValueError):
    """Non-positive scale, rescaler, weight or otherwise invalid parameter."""


class InvalidComponentCountError(InvalidParameterError):
    """Gaussian mixture component count below one."""


class UnboundVariableError(ResidualFormulationError, KeyError):
    """A measurement refers to a state variable the caller did not provide."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""
