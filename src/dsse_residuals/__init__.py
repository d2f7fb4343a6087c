"""dsse_residuals public API."""
from .criteria import assign_criteria, resolve_criteria
from .distributions import (
    Beta,
    Exponential,
    ExtendedBeta,
    Gamma,
    LogNormal,
    Normal,
    Weibull,
    get_distribution,
)
from .errors import (
    CriterionFamilyMismatchError,
    InvalidComponentCountError,
    InvalidParameterError,
    MissingCriterionError,
    ResidualFormulationError,
    UnboundVariableError,
    UnknownCriterionError,
    UnsupportedDistributionError,
)
from .expressions import ConeConstraint, Constraint, Expression, Variable
from .formulation import (
    Formulation,
    LogDensityOracle,
    ResidualFormulation,
    build_formulation,
    build_residual,
)
from .measurements import Measurement
from .mixture import GaussianComponent, decompose
from .settings import SESettings
from . import backends

__all__ = [
    "SESettings",
    "Measurement",
    "Variable",
    "Expression",
    "Constraint",
    "ConeConstraint",
    "Normal",
    "LogNormal",
    "Exponential",
    "Weibull",
    "Gamma",
    "Beta",
    "ExtendedBeta",
    "get_distribution",
    "resolve_criteria",
    "assign_criteria",
    "GaussianComponent",
    "decompose",
    "build_residual",
    "build_formulation",
    "Formulation",
    "ResidualFormulation",
    "LogDensityOracle",
    "ResidualFormulationError",
    "UnsupportedDistributionError",
    "MissingCriterionError",
    "CriterionFamilyMismatchError",
    "UnknownCriterionError",
    "InvalidParameterError",
    "InvalidComponentCountError",
    "UnboundVariableError",
    "backends",
]
