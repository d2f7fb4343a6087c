"""Residual formulation builder.

For each measurement the builder emits a non-negative residual variable
``res_<id>`` and the constraints binding it to the measured state variable
``x``, according to the resolved criterion (rsc = rescaler, w = measurement
weight, w_n = w times the mixture weight of component n):

    wlav   res == |x - mu| / (rsc w sigma)
    rwlav  res >= (x - mu) / (rsc w sigma),  res >= -(x - mu) / (rsc w sigma)
    wls    res == (x - mu)^2 / (rsc w sigma^2)
    rwls   rsc w sigma^2 res >= (x - mu)^2    (rotated SOC for form="conic")
    gmm    x == sum_n x_n
           res >= +sum_n (x_n - mu_n) / (rsc w_n sigma_n)
           res >= -sum_n (x_n - mu_n) / (rsc w_n sigma_n)
    mle    res == -(rsc / w) logpdf(x) + shf,  shf = (rsc / w) logpdf(mode)

The relaxed criteria (rwlav, rwls, gmm) are tight at any minimizer of an
objective that includes ``res``. The builder is pure: every call returns new
objects and nothing is cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .criteria import check_compatible, resolve_criteria
from .distributions import Distribution
from .errors import InvalidParameterError, UnboundVariableError, UnknownCriterionError
from .expressions import (
    ConeConstraint,
    Constraint,
    Expression,
    ScalarFunction,
    Variable,
    absolute,
    as_expression,
    call,
    square,
)
from .measurements import Measurement, check_unique_ids
from .mixture import GaussianComponent, decompose
from .rescale import denominator, effective_rescaler, standardized
from .settings import FORMS, SESettings, check_criterion

__all__ = [
    "LogDensityOracle",
    "ResidualFormulation",
    "Formulation",
    "build_residual",
    "build_formulation",
]

AnyConstraint = Union[Constraint, ConeConstraint]
Point = Mapping[str, float]


@dataclass(frozen=True)
class LogDensityOracle:
    """Exact log-density callbacks for an ``mle`` residual.

    ``residual(x) = -(rescaler / weight) * logpdf(x) + shift`` is zero at
    ``mode`` and non-negative on the support; ``gradient``/``hessian`` are its exact first
    and second derivatives, so the solver needs no automatic differentiation.
    """

    measurement_id: str
    distribution: Distribution
    rescaler: float
    shift: float
    mode: float
    weight: float = 1.0

    @property
    def factor(self) -> float:
        return self.rescaler / self.weight

    def logpdf(self, x: Any) -> Any:
        return self.distribution.logpdf(x)

    def gradlogpdf(self, x: Any) -> Any:
        return self.distribution.gradlogpdf(x)

    def heslogpdf(self, x: Any) -> Any:
        return self.distribution.heslogpdf(x)

    def residual(self, x: Any) -> Any:
        return -self.factor * self.distribution.logpdf(x) + self.shift

    def gradient(self, x: Any) -> Any:
        return -self.factor * self.distribution.gradlogpdf(x)

    def hessian(self, x: Any) -> Any:
        return -self.factor * self.distribution.heslogpdf(x)

    def scalar_function(self) -> ScalarFunction:
        """The log-density packaged as an expression building block."""
        dst = self.distribution
        return ScalarFunction(
            f"logpdf_{self.measurement_id}", dst.logpdf, dst.gradlogpdf, dst.heslogpdf
        )


@dataclass(frozen=True)
class ResidualFormulation:
    """Variables and constraints emitted for one measurement."""

    measurement_id: str
    criterion: str
    rescaler: float
    residual: Variable
    # New decision variables: the residual first, then mixture components.
    variables: Tuple[Variable, ...]
    constraints: Tuple[AnyConstraint, ...]
    # Value the residual takes at the optimum, given the other variables.
    tight_value: Callable[[Point], float]
    components: Tuple[GaussianComponent, ...] = ()
    oracle: Optional[LogDensityOracle] = None


@dataclass(frozen=True)
class Formulation:
    """All residual formulations of one build, for one solver formulation."""

    form: str
    settings: SESettings
    residuals: Tuple[ResidualFormulation, ...]

    @property
    def variables(self) -> Tuple[Variable, ...]:
        return tuple(v for r in self.residuals for v in r.variables)

    @property
    def constraints(self) -> Tuple[AnyConstraint, ...]:
        return tuple(c for r in self.residuals for c in r.constraints)

    @property
    def criteria(self) -> Dict[str, str]:
        return {r.measurement_id: r.criterion for r in self.residuals}

    def __getitem__(self, measurement_id: str) -> ResidualFormulation:
        for r in self.residuals:
            if r.measurement_id == measurement_id:
                return r
        raise KeyError(measurement_id)

    def __len__(self) -> int:
        return len(self.residuals)

    def objective(self) -> Expression:
        """Sum of all residual variables."""
        return sum((r.residual.expr() for r in self.residuals), Expression())

    def oracles(self) -> Dict[str, LogDensityOracle]:
        return {r.measurement_id: r.oracle for r in self.residuals if r.oracle is not None}

    def evaluate(self, point: Point) -> Dict[str, float]:
        """Residual values implied by the state (and component) values in ``point``."""
        return {r.measurement_id: float(r.tight_value(point)) for r in self.residuals}

    def max_violation(self, point: Point) -> float:
        return max((c.residual(point) for c in self.constraints), default=0.0)


# ---- per-criterion builders -------------------------------------------------


def _normal_params(m: Measurement) -> Tuple[float, float]:
    dst = m.distribution
    return float(dst.mu), float(dst.sigma)


def _wlav(m, x, res, rsc, form, components):
    mu, sigma = _normal_params(m)
    dev = standardized(x, mu, sigma, rsc, m.weight)
    cons = (Constraint.eq(res - call(absolute, dev), name=f"{m.id}_wlav"),)
    return cons, (), None, lambda p: abs(dev.value(p))


def _rwlav(m, x, res, rsc, form, components):
    mu, sigma = _normal_params(m)
    dev = standardized(x, mu, sigma, rsc, m.weight)
    cons = (
        Constraint.ge(res, dev, name=f"{m.id}_rwlav_pos"),
        Constraint.ge(res, -dev, name=f"{m.id}_rwlav_neg"),
    )
    return cons, (), None, lambda p: abs(dev.value(p))


def _wls(m, x, res, rsc, form, components):
    mu, sigma = _normal_params(m)
    den = denominator(rsc, sigma, power=2, weight=m.weight)
    sq = call(square, as_expression(x) - mu) / den
    cons = (Constraint.eq(res - sq, name=f"{m.id}_wls"),)
    return cons, (), None, lambda p: sq.value(p)


def _rwls(m, x, res, rsc, form, components):
    mu, sigma = _normal_params(m)
    den = denominator(rsc, sigma, power=2, weight=m.weight)
    dev = as_expression(x) - mu
    if form == "conic":
        cons = (ConeConstraint(den * res.expr(), as_expression(0.5), dev, name=f"{m.id}_rwls"),)
    else:
        cons = (Constraint.ge(den * res.expr() - call(square, dev), name=f"{m.id}_rwls"),)
    return cons, (), None, lambda p: dev.value(p) ** 2 / den


def _gmm(m, x, res, rsc, form, components):
    if not components:
        raise InvalidParameterError(f"Measurement {m.id!r}: 'gmm' needs mixture components.")
    for c in components:
        if not (c.weight > 0.0):
            raise InvalidParameterError(
                f"Measurement {m.id!r}: mixture weights must be > 0, got {c.weight!r}."
            )
    # The measurement weight scales every component weight: w_n = weight * w_n.
    comps = tuple(
        GaussianComponent(
            weight=m.weight * c.weight,
            mean=c.mean,
            scale=c.scale,
            variable=Variable(f"{m.id}_gmm_{n}"),
        )
        for n, c in enumerate(components, start=1)
    )
    # Component scales enter as rsc * w_n * sigma_n.
    s = sum(
        (standardized(c.variable, c.mean, c.scale, rsc, c.weight) for c in comps), Expression()
    )
    total = sum((c.variable.expr() for c in comps), Expression())
    cons = (
        Constraint.eq(x, total, name=f"{m.id}_gmm_sum"),
        Constraint.ge(res, s, name=f"{m.id}_gmm_pos"),
        Constraint.ge(res, -s, name=f"{m.id}_gmm_neg"),
    )
    return cons, comps, None, lambda p: abs(s.value(p))


def _mle(m, x, res, rsc, form, components):
    dst = m.distribution
    mode = float(dst.mode())
    peak = float(dst.logpdf(mode))
    if not np.isfinite(peak):
        raise InvalidParameterError(
            f"Measurement {m.id!r}: {m.family} density is unbounded at its mode "
            f"(x={mode}); no finite mle shift exists."
        )
    oracle = LogDensityOracle(
        measurement_id=m.id,
        distribution=dst,
        rescaler=rsc,
        shift=rsc / m.weight * peak,
        mode=mode,
        weight=m.weight,
    )
    fn = oracle.scalar_function()
    cons = (
        Constraint.eq(res + call(fn, x, coef=oracle.factor) - oracle.shift, name=f"{m.id}_mle"),
    )
    return cons, (), oracle, lambda p: float(oracle.residual(float(p[x.name])))


_BUILDERS = {
    "wlav": _wlav,
    "rwlav": _rwlav,
    "wls": _wls,
    "rwls": _rwls,
    "gmm": _gmm,
    "mle": _mle,
}


def _check_form(form: str) -> str:
    f = str(form).lower()
    if f not in FORMS:
        raise ValueError(f"Unknown solver formulation {form!r}. Available: {FORMS}")
    return f


def _as_variable(v: Any, ref: str) -> Variable:
    if v is None:
        raise UnboundVariableError(f"State variable {ref!r} is not bound.")
    if isinstance(v, Variable):
        return v
    if isinstance(v, str):
        return Variable(v)
    raise TypeError(f"State variable {ref!r} must be a Variable or name, got {type(v).__name__}.")


def build_residual(
    measurement: Measurement,
    variable: Optional[Variable],
    settings: SESettings,
    *,
    form: str = "acp",
    components: Optional[Sequence[GaussianComponent]] = None,
) -> ResidualFormulation:
    """Build the residual formulation of a single measurement.

    Uses ``measurement.criterion`` when already resolved, otherwise resolves
    it against ``settings``. For ``gmm`` the components are decomposed here
    unless passed in.
    """
    form = _check_form(form)
    x = _as_variable(variable, measurement.variable_ref)

    crit = measurement.criterion
    if crit is None:
        crit = resolve_criteria((measurement,), settings)[measurement.id]
    else:
        crit = check_compatible(measurement, crit)
    return _assemble(measurement, crit, x, settings, form, components)


def _assemble(
    measurement: Measurement,
    crit: str,
    x: Variable,
    settings: SESettings,
    form: str,
    components: Optional[Sequence[GaussianComponent]],
) -> ResidualFormulation:
    try:
        builder = _BUILDERS[check_criterion(crit)]
    except KeyError as e:
        raise UnknownCriterionError(f"No formulation for criterion {crit!r}.") from e

    rsc = effective_rescaler(measurement, settings)
    if components is not None and crit != "gmm":
        raise InvalidParameterError(
            f"Measurement {measurement.id!r}: mixture components were given but the "
            f"criterion is {crit!r}, not 'gmm'."
        )
    if crit == "gmm" and components is None:
        components = decompose(measurement.distribution, settings.number_of_gaussian)

    res = Variable(f"res_{measurement.id}", lower=0.0)
    cons, comps, oracle, tight = builder(measurement, x, res, rsc, form, components)
    return ResidualFormulation(
        measurement_id=measurement.id,
        criterion=crit,
        rescaler=rsc,
        residual=res,
        variables=(res,) + tuple(c.variable for c in comps),
        constraints=tuple(cons),
        tight_value=tight,
        components=tuple(comps),
        oracle=oracle,
    )


def build_formulation(
    measurements: Iterable[Measurement],
    variables: Mapping[str, Any],
    settings: Optional[SESettings] = None,
    *,
    form: str = "acp",
) -> Formulation:
    """Build residual formulations for a whole measurement set.

    ``variables`` maps each ``variable_ref`` to the caller's state variable.
    Criteria are resolved, references checked and mixtures decomposed before
    any formulation is assembled, so a failing measurement aborts the whole
    build with nothing emitted.
    """
    settings = SESettings() if settings is None else settings
    form = _check_form(form)
    ms = check_unique_ids(measurements)

    assignment = resolve_criteria(ms, settings)

    unbound = sorted({m.variable_ref for m in ms if variables.get(m.variable_ref) is None})
    if unbound:
        raise UnboundVariableError(f"Measurements refer to unbound state variables: {unbound}")

    for m in ms:
        effective_rescaler(m, settings)

    # Identical distributions share one decomposition within this build.
    fitted: Dict[Any, Tuple[GaussianComponent, ...]] = {}
    components: Dict[str, Tuple[GaussianComponent, ...]] = {}
    for m in ms:
        if assignment[m.id] != "gmm":
            continue
        if m.distribution not in fitted:
            fitted[m.distribution] = decompose(m.distribution, settings.number_of_gaussian)
        components[m.id] = fitted[m.distribution]

    residuals = tuple(
        _assemble(
            m.with_criterion(assignment[m.id]),
            assignment[m.id],
            _as_variable(variables[m.variable_ref], m.variable_ref),
            settings,
            form,
            components.get(m.id),
        )
        for m in ms
    )
    return Formulation(form=form, settings=settings, residuals=residuals)
