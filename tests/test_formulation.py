import numpy as np
import pytest

from dsse_residuals import (
    ConeConstraint,
    Constraint,
    CriterionFamilyMismatchError,
    Gamma,
    GaussianComponent,
    InvalidParameterError,
    Measurement,
    MissingCriterionError,
    SESettings,
    UnboundVariableError,
    Variable,
    build_formulation,
    build_residual,
)

X = {"x_m1": Variable("x_m1"), "x_m2": Variable("x_m2")}


def _m1(**kw):
    return Measurement.normal("m1", "x_m1", mu=1.0, sigma=0.01, **kw)


def _weibull(id_="m2", **kw):
    return Measurement.from_distribution(id_, "x_m2", "Weibull", shape=2.0, scale=0.5, **kw)


def test_rwlav_example_constraints():
    r = build_residual(_m1(), X["x_m1"], SESettings(criterion="rwlav", rescaler=1.0))

    assert r.criterion == "rwlav"
    assert r.residual.name == "res_m1"
    assert r.residual.lower == 0.0 and r.residual.upper is None
    assert len(r.constraints) == 2
    pos, neg = r.constraints
    assert pos.sense == neg.sense == ">="

    # res - (x - 1)/0.01 >= 0 and res + (x - 1)/0.01 >= 0
    assert pos.body.coefficients() == pytest.approx({"res_m1": 1.0, "x_m1": -100.0})
    assert pos.body.constant == pytest.approx(100.0)
    assert neg.body.coefficients() == pytest.approx({"res_m1": 1.0, "x_m1": 100.0})
    assert neg.body.constant == pytest.approx(-100.0)

    point = {"x_m1": 1.02, "res_m1": r.tight_value({"x_m1": 1.02})}
    assert point["res_m1"] == pytest.approx(2.0)
    assert pos.body.value(point) == pytest.approx(0.0, abs=1e-9)
    assert neg.body.value(point) == pytest.approx(4.0)
    assert all(c.is_satisfied(point) for c in r.constraints)


def test_wlav_is_exact_equality():
    r = build_residual(_m1(), X["x_m1"], SESettings(criterion="wlav"))
    (c,) = r.constraints
    assert c.sense == "=="
    assert c.body.value({"x_m1": 0.97, "res_m1": 3.0}) == pytest.approx(0.0, abs=1e-9)
    assert c.body.value({"x_m1": 1.03, "res_m1": 3.0}) == pytest.approx(0.0, abs=1e-9)


def test_wls_is_exact_squared_residual():
    r = build_residual(_m1(), X["x_m1"], SESettings(criterion="wls"))
    (c,) = r.constraints
    assert c.sense == "=="
    assert r.tight_value({"x_m1": 1.02}) == pytest.approx(4.0)
    grad = c.body.gradient({"x_m1": 1.02, "res_m1": 4.0})
    assert grad["x_m1"] == pytest.approx(-2.0 * 0.02 / 1e-4)
    hes = c.body.hessian({"x_m1": 1.02, "res_m1": 4.0})
    assert hes[("x_m1", "x_m1")] == pytest.approx(-2.0 / 1e-4)


@pytest.mark.parametrize("form", ["acp", "acr", "ivr", "linear"])
def test_rwls_quadratic_relaxation(form):
    r = build_residual(_m1(), X["x_m1"], SESettings(criterion="rwls", rescaler=2.0), form=form)
    (c,) = r.constraints
    assert isinstance(c, Constraint) and c.sense == ">="
    rho = r.tight_value({"x_m1": 1.02})
    # rsc * sigma^2 * rho == (x - mu)^2 at the tight point
    assert 2.0 * 1e-4 * rho == pytest.approx(0.02**2)
    assert c.body.value({"x_m1": 1.02, "res_m1": rho}) == pytest.approx(0.0, abs=1e-12)
    assert not c.is_satisfied({"x_m1": 1.02, "res_m1": 0.5 * rho}, tol=1e-12)


def test_rwls_conic_form_emits_rotated_cone():
    r = build_residual(_m1(), X["x_m1"], SESettings(criterion="rwls"), form="conic")
    (c,) = r.constraints
    assert isinstance(c, ConeConstraint)
    rho = r.tight_value({"x_m1": 1.02})
    assert c.value({"x_m1": 1.02, "res_m1": rho}) == pytest.approx(0.0, abs=1e-12)
    assert c.is_satisfied({"x_m1": 1.02, "res_m1": 2.0 * rho})
    assert not c.is_satisfied({"x_m1": 1.02, "res_m1": 0.5 * rho}, tol=1e-12)


def test_rescaler_divides_every_criterion():
    x = {"x_m1": 1.02}
    for crit, base in (("wlav", 2.0), ("rwlav", 2.0), ("wls", 4.0), ("rwls", 4.0)):
        r = build_residual(_m1(), X["x_m1"], SESettings(criterion=crit, rescaler=100.0))
        assert r.rescaler == 100.0
        assert r.tight_value(x) == pytest.approx(base / 100.0)


def test_per_measurement_rescaler_overrides_settings():
    r = build_residual(_m1(rescaler=10.0), X["x_m1"], SESettings(criterion="rwlav", rescaler=100.0))
    assert r.rescaler == 10.0
    assert r.tight_value({"x_m1": 1.02}) == pytest.approx(0.2)


def test_gmm_links_components_to_state_variable():
    settings = SESettings(criterion="gmm", number_of_gaussian=4)
    r = build_residual(_weibull(), X["x_m2"], settings)

    assert r.criterion == "gmm"
    assert len(r.components) == 4
    assert [v.name for v in r.variables] == ["res_m2"] + [f"m2_gmm_{n}" for n in range(1, 5)]
    assert all(c.variable is not None for c in r.components)

    link, pos, neg = r.constraints
    assert link.sense == "==" and pos.sense == neg.sense == ">="

    # x == sum x_n holds for any component values.
    rng = np.random.default_rng(0)
    for _ in range(5):
        xs = rng.normal(0.4, 0.2, size=4)
        point = {f"m2_gmm_{n}": float(v) for n, v in enumerate(xs, start=1)}
        point["x_m2"] = float(xs.sum())
        assert link.body.value(point) == pytest.approx(0.0, abs=1e-12)

        point["res_m2"] = r.tight_value(point)
        assert pos.is_satisfied(point) and neg.is_satisfied(point)
        expected = sum(
            (point[c.variable.name] - c.mean) / (c.weight * c.scale) for c in r.components
        )
        assert point["res_m2"] == pytest.approx(abs(expected))


def test_gmm_uses_given_components():
    comps = (
        GaussianComponent(weight=0.25, mean=0.0, scale=1.0),
        GaussianComponent(weight=0.75, mean=2.0, scale=0.5),
    )
    r = build_residual(
        _weibull().with_criterion("gmm"), X["x_m2"], SESettings(rescaler=2.0), components=comps
    )
    point = {"x_m2": 3.0, "m2_gmm_1": 1.0, "m2_gmm_2": 2.0, "res_m2": 0.0}
    # (1 - 0)/(2*0.25*1) + (2 - 2)/(2*0.75*0.5)
    assert r.tight_value(point) == pytest.approx(2.0)


def test_gmm_rejects_non_positive_weights():
    comps = (GaussianComponent(weight=0.0, mean=0.0, scale=1.0),)
    with pytest.raises(InvalidParameterError, match="weights"):
        build_residual(_weibull().with_criterion("gmm"), X["x_m2"], SESettings(), components=comps)


def test_mle_residual_is_non_negative_with_zero_at_mode():
    m = Measurement.from_distribution("m3", "x_m2", "Gamma", shape=3.0, scale=0.5)
    r = build_residual(m, X["x_m2"], SESettings(rescaler=4.0))
    oracle = r.oracle

    assert r.criterion == "mle"
    assert oracle is not None
    assert oracle.mode == pytest.approx(1.0)
    assert oracle.shift == pytest.approx(4.0 * Gamma(3.0, 0.5).logpdf(1.0))
    assert oracle.residual(oracle.mode) == pytest.approx(0.0, abs=1e-12)

    xs = np.linspace(0.05, 6.0, 400)
    assert np.all(oracle.residual(xs) >= -1e-12)

    x = 1.7
    assert oracle.gradient(x) == pytest.approx(-4.0 * Gamma(3.0, 0.5).gradlogpdf(x))
    assert oracle.hessian(x) == pytest.approx(-4.0 * Gamma(3.0, 0.5).heslogpdf(x))

    (c,) = r.constraints
    point = {"x_m2": x, "res_m3": oracle.residual(x)}
    assert c.body.value(point) == pytest.approx(0.0, abs=1e-10)
    assert c.body.gradient(point)["x_m2"] == pytest.approx(-oracle.gradient(x))
    assert c.body.hessian(point)[("x_m2", "x_m2")] == pytest.approx(-oracle.hessian(x))


@pytest.mark.parametrize(
    "family,params",
    [
        ("Normal", {"mu": 0.2, "sigma": 0.1}),
        ("LogNormal", {"mu": 0.0, "sigma": 0.3}),
        ("Exponential", {"theta": 0.5}),
        ("Weibull", {"shape": 1.0, "scale": 0.5}),
        ("Beta", {"alpha": 2.0, "beta": 3.0}),
        ("ExtendedBeta", {"alpha": 1.5, "beta": 4.0, "lower": 0.9, "upper": 1.1}),
    ],
)
def test_mle_shift_zeroes_minimum_for_every_family(family, params):
    m = Measurement.from_distribution("m", "x_m1", family, crit="mle", **params)
    r = build_residual(m, X["x_m1"], SESettings(criterion="mixed"))
    oracle = r.oracle
    lo, hi = m.distribution.support()
    lo = max(lo, oracle.mode - 5.0)
    hi = min(hi, oracle.mode + 5.0)
    xs = np.linspace(lo, hi, 801)[1:-1]
    assert np.min(oracle.residual(xs)) >= -1e-10
    assert oracle.residual(oracle.mode) == pytest.approx(0.0, abs=1e-10)


def test_mle_with_unbounded_density_raises():
    m = Measurement.from_distribution("m", "x_m1", "Gamma", shape=0.5, scale=1.0)
    with pytest.raises(InvalidParameterError, match="unbounded"):
        build_residual(m, X["x_m1"], SESettings())


def test_preset_criterion_is_validated_against_family():
    with pytest.raises(CriterionFamilyMismatchError):
        build_residual(_weibull().with_criterion("wls"), X["x_m2"], SESettings())


def test_build_residual_requires_a_bound_variable():
    with pytest.raises(UnboundVariableError, match="x_m1"):
        build_residual(_m1(), None, SESettings())


def test_build_formulation_collects_everything():
    ms = [_m1(), _weibull()]
    f = build_formulation(ms, X, SESettings())

    assert len(f) == 2
    assert f.form == "acp"
    assert f.criteria == {"m1": "rwlav", "m2": "mle"}
    assert [v.name for v in f.variables] == ["res_m1", "res_m2"]
    assert len(f.constraints) == 3
    assert f.objective().coefficients() == {"res_m1": 1.0, "res_m2": 1.0}
    assert set(f.oracles()) == {"m2"}
    assert f["m1"].criterion == "rwlav"
    with pytest.raises(KeyError):
        f["nope"]

    values = f.evaluate({"x_m1": 1.02, "x_m2": 0.5})
    assert values["m1"] == pytest.approx(2.0)
    assert values["m2"] >= 0.0


def test_build_formulation_unbound_reference_raises():
    ms = [_m1(), Measurement.normal("m9", "x_missing", mu=0.0, sigma=1.0)]
    with pytest.raises(UnboundVariableError, match="x_missing") as info:
        build_formulation(ms, X, SESettings())
    assert isinstance(info.value, KeyError)


def test_mixed_mode_missing_crit_aborts_build():
    ms = [_m1(crit="rwlav"), _weibull()]
    with pytest.raises(MissingCriterionError):
        build_formulation(ms, X, SESettings(criterion="mixed"))


def test_mixed_mode_builds_each_criterion():
    ms = [_m1(crit="wls"), _weibull(crit="gmm")]
    f = build_formulation(ms, X, SESettings(criterion="mixed", number_of_gaussian=3))
    assert f.criteria == {"m1": "wls", "m2": "gmm"}
    assert len(f["m2"].components) == 3
    assert len(f.variables) == 1 + 1 + 3


def test_unknown_form_raises():
    with pytest.raises(ValueError, match="Unknown solver formulation"):
        build_formulation([_m1()], X, SESettings(), form="dc")


def test_builds_are_independent_across_forms():
    ms = (_m1(), _weibull())
    settings = SESettings()
    a = build_formulation(ms, X, settings.with_options(criterion="mle"), form="acp")
    b = build_formulation(ms[:1], X, settings.with_options(criterion="rwls"), form="conic")
    c = build_formulation(ms, X, settings.with_options(criterion="mle"), form="acp")

    assert a.criteria == c.criteria == {"m1": "mle", "m2": "mle"}
    assert b.criteria == {"m1": "rwls"}
    assert isinstance(b.constraints[0], ConeConstraint)
    assert [str(x) for x in a.constraints] == [str(x) for x in c.constraints]
    assert all(m.criterion is None for m in ms)


def test_components_for_non_gmm_criterion_raise():
    comps = (GaussianComponent(weight=1.0, mean=0.0, scale=1.0),)
    with pytest.raises(InvalidParameterError, match="not 'gmm'"):
        build_residual(_m1(), X["x_m1"], SESettings(criterion="rwlav"), components=comps)


@pytest.mark.parametrize("crit", ["wlav", "rwlav", "wls", "rwls"])
def test_measurement_weight_divides_gaussian_residuals(crit):
    settings = SESettings(criterion=crit)
    light = build_residual(_m1(), X["x_m1"], settings)
    heavy = build_residual(_m1(weight=5.0), X["x_m1"], settings)
    assert heavy.tight_value({"x_m1": 1.02}) == pytest.approx(
        light.tight_value({"x_m1": 1.02}) / 5.0
    )


def test_measurement_weight_changes_rwlav_coefficients():
    r = build_residual(_m1(weight=5.0), X["x_m1"], SESettings(criterion="rwlav"))
    pos, _ = r.constraints
    assert pos.body.coefficients() == pytest.approx({"res_m1": 1.0, "x_m1": -20.0})


def test_measurement_weight_scales_mixture_weights():
    comps = (
        GaussianComponent(weight=0.25, mean=0.0, scale=1.0),
        GaussianComponent(weight=0.75, mean=2.0, scale=0.5),
    )
    m = Measurement.from_distribution(
        "m2", "x_m2", "Weibull", shape=2.0, scale=0.5, weight=2.0
    ).with_criterion("gmm")
    r = build_residual(m, X["x_m2"], SESettings(), components=comps)
    assert [c.weight for c in r.components] == pytest.approx([0.5, 1.5])
    point = {"x_m2": 3.0, "m2_gmm_1": 1.0, "m2_gmm_2": 2.0, "res_m2": 0.0}
    # w_n = 2 * (0.25, 0.75): (1 - 0)/(0.5*1) + (2 - 2)/(1.5*0.5)
    assert r.tight_value(point) == pytest.approx(2.0)


def test_measurement_weight_divides_mle_residual():
    def build(weight):
        m = Measurement.from_distribution(
            "m3", "x_m2", "Gamma", shape=3.0, scale=0.5, weight=weight
        )
        return build_residual(m, X["x_m2"], SESettings(rescaler=2.0))

    base, heavy = build(1.0), build(4.0)
    assert heavy.oracle.factor == pytest.approx(0.5)
    assert heavy.oracle.residual(heavy.oracle.mode) == pytest.approx(0.0, abs=1e-12)
    for x in (0.4, 1.7, 3.0):
        assert heavy.tight_value({"x_m2": x}) == pytest.approx(base.tight_value({"x_m2": x}) / 4.0)
