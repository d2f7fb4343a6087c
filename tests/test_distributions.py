import numpy as np
import pytest

from dsse_residuals import (
    Beta,
    Exponential,
    ExtendedBeta,
    Gamma,
    InvalidParameterError,
    LogNormal,
    Normal,
    UnsupportedDistributionError,
    Weibull,
    get_distribution,
)
from dsse_residuals.distributions import gradlogpdf, heslogpdf, logpdf


CASES = [
    (Normal(mu=1.0, sigma=0.5), 1.3),
    (LogNormal(mu=0.0, sigma=0.5), 1.2),
    (Exponential(theta=2.0), 0.7),
    (Weibull(shape=2.5, scale=1.5), 1.1),
    (Weibull(shape=0.8, scale=1.0), 0.6),
    (Gamma(shape=3.0, scale=0.5), 1.4),
    (Beta(alpha=2.0, beta=5.0), 0.3),
    (ExtendedBeta(alpha=2.0, beta=3.0, lower=-1.0, upper=2.0), 0.4),
]


def _central(f, x, h):
    return (f(x + h) - f(x - h)) / (2.0 * h)


@pytest.mark.parametrize("dst,x", CASES, ids=lambda c: getattr(c, "family", str(c)))
def test_gradlogpdf_matches_finite_difference(dst, x):
    h = 1e-6 * max(1.0, abs(x))
    fd = _central(dst.logpdf, x, h)
    assert dst.gradlogpdf(x) == pytest.approx(fd, rel=1e-5, abs=1e-6)


@pytest.mark.parametrize("dst,x", CASES, ids=lambda c: getattr(c, "family", str(c)))
def test_heslogpdf_matches_finite_difference(dst, x):
    h = 1e-5 * max(1.0, abs(x))
    fd = _central(dst.gradlogpdf, x, h)
    assert dst.heslogpdf(x) == pytest.approx(fd, rel=1e-4, abs=1e-5)


@pytest.mark.parametrize("dst,x", CASES, ids=lambda c: getattr(c, "family", str(c)))
def test_logpdf_matches_scipy(dst, x):
    assert dst.logpdf(x) == pytest.approx(float(dst.frozen().logpdf(x)))
    assert dst.pdf(x) == pytest.approx(np.exp(dst.logpdf(x)))


@pytest.mark.parametrize("dst,x", CASES, ids=lambda c: getattr(c, "family", str(c)))
def test_mode_is_a_local_maximum(dst, x):
    mode = dst.mode()
    lo, hi = dst.support()
    peak = dst.logpdf(mode)
    for d in (1e-3, 1e-2):
        for xi in (mode - d, mode + d):
            if lo < xi < hi:
                assert dst.logpdf(xi) <= peak + 1e-12


def test_normal_closed_form_derivatives():
    dst = Normal(mu=1.0, sigma=0.01)
    assert dst.gradlogpdf(1.02) == pytest.approx(-0.02 / 1e-4)
    assert dst.heslogpdf(5.0) == pytest.approx(-1e4)


def test_derivatives_vanish_outside_support():
    g = Gamma(shape=3.0, scale=1.0)
    assert g.gradlogpdf(-1.0) == 0.0
    assert g.heslogpdf(-1.0) == 0.0
    assert g.logpdf(-1.0) == -np.inf

    b = ExtendedBeta(alpha=2.0, beta=2.0, lower=0.9, upper=1.1)
    assert b.gradlogpdf(1.2) == 0.0
    assert b.heslogpdf(0.5) == 0.0


def test_array_inputs_keep_shape():
    dst = Weibull(shape=2.0, scale=1.0)
    x = np.array([[-1.0, 0.5], [1.0, 2.0]])
    g = dst.gradlogpdf(x)
    h = dst.heslogpdf(x)
    assert isinstance(g, np.ndarray) and g.shape == x.shape
    assert h.shape == x.shape
    assert g[0, 0] == 0.0
    assert g[1, 0] == pytest.approx(1.0 / 1.0 - 2.0 * 1.0)
    assert isinstance(dst.gradlogpdf(1.0), float)


def test_get_distribution_aliases():
    assert get_distribution("normal", mu=0.0, sigma=1.0) == Normal(0.0, 1.0)
    assert isinstance(get_distribution("Log-Normal", mu=0.0, sigma=1.0), LogNormal)
    assert isinstance(
        get_distribution("extended_beta", alpha=2.0, beta=2.0, lower=0.0, upper=2.0),
        ExtendedBeta,
    )


def test_unknown_family_raises():
    with pytest.raises(UnsupportedDistributionError, match="Unknown distribution family"):
        get_distribution("Cauchy", loc=0.0, scale=1.0)


def test_capability_functions_reject_foreign_objects():
    class OnlyPdf:
        family = "Cauchy"

        def pdf(self, x):
            return 0.0

    with pytest.raises(UnsupportedDistributionError, match="heslogpdf"):
        heslogpdf(OnlyPdf(), 0.0)
    with pytest.raises(UnsupportedDistributionError):
        gradlogpdf(OnlyPdf(), 0.0)
    with pytest.raises(UnsupportedDistributionError):
        logpdf(OnlyPdf(), 0.0)
    assert logpdf(Normal(), 0.0) == pytest.approx(-0.5 * np.log(2.0 * np.pi))


@pytest.mark.parametrize(
    "factory",
    [
        lambda: Normal(mu=0.0, sigma=0.0),
        lambda: Normal(mu=0.0, sigma=-1.0),
        lambda: LogNormal(mu=np.inf, sigma=1.0),
        lambda: Exponential(theta=0.0),
        lambda: Weibull(shape=-1.0, scale=1.0),
        lambda: Gamma(shape=1.0, scale=0.0),
        lambda: Beta(alpha=0.0, beta=1.0),
        lambda: ExtendedBeta(alpha=2.0, beta=2.0, lower=1.0, upper=1.0),
    ],
)
def test_invalid_parameters_raise(factory):
    with pytest.raises(InvalidParameterError):
        factory()


def test_beta_modes_at_boundaries():
    assert Beta(alpha=1.0, beta=3.0).mode() == 0.0
    assert Beta(alpha=3.0, beta=1.0).mode() == 1.0
    assert Beta(alpha=1.0, beta=1.0).mode() == 0.5
    assert ExtendedBeta(alpha=3.0, beta=3.0, lower=-2.0, upper=2.0).mode() == pytest.approx(0.0)
