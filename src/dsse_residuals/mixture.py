"""Gaussian mixture decomposition of a univariate distribution.

The target density is discretized on a grid covering all but ``tail`` of
its probability mass at each end; the grid masses are then treated as
weighted samples and a K-component 1-D Gaussian mixture is fitted by
weighted expectation-maximization:

    E-step: r_jk = w_k N(z_j; mu_k, s_k) / sum_l w_l N(z_j; mu_l, s_l)
    M-step: n_k  = sum_j m_j r_jk
            w_k  = n_k / sum_l n_l
            mu_k = sum_j m_j r_jk z_j / n_k
            s_k^2 = sum_j m_j r_jk (z_j - mu_k)^2 / n_k

Initialization is deterministic (means at the (k + 1/2)/K quantiles), so a
given (distribution, K) pair always yields the same components.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple
from warnings import warn

import numpy as np
from scipy.special import logsumexp

from .expressions import Variable
from .settings import check_component_count

__all__ = [
    "GaussianComponent",
    "decompose",
    "discretize",
    "mixture_pdf",
    "kl_divergence",
]

DEFAULT_GRID_POINTS = 2001
DEFAULT_MAX_ITER = 1000
DEFAULT_TOL = 1e-9
DEFAULT_TAIL = 1e-6

# Keeps every component weight strictly positive.
WEIGHT_FLOOR = 1e-12
MASS_FLOOR = 1e-300


@dataclass(frozen=True)
class GaussianComponent:
    """One weighted Gaussian of a mixture; ``variable`` is attached by the builder."""

    weight: float
    mean: float
    scale: float
    variable: Optional[Variable] = None


def discretize(
    distribution: Any, grid_points: int = DEFAULT_GRID_POINTS, tail: float = DEFAULT_TAIL
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(grid, mass)``: evenly spaced points and normalized probability masses."""
    if grid_points < 3:
        raise ValueError("grid_points must be >= 3.")
    lo = float(distribution.ppf(tail))
    hi = float(distribution.ppf(1.0 - tail))
    if not (np.isfinite(lo) and np.isfinite(hi) and hi > lo):
        raise ValueError(
            f"Cannot discretize {getattr(distribution, 'family', distribution)!r}: "
            f"quantile range ({lo}, {hi}) is degenerate."
        )
    grid = np.linspace(lo, hi, int(grid_points))
    dens = np.asarray(distribution.pdf(grid), dtype=float)
    dens = np.where(np.isfinite(dens) & (dens > 0.0), dens, 0.0)
    total = float(np.sum(dens))
    if total <= 0.0:
        raise ValueError("Distribution density vanishes on the discretization grid.")
    return grid, dens / total


def _normal_logpdf(z: np.ndarray, mu: np.ndarray, var: np.ndarray) -> np.ndarray:
    # (N, K) matrix of log N(z_j; mu_k, var_k)
    d = z[:, None] - mu[None, :]
    return -0.5 * (np.log(2.0 * np.pi * var)[None, :] + d * d / var[None, :])


def decompose(
    distribution: Any,
    n_components: int,
    *,
    grid_points: int = DEFAULT_GRID_POINTS,
    max_iter: int = DEFAULT_MAX_ITER,
    tol: float = DEFAULT_TOL,
    tail: float = DEFAULT_TAIL,
) -> Tuple[GaussianComponent, ...]:
    """Approximate ``distribution`` by exactly ``n_components`` weighted Gaussians.

    Raises InvalidComponentCountError for ``n_components < 1`` before the
    distribution is touched. Warns (UserWarning) if EM did not reach ``tol``
    within ``max_iter`` iterations; the last iterate is returned.
    """
    K = check_component_count(n_components)
    grid, mass = discretize(distribution, grid_points, tail)

    mean = float(np.sum(mass * grid))
    sd = float(np.sqrt(np.sum(mass * (grid - mean) ** 2)))
    dz = float(grid[1] - grid[0])
    var_floor = (0.5 * dz) ** 2

    q = (np.arange(K) + 0.5) / K
    mu = np.interp(q, np.cumsum(mass), grid)
    var = np.full(K, max((sd / np.sqrt(K)) ** 2, var_floor))
    w = np.full(K, 1.0 / K)

    ll_prev = -np.inf
    converged = False
    for _ in range(int(max_iter)):
        log_r = np.log(w)[None, :] + _normal_logpdf(grid, mu, var)
        log_norm = logsumexp(log_r, axis=1)
        ll = float(np.sum(mass * log_norm))
        r = np.exp(log_r - log_norm[:, None]) * mass[:, None]

        nk = np.maximum(r.sum(axis=0), MASS_FLOOR)
        w = np.maximum(nk / nk.sum(), WEIGHT_FLOOR)
        w = w / w.sum()
        mu = (r * grid[:, None]).sum(axis=0) / nk
        var = np.maximum((r * (grid[:, None] - mu[None, :]) ** 2).sum(axis=0) / nk, var_floor)

        if abs(ll - ll_prev) <= tol * (1.0 + abs(ll)):
            converged = True
            break
        ll_prev = ll

    if not converged:
        warn(
            f"Gaussian mixture fit ({K} components) of "
            f"{getattr(distribution, 'family', distribution)!r} did not converge "
            f"within {max_iter} iterations.",
            UserWarning,
            stacklevel=2,
        )

    order = np.argsort(mu)
    return tuple(
        GaussianComponent(weight=float(w[k]), mean=float(mu[k]), scale=float(np.sqrt(var[k])))
        for k in order
    )


def mixture_pdf(components: Sequence[GaussianComponent], x: Any) -> np.ndarray:
    """Density of the weighted mixture at ``x``."""
    xa = np.atleast_1d(np.asarray(x, dtype=float))
    mu = np.array([c.mean for c in components], dtype=float)
    var = np.array([c.scale for c in components], dtype=float) ** 2
    w = np.array([c.weight for c in components], dtype=float)
    dens = np.exp(_normal_logpdf(xa, mu, var)) @ w
    return dens.reshape(np.shape(x))


def kl_divergence(
    distribution: Any,
    components: Sequence[GaussianComponent],
    grid: Optional[np.ndarray] = None,
) -> float:
    """Discrete KL(target || mixture) on ``grid`` (default: the decomposition grid)."""
    if grid is None:
        grid, p = discretize(distribution)
    else:
        grid = np.asarray(grid, dtype=float)
        p = np.asarray(distribution.pdf(grid), dtype=float)
        p = np.where(np.isfinite(p) & (p > 0.0), p, 0.0)
        p = p / p.sum()
    qd = np.asarray(mixture_pdf(components, grid), dtype=float)
    qd = np.maximum(qd, MASS_FLOOR)
    qd = qd / qd.sum()
    nz = p > 0.0
    return float(np.sum(p[nz] * (np.log(p[nz]) - np.log(qd[nz]))))
