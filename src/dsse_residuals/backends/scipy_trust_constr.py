from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

import numpy as np
from scipy.optimize import Bounds, NonlinearConstraint, minimize

from ..expressions import ConeConstraint, Constraint
from .common import BackendResult, VariableIndex

_SENSE_BOUNDS = {
    "==": (0.0, 0.0),
    ">=": (0.0, np.inf),
    "<=": (-np.inf, 0.0),
}


class ScipyTrustConstrBackend:
    name = "scipy.trust_constr"

    def solve(
        self,
        formulation: Any,
        *,
        fixed: Optional[Mapping[str, float]] = None,
        bounds: Optional[Mapping[str, Tuple[Optional[float], Optional[float]]]] = None,
        x0: Optional[Mapping[str, float]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> BackendResult:
        """Solve with scipy's trust-region interior point method.

        Unlike the SLSQP backend this one passes exact constraint Hessians
        (from the expression layer and the mle log-density oracles).

        Backend options:
        - options: dict forwarded to scipy.optimize.minimize
          (e.g. gtol, xtol, maxiter)
        """
        options = dict(options or {})
        idx = VariableIndex(formulation, fixed, bounds)
        point, vector, matrix = idx.point, idx.vector, idx.matrix
        n = len(idx)

        objective = formulation.objective()

        def fun(theta):
            return objective.value(point(theta))

        def jac(theta):
            return vector(objective.gradient(point(theta)))

        def hess(theta):
            return matrix(objective.hessian(point(theta)))

        cons = []
        for c in formulation.constraints:
            if isinstance(c, ConeConstraint):
                cons.append(
                    NonlinearConstraint(
                        lambda th, c=c: c.value(point(th)),
                        0.0,
                        np.inf,
                        jac=lambda th, c=c: vector(c.gradient(point(th))),
                        hess=lambda th, v, c=c: v[0] * matrix(c.hessian(point(th))),
                    )
                )
                cons.append(
                    NonlinearConstraint(
                        lambda th, c=c: c.u.value(point(th)),
                        0.0,
                        np.inf,
                        jac=lambda th, c=c: vector(c.u.gradient(point(th))),
                        hess=lambda th, v: np.zeros((n, n)),
                    )
                )
            elif isinstance(c, Constraint):
                lb, ub = _SENSE_BOUNDS[c.sense]
                cons.append(
                    NonlinearConstraint(
                        lambda th, c=c: c.body.value(point(th)),
                        lb,
                        ub,
                        jac=lambda th, c=c: vector(c.body.gradient(point(th))),
                        hess=lambda th, v, c=c: v[0] * matrix(c.body.hessian(point(th))),
                    )
                )
            else:
                raise TypeError(f"Unsupported constraint type {type(c).__name__}.")

        lo = np.array([-np.inf if b[0] is None else b[0] for b in idx.bounds], dtype=float)
        hi = np.array([np.inf if b[1] is None else b[1] for b in idx.bounds], dtype=float)

        res = minimize(
            fun,
            idx.start(x0),
            jac=jac,
            hess=hess,
            method="trust-constr",
            bounds=Bounds(lo, hi),
            constraints=cons,
            options=options.get("options", None) or {},
        )

        values = point(np.asarray(res.x, dtype=float))
        return BackendResult(
            values=values,
            objective=float(res.fun),
            success=bool(res.success),
            message=str(res.message),
            stats={
                "backend": self.name,
                "method": "trust-constr",
                "nit": int(getattr(res, "nit", 0) or 0),
                "max_violation": float(formulation.max_violation(values)),
            },
        )
