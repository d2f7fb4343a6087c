from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

import numpy as np
from scipy.optimize import minimize

from ..expressions import ConeConstraint, Constraint
from .common import BackendResult, VariableIndex


class ScipyMinimizeBackend:
    name = "scipy.minimize"

    def solve(
        self,
        formulation: Any,
        *,
        fixed: Optional[Mapping[str, float]] = None,
        bounds: Optional[Mapping[str, Tuple[Optional[float], Optional[float]]]] = None,
        x0: Optional[Mapping[str, float]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> BackendResult:
        """Minimize the sum of residuals subject to the emitted constraints.

        Backend options:
        - method: optimizer name (default: SLSQP)
        - options: dict forwarded to scipy.optimize.minimize

        ``fixed`` pins variables (typically the state) to values; ``bounds``
        adds bounds on top of the variables' own (residuals are >= 0).
        Unspecified starting values default to 0.
        """
        options = dict(options or {})
        idx = VariableIndex(formulation, fixed, bounds)
        point, vector = idx.point, idx.vector

        objective = formulation.objective()

        def fun(theta):
            return objective.value(point(theta))

        def jac(theta):
            return vector(objective.gradient(point(theta)))

        scipy_cons = []
        for c in formulation.constraints:
            if isinstance(c, ConeConstraint):
                scipy_cons.append(
                    {
                        "type": "ineq",
                        "fun": lambda th, c=c: c.value(point(th)),
                        "jac": lambda th, c=c: vector(c.gradient(point(th))),
                    }
                )
                scipy_cons.append(
                    {
                        "type": "ineq",
                        "fun": lambda th, c=c: c.u.value(point(th)),
                        "jac": lambda th, c=c: vector(c.u.gradient(point(th))),
                    }
                )
            elif isinstance(c, Constraint):
                sign = -1.0 if c.sense == "<=" else 1.0
                scipy_cons.append(
                    {
                        "type": "eq" if c.sense == "==" else "ineq",
                        "fun": lambda th, c=c, s=sign: s * c.body.value(point(th)),
                        "jac": lambda th, c=c, s=sign: s * vector(c.body.gradient(point(th))),
                    }
                )
            else:
                raise TypeError(f"Unsupported constraint type {type(c).__name__}.")

        method = str(options.get("method", "SLSQP"))
        scipy_opts = options.get("options", None) or {}

        res = minimize(
            fun,
            idx.start(x0),
            jac=jac,
            method=method,
            bounds=idx.bounds,
            constraints=scipy_cons,
            options=scipy_opts,
        )

        values = point(np.asarray(res.x, dtype=float))
        return BackendResult(
            values=values,
            objective=float(res.fun),
            success=bool(res.success),
            message=str(res.message),
            stats={
                "backend": self.name,
                "method": method,
                "nit": int(getattr(res, "nit", 0) or 0),
                "max_violation": float(formulation.max_violation(values)),
            },
        )
