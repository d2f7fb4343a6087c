"""Symbolic variables, expressions and constraints emitted by the builder.

An expression is an affine part (variable name -> coefficient, plus a
constant) and a sum of nonlinear terms ``coef * f(affine)`` where ``f`` is a
univariate :class:`ScalarFunction` with known first and second derivatives.
Absolute values, squares and log-densities all fit this shape, so a solver
layer can pull exact gradients and Hessians without automatic differentiation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Mapping, Optional, Tuple, Union

import numpy as np

__all__ = [
    "ScalarFunction",
    "Variable",
    "Term",
    "Expression",
    "Constraint",
    "ConeConstraint",
    "as_expression",
    "call",
    "square",
    "absolute",
]

Number = Union[int, float, np.number]
Point = Mapping[str, float]
Sense = Literal["==", ">=", "<="]


@dataclass(frozen=True)
class ScalarFunction:
    """Univariate function with first and second derivative callbacks."""

    name: str
    f: Callable[[float], float]
    df: Callable[[float], float]
    d2f: Callable[[float], float]


square = ScalarFunction(
    "square",
    lambda u: u * u,
    lambda u: 2.0 * u,
    lambda u: 2.0,
)

# d|u|/du is taken as sign(u), i.e. 0 at the kink.
absolute = ScalarFunction(
    "abs",
    lambda u: abs(u),
    lambda u: float(np.sign(u)),
    lambda u: 0.0,
)


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float, np.number)) and not isinstance(x, bool)


@dataclass(frozen=True)
class Variable:
    """A decision variable, referenced in expressions by name."""

    name: str
    lower: Optional[float] = None
    upper: Optional[float] = None

    def expr(self) -> "Expression":
        return Expression(linear=((self.name, 1.0),))

    def __add__(self, other):
        return self.expr() + other

    def __radd__(self, other):
        return self.expr() + other

    def __sub__(self, other):
        return self.expr() - other

    def __rsub__(self, other):
        return other - self.expr()

    def __neg__(self):
        return -self.expr()

    def __mul__(self, other):
        return self.expr() * other

    def __rmul__(self, other):
        return self.expr() * other

    def __truediv__(self, other):
        return self.expr() / other

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Term:
    """Nonlinear term ``coef * func(arg)`` with an affine argument."""

    coef: float
    func: ScalarFunction
    arg: "Expression"

    def scaled(self, factor: float) -> "Term":
        return Term(self.coef * factor, self.func, self.arg)


@dataclass(frozen=True)
class Expression:
    """Affine part plus a sum of univariate nonlinear terms."""

    linear: Tuple[Tuple[str, float], ...] = ()
    constant: float = 0.0
    terms: Tuple[Term, ...] = ()

    # ---- structure ----
    @property
    def is_affine(self) -> bool:
        return not self.terms

    def coefficients(self) -> Dict[str, float]:
        return dict(self.linear)

    def names(self) -> Tuple[str, ...]:
        """Variable names referenced anywhere in the expression, in order."""
        seen: Dict[str, None] = {}
        for n, _ in self.linear:
            seen.setdefault(n, None)
        for t in self.terms:
            for n in t.arg.names():
                seen.setdefault(n, None)
        return tuple(seen)

    # ---- algebra ----
    def __add__(self, other):
        other = as_expression(other)
        merged = dict(self.linear)
        for n, c in other.linear:
            merged[n] = merged.get(n, 0.0) + c
        return Expression(
            linear=tuple(merged.items()),
            constant=self.constant + other.constant,
            terms=self.terms + other.terms,
        )

    def __radd__(self, other):
        return self + other

    def __neg__(self):
        return self * -1.0

    def __sub__(self, other):
        return self + (-as_expression(other))

    def __rsub__(self, other):
        return as_expression(other) - self

    def __mul__(self, other):
        if not _is_number(other):
            raise TypeError("Expressions can only be multiplied by numbers.")
        k = float(other)
        return Expression(
            linear=tuple((n, c * k) for n, c in self.linear),
            constant=self.constant * k,
            terms=tuple(t.scaled(k) for t in self.terms),
        )

    def __rmul__(self, other):
        return self * other

    def __truediv__(self, other):
        if not _is_number(other):
            raise TypeError("Expressions can only be divided by numbers.")
        return self * (1.0 / float(other))

    # ---- evaluation ----
    def value(self, point: Point) -> float:
        v = self.constant
        for n, c in self.linear:
            v += c * float(point[n])
        for t in self.terms:
            v += t.coef * float(t.func.f(t.arg.value(point)))
        return float(v)

    def gradient(self, point: Point) -> Dict[str, float]:
        grad = dict(self.linear)
        for t in self.terms:
            d = t.coef * float(t.func.df(t.arg.value(point)))
            for n, c in t.arg.linear:
                grad[n] = grad.get(n, 0.0) + d * c
        return grad

    def hessian(self, point: Point) -> Dict[Tuple[str, str], float]:
        """Non-zero second derivatives keyed by (name_i, name_j), both orders."""
        hes: Dict[Tuple[str, str], float] = {}
        for t in self.terms:
            d2 = t.coef * float(t.func.d2f(t.arg.value(point)))
            if d2 == 0.0:
                continue
            for ni, ci in t.arg.linear:
                for nj, cj in t.arg.linear:
                    hes[(ni, nj)] = hes.get((ni, nj), 0.0) + d2 * ci * cj
        return hes

    def __str__(self) -> str:
        parts = []
        for n, c in self.linear:
            parts.append(f"{c:+.6g}*{n}")
        for t in self.terms:
            parts.append(f"{t.coef:+.6g}*{t.func.name}({t.arg})")
        if self.constant or not parts:
            parts.append(f"{self.constant:+.6g}")
        return " ".join(parts)


def as_expression(x: Any) -> Expression:
    """Coerce a number, Variable or Expression to an Expression."""
    if isinstance(x, Expression):
        return x
    if isinstance(x, Variable):
        return x.expr()
    if _is_number(x):
        return Expression(constant=float(x))
    raise TypeError(f"Cannot convert {type(x).__name__} to an Expression.")


def call(func: ScalarFunction, arg: Any, coef: float = 1.0) -> Expression:
    """Return the expression ``coef * func(arg)``; ``arg`` must be affine."""
    arg = as_expression(arg)
    if not arg.is_affine:
        raise TypeError(f"{func.name}(...) needs an affine argument.")
    return Expression(terms=(Term(float(coef), func, arg),))


@dataclass(frozen=True)
class Constraint:
    """Algebraic constraint ``body <sense> 0``."""

    body: Expression
    sense: Sense
    name: str = ""

    @staticmethod
    def eq(lhs: Any, rhs: Any = 0.0, *, name: str = "") -> "Constraint":
        return Constraint(as_expression(lhs) - rhs, "==", name)

    @staticmethod
    def ge(lhs: Any, rhs: Any = 0.0, *, name: str = "") -> "Constraint":
        return Constraint(as_expression(lhs) - rhs, ">=", name)

    @staticmethod
    def le(lhs: Any, rhs: Any = 0.0, *, name: str = "") -> "Constraint":
        return Constraint(as_expression(lhs) - rhs, "<=", name)

    def names(self) -> Tuple[str, ...]:
        return self.body.names()

    def residual(self, point: Point) -> float:
        """Constraint violation at ``point`` (0 when satisfied)."""
        v = self.body.value(point)
        if self.sense == "==":
            return abs(v)
        if self.sense == ">=":
            return max(0.0, -v)
        return max(0.0, v)

    def is_satisfied(self, point: Point, tol: float = 1e-8) -> bool:
        return self.residual(point) <= tol

    def __str__(self) -> str:
        label = f"{self.name}: " if self.name else ""
        return f"{label}{self.body} {self.sense} 0"


@dataclass(frozen=True)
class ConeConstraint:
    """Rotated second-order cone ``2*u*v >= w**2`` with ``u, v >= 0``."""

    u: Expression
    v: Expression
    w: Expression
    name: str = ""

    def names(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for e in (self.u, self.v, self.w):
            for n in e.names():
                seen.setdefault(n, None)
        return tuple(seen)

    def value(self, point: Point) -> float:
        """Cone margin ``2*u*v - w**2`` (non-negative inside the cone)."""
        u = self.u.value(point)
        v = self.v.value(point)
        w = self.w.value(point)
        return 2.0 * u * v - w * w

    def gradient(self, point: Point) -> Dict[str, float]:
        u = self.u.value(point)
        v = self.v.value(point)
        w = self.w.value(point)
        grad: Dict[str, float] = {}
        for expr, k in ((self.u, 2.0 * v), (self.v, 2.0 * u), (self.w, -2.0 * w)):
            for n, g in expr.gradient(point).items():
                grad[n] = grad.get(n, 0.0) + k * g
        return grad

    def hessian(self, point: Point) -> Dict[Tuple[str, str], float]:
        """Second derivatives of the margin; u, v and w are affine."""
        gu = self.u.gradient(point)
        gv = self.v.gradient(point)
        gw = self.w.gradient(point)
        hes: Dict[Tuple[str, str], float] = {}
        for a, b, k in ((gu, gv, 2.0), (gv, gu, 2.0), (gw, gw, -2.0)):
            for ni, ci in a.items():
                for nj, cj in b.items():
                    hes[(ni, nj)] = hes.get((ni, nj), 0.0) + k * ci * cj
        return hes

    def residual(self, point: Point) -> float:
        u = self.u.value(point)
        v = self.v.value(point)
        return max(0.0, -self.value(point), -u, -v)

    def is_satisfied(self, point: Point, tol: float = 1e-8) -> bool:
        return self.residual(point) <= tol

    def __str__(self) -> str:
        label = f"{self.name}: " if self.name else ""
        return f"{label}2*({self.u})*({self.v}) >= ({self.w})^2"
