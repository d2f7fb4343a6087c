from __future__ import annotations

from typing import Any

import numpy as np

from .errors import InvalidParameterError


def safe_float(x: Any) -> float:
    """Convert numpy scalar / 0-d array to python float."""
    if isinstance(x, np.ndarray) and x.shape == ():
        return float(x.item())
    return float(x)


def like_input(values: Any, x: Any) -> Any:
    """Return a python float for scalar ``x``, else an ndarray shaped like ``x``."""
    values = np.asarray(values, dtype=float)
    if np.ndim(x) == 0:
        return safe_float(values.reshape(()))
    return np.broadcast_to(values, np.shape(x)).copy()


def check_positive(name: str, value: Any) -> float:
    """Validate ``value > 0`` (finite) and return it as a float."""
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"{name} must be a number, got {value!r}.") from e
    if not np.isfinite(v) or v <= 0.0:
        raise InvalidParameterError(f"{name} must be finite and > 0, got {value!r}.")
    return v


def check_finite(name: str, value: Any) -> float:
    """Validate that ``value`` is a finite number and return it as a float."""
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"{name} must be a number, got {value!r}.") from e
    if not np.isfinite(v):
        raise InvalidParameterError(f"{name} must be finite, got {value!r}.")
    return v
