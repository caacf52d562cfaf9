"""Curve fitting, fitted-series reconstruction and maximum search."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from .functions import (
    DEFAULT_ROOT_SOLVER,
    FitFunction,
    FunctionType,
    RootSolverSettings,
    resolve_function,
)
from .io import PointSeries, as_point_series, read_scan

__all__ = ["FitResult", "fit", "fitted_series", "find_max_x", "fit_scan", "fit_from_file"]

LOGGER = logging.getLogger(__name__)

FunctionSpec = FunctionType | FitFunction | str


@dataclass(slots=True)
class FitResult:
    """Container for a complete scan fit."""

    function: FitFunction
    params: np.ndarray
    fitted: PointSeries
    max_x: float
    rms_error: float


def fit(
    series: Any,
    function_type: FunctionSpec,
    guess: Sequence[float] | np.ndarray | None = None,
    *,
    max_evaluations: int = 10000,
) -> np.ndarray:
    """Return least-squares parameters of ``function_type`` for ``series``.

    Every observation carries weight 1.0. ``guess`` seeds the Gaussian solver
    and is ignored for polynomials.
    """

    function = resolve_function(function_type)
    points = as_point_series(series)
    x, y = points.x, points.y

    valid = np.isfinite(x) & np.isfinite(y)
    if not np.all(valid):
        dropped = int((~valid).sum())
        LOGGER.warning("Dropping %d non-finite samples before fitting", dropped)
        x, y = x[valid], y[valid]

    params = function.fit(x, y, guess, max_evaluations=max_evaluations)
    LOGGER.debug("%s fit over %d points: %s", function.name, x.size, params)
    return params


def fitted_series(
    series: Any,
    function_type: FunctionSpec,
    params: Sequence[float] | np.ndarray,
) -> PointSeries:
    """Return ``series`` with its y-values replaced by the function's prediction."""

    function = resolve_function(function_type)
    points = as_point_series(series)
    return points.with_y(function(points.x, params))


def find_max_x(
    function_type: FunctionSpec,
    params: Sequence[float] | np.ndarray,
    series: Any,
    *,
    solver: RootSolverSettings = DEFAULT_ROOT_SOLVER,
) -> float:
    """Return the x of the fitted function's maximum within the x-range of ``series``.

    Polynomials are searched for a root of their derivative inside
    ``[min(x), max(x)]``. For a Gaussian the mean is returned as is, which may
    lie outside that range.
    """

    function = resolve_function(function_type)
    values = function.check_params(params)
    points = as_point_series(series)
    return function.max_x(values, points.min_x, points.max_x, solver)


def fit_scan(
    series: Any,
    function_type: FunctionSpec,
    guess: Sequence[float] | np.ndarray | None = None,
    *,
    solver: RootSolverSettings = DEFAULT_ROOT_SOLVER,
) -> FitResult:
    """Fit ``series``, rebuild the fitted curve and locate its maximum."""

    function = resolve_function(function_type)
    points = as_point_series(series)

    params = fit(points, function, guess)
    fitted = fitted_series(points, function, params)
    max_x = find_max_x(function, params, points, solver=solver)

    residual = points.y - fitted.y
    finite = np.isfinite(residual)
    rms = float(np.sqrt(np.mean(residual[finite] ** 2))) if finite.any() else float("nan")

    LOGGER.info("%s maximum at x=%.6g (rms=%.3g)", function.name, max_x, rms)
    return FitResult(
        function=function,
        params=params,
        fitted=fitted,
        max_x=max_x,
        rms_error=rms,
    )


def fit_from_file(
    path: str | Path,
    function_type: FunctionSpec,
    guess: Sequence[float] | np.ndarray | None = None,
) -> FitResult:
    """Run :func:`fit_scan` on a JSON/CSV scan export."""

    return fit_scan(read_scan(path), function_type, guess)
