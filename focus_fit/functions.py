"""Parametric univariate functions supported by the focus fitter.

Each function variant owns its arity, evaluation, least-squares fit and the
search for its maximum, so the public operations in :mod:`focus_fit.fit` never
switch on the function kind themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import logging
import math
import operator
from typing import Sequence

import numpy as np
from numpy.polynomial import Polynomial as _NumpyPolynomial
from numpy.polynomial import polynomial as P
from scipy.linalg import LinAlgError, lstsq
from scipy.optimize import brentq, curve_fit

from .errors import FittingError, InvalidArgumentError, NumericalError

__all__ = [
    "RootSolverSettings",
    "DEFAULT_ROOT_SOLVER",
    "FitFunction",
    "Polynomial",
    "Gaussian",
    "FunctionType",
    "resolve_function",
]

LOGGER = logging.getLogger(__name__)

# sigma = FWHM / (2 * sqrt(2 ln 2))
_FWHM_TO_SIGMA = 1.0 / (2.0 * math.sqrt(2.0 * math.log(2.0)))


@dataclass(frozen=True, slots=True)
class RootSolverSettings:
    """Tolerances for the bracketing root search on a derivative."""

    relative_accuracy: float = 1.0e-12
    absolute_accuracy: float = 1.0e-8
    max_iterations: int = 100


DEFAULT_ROOT_SOLVER = RootSolverSettings()


class FitFunction(ABC):
    """A function family with a fixed-length parameter vector."""

    name: str = ""

    @property
    @abstractmethod
    def arity(self) -> int:
        """Number of parameters the function takes."""

    def check_params(self, params: Sequence[float] | np.ndarray) -> np.ndarray:
        """Return ``params`` as a float array, rejecting the wrong length."""

        values = np.asarray(params, dtype=float).ravel()
        if values.size != self.arity:
            raise InvalidArgumentError(
                f"{self.name} needs exactly {self.arity} parameters, got {values.size}"
            )
        return values

    def __call__(self, x: np.ndarray | Sequence[float], params: Sequence[float] | np.ndarray) -> np.ndarray:
        values = self.check_params(params)
        return self._evaluate(np.asarray(x, dtype=float), values)

    def fit(
        self,
        x: np.ndarray,
        y: np.ndarray,
        guess: Sequence[float] | np.ndarray | None = None,
        *,
        max_evaluations: int = 10000,
    ) -> np.ndarray:
        """Least-squares fit of the function to equally weighted samples."""

        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if x.size < self.arity:
            raise FittingError(
                f"{self.name} fit needs at least {self.arity} points, got {x.size}"
            )
        distinct = np.unique(x).size
        if distinct < self.arity:
            raise FittingError(
                f"{self.name} fit is singular: {distinct} distinct x values, need {self.arity}"
            )
        return self._fit(x, y, guess, max_evaluations)

    @abstractmethod
    def _evaluate(self, x: np.ndarray, params: np.ndarray) -> np.ndarray:
        ...

    @abstractmethod
    def _fit(
        self,
        x: np.ndarray,
        y: np.ndarray,
        guess: Sequence[float] | np.ndarray | None,
        max_evaluations: int,
    ) -> np.ndarray:
        ...

    @abstractmethod
    def max_x(
        self,
        params: Sequence[float] | np.ndarray,
        x_min: float,
        x_max: float,
        solver: RootSolverSettings = DEFAULT_ROOT_SOLVER,
    ) -> float:
        """Return the x of the function's maximum for the bracket ``[x_min, x_max]``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Polynomial(FitFunction):
    """Polynomial of a fixed degree, coefficients lowest degree first."""

    def __init__(self, degree: int):
        try:
            degree = operator.index(degree)
        except TypeError:
            raise InvalidArgumentError(f"polynomial degree must be an integer, got {degree!r}") from None
        if degree < 1:
            raise InvalidArgumentError(f"polynomial degree must be at least 1, got {degree}")
        self.degree = degree
        self.name = f"Polynomial of degree {self.degree}"

    @property
    def arity(self) -> int:
        return self.degree + 1

    def _evaluate(self, x: np.ndarray, params: np.ndarray) -> np.ndarray:
        return P.polyval(x, params)

    def _fit(self, x, y, guess, max_evaluations):
        design = P.polyvander(x, self.degree)
        try:
            coeffs, _, rank, _ = lstsq(design, y, cond=None, check_finite=True, lapack_driver="gelsd")
        except (LinAlgError, ValueError) as exc:
            raise FittingError(f"{self.name} least-squares solve failed: {exc}") from exc
        if rank < self.arity:
            raise FittingError(
                f"{self.name} fit is singular: design rank {rank} < {self.arity} "
                f"(need at least {self.arity} distinct x values)"
            )
        LOGGER.debug("Polynomial fit degree=%d coefficients=%s", self.degree, coeffs)
        return np.asarray(coeffs, dtype=float)

    def derivative(self, params: Sequence[float] | np.ndarray) -> _NumpyPolynomial:
        """Return the derivative of the polynomial described by ``params``."""

        return _NumpyPolynomial(self.check_params(params)).deriv()

    def max_x(self, params, x_min, x_max, solver=DEFAULT_ROOT_SOLVER):
        slope = self.derivative(params)

        def _slope(value: float) -> float:
            return float(slope(value))

        try:
            root = brentq(
                _slope,
                float(x_min),
                float(x_max),
                xtol=solver.absolute_accuracy,
                rtol=solver.relative_accuracy,
                maxiter=solver.max_iterations,
            )
        except ValueError as exc:
            raise NumericalError(
                f"derivative of {self.name} has no sign change in [{x_min:g}, {x_max:g}]"
            ) from exc
        except RuntimeError as exc:
            raise NumericalError(
                f"maximum search did not converge within {solver.max_iterations} iterations"
            ) from exc
        return float(root)

    def __repr__(self) -> str:
        return f"Polynomial(degree={self.degree})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Polynomial) and other.degree == self.degree

    def __hash__(self) -> int:
        return hash(("Polynomial", self.degree))


class Gaussian(FitFunction):
    """``norm * exp(-(x - mean)**2 / (2 * sigma**2))`` with params ``[norm, mean, sigma]``."""

    name = "Gaussian"

    @property
    def arity(self) -> int:
        return 3

    @staticmethod
    def _model(x: np.ndarray, norm: float, mean: float, sigma: float) -> np.ndarray:
        return norm * np.exp(-((x - mean) ** 2) / (2.0 * sigma**2))

    def _evaluate(self, x: np.ndarray, params: np.ndarray) -> np.ndarray:
        norm, mean, sigma = params
        if not sigma > 0:
            raise InvalidArgumentError(f"Gaussian sigma must be strictly positive, got {sigma}")
        return self._model(x, norm, mean, sigma)

    def _fit(self, x, y, guess, max_evaluations):
        if guess is None:
            start = estimate_gaussian_start(x, y)
            LOGGER.debug("Estimated Gaussian start point %s", start)
        else:
            start = self.check_params(guess)

        try:
            popt, pcov = curve_fit(self._model, x, y, p0=start, maxfev=max_evaluations)
        except (RuntimeError, ValueError) as exc:
            raise FittingError(f"Gaussian fit did not converge: {exc}") from exc

        # With exactly `arity` points scipy reports an infinite covariance by construction.
        if x.size > self.arity and not np.all(np.isfinite(pcov)):
            raise FittingError(
                f"Gaussian fit is singular: parameters {popt.tolist()} are not determined by the data"
            )

        norm, mean, sigma = (float(value) for value in popt)
        if not np.all(np.isfinite(popt)) or sigma == 0.0:
            raise FittingError(f"Gaussian fit produced degenerate parameters {popt.tolist()}")
        return np.array([norm, mean, abs(sigma)])

    def max_x(self, params, x_min, x_max, solver=DEFAULT_ROOT_SOLVER):
        # The mean is returned even when it lies outside [x_min, x_max].
        return float(self.check_params(params)[1])


def estimate_gaussian_start(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Guess ``[norm, mean, sigma]`` from the peak and its half-maximum width."""

    order = np.argsort(x, kind="stable")
    xs = np.asarray(x, dtype=float)[order]
    ys = np.asarray(y, dtype=float)[order]

    peak = int(np.argmax(ys))
    norm = ys[peak]
    mean = xs[peak]
    half = ys.min() + (norm - ys.min()) / 2.0

    left = _half_max_crossing(xs, ys, peak, -1, half)
    right = _half_max_crossing(xs, ys, peak, 1, half)
    if left is None or right is None or right <= left:
        fwhm = xs[-1] - xs[0]
    else:
        fwhm = right - left
    sigma = fwhm * _FWHM_TO_SIGMA
    if not sigma > 0:
        sigma = 1.0
    return np.array([norm, mean, sigma])


def _half_max_crossing(xs: np.ndarray, ys: np.ndarray, start: int, step: int, level: float) -> float | None:
    """Interpolate the x where ``ys`` first drops to ``level`` walking away from ``start``."""

    idx = start
    while 0 <= idx + step < xs.size:
        nxt = idx + step
        if ys[nxt] <= level <= ys[idx]:
            if ys[idx] == ys[nxt]:
                return float(xs[nxt])
            frac = (ys[idx] - level) / (ys[idx] - ys[nxt])
            return float(xs[idx] + frac * (xs[nxt] - xs[idx]))
        idx = nxt
    return None


class FunctionType(Enum):
    """Closed set of function types understood by the fitter."""

    POLYNOMIAL2 = "pol2"
    POLYNOMIAL3 = "pol3"
    GAUSSIAN = "gaussian"

    @property
    def function(self) -> FitFunction:
        return _FUNCTIONS[self]


_FUNCTIONS: dict[FunctionType, FitFunction] = {
    FunctionType.POLYNOMIAL2: Polynomial(1),
    FunctionType.POLYNOMIAL3: Polynomial(2),
    FunctionType.GAUSSIAN: Gaussian(),
}


def resolve_function(kind: FunctionType | FitFunction | str) -> FitFunction:
    """Return the function variant for an enum member, variant or name like ``"pol2"``."""

    if isinstance(kind, FitFunction):
        return kind
    if isinstance(kind, FunctionType):
        return kind.function
    try:
        return FunctionType(str(kind).lower()).function
    except ValueError:
        choices = ", ".join(member.value for member in FunctionType)
        raise InvalidArgumentError(f"unknown function type {kind!r}; expected one of {choices}") from None
