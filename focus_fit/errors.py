"""Exception hierarchy for focus_fit."""

from __future__ import annotations

__all__ = ["FocusFitError", "InvalidArgumentError", "FittingError", "NumericalError"]


class FocusFitError(Exception):
    """Base class for every error raised by focus_fit."""


class InvalidArgumentError(FocusFitError, ValueError):
    """A parameter vector or series does not match what the function expects."""


class FittingError(FocusFitError):
    """Least-squares fitting was underdetermined, singular or did not converge."""


class NumericalError(FocusFitError, ArithmeticError):
    """Root finding for the maximum could not bracket a root or ran out of iterations."""
