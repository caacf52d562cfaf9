"""Public interface for the focus_fit package."""

from .errors import FittingError, FocusFitError, InvalidArgumentError, NumericalError
from .fit import FitResult, find_max_x, fit, fit_from_file, fit_scan, fitted_series
from .functions import FunctionType, Gaussian, Polynomial, RootSolverSettings
from .io import PointSeries, as_point_series, read_scan

__all__ = [
    "FitResult",
    "FittingError",
    "FocusFitError",
    "FunctionType",
    "Gaussian",
    "InvalidArgumentError",
    "NumericalError",
    "PointSeries",
    "Polynomial",
    "RootSolverSettings",
    "as_point_series",
    "find_max_x",
    "fit",
    "fit_from_file",
    "fit_scan",
    "fitted_series",
    "read_scan",
]
__version__ = "0.1.0"
