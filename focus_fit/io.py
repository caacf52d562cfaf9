"""Point series container and scan export readers for focus_fit."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from .errors import InvalidArgumentError

__all__ = ["PointSeries", "as_point_series", "read_scan"]

LOGGER = logging.getLogger(__name__)


class PointSeries(BaseModel):
    """Ordered (x, y) samples as handed over by a plotting collaborator.

    Order is the caller's insertion order; x need not be sorted and may repeat.
    """

    x: np.ndarray = Field(...)
    y: np.ndarray = Field(...)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = dict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("x", "y", mode="before")
    @classmethod
    def _coerce_array(cls, value: Any) -> np.ndarray:
        try:
            array = np.asarray(value, dtype=float)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"series values must be numeric: {exc}") from exc
        if array.ndim != 1:
            array = array.ravel()
        return array

    @model_validator(mode="after")
    def _check_lengths(self) -> "PointSeries":
        if self.x.shape != self.y.shape:
            raise ValueError(f"x and y lengths differ: {self.x.size} != {self.y.size}")
        return self

    @classmethod
    def from_pairs(cls, pairs: Any, **kwargs: Any) -> "PointSeries":
        """Build a series from an iterable of ``(x, y)`` pairs."""

        array = np.asarray(list(pairs) if not isinstance(pairs, np.ndarray) else pairs, dtype=float)
        if array.size == 0:
            return cls(x=np.empty(0), y=np.empty(0), **kwargs)
        if array.ndim != 2 or array.shape[1] != 2:
            raise InvalidArgumentError(f"expected (x, y) pairs, got array of shape {array.shape}")
        return cls(x=array[:, 0], y=array[:, 1], **kwargs)

    @property
    def item_count(self) -> int:
        return int(self.x.size)

    def __len__(self) -> int:
        return self.item_count

    def __getitem__(self, index: int) -> tuple[float, float]:
        return float(self.x[index]), float(self.y[index])

    def _finite_x(self) -> np.ndarray:
        finite = self.x[np.isfinite(self.x)]
        if finite.size == 0:
            raise InvalidArgumentError("series has no finite x values to define a range")
        return finite

    @property
    def min_x(self) -> float:
        """Smallest finite x; NaN and infinite samples are skipped."""

        return float(np.min(self._finite_x()))

    @property
    def max_x(self) -> float:
        return float(np.max(self._finite_x()))

    def pairs(self) -> list[tuple[float, float]]:
        return [(float(a), float(b)) for a, b in zip(self.x, self.y)]

    def with_y(self, y: np.ndarray) -> "PointSeries":
        """Return a new series sharing these x-values with ``y`` replaced."""

        return PointSeries(x=self.x.copy(), y=y, metadata=dict(self.metadata))

    def to_dict(self) -> dict[str, object]:
        return {"x": self.x.tolist(), "y": self.y.tolist()}


def as_point_series(data: Any) -> PointSeries:
    """Coerce collaborator data into a :class:`PointSeries`.

    Accepts a ``PointSeries``, a mapping or object exposing ``x`` and ``y``,
    an ``(N, 2)`` array, or any sequence of ``(x, y)`` pairs.
    """

    if isinstance(data, PointSeries):
        return data
    try:
        if isinstance(data, Mapping):
            if "points" in data:
                return PointSeries.from_pairs(data["points"], metadata=dict(data.get("metadata", {})))
            return PointSeries(x=data["x"], y=data["y"], metadata=dict(data.get("metadata", {})))
        if hasattr(data, "x") and hasattr(data, "y"):
            return PointSeries(x=data.x, y=data.y)
        return PointSeries.from_pairs(data)
    except (KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, InvalidArgumentError):
            raise
        raise InvalidArgumentError(f"cannot interpret {type(data).__name__} as a point series: {exc}") from exc


def read_scan(path: str | Path) -> PointSeries:
    """Load a scan export from JSON or CSV.

    JSON files hold either ``{"points": [[x, y], ...]}`` or
    ``{"x": [...], "y": [...]}`` with an optional ``metadata`` object. CSV
    files need ``x`` and ``y`` columns.
    """

    path = Path(path)
    if path.suffix.lower() == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        series = as_point_series(payload)
    else:
        series = _parse_csv(path)
    LOGGER.info("Loaded %d samples from %s", series.item_count, path)
    return series


def _parse_csv(path: Path) -> PointSeries:
    try:
        import pandas as pd
    except ImportError as exc:  # pragma: no cover
        raise ImportError(
            "pandas is required to parse CSV scans; install with `pip install focus-fit[csv]`."
        ) from exc

    df = pd.read_csv(path)
    df.columns = [str(column).strip().lower() for column in df.columns]
    required = {"x", "y"}
    if not required.issubset(df.columns):
        missing = ", ".join(sorted(required - set(df.columns)))
        raise InvalidArgumentError(f"CSV missing required columns: {missing}")

    return PointSeries(
        x=df["x"].to_numpy(dtype=float),
        y=df["y"].to_numpy(dtype=float),
        metadata={"source": str(path)},
    )
