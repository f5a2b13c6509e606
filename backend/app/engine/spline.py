"""
Curve fitting for UV forecasts.

CubicSpline is a natural cubic spline (second derivative zero at both
endpoints) through every forecast sample. For knots x_i and values y_i,
segment i covers [x_i, x_{i+1}) and evaluates

    S_i(x) = y_i + b_i * dx + c_i * dx^2 + d_i * dx^3,   dx = x - x_i

The c_i come from the tridiagonal system

    h_{i-1} c_{i-1} + 2 (h_{i-1} + h_i) c_i + h_i c_{i+1} = alpha_i
    alpha_i = 3/h_i (y_{i+1} - y_i) - 3/h_{i-1} (y_i - y_{i-1})

with c_0 = c_{n-1} = 0, solved by one forward sweep and one back
substitution (Thomas algorithm, O(n)).

Outside the knot range both interpolators return the nearest endpoint value
instead of extrapolating the polynomial.

fit_curve() picks the curve for a series up front and returns a SplineResult:
Spline for well-formed input, Fallback otherwise. Nothing here relies on
catching a failed construction.
"""

import logging
import math
from typing import NamedTuple, Optional, Sequence, Union

import numpy as np

from app.config import CurveMode
from app.engine.timeseries import InvalidInputError, TimeSeries
from app.models.uv import Sample

logger = logging.getLogger(__name__)


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


class CubicSpline:
    """Natural cubic spline through strictly increasing knots."""

    def __init__(self, xs: Sequence[float], ys: Sequence[float]):
        xs = np.array(xs, dtype=float)
        ys = np.array(ys, dtype=float)

        if xs.ndim != 1 or ys.ndim != 1:
            raise InvalidInputError("Spline knots and values must be one-dimensional.")
        if len(xs) != len(ys):
            raise InvalidInputError(
                f"Got {len(xs)} knots but {len(ys)} values."
            )
        n = len(xs)
        if n < 2:
            raise InvalidInputError(
                f"A cubic spline needs at least 2 points, got {n}."
            )
        if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
            raise InvalidInputError("Spline knots and values must be finite.")

        h = np.diff(xs)
        if np.any(h <= 0):
            bad = int(np.argmax(h <= 0))
            raise InvalidInputError(
                f"Knots must be strictly increasing (x[{bad + 1}] <= x[{bad}])."
            )

        alpha = np.zeros(n)
        alpha[1:-1] = (
            3.0 / h[1:] * (ys[2:] - ys[1:-1])
            - 3.0 / h[:-1] * (ys[1:-1] - ys[:-2])
        )

        # Forward sweep
        l = np.ones(n)
        mu = np.zeros(n)
        z = np.zeros(n)
        for i in range(1, n - 1):
            l[i] = 2.0 * (xs[i + 1] - xs[i - 1]) - h[i - 1] * mu[i - 1]
            mu[i] = h[i] / l[i]
            z[i] = (alpha[i] - h[i - 1] * z[i - 1]) / l[i]

        # Back substitution; c[n-1] stays 0 (natural boundary)
        c = np.zeros(n)
        for j in range(n - 2, -1, -1):
            c[j] = z[j] - mu[j] * c[j + 1]

        b = (ys[1:] - ys[:-1]) / h - h * (c[1:] + 2.0 * c[:-1]) / 3.0
        d = (c[1:] - c[:-1]) / (3.0 * h)

        self._knots = _read_only(xs)
        self._a = _read_only(ys[:-1].copy())
        self._b = _read_only(b)
        self._c = _read_only(c[:-1].copy())
        self._d = _read_only(d)
        self._y_first = float(ys[0])
        self._y_last = float(ys[-1])

        logger.debug("Cubic spline built over %d knots", n)

    @classmethod
    def from_series(cls, series: TimeSeries) -> "CubicSpline":
        return cls(series.timestamps, series.values)

    @property
    def knots(self) -> np.ndarray:
        return self._knots

    @property
    def coefficients(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Per-segment (a, b, c, d), each of length n - 1."""
        return self._a, self._b, self._c, self._d

    @property
    def start(self) -> float:
        return float(self._knots[0])

    @property
    def end(self) -> float:
        return float(self._knots[-1])

    def evaluate(self, x: float) -> float:
        x = float(x)
        if math.isnan(x):
            raise InvalidInputError("Cannot evaluate the spline at NaN.")
        if x <= self._knots[0]:
            return self._y_first
        if x >= self._knots[-1]:
            return self._y_last

        # knots[i] <= x < knots[i + 1]
        i = int(np.searchsorted(self._knots, x, side="right")) - 1
        dx = x - self._knots[i]
        return float(
            self._a[i] + self._b[i] * dx + self._c[i] * dx * dx + self._d[i] * dx * dx * dx
        )

    def evaluate_many(self, xs: Sequence[float]) -> np.ndarray:
        """Vectorised evaluate() with the same boundary policy."""
        xs = np.asarray(xs, dtype=float)
        i = np.clip(np.searchsorted(self._knots, xs, side="right") - 1, 0, len(self._a) - 1)
        dx = xs - self._knots[i]
        values = self._a[i] + self._b[i] * dx + self._c[i] * dx**2 + self._d[i] * dx**3
        values = np.where(xs <= self._knots[0], self._y_first, values)
        return np.where(xs >= self._knots[-1], self._y_last, values)


class LinearInterpolator:
    """Piecewise-linear curve with the same evaluate() contract as CubicSpline."""

    def __init__(self, xs: Sequence[float], ys: Sequence[float]):
        xs = np.array(xs, dtype=float)
        ys = np.array(ys, dtype=float)
        if len(xs) != len(ys) or len(xs) < 2:
            raise InvalidInputError(
                "Linear interpolation needs at least 2 points and equal-length arrays."
            )
        if np.any(np.diff(xs) <= 0):
            raise InvalidInputError("Knots must be strictly increasing.")
        self._knots = _read_only(xs)
        self._values = _read_only(ys)

    @classmethod
    def from_samples(cls, samples: Sequence[Sample]) -> "LinearInterpolator":
        return cls([s.timestamp for s in samples], [s.value for s in samples])

    @property
    def knots(self) -> np.ndarray:
        return self._knots

    @property
    def start(self) -> float:
        return float(self._knots[0])

    @property
    def end(self) -> float:
        return float(self._knots[-1])

    def evaluate(self, x: float) -> float:
        return float(np.interp(float(x), self._knots, self._values))

    def evaluate_many(self, xs: Sequence[float]) -> np.ndarray:
        return np.interp(np.asarray(xs, dtype=float), self._knots, self._values)


Curve = Union[CubicSpline, LinearInterpolator]


class Spline(NamedTuple):
    model: CubicSpline

    @property
    def mode(self) -> CurveMode:
        return CurveMode.SPLINE


class Fallback(NamedTuple):
    """Points to draw without a spline: raw samples, or the finite ones joined linearly."""

    points: tuple[Sample, ...]
    mode: CurveMode


SplineResult = Union[Spline, Fallback]


def fit_curve(series: TimeSeries) -> SplineResult:
    """
    Choose how to draw a forecast.

    - fewer than 2 samples: Fallback(RAW) with the samples unchanged
    - any non-finite value: Fallback(LINEAR) over the finite samples
      (Fallback(RAW) if fewer than 2 remain)
    - otherwise: Spline
    """
    if len(series) < 2:
        logger.warning(
            "Cannot build a curve from %d sample(s); using raw points", len(series)
        )
        return Fallback(points=tuple(series), mode=CurveMode.RAW)

    finite = tuple(s for s in series if math.isfinite(s.value))
    if len(finite) < len(series):
        logger.warning(
            "Forecast has %d non-finite value(s); falling back to linear interpolation",
            len(series) - len(finite),
        )
        mode = CurveMode.LINEAR if len(finite) >= 2 else CurveMode.RAW
        return Fallback(points=finite, mode=mode)

    return Spline(model=CubicSpline.from_series(series))


def curve_for(result: SplineResult) -> Optional[Curve]:
    """The evaluable curve behind a SplineResult, or None in raw mode."""
    if isinstance(result, Spline):
        return result.model
    if result.mode is CurveMode.LINEAR:
        return LinearInterpolator.from_samples(result.points)
    return None
