"""
Threshold crossings in a UV forecast.

Crossing times are interpolated linearly between the observed samples that
straddle the threshold. The spline is not used for this: its overshoot
between samples can invent crossings the forecast never makes.

find_curve_crossing() is the exception. It places the rise/fall annotation
on the drawn (smoothed) curve and is for display only.
"""

import logging
from typing import Optional, Sequence

from scipy.optimize import brentq

from app.config import CrossingDirection, DEFAULT_STEP_MS
from app.engine.curve_sampler import grid_size
from app.engine.spline import Curve
from app.engine.timeseries import DegenerateIntervalError, interval_fraction
from app.models.uv import CrossingEvent, Sample

logger = logging.getLogger(__name__)


def _crosses(v0: float, v1: float, threshold: float, direction: CrossingDirection) -> bool:
    if direction is CrossingDirection.RISING:
        return v0 < threshold <= v1
    return v0 > threshold >= v1


def _crossing_time(before: Sample, after: Sample, threshold: float) -> float:
    if after.timestamp <= before.timestamp:
        raise DegenerateIntervalError(
            f"Non-increasing time interval at {before.timestamp}"
        )
    fraction = interval_fraction(threshold, before.value, after.value)
    return before.timestamp + fraction * (after.timestamp - before.timestamp)


def _scan(series: Sequence[Sample], threshold: float, directions):
    samples = list(series)
    for before, after in zip(samples, samples[1:]):
        for direction in directions:
            if not _crosses(before.value, after.value, threshold, direction):
                continue
            try:
                timestamp = _crossing_time(before, after, threshold)
            except DegenerateIntervalError as e:
                logger.warning("Skipping crossing check: %s", e)
                continue
            yield CrossingEvent(timestamp=timestamp, direction=direction, threshold=threshold)


def find_crossing(
    series: Sequence[Sample],
    threshold: float,
    direction: CrossingDirection = CrossingDirection.RISING,
) -> Optional[float]:
    """
    Time of the first crossing of `threshold` in the given direction.

    Rising means v0 < threshold <= v1 for consecutive samples; falling means
    v0 > threshold >= v1. Returns None when no pair qualifies.
    """
    direction = CrossingDirection(direction)
    for event in _scan(series, threshold, (direction,)):
        return event.timestamp
    return None


def find_crossings(series: Sequence[Sample], threshold: float) -> list[CrossingEvent]:
    """Every rising and falling crossing, in chronological order."""
    return list(_scan(series, threshold, tuple(CrossingDirection)))


def find_curve_crossing(
    curve: Curve,
    threshold: float,
    direction: CrossingDirection = CrossingDirection.RISING,
    step_ms: float = DEFAULT_STEP_MS,
) -> Optional[float]:
    """
    Where the fitted curve itself first crosses `threshold`.

    The curve is bracketed on a `step_ms` grid (plus the last knot), then the
    crossing inside the bracket is refined with Brent's method.
    """
    direction = CrossingDirection(direction)
    count = grid_size(curve.start, curve.end, step_ms)
    grid = [curve.start + k * step_ms for k in range(count)]
    if grid[-1] < curve.end:
        grid.append(curve.end)
    values = curve.evaluate_many(grid)

    for i in range(len(grid) - 1):
        v0, v1 = float(values[i]), float(values[i + 1])
        if not _crosses(v0, v1, threshold, direction):
            continue
        if v1 == threshold:
            return grid[i + 1]
        return float(brentq(
            lambda t: curve.evaluate(t) - threshold,
            grid[i],
            grid[i + 1],
            xtol=1.0,
        ))
    return None
