"""
UV value at an arbitrary instant, for the live readout and the chart's
"now" marker.
"""

import logging
from typing import Optional, Sequence

from app.engine.timeseries import DegenerateIntervalError, interval_fraction, last_value
from app.models.uv import Sample

logger = logging.getLogger(__name__)


def estimate_at(points: Sequence[Sample], now: float) -> Optional[float]:
    """
    Linearly interpolate the value at `now` between the two points that
    bracket it (before.timestamp <= now <= after.timestamp).

    Returns None when `now` lies outside the points. Unlike the spline, no
    boundary value is substituted: the caller decides what to show.
    """
    samples = list(points)
    for before, after in zip(samples, samples[1:]):
        if before.timestamp <= now <= after.timestamp:
            try:
                fraction = interval_fraction(now, before.timestamp, after.timestamp)
            except DegenerateIntervalError:
                fraction = 0.0
            return before.value + fraction * (after.value - before.value)
    return None


def current_value(series: Sequence[Sample], now: float) -> Optional[float]:
    """
    Estimate at `now`. Before the forecast starts this is the first value;
    after it ends, the last one.
    """
    estimate = estimate_at(series, now)
    if estimate is not None or not len(series):
        return estimate
    if now < series[0].timestamp:
        logger.debug("%s is before the forecast; using the first value", now)
        return series[0].value
    logger.debug("No bracketing samples for %s; using the last known value", now)
    return last_value(series)
