"""
End-to-end analysis of one UV forecast for the dashboard.

Fits the curve once, then derives everything the UV panel shows from it:
rise/fall times around the protection threshold, the dense chart line, axis
labels, the current value and its category. Each call builds its own curve;
nothing is kept between calls.
"""

import logging
from typing import Optional

from app.config import (
    CrossingDirection,
    CurveMode,
    DEFAULT_UV_THRESHOLD,
    DEFAULT_STEP_MS,
    DEFAULT_PROXIMITY_MS,
    DEFAULT_DISPLAY_TIMEZONE,
)
from app.engine.crossings import find_crossing, find_crossings, find_curve_crossing
from app.engine.current_value import current_value, estimate_at
from app.engine.curve_sampler import filter_axis_ticks, sample_curve
from app.engine.spline import Spline, curve_for, fit_curve
from app.engine.timeseries import TimeSeries, display_zone, format_label_time
from app.engine.uv_category import get_uv_category
from app.models.uv import Sample, UVCurveOutput

logger = logging.getLogger(__name__)


def analyze_forecast(
    series: TimeSeries,
    now: Optional[float] = None,
    threshold: float = DEFAULT_UV_THRESHOLD,
    step_ms: float = DEFAULT_STEP_MS,
    proximity_ms: float = DEFAULT_PROXIMITY_MS,
    tz_name: str = DEFAULT_DISPLAY_TIMEZONE,
) -> UVCurveOutput:
    """
    Analyze a normalized UV forecast.

    Args:
        series: Forecast samples (epoch ms, UV index).
        now: Query instant in epoch ms; no current value is computed if None.
        threshold: UV index that triggers the protection advice.
        step_ms: Dense curve resolution.
        proximity_ms: Hour ticks closer than this to a rise/fall or boundary
            label are hidden.
        tz_name: IANA timezone used for axis labels.

    Returns:
        UVCurveOutput. Missing crossings and out-of-range estimates are None.
    """
    display_zone(tz_name)  # fail early on an unknown zone
    warnings: list[str] = []

    result = fit_curve(series)
    # Crossings and the live value use the observed samples the curve was built from
    observed = series if isinstance(result, Spline) else result.points
    if result.mode is CurveMode.LINEAR:
        warnings.append(
            "Forecast contains invalid values; the curve is linearly interpolated."
        )
    elif result.mode is CurveMode.RAW:
        warnings.append(
            "Not enough forecast data for a smooth curve; showing raw points."
        )

    rise_time = find_crossing(observed, threshold, CrossingDirection.RISING)
    fall_time = find_crossing(observed, threshold, CrossingDirection.FALLING)

    sampled = sample_curve(result, step_ms, (rise_time, fall_time), tz_name)
    dense_curve = list(sampled.dense_curve)
    visible_ticks = filter_axis_ticks(
        sampled.label_points, rise_time, fall_time, proximity_ms
    )

    curve = curve_for(result)
    curve_rise_time = curve_fall_time = None
    if curve is not None:
        curve_rise_time = find_curve_crossing(curve, threshold, CrossingDirection.RISING, step_ms)
        curve_fall_time = find_curve_crossing(curve, threshold, CrossingDirection.FALLING, step_ms)

    current_uv = None
    current_marker = None
    if now is not None:
        current_uv = current_value(observed, now)
        marker_uv = estimate_at(dense_curve, now)
        if marker_uv is None:
            marker_uv = current_uv
        if marker_uv is not None:
            current_marker = Sample(timestamp=now, value=marker_uv)

    logger.info(
        "UV forecast analyzed: %d samples, mode=%s, rise=%s, fall=%s",
        len(series),
        result.mode.value,
        format_label_time(rise_time, tz_name) if rise_time is not None else "none",
        format_label_time(fall_time, tz_name) if fall_time is not None else "none",
    )

    return UVCurveOutput(
        curve_mode=result.mode,
        threshold=threshold,
        timezone=tz_name,
        dense_curve=dense_curve,
        label_points=sampled.label_points,
        visible_ticks=visible_ticks,
        rise_time=rise_time,
        fall_time=fall_time,
        rise_label=format_label_time(rise_time, tz_name) if rise_time is not None else None,
        fall_label=format_label_time(fall_time, tz_name) if fall_time is not None else None,
        crossings=find_crossings(observed, threshold),
        curve_rise_time=curve_rise_time,
        curve_fall_time=curve_fall_time,
        current_uv=current_uv,
        current_marker=current_marker,
        category=get_uv_category(current_uv),
        warnings=warnings,
    )
