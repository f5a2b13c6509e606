"""
Dense curve sampling and axis-label selection for the UV chart.

The dense curve is the line the chart draws: the fitted curve evaluated
every `step_ms` from the first knot. Label points are the few instants that
get a time on the x axis: both ends of the forecast, every whole hour in
between, and any caller-supplied markers (typically the rise/fall times).
"""

import logging
import math
from collections.abc import Sequence
from typing import Iterable, NamedTuple, Optional, Union

from app.config import (
    LabelKind,
    DEFAULT_STEP_MS,
    DEFAULT_PROXIMITY_MS,
    DEFAULT_DISPLAY_TIMEZONE,
    LABEL_TIME_FORMAT,
    MAX_DENSE_POINTS,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    TICK_TOLERANCE_MS,
)
from app.engine.spline import Curve, CubicSpline, SplineResult, Spline, curve_for
from app.engine.timeseries import InvalidInputError, local_datetime, to_epoch_ms
from app.models.uv import AxisLabelPoint, Sample

logger = logging.getLogger(__name__)


def grid_size(start: float, end: float, step_ms: float) -> int:
    """
    Number of points in start + k * step for k = 0 .. floor((end - start) / step).

    Raises InvalidInputError for a non-positive step or one that would give
    more than MAX_DENSE_POINTS points.
    """
    if not step_ms > 0:
        raise InvalidInputError(f"Sampling step must be positive, got {step_ms}.")
    # 1e-9 absorbs float noise when the span is an exact multiple of the step
    count = math.floor((end - start) / step_ms + 1e-9) + 1
    if count > MAX_DENSE_POINTS:
        raise InvalidInputError(
            f"Sampling step of {step_ms / MS_PER_MINUTE:g} min gives {count} points "
            f"(at most {MAX_DENSE_POINTS} allowed); use a larger step."
        )
    return count


class DenseCurve(Sequence):
    """
    Evenly spaced samples of a curve, evaluated on access.

    Covers start + k * step for k = 0 .. floor((end - start) / step). The last
    knot is included only when the span is an exact multiple of the step.
    Iterating twice yields the same samples.
    """

    __slots__ = ("_curve", "_start", "_step", "_count")

    def __init__(self, curve: Curve, step_ms: float = DEFAULT_STEP_MS):
        self._count = grid_size(curve.start, curve.end, step_ms)
        self._curve = curve
        self._start = curve.start
        self._step = float(step_ms)

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._count))]
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError("DenseCurve index out of range")
        t = self._start + index * self._step
        return Sample(timestamp=t, value=self._curve.evaluate(t))

    def __iter__(self):
        timestamps = [self._start + k * self._step for k in range(self._count)]
        values = self._curve.evaluate_many(timestamps)
        for t, v in zip(timestamps, values):
            yield Sample(timestamp=t, value=float(v))


class SampledCurve(NamedTuple):
    dense_curve: Sequence[Sample]
    label_points: list[AxisLabelPoint]


def hour_marks(start: float, end: float, tz_name: str) -> list[float]:
    """Whole hours (in the display timezone) strictly between start and end."""
    local = local_datetime(start, tz_name)
    mark = to_epoch_ms(local.replace(minute=0, second=0, microsecond=0))
    if mark <= start:
        mark += MS_PER_HOUR

    marks = []
    while mark < end:
        marks.append(mark)
        mark += MS_PER_HOUR
    return marks


def select_label_points(
    curve: Curve,
    named_instants: Iterable[Optional[float]] = (),
    tz_name: str = DEFAULT_DISPLAY_TIMEZONE,
) -> list[AxisLabelPoint]:
    """
    Pick the x-axis label instants for a curve.

    Candidates are keyed by their displayed time (local date + "HH:MM"), so
    a marker that lands on an hour mark, or within the same minute as one,
    produces a single label. Later candidates replace earlier ones: hour
    marks, then markers, then the last knot. Keying on the date as well
    keeps the same clock time on different days apart.
    """
    candidates: dict[tuple, tuple[float, LabelKind]] = {}

    def add(timestamp: float, kind: LabelKind) -> None:
        local = local_datetime(timestamp, tz_name)
        key = (local.date(), local.strftime(LABEL_TIME_FORMAT))
        candidates[key] = (timestamp, kind)

    add(curve.start, LabelKind.BOUNDARY)
    for mark in hour_marks(curve.start, curve.end, tz_name):
        add(mark, LabelKind.HOUR)
    for instant in named_instants:
        if instant is not None:
            add(float(instant), LabelKind.MARKER)
    add(curve.end, LabelKind.BOUNDARY)

    ordered = sorted(candidates.items(), key=lambda item: item[1][0])
    return [
        AxisLabelPoint(
            timestamp=timestamp,
            value=curve.evaluate(timestamp),
            label=time_str,
            kind=kind,
        )
        for (_, time_str), (timestamp, kind) in ordered
    ]


def _raw_labels(points: Sequence[Sample], tz_name: str) -> list[AxisLabelPoint]:
    return [
        AxisLabelPoint(
            timestamp=p.timestamp,
            value=p.value,
            label=local_datetime(p.timestamp, tz_name).strftime(LABEL_TIME_FORMAT),
            kind=LabelKind.BOUNDARY,
        )
        for p in points
    ]


def sample_curve(
    result: Union[SplineResult, CubicSpline],
    step_ms: float = DEFAULT_STEP_MS,
    named_instants: Iterable[Optional[float]] = (),
    tz_name: str = DEFAULT_DISPLAY_TIMEZONE,
) -> SampledCurve:
    """
    Produce the dense curve and label points for a fitted forecast.

    A bare CubicSpline is accepted as well as a SplineResult. With fewer than
    two usable samples the raw points are returned as both the curve and the
    labels; no interpolation is attempted.
    """
    if isinstance(result, CubicSpline):
        result = Spline(model=result)

    curve = curve_for(result)
    if curve is None:
        logger.warning(
            "Insufficient data for a smooth curve (%d point(s)); returning raw points",
            len(result.points),
        )
        points = tuple(result.points)
        return SampledCurve(dense_curve=points, label_points=_raw_labels(points, tz_name))

    dense = DenseCurve(curve, step_ms)
    labels = select_label_points(curve, named_instants, tz_name)
    logger.debug(
        "Sampled %d dense points and %d labels", len(dense), len(labels)
    )
    return SampledCurve(dense_curve=dense, label_points=labels)


def filter_axis_ticks(
    labels: Sequence[AxisLabelPoint],
    rise_time: Optional[float] = None,
    fall_time: Optional[float] = None,
    proximity_ms: float = DEFAULT_PROXIMITY_MS,
    tolerance_ms: float = TICK_TOLERANCE_MS,
) -> list[AxisLabelPoint]:
    """
    Drop hour labels that would crowd more important ones.

    Boundary and marker labels are always kept. An hour label is hidden when
    it is within `proximity_ms` of the rise or fall time, or of a boundary
    that is not itself on the hour and is not the rise/fall time.
    """
    markers = [t for t in (rise_time, fall_time) if t is not None]

    crowding = list(markers)
    for label in labels:
        if label.kind is not LabelKind.BOUNDARY or label.label.endswith(":00"):
            continue
        if any(abs(label.timestamp - m) < tolerance_ms for m in markers):
            continue
        crowding.append(label.timestamp)

    visible = []
    for label in labels:
        if label.kind is LabelKind.HOUR and any(
            abs(label.timestamp - t) < proximity_ms for t in crowding
        ):
            continue
        visible.append(label)
    return visible
