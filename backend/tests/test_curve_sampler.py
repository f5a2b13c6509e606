"""
Tests for dense curve sampling, axis-label selection and the tick filter.

Label tests use UTC unless they are specifically about local time, so the
expected "HH:MM" strings read the same as the sample times.
"""

import math
from datetime import datetime, timezone

import pytest

from app.config import CurveMode, LabelKind, MAX_DENSE_POINTS, MS_PER_MINUTE
from app.engine.curve_sampler import (
    DenseCurve,
    filter_axis_ticks,
    grid_size,
    hour_marks,
    sample_curve,
    select_label_points,
)
from app.engine.spline import CubicSpline, fit_curve
from app.engine.timeseries import InvalidInputError, TimeSeries, to_epoch_ms


def _ms(hour: int, minute: int = 0, second: int = 0, day: int = 1) -> float:
    return to_epoch_ms(datetime(2024, 6, day, hour, minute, second, tzinfo=timezone.utc))


def _series(points: list[tuple[float, float]]) -> TimeSeries:
    return TimeSeries.from_arrays([t for t, _ in points], [v for _, v in points])


MORNING = _series([
    (_ms(6, 10), 0.5),
    (_ms(7), 1.8),
    (_ms(8), 3.9),
    (_ms(9), 6.2),
    (_ms(9, 40), 7.4),
])


# ---------------------------------------------------------------------------
# Dense curve
# ---------------------------------------------------------------------------

class TestDenseCurve:
    def test_count_exact_multiple(self):
        """06:00 to 09:00 every 10 minutes: 18 steps, both ends included."""
        spline = CubicSpline([_ms(6), _ms(7, 30), _ms(9)], [1.0, 4.0, 2.0])
        dense = DenseCurve(spline, 10 * MS_PER_MINUTE)
        assert len(dense) == 19
        assert dense[0].timestamp == _ms(6)
        assert dense[-1].timestamp == _ms(9)

    def test_count_not_multiple(self):
        """06:00 to 09:05: floor(185 / 10) + 1 points, the last knot is not added."""
        spline = CubicSpline([_ms(6), _ms(7, 30), _ms(9, 5)], [1.0, 4.0, 2.0])
        dense = DenseCurve(spline, 10 * MS_PER_MINUTE)
        assert len(dense) == math.floor(185 / 10) + 1
        assert dense[-1].timestamp == _ms(9)

    def test_even_spacing(self):
        dense = DenseCurve(CubicSpline.from_series(MORNING), 10 * MS_PER_MINUTE)
        stamps = [s.timestamp for s in dense]
        gaps = {b - a for a, b in zip(stamps, stamps[1:])}
        assert gaps == {10 * MS_PER_MINUTE}

    def test_restartable(self):
        dense = DenseCurve(CubicSpline.from_series(MORNING), 10 * MS_PER_MINUTE)
        first = [(s.timestamp, s.value) for s in dense]
        second = [(s.timestamp, s.value) for s in dense]
        assert first == second
        assert len(first) == len(dense)

    def test_indexing_matches_iteration(self):
        dense = DenseCurve(CubicSpline.from_series(MORNING), 10 * MS_PER_MINUTE)
        listed = list(dense)
        for idx in (0, 3, len(dense) - 1):
            assert dense[idx].timestamp == listed[idx].timestamp
            assert dense[idx].value == pytest.approx(listed[idx].value, abs=1e-12)
        assert [s.timestamp for s in dense[1:3]] == [listed[1].timestamp, listed[2].timestamp]

    def test_index_out_of_range(self):
        dense = DenseCurve(CubicSpline.from_series(MORNING), 10 * MS_PER_MINUTE)
        with pytest.raises(IndexError):
            dense[len(dense)]

    def test_passes_through_knots_on_grid(self):
        dense = DenseCurve(CubicSpline.from_series(MORNING), 10 * MS_PER_MINUTE)
        by_time = {s.timestamp: s.value for s in dense}
        for sample in MORNING:
            if sample.timestamp in by_time:
                assert by_time[sample.timestamp] == pytest.approx(sample.value)

    def test_invalid_step(self):
        spline = CubicSpline.from_series(MORNING)
        with pytest.raises(InvalidInputError):
            DenseCurve(spline, 0)
        with pytest.raises(InvalidInputError):
            DenseCurve(spline, -5)

    def test_point_count_limit(self):
        """06:10 to 09:40 is 12.6 million milliseconds; a 1 ms step is refused."""
        spline = CubicSpline.from_series(MORNING)
        with pytest.raises(InvalidInputError, match="at most"):
            DenseCurve(spline, 1.0)
        assert len(DenseCurve(spline, MS_PER_MINUTE)) == 211


class TestGridSize:
    def test_exact_multiple(self):
        assert grid_size(0.0, 60.0, 10.0) == 7

    def test_not_multiple(self):
        assert grid_size(0.0, 65.0, 10.0) == 7

    def test_at_limit(self):
        assert grid_size(0.0, float(MAX_DENSE_POINTS - 1), 1.0) == MAX_DENSE_POINTS
        with pytest.raises(InvalidInputError):
            grid_size(0.0, float(MAX_DENSE_POINTS), 1.0)

    def test_non_positive_step(self):
        with pytest.raises(InvalidInputError):
            grid_size(0.0, 60.0, 0.0)


# ---------------------------------------------------------------------------
# Hour marks and labels
# ---------------------------------------------------------------------------

class TestHourMarks:
    def test_strictly_between(self):
        assert hour_marks(_ms(6, 10), _ms(9, 40), "UTC") == [_ms(7), _ms(8), _ms(9)]

    def test_start_on_the_hour_excluded(self):
        assert hour_marks(_ms(6), _ms(8), "UTC") == [_ms(7)]

    def test_half_hour_offset_zone(self):
        """Asia/Kolkata is UTC+5:30, so local whole hours fall on UTC half hours."""
        marks = hour_marks(_ms(0), _ms(2), "Asia/Kolkata")
        assert marks == [_ms(0, 30), _ms(1, 30)]


class TestLabelPoints:
    def setup_method(self):
        self.spline = CubicSpline.from_series(MORNING)

    def test_boundaries_and_hours(self):
        labels = select_label_points(self.spline, tz_name="UTC")
        assert [p.label for p in labels] == ["06:10", "07:00", "08:00", "09:00", "09:40"]
        assert [p.kind for p in labels] == [
            LabelKind.BOUNDARY, LabelKind.HOUR, LabelKind.HOUR, LabelKind.HOUR, LabelKind.BOUNDARY,
        ]

    def test_values_from_spline(self):
        labels = select_label_points(self.spline, tz_name="UTC")
        for p in labels:
            assert p.value == pytest.approx(self.spline.evaluate(p.timestamp))
        assert labels[0].value == 0.5
        assert labels[-1].value == 7.4

    def test_marker_on_hour_mark_is_single_label(self):
        labels = select_label_points(self.spline, [_ms(8)], tz_name="UTC")
        assert [p.label for p in labels].count("08:00") == 1
        assert len(labels) == 5
        eight = next(p for p in labels if p.label == "08:00")
        assert eight.kind == LabelKind.MARKER

    def test_marker_in_same_minute_replaces_hour(self):
        labels = select_label_points(self.spline, [_ms(8, 0, 30)], tz_name="UTC")
        eight = [p for p in labels if p.label == "08:00"]
        assert len(eight) == 1
        assert eight[0].timestamp == _ms(8, 0, 30)

    def test_marker_added_in_order(self):
        labels = select_label_points(self.spline, [_ms(7, 25)], tz_name="UTC")
        assert [p.label for p in labels] == [
            "06:10", "07:00", "07:25", "08:00", "09:00", "09:40",
        ]
        stamps = [p.timestamp for p in labels]
        assert stamps == sorted(stamps)

    def test_none_markers_ignored(self):
        labels = select_label_points(self.spline, [None, None], tz_name="UTC")
        assert len(labels) == 5

    def test_display_timezone(self):
        labels = select_label_points(self.spline, tz_name="Asia/Dubai")
        assert [p.label for p in labels] == ["10:10", "11:00", "12:00", "13:00", "13:40"]

    def test_multi_day_keeps_repeated_clock_times(self):
        """A forecast spanning midnight twice labels 23:00 on both days."""
        series = _series([
            (_ms(22, day=1), 0.0),
            (_ms(10, day=2), 9.0),
            (_ms(22, day=2), 0.0),
            (_ms(2, day=3), 0.0),
        ])
        labels = select_label_points(CubicSpline.from_series(series), tz_name="UTC")
        # 28 hours: two boundaries plus 27 hour marks
        assert len(labels) == 29
        assert [p.label for p in labels].count("23:00") == 2
        stamps = [p.timestamp for p in labels]
        assert all(b > a for a, b in zip(stamps, stamps[1:]))


# ---------------------------------------------------------------------------
# sample_curve
# ---------------------------------------------------------------------------

class TestSampleCurve:
    def test_spline_result(self):
        sampled = sample_curve(fit_curve(MORNING), tz_name="UTC")
        assert isinstance(sampled.dense_curve, DenseCurve)
        # 06:10 to 09:40 is 210 minutes
        assert len(sampled.dense_curve) == 22
        assert len(sampled.label_points) == 5

    def test_accepts_bare_spline(self):
        sampled = sample_curve(CubicSpline.from_series(MORNING), 30 * MS_PER_MINUTE, tz_name="UTC")
        assert len(sampled.dense_curve) == 8

    def test_named_instants_forwarded(self):
        sampled = sample_curve(fit_curve(MORNING), named_instants=[_ms(8, 45)], tz_name="UTC")
        assert "08:45" in [p.label for p in sampled.label_points]

    def test_single_sample_returned_raw(self):
        series = _series([(_ms(12), 9.5)])
        sampled = sample_curve(fit_curve(series), tz_name="UTC")
        assert list(sampled.dense_curve) == list(series)
        assert len(sampled.label_points) == 1
        assert sampled.label_points[0].label == "12:00"
        assert sampled.label_points[0].value == 9.5

    def test_empty_series(self):
        sampled = sample_curve(fit_curve(TimeSeries()), tz_name="UTC")
        assert list(sampled.dense_curve) == []
        assert sampled.label_points == []

    def test_linear_fallback(self):
        series = _series([(_ms(6), 0.0), (_ms(7), float("nan")), (_ms(8), 4.0)])
        result = fit_curve(series)
        assert result.mode == CurveMode.LINEAR
        sampled = sample_curve(result, 30 * MS_PER_MINUTE, tz_name="UTC")
        assert [s.value for s in sampled.dense_curve] == pytest.approx([0.0, 1.0, 2.0, 3.0, 4.0])


# ---------------------------------------------------------------------------
# Axis tick filter
# ---------------------------------------------------------------------------

class TestFilterAxisTicks:
    def setup_method(self):
        self.series = _series([
            (_ms(6, 40), 1.0),
            (_ms(8), 3.5),
            (_ms(9, 30), 6.0),
            (_ms(11, 40), 2.0),
        ])
        self.spline = CubicSpline.from_series(self.series)
        self.rise = _ms(8, 20)
        self.fall = _ms(10, 45)
        self.labels = select_label_points(self.spline, [self.rise, self.fall], tz_name="UTC")

    def test_all_candidates_present(self):
        assert [p.label for p in self.labels] == [
            "06:40", "07:00", "08:00", "08:20", "09:00", "10:00", "10:45", "11:00", "11:40",
        ]

    def test_hides_hours_near_markers_and_boundaries(self):
        visible = filter_axis_ticks(self.labels, self.rise, self.fall, 30 * MS_PER_MINUTE)
        # 07:00 is 20 min from the 06:40 start, 08:00 is 20 min from rise,
        # 11:00 is 15 min from fall
        assert [p.label for p in visible] == [
            "06:40", "08:20", "09:00", "10:00", "10:45", "11:40",
        ]

    def test_zero_proximity_keeps_everything(self):
        visible = filter_axis_ticks(self.labels, self.rise, self.fall, 0)
        assert visible == self.labels

    def test_without_markers(self):
        labels = select_label_points(self.spline, tz_name="UTC")
        visible = filter_axis_ticks(labels, None, None, 30 * MS_PER_MINUTE)
        assert [p.label for p in visible] == ["06:40", "08:00", "09:00", "10:00", "11:00", "11:40"]

    def test_boundary_on_the_hour_does_not_crowd(self):
        on_hour = CubicSpline([_ms(6), _ms(9)], [1.0, 4.0])
        off_hour = CubicSpline([_ms(6, 10), _ms(9)], [1.0, 4.0])
        wide = 90 * MS_PER_MINUTE

        visible = filter_axis_ticks(select_label_points(on_hour, tz_name="UTC"), proximity_ms=wide)
        assert "07:00" in [p.label for p in visible]

        visible = filter_axis_ticks(select_label_points(off_hour, tz_name="UTC"), proximity_ms=wide)
        assert "07:00" not in [p.label for p in visible]

    def test_boundary_matching_rise_does_not_crowd(self):
        """A start that is the rise time itself only crowds through the marker."""
        labels = select_label_points(self.spline, tz_name="UTC")
        start = self.series[0].timestamp
        # 07:00 is 20 min from the start but 20.5 min from the rise
        proximity = 20 * MS_PER_MINUTE + 15 * 1000
        visible = filter_axis_ticks(labels, rise_time=start - 30 * 1000, proximity_ms=proximity)
        assert "07:00" in [p.label for p in visible]

        visible = filter_axis_ticks(labels, proximity_ms=proximity)
        assert "07:00" not in [p.label for p in visible]
