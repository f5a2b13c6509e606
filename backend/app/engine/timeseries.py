"""
Time series of UV forecast samples.

All engine code works on a single instant type: epoch milliseconds as a
float. Conversion to and from datetimes and "HH:MM" strings happens only
here, at the edges.
"""

import logging
import math
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import LABEL_TIME_FORMAT
from app.models.uv import Sample, UVReading

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class InvalidInputError(ValueError):
    """Input that cannot form a valid series or curve."""


class DegenerateIntervalError(ValueError):
    """A zero-width interval; callers skip it rather than fail."""


class TimeSeries(Sequence):
    """
    Immutable sequence of Samples, strictly increasing by timestamp.

    Series with fewer than two samples are allowed; they cannot be
    interpolated and are handled downstream in degraded mode.
    """

    __slots__ = ("_samples",)

    def __init__(self, samples: Iterable[Sample] = ()):
        samples = tuple(samples)
        for idx, sample in enumerate(samples):
            if not math.isfinite(sample.timestamp):
                raise InvalidInputError(
                    f"Sample {idx} has a non-finite timestamp: {sample.timestamp}"
                )
            if idx and sample.timestamp <= samples[idx - 1].timestamp:
                raise InvalidInputError(
                    "Timestamps must be strictly increasing "
                    f"(sample {idx}: {sample.timestamp} <= {samples[idx - 1].timestamp})."
                )
        self._samples = samples

    @classmethod
    def from_arrays(cls, timestamps: Sequence[float], values: Sequence[float]) -> "TimeSeries":
        if len(timestamps) != len(values):
            raise InvalidInputError(
                f"Got {len(timestamps)} timestamps but {len(values)} values."
            )
        return cls(
            Sample(timestamp=float(t), value=float(v))
            for t, v in zip(timestamps, values)
        )

    def __getitem__(self, index):
        if isinstance(index, slice):
            return TimeSeries(self._samples[index])
        return self._samples[index]

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)

    def __repr__(self) -> str:
        return f"TimeSeries({len(self._samples)} samples)"

    @property
    def timestamps(self) -> tuple[float, ...]:
        return tuple(s.timestamp for s in self._samples)

    @property
    def values(self) -> tuple[float, ...]:
        return tuple(s.value for s in self._samples)


def interval_fraction(x: float, x0: float, x1: float) -> float:
    """Position of x within [x0, x1] as a fraction; raises on a zero-width interval."""
    if x1 == x0:
        raise DegenerateIntervalError(f"Zero-width interval at {x0}")
    return (x - x0) / (x1 - x0)


# ---------------------------------------------------------------------------
# Time conversion
# ---------------------------------------------------------------------------

def to_epoch_ms(value: Union[datetime, str]) -> float:
    """
    Convert a datetime (or ISO-8601 string) to epoch milliseconds.

    Naive datetimes are taken to be UTC, which is what the upstream UV
    forecast uses.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) / _ONE_MS


@lru_cache(maxsize=32)
def display_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidInputError(f"Unknown timezone '{name}'") from e


def local_datetime(timestamp: float, tz_name: str) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000.0, tz=display_zone(tz_name))


def format_label_time(timestamp: float, tz_name: str) -> str:
    """Format an instant as "HH:MM" in the display timezone (seconds truncated)."""
    return local_datetime(timestamp, tz_name).strftime(LABEL_TIME_FORMAT)


# ---------------------------------------------------------------------------
# Forecast normalisation
# ---------------------------------------------------------------------------

def normalize_readings(readings: Iterable[Union[UVReading, dict]]) -> TimeSeries:
    """
    Build a TimeSeries from raw forecast entries ({uv_time, uv}).

    Entries are sorted by time. When two entries share a timestamp the later
    one in the input wins. Malformed entries are skipped with a warning.
    """
    by_time: dict[float, float] = {}

    for idx, reading in enumerate(readings):
        try:
            if isinstance(reading, UVReading):
                uv_time, uv = reading.uv_time, reading.uv
            else:
                uv_time, uv = reading["uv_time"], reading["uv"]
            timestamp = to_epoch_ms(uv_time)
            value = float(uv)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping forecast entry %d: %s", idx, e)
            continue

        if timestamp in by_time:
            logger.warning(
                "Duplicate forecast time %s; keeping the later reading",
                datetime.fromtimestamp(timestamp / 1000.0, tz=timezone.utc).isoformat(),
            )
        by_time[timestamp] = value

    return TimeSeries(
        Sample(timestamp=t, value=by_time[t]) for t in sorted(by_time)
    )


def last_value(series: Sequence[Sample]) -> Optional[float]:
    return series[-1].value if len(series) else None
