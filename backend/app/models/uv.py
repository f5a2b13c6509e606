"""
Pydantic models for UV forecast curves, crossings and axis labels.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.config import (
    CrossingDirection,
    CurveMode,
    LabelKind,
    DEFAULT_UV_THRESHOLD,
    DEFAULT_DISPLAY_TIMEZONE,
)


class Sample(BaseModel):
    """A single (timestamp, value) point. Timestamps are epoch milliseconds."""

    model_config = ConfigDict(frozen=True)

    timestamp: float
    value: float


class AxisLabelPoint(BaseModel):
    """A labelled instant on the chart's time axis."""

    model_config = ConfigDict(frozen=True)

    timestamp: float
    value: float
    label: str  # "HH:MM" in the display timezone
    kind: LabelKind


class CrossingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: float
    direction: CrossingDirection
    threshold: float


class UVCategory(BaseModel):
    name: str
    css_class: str
    recommendation: str


class UVReading(BaseModel):
    """One forecast entry as delivered by the upstream UV API."""

    uv_time: datetime
    uv: float = Field(..., ge=0)


class UVCurveInput(BaseModel):
    """Input for a UV curve calculation."""

    readings: list[UVReading]
    threshold: float = DEFAULT_UV_THRESHOLD
    step_minutes: float = Field(10.0, gt=0)
    proximity_minutes: float = Field(30.0, ge=0)
    timezone: str = DEFAULT_DISPLAY_TIMEZONE
    now: Optional[datetime] = None  # defaults to the server's current time


class UVCurveOutput(BaseModel):
    """Result of a UV curve calculation."""

    curve_mode: CurveMode
    threshold: float
    timezone: str

    dense_curve: list[Sample]
    label_points: list[AxisLabelPoint]
    visible_ticks: list[AxisLabelPoint]

    # Crossings interpolated on the raw forecast
    rise_time: Optional[float] = None
    fall_time: Optional[float] = None
    rise_label: Optional[str] = None
    fall_label: Optional[str] = None
    crossings: list[CrossingEvent] = Field(default_factory=list)

    # Where the smoothed curve meets the threshold, for annotation placement
    curve_rise_time: Optional[float] = None
    curve_fall_time: Optional[float] = None

    current_uv: Optional[float] = None
    current_marker: Optional[Sample] = None
    category: UVCategory

    warnings: list[str] = Field(default_factory=list)
