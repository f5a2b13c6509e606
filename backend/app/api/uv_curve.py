"""
API routes for UV forecast curves and categories.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query

from app.config import MS_PER_MINUTE
from app.engine.timeseries import normalize_readings, to_epoch_ms
from app.engine.uv_category import get_uv_category
from app.engine.uv_forecast import analyze_forecast
from app.models.uv import UVCategory, UVCurveInput, UVCurveOutput

router = APIRouter(prefix="/api/v1", tags=["uv"])


@router.post("/uv/curve", response_model=UVCurveOutput)
async def calculate_uv_curve(data: UVCurveInput) -> UVCurveOutput:
    """
    Smooth a UV forecast and find its protection-threshold crossings.

    Returns the dense curve for drawing, axis label points, rise/fall times,
    the current UV estimate and its category. If `now` is omitted the
    server's current time is used.
    """
    now = data.now or datetime.now(timezone.utc)

    try:
        series = normalize_readings(data.readings)
        return analyze_forecast(
            series,
            now=to_epoch_ms(now),
            threshold=data.threshold,
            step_ms=data.step_minutes * MS_PER_MINUTE,
            proximity_ms=data.proximity_minutes * MS_PER_MINUTE,
            tz_name=data.timezone,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"UV curve error: {str(e)}")


@router.get("/uv/category", response_model=UVCategory)
async def get_category(uv: float = Query(..., ge=0)) -> UVCategory:
    """Category name, CSS class and advice for a UV index value."""
    return get_uv_category(uv)
