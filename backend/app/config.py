"""
UV dashboard configuration and constants.
"""

from enum import Enum

APP_VERSION = "0.1.0"


class CrossingDirection(str, Enum):
    RISING = "rising"
    FALLING = "falling"


class LabelKind(str, Enum):
    BOUNDARY = "boundary"  # first / last knot
    HOUR = "hour"          # on-the-hour mark between the boundaries
    MARKER = "marker"      # caller-supplied instant (rise/fall time)


class CurveMode(str, Enum):
    SPLINE = "spline"
    LINEAR = "linear"  # non-finite values in the forecast
    RAW = "raw"        # fewer than two samples


MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE

# Dense curve resolution for rendering
DEFAULT_STEP_MS = 10 * MS_PER_MINUTE

# Upper bound on points in one dense curve or crossing search grid
MAX_DENSE_POINTS = 50_000

# UV index above which sun protection is advised
DEFAULT_UV_THRESHOLD = 3.0

# Hourly axis ticks closer than this to a rise/fall or boundary label are hidden
DEFAULT_PROXIMITY_MS = 30 * MS_PER_MINUTE

# Two instants this close are treated as the same tick
TICK_TOLERANCE_MS = 1 * MS_PER_MINUTE

# Labels are rendered in the dashboard's local time
DEFAULT_DISPLAY_TIMEZONE = "Asia/Dubai"
LABEL_TIME_FORMAT = "%H:%M"

# UV index category bands: (upper bound exclusive, name, css class, advice).
# The last band has no upper bound.
UV_CATEGORIES = [
    (3.0, "Low", "uv-low",
     "Low risk. No protection needed for most people."),
    (6.0, "Moderate", "uv-moderate",
     "Moderate risk. Wear sunscreen SPF 30+, hat, and sunglasses."),
    (8.0, "High", "uv-high",
     "High risk. Stay in shade during midday hours. "
     "Use SPF 30+ sunscreen, hat, and sunglasses."),
    (11.0, "Very High", "uv-very-high",
     "Very high risk. Minimize sun exposure between 10am and 4pm. "
     "Apply SPF 30+ every 2 hours."),
    (None, "Extreme", "uv-extreme",
     "Extreme risk. Avoid outdoors during midday hours. "
     "Shirt, sunscreen, hat, and sunglasses are essential."),
]

UV_PLACEHOLDER = "-"
