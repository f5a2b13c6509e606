"""
UV index category lookup (WHO bands).
"""

import math
from typing import Optional

from app.config import UV_CATEGORIES, UV_PLACEHOLDER
from app.models.uv import UVCategory


def get_uv_category(uv: Optional[float]) -> UVCategory:
    """Band for a UV index value; a placeholder for None or NaN."""
    if uv is None or math.isnan(uv):
        return UVCategory(name=UV_PLACEHOLDER, css_class="", recommendation="")

    for upper, name, css_class, recommendation in UV_CATEGORIES:
        if upper is None or uv < upper:
            return UVCategory(name=name, css_class=css_class, recommendation=recommendation)

    # UV_CATEGORIES always ends with an open band
    raise ValueError(f"No UV category configured for {uv}")
