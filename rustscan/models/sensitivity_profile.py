from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class SensitivityProfile:
    """
    Value-object holding the colour thresholds used by the pixel classifier.

    Condition A ("dominant warm hue"):
        r > a_r_min  and  r > g * a_warm_ratio  and  r > b * a_warm_ratio
    Condition B ("brown mid-tone band"):
        r > b_r_min  and  b_g_min < g < b_g_max  and  b < b_b_max
        and  r > b * b_b_ratio
    """
    name: str
    a_r_min: int
    a_warm_ratio: float
    b_r_min: int
    b_g_min: int
    b_g_max: int
    b_b_max: int
    b_b_ratio: float


# Full-image scan
STANDARD = SensitivityProfile(
    name="standard",
    a_r_min=100, a_warm_ratio=1.5,
    b_r_min=60, b_g_min=30, b_g_max=80, b_b_max=60, b_b_ratio=1.2,
)

# Local re-scan around user seed points
RELAXED = SensitivityProfile(
    name="relaxed",
    a_r_min=80, a_warm_ratio=1.2,
    b_r_min=50, b_g_min=20, b_g_max=90, b_b_max=70, b_b_ratio=1.0,
)
