"""
Colour heuristic deciding whether a pixel looks like rust.

Two independent conditions, either one is sufficient:
  A  dominant warm hue      (red clearly above green and blue)
  B  brown mid-tone band    (moderate red, mid green, low blue)
Thresholds come from a SensitivityProfile.
"""
from __future__ import annotations
import numpy as np

from .sensitivity_profile import SensitivityProfile


def classify(r: int, g: int, b: int, profile: SensitivityProfile) -> bool:
    """Classify a single RGB sample (alpha is not considered)."""
    warm_hue = (
        r > profile.a_r_min
        and r > g * profile.a_warm_ratio
        and r > b * profile.a_warm_ratio
    )
    brown_band = (
        r > profile.b_r_min
        and profile.b_g_min < g < profile.b_g_max
        and b < profile.b_b_max
        and r > b * profile.b_b_ratio
    )
    return bool(warm_hue or brown_band)


def classify_planes(
    r: np.ndarray,
    g: np.ndarray,
    b: np.ndarray,
    profile: SensitivityProfile,
) -> np.ndarray:
    """
    Vectorised classify() over channel planes of any (matching) shape.

    Returns a bool array of the same shape.
    """
    # float64 so the ratio products match the scalar path exactly
    r = r.astype(np.float64)
    g = g.astype(np.float64)
    b = b.astype(np.float64)

    warm_hue = (
        (r > profile.a_r_min)
        & (r > g * profile.a_warm_ratio)
        & (r > b * profile.a_warm_ratio)
    )
    brown_band = (
        (r > profile.b_r_min)
        & (g > profile.b_g_min)
        & (g < profile.b_g_max)
        & (b < profile.b_b_max)
        & (r > b * profile.b_b_ratio)
    )
    return warm_hue | brown_band
