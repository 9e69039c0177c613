from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from .view import ViewState

TWO_PI = 2.0 * math.pi
HALF_PI = 0.5 * math.pi
REFERENCE_FOV_DEG = 120.0


def normalize_angle(value: float) -> float:
    """Wrap *value* (radians) into [0, 2π)."""
    result = math.fmod(value, TWO_PI)
    if result < 0.0:
        result += TWO_PI
    # a tiny negative remainder rounds up to exactly 2π after the correction
    if result >= TWO_PI:
        result = 0.0
    return result


def pixel_scale(view: ViewState) -> float:
    """Pixels per planar unit, normalized against a 120° reference field."""
    fov_rad = math.radians(view.fov)
    return (view.display_width / fov_rad) / (REFERENCE_FOV_DEG / view.fov)


def horizontal_coordinates(view: ViewState, ra_deg: float, dec_deg: float) -> Tuple[float, float]:
    """Return (azimuth, altitude) in radians of a star relative to the view center."""
    ra0 = math.radians(view.center_ra)
    dec0 = math.radians(view.center_dec)
    ra = math.radians(ra_deg)
    dec = math.radians(dec_deg)
    hour = ra0 - ra

    p1 = math.sin(hour)
    p2 = math.cos(hour) * math.sin(dec0) - math.tan(dec) * math.cos(dec0)
    # atan2 of signed zeros gives 0, ±π or -0 depending on the signs
    if p1 == 0.0 and p2 == 0.0:
        azimuth = 0.0
    else:
        azimuth = math.atan2(p1, p2)

    # same value as sin(dec0)sin(dec) + cos(dec0)cos(dec)cos(hour), but exactly 1.0 at the center
    t = math.cos(dec0 - dec) - math.cos(dec0) * math.cos(dec) * (1.0 - math.cos(hour))
    if t >= 1.0:
        altitude = HALF_PI
    elif t <= -1.0:
        altitude = -HALF_PI
    else:
        altitude = math.asin(t)
    return azimuth, altitude


def planar_coordinates(view: ViewState, azimuth: float, altitude: float) -> Tuple[float, float]:
    fov_rad = math.radians(view.fov)
    rotation = normalize_angle(math.radians(view.rotation))
    radius = 1.0 - 2.0 * altitude / math.pi
    angle = azimuth - HALF_PI + rotation
    x = radius * math.cos(angle) * math.pi / fov_rad
    y = -radius * math.sin(angle) * math.pi / fov_rad
    return x, y


def project(view: ViewState, ra_deg: float, dec_deg: float) -> Tuple[int, int]:
    """Map equatorial coordinates (degrees) to a pixel position on the view's display.

    The mapping is azimuthal around the view center with angular distance
    proportional to radius, so it is not conformal; the antipode lands on the
    outermost ring instead of failing.
    """
    azimuth, altitude = horizontal_coordinates(view, ra_deg, dec_deg)
    x, y = planar_coordinates(view, azimuth, altitude)
    scale = pixel_scale(view)
    px = view.display_width / 2.0 + x * scale
    py = view.display_height / 2.0 + y * scale
    return int(round(px)), int(round(py))


def project_array(
    view: ViewState,
    ra_deg: np.ndarray,
    dec_deg: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorized :func:`project` returning float pixel coordinates."""
    ra = np.deg2rad(np.asarray(ra_deg, dtype=np.float64))
    dec = np.deg2rad(np.asarray(dec_deg, dtype=np.float64))
    ra0 = math.radians(view.center_ra)
    dec0 = math.radians(view.center_dec)
    fov_rad = math.radians(view.fov)
    rotation = normalize_angle(math.radians(view.rotation))
    hour = ra0 - ra

    p1 = np.sin(hour)
    p2 = np.cos(hour) * math.sin(dec0) - np.tan(dec) * math.cos(dec0)
    origin = (p1 == 0.0) & (p2 == 0.0)
    azimuth = np.where(origin, 0.0, np.arctan2(p1, p2))

    t = np.cos(dec0 - dec) - math.cos(dec0) * np.cos(dec) * (1.0 - np.cos(hour))
    altitude = np.arcsin(np.clip(t, -1.0, 1.0))

    radius = 1.0 - 2.0 * altitude / math.pi
    angle = azimuth - HALF_PI + rotation
    scale = pixel_scale(view)
    x = radius * np.cos(angle) * math.pi / fov_rad
    y = -radius * np.sin(angle) * math.pi / fov_rad
    return view.display_width / 2.0 + x * scale, view.display_height / 2.0 + y * scale


def on_screen(view: ViewState, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Mask of positions that fall inside the display rectangle."""
    return (x >= 0) & (x < view.display_width) & (y >= 0) & (y < view.display_height)
