from __future__ import annotations

from dataclasses import dataclass, replace as _dc_replace
import math

DEFAULT_CENTER_RA = 300.0
DEFAULT_CENTER_DEC = 40.0
DEFAULT_FOV_DEG = 60.0
DEFAULT_LIMITING_MAGNITUDE = 6.5
DEFAULT_ROTATION_DEG = 0.0
DEFAULT_DISPLAY_WIDTH = 800
DEFAULT_DISPLAY_HEIGHT = 600


@dataclass(frozen=True)
class ViewState:
    """Where the chart looks and how deep it goes.

    Values are checked on construction so the projector can divide by the
    field of view and index by the display size without further guards.
    """

    center_ra: float = DEFAULT_CENTER_RA
    center_dec: float = DEFAULT_CENTER_DEC
    fov: float = DEFAULT_FOV_DEG
    rotation: float = DEFAULT_ROTATION_DEG
    limiting_magnitude: float = DEFAULT_LIMITING_MAGNITUDE
    display_width: int = DEFAULT_DISPLAY_WIDTH
    display_height: int = DEFAULT_DISPLAY_HEIGHT

    def __post_init__(self) -> None:
        for name in ("center_ra", "center_dec", "fov", "rotation", "limiting_magnitude"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if not 0.0 <= self.center_ra < 360.0:
            raise ValueError(f"center_ra {self.center_ra} outside [0, 360)")
        if not -90.0 <= self.center_dec <= 90.0:
            raise ValueError(f"center_dec {self.center_dec} outside [-90, 90]")
        if self.fov <= 0.0:
            raise ValueError(f"fov must be > 0 (got {self.fov})")
        if int(self.display_width) < 1 or int(self.display_height) < 1:
            raise ValueError(
                f"display size must be positive (got {self.display_width}x{self.display_height})"
            )

    def replace(self, **changes) -> "ViewState":
        return _dc_replace(self, **changes)

    def with_display(self, width: int, height: int) -> "ViewState":
        """Return a copy sized for the surface about to be painted."""
        return self.replace(display_width=int(width), display_height=int(height))

    def pan(self, d_ra: float = 0.0, d_dec: float = 0.0) -> "ViewState":
        """Move the center, wrapping RA into [0, 360) and clamping Dec to the poles."""
        ra = (self.center_ra + d_ra) % 360.0
        if ra >= 360.0:
            ra = 0.0
        dec = min(90.0, max(-90.0, self.center_dec + d_dec))
        return self.replace(center_ra=ra, center_dec=dec)

    @property
    def label_magnitude(self) -> float:
        """Stars brighter than this get a text label."""
        return self.limiting_magnitude - 3.0
