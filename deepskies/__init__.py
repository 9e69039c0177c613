"""
Top-level package for the DeepSkies star chart.

Catalog access, projection and frame rendering are plain Python; drawing to a
bitmap goes through :mod:`deepskies.surface`.
"""

from .catalog import (
    AccessError,
    CatalogError,
    FormatError,
    MisalignedError,
    SeekFailedError,
    ShortReadError,
    StarCatalog,
    StarRecord,
)
from .projection import normalize_angle, project, project_array
from .render import Circle, FrameStats, Point, StarGlyph, Text, render_file, render_frame
from .view import ViewState

__all__ = [
    "AccessError",
    "CatalogError",
    "Circle",
    "FormatError",
    "FrameStats",
    "MisalignedError",
    "Point",
    "SeekFailedError",
    "ShortReadError",
    "StarCatalog",
    "StarGlyph",
    "StarRecord",
    "Text",
    "ViewState",
    "normalize_angle",
    "project",
    "project_array",
    "render_file",
    "render_frame",
]
