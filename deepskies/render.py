"""Turn a view and a star store into drawing directives."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union
import logging
import threading

from .catalog import AccessError, StarCatalog, StarRecord
from .projection import project
from .view import ViewState

logger = logging.getLogger(__name__)

MIN_SYMBOL_SIZE = 1.0
MAX_SYMBOL_SIZE = 8.0
SIZE_MAGNITUDE_CAP = 15.0
LABEL_MARGIN_MAG = 3.0


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Circle:
    x: int
    y: int
    radius: float


@dataclass(frozen=True)
class Text:
    x: int
    y: int
    text: str


Primitive = Union[Point, Circle, Text]


@dataclass(frozen=True)
class StarGlyph:
    """Everything the surface needs to draw one star."""

    index: int
    x: int
    y: int
    size: float
    label: Optional[str] = None

    @property
    def symbol(self) -> Union[Point, Circle]:
        if self.size == MIN_SYMBOL_SIZE:
            return Point(self.x, self.y)
        return Circle(self.x, self.y, self.size)

    @property
    def label_position(self) -> Tuple[int, int]:
        offset = int(self.size)
        return self.x + offset, self.y - offset

    def primitives(self) -> Tuple[Primitive, ...]:
        if self.label is None:
            return (self.symbol,)
        lx, ly = self.label_position
        return (self.symbol, Text(lx, ly, self.label))


@dataclass
class FrameStats:
    stars_read: int = 0
    skipped_reads: int = 0
    too_faint: int = 0
    glyphs: int = 0
    labels: int = 0
    cancelled: bool = False
    skipped_indices: List[int] = field(default_factory=list)


def symbol_size(magnitude: float, limiting_magnitude: float) -> float:
    """Symbol radius in pixels, always within [1, 8]."""
    reference = limiting_magnitude if limiting_magnitude <= SIZE_MAGNITUDE_CAP else SIZE_MAGNITUDE_CAP
    size = reference - magnitude + 0.5
    if size < MIN_SYMBOL_SIZE:
        return MIN_SYMBOL_SIZE
    if size > MAX_SYMBOL_SIZE:
        return MAX_SYMBOL_SIZE
    return size


def glyph_for_star(view: ViewState, index: int, star: StarRecord) -> Optional[StarGlyph]:
    """Return the glyph for *star*, or None when it is fainter than the view allows."""
    if star.magnitude > view.limiting_magnitude:
        return None
    x, y = project(view, star.ra, star.dec)
    size = symbol_size(star.magnitude, view.limiting_magnitude)
    label = star.label if star.magnitude < view.limiting_magnitude - LABEL_MARGIN_MAG else None
    return StarGlyph(index=index, x=x, y=y, size=size, label=label)


def render_frame(
    view: ViewState,
    catalog: StarCatalog,
    *,
    stats: Optional[FrameStats] = None,
    cancel: Optional[threading.Event] = None,
) -> Iterator[StarGlyph]:
    """Lazily yield one glyph per visible star, in catalog order.

    A record that cannot be read is skipped and counted in *stats*; the frame
    carries on. Setting *cancel* stops the sequence before the next star.
    """
    if stats is None:
        stats = FrameStats()
    for index in range(1, catalog.star_count + 1):
        if cancel is not None and cancel.is_set():
            stats.cancelled = True
            logger.info("frame cancelled at star %d of %d", index, catalog.star_count)
            return
        try:
            star = catalog.read(index)
        except AccessError as exc:
            stats.skipped_reads += 1
            stats.skipped_indices.append(index)
            logger.debug("skip %s", exc)
            continue
        stats.stars_read += 1
        glyph = glyph_for_star(view, index, star)
        if glyph is None:
            stats.too_faint += 1
            continue
        stats.glyphs += 1
        if glyph.label is not None:
            stats.labels += 1
        yield glyph
    if stats.skipped_reads:
        logger.warning("%d star record(s) could not be read from %s", stats.skipped_reads, catalog.path)


def render_file(
    view: ViewState,
    catalog_path: Path | str,
    *,
    stats: Optional[FrameStats] = None,
    cancel: Optional[threading.Event] = None,
) -> Iterator[StarGlyph]:
    """Open, validate, render and close a store in one pass.

    :class:`~deepskies.catalog.FormatError` is raised on the first iteration
    when the store is structurally invalid. The store is closed when the
    generator finishes or is closed early.
    """
    with StarCatalog(catalog_path) as catalog:
        yield from render_frame(view, catalog, stats=stats, cancel=cancel)
