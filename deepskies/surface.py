from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Tuple, Union
import logging

from PIL import Image, ImageDraw, ImageFont

from .render import Circle, Point, Primitive, StarGlyph, Text

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

WHITE: Color = (255, 255, 255)
BLACK: Color = (0, 0, 0)
DEFAULT_FONT_SIZE = 11


def _load_font(size: int):
    try:
        return ImageFont.load_default(size=size)
    except TypeError:  # Pillow < 10.1 has no sized default font
        return ImageFont.load_default()


class RasterSurface:
    """An opaque bitmap that draws star primitives in a single color."""

    def __init__(
        self,
        width: int,
        height: int,
        *,
        foreground: Color = WHITE,
        background: Color = BLACK,
        font_size: int = DEFAULT_FONT_SIZE,
    ) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"surface size must be positive (got {width}x{height})")
        self.width = int(width)
        self.height = int(height)
        self.foreground = tuple(foreground)
        self.background = tuple(background)
        self.image = Image.new("RGB", (self.width, self.height), self.background)
        self._draw = ImageDraw.Draw(self.image)
        self._font = _load_font(font_size)
        self.drawn = 0

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def draw(self, primitive: Primitive) -> None:
        if isinstance(primitive, Point):
            if 0 <= primitive.x < self.width and 0 <= primitive.y < self.height:
                self.image.putpixel((primitive.x, primitive.y), self.foreground)
        elif isinstance(primitive, Circle):
            r = int(primitive.radius)
            box = (primitive.x - r, primitive.y - r, primitive.x + r, primitive.y + r)
            self._draw.ellipse(box, fill=self.foreground, outline=self.foreground)
        elif isinstance(primitive, Text):
            # no background fill behind labels
            self._draw.text((primitive.x, primitive.y), primitive.text, fill=self.foreground, font=self._font)
        else:
            raise TypeError(f"unsupported primitive {primitive!r}")
        self.drawn += 1

    def paint(self, items: Iterable[Union[StarGlyph, Primitive]]) -> int:
        """Draw glyphs or bare primitives in order; return how many glyphs/primitives were consumed."""
        count = 0
        for item in items:
            if isinstance(item, StarGlyph):
                for primitive in item.primitives():
                    self.draw(primitive)
            else:
                self.draw(item)
            count += 1
        return count

    def save(self, path: Path | str, fmt: Optional[str] = None) -> Path:
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        self.image.save(target, format=fmt)
        logger.info("frame saved to %s (%dx%d)", target, self.width, self.height)
        return target
