"""Render one DeepSkies star chart frame to an image file.

Example:
    deepskies --catalog STARS.DAT --ra 20h00m --dec 40d --fov 60 --mag 6.5 --output chart.png
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from astropy import units as u
from astropy.coordinates import Angle

from .catalog import FormatError, StarCatalog
from .render import FrameStats, render_frame
from .settings_store import load_persistent_settings, parse_color
from .surface import RasterSurface
from .view import ViewState

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CATALOG_ERROR = 2


LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"

# handlers installed by _configure_logging, replaced on every call
_log_handlers: List[logging.Handler] = []


def _remove_log_handlers() -> None:
    root = logging.getLogger()
    while _log_handlers:
        handler = _log_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def _configure_logging(level_name: Optional[str], log_file: Optional[str] = None) -> None:
    """Send log records to stderr and, when *log_file* is set, append them to that file.

    Each call replaces the handlers of the previous one, so the level and the
    log file always follow the latest settings.
    """
    _remove_log_handlers()
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level_name or "").upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    failure: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError as exc:
            failure = exc
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
        _log_handlers.append(handler)
    if failure is not None:
        logger.warning("unable to open log file %s: %s", log_file, failure)


def parse_angle_deg(text: str, *, wrap: bool = False) -> float:
    """Accept plain degrees (``"300"``) or sexagesimal strings (``"20h00m"``, ``"40d30m"``)."""
    try:
        value = float(text)
    except ValueError:
        try:
            angle = Angle(text)
        except (ValueError, u.UnitsError) as exc:
            raise argparse.ArgumentTypeError(f"invalid angle {text!r}: {exc}") from exc
        if wrap:
            angle = angle.wrap_at(360 * u.deg)
        return float(angle.degree)
    if wrap:
        value %= 360.0
    return value


def _ra_arg(text: str) -> float:
    return parse_angle_deg(text, wrap=True)


def _dec_arg(text: str) -> float:
    return parse_angle_deg(text)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--catalog", type=Path, help="star store (default from settings, STARS.DAT)")
    parser.add_argument("--ra", type=_ra_arg, default=None, help="center right ascension (deg or 20h00m)")
    parser.add_argument("--dec", type=_dec_arg, default=None, help="center declination (deg or 40d00m)")
    parser.add_argument("--fov", type=float, default=None, help="field of view in degrees")
    parser.add_argument("--rotation", type=float, default=None, help="display rotation in degrees")
    parser.add_argument("--mag", type=float, default=None, help="limiting magnitude")
    parser.add_argument("--width", type=int, help="image width in pixels")
    parser.add_argument("--height", type=int, help="image height in pixels")
    parser.add_argument("--output", type=Path, help="output image path")
    parser.add_argument("--settings", type=Path, help="settings JSON file to read")
    parser.add_argument("--log-level", help="logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    parser.add_argument("--log-file", help="also write the log to this file")
    return parser


def build_view(args: argparse.Namespace, width: int, height: int) -> ViewState:
    view = ViewState(display_width=width, display_height=height)
    changes = {
        "center_ra": args.ra,
        "center_dec": args.dec,
        "fov": args.fov,
        "rotation": args.rotation,
        "limiting_magnitude": args.mag,
    }
    return view.replace(**{key: value for key, value in changes.items() if value is not None})


def run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    settings = load_persistent_settings(args.settings)
    _configure_logging(args.log_level or settings.log_level, args.log_file or settings.log_file)
    width = args.width or settings.display_width
    height = args.height or settings.display_height
    try:
        view = build_view(args, width, height)
    except ValueError as exc:
        parser.error(str(exc))
    catalog_path = args.catalog or Path(settings.catalog_path)
    output = args.output or Path(settings.output_path)

    surface = RasterSurface(
        width,
        height,
        foreground=parse_color(settings.foreground),
        background=parse_color(settings.background),
        font_size=settings.label_font_size,
    )
    stats = FrameStats()
    try:
        with StarCatalog(catalog_path) as catalog:
            surface.paint(render_frame(view, catalog, stats=stats))
    except OSError as exc:
        logger.error("Unable to open data file %s: %s", catalog_path, exc)
        return EXIT_CATALOG_ERROR
    except FormatError as exc:
        logger.error("DATA FILE ERROR: %s", exc)
        return EXIT_CATALOG_ERROR
    logger.info(
        "frame: %d glyph(s), %d label(s), %d too faint, %d unreadable (RA %.3f, Dec %.3f, FOV %.1f, mag %.1f)",
        stats.glyphs,
        stats.labels,
        stats.too_faint,
        stats.skipped_reads,
        view.center_ra,
        view.center_dec,
        view.fov,
        view.limiting_magnitude,
    )
    surface.save(output)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.log_level and getattr(logging, args.log_level.upper(), None) is None:
        parser.error(f"invalid log level {args.log_level!r}")
    return run(args, parser)


if __name__ == "__main__":
    raise SystemExit(main())
