#!/usr/bin/env python3
"""
Inspection helper for DeepSkies ``STARS.DAT`` star stores.

Example:
    python tools/inspect_catalog.py --catalog ./STARS.DAT --dump-records 5 --ra 300 --dec 40 --fov 60
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Sequence

import numpy as np

from deepskies.catalog import FormatError, StarCatalog
from deepskies.projection import on_screen, project_array
from deepskies.view import ViewState


def _sample_rows(catalog: StarCatalog, stars: np.ndarray, limit: int) -> List[dict]:
    if stars.size == 0 or limit <= 0:
        return []
    if stars.size <= limit:
        positions = range(stars.size)
    else:
        positions = np.linspace(0, stars.size - 1, num=limit, dtype=int)
    samples = []
    for pos in positions:
        index = int(stars["index"][pos])
        record = catalog.read(index)
        samples.append(
            {
                "index": index,
                "label": record.label,
                "ra_deg": record.ra,
                "dec_deg": record.dec,
                "mag": record.magnitude,
                "class": record.spectral_class,
            }
        )
    return samples


def inspect(
    catalog_path: Path,
    dump_records: int,
    json_path: Path | None,
    view: ViewState | None,
) -> dict:
    with StarCatalog(catalog_path) as catalog:
        stars = catalog.to_array()
        info = {
            "file": str(catalog.path),
            "star_count": catalog.star_count,
            "readable": int(stars.size),
            "header": catalog.header_lines(),
            "mag_range": [float(np.min(stars["mag"])), float(np.max(stars["mag"]))] if stars.size else [],
            "sample_stars": _sample_rows(catalog, stars, dump_records),
        }
    logging.info("Loaded %d of %d star(s) from %s", info["readable"], info["star_count"], catalog_path)
    print(f"{Path(info['file']).name}")
    for line in info["header"]:
        if line:
            print(f"  | {line}")
    print(f"  Stars: {info['star_count']:,} ({info['readable']:,} readable)")
    if info["mag_range"]:
        mag_min, mag_max = info["mag_range"]
        print(f"  Magnitude range: {mag_min:.2f} … {mag_max:.2f}")
    if info["sample_stars"]:
        print("  Sample stars:")
        for row in info["sample_stars"]:
            print(
                f"    #{row['index']:<6d} {row['label']:<16} RA {row['ra_deg']:.6f}°  "
                f"DEC {row['dec_deg']:.6f}°  mag {row['mag']:.2f} {row['class']}"
            )
    if view is not None and stars.size:
        visible = stars[stars["mag"] <= view.limiting_magnitude]
        x, y = project_array(view, visible["ra_deg"], visible["dec_deg"])
        mask = on_screen(view, x, y) & np.isfinite(x) & np.isfinite(y)
        info["on_screen"] = int(np.count_nonzero(mask))
        print(
            f"  On screen at RA {view.center_ra:.2f}° DEC {view.center_dec:.2f}° "
            f"FOV {view.fov:.1f}° mag ≤ {view.limiting_magnitude:.1f}: {info['on_screen']:,}"
        )
    if json_path:
        json_path.write_text(json.dumps(info, indent=2))
        print(f"JSON report saved to {json_path}")
    return info


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--catalog", required=True, type=Path, help="path to STARS.DAT")
    parser.add_argument("--dump-records", type=int, default=5, help="number of sample stars to print")
    parser.add_argument("--json", type=Path, help="optional path to write the JSON summary")
    parser.add_argument("--ra", type=float, help="count stars on screen for a view centered here")
    parser.add_argument("--dec", type=float, default=0.0, help="view center declination (with --ra)")
    parser.add_argument("--fov", type=float, default=60.0, help="view field of view (with --ra)")
    parser.add_argument("--mag", type=float, default=6.5, help="limiting magnitude (with --ra)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: INFO",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    log_level = getattr(logging, args.log_level.upper(), None)
    if not isinstance(log_level, int):
        parser.error(f"invalid log level {args.log_level!r}")
    logging.basicConfig(level=log_level, format="%(levelname)s %(message)s")
    view = None
    if args.ra is not None:
        try:
            view = ViewState(center_ra=args.ra % 360.0, center_dec=args.dec, fov=args.fov, limiting_magnitude=args.mag)
        except ValueError as exc:
            parser.error(str(exc))
    try:
        inspect(args.catalog, args.dump_records, args.json, view)
    except OSError as exc:
        logging.error("Unable to open data file %s: %s", args.catalog, exc)
        return 2
    except FormatError as exc:
        logging.error("DATA FILE ERROR: %s", exc)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
