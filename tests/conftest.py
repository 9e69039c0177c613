from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from deepskies.catalog import RECORD_LENGTH, StarRecord, write_catalog

HEADER_TEXT = (
    "DeepSkies star catalogue",
    "epoch J2000.0",
    "fields: label ra dec mag class pmra pmdec",
    "",
    "",
)

BRIGHT_STARS = (
    StarRecord("Polaris", 37.954561, 89.264109, 1.97, "F7", 44.48, -12.0),
    StarRecord("Vega", 279.234735, 38.783689, 0.03, "A0", 200.94, 287.0),
    StarRecord("Deneb", 310.357980, 45.280339, 1.25, "A2", 2.01, 2.0),
    StarRecord("Albireo", 292.680351, 27.959681, 3.05, "K3", -7.09, -6.0),
    StarRecord("Faint One", 300.5, 40.5, 9.0, "M1", 0.0, 0.0),
)


def record_line(label: str, ra: str, dec: str, mag: str, cls: str = "  ", pm_ra: str = "", pm_dec: str = "") -> bytes:
    """Build one raw record from already formatted sub-fields."""
    line = f"{label:<17.17}{ra:>11.11}{dec:>12.12}{mag:>5.5}{cls:<2.2}{pm_ra:>9.9}{pm_dec:>3.3}"
    raw = line.encode("latin-1") + b"\r\n"
    assert len(raw) == RECORD_LENGTH
    return raw


def blank_header() -> bytes:
    return (" " * (RECORD_LENGTH - 2) + "\r\n").encode("ascii") * 5


@pytest.fixture
def bright_catalog(tmp_path: Path) -> Path:
    return write_catalog(tmp_path / "STARS.DAT", BRIGHT_STARS, header=HEADER_TEXT)


@pytest.fixture
def two_star_catalog(tmp_path: Path) -> Path:
    stars = (
        StarRecord("Bright", 300.0, 40.0, 2.0, "A0", 0.0, 0.0),
        StarRecord("Dim", 301.0, 41.0, 9.0, "G2", 0.0, 0.0),
    )
    return write_catalog(tmp_path / "TWO.DAT", stars)
