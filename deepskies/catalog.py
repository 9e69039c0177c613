"""Random access to the DeepSkies fixed-width ``STARS.DAT`` star store."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional, Sequence, Tuple
import logging
import math
import os
import re

import numpy as np

logger = logging.getLogger(__name__)

RECORD_LENGTH = 61
HEADER_RECORDS = 5
LABEL_WIDTH = 16
DATA_WIDTH = RECORD_LENGTH - 2  # CRLF terminated

# (start, stop) byte slices, 0-based, stop exclusive
LABEL_SLICE = (0, 16)
RA_SLICE = (17, 28)
DEC_SLICE = (28, 40)
MAG_SLICE = (40, 45)
CLASS_SLICE = (45, 47)
PM_RA_SLICE = (47, 56)
PM_DEC_SLICE = (56, 65)

STAR_DTYPE = np.dtype(
    [
        ("index", "<i8"),
        ("ra_deg", "<f8"),
        ("dec_deg", "<f8"),
        ("mag", "<f4"),
        ("pm_ra", "<f4"),
        ("pm_dec", "<f4"),
    ]
)

_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class CatalogError(Exception):
    """Base class for star store failures."""


class FormatError(CatalogError):
    """The store is structurally invalid and cannot be used at all."""


class MisalignedError(FormatError):
    def __init__(self, length: int, record_length: int = RECORD_LENGTH) -> None:
        super().__init__(
            f"store length {length} is not a multiple of the {record_length}-byte record length"
        )
        self.length = length
        self.record_length = record_length


class AccessError(CatalogError):
    """A single record could not be read; other records may still be fine."""

    def __init__(self, index: int, message: str) -> None:
        super().__init__(f"star {index}: {message}")
        self.index = index


class SeekFailedError(AccessError):
    pass


class ShortReadError(AccessError):
    pass


@dataclass(frozen=True)
class StarRecord:
    label: str
    ra: float
    dec: float
    magnitude: float
    spectral_class: str
    pm_ra: float
    pm_dec: float


def parse_number(text: str) -> float:
    """Return the leading decimal number of *text*, or 0.0 when there is none.

    This is the catalog's tolerant policy for numeric sub-fields: trailing junk
    after a number is ignored and an unparseable field reads as zero instead of
    raising. A number that overflows to infinity is unparseable too. Callers
    rely on it; do not tighten it here.
    """
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return 0.0
    value = float(match.group(1))
    return value if math.isfinite(value) else 0.0


def rtrim(text: str) -> str:
    """Strip trailing space characters only."""
    return text.rstrip(" ")


def _field(line: str, bounds: Tuple[int, int]) -> str:
    start, stop = bounds
    return line[start:stop]


def parse_record(line: str) -> StarRecord:
    """Decode one catalog line using the fixed byte layout."""
    return StarRecord(
        label=rtrim(_field(line, LABEL_SLICE)),
        ra=parse_number(_field(line, RA_SLICE)),
        dec=parse_number(_field(line, DEC_SLICE)),
        magnitude=parse_number(_field(line, MAG_SLICE)),
        spectral_class=_field(line, CLASS_SLICE).strip(),
        pm_ra=parse_number(_field(line, PM_RA_SLICE)),
        pm_dec=parse_number(_field(line, PM_DEC_SLICE)),
    )


def _decode_line(raw: bytes) -> str:
    text = raw.decode("latin-1")
    # a record is one text line; anything after an embedded newline is not part of it
    newline = text.find("\n")
    if newline >= 0:
        text = text[:newline]
    return text.rstrip("\r")


def validate(store: BinaryIO) -> int:
    """Check the store layout and return the number of addressable stars."""
    try:
        length = store.seek(0, os.SEEK_END)
    except OSError as exc:
        raise FormatError(f"unable to size star store: {exc}") from exc
    if length % RECORD_LENGTH != 0:
        raise MisalignedError(length)
    # a store holding only (part of) the header has no stars rather than a negative count
    return max(0, length // RECORD_LENGTH - HEADER_RECORDS)


def _read_raw(store: BinaryIO, record_number: int) -> bytes:
    """Return up to one record of bytes; *record_number* 0 is the first header record.

    Seek and read failures propagate as ``OSError`` (or ``ValueError`` on a
    closed handle). A record cut short by the end of the store comes back short.
    """
    store.seek(record_number * RECORD_LENGTH, os.SEEK_SET)
    return store.read(RECORD_LENGTH) or b""


def read(store: BinaryIO, index: int) -> StarRecord:
    """Read star *index* (1-based, header records excluded)."""
    if index < 1:
        raise SeekFailedError(index, "star indices start at 1")
    offset = (index + HEADER_RECORDS - 1) * RECORD_LENGTH
    try:
        raw = _read_raw(store, index + HEADER_RECORDS - 1)
    except (OSError, ValueError) as exc:
        raise SeekFailedError(index, f"seek to {offset} failed: {exc}") from exc
    if len(raw) < RECORD_LENGTH:
        raise ShortReadError(index, f"expected {RECORD_LENGTH} bytes at offset {offset}, got {len(raw)}")
    return parse_record(_decode_line(raw))


def _fit_number(value: float, width: int, decimals: int) -> str:
    for places in range(decimals, -1, -1):
        text = f"{value:>{width}.{places}f}"
        if len(text) <= width:
            return text
    raise ValueError(f"{value!r} does not fit in {width} characters")


def format_record(star: StarRecord) -> bytes:
    """Encode *star* into one 61-byte CRLF-terminated record.

    The proper motion in declination only keeps the three characters that fit
    before the line terminator, which is all a reader ever sees of it.
    """
    pm_dec_width = DATA_WIDTH - PM_DEC_SLICE[0]
    line = (
        f"{star.label[:LABEL_WIDTH]:<17}"
        + _fit_number(star.ra, RA_SLICE[1] - RA_SLICE[0], 6)
        + _fit_number(star.dec, DEC_SLICE[1] - DEC_SLICE[0], 6)
        + _fit_number(star.magnitude, MAG_SLICE[1] - MAG_SLICE[0], 2)
        + f"{star.spectral_class[:2]:<2}"
        + _fit_number(star.pm_ra, PM_RA_SLICE[1] - PM_RA_SLICE[0], 2)
        + _fit_number(star.pm_dec, pm_dec_width, 0)
    )
    if len(line) != DATA_WIDTH:
        raise ValueError(f"star {star.label!r} does not fit the record layout ({len(line)} chars)")
    return line.encode("latin-1") + b"\r\n"


def format_header(text: str) -> bytes:
    return f"{text[:DATA_WIDTH]:<{DATA_WIDTH}}".encode("latin-1") + b"\r\n"


def write_catalog(
    path: Path | str,
    stars: Iterable[StarRecord],
    header: Optional[Sequence[str]] = None,
) -> Path:
    """Write a store with the reserved header records followed by *stars*."""
    header_lines = list(header or ())
    if len(header_lines) > HEADER_RECORDS:
        raise ValueError(f"at most {HEADER_RECORDS} header lines are supported")
    header_lines.extend([""] * (HEADER_RECORDS - len(header_lines)))
    target = Path(path)
    count = 0
    with target.open("wb") as handle:
        for text in header_lines:
            handle.write(format_header(text))
        for star in stars:
            handle.write(format_record(star))
            count += 1
    logger.info("wrote %d star(s) to %s", count, target)
    return target


class StarCatalog:
    """An open star store. Use as a context manager so the file is always closed."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._handle: Optional[BinaryIO] = self.path.open("rb")
        try:
            self.star_count = validate(self._handle)
        except FormatError:
            self.close()
            raise
        logger.info("catalog %s: %d star(s)", self.path.name, self.star_count)

    def __enter__(self) -> "StarCatalog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        return self.star_count

    @property
    def closed(self) -> bool:
        return self._handle is None

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _store(self) -> BinaryIO:
        if self._handle is None:
            raise ValueError(f"catalog {self.path} is closed")
        return self._handle

    def read(self, index: int) -> StarRecord:
        return read(self._store(), index)

    def header_lines(self) -> List[str]:
        """Text of the reserved header records, stopping at the first one that is missing."""
        lines: List[str] = []
        store = self._store()
        for record_number in range(HEADER_RECORDS):
            try:
                raw = _read_raw(store, record_number)
            except OSError as exc:
                logger.warning("header record %d of %s unreadable: %s", record_number + 1, self.path.name, exc)
                break
            if len(raw) < RECORD_LENGTH:
                break
            lines.append(_decode_line(raw).rstrip())
        return lines

    def iter_records(self) -> Iterator[Tuple[int, Optional[StarRecord]]]:
        """Yield ``(index, record)`` pairs; ``record`` is None when the read failed."""
        for index in range(1, self.star_count + 1):
            try:
                yield index, self.read(index)
            except AccessError as exc:
                logger.debug("skip %s", exc)
                yield index, None

    def to_array(self, mag_limit: Optional[float] = None) -> np.ndarray:
        rows = []
        for index, star in self.iter_records():
            if star is None:
                continue
            if mag_limit is not None and star.magnitude > mag_limit:
                continue
            rows.append((index, star.ra, star.dec, star.magnitude, star.pm_ra, star.pm_dec))
        if not rows:
            return np.empty(0, dtype=STAR_DTYPE)
        return np.array(rows, dtype=STAR_DTYPE)

