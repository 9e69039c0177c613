from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest

from deepskies import catalog as C
from deepskies.catalog import (
    AccessError,
    FormatError,
    MisalignedError,
    SeekFailedError,
    ShortReadError,
    StarCatalog,
    StarRecord,
)

from conftest import BRIGHT_STARS, HEADER_TEXT, blank_header, record_line


def test_validate_counts_stars_after_header():
    store = io.BytesIO(b"x" * (61 * 7))
    assert C.validate(store) == 2


def test_validate_rejects_misaligned_store():
    store = io.BytesIO(b"x" * (61 * 7 + 1))
    with pytest.raises(FormatError) as excinfo:
        C.validate(store)
    assert isinstance(excinfo.value, MisalignedError)
    assert excinfo.value.length == 61 * 7 + 1


def test_validate_header_only_store_has_no_stars():
    assert C.validate(io.BytesIO(b"")) == 0
    assert C.validate(io.BytesIO(b"y" * 61 * 3)) == 0


def test_read_trims_padded_label():
    store = io.BytesIO(blank_header() + record_line("Polaris          ", "37.954561", "89.264109", "1.97", "F7"))
    assert C.validate(store) == 1
    star = C.read(store, 1)
    assert star.label == "Polaris"
    assert star.ra == pytest.approx(37.954561)
    assert star.dec == pytest.approx(89.264109)
    assert star.magnitude == pytest.approx(1.97)
    assert star.spectral_class == "F7"


def test_read_uses_fixed_offsets():
    store = io.BytesIO(
        blank_header()
        + record_line("First", "10.0", "-5.5", "4.20", "B3", "12.50", "-7")
        + record_line("Second", "20.0", "15.25", "5.10", "K0", "-3.25", "99")
    )
    second = C.read(store, 2)
    assert second == StarRecord("Second", 20.0, 15.25, 5.1, "K0", -3.25, 99.0)
    first = C.read(store, 1)
    assert first.pm_ra == pytest.approx(12.5)
    assert first.pm_dec == pytest.approx(-7.0)


def test_label_keeps_leading_and_interior_spaces():
    store = io.BytesIO(blank_header() + record_line("  Alpha Cen  ", "219.9", "-60.8", "0.01"))
    assert C.read(store, 1).label == "  Alpha Cen"


def test_label_is_limited_to_sixteen_characters():
    store = io.BytesIO(blank_header() + record_line("ABCDEFGHIJKLMNOPQ", "1.0", "2.0", "3.00"))
    assert C.read(store, 1).label == "ABCDEFGHIJKLMNOP"


def test_malformed_numbers_read_as_zero():
    store = io.BytesIO(blank_header() + record_line("Broken", "n/a", "??", "bad", "A0", "xx", "--"))
    star = C.read(store, 1)
    assert star.ra == 0.0
    assert star.dec == 0.0
    assert star.magnitude == 0.0
    assert star.pm_ra == 0.0
    assert star.pm_dec == 0.0


def test_numbers_with_trailing_junk_keep_leading_value():
    assert C.parse_number("  12.5abc") == pytest.approx(12.5)
    assert C.parse_number("-3e2x") == pytest.approx(-300.0)
    assert C.parse_number(".75") == pytest.approx(0.75)
    assert C.parse_number("") == 0.0


def test_read_past_end_is_short_read():
    store = io.BytesIO(blank_header() + record_line("Only", "1.0", "1.0", "1.00"))
    with pytest.raises(ShortReadError):
        C.read(store, 2)


def test_read_truncated_record_is_short_read():
    raw = blank_header() + record_line("Cut", "1.0", "1.0", "1.00")
    store = io.BytesIO(raw[:-10])
    with pytest.raises(ShortReadError) as excinfo:
        C.read(store, 1)
    assert excinfo.value.index == 1


def test_read_rejects_header_indices():
    store = io.BytesIO(blank_header() + record_line("Only", "1.0", "1.0", "1.00"))
    with pytest.raises(SeekFailedError):
        C.read(store, 0)


def test_seek_failure_is_access_error():
    class BrokenStore(io.BytesIO):
        def seek(self, *args, **kwargs):
            raise OSError("device gone")

    with pytest.raises(AccessError) as excinfo:
        C.read(BrokenStore(b""), 1)
    assert isinstance(excinfo.value, SeekFailedError)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_format_record_layout():
    raw = C.format_record(BRIGHT_STARS[0])
    assert len(raw) == C.RECORD_LENGTH
    assert raw.endswith(b"\r\n")
    assert raw[:17] == b"Polaris          "
    star = C.parse_record(raw.decode("latin-1").rstrip("\r\n"))
    assert star.label == "Polaris"
    assert star.pm_dec == pytest.approx(-12.0)


def test_format_record_rejects_values_that_do_not_fit():
    with pytest.raises(ValueError):
        C.format_record(StarRecord("Wide", 1.0, 1.0, 1.0, "A0", 0.0, 12345.0))


def test_star_catalog_reads_written_store(bright_catalog: Path):
    with StarCatalog(bright_catalog) as cat:
        assert len(cat) == len(BRIGHT_STARS)
        assert cat.header_lines() == list(HEADER_TEXT)
        vega = cat.read(2)
        assert vega.label == "Vega"
        assert vega.ra == pytest.approx(279.234735)
        assert vega.spectral_class == "A0"
    assert cat.closed


def test_star_catalog_closes_on_format_error(tmp_path: Path):
    path = tmp_path / "BAD.DAT"
    path.write_bytes(b"z" * 100)
    with pytest.raises(MisalignedError):
        StarCatalog(path)


def test_star_catalog_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        StarCatalog(tmp_path / "missing.dat")


def test_read_after_close_fails(bright_catalog: Path):
    cat = StarCatalog(bright_catalog)
    cat.close()
    with pytest.raises(ValueError):
        cat.read(1)


def test_to_array_filters_by_magnitude(bright_catalog: Path):
    with StarCatalog(bright_catalog) as cat:
        everything = cat.to_array()
        bright = cat.to_array(mag_limit=2.0)
    assert everything.dtype == C.STAR_DTYPE
    assert everything.size == len(BRIGHT_STARS)
    np.testing.assert_array_equal(bright["index"], [1, 2, 3])
    assert np.all(bright["mag"] <= 2.0)


def test_iter_records_reports_unreadable_indices(tmp_path: Path):
    path = tmp_path / "SHORT.DAT"
    C.write_catalog(path, BRIGHT_STARS[:2])
    with StarCatalog(path) as cat:
        cat.star_count = 3  # pretend the store claims one more record than it holds
        records = list(cat.iter_records())
    assert [index for index, _ in records] == [1, 2, 3]
    assert records[2][1] is None


def test_overflowing_numbers_read_as_zero():
    assert C.parse_number("1e999") == 0.0
    assert C.parse_number("-1e999") == 0.0
    store = io.BytesIO(blank_header() + record_line("Huge", "1e999", "-1e999", "1e99999"))
    star = C.read(store, 1)
    assert (star.ra, star.dec, star.magnitude) == (0.0, 0.0, 0.0)


def test_header_lines_stop_at_end_of_short_store(tmp_path: Path):
    path = tmp_path / "TINY.DAT"
    path.write_bytes(C.format_header("first") + C.format_header("second"))
    with StarCatalog(path) as cat:
        assert len(cat) == 0
        assert cat.header_lines() == ["first", "second"]


def test_header_read_failure_names_header_record(bright_catalog: Path, caplog):
    class BrokenStore(io.BytesIO):
        def seek(self, *args, **kwargs):
            raise OSError("device gone")

    with StarCatalog(bright_catalog) as cat:
        real_handle = cat._handle
        cat._handle = BrokenStore(b"")
        try:
            with caplog.at_level("WARNING", logger="deepskies.catalog"):
                assert cat.header_lines() == []
        finally:
            cat._handle = real_handle
    warnings = [r.getMessage() for r in caplog.records if r.levelname == "WARNING"]
    assert warnings == ["header record 1 of STARS.DAT unreadable: device gone"]


def test_star_catalog_directory_is_os_error(tmp_path: Path):
    with pytest.raises(OSError):
        StarCatalog(tmp_path)
