from __future__ import annotations

import logging
from pathlib import Path

import pytest

import lhef
from lhef.errors import UnsupportedFormat
from lhef.helac import HelacFile
from lhef.io import available_formats, get_reader, get_writer
from lhef.io.helac import HelacReader
from lhef.io.lhe import LHEReader


def test_registered_formats() -> None:
    assert available_formats() == ["helac-1loop", "helac-i", "helac-kp", "helac-rs", "lhe"]
    assert isinstance(get_reader("helac-rs"), HelacReader)
    with pytest.raises(ValueError):
        get_reader("hepmc3")
    with pytest.raises(ValueError):
        get_writer("csv")


def test_read_write_generic(tmp_path: Path, wenu_path: Path) -> None:
    f = lhef.read(wenu_path)
    out = tmp_path / "out.lhe"
    assert lhef.write(out, f) == 2
    assert lhef.read(out) == f


def test_read_write_helac(tmp_path: Path, helac_rs_path: Path) -> None:
    f = lhef.read(helac_rs_path, "helac-rs")
    assert isinstance(f, HelacFile)
    out = tmp_path / "out.lhe.gz"
    assert lhef.write(out, f) == 2
    assert lhef.read(out, "helac-rs") == f
    # a HELAC file is still a valid generic file
    assert len(lhef.read(out)) == 2


def test_convert_copies_everything(tmp_path: Path, wenu_path: Path) -> None:
    out = tmp_path / "copy.lhe"
    result = lhef.convert(wenu_path, out)
    assert result["n_events"] == 2
    assert result["n_metadata"] == 3
    assert result["validation"] is None
    assert LHEReader().read(out) == LHEReader().read(wenu_path)


def test_convert_max_events(tmp_path: Path, wenu_path: Path) -> None:
    out = tmp_path / "first.lhe"
    result = lhef.convert(wenu_path, out, max_events=1)
    assert result["n_events"] == 1
    f = LHEReader().read(out)
    assert len(f) == 1
    assert [b.tag for b in f.metadata] == ["!--", "header"]


def test_convert_with_validation(tmp_path: Path, wenu_path: Path) -> None:
    result = lhef.convert(wenu_path, tmp_path / "v.lhe", validate=True)
    assert result["validation"]["is_valid"] is True
    assert result["validation"]["n_events"] == 2


def test_convert_helac_flavor(tmp_path: Path, helac_rs_path: Path, wenu_path: Path) -> None:
    out = tmp_path / "rs.lhe"
    result = lhef.convert(helac_rs_path, out, flavor="helac-rs")
    assert result["flavor"] == "helac-rs"
    assert lhef.read(out, "helac-rs").events == lhef.read(helac_rs_path, "helac-rs").events
    with pytest.raises(UnsupportedFormat):
        lhef.convert(wenu_path, tmp_path / "bad.lhe", flavor="rs")


def test_convert_logs_progress(tmp_path: Path, wenu_path: Path, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="lhef"):
        lhef.convert(wenu_path, tmp_path / "log.lhe")
    assert any("Wrote 2 events" in r.getMessage() for r in caplog.records)


def test_info(wenu_path: Path) -> None:
    s = lhef.info(wenu_path)
    assert s["version"] == "3.0"
    assert s["n_events"] == 2
    assert s["total_particles"] == 10
    assert s["avg_particles_per_event"] == 5.0
    assert s["sum_of_weights"] == 1.25
    assert s["beam_pdg_id"] == (2212, 2212)
    assert s["processes"][0]["cross_section"] == 12.34
    assert s["status_counts"] == {-1: 4, 1: 4, 2: 2}
    assert len(s["top_particles"]) == 5


def test_validate_path_and_objects(wenu_path: Path, helac_rs_path: Path) -> None:
    assert lhef.validate(wenu_path).is_valid
    assert lhef.validate(lhef.read(wenu_path), max_events=1).n_events == 1
    report = lhef.validate(lhef.read(helac_rs_path, "helac-rs"))
    assert report.n_events == 2
    assert report.is_valid


def test_write_generic_file_with_helac_flavor(tmp_path: Path, helac_rs_path: Path, wenu_path: Path) -> None:
    generic = lhef.read(helac_rs_path)
    out = tmp_path / "rs.lhe"
    assert lhef.write(out, generic, "helac-rs") == 2
    assert lhef.read(out, "helac-rs") == lhef.read(helac_rs_path, "helac-rs")
    bad = tmp_path / "wenu.lhe"
    with pytest.raises(UnsupportedFormat):
        lhef.write(bad, lhef.read(wenu_path), "helac-rs")
    assert not bad.exists()


def test_write_helac_file_as_generic(tmp_path: Path, helac_rs_path: Path) -> None:
    f = lhef.read(helac_rs_path, "helac-rs")
    out = tmp_path / "generic.lhe"
    assert lhef.write(out, f, "lhe") == 2
    assert lhef.read(out) == lhef.read(helac_rs_path)


def test_write_helac_file_with_another_flavor(tmp_path: Path, helac_rs_path: Path) -> None:
    f = lhef.read(helac_rs_path, "helac-rs")
    out = tmp_path / "kp.lhe"
    with pytest.raises(UnsupportedFormat):
        lhef.write(out, f, "helac-kp")
    assert not out.exists()
    # mixing flavors record by record is refused as well
    with pytest.raises(UnsupportedFormat):
        get_writer("helac-kp").write(out, f.events, f.run_header)
    assert not out.exists()
