from __future__ import annotations

from pathlib import Path

import pytest

from lhef import pdg
from lhef.io.lhe import LHEReader
from lhef.models import Event, Particle
from lhef.validation import ValidationReport, validate, validate_event, validate_stream


def _balanced_event() -> Event:
    return Event(
        particles=[
            Particle(2, -1, 0.0, 0.0, 40.0, 40.0),
            Particle(-1, -1, 0.0, 0.0, -40.0, 40.0),
            Particle(24, 2, 0.0, 0.0, 0.0, 80.0, mass=80.0, mother1=1, mother2=2),
            Particle(-11, 1, 40.0, 0.0, 0.0, 40.0, mother1=3, mother2=3),
            Particle(12, 1, -40.0, 0.0, 0.0, 40.0, mother1=3, mother2=3),
        ]
    )


def test_fixture_is_valid(wenu_path: Path) -> None:
    report = validate(LHEReader().read(wenu_path))
    assert report.n_events == 2
    assert report.is_valid, str(report)
    assert report.n_warnings == 0


def test_dangling_mother_is_an_error() -> None:
    ev = _balanced_event()
    ev.particles[3].mother1 = 9
    issues = validate_event(ev, event_number=4)
    assert [(i.level, i.event_number, i.particle_index) for i in issues] == [("error", 4, 4)]
    assert "outside 1..5" in issues[0].message


def test_forward_and_self_references() -> None:
    ev = _balanced_event()
    ev.particles[2].mother2 = 4
    ev.particles[4].mother1 = 5
    levels = {(i.particle_index, i.level) for i in validate_event(ev, check_momentum=False)}
    assert (3, "warning") in levels
    assert (5, "error") in levels


def test_negative_energy_and_momentum_imbalance() -> None:
    ev = _balanced_event()
    ev.particles[4].energy = -40.0
    issues = validate_event(ev, check_mass=False)
    messages = [i.message for i in issues if i.level == "error"]
    assert any(m.startswith("Negative energy") for m in messages)
    assert any("non-conservation in E" in m for m in messages)


def test_mass_inconsistency_is_a_warning() -> None:
    ev = _balanced_event()
    ev.particles[2].mass = 91.0
    issues = validate_event(ev)
    assert [(i.level, i.particle_index) for i in issues] == [("warning", 3)]


def test_unknown_pdg_id() -> None:
    ev = _balanced_event()
    ev.particles[4].pdg_id = 0
    issues = validate_event(ev, check_momentum=False)
    assert [(i.level, i.particle_index) for i in issues] == [("warning", 5)]


def test_empty_event() -> None:
    issues = validate_event(Event())
    assert len(issues) == 1 and issues[0].particle_index is None


def test_validate_stream_strict() -> None:
    bad = _balanced_event()
    bad.particles[0].mother1 = 7
    stream = validate_stream([_balanced_event(), bad], strict=True)
    assert next(stream).n_particles == 5
    with pytest.raises(ValueError, match="event 2, particle 1"):
        next(stream)


def test_validate_stream_collects_report() -> None:
    bad = _balanced_event()
    bad.particles[0].mother1 = 7
    report = ValidationReport()
    events = list(validate_stream([bad, _balanced_event(), bad], report=report, max_events=2))
    assert len(events) == 2
    assert report.n_events == 2
    assert report.n_errors == 1
    d = report.to_dict()
    assert d["is_valid"] is False
    assert d["issues"][0]["event_number"] == 1
    assert "1 errors" in report.summary()


def test_pdg_helpers() -> None:
    assert pdg.is_valid_pdg_id(11)
    assert not pdg.is_valid_pdg_id(0)
    assert pdg.name(0) == "0"
    assert pdg.mass_gev(24) == pytest.approx(80.4, abs=0.1)
    assert pdg.mass_gev(0) is None
