"""
Physics validation for LHE events.

Provides checks for:
- Mother references
- Valid PDG particle IDs
- Energy positivity
- Mass consistency
- Momentum conservation

The parser accepts any integer in the mother columns; whether those
references make sense is decided here. Events and particles are
numbered from 1, the way they are counted in the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from . import pdg as pdg_module
from .models import Event, LheFile

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """A single validation issue found in an event."""

    level: str  # "error", "warning", "info"
    event_number: int
    particle_index: Optional[int]  # 1-based; None for event-level issues
    message: str

    def __str__(self) -> str:
        loc = f"event {self.event_number}"
        if self.particle_index is not None:
            loc += f", particle {self.particle_index}"
        return f"[{self.level.upper()}] {loc}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "event_number": self.event_number,
            "particle_index": self.particle_index,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    """Summary of all validation issues."""

    issues: list[ValidationIssue] = field(default_factory=list)
    n_events: int = 0

    @property
    def n_errors(self) -> int:
        return sum(1 for i in self.issues if i.level == "error")

    @property
    def n_warnings(self) -> int:
        return sum(1 for i in self.issues if i.level == "warning")

    @property
    def is_valid(self) -> bool:
        return self.n_errors == 0

    def __str__(self) -> str:
        lines = [
            f"Validation of {self.n_events} events: {self.n_errors} errors, "
            f"{self.n_warnings} warnings, {len(self.issues)} total issues"
        ]
        for issue in self.issues[:50]:
            lines.append(f"  {issue}")
        if len(self.issues) > 50:
            lines.append(f"  ... and {len(self.issues) - 50} more")
        return "\n".join(lines)

    def summary(self) -> str:
        """One-line summary."""
        return (
            f"{self.n_errors} errors, {self.n_warnings} warnings "
            f"across {self.n_events} events"
        )

    def to_dict(self) -> dict:
        return {
            "n_events": self.n_events,
            "n_errors": self.n_errors,
            "n_warnings": self.n_warnings,
            "n_issues": len(self.issues),
            "is_valid": self.is_valid,
            "issues": [i.to_dict() for i in self.issues],
        }


def _check_mothers(event: Event, evt: int) -> list[ValidationIssue]:
    issues = []
    n = event.n_particles
    for pos, p in enumerate(event.particles, start=1):
        for m in p.mothers:
            if not 1 <= m <= n:
                issues.append(ValidationIssue(
                    "error", evt, pos,
                    f"Mother index {m} outside 1..{n}"
                ))
            elif m == pos:
                issues.append(ValidationIssue(
                    "error", evt, pos, "Particle is its own mother"
                ))
            elif m > pos:
                issues.append(ValidationIssue(
                    "warning", evt, pos,
                    f"Mother index {m} refers to a later particle"
                ))
    return issues


def validate_event(
    event: Event,
    *,
    event_number: int = 1,
    check_mothers: bool = True,
    check_momentum: bool = True,
    check_pdg: bool = True,
    check_energy: bool = True,
    check_mass: bool = True,
    momentum_tolerance: float = 1e-4,
    mass_tolerance: float = 1e-2,
) -> list[ValidationIssue]:
    """Validate a single event.

    Args:
        event: The event to validate.
        event_number: 1-based position of the event, used in messages.
        check_mothers: Check that mother indices point into the event.
        check_momentum: Check 4-momentum conservation.
        check_pdg: Check PDG ID validity.
        check_energy: Check energy positivity.
        check_mass: Check mass consistency.
        momentum_tolerance: Relative tolerance for momentum conservation.
        mass_tolerance: Relative tolerance for mass check.

    Returns:
        List of validation issues found.
    """
    issues: list[ValidationIssue] = []
    evt = event_number

    if not event.particles:
        issues.append(ValidationIssue("warning", evt, None, "Event has no particles"))
        return issues

    if check_mothers:
        issues.extend(_check_mothers(event, evt))

    if check_pdg:
        for pos, p in enumerate(event.particles, start=1):
            if not pdg_module.is_valid_pdg_id(p.pdg_id):
                issues.append(ValidationIssue(
                    "warning", evt, pos,
                    f"Unknown/invalid PDG ID: {p.pdg_id}"
                ))

    if check_energy:
        for pos, p in enumerate(event.particles, start=1):
            if p.energy < 0:
                issues.append(ValidationIssue(
                    "error", evt, pos,
                    f"Negative energy: {p.energy:.6e} GeV"
                ))

    if check_mass:
        for pos, p in enumerate(event.particles, start=1):
            if abs(p.mass) < 1e-3:
                continue
            computed = p.computed_mass
            rel_diff = abs(computed - p.mass) / abs(p.mass)
            if rel_diff > mass_tolerance:
                issues.append(ValidationIssue(
                    "warning", evt, pos,
                    f"Mass inconsistency: stored={p.mass:.6e}, "
                    f"computed={computed:.6e}, rel_diff={rel_diff:.4e}"
                ))

    if check_momentum:
        incoming = event.incoming_particles
        outgoing = event.outgoing_particles

        if incoming and outgoing:
            sum_in = [sum(c) for c in zip(*(p.momentum for p in incoming))]
            sum_out = [sum(c) for c in zip(*(p.momentum for p in outgoing))]

            total_energy = max(abs(sum_in[3]), abs(sum_out[3]), 1e-10)
            labels = ["px", "py", "pz", "E"]

            for j in range(4):
                diff = abs(sum_in[j] - sum_out[j])
                if diff / total_energy > momentum_tolerance:
                    issues.append(ValidationIssue(
                        "error", evt, None,
                        f"Momentum non-conservation in {labels[j]}: "
                        f"in={sum_in[j]:.6e}, out={sum_out[j]:.6e}, "
                        f"diff={diff:.6e} ({diff/total_energy:.4e} relative)"
                    ))

    return issues


def validate(
    lhe_file: LheFile,
    *,
    max_events: int = -1,
    **checks,
) -> ValidationReport:
    """Validate an entire file.

    Args:
        lhe_file: The parsed file to validate.
        max_events: Maximum number of events to check (-1 for all).
        **checks: Forwarded to ``validate_event``.

    Returns:
        A ValidationReport summarizing all issues found.
    """
    report = ValidationReport()
    for _ in validate_stream(lhe_file.events, report=report, max_events=max_events, **checks):
        pass
    return report


def validate_stream(
    events: Iterable[Event],
    *,
    report: Optional[ValidationReport] = None,
    max_events: int = -1,
    strict: bool = False,
    **checks,
) -> Iterator[Event]:
    """Validate events in a streaming pipeline.

    Events are yielded unchanged. Issues are appended to ``report`` when
    one is given. With ``strict=True`` the first error raises
    ``ValueError`` instead.
    """
    for i, event in enumerate(events, start=1):
        if max_events >= 0 and i > max_events:
            break
        issues = validate_event(event, event_number=i, **checks)
        errors = [iss for iss in issues if iss.level == "error"]
        if errors and strict:
            raise ValueError(str(errors[0]))
        for iss in issues:
            logger.debug("%s", iss)
        if report is not None:
            report.n_events += 1
            report.issues.extend(issues)
        yield event
