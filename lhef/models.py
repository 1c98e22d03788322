"""
Core event record model for lhef.

These types mirror the LesHouchesEvents record layout: one run header
(the ``<init>`` block) followed by any number of events, each holding an
ordered list of particles. They carry no parsing logic; see
``lhef.io.lhe`` for the text grammar.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Particle:
    """A single particle line of an event.

    Attributes:
        pdg_id: PDG Monte Carlo particle ID.
        status: Status code. Convention:
            -1  = incoming
             1  = outgoing (final state)
             2  = intermediate (decayed resonance)
            Other codes (-2, 3, -9) are kept as-is.
        px, py, pz, energy: Four-momentum components in GeV.
        mass: Generated mass in GeV, as written in the file.
        mother1, mother2: 1-based positions of the mother particles in
            the same event (0 = no mother). These are plain indices,
            never object references.
        color1, color2: Colour flow tags.
        lifetime: Proper lifetime c*tau in mm.
        spin: Cosine of the angle between the spin vector and the
              3-momentum of the decaying particle (9.0 = unknown).
    """

    pdg_id: int
    status: int
    px: float
    py: float
    pz: float
    energy: float
    mass: float = 0.0
    mother1: int = 0
    mother2: int = 0
    color1: int = 0
    color2: int = 0
    lifetime: float = 0.0
    spin: float = 9.0

    @property
    def momentum(self) -> tuple[float, float, float, float]:
        """Four-momentum as ``(px, py, pz, E)``."""
        return (self.px, self.py, self.pz, self.energy)

    @property
    def mothers(self) -> tuple[int, ...]:
        """Non-zero mother positions."""
        return tuple(m for m in (self.mother1, self.mother2) if m != 0)

    @property
    def pt(self) -> float:
        """Transverse momentum."""
        return math.sqrt(self.px**2 + self.py**2)

    @property
    def eta(self) -> float:
        """Pseudorapidity."""
        p = math.sqrt(self.px**2 + self.py**2 + self.pz**2)
        if p == abs(self.pz):
            return float("inf") if self.pz >= 0 else float("-inf")
        return 0.5 * math.log((p + self.pz) / (p - self.pz))

    @property
    def phi(self) -> float:
        """Azimuthal angle."""
        return math.atan2(self.py, self.px)

    @property
    def rapidity(self) -> float:
        """Rapidity."""
        if self.energy == abs(self.pz):
            return float("inf") if self.pz >= 0 else float("-inf")
        return 0.5 * math.log((self.energy + self.pz) / (self.energy - self.pz))

    @property
    def computed_mass(self) -> float:
        """Mass computed from four-momentum.

        m^2 = E^2 - |p|^2 can drift slightly negative for massless
        particles; small negative values are clamped to zero.
        """
        m2 = self.energy**2 - self.px**2 - self.py**2 - self.pz**2
        if m2 < 0 and abs(m2) < 1e-8:
            m2 = 0.0
        return math.sqrt(m2) if m2 >= 0 else -math.sqrt(-m2)

    @property
    def is_incoming(self) -> bool:
        return self.status == -1

    @property
    def is_outgoing(self) -> bool:
        return self.status == 1

    @property
    def is_intermediate(self) -> bool:
        return self.status == 2


@dataclass
class ProcessInfo:
    """One process line of the init block.

    Attributes:
        cross_section: Cross section in pb (XSECUP).
        cross_section_error: Statistical error on the cross section (XERRUP).
        max_weight: Maximum event weight (XMAXUP).
        process_id: Process identifier (LPRUP).
    """

    cross_section: float = 0.0
    cross_section_error: float = 0.0
    max_weight: float = 0.0
    process_id: int = 0


@dataclass
class RunHeader:
    """Run-level information from the ``<init>`` block.

    Attributes:
        beam_pdg_id: (beam1, beam2) PDG IDs (IDBMUP).
        beam_energy: (beam1, beam2) energies in GeV (EBMUP).
        pdf_group: (beam1, beam2) PDF author group IDs (PDFGUP).
        pdf_set: (beam1, beam2) PDF set IDs (PDFSUP).
        weighting_strategy: Event weighting strategy (IDWTUP).
        processes: One entry per declared process (NPRUP lines).
        extra: Lines following the process lines inside ``<init>``,
            kept verbatim without their line terminator.
    """

    beam_pdg_id: tuple[int, int] = (0, 0)
    beam_energy: tuple[float, float] = (0.0, 0.0)
    pdf_group: tuple[int, int] = (0, 0)
    pdf_set: tuple[int, int] = (0, 0)
    weighting_strategy: int = 0
    processes: list[ProcessInfo] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)

    @property
    def n_processes(self) -> int:
        """Declared number of processes (NPRUP)."""
        return len(self.processes)


@dataclass
class Event:
    """A single event block.

    Attributes:
        process_id: Process identifier (IDPRUP).
        weight: Event weight (XWGTUP).
        scale: Scale of the event in GeV (SCALUP).
        alpha_qed: QED coupling at the event scale (AQEDUP).
        alpha_qcd: QCD coupling at the event scale (AQCDUP).
        particles: Particle lines in file order. Position ``i`` on the
            wire is ``particles[i - 1]``.
        extra: Lines following the particle lines inside ``<event>``,
            kept verbatim without their line terminator.
        attributes: Raw attribute text of the ``<event ...>`` open tag.
    """

    process_id: int = 0
    weight: float = 1.0
    scale: float = 0.0
    alpha_qed: float = 0.0
    alpha_qcd: float = 0.0
    particles: list[Particle] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)
    attributes: str = ""

    @property
    def n_particles(self) -> int:
        """Particle count (NUP)."""
        return len(self.particles)

    def particle(self, position: int) -> Particle:
        """Return the particle at a 1-based wire position."""
        if not 1 <= position <= len(self.particles):
            raise IndexError(
                f"particle position {position} outside 1..{len(self.particles)}"
            )
        return self.particles[position - 1]

    def mothers(self, position: int) -> list[Particle]:
        """Resolve the mothers of the particle at ``position``.

        Mother index 0 means "no mother" and is never resolved.
        """
        return [self.particle(m) for m in self.particle(position).mothers]

    def daughters(self, position: int) -> list[Particle]:
        """Particles that name ``position`` as one of their mothers."""
        self.particle(position)
        return [p for p in self.particles if position in p.mothers]

    @property
    def incoming_particles(self) -> list[Particle]:
        return [p for p in self.particles if p.is_incoming]

    @property
    def outgoing_particles(self) -> list[Particle]:
        return [p for p in self.particles if p.is_outgoing]

    @property
    def intermediate_particles(self) -> list[Particle]:
        return [p for p in self.particles if p.is_intermediate]


@dataclass
class MetadataBlock:
    """An opaque tagged block kept for round-trip fidelity.

    Attributes:
        tag: Element name (``header``, ``generator`` ...) or ``!--`` for
            comments.
        text: The block verbatim, tags included, lines joined with
            ``\\n``.
        after_event: ``None`` for blocks before ``<init>``, otherwise the
            number of events that precede the block.
    """

    tag: str
    text: str
    after_event: Optional[int] = None

    @property
    def is_comment(self) -> bool:
        return self.tag == "!--"

    @property
    def content(self) -> str:
        """Text between the opening and closing markers, stripped."""
        body = self.text.strip()
        if self.is_comment:
            return body[len("<!--"):-len("-->")].strip()
        start = body.find(">") + 1
        end = body.rfind("</")
        if body.endswith("/>") or end < start:
            return ""
        return body[start:end].strip()


@dataclass
class LheFile:
    """A complete LHE document.

    This is the top-level container ``read`` produces and ``write``
    consumes. For large files, iterate with ``lhef.io.lhe.iter_lhe`` or
    ``LHEParser`` instead.

    Attributes:
        version: Value of the ``version`` attribute of the root tag.
        run_header: Contents of the ``<init>`` block.
        events: Events in file order.
        metadata: Opaque blocks in file order.
    """

    version: str = "3.0"
    run_header: RunHeader = field(default_factory=RunHeader)
    events: list[Event] = field(default_factory=list)
    metadata: list[MetadataBlock] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def __getitem__(self, idx):
        return self.events[idx]

    @property
    def header_blocks(self) -> list[MetadataBlock]:
        """Metadata blocks that precede ``<init>``."""
        return [b for b in self.metadata if b.after_event is None]
