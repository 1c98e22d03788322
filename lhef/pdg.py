"""PDG ID helpers backed by scikit-hep ``particle``.

LHE files routinely carry generator-internal codes (e.g. 81-100 for
MC internal use, 9900xxx for BSM states) that the PDG table does not
list; lookups return ``None`` or the numeric ID for those.
"""

from __future__ import annotations

from typing import Optional

from particle import PDGID, InvalidParticle, ParticleNotFound
from particle import Particle as PDGParticle


def is_valid_pdg_id(pdg_id: int) -> bool:
    return bool(PDGID(pdg_id).is_valid)


def _lookup(pdg_id: int) -> Optional[PDGParticle]:
    try:
        return PDGParticle.from_pdgid(pdg_id)
    except (InvalidParticle, ParticleNotFound):
        return None


def name(pdg_id: int) -> str:
    """Particle name, or the ID as text for unlisted codes."""
    p = _lookup(pdg_id)
    return p.name if p is not None else str(pdg_id)


def mass_gev(pdg_id: int) -> Optional[float]:
    """PDG mass in GeV (the table stores MeV)."""
    p = _lookup(pdg_id)
    if p is None or p.mass is None:
        return None
    return float(p.mass) / 1000.0
