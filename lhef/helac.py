"""
HELAC-NLO views over generic LHE records.

HELAC-NLO appends ``#``-prefixed numeric lines to the ``<init>`` and
``<event>`` blocks, for example::

    # SUMPDF 4 1 2 3 4 -1 -2 0 8
    # pdf 1.0 2.0 3.0
    # me 1 2 3. 4. 5. 6. 7

The generic parser keeps these lines as opaque ``extra`` text. This
module narrows a generic ``RunHeader``/``Event`` into a typed view for
one of the HELAC-NLO run flavors and widens it back:

- ``rs``:    real-subtraction runs
- ``i``:     I-operator runs
- ``kp``:    KP-operator runs
- ``1loop``: virtual (one-loop) runs

Narrowing raises ``UnsupportedFormat`` when a required line is missing,
duplicated, unknown or malformed. Widening always succeeds; an
unmodified view gives back the original lines verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Optional

from .errors import MalformedNumber, UnsupportedFormat
from .io.fields import format_float, parse_count, parse_float, parse_int
from .models import Event, LheFile, MetadataBlock, RunHeader


class _Tokens:
    """Cursor over the fields of one ``# KEYWORD ...`` line."""

    def __init__(self, keyword: str, tokens: list[str]) -> None:
        self.keyword = keyword
        self._tokens = tokens
        self._pos = 0

    def _take(self) -> str:
        if self._pos >= len(self._tokens):
            raise UnsupportedFormat(f"'# {self.keyword}' line has too few fields")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _convert(self, parse, token: str):
        try:
            return parse(token)
        except MalformedNumber as exc:
            raise UnsupportedFormat(f"'# {self.keyword}' line: {exc.message}") from exc

    def take_int(self) -> int:
        return self._convert(parse_int, self._take())

    def take_count(self) -> int:
        return self._convert(parse_count, self._take())

    def take_float(self) -> float:
        return self._convert(parse_float, self._take())

    def take_ints(self, n: int) -> tuple[int, ...]:
        return tuple(self.take_int() for _ in range(n))

    def take_floats(self, n: int) -> tuple[float, ...]:
        return tuple(self.take_float() for _ in range(n))

    def take_pairs(self, n: int) -> tuple[tuple[int, int], ...]:
        return tuple((self.take_int(), self.take_int()) for _ in range(n))

    def take_flag(self) -> bool:
        token = self._take()
        if token not in ("T", "F"):
            raise UnsupportedFormat(f"'# {self.keyword}' line: expected T or F, found {token!r}")
        return token == "T"

    def finish(self) -> None:
        if self._pos != len(self._tokens):
            raise UnsupportedFormat(
                f"'# {self.keyword}' line has {len(self._tokens) - self._pos} unexpected trailing fields"
            )


def _line(keyword: str, *parts: Any, precision: Optional[int] = None) -> str:
    out = ["#", keyword]
    for part in parts:
        if isinstance(part, bool):
            out.append("T" if part else "F")
        elif isinstance(part, float):
            out.append(format_float(part, precision))
        else:
            out.append(str(part))
    return " ".join(out)


def _flatten(pairs) -> list[int]:
    return [x for pair in pairs for x in pair]


# --- init records -------------------------------------------------------


@dataclass(frozen=True)
class PdfSum:
    """``# SUMPDF n a1 b1 ... an bn``: PDF combinations summed over."""

    KEYWORD: ClassVar[str] = "SUMPDF"

    pdf_sum_pairs: tuple[tuple[int, int], ...] = ()

    @classmethod
    def parse(cls, t: _Tokens) -> PdfSum:
        return cls(pdf_sum_pairs=t.take_pairs(t.take_count()))

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(self.KEYWORD, len(self.pdf_sum_pairs), *_flatten(self.pdf_sum_pairs))


@dataclass(frozen=True)
class PdfSumKP:
    """KP variant of ``# SUMPDF``: per-beam gluon and quark PDF IDs.

    A gluon ID of ``None`` is written as a 0 placeholder with a zero
    gluon count.
    """

    KEYWORD: ClassVar[str] = "SUMPDF"

    beam_1_gluon_id: Optional[int] = None
    beam_2_gluon_id: Optional[int] = None
    beam_1_quark_ids: tuple[int, ...] = ()
    beam_2_quark_ids: tuple[int, ...] = ()

    @classmethod
    def parse(cls, t: _Tokens) -> PdfSumKP:
        n_g1, n_q1, n_g2, n_q2 = (t.take_count() for _ in range(4))
        g1 = t.take_int()
        q1 = t.take_ints(n_q1)
        g2 = t.take_int()
        q2 = t.take_ints(n_q2)
        return cls(
            beam_1_gluon_id=g1 if n_g1 else None,
            beam_2_gluon_id=g2 if n_g2 else None,
            beam_1_quark_ids=q1,
            beam_2_quark_ids=q2,
        )

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD,
            int(self.beam_1_gluon_id is not None),
            len(self.beam_1_quark_ids),
            int(self.beam_2_gluon_id is not None),
            len(self.beam_2_quark_ids),
            self.beam_1_gluon_id or 0,
            *self.beam_1_quark_ids,
            self.beam_2_gluon_id or 0,
            *self.beam_2_quark_ids,
        )


@dataclass(frozen=True)
class DipMapInfo:
    """``# DIPMAP type n i1 j1 ... in jn``: dipole emitter/spectator map."""

    KEYWORD: ClassVar[str] = "DIPMAP"

    dipole_type: int = 0
    dipole_map: tuple[tuple[int, int], ...] = ()

    @classmethod
    def parse(cls, t: _Tokens) -> DipMapInfo:
        dipole_type = t.take_int()
        return cls(dipole_type=dipole_type, dipole_map=t.take_pairs(t.take_count()))

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(self.KEYWORD, self.dipole_type, len(self.dipole_map), *_flatten(self.dipole_map))


@dataclass(frozen=True)
class JetAlgoInfo:
    """``# JETALGO id nb etamax dr T|F ptveto``: jet algorithm setup."""

    KEYWORD: ClassVar[str] = "JETALGO"

    algorithm_id: int = 0
    n_bjets: int = 0
    eta_max: float = 0.0
    dr: float = 0.0
    pt_veto: Optional[float] = None

    @classmethod
    def parse(cls, t: _Tokens) -> JetAlgoInfo:
        algorithm_id = t.take_int()
        n_bjets = t.take_count()
        eta_max = t.take_float()
        dr = t.take_float()
        has_pt_veto = t.take_flag()
        pt_veto = t.take_float()
        return cls(
            algorithm_id=algorithm_id,
            n_bjets=n_bjets,
            eta_max=eta_max,
            dr=dr,
            pt_veto=pt_veto if has_pt_veto else None,
        )

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD,
            self.algorithm_id,
            self.n_bjets,
            float(self.eta_max),
            float(self.dr),
            self.pt_veto is not None,
            float(self.pt_veto if self.pt_veto is not None else 0.0),
            precision=precision,
        )


@dataclass(frozen=True)
class Norm:
    """``# NORM n alpha alpha_err``: one-loop normalisation."""

    KEYWORD: ClassVar[str] = "NORM"

    n_unweighted_events: int = 0
    alpha: float = 0.0
    alpha_err: float = 0.0

    @classmethod
    def parse(cls, t: _Tokens) -> Norm:
        return cls(n_unweighted_events=t.take_count(), alpha=t.take_float(), alpha_err=t.take_float())

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD, self.n_unweighted_events, float(self.alpha), float(self.alpha_err),
            precision=precision,
        )


# --- event records ------------------------------------------------------


@dataclass(frozen=True)
class PdfInfo:
    """``# pdf x1 x2 scale``: momentum fractions and PDF scale."""

    KEYWORD: ClassVar[str] = "pdf"

    x1: float = 0.0
    x2: float = 0.0
    scale: float = 0.0

    @classmethod
    def parse(cls, t: _Tokens) -> PdfInfo:
        return cls(x1=t.take_float(), x2=t.take_float(), scale=t.take_float())

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(self.KEYWORD, float(self.x1), float(self.x2), float(self.scale), precision=precision)


@dataclass(frozen=True)
class JetInfo:
    """``# jet ibvjet1 ibvjet2 ibvflreco``."""

    KEYWORD: ClassVar[str] = "jet"

    ibvjet1: int = 0
    ibvjet2: int = 0
    ibvflreco: int = 0

    @classmethod
    def parse(cls, t: _Tokens) -> JetInfo:
        return cls(ibvjet1=t.take_int(), ibvjet2=t.take_int(), ibvflreco=t.take_int())

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(self.KEYWORD, self.ibvjet1, self.ibvjet2, self.ibvflreco)


@dataclass(frozen=True)
class MeInfoRS:
    """Real-subtraction ``# me`` line.

    Layout: ``weight max_ew max_qcd real_weight scale irun n ids[n]
    weights[n] [mu_rs[n] if irun]``. ``dipole_mu_rs`` is ``None`` when
    the run used a fixed renormalisation scale (irun = 0).
    """

    KEYWORD: ClassVar[str] = "me"

    weight: float = 0.0
    max_ew: int = 0
    max_qcd: int = 0
    real_weight: float = 0.0
    scale: float = 0.0
    dipole_ids: tuple[int, ...] = ()
    dipole_weights: tuple[float, ...] = ()
    dipole_mu_rs: Optional[tuple[float, ...]] = None

    def __post_init__(self) -> None:
        n = len(self.dipole_ids)
        if len(self.dipole_weights) != n or (
            self.dipole_mu_rs is not None and len(self.dipole_mu_rs) != n
        ):
            raise ValueError("dipole ids, weights and scales must have the same length")

    @classmethod
    def parse(cls, t: _Tokens) -> MeInfoRS:
        weight = t.take_float()
        max_ew = t.take_count()
        max_qcd = t.take_count()
        real_weight = t.take_float()
        scale = t.take_float()
        irun = t.take_count()
        n = t.take_count()
        ids = t.take_ints(n)
        weights = t.take_floats(n)
        mu_rs = t.take_floats(n) if irun > 0 else None
        return cls(
            weight=weight,
            max_ew=max_ew,
            max_qcd=max_qcd,
            real_weight=real_weight,
            scale=scale,
            dipole_ids=ids,
            dipole_weights=weights,
            dipole_mu_rs=mu_rs,
        )

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD,
            float(self.weight),
            self.max_ew,
            self.max_qcd,
            float(self.real_weight),
            float(self.scale),
            int(self.dipole_mu_rs is not None),
            len(self.dipole_ids),
            *self.dipole_ids,
            *(float(w) for w in self.dipole_weights),
            *(float(m) for m in self.dipole_mu_rs or ()),
            precision=precision,
        )


@dataclass(frozen=True)
class MeInfoI:
    """I-operator ``# me max_ew max_qcd weight a b c log_term`` line."""

    KEYWORD: ClassVar[str] = "me"

    max_ew: int = 0
    max_qcd: int = 0
    weight: float = 0.0
    coeff_a: float = 0.0
    coeff_b: float = 0.0
    coeff_c: float = 0.0
    log_term: int = 0

    @classmethod
    def parse(cls, t: _Tokens) -> MeInfoI:
        return cls(
            max_ew=t.take_count(),
            max_qcd=t.take_count(),
            weight=t.take_float(),
            coeff_a=t.take_float(),
            coeff_b=t.take_float(),
            coeff_c=t.take_float(),
            log_term=t.take_int(),
        )

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD,
            self.max_ew,
            self.max_qcd,
            float(self.weight),
            float(self.coeff_a),
            float(self.coeff_b),
            float(self.coeff_c),
            self.log_term,
            precision=precision,
        )


KP_WEIGHT_NAMES = tuple(
    f"{side}{beam}{parton}_l{log}"
    for beam in (1, 2)
    for side in ("a", "b")
    for parton in ("g", "q")
    for log in (0, 1)
)


@dataclass(frozen=True)
class MeInfoKP:
    """KP-operator ``# me`` line.

    ``weights`` holds the 16 KP weights in file order; their names are
    listed in ``KP_WEIGHT_NAMES`` (``a1g_l0``, ``a1g_l1``, ``a1q_l0`` ...).
    """

    KEYWORD: ClassVar[str] = "me"

    max_ew: int = 0
    max_qcd: int = 0
    weight: float = 0.0
    x1_prime: float = 0.0
    x2_prime: float = 0.0
    weights: tuple[float, ...] = (0.0,) * len(KP_WEIGHT_NAMES)

    def __post_init__(self) -> None:
        if len(self.weights) != len(KP_WEIGHT_NAMES):
            raise ValueError(f"expected {len(KP_WEIGHT_NAMES)} KP weights, got {len(self.weights)}")

    def kp_weight(self, name: str) -> float:
        return self.weights[KP_WEIGHT_NAMES.index(name)]

    @classmethod
    def parse(cls, t: _Tokens) -> MeInfoKP:
        return cls(
            max_ew=t.take_count(),
            max_qcd=t.take_count(),
            weight=t.take_float(),
            x1_prime=t.take_float(),
            x2_prime=t.take_float(),
            weights=t.take_floats(len(KP_WEIGHT_NAMES)),
        )

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD,
            self.max_ew,
            self.max_qcd,
            float(self.weight),
            float(self.x1_prime),
            float(self.x2_prime),
            *(float(w) for w in self.weights),
            precision=precision,
        )


@dataclass(frozen=True)
class MeInfo1loop:
    """One-loop ``# me`` line: Born and virtual orders and weights."""

    KEYWORD: ClassVar[str] = "me"

    max_ew_lo: int = 0
    max_qcd_lo: int = 0
    weight_lo: float = 0.0
    max_ew_1loop: int = 0
    max_qcd_1loop: int = 0
    weight_1loop: float = 0.0
    coeff_a: float = 0.0
    coeff_b: float = 0.0
    coeff_c: float = 0.0

    @classmethod
    def parse(cls, t: _Tokens) -> MeInfo1loop:
        return cls(
            max_ew_lo=t.take_int(),
            max_qcd_lo=t.take_int(),
            weight_lo=t.take_float(),
            max_ew_1loop=t.take_int(),
            max_qcd_1loop=t.take_int(),
            weight_1loop=t.take_float(),
            coeff_a=t.take_float(),
            coeff_b=t.take_float(),
            coeff_c=t.take_float(),
        )

    def to_line(self, precision: Optional[int] = None) -> str:
        return _line(
            self.KEYWORD,
            self.max_ew_lo,
            self.max_qcd_lo,
            float(self.weight_lo),
            self.max_ew_1loop,
            self.max_qcd_1loop,
            float(self.weight_1loop),
            float(self.coeff_a),
            float(self.coeff_b),
            float(self.coeff_c),
            precision=precision,
        )


# --- per-block record sets ----------------------------------------------
#
# Each set is a dataclass whose fields are records; field order is the
# order the lines are written in. Reading accepts any order.


@dataclass(frozen=True)
class InitInfoRS:
    pdf_sum: PdfSum
    dip_map: DipMapInfo
    jet_algo: JetAlgoInfo


@dataclass(frozen=True)
class InitInfoI:
    pdf_sum: PdfSum


@dataclass(frozen=True)
class InitInfoKP:
    pdf_sum: PdfSumKP


@dataclass(frozen=True)
class InitInfo1loop:
    norm: Norm
    pdf_sum: PdfSum


@dataclass(frozen=True)
class EventInfoRS:
    pdf: PdfInfo
    me: MeInfoRS
    jet: JetInfo


@dataclass(frozen=True)
class EventInfoI:
    pdf: PdfInfo
    me: MeInfoI


@dataclass(frozen=True)
class EventInfoKP:
    pdf: PdfInfo
    me: MeInfoKP


@dataclass(frozen=True)
class EventInfo1loop:
    pdf: PdfInfo
    me: MeInfo1loop


def _record_types(info_cls) -> dict[str, tuple[str, type]]:
    """Map line keyword to (field name, record class) for a record set."""
    out = {}
    for f in fields(info_cls):
        # annotations are strings under ``from __future__ import annotations``
        record_cls = _RECORDS[f.type] if isinstance(f.type, str) else f.type
        out[record_cls.KEYWORD] = (f.name, record_cls)
    return out


_RECORDS = {
    cls.__name__: cls
    for cls in (
        PdfSum, PdfSumKP, DipMapInfo, JetAlgoInfo, Norm,
        PdfInfo, JetInfo, MeInfoRS, MeInfoI, MeInfoKP, MeInfo1loop,
    )
}


def parse_info(info_cls, lines: list[str], where: str):
    """Build a record set of type ``info_cls`` from raw extra lines.

    Blank lines are ignored; every other line must be one of the
    records of ``info_cls``, each exactly once.
    """
    parts = _record_types(info_cls)
    found: dict[str, Any] = {}
    for line in lines:
        s = line.strip()
        if not s:
            continue
        tokens = s[1:].split() if s.startswith("#") else []
        if not tokens:
            raise UnsupportedFormat(f"unexpected line in {where}: {s!r}")
        keyword = tokens[0]
        if keyword not in parts:
            raise UnsupportedFormat(f"unknown '# {keyword}' line in {where}")
        name, record_cls = parts[keyword]
        if name in found:
            raise UnsupportedFormat(f"duplicate '# {keyword}' line in {where}")
        t = _Tokens(keyword, tokens[1:])
        record = record_cls.parse(t)
        t.finish()
        found[name] = record
    missing = [kw for kw, (name, _) in parts.items() if name not in found]
    if missing:
        raise UnsupportedFormat(
            f"{where} is missing " + ", ".join(f"'# {kw}'" for kw in missing) + " line(s)"
        )
    return info_cls(**found)


def format_info(info, precision: Optional[int] = None) -> list[str]:
    return [getattr(info, f.name).to_line(precision) for f in fields(info)]


@dataclass(frozen=True)
class Flavor:
    name: str
    init_info: type
    event_info: type


FLAVORS: dict[str, Flavor] = {
    "rs": Flavor("rs", InitInfoRS, EventInfoRS),
    "i": Flavor("i", InitInfoI, EventInfoI),
    "kp": Flavor("kp", InitInfoKP, EventInfoKP),
    "1loop": Flavor("1loop", InitInfo1loop, EventInfo1loop),
}


def get_flavor(name: str) -> Flavor:
    """Look up a flavor by name (``rs``) or format name (``helac-rs``)."""
    key = name[len("helac-"):] if name.startswith("helac-") else name
    if key not in FLAVORS:
        raise ValueError(f"Unknown HELAC-NLO flavor: {name}")
    return FLAVORS[key]


# --- typed views --------------------------------------------------------


@dataclass
class HelacRunHeader:
    """A run header whose extra init lines were read as HELAC records.

    ``header`` is the generic run header with ``extra`` emptied.
    """

    header: RunHeader
    info: Any
    raw: tuple[str, ...] = field(default=(), compare=False, repr=False)
    origin: Any = field(default=None, compare=False, repr=False)


@dataclass
class HelacEvent:
    """An event whose extra lines were read as HELAC records.

    ``event`` is the generic event with ``extra`` emptied.
    """

    event: Event
    info: Any
    raw: tuple[str, ...] = field(default=(), compare=False, repr=False)
    origin: Any = field(default=None, compare=False, repr=False)

    @property
    def pdf(self) -> PdfInfo:
        return self.info.pdf

    @property
    def me(self):
        return self.info.me


def narrow_run_header(header: RunHeader, flavor: str) -> HelacRunHeader:
    kind = get_flavor(flavor)
    info = parse_info(kind.init_info, header.extra, "<init>")
    return HelacRunHeader(
        header=replace(header, processes=list(header.processes), extra=[]),
        info=info,
        raw=tuple(header.extra),
        origin=info,
    )


def widen_run_header(view: HelacRunHeader, precision: Optional[int] = None) -> RunHeader:
    if view.origin is not None and view.info == view.origin:
        extra = list(view.raw)
    else:
        extra = format_info(view.info, precision)
    return replace(view.header, processes=list(view.header.processes), extra=extra)


def narrow_event(event: Event, flavor: str) -> HelacEvent:
    kind = get_flavor(flavor)
    info = parse_info(kind.event_info, event.extra, "<event>")
    return HelacEvent(
        event=replace(event, particles=list(event.particles), extra=[]),
        info=info,
        raw=tuple(event.extra),
        origin=info,
    )


def widen_event(view: HelacEvent, precision: Optional[int] = None) -> Event:
    if view.origin is not None and view.info == view.origin:
        extra = list(view.raw)
    else:
        extra = format_info(view.info, precision)
    return replace(view.event, particles=list(view.event.particles), extra=extra)


@dataclass
class HelacFile:
    """A whole file narrowed to one HELAC-NLO flavor."""

    flavor: str
    version: str
    run_header: HelacRunHeader
    events: list[HelacEvent] = field(default_factory=list)
    metadata: list[MetadataBlock] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def __getitem__(self, idx):
        return self.events[idx]

    @property
    def comment(self) -> Optional[str]:
        """Text of the leading comment HELAC-NLO writes, if any."""
        for block in self.metadata:
            if block.after_event is None and block.is_comment:
                return block.content
        return None


def narrow_file(lhe_file: LheFile, flavor: str) -> HelacFile:
    return HelacFile(
        flavor=get_flavor(flavor).name,
        version=lhe_file.version,
        run_header=narrow_run_header(lhe_file.run_header, flavor),
        events=[narrow_event(ev, flavor) for ev in lhe_file.events],
        metadata=list(lhe_file.metadata),
    )


def widen_file(helac_file: HelacFile, precision: Optional[int] = None) -> LheFile:
    return LheFile(
        version=helac_file.version,
        run_header=widen_run_header(helac_file.run_header, precision),
        events=[widen_event(ev, precision) for ev in helac_file.events],
        metadata=list(helac_file.metadata),
    )
