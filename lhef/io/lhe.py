from __future__ import annotations

import gzip
import io
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, TextIO, Union

from ..errors import LheError, MalformedStructure, ParseError, StreamFault
from ..helac import HelacFile, widen_file
from ..models import Event, LheFile, MetadataBlock, Particle, ProcessInfo, RunHeader
from .fields import format_float, parse_count, parse_float, parse_int, split_fields
from .reader_base import Reader
from .writer_base import Writer

logger = logging.getLogger(__name__)

_TAG_ROOT_OPEN = re.compile(r"<LesHouchesEvents(?P<attrs>(?:\s[^>]*)?)>")
_TAG_ROOT_CLOSE = re.compile(r"</LesHouchesEvents\s*>")
_TAG_INIT_OPEN = re.compile(r"<init(?P<attrs>(?:\s[^>]*)?)>")
_TAG_INIT_CLOSE = re.compile(r"</init\s*>")
_TAG_EVENT_OPEN = re.compile(r"<event(?P<attrs>(?:\s[^>]*)?)>")
_TAG_EVENT_CLOSE = re.compile(r"</event\s*>")
_TAG_ELEMENT = re.compile(r"<(?P<name>[A-Za-z_][\w.:-]*)")
_ATTR_VERSION = re.compile(r"""\bversion\s*=\s*(["'])(?P<version>.*?)\1""")

_BLOCK_TAGS = {
    "init": (_TAG_INIT_OPEN, _TAG_INIT_CLOSE),
    "event": (_TAG_EVENT_OPEN, _TAG_EVENT_CLOSE),
}

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ReaderConfig:
    """Reader options.

    ``errors`` is the codec error handler; with ``"strict"`` an
    undecodable byte is a ``ParseError``, ``"replace"`` substitutes
    U+FFFD and reads on.
    """

    encoding: str = "utf-8"
    fortran_exponents: bool = True
    errors: str = "strict"


@dataclass(frozen=True)
class WriterConfig:
    version: str = "3.0"
    float_precision: Optional[int] = None
    encoding: str = "utf-8"


def _open_text(path: PathLike, encoding: str = "utf-8", errors: str = "strict"):
    p = Path(path)
    if p.suffix == ".gz":
        return io.TextIOWrapper(gzip.open(p, "rb"), encoding=encoding, errors=errors)
    return open(p, "r", encoding=encoding, errors=errors)


def _open_text_out(path: PathLike, encoding: str = "utf-8"):
    p = Path(path)
    if p.suffix == ".gz":
        return gzip.open(p, "wt", encoding=encoding)
    return open(p, "w", encoding=encoding)


class LHEParser:
    """Single-pass parser over the lines of an LHE document.

    The run header is read on first access to ``run_header`` (or on the
    first ``next()``); iterating then yields one ``Event`` per
    ``<event>`` block. Opaque blocks before ``<init>`` are kept on
    ``metadata``. Blocks met while looking for the next event go to
    ``pending``, which is replaced at every ``next()``; after the last
    event it holds the blocks that followed it. Only the current line and
    the event being built are held; consumed lines are never revisited.

    Any ``LheError`` ends the parse: subsequent iteration stops, while
    events already yielded stay valid.
    """

    def __init__(self, lines: Iterable[Union[str, bytes]], *, config: ReaderConfig = ReaderConfig()) -> None:
        self.config = config
        self.line_number = 0
        self.version: Optional[str] = None
        self.metadata: list[MetadataBlock] = []
        self.pending: list[MetadataBlock] = []
        self.n_events = 0
        self._lines = iter(lines)
        self._run_header: Optional[RunHeader] = None
        self._finished = False

    @property
    def run_header(self) -> RunHeader:
        if self._run_header is None:
            if self._finished:
                raise MalformedStructure("input ended before the <init> block", self.line_number)
            try:
                self._read_prolog()
            except LheError:
                self._finished = True
                raise
        return self._run_header

    def __iter__(self) -> Iterator[Event]:
        return self

    def __next__(self) -> Event:
        if self._finished:
            raise StopIteration
        self.pending = []
        try:
            if self._run_header is None:
                self._read_prolog()
            event = self._read_next_event()
        except LheError:
            self._finished = True
            raise
        if event is None:
            self._finished = True
            raise StopIteration
        return event

    def take_pending(self) -> list[MetadataBlock]:
        """Hand over the blocks in ``pending`` and clear it."""
        blocks, self.pending = self.pending, []
        return blocks

    # -- line access ---------------------------------------------------

    def _next_line(self) -> Optional[str]:
        try:
            line = next(self._lines)
        except StopIteration:
            return None
        except (OSError, EOFError) as exc:
            raise StreamFault(f"failed to read after line {self.line_number}: {exc}") from exc
        except UnicodeDecodeError as exc:
            # text streams decode ahead in chunks, the line is approximate
            raise ParseError(f"undecodable input: {exc}", self.line_number + 1) from exc
        self.line_number += 1
        if isinstance(line, bytes):
            try:
                line = line.decode(self.config.encoding, errors=self.config.errors)
            except UnicodeDecodeError as exc:
                raise ParseError(f"undecodable input: {exc}", self.line_number) from exc
        return line.rstrip("\r\n")

    def _next_nonblank(self) -> Optional[str]:
        while True:
            line = self._next_line()
            if line is None or line.strip():
                return line

    def _next_numeric_line(self, role: str, block: str) -> str:
        line = self._next_nonblank()
        if line is None:
            raise MalformedStructure(f"unclosed <{block}> tag at end of input", self.line_number)
        if line.lstrip().startswith("<"):
            raise MalformedStructure(
                f"unexpected {line.strip()!r} where a {role} line was expected",
                self.line_number,
            )
        return line

    def _float(self, token: str) -> float:
        return parse_float(token, self.line_number, fortran_exponents=self.config.fortran_exponents)

    # -- document structure --------------------------------------------

    def _read_prolog(self) -> None:
        line = self._next_nonblank()
        while line is not None and line.strip().startswith("<?"):
            logger.debug("skipping declaration on line %d", self.line_number)
            line = self._next_nonblank()
        if line is None:
            raise MalformedStructure("missing <LesHouchesEvents> root tag", self.line_number)
        m = _TAG_ROOT_OPEN.fullmatch(line.strip())
        if m is None:
            raise MalformedStructure(
                f"expected <LesHouchesEvents> root tag, found {line.strip()!r}", self.line_number
            )
        v = _ATTR_VERSION.search(m.group("attrs"))
        self.version = v.group("version") if v else ""

        while True:
            line = self._next_nonblank()
            if line is None:
                raise MalformedStructure("input ended before the <init> block", self.line_number)
            s = line.strip()
            m = _TAG_INIT_OPEN.fullmatch(s)
            if m is not None:
                if m.group("attrs").strip():
                    logger.debug("ignoring <init> attributes on line %d", self.line_number)
                self._run_header = self._read_init()
                return
            if _TAG_EVENT_OPEN.fullmatch(s):
                raise MalformedStructure("<event> before <init>", self.line_number)
            if s.startswith("</"):
                raise MalformedStructure(f"unexpected closing tag {s!r}", self.line_number)
            self.metadata.append(self._read_block(line, None))

    def _read_next_event(self) -> Optional[Event]:
        while True:
            line = self._next_nonblank()
            if line is None:
                raise MalformedStructure("unclosed <LesHouchesEvents> tag at end of input", self.line_number)
            s = line.strip()
            m = _TAG_EVENT_OPEN.fullmatch(s)
            if m is not None:
                event = self._read_event(m.group("attrs").strip())
                self.n_events += 1
                return event
            if _TAG_ROOT_CLOSE.fullmatch(s):
                self._read_trailer()
                return None
            if s.startswith("</") or _TAG_INIT_OPEN.fullmatch(s):
                raise MalformedStructure(f"unexpected tag {s!r}", self.line_number)
            self.pending.append(self._read_block(line, self.n_events))

    def _read_trailer(self) -> None:
        line = self._next_nonblank()
        if line is not None:
            raise MalformedStructure(
                f"unexpected {line.strip()!r} after </LesHouchesEvents>", self.line_number
            )
        logger.debug("read %d events", self.n_events)

    def _read_block(self, first: str, after_event: Optional[int]) -> MetadataBlock:
        start = self.line_number
        s = first.strip()
        lines = [first]
        if s.startswith("<!--"):
            text = s[4:]
            while "-->" not in text:
                text = self._next_line()
                if text is None:
                    raise MalformedStructure("unclosed comment", start)
                lines.append(text)
            logger.debug("comment block on lines %d-%d", start, self.line_number)
            return MetadataBlock("!--", "\n".join(lines), after_event)

        m = _TAG_ELEMENT.match(s)
        if m is None:
            raise MalformedStructure(f"unexpected text outside of a tagged block: {s!r}", start)
        name = m.group("name")
        if name in ("LesHouchesEvents", "init", "event"):
            raise MalformedStructure(f"malformed <{name}> tag {s!r}", start)
        opens = re.compile(rf"<{re.escape(name)}(?:\s[^>]*)?(?<!/)>")
        closes = re.compile(rf"</{re.escape(name)}\s*>")
        depth = len(opens.findall(s)) - len(closes.findall(s))
        while depth > 0:
            line = self._next_line()
            if line is None:
                raise MalformedStructure(f"unclosed <{name}> tag", start)
            lines.append(line)
            depth += len(opens.findall(line)) - len(closes.findall(line))
        logger.debug("<%s> block on lines %d-%d", name, start, self.line_number)
        return MetadataBlock(name, "\n".join(lines), after_event)

    def _read_extra(self, block: str) -> list[str]:
        open_tag, close_tag = _BLOCK_TAGS[block]
        extra: list[str] = []
        while True:
            line = self._next_line()
            if line is None:
                raise MalformedStructure(f"unclosed <{block}> tag at end of input", self.line_number)
            s = line.strip()
            if close_tag.fullmatch(s):
                return extra
            if open_tag.fullmatch(s) or _TAG_ROOT_CLOSE.fullmatch(s):
                raise MalformedStructure(f"unexpected {s!r} inside <{block}>", self.line_number)
            extra.append(line)

    # -- numeric records -----------------------------------------------

    def _read_init(self) -> RunHeader:
        fields = split_fields(self._next_numeric_line("header", "init"), 10, "header", self.line_number)
        n = self.line_number
        header = RunHeader(
            beam_pdg_id=(parse_int(fields[0], n), parse_int(fields[1], n)),
            beam_energy=(self._float(fields[2]), self._float(fields[3])),
            pdf_group=(parse_int(fields[4], n), parse_int(fields[5], n)),
            pdf_set=(parse_int(fields[6], n), parse_int(fields[7], n)),
            weighting_strategy=parse_int(fields[8], n),
        )
        n_processes = parse_count(fields[9], n)
        for _ in range(n_processes):
            f = split_fields(self._next_numeric_line("process", "init"), 4, "process", self.line_number)
            header.processes.append(ProcessInfo(
                cross_section=self._float(f[0]),
                cross_section_error=self._float(f[1]),
                max_weight=self._float(f[2]),
                process_id=parse_int(f[3], self.line_number),
            ))
        header.extra = self._read_extra("init")
        return header

    def _read_event(self, attributes: str) -> Event:
        fields = split_fields(
            self._next_numeric_line("event-summary", "event"), 6, "event-summary", self.line_number
        )
        n = self.line_number
        n_particles = parse_count(fields[0], n)
        event = Event(
            process_id=parse_int(fields[1], n),
            weight=self._float(fields[2]),
            scale=self._float(fields[3]),
            alpha_qed=self._float(fields[4]),
            alpha_qcd=self._float(fields[5]),
            attributes=attributes,
        )
        for _ in range(n_particles):
            event.particles.append(self._read_particle())
        event.extra = self._read_extra("event")
        return event

    def _read_particle(self) -> Particle:
        cols = split_fields(self._next_numeric_line("particle", "event"), 13, "particle", self.line_number)
        n = self.line_number
        # id status mother1 mother2 col1 col2 px py pz E M lifetime spin
        return Particle(
            pdg_id=parse_int(cols[0], n),
            status=parse_int(cols[1], n),
            mother1=parse_int(cols[2], n),
            mother2=parse_int(cols[3], n),
            color1=parse_int(cols[4], n),
            color2=parse_int(cols[5], n),
            px=self._float(cols[6]),
            py=self._float(cols[7]),
            pz=self._float(cols[8]),
            energy=self._float(cols[9]),
            mass=self._float(cols[10]),
            lifetime=self._float(cols[11]),
            spin=self._float(cols[12]),
        )


@contextmanager
def open_lhe(path: PathLike, *, config: ReaderConfig = ReaderConfig()) -> Iterator[LHEParser]:
    """Open ``path`` (plain or ``.gz``) and yield a parser over it.

    The file is closed when the ``with`` block exits, however it exits.
    """
    with _open_text(path, config.encoding, config.errors) as f:
        logger.debug("opened %s", path)
        yield LHEParser(f, config=config)
    logger.debug("closed %s", path)


@contextmanager
def create_lhe(path: PathLike, *, config: WriterConfig = WriterConfig()) -> Iterator[LHEStreamWriter]:
    """Create ``path`` (plain or ``.gz``) and yield a stream writer on it.

    The caller drives ``begin``/``write_event``/``end``; the file is
    closed when the ``with`` block exits.
    """
    with _open_text_out(path, config.encoding) as out:
        yield LHEStreamWriter(out, config=config)
    logger.debug("closed %s", path)


def iter_lhe(path: PathLike, *, config: ReaderConfig = ReaderConfig()) -> Iterator[Event]:
    """Stream the events of an LHE file.

    Each call opens the file afresh. Closing the generator early releases
    the file handle.
    """
    with open_lhe(path, config=config) as parser:
        yield from parser


def parse_lhe(lines: Iterable[Union[str, bytes]], *, config: ReaderConfig = ReaderConfig()) -> LheFile:
    """Parse a whole document from an iterable of lines into memory."""
    parser = LHEParser(lines, config=config)
    run_header = parser.run_header
    metadata = list(parser.metadata)
    events = []
    for event in parser:
        metadata.extend(parser.take_pending())
        events.append(event)
    metadata.extend(parser.take_pending())
    return LheFile(
        version=parser.version or "",
        run_header=run_header,
        events=events,
        metadata=metadata,
    )


def loads(text: str, *, config: ReaderConfig = ReaderConfig()) -> LheFile:
    return parse_lhe(io.StringIO(text), config=config)


def format_run_header(header: RunHeader, precision: Optional[int] = None) -> str:
    f = lambda x: format_float(x, precision)  # noqa: E731
    lines = [
        "<init>",
        f"{header.beam_pdg_id[0]} {header.beam_pdg_id[1]} "
        f"{f(header.beam_energy[0])} {f(header.beam_energy[1])} "
        f"{header.pdf_group[0]} {header.pdf_group[1]} "
        f"{header.pdf_set[0]} {header.pdf_set[1]} "
        f"{header.weighting_strategy} {header.n_processes}",
    ]
    for proc in header.processes:
        lines.append(
            f"{f(proc.cross_section)} {f(proc.cross_section_error)} "
            f"{f(proc.max_weight)} {proc.process_id}"
        )
    lines.extend(header.extra)
    lines.append("</init>")
    return "\n".join(lines) + "\n"


def format_event(event: Event, precision: Optional[int] = None) -> str:
    f = lambda x: format_float(x, precision)  # noqa: E731
    open_tag = f"<event {event.attributes}>" if event.attributes else "<event>"
    lines = [
        open_tag,
        f"{event.n_particles} {event.process_id} {f(event.weight)} "
        f"{f(event.scale)} {f(event.alpha_qed)} {f(event.alpha_qcd)}",
    ]
    for p in event.particles:
        lines.append(
            f"{p.pdg_id} {p.status} {p.mother1} {p.mother2} {p.color1} {p.color2} "
            f"{f(p.px)} {f(p.py)} {f(p.pz)} {f(p.energy)} {f(p.mass)} "
            f"{f(p.lifetime)} {f(p.spin)}"
        )
    lines.extend(event.extra)
    lines.append("</event>")
    return "\n".join(lines) + "\n"


class LHEStreamWriter:
    """Writes an LHE document to a text stream piece by piece.

    Call ``begin`` once, then ``write_event``/``write_metadata`` in file
    order, then ``end``. Output failures surface as ``StreamFault``.
    """

    def __init__(self, stream: TextIO, *, config: WriterConfig = WriterConfig()) -> None:
        self.config = config
        self.n_events = 0
        self._out = stream

    def _write(self, text: str) -> None:
        try:
            self._out.write(text)
        except OSError as exc:
            raise StreamFault(f"failed to write LHE output: {exc}") from exc

    def begin(
        self,
        run_header: RunHeader,
        *,
        version: Optional[str] = None,
        metadata: Iterable[MetadataBlock] = (),
    ) -> None:
        if version is None:
            version = self.config.version
        self._write(f'<LesHouchesEvents version="{version}">\n')
        for block in metadata:
            self.write_metadata(block)
        self._write(format_run_header(run_header, self.config.float_precision))

    def write_metadata(self, block: MetadataBlock) -> None:
        self._write(block.text + "\n")

    def write_event(self, event: Event) -> None:
        self._write(format_event(event, self.config.float_precision))
        self.n_events += 1

    def end(self) -> None:
        self._write("</LesHouchesEvents>\n")


def write_document(
    stream: TextIO,
    run_header: RunHeader,
    events: Iterable[Event],
    *,
    version: Optional[str] = None,
    metadata: Sequence[MetadataBlock] = (),
    config: WriterConfig = WriterConfig(),
) -> int:
    """Write a complete document; returns the number of events written.

    Blocks with ``after_event`` unset go before ``<init>``; the others
    are placed after that many events.
    """
    writer = LHEStreamWriter(stream, config=config)
    prolog = [b for b in metadata if b.after_event is None]
    interleaved = sorted(
        (b for b in metadata if b.after_event is not None), key=lambda b: b.after_event
    )
    writer.begin(run_header, version=version, metadata=prolog)
    idx = 0
    for i, event in enumerate(events):
        while idx < len(interleaved) and interleaved[idx].after_event <= i:
            writer.write_metadata(interleaved[idx])
            idx += 1
        writer.write_event(event)
    for block in interleaved[idx:]:
        writer.write_metadata(block)
    writer.end()
    return writer.n_events


def write_lhe(stream: TextIO, lhe_file: LheFile, *, config: WriterConfig = WriterConfig()) -> int:
    return write_document(
        stream,
        lhe_file.run_header,
        lhe_file.events,
        version=lhe_file.version,
        metadata=lhe_file.metadata,
        config=config,
    )


def dumps(lhe_file: LheFile, *, config: WriterConfig = WriterConfig()) -> str:
    out = io.StringIO()
    write_lhe(out, lhe_file, config=config)
    return out.getvalue()


class LHEReader(Reader):
    def __init__(self, config: ReaderConfig = ReaderConfig()) -> None:
        self.config = config

    def iter_events(self, path: PathLike) -> Iterator[Event]:
        return iter_lhe(path, config=self.config)

    def read(self, path: PathLike) -> LheFile:
        with _open_text(path, self.config.encoding, self.config.errors) as f:
            return parse_lhe(f, config=self.config)

    def read_run_header(self, path: PathLike) -> RunHeader:
        with open_lhe(path, config=self.config) as parser:
            return parser.run_header


class LHEWriter(Writer):
    def __init__(self, config: WriterConfig = WriterConfig()) -> None:
        self.config = config

    def write(
        self,
        path: PathLike,
        events: Iterable[Event],
        run_header: RunHeader,
        *,
        version: Optional[str] = None,
        metadata: Sequence[MetadataBlock] = (),
    ) -> int:
        with _open_text_out(path, self.config.encoding) as out:
            n = write_document(
                out, run_header, events, version=version, metadata=metadata, config=self.config
            )
        logger.debug("wrote %d events to %s", n, path)
        return n

    def write_file(self, path: PathLike, lhe_file: Union[LheFile, HelacFile]) -> int:
        if isinstance(lhe_file, HelacFile):
            lhe_file = widen_file(lhe_file, self.config.float_precision)
        return self.write(
            path,
            lhe_file.events,
            lhe_file.run_header,
            version=lhe_file.version,
            metadata=lhe_file.metadata,
        )
