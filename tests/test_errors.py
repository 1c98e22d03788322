from __future__ import annotations

import io
from pathlib import Path

import pytest

from lhef.errors import (
    LheError,
    MalformedLine,
    MalformedNumber,
    MalformedStructure,
    ParseError,
    StreamFault,
)
from lhef.io.lhe import LHEParser, LHEReader, ReaderConfig, iter_lhe, loads

INIT = """<LesHouchesEvents version="3.0">
<init>
2212 2212 6500 6500 0 0 0 0 3 1
1.0 0.1 1.0 1
</init>
"""

GOOD_EVENT = """<event>
1 1 1.0 91.0 0.0078 0.118
 22 1 0 0 0 0 0.0 0.0 10.0 10.0 0.0 0.0 9.0
</event>
"""


def _doc(*events: str, close: bool = True) -> str:
    return INIT + "".join(events) + ("</LesHouchesEvents>\n" if close else "")


def test_particle_line_with_twelve_fields() -> None:
    bad = GOOD_EVENT.replace(" 0.0 0.0 9.0", " 0.0 9.0")
    with pytest.raises(MalformedLine) as exc:
        loads(_doc(bad))
    assert exc.value.role == "particle"
    assert exc.value.line_number == 8


def test_non_numeric_px() -> None:
    bad = GOOD_EVENT.replace("22 1 0 0 0 0 0.0", "22 1 0 0 0 0 abc")
    with pytest.raises(MalformedNumber) as exc:
        loads(_doc(bad))
    assert exc.value.token == "abc"
    assert "abc" in str(exc.value)


@pytest.mark.parametrize(
    "line,role",
    [
        ("2212 2212 6500 6500 0 0 0 0 3", "header"),
        ("1.0 0.1 1.0", "process"),
    ],
)
def test_init_arity(line: str, role: str) -> None:
    text = INIT.replace("2212 2212 6500 6500 0 0 0 0 3 1", line) if role == "header" else INIT.replace(
        "1.0 0.1 1.0 1", line
    )
    with pytest.raises(MalformedLine) as exc:
        loads(text + "</LesHouchesEvents>\n")
    assert exc.value.role == role


def test_event_summary_arity() -> None:
    bad = GOOD_EVENT.replace("1 1 1.0 91.0 0.0078 0.118", "1 1 1.0 91.0 0.0078")
    with pytest.raises(MalformedLine) as exc:
        loads(_doc(bad))
    assert exc.value.role == "event-summary"


def test_fewer_particle_lines_than_declared() -> None:
    bad = GOOD_EVENT.replace("1 1 1.0", "2 1 1.0")
    with pytest.raises(MalformedStructure):
        loads(_doc(bad))


def test_negative_particle_count() -> None:
    bad = GOOD_EVENT.replace("1 1 1.0", "-1 1 1.0")
    with pytest.raises(MalformedNumber):
        loads(_doc(bad))


def test_hash_line_among_particles() -> None:
    bad = GOOD_EVENT.replace(" 22 1 0 0", "# comment\n 22 1 0 0")
    with pytest.raises(ParseError):
        loads(_doc(bad))


@pytest.mark.parametrize(
    "text",
    [
        "",
        "<notlhe>\n",
        '<LesHouchesEvents version="3.0">\n',
        '<LesHouchesEvents version="3.0">\n<event>\n',
        '<LesHouchesEvents version="3.0">\n</header>\n',
        INIT.replace("</init>\n", ""),
        _doc(GOOD_EVENT, close=False),
        _doc(GOOD_EVENT.replace("</event>\n", "")),
        _doc(GOOD_EVENT) + "trailing garbage\n",
        _doc("<header>\nunclosed\n"),
        _doc("<!-- unclosed comment\n"),
        _doc("stray text\n"),
        _doc("<init>\n"),
    ],
)
def test_structural_errors(text: str) -> None:
    with pytest.raises(MalformedStructure):
        loads(text)


def test_errors_share_a_base_class() -> None:
    for cls in (MalformedLine, MalformedNumber, MalformedStructure):
        assert issubclass(cls, ParseError)
        assert issubclass(cls, LheError)
        assert issubclass(cls, ValueError)
    assert issubclass(StreamFault, OSError)


def test_events_before_an_error_stay_valid() -> None:
    bad = GOOD_EVENT.replace("10.0 10.0", "10.0 x")
    parser = LHEParser(io.StringIO(_doc(GOOD_EVENT, bad)))
    first = next(parser)
    assert first.particles[0].pz == 10.0
    with pytest.raises(MalformedNumber):
        next(parser)
    # the parse is over, the first event is untouched
    assert list(parser) == []
    assert first.n_particles == 1


def test_run_header_error_ends_parse() -> None:
    parser = LHEParser(io.StringIO("<notlhe>\n"))
    with pytest.raises(MalformedStructure):
        parser.run_header
    assert list(parser) == []


def test_fortran_exponents_can_be_disabled() -> None:
    text = _doc(GOOD_EVENT.replace("10.0 10.0", "1.0D+01 1.0D+01"))
    assert loads(text)[0].particles[0].pz == 10.0
    with pytest.raises(MalformedNumber):
        loads(text, config=ReaderConfig(fortran_exponents=False))


class _FailingLines:
    def __init__(self, lines: list[str]) -> None:
        self._lines = iter(lines)

    def __iter__(self):
        return self

    def __next__(self) -> str:
        line = next(self._lines, None)
        if line is None:
            raise OSError("device went away")
        return line


def test_read_failure_is_stream_fault() -> None:
    parser = LHEParser(_FailingLines(INIT.splitlines(keepends=True)))
    assert parser.run_header.n_processes == 1
    with pytest.raises(StreamFault) as exc:
        next(parser)
    assert isinstance(exc.value.__cause__, OSError)


def test_missing_file_propagates(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        list(iter_lhe(tmp_path / "nope.lhe"))


def _undecodable(tmp_path: Path) -> Path:
    path = tmp_path / "latin1.lhe"
    text = _doc(GOOD_EVENT).replace("<init>", "<!-- caf\xe9 -->\n<init>")
    path.write_bytes(text.encode("latin-1"))
    return path


def test_undecodable_bytes_are_a_parse_error(tmp_path: Path) -> None:
    with pytest.raises(ParseError) as exc:
        list(iter_lhe(_undecodable(tmp_path)))
    assert isinstance(exc.value.__cause__, UnicodeDecodeError)


def test_undecodable_bytes_in_a_line_iterable() -> None:
    text = _doc(GOOD_EVENT).replace("<init>", "<!-- caf\xe9 -->\n<init>")
    lines = [line.encode("latin-1") for line in text.splitlines(keepends=True)]
    with pytest.raises(ParseError) as exc:
        LHEParser(lines).run_header
    assert exc.value.line_number == 2


def test_decode_errors_can_be_replaced(tmp_path: Path) -> None:
    config = ReaderConfig(errors="replace")
    f = LHEReader(config).read(_undecodable(tmp_path))
    assert "\ufffd" in f.metadata[0].content
    assert len(f) == 1
    assert len(list(iter_lhe(_undecodable(tmp_path), config=config))) == 1
