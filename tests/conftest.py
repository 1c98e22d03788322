"""Test fixtures.

Small deterministic LHE files are (re)generated under ``tests/fixtures/``
at test collection time if they are missing, so the suite does not
depend on data files being shipped alongside it.
"""

from __future__ import annotations

from pathlib import Path

import pytest

FIXTURES = Path(__file__).resolve().parent / "fixtures"

# u dbar -> W+ -> e+ nu_e, two events, with a header, a leading comment
# and a metadata block between the events.
PP_TO_WENU = """<?xml version="1.0" encoding="UTF-8"?>
<LesHouchesEvents version="3.0">
<!--
File generated for lhef tests
-->
<header>
<MGVersion>
3.5.0
</MGVersion>
</header>
<init>
2212 2212 6.5e+03 6.5e+03 0 0 247000 247000 3 1
1.234e+01 5.0e-02 1.234e+01 1
</init>
<event>
5 1 1.0e+00 8.0e+01 7.546771e-03 1.18e-01
 2 -1 0 0 501 0 0.0 0.0 40.0 40.0 0.0 0.0 9.0
 -1 -1 0 0 0 501 0.0 0.0 -40.0 40.0 0.0 0.0 9.0
 24 2 1 2 0 0 0.0 0.0 0.0 80.0 80.0 0.0 9.0
 -11 1 3 3 0 0 40.0 0.0 0.0 40.0 0.0 0.0 -1.0
 12 1 3 3 0 0 -40.0 0.0 0.0 40.0 0.0 0.0 1.0
</event>
<generator>MadGraph5_aMC@NLO</generator>
<event id="2">
5 1 2.5e-01 8.0e+01 7.546771e-03 1.18e-01
 2 -1 0 0 501 0 0.0 0.0 40.0 40.0 0.0 0.0 9.0
 -1 -1 0 0 0 501 0.0 0.0 -40.0 40.0 0.0 0.0 9.0
 24 2 1 2 0 0 0.0 0.0 0.0 80.0 80.0 0.0 9.0
 -11 1 3 3 0 0 0.0 40.0 0.0 40.0 0.0 0.0 9.0
 12 1 3 3 0 0 0.0 -40.0 0.0 40.0 0.0 0.0 9.0
<rwgt>
<wgt id="1001"> 0.25 </wgt>
</rwgt>
</event>
</LesHouchesEvents>
"""

HELAC_RS = """<LesHouchesEvents version="1.0">
<!--
HELAC-NLO real subtraction events
-->
<init>
2212 2212 6500.0 6500.0 -1 -1 10042 10042 3 1
0.001 0.0001 0.002 1
# SUMPDF 4 1 2 3 4 -1 -2 0 8
# DIPMAP 1   9  1  7  1  8  1  9  2  7  2  8  2  9  7  8  7  9  8  9
# JETALGO 1 2 3. 4. F 5.
</init>
<event>
4 1 1.0 100.0 0.0078 0.118
 21 -1 0 0 501 502 0.0 0.0 500.0 500.0 0.0 0.0 9.0
 21 -1 0 0 502 501 0.0 0.0 -500.0 500.0 0.0 0.0 9.0
 6 1 1 2 501 0 300.0 0.0 0.0 500.0 400.0 0.0 9.0
 -6 1 1 2 0 501 -300.0 0.0 0.0 500.0 400.0 0.0 9.0
# pdf 0.1 0.2 100.0
# me 13. 1 6 3. 4. 5 2 7 8 9. 10. 11. 12.
# jet 1 2 3
</event>
<event>
4 1 -0.5 100.0 0.0078 0.118
 21 -1 0 0 501 502 0.0 0.0 500.0 500.0 0.0 0.0 9.0
 21 -1 0 0 502 501 0.0 0.0 -500.0 500.0 0.0 0.0 9.0
 6 1 1 2 501 0 0.0 300.0 0.0 500.0 400.0 0.0 9.0
 -6 1 1 2 0 501 0.0 -300.0 0.0 500.0 400.0 0.0 9.0
# jet 0 0 1
# me -0.5 1 6 3. 4. 0 1 7 9.
# pdf 0.3 0.4 100.0
</event>
</LesHouchesEvents>
"""


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _ensure_standard_fixtures(fixtures: Path) -> None:
    for name, text in (("pp_to_wenu.lhe", PP_TO_WENU), ("helac_rs.lhe", HELAC_RS)):
        path = fixtures / name
        if not path.exists():
            _write_text(path, text)


def pytest_configure(config):  # noqa: D401
    """Ensure fixtures exist before any tests run."""
    _ensure_standard_fixtures(FIXTURES)


@pytest.fixture
def wenu_path() -> Path:
    return FIXTURES / "pp_to_wenu.lhe"


@pytest.fixture
def helac_rs_path() -> Path:
    return FIXTURES / "helac_rs.lhe"
