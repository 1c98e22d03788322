"""Positional field parsing and number formatting for LHE numeric lines."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Optional

from ..errors import MalformedLine, MalformedNumber

_INT = re.compile(r"[+-]?\d+")
_FLOAT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_FLOAT_FORTRAN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eEdD][+-]?\d+)?")
_SPECIAL = {
    "inf": math.inf,
    "+inf": math.inf,
    "-inf": -math.inf,
    "infinity": math.inf,
    "+infinity": math.inf,
    "-infinity": -math.inf,
    "nan": math.nan,
    "+nan": math.nan,
    "-nan": math.nan,
}


def split_fields(line: str, arity: int, role: str, line_number: int) -> list[str]:
    """Split ``line`` on whitespace and require exactly ``arity`` fields."""
    fields = line.split()
    if len(fields) != arity:
        raise MalformedLine(
            f"{role} line has {len(fields)} fields, expected {arity}",
            line_number,
            role,
        )
    return fields


def parse_int(token: str, line_number: int = 0) -> int:
    if not _INT.fullmatch(token):
        raise MalformedNumber(f"invalid integer {token!r}", line_number, token)
    return int(token)


def parse_count(token: str, line_number: int = 0) -> int:
    """Parse a non-negative integer count."""
    value = parse_int(token, line_number)
    if value < 0:
        raise MalformedNumber(f"negative count {token!r}", line_number, token)
    return value


def parse_float(token: str, line_number: int = 0, *, fortran_exponents: bool = True) -> float:
    """Parse a floating point token.

    Accepts decimal and scientific notation, the usual spellings of
    infinity and NaN and, when ``fortran_exponents`` is set, ``D``
    exponents such as ``1.0D+01``.
    """
    special = _SPECIAL.get(token.lower())
    if special is not None:
        return special
    pattern = _FLOAT_FORTRAN if fortran_exponents else _FLOAT
    if not pattern.fullmatch(token):
        raise MalformedNumber(f"invalid number {token!r}", line_number, token)
    return float(token.replace("D", "e").replace("d", "e"))


def _shortest_scientific(value: float) -> str:
    # repr gives the shortest digits that read back exactly; reuse them
    # rather than rounding the binary value a second time
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    mantissa = "".join(map(str, digits))
    if len(mantissa) > 1:
        mantissa = f"{mantissa[0]}.{mantissa[1:]}"
    return f"{'-' if sign else ''}{mantissa}e{exponent + len(digits) - 1:+03d}"


def format_float(value: float, precision: Optional[int] = None) -> str:
    """Format ``value`` in scientific notation.

    Without ``precision`` the shortest mantissa that reads back to the
    same double is used.
    """
    if not math.isfinite(value):
        return repr(value)
    if precision is None:
        return _shortest_scientific(value)
    return f"{value:.{precision}e}"
