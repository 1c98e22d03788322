"""Exception hierarchy for lhef.

Parse failures derive from ValueError and I/O failures from OSError, so
callers that already catch the builtin categories keep working.
"""

from __future__ import annotations

from typing import Optional


class LheError(Exception):
    """Base class for all lhef errors."""


class StreamFault(LheError, OSError):
    """Reading from or writing to the underlying stream failed."""


class ParseError(LheError, ValueError):
    """The input is not a well-formed LHE document.

    Attributes:
        line_number: 1-based line on which the problem was detected.
        token: The offending token, when a single token is to blame.
    """

    def __init__(self, message: str, line_number: int = 0, token: Optional[str] = None) -> None:
        self.message = message
        self.line_number = line_number
        self.token = token
        super().__init__(message, line_number, token)

    def __str__(self) -> str:
        loc = f"line {self.line_number}: " if self.line_number else ""
        return f"{loc}{self.message}"


class MalformedStructure(ParseError):
    """Unexpected, mismatched or unclosed tag."""


class MalformedLine(ParseError):
    """A numeric line has the wrong number of fields.

    ``role`` is one of ``header``, ``process``, ``event-summary`` or
    ``particle``.
    """

    def __init__(self, message: str, line_number: int = 0, role: str = "") -> None:
        self.role = role
        super().__init__(message, line_number)

    def __reduce__(self):
        return (type(self), (self.message, self.line_number, self.role))


class MalformedNumber(ParseError):
    """A token could not be parsed as the expected numeric type."""


class UnsupportedFormat(LheError, ValueError):
    """A generic record does not carry the lines a specialization needs."""
