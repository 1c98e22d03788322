"""lhef: LesHouchesEvents reader and writer with HELAC-NLO support."""

from __future__ import annotations

import logging

__version__ = "0.1.0"

from .convert import convert, info, read, validate, write
from .errors import (
    LheError,
    MalformedLine,
    MalformedNumber,
    MalformedStructure,
    ParseError,
    StreamFault,
    UnsupportedFormat,
)
from .io.lhe import LHEParser, ReaderConfig, WriterConfig, create_lhe, iter_lhe, open_lhe
from .models import Event, LheFile, MetadataBlock, Particle, ProcessInfo, RunHeader

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "convert",
    "read",
    "write",
    "info",
    "validate",
    "iter_lhe",
    "open_lhe",
    "create_lhe",
    "LHEParser",
    "ReaderConfig",
    "WriterConfig",
    "LheFile",
    "Event",
    "Particle",
    "RunHeader",
    "ProcessInfo",
    "MetadataBlock",
    "LheError",
    "StreamFault",
    "ParseError",
    "MalformedStructure",
    "MalformedLine",
    "MalformedNumber",
    "UnsupportedFormat",
]
