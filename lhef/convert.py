"""High-level read/write/convert/info API."""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from functools import partial
from pathlib import Path
from typing import Optional, Union

from .helac import FLAVORS, HelacFile, get_flavor, narrow_event, narrow_run_header, widen_event, widen_run_header
from .io.helac import HelacReader, HelacWriter
from .io.lhe import LHEReader, LHEWriter, ReaderConfig, WriterConfig, create_lhe, open_lhe
from .io.registry import get_reader, get_writer, register
from .models import LheFile
from .pdg import name as pdg_name
from .validation import ValidationReport, validate_stream

logger = logging.getLogger(__name__)

register("lhe", LHEReader, LHEWriter)
for _name in FLAVORS:
    register(f"helac-{_name}", partial(HelacReader, _name), partial(HelacWriter, _name))

_PROGRESS_EVERY = 10000


def read(
    filepath: Union[str, Path],
    flavor: str = "lhe",
    *,
    config: ReaderConfig = ReaderConfig(),
) -> Union[LheFile, HelacFile]:
    """Read a whole file into memory.

    ``flavor`` is ``"lhe"`` for the generic model or one of
    ``"helac-rs"``, ``"helac-i"``, ``"helac-kp"``, ``"helac-1loop"``.
    """
    return get_reader(flavor, config=config).read(filepath)


def write(
    filepath: Union[str, Path],
    lhe_file: Union[LheFile, HelacFile],
    flavor: Optional[str] = None,
    *,
    config: WriterConfig = WriterConfig(),
) -> int:
    """Write a file; returns the number of events written.

    The flavor defaults to the one matching the type of ``lhe_file``.
    """
    if flavor is None:
        flavor = f"helac-{lhe_file.flavor}" if isinstance(lhe_file, HelacFile) else "lhe"
    return get_writer(flavor, config=config).write_file(filepath, lhe_file)


def convert(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    *,
    flavor: Optional[str] = None,
    max_events: int = -1,
    validate: bool = False,
    momentum_tolerance: float = 1e-4,
    strict_validation: bool = False,
    reader_config: ReaderConfig = ReaderConfig(),
    writer_config: WriterConfig = WriterConfig(),
) -> dict:
    """Copy an LHE file, re-serializing every record.

    This is streaming: events are never materialised into a full list.
    Metadata blocks are copied to the same place they had in the input.
    With a HELAC-NLO ``flavor`` each record is narrowed and widened
    again, which fails on input of the wrong flavor.
    """
    if flavor is not None:
        flavor = get_flavor(flavor).name
    precision = writer_config.float_precision
    report = ValidationReport() if validate else None

    logger.info("Reading %s", input_path)
    with open_lhe(input_path, config=reader_config) as parser:
        run_header = parser.run_header
        if flavor is not None:
            run_header = widen_run_header(narrow_run_header(run_header, flavor), precision)

        events = parser if max_events < 0 else itertools.islice(parser, max_events)
        if flavor is not None:
            events = (widen_event(narrow_event(ev, flavor), precision) for ev in events)
        if validate:
            events = validate_stream(
                events,
                report=report,
                momentum_tolerance=momentum_tolerance,
                strict=strict_validation,
            )

        logger.info("Writing %s", output_path)
        n_metadata = len(parser.metadata)
        with create_lhe(output_path, config=writer_config) as writer:
            writer.begin(run_header, version=parser.version, metadata=parser.metadata)
            for event in events:
                # blocks the parser met on the way to this event
                for block in parser.take_pending():
                    writer.write_metadata(block)
                    n_metadata += 1
                writer.write_event(event)
                if writer.n_events % _PROGRESS_EVERY == 0:
                    logger.info("  %d events", writer.n_events)
            for block in parser.take_pending():
                writer.write_metadata(block)
                n_metadata += 1
            writer.end()

    logger.info("Wrote %d events", writer.n_events)
    if report is not None:
        logger.info("Validation: %s", report.summary())

    return {
        "n_events": writer.n_events,
        "n_metadata": n_metadata,
        "flavor": f"helac-{flavor}" if flavor else "lhe",
        "validation": report.to_dict() if report is not None else None,
    }


def info(filepath: Union[str, Path], *, config: ReaderConfig = ReaderConfig()) -> dict:
    """Summarize a file in one streaming pass."""
    n_events = 0
    total_particles = 0
    total_weight = 0.0
    pdg_counts: Counter = Counter()
    status_counts: Counter = Counter()

    with open_lhe(filepath, config=config) as parser:
        run_header = parser.run_header
        n_metadata = len(parser.metadata)
        for ev in parser:
            n_metadata += len(parser.take_pending())
            n_events += 1
            total_weight += ev.weight
            total_particles += ev.n_particles
            for p in ev.particles:
                pdg_counts[p.pdg_id] += 1
                status_counts[p.status] += 1
        n_metadata += len(parser.take_pending())

    top_named = [(pdg_name(pid), count) for pid, count in pdg_counts.most_common(20)]

    return {
        "version": parser.version,
        "n_events": n_events,
        "n_metadata": n_metadata,
        "total_particles": total_particles,
        "avg_particles_per_event": total_particles / max(1, n_events),
        "sum_of_weights": total_weight,
        "beam_pdg_id": run_header.beam_pdg_id,
        "beam_energy": run_header.beam_energy,
        "pdf_set": run_header.pdf_set,
        "weighting_strategy": run_header.weighting_strategy,
        "processes": [
            {
                "process_id": proc.process_id,
                "cross_section": proc.cross_section,
                "cross_section_error": proc.cross_section_error,
            }
            for proc in run_header.processes
        ],
        "top_particles": top_named,
        "status_counts": dict(sorted(status_counts.items())),
    }


def validate(
    path_or_file: Union[str, Path, LheFile, HelacFile],
    *,
    config: ReaderConfig = ReaderConfig(),
    **kwargs,
) -> ValidationReport:
    """Validate a file on disk (streamed) or an in-memory file.

    Keyword arguments are forwarded to ``validate_stream``.
    """
    report = ValidationReport()
    if isinstance(path_or_file, (str, Path)):
        with open_lhe(path_or_file, config=config) as parser:
            for _ in validate_stream(parser, report=report, **kwargs):
                pass
        return report
    events = path_or_file.events
    if isinstance(path_or_file, HelacFile):
        events = [ev.event for ev in events]
    for _ in validate_stream(events, report=report, **kwargs):
        pass
    return report
