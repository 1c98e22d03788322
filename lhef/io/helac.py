"""Readers and writers for HELAC-NLO flavored LHE files.

These wrap the generic LHE reader/writer and narrow or widen every
record on the way through; see ``lhef.helac`` for the record layout.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Sequence, Union

from ..errors import UnsupportedFormat
from ..helac import (
    HelacEvent,
    HelacFile,
    HelacRunHeader,
    get_flavor,
    narrow_event,
    narrow_file,
    narrow_run_header,
    widen_event,
    widen_run_header,
)
from ..models import Event, LheFile, MetadataBlock, RunHeader
from .lhe import LHEReader, LHEWriter, PathLike, ReaderConfig, WriterConfig, open_lhe
from .reader_base import Reader
from .writer_base import Writer

logger = logging.getLogger(__name__)


def iter_helac(path: PathLike, flavor: str, *, config: ReaderConfig = ReaderConfig()) -> Iterator[HelacEvent]:
    """Stream the events of a HELAC-NLO file as typed views.

    The run header is narrowed first, so a file of the wrong flavor
    fails before any event is produced.
    """
    with open_lhe(path, config=config) as parser:
        narrow_run_header(parser.run_header, flavor)
        for event in parser:
            yield narrow_event(event, flavor)


class HelacReader(Reader):
    def __init__(self, flavor: str, config: ReaderConfig = ReaderConfig()) -> None:
        self.flavor = get_flavor(flavor).name
        self.config = config

    def iter_events(self, path: PathLike) -> Iterator[HelacEvent]:
        return iter_helac(path, self.flavor, config=self.config)

    def read(self, path: PathLike) -> HelacFile:
        return narrow_file(LHEReader(self.config).read(path), self.flavor)

    def read_run_header(self, path: PathLike) -> HelacRunHeader:
        with open_lhe(path, config=self.config) as parser:
            return narrow_run_header(parser.run_header, self.flavor)


class HelacWriter(Writer):
    """Writes HELAC-NLO files of one flavor.

    Typed views are widened back to generic records. Generic records are
    accepted too, provided their extra lines narrow to this flavor. A
    record of another flavor raises ``UnsupportedFormat``.
    """

    def __init__(self, flavor: str, config: WriterConfig = WriterConfig()) -> None:
        self.flavor = get_flavor(flavor).name
        self.config = config

    def _widen_run_header(self, run_header: Union[HelacRunHeader, RunHeader]) -> RunHeader:
        if not isinstance(run_header, HelacRunHeader):
            run_header = narrow_run_header(run_header, self.flavor)
        elif not isinstance(run_header.info, get_flavor(self.flavor).init_info):
            raise UnsupportedFormat(f"run header is not of HELAC-NLO flavor {self.flavor!r}")
        return widen_run_header(run_header, self.config.float_precision)

    def _widen_event(self, event: Union[HelacEvent, Event]) -> Event:
        if not isinstance(event, HelacEvent):
            event = narrow_event(event, self.flavor)
        elif not isinstance(event.info, get_flavor(self.flavor).event_info):
            raise UnsupportedFormat(f"event is not of HELAC-NLO flavor {self.flavor!r}")
        return widen_event(event, self.config.float_precision)

    def write(
        self,
        path: PathLike,
        events: Iterable[Union[HelacEvent, Event]],
        run_header: Union[HelacRunHeader, RunHeader],
        *,
        version: Optional[str] = None,
        metadata: Sequence[MetadataBlock] = (),
    ) -> int:
        # checked before the output file is created
        header = self._widen_run_header(run_header)
        logger.debug("writing HELAC-NLO %s records to %s", self.flavor, path)
        return LHEWriter(self.config).write(
            path,
            (self._widen_event(ev) for ev in events),
            header,
            version=version,
            metadata=metadata,
        )

    def write_file(self, path: PathLike, helac_file: Union[HelacFile, LheFile]) -> int:
        if isinstance(helac_file, HelacFile) and helac_file.flavor != self.flavor:
            raise UnsupportedFormat(
                f"cannot write a {helac_file.flavor!r} file as HELAC-NLO flavor {self.flavor!r}"
            )
        return self.write(
            path,
            helac_file.events,
            helac_file.run_header,
            version=helac_file.version,
            metadata=helac_file.metadata,
        )
