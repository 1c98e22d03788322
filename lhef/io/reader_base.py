from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, Union


class Reader(ABC):
    """Path-based reader for one flavor of LHE file.

    Every call opens the file afresh, so iteration can be restarted by
    calling ``iter_events`` again.
    """

    @abstractmethod
    def read(self, path: Union[str, Path]) -> Any:
        ...

    @abstractmethod
    def iter_events(self, path: Union[str, Path]) -> Iterator[Any]:
        ...

    def read_run_header(self, path: Union[str, Path]) -> Any:
        """Optional fast path; default loads via read()."""
        return self.read(path).run_header
