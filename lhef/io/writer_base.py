from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Union


class Writer(ABC):
    @abstractmethod
    def write(self, path: Union[str, Path], events: Iterable[Any], run_header: Any, **kwargs) -> int:
        ...

    def write_file(self, path: Union[str, Path], lhe_file: Any) -> int:
        return self.write(path, lhe_file.events, lhe_file.run_header)
