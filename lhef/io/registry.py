from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .reader_base import Reader
from .writer_base import Writer


@dataclass(frozen=True)
class FormatHandlers:
    reader: Callable[..., Reader]
    writer: Callable[..., Writer]


_REGISTRY: dict[str, FormatHandlers] = {}


def register(fmt: str, reader: Callable[..., Reader], writer: Callable[..., Writer]) -> None:
    _REGISTRY[fmt] = FormatHandlers(reader=reader, writer=writer)


def available_formats() -> list[str]:
    return sorted(_REGISTRY)


def get_reader(fmt: str, **kwargs) -> Reader:
    if fmt not in _REGISTRY:
        raise ValueError(f"No reader registered for format: {fmt}")
    return _REGISTRY[fmt].reader(**kwargs)


def get_writer(fmt: str, **kwargs) -> Writer:
    if fmt not in _REGISTRY:
        raise ValueError(f"No writer registered for format: {fmt}")
    return _REGISTRY[fmt].writer(**kwargs)
