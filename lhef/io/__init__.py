from __future__ import annotations

from .registry import available_formats, get_reader, get_writer

__all__ = ["available_formats", "get_reader", "get_writer"]
