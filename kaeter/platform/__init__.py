"""Operating system adapters: process execution and file writes."""

from __future__ import annotations

from .files import atomic_write_text
from .process import ProcessError, ProcessRunner, SubprocessRunner, run, run_live

__all__ = [
    "ProcessError",
    "ProcessRunner",
    "SubprocessRunner",
    "atomic_write_text",
    "run",
    "run_live",
]
