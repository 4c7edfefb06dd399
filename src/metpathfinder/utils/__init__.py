"""Utility modules for result persistence."""

from metpathfinder.utils.fileio import (
    atomic_write_json,
    atomic_write_frame,
)

__all__ = [
    'atomic_write_json',
    'atomic_write_frame',
]
