"""
Exception taxonomy for pathway analysis runs.

Per-compound failures never reach these classes: a compound whose model
cannot be fitted is recorded as NaN and the run continues. Everything
below aborts the run, and no result table is written.
"""

from __future__ import annotations

__all__ = [
    'PathwayAnalysisError',
    'InputError',
    'ComputationError',
    'DataAlignmentError',
]


class PathwayAnalysisError(Exception):
    """Base class for failures that abort an analysis run."""


class InputError(PathwayAnalysisError):
    """Query or abundance input has nothing usable (empty or fully unmapped)."""


class ComputationError(PathwayAnalysisError):
    """A pathway-level statistical test failed for the whole run."""


class DataAlignmentError(PathwayAnalysisError):
    """Per-pathway vectors no longer share the same pathway order."""
