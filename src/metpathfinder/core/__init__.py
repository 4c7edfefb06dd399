"""Core data structures: pathway library and analysis context."""

from metpathfinder.core.library import (
    ImportanceMetric,
    LibraryNamespace,
    PathwayRecord,
    PathwayLibrary,
)
from metpathfinder.core.context import AnalysisContext, AnalysisKind, pathway_membership

__all__ = [
    'ImportanceMetric',
    'LibraryNamespace',
    'PathwayRecord',
    'PathwayLibrary',
    'AnalysisContext',
    'AnalysisKind',
    'pathway_membership',
]
