"""
AnalysisContext: the immutable state threaded through an analysis run.

Each stage receives a context and returns a new one via ``evolve``;
nothing accumulates on a shared session object. The final context of a
run carries the result table plus the secondary artifacts the report
layer needs (filtered library, per-pathway hits, univariate p-values,
method description messages).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from metpathfinder.core.library import ImportanceMetric, PathwayLibrary

if TYPE_CHECKING:
    import pandas as pd
    from metpathfinder.enrichment.types import ResultTable

__all__ = ['AnalysisKind', 'AnalysisContext', 'pathway_membership']


class AnalysisKind(Enum):
    """Which pipeline produced a context."""

    ORA = "pathora"
    QEA = "pathqea"


@dataclass(frozen=True)
class AnalysisContext:
    """
    Immutable snapshot of one analysis run.

    Attributes:
        kind: ORA or QEA
        library: Pathway library after reference filtering
        universe_size: Number of distinct compounds in ``library``
        metric: Node importance measure used for Impact
        method: OraMethod or QeaMethod member
        query: ORA query compound IDs, or QEA mapped abundance columns
        reference_filtered: Whether a reference metabolome was applied
        hits: Pathway ID -> hit compounds (library member order)
        univariate_p: QEA per-compound p-values (None for ORA)
        result: Final ranked table (None until the run completes)
        messages: Human-readable method descriptions for reports
    """

    kind: AnalysisKind
    library: PathwayLibrary
    universe_size: int
    metric: ImportanceMetric
    method: Enum
    query: tuple[str, ...] = ()
    reference_filtered: bool = False
    hits: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    univariate_p: pd.Series | None = None
    result: ResultTable | None = None
    messages: tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.hits, MappingProxyType):
            object.__setattr__(self, 'hits', MappingProxyType(dict(self.hits)))
        object.__setattr__(self, 'query', tuple(self.query))

    def evolve(self, **changes: object) -> AnalysisContext:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    @property
    def query_size(self) -> int:
        return len(self.query)

    @property
    def is_complete(self) -> bool:
        return self.result is not None

    def membership(self, pathway_id: str) -> list[tuple[str, bool]]:
        """
        Filtered members of a pathway, each flagged as hit or not.

        Uses the same filtered membership the statistics were computed on,
        so highlighting agrees with the reported hit counts.
        """
        hits = set(self.hits.get(pathway_id, ()))
        return [(cmpd, cmpd in hits) for cmpd in self.library.members(pathway_id)]


def pathway_membership(context: AnalysisContext, pathway_id: str) -> list[tuple[str, bool]]:
    """Hit-flagged filtered members of ``pathway_id`` (see ``AnalysisContext.membership``)."""
    return context.membership(pathway_id)
