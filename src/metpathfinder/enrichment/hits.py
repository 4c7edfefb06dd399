"""
Per-pathway hit counting and topological impact.

Every vector here is aligned to ``HitTable.pathway_ids``. Subsetting a
HitTable subsets all of its vectors together, and impact is always
computed from a HitTable, so hit sets and impact scores cannot drift out
of order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

import numpy as np
from numpy.typing import NDArray

from metpathfinder.core.library import ImportanceMetric, PathwayLibrary

__all__ = ['HitTable', 'count_hits', 'compute_impact']


@dataclass(frozen=True)
class HitTable:
    """
    Intersections of a compound set with every pathway of a library.

    Attributes:
        pathway_ids: Pathways in library order
        hits: Hit compounds per pathway, in library member order
        set_num: Pathway sizes (after reference filtering)
    """

    pathway_ids: tuple[str, ...]
    hits: tuple[tuple[str, ...], ...]
    set_num: NDArray[np.int64]

    def __post_init__(self):
        if not (len(self.pathway_ids) == len(self.hits) == len(self.set_num)):
            raise ValueError("HitTable vectors must have equal length")

    def __len__(self) -> int:
        return len(self.pathway_ids)

    @property
    def hit_num(self) -> NDArray[np.int64]:
        return np.array([len(h) for h in self.hits], dtype=np.int64)

    def as_mapping(self) -> dict[str, tuple[str, ...]]:
        return dict(zip(self.pathway_ids, self.hits))

    def subset(self, mask: NDArray[np.bool_]) -> HitTable:
        """Rows where ``mask`` is True, order preserved."""
        mask = np.asarray(mask, dtype=bool)
        idx = np.flatnonzero(mask)
        return HitTable(
            pathway_ids=tuple(self.pathway_ids[i] for i in idx),
            hits=tuple(self.hits[i] for i in idx),
            set_num=self.set_num[idx],
        )

    def nonempty(self) -> HitTable:
        return self.subset(self.hit_num > 0)


def count_hits(library: PathwayLibrary, compounds: Iterable[str]) -> HitTable:
    """
    Intersect ``compounds`` with each pathway's member list.

    Args:
        library: (Possibly filtered) pathway library
        compounds: Query compound IDs or mapped abundance columns

    Returns:
        HitTable in library order, zero-hit pathways included
    """
    compounds = frozenset(compounds)
    pathway_ids = []
    hits = []
    set_num = []
    for record in library:
        pathway_ids.append(record.pathway_id)
        hits.append(tuple(m for m in record.members if m in compounds))
        set_num.append(record.size)
    return HitTable(
        pathway_ids=tuple(pathway_ids),
        hits=tuple(hits),
        set_num=np.asarray(set_num, dtype=np.int64),
    )


def _impact(weights: Mapping[str, float], hits: tuple[str, ...]) -> float:
    total = 0.0
    for cmpd in hits:
        if cmpd not in weights:
            return float('nan')
        total += weights[cmpd]
    return total


def compute_impact(
    library: PathwayLibrary,
    hit_table: HitTable,
    metric: ImportanceMetric,
) -> NDArray[np.float64]:
    """
    Sum of node importance over each pathway's hits.

    A hit without an importance entry makes that pathway's impact NaN
    (undefined); such pathways are dropped from result tables.
    """
    metric = ImportanceMetric(metric)
    return np.array(
        [_impact(library.importance(metric, pid), hits)
         for pid, hits in zip(hit_table.pathway_ids, hit_table.hits)],
        dtype=np.float64,
    )
