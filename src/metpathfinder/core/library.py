"""
Read-only pathway library.

A library is a fixed, ordered collection of pathway definitions. Each
pathway has a member compound list and two precomputed node-importance
maps derived from the pathway graph:

    rbc: relative betweenness centrality
    dgr: out-degree centrality

The graph algorithms producing these weights are not part of this
package; the weights arrive precomputed with the library file.

Libraries are shared reference data. Nothing in the analysis engines
mutates a library; restricting to a reference metabolome returns a new
library (see ``PathwayLibrary.restrict``).

Examples:
    >>> record = PathwayRecord(
    ...     pathway_id="hsa00010",
    ...     name="Glycolysis / Gluconeogenesis",
    ...     members=("C00031", "C00022", "C00186"),
    ...     importance={
    ...         ImportanceMetric.RELATIVE_BETWEENNESS: {"C00031": 0.1, "C00022": 0.4, "C00186": 0.0},
    ...         ImportanceMetric.OUT_DEGREE: {"C00031": 0.2, "C00022": 0.3, "C00186": 0.1},
    ...     },
    ... )
    >>> library = PathwayLibrary([record], namespace=LibraryNamespace.KEGG)
    >>> library.universe_size
    3
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

__all__ = [
    'ImportanceMetric',
    'LibraryNamespace',
    'PathwayRecord',
    'PathwayLibrary',
]


class ImportanceMetric(Enum):
    """
    Node importance measure used for the topological impact score.

    Attributes:
        RELATIVE_BETWEENNESS: Relative betweenness centrality ("rbc")
        OUT_DEGREE: Out-degree centrality ("dgr")
    """

    RELATIVE_BETWEENNESS = "rbc"
    OUT_DEGREE = "dgr"

    @property
    def description(self) -> str:
        if self is ImportanceMetric.RELATIVE_BETWEENNESS:
            return "relative betweenness centrality"
        return "out degree centrality"


class LibraryNamespace(Enum):
    """
    Compound identifier space of a pathway library.

    ``name_map_column`` is the column of a name-mapping table holding
    identifiers in this namespace.
    """

    KEGG = "kegg"
    SMPDB = "smpdb"

    @property
    def name_map_column(self) -> str:
        return "kegg" if self is LibraryNamespace.KEGG else "hmdb"

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class PathwayRecord:
    """
    One pathway definition.

    Attributes:
        pathway_id: Stable pathway identifier (e.g. "hsa00010")
        name: Display name used as the row label of exported tables
        members: Ordered member compound IDs (duplicates removed)
        importance: Per-metric map from compound ID to non-negative weight.
            A member missing from a map has undefined importance.
        xrefs: Cross-reference identifiers by database (e.g. {"smpdb": ("SMP00031",)})
    """

    pathway_id: str
    name: str
    members: tuple[str, ...]
    importance: Mapping[ImportanceMetric, Mapping[str, float]] = field(default_factory=dict)
    xrefs: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        members = tuple(dict.fromkeys(str(m) for m in self.members))
        object.__setattr__(self, 'members', members)

        importance = {}
        for metric, weights in self.importance.items():
            metric = ImportanceMetric(metric)
            weights = {str(k): float(v) for k, v in weights.items()}
            negative = [k for k, v in weights.items() if v < 0]
            if negative:
                raise ValueError(
                    f"Pathway {self.pathway_id}: negative {metric.value} importance "
                    f"for {negative[:5]}"
                )
            importance[metric] = MappingProxyType(weights)
        object.__setattr__(self, 'importance', MappingProxyType(importance))

        xrefs = {str(db): tuple(ids) for db, ids in self.xrefs.items()}
        object.__setattr__(self, 'xrefs', MappingProxyType(xrefs))

    @property
    def size(self) -> int:
        return len(self.members)

    def weights(self, metric: ImportanceMetric) -> Mapping[str, float]:
        """Importance map for ``metric`` (empty if the library lacks it)."""
        return self.importance.get(metric, MappingProxyType({}))

    def with_members(self, members: Iterable[str]) -> PathwayRecord:
        """Copy of this record with a different member list."""
        return PathwayRecord(
            pathway_id=self.pathway_id,
            name=self.name,
            members=tuple(members),
            importance=self.importance,
            xrefs=self.xrefs,
        )


class PathwayLibrary:
    """
    Ordered, read-only collection of PathwayRecord objects.

    Iteration order is the library order; every per-pathway vector
    computed by the engines follows it.

    Args:
        records: Pathway definitions in library order
        namespace: Compound identifier namespace of all member IDs
        name: Optional library name (e.g. "hsa" or "KEGG human")
    """

    def __init__(
        self,
        records: Iterable[PathwayRecord],
        namespace: LibraryNamespace = LibraryNamespace.KEGG,
        name: str = "",
    ):
        self._records: dict[str, PathwayRecord] = {}
        for record in records:
            if record.pathway_id in self._records:
                raise ValueError(f"Duplicate pathway ID in library: {record.pathway_id}")
            self._records[record.pathway_id] = record
        self.namespace = LibraryNamespace(namespace)
        self.name = name

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PathwayRecord]:
        return iter(self._records.values())

    def __contains__(self, pathway_id: object) -> bool:
        return pathway_id in self._records

    def __getitem__(self, pathway_id: str) -> PathwayRecord:
        try:
            return self._records[pathway_id]
        except KeyError:
            raise KeyError(f"Unknown pathway: {pathway_id}") from None

    def __repr__(self) -> str:
        return (
            f"PathwayLibrary(name={self.name!r}, namespace={self.namespace.value}, "
            f"n_pathways={len(self)}, universe={self.universe_size})"
        )

    def all_ids(self) -> tuple[str, ...]:
        return tuple(self._records)

    def members(self, pathway_id: str) -> tuple[str, ...]:
        return self[pathway_id].members

    def importance(self, metric: ImportanceMetric, pathway_id: str) -> Mapping[str, float]:
        return self[pathway_id].weights(ImportanceMetric(metric))

    def display_name(self, pathway_id: str) -> str:
        return self[pathway_id].name

    def display_names(self, pathway_ids: Iterable[str]) -> list[str]:
        return [self.display_name(pid) for pid in pathway_ids]

    def universe(self) -> frozenset[str]:
        """Union of all member compound IDs."""
        compounds: set[str] = set()
        for record in self:
            compounds.update(record.members)
        return frozenset(compounds)

    @property
    def universe_size(self) -> int:
        return len(self.universe())

    def restrict(self, allowed: Iterable[str]) -> PathwayLibrary:
        """
        New library whose member lists keep only compounds in ``allowed``.

        Member order and pathway order are preserved. Pathways are kept
        even when they lose every member; downstream hit counting drops
        them.
        """
        allowed = frozenset(allowed)
        return PathwayLibrary(
            (r.with_members(m for m in r.members if m in allowed) for r in self),
            namespace=self.namespace,
            name=self.name,
        )
