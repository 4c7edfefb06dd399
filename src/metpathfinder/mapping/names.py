"""
Compound name resolution

Maps user-supplied compound identifiers (common names, HMDB IDs, KEGG IDs,
...) to the canonical identifier space of a pathway library. The actual
name matching happens upstream; this module consumes its output table:

    query   hmdb         kegg
    Glucose HMDB0000122  C00031
    Foo     NaN          NaN

and selects the column matching the library namespace (``kegg`` for KEGG
libraries, ``hmdb`` for SMPDB libraries).

Validity rule shared by ORA and QEA: a row counts when its canonical ID is
present and has not already been claimed by an earlier row.

Examples:
    >>> from metpathfinder.mapping.names import TableNameResolver
    >>> resolver = TableNameResolver(name_map, LibraryNamespace.KEGG)
    >>> table = resolver.resolve(["Glucose", "Pyruvate", "Foo"])
    >>> query_compounds(table, LibraryNamespace.KEGG)
    ('C00031', 'C00022')
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import pandas as pd

from metpathfinder.core.library import LibraryNamespace
from metpathfinder.errors import InputError

logger = logging.getLogger(__name__)

__all__ = [
    'QUERY_COLUMN',
    'CANONICAL_COLUMN',
    'NameResolver',
    'TableNameResolver',
    'IdentityNameResolver',
    'valid_mappings',
    'query_compounds',
]

QUERY_COLUMN = "query"
CANONICAL_COLUMN = "canonical"


def _clean(value: object) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    if not text or text.upper() in ("NA", "NAN", "NONE"):
        return None
    return text


class NameResolver(ABC):
    """Abstract interface for compound name resolution"""

    @abstractmethod
    def resolve(self, identifiers: Sequence[str]) -> pd.DataFrame:
        """
        Resolve identifiers to canonical library IDs

        Args:
            identifiers: User compound identifiers in input order

        Returns:
            DataFrame with columns ``query`` and ``canonical``, one row per
            input identifier in input order. Unmapped identifiers have
            ``canonical`` = NA.
        """
        pass


class TableNameResolver(NameResolver):
    """
    Serves a precomputed name-mapping table.

    Args:
        table: Mapping table with a ``query`` column and one column per
            namespace (``kegg``, ``hmdb``)
        namespace: Library namespace selecting the canonical column
    """

    def __init__(self, table: pd.DataFrame, namespace: LibraryNamespace = LibraryNamespace.KEGG):
        namespace = LibraryNamespace(namespace)
        column = namespace.name_map_column
        missing = {QUERY_COLUMN, column} - set(table.columns)
        if missing:
            raise ValueError(
                f"Name map is missing column(s) {sorted(missing)}; "
                f"found {list(table.columns)}"
            )
        self.namespace = namespace
        self._table = table
        self._lookup: dict[str, Optional[str]] = {}
        for query, canonical in zip(table[QUERY_COLUMN], table[column]):
            key = _clean(query)
            if key is not None and key not in self._lookup:
                self._lookup[key] = _clean(canonical)

    def resolve(self, identifiers: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Resolve ``identifiers``; with None, resolve every row of the table."""
        if identifiers is None:
            identifiers = [q for q in self._table[QUERY_COLUMN]]
        queries = [_clean(x) for x in identifiers]
        canonical = [self._lookup.get(q) if q is not None else None for q in queries]
        n_mapped = sum(c is not None for c in canonical)
        logger.info(f"Resolved {n_mapped}/{len(queries)} compound names to {self.namespace.label} IDs")
        return pd.DataFrame({
            QUERY_COLUMN: [q if q is not None else str(x) for q, x in zip(queries, identifiers)],
            CANONICAL_COLUMN: pd.Series(canonical, dtype=object),
        })


class IdentityNameResolver(NameResolver):
    """Treats identifiers as already canonical (blank entries are unmapped)."""

    def resolve(self, identifiers: Sequence[str]) -> pd.DataFrame:
        canonical = [_clean(x) for x in identifiers]
        return pd.DataFrame({
            QUERY_COLUMN: [str(x) for x in identifiers],
            CANONICAL_COLUMN: pd.Series(canonical, dtype=object),
        })


def valid_mappings(name_map: pd.DataFrame) -> pd.DataFrame:
    """
    Rows with a canonical ID that no earlier row already claimed.

    Args:
        name_map: Output of ``NameResolver.resolve``

    Returns:
        Filtered copy, original row order preserved
    """
    canonical = name_map[CANONICAL_COLUMN]
    keep = canonical.notna() & ~canonical.duplicated(keep='first')
    return name_map.loc[keep].reset_index(drop=True)


def query_compounds(
    name_map: pd.DataFrame,
    namespace: LibraryNamespace = LibraryNamespace.KEGG,
) -> tuple[str, ...]:
    """
    Deduplicated canonical query set for over-representation analysis.

    Raises:
        InputError: If no identifier resolved to a valid compound
    """
    compounds = tuple(valid_mappings(name_map)[CANONICAL_COLUMN])
    if not compounds:
        raise InputError(f"No valid {LibraryNamespace(namespace).label} compounds found!")
    return compounds
