"""
Reference metabolome filtering.

When a background compound set is supplied (e.g. every compound the
platform can measure), each pathway keeps only members in that set and
the universe shrinks to the union of the restricted member lists. ORA and
QEA apply the same filter before hit counting, and the filtered library
is kept on the analysis context so hit highlighting uses the same
membership as the statistics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from metpathfinder.core.library import PathwayLibrary

logger = logging.getLogger(__name__)

__all__ = ['FilteredLibrary', 'ReferenceFilter']


@dataclass(frozen=True)
class FilteredLibrary:
    """
    Library as seen by one analysis run.

    Attributes:
        library: Pathway definitions (restricted when ``active``)
        universe_size: Distinct compounds across ``library`` member lists
        active: Whether a reference metabolome was applied
    """

    library: PathwayLibrary
    universe_size: int
    active: bool = False


class ReferenceFilter:
    """
    Optional restriction of a pathway library to a reference metabolome.

    A missing or empty reference set leaves the filter inactive.

    Examples:
        >>> ref = ReferenceFilter(["C00031", "C00022"])
        >>> filtered = ref.apply(library)
        >>> filtered.universe_size
        2
    """

    def __init__(self, reference: Optional[Iterable[str]] = None):
        compounds = (str(c).strip() for c in (() if reference is None else reference))
        self.reference = frozenset(c for c in compounds if c)

    @property
    def active(self) -> bool:
        return bool(self.reference)

    def apply(self, library: PathwayLibrary) -> FilteredLibrary:
        if not self.active:
            return FilteredLibrary(library=library, universe_size=library.universe_size)

        restricted = library.restrict(self.reference)
        universe_size = restricted.universe_size
        logger.info(
            f"Reference metabolome ({len(self.reference)} compounds) restricts the "
            f"universe from {library.universe_size} to {universe_size} compounds"
        )
        if universe_size == 0:
            logger.warning("Reference metabolome shares no compounds with the pathway library")
        return FilteredLibrary(library=restricted, universe_size=universe_size, active=True)
