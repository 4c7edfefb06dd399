"""
Over-representation analysis (ORA) with topological impact.

For every pathway P of the (filtered) library:

    hits(P)   = query compounds that are members of P
    Total     = |members(P)|                     (set.num)
    Expected  = q.size * set.num / uniq.count
    Raw p     = P(X >= hits) under the chosen test
    Impact    = sum of node importance over hits(P)

Statistical Methods:
    Hypergeometric test:
        Population uniq.count, set.num successes, q.size draws.
        P(X >= k) is the survival function evaluated at k - 1; evaluating
        at k would give P(X >= k + 1) and understate significance.

    Fisher's exact test (one-sided, enrichment):
                        In pathway          Not in pathway
        In query        k                   q.size - k
        Not in query    set.num - k         uniq.count - set.num - q.size + k

    Both give the same p-value for the same table.

Zero-hit pathways and pathways with undefined impact are removed before
Holm/FDR correction; the surviving rows are ranked by raw p, ties by
ascending Impact.

Examples:
    >>> context = compute_ora(
    ...     ["C00031", "C00022", "C00186"],
    ...     library,
    ...     metric=ImportanceMetric.RELATIVE_BETWEENNESS,
    ...     method=OraMethod.HYPERGEOMETRIC,
    ... )
    >>> context.result.labeled().head()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.stats import fisher_exact, hypergeom

from metpathfinder.core.context import AnalysisContext, AnalysisKind
from metpathfinder.core.library import ImportanceMetric, PathwayLibrary
from metpathfinder.enrichment.correction import correct_pvalues
from metpathfinder.enrichment.filtering import FilteredLibrary, ReferenceFilter
from metpathfinder.enrichment.hits import compute_impact, count_hits
from metpathfinder.enrichment.ranking import ResultRanker
from metpathfinder.enrichment.types import ORA_COLUMNS, OraMethod, ResultTable
from metpathfinder.errors import InputError
from metpathfinder.mapping.names import query_compounds

logger = logging.getLogger(__name__)

__all__ = [
    'OverRepresentationTest',
    'HypergeometricTest',
    'FisherExactTest',
    'get_ora_test',
    'compute_ora',
    'run_ora',
]


def _invalid_tables(
    hit_num: NDArray[np.int64],
    set_num: NDArray[np.int64],
    query_size: int,
    universe_size: int,
) -> NDArray[np.bool_]:
    """Pathways whose 2x2 table has a negative cell (query exceeds the universe)."""
    b = query_size - hit_num
    c = set_num - hit_num
    d = universe_size - set_num - query_size + hit_num
    return (b < 0) | (c < 0) | (d < 0)


class OverRepresentationTest(ABC):
    """
    Base class for vectorized over-representation tests.

    Subclasses compute one raw p-value per pathway from hit counts.
    Pathways with an impossible contingency table get NaN.
    """

    method: OraMethod

    @abstractmethod
    def pvalues(
        self,
        hit_num: NDArray[np.int64],
        set_num: NDArray[np.int64],
        query_size: int,
        universe_size: int,
    ) -> NDArray[np.float64]:
        """
        Raw enrichment p-values.

        Args:
            hit_num: Query compounds in each pathway
            set_num: Pathway sizes
            query_size: Size of the query set (q.size)
            universe_size: Population size (uniq.count)

        Returns:
            P(X >= hit_num) per pathway; NaN where undefined
        """
        raise NotImplementedError


class HypergeometricTest(OverRepresentationTest):
    """
    Hypergeometric upper tail.

    Statistical Model:
        - Population of N compounds (universe)
        - M compounds in pathway
        - Drew n compounds (query)
        - Found k compounds in pathway
        - P(X >= k | N, M, n) = hypergeom.sf(k - 1, N, M, n)
    """

    method = OraMethod.HYPERGEOMETRIC

    def pvalues(self, hit_num, set_num, query_size, universe_size):
        hit_num = np.asarray(hit_num, dtype=np.int64)
        set_num = np.asarray(set_num, dtype=np.int64)
        pvalues = hypergeom.sf(hit_num - 1, universe_size, set_num, query_size)
        pvalues = np.asarray(pvalues, dtype=np.float64)
        pvalues[_invalid_tables(hit_num, set_num, query_size, universe_size)] = np.nan
        return pvalues


class FisherExactTest(OverRepresentationTest):
    """
    One-sided Fisher's exact test (alternative='greater') per pathway.

    Equivalent to the hypergeometric test; kept as a separate method
    because users select it by name.
    """

    method = OraMethod.FISHER

    def pvalues(self, hit_num, set_num, query_size, universe_size):
        hit_num = np.asarray(hit_num, dtype=np.int64)
        set_num = np.asarray(set_num, dtype=np.int64)
        invalid = _invalid_tables(hit_num, set_num, query_size, universe_size)
        pvalues = np.full(len(hit_num), np.nan, dtype=np.float64)
        for i, (k, m) in enumerate(zip(hit_num, set_num)):
            if invalid[i]:
                continue
            table = [
                [int(k), int(query_size - k)],
                [int(m - k), int(universe_size - m - query_size + k)],
            ]
            _, pvalue = fisher_exact(table, alternative='greater')
            pvalues[i] = pvalue
        return pvalues


_TESTS: dict[OraMethod, type[OverRepresentationTest]] = {
    OraMethod.HYPERGEOMETRIC: HypergeometricTest,
    OraMethod.FISHER: FisherExactTest,
}


def get_ora_test(method: Union[OraMethod, str]) -> OverRepresentationTest:
    """Instantiate the test for ``method`` ("fisher" or "hyperg")."""
    return _TESTS[OraMethod(method)]()


def _resolve_library(
    library: Union[PathwayLibrary, FilteredLibrary],
    reference: Optional[Iterable[str]],
) -> FilteredLibrary:
    if isinstance(library, FilteredLibrary):
        if reference is not None:
            raise ValueError("Pass a reference set or a FilteredLibrary, not both")
        return library
    return ReferenceFilter(reference).apply(library)


def compute_ora(
    query: Iterable[str],
    library: Union[PathwayLibrary, FilteredLibrary],
    metric: Union[ImportanceMetric, str] = ImportanceMetric.RELATIVE_BETWEENNESS,
    method: Union[OraMethod, str] = OraMethod.HYPERGEOMETRIC,
    reference: Optional[Iterable[str]] = None,
) -> AnalysisContext:
    """
    Over-representation analysis of a compound list.

    Args:
        query: Canonical compound IDs (deduplicated here, order kept)
        library: Pathway library, or one already passed through ReferenceFilter
        metric: Node importance for Impact ("rbc" or "dgr")
        method: "fisher" or "hyperg"
        reference: Optional reference metabolome (ignored when empty)

    Returns:
        Completed AnalysisContext; ``result`` holds the ranked table and
        ``hits`` the hit compounds of every pathway

    Raises:
        InputError: If the query is empty or the universe is empty
    """
    metric = ImportanceMetric(metric)
    method = OraMethod(method)
    query = tuple(dict.fromkeys(str(c) for c in query))

    filtered = _resolve_library(library, reference)
    namespace = filtered.library.namespace
    if not query:
        raise InputError(f"No valid {namespace.label} compounds found!")
    if filtered.universe_size == 0:
        raise InputError("Pathway universe is empty after reference filtering")

    q_size = len(query)
    uniq_count = filtered.universe_size
    logger.info(
        f"ORA: {q_size} query compounds, {len(filtered.library)} pathways, "
        f"universe {uniq_count} compounds ({method.description})"
    )

    hit_table = count_hits(filtered.library, query)
    hit_num = hit_table.hit_num
    set_num = hit_table.set_num

    raw_p = get_ora_test(method).pvalues(hit_num, set_num, q_size, uniq_count)
    with np.errstate(divide='ignore', invalid='ignore'):
        log_p = -np.log(raw_p)

    frame = pd.DataFrame(
        {
            "Total": set_num,
            "Expected": q_size * (set_num / uniq_count),
            "Hits": hit_num,
            "Raw p": raw_p,
            "-log(p)": log_p,
            "Holm adjust": np.nan,
            "FDR": np.nan,
            "Impact": compute_impact(filtered.library, hit_table, metric),
        },
        index=pd.Index(hit_table.pathway_ids, name=None),
        columns=list(ORA_COLUMNS),
    )

    ranker = ResultRanker(AnalysisKind.ORA)
    frame = ranker.drop_unusable(frame)
    holm, fdr = correct_pvalues(frame["Raw p"].to_numpy())
    frame["Holm adjust"] = holm
    frame["FDR"] = fdr
    frame = ranker.rank(frame)

    logger.info(f"ORA: {len(frame)} pathways with hits reported")

    table = ResultTable(
        kind=AnalysisKind.ORA,
        frame=frame,
        names=tuple(filtered.library.display_names(frame.index)),
    )
    return AnalysisContext(
        kind=AnalysisKind.ORA,
        library=filtered.library,
        universe_size=uniq_count,
        metric=metric,
        method=method,
        query=query,
        reference_filtered=filtered.active,
        hits=hit_table.as_mapping(),
        result=table,
        messages=(
            f"The selected over-representation analysis method is {method.description}.",
            f"Your selected node importance measure for topological analysis is {metric.description}.",
        ),
    )


def run_ora(
    name_map: pd.DataFrame,
    library: PathwayLibrary,
    metric: Union[ImportanceMetric, str] = ImportanceMetric.RELATIVE_BETWEENNESS,
    method: Union[OraMethod, str] = OraMethod.HYPERGEOMETRIC,
    reference: Optional[Iterable[str]] = None,
) -> AnalysisContext:
    """
    ORA starting from a resolved name map.

    Uses the valid, deduplicated canonical IDs of ``name_map`` as the query.

    Raises:
        InputError: If no name resolved to a valid compound
    """
    query = query_compounds(name_map, library.namespace)
    return compute_ora(query, library, metric=metric, method=method, reference=reference)
