"""
Quantitative enrichment analysis (QEA) with topological impact.

Input is an abundance table (samples x compounds, typically normalized)
with one class label per sample. The run:

    1. Keeps abundance columns whose name resolves to a valid, unique
       canonical ID, renamed to that ID
    2. Fits a per-compound linear model (labels ~ abundance) and keeps
       its F-test p-value for node-level display
    3. Applies the reference metabolome filter
    4. Intersects each pathway with the measured compounds; pathways
       without measured members are dropped
    5. Runs one group test (global test or global ANCOVA) over all
       remaining pathways
    6. Impact = sum of node importance over each pathway's hits
    7. Holm/FDR correction, then ranking by raw p with ties broken by
       descending Impact

Steps 1-4 and 6 happen in ``prepare_qea``; step 5 is a typed request
that may run elsewhere (see ``metpathfinder.enrichment.worker``); step 7
happens in ``finish_qea``. ``compute_qea`` does everything in one call.

Ordering discipline:
    The HitTable fixes the pathway order once. Subsets, set sizes and
    impact in the request are all read from it, the response must echo
    the same pathway IDs, and ``finish_qea`` refuses responses that do
    not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd

from metpathfinder.core.context import AnalysisContext, AnalysisKind
from metpathfinder.core.library import ImportanceMetric, LibraryNamespace, PathwayLibrary
from metpathfinder.enrichment.correction import correct_pvalues
from metpathfinder.enrichment.filtering import FilteredLibrary, ReferenceFilter
from metpathfinder.enrichment.hits import compute_impact, count_hits
from metpathfinder.enrichment.ranking import ResultRanker, signif
from metpathfinder.enrichment.types import QEA_COLUMNS, QeaMethod, ResultTable
from metpathfinder.enrichment.worker import (
    GroupTestRequest,
    GroupTestResponse,
    GroupTestWorker,
    run_group_test,
)
from metpathfinder.errors import ComputationError, DataAlignmentError, InputError
from metpathfinder.mapping.names import (
    CANONICAL_COLUMN,
    QUERY_COLUMN,
    IdentityNameResolver,
    valid_mappings,
)
from metpathfinder.stats.univariate import as_categorical, is_categorical_labels, univariate_pvalues

logger = logging.getLogger(__name__)

__all__ = [
    'QeaSubmission',
    'map_abundance_columns',
    'prepare_qea',
    'finish_qea',
    'compute_qea',
]

UNIVARIATE_DIGITS = 7


@dataclass(frozen=True)
class QeaSubmission:
    """
    A prepared QEA run awaiting its group-test response.

    Attributes:
        context: Analysis context without a result table
        request: Group-test request derived from the same pathway order
    """

    context: AnalysisContext
    request: GroupTestRequest


def map_abundance_columns(
    data: pd.DataFrame,
    name_map: Optional[pd.DataFrame],
    namespace: LibraryNamespace = LibraryNamespace.KEGG,
) -> pd.DataFrame:
    """
    Restrict an abundance table to validly mapped compounds.

    Args:
        data: Abundance table (samples x user compound names)
        name_map: Resolved name map (``query``, ``canonical``); None means
            the column names are already canonical IDs
        namespace: Library namespace, used in error messages

    Returns:
        Copy of ``data`` with kept columns renamed to canonical IDs

    Raises:
        InputError: If no column maps to a valid compound
    """
    if name_map is None:
        name_map = IdentityNameResolver().resolve(list(data.columns))
    valid = valid_mappings(name_map)
    lookup = dict(zip(valid[QUERY_COLUMN], valid[CANONICAL_COLUMN]))

    keep = []
    seen = set()
    for column in data.columns:
        canonical = lookup.get(str(column))
        if canonical is not None and canonical not in seen:
            keep.append((column, canonical))
            seen.add(canonical)

    if not keep:
        raise InputError(
            f"Insufficient mapped data: no abundance column maps to a valid "
            f"{LibraryNamespace(namespace).label} compound"
        )

    mapped = data.loc[:, [column for column, _ in keep]].copy()
    mapped.columns = pd.Index([canonical for _, canonical in keep])
    logger.info(f"QEA: {mapped.shape[1]}/{data.shape[1]} abundance columns mapped")
    return mapped


def _request_labels(labels: Sequence[object]) -> tuple[tuple, Optional[tuple[str, ...]]]:
    if is_categorical_labels(labels):
        groups = as_categorical(labels)
        if (groups.codes < 0).any():
            raise InputError("Class labels contain missing values")
        return tuple(str(v) for v in groups), tuple(str(c) for c in groups.categories)
    values = pd.Series(labels).to_numpy(dtype=np.float64)
    if np.isnan(values).any():
        raise InputError("Class labels contain missing values")
    return tuple(float(v) for v in values), None


def prepare_qea(
    data: pd.DataFrame,
    labels: Sequence[object],
    library: Union[PathwayLibrary, FilteredLibrary],
    name_map: Optional[pd.DataFrame] = None,
    metric: Union[ImportanceMetric, str] = ImportanceMetric.RELATIVE_BETWEENNESS,
    method: Union[QeaMethod, str] = QeaMethod.GLOBAL_TEST,
    reference: Optional[Iterable[str]] = None,
    n_permutations: int = 10000,
    seed: Optional[int] = 0,
) -> QeaSubmission:
    """
    Run every QEA step up to the group test.

    Args:
        data: Abundance table (samples x compounds)
        labels: Class label per sample, aligned with ``data`` rows
        library: Pathway library, or one already passed through ReferenceFilter
        name_map: Resolved name map for the column names (None: already canonical)
        metric: Node importance for Impact ("rbc" or "dgr")
        method: "gt" or "ga"
        reference: Optional reference metabolome
        n_permutations: Permutations for the global test with > 2 groups
        seed: Permutation seed

    Returns:
        QeaSubmission holding the partial context and the group-test request

    Raises:
        InputError: No mappable columns, no pathway with hits, or label
            count differs from sample count
    """
    metric = ImportanceMetric(metric)
    method = QeaMethod(method)
    if len(labels) != data.shape[0]:
        raise InputError(f"Got {len(labels)} class labels for {data.shape[0]} samples")

    if isinstance(library, FilteredLibrary):
        if reference is not None:
            raise ValueError("Pass a reference set or a FilteredLibrary, not both")
        filtered = library
    else:
        filtered = ReferenceFilter(reference).apply(library)

    path_data = map_abundance_columns(data, name_map, filtered.library.namespace)
    univariate_p = pd.Series(
        signif(univariate_pvalues(path_data, labels), UNIVARIATE_DIGITS),
        index=path_data.columns,
        name="p",
    )

    hit_table = count_hits(filtered.library, path_data.columns).nonempty()
    if len(hit_table) == 0:
        raise InputError("Insufficient mapped data: no pathway contains a measured compound")

    impact = compute_impact(filtered.library, hit_table, metric)
    request_labels, categories = _request_labels(labels)
    request = GroupTestRequest(
        method=method,
        data=path_data,
        labels=request_labels,
        label_categories=categories,
        subsets=tuple(zip(hit_table.pathway_ids, hit_table.hits)),
        set_num=tuple(int(n) for n in hit_table.set_num),
        impact=tuple(float(x) for x in impact),
        n_permutations=n_permutations,
        seed=seed,
    )
    logger.info(
        f"QEA: {len(hit_table)} pathways with measured compounds "
        f"(universe {filtered.universe_size}, {method.description})"
    )

    context = AnalysisContext(
        kind=AnalysisKind.QEA,
        library=filtered.library,
        universe_size=filtered.universe_size,
        metric=metric,
        method=method,
        query=tuple(path_data.columns),
        reference_filtered=filtered.active,
        hits=hit_table.as_mapping(),
        univariate_p=univariate_p,
        messages=(
            f"The selected pathway enrichment analysis method is {method.description}.",
            f"Your selected node importance measure for topological analysis is {metric.description}.",
        ),
    )
    return QeaSubmission(context=context, request=request)


def finish_qea(submission: QeaSubmission, response: GroupTestResponse) -> AnalysisContext:
    """
    Build the ranked QEA table from a group-test response.

    Raises:
        ComputationError: If the group test failed
        DataAlignmentError: If the response pathway order differs from the request
    """
    request = submission.request
    if not response.ok:
        raise ComputationError(f"{request.method.description} failed: {response.error}")
    if tuple(response.pathway_ids) != request.pathway_ids:
        raise DataAlignmentError(
            "Group-test response pathway order does not match the request"
        )

    raw_p = np.asarray(response.raw_p, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        log_p = -np.log(raw_p)

    frame = pd.DataFrame(
        {
            "Total Cmpd": np.asarray(request.set_num, dtype=np.int64),
            "Hits": np.asarray(response.match_num, dtype=np.int64),
            "Raw p": raw_p,
            "-log(p)": log_p,
            "Holm adjust": np.nan,
            "FDR": np.nan,
            "Impact": np.asarray(request.impact, dtype=np.float64),
        },
        index=pd.Index(request.pathway_ids),
        columns=list(QEA_COLUMNS),
    )

    ranker = ResultRanker(AnalysisKind.QEA)
    frame = ranker.drop_unusable(frame)
    holm, fdr = correct_pvalues(frame["Raw p"].to_numpy())
    frame["Holm adjust"] = holm
    frame["FDR"] = fdr
    frame = ranker.rank(frame)

    context = submission.context
    table = ResultTable(
        kind=AnalysisKind.QEA,
        frame=frame,
        names=tuple(context.library.display_names(frame.index)),
    )
    logger.info(f"QEA: {len(table)} pathways reported")
    return context.evolve(result=table)


def compute_qea(
    data: pd.DataFrame,
    labels: Sequence[object],
    library: Union[PathwayLibrary, FilteredLibrary],
    name_map: Optional[pd.DataFrame] = None,
    metric: Union[ImportanceMetric, str] = ImportanceMetric.RELATIVE_BETWEENNESS,
    method: Union[QeaMethod, str] = QeaMethod.GLOBAL_TEST,
    reference: Optional[Iterable[str]] = None,
    n_permutations: int = 10000,
    seed: Optional[int] = 0,
    worker: Optional[GroupTestWorker] = None,
) -> AnalysisContext:
    """
    Complete QEA run. The group test runs inline, or on ``worker`` (the
    call blocks until its response arrives).

    See ``prepare_qea`` for arguments.
    """
    submission = prepare_qea(
        data,
        labels,
        library,
        name_map=name_map,
        metric=metric,
        method=method,
        reference=reference,
        n_permutations=n_permutations,
        seed=seed,
    )
    if worker is None:
        response = run_group_test(submission.request)
    else:
        response = worker.submit(submission.request).result()
    return finish_qea(submission, response)
