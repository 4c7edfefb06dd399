"""
Global ANCOVA for differential abundance of a compound set.

Each compound of the set gets the same linear model with the class
labels as predictor (full model) against an intercept-only model
(reduced model). The global F statistic pools the extra sum of squares
over compounds:

    F = [sum_g ||(H1 - H0) x_g||^2 / df1] / [sum_g ||(I - H1) x_g||^2 / df2]

    df1 = rank(full) - 1,  df2 = n - rank(full)

Approximate null distribution (the "approx" method): with mu the
eigenvalues of the residual compound covariance, numerator and
denominator are weighted chi-square sums and

    P(F > f) = P(sum_j mu_j * (chi2(df1)/df1 - f * chi2(df2)/df2) > 0)

which Imhof's formula evaluates. Correlation between compounds enters
through mu, so no permutations are needed.

References:
    Hummel, M., Meister, R., Mansmann, U. (2008). "GlobalANCOVA:
    exploration and assessment of gene group effects". Bioinformatics
    24 (1): 78-85.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from metpathfinder.errors import ComputationError
from metpathfinder.stats.quadform import imhof_upper_tail
from metpathfinder.stats.univariate import class_design, has_no_variation

logger = logging.getLogger(__name__)

__all__ = ['GLOBAL_ANCOVA_COLUMNS', 'global_ancova']

GLOBAL_ANCOVA_COLUMNS = ("genes", "F.value", "p.approx")

MIN_PVALUE = float(np.finfo(np.float64).eps)


def _projection(design: NDArray[np.float64]) -> tuple[NDArray[np.float64], int]:
    """Hat matrix of ``design`` and its rank."""
    U, s, _ = np.linalg.svd(design, full_matrices=False)
    rank = int(np.sum(s > 1e-10 * s[0]))
    U = U[:, :rank]
    return U @ U.T, rank


def global_ancova(
    data: pd.DataFrame,
    labels: Sequence[object],
    subsets: Mapping[str, Sequence[str]],
) -> pd.DataFrame:
    """
    Global ANCOVA for each compound subset.

    Args:
        data: Abundance table (samples x compounds)
        labels: Class label per sample
        subsets: Pathway ID -> compounds of ``data`` (iteration order kept)

    Returns:
        DataFrame indexed by pathway ID with columns
        ``genes, F.value, p.approx`` in ``subsets`` order; ``F.value``
        and ``p.approx`` are NaN for a subset whose compounds do not vary
        or that the class labels fit exactly

    Raises:
        ComputationError: If the design or data make the test undefined
    """
    if len(labels) != data.shape[0]:
        raise ComputationError(f"Got {len(labels)} class labels for {data.shape[0]} samples")

    try:
        design = class_design(labels)
    except ValueError as e:
        raise ComputationError(str(e)) from e

    n = design.shape[0]
    H1, p1 = _projection(design)
    H0 = np.full((n, n), 1.0 / n)
    df1 = p1 - 1
    df2 = n - p1
    if df1 < 1:
        raise ComputationError("Class labels define a single group; nothing to test")
    if df2 < 1:
        raise ComputationError(f"No residual degrees of freedom ({n} samples, {p1} parameters)")

    effect = H1 - H0
    residual = np.eye(n) - H1

    rows = []
    for pathway_id, compounds in subsets.items():
        compounds = list(compounds)
        if not compounds:
            raise ComputationError(f"Pathway {pathway_id} has no compounds to test")
        missing = [c for c in compounds if c not in data.columns]
        if missing:
            raise ComputationError(f"Pathway {pathway_id}: compounds not in data: {missing[:5]}")

        X = data[compounds].to_numpy(dtype=np.float64)
        if not np.all(np.isfinite(X)):
            raise ComputationError(f"Pathway {pathway_id}: abundance data contain missing values")

        E = residual @ X
        numerator = float(np.sum((effect @ X) ** 2))
        denominator = float(np.sum(E * E))
        if has_no_variation(X) or denominator <= 1e-12 * (numerator + denominator):
            logger.warning(f"Global ANCOVA: {pathway_id} has no residual variance; p-value undefined")
            rows.append((pathway_id, len(compounds), float('nan'), float('nan')))
            continue
        f_value = (numerator / df1) / (denominator / df2)

        # nonzero eigenvalues of E'E equal those of EE'; use the smaller side
        small = E.T @ E if E.shape[1] <= E.shape[0] else E @ E.T
        mu = np.clip(np.linalg.eigvalsh(small / df2), 0.0, None)
        weights = np.concatenate([mu / df1, -f_value * mu / df2])
        dofs = np.concatenate([np.full(mu.size, df1), np.full(mu.size, df2)])
        pvalue = imhof_upper_tail(weights, dofs)

        rows.append((pathway_id, len(compounds), f_value, max(pvalue, MIN_PVALUE)))

    frame = pd.DataFrame(
        [r[1:] for r in rows],
        index=pd.Index([r[0] for r in rows]),
        columns=list(GLOBAL_ANCOVA_COLUMNS),
    )
    frame["genes"] = frame["genes"].astype(np.int64)
    return frame
