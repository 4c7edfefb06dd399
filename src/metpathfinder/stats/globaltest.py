"""
Goeman's global test for association between a compound set and the
class labels.

Tests H0: no compound in the set is associated with the response, using
the score statistic of a linear model with an intercept-only null:

    S = Y0' R Y0 / Y0' Y0,    R = X0 X0'

where Y0 is the centered response and X0 the column-centered abundance
of the set's compounds (samples x compounds). Large S means samples that
are similar in abundance also have similar labels.

Null distribution:
    Single response column (numeric labels, or two groups):
        Exact. Under a spherically symmetric null, with lambda the
        eigenvalues of R - s * P0 (P0 the centering projection),
        P(S >= s) = P(sum lambda_i chi2(1) > 0), evaluated with Imhof.

    More than two groups:
        The response is the centered group-indicator matrix and the
        p-value comes from label permutations,
        p = (1 + #{S* >= S}) / (1 + B).

References:
    Goeman, J. J., van de Geer, S. A., de Kort, F., van Houwelingen,
    H. C. (2004). "A global test for groups of genes: testing association
    with a clinical outcome". Bioinformatics 20 (1): 93-99.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from metpathfinder.errors import ComputationError
from metpathfinder.stats.quadform import imhof_upper_tail
from metpathfinder.stats.univariate import (
    as_categorical,
    class_response,
    has_no_variation,
    is_categorical_labels,
)

logger = logging.getLogger(__name__)

__all__ = ['GLOBAL_TEST_COLUMNS', 'global_test']

GLOBAL_TEST_COLUMNS = ("p-value", "Statistic", "Expected", "Std.dev", "#Cov")

MIN_PVALUE = float(np.finfo(np.float64).eps)


def _response_matrix(labels: Sequence[object]) -> NDArray[np.float64]:
    """Centered response: one column, or group indicators for > 2 groups."""
    if is_categorical_labels(labels):
        groups = as_categorical(labels)
        if (groups.codes < 0).any():
            raise ComputationError("Class labels contain missing values")
        if len(np.unique(groups.codes)) > 2:
            Y = pd.get_dummies(pd.Series(groups.remove_unused_categories()), dtype=float).to_numpy()
            return Y - Y.mean(axis=0)
    y = class_response(labels)
    if not np.all(np.isfinite(y)):
        raise ComputationError("Class labels contain missing values")
    return (y - y.mean()).reshape(-1, 1)


def _exact_pvalue(X0: NDArray[np.float64], statistic: float) -> float:
    n = X0.shape[0]
    R = X0 @ X0.T
    P0 = np.eye(n) - np.full((n, n), 1.0 / n)
    eigenvalues = np.linalg.eigvalsh(R - statistic * P0)
    return imhof_upper_tail(eigenvalues)


def global_test(
    data: pd.DataFrame,
    labels: Sequence[object],
    subsets: Mapping[str, Sequence[str]],
    *,
    n_permutations: int = 10000,
    seed: int | None = 0,
) -> pd.DataFrame:
    """
    Global test for each compound subset.

    Args:
        data: Abundance table (samples x compounds)
        labels: Class label per sample
        subsets: Pathway ID -> compounds of ``data`` (iteration order kept)
        n_permutations: Permutations for the > 2 group case
        seed: Seed for the permutation draws

    Returns:
        DataFrame indexed by pathway ID with columns
        ``p-value, Statistic, Expected, Std.dev, #Cov`` in ``subsets`` order;
        ``p-value`` is NaN for a subset whose compounds do not vary

    Raises:
        ComputationError: If the data or labels make the test undefined
    """
    if len(labels) != data.shape[0]:
        raise ComputationError(f"Got {len(labels)} class labels for {data.shape[0]} samples")

    Y0 = _response_matrix(labels)
    n, n_responses = Y0.shape
    y_norm = float(np.sum(Y0 * Y0))
    if n < 3 or y_norm == 0.0:
        raise ComputationError("Global test needs at least 3 samples and a non-constant response")

    permuted = None
    if n_responses > 1:
        rng = np.random.default_rng(seed)
        permuted = [Y0[rng.permutation(n)] for _ in range(n_permutations)]
        logger.info(f"Global test: {Y0.shape[1]} groups, permutation null with {n_permutations} draws")

    k = n - 1
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
        X0 = X - X.mean(axis=0)

        statistic = float(np.sum((X0.T @ Y0) ** 2)) / y_norm
        gram = X0.T @ X0
        trace_r = float(np.trace(gram))
        trace_r2 = float(np.sum(gram * gram))
        expected = trace_r / k

        if has_no_variation(X):
            # S and its null are identically zero
            logger.warning(f"Global test: compounds of {pathway_id} do not vary; p-value undefined")
            pvalue = float('nan')
            std_dev = 0.0
        elif permuted is None:
            pvalue = _exact_pvalue(X0, statistic)
            variance = 2.0 / (k * (k + 2)) * (trace_r2 - trace_r ** 2 / k)
            std_dev = float(np.sqrt(max(variance, 0.0)))
        else:
            null = np.array([np.sum((X0.T @ Yp) ** 2) / y_norm for Yp in permuted])
            pvalue = (1.0 + np.sum(null >= statistic * (1 - 1e-12))) / (1.0 + len(null))
            std_dev = float(np.std(null, ddof=1)) if len(null) > 1 else float('nan')

        if np.isfinite(pvalue):
            pvalue = max(pvalue, MIN_PVALUE)
        rows.append((pathway_id, pvalue, statistic, expected, std_dev, len(compounds)))

    frame = pd.DataFrame(
        [r[1:] for r in rows],
        index=pd.Index([r[0] for r in rows]),
        columns=list(GLOBAL_TEST_COLUMNS),
    )
    frame["#Cov"] = frame["#Cov"].astype(np.int64)
    return frame
