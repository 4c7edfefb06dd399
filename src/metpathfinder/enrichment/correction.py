"""
Multiple testing correction for pathway p-values.

Holm (step-down family-wise error rate) and Benjamini-Hochberg (false
discovery rate) adjustments via statsmodels, matching the reference
definitions:

    Holm: p_(i) * (n - i + 1), running maximum, capped at 1
    BH:   p_(i) * n / i, running minimum from the largest p, capped at 1

Both are returned in the original (unsorted) order.

Examples:
    >>> holm, fdr = correct_pvalues([0.01, 0.04, 0.03])
    >>> holm
    array([0.03, 0.06, 0.06])
    >>> fdr
    array([0.03, 0.04, 0.04])
"""

from __future__ import annotations

from typing import Literal, Sequence

import numpy as np
from numpy.typing import NDArray
from statsmodels.stats.multitest import multipletests

__all__ = ['adjust_pvalues', 'correct_pvalues']


def adjust_pvalues(
    pvalues: Sequence[float],
    method: Literal['holm', 'fdr_bh'] = 'fdr_bh',
) -> NDArray[np.float64]:
    """
    Adjust p-values for multiple testing.

    Args:
        pvalues: Raw p-values in pathway order
        method: 'holm' or 'fdr_bh'

    Returns:
        Adjusted p-values in the input order

    Raises:
        ValueError: If any p-value is NaN, infinite, or outside [0, 1]
    """
    pvalues = np.asarray(pvalues, dtype=np.float64)
    if pvalues.size == 0:
        return np.array([], dtype=np.float64)

    if np.any(~np.isfinite(pvalues)):
        raise ValueError("p-values contain NaN or Inf")

    if np.any(pvalues < 0) or np.any(pvalues > 1):
        raise ValueError("p-values must be in [0, 1]")

    _, corrected, _, _ = multipletests(pvalues, method=method, returnsorted=False)
    return np.asarray(corrected, dtype=np.float64)


def correct_pvalues(
    pvalues: Sequence[float],
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Return ``(holm_adjusted, fdr_adjusted)`` for ``pvalues``."""
    return adjust_pvalues(pvalues, 'holm'), adjust_pvalues(pvalues, 'fdr_bh')
