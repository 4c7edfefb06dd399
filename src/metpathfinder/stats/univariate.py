"""
Per-compound association with the class labels.

Each compound gets an ordinary least squares fit of the numerically
encoded class labels on its abundance; the compound p-value is the
model's overall F-test p-value (the ANOVA table row for abundance).
With two groups this is the equal-variance t-test, with more groups a
linear trend in the factor codes, and with continuous labels a simple
regression.

A compound whose model cannot be fitted (constant abundance, too few
observations, numerical failure) gets NaN; the run continues.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

__all__ = [
    'is_categorical_labels',
    'as_categorical',
    'class_response',
    'class_design',
    'compound_pvalue',
    'has_no_variation',
    'univariate_pvalues',
]


def is_categorical_labels(labels: Sequence[object]) -> bool:
    """Whether labels define groups (anything but a plain numeric vector)."""
    series = pd.Series(labels)
    if isinstance(series.dtype, pd.CategoricalDtype) or series.dtype == bool:
        return True
    return not pd.api.types.is_numeric_dtype(series.dtype)


def as_categorical(labels: Sequence[object]) -> pd.Categorical:
    if isinstance(labels, pd.Categorical):
        return labels
    series = pd.Series(labels)
    if isinstance(series.dtype, pd.CategoricalDtype):
        return series.array
    return pd.Categorical(series)


def class_response(labels: Sequence[object]) -> NDArray[np.float64]:
    """
    Numeric response vector for class labels.

    Numeric labels are used as given. Group labels become factor codes
    1..K in category order (sorted labels unless an explicit
    ``pd.Categorical`` order is supplied).
    """
    if is_categorical_labels(labels):
        codes = as_categorical(labels).codes.astype(np.float64)
        codes[codes < 0] = np.nan
        return codes + 1.0
    return pd.Series(labels).to_numpy(dtype=np.float64)


def class_design(labels: Sequence[object]) -> NDArray[np.float64]:
    """
    Full-model design matrix: intercept plus treatment-coded groups
    (group labels) or intercept plus slope (numeric labels).
    """
    if is_categorical_labels(labels):
        groups = as_categorical(labels)
        if (groups.codes < 0).any():
            raise ValueError("Class labels contain missing values")
        X = pd.get_dummies(pd.Series(groups.remove_unused_categories()), drop_first=True, dtype=float)
    else:
        X = pd.DataFrame({'label': pd.Series(labels).to_numpy(dtype=np.float64)})
        if X['label'].isna().any():
            raise ValueError("Class labels contain missing values")
    X = sm.add_constant(X, has_constant='add')
    return X.to_numpy(dtype=np.float64)


def compound_pvalue(response: NDArray[np.float64], abundance: NDArray[np.float64]) -> float:
    """
    Overall F-test p-value of ``response ~ abundance``.

    Raises:
        ValueError: If the model is not estimable
    """
    mask = np.isfinite(response) & np.isfinite(abundance)
    y = response[mask]
    x = abundance[mask]
    if len(y) < 3:
        raise ValueError(f"only {len(y)} complete observations")
    if np.ptp(x) == 0:
        raise ValueError("constant abundance")
    if np.ptp(y) == 0:
        raise ValueError("constant response")

    result = sm.OLS(y, sm.add_constant(x, has_constant='add')).fit()
    pvalue = float(result.f_pvalue)
    if not np.isfinite(pvalue):
        raise ValueError("F-test p-value is not finite")
    return pvalue


def has_no_variation(X: NDArray[np.float64], rtol: float = 1e-12) -> bool:
    """True when the columns of ``X`` are constant up to round-off."""
    centered = X - X.mean(axis=0)
    spread = float(np.sum(centered * centered))
    return spread <= rtol * float(np.sum(X * X))


def univariate_pvalues(data: pd.DataFrame, labels: Sequence[object]) -> pd.Series:
    """
    Per-compound p-values for a samples x compounds abundance table.

    Args:
        data: Abundance table (rows samples, columns compounds)
        labels: One class label per sample, aligned with ``data`` rows

    Returns:
        Series indexed by compound (column order kept); NaN where the
        model could not be fitted
    """
    if len(labels) != data.shape[0]:
        raise ValueError(
            f"Got {len(labels)} class labels for {data.shape[0]} samples"
        )
    response = class_response(labels)
    pvalues = {}
    n_failed = 0
    for column in data.columns:
        try:
            pvalues[column] = compound_pvalue(response, data[column].to_numpy(dtype=np.float64))
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.warning(f"Univariate model failed for {column}: {e}")
            pvalues[column] = np.nan
            n_failed += 1
    if n_failed:
        logger.info(f"{n_failed}/{data.shape[1]} compounds have undefined univariate p-values")
    return pd.Series(pvalues, index=data.columns, dtype=np.float64, name="p")
