"""
Final filtering, ordering and rounding of pathway result tables.

Ordering rule: ascending raw p-value, ties broken by Impact. The tie-break
direction differs by pipeline:

    ORA: ascending Impact
    QEA: descending Impact

Rows tied on both keys keep library order (stable sort).
"""

from __future__ import annotations

import logging
from enum import Enum

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from metpathfinder.core.context import AnalysisKind
from metpathfinder.enrichment.types import IMPACT, RAW_P

logger = logging.getLogger(__name__)

__all__ = ['ImpactOrder', 'ResultRanker', 'signif']

SIGNIFICANT_DIGITS = 5


class ImpactOrder(Enum):
    """Direction of the Impact tie-break."""

    ASCENDING = "ascending"
    DESCENDING = "descending"


def signif(values: ArrayLike, digits: int = SIGNIFICANT_DIGITS) -> NDArray[np.float64]:
    """
    Round to ``digits`` significant digits.

    Rounding goes through the decimal representation (round half to even
    on the printed digits), so 0.1234567 -> 0.12346 and 123456.7 ->
    123460.0. Zero, NaN and infinities pass through unchanged.
    """
    if digits < 1:
        raise ValueError(f"digits must be >= 1, got {digits}")
    values = np.asarray(values, dtype=np.float64)
    out = values.copy()
    flat = out.reshape(-1)
    for i, v in enumerate(flat):
        if np.isfinite(v) and v != 0.0:
            flat[i] = float(f"{v:.{digits - 1}e}")
    return out


class ResultRanker:
    """
    Applies the result-table rules for one pipeline.

    Args:
        kind: ORA or QEA; selects the Impact tie-break direction
        digits: Significant digits of the output
    """

    def __init__(self, kind: AnalysisKind, digits: int = SIGNIFICANT_DIGITS):
        self.kind = AnalysisKind(kind)
        self.digits = digits

    @property
    def impact_order(self) -> ImpactOrder:
        if self.kind is AnalysisKind.ORA:
            return ImpactOrder.ASCENDING
        return ImpactOrder.DESCENDING

    def drop_unusable(self, frame: pd.DataFrame) -> pd.DataFrame:
        """
        Remove rows that cannot be reported.

        Drops zero-hit pathways, undefined Impact, and undefined raw
        p-values. Library order of the remaining rows is kept.
        """
        has_hits = frame["Hits"] > 0
        no_impact = has_hits & frame[IMPACT].isna()
        no_pvalue = has_hits & frame[IMPACT].notna() & frame[RAW_P].isna()
        keep = has_hits & ~no_impact & ~no_pvalue

        n_impact = int(no_impact.sum())
        if n_impact:
            logger.warning(f"Dropped {n_impact} pathway(s) with undefined impact")
        n_pvalue = int(no_pvalue.sum())
        if n_pvalue:
            logger.warning(f"Dropped {n_pvalue} pathway(s) with undefined p-value")
        return frame.loc[keep].copy()

    def order(self, frame: pd.DataFrame) -> NDArray[np.intp]:
        """Stable row order: raw p ascending, then Impact per pipeline."""
        impact = frame[IMPACT].to_numpy(dtype=np.float64)
        if self.impact_order is ImpactOrder.DESCENDING:
            impact = -impact
        # lexsort sorts by the last key first and is stable
        return np.lexsort((impact, frame[RAW_P].to_numpy(dtype=np.float64)))

    def round(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        for column in out.columns:
            rounded = signif(out[column].to_numpy(dtype=np.float64), self.digits)
            if pd.api.types.is_integer_dtype(frame[column].dtype):
                out[column] = rounded.astype(frame[column].dtype)
            else:
                out[column] = rounded
        return out

    def rank(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Sort, then round every numeric field."""
        return self.round(frame.iloc[self.order(frame)])
