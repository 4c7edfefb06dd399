"""Tests for result filtering, ordering and rounding."""

import numpy as np
import pandas as pd
import pytest

from metpathfinder.core.context import AnalysisKind
from metpathfinder.enrichment.ranking import ImpactOrder, ResultRanker, signif
from metpathfinder.enrichment.types import QEA_COLUMNS


def qea_frame(raw_p, impact, hits=None):
    n = len(raw_p)
    return pd.DataFrame(
        {
            "Total Cmpd": np.full(n, 5, dtype=np.int64),
            "Hits": np.asarray(hits if hits is not None else [2] * n, dtype=np.int64),
            "Raw p": raw_p,
            "-log(p)": -np.log(raw_p),
            "Holm adjust": raw_p,
            "FDR": raw_p,
            "Impact": impact,
        },
        index=[f"P{i}" for i in range(n)],
        columns=list(QEA_COLUMNS),
    )


class TestSignif:
    """Tests for signif()."""

    def test_five_digits(self):
        np.testing.assert_array_equal(
            signif([0.1234567, 123456.7, 1.0, 2.5e-12]),
            [0.12346, 123460.0, 1.0, 2.5e-12],
        )

    def test_special_values_pass_through(self):
        out = signif([0.0, np.nan, np.inf])
        assert out[0] == 0.0
        assert np.isnan(out[1])
        assert np.isinf(out[2])

    def test_digits(self):
        assert signif([0.123456789], 7)[0] == 0.1234568
        with pytest.raises(ValueError):
            signif([1.0], 0)


class TestResultRanker:
    """Tests for ResultRanker."""

    def test_direction_by_pipeline(self):
        assert ResultRanker(AnalysisKind.ORA).impact_order is ImpactOrder.ASCENDING
        assert ResultRanker(AnalysisKind.QEA).impact_order is ImpactOrder.DESCENDING

    def test_qea_ties_descending_impact(self):
        frame = qea_frame([0.01, 0.01, 0.001, 0.01], [0.1, 0.5, 0.2, 0.5])
        ranked = ResultRanker(AnalysisKind.QEA).rank(frame)
        assert list(ranked.index) == ["P2", "P1", "P3", "P0"]

    def test_ora_ties_ascending_impact(self):
        frame = qea_frame([0.01, 0.01, 0.001], [0.5, 0.1, 0.2])
        order = ResultRanker(AnalysisKind.ORA).order(frame)
        assert list(frame.index[order]) == ["P2", "P1", "P0"]

    def test_sort_before_rounding(self):
        """Values equal after rounding keep their unrounded order."""
        frame = qea_frame([0.0123452, 0.0123449], [0.1, 0.1])
        ranked = ResultRanker(AnalysisKind.QEA).rank(frame)
        assert list(ranked.index) == ["P1", "P0"]
        assert list(ranked["Raw p"]) == [0.012345, 0.012345]

    def test_integer_columns_keep_dtype(self):
        ranked = ResultRanker(AnalysisKind.QEA).rank(qea_frame([0.5, 0.1], [0.0, 0.0]))
        assert pd.api.types.is_integer_dtype(ranked["Hits"].dtype)
        assert pd.api.types.is_integer_dtype(ranked["Total Cmpd"].dtype)

    def test_drop_unusable(self, caplog):
        frame = qea_frame([0.1, 0.2, np.nan, 0.3], [0.5, np.nan, 0.1, 0.2], hits=[1, 2, 3, 0])
        kept = ResultRanker(AnalysisKind.QEA).drop_unusable(frame)
        assert list(kept.index) == ["P0"]
        assert "undefined impact" in caplog.text
        assert "undefined p-value" in caplog.text
