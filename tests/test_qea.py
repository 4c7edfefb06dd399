"""Tests for quantitative enrichment analysis."""

import numpy as np
import pandas as pd
import pytest

from conftest import generate_abundance, make_record

from metpathfinder.core.context import AnalysisKind
from metpathfinder.core.library import LibraryNamespace, PathwayLibrary
from metpathfinder.enrichment.quantitative import (
    compute_qea,
    finish_qea,
    map_abundance_columns,
    prepare_qea,
)
from metpathfinder.enrichment.types import QEA_COLUMNS, QeaMethod
from metpathfinder.enrichment.worker import GroupTestResponse, GroupTestWorker, run_group_test
from metpathfinder.errors import ComputationError, DataAlignmentError, InputError
from metpathfinder.mapping.names import TableNameResolver


class TestMapAbundanceColumns:
    """Tests for map_abundance_columns()."""

    def test_valid_columns_renamed(self):
        data = pd.DataFrame(np.ones((3, 4)), columns=["Glucose", "Pyruvate", "Bogus", "D-Glucose"])
        table = pd.DataFrame({
            "query": ["Glucose", "Pyruvate", "Bogus", "D-Glucose"],
            "kegg": ["C00031", "C00022", None, "C00031"],
            "hmdb": [None, None, None, None],
        })
        name_map = TableNameResolver(table, LibraryNamespace.KEGG).resolve(list(data.columns))
        mapped = map_abundance_columns(data, name_map)
        assert list(mapped.columns) == ["C00031", "C00022"]

    def test_identity_without_name_map(self):
        data = pd.DataFrame(np.ones((3, 2)), columns=["C1", "C2"])
        assert list(map_abundance_columns(data, None).columns) == ["C1", "C2"]

    def test_nothing_mapped(self):
        data = pd.DataFrame(np.ones((3, 1)), columns=["Bogus"])
        name_map = pd.DataFrame({"query": ["Bogus"], "canonical": [None]})
        with pytest.raises(InputError, match="Insufficient mapped data"):
            map_abundance_columns(data, name_map, LibraryNamespace.SMPDB)


class TestComputeQea:
    """End-to-end QEA on the small library."""

    @pytest.mark.parametrize("method", [QeaMethod.GLOBAL_TEST, QeaMethod.GLOBAL_ANCOVA])
    def test_result_table(self, small_library, two_group_abundance, method):
        data, labels = two_group_abundance
        context = compute_qea(data, labels, small_library, method=method)
        table = context.result
        assert table.kind is AnalysisKind.QEA
        assert tuple(table.frame.columns) == QEA_COLUMNS
        assert set(table.pathway_ids) == {"P1", "P2", "P3", "P4"}

        frame = table.frame
        assert frame.loc["P4", "Total Cmpd"] == 2
        assert frame.loc["P4", "Hits"] == 1
        assert frame.loc["P1", "Hits"] == 4
        assert frame.loc["P1", "Raw p"] < frame.loc["P3", "Raw p"]
        assert np.all(np.diff(frame["Raw p"].to_numpy()) >= 0)
        assert frame.loc["P1", "Impact"] == pytest.approx(0.85)

    def test_context_artifacts(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        context = compute_qea(data, labels, small_library)
        assert context.is_complete
        assert context.query == tuple(data.columns)
        assert context.hits["P4"] == ("C1",)
        assert context.membership("P4") == [("C1", True), ("C8", False)]
        assert context.messages[0] == "The selected pathway enrichment analysis method is Globaltest."

        univariate = context.univariate_p
        assert list(univariate.index) == list(data.columns)
        assert univariate["C1"] < 1e-3
        assert np.all(univariate.to_numpy() == np.array([float(f"{v:.6e}") for v in univariate]))

    def test_idempotent(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        first = compute_qea(data, labels, small_library, method="ga")
        second = compute_qea(data, labels, small_library, method="ga")
        pd.testing.assert_frame_equal(first.result.frame, second.result.frame)

    def test_undefined_impact_dropped(self, small_library):
        data, labels = generate_abundance(["C1", "C2", "C3", "C8"], shifted=("C1",))
        context = compute_qea(data, labels, small_library)
        assert "P4" not in context.result.pathway_ids

    def test_reference_filter(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        context = compute_qea(data, labels, small_library, reference=["C1", "C2", "C6"])
        assert context.reference_filtered
        assert context.universe_size == 3
        frame = context.result.frame
        assert frame.loc["P1", "Total Cmpd"] == 2
        assert "P2" not in frame.index

    def test_series_reference(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        as_list = compute_qea(data, labels, small_library, reference=["C1", "C2", "C6"])
        as_series = compute_qea(data, labels, small_library, reference=pd.Series(["C1", "C2", "C6"]))
        pd.testing.assert_frame_equal(as_list.result.frame, as_series.result.frame)

    def test_no_pathway_with_hits(self, small_library):
        data, labels = generate_abundance(["X1", "X2"])
        with pytest.raises(InputError, match="Insufficient mapped data"):
            compute_qea(data, labels, small_library)

    def test_label_length_mismatch(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        with pytest.raises(InputError, match="class labels"):
            compute_qea(data, labels[:5], small_library)

    def test_single_group_fails(self, small_library, two_group_abundance):
        data, _ = two_group_abundance
        with pytest.raises(ComputationError, match="Globaltest failed"):
            compute_qea(data, ["A"] * len(data), small_library)

    @pytest.mark.parametrize("method", [QeaMethod.GLOBAL_TEST, QeaMethod.GLOBAL_ANCOVA])
    def test_constant_pathway_dropped(self, small_library, two_group_abundance, method, caplog):
        """A pathway whose measured compounds never vary is not reported."""
        data, labels = two_group_abundance
        data = data.copy()
        data["K"] = 5.0
        library = PathwayLibrary(
            [*small_library, make_record("PK", "Constant pathway", rbc={"K": 0.9})],
            namespace=small_library.namespace,
        )
        with caplog.at_level("WARNING"):
            context = compute_qea(data, labels, library, method=method)
        ids = context.result.pathway_ids
        assert "PK" not in ids
        assert set(ids) == {"P1", "P2", "P3", "P4"}
        assert "Dropped 1 pathway(s) with undefined p-value" in caplog.text
        assert np.isnan(context.univariate_p["K"])

    def test_with_worker(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        inline = compute_qea(data, labels, small_library)
        with GroupTestWorker(max_workers=2) as worker:
            deferred = compute_qea(data, labels, small_library, worker=worker)
        pd.testing.assert_frame_equal(inline.result.frame, deferred.result.frame)


class TestDeferredQea:
    """prepare_qea / finish_qea around an explicit response."""

    def test_request_follows_hit_order(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        submission = prepare_qea(data, labels, small_library, method="ga")
        request = submission.request
        assert request.pathway_ids == ("P1", "P2", "P3", "P4")
        assert request.subsets[3] == ("P4", ("C1",))
        assert request.set_num == (4, 3, 2, 2)
        assert request.label_categories == ("A", "B")
        assert submission.context.result is None

    def test_failed_response(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        submission = prepare_qea(data, labels, small_library)
        response = GroupTestResponse.failure(submission.request.pathway_ids, "singular design")
        with pytest.raises(ComputationError, match="singular design"):
            finish_qea(submission, response)

    def test_misaligned_response(self, small_library, two_group_abundance):
        data, labels = two_group_abundance
        submission = prepare_qea(data, labels, small_library)
        response = run_group_test(submission.request)
        reordered = GroupTestResponse(
            pathway_ids=tuple(reversed(response.pathway_ids)),
            match_num=tuple(reversed(response.match_num)),
            raw_p=tuple(reversed(response.raw_p)),
        )
        with pytest.raises(DataAlignmentError):
            finish_qea(submission, reordered)

    def test_holm_over_reported_rows(self, small_library, two_group_abundance):
        """Correction covers exactly the pathways left in the table."""
        data, labels = two_group_abundance
        submission = prepare_qea(data, labels, small_library)
        response = run_group_test(submission.request)
        raw = list(response.raw_p)
        raw[1] = float("nan")
        context = finish_qea(
            submission,
            GroupTestResponse(response.pathway_ids, response.match_num, tuple(raw)),
        )
        frame = context.result.frame
        assert "P2" not in frame.index
        assert len(frame) == 3
        assert (frame["Holm adjust"] >= frame["Raw p"]).all()

    def test_equal_raw_p_ranked_by_descending_impact(self, two_group_abundance):
        data, labels = two_group_abundance
        library = PathwayLibrary([
            make_record("Q1", "Low impact", rbc={"C1": 0.1}),
            make_record("Q2", "High impact", rbc={"C2": 0.9}),
            make_record("Q3", "Strongest", rbc={"C3": 0.5}),
        ])
        submission = prepare_qea(data, labels, library)
        request = submission.request
        assert request.pathway_ids == ("Q1", "Q2", "Q3")
        response = GroupTestResponse(
            pathway_ids=request.pathway_ids,
            match_num=tuple(len(hits) for _, hits in request.subsets),
            raw_p=(0.02, 0.02, 0.001),
        )
        frame = finish_qea(submission, response).result.frame
        assert list(frame.index) == ["Q3", "Q2", "Q1"]
        assert list(frame["Impact"]) == [0.5, 0.9, 0.1]
        assert frame.loc["Q2", "Raw p"] == frame.loc["Q1", "Raw p"]
