"""Tests for PathwayLibrary, PathwayRecord and AnalysisContext."""

import pytest

from conftest import make_record

from metpathfinder.core.context import AnalysisContext, AnalysisKind, pathway_membership
from metpathfinder.core.library import (
    ImportanceMetric,
    LibraryNamespace,
    PathwayLibrary,
    PathwayRecord,
)
from metpathfinder.enrichment.types import OraMethod


class TestPathwayRecord:
    """Tests for PathwayRecord validation."""

    def test_members_deduplicated_in_order(self):
        """Repeated members are dropped, first occurrence kept."""
        record = PathwayRecord("P", "p", members=("B", "A", "B", "C"))
        assert record.members == ("B", "A", "C")
        assert record.size == 3

    def test_negative_importance_rejected(self):
        """Importance weights must be non-negative."""
        with pytest.raises(ValueError, match="negative"):
            PathwayRecord(
                "P", "p", members=("A",),
                importance={ImportanceMetric.RELATIVE_BETWEENNESS: {"A": -0.1}},
            )

    def test_importance_keys_accept_strings(self):
        """Metric keys given as "rbc"/"dgr" are normalized to the enum."""
        record = PathwayRecord("P", "p", members=("A",), importance={"dgr": {"A": 2}})
        assert record.weights(ImportanceMetric.OUT_DEGREE)["A"] == 2.0
        assert dict(record.weights(ImportanceMetric.RELATIVE_BETWEENNESS)) == {}

    def test_record_is_read_only(self):
        """Importance maps cannot be mutated after construction."""
        record = make_record("P", "p", rbc={"A": 0.1})
        with pytest.raises(TypeError):
            record.importance[ImportanceMetric.RELATIVE_BETWEENNESS]["A"] = 1.0


class TestPathwayLibrary:
    """Tests for PathwayLibrary queries and restriction."""

    def test_universe_is_union_of_members(self, small_library):
        assert small_library.universe() == frozenset(f"C{i}" for i in range(1, 9))
        assert small_library.universe_size == 8

    def test_library_order_preserved(self, small_library):
        assert small_library.all_ids() == ("P1", "P2", "P3", "P4")
        assert [r.pathway_id for r in small_library] == ["P1", "P2", "P3", "P4"]

    def test_duplicate_pathway_rejected(self):
        records = [make_record("P", "a", rbc={"A": 0}), make_record("P", "b", rbc={"B": 0})]
        with pytest.raises(ValueError, match="Duplicate"):
            PathwayLibrary(records)

    def test_unknown_pathway(self, small_library):
        with pytest.raises(KeyError, match="Unknown pathway"):
            small_library["P9"]

    def test_display_names_and_xrefs(self, small_library):
        assert small_library.display_names(["P3", "P1"]) == ["Gamma pathway", "Alpha pathway"]
        assert small_library["P1"].xrefs["smpdb"] == ("SMP001",)

    def test_restrict_keeps_order_and_empty_pathways(self, small_library):
        """Restriction filters members; pathways that lose everything remain."""
        restricted = small_library.restrict({"C4", "C3", "C8"})
        assert restricted.members("P1") == ("C3", "C4")
        assert restricted.members("P3") == ()
        assert restricted.universe_size == 3
        assert restricted.namespace is LibraryNamespace.KEGG
        # the original library is untouched
        assert small_library.members("P1") == ("C1", "C2", "C3", "C4")

    def test_namespace_column(self):
        assert LibraryNamespace.KEGG.name_map_column == "kegg"
        assert LibraryNamespace.SMPDB.name_map_column == "hmdb"


class TestAnalysisContext:
    """Tests for the immutable analysis context."""

    def _context(self, library):
        return AnalysisContext(
            kind=AnalysisKind.ORA,
            library=library,
            universe_size=library.universe_size,
            metric=ImportanceMetric.RELATIVE_BETWEENNESS,
            method=OraMethod.HYPERGEOMETRIC,
            query=["C1", "C2"],
            hits={"P1": ("C1", "C2"), "P4": ("C1",)},
        )

    def test_evolve_returns_new_context(self, small_library):
        context = self._context(small_library)
        evolved = context.evolve(messages=("done",))
        assert evolved.messages == ("done",)
        assert context.messages == ()
        assert evolved.hits is context.hits

    def test_hits_are_read_only(self, small_library):
        context = self._context(small_library)
        with pytest.raises(TypeError):
            context.hits["P2"] = ("C3",)

    def test_membership_flags_hits(self, small_library):
        context = self._context(small_library)
        assert pathway_membership(context, "P1") == [
            ("C1", True), ("C2", True), ("C3", False), ("C4", False),
        ]
        assert context.membership("P3") == [("C6", False), ("C7", False)]

    def test_query_and_completion(self, small_library):
        context = self._context(small_library)
        assert context.query == ("C1", "C2")
        assert context.query_size == 2
        assert not context.is_complete
