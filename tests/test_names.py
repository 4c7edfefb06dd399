"""Tests for compound name resolution and mapping validity."""

import numpy as np
import pandas as pd
import pytest

from metpathfinder.core.library import LibraryNamespace
from metpathfinder.errors import InputError
from metpathfinder.mapping.names import (
    CANONICAL_COLUMN,
    QUERY_COLUMN,
    IdentityNameResolver,
    TableNameResolver,
    query_compounds,
    valid_mappings,
)


@pytest.fixture
def name_table():
    return pd.DataFrame({
        "query": ["Glucose", "Pyruvate", "Bogus", "D-Glucose", "Lactate"],
        "hmdb": ["HMDB0000122", "HMDB0000243", np.nan, "HMDB0000122", "HMDB0000190"],
        "kegg": ["C00031", "C00022", "NA", "C00031", np.nan],
    })


class TestTableNameResolver:
    """Tests for TableNameResolver."""

    def test_kegg_namespace_uses_kegg_column(self, name_table):
        resolved = TableNameResolver(name_table, LibraryNamespace.KEGG).resolve()
        assert list(resolved[QUERY_COLUMN]) == list(name_table["query"])
        assert list(resolved[CANONICAL_COLUMN]) == ["C00031", "C00022", None, "C00031", None]

    def test_smpdb_namespace_uses_hmdb_column(self, name_table):
        resolved = TableNameResolver(name_table, LibraryNamespace.SMPDB).resolve(["Lactate", "Bogus"])
        assert list(resolved[CANONICAL_COLUMN]) == ["HMDB0000190", None]

    def test_unknown_identifier_unmapped(self, name_table):
        resolved = TableNameResolver(name_table).resolve(["Glucose", "Unheard-of"])
        assert resolved[CANONICAL_COLUMN].isna().tolist() == [False, True]

    def test_missing_column_rejected(self):
        with pytest.raises(ValueError, match="missing column"):
            TableNameResolver(pd.DataFrame({"query": ["a"], "hmdb": ["b"]}), LibraryNamespace.KEGG)


class TestValidity:
    """Valid rows: canonical ID present and not claimed by an earlier row."""

    def test_duplicates_and_missing_dropped(self, name_table):
        resolved = TableNameResolver(name_table, LibraryNamespace.KEGG).resolve()
        valid = valid_mappings(resolved)
        assert list(valid[QUERY_COLUMN]) == ["Glucose", "Pyruvate"]

    def test_query_compounds(self, name_table):
        resolved = TableNameResolver(name_table, LibraryNamespace.KEGG).resolve()
        assert query_compounds(resolved) == ("C00031", "C00022")

    def test_no_valid_compounds_names_namespace(self):
        resolved = IdentityNameResolver().resolve(["", "NA"])
        with pytest.raises(InputError, match="No valid KEGG compounds found!"):
            query_compounds(resolved, LibraryNamespace.KEGG)
        with pytest.raises(InputError, match="No valid SMPDB compounds found!"):
            query_compounds(resolved, LibraryNamespace.SMPDB)

    def test_identity_resolver(self):
        resolved = IdentityNameResolver().resolve([" C00031", "C00022", "C00031"])
        assert query_compounds(resolved) == ("C00031", "C00022")
