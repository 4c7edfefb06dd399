"""
Pytest configuration and shared fixtures.

Provides tiny deterministic pathway libraries and seeded abundance tables
small enough that expected statistics can be worked out by hand.
"""

import numpy as np
import pandas as pd
import pytest

from metpathfinder.core.library import (
    ImportanceMetric,
    LibraryNamespace,
    PathwayLibrary,
    PathwayRecord,
)

RBC = ImportanceMetric.RELATIVE_BETWEENNESS
DGR = ImportanceMetric.OUT_DEGREE


def make_record(pathway_id, name, rbc, dgr=None, members=None, xrefs=None):
    """PathwayRecord whose members default to the keys of ``rbc``."""
    importance = {RBC: rbc}
    if dgr is not None:
        importance[DGR] = dgr
    return PathwayRecord(
        pathway_id=pathway_id,
        name=name,
        members=tuple(members if members is not None else rbc),
        importance=importance,
        xrefs=xrefs or {},
    )


@pytest.fixture
def small_library():
    """
    Four pathways over compounds C1..C8 (universe size 8).

        P1 Alpha: C1 C2 C3 C4
        P2 Beta:  C3 C4 C5
        P3 Gamma: C6 C7
        P4 Delta: C1 C8      (C8 has no rbc weight)
    """
    return PathwayLibrary(
        [
            make_record(
                "P1", "Alpha pathway",
                rbc={"C1": 0.5, "C2": 0.25, "C3": 0.0, "C4": 0.1},
                dgr={"C1": 1.0, "C2": 1.0, "C3": 0.5, "C4": 0.0},
                xrefs={"smpdb": ["SMP001"]},
            ),
            make_record(
                "P2", "Beta pathway",
                rbc={"C3": 0.2, "C4": 0.3, "C5": 0.4},
                dgr={"C3": 0.1, "C4": 0.1, "C5": 0.2},
            ),
            make_record(
                "P3", "Gamma pathway",
                rbc={"C6": 0.1, "C7": 0.1},
                dgr={"C6": 0.5, "C7": 0.5},
            ),
            make_record(
                "P4", "Delta pathway",
                rbc={"C1": 0.3},
                dgr={"C1": 0.2, "C8": 0.4},
                members=("C1", "C8"),
            ),
        ],
        namespace=LibraryNamespace.KEGG,
        name="toy",
    )


@pytest.fixture
def library_payload():
    """The library file structure equivalent to a two-pathway library."""
    return {
        "name": "toy",
        "namespace": "kegg",
        "pathways": [
            {
                "id": "P1",
                "name": "Alpha pathway",
                "members": ["C1", "C2", "C3"],
                "rbc": {"C1": 0.5, "C2": 0.25, "C3": 0.0},
                "dgr": {"C1": 1.0, "C2": 1.0, "C3": 0.5},
                "xrefs": {"smpdb": ["SMP001"]},
            },
            {
                "id": "P2",
                "name": "Beta pathway",
                "members": ["C3", "C4"],
                "rbc": {"C3": 0.2, "C4": 0.3},
                "dgr": {"C3": 0.1, "C4": 0.1},
            },
        ],
    }


def generate_abundance(
    compounds,
    n_per_group=6,
    groups=("A", "B"),
    shifted=(),
    shift=4.0,
    seed=42,
):
    """
    Seeded samples x compounds table with class labels.

    Compounds in ``shifted`` get ``shift`` standard deviations added in
    every group after the first (scaled by group index).

    Returns:
        (data, labels) with labels a Series of group names
    """
    rng = np.random.default_rng(seed)
    n = n_per_group * len(groups)
    labels = pd.Series(np.repeat(list(groups), n_per_group), name="group")
    data = pd.DataFrame(
        rng.normal(10.0, 1.0, size=(n, len(compounds))),
        columns=list(compounds),
        index=[f"S{i:02d}" for i in range(n)],
    )
    group_index = pd.Categorical(labels, categories=list(groups)).codes
    for compound in shifted:
        data[compound] += shift * group_index
    labels.index = data.index
    return data, labels


@pytest.fixture
def two_group_abundance():
    """12 samples in groups A/B; C1 and C2 strongly shifted in B."""
    return generate_abundance(
        ["C1", "C2", "C3", "C4", "C5", "C6", "C7", "X9"],
        shifted=("C1", "C2"),
    )
