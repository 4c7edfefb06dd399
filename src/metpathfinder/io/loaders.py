"""
Loaders for pathway libraries, name maps, compound lists and abundance tables.

File formats:

    Pathway library (JSON or YAML), pathways in library order:

        name: hsa
        namespace: kegg
        pathways:
          - id: hsa00010
            name: Glycolysis / Gluconeogenesis
            members: [C00031, C00022, C00186]
            rbc: {C00031: 0.1, C00022: 0.4, C00186: 0.0}
            dgr: {C00031: 0.2, C00022: 0.3, C00186: 0.1}
            xrefs: {smpdb: [SMP00040]}

    Name map (CSV): ``query`` column plus one column per namespace
    (``kegg``, ``hmdb``); unmapped cells empty or "NA".

    Compound list / reference metabolome (text): one identifier per line;
    blank lines and lines starting with '#' are ignored.

    Abundance table (CSV): one row per sample, first column the sample ID,
    one column holding the class label, every other column a compound.

Examples:
    >>> library = load_library(Path("hsa.json"))
    >>> data, labels = load_abundance(Path("concentrations.csv"), class_column="group")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import yaml

from metpathfinder.core.library import (
    ImportanceMetric,
    LibraryNamespace,
    PathwayLibrary,
    PathwayRecord,
)

logger = logging.getLogger(__name__)

__all__ = [
    'load_library',
    'library_from_dict',
    'load_name_map',
    'load_compound_list',
    'load_reference',
    'load_abundance',
]


def _read_structured(path: Path) -> Any:
    suffix = path.suffix.lower()
    with open(path, 'r') as f:
        if suffix in ('.yaml', '.yml'):
            try:
                return yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}")
        if suffix == '.json':
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {path}: {e}")
    raise ValueError(f"Unsupported library format: {suffix}. Use .json, .yaml, or .yml")


def library_from_dict(payload: dict[str, Any]) -> PathwayLibrary:
    """Build a PathwayLibrary from the parsed library file structure."""
    if not isinstance(payload, dict) or 'pathways' not in payload:
        raise ValueError("Library file must be a mapping with a 'pathways' list")

    records = []
    for i, entry in enumerate(payload['pathways']):
        try:
            pathway_id = str(entry['id'])
            members = entry['members']
        except (KeyError, TypeError):
            raise ValueError(f"Pathway entry {i} needs 'id' and 'members'")
        importance = {
            metric: entry[metric.value]
            for metric in ImportanceMetric
            if entry.get(metric.value) is not None
        }
        xrefs = {
            db: [ids] if isinstance(ids, str) else list(ids)
            for db, ids in (entry.get('xrefs') or {}).items()
        }
        records.append(PathwayRecord(
            pathway_id=pathway_id,
            name=str(entry.get('name', pathway_id)),
            members=tuple(members),
            importance=importance,
            xrefs=xrefs,
        ))

    namespace = LibraryNamespace(str(payload.get('namespace', 'kegg')).lower())
    return PathwayLibrary(records, namespace=namespace, name=str(payload.get('name', '')))


def load_library(path: Path) -> PathwayLibrary:
    """
    Load a pathway library file (.json, .yaml, .yml).

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Library file not found: {path}")
    library = library_from_dict(_read_structured(path))
    logger.info(
        f"Loaded library '{library.name}' ({library.namespace.label}): "
        f"{len(library)} pathways, {library.universe_size} compounds"
    )
    return library


def load_name_map(path: Path) -> pd.DataFrame:
    """
    Load a name-mapping table as strings (empty cells become NaN).

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the ``query`` column is missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Name map not found: {path}")
    table = pd.read_csv(path, dtype=str, keep_default_na=True)
    table.columns = [str(c).strip().lower() for c in table.columns]
    if 'query' not in table.columns:
        raise ValueError(f"Name map {path} has no 'query' column")
    return table


def load_compound_list(path: Path) -> list[str]:
    """Identifiers from a one-per-line text file, file order kept."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Compound list not found: {path}")
    compounds = []
    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                compounds.append(line)
    return compounds


def load_reference(path: Path) -> set[str]:
    """Reference metabolome as a set of canonical IDs."""
    reference = set(load_compound_list(path))
    logger.info(f"Loaded reference metabolome: {len(reference)} compounds")
    return reference


def load_abundance(path: Path, class_column: str) -> tuple[pd.DataFrame, pd.Series]:
    """
    Load a samples x compounds abundance table and its class labels.

    Args:
        path: CSV with the sample ID in the first column
        class_column: Column holding the class label of each sample

    Returns:
        (data, labels): numeric abundance table without the label column,
        and the labels (numeric when every label parses as a number,
        strings otherwise)

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the class column is missing or abundances are not numeric
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Abundance table not found: {path}")

    table = pd.read_csv(path, index_col=0)
    if class_column not in table.columns:
        raise ValueError(
            f"Class column '{class_column}' not found in {path}; "
            f"columns: {list(table.columns)[:10]}"
        )

    raw_labels = table[class_column]
    if pd.api.types.is_numeric_dtype(raw_labels.dtype) and raw_labels.notna().all():
        labels = raw_labels.astype(np.float64)
    else:
        labels = raw_labels.astype(str)

    data = table.drop(columns=[class_column])
    non_numeric = [c for c in data.columns if not pd.api.types.is_numeric_dtype(data[c].dtype)]
    if non_numeric:
        raise ValueError(f"Non-numeric abundance columns: {non_numeric[:5]}")
    data.columns = [str(c) for c in data.columns]

    logger.info(f"Loaded abundance table: {data.shape[0]} samples x {data.shape[1]} compounds")
    return data.astype(np.float64), labels
