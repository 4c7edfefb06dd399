"""
CSV writers for analysis results.

Result tables are written with pathway display names as row labels and
an empty index header, matching what the downstream report renderer
reads:

    "","Total","Expected","Hits","Raw p","-log(p)","Holm adjust","FDR","Impact"
    "Glycolysis / Gluconeogenesis",26,0.61,3,0.020312,...

All writes are atomic (temp file + rename); a run that fails before its
table exists leaves no result file behind.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from metpathfinder.enrichment.types import ResultTable
from metpathfinder.utils.fileio import atomic_write_frame

logger = logging.getLogger(__name__)

__all__ = [
    'RESULT_FILENAME',
    'UNIVARIATE_FILENAME',
    'write_result_table',
    'write_univariate_pvalues',
]

RESULT_FILENAME = "pathway_results.csv"
UNIVARIATE_FILENAME = "univariate_pvalues.csv"


def _target(path: Path, default_name: str) -> Path:
    path = Path(path)
    if path.is_dir() or not path.suffix:
        path.mkdir(parents=True, exist_ok=True)
        return path / default_name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_result_table(table: ResultTable, path: Path) -> Path:
    """
    Write a ranked pathway table.

    Args:
        table: Result of compute_ora / compute_qea
        path: Output directory (file named ``pathway_results.csv``) or CSV path

    Returns:
        Path of the written file
    """
    target = _target(path, RESULT_FILENAME)
    atomic_write_frame(target, table.labeled(), index_label="")
    logger.info(f"Wrote {len(table)} pathways to {target}")
    return target


def write_univariate_pvalues(pvalues: pd.Series, path: Path) -> Path:
    """Write per-compound QEA p-values (one row per canonical compound ID)."""
    target = _target(path, UNIVARIATE_FILENAME)
    frame = pvalues.rename("p").to_frame()
    atomic_write_frame(target, frame, index_label="")
    logger.info(f"Wrote univariate p-values for {len(frame)} compounds to {target}")
    return target
