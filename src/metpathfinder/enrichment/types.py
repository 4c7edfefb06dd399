"""
Method selection enums and the ResultTable artifact.

Column names follow the downstream report renderer exactly; do not
rename them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import pandas as pd

from metpathfinder.core.context import AnalysisKind

__all__ = [
    'OraMethod',
    'QeaMethod',
    'ORA_COLUMNS',
    'QEA_COLUMNS',
    'ResultTable',
]


class OraMethod(Enum):
    """
    Over-representation test.

    Attributes:
        FISHER: One-sided Fisher's exact test on the 2x2 hit table
        HYPERGEOMETRIC: Hypergeometric upper tail P(X >= hits)
    """

    FISHER = "fisher"
    HYPERGEOMETRIC = "hyperg"

    @property
    def description(self) -> str:
        if self is OraMethod.FISHER:
            return "Fishers' exact test"
        return "Hypergeometric test"


class QeaMethod(Enum):
    """
    Pathway-level group test for quantitative enrichment.

    Attributes:
        GLOBAL_TEST: Goeman's global test
        GLOBAL_ANCOVA: Global ANCOVA with approximate null distribution
    """

    GLOBAL_TEST = "gt"
    GLOBAL_ANCOVA = "ga"

    @property
    def description(self) -> str:
        if self is QeaMethod.GLOBAL_TEST:
            return "Globaltest"
        return "GlobalAncova"


ORA_COLUMNS = ("Total", "Expected", "Hits", "Raw p", "-log(p)", "Holm adjust", "FDR", "Impact")
QEA_COLUMNS = ("Total Cmpd", "Hits", "Raw p", "-log(p)", "Holm adjust", "FDR", "Impact")

RAW_P = "Raw p"
IMPACT = "Impact"


@dataclass(frozen=True)
class ResultTable:
    """
    Ranked pathway table produced by one analysis run.

    Attributes:
        kind: Pipeline that produced the table
        frame: Rows indexed by pathway ID, columns ORA_COLUMNS or QEA_COLUMNS,
            values rounded to 5 significant digits, already in ranked order
        names: Display names aligned with ``frame.index``
    """

    kind: AnalysisKind
    frame: pd.DataFrame
    names: tuple[str, ...]

    def __post_init__(self):
        expected = ORA_COLUMNS if self.kind is AnalysisKind.ORA else QEA_COLUMNS
        if tuple(self.frame.columns) != expected:
            raise ValueError(
                f"{self.kind.name} table columns must be {expected}, "
                f"got {tuple(self.frame.columns)}"
            )
        if len(self.names) != len(self.frame):
            raise ValueError("names must align with table rows")
        object.__setattr__(self, 'names', tuple(self.names))

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def pathway_ids(self) -> tuple[str, ...]:
        return tuple(self.frame.index)

    def pathway_names(self) -> list[str]:
        return list(self.names)

    def labeled(self) -> pd.DataFrame:
        """Copy of the table with display names as row labels."""
        out = self.frame.copy()
        out.index = pd.Index(self.names)
        return out

    def to_csv(self, path: Path) -> Path:
        """Write the labeled table as CSV (atomic)."""
        from metpathfinder.io.writers import write_result_table
        return write_result_table(self, path)
