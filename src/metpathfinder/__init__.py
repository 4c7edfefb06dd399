"""
MetPathFinder - Pathway enrichment and topology analysis for metabolomics

Ranks curated metabolic pathways for a list of identified compounds
(over-representation analysis) or for quantitative abundance data
(quantitative enrichment analysis), combining statistical significance
with a topological impact score computed from each pathway's network.
"""

__version__ = "0.1.0"

from metpathfinder.core.library import PathwayLibrary, PathwayRecord
from metpathfinder.core.context import AnalysisContext
from metpathfinder.enrichment.overrepresentation import compute_ora
from metpathfinder.enrichment.quantitative import compute_qea

__all__ = [
    "PathwayLibrary",
    "PathwayRecord",
    "AnalysisContext",
    "compute_ora",
    "compute_qea",
]
