"""
Statistical routines for quantitative enrichment analysis.

Modules:
    univariate: Per-compound linear-model p-values
    globaltest: Goeman's global test for pathway-level association
    globalancova: Global ANCOVA with approximate null distribution
    quadform: Tail probabilities of weighted chi-square sums (Imhof)
"""

from metpathfinder.stats.quadform import imhof_upper_tail
from metpathfinder.stats.univariate import (
    class_response,
    class_design,
    univariate_pvalues,
)
from metpathfinder.stats.globaltest import global_test
from metpathfinder.stats.globalancova import global_ancova

__all__ = [
    'imhof_upper_tail',
    'class_response',
    'class_design',
    'univariate_pvalues',
    'global_test',
    'global_ancova',
]
