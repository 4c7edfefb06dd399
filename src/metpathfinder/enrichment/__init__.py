"""
Pathway enrichment engines.

Two pipelines share reference filtering, hit counting, impact scoring,
multiple-testing correction and ranking:

    - compute_ora: over-representation of a compound list
      (hypergeometric or Fisher's exact test)
    - compute_qea: quantitative enrichment of abundance data
      (global test or global ANCOVA), optionally split into
      prepare_qea / run_group_test / finish_qea around a worker

Examples:
    >>> from metpathfinder.enrichment import compute_ora, OraMethod
    >>> context = compute_ora(["C00031", "C00022"], library, method=OraMethod.FISHER)
    >>> context.result.labeled().head()
"""

from metpathfinder.enrichment.types import (
    OraMethod,
    QeaMethod,
    ORA_COLUMNS,
    QEA_COLUMNS,
    ResultTable,
)
from metpathfinder.enrichment.filtering import FilteredLibrary, ReferenceFilter
from metpathfinder.enrichment.hits import HitTable, count_hits, compute_impact
from metpathfinder.enrichment.correction import adjust_pvalues, correct_pvalues
from metpathfinder.enrichment.ranking import ResultRanker, signif
from metpathfinder.enrichment.overrepresentation import (
    HypergeometricTest,
    FisherExactTest,
    get_ora_test,
    compute_ora,
    run_ora,
)
from metpathfinder.enrichment.worker import (
    GroupTestRequest,
    GroupTestResponse,
    GroupTestWorker,
    run_group_test,
)
from metpathfinder.enrichment.quantitative import (
    QeaSubmission,
    map_abundance_columns,
    prepare_qea,
    finish_qea,
    compute_qea,
)

__all__ = [
    'OraMethod',
    'QeaMethod',
    'ORA_COLUMNS',
    'QEA_COLUMNS',
    'ResultTable',
    'FilteredLibrary',
    'ReferenceFilter',
    'HitTable',
    'count_hits',
    'compute_impact',
    'adjust_pvalues',
    'correct_pvalues',
    'ResultRanker',
    'signif',
    'HypergeometricTest',
    'FisherExactTest',
    'get_ora_test',
    'compute_ora',
    'run_ora',
    'GroupTestRequest',
    'GroupTestResponse',
    'GroupTestWorker',
    'run_group_test',
    'QeaSubmission',
    'map_abundance_columns',
    'prepare_qea',
    'finish_qea',
    'compute_qea',
]
