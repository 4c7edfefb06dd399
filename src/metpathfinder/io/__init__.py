"""
I/O for pathway libraries, compound inputs and result tables.

Key Functions:
    - load_library: Pathway library from JSON/YAML
    - load_name_map: Precomputed compound name-mapping table
    - load_compound_list / load_reference: One-per-line identifier files
    - load_abundance: Samples x compounds table plus class labels
    - write_result_table: Ranked pathway table as CSV
    - write_univariate_pvalues: Per-compound QEA p-values as CSV
"""

from metpathfinder.io.loaders import (
    load_library,
    library_from_dict,
    load_name_map,
    load_compound_list,
    load_reference,
    load_abundance,
)
from metpathfinder.io.writers import write_result_table, write_univariate_pvalues

__all__ = [
    'load_library',
    'library_from_dict',
    'load_name_map',
    'load_compound_list',
    'load_reference',
    'load_abundance',
    'write_result_table',
    'write_univariate_pvalues',
]
