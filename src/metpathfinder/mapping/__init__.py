"""Compound name resolution into a pathway library's identifier space."""

from metpathfinder.mapping.names import (
    NameResolver,
    TableNameResolver,
    IdentityNameResolver,
    valid_mappings,
    query_compounds,
)

__all__ = [
    'NameResolver',
    'TableNameResolver',
    'IdentityNameResolver',
    'valid_mappings',
    'query_compounds',
]
