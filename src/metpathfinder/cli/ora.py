"""
MetPathFinder ora command - over-representation analysis of a compound list.

Usage:
    metpathfinder ora --library hsa.json --compounds hits.txt --method fisher --output results/ora
"""

import argparse
import logging
from pathlib import Path

from metpathfinder.cli._common import (
    add_common_arguments,
    apply_config,
    print_banner,
    reference_for,
    resolve_library,
    resolver_for,
    setup_logging,
)
from metpathfinder.core.library import ImportanceMetric
from metpathfinder.enrichment.overrepresentation import run_ora
from metpathfinder.enrichment.types import OraMethod
from metpathfinder.errors import PathwayAnalysisError
from metpathfinder.io.loaders import load_compound_list
from metpathfinder.io.writers import write_result_table

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ora subcommand."""
    parser = subparsers.add_parser(
        "ora",
        help="Over-representation analysis of a compound list",
        description=(
            "Test each pathway for over-representation of the query compounds "
            "(hypergeometric or Fisher's exact test) and score its topological impact."
        )
    )
    add_common_arguments(parser)
    parser.add_argument("--compounds", type=Path, required=True,
                        help="Query compounds, one identifier per line")
    parser.add_argument("--method", choices=[m.value for m in OraMethod],
                        default=OraMethod.HYPERGEOMETRIC.value,
                        help="Over-representation test (default: hyperg)")
    parser.add_argument("--node-imp", choices=[m.value for m in ImportanceMetric],
                        default=ImportanceMetric.RELATIVE_BETWEENNESS.value,
                        help="Node importance for impact (default: rbc)")

    parser.set_defaults(func=run_ora_command)


def run_ora_command(args: argparse.Namespace) -> int:
    """Execute the ora command."""
    setup_logging(args.verbose)

    print_banner("Pathway Over-Representation Analysis")

    try:
        args = apply_config(args, "ora")
        library = resolve_library(args)
        compounds = load_compound_list(args.compounds)
        logger.info(f"Loaded {len(compounds)} query identifiers from {args.compounds}")

        name_map = resolver_for(args, library).resolve(compounds)
        context = run_ora(
            name_map,
            library,
            metric=args.node_imp,
            method=args.method,
            reference=reference_for(args),
        )
        path = write_result_table(context.result, args.output)
    except (PathwayAnalysisError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    for message in context.messages:
        print(message)
    print(f"\nQuery compounds: {context.query_size}")
    print(f"Universe:        {context.universe_size}")
    print(f"Pathways:        {len(context.result)} with hits")
    print(f"Results:         {path}")
    return 0
