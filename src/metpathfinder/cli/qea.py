"""
MetPathFinder qea command - quantitative enrichment analysis of abundance data.

Usage:
    metpathfinder qea --library hsa.json --abundance conc.csv --class-column group \
        --method gt --output results/qea
"""

import argparse
import logging
from pathlib import Path

from metpathfinder.cli._common import (
    add_common_arguments,
    apply_config,
    positive_int,
    print_banner,
    reference_for,
    resolve_library,
    resolver_for,
    setup_logging,
)
from metpathfinder.core.library import ImportanceMetric
from metpathfinder.enrichment.quantitative import compute_qea
from metpathfinder.enrichment.types import QeaMethod
from metpathfinder.errors import PathwayAnalysisError
from metpathfinder.io.loaders import load_abundance
from metpathfinder.io.writers import write_result_table, write_univariate_pvalues

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the qea subcommand."""
    parser = subparsers.add_parser(
        "qea",
        help="Quantitative enrichment analysis of abundance data",
        description=(
            "Test each pathway's compounds jointly against the class labels "
            "(global test or global ANCOVA) and score its topological impact."
        )
    )
    add_common_arguments(parser)
    parser.add_argument("--abundance", type=Path, required=True,
                        help="Abundance CSV (samples x compounds, sample ID first column)")
    parser.add_argument("--class-column", default="class",
                        help="Column holding the class label (default: class)")
    parser.add_argument("--method", choices=[m.value for m in QeaMethod],
                        default=QeaMethod.GLOBAL_TEST.value,
                        help="Group test: gt (global test) or ga (global ANCOVA) (default: gt)")
    parser.add_argument("--node-imp", choices=[m.value for m in ImportanceMetric],
                        default=ImportanceMetric.RELATIVE_BETWEENNESS.value,
                        help="Node importance for impact (default: rbc)")
    parser.add_argument("--n-permutations", type=positive_int, default=10000,
                        help="Permutations for the global test with >2 classes (default: 10000)")
    parser.add_argument("--seed", type=int, default=0,
                        help="Permutation seed (default: 0)")

    parser.set_defaults(func=run_qea_command)


def run_qea_command(args: argparse.Namespace) -> int:
    """Execute the qea command."""
    setup_logging(args.verbose)

    print_banner("Pathway Quantitative Enrichment Analysis")

    try:
        args = apply_config(args, "qea")
        library = resolve_library(args)
        data, labels = load_abundance(args.abundance, args.class_column)

        name_map = None
        if args.name_map is not None:
            name_map = resolver_for(args, library).resolve(list(data.columns))

        context = compute_qea(
            data,
            labels,
            library,
            name_map=name_map,
            metric=args.node_imp,
            method=args.method,
            reference=reference_for(args),
            n_permutations=args.n_permutations,
            seed=args.seed,
        )
        path = write_result_table(context.result, args.output)
        univariate_path = write_univariate_pvalues(context.univariate_p, args.output)
    except (PathwayAnalysisError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    for message in context.messages:
        print(message)
    print(f"\nSamples:            {data.shape[0]}")
    print(f"Mapped compounds:   {context.query_size}")
    print(f"Pathways:           {len(context.result)} tested")
    print(f"Results:            {path}")
    print(f"Univariate p-values: {univariate_path}")
    return 0
