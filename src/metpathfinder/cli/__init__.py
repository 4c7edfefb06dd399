"""
MetPathFinder CLI - Command-line interface for metabolic pathway analysis.

Commands:
    metpathfinder ora  - Over-representation analysis of a compound list
    metpathfinder qea  - Quantitative enrichment analysis of abundance data
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for metpathfinder."""
    from metpathfinder import __version__

    parser = argparse.ArgumentParser(
        prog="metpathfinder",
        description="Pathway enrichment and topology analysis for metabolomics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  ora   Over-representation analysis (hypergeometric / Fisher's exact test)
  qea   Quantitative enrichment analysis (global test / global ANCOVA)

Examples:
  metpathfinder ora --library hsa.json --compounds hits.txt --output results/ora
  metpathfinder qea --library hsa.json --abundance conc.csv --class-column group --method ga
  metpathfinder ora --config pipeline.yaml --compounds hits.txt --method fisher
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from metpathfinder.cli import ora, qea
    ora.register_parser(subparsers)
    qea.register_parser(subparsers)

    argv = list(sys.argv[1:] if args is None else args)
    parsed_args = parser.parse_args(argv)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    # explicit flags take precedence over --config values
    parsed_args.argv = argv
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
