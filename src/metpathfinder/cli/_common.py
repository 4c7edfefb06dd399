"""Shared option handling for the ora and qea subcommands."""

import argparse
import logging
from pathlib import Path
from typing import Optional, Set

from metpathfinder.core.library import LibraryNamespace, PathwayLibrary
from metpathfinder.cli.config import load_config, merge_config_with_args, validate_config
from metpathfinder.io.loaders import load_library, load_name_map, load_reference
from metpathfinder.mapping.names import IdentityNameResolver, NameResolver, TableNameResolver

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    """argparse type for positive integers (> 0)."""
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return ivalue


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by every analysis subcommand."""
    parser.add_argument("--library", "-l", type=Path,
                        help="Pathway library file (.json, .yaml)")
    parser.add_argument("--name-map", type=Path, default=None,
                        help="Name-mapping CSV (query, kegg, hmdb); inputs are "
                             "treated as canonical IDs when omitted")
    parser.add_argument("--namespace", choices=[n.value for n in LibraryNamespace], default=None,
                        help="Override the library's compound namespace")
    parser.add_argument("--reference", type=Path, default=None,
                        help="Reference metabolome, one compound ID per line (optional)")
    parser.add_argument("--output", "-o", type=Path, default=Path("results"),
                        help="Output directory (default: results)")
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="YAML or JSON config file; explicit flags override it")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def apply_config(args: argparse.Namespace, command: str) -> argparse.Namespace:
    """Merge ``--config`` into ``args`` (no-op without a config file)."""
    if args.config is None:
        return args
    config = load_config(args.config)
    validate_config(config)
    logger.info(f"Loaded config: {args.config}")
    return merge_config_with_args(config, args, command, getattr(args, 'argv', None))


def print_banner(title: str) -> None:
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def resolve_library(args: argparse.Namespace) -> PathwayLibrary:
    if args.library is None:
        raise ValueError("A pathway library is required (--library or 'library' in the config)")
    library = load_library(args.library)
    if args.namespace is not None:
        namespace = LibraryNamespace(args.namespace)
        if namespace is not library.namespace:
            library = PathwayLibrary(list(library), namespace=namespace, name=library.name)
    return library


def resolver_for(args: argparse.Namespace, library: PathwayLibrary) -> NameResolver:
    if args.name_map is None:
        return IdentityNameResolver()
    return TableNameResolver(load_name_map(args.name_map), library.namespace)


def reference_for(args: argparse.Namespace) -> Optional[Set[str]]:
    if args.reference is None:
        return None
    return load_reference(args.reference)
