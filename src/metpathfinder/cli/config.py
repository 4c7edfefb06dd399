"""
Configuration file support for the MetPathFinder CLI.

Supports YAML and JSON config files with CLI argument override:

    library: libs/hsa.json
    output: results/run1
    name_map: name_map.csv
    reference: reference.txt
    ora:
      method: fisher
      node_imp: dgr
    qea:
      method: ga
      node_imp: rbc
      class_column: group
      n_permutations: 5000
      seed: 1
"""

import json
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from metpathfinder.core.library import ImportanceMetric, LibraryNamespace
from metpathfinder.enrichment.types import OraMethod, QeaMethod

__all__ = ['load_config', 'merge_config_with_args', 'validate_config']

_PATH_KEYS = ('library', 'output', 'name_map', 'reference')
_SECTION_KEYS = {
    'ora': {'method': 'method', 'node_imp': 'node_imp'},
    'qea': {
        'method': 'method',
        'node_imp': 'node_imp',
        'class_column': 'class_column',
        'n_permutations': 'n_permutations',
        'seed': 'seed',
    },
}


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with a CLI argument.

    Explicit CLI values win, then config values, then CLI defaults.
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    explicit = set()
    short_to_long = {'o': 'output', 'l': 'library', 'c': 'config'}
    for arg in cli_args or ():
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg.startswith('-') and len(arg) == 2 and arg[1] in short_to_long:
            explicit.add(short_to_long[arg[1]])
    return explicit


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    command: str,
    cli_args: Optional[List[str]] = None,
) -> Namespace:
    """
    Merge config file values with CLI arguments for one subcommand.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values (top level, then the ``command`` section)
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments
        command: "ora" or "qea"; selects the config section
        cli_args: Raw CLI arguments (for detecting explicit values).
            If None, every argument is treated as a default.

    Returns:
        Updated Namespace with merged values
    """
    explicit = _explicit_args(cli_args)
    merged = Namespace(**vars(args))

    for key in _PATH_KEYS:
        if key in config and hasattr(merged, key):
            value = config[key]
            if value is not None:
                value = Path(value)
            setattr(merged, key, _merge_value(getattr(merged, key), value, key in explicit))

    if 'namespace' in config and hasattr(merged, 'namespace'):
        merged.namespace = _merge_value(merged.namespace, config['namespace'], 'namespace' in explicit)

    section = config.get(command) or {}
    for config_key, arg_name in _SECTION_KEYS.get(command, {}).items():
        if config_key in section and hasattr(merged, arg_name):
            setattr(
                merged,
                arg_name,
                _merge_value(getattr(merged, arg_name), section[config_key], arg_name in explicit),
            )

    return merged


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration values.

    Raises:
        ValueError: If a method, importance measure or namespace name is unknown,
            or permutation settings are out of range
    """
    def _check(value, enum_cls, what):
        valid = [m.value for m in enum_cls]
        if value not in valid:
            raise ValueError(f"Invalid {what} '{value}'. Choose from: {', '.join(valid)}")

    if 'namespace' in config:
        _check(config['namespace'], LibraryNamespace, "namespace")

    ora = config.get('ora') or {}
    if 'method' in ora:
        _check(ora['method'], OraMethod, "ORA method")
    if 'node_imp' in ora:
        _check(ora['node_imp'], ImportanceMetric, "node importance measure")

    qea = config.get('qea') or {}
    if 'method' in qea:
        _check(qea['method'], QeaMethod, "QEA method")
    if 'node_imp' in qea:
        _check(qea['node_imp'], ImportanceMetric, "node importance measure")
    if 'n_permutations' in qea:
        n = qea['n_permutations']
        if not isinstance(n, int) or isinstance(n, bool) or n < 1:
            raise ValueError(f"n_permutations must be a positive integer, got: {n}")
    if 'seed' in qea and qea['seed'] is not None and not isinstance(qea['seed'], int):
        raise ValueError(f"seed must be an integer, got: {qea['seed']}")
