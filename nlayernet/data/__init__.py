"""File adapters: run configuration, truth tables and weights."""

from .config import RunConfig, load_config, read_config_file, resolve_config
from .truth_table import cases_from_config, load_truth_table, save_truth_table
from .weights import checkpoint_path, load_weights, save_weights

__all__ = [
    "RunConfig",
    "cases_from_config",
    "checkpoint_path",
    "load_config",
    "load_truth_table",
    "load_weights",
    "read_config_file",
    "resolve_config",
    "save_truth_table",
    "save_weights",
]
