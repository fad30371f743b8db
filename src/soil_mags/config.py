# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Third-Party Imports
import yaml

# Local Imports
from soil_mags import constants

# ================================= DEFAULT VALUES =================================== #

DEFAULT_CONFIG: Dict[str, Any] = {
    "project": {
        "output_dir": None,
        "log_dir": None,
    },
    "inputs": {
        "assembly": None,
        "metagenome": None,
        "chemistry": None,
        "tree": None,
    },
    "loading": {
        "concurrent": True,
    },
    "logging": {
        "console_level": "INFO",
        "file_level": "DEBUG",
    },
    "identifiers": {
        "boilerplate": constants.SAMPLE_NAME_BOILERPLATE,
        "site_separator": constants.SITE_SEPARATOR,
        "sample_suffix_pattern": constants.SAMPLE_NAME_SUFFIX_PATTERN,
        "combined_assembly_label": constants.COMBINED_ASSEMBLY_LABEL,
        "chemistry_key_suffix": constants.CHEMISTRY_KEY_SUFFIX,
    },
    "metagenome": {
        "noise_patterns": list(constants.METAGENOME_NOISE_PATTERNS),
    },
    "drop_columns": {
        constants.SOURCE_ASSEMBLY: list(constants.ASSEMBLY_DROP_COLUMNS),
        constants.SOURCE_METAGENOME: list(constants.METAGENOME_DROP_COLUMNS),
        constants.SOURCE_CHEMISTRY: list(constants.CHEMISTRY_DROP_COLUMNS),
    },
    "subsets": {},
    "analysis": {
        "novelty_ranks": list(constants.DEFAULT_NOVELTY_RANKS),
        "group_fields": list(constants.DEFAULT_GROUP_FIELDS),
        "summary_fields": list(constants.DEFAULT_SUMMARY_FIELDS),
        "summary_group_field": "site",
        "tree_label_field": constants.DEFAULT_TREE_LABEL_FIELD,
    },
}

# ==================================== FUNCTIONS ===================================== #

def resolve_relative_paths(config: Dict, config_dir: Path) -> Dict:
    """Converts any relative paths in the configuration to absolute paths based on
    the directory of the config file."""
    for key, value in config.items():
        if isinstance(value, str):
            if value.startswith("./") or value.startswith("../"):
                config[key] = (config_dir / value).resolve()
        elif isinstance(value, dict):
            config[key] = resolve_relative_paths(value, config_dir)
    return config


def merge_config(base: Dict, override: Dict) -> Dict:
    """Recursively merge `override` onto a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_config(
    config_path: Optional[Union[str, Path]] = constants.DEFAULT_CONFIG
) -> Dict:
    """
    Load a YAML configuration and fill omitted keys from `DEFAULT_CONFIG`.

    Args:
        config_path: Path to the YAML file. If None, the defaults are returned.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If `config_path` does not exist.
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as file:
        config = yaml.safe_load(file) or {}

    config_dir = config_path.resolve().parent
    config = resolve_relative_paths(config, config_dir)

    return merge_config(DEFAULT_CONFIG, config)
