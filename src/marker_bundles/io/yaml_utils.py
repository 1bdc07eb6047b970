"""Define utility functions for importing data from YAML files."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import yaml

from marker_bundles.errors import ConfigLoadError

if TYPE_CHECKING:
    from pathlib import Path


def load_yaml_data(yaml_path: Path, required_keys: set[str] | None = None) -> Any:
    """Load data from a YAML file into Python data structures.

    :param yaml_path: Path to the YAML file to be imported
    :param required_keys: Set of keys required to exist in the loaded data (if None, ignored)
    :return: Dictionary mapping strings to values, or a list of dictionaries, etc.
    :raises ConfigLoadError: If the file is missing, malformed, or lacks a required key
    """
    if not yaml_path.exists():
        raise ConfigLoadError(f"Cannot load data from nonexistent YAML file: {yaml_path}")

    try:
        with yaml_path.open() as yaml_file:
            yaml_data: dict | list | None = yaml.safe_load(yaml_file)
    except yaml.YAMLError as error:
        raise ConfigLoadError(f"Failed to load from YAML file: {yaml_path}") from error

    if required_keys is not None:
        if not isinstance(yaml_data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top level of {yaml_path}")
        for key in sorted(required_keys):
            if key not in yaml_data:
                raise ConfigLoadError(f"Required key '{key}' was missing in {yaml_path}")

    return yaml_data
