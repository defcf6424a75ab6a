"""
Loading of automation configuration.

Automations are configured as a mapping of name -> automation, either inline
or in a YAML file.
"""

import logging
from os import PathLike
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from .models import AutomationConfigError

logger = logging.getLogger(__name__)

ConfigSource = Union[Mapping[str, Any], str, PathLike, None]


def read_automations_file(path: Union[str, PathLike]) -> Dict[str, Any]:
    """
    Read automations from a YAML file.

    Returns:
        The automations mapping (empty if the file does not exist)

    Raises:
        AutomationConfigError: If the file is not valid YAML or not a mapping
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.warning(f"Automations file {file_path} not found")
        return {}

    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise AutomationConfigError(f"{file_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise AutomationConfigError(f"{file_path}: top level must be a mapping of automations")
    return dict(data)


def load_automations_config(source: ConfigSource) -> Dict[str, Any]:
    """
    Normalize any supported configuration source to a mapping.

    Args:
        source: Inline mapping, path to a YAML file, or None

    Returns:
        Mapping of automation name -> automation config (empty on error)
    """
    if source is None:
        return {}
    if isinstance(source, (str, PathLike)):
        try:
            return read_automations_file(source)
        except AutomationConfigError as e:
            logger.error(f"Config validation error: {e}")
            return {}
    if isinstance(source, Mapping):
        return dict(source)
    logger.error(f"Config validation error: unsupported automations config {type(source).__name__}")
    return {}
