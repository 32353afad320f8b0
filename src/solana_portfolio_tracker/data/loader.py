"""Loader for bundled default configuration and user overrides."""

from pathlib import Path
from typing import Any

import yaml

from solana_portfolio_tracker.data.addresses import WELL_KNOWN_TOKENS


def load_defaults() -> dict[str, Any]:
    """
    Load bundled runtime defaults from defaults.yaml.

    Returns
    -------
    dict[str, Any]
        Raw configuration mapping

    """
    path = Path(__file__).parent / "defaults.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_user_config(path: str | Path) -> dict[str, Any]:
    """
    Load a user configuration file.

    Parameters
    ----------
    path : str | Path
        Path to a YAML file with the same layout as defaults.yaml

    Returns
    -------
    dict[str, Any]
        Raw configuration mapping (empty if the file is empty)

    Raises
    ------
    FileNotFoundError
        If the file does not exist

    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration mappings.

    Nested mappings are merged key by key; any other value in ``override``
    replaces the one in ``base``. Neither input is modified.

    Parameters
    ----------
    base : dict[str, Any]
        Base mapping
    override : dict[str, Any]
        Values taking precedence

    Returns
    -------
    dict[str, Any]
        Merged mapping

    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_well_known_token(mint: str) -> dict[str, Any] | None:
    """
    Get static metadata for a well-known mint.

    Parameters
    ----------
    mint : str
        Token mint address

    Returns
    -------
    dict[str, Any] | None
        Name, symbol, decimals and logo, or None if not in the table

    """
    return WELL_KNOWN_TOKENS.get(mint)
