"""YAML configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML file and return its content as a dict.

    Args:
        path: Path to the file.

    Returns:
        File content as a dictionary (empty for an empty file).

    Raises:
        FileNotFoundError: The file does not exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    log.debug("Loaded config %s (%d top-level keys)", p.name, len(data or {}))
    return data or {}


def load_optional_yaml(path: str | Path) -> dict[str, Any]:
    """Like :func:`load_yaml` but returns ``{}`` when the file is absent."""
    p = Path(path)
    if not p.exists():
        log.info("Optional config %s not present — using defaults", p.name)
        return {}
    return load_yaml(p)


def get_section(cfg: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Walk nested mappings, e.g. ``get_section(cfg, "analysis", "anomaly")``."""
    node: Any = cfg
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node
