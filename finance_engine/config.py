"""Configuration management for the finance engine.

This module centralizes tunable values and environment variable overrides.
Every value has a default so the engine runs without any environment set up.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

# Window used to flag bills as upcoming
UPCOMING_BILL_DAYS = int(os.getenv("FINANCE_ENGINE_UPCOMING_DAYS", "7"))

# Upper bound on catch-up instances proposed for a single series per run
MAX_CATCH_UP = int(os.getenv("FINANCE_ENGINE_MAX_CATCH_UP", "366"))

# Optional JSON file overriding health-rule point values
HEALTH_RULES_PATH: Optional[Path] = (
    Path(os.environ["FINANCE_ENGINE_HEALTH_RULES"]).resolve()
    if os.getenv("FINANCE_ENGINE_HEALTH_RULES")
    else None
)

LOG_LEVEL = os.getenv("FINANCE_ENGINE_LOG_LEVEL", "WARNING").upper()


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a basic handler to the package logger."""
    logger = logging.getLogger("finance_engine")
    logger.setLevel(level or LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        logger.addHandler(handler)


def load_json_config(path: Path) -> Dict[str, Any]:
    """Load a JSON configuration file.

    Args:
        path: Location of the JSON file

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        json.JSONDecodeError: If the configuration file is invalid JSON
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def get_health_point_overrides(path: Optional[Path] = None) -> Dict[str, int]:
    """Return ``{bucket: points}`` overrides for the health score rules.

    The file holds ``{"points": {"over_budget": -25, ...}}``. A missing
    ``path`` (and no ``FINANCE_ENGINE_HEALTH_RULES``) means no overrides.
    """
    target = path or HEALTH_RULES_PATH
    if target is None:
        return {}
    data = load_json_config(target)
    points = data.get('points') or {}
    if not isinstance(points, dict):
        return {}
    return {str(bucket): int(value) for bucket, value in points.items()}
