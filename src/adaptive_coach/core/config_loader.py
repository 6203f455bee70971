"""
YAML → typed config loader.

Loads engine thresholds from coaching.yaml (bundled with the package) and
optionally merges user overrides from ~/.adaptive-coach/coaching.yaml.

Usage:
    from adaptive_coach.core.config_loader import load_coach_settings
    settings = load_coach_settings()
    settings.recovery.fatigue_high

If the bundled YAML cannot be parsed, the Python defaults from config.py
are used (no crash).  If the user override file exists but has parse
errors, a warning is emitted and the file is ignored.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
import warnings
from pathlib import Path
from typing import Any

import yaml

from .config import CoachSettings

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "coaching.yaml"
USER_CONFIG_DIRNAME = ".adaptive-coach"

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; raise yaml.YAMLError / OSError on failure."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled coaching.yaml, or None if not found."""
    ref = importlib.resources.files("adaptive_coach").joinpath(CONFIG_FILENAME)
    if ref.is_file():
        with importlib.resources.as_file(ref) as p:
            return p
    candidate = Path(__file__).parent.parent / CONFIG_FILENAME
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.adaptive-coach/coaching.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / USER_CONFIG_DIRNAME / CONFIG_FILENAME
    return p if p.exists() else None


def load_coach_config(user_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge coaching configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/adaptive_coach/coaching.yaml
    2. User override (``user_path`` or ~/.adaptive-coach/coaching.yaml)

    Args:
        user_path: Explicit override file; defaults to the home location

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        try:
            config = _deep_merge(config, _load_yaml_file(bundled))
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Bundled %s unreadable, using defaults: %s", CONFIG_FILENAME, e)

    user = user_path if user_path is not None else get_user_yaml_path()
    if user is not None and user.exists():
        try:
            user_cfg = _load_yaml_file(user)
        except (OSError, yaml.YAMLError) as e:
            warnings.warn(f"Ignoring {user}: {e}", stacklevel=2)
            user_cfg = {}
        if user_cfg:
            config = _deep_merge(config, user_cfg)

    return config


def load_coach_settings(user_path: Path | None = None) -> CoachSettings:
    """Load merged YAML configuration into typed engine settings."""
    return CoachSettings.from_config(load_coach_config(user_path))
