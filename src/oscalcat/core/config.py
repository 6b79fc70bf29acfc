"""3-layer configuration for the catalog pipeline.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (oscalcat.yaml in the project directory)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "oscalcat.yaml"

NIST_BASE_URL = (
    "https://raw.githubusercontent.com/usnistgov/oscal-content/main/nist.gov/SP800-53/rev5/json"
)

DEFAULT_CONFIG: dict = {
    "paths": {
        "raw_dir": "data/oscal-raw",
        "output_dir": "public/data",
    },
    "source": {
        "name": "NIST SP 800-53 Rev 5",
        "url": "https://github.com/usnistgov/oscal-content",
        "base_url": NIST_BASE_URL,
        "files": {
            "catalog": "NIST_SP-800-53_rev5_catalog.json",
            "low": "NIST_SP-800-53_rev5_LOW-baseline_profile.json",
            "moderate": "NIST_SP-800-53_rev5_MODERATE-baseline_profile.json",
            "high": "NIST_SP-800-53_rev5_HIGH-baseline_profile.json",
        },
    },
    "download": {
        "retry_attempts": 3,
        "retry_delay_seconds": 1,
        "timeout_seconds": 60,
        "user_agent": "oscalcat/1.0 (NIST OSCAL Data Download)",
    },
    "outputs": {
        "catalog": "nist-800-53-rev5.json",
        "families": "control-families.json",
        "fedramp": "fedramp-baselines.json",
        "max_catalog_mb": 5,
    },
    "validation": {
        "expected_families": [
            "AC", "AT", "AU", "CA", "CM", "CP", "IA", "IR", "MA", "MP",
            "PE", "PL", "PM", "PS", "PT", "RA", "SA", "SC", "SI", "SR",
        ],
    },
    "reference_data": {
        "family_metadata": None,
        "fedramp": None,
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_project_config(project_path: Path) -> dict:
    """Load project configuration from oscalcat.yaml, or {} when absent."""
    config_path = project_path / CONFIG_FILENAME
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        return yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}


def get_effective_config(
    project_path: Path,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration for a pipeline run."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    project_config = load_project_config(project_path)
    if project_config:
        config = deep_merge(config, project_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    config["_project_path"] = str(project_path)
    return config


def resolve_path(config: dict, value: str | Path) -> Path:
    """Resolve a configured path relative to the project directory."""
    path = Path(value)
    if path.is_absolute():
        return path
    return Path(config.get("_project_path", ".")) / path


def raw_dir(config: dict) -> Path:
    return resolve_path(config, config["paths"]["raw_dir"])


def output_dir(config: dict) -> Path:
    return resolve_path(config, config["paths"]["output_dir"])


def raw_file(config: dict, key: str) -> Path:
    """Path of a raw source file: 'catalog', 'low', 'moderate' or 'high'."""
    return raw_dir(config) / config["source"]["files"][key]


def output_file(config: dict, key: str) -> Path:
    """Path of an output artifact: 'catalog', 'families' or 'fedramp'."""
    return output_dir(config) / config["outputs"][key]
