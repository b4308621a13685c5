"""Configuration layering for runtime tunables and deprecate options.

Precedence: CLI flag > environment variable > YAML config file > Constants
defaults. Runtime tunables are applied onto ``Constants`` so the HTTP and
retry layers pick them up without extra plumbing.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants
from deprecation.command import DeprecateOptions

logger = logging.getLogger(__name__)

# YAML key -> (Constants attribute, converter)
_TUNABLES = {
    "request_timeout": ("REQUEST_TIMEOUT", float),
    "max_retries": ("MAX_RETRIES", int),
    "default_retry_after": ("DEFAULT_RETRY_AFTER_SEC", float),
    "cache_max_entries": ("CACHE_MAX_ENTRIES", int),
}


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load configuration from a YAML (or JSON) file.

    Args:
        config_path: Path to the config file.

    Returns:
        Configuration dict; empty when no usable file was given.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a mapping at the top level.", config_path)
        return {}
    # Accept either a flat file or one nested under "pkglifecycle"
    section = data.get("pkglifecycle", data)
    return section if isinstance(section, dict) else {}


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value and value.strip():
        return value.strip()
    return None


def get_api_key(args: Any, config: Dict[str, Any]) -> Optional[str]:
    """Get the API key from the highest-priority source.

    Priority:
    1. CLI argument --api-key
    2. Environment variable PKGLIFECYCLE_API_KEY
    3. Config file key ``api_key``
    """
    cli_key = getattr(args, "API_KEY", None)
    if cli_key:
        return cli_key
    env_key = _env(Constants.ENV_API_KEY)
    if env_key:
        return env_key
    config_key = config.get("api_key")
    return str(config_key) if config_key else None


def get_source(args: Any, config: Dict[str, Any]) -> str:
    """Get the package source URL (CLI > env > config > default)."""
    return (
        getattr(args, "SOURCE", None)
        or _env(Constants.ENV_SOURCE)
        or config.get("source")
        or Constants.DEFAULT_SOURCE
    )


def apply_runtime_overrides(args: Any, config: Dict[str, Any]) -> None:
    """Apply config-file tunables, then CLI overrides, onto Constants.

    Invalid values are reported and the default is kept.
    """
    for key, (attr, convert) in _TUNABLES.items():
        if key not in config or config[key] is None:
            continue
        try:
            setattr(Constants, attr, convert(config[key]))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value %s=%r", key, config[key])

    if getattr(args, "MAX_RETRIES", None) is not None:
        Constants.MAX_RETRIES = int(args.MAX_RETRIES)


def build_deprecate_options(args: Any, config: Dict[str, Any]) -> DeprecateOptions:
    """Merge parsed CLI arguments with configuration into DeprecateOptions."""
    return DeprecateOptions(
        package_id=getattr(args, "PACKAGE_ID", None),
        versions=list(getattr(args, "VERSIONS", None) or []),
        ranges=list(getattr(args, "RANGES", None) or []),
        select_all=bool(getattr(args, "ALL", False)),
        api_key=get_api_key(args, config),
        legacy=bool(getattr(args, "LEGACY", False)),
        critical_bugs=bool(getattr(args, "CRITICAL_BUGS", False)),
        other_reason=bool(getattr(args, "OTHER_REASON", False)),
        message=getattr(args, "MESSAGE", None),
        alternate_id=getattr(args, "ALTERNATE_ID", None),
        alternate_version=getattr(args, "ALTERNATE_VERSION", None),
        dry_run=bool(getattr(args, "DRY_RUN", False)),
        overwrite=bool(getattr(args, "OVERWRITE", False)),
        allow_missing_versions=bool(getattr(args, "ALLOW_MISSING_VERSIONS", False)),
        skip_validation=bool(getattr(args, "SKIP_VALIDATION", False)),
        source=get_source(args, config),
        package_publish_url=getattr(args, "PACKAGE_PUBLISH_URL", None) or config.get("package_publish_url"),
        listed=getattr(args, "LISTED", None),
        confirm=bool(getattr(args, "CONFIRM", False)),
    )
