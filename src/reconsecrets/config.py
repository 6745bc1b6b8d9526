# SPDX-License-Identifier: MIT
"""
Secret detection configuration loader for reconsecrets.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from reconsecrets.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

SECTION = "secrets_config"
CONFIG_FILE_NAMES = (".reconsecrets.yml", ".reconsecrets.yaml")


class SecretsConfig(BaseModel):
    """Recognised secret detection options.

    Keys used by older configuration files (``enable_trufflehog``,
    ``trufflehog_path`` ...) are accepted as aliases.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    enabled: bool = True
    enable_external_tool: bool = Field(
        default=True, validation_alias=AliasChoices("enable_external_tool", "enable_trufflehog")
    )
    enable_custom_regex: bool = True
    external_tool_path: str = Field(
        default="trufflehog", validation_alias=AliasChoices("external_tool_path", "trufflehog_path")
    )
    external_tool_timeout_seconds: float = Field(
        default=60,
        validation_alias=AliasChoices("external_tool_timeout_seconds", "trufflehog_timeout_seconds"),
    )
    external_tool_no_verification: bool = Field(
        default=True,
        validation_alias=AliasChoices("external_tool_no_verification", "trufflehog_no_verification"),
    )
    max_file_size_to_scan_mb: float = Field(default=5, ge=0)
    custom_regex_patterns_file: str = ""
    notify_on_high_severity: bool = Field(
        default=True,
        validation_alias=AliasChoices("notify_on_high_severity", "notify_on_high_severity_secret"),
    )


def get_default_secrets_config() -> SecretsConfig:
    """Return the built-in defaults."""
    return SecretsConfig()


def secrets_config_from_dict(data: Optional[Dict[str, Any]], config_path: Optional[str] = None) -> SecretsConfig:
    """
    Build a :class:`SecretsConfig` from a parsed mapping.

    The options may sit under a ``secrets_config`` section or at the top level.

    Raises:
        ConfigError: If a value has the wrong type
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Config must be a dictionary", config_path=config_path)

    section = data.get(SECTION, data)
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{SECTION}' must be a mapping", config_path=config_path, section=SECTION)

    try:
        return SecretsConfig.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"Invalid secrets configuration: {e}", config_path=config_path, section=SECTION) from e


def load_secrets_config(config_path: Optional[str] = None, root: str = ".") -> SecretsConfig:
    """
    Load secret detection configuration following the search order.

    Args:
        config_path: Explicit config file path
        root: Directory searched for .reconsecrets.yml/.reconsecrets.yaml

    Returns:
        SecretsConfig

    Raises:
        ConfigError: If the config file is malformed or an explicit path is missing
    """
    # 1. Explicit path
    if config_path:
        path = Path(config_path).resolve()
        if not path.exists():
            raise ConfigError(f"Specified config file not found: {path}", config_path=str(path))
        config = _load_yaml_config(path)
        logger.info("Loaded secrets config: %s", path)
        return config

    # 2. Well-known names in root
    root_path = Path(root).resolve()
    for name in CONFIG_FILE_NAMES:
        candidate = root_path / name
        if candidate.exists():
            config = _load_yaml_config(candidate)
            logger.info("Loaded secrets config: %s", candidate)
            return config

    # 3. Defaults
    logger.info("Using default secrets config")
    return get_default_secrets_config()


def _load_yaml_config(path: Path) -> SecretsConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config file: {e}", config_path=str(path)) from e
    return secrets_config_from_dict(data, config_path=str(path))


def create_default_config_template() -> str:
    """
    Create a .reconsecrets.yml template with commented defaults.

    Returns:
        YAML string with default configuration template
    """
    return """# reconsecrets configuration
secrets_config:
  # Master switch for secret detection
  enabled: true

  # External verification-capable scanner (TruffleHog CLI)
  enable_external_tool: true
  external_tool_path: "trufflehog"
  external_tool_timeout_seconds: 60
  # Skip live verification of found credentials (faster, no network calls)
  external_tool_no_verification: true

  # Regex engine; built-in and bundled catalog patterns are always loaded
  enable_custom_regex: true
  # Optional YAML file with extra patterns:
  # - rule_id: "internal-token"
  #   description: "Internal service token"
  #   pattern: "itk_[A-Za-z0-9]{32}"
  #   severity: "HIGH"
  #   entropy: 3.5
  #   max_finds: 10
  #   line_length: 0
  custom_regex_patterns_file: ""

  # Content larger than this is skipped (0 disables the limit)
  max_file_size_to_scan_mb: 5

  # Send a notification for each HIGH or CRITICAL finding
  notify_on_high_severity: true
"""
