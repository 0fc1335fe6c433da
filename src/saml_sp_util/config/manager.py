"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from saml_sp_util.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from saml_sp_util.config.schema import Config, IdentityProviderConfig, LoggingConfig
from saml_sp_util.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "SAML_SP_"

# (environment suffix, config section, config field)
_ENV_OVERRIDES = [
    ("ENTITY_ID", "sp", "entity_id"),
    ("ACS_URL", "sp", "acs_url"),
    ("IDP_ISSUER", "idp", "expected_issuer"),
    ("IDP_CERT_PATH", "idp", "certificate_path"),
    ("IDP_METADATA_PATH", "idp", "metadata_path"),
    ("LOG_LEVEL", "logging", "level"),
    ("LOG_FILE", "logging", "log_file"),
]


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (SAML_SP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("custom/config.json"))
        >>> acs_url = config.sp.acs_url
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format. See documentation for details."
        )


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Raises:
        ConfigurationError: If JSON is malformed or unreadable
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
            logger.info(f"Loaded configuration from {config_path}")
            return config_dict
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            )

    logger.info(f"Config file not found: {config_path}. Using default configuration.")
    # Deep copy of defaults to avoid mutation
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with SAML_SP_ prefix.

    Environment variables follow the pattern: SAML_SP_<FIELD>
    For example: SAML_SP_ACS_URL, SAML_SP_IDP_ISSUER, SAML_SP_LOG_LEVEL

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied
    """
    for suffix, section, field in _ENV_OVERRIDES:
        if value := os.getenv(f"{ENV_PREFIX}{suffix}"):
            config_dict.setdefault(section, {})[field] = value
            logger.debug(f"Override: {field} from environment")

    if redact_pii := os.getenv(f"{ENV_PREFIX}REDACT_PII"):
        config_dict.setdefault("logging", {})["redact_pii"] = _parse_bool(redact_pii)
        logger.debug("Override: redact_pii from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def get_idp_config(config: Config) -> IdentityProviderConfig:
    """Get Identity Provider configuration."""
    return config.idp


def get_logging_config(config: Config) -> LoggingConfig:
    """Get logging configuration."""
    return config.logging
