"""Config module.

This module provides configuration management functionality.
"""

from saml_sp_util.config.manager import (
    get_idp_config,
    get_logging_config,
    load_config,
)
from saml_sp_util.config.schema import (
    Config,
    IdentityProviderConfig,
    LoggingConfig,
    ServiceProviderConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    # Helper functions
    "get_idp_config",
    "get_logging_config",
    # Configuration models
    "Config",
    "IdentityProviderConfig",
    "LoggingConfig",
    "ServiceProviderConfig",
]
