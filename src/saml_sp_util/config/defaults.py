"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "sp": {
        "entity_id": "http://localhost:8000/saml/metadata",
        "acs_url": "http://localhost:8000/saml/acs",
    },
    "idp": {
        # No default IdP - must be provided by user
        "expected_issuer": None,
        "certificate_path": None,
        "metadata_path": None,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/saml-sp-util.log",
        # Do not redact PII by default (user must opt-in for privacy)
        "redact_pii": False,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
