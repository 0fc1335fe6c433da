"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ServiceProviderConfig(BaseModel):
    """Configuration for this Service Provider.

    Attributes:
        entity_id: SP entity identifier
        acs_url: Assertion Consumer Service URL, the expected Recipient
    """

    entity_id: str = Field(..., description="SP entity ID")
    acs_url: str = Field(..., description="Assertion Consumer Service URL")

    @field_validator("acs_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is valid HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid URL: {v}. Must start with http:// or https://"
            )
        return v


class IdentityProviderConfig(BaseModel):
    """Configuration for the trusted Identity Provider.

    Either ``expected_issuer`` and ``certificate_path`` are given directly, or
    they are resolved from ``metadata_path``.

    Attributes:
        expected_issuer: IdP entity ID the assertion Issuer must equal
        certificate_path: Path to the IdP signing certificate (PEM or DER)
        metadata_path: Path to the IdP metadata XML
    """

    expected_issuer: Optional[str] = None
    certificate_path: Optional[Path] = None
    metadata_path: Optional[Path] = None


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_pii: Whether to redact PII from logs
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/saml-sp-util.log"),
        description="Log file path"
    )
    redact_pii: bool = Field(
        default=False,
        description="Redact PII from logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level and normalize to uppercase.

        Raises:
            ValueError: If log level is not valid
        """
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        sp: Service Provider configuration
        idp: Identity Provider configuration
        logging: Logging configuration

    Example:
        >>> config = Config(
        ...     sp=ServiceProviderConfig(
        ...         entity_id="https://sp.example.com",
        ...         acs_url="https://sp.example.com/saml/acs",
        ...     ),
        ...     idp=IdentityProviderConfig(expected_issuer="https://idp.example.com"),
        ... )
        >>> config.sp.acs_url
        'https://sp.example.com/saml/acs'
    """

    sp: ServiceProviderConfig
    idp: IdentityProviderConfig = IdentityProviderConfig()
    logging: LoggingConfig = LoggingConfig()
