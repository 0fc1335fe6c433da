"""Custom exception classes for the SAML SP Utility.

All exceptions inherit from SAMLSPError to allow catching all custom exceptions.
Verification failures additionally carry a FailureKind so they can be reported
as data through VerificationResult without being raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureKind(Enum):
    """Kind of a response verification failure.

    Attributes:
        DECODING: Malformed base64 or XML
        NOT_SIGNED: No signature present on the response or assertion
        SIGNATURE: Signature present but invalid for the trusted certificate
        INVALID_ISSUER: Assertion issuer differs from the expected issuer
        INVALID_RECIPIENT: Confirmation recipient differs from the expected recipient
        ASSERTION_EXPIRED: Reference time outside one of the validity windows
    """

    DECODING = "DECODING"
    NOT_SIGNED = "NOT_SIGNED"
    SIGNATURE = "SIGNATURE"
    INVALID_ISSUER = "INVALID_ISSUER"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"
    ASSERTION_EXPIRED = "ASSERTION_EXPIRED"


class SAMLSPError(Exception):
    """Base exception for all SAML SP Utility custom exceptions."""

    pass


class ConfigurationError(SAMLSPError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class CertificateLoadError(SAMLSPError):
    """Raised when certificate loading fails.

    Examples:
        - Certificate file not found
        - Invalid certificate format
        - Corrupted base64 certificate in metadata
    """

    pass


class SAMLVerificationError(SAMLSPError):
    """Base class for SAML response verification failures."""

    kind: FailureKind


class DecodingError(SAMLVerificationError):
    """Raised when the encoded response is not valid base64 or XML.

    Examples:
        - Invalid base64 characters
        - Unclosed tags
        - Root element is not a SAML protocol Response
    """

    kind = FailureKind.DECODING


class ResponseNotSignedError(SAMLVerificationError):
    """Raised when the response carries no XML signature.

    This is a protocol violation (or misconfigured IdP), distinct from a
    present-but-invalid signature.
    """

    kind = FailureKind.NOT_SIGNED


class SignatureVerificationError(SAMLVerificationError):
    """Raised when the signature does not verify against the trusted certificate.

    The error raised by the signature library is kept as ``original`` and
    chained as ``__cause__``.

    Examples:
        - Digest mismatch (content modified after signing)
        - Signed with a different key
        - Malformed key material
    """

    kind = FailureKind.SIGNATURE

    def __init__(self, message: str, original: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original = original
        if original is not None:
            self.__cause__ = original


class InvalidIssuerError(SAMLVerificationError):
    """Raised when the assertion issuer does not match the expected issuer."""

    kind = FailureKind.INVALID_ISSUER


class InvalidRecipientError(SAMLVerificationError):
    """Raised when the subject confirmation recipient does not match."""

    kind = FailureKind.INVALID_RECIPIENT


class AssertionExpiredError(SAMLVerificationError):
    """Raised when the reference time falls outside a validity window.

    All three time-window clauses share this error kind. ``clause`` names the
    failing clause for logging only.

    Examples:
        - now < Conditions/@NotBefore
        - now >= Conditions/@NotOnOrAfter
        - now >= SubjectConfirmationData/@NotOnOrAfter
    """

    kind = FailureKind.ASSERTION_EXPIRED

    def __init__(self, message: str, clause: str = "") -> None:
        super().__init__(message)
        self.clause = clause


class MetadataResolutionError(SAMLSPError):
    """Base class for IdP metadata resolution failures."""

    pass


class NoCertificateFoundError(MetadataResolutionError):
    """Raised when no KeyDescriptor carries a usable signing certificate."""

    pass


class NoRedirectBindingFoundError(MetadataResolutionError):
    """Raised when no SingleSignOnService uses the HTTP-Redirect binding."""

    pass


class InvalidLocationError(MetadataResolutionError):
    """Raised when the redirect endpoint Location is not a usable URL."""

    pass


class ErrorCategory(Enum):
    """Error categorization for handling strategy.

    Attributes:
        SECURITY: Treat as a security event (unsigned or forged responses)
        REJECTED: Reject the message and log which check failed
        CONFIGURATION: Fix local configuration, metadata or certificates

    Example:
        >>> category = categorize_error(ResponseNotSignedError("not signed"))
        >>> if category == ErrorCategory.SECURITY:
        ...     alert_security_team()
    """

    SECURITY = "SECURITY"
    REJECTED = "REJECTED"
    CONFIGURATION = "CONFIGURATION"


@dataclass
class ErrorInfo:
    """Structured error information for actionable error handling.

    Attributes:
        category: Error category (SECURITY, REJECTED, CONFIGURATION)
        error_type: Exception class name (e.g., "InvalidIssuerError")
        message: User-friendly error message
        remediation: Actionable guidance for resolving the error
        technical_details: Optional technical details for debugging
    """

    category: ErrorCategory
    error_type: str
    message: str
    remediation: str
    technical_details: Optional[str] = None


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize exception for error handling strategy.

    Args:
        exception: The exception to categorize

    Returns:
        ErrorCategory indicating handling strategy

    Example:
        >>> categorize_error(SignatureVerificationError("bad signature"))
        ErrorCategory.SECURITY
        >>> categorize_error(InvalidIssuerError("wrong issuer"))
        ErrorCategory.REJECTED
        >>> categorize_error(NoCertificateFoundError("no cert"))
        ErrorCategory.CONFIGURATION
    """
    if isinstance(exception, (ResponseNotSignedError, SignatureVerificationError)):
        return ErrorCategory.SECURITY

    if isinstance(
        exception,
        (MetadataResolutionError, CertificateLoadError, ConfigurationError),
    ):
        return ErrorCategory.CONFIGURATION

    # Issuer, recipient, expiry, decoding and unknown errors
    return ErrorCategory.REJECTED


def create_error_info(exception: Exception) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred

    Returns:
        ErrorInfo with categorization and remediation guidance
    """
    category = categorize_error(exception)

    technical_details = None
    if exception.__cause__ is not None:
        technical_details = (
            f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"
        )

    return ErrorInfo(
        category=category,
        error_type=type(exception).__name__,
        message=str(exception),
        remediation=_generate_remediation(exception),
        technical_details=technical_details,
    )


def _generate_remediation(exception: Exception) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, ResponseNotSignedError):
        return (
            "The IdP sent an unsigned response. Configure the IdP to sign "
            "responses or assertions. Do not accept unsigned responses."
        )

    if isinstance(exception, SignatureVerificationError):
        return (
            "Signature did not verify against the trusted certificate. Check that "
            "the configured IdP certificate is current (re-fetch IdP metadata). "
            "If it is, treat this response as forged."
        )

    if isinstance(exception, InvalidIssuerError):
        return (
            "Assertion issuer does not match. Check idp.expected_issuer in "
            "config.json against the IdP entity ID (compared exactly)."
        )

    if isinstance(exception, InvalidRecipientError):
        return (
            "Recipient does not match. Check sp.acs_url in config.json against the "
            "ACS URL registered at the IdP (compared exactly, including trailing slash)."
        )

    if isinstance(exception, AssertionExpiredError):
        return (
            "Assertion is outside its validity window. Check clock synchronisation "
            "between SP and IdP and that the response is not being replayed."
        )

    if isinstance(exception, DecodingError):
        return "Response is not valid base64-encoded SAML XML. Check the SAMLResponse payload."

    if isinstance(exception, NoCertificateFoundError):
        return "IdP metadata has no signing certificate. Obtain updated metadata from the IdP."

    if isinstance(exception, NoRedirectBindingFoundError):
        return (
            "IdP metadata has no HTTP-Redirect SingleSignOnService. "
            "Ask the IdP to enable the HTTP-Redirect binding."
        )

    if isinstance(exception, InvalidLocationError):
        return "IdP redirect Location is not an absolute URL. Check the IdP metadata."

    if isinstance(exception, CertificateLoadError):
        return "Certificate could not be loaded. Check file path and format (PEM or DER)."

    if isinstance(exception, ConfigurationError):
        return (
            "Configuration error. Check config.json for missing or invalid values. "
            "Use examples/config.example.json as template."
        )

    return "Review error message and check logs for complete details."
