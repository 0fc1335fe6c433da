"""Data models for SAML responses, IdP metadata and certificates.

All records are frozen dataclasses built by the decoder. Fields missing from
the source document hold zero values: empty strings, ``None`` timestamps and
empty records. The verifier, not the decoder, enforces required content.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Tuple
from urllib.parse import SplitResult

from cryptography import x509

from ..utils.exceptions import FailureKind, SAMLVerificationError


@dataclass(frozen=True)
class Issuer:
    """Identifier of the asserting party."""

    name: str = ""


@dataclass(frozen=True)
class NameID:
    """Asserted principal identifier.

    Attributes:
        format: NameID format URI
        value: Principal identifier (e.g., email address)
    """

    format: str = ""
    value: str = ""


@dataclass(frozen=True)
class SubjectConfirmationData:
    """Recipient and expiry binding the assertion to its presenter.

    Attributes:
        recipient: URL the assertion was issued for
        not_on_or_after: Confirmation expiry (exclusive)
    """

    recipient: str = ""
    not_on_or_after: Optional[datetime] = None


@dataclass(frozen=True)
class SubjectConfirmation:
    method: str = ""
    subject_confirmation_data: SubjectConfirmationData = field(
        default_factory=SubjectConfirmationData
    )


@dataclass(frozen=True)
class Subject:
    name_id: NameID = field(default_factory=NameID)
    subject_confirmation: SubjectConfirmation = field(default_factory=SubjectConfirmation)


@dataclass(frozen=True)
class Conditions:
    """Overall assertion validity window.

    Attributes:
        not_before: Start of validity (inclusive), None means unbounded
        not_on_or_after: End of validity (exclusive)
    """

    not_before: Optional[datetime] = None
    not_on_or_after: Optional[datetime] = None


@dataclass(frozen=True)
class Attribute:
    """A single released claim.

    Attributes:
        name: Attribute name
        name_format: Attribute NameFormat URI
        values: AttributeValue texts in document order
    """

    name: str = ""
    name_format: str = ""
    values: Tuple[str, ...] = ()

    @property
    def value(self) -> str:
        """First attribute value, or empty string when there is none."""
        return self.values[0] if self.values else ""


@dataclass(frozen=True)
class AttributeStatement:
    attributes: Tuple[Attribute, ...] = ()


@dataclass(frozen=True)
class Assertion:
    """IdP-issued claim bundle.

    Attributes:
        assertion_id: Assertion ID attribute
        issuer: Asserting party
        subject: Principal and confirmation data
        conditions: Validity window
        attribute_statement: Released attributes in document order
    """

    assertion_id: str = ""
    issuer: Issuer = field(default_factory=Issuer)
    subject: Subject = field(default_factory=Subject)
    conditions: Conditions = field(default_factory=Conditions)
    attribute_statement: AttributeStatement = field(default_factory=AttributeStatement)


@dataclass(frozen=True)
class Signature:
    """Opaque XML signature handed to the signature verification service.

    Attributes:
        element: The ds:Signature lxml element
        signed_element: The element the signature is enveloped in
            (the Response or the Assertion)
    """

    element: Any = field(repr=False, compare=False)
    signed_element: Any = field(repr=False, compare=False)


@dataclass(frozen=True)
class Response:
    """SAML protocol Response envelope.

    Attributes:
        assertion: The single assertion carried by the response
        signature: Enveloped signature, None if the response is unsigned
        response_id: Response ID attribute
        destination: Response Destination attribute
        issue_instant: Response IssueInstant attribute
    """

    assertion: Assertion = field(default_factory=Assertion)
    signature: Optional[Signature] = None
    response_id: str = ""
    destination: str = ""
    issue_instant: Optional[datetime] = None


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of response verification.

    Exactly one of ``response`` and ``error`` is set; a failed verification
    never exposes a partially decoded response.

    Example:
        >>> result = verify_response(encoded, "alice", cert, "bob", now)
        >>> if result.ok:
        ...     print(result.response.assertion.subject.name_id.value)
        ... else:
        ...     print(result.kind)
    """

    response: Optional[Response] = None
    error: Optional[SAMLVerificationError] = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("VerificationResult needs exactly one of response or error")

    @classmethod
    def success(cls, response: Response) -> "VerificationResult":
        return cls(response=response)

    @classmethod
    def failure(cls, error: SAMLVerificationError) -> "VerificationResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[FailureKind]:
        return None if self.error is None else self.error.kind

    def unwrap(self) -> Response:
        """Return the verified response or raise the verification error.

        Raises:
            SAMLVerificationError: The carried verification failure
        """
        if self.error is not None:
            raise self.error
        return self.response


@dataclass(frozen=True)
class KeyDescriptor:
    """Metadata key entry.

    Attributes:
        use: KeyDescriptor use attribute ("signing", "encryption" or empty)
        certificate: Base64 DER text of ds:X509Certificate, empty if absent
    """

    use: str = ""
    certificate: str = ""


@dataclass(frozen=True)
class SingleSignOnService:
    binding: str = ""
    location: str = ""


@dataclass(frozen=True)
class EntityDescriptor:
    """IdP metadata document.

    Attributes:
        entity_id: IdP entity identifier
        key_descriptors: KeyDescriptor entries in document order
        single_sign_on_services: SSO endpoints in document order
    """

    entity_id: str = ""
    key_descriptors: Tuple[KeyDescriptor, ...] = ()
    single_sign_on_services: Tuple[SingleSignOnService, ...] = ()


@dataclass(frozen=True)
class ResolvedMetadata:
    """Values the SP needs from IdP metadata.

    Attributes:
        entity_id: IdP entity identifier
        certificate: First usable signing certificate
        redirect_location: HTTP-Redirect SSO endpoint
    """

    entity_id: str
    certificate: x509.Certificate
    redirect_location: SplitResult


@dataclass
class CertificateInfo:
    """Certificate information for display and logging.

    Contains extracted metadata from X.509 certificates without
    exposing key material.

    Attributes:
        subject: Certificate subject Distinguished Name (DN)
        issuer: Certificate issuer Distinguished Name (DN)
        not_before: Certificate validity start date
        not_after: Certificate expiration date
        serial_number: Certificate serial number
        key_size: Public key size in bits (e.g., 2048, 4096)
        fingerprint_sha256: Hex SHA-256 fingerprint
    """

    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    serial_number: int
    key_size: Optional[int]
    fingerprint_sha256: str
