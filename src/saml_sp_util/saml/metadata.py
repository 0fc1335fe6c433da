"""IdP metadata resolution.

Extracts from an IdP EntityDescriptor the three values a Service Provider
needs to start SAML SSO: the entity ID (expected issuer), the signing
certificate (trusted certificate) and the HTTP-Redirect SingleSignOnService
location (where AuthnRequests are sent).

Resolution is pure and uncached; callers cache metadata themselves.
"""

import logging
from urllib.parse import SplitResult, urlsplit

from cryptography import x509

from .certificate_manager import load_certificate_from_base64
from .decoder import decode_entity_descriptor
from ..models.saml import EntityDescriptor, KeyDescriptor, ResolvedMetadata
from ..utils.exceptions import (
    InvalidLocationError,
    NoCertificateFoundError,
    NoRedirectBindingFoundError,
)

logger = logging.getLogger(__name__)

HTTP_REDIRECT_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"

# KeyDescriptor use values that allow signature verification
SIGNING_USES = ("", "signing")


def resolve_metadata(metadata: EntityDescriptor) -> ResolvedMetadata:
    """Resolve entity ID, signing certificate and redirect endpoint.

    Args:
        metadata: Decoded IdP EntityDescriptor

    Returns:
        ResolvedMetadata with the three values

    Raises:
        NoCertificateFoundError: No KeyDescriptor carries a signing certificate
        CertificateLoadError: The first signing certificate is not valid DER
        NoRedirectBindingFoundError: No HTTP-Redirect SingleSignOnService
        InvalidLocationError: Redirect Location is not an absolute URL

    Example:
        >>> resolved = resolve_metadata(decode_entity_descriptor(xml_bytes))
        >>> resolved.redirect_location.geturl()
        'https://example.com/saml/redirect'
    """
    certificate = find_signing_certificate(metadata)
    location = find_redirect_location(metadata)

    logger.info(
        f"Resolved IdP metadata for {metadata.entity_id!r}: "
        f"certificate={certificate.subject.rfc4514_string()}, "
        f"redirect={location.geturl()}"
    )
    return ResolvedMetadata(
        entity_id=metadata.entity_id,
        certificate=certificate,
        redirect_location=location,
    )


def resolve_metadata_xml(xml_bytes: bytes) -> ResolvedMetadata:
    """Decode metadata XML and resolve it.

    Raises:
        DecodingError: If the metadata XML is malformed
        MetadataResolutionError: As for resolve_metadata
    """
    return resolve_metadata(decode_entity_descriptor(xml_bytes))


def find_signing_certificate(metadata: EntityDescriptor) -> x509.Certificate:
    """Return the certificate of the first usable signing KeyDescriptor.

    Entries marked for encryption only, or without certificate text, are
    skipped.

    Raises:
        NoCertificateFoundError: If no entry is usable
        CertificateLoadError: If the first usable entry holds an invalid certificate
    """
    for index, key_descriptor in enumerate(metadata.key_descriptors):
        if _is_usable_signing_key(key_descriptor):
            logger.debug(f"Using certificate from KeyDescriptor #{index}")
            return load_certificate_from_base64(key_descriptor.certificate)

    raise NoCertificateFoundError(
        f"No signing certificate found in metadata for {metadata.entity_id!r}"
    )


def find_redirect_location(metadata: EntityDescriptor) -> SplitResult:
    """Return the parsed Location of the first HTTP-Redirect SSO service.

    Raises:
        NoRedirectBindingFoundError: If no service uses the HTTP-Redirect binding
        InvalidLocationError: If the Location cannot be parsed as an absolute URL
    """
    for service in metadata.single_sign_on_services:
        if service.binding == HTTP_REDIRECT_BINDING:
            return _parse_location(service.location)

    raise NoRedirectBindingFoundError(
        f"No SingleSignOnService with binding {HTTP_REDIRECT_BINDING} "
        f"in metadata for {metadata.entity_id!r}"
    )


def _is_usable_signing_key(key_descriptor: KeyDescriptor) -> bool:
    return key_descriptor.use in SIGNING_USES and bool(key_descriptor.certificate)


def _parse_location(location: str) -> SplitResult:
    try:
        parsed = urlsplit(location.strip())
        # Accessing port validates it
        parsed.port
    except ValueError as e:
        raise InvalidLocationError(f"Invalid redirect Location {location!r}: {e}") from e

    if not parsed.scheme or not parsed.netloc:
        raise InvalidLocationError(
            f"Invalid redirect Location {location!r}: must be an absolute URL"
        )
    return parsed
