"""SAML 2.0 response verification and IdP metadata resolution.

This module provides functionality for:
- Decoding SAML Responses and IdP metadata into immutable records
- Verifying signed Responses (signature, issuer, recipient, validity windows)
- Resolving the IdP entity ID, signing certificate and redirect endpoint
- Loading trusted certificates (PEM, DER, base64 DER)

XML signatures are verified with SignXML (pure Python on lxml/cryptography).
"""

from saml_sp_util.saml.certificate_manager import (
    certificate_to_pem,
    check_expiration_warning,
    get_certificate_info,
    load_certificate,
    load_certificate_from_base64,
    load_der_certificate,
    load_pem_certificate,
)
from saml_sp_util.saml.decoder import (
    decode_entity_descriptor,
    decode_response,
    parse_saml_datetime,
)
from saml_sp_util.saml.metadata import (
    HTTP_REDIRECT_BINDING,
    resolve_metadata,
    resolve_metadata_xml,
)
from saml_sp_util.saml.signature import SignatureVerifier, SignXMLSignatureVerifier
from saml_sp_util.saml.verifier import ResponseVerifier, verify_response

__all__ = [
    # Certificate management
    "certificate_to_pem",
    "check_expiration_warning",
    "get_certificate_info",
    "load_certificate",
    "load_certificate_from_base64",
    "load_der_certificate",
    "load_pem_certificate",
    # Decoding
    "decode_entity_descriptor",
    "decode_response",
    "parse_saml_datetime",
    # Metadata resolution
    "HTTP_REDIRECT_BINDING",
    "resolve_metadata",
    "resolve_metadata_xml",
    # Response verification
    "ResponseVerifier",
    "SignatureVerifier",
    "SignXMLSignatureVerifier",
    "verify_response",
]
