"""SAML Response verification.

This module implements the ordered checks a Service Provider applies to a
SAML 2.0 Response before trusting its assertion:

1. Base64 and XML decoding
2. Signature presence
3. Cryptographic signature verification against the trusted certificate
4. Issuer match
5. Recipient match
6. Conditions NotBefore (inclusive)
7. Conditions NotOnOrAfter (exclusive)
8. SubjectConfirmationData NotOnOrAfter (exclusive)

Checks run in this order and stop at the first failure. Semantic checks only
ever see content covered by a verified signature. The result is a
``VerificationResult`` holding either the decoded response or the error,
never both.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterator, Optional, Tuple, Union

from cryptography import x509
from lxml import etree

from .decoder import (
    SAML_NS,
    SAMLP_NS,
    decode_assertion_element,
    decode_response,
    decode_response_element,
)
from .signature import SignatureVerifier, SignXMLSignatureVerifier
from ..logging_audit.audit import log_audit_event
from ..models.saml import Assertion, Response, VerificationResult
from ..utils.exceptions import (
    AssertionExpiredError,
    DecodingError,
    InvalidIssuerError,
    InvalidRecipientError,
    ResponseNotSignedError,
    SAMLVerificationError,
    SignatureVerificationError,
)

logger = logging.getLogger(__name__)


def check_issuer(assertion: Assertion, expected_issuer: str) -> Optional[SAMLVerificationError]:
    """Exact, case-sensitive issuer comparison."""
    if assertion.issuer.name != expected_issuer:
        return InvalidIssuerError(
            f"Assertion issuer {assertion.issuer.name!r} does not match "
            f"expected issuer {expected_issuer!r}"
        )
    return None


def check_recipient(
    assertion: Assertion, expected_recipient: str
) -> Optional[SAMLVerificationError]:
    """Exact, case-sensitive SubjectConfirmationData Recipient comparison."""
    recipient = assertion.subject.subject_confirmation.subject_confirmation_data.recipient
    if recipient != expected_recipient:
        return InvalidRecipientError(
            f"Assertion recipient {recipient!r} does not match "
            f"expected recipient {expected_recipient!r}"
        )
    return None


def check_not_before(assertion: Assertion, now: datetime) -> Optional[SAMLVerificationError]:
    """``now >= Conditions/@NotBefore``; an absent NotBefore is no bound."""
    not_before = assertion.conditions.not_before
    if not_before is not None and now < not_before:
        return AssertionExpiredError(
            f"Assertion not yet valid: NotBefore={not_before.isoformat()}, "
            f"now={now.isoformat()}",
            clause="Conditions/@NotBefore",
        )
    return None


def check_not_on_or_after(
    assertion: Assertion, now: datetime
) -> Optional[SAMLVerificationError]:
    """``now < Conditions/@NotOnOrAfter``; an absent bound has always passed."""
    not_on_or_after = assertion.conditions.not_on_or_after
    if not_on_or_after is None or now >= not_on_or_after:
        return AssertionExpiredError(
            f"Assertion expired: NotOnOrAfter={_iso(not_on_or_after)}, now={now.isoformat()}",
            clause="Conditions/@NotOnOrAfter",
        )
    return None


def check_confirmation_not_on_or_after(
    assertion: Assertion, now: datetime
) -> Optional[SAMLVerificationError]:
    """``now < SubjectConfirmationData/@NotOnOrAfter``."""
    data = assertion.subject.subject_confirmation.subject_confirmation_data
    if data.not_on_or_after is None or now >= data.not_on_or_after:
        return AssertionExpiredError(
            f"Subject confirmation expired: NotOnOrAfter={_iso(data.not_on_or_after)}, "
            f"now={now.isoformat()}",
            clause="SubjectConfirmationData/@NotOnOrAfter",
        )
    return None


def _semantic_checks(
    assertion: Assertion, expected_issuer: str, expected_recipient: str, now: datetime
) -> Iterator[Tuple[str, Optional[SAMLVerificationError]]]:
    # Lazily evaluated so the first failure stops the chain
    yield "issuer", check_issuer(assertion, expected_issuer)
    yield "recipient", check_recipient(assertion, expected_recipient)
    yield "not_before", check_not_before(assertion, now)
    yield "not_on_or_after", check_not_on_or_after(assertion, now)
    yield "confirmation_not_on_or_after", check_confirmation_not_on_or_after(assertion, now)


def verify_response(
    encoded_response: Union[str, bytes],
    expected_issuer: str,
    trusted_certificate: x509.Certificate,
    expected_recipient: str,
    now: datetime,
    signature_verifier: Optional[SignatureVerifier] = None,
) -> VerificationResult:
    """Verify a base64-encoded, signed SAML Response.

    Args:
        encoded_response: Base64-encoded samlp:Response document
        expected_issuer: Exact value the assertion Issuer must equal
        trusted_certificate: Certificate the signature must verify against
        expected_recipient: Exact value SubjectConfirmationData/@Recipient must equal
        now: Timezone-aware reference time for all validity checks
        signature_verifier: Signature verification service
            (defaults to SignXMLSignatureVerifier)

    Returns:
        VerificationResult with the decoded Response on success, or the
        first failed check's error

    Raises:
        ValueError: If ``now`` is a naive datetime

    Example:
        >>> result = verify_response(saml_response, "https://idp.example.com",
        ...                          idp_cert, "https://sp.example.com/acs",
        ...                          datetime.now(timezone.utc))
        >>> if result.ok:
        ...     name_id = result.response.assertion.subject.name_id.value
    """
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("Reference time 'now' must be timezone-aware")

    signature_verifier = signature_verifier or SignXMLSignatureVerifier()

    try:
        response = decode_response(encoded_response)
    except DecodingError as e:
        return _reject(e)

    if response.signature is None:
        return _reject(ResponseNotSignedError("SAML response is not signed"))

    try:
        covered = signature_verifier.verify_signature(
            response.signature.signed_element, trusted_certificate
        )
    except SignatureVerificationError as e:
        return _reject(e)

    try:
        response = _bind_to_signed_content(response, covered)
    except SAMLVerificationError as e:
        return _reject(e)

    assertion = response.assertion
    for check, error in _semantic_checks(assertion, expected_issuer, expected_recipient, now):
        if error is not None:
            return _reject(error)
        logger.debug(f"Check passed: {check}")

    logger.info(
        f"SAML response verified: response_id={response.response_id!r}, "
        f"assertion_id={assertion.assertion_id!r}, issuer={assertion.issuer.name!r}"
    )
    log_audit_event(
        "SAML_RESPONSE_VERIFIED",
        {
            "status": "success",
            "response_id": response.response_id,
            "assertion_id": assertion.assertion_id,
            "issuer": assertion.issuer.name,
            "attribute_count": len(assertion.attribute_statement.attributes),
        },
    )
    return VerificationResult.success(response)


class ResponseVerifier:
    """Verify SAML responses for one SP/IdP pairing.

    Holds the expected issuer, trusted certificate and expected recipient so
    callers only pass the response and the reference time.

    Attributes:
        expected_issuer: IdP entity ID the Issuer must equal
        trusted_certificate: Pinned IdP signing certificate
        expected_recipient: SP assertion consumer service URL
        signature_verifier: Signature verification service

    Example:
        >>> verifier = ResponseVerifier("https://idp.example.com", idp_cert,
        ...                             "https://sp.example.com/acs")
        >>> response = verifier.verify(saml_response, now).unwrap()
    """

    def __init__(
        self,
        expected_issuer: str,
        trusted_certificate: x509.Certificate,
        expected_recipient: str,
        signature_verifier: Optional[SignatureVerifier] = None,
    ) -> None:
        self.expected_issuer = expected_issuer
        self.trusted_certificate = trusted_certificate
        self.expected_recipient = expected_recipient
        self.signature_verifier = signature_verifier or SignXMLSignatureVerifier()

        logger.debug(
            f"ResponseVerifier initialized: issuer={expected_issuer!r}, "
            f"recipient={expected_recipient!r}"
        )

    def verify(self, encoded_response: Union[str, bytes], now: datetime) -> VerificationResult:
        return verify_response(
            encoded_response,
            self.expected_issuer,
            self.trusted_certificate,
            self.expected_recipient,
            now,
            signature_verifier=self.signature_verifier,
        )


def _bind_to_signed_content(response: Response, covered: etree._Element) -> Response:
    """Rebuild the response from the element the signature covers.

    Raises:
        ResponseNotSignedError: If the signature covers neither the Response
            nor the Assertion
        DecodingError: If the covered content has a bad timestamp
    """
    if covered.tag == f"{{{SAMLP_NS}}}Response":
        return replace(decode_response_element(covered), signature=response.signature)

    if covered.tag == f"{{{SAML_NS}}}Assertion":
        return replace(response, assertion=decode_assertion_element(covered))

    raise ResponseNotSignedError(
        f"Signature covers {covered.tag}, not the Response or its Assertion"
    )


def _reject(error: SAMLVerificationError) -> VerificationResult:
    logger.warning(f"SAML response rejected ({error.kind.value}): {error}")
    details = {
        "status": "failure",
        "failure_kind": error.kind.value,
        "error_message": str(error),
    }
    if isinstance(error, AssertionExpiredError) and error.clause:
        details["clause"] = error.clause
    log_audit_event("SAML_RESPONSE_REJECTED", details)
    return VerificationResult.failure(error)


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else "<absent>"
