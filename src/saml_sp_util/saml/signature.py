"""XML signature verification service using signxml library.

The response verifier depends only on the ``SignatureVerifier`` protocol:
verify one signed element against one trusted certificate and hand back the
element the signature actually covers. ``SignXMLSignatureVerifier`` is the
default implementation; canonicalization, digest and public-key math all
stay inside signxml.
"""

import logging
from typing import Protocol

from cryptography import x509
from cryptography.exceptions import InvalidSignature as CryptographyInvalidSignature
from lxml import etree
from signxml import XMLVerifier
from signxml.exceptions import InvalidDigest, InvalidSignature, SignXMLException

from .certificate_manager import certificate_to_pem
from ..utils.exceptions import SignatureVerificationError

logger = logging.getLogger(__name__)


class SignatureVerifier(Protocol):
    """Capability interface for XML signature verification."""

    def verify_signature(
        self, signed_element: etree._Element, certificate: x509.Certificate
    ) -> etree._Element:
        """Verify the signature enveloped in ``signed_element``.

        Args:
            signed_element: Element carrying an enveloped ds:Signature
            certificate: Certificate whose public key must verify the signature

        Returns:
            The element covered by the signature, with the signature removed

        Raises:
            SignatureVerificationError: If the signature does not verify
        """
        ...


class SignXMLSignatureVerifier:
    """Verify enveloped XML signatures with signxml, pinned to one certificate.

    The certificate embedded in the signature's KeyInfo is never trusted on
    its own; the caller-supplied certificate is always used.

    Example:
        >>> verifier = SignXMLSignatureVerifier()
        >>> covered = verifier.verify_signature(response_element, idp_certificate)
    """

    def verify_signature(
        self, signed_element: etree._Element, certificate: x509.Certificate
    ) -> etree._Element:
        # Verify the element as its own document so reference lookups cannot
        # reach content outside the signed element.
        document = etree.fromstring(etree.tostring(signed_element))
        cert_pem = certificate_to_pem(certificate)

        try:
            verified = XMLVerifier().verify(document, x509_cert=cert_pem)
        except InvalidDigest as e:
            logger.warning(f"Digest verification failed: {e}. Content modified after signing.")
            raise SignatureVerificationError(f"Digest verification failed: {e}", original=e)
        except InvalidSignature as e:
            logger.warning(
                f"Signature verification failed: {e}. "
                f"Signed with a different key or tampered."
            )
            raise SignatureVerificationError(f"Signature verification failed: {e}", original=e)
        # Schema-invalid ds:Signature content surfaces as lxml DocumentInvalid
        except (SignXMLException, CryptographyInvalidSignature, etree.LxmlError, ValueError) as e:
            logger.warning(f"Signature could not be verified: {e}")
            raise SignatureVerificationError(f"Signature could not be verified: {e}", original=e)

        logger.debug(f"Signature verified for element {signed_element.tag}")
        return verified.signed_xml
