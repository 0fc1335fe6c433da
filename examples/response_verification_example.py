"""Response verification examples for a SAML Service Provider.

This module demonstrates how to resolve IdP metadata, verify a SAMLResponse
posted to the Assertion Consumer Service, and turn verification failures
into actionable messages.

Usage:
    python examples/response_verification_example.py IDP_METADATA RESPONSE_FILE
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from saml_sp_util.config import load_config
from saml_sp_util.saml import ResponseVerifier, get_certificate_info, resolve_metadata_xml
from saml_sp_util.utils.exceptions import (
    ErrorCategory,
    MetadataResolutionError,
    create_error_info,
)

# Configure logging to see verification steps
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def example_1_resolve_metadata(metadata_path: Path):
    """Example 1: Resolve entity ID, certificate and redirect URL.

    These three values are everything the SP needs from the IdP: where to
    send AuthnRequests, who must have issued the assertion, and which key
    must have signed it.
    """
    print("=" * 80)
    print("EXAMPLE 1: Resolving IdP Metadata")
    print("=" * 80)
    print()

    try:
        resolved = resolve_metadata_xml(metadata_path.read_bytes())
    except MetadataResolutionError as e:
        info = create_error_info(e)
        print(f"Metadata error: {info.message}")
        print(f"Fix: {info.remediation}")
        return None

    cert_info = get_certificate_info(resolved.certificate)
    print(f"Entity ID:     {resolved.entity_id}")
    print(f"Redirect URL:  {resolved.redirect_location.geturl()}")
    print(f"Certificate:   {cert_info.subject}")
    print(f"Expires:       {cert_info.not_after.isoformat()}")
    print()
    return resolved


def example_2_verify_response(resolved, response_path: Path):
    """Example 2: Verify a SAMLResponse against the resolved metadata.

    The expected recipient comes from the SP configuration (sp.acs_url).
    """
    print("=" * 80)
    print("EXAMPLE 2: Verifying a SAML Response")
    print("=" * 80)
    print()

    config = load_config()
    verifier = ResponseVerifier(
        expected_issuer=resolved.entity_id,
        trusted_certificate=resolved.certificate,
        expected_recipient=config.sp.acs_url,
    )

    result = verifier.verify(response_path.read_text(), datetime.now(timezone.utc))

    if result.ok:
        assertion = result.response.assertion
        print(f"Verified subject: {assertion.subject.name_id.value}")
        for attribute in assertion.attribute_statement.attributes:
            print(f"  {attribute.name} = {attribute.value}")
    else:
        example_3_report_failure(result.error)
    print()
    return result


def example_3_report_failure(error):
    """Example 3: Categorize a verification failure.

    SECURITY failures (unsigned or forged responses) deserve an alert;
    REJECTED failures are routine (clock skew, wrong ACS URL).
    """
    info = create_error_info(error)

    print(f"Rejected: {error.kind.value}")
    print(f"Category: {info.category.value}")
    print(f"Message:  {info.message}")
    print(f"Fix:      {info.remediation}")

    if info.category == ErrorCategory.SECURITY:
        logger.error(f"Possible forged SAML response: {info.message}")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)

    metadata = example_1_resolve_metadata(Path(sys.argv[1]))
    if metadata is not None:
        example_2_verify_response(metadata, Path(sys.argv[2]))
