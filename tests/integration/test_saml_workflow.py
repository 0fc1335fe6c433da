"""Integration tests for the Service Provider SAML workflow.

Tests the complete flow a Service Provider runs:
- Loading configuration and IdP metadata from disk
- Resolving the trusted certificate and redirect endpoint
- Verifying responses signed by the IdP with the resolved values
"""

import json
from datetime import timedelta

import pytest

from saml_sp_util.config import load_config
from saml_sp_util.saml import (
    ResponseVerifier,
    load_certificate,
    resolve_metadata_xml,
    verify_response,
)
from saml_sp_util.utils.exceptions import FailureKind

REDIRECT_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
POST_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"


@pytest.fixture
def idp_metadata(tmp_path, build_metadata, idp_certificate):
    """IdP metadata with an encryption key listed before the signing key."""
    path = tmp_path / "idp-metadata.xml"
    path.write_bytes(
        build_metadata(
            entity_id="https://example.com",
            key_descriptors=[("encryption", None), ("signing", idp_certificate)],
            services=[
                (POST_BINDING, "https://example.com/saml/post"),
                (REDIRECT_BINDING, "https://example.com/saml/redirect"),
            ],
        )
    )
    return path


@pytest.fixture
def sp_config(tmp_path, idp_metadata, monkeypatch):
    for name in ("SAML_SP_ACS_URL", "SAML_SP_IDP_ISSUER", "SAML_SP_IDP_METADATA_PATH"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "sp": {
            "entity_id": "https://sp.example.com",
            "acs_url": "https://sp.example.com/saml/acs",
        },
        "idp": {"metadata_path": str(idp_metadata)},
    }))
    return load_config(path)


def test_valid_response_verifies(signed_response, idp_certificate, reference_time):
    """Test the reference response verifies with every decoded field intact."""
    result = verify_response(signed_response(), "alice", idp_certificate, "bob", reference_time)

    assert result.ok
    assertion = result.response.assertion
    assert assertion.issuer.name == "alice"
    assert assertion.subject.name_id.value == "jdoe@example.com"
    assert assertion.subject.name_id.format == "format"
    assert assertion.subject.subject_confirmation.method == "method"
    confirmation_data = assertion.subject.subject_confirmation.subject_confirmation_data
    assert confirmation_data.recipient == "bob"
    assert confirmation_data.not_on_or_after == reference_time + timedelta(minutes=1)
    assert assertion.conditions.not_before == reference_time - timedelta(minutes=1)
    assert assertion.conditions.not_on_or_after == reference_time + timedelta(minutes=1)
    attributes = assertion.attribute_statement.attributes
    assert [(a.name, a.name_format, a.value) for a in attributes] == [
        ("attr1", "fmt1", "value1"),
        ("attr2", "fmt2", "value2"),
    ]


def test_unsigned_response_rejected(build_response, encode_element, idp_certificate, reference_time):
    """Test an unsigned response never yields a response object."""
    result = verify_response(
        encode_element(build_response()), "alice", idp_certificate, "bob", reference_time
    )

    assert result.kind == FailureKind.NOT_SIGNED
    assert result.response is None


def test_metadata_resolution(idp_metadata, idp_certificate):
    """Test the IdP values an SP needs are resolved from metadata."""
    resolved = resolve_metadata_xml(idp_metadata.read_bytes())

    assert resolved.entity_id == "https://example.com"
    assert resolved.redirect_location.geturl() == "https://example.com/saml/redirect"
    assert resolved.certificate == idp_certificate


def test_config_and_metadata_drive_verification(sp_config, signed_response, reference_time):
    """Test a verifier built from configuration and metadata accepts IdP responses."""
    # Arrange
    resolved = resolve_metadata_xml(sp_config.idp.metadata_path.read_bytes())
    verifier = ResponseVerifier(
        expected_issuer=resolved.entity_id,
        trusted_certificate=resolved.certificate,
        expected_recipient=sp_config.sp.acs_url,
    )
    encoded = signed_response(
        issuer="https://example.com", recipient="https://sp.example.com/saml/acs"
    )

    # Act
    result = verifier.verify(encoded, reference_time)

    # Assert
    assert result.ok
    assert result.response.assertion.subject.name_id.value == "jdoe@example.com"


def test_rotated_idp_key_rejected(sp_config, signed_response, attacker_key_pair, reference_time):
    """Test a response signed by a key missing from metadata is rejected."""
    resolved = resolve_metadata_xml(sp_config.idp.metadata_path.read_bytes())
    verifier = ResponseVerifier(
        resolved.entity_id, resolved.certificate, sp_config.sp.acs_url
    )

    result = verifier.verify(
        signed_response(
            key_pair=attacker_key_pair,
            issuer="https://example.com",
            recipient="https://sp.example.com/saml/acs",
        ),
        reference_time,
    )

    assert result.kind == FailureKind.SIGNATURE


def test_certificate_file_matches_metadata(idp_cert_file, idp_metadata):
    """Test a pinned certificate file and metadata yield the same trust anchor."""
    assert load_certificate(idp_cert_file) == resolve_metadata_xml(
        idp_metadata.read_bytes()
    ).certificate


def test_response_replayed_later_rejected(signed_response, idp_certificate, reference_time):
    """Test the same response is rejected once its validity window has passed."""
    encoded = signed_response()

    first = verify_response(encoded, "alice", idp_certificate, "bob", reference_time)
    later = verify_response(
        encoded, "alice", idp_certificate, "bob", reference_time + timedelta(minutes=1)
    )

    assert first.ok
    assert later.kind == FailureKind.ASSERTION_EXPIRED
