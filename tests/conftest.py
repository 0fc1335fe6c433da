"""
Shared pytest configuration and fixtures.

This module provides fixtures used across all test suites: throwaway signing
keys and self-signed certificates, and builders for SAML Responses and IdP
metadata signed with SignXML.
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from lxml import etree
from signxml import DigestAlgorithm, SignatureMethod, XMLSigner

SAMLP_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
SAML_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"
EXC_C14N = "http://www.w3.org/2001/10/xml-exc-c14n#"

DEFAULT_ATTRIBUTES = (
    ("attr1", "fmt1", "value1"),
    ("attr2", "fmt2", "value2"),
)

KeyPair = Tuple[rsa.RSAPrivateKey, x509.Certificate]


def _generate_key_pair(common_name: str) -> KeyPair:
    """Generate an RSA key and a self-signed certificate for it."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, "Oregon"),
        x509.NameAttribute(NameOID.LOCALITY_NAME, "Portland"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Company Name"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])

    now = datetime.now(timezone.utc)
    cert = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now - timedelta(days=1)
    ).not_valid_after(
        now + timedelta(days=365)
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(private_key.public_key()),
        critical=False,
    ).sign(private_key, hashes.SHA256())

    return private_key, cert


@pytest.fixture(scope="session")
def idp_key_pair() -> KeyPair:
    """Signing key and certificate of the trusted IdP."""
    return _generate_key_pair("www.example.com")


@pytest.fixture(scope="session")
def attacker_key_pair() -> KeyPair:
    """Key and certificate unrelated to the trusted IdP."""
    return _generate_key_pair("attacker.example.net")


@pytest.fixture(scope="session")
def idp_certificate(idp_key_pair: KeyPair) -> x509.Certificate:
    return idp_key_pair[1]


@pytest.fixture
def idp_cert_file(tmp_path, idp_certificate: x509.Certificate):
    """IdP certificate written to a PEM file."""
    cert_path = tmp_path / "idp_cert.pem"
    cert_path.write_bytes(idp_certificate.public_bytes(serialization.Encoding.PEM))
    return cert_path


@pytest.fixture
def reference_time() -> datetime:
    """Fixed verification time used across tests."""
    return datetime(2020, 5, 23, 1, 46, 0, tzinfo=timezone.utc)


def _xml_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def build_response(reference_time: datetime) -> Callable[..., etree._Element]:
    """Factory building an unsigned samlp:Response element.

    Keyword arguments override the valid defaults: issuer "alice",
    recipient "bob", and both validity windows one minute either side of
    ``reference_time``. Passing None for a timestamp omits the attribute.
    """

    def _build(
        issuer: str = "alice",
        recipient: str = "bob",
        name_id: str = "jdoe@example.com",
        not_before: Optional[datetime] = reference_time - timedelta(minutes=1),
        not_on_or_after: Optional[datetime] = reference_time + timedelta(minutes=1),
        confirmation_not_on_or_after: Optional[datetime] = reference_time + timedelta(minutes=1),
        attributes: Iterable[Tuple[str, str, str]] = DEFAULT_ATTRIBUTES,
    ) -> etree._Element:
        response = etree.Element(
            f"{{{SAMLP_NS}}}Response",
            nsmap={"samlp": SAMLP_NS, "saml": SAML_NS},
            attrib={
                "ID": "_response-1",
                "Version": "2.0",
                "IssueInstant": _xml_time(reference_time),
                "Destination": recipient,
            },
        )
        assertion = etree.SubElement(
            response,
            f"{{{SAML_NS}}}Assertion",
            attrib={
                "ID": "_assertion-1",
                "Version": "2.0",
                "IssueInstant": _xml_time(reference_time),
            },
        )
        etree.SubElement(assertion, f"{{{SAML_NS}}}Issuer").text = issuer

        subject = etree.SubElement(assertion, f"{{{SAML_NS}}}Subject")
        name_id_elem = etree.SubElement(
            subject, f"{{{SAML_NS}}}NameID", attrib={"Format": "format"}
        )
        name_id_elem.text = name_id
        confirmation = etree.SubElement(
            subject, f"{{{SAML_NS}}}SubjectConfirmation", attrib={"Method": "method"}
        )
        data_attrib = {"Recipient": recipient}
        if confirmation_not_on_or_after is not None:
            data_attrib["NotOnOrAfter"] = _xml_time(confirmation_not_on_or_after)
        etree.SubElement(
            confirmation, f"{{{SAML_NS}}}SubjectConfirmationData", attrib=data_attrib
        )

        conditions_attrib = {}
        if not_before is not None:
            conditions_attrib["NotBefore"] = _xml_time(not_before)
        if not_on_or_after is not None:
            conditions_attrib["NotOnOrAfter"] = _xml_time(not_on_or_after)
        etree.SubElement(assertion, f"{{{SAML_NS}}}Conditions", attrib=conditions_attrib)

        statement = etree.SubElement(assertion, f"{{{SAML_NS}}}AttributeStatement")
        for name, name_format, value in attributes:
            attr = etree.SubElement(
                statement,
                f"{{{SAML_NS}}}Attribute",
                attrib={"Name": name, "NameFormat": name_format},
            )
            etree.SubElement(attr, f"{{{SAML_NS}}}AttributeValue").text = value

        return response

    return _build


@pytest.fixture
def sign_element() -> Callable[[etree._Element, KeyPair], etree._Element]:
    """Sign an element with an enveloped RSA-SHA256 signature."""

    def _sign(element: etree._Element, key_pair: KeyPair) -> etree._Element:
        private_key, cert = key_pair
        key_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        cert_pem = cert.public_bytes(serialization.Encoding.PEM)
        signer = XMLSigner(
            signature_algorithm=SignatureMethod.RSA_SHA256,
            digest_algorithm=DigestAlgorithm.SHA256,
            c14n_algorithm=EXC_C14N,
        )
        return signer.sign(element, key=key_pem, cert=cert_pem)

    return _sign


@pytest.fixture
def encode_element() -> Callable[[etree._Element], str]:
    """Serialize an element and base64-encode it as the POST binding does."""

    def _encode(element: etree._Element) -> str:
        return base64.b64encode(etree.tostring(element)).decode("ascii")

    return _encode


@pytest.fixture
def signed_response(
    build_response, sign_element, encode_element, idp_key_pair
) -> Callable[..., str]:
    """Factory for a base64 Response signed at response level by the IdP key."""

    def _signed(key_pair: Optional[KeyPair] = None, **overrides) -> str:
        element = build_response(**overrides)
        return encode_element(sign_element(element, key_pair or idp_key_pair))

    return _signed


@pytest.fixture
def assertion_signed_response(
    build_response, sign_element, encode_element, idp_key_pair
) -> Callable[..., str]:
    """Factory for a base64 Response whose Assertion alone is signed."""

    def _signed(**overrides) -> str:
        response = build_response(**overrides)
        assertion = response.find(f"{{{SAML_NS}}}Assertion")
        response.remove(assertion)
        # Sign the assertion as a standalone document, then embed it
        standalone = etree.fromstring(etree.tostring(assertion))
        response.append(sign_element(standalone, idp_key_pair))
        return encode_element(response)

    return _signed


@pytest.fixture
def build_metadata() -> Callable[..., bytes]:
    """Factory building IdP md:EntityDescriptor XML.

    Args (keyword):
        entity_id: entityID attribute
        key_descriptors: iterable of (use, certificate or None) pairs; use None
            omits the attribute, certificate None omits the KeyInfo
        services: iterable of (binding, location) pairs
    """

    def _build(
        entity_id: str = "https://example.com",
        key_descriptors: Iterable[Tuple[Optional[str], Optional[x509.Certificate]]] = (),
        services: Iterable[Tuple[str, str]] = (),
    ) -> bytes:
        root = etree.Element(
            f"{{{MD_NS}}}EntityDescriptor",
            nsmap={"md": MD_NS, "ds": DS_NS},
            attrib={"entityID": entity_id},
        )
        idp = etree.SubElement(
            root,
            f"{{{MD_NS}}}IDPSSODescriptor",
            attrib={"protocolSupportEnumeration": SAMLP_NS},
        )
        for use, cert in key_descriptors:
            kd = etree.SubElement(idp, f"{{{MD_NS}}}KeyDescriptor")
            if use is not None:
                kd.set("use", use)
            if cert is not None:
                key_info = etree.SubElement(kd, f"{{{DS_NS}}}KeyInfo")
                x509_data = etree.SubElement(key_info, f"{{{DS_NS}}}X509Data")
                der = cert.public_bytes(serialization.Encoding.DER)
                b64 = base64.b64encode(der).decode("ascii")
                # Wrapped at 64 columns like most IdPs publish it
                wrapped = "\n".join(b64[i:i + 64] for i in range(0, len(b64), 64))
                etree.SubElement(x509_data, f"{{{DS_NS}}}X509Certificate").text = (
                    "\n" + wrapped + "\n"
                )
        for binding, location in services:
            etree.SubElement(
                idp,
                f"{{{MD_NS}}}SingleSignOnService",
                attrib={"Binding": binding, "Location": location},
            )
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8")

    return _build
